"""Tests for stop flag, file helpers, validation and formatting."""

from hls_pipeline.errors import EncodeFailure, FilesystemFailure
from hls_pipeline.file_processor import (
    delete_source_file,
    ensure_directory,
    get_segments_size,
    list_segments,
    remove_directories,
)
from hls_pipeline.stats_tracker import format_duration, format_size, format_time
from hls_pipeline.stop_flag import StopFlag
from hls_pipeline.validator import Validator


def test_stop_flag_child_follows_parent():
    parent = StopFlag()
    child = parent.child()
    assert not child.is_stop_requested()
    parent.request_stop("shutting down")
    assert child.is_stop_requested()
    assert child.reason == "shutting down"


def test_stop_flag_child_does_not_stop_parent():
    parent = StopFlag()
    child = parent.child()
    child.request_stop("rendition failed")
    assert child.is_stop_requested()
    assert not parent.is_stop_requested()


def test_stop_flag_reset():
    flag = StopFlag()
    flag.request_stop()
    flag.reset()
    assert not flag.is_stop_requested()
    assert flag.reason is None


def test_ensure_directory_is_idempotent(tmp_path):
    target = tmp_path / "a" / "b"
    assert ensure_directory(target).ok
    assert ensure_directory(target).ok
    assert target.is_dir()


def test_ensure_directory_failure(tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("x")
    assert isinstance(ensure_directory(blocker / "sub").error, FilesystemFailure)


def test_segments_size(tmp_path):
    (tmp_path / "segment000.ts").write_bytes(b"\0" * 100)
    (tmp_path / "segment001.ts").write_bytes(b"\0" * 50)
    (tmp_path / "index.m3u8").write_text("#EXTM3U\n")
    assert [p.name for p in list_segments(tmp_path)] == ["segment000.ts", "segment001.ts"]
    assert get_segments_size(tmp_path) == 150
    assert list_segments(tmp_path / "missing") == []


def test_delete_source_file(tmp_path):
    source = tmp_path / "upload.mp4"
    source.write_bytes(b"\0")
    assert delete_source_file(source).ok
    assert not source.exists()
    assert delete_source_file(source).ok


def test_delete_source_file_failure(tmp_path):
    directory = tmp_path / "not-a-file"
    directory.mkdir()
    assert isinstance(delete_source_file(directory).error, FilesystemFailure)


def test_remove_directories(tmp_path):
    rendition = tmp_path / "720p"
    rendition.mkdir()
    (rendition / "segment000.ts").write_bytes(b"\0")
    remove_directories([rendition, tmp_path / "missing"])
    assert not rendition.exists()


def test_validator_accepts_complete_rendition(tmp_path):
    (tmp_path / "segment000.ts").write_bytes(b"\0")
    (tmp_path / "index.m3u8").write_text("#EXTM3U\n#EXTINF:10.0,\nsegment000.ts\n#EXT-X-ENDLIST\n")
    outcome = Validator().validate_rendition(tmp_path, "480p")
    assert outcome.ok
    assert [p.name for p in outcome.value] == ["segment000.ts"]


def test_validator_requires_sub_manifest(tmp_path):
    (tmp_path / "segment000.ts").write_bytes(b"\0")
    outcome = Validator().validate_rendition(tmp_path, "480p")
    assert isinstance(outcome.error, EncodeFailure)
    assert outcome.error.rendition == "480p"


def test_validator_requires_segments(tmp_path):
    (tmp_path / "index.m3u8").write_text("#EXTM3U\n#EXT-X-ENDLIST\n")
    assert isinstance(Validator().validate_rendition(tmp_path, "480p").error, EncodeFailure)


def test_format_size():
    assert format_size(0) == "0 Bytes"
    assert format_size(512) == "512 Bytes"
    assert format_size(1536) == "1.5 KB"
    assert format_size(50_000_000) == "47.68 MB"


def test_format_duration():
    assert format_duration(0) == "0:00:00"
    assert format_duration(125.7) == "0:02:05"
    assert format_duration(3723) == "1:02:03"


def test_format_time():
    assert format_time(45) == "45s"
    assert format_time(330) == "5m 30s"
    assert format_time(5025) == "1h 23m 45s"

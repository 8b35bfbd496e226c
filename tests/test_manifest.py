"""Tests for master playlist generation."""

import re

from hls_pipeline import file_processor
from hls_pipeline.errors import FilesystemFailure
from hls_pipeline.ladder import select_ladder
from hls_pipeline.manifest import build_master_manifest, write_master_manifest

EXPECTED_1080P = (
    "#EXTM3U\n"
    "#EXT-X-VERSION:3\n"
    "#EXT-X-STREAM-INF:BANDWIDTH=2500000,RESOLUTION=1920x1080\n"
    "720p/index.m3u8\n"
    "#EXT-X-STREAM-INF:BANDWIDTH=1500000,RESOLUTION=1920x1080\n"
    "480p/index.m3u8\n"
    "#EXT-X-STREAM-INF:BANDWIDTH=400000,RESOLUTION=1920x1080\n"
    "240p/index.m3u8\n"
)


def test_build_master_manifest(metadata):
    assert build_master_manifest(select_ladder(1080), metadata) == EXPECTED_1080P


def test_build_master_manifest_is_deterministic(metadata):
    ladder = select_ladder(2160)
    assert build_master_manifest(ladder, metadata) == build_master_manifest(ladder, metadata)


def test_bandwidth_is_kbps_times_1000(metadata):
    ladder = select_ladder(2160)
    text = build_master_manifest(ladder, metadata)
    bandwidths = [int(b) for b in re.findall(r"BANDWIDTH=(\d+)", text)]
    assert bandwidths == [spec.kbps * 1000 for spec in ladder] == [4000000, 1500000, 400000]


def test_empty_ladder_has_only_header(metadata):
    assert build_master_manifest((), metadata) == "#EXTM3U\n#EXT-X-VERSION:3\n"


def test_write_master_manifest(tmp_path):
    outcome = write_master_manifest(tmp_path, EXPECTED_1080P)
    assert outcome.ok
    assert outcome.value == tmp_path / "master.m3u8"
    assert outcome.value.read_bytes() == EXPECTED_1080P.encode()
    assert [p.name for p in tmp_path.iterdir()] == ["master.m3u8"]


def test_write_master_manifest_replaces_existing(tmp_path):
    (tmp_path / "master.m3u8").write_text("stale")
    write_master_manifest(tmp_path, EXPECTED_1080P)
    assert (tmp_path / "master.m3u8").read_text() == EXPECTED_1080P


def test_write_master_manifest_failure(tmp_path, monkeypatch):
    def broken_replace(src, dst):
        raise OSError("No space left on device")

    monkeypatch.setattr(file_processor.os, "replace", broken_replace)
    outcome = write_master_manifest(tmp_path, EXPECTED_1080P)
    assert isinstance(outcome.error, FilesystemFailure)
    assert list(tmp_path.iterdir()) == []


def test_write_master_manifest_missing_directory(tmp_path):
    outcome = write_master_manifest(tmp_path / "missing", EXPECTED_1080P)
    assert isinstance(outcome.error, FilesystemFailure)

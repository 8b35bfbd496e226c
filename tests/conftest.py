"""Shared fixtures: fake FFprobe/FFmpeg runners and a source upload."""

import json
from pathlib import Path

import pytest

from hls_pipeline import hls_encoder, prober
from hls_pipeline.data_models import SourceVideoMetadata
from hls_pipeline.process_runner import ProcessResult


def probe_document(
    width=1920,
    height=1080,
    duration="120.000000",
    size="50000000",
    bit_rate="3333333",
    r_frame_rate="30000/1001",
    audio=True,
):
    streams = [
        {
            "index": 0,
            "codec_type": "video",
            "codec_name": "h264",
            "width": width,
            "height": height,
            "r_frame_rate": r_frame_rate,
        }
    ]
    if audio:
        streams.append({"index": 1, "codec_type": "audio", "codec_name": "aac"})
    return {
        "streams": streams,
        "format": {"bit_rate": bit_rate, "duration": duration, "size": size},
    }


class FakeFFprobe:
    def __init__(self):
        self.document = probe_document()
        self.stdout = None
        self.returncode = 0
        self.calls = []

    def __call__(self, command, timeout=None, stop_flag=None, cwd=None):
        self.calls.append(list(command))
        stdout = self.stdout if self.stdout is not None else json.dumps(self.document)
        stderr = "" if self.returncode == 0 else "Invalid data found when processing input"
        return ProcessResult(list(command), self.returncode, stdout, stderr, 0.01)


class FakeFFmpeg:
    """Writes segments and a sub-manifest the way ffmpeg's HLS muxer would."""

    def __init__(self):
        self.segments = 3
        self.segment_bytes = 1000
        self.fail_on = set()
        self.no_output_for = set()
        self.calls = []

    def __call__(self, command, timeout=None, stop_flag=None, cwd=None):
        self.calls.append(list(command))
        playlist = Path(command[-1])
        rendition = playlist.parent.name
        if rendition in self.fail_on:
            return ProcessResult(list(command), 1, "", "Conversion failed!", 0.01)
        if rendition not in self.no_output_for:
            pattern = command[command.index("-hls_segment_filename") + 1]
            names = []
            for i in range(self.segments):
                segment = Path(pattern % i)
                segment.write_bytes(b"\0" * self.segment_bytes)
                names.append(segment.name)
            body = "".join(f"#EXTINF:10.000000,\n{name}\n" for name in names)
            playlist.write_text(f"#EXTM3U\n#EXT-X-VERSION:3\n{body}#EXT-X-ENDLIST\n")
        return ProcessResult(list(command), 0, "", "", 0.01)

    def renditions(self):
        return [Path(call[-1]).parent.name for call in self.calls]


@pytest.fixture
def ffprobe(monkeypatch):
    fake = FakeFFprobe()
    monkeypatch.setattr(prober, "run_process", fake)
    return fake


@pytest.fixture
def ffmpeg(monkeypatch):
    fake = FakeFFmpeg()
    monkeypatch.setattr(hls_encoder, "run_process", fake)
    return fake


@pytest.fixture
def source_video(tmp_path):
    upload_dir = tmp_path / "upload"
    upload_dir.mkdir()
    path = upload_dir / "file-3f2a.mp4"
    path.write_bytes(b"\0" * 4096)
    return path


@pytest.fixture
def metadata():
    return SourceVideoMetadata(
        width=1920,
        height=1080,
        bitrate=3333333,
        duration=120.0,
        size=50_000_000,
        codec="h264",
        fps=29.97,
        audio_codec="aac",
    )

"""Tests for configuration loading."""

import json

import pytest

from hls_pipeline.config_manager import ConfigManager, ConfigurationError


def write_config(tmp_path, data):
    path = tmp_path / "config.json"
    path.write_text(json.dumps(data) if not isinstance(data, str) else data)
    return str(path)


def test_defaults():
    config = ConfigManager.defaults()
    assert config.ffmpeg_binary == "ffmpeg"
    assert config.ffprobe_binary == "ffprobe"
    assert config.video_codec == "h264"
    assert config.audio_codec == "aac"
    assert config.segment_duration == 10
    assert config.probe_timeout == 60
    assert config.encode_timeout is None
    assert config.max_rendition_workers == 1
    assert config.max_concurrent_jobs == 2
    assert config.delete_source is True
    assert config.cleanup_on_failure is False
    assert config.fail_on_empty_ladder is False
    assert config.url_prefix == "/upload/videos"


def test_load_from_file(tmp_path):
    path = write_config(tmp_path, {
        "segment_duration": 6,
        "encode_timeout": 7200,
        "max_rendition_workers": 3,
        "delete_source": False,
        "output_directory_path": str(tmp_path / "videos"),
    })
    config = ConfigManager(path)
    assert config.segment_duration == 6
    assert config.encode_timeout == 7200
    assert config.max_rendition_workers == 3
    assert config.delete_source is False
    assert config.output_directory == tmp_path / "videos"
    assert config.audio_codec == "aac"


def test_missing_file(tmp_path):
    with pytest.raises(ConfigurationError, match="not found"):
        ConfigManager(str(tmp_path / "missing.json"))


def test_invalid_json(tmp_path):
    with pytest.raises(ConfigurationError, match="Invalid JSON"):
        ConfigManager(write_config(tmp_path, "{not json"))


def test_not_an_object(tmp_path):
    with pytest.raises(ConfigurationError):
        ConfigManager(write_config(tmp_path, [1, 2]))


@pytest.mark.parametrize(
    "data",
    [
        {"delete_source": "yes"},
        {"segment_duration": 0},
        {"segment_duration": "10"},
        {"max_rendition_workers": True},
        {"encode_timeout": -1},
        {"probe_timeout": "60"},
        {"ffmpeg_binary": ""},
        {"url_prefix": 5},
    ],
)
def test_invalid_values(data):
    with pytest.raises(ConfigurationError):
        ConfigManager.from_dict(data)


def test_output_path_must_be_directory(tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("x")
    with pytest.raises(ConfigurationError):
        ConfigManager.from_dict({"output_directory_path": str(blocker)})


def test_null_timeout_disables_deadline():
    assert ConfigManager.from_dict({"probe_timeout": None}).probe_timeout is None


def test_unknown_fields_are_ignored():
    config = ConfigManager.from_dict({"compress": True, "segment_duration": 4})
    assert config.segment_duration == 4

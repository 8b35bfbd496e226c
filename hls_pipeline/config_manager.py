"""Configuration management for the HLS pipeline."""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional


class ConfigurationError(Exception):
    """Exception raised for configuration-related errors."""
    pass


class ConfigManager:
    """Manages loading and validation of configuration from a JSON file."""

    DEFAULTS: Dict[str, Any] = {
        "ffmpeg_binary": "ffmpeg",
        "ffprobe_binary": "ffprobe",
        "video_codec": "h264",
        "audio_codec": "aac",
        "segment_duration": 10,
        "probe_timeout": 60,
        "encode_timeout": None,
        "max_rendition_workers": 1,
        "max_concurrent_jobs": 2,
        "delete_source": True,
        "cleanup_on_failure": False,
        "fail_on_empty_ladder": False,
        "url_prefix": "/upload/videos",
        "output_directory_path": "upload/videos",
    }

    STRING_FIELDS = [
        "ffmpeg_binary",
        "ffprobe_binary",
        "video_codec",
        "audio_codec",
        "url_prefix",
        "output_directory_path",
    ]
    BOOLEAN_FIELDS = ["delete_source", "cleanup_on_failure", "fail_on_empty_ladder"]
    POSITIVE_INT_FIELDS = ["segment_duration", "max_rendition_workers", "max_concurrent_jobs"]
    TIMEOUT_FIELDS = ["probe_timeout", "encode_timeout"]

    def __init__(self, config_path: Optional[str] = "config.json"):
        """
        Initialize ConfigManager with path to configuration file.

        Args:
            config_path: Path to the JSON configuration file, or None for defaults
        """
        self.config_path = Path(config_path) if config_path is not None else None
        self._config: Dict[str, Any] = dict(self.DEFAULTS)
        if self.config_path is not None:
            self._load_and_validate()

    @classmethod
    def defaults(cls) -> 'ConfigManager':
        """Configuration with every value at its default."""
        return cls(config_path=None)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ConfigManager':
        """
        Build a configuration from an in-memory dictionary.

        Raises:
            ConfigurationError: If a value has the wrong type or range
        """
        manager = cls(config_path=None)
        manager.validate_config(data)
        manager._apply(data)
        return manager

    def _load_and_validate(self):
        """Load and validate configuration on initialization."""
        logging.info(f"Loading configuration from {self.config_path}")
        config = self.load_config()
        self.validate_config(config)
        self._apply(config)
        logging.info("Configuration loaded and validated successfully")

    def _apply(self, config: Dict[str, Any]):
        for key, value in config.items():
            if key in self.DEFAULTS:
                self._config[key] = value
            else:
                logging.warning(f"Ignoring unknown configuration field: {key}")

    def load_config(self) -> dict:
        """
        Read and parse JSON configuration from file.

        Returns:
            Dictionary containing configuration data

        Raises:
            ConfigurationError: If file is missing or contains invalid JSON
        """
        if not self.config_path.exists():
            error_msg = f"Configuration file not found: {self.config_path}"
            logging.error(error_msg)
            raise ConfigurationError(error_msg)

        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                config = json.load(f)
        except json.JSONDecodeError as e:
            error_msg = f"Invalid JSON in configuration file: {e}"
            logging.error(error_msg)
            raise ConfigurationError(error_msg)
        except OSError as e:
            error_msg = f"Error reading configuration file: {e}"
            logging.error(error_msg)
            raise ConfigurationError(error_msg)

        if not isinstance(config, dict):
            error_msg = "Configuration file must contain a JSON object"
            logging.error(error_msg)
            raise ConfigurationError(error_msg)

        logging.debug(f"Configuration contents: {config}")
        return config

    def _fail(self, error_msg: str):
        logging.error(error_msg)
        raise ConfigurationError(error_msg)

    def validate_config(self, config: dict) -> bool:
        """
        Verify that every present field has a valid type and range.

        Args:
            config: Configuration dictionary to validate

        Returns:
            True if configuration is valid

        Raises:
            ConfigurationError: If validation fails
        """
        for field in self.STRING_FIELDS:
            if field in config and not isinstance(config[field], str):
                self._fail(f"'{field}' must be a string, got {type(config[field]).__name__}")
            if field in config and field.endswith("_binary") and not config[field].strip():
                self._fail(f"'{field}' must not be empty")

        for field in self.BOOLEAN_FIELDS:
            if field in config and not isinstance(config[field], bool):
                self._fail(f"'{field}' must be a boolean, got {type(config[field]).__name__}")

        for field in self.POSITIVE_INT_FIELDS:
            if field not in config:
                continue
            value = config[field]
            if isinstance(value, bool) or not isinstance(value, int):
                self._fail(f"'{field}' must be an integer, got {type(value).__name__}")
            if value < 1:
                self._fail(f"'{field}' must be at least 1, got {value}")

        for field in self.TIMEOUT_FIELDS:
            if field not in config or config[field] is None:
                continue
            value = config[field]
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                self._fail(f"'{field}' must be a number or null, got {type(value).__name__}")
            if value <= 0:
                self._fail(f"'{field}' must be positive, got {value}")

        if "output_directory_path" in config:
            output_path = Path(config["output_directory_path"])
            if output_path.exists() and not output_path.is_dir():
                self._fail(f"Output path exists but is not a directory: {output_path}")

        logging.debug("Configuration validation successful")
        return True

    @property
    def ffmpeg_binary(self) -> str:
        return self._config["ffmpeg_binary"]

    @property
    def ffprobe_binary(self) -> str:
        return self._config["ffprobe_binary"]

    @property
    def video_codec(self) -> str:
        return self._config["video_codec"]

    @property
    def audio_codec(self) -> str:
        return self._config["audio_codec"]

    @property
    def segment_duration(self) -> int:
        """Get the HLS segment duration in seconds."""
        return self._config["segment_duration"]

    @property
    def probe_timeout(self) -> Optional[float]:
        return self._config["probe_timeout"]

    @property
    def encode_timeout(self) -> Optional[float]:
        return self._config["encode_timeout"]

    @property
    def max_rendition_workers(self) -> int:
        """Get how many renditions of one job may encode at once."""
        return self._config["max_rendition_workers"]

    @property
    def max_concurrent_jobs(self) -> int:
        return self._config["max_concurrent_jobs"]

    @property
    def delete_source(self) -> bool:
        """Get whether the source is deleted after a successful conversion."""
        return self._config["delete_source"]

    @property
    def cleanup_on_failure(self) -> bool:
        return self._config["cleanup_on_failure"]

    @property
    def fail_on_empty_ladder(self) -> bool:
        return self._config["fail_on_empty_ladder"]

    @property
    def url_prefix(self) -> str:
        return self._config["url_prefix"].rstrip("/")

    @property
    def output_directory(self) -> Path:
        """Get the root directory job outputs are created under."""
        return Path(self._config["output_directory_path"])

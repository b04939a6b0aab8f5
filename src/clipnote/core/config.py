"""Configuration management for clipnote.

Handles TOML configuration loading from local and global paths, with an
environment variable override for the data directory.
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from clipnote.core.errors import ConfigError

# Configuration file paths
LOCAL_CONFIG_PATH = Path(".clipnote/config")
GLOBAL_CONFIG_PATH = Path.home() / ".clipnote" / "config"

DATA_DIR_ENV_VAR = "CLIPNOTE_DATA_DIR"

ITUNES_SEARCH_URL = "https://itunes.apple.com/search"

# Default configuration values
DEFAULT_CONFIG: dict[str, Any] = {
    "directory": {
        "search_url": ITUNES_SEARCH_URL,
        "result_limit": 5,
    },
    "http": {
        "timeout": 30.0,
    },
    "capture": {
        "clip_duration": 60.0,
        "keep_segments": False,
    },
    "storage": {
        "data_dir": ".clipnote/data/",
        "temp_dir": "",
    },
    "whisper": {
        "model": "base",
    },
}

# Valid Whisper model names
VALID_WHISPER_MODELS = {"tiny", "base", "small", "medium", "large"}

# iTunes caps the search result count at 200
MAX_RESULT_LIMIT = 200


class Verbosity(str, Enum):
    """Output verbosity levels for the CLI."""

    QUIET = "quiet"
    NORMAL = "normal"
    VERBOSE = "verbose"


@dataclass
class DirectoryConfig:
    """Podcast directory search settings."""

    search_url: str = ITUNES_SEARCH_URL
    result_limit: int = 5


@dataclass
class HttpConfig:
    """Transport settings shared by every HTTP stage."""

    timeout: float = 30.0


@dataclass
class CaptureConfig:
    """Capture pipeline settings."""

    clip_duration: float = 60.0
    keep_segments: bool = False


@dataclass
class StorageConfig:
    """Storage configuration settings."""

    data_dir: str = ".clipnote/data/"
    temp_dir: str = ""


@dataclass
class WhisperConfig:
    """Whisper model configuration settings."""

    model: str = "base"


@dataclass
class Config:
    """Main configuration container."""

    directory: DirectoryConfig = field(default_factory=DirectoryConfig)
    http: HttpConfig = field(default_factory=HttpConfig)
    capture: CaptureConfig = field(default_factory=CaptureConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    whisper: WhisperConfig = field(default_factory=WhisperConfig)

    def get_data_dir(self) -> Path:
        """Get the data directory, honouring ``CLIPNOTE_DATA_DIR``."""
        env_dir = os.environ.get(DATA_DIR_ENV_VAR, "")
        if env_dir:
            return Path(env_dir)
        return Path(self.storage.data_dir)

    def get_temp_dir(self) -> Path | None:
        """Get the directory for extracted segments, or None for the system default."""
        if self.storage.temp_dir:
            return Path(self.storage.temp_dir)
        return None


def _generate_default_config_toml() -> str:
    """Generate default configuration as TOML string."""
    return f"""# clipnote configuration file

[directory]
# Podcast search endpoint (iTunes Search API compatible)
search_url = "{ITUNES_SEARCH_URL}"
# Number of directory candidates considered per lookup
result_limit = 5

[http]
# Request timeout in seconds for directory and feed requests
timeout = 30.0

[capture]
# Default clip length in seconds, centred on the play head
clip_duration = 60.0
# Keep extracted audio segments instead of deleting them after transcription
keep_segments = false

[storage]
# Directory for clips and notes (CLIPNOTE_DATA_DIR takes precedence)
data_dir = ".clipnote/data/"
# Directory for extracted audio segments; empty uses the system temp dir
temp_dir = ""

[whisper]
# Whisper model to use: tiny, base, small, medium, large
model = "base"
"""


def _ensure_local_config_exists(local_path: Path) -> None:
    """Create local config file with defaults if it doesn't exist."""
    if not local_path.exists():
        local_path.parent.mkdir(parents=True, exist_ok=True)
        local_path.write_text(_generate_default_config_toml())


def _load_toml_file(path: Path) -> dict[str, Any]:
    """Load and parse a TOML configuration file.

    Raises:
        ConfigError: If the file exists but cannot be parsed.
    """
    if not path.exists():
        return {}

    try:
        return tomllib.loads(path.read_text())
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in config file {path}: {e}") from e


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep merge two dictionaries, with override taking precedence."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _require_number(section: str, key: str, value: Any) -> float:
    # bool is an int subclass but never a valid number here
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"{section}.{key} must be a number, got {type(value).__name__}")
    return float(value)


def _validate_config(config_dict: dict[str, Any]) -> None:
    """Validate configuration values.

    Raises:
        ConfigError: If configuration values are invalid.
    """
    model = config_dict.get("whisper", {}).get("model", "base")
    if model not in VALID_WHISPER_MODELS:
        raise ConfigError(
            f"Invalid whisper model '{model}'. "
            f"Valid options: {', '.join(sorted(VALID_WHISPER_MODELS))}"
        )

    directory = config_dict.get("directory", {})
    search_url = directory.get("search_url")
    if not isinstance(search_url, str) or not search_url.startswith(("http://", "https://")):
        raise ConfigError(f"directory.search_url must be an http(s) URL, got {search_url!r}")
    limit = directory.get("result_limit")
    if isinstance(limit, bool) or not isinstance(limit, int) or not 1 <= limit <= MAX_RESULT_LIMIT:
        raise ConfigError(
            f"directory.result_limit must be an integer between 1 and {MAX_RESULT_LIMIT}"
        )

    if _require_number("http", "timeout", config_dict.get("http", {}).get("timeout")) <= 0:
        raise ConfigError("http.timeout must be positive")

    capture = config_dict.get("capture", {})
    if _require_number("capture", "clip_duration", capture.get("clip_duration")) <= 0:
        raise ConfigError("capture.clip_duration must be positive")
    if not isinstance(capture.get("keep_segments"), bool):
        raise ConfigError(
            f"capture.keep_segments must be a boolean, "
            f"got {type(capture.get('keep_segments')).__name__}"
        )

    storage = config_dict.get("storage", {})
    for key in ["data_dir", "temp_dir"]:
        value = storage.get(key)
        if value is not None and not isinstance(value, str):
            raise ConfigError(f"storage.{key} must be a string, got {type(value).__name__}")


def _dict_to_config(config_dict: dict[str, Any]) -> Config:
    """Convert a validated configuration dictionary to a Config."""
    directory = config_dict["directory"]
    capture = config_dict["capture"]
    storage = config_dict["storage"]

    return Config(
        directory=DirectoryConfig(
            search_url=directory["search_url"],
            result_limit=directory["result_limit"],
        ),
        http=HttpConfig(timeout=float(config_dict["http"]["timeout"])),
        capture=CaptureConfig(
            clip_duration=float(capture["clip_duration"]),
            keep_segments=capture["keep_segments"],
        ),
        storage=StorageConfig(
            data_dir=storage.get("data_dir", ".clipnote/data/"),
            temp_dir=storage.get("temp_dir", ""),
        ),
        whisper=WhisperConfig(model=config_dict["whisper"]["model"]),
    )


def load_config(
    local_path: Path | None = None,
    global_path: Path | None = None,
    auto_create_local: bool = True,
) -> Config:
    """Load configuration from local and global config files.

    Configuration priority (highest to lowest):
    1. Local config file (.clipnote/config in current directory)
    2. Global config file ($HOME/.clipnote/config)
    3. Default values

    If no configuration exists, creates local config with defaults.
    Global config is never auto-created.

    Args:
        local_path: Override path for local config file.
        global_path: Override path for global config file.
        auto_create_local: If True, create local config with defaults if no config exists.

    Returns:
        Config object with merged configuration values.

    Raises:
        ConfigError: If configuration files are invalid.
    """
    local_path = local_path or LOCAL_CONFIG_PATH
    global_path = global_path or GLOBAL_CONFIG_PATH

    merged_config = {section: values.copy() for section, values in DEFAULT_CONFIG.items()}

    global_config = _load_toml_file(global_path)
    if global_config:
        merged_config = _deep_merge(merged_config, global_config)

    local_config = _load_toml_file(local_path)
    if local_config:
        merged_config = _deep_merge(merged_config, local_config)

    if auto_create_local and not local_config and not global_config:
        _ensure_local_config_exists(local_path)

    _validate_config(merged_config)

    return _dict_to_config(merged_config)

import logging
import os
import pathlib
from datetime import timedelta
from typing import Any, Dict, List, Optional, Tuple

import yaml
from platformdirs import user_data_dir

from .compression_config import CompressionConfig
from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

# Default configuration values
DEFAULT_CONFIG: Dict[str, Any] = {
    "storage_root": user_data_dir("media_compactor"), # Application-private storage root.
    "working_dir_name": "videofiles", # Subdirectory of storage_root holding generated files.
    "default_strategy_id": "simulated", # Strategy used when none is given explicitly.
    "fallback_strategy_id": "", # Strategy retried once after a failed attempt; empty disables it.
    "max_target_mb": 15.0,
    "min_size_to_act_mb": 1.0,
    "target_ratio": 0.6,
    "retention_hours": 24.0, # Generated files older than this are purged.
    "ffmpeg_path": "ffmpeg",
    "ffmpeg_timeout_seconds": 600.0,
    "verbose": False,
    "log_file": "", # Empty means no file logging.
}

# Configuration file paths
USER_CONFIG_DIR = pathlib.Path("~/.config/media_compactor").expanduser()
USER_CONFIG_PATH = USER_CONFIG_DIR / "config.yaml"
LOCAL_CONFIG_PATH = pathlib.Path(".mcconfig.yaml") # Project-level config

# Source descriptions
SOURCE_DEFAULT = "application default"
SOURCE_USER_CONFIG = f"user global config file ({USER_CONFIG_PATH})"
SOURCE_LOCAL_CONFIG = f"local project config file ({LOCAL_CONFIG_PATH})"
SOURCE_ENV_VAR = "environment variable"
SOURCE_OVERRIDE = "runtime override"

ENV_VAR_PREFIX = "MEDIA_COMPACTOR_"

_PATH_KEYS = ("storage_root", "log_file")


def _coerce(value: Any, expected_type: type) -> Any:
    """Convert ``value`` to ``expected_type``; raises ``ValueError`` on failure."""
    if isinstance(value, expected_type):
        return value
    if expected_type is bool:
        return str(value).lower() in ("true", "1", "yes", "on")
    if expected_type is float:
        if isinstance(value, bool):
            raise ValueError(f"boolean {value!r} is not a number")
        return float(value)
    if expected_type is int:
        return int(value)
    return expected_type(value)


class Config:
    """Layered application configuration.

    Precedence, lowest first: application defaults, the user YAML file, the
    local project YAML file, ``MEDIA_COMPACTOR_*`` environment variables and
    finally runtime overrides (``set`` / ``update_from_cli``). Every value
    remembers where it came from.
    """

    def __init__(self):
        self._config: Dict[str, Any] = {}
        self._sources: Dict[str, str] = {}

        self._load_defaults()
        self._load_yaml(USER_CONFIG_PATH, SOURCE_USER_CONFIG)
        self._load_yaml(LOCAL_CONFIG_PATH, SOURCE_LOCAL_CONFIG)
        self._load_env_vars()

    def _load_defaults(self):
        for key, value in DEFAULT_CONFIG.items():
            self._config[key] = value
            self._sources[key] = SOURCE_DEFAULT

    def _load_yaml(self, path: pathlib.Path, source: str):
        if not path.exists():
            return
        try:
            with open(path, "r") as f:
                loaded = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            logger.error("Error loading config '%s': %s", path, e)
            return
        if loaded is None:
            return
        if not isinstance(loaded, dict):
            logger.warning("Config file '%s' does not contain a mapping; ignored.", path)
            return
        for key, value in loaded.items():
            if key not in DEFAULT_CONFIG:
                logger.warning("Unknown configuration key '%s' in %s ignored.", key, path)
                continue
            try:
                self._config[key] = _coerce(value, type(DEFAULT_CONFIG[key]))
            except (TypeError, ValueError):
                logger.warning(
                    "Invalid value %r for '%s' in %s; keeping %r.",
                    value,
                    key,
                    path,
                    self._config[key],
                )
                continue
            self._sources[key] = source

    def _load_env_vars(self):
        for key in DEFAULT_CONFIG.keys():
            env_var_name = ENV_VAR_PREFIX + key.upper()
            env_var_value_str = os.getenv(env_var_name)
            if env_var_value_str is None:
                continue
            try:
                actual_value = _coerce(env_var_value_str, type(DEFAULT_CONFIG[key]))
            except ValueError:
                logger.warning(
                    "Could not cast env var %s value '%s' to %s; ignored.",
                    env_var_name,
                    env_var_value_str,
                    type(DEFAULT_CONFIG[key]).__name__,
                )
                continue
            self._config[key] = actual_value
            self._sources[key] = f"{SOURCE_ENV_VAR} ({env_var_name})"

    def get(self, key: str, default: Any = None) -> Any:
        value = self._config.get(key, default)
        if key in _PATH_KEYS and isinstance(value, str) and value:
            return str(pathlib.Path(value).expanduser())
        return value

    def get_all_keys(self) -> List[str]:
        return list(DEFAULT_CONFIG.keys())

    def set(self, key: str, value: Any, source: str = SOURCE_OVERRIDE) -> bool:
        """Set ``key`` and persist it to the user config file.

        Returns ``False`` for unknown keys or values that cannot be converted.
        """
        if key not in DEFAULT_CONFIG:
            logger.error(
                "Configuration key '%s' is not a recognized setting. Allowed keys are: %s",
                key,
                ", ".join(DEFAULT_CONFIG.keys()),
            )
            return False

        original_type = type(DEFAULT_CONFIG[key])
        try:
            value = _coerce(value, original_type)
        except (TypeError, ValueError):
            logger.error(
                "Invalid value format for '%s'. Cannot convert %r to %s.",
                key,
                value,
                original_type.__name__,
            )
            return False

        self._config[key] = value
        self._sources[key] = source

        user_config_data: Dict[str, Any] = {}
        if USER_CONFIG_PATH.exists():
            try:
                with open(USER_CONFIG_PATH, "r") as f:
                    loaded_config = yaml.safe_load(f)
                    if isinstance(loaded_config, dict):
                        user_config_data = loaded_config
            except (OSError, yaml.YAMLError) as e:
                logger.error("Error reading user config before set: %s", e)

        user_config_data[key] = value

        try:
            USER_CONFIG_DIR.mkdir(parents=True, exist_ok=True)
            with open(USER_CONFIG_PATH, "w") as f:
                yaml.safe_dump(user_config_data, f)
            return True
        except OSError as e:
            logger.error("Error writing to user config: %s", e)
            return False

    def get_with_source(self, key: str) -> Optional[Tuple[Any, str]]:
        if key in self._config:
            return self._config[key], self._sources.get(key, "Unknown")
        elif key in DEFAULT_CONFIG:
            return DEFAULT_CONFIG[key], SOURCE_DEFAULT
        return None

    def get_all_with_sources(self) -> Dict[str, Tuple[Any, str]]:
        all_data = {}
        for key in DEFAULT_CONFIG.keys():
            all_data[key] = (
                self._config.get(key, DEFAULT_CONFIG[key]),
                self._sources.get(key, SOURCE_DEFAULT),
            )
        return all_data

    def update_from_cli(self, key: str, value: Any):
        """Apply a command-line override without persisting it."""
        if value is None or key not in DEFAULT_CONFIG:
            return
        try:
            value = _coerce(value, type(DEFAULT_CONFIG[key]))
        except (TypeError, ValueError):
            logger.warning("CLI value for '%s' (%r) could not be converted; ignored.", key, value)
            return
        self._config[key] = value
        self._sources[key] = "command-line argument"

    def validate(self) -> bool:
        for key, default_value in DEFAULT_CONFIG.items():
            if key not in self._config:
                logger.error("Missing configuration key: %s", key)
                return False
            try:
                self._config[key] = _coerce(self._config[key], type(default_value))
            except (TypeError, ValueError):
                logger.error(
                    "Key '%s' has value %r, expected %s.",
                    key,
                    self._config[key],
                    type(default_value).__name__,
                )
                return False
        try:
            self.compression_config()
        except ValueError as e:
            logger.error("Invalid compression settings: %s", e)
            return False
        return self.get("retention_hours") > 0

    # --- Derived settings ---
    def working_directory(self) -> pathlib.Path:
        return pathlib.Path(self.get("storage_root")) / self.get("working_dir_name")

    def retention_window(self) -> timedelta:
        hours = self.get("retention_hours")
        if hours <= 0:
            raise ConfigurationError(
                f"retention_hours must be positive, got {hours}; a non-positive window"
                " would remove outputs that are still in use"
            )
        return timedelta(hours=hours)

    def compression_config(self, **overrides: Any) -> CompressionConfig:
        """Build a validated :class:`CompressionConfig` from the loaded settings."""
        settings = {
            "max_target_mb": self.get("max_target_mb"),
            "min_size_to_act_mb": self.get("min_size_to_act_mb"),
            "target_ratio": self.get("target_ratio"),
        }
        settings.update({k: v for k, v in overrides.items() if v is not None})
        return CompressionConfig(**settings)

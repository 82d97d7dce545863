"""
Configuration Management - YAML-based settings with environment overrides
========================================================================

This module handles the plugin settings file, including:
- Loading from YAML files
- Environment variable overrides
- Default values and fallback on unreadable files
- Settings validation
- Hot-reloading support
"""

import os
import threading
import yaml
from pathlib import Path
from typing import Any, Dict, List
from dataclasses import dataclass, field

from .exceptions import ConfigError, PersistenceError
from .logging import get_logger, set_debug_logging

logger = get_logger("config")

SETTINGS_FILE_NAME = "config.yaml"
RULES_FILE_NAME = "rules.json"


@dataclass
class Settings:
    """
    Plugin settings.

    Controls verbose logging, remote rule fetching and the hot-reload
    poll interval.
    """
    # Verbose logging
    debug: bool = False

    # Remote rule import
    enable_fetch: bool = False
    fetch_whitelist: List[str] = field(default_factory=list)
    fetch_timeout: float = 10.0

    # Hot reload poll interval (seconds)
    watch_interval: float = 5.0

    def validate(self) -> None:
        """
        Validate settings values.

        Raises:
            ConfigError: If any value is out of range or mistyped
        """
        # Quoted YAML like "false" is a truthy string, not a boolean
        for key in ("debug", "enable_fetch"):
            value = getattr(self, key)
            if not isinstance(value, bool):
                raise ConfigError(f"{key} must be true or false, got {value!r}")

        if not isinstance(self.fetch_whitelist, list) or not all(
            isinstance(host, str) for host in self.fetch_whitelist
        ):
            raise ConfigError("fetch_whitelist must be a list of hostnames")

        for key in ("fetch_timeout", "watch_interval"):
            value = getattr(self, key)
            if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
                raise ConfigError(f"{key} must be a positive number, got {value!r}")

    def is_host_allowed(self, hostname: str) -> bool:
        """Return True if hostname is whitelisted (case-insensitive)."""
        wanted = hostname.lower()
        return any(host.strip().lower() == wanted for host in self.fetch_whitelist)

    def to_dict(self) -> Dict[str, Any]:
        """Convert settings to dictionary."""
        return {
            "debug": self.debug,
            "enable_fetch": self.enable_fetch,
            "fetch_whitelist": list(self.fetch_whitelist),
            "fetch_timeout": self.fetch_timeout,
            "watch_interval": self.watch_interval,
        }


def get_default_config_dir() -> Path:
    """
    Get the default configuration directory path.

    Returns:
        Path to the configuration directory
    """
    if "ANSWERING_MACHINE_CONFIG_DIR" in os.environ:
        return Path(os.environ["ANSWERING_MACHINE_CONFIG_DIR"])

    if "XDG_CONFIG_HOME" in os.environ:
        return Path(os.environ["XDG_CONFIG_HOME"]) / "answering-machine"

    home = Path.home()
    config_home = home / ".config"

    if config_home.exists():
        return config_home / "answering-machine"

    return home / ".answering-machine"


def load_settings(settings_path: str, load_env: bool = True) -> Settings:
    """
    Load settings from a YAML file with environment variable overrides.

    Settings are resolved in the following order:
    1. Default values from the dataclass
    2. Values from the YAML file
    3. Environment variable overrides

    Args:
        settings_path: Path to the settings file
        load_env: Whether to apply environment variable overrides

    Returns:
        Settings object with loaded values

    Raises:
        ConfigError: If the file is missing, unparseable or invalid
    """
    settings = Settings()
    yaml_path = Path(settings_path)

    try:
        with open(yaml_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        raise ConfigError("Settings file not found", {"path": str(yaml_path)})
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse settings file: {e}", {"path": str(yaml_path)})
    except OSError as e:
        raise ConfigError(f"Failed to read settings file: {e}", {"path": str(yaml_path)})

    if not isinstance(data, dict):
        raise ConfigError("Settings file must contain a mapping", {"path": str(yaml_path)})

    _apply_yaml_settings(settings, data)

    if load_env:
        _apply_env_overrides(settings)

    settings.validate()

    return settings


def _apply_yaml_settings(settings: Settings, data: Dict[str, Any]) -> None:
    """
    Apply YAML values to a Settings object.

    Unknown keys are ignored.

    Args:
        settings: Settings object to update
        data: Dictionary of values from YAML
    """
    for key, value in data.items():
        if hasattr(settings, key):
            setattr(settings, key, value)


def _apply_env_overrides(settings: Settings) -> None:
    """
    Apply environment variable overrides to a Settings object.

    Environment variables follow the pattern: ANSWERING_MACHINE_<KEY>
    For example: ANSWERING_MACHINE_DEBUG, ANSWERING_MACHINE_FETCH_WHITELIST

    Args:
        settings: Settings object to update
    """
    env_mappings = {
        "ANSWERING_MACHINE_DEBUG": ("debug", bool),
        "ANSWERING_MACHINE_ENABLE_FETCH": ("enable_fetch", bool),
        "ANSWERING_MACHINE_FETCH_WHITELIST": ("fetch_whitelist", list),
        "ANSWERING_MACHINE_FETCH_TIMEOUT": ("fetch_timeout", float),
        "ANSWERING_MACHINE_WATCH_INTERVAL": ("watch_interval", float),
    }

    for env_var, (key, converter) in env_mappings.items():
        value = os.environ.get(env_var)
        if value is None:
            continue

        if converter == bool:
            converted = value.lower() in ("true", "1", "yes", "on")
        elif converter == list:
            converted = [item.strip() for item in value.split(",") if item.strip()]
        else:
            try:
                converted = converter(value)
            except ValueError:
                raise ConfigError(f"Invalid value for {env_var}: {value!r}")

        setattr(settings, key, converted)


def save_settings(settings: Settings, settings_path: str) -> None:
    """
    Save settings to a YAML file.

    The file is replaced atomically so a concurrent reader never sees
    a partially written document.

    Args:
        settings: Settings object to save
        settings_path: Destination path

    Raises:
        PersistenceError: If the settings cannot be written
    """
    yaml_path = Path(settings_path)
    tmp_path = yaml_path.with_name(yaml_path.name + ".tmp")

    try:
        yaml_path.parent.mkdir(parents=True, exist_ok=True)
        with open(tmp_path, "w", encoding="utf-8") as f:
            yaml.safe_dump(settings.to_dict(), f, default_flow_style=False, sort_keys=False)
        os.replace(tmp_path, yaml_path)
    except OSError as e:
        raise PersistenceError(f"Failed to save settings file: {e}", {"path": str(yaml_path)})


class SettingsManager:
    """
    Owner of the live Settings instance.

    Bootstraps a default settings file, reloads it on request (or on a
    file-change notification) and falls back to defaults when the file
    is missing or unparseable. Every successful load re-applies the
    debug flag to the logging configuration.

    Example:
        manager = SettingsManager("/home/me/.config/answering-machine/config.yaml")
        manager.ensure_exists()
        manager.reload()
        if manager.settings.enable_fetch:
            ...
    """

    def __init__(self, settings_path: str, load_env: bool = True):
        """
        Initialize the settings manager.

        Args:
            settings_path: Path to the YAML settings file
            load_env: Whether to apply environment variable overrides
        """
        self.settings_path = Path(settings_path)
        self.load_env = load_env
        self._settings = Settings()
        self._lock = threading.Lock()

    @property
    def settings(self) -> Settings:
        """Current settings snapshot."""
        return self._settings

    def ensure_exists(self) -> None:
        """Create a default settings file if none exists."""
        if self.settings_path.exists():
            return

        logger.info(f"Creating default settings file: {self.settings_path}")
        try:
            save_settings(Settings(), str(self.settings_path))
        except PersistenceError as e:
            logger.error(f"Could not create default settings file: {e}")

    def reload(self) -> bool:
        """
        Reload settings from disk.

        Returns:
            True if the file was loaded, False if defaults were used
        """
        logger.debug(f"Attempting to load settings from: {self.settings_path}")
        try:
            loaded = load_settings(str(self.settings_path), load_env=self.load_env)
            ok = True
            logger.info("Settings successfully loaded.")
        except ConfigError as e:
            logger.error(f"Could not load settings, using default values: {e}")
            loaded = Settings()
            ok = False

        with self._lock:
            self._settings = loaded

        set_debug_logging(loaded.debug)
        return ok

    def save(self) -> bool:
        """
        Persist the current settings.

        Returns:
            True on success; on failure the in-memory settings remain
            authoritative and the error is logged as critical
        """
        try:
            save_settings(self._settings, str(self.settings_path))
        except PersistenceError as e:
            logger.critical(f"Failed to save settings. Changes may not be persisted: {e}")
            return False

        logger.debug(f"Settings saved to {self.settings_path}")
        return True

    def set_debug(self, enabled: bool) -> str:
        """
        Enable or disable verbose logging and persist the choice.

        Args:
            enabled: Desired debug state

        Returns:
            Human-readable status message for the caller
        """
        state = "ENABLED" if enabled else "DISABLED"

        if self._settings.debug == enabled:
            return f"Debug mode is already {state}."

        self._settings.debug = enabled
        set_debug_logging(enabled)

        if not self.save():
            return f"Debug mode has been {state}, but the change could not be saved."
        return f"Debug mode has been {state}. The change has been saved."

    def debug_status(self) -> str:
        """Return a human-readable debug status message."""
        state = "ENABLED" if self._settings.debug else "DISABLED"
        return f"Debug mode is currently {state}."

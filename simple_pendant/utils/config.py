"""Application settings management.

This module handles loading, saving, and managing application settings
with atomic file operations and automatic backup.
"""

import json
import os
import sys
import shutil
import logging
from typing import Dict, Any, Optional
from pathlib import Path

from .constants import (
    BAUD_DEFAULT,
    EVENT_QUEUE_MAXSIZE,
    HOTPLUG_SCAN_INTERVAL,
    JOG_MAX_DT_MS,
    MACRO_RELOAD_INTERVAL,
    PENDANT_PRODUCT_ID,
    PENDANT_VENDOR_ID,
    PROBE_DEPTH_DEFAULT,
    PROBE_FEED_DEFAULT,
    PROBE_PLATE_THICKNESS_DEFAULT,
    PROBE_RETRACT_DEFAULT,
    REPORT_LAYOUT_DEFAULT,
    SAFE_Z_COMMAND_DEFAULT,
    SETTINGS_FILENAME,
    SETTINGS_BACKUP_SUFFIX,
    SETTINGS_TEMP_SUFFIX,
    SPINDLE_DEFAULT,
    SPINDLE_MAX,
    SPINDLE_MIN,
    SPINDLE_STEP,
    STATUS_POLL_DEFAULT,
)
from .exceptions import (
    SettingsLoadError,
    SettingsSaveError,
)

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS: Dict[str, Any] = {
    "port": "",
    "baud_rate": BAUD_DEFAULT,
    "status_poll_interval": STATUS_POLL_DEFAULT,
    "vendor_id": PENDANT_VENDOR_ID,
    "product_id": PENDANT_PRODUCT_ID,
    "report_layout": REPORT_LAYOUT_DEFAULT,
    "hotplug_scan_interval": HOTPLUG_SCAN_INTERVAL,
    "macro_config_path": "",
    "macro_reload_interval": MACRO_RELOAD_INTERVAL,
    "macro_dirs": [],
    "spindle_default": SPINDLE_DEFAULT,
    "spindle_min": SPINDLE_MIN,
    "spindle_max": SPINDLE_MAX,
    "spindle_step": SPINDLE_STEP,
    "safe_z_command": SAFE_Z_COMMAND_DEFAULT,
    "probe": {
        "depth": PROBE_DEPTH_DEFAULT,
        "feed": PROBE_FEED_DEFAULT,
        "plate_thickness": PROBE_PLATE_THICKNESS_DEFAULT,
        "retract": PROBE_RETRACT_DEFAULT,
    },
    "jog_max_dt_ms": JOG_MAX_DT_MS,
    "event_queue_maxsize": EVENT_QUEUE_MAXSIZE,
}


def _deep_merge_defaults(defaults: Dict[str, Any], loaded: Dict[str, Any]) -> Dict[str, Any]:
    merged: Dict[str, Any] = {}
    for key, default_val in defaults.items():
        if key in loaded:
            loaded_val = loaded[key]
            if isinstance(default_val, dict) and isinstance(loaded_val, dict):
                merged[key] = _deep_merge_defaults(default_val, loaded_val)
            else:
                merged[key] = loaded_val
        else:
            merged[key] = json.loads(json.dumps(default_val))
    for key, loaded_val in loaded.items():
        if key not in merged:
            merged[key] = loaded_val
    return merged


def get_default_settings_dir() -> str:
    """Get default directory for settings storage.

    Returns:
        Path to settings directory
    """
    env_dir = os.getenv("SIMPLE_PENDANT_CONFIG_DIR")
    if env_dir:
        return env_dir

    if sys.platform.startswith("win"):
        base = os.getenv("LOCALAPPDATA") or os.getenv("APPDATA")
    else:
        base = os.getenv("XDG_CONFIG_HOME")

    if not base:
        base = os.path.expanduser("~")

    return os.path.join(base, "SimplePendant")


def get_settings_path() -> str:
    """Get path to settings file.

    Creates directory if it doesn't exist.
    Falls back to home directory or current directory if creation fails.

    Returns:
        Full path to settings file
    """
    base_dir = get_default_settings_dir()

    try:
        os.makedirs(base_dir, exist_ok=True)
    except OSError as e:
        logger.warning(f"Failed to create settings directory: {e}")
        fallback_dir = os.path.join(os.path.expanduser("~"), ".simple_pendant")
        try:
            os.makedirs(fallback_dir, exist_ok=True)
            base_dir = fallback_dir
        except OSError:
            base_dir = os.getcwd()

    return os.path.join(base_dir, SETTINGS_FILENAME)


class Settings:
    """Application settings manager.

    Handles loading, saving, and accessing application settings with
    atomic file operations and automatic backup.

    Example:
        settings = Settings()
        settings.load()
        settings.set("port", "/dev/ttyUSB0")
        settings.save()
    """

    def __init__(self, filepath: Optional[str] = None):
        """Initialize settings manager.

        Args:
            filepath: Optional custom settings file path
        """
        self.filepath = filepath or get_settings_path()
        self.data: Dict[str, Any] = self._get_defaults()
        logger.info(f"Settings file: {self.filepath}")

    def _get_defaults(self) -> Dict[str, Any]:
        return _deep_merge_defaults(DEFAULT_SETTINGS, {})

    def load(self) -> bool:
        """Load settings from file.

        Returns:
            True if loaded successfully, False if no file exists

        Raises:
            SettingsLoadError: If the file exists but cannot be read or parsed
        """
        if not os.path.exists(self.filepath):
            logger.info("No settings file found, using defaults")
            return False

        try:
            with open(self.filepath, "r", encoding="utf-8") as f:
                loaded_data = json.load(f)
        except json.JSONDecodeError as e:
            logger.error(f"Invalid JSON in settings file: {e}")
            raise SettingsLoadError(f"Invalid JSON: {e}")
        except OSError as e:
            logger.error(f"Failed to read settings file: {e}")
            raise SettingsLoadError(f"Failed to read file: {e}")

        if not isinstance(loaded_data, dict):
            raise SettingsLoadError("Settings file must contain a JSON object")

        self.data = _deep_merge_defaults(self._get_defaults(), loaded_data)
        logger.info("Settings loaded successfully")
        return True

    def save(self) -> None:
        """Save settings to file atomically.

        Raises:
            SettingsSaveError: If save fails
        """
        filepath = Path(self.filepath)
        temp_path = Path(str(filepath) + SETTINGS_TEMP_SUFFIX)
        backup_path = Path(str(filepath) + SETTINGS_BACKUP_SUFFIX)

        try:
            filepath.parent.mkdir(parents=True, exist_ok=True)

            with open(temp_path, "w", encoding="utf-8") as f:
                json.dump(self.data, f, indent=2, sort_keys=True)

            if filepath.exists():
                try:
                    shutil.copy2(filepath, backup_path)
                except OSError as e:
                    logger.warning(f"Failed to create backup: {e}")

            temp_path.replace(filepath)
            logger.info("Settings saved successfully")

        except OSError as e:
            logger.error(f"Failed to write settings: {e}")
            if backup_path.exists():
                try:
                    shutil.copy2(backup_path, filepath)
                    logger.info("Settings restored from backup")
                except OSError:
                    pass
            raise SettingsSaveError(f"Failed to save: {e}")

        finally:
            if temp_path.exists():
                try:
                    temp_path.unlink()
                except OSError:
                    pass

    def get(self, key: str, default: Any = None) -> Any:
        """Get setting value.

        Args:
            key: Setting key (supports dot notation for nested keys)
            default: Default value if key not found

        Returns:
            Setting value or default
        """
        keys = key.split(".")
        value: Any = self.data

        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default

        return value

    def set(self, key: str, value: Any) -> None:
        """Set setting value.

        Args:
            key: Setting key (supports dot notation for nested keys)
            value: Value to set
        """
        keys = key.split(".")
        target = self.data
        for k in keys[:-1]:
            if k not in target or not isinstance(target[k], dict):
                target[k] = {}
            target = target[k]
        target[keys[-1]] = value

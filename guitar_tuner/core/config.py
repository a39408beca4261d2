"""Settings management for the guitar tuner."""

from typing import Dict, Any, Optional
import json
import os
from pathlib import Path

from ..logger import get_logger
from ..tuner_types import AudioFrame, SessionConfig
from .interfaces import IConfigSource

logger = get_logger(__name__)


class FixedConfigSource(IConfigSource):
    """Config source that always returns the same settings."""

    def __init__(self, config: Optional[SessionConfig] = None):
        self._config = config or SessionConfig()

    def snapshot(self) -> SessionConfig:
        return self._config

    def update(self, config: SessionConfig) -> None:
        """Swap the settings; the next frame picks them up."""
        self._config = config


class SettingsManager(IConfigSource):
    """Persistent user settings stored as JSON.

    Tolerance and sensitivity are clamped into range whenever they are read
    from disk or updated.
    """

    FILE_NAME = "settings.json"

    DEFAULT_SETTINGS: Dict[str, Any] = {
        "default_tuning": "Standard",
        "tolerance_cents": 5,
        "sensitivity": 0.01,
        "frame_size": 4096,
        "sample_rate": 44100,
    }

    def __init__(self, config_dir: Optional[str] = None):
        """Initialize the settings manager.

        Args:
            config_dir: Directory to store the settings file, or None to use default
        """
        if config_dir is None:
            # Use ~/.config/guitar_tuner by default
            home = os.path.expanduser("~")
            config_dir = os.path.join(home, ".config", "guitar_tuner")

        self.config_dir = Path(config_dir)
        self.config_file = self.config_dir / self.FILE_NAME
        self.settings = self.load()

    def load(self) -> Dict[str, Any]:
        """Load settings from file, falling back to defaults.

        Returns:
            Settings dictionary with every default key present
        """
        settings = self.DEFAULT_SETTINGS.copy()
        if not self.config_file.exists():
            return settings

        try:
            with open(self.config_file, "r") as f:
                stored = json.load(f)
            if not isinstance(stored, dict):
                raise ValueError("settings file does not contain an object")
            logger.info(f"Loaded settings from {self.config_file}")
        except (OSError, ValueError) as e:
            logger.error(f"Error loading settings from {self.config_file}: {e}")
            return settings

        # Ensure all default keys are present, ignore unknown ones
        for key in settings:
            if key in stored:
                settings[key] = stored[key]
        return self._sanitize(settings)

    def save(self) -> bool:
        """Save settings to file.

        Returns:
            True if saved successfully, False otherwise
        """
        try:
            self.config_dir.mkdir(parents=True, exist_ok=True)
            with open(self.config_file, "w") as f:
                json.dump(self.settings, f, indent=2)
            logger.info(f"Saved settings to {self.config_file}")
            return True
        except OSError as e:
            logger.error(f"Error saving settings to {self.config_file}: {e}")
            return False

    def get(self, key: str) -> Any:
        return self.settings[key]

    def update(self, updates: Dict[str, Any]) -> bool:
        """Update settings and save to file.

        Args:
            updates: Dictionary of updates to apply

        Returns:
            True if updated and saved successfully, False otherwise

        Raises:
            KeyError: If an update names an unknown setting
        """
        unknown = set(updates) - set(self.DEFAULT_SETTINGS)
        if unknown:
            raise KeyError(f"Unknown settings: {', '.join(sorted(unknown))}")

        self.settings = self._sanitize({**self.settings, **updates})
        return self.save()

    def reset(self) -> bool:
        """Reset settings to defaults and save.

        Returns:
            True if reset successfully, False otherwise
        """
        self.settings = self.DEFAULT_SETTINGS.copy()
        return self.save()

    def snapshot(self) -> SessionConfig:
        return SessionConfig(
            tolerance_cents=self.settings["tolerance_cents"],
            sensitivity=self.settings["sensitivity"],
        )

    def _sanitize(self, settings: Dict[str, Any]) -> Dict[str, Any]:
        defaults = self.DEFAULT_SETTINGS
        try:
            config = SessionConfig.clamped(
                float(settings["tolerance_cents"]), float(settings["sensitivity"])
            )
        except (TypeError, ValueError):
            logger.warning("Invalid tolerance or sensitivity in settings, using defaults")
            config = SessionConfig(defaults["tolerance_cents"], defaults["sensitivity"])
        settings["tolerance_cents"] = config.tolerance_cents
        settings["sensitivity"] = config.sensitivity

        for key in ("frame_size", "sample_rate"):
            value = settings[key]
            valid = not isinstance(value, bool) and isinstance(value, int) and value > 0
            if valid and key == "frame_size":
                # Power of two within the supported frame sizes
                valid = (
                    AudioFrame.MIN_SIZE <= value <= AudioFrame.MAX_SIZE
                    and not value & (value - 1)
                )
            if not valid:
                logger.warning(f"Invalid {key} {value!r} in settings, using {defaults[key]}")
                settings[key] = defaults[key]
        if not isinstance(settings["default_tuning"], str):
            settings["default_tuning"] = defaults["default_tuning"]
        return settings

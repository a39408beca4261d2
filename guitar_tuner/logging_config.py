"""Centralized logging configuration for the guitar tuner.

This module provides a consistent way to configure logging across the application.
"""

import logging
import sys
from typing import Optional

# Log levels for different modules
MODULE_LOG_LEVELS = {
    # Core modules
    "guitar_tuner": logging.INFO,
    "guitar_tuner.tuning_session": logging.INFO,
    "guitar_tuner.tunings": logging.INFO,
    "guitar_tuner.note_utils": logging.INFO,
    # Audio components, per-frame chatter lives at DEBUG
    "guitar_tuner.audio": logging.INFO,
    "guitar_tuner.audio.pitch_estimator": logging.INFO,
    "guitar_tuner.core": logging.INFO,
    "guitar_tuner.services": logging.INFO,
    "guitar_tuner.cli": logging.WARNING,  # CLI prints its own output
    # Libraries/third-party
    "sounddevice": logging.ERROR,
    "soundfile": logging.ERROR,
    # Root logger
    "": logging.ERROR,
}

# Shared console handler
_console_handler: Optional[logging.Handler] = None


def setup_logging(level: Optional[str] = None) -> None:
    """Set up logging configuration for the application.

    Args:
        level: If provided, override all 'guitar_tuner' log levels with this level (e.g., "DEBUG").
    """
    global _console_handler

    # Create a single, shared console handler if it doesn't exist
    if _console_handler is None:
        _console_handler = logging.StreamHandler(sys.stdout)
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )
        _console_handler.setFormatter(formatter)

    # Determine log levels
    log_levels = MODULE_LOG_LEVELS.copy()
    if level:
        numeric_level = logging.getLevelName(level.upper())
        if isinstance(numeric_level, int):
            for module_name in log_levels:
                if module_name.startswith("guitar_tuner"):
                    log_levels[module_name] = numeric_level
        else:
            logging.getLogger(__name__).error(f"Invalid log level: {level}")

    # Apply module-specific levels; only the top of each tree gets the handler
    for module_name, module_level in log_levels.items():
        logger = logging.getLogger(module_name)
        logger.setLevel(module_level)

        parent = module_name.rpartition(".")[0]
        if module_name and parent and parent in log_levels:
            # Children reach the shared handler through their parent
            logger.propagate = True
            continue

        for handler in logger.handlers[:]:
            logger.removeHandler(handler)
        logger.addHandler(_console_handler)
        logger.propagate = False

    logging.getLogger("guitar_tuner").debug("Logging configuration complete")

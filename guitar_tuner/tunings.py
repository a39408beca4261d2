"""Preset guitar tunings and helpers to look up or parse tunings."""

import re
from typing import Dict, List

from .logger import get_logger
from .tuner_types import ConfigurationError, StringTarget, TuningDefinition

logger = get_logger(__name__)

DEFAULT_TUNING_NAME = "Standard"

TUNINGS: List[TuningDefinition] = [
    TuningDefinition.from_pairs(
        "Standard",
        ["E", "A", "D", "G", "B", "E"],
        [82.41, 110.00, 146.83, 196.00, 246.94, 329.63],
    ),
    TuningDefinition.from_pairs(
        "Eb Tuning",
        ["Eb", "Ab", "Db", "Gb", "Bb", "Eb"],
        [77.78, 103.83, 138.59, 185.00, 233.08, 311.13],
    ),
    TuningDefinition.from_pairs(
        "Open G",
        ["D", "G", "D", "G", "B", "D"],
        [73.42, 98.00, 146.83, 196.00, 246.94, 293.66],
    ),
    TuningDefinition.from_pairs(
        "Open E",
        ["E", "B", "E", "G#", "B", "E"],
        [82.41, 123.47, 164.81, 207.65, 246.94, 329.63],
    ),
    TuningDefinition.from_pairs(
        "Open D",
        ["D", "A", "D", "F#", "A", "D"],
        [73.42, 110.00, 146.83, 185.00, 220.00, 293.66],
    ),
    TuningDefinition.from_pairs(
        "DADGAD",
        ["D", "A", "D", "G", "A", "D"],
        [73.42, 110.00, 146.83, 196.00, 220.00, 293.66],
    ),
]

_TUNINGS_BY_KEY: Dict[str, TuningDefinition] = {t.name.lower(): t for t in TUNINGS}

# "E:82.41" or "E2=82.41"
_CUSTOM_STRING = re.compile(r"^\s*([A-Ga-g][#b]?[0-9]?)\s*[:=]\s*([0-9]*\.?[0-9]+)\s*$")


def tuning_names() -> List[str]:
    return [t.name for t in TUNINGS]


def get_tuning(name: str) -> TuningDefinition:
    """Look up a preset tuning by name, ignoring case.

    Raises:
        ConfigurationError: If no preset has that name
    """
    tuning = _TUNINGS_BY_KEY.get(name.strip().lower())
    if tuning is None:
        raise ConfigurationError(
            f"Unknown tuning '{name}'. Available: {', '.join(tuning_names())}"
        )
    return tuning


def parse_tuning(text: str, name: str = "Custom") -> TuningDefinition:
    """Parse a custom tuning such as ``"D:73.42, A:110, D:146.83"``.

    Strings are listed in order, each as ``note:frequency``.

    Raises:
        ConfigurationError: If the text is empty or an entry is malformed
    """
    entries = [part for part in text.split(",") if part.strip()]
    if not entries:
        raise ConfigurationError("Custom tuning is empty")

    strings = []
    for entry in entries:
        match = _CUSTOM_STRING.match(entry)
        if not match:
            raise ConfigurationError(
                f"Malformed string '{entry.strip()}', expected NOTE:FREQUENCY (e.g. E:82.41)"
            )
        note, freq = match.group(1), float(match.group(2))
        strings.append(StringTarget(note=note[0].upper() + note[1:], frequency=freq))

    tuning = TuningDefinition(name=name, strings=tuple(strings))
    logger.debug(f"Parsed custom tuning {tuning}")
    return tuning

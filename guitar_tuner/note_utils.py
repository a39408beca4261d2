"""Utility functions for mapping frequencies to notes and cents."""

import math
from typing import List, Optional, Tuple

import numpy as np

from .logger import get_logger
from .tuner_types import TuningStatus

# Get logger for this module
logger = get_logger(__name__)

A4_FREQUENCY = 440.0
A4_MIDI = 69
CENTS_PER_OCTAVE = 1200

NOTE_NAMES: List[str] = [
    "C",
    "C#",
    "D",
    "D#",
    "E",
    "F",
    "F#",
    "G",
    "G#",
    "A",
    "A#",
    "B",
]
FLAT_NOTE_NAMES: List[str] = ["C", "Db", "D", "Eb", "E", "F", "Gb", "G", "Ab", "A", "Bb", "B"]


def _is_positive(value: float) -> bool:
    return isinstance(value, (int, float)) and math.isfinite(value) and value > 0


def midi_from_frequency(frequency: float) -> int:
    """Nearest MIDI note number for a frequency, using A4 = 440 Hz."""
    return int(round(12 * np.log2(frequency / A4_FREQUENCY))) + A4_MIDI


def note_from_frequency(frequency: float) -> str:
    """Convert a frequency to the nearest chromatic note name, without octave.

    Args:
        frequency: Frequency in Hz

    Returns:
        One of the twelve sharp note names, or an empty string when the
        frequency is not a positive finite number.
    """
    if not _is_positive(frequency):
        logger.debug(f"No note for non-positive frequency: {frequency}")
        return ""
    midi = midi_from_frequency(frequency)
    index = ((midi - 12) % 12 + 12) % 12
    return NOTE_NAMES[index]


def get_note_name(frequency: float, use_flats: bool = False) -> str:
    """Convert frequency to note name using Scientific Pitch Notation (SPN).

    Args:
        frequency: Frequency in Hz
        use_flats: If True, use flat notes (e.g., 'Bb') instead of sharps (e.g., 'A#')

    Returns:
        Note name with octave in SPN (e.g., 'A4', 'C#4', 'Bb3'), or '---'
        for a non-positive frequency.
    """
    if not _is_positive(frequency):
        return "---"
    midi = midi_from_frequency(frequency)
    # SPN octave calculation (C4 is middle C)
    octave = (midi // 12) - 1
    names = FLAT_NOTE_NAMES if use_flats else NOTE_NAMES
    return f"{names[midi % 12]}{octave}"


def cents_to(frequency: float, target: float) -> int:
    """Signed distance from ``target`` to ``frequency`` in whole cents.

    Positive means sharp, negative means flat.

    Raises:
        ValueError: If either frequency is not a positive finite number
    """
    if not _is_positive(frequency) or not _is_positive(target):
        raise ValueError(
            f"Frequencies must be positive, got {frequency!r} and {target!r}"
        )
    return int(round(CENTS_PER_OCTAVE * math.log2(frequency / target)))


def classify(cents: int, tolerance: int) -> Tuple[bool, bool, bool]:
    """Classify a deviation as (in tune, sharp, flat) for a tolerance in cents."""
    is_in_tune = abs(cents) <= tolerance
    is_sharp = cents > tolerance
    is_flat = cents < -tolerance
    return is_in_tune, is_sharp, is_flat


def build_status(
    frequency: float,
    target: float,
    tolerance: int,
    string_index: Optional[int] = None,
) -> TuningStatus:
    """Build the tuning status of a detected frequency against one target.

    Args:
        frequency: Detected frequency in Hz
        target: Target frequency in Hz
        tolerance: In-tune band half-width in cents
        string_index: Index of the target string, if the target belongs to a tuning

    Returns:
        TuningStatus for the pair
    """
    cents = cents_to(frequency, target)
    is_in_tune, is_sharp, is_flat = classify(cents, tolerance)
    return TuningStatus(
        note=note_from_frequency(frequency),
        frequency=frequency,
        cents=cents,
        is_in_tune=is_in_tune,
        is_sharp=is_sharp,
        is_flat=is_flat,
        string_index=string_index,
    )

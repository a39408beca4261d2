"""Type definitions for the guitar tuner."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import ClassVar, Iterable, Iterator, Optional, Tuple

import numpy as np


class ConfigurationError(ValueError):
    """Raised when a tuning or session configuration is rejected."""


@dataclass(frozen=True, eq=False)
class AudioFrame:
    """A block of mono samples and the rate they were captured at."""

    samples: np.ndarray  # 1-D float samples, nominally in [-1, 1]
    sample_rate: int  # Hz

    MIN_SIZE: ClassVar[int] = 2048
    MAX_SIZE: ClassVar[int] = 16384

    def __len__(self) -> int:
        return int(np.size(self.samples))

    @property
    def duration(self) -> float:
        """Length of the frame in seconds."""
        if self.sample_rate <= 0:
            return 0.0
        return len(self) / self.sample_rate

    def is_well_formed(self) -> bool:
        """True when the frame can be handed to the pitch estimator."""
        size = len(self)
        if np.ndim(self.samples) != 1 or not self.MIN_SIZE <= size <= self.MAX_SIZE:
            return False
        if size & (size - 1):  # not a power of two
            return False
        if not self.sample_rate > 0:
            return False
        return bool(np.all(np.isfinite(self.samples)))


@dataclass(frozen=True)
class StringTarget:
    """One string of a tuning: its note name and target frequency."""

    note: str  # Note name as written in the tuning (e.g., 'E', 'Eb', 'G#')
    frequency: float  # Target frequency in Hz

    def __str__(self) -> str:
        return f"{self.note} ({self.frequency:.2f} Hz)"


@dataclass(frozen=True)
class TuningDefinition:
    """An ordered set of strings to tune.

    Duplicate target frequencies are allowed and kept as separate strings.
    """

    name: str
    strings: Tuple[StringTarget, ...]

    def __post_init__(self) -> None:
        # Accept any iterable of targets but store a tuple
        object.__setattr__(self, "strings", tuple(self.strings))
        if not self.strings:
            raise ConfigurationError(f"Tuning '{self.name}' has no strings")
        for index, target in enumerate(self.strings):
            if not isinstance(target, StringTarget):
                raise ConfigurationError(
                    f"Tuning '{self.name}' string {index} is not a StringTarget: {target!r}"
                )
            freq = target.frequency
            if not isinstance(freq, (int, float)) or not math.isfinite(freq) or freq <= 0:
                raise ConfigurationError(
                    f"Tuning '{self.name}' string {index} ({target.note}) "
                    f"has invalid target frequency {freq!r}"
                )

    @classmethod
    def from_pairs(
        cls, name: str, notes: Iterable[str], frequencies: Iterable[float]
    ) -> TuningDefinition:
        """Build a tuning from parallel note and frequency lists."""
        notes = list(notes)
        frequencies = list(frequencies)
        if len(notes) != len(frequencies):
            raise ConfigurationError(
                f"Tuning '{name}' has {len(notes)} notes but {len(frequencies)} frequencies"
            )
        return cls(
            name=name,
            strings=tuple(StringTarget(n, f) for n, f in zip(notes, frequencies)),
        )

    @property
    def notes(self) -> Tuple[str, ...]:
        return tuple(s.note for s in self.strings)

    @property
    def frequencies(self) -> Tuple[float, ...]:
        return tuple(s.frequency for s in self.strings)

    def __len__(self) -> int:
        return len(self.strings)

    def __iter__(self) -> Iterator[StringTarget]:
        return iter(self.strings)

    def __getitem__(self, index: int) -> StringTarget:
        return self.strings[index]

    def __str__(self) -> str:
        return f"{self.name}: {' - '.join(self.notes)}"


@dataclass(frozen=True)
class TuningStatus:
    """How a detected pitch relates to one target string."""

    note: str  # Chromatic note of the detected pitch
    frequency: float  # Detected frequency in Hz
    cents: int  # Signed deviation from the target, positive is sharp
    is_in_tune: bool
    is_sharp: bool
    is_flat: bool
    string_index: Optional[int] = None  # Target string this was computed against


@dataclass(frozen=True)
class SessionConfig:
    """Live tuner settings, read fresh for every frame."""

    tolerance_cents: int = 5
    sensitivity: float = 0.01

    MIN_TOLERANCE: ClassVar[int] = 0
    MAX_TOLERANCE: ClassVar[int] = 8
    MIN_SENSITIVITY: ClassVar[float] = 0.001
    MAX_SENSITIVITY: ClassVar[float] = 0.1

    def __post_init__(self) -> None:
        tolerance = self.tolerance_cents
        if (
            isinstance(tolerance, bool)
            or not isinstance(tolerance, (int, np.integer))
            or not self.MIN_TOLERANCE <= tolerance <= self.MAX_TOLERANCE
        ):
            raise ConfigurationError(
                f"tolerance_cents must be an integer between {self.MIN_TOLERANCE} "
                f"and {self.MAX_TOLERANCE}, got {tolerance!r}"
            )
        sensitivity = self.sensitivity
        if (
            not isinstance(sensitivity, (int, float))
            or not math.isfinite(sensitivity)
            or not self.MIN_SENSITIVITY <= sensitivity <= self.MAX_SENSITIVITY
        ):
            raise ConfigurationError(
                f"sensitivity must be between {self.MIN_SENSITIVITY} and "
                f"{self.MAX_SENSITIVITY}, got {sensitivity!r}"
            )
        object.__setattr__(self, "tolerance_cents", int(tolerance))
        object.__setattr__(self, "sensitivity", float(sensitivity))

    @classmethod
    def clamped(cls, tolerance_cents: float, sensitivity: float) -> SessionConfig:
        """Build a config with both values forced into range."""
        tolerance = int(round(min(cls.MAX_TOLERANCE, max(cls.MIN_TOLERANCE, tolerance_cents))))
        sensitivity = min(cls.MAX_SENSITIVITY, max(cls.MIN_SENSITIVITY, float(sensitivity)))
        return cls(tolerance_cents=tolerance, sensitivity=sensitivity)


@dataclass(frozen=True)
class FrameResult:
    """Everything the presentation layer needs after one processed frame."""

    pitch: Optional[float]  # Estimated frequency in Hz, None when no pitch
    note: Optional[str]  # Chromatic name of the pitch
    detected_string: Optional[int]  # Index of the attributed string
    tuning_status: Optional[TuningStatus]  # For the detected or selected string
    tuned_strings: Tuple[bool, ...] = field(default_factory=tuple)
    session_complete: bool = False  # True only on the completing frame
    in_tune_edge: bool = False  # True on the first frame of an in-tune run

    @property
    def tuned_count(self) -> int:
        return sum(self.tuned_strings)

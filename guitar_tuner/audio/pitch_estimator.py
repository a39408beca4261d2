"""Autocorrelation pitch estimation for single audio frames."""

from __future__ import annotations
from functools import lru_cache
from typing import ClassVar, Optional, Sequence, Union

import numpy as np

from ..logger import get_logger
from ..core.interfaces import IPitchEstimator
from ..tuner_types import AudioFrame, SessionConfig

logger = get_logger(__name__)

Samples = Union[np.ndarray, Sequence[float]]


@lru_cache(maxsize=8)
def _hann(size: int) -> np.ndarray:
    window = np.hanning(size)
    window.setflags(write=False)
    return window


@lru_cache(maxsize=8)
def _window_autocorrelation(size: int) -> np.ndarray:
    """Autocorrelation of the Hann window itself for lags 0..size//2."""
    acf = _autocorrelate(_hann(size), size // 2)
    acf.setflags(write=False)
    return acf


def _autocorrelate(x: np.ndarray, max_lag: int) -> np.ndarray:
    """Unnormalized autocorrelation sum(x[i] * x[i + lag]) for lags 0..max_lag."""
    padded = np.concatenate((x, np.zeros(max_lag)))
    return np.correlate(padded, x, mode="valid")


def noise_floor(sensitivity: float) -> float:
    """Map a sensitivity setting linearly onto an RMS noise floor.

    The lowest sensitivity gives the highest floor; higher sensitivity lowers
    the floor so that quiet high strings still get through the gate.
    Out-of-range values are clamped.
    """
    low, high = SessionConfig.MIN_SENSITIVITY, SessionConfig.MAX_SENSITIVITY
    s = min(high, max(low, float(sensitivity))) if np.isfinite(sensitivity) else low
    position = (s - low) / (high - low)
    return PitchEstimator.FLOOR_AT_MIN_SENSITIVITY + position * (
        PitchEstimator.FLOOR_AT_MAX_SENSITIVITY - PitchEstimator.FLOOR_AT_MIN_SENSITIVITY
    )


class PitchEstimator(IPitchEstimator):
    """Estimates the fundamental frequency of a mono frame.

    The frame is gated on RMS energy, DC-corrected, Hann-windowed and
    autocorrelated. The first correlation peak after the zero-lag lobe that
    reaches PEAK_THRESHOLD of the highest one is taken as the period and
    refined with parabolic interpolation. Anything that does not produce a
    believable pitch returns None; silence between notes is the common case,
    not an error.
    """

    MIN_FREQUENCY: ClassVar[float] = 40.0  # Hz
    MAX_FREQUENCY: ClassVar[float] = 2000.0  # Hz
    MIN_LAG: ClassVar[int] = 2  # samples
    MIN_CORRELATION: ClassVar[float] = 0.3  # peak relative to zero-lag energy
    PEAK_THRESHOLD: ClassVar[float] = 0.9  # first peak relative to the highest
    RANGE_TOLERANCE: ClassVar[float] = 0.001  # estimates this close to a bound are clamped

    # RMS noise floor at each end of the sensitivity range
    FLOOR_AT_MIN_SENSITIVITY: ClassVar[float] = 0.011
    FLOOR_AT_MAX_SENSITIVITY: ClassVar[float] = 0.0005

    def __init__(
        self,
        min_frequency: float = MIN_FREQUENCY,
        max_frequency: float = MAX_FREQUENCY,
        min_correlation: float = MIN_CORRELATION,
    ) -> None:
        """Initialize the estimator.

        Args:
            min_frequency: Lowest frequency reported, in Hz
            max_frequency: Highest frequency reported, in Hz
            min_correlation: Fraction of the zero-lag correlation the chosen
                peak must reach to count as periodic
        """
        if not 0 < min_frequency < max_frequency:
            raise ValueError("Frequency range must satisfy 0 < min_frequency < max_frequency")
        if not 0.0 < min_correlation <= 1.0:
            raise ValueError("min_correlation must be in (0, 1]")
        self._min_frequency = float(min_frequency)
        self._max_frequency = float(max_frequency)
        self._min_correlation = float(min_correlation)

    @property
    def min_frequency(self) -> float:
        return self._min_frequency

    @property
    def max_frequency(self) -> float:
        return self._max_frequency

    def estimate(self, frame: AudioFrame, sensitivity: float) -> Optional[float]:
        """Estimate the pitch of one frame.

        Args:
            frame: Mono audio frame
            sensitivity: Microphone sensitivity, 0.001 (least) to 0.1 (most)

        Returns:
            Frequency in Hz, or None when there is no reliable pitch
        """
        if not frame.is_well_formed():
            logger.debug(
                f"Malformed frame ignored: size={len(frame)} sample_rate={frame.sample_rate}"
            )
            return None

        x = np.asarray(frame.samples, dtype=np.float64)
        size = x.size

        # Noise gate
        rms = float(np.sqrt(np.mean(np.square(x))))
        floor = noise_floor(sensitivity)
        if rms < floor:
            logger.debug(f"Signal too weak: rms={rms:.5f} < floor={floor:.5f}")
            return None

        # Remove DC bias, then taper the edges
        x = (x - np.mean(x)) * _hann(size)

        half = size // 2
        r = _autocorrelate(x, half)
        if not r[0] > 0:
            return None

        # Skip the lobe around zero lag: search starts where r first drops to zero
        nonpositive = np.flatnonzero(r[self.MIN_LAG : half] <= 0)
        if nonpositive.size == 0:
            logger.debug("No zero crossing in autocorrelation, signal not periodic")
            return None
        start = self.MIN_LAG + int(nonpositive[0])

        search = r[start:half]
        highest = float(np.max(search)) if search.size else 0.0
        if highest <= 0 or highest < self._min_correlation * r[0]:
            logger.debug(f"Weak correlation: {highest / r[0]:.3f}")
            return None

        # The period is the first positive lobe that comes close to the highest
        # one; later lobes sit at its multiples
        first = int(np.flatnonzero(search >= self.PEAK_THRESHOLD * highest)[0])
        lobe_end = np.flatnonzero(search[first:] <= 0)
        low = start + first
        high = low + int(lobe_end[0]) if lobe_end.size else half

        c = r / _window_autocorrelation(size)
        lag = low + int(np.argmax(c[low:high]))
        if lag + 1 >= half:
            logger.debug("Period longer than the search range")
            return None

        peak = r[lag]
        if peak <= 0 or peak < self._min_correlation * r[0]:
            logger.debug(f"Weak correlation: {peak / r[0]:.3f} at lag {lag}")
            return None

        period = self._refine_period(c, lag)
        frequency = frame.sample_rate / period
        if not np.isfinite(frequency) or frequency <= 0:
            return None
        frequency = self._in_range(frequency)
        if frequency is None:
            return None

        logger.debug(
            f"Pitch {frequency:.2f} Hz (lag {lag}, period {period:.3f}, "
            f"corr {peak / r[0]:.3f}, rms {rms:.4f})"
        )
        return float(frequency)

    def _in_range(self, frequency: float) -> Optional[float]:
        """Clamp a frequency within RANGE_TOLERANCE of the range, else None."""
        low = self._min_frequency * (1.0 - self.RANGE_TOLERANCE)
        high = self._max_frequency * (1.0 + self.RANGE_TOLERANCE)
        if not low <= frequency <= high:
            logger.debug(f"Frequency out of range: {frequency:.2f} Hz")
            return None
        return min(self._max_frequency, max(self._min_frequency, frequency))

    @staticmethod
    def _refine_period(c: np.ndarray, lag: int) -> float:
        """Refine an integer lag to sub-sample precision.

        ``c`` is the correlation divided by the window's own autocorrelation,
        so the taper does not drag the peak towards shorter lags. A parabola
        through the peak and its two neighbours gives the fractional offset.
        """
        before, at, after = c[lag - 1], c[lag], c[lag + 1]
        denominator = before - 2 * at + after
        if not np.isfinite(denominator) or denominator >= -1e-12 * abs(at):
            # Flat or not a peak: keep the integer lag
            return float(lag)

        shift = 0.5 * (before - after) / denominator
        if not -1.0 < shift < 1.0:
            return float(lag)
        return lag + shift


_default_estimator = PitchEstimator()


def estimate_pitch(
    samples: Samples, sample_rate: int, sensitivity: float = 0.01
) -> Optional[float]:
    """Estimate the pitch of raw samples with the default estimator settings.

    Args:
        samples: Mono samples, length a power of two between 2048 and 16384
        sample_rate: Sample rate in Hz
        sensitivity: Microphone sensitivity, 0.001 to 0.1

    Returns:
        Frequency in Hz, or None when there is no reliable pitch
    """
    try:
        data = np.asarray(samples, dtype=np.float64)
    except (TypeError, ValueError):
        logger.debug("Samples could not be converted to floats")
        return None
    return _default_estimator.estimate(AudioFrame(data, sample_rate), sensitivity)

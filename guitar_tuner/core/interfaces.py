"""Defines the core interfaces for the guitar tuner."""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Optional

from ..tuner_types import AudioFrame, SessionConfig


class IFrameSource(ABC):
    """Interface for anything that hands out fixed-size mono audio frames."""

    @abstractmethod
    def next_frame(self) -> Optional[AudioFrame]:
        """Return the next frame, or None at end of stream."""
        pass

    @abstractmethod
    def close(self) -> None:
        """Release any device or file held by the source."""
        pass

    @property
    @abstractmethod
    def sample_rate(self) -> int:
        """The sample rate of the frames in Hz."""
        pass

    def __enter__(self) -> IFrameSource:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class IConfigSource(ABC):
    """Interface for the live tolerance/sensitivity settings."""

    @abstractmethod
    def snapshot(self) -> SessionConfig:
        """Return the settings to apply to the next frame."""
        pass


class IPitchEstimator(ABC):
    """Interface for single-frame pitch estimation."""

    @abstractmethod
    def estimate(self, frame: AudioFrame, sensitivity: float) -> Optional[float]:
        """Return the fundamental frequency of the frame in Hz, or None."""
        pass

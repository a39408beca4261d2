"""Frame sources that read audio from memory or from files."""

from __future__ import annotations
from typing import Optional

import numpy as np
import soundfile as sf

from ..logger import get_logger
from ..core.interfaces import IFrameSource
from ..tuner_types import AudioFrame

logger = get_logger(__name__)

DEFAULT_FRAME_SIZE = 4096


def _to_mono(data: np.ndarray) -> np.ndarray:
    """Mix a (frames x channels) block down to one channel."""
    if data.ndim > 1:
        return data.mean(axis=1)
    return data


def _pad(block: np.ndarray, frame_size: int) -> np.ndarray:
    if len(block) < frame_size:
        padding = np.zeros(frame_size - len(block), dtype=block.dtype)
        block = np.concatenate((block, padding))
    return block


class ArrayFrameSource(IFrameSource):
    """Cuts an in-memory signal into consecutive frames."""

    def __init__(
        self,
        samples: np.ndarray,
        sample_rate: int,
        frame_size: int = DEFAULT_FRAME_SIZE,
        hop_size: Optional[int] = None,
    ) -> None:
        """Initialize the source.

        Args:
            samples: Mono (or frames x channels) signal
            sample_rate: Sample rate in Hz
            frame_size: Samples per frame
            hop_size: Samples to advance between frames, defaults to frame_size
        """
        if frame_size <= 0:
            raise ValueError("frame_size must be positive")
        if hop_size is not None and hop_size <= 0:
            raise ValueError("hop_size must be positive")
        self._samples = _to_mono(np.asarray(samples, dtype=np.float32))
        self._sample_rate = sample_rate
        self._frame_size = frame_size
        self._hop_size = frame_size if hop_size is None else hop_size
        self._position = 0

    @property
    def sample_rate(self) -> int:
        return self._sample_rate

    def next_frame(self) -> Optional[AudioFrame]:
        if self._position >= len(self._samples):
            return None
        block = self._samples[self._position : self._position + self._frame_size]
        self._position += self._hop_size
        return AudioFrame(_pad(block, self._frame_size), self._sample_rate)

    def close(self) -> None:
        self._position = len(self._samples)


class WavFileFrameSource(IFrameSource):
    """Reads frames from an audio file with soundfile."""

    def __init__(
        self,
        file_path: str,
        frame_size: int = DEFAULT_FRAME_SIZE,
        gain: float = 1.0,
        loop: bool = False,
    ) -> None:
        self._file_path = file_path
        self._frame_size = frame_size
        self._gain = gain
        self._loop = loop
        self._file: Optional[sf.SoundFile] = sf.SoundFile(file_path)
        logger.info(
            f"Opened {file_path}: {self._file.samplerate} Hz, "
            f"{self._file.channels} channel(s), {self._file.frames} frames"
        )

    @property
    def sample_rate(self) -> int:
        if self._file is None:
            raise RuntimeError("Frame source is closed")
        return self._file.samplerate

    def next_frame(self) -> Optional[AudioFrame]:
        if self._file is None:
            return None

        data = self._file.read(self._frame_size, dtype="float32", always_2d=True)
        if len(data) == 0 and self._loop and self._file.frames > 0:
            self._file.seek(0)
            data = self._file.read(self._frame_size, dtype="float32", always_2d=True)
        if len(data) == 0:
            return None

        block = _to_mono(data)
        if self._gain != 1.0:
            block = block * self._gain
        return AudioFrame(_pad(block, self._frame_size), self._file.samplerate)

    def close(self) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None

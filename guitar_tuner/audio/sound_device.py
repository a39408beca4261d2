"""Live audio capture and playback using the sounddevice library."""

from __future__ import annotations
from typing import Any, Dict, List, Optional

import numpy as np
import sounddevice as sd

from ..logger import get_logger
from ..core.interfaces import IFrameSource
from ..tuner_types import AudioFrame

logger = get_logger(__name__)


class SoundDeviceFrameSource(IFrameSource):
    """Pulls frames from an input device through a blocking input stream."""

    def __init__(
        self,
        device_id: Optional[int] = None,
        sample_rate: int = 44100,
        frame_size: int = 4096,
        channels: int = 1,
    ) -> None:
        """Initialize and start the input stream.

        Args:
            device_id: Audio input device ID, or None for the default device
            sample_rate: Sample rate in Hz
            frame_size: Samples per frame
            channels: Number of channels to open; only the first is used
        """
        self._device_id = device_id
        self._sample_rate = sample_rate
        self._frame_size = frame_size
        self._channels = channels

        sd.check_input_settings(device=device_id, samplerate=sample_rate, channels=channels)
        self._stream: Optional[sd.InputStream] = sd.InputStream(
            device=device_id,
            samplerate=sample_rate,
            blocksize=frame_size,
            channels=channels,
            dtype="float32",
        )
        self._stream.start()
        logger.info(
            f"Audio input started: device={device_id}, rate={sample_rate}Hz, frame={frame_size}"
        )

    @property
    def sample_rate(self) -> int:
        return self._sample_rate

    def next_frame(self) -> Optional[AudioFrame]:
        if self._stream is None:
            return None
        data, overflowed = self._stream.read(self._frame_size)
        if overflowed:
            logger.warning("Audio input overflow, samples were dropped")
        # Extract mono audio data (take first channel if multi-channel)
        samples = data[:, 0] if data.ndim > 1 else data
        return AudioFrame(np.array(samples, copy=True), self._sample_rate)

    def close(self) -> None:
        if self._stream is None:
            return
        try:
            self._stream.stop()
            self._stream.close()
            logger.info("Audio input stopped")
        finally:
            self._stream = None


def list_input_devices() -> List[Dict[str, Any]]:
    """Describe every device that can record."""
    devices = []
    for index, device in enumerate(sd.query_devices()):
        if device["max_input_channels"] > 0:
            devices.append(
                {
                    "id": index,
                    "name": device["name"],
                    "channels": device["max_input_channels"],
                    "default_samplerate": device["default_samplerate"],
                }
            )
    return devices


def play_samples(samples: np.ndarray, sample_rate: int, blocking: bool = True) -> None:
    """Play a mono buffer on the default output device."""
    sd.play(samples, samplerate=sample_rate)
    if blocking:
        sd.wait()

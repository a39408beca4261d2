"""Audio processing for the guitar tuner.

``sound_device`` needs the PortAudio library and is imported on demand.
"""

from .frame_sources import ArrayFrameSource, WavFileFrameSource
from .pitch_estimator import PitchEstimator, estimate_pitch, noise_floor

__all__ = [
    "ArrayFrameSource",
    "WavFileFrameSource",
    "PitchEstimator",
    "estimate_pitch",
    "noise_floor",
]

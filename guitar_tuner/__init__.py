"""Guitar tuner: autocorrelation pitch estimation and tuning sessions."""

from .audio.pitch_estimator import PitchEstimator, estimate_pitch
from .note_utils import cents_to, classify, note_from_frequency
from .tuner_types import (
    AudioFrame,
    ConfigurationError,
    FrameResult,
    SessionConfig,
    StringTarget,
    TuningDefinition,
    TuningStatus,
)
from .tunings import TUNINGS, get_tuning, parse_tuning
from .tuning_session import SessionPhase, TuningSessionController

__version__ = "0.1.0"

__all__ = [
    "AudioFrame",
    "ConfigurationError",
    "FrameResult",
    "PitchEstimator",
    "SessionConfig",
    "SessionPhase",
    "StringTarget",
    "TUNINGS",
    "TuningDefinition",
    "TuningSessionController",
    "TuningStatus",
    "cents_to",
    "classify",
    "estimate_pitch",
    "get_tuning",
    "note_from_frequency",
    "parse_tuning",
]

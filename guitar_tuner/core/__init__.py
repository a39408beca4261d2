"""Core components for the guitar tuner."""

# Import interfaces for easier access
from .interfaces import (
    IConfigSource,
    IFrameSource,
    IPitchEstimator,
)

__all__ = ["IConfigSource", "IFrameSource", "IPitchEstimator"]

"""Services that run tuning sessions against audio sources."""

from .tuning_service import TuningService

__all__ = ["TuningService"]

"""Event system for tuning sessions."""

from typing import Dict, List, Callable, Any
from enum import Enum, auto

from ..logger import get_logger

logger = get_logger(__name__)


class TuningEventType(Enum):
    """Event types emitted by a tuning session."""

    STRING_IN_TUNE = auto()  # First frame of an in-tune run: (index, status)
    STRING_TUNED = auto()  # String joined the tuned set: (index,)
    SESSION_COMPLETE = auto()  # Every string reached tune: ()
    TUNING_CHANGED = auto()  # New active tuning: (tuning,)


class EventEmitter:
    """Minimal synchronous event emitter."""

    def __init__(self):
        """Initialize the event emitter."""
        self._listeners: Dict[Any, List[Callable]] = {}

    def on(self, event_type: Any, callback: Callable) -> None:
        """Register a callback for an event type.

        Args:
            event_type: Event type to listen for
            callback: Function to call when the event occurs
        """
        if event_type not in self._listeners:
            self._listeners[event_type] = []

        if callback not in self._listeners[event_type]:
            self._listeners[event_type].append(callback)
            logger.debug(f"Added listener for event {event_type}")

    def off(self, event_type: Any, callback: Callable) -> None:
        """Remove a previously registered callback, if present."""
        listeners = self._listeners.get(event_type, [])
        if callback in listeners:
            listeners.remove(callback)

    def emit(self, event_type: Any, *args, **kwargs) -> None:
        """Emit an event.

        A failing listener is logged and does not stop the others.

        Args:
            event_type: Event type to emit
            *args: Positional arguments to pass to listeners
            **kwargs: Keyword arguments to pass to listeners
        """
        if event_type not in self._listeners:
            return

        for callback in list(self._listeners[event_type]):
            try:
                callback(*args, **kwargs)
            except Exception as e:
                logger.error(f"Error in event listener for {event_type}: {e}", exc_info=True)

    def clear(self) -> None:
        """Remove all event listeners."""
        self._listeners = {}
        logger.debug("Cleared all event listeners")


class TuningSessionEvents:
    """Typed registration and emission helpers for tuning session events."""

    def __init__(self):
        self._emitter = EventEmitter()

    def on_string_in_tune(self, callback: Callable) -> None:
        """Call ``callback(index, status)`` when a string enters the tolerance band."""
        self._emitter.on(TuningEventType.STRING_IN_TUNE, callback)

    def on_string_tuned(self, callback: Callable) -> None:
        """Call ``callback(index)`` when a string is first marked tuned."""
        self._emitter.on(TuningEventType.STRING_TUNED, callback)

    def on_session_complete(self, callback: Callable) -> None:
        """Call ``callback()`` once when every string has been tuned."""
        self._emitter.on(TuningEventType.SESSION_COMPLETE, callback)

    def on_tuning_changed(self, callback: Callable) -> None:
        """Call ``callback(tuning)`` when the active tuning is replaced."""
        self._emitter.on(TuningEventType.TUNING_CHANGED, callback)

    def emit(self, event_type: TuningEventType, *args) -> None:
        self._emitter.emit(event_type, *args)

    def clear(self) -> None:
        """Remove all event listeners."""
        self._emitter.clear()

"""Tuning session state machine.

The controller consumes one pitch estimate per frame, attributes it to the
closest string of the active tuning and keeps track of which strings have
reached tune during the session.
"""

from __future__ import annotations

import math
import threading
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, ClassVar, Iterable, List, Optional, Sequence, Set, Tuple, Union

from .audio.pitch_estimator import PitchEstimator
from .core.events import TuningEventType, TuningSessionEvents
from .core.interfaces import IPitchEstimator
from .logger import get_logger
from .note_utils import build_status, cents_to, note_from_frequency
from .tuner_types import (
    AudioFrame,
    ConfigurationError,
    FrameResult,
    SessionConfig,
    StringTarget,
    TuningDefinition,
)

logger = get_logger(__name__)

TuningLike = Union[TuningDefinition, Sequence[StringTarget]]


class SessionPhase(Enum):
    IDLE = auto()
    RUNNING = auto()
    COMPLETE = auto()


@dataclass
class SessionState:
    """Mutable per-session progress, owned by one controller."""

    tuning: TuningDefinition
    tuned_indices: Set[int] = field(default_factory=set)
    last_stable_estimate: Optional[float] = None
    phase: SessionPhase = SessionPhase.RUNNING
    # Strings inside a contiguous in-tune run; their in-tune edge has fired
    in_tune_runs: Set[int] = field(default_factory=set)

    def tuned_vector(self) -> Tuple[bool, ...]:
        return tuple(i in self.tuned_indices for i in range(len(self.tuning)))


class TuningSessionController:
    """Frame-driven tuning session.

    Call ``start`` with a tuning, then ``step`` (with a pitch) or
    ``process_frame`` (with raw audio) once per incoming frame. Each call is
    a critical section, so frames may arrive from an audio thread while the
    tuning is changed from another.
    """

    # Widest distance, in cents, at which a pitch is still attributed to a string
    SEARCH_WINDOW_CENTS: ClassVar[int] = 50
    # Tuned strings stay tuned for the rest of the session
    RATCHET_TUNED_STRINGS: ClassVar[bool] = True

    def __init__(
        self,
        pitch_estimator: Optional[IPitchEstimator] = None,
        search_window_cents: int = SEARCH_WINDOW_CENTS,
        ratchet_tuned_strings: bool = RATCHET_TUNED_STRINGS,
        events: Optional[TuningSessionEvents] = None,
    ) -> None:
        """Initialize the controller.

        Args:
            pitch_estimator: Estimator used by ``process_frame``
            search_window_cents: A pitch must be closer than this to a target
                to be attributed to that string
            ratchet_tuned_strings: If False, a tuned string that is later
                detected outside tolerance is removed from the tuned set
            events: Event hub to emit session events on
        """
        if search_window_cents <= 0:
            raise ConfigurationError("search_window_cents must be positive")

        self._estimator = pitch_estimator or PitchEstimator()
        self._search_window = search_window_cents
        self._ratchet = ratchet_tuned_strings
        self.events = events or TuningSessionEvents()

        self._lock = threading.Lock()
        self._tuning: Optional[TuningDefinition] = None
        self._selected_string: Optional[int] = None
        self._state: Optional[SessionState] = None

    # Session lifecycle

    def start(
        self, tuning: Optional[TuningLike] = None, config: Optional[SessionConfig] = None
    ) -> None:
        """Start a fresh session.

        Args:
            tuning: Tuning to use, or None to keep the one already set
            config: Settings the session will start with, checked up front

        Raises:
            ConfigurationError: If the tuning or config is unusable
        """
        if config is not None and not isinstance(config, SessionConfig):
            raise ConfigurationError(f"Expected a SessionConfig, got {config!r}")
        if tuning is not None:
            tuning = self._validate_tuning(tuning)

        with self._lock:
            if tuning is not None:
                if tuning != self._tuning:
                    self._selected_string = None
                self._tuning = tuning
            if self._tuning is None:
                raise ConfigurationError("Cannot start a session without a tuning")
            self._state = SessionState(tuning=self._tuning)
            active = self._tuning

        logger.info(f"Tuning session started: {active}")

    def stop(self) -> None:
        """Stop the session and discard its progress. Safe to call repeatedly."""
        with self._lock:
            was_active = self._state is not None
            self._state = None
        if was_active:
            logger.info("Tuning session stopped")

    def reset(self) -> None:
        """Forget which strings have been tuned, keeping the tuning."""
        with self._lock:
            if self._state is None:
                return
            self._state = SessionState(tuning=self._state.tuning)
        logger.info("Tuning session reset")

    def set_tuning(self, tuning: TuningLike) -> None:
        """Replace the active tuning.

        Tuned strings are always cleared, even when the new tuning shares
        target frequencies with the old one. A live session carries on with
        the new tuning.

        Raises:
            ConfigurationError: If the tuning is unusable
        """
        tuning = self._validate_tuning(tuning)
        with self._lock:
            self._tuning = tuning
            self._selected_string = None
            active = self._state is not None
            if active:
                self._state = SessionState(tuning=tuning)

        logger.info(f"Tuning changed to {tuning}")
        if active:
            self.events.emit(TuningEventType.TUNING_CHANGED, tuning)

    def select_string(self, index: Optional[int]) -> None:
        """Choose the string reported on when a pitch matches no string.

        Args:
            index: String index, or None to clear the selection

        Raises:
            ConfigurationError: If there is no tuning or the index is out of range
        """
        with self._lock:
            if index is not None:
                if self._tuning is None:
                    raise ConfigurationError("No tuning set")
                if not 0 <= index < len(self._tuning):
                    raise ConfigurationError(
                        f"String index {index} out of range for {len(self._tuning)} strings"
                    )
            self._selected_string = index

    # Frame processing

    def process_frame(self, frame: AudioFrame, config: SessionConfig) -> Optional[FrameResult]:
        """Estimate the pitch of a frame and advance the session with it.

        Returns:
            The frame's result, or None when no session is running
        """
        if self._state is None:
            return None
        pitch = self._estimator.estimate(frame, config.sensitivity)
        return self.step(pitch, config)

    def step(self, pitch: Optional[float], config: SessionConfig) -> Optional[FrameResult]:
        """Advance the session by one pitch estimate.

        Args:
            pitch: Estimated frequency in Hz, or None for a frame without pitch
            config: Current tolerance and sensitivity

        Returns:
            The frame's result, or None when no session is running
        """
        pending: List[Tuple[Any, ...]] = []
        with self._lock:
            state = self._state
            if state is None:
                return None
            result = self._advance(state, pitch, config, pending)

        # Listeners run outside the lock so they may call back into the controller
        for event in pending:
            self.events.emit(*event)
        return result

    def _advance(
        self,
        state: SessionState,
        pitch: Optional[float],
        config: SessionConfig,
        pending: List[Tuple[Any, ...]],
    ) -> FrameResult:
        if not self._is_usable_pitch(pitch):
            # Nothing new this frame; keep everything as it was
            return FrameResult(
                pitch=None,
                note=None,
                detected_string=None,
                tuning_status=None,
                tuned_strings=state.tuned_vector(),
            )

        pitch = float(pitch)
        tuning = state.tuning
        deviations = [cents_to(pitch, target.frequency) for target in tuning]
        detected = self._nearest_string(state, deviations)

        status = None
        in_tune = False
        in_tune_edge = False
        if detected is not None:
            status = build_status(
                pitch, tuning[detected].frequency, config.tolerance_cents, detected
            )
            in_tune = status.is_in_tune
            if in_tune:
                state.last_stable_estimate = pitch
                if detected not in state.tuned_indices:
                    state.tuned_indices.add(detected)
                    logger.info(
                        f"String {detected} ({tuning[detected].note}) tuned: "
                        f"{pitch:.2f} Hz, {status.cents:+d} cents"
                    )
                    pending.append((TuningEventType.STRING_TUNED, detected))
                if detected not in state.in_tune_runs:
                    in_tune_edge = True
                    pending.append((TuningEventType.STRING_IN_TUNE, detected, status))
            elif not self._ratchet and detected in state.tuned_indices:
                state.tuned_indices.discard(detected)
                logger.info(f"String {detected} ({tuning[detected].note}) drifted out of tune")
        elif self._selected_string is not None:
            selected = self._selected_string
            status = build_status(
                pitch, tuning[selected].frequency, config.tolerance_cents, selected
            )

        # A pitched frame ends every in-tune run except the one it continues
        state.in_tune_runs = {detected} if in_tune else set()

        session_complete = False
        if len(state.tuned_indices) == len(tuning) and state.phase is not SessionPhase.COMPLETE:
            state.phase = SessionPhase.COMPLETE
            session_complete = True
            logger.info(f"All {len(tuning)} strings of {tuning.name} tuned")
            pending.append((TuningEventType.SESSION_COMPLETE,))

        logger.debug(
            f"pitch={pitch:.2f}Hz string={detected} "
            f"cents={status.cents if status else None} tuned={sorted(state.tuned_indices)}"
        )
        return FrameResult(
            pitch=pitch,
            note=note_from_frequency(pitch),
            detected_string=detected,
            tuning_status=status,
            tuned_strings=state.tuned_vector(),
            session_complete=session_complete,
            in_tune_edge=in_tune_edge,
        )

    def _nearest_string(self, state: SessionState, deviations: Sequence[int]) -> Optional[int]:
        """Index of the string closest to the pitch, or None outside the search window.

        Ties prefer the selected string, then an untuned one, then the lowest index.
        """
        best = min(abs(c) for c in deviations)
        if best >= self._search_window:
            return None
        candidates = [i for i, c in enumerate(deviations) if abs(c) == best]
        if self._selected_string in candidates:
            return self._selected_string
        for index in candidates:
            if index not in state.tuned_indices:
                return index
        return candidates[0]

    @staticmethod
    def _is_usable_pitch(pitch: Optional[float]) -> bool:
        if pitch is None or isinstance(pitch, bool):
            return False
        try:
            value = float(pitch)
        except (TypeError, ValueError):
            return False
        return (
            math.isfinite(value)
            and PitchEstimator.MIN_FREQUENCY <= value <= PitchEstimator.MAX_FREQUENCY
        )

    @staticmethod
    def _validate_tuning(tuning: TuningLike) -> TuningDefinition:
        if isinstance(tuning, TuningDefinition):
            return tuning
        if isinstance(tuning, Iterable) and not isinstance(tuning, (str, bytes)):
            return TuningDefinition(name="Custom", strings=tuple(tuning))
        raise ConfigurationError(f"Not a tuning: {tuning!r}")

    # Read-only views

    @property
    def phase(self) -> SessionPhase:
        with self._lock:
            state = self._state
            return state.phase if state is not None else SessionPhase.IDLE

    @property
    def is_running(self) -> bool:
        return self._state is not None

    @property
    def is_complete(self) -> bool:
        return self.phase is SessionPhase.COMPLETE

    @property
    def tuning(self) -> Optional[TuningDefinition]:
        return self._tuning

    @property
    def selected_string(self) -> Optional[int]:
        return self._selected_string

    @property
    def tuned_indices(self) -> frozenset:
        with self._lock:
            state = self._state
            return frozenset(state.tuned_indices) if state is not None else frozenset()

    @property
    def tuned_strings(self) -> Tuple[bool, ...]:
        with self._lock:
            if self._state is not None:
                return self._state.tuned_vector()
            return tuple(False for _ in self._tuning or ())

    @property
    def last_stable_estimate(self) -> Optional[float]:
        with self._lock:
            state = self._state
            return state.last_stable_estimate if state is not None else None

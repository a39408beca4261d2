"""Tuning service that pumps frames from a source through a tuning session."""

from __future__ import annotations
import threading
from typing import Callable, Optional

from ..logger import get_logger
from ..core.interfaces import IConfigSource, IFrameSource
from ..tuner_types import FrameResult, TuningDefinition
from ..tuning_session import TuningSessionController

logger = get_logger(__name__)

ResultCallback = Callable[[FrameResult], None]


class TuningService:
    """Connects a frame source and a config source to a session controller.

    Frames are pulled one at a time; each is processed completely before the
    next is requested, so nothing is buffered here.
    """

    def __init__(
        self,
        frame_source: IFrameSource,
        config_source: IConfigSource,
        controller: Optional[TuningSessionController] = None,
    ) -> None:
        """Initialize the tuning service.

        Args:
            frame_source: Where audio frames come from
            config_source: Tolerance/sensitivity, read once per frame
            controller: Session controller, or None to create a default one
        """
        self._frame_source = frame_source
        self._config_source = config_source
        self.controller = controller or TuningSessionController()

        self._callback: Optional[ResultCallback] = None
        self._stop_requested = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._frames_processed = 0

    @property
    def frames_processed(self) -> int:
        return self._frames_processed

    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def run(
        self,
        tuning: TuningDefinition,
        callback: Optional[ResultCallback] = None,
        max_frames: Optional[int] = None,
    ) -> int:
        """Run a session in the calling thread until the stream ends.

        Args:
            tuning: Tuning to tune to
            callback: Called with every frame result
            max_frames: Stop after this many frames, or None for no limit

        Returns:
            Number of frames processed

        Raises:
            ConfigurationError: If the tuning or current settings are unusable
        """
        self.controller.start(tuning, self._config_source.snapshot())
        self._callback = callback
        self._stop_requested.clear()
        self._frames_processed = 0
        try:
            self._pump(max_frames)
        finally:
            self.controller.stop()
        logger.info(f"Tuning service finished after {self._frames_processed} frames")
        return self._frames_processed

    def start(
        self,
        tuning: TuningDefinition,
        callback: Optional[ResultCallback] = None,
        max_frames: Optional[int] = None,
    ) -> None:
        """Run a session on a background thread."""
        if self.is_running():
            logger.warning("Tuning service already running")
            return

        # Validate before the thread starts so configuration errors reach the caller
        self.controller.start(tuning, self._config_source.snapshot())
        self._callback = callback
        self._stop_requested.clear()
        self._frames_processed = 0
        self._thread = threading.Thread(
            target=self._run_thread, args=(max_frames,), name="tuning-service", daemon=True
        )
        self._thread.start()
        logger.info("Tuning service started")

    def stop(self) -> None:
        """Stop consuming frames. Safe to call repeatedly."""
        self._stop_requested.set()
        self.controller.stop()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join()
        self._thread = None

    def _run_thread(self, max_frames: Optional[int]) -> None:
        try:
            self._pump(max_frames)
        except Exception as e:
            logger.error(f"Tuning service stopped on error: {e}", exc_info=True)
        finally:
            self.controller.stop()

    def _pump(self, max_frames: Optional[int]) -> None:
        while not self._stop_requested.is_set():
            if max_frames is not None and self._frames_processed >= max_frames:
                break
            frame = self._frame_source.next_frame()
            if frame is None:
                logger.debug("Frame source exhausted")
                break

            result = self.controller.process_frame(frame, self._config_source.snapshot())
            if result is None:
                # Session was stopped from elsewhere
                break
            self._frames_processed += 1
            if self._callback:
                self._callback(result)

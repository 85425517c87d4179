"""Frame-by-frame verification state machine.

``on_frame`` is called from the camera thread for every delivered frame. It
only performs an atomic test-and-set on the busy flag; admitted frames run
analyze → collect → (embed → verify) on a worker thread. Frames arriving
while a unit is in flight are dropped, never queued.

State transitions, collector access and cancellation all happen under one
lock, so once ``stop()`` returns a cancelled unit can no longer publish a
state or report an error.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Union

import numpy as np

from facegate.analysis.analyzer import FaceAnalyzing
from facegate.camera.feeds import FrameSource
from facegate.collection.collector import FrameCollector
from facegate.errors import BackendError, ErrorCode, VerificationError, as_verification_error
from facegate.network.verification import FaceVerifying
from facegate.recognition.processor import FaceProcessing
from facegate.types import FaceCandidate, Frame
from facegate.verification.gate import AtomicFlag
from facegate.verification.reporting import ErrorReporter, LoggingErrorReporter
from facegate.verification.state import (
    Detecting,
    Error,
    Matched,
    Processing,
    TimedOut,
    VerificationState,
)

LOGGER = logging.getLogger("facegate.verification.orchestrator")

StateListener = Callable[[VerificationState], None]
ProgressListener = Callable[[float], None]


@dataclass
class PipelineTask:
    generation: int
    cancel_event: threading.Event = field(default_factory=threading.Event)
    thread: Optional[threading.Thread] = None

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()


class VerificationOrchestrator:
    def __init__(
        self,
        analyzer: FaceAnalyzing,
        processor: FaceProcessing,
        verifier: FaceVerifying,
        employee_id: Optional[str] = None,
        error_reporter: Optional[ErrorReporter] = None,
        collector: Optional[FrameCollector] = None,
        frame_source: Optional[FrameSource] = None,
    ) -> None:
        self.analyzer = analyzer
        self.processor = processor
        self.verifier = verifier
        self.employee_id = employee_id
        self.error_reporter = error_reporter or LoggingErrorReporter()
        self.collector = collector or FrameCollector()
        self.frame_source = frame_source

        self._lock = threading.RLock()
        self._changed = threading.Condition(self._lock)
        self._busy = AtomicFlag()
        self._state: VerificationState = Detecting()
        self._progress = 0.0
        self._task: Optional[PipelineTask] = None
        self._generation = 0
        self._running = False
        self._matched = False
        self._state_listeners: List[StateListener] = []
        self._progress_listeners: List[ProgressListener] = []

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------
    @property
    def state(self) -> VerificationState:
        with self._lock:
            return self._state

    @property
    def progress(self) -> float:
        with self._lock:
            return self._progress

    @property
    def is_busy(self) -> bool:
        return self._busy.is_set

    @property
    def is_running(self) -> bool:
        with self._lock:
            return self._running

    def add_state_listener(self, listener: StateListener) -> None:
        """Register a callback for state changes.

        Callbacks run on the thread that made the transition while the
        orchestrator lock is held; they must not block.
        """
        with self._lock:
            self._state_listeners.append(listener)

    def add_progress_listener(self, listener: ProgressListener) -> None:
        with self._lock:
            self._progress_listeners.append(listener)

    def wait_until(self, predicate: Callable[[VerificationState], bool], timeout: Optional[float] = None) -> bool:
        """Block until ``predicate(state)`` holds or ``timeout`` elapses."""
        with self._changed:
            return self._changed.wait_for(lambda: predicate(self._state), timeout=timeout)

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for the in-flight unit of work, if any. Returns False on timeout."""
        with self._lock:
            task = self._task
        if task is None or task.thread is None:
            return True
        task.thread.join(timeout)
        return not task.thread.is_alive()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def start(self) -> bool:
        """Begin admitting frames and start the frame source, if one is attached."""
        with self._lock:
            if self._running:
                return True
            self._running = True
            self._matched = False
        if self.frame_source is None:
            return True
        try:
            self.frame_source.start(self.on_frame)
        except Exception as exc:
            error = exc if isinstance(exc, VerificationError) else VerificationError(ErrorCode.CAMERA_START_FAILED, cause=exc)
            LOGGER.error("Frame source failed to start: %s", error)
            with self._lock:
                self._running = False
            self._report(error)
            return False
        LOGGER.info("Verification started for employee %s", self.employee_id or "<unset>")
        return True

    def stop(self) -> None:
        """Cancel in-flight work and return to ``Detecting``.

        The frame source is stopped first, outside the lock, so no
        ``on_frame`` call can race the reset below.
        """
        if self.frame_source is not None:
            self.frame_source.stop()

        with self._lock:
            self._running = False
            self._matched = False
            task = self._task
            self._task = None
            if task is not None:
                task.cancel_event.set()
                LOGGER.info("Cancelled in-flight verification unit #%d", task.generation)
            self._busy.clear()
            self.collector.reset()
            self._set_progress(0.0)
            self._publish(Detecting())
        self.analyzer.reset()

    # ------------------------------------------------------------------
    # Frame intake
    # ------------------------------------------------------------------
    def on_frame(self, frame: Union[Frame, np.ndarray]) -> bool:
        """Offer a frame to the pipeline. Returns True if it was admitted."""
        if not self._busy.test_and_set():
            return False

        with self._lock:
            if not self._running or self._matched:
                self._busy.clear()
                return False
            if not isinstance(frame, Frame):
                frame = Frame(image=frame)
            self._generation += 1
            task = PipelineTask(generation=self._generation)
            task.thread = threading.Thread(
                target=self._run_task,
                args=(task, frame),
                name=f"facegate-unit-{task.generation}",
                daemon=True,
            )
            self._task = task
            try:
                task.thread.start()
            except RuntimeError as exc:
                LOGGER.error("Could not start verification unit #%d: %s", task.generation, exc)
                self._task = None
                self._busy.clear()
                return False
        return True

    # ------------------------------------------------------------------
    # Unit of work
    # ------------------------------------------------------------------
    def _run_task(self, task: PipelineTask, frame: Frame) -> None:
        try:
            self._run_pipeline(task, frame)
        except Exception as exc:
            self._fail(task, as_verification_error(exc))
        finally:
            self._finish(task)

    def _run_pipeline(self, task: PipelineTask, frame: Frame) -> None:
        result = self.analyzer.analyze(frame.image)

        with self._lock:
            if task.cancelled:
                return
            if result is None:
                window_open = self.collector.start_time is not None
                self.collector.reset()
                self._set_progress(0.0)
                self._publish(Detecting())
            else:
                face, quality = result
                winner, progress = self.collector.process(FaceCandidate(face=face, frame=frame, quality=quality))
                if winner is None:
                    self._set_progress(progress)
                    self._publish(Detecting())
                    return

                self._set_progress(0.0)
                self._publish(Processing())
                employee_id = self.employee_id

        if result is None:
            # Losing the face mid-window also clears per-sequence detector state.
            if window_open:
                self.analyzer.reset()
            return

        LOGGER.info(
            "Winner selected (quality=%.3f, frame=%d); starting verification",
            winner.quality,
            winner.frame.index,
        )
        if not employee_id:
            raise BackendError(ErrorCode.EMPLOYEE_NOT_FOUND, debug_message="no target employee configured")

        embedding = self.processor.process(winner.frame.image, winner.face)
        if task.cancelled:
            return
        self.verifier.verify(employee_id, embedding)

        with self._lock:
            if task.cancelled:
                return
            self._matched = True
            self._publish(Matched(name=employee_id))

    def _fail(self, task: PipelineTask, error: VerificationError) -> None:
        with self._lock:
            if task.cancelled:
                LOGGER.debug("Dropping failure from cancelled unit #%d: %s", task.generation, error)
                return
            LOGGER.warning("Verification unit #%d failed: %s", task.generation, error)
            self._report(error)
            if error.code is ErrorCode.REQUEST_TIMED_OUT:
                self._publish(TimedOut())
            else:
                self._publish(Error(reason=error.code))
            self._publish(Detecting())

    def _finish(self, task: PipelineTask) -> None:
        with self._lock:
            if self._task is not task:
                return
            self._task = None
            self._busy.clear()

    # ------------------------------------------------------------------
    # Publication
    # ------------------------------------------------------------------
    def _report(self, error: VerificationError) -> None:
        try:
            self.error_reporter.report(error)
        except Exception:
            LOGGER.exception("Error reporter raised while reporting %s", error.code.value)

    def _publish(self, state: VerificationState) -> None:
        if state == self._state:
            return
        previous = self._state
        self._state = state
        LOGGER.info("State %s -> %s", previous, state)
        for listener in list(self._state_listeners):
            try:
                listener(state)
            except Exception:
                LOGGER.exception("State listener raised")
        self._changed.notify_all()

    def _set_progress(self, value: float) -> None:
        if value == self._progress:
            return
        self._progress = value
        for listener in list(self._progress_listeners):
            try:
                listener(value)
            except Exception:
                LOGGER.exception("Progress listener raised")

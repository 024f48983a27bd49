"""State-machine based record/analyze workflow orchestration."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Callable, Optional, Union

from audio_source import source_from_file
from errors import (
    AnalysisError,
    AnalysisTimeout,
    CaptureError,
    FileUnreadable,
    InvalidState,
    NothingToAnalyze,
    ServerError,
)
from interfaces import Analyzer, CaptureSession
from models import (
    Analyzing,
    AnalysisResult,
    AudioSource,
    Idle,
    ReadyToSubmit,
    Recording,
    Results,
    StateKind,
    ViewModel,
    WorkflowState,
)

logger = logging.getLogger(__name__)

StateCallback = Callable[[StateKind, StateKind], None]
ErrorCallback = Callable[[str, str], None]


class WorkflowController:
    """Owns the current WorkflowState and applies user intents to it.

    Intents are serialized on an ``asyncio.Lock``. The lock is released while
    an analysis is in flight so that a second ``submit`` sees ``Analyzing``
    and is dropped instead of queueing behind the first.
    """

    def __init__(
        self,
        capture: CaptureSession,
        analyzer: Analyzer,
        submit_timeout_s: float = 60.0,
        on_state_change: Optional[StateCallback] = None,
        on_error: Optional[ErrorCallback] = None,
    ) -> None:
        self._capture = capture
        self._analyzer = analyzer
        self._submit_timeout_s = submit_timeout_s
        self._on_state_change = on_state_change
        self._on_error = on_error

        self._lock = asyncio.Lock()
        self._state: WorkflowState = Idle()
        self._last_error: Optional[tuple[str, str]] = None

    @property
    def state(self) -> WorkflowState:
        return self._state

    @property
    def source(self) -> Optional[AudioSource]:
        return getattr(self._state, "source", None)

    @property
    def result(self) -> Optional[AnalysisResult]:
        if isinstance(self._state, Results):
            return self._state.result
        return None

    async def start_recording(self) -> None:
        async with self._lock:
            if not isinstance(self._state, (Idle, ReadyToSubmit)):
                self._ignore("start_recording")
                return
            self._last_error = None
            try:
                await self._capture.start()
            except CaptureError as exc:
                self._emit_error(exc.code, exc.message)
                return
            self._transition(Recording())

    async def stop_recording(self) -> None:
        async with self._lock:
            try:
                # Misuse surfaces as InvalidState from the capture session.
                source = await self._capture.stop()
            except InvalidState:
                raise
            except CaptureError as exc:
                self._capture.abort()
                self._transition(Idle())
                self._emit_error(exc.code, exc.message)
                return
            self._last_error = None
            self._transition(ReadyToSubmit(source))

    async def choose_file(self, path: Optional[Union[str, Path]]) -> None:
        async with self._lock:
            if not isinstance(self._state, (Idle, ReadyToSubmit)):
                self._ignore("choose_file")
                return
            self._last_error = None
            try:
                source = source_from_file(path)
            except FileUnreadable as exc:
                self._emit_error(exc.code, exc.message)
                return
            if source is None:
                return
            self._transition(ReadyToSubmit(source))

    async def submit(self) -> None:
        if isinstance(self._state, Analyzing):
            self._ignore("submit")
            return
        async with self._lock:
            state = self._state
            if isinstance(state, Analyzing):
                self._ignore("submit")
                return
            if not isinstance(state, ReadyToSubmit):
                # Results keeps its source for replay only.
                raise NothingToAnalyze()
            self._last_error = None
            source = state.source
            pending = Analyzing(source)
            self._transition(pending)

        result: Optional[AnalysisResult] = None
        error: Optional[AnalysisError] = None
        try:
            result = await asyncio.wait_for(
                self._analyzer.submit(source), timeout=self._submit_timeout_s
            )
        except asyncio.TimeoutError:
            error = AnalysisTimeout(f"No analysis result within {self._submit_timeout_s:g}s.")
        except AnalysisError as exc:
            error = exc
        except asyncio.CancelledError:
            if self._state is pending:
                self._transition(ReadyToSubmit(source))
            raise
        except Exception as exc:
            logger.exception("Analyzer raised an unexpected error")
            error = ServerError(f"Analysis failed: {exc}")

        async with self._lock:
            if self._state is not pending:
                # shutdown() or close() ran while the analyzer was busy.
                logger.info("Dropping stale analysis outcome")
                return
            if error is None:
                self._transition(Results(result=result, source=source))
            else:
                self._transition(ReadyToSubmit(source))
                self._emit_error(error.code, error.message)

    async def reset(self) -> None:
        async with self._lock:
            if not isinstance(self._state, Results):
                self._ignore("reset")
                return
            self._last_error = None
            self._transition(Idle())

    async def shutdown(self) -> None:
        async with self._lock:
            self.close()

    def close(self) -> None:
        """Release the microphone and any playback file; used when the renderer goes away.

        Synchronous so it can run from a window close handler after the event
        loop has stopped scheduling tasks.
        """
        self._capture.abort()
        self._transition(Idle())

    def view(self) -> ViewModel:
        state = self._state
        source = self.source
        result = self.result
        idle_or_ready = isinstance(state, (Idle, ReadyToSubmit))
        return ViewModel(
            state=state.kind,
            playback_path=source.playback.path if source is not None else None,
            feedback_text=result.feedback_text if result is not None else "",
            time_series=dict(result.time_series) if result is not None else {},
            error=self._last_error,
            can_start_recording=idle_or_ready,
            can_stop_recording=isinstance(state, Recording),
            can_choose_file=idle_or_ready,
            can_submit=isinstance(state, ReadyToSubmit),
            can_reset=isinstance(state, Results),
            is_busy=isinstance(state, Analyzing),
        )

    def _ignore(self, intent: str) -> None:
        logger.debug("Ignoring %s in state %s", intent, self._state.kind.value)

    def _emit_error(self, code: str, message: str) -> None:
        logger.warning("%s: %s", code, message)
        self._last_error = (code, message)
        if self._on_error:
            self._on_error(code, message)

    def _transition(self, to_state: WorkflowState) -> None:
        from_state = self._state
        old_source = getattr(from_state, "source", None)
        new_source = getattr(to_state, "source", None)
        if old_source is not None and old_source is not new_source:
            old_source.release()
        self._state = to_state
        if from_state.kind != to_state.kind:
            logger.info("State %s -> %s", from_state.kind.value, to_state.kind.value)
            if self._on_state_change:
                self._on_state_change(from_state.kind, to_state.kind)

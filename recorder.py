"""Microphone capture session.

``start()`` opens a sounddevice input stream off the event loop (the OS may
block on a permission prompt), the PortAudio callback buffers int16 chunks
in arrival order, and ``stop()`` joins them into a single AudioSource and
releases the device. The device is held only between a successful
``start()`` and ``stop()``/``abort()``; ``async with`` guarantees release
when the surrounding task exits early.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Any, Callable, List

from audio_source import source_from_recording
from errors import DeviceUnavailable, InvalidState, PermissionDenied, RecordingFailed
from models import AudioSource

try:
    import numpy as np
except Exception:  # pragma: no cover
    np = None  # type: ignore

try:
    import sounddevice as sd
except Exception:  # pragma: no cover
    sd = None  # type: ignore

logger = logging.getLogger(__name__)

_PERMISSION_HINTS = ("permission", "not permitted", "not authorized", "access denied")


class AudioCaptureSession:
    def __init__(
        self,
        sample_rate: int = 16000,
        channels: int = 1,
        chunk_ms: int = 100,
    ) -> None:
        self.sample_rate = sample_rate
        self.channels = channels
        self.chunk_ms = chunk_ms
        self._stream: Any = None
        self._running = False
        self._opening = False
        self._generation = 0
        self._lock = threading.Lock()
        self._chunks: List[bytes] = []
        self.dropped_chunks = 0

    @property
    def is_active(self) -> bool:
        return self._running or self._opening

    async def start(self) -> None:
        if self.is_active:
            raise InvalidState("Recording is already in progress.")
        self._opening = True
        with self._lock:
            self._generation += 1
            generation = self._generation
            self._chunks = []
        opening = asyncio.ensure_future(asyncio.to_thread(self._open_stream, generation))
        try:
            stream = await asyncio.shield(opening)
        except asyncio.CancelledError:
            opening.add_done_callback(self._close_abandoned_stream)
            self._opening = False
            raise
        except Exception:
            self._opening = False
            raise
        with self._lock:
            self._stream = stream
            self._running = True
        self._opening = False
        logger.info("Microphone opened (%d Hz, %d ch)", self.sample_rate, self.channels)

    async def stop(self) -> AudioSource:
        if not self._running:
            raise InvalidState("stop() called without an active recording.")
        with self._lock:
            self._running = False
            chunks, self._chunks = self._chunks, []
        self._release_quietly()
        pcm = b"".join(chunks)
        logger.info("Recording finished: %d chunks, %d bytes", len(chunks), len(pcm))
        try:
            return source_from_recording(pcm, self.sample_rate, self.channels)
        except OSError as exc:
            raise RecordingFailed(f"Could not save the recording: {exc}") from exc

    def abort(self) -> None:
        with self._lock:
            was_running = self._running
            self._running = False
            self._chunks = []
        if was_running:
            logger.info("Recording aborted")
        self._release_quietly()

    async def __aenter__(self) -> "AudioCaptureSession":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        self.abort()

    def _open_stream(self, generation: int) -> Any:
        if sd is None:
            raise DeviceUnavailable("sounddevice is not installed")
        blocksize = int(self.sample_rate * (self.chunk_ms / 1000.0))
        stream = None
        try:
            stream = sd.InputStream(
                samplerate=self.sample_rate,
                channels=self.channels,
                dtype="int16",
                blocksize=blocksize,
                callback=self._callback_for(generation),
            )
            stream.start()
        except Exception as exc:
            if stream is not None:
                stream.close()
            raise _to_capture_error(exc) from exc
        return stream

    def _callback_for(self, generation: int) -> Callable[..., None]:
        # A stream left over from a cancelled start() must not feed a later one.
        def callback(indata: Any, frames: int, time_info: Any, status: Any) -> None:
            if generation != self._generation:
                return
            self._on_audio(indata, frames, time_info, status)

        return callback

    def _release_stream(self) -> None:
        with self._lock:
            stream, self._stream = self._stream, None
        if stream is None:
            return
        try:
            stream.stop()
        finally:
            stream.close()

    def _release_quietly(self) -> None:
        # The device is gone either way; buffered audio is still usable.
        try:
            self._release_stream()
        except Exception as exc:
            logger.warning("Microphone did not close cleanly: %s", exc)

    def _close_abandoned_stream(self, opening: "asyncio.Future[Any]") -> None:
        if opening.cancelled() or opening.exception() is not None:
            return
        stream = opening.result()
        try:
            stream.stop()
        finally:
            stream.close()
        logger.info("Closed microphone opened after start() was cancelled")

    def _on_audio(self, indata: Any, frames: int, time_info: Any, status: Any) -> None:
        if not self._accepting:
            return
        if np is None:
            self.dropped_chunks += 1
            return
        payload = np.asarray(indata, dtype=np.int16).tobytes()
        with self._lock:
            if self._accepting:
                self._chunks.append(payload)

    @property
    def _accepting(self) -> bool:
        # Blocks may arrive before start() returns control to the loop.
        return self._running or self._opening


def _to_capture_error(exc: Exception) -> Exception:
    message = str(exc)
    low = message.lower()
    if any(hint in low for hint in _PERMISSION_HINTS):
        return PermissionDenied(f"Microphone access denied: {message}")
    return DeviceUnavailable(f"Microphone unavailable: {message}")

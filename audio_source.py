"""Builds the canonical AudioSource from a live recording or a selected file."""

from __future__ import annotations

import io
import logging
import mimetypes
import os
import tempfile
import wave
from pathlib import Path
from typing import Optional, Union

from errors import FileUnreadable
from models import AudioSource, PlaybackHandle

logger = logging.getLogger(__name__)

FALLBACK_MIME_TYPE = "application/octet-stream"

_EXTENSIONS = {
    "audio/l16": ".pcm",
    "audio/webm": ".webm",
    "audio/wav": ".wav",
    "audio/x-wav": ".wav",
    "audio/wave": ".wav",
    "audio/mpeg": ".mp3",
    "audio/ogg": ".ogg",
}


def pcm_mime_type(sample_rate: int = 16000, channels: int = 1) -> str:
    return f"audio/L16;rate={sample_rate};channels={channels}"


def filename_for(mime_type: str) -> str:
    """Default upload filename for a payload of the given MIME type."""
    base = mime_type.split(";", 1)[0].strip().lower()
    ext = _EXTENSIONS.get(base) or mimetypes.guess_extension(base) or ".bin"
    return f"speech{ext}"


def _pcm_to_wav(
    pcm: bytes,
    sample_rate: int = 16000,
    channels: int = 1,
    sample_width: int = 2,
) -> bytes:
    """Wrap raw PCM bytes in a WAV container."""
    buf = io.BytesIO()
    with wave.open(buf, "wb") as wf:
        wf.setnchannels(channels)
        wf.setsampwidth(sample_width)
        wf.setframerate(sample_rate)
        wf.writeframes(pcm)
    return buf.getvalue()


def source_from_recording(pcm: bytes, sample_rate: int = 16000, channels: int = 1) -> AudioSource:
    """Wrap captured PCM as an AudioSource with a temporary WAV file for replay."""
    fd, tmp_name = tempfile.mkstemp(prefix="speakcoach-", suffix=".wav")
    with os.fdopen(fd, "wb") as fh:
        fh.write(_pcm_to_wav(pcm, sample_rate, channels))
    mime_type = pcm_mime_type(sample_rate, channels)
    return AudioSource(
        payload=pcm,
        mime_type=mime_type,
        name=filename_for(mime_type),
        playback=PlaybackHandle(path=Path(tmp_name), owned=True),
    )


def source_from_file(path: Optional[Union[str, Path]]) -> Optional[AudioSource]:
    """Read a user-selected file as-is. Returns None when nothing was selected."""
    if not path:
        return None
    file_path = Path(path)
    try:
        payload = file_path.read_bytes()
    except OSError as exc:
        raise FileUnreadable(f"Could not read {file_path.name}: {exc.strerror or exc}") from exc
    mime_type, _ = mimetypes.guess_type(file_path.name)
    logger.debug("Loaded %s (%d bytes, %s)", file_path, len(payload), mime_type)
    return AudioSource(
        payload=payload,
        mime_type=mime_type or FALLBACK_MIME_TYPE,
        name=file_path.name,
        playback=PlaybackHandle(path=file_path, owned=False),
    )

from __future__ import annotations

from pathlib import Path

import pytest

from audio_source import filename_for, source_from_file, source_from_recording
from errors import FileUnreadable


def test_no_file_selected_returns_none() -> None:
    assert source_from_file(None) is None
    assert source_from_file("") is None


def test_file_is_read_without_reencoding(tmp_path: Path) -> None:
    path = tmp_path / "talk.wav"
    path.write_bytes(b"RIFF....WAVEfmt ")

    source = source_from_file(path)

    assert source is not None
    assert source.payload == b"RIFF....WAVEfmt "
    assert source.mime_type in ("audio/wav", "audio/x-wav", "audio/wave")
    assert source.name == "talk.wav"
    assert source.playback.path == path


def test_unknown_extension_falls_back_to_octet_stream(tmp_path: Path) -> None:
    path = tmp_path / "talk.zzqx"
    path.write_bytes(b"\x00\x01")

    source = source_from_file(str(path))

    assert source is not None
    assert source.mime_type == "application/octet-stream"


def test_releasing_file_source_keeps_user_file(tmp_path: Path) -> None:
    path = tmp_path / "talk.wav"
    path.write_bytes(b"data")

    source = source_from_file(path)
    assert source is not None
    source.release()

    assert path.exists()


def test_missing_file_raises_file_unreadable(tmp_path: Path) -> None:
    with pytest.raises(FileUnreadable):
        source_from_file(tmp_path / "gone.wav")


def test_recording_playback_file_is_released_once() -> None:
    source = source_from_recording(b"\x00\x00" * 10)
    path = source.playback.path
    assert path.exists()

    source.release()
    source.release()

    assert not path.exists()
    assert source.playback.released is True


@pytest.mark.parametrize(
    ("mime_type", "expected"),
    [
        ("audio/L16;rate=16000;channels=1", "speech.pcm"),
        ("audio/webm", "speech.webm"),
        ("audio/wav", "speech.wav"),
        ("application/x-unknown-thing", "speech.bin"),
    ],
)
def test_filename_for(mime_type: str, expected: str) -> None:
    assert filename_for(mime_type) == expected

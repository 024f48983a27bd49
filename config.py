"""Simple JSON-based config store."""

from __future__ import annotations

import json
from pathlib import Path

DEFAULT_SUBMIT_TIMEOUT_S = 60.0


class JsonConfigStore:
    def __init__(self, path: Path | None = None) -> None:
        self._path = path or Path.home() / ".config" / "speakcoach" / "config.json"
        self._path.parent.mkdir(parents=True, exist_ok=True)

    def get_analyzer_url(self) -> str:
        data = self._read_all()
        return str(data.get("analyzer_url", ""))

    def set_analyzer_url(self, url: str) -> None:
        data = self._read_all()
        data["analyzer_url"] = url.strip()
        self._write_all(data)

    def get_submit_timeout_s(self) -> float:
        data = self._read_all()
        try:
            value = float(data.get("submit_timeout_s", DEFAULT_SUBMIT_TIMEOUT_S))
        except (TypeError, ValueError):
            return DEFAULT_SUBMIT_TIMEOUT_S
        return value if value > 0 else DEFAULT_SUBMIT_TIMEOUT_S

    def set_submit_timeout_s(self, timeout_s: float) -> None:
        if timeout_s <= 0:
            raise ValueError("submit timeout must be positive")
        data = self._read_all()
        data["submit_timeout_s"] = float(timeout_s)
        self._write_all(data)

    def _read_all(self) -> dict:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError):
            return {}
        return data if isinstance(data, dict) else {}

    def _write_all(self, data: dict) -> None:
        self._path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")

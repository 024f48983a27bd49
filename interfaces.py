"""Protocol interfaces used by WorkflowController."""

from __future__ import annotations

from typing import Protocol

from models import AnalysisResult, AudioSource


class CaptureSession(Protocol):
    @property
    def is_active(self) -> bool: ...

    async def start(self) -> None: ...

    async def stop(self) -> AudioSource: ...

    def abort(self) -> None: ...


class Analyzer(Protocol):
    async def submit(self, source: AudioSource) -> AnalysisResult: ...


class ConfigStore(Protocol):
    def get_analyzer_url(self) -> str: ...

    def set_analyzer_url(self, url: str) -> None: ...

    def get_submit_timeout_s(self) -> float: ...

    def set_submit_timeout_s(self, timeout_s: float) -> None: ...

"""Core data models for the app."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Mapping, Optional, Tuple, Union


class StateKind(str, Enum):
    IDLE = "IDLE"
    RECORDING = "RECORDING"
    READY_TO_SUBMIT = "READY_TO_SUBMIT"
    ANALYZING = "ANALYZING"
    RESULTS = "RESULTS"


@dataclass
class PlaybackHandle:
    """File the renderer can replay; owned files are temporary and get deleted."""

    path: Path
    owned: bool = False
    released: bool = False

    def release(self) -> None:
        if self.released:
            return
        self.released = True
        if self.owned:
            self.path.unlink(missing_ok=True)


@dataclass(frozen=True)
class AudioSource:
    payload: bytes
    mime_type: str
    name: str
    playback: PlaybackHandle = field(compare=False)

    def release(self) -> None:
        self.playback.release()


@dataclass(frozen=True)
class SeriesPoint:
    time_label: str
    value: float


@dataclass(frozen=True)
class MetricSeries:
    metric: str
    points: Tuple[SeriesPoint, ...]

    @property
    def time_labels(self) -> Tuple[str, ...]:
        return tuple(p.time_label for p in self.points)

    @property
    def values(self) -> Tuple[float, ...]:
        return tuple(p.value for p in self.points)


@dataclass(frozen=True)
class AnalysisResult:
    """Feedback text plus named series that share one ordered set of time labels."""

    feedback_text: str
    time_series: Mapping[str, MetricSeries]

    def __post_init__(self) -> None:
        object.__setattr__(self, "time_series", MappingProxyType(dict(self.time_series)))

    def series(self, name: str) -> MetricSeries:
        return self.time_series[name]

    @property
    def time_labels(self) -> Tuple[str, ...]:
        for series in self.time_series.values():
            return series.time_labels
        return ()


@dataclass(frozen=True)
class Idle:
    kind = StateKind.IDLE


@dataclass(frozen=True)
class Recording:
    kind = StateKind.RECORDING


@dataclass(frozen=True)
class ReadyToSubmit:
    source: AudioSource
    kind = StateKind.READY_TO_SUBMIT


@dataclass(frozen=True)
class Analyzing:
    source: AudioSource
    kind = StateKind.ANALYZING


@dataclass(frozen=True)
class Results:
    result: AnalysisResult
    # Kept for replay only; never resubmitted.
    source: Optional[AudioSource] = None
    kind = StateKind.RESULTS


WorkflowState = Union[Idle, Recording, ReadyToSubmit, Analyzing, Results]


@dataclass(frozen=True)
class ViewModel:
    state: StateKind
    playback_path: Optional[Path] = None
    feedback_text: str = ""
    time_series: Mapping[str, MetricSeries] = field(default_factory=dict)
    error: Optional[Tuple[str, str]] = None
    can_start_recording: bool = False
    can_stop_recording: bool = False
    can_choose_file: bool = False
    can_submit: bool = False
    can_reset: bool = False
    is_busy: bool = False

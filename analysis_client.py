"""Analyzer adapters.

``HttpAnalysisClient`` posts the audio as multipart form data and parses
the JSON answer; ``SimulatedAnalyzer`` stands in for the backend with a
fixed delay and a canned answer. Both return an ``AnalysisResult`` or
raise an ``AnalysisError`` subclass. Nothing is retried here.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional

import httpx

from errors import AnalysisTimeout, NetworkFailure, ServerError
from models import AnalysisResult, AudioSource, MetricSeries, SeriesPoint

logger = logging.getLogger(__name__)

AUDIO_FIELD = "audio"
SERIES_SUFFIX = "_data"

DEMO_RESPONSE: Dict[str, Any] = {
    "feedback": (
        "Excellent start! Your volume and clarity are great. Your pace is a little fast, "
        "around 170 WPM. Try to take a breath after key points.\n\n"
        "Your pitch is generally confident but wavers slightly in the middle, which could "
        "indicate a moment of uncertainty. Your overall volume is good and consistent, "
        "ensuring the audience can hear you clearly."
    ),
    "wpm_data": [
        {"time": "0-10s", "wpm": 150},
        {"time": "10-20s", "wpm": 175},
        {"time": "20-30s", "wpm": 168},
        {"time": "30-40s", "wpm": 155},
    ],
    "pitch_data": [
        {"time": "0-10s", "confidence": 0.90},
        {"time": "10-20s", "confidence": 0.88},
        {"time": "20-30s", "confidence": 0.75},
        {"time": "30-40s", "confidence": 0.92},
    ],
    "volume_data": [
        {"time": "0-10s", "db": -12},
        {"time": "10-20s", "db": -11},
        {"time": "20-30s", "db": -14},
        {"time": "30-40s", "db": -12},
    ],
}


def parse_analysis_response(data: object) -> AnalysisResult:
    """Validate an analyzer JSON body and convert it to an AnalysisResult.

    Expects a string ``feedback`` and one or more ``<name>_data`` arrays of
    ``{"time": <label>, <metric>: <number>}`` records. All arrays must list
    the same time labels in the same order.
    """
    if not isinstance(data, dict):
        raise ServerError("Malformed analysis response: expected a JSON object.")
    feedback = data.get("feedback")
    if not isinstance(feedback, str):
        raise ServerError("Malformed analysis response: missing feedback text.")

    series: Dict[str, MetricSeries] = {}
    for name, records in data.items():
        if not name.endswith(SERIES_SUFFIX) or not isinstance(records, list):
            continue
        series[name] = _parse_series(name, records)
    if not series:
        raise ServerError("Malformed analysis response: no time series returned.")

    names = list(series)
    expected = series[names[0]].time_labels
    for name in names[1:]:
        if series[name].time_labels != expected:
            raise ServerError(
                f"Malformed analysis response: {name} is not aligned with {names[0]}."
            )
    return AnalysisResult(feedback_text=feedback, time_series=series)


def _parse_series(name: str, records: list) -> MetricSeries:
    metric: Optional[str] = None
    points = []
    for record in records:
        if not isinstance(record, dict) or not isinstance(record.get("time"), str):
            raise ServerError(f"Malformed analysis response: bad record in {name}.")
        fields = [key for key in record if key != "time"]
        if len(fields) != 1:
            raise ServerError(f"Malformed analysis response: {name} records need one metric.")
        key = fields[0]
        if metric is None:
            metric = key
        elif key != metric:
            raise ServerError(f"Malformed analysis response: mixed metrics in {name}.")
        value = record[key]
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ServerError(f"Malformed analysis response: non-numeric {key} in {name}.")
        points.append(SeriesPoint(time_label=record["time"], value=float(value)))
    if metric is None:
        # Empty array: derive the metric name from the series name.
        metric = name[: -len(SERIES_SUFFIX)]
    return MetricSeries(metric=metric, points=tuple(points))


class HttpAnalysisClient:
    """Async multipart client for a speech analysis backend.

    Each submission opens and closes its own ``httpx.AsyncClient``, so there is
    no connection pool left to close when the window goes away.
    """

    def __init__(
        self,
        url: str,
        timeout_s: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._url = url
        self._timeout_s = timeout_s
        self._transport = transport

    async def submit(self, source: AudioSource) -> AnalysisResult:
        files = {AUDIO_FIELD: (source.name, source.payload, source.mime_type)}
        logger.info("Submitting %s (%d bytes) to %s", source.name, len(source.payload), self._url)
        try:
            async with httpx.AsyncClient(timeout=self._timeout_s, transport=self._transport) as client:
                resp = await client.post(self._url, files=files)
            resp.raise_for_status()
        except httpx.TimeoutException:
            raise AnalysisTimeout() from None
        except httpx.HTTPStatusError as exc:
            raise ServerError(_error_detail(exc.response)) from None
        except httpx.HTTPError as exc:
            raise NetworkFailure(f"Network error: {exc}") from None

        try:
            body = resp.json()
        except ValueError:
            raise ServerError("Analyzer returned a non-JSON response.") from None
        return parse_analysis_response(body)


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for key in ("detail", "error"):
            if isinstance(body.get(key), str):
                return body[key]
    return f"Analyzer returned HTTP {response.status_code}."


class SimulatedAnalyzer:
    """Demo backend: waits ``delay_s`` then answers with a canned response."""

    def __init__(self, delay_s: float = 2.0, response: Optional[Dict[str, Any]] = None) -> None:
        self._delay_s = delay_s
        self._response = DEMO_RESPONSE if response is None else response
        self.submissions: list[AudioSource] = []

    async def submit(self, source: AudioSource) -> AnalysisResult:
        self.submissions.append(source)
        await asyncio.sleep(self._delay_s)
        return parse_analysis_response(self._response)

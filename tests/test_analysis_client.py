"""Tests for analyzer adapters and response parsing."""

from __future__ import annotations

import copy
from pathlib import Path

import httpx
import pytest

from analysis_client import (
    DEMO_RESPONSE,
    HttpAnalysisClient,
    SimulatedAnalyzer,
    parse_analysis_response,
)
from errors import AnalysisTimeout, NetworkFailure, ServerError
from models import AudioSource, PlaybackHandle


def _source(payload: bytes = b"\x01\x02\x03") -> AudioSource:
    return AudioSource(
        payload=payload,
        mime_type="audio/webm",
        name="speech.webm",
        playback=PlaybackHandle(path=Path("speech.webm")),
    )


def _client(handler) -> HttpAnalysisClient:  # noqa: ANN001
    return HttpAnalysisClient("http://analyzer.test/analyze", transport=httpx.MockTransport(handler))


# ---------------------------------------------------------------
# parse_analysis_response
# ---------------------------------------------------------------

def test_parse_demo_response() -> None:
    result = parse_analysis_response(DEMO_RESPONSE)

    assert result.feedback_text.startswith("Excellent start!")
    assert set(result.time_series) == {"wpm_data", "pitch_data", "volume_data"}
    assert result.series("wpm_data").metric == "wpm"
    assert result.series("volume_data").values == (-12.0, -11.0, -14.0, -12.0)
    assert result.time_labels == ("0-10s", "10-20s", "20-30s", "30-40s")


def test_parse_rejects_missing_feedback() -> None:
    with pytest.raises(ServerError):
        parse_analysis_response({"wpm_data": [{"time": "0-10s", "wpm": 150}]})


def test_parse_rejects_response_without_series() -> None:
    with pytest.raises(ServerError):
        parse_analysis_response({"feedback": "ok"})


def test_parse_rejects_misaligned_series() -> None:
    data = copy.deepcopy(DEMO_RESPONSE)
    data["pitch_data"][1]["time"] = "10-21s"
    with pytest.raises(ServerError, match="aligned"):
        parse_analysis_response(data)


def test_parse_rejects_non_numeric_metric() -> None:
    with pytest.raises(ServerError):
        parse_analysis_response({"feedback": "", "wpm_data": [{"time": "0-10s", "wpm": "fast"}]})


def test_parse_rejects_mixed_metrics() -> None:
    data = {
        "feedback": "",
        "wpm_data": [{"time": "0-10s", "wpm": 150}, {"time": "10-20s", "speed": 160}],
    }
    with pytest.raises(ServerError):
        parse_analysis_response(data)


def test_parse_ignores_unrelated_fields() -> None:
    data = {"feedback": "ok", "model": "v2", "wpm_data": [{"time": "0-10s", "wpm": 150}]}
    result = parse_analysis_response(data)
    assert list(result.time_series) == ["wpm_data"]


# ---------------------------------------------------------------
# HttpAnalysisClient
# ---------------------------------------------------------------

@pytest.mark.asyncio
async def test_submit_posts_multipart_audio_field() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"feedback": "Nice", "wpm_data": [{"time": "0-10s", "wpm": 150}]})

    client = _client(handler)
    result = await client.submit(_source())

    request = seen[0]
    assert request.method == "POST"
    assert request.headers["content-type"].startswith("multipart/form-data")
    assert b'name="audio"; filename="speech.webm"' in request.content
    assert b"Content-Type: audio/webm" in request.content
    assert b"\x01\x02\x03" in request.content
    assert result.feedback_text == "Nice"
    assert result.series("wpm_data").points[0].value == 150.0


@pytest.mark.asyncio
async def test_server_error_status_maps_to_server_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, json={"detail": "could not decode audio"})

    client = _client(handler)
    with pytest.raises(ServerError, match="could not decode audio"):
        await client.submit(_source())


@pytest.mark.asyncio
async def test_non_json_body_maps_to_server_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>oops</html>")

    client = _client(handler)
    with pytest.raises(ServerError):
        await client.submit(_source())


@pytest.mark.asyncio
async def test_connect_error_maps_to_network_failure() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = _client(handler)
    with pytest.raises(NetworkFailure):
        await client.submit(_source())


@pytest.mark.asyncio
async def test_read_timeout_maps_to_analysis_timeout() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("too slow", request=request)

    client = _client(handler)
    with pytest.raises(AnalysisTimeout):
        await client.submit(_source())


# ---------------------------------------------------------------
# SimulatedAnalyzer
# ---------------------------------------------------------------

@pytest.mark.asyncio
async def test_simulated_analyzer_returns_demo_result() -> None:
    analyzer = SimulatedAnalyzer(delay_s=0)
    source = _source()

    result = await analyzer.submit(source)

    assert analyzer.submissions == [source]
    assert result.series("pitch_data").metric == "confidence"

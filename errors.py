"""Shared error codes, user-facing messages and the workflow exception taxonomy."""

from __future__ import annotations

PERMISSION_DENIED = "PERMISSION_DENIED"
DEVICE_UNAVAILABLE = "DEVICE_UNAVAILABLE"
RECORDING_FAILED = "RECORDING_FAILED"
INVALID_STATE = "INVALID_STATE"
NOTHING_TO_ANALYZE = "NOTHING_TO_ANALYZE"
FILE_UNREADABLE = "FILE_UNREADABLE"
NETWORK_ERROR = "NETWORK_ERROR"
SERVER_ERROR = "SERVER_ERROR"
TIMEOUT = "TIMEOUT"

ERROR_MESSAGES = {
    PERMISSION_DENIED: "Microphone access denied.",
    DEVICE_UNAVAILABLE: "No usable microphone was found.",
    RECORDING_FAILED: "The recording could not be saved.",
    INVALID_STATE: "That action is not available right now.",
    NOTHING_TO_ANALYZE: "Please provide audio first!",
    FILE_UNREADABLE: "The selected file could not be read.",
    NETWORK_ERROR: "Network failed, please retry.",
    SERVER_ERROR: "Analysis failed.",
    TIMEOUT: "Analysis took too long, please retry.",
}


class WorkflowError(Exception):
    """Base class for every recoverable error in the record/analyze cycle."""

    code = SERVER_ERROR

    def __init__(self, message: str = "") -> None:
        self.message = message or ERROR_MESSAGES[self.code]
        super().__init__(self.message)


class CaptureError(WorkflowError):
    """Microphone capture failed or was misused."""


class PermissionDenied(CaptureError):
    code = PERMISSION_DENIED


class DeviceUnavailable(CaptureError):
    code = DEVICE_UNAVAILABLE


class RecordingFailed(CaptureError):
    code = RECORDING_FAILED


class InvalidState(CaptureError):
    code = INVALID_STATE


class NothingToAnalyze(WorkflowError):
    code = NOTHING_TO_ANALYZE


class FileUnreadable(WorkflowError):
    code = FILE_UNREADABLE


class AnalysisError(WorkflowError):
    """Submission to the analyzer did not produce a result."""


class NetworkFailure(AnalysisError):
    code = NETWORK_ERROR


class ServerError(AnalysisError):
    code = SERVER_ERROR


class AnalysisTimeout(AnalysisError):
    code = TIMEOUT

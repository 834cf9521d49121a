"""Mock implementations for testing."""

from tests.mocks.http import (
    MockResponse,
    MockSession,
    RecordedRequest,
    SleepRecorder,
    make_response,
)


__all__ = [
    "MockResponse",
    "MockSession",
    "RecordedRequest",
    "SleepRecorder",
    "make_response",
]

"""Shared fixtures for chart service tests."""

import copy

import pytest

T0 = 1_700_000_000_000
T1 = T0 + 3_600_000

BASE_PAYLOAD = {
    "title": "TEST 1h",
    "ticker": "TEST",
    "timeframe": "1h",
    "cols": ["timestamp", "open", "high", "low", "close", "volume"],
    "data": [
        [T0, 100, 110, 90, 105, 10],
        [T1, 105, 108, 95, 100, 20],
    ],
    "candle_colors": ["#FF0000", "#00FF00"],
    "plots": {"marks": [], "zones": [], "vlines": []},
    "desc": "Two candle test chart",
}


def build_payload(**overrides):
    """Copy of the two-candle request with top-level fields replaced."""
    payload = copy.deepcopy(BASE_PAYLOAD)
    payload.update(overrides)
    return payload


class RecordingNotifier:
    """Notification channel that remembers what it was asked to send"""

    def __init__(self, succeed: bool = True):
        self.calls = []
        self.succeed = succeed

    def notify(self, request, artifact):
        self.calls.append((request, artifact))
        return self.succeed

    def close(self):
        pass


class FakeSocket:
    """Stand-in for a ZeroMQ DEALER socket"""

    def __init__(self, incoming=None, send_error=None):
        self.incoming = list(incoming or [])
        self.sent = []
        self.send_error = send_error
        self.closed = False

    def poll(self, timeout=None):
        return 1 if self.incoming else 0

    def recv_multipart(self):
        return self.incoming.pop(0)

    def send_multipart(self, frames):
        if self.send_error is not None:
            raise self.send_error
        self.sent.append(frames)

    def close(self):
        self.closed = True


@pytest.fixture
def payload():
    return build_payload()


@pytest.fixture
def notifier():
    return RecordingNotifier()

from datetime import datetime, timedelta, timezone

import pytest

from models.session import SessionState, StockTarget


class FakeStream:
    def __init__(self, fragments, error=None):
        self._fragments = fragments
        self._error = error

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    @property
    def text_stream(self):
        for fragment in self._fragments:
            yield fragment
        if self._error is not None:
            raise self._error


class FakeMessages:
    def __init__(self, fragments, error=None):
        self.fragments = fragments
        self.error = error
        self.requests = []

    def stream(self, **kwargs):
        self.requests.append(kwargs)
        return FakeStream(self.fragments, self.error)


class FakeClient:
    def __init__(self, fragments=(), error=None):
        self.messages = FakeMessages(list(fragments), error)


class FakeTimer:
    """Stands in for threading.Timer; fired by hand."""

    created: list = []

    def __init__(self, interval, function, args=()):
        self.interval = interval
        self.function = function
        self.args = args
        self.daemon = False
        self.started = False
        self.cancelled = False
        FakeTimer.created.append(self)

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        self.function(*self.args)


@pytest.fixture()
def now() -> datetime:
    return datetime(2025, 3, 7, 9, 30, 5, tzinfo=timezone(timedelta(hours=8)))


@pytest.fixture()
def state() -> SessionState:
    return SessionState(stock=StockTarget(code="600508", market="A_SHARE", date="2025-03-07"))


@pytest.fixture()
def fake_client():
    return FakeClient


@pytest.fixture()
def fake_timer():
    FakeTimer.created = []
    return FakeTimer

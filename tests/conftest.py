import os

os.environ["SIGNAGE_DATABASE_URL"] = "sqlite://"
os.environ["SIGNAGE_API_KEY"] = ""

import pytest
from fastapi.testclient import TestClient

from signboard.db import Base, SessionLocal, engine
from signboard.main import app
from signboard.services.store import DocumentStore


class FakeHandle:
    def __init__(self, delay, callback):
        self.delay = delay
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class FakeTimers:
    """Stand-in for loop.call_later that lets a test fire timers by hand."""

    def __init__(self):
        self.handles = []

    def call_later(self, delay, callback):
        handle = FakeHandle(delay, callback)
        self.handles.append(handle)
        return handle

    @property
    def pending(self):
        return [h for h in self.handles if not h.cancelled]

    def fire_next(self):
        handle = self.pending[0]
        self.handles.remove(handle)
        handle.callback()
        return handle.delay


@pytest.fixture
def timers():
    return FakeTimers()


@pytest.fixture
def store():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    return DocumentStore(SessionLocal)


@pytest.fixture
def client(store):
    app.state.store = store
    with TestClient(app) as test_client:
        yield test_client
    app.state.store = None

"""
Pytest configuration for correlation unit tests.

Redis-backed components run against fakeredis; everything else uses the
in-memory store and channel.
"""

import fakeredis
import pytest

from correlation.channels.memory import MemoryChannel
from correlation.processors.builtin import EchoProcessor
from correlation.service.observer import RecordingObserver
from correlation.service.worker import Finalizer, RequestExecutor
from correlation.store.memory import MemoryRecordStore

TTL_SECONDS = 60


class FakeClock:
    """Monotonic clock advanced by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    """In-memory record store on a manual clock."""
    return MemoryRecordStore(clock=clock)


@pytest.fixture
def channel():
    return MemoryChannel()


@pytest.fixture
def observer():
    return RecordingObserver()


@pytest.fixture
def redis_client():
    """Fake Redis client returning str values."""
    client = fakeredis.FakeRedis(decode_responses=True)
    yield client
    client.flushall()


@pytest.fixture
def finalizer(store, observer):
    return Finalizer(store, TTL_SECONDS, observer)


@pytest.fixture
def executor(finalizer, observer):
    return RequestExecutor(EchoProcessor(), finalizer, observer)

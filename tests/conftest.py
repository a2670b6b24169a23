"""
Pytest configuration for app and integration tests.

Everything runs in-process: Redis is fakeredis, processing is either the
inline pool or a worker thread.
"""

import fakeredis
import pytest

from relaycore.settings import Settings, get_settings

from correlation.factory import build_services
from correlation.service.observer import RecordingObserver
from correlation.store.memory import MemoryRecordStore


@pytest.fixture(autouse=True)
def fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def redis_client():
    client = fakeredis.FakeRedis(decode_responses=True)
    yield client
    client.flushall()


@pytest.fixture
def observer():
    return RecordingObserver()


@pytest.fixture
def inline_services(observer):
    """Inline-mode services over an in-memory store."""
    settings = Settings(_env_file=None, DISPATCH_MODE="inline", PROCESSOR="uppercase")
    services = build_services(settings, store=MemoryRecordStore(), observer=observer)
    yield services
    services.close()

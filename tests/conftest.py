"""
Shared fixtures for the data-access layer tests.
"""

import random
from unittest.mock import AsyncMock

import pytest

from voicebridge.clients.local_store import LocalDataStore
from voicebridge.clients.token_store import TokenStore
from voicebridge.config import Settings
from voicebridge.services.simulator import ResponseSimulator

BASE_URL = "https://api.voicebridge.test"


@pytest.fixture
def storage_dir(tmp_path):
    """Directory for durable local storage."""
    return tmp_path / "storage"


@pytest.fixture
def store(storage_dir):
    """Empty local data store."""
    return LocalDataStore(storage_dir)


@pytest.fixture
def token_store(store):
    """Token store backed by the local store."""
    return TokenStore(store)


@pytest.fixture
def instant_sleep():
    """Sleep replacement that returns immediately and records the requested delays."""
    return AsyncMock()


@pytest.fixture
def simulator(store, instant_sleep):
    """Deterministic simulator without real delays."""
    return ResponseSimulator(store, rng=random.Random(42), sleep=instant_sleep)


@pytest.fixture
def offline_settings(storage_dir):
    """Settings with no backend configured."""
    return Settings(api_base_url=None, storage_dir=str(storage_dir), simulated_latency_scale=0)


@pytest.fixture
def online_settings(storage_dir):
    """Settings pointing at a (mocked) remote backend."""
    return Settings(api_base_url=BASE_URL, storage_dir=str(storage_dir), request_timeout=5.0)

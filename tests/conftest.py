"""
Shared fixtures for the Jarvis backend tests.
"""

import pytest
from fastapi.testclient import TestClient

from jarvis.api.server import create_app
from jarvis.config import AppConfig
from jarvis.engine import JarvisBackend
from jarvis.ontology.store import OntologyStore
from jarvis.storage import FileRecordStore, InMemoryRecordStore, StorageConfig
from jarvis.temporal.event_log import EventLog


class FakeRedis:
    """Just enough of redis.Redis for list-backed stores."""

    def __init__(self):
        self.lists = {}

    def rpush(self, key, value):
        self.lists.setdefault(key, []).append(value)
        return len(self.lists[key])

    def lrange(self, key, start, end):
        items = self.lists.get(key, [])
        if end == -1:
            return list(items[start:])
        return list(items[start:end + 1])

    def llen(self, key):
        return len(self.lists.get(key, []))

    def close(self):
        pass


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def memory_log():
    """Event log over a fresh in-memory store."""
    return EventLog(InMemoryRecordStore())


@pytest.fixture
def ontology(memory_log):
    return OntologyStore(memory_log)


@pytest.fixture
def file_store(tmp_path):
    return FileRecordStore(str(tmp_path / "ontology.jsonl"))


@pytest.fixture
def memory_config():
    return AppConfig(
        seed_defaults=False,
        storage=StorageConfig(backend_type="memory"),
    )


@pytest.fixture
def backend(memory_config):
    return JarvisBackend(memory_config.storage)


@pytest.fixture
def client(memory_config, backend):
    """TestClient over an unseeded in-memory backend."""
    app = create_app(config=memory_config, backend=backend)
    with TestClient(app) as test_client:
        yield test_client

"""
Durable Record Storage Layer

RESPONSIBILITY: Append-only persistence of JSON records, read back in order
ALLOWED INPUTS: JSON-serializable dicts from the log layers above
OUTPUTS: Parsed records in append order

WHAT THIS LAYER MUST NOT DO:
============================
- Interpret records (typing is the log layers' job)
- Rewrite, reorder or delete anything already written
- Hide a storage fault behind an empty result

BOUNDARY ENFORCEMENT:
=====================
- append() is the only mutation and is serialized per store
- read_all() never yields a partially written record
- Every backend fault surfaces as StorageIOError

BACKENDS:
=========
1. memory - process-local list, for tests and throwaway runs
2. file   - newline-delimited JSON, one record per line
3. redis  - Redis list, RPUSH to append, LRANGE to read
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
import fcntl
import json
import logging
import os
import threading

import redis

from ..contracts.base import ErrorCode, StorageIOError


logger = logging.getLogger(__name__)

# Redis keys, shared with out-of-process workers
REDIS_KEYS = {
    "ontology": "jarvis:ontology:events",
    "messages": "jarvis:chat:messages",
}


def _encode(record: Dict[str, Any]) -> str:
    try:
        return json.dumps(record, separators=(",", ":"), ensure_ascii=False)
    except (TypeError, ValueError) as e:
        raise StorageIOError(
            f"Record is not JSON serializable: {e}",
            code=ErrorCode.STORAGE_WRITE_FAILED
        ) from e


def _decode_lines(lines: List[Any], origin: str) -> List[Dict[str, Any]]:
    """Parse raw lines, skipping blank and malformed ones."""
    records = []
    for position, raw in enumerate(lines):
        if not raw or not raw.strip():
            continue
        try:
            record = json.loads(raw)
        except (ValueError, UnicodeDecodeError):
            logger.warning("Skipping malformed record #%d in %s", position, origin)
            continue
        if not isinstance(record, dict):
            logger.warning("Skipping non-object record #%d in %s", position, origin)
            continue
        records.append(record)
    return records


# =============================================================================
# STORAGE INTERFACE
# =============================================================================

class RecordStore:
    """
    Abstract append-only record store.

    Implementations differ in medium but share the same semantics:
    ordered, append-only, truncation-tolerant reads.
    """

    def append(self, record: Dict[str, Any]) -> None:
        """Durably append one record. Raises StorageIOError on failure."""
        raise NotImplementedError

    def read_all(self) -> List[Dict[str, Any]]:
        """All well-formed records in append order."""
        raise NotImplementedError

    def marker(self) -> Any:
        """Opaque value that changes whenever the store grows."""
        raise NotImplementedError

    def close(self) -> None:
        pass


# =============================================================================
# IN-MEMORY STORAGE BACKEND (Reference Implementation)
# =============================================================================

class InMemoryRecordStore(RecordStore):
    """
    Process-local store.

    Records are kept in their serialized form so callers never share
    mutable state with the store.
    """

    def __init__(self):
        self._lines: List[str] = []
        self._lock = threading.Lock()

    def append(self, record: Dict[str, Any]) -> None:
        line = _encode(record)
        with self._lock:
            self._lines.append(line)

    def read_all(self) -> List[Dict[str, Any]]:
        with self._lock:
            lines = list(self._lines)
        return _decode_lines(lines, "memory")

    def marker(self) -> int:
        return len(self._lines)


# =============================================================================
# FILE-BASED STORAGE BACKEND
# =============================================================================

class FileRecordStore(RecordStore):
    """
    Newline-delimited JSON file.

    WRITE PATH:
    - One append at a time per process (threading.Lock) and across
      processes (exclusive flock held for the single write)
    - The whole line goes out in one write, then flush + fsync
    - A fragment left by a crashed writer is newline-terminated first,
      so the new record always starts on its own line

    READ PATH:
    - Only newline-terminated lines are considered
    - Malformed lines are logged and skipped
    """

    def __init__(self, path: str):
        self._path = path
        self._lock = threading.Lock()

        directory = os.path.dirname(path)
        try:
            if directory:
                os.makedirs(directory, exist_ok=True)
        except OSError as e:
            raise StorageIOError(f"Cannot create storage directory {directory}: {e}") from e

    @property
    def path(self) -> str:
        return self._path

    def append(self, record: Dict[str, Any]) -> None:
        data = (_encode(record) + "\n").encode("utf-8")

        with self._lock:
            try:
                with open(self._path, "ab+") as f:
                    fcntl.flock(f.fileno(), fcntl.LOCK_EX)
                    try:
                        size = f.seek(0, os.SEEK_END)
                        if size > 0:
                            f.seek(size - 1)
                            if f.read(1) != b"\n":
                                logger.warning("Terminating partial trailing record in %s", self._path)
                                data = b"\n" + data
                        f.write(data)
                        f.flush()
                        os.fsync(f.fileno())
                    finally:
                        fcntl.flock(f.fileno(), fcntl.LOCK_UN)
            except OSError as e:
                logger.error("Append to %s failed: %s", self._path, e)
                raise StorageIOError(
                    f"Failed to append to {self._path}: {e}",
                    code=ErrorCode.STORAGE_WRITE_FAILED
                ) from e

    def read_all(self) -> List[Dict[str, Any]]:
        try:
            with open(self._path, "rb") as f:
                data = f.read()
        except FileNotFoundError:
            return []
        except OSError as e:
            logger.error("Read of %s failed: %s", self._path, e)
            raise StorageIOError(
                f"Failed to read {self._path}: {e}",
                code=ErrorCode.STORAGE_READ_FAILED
            ) from e

        lines = data.split(b"\n")
        # Last element is whatever follows the final newline
        if lines[-1].strip():
            logger.warning("Ignoring partial trailing record in %s", self._path)
        return _decode_lines(lines[:-1], self._path)

    def marker(self) -> int:
        try:
            return os.stat(self._path).st_size
        except FileNotFoundError:
            return 0
        except OSError as e:
            raise StorageIOError(
                f"Failed to stat {self._path}: {e}",
                code=ErrorCode.STORAGE_READ_FAILED
            ) from e


# =============================================================================
# REDIS STORAGE BACKEND
# =============================================================================

class RedisRecordStore(RecordStore):
    """
    Redis list: RPUSH appends atomically, LRANGE reads a consistent prefix.

    Connection failures are raised, never degraded into empty reads.
    """

    def __init__(
        self,
        key: str,
        url: Optional[str] = None,
        client: Optional[redis.Redis] = None
    ):
        if client is None and not url:
            raise StorageIOError("Redis store needs a URL or a client")
        self._key = key
        self._client = client if client is not None else redis.Redis.from_url(
            url,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5
        )

    @property
    def key(self) -> str:
        return self._key

    def append(self, record: Dict[str, Any]) -> None:
        line = _encode(record)
        try:
            self._client.rpush(self._key, line)
        except redis.RedisError as e:
            logger.error("Redis RPUSH %s failed: %s", self._key, e)
            raise StorageIOError(
                f"Failed to append to redis list {self._key}: {e}",
                code=ErrorCode.STORAGE_WRITE_FAILED
            ) from e

    def read_all(self) -> List[Dict[str, Any]]:
        try:
            lines = self._client.lrange(self._key, 0, -1)
        except redis.RedisError as e:
            logger.error("Redis LRANGE %s failed: %s", self._key, e)
            raise StorageIOError(
                f"Failed to read redis list {self._key}: {e}",
                code=ErrorCode.STORAGE_READ_FAILED
            ) from e
        return _decode_lines(lines, f"redis:{self._key}")

    def marker(self) -> int:
        try:
            return self._client.llen(self._key)
        except redis.RedisError as e:
            raise StorageIOError(
                f"Failed to read length of redis list {self._key}: {e}",
                code=ErrorCode.STORAGE_READ_FAILED
            ) from e

    def close(self) -> None:
        try:
            self._client.close()
        except redis.RedisError as e:
            logger.warning("Error closing redis connection: %s", e)


# =============================================================================
# CONFIGURATION & FACTORY
# =============================================================================

@dataclass
class StorageConfig:
    """Configuration for record storage."""
    backend_type: str = "memory"  # "memory", "file" or "redis"
    storage_dir: Optional[str] = None
    redis_url: Optional[str] = None


def create_record_store(config: StorageConfig, name: str) -> RecordStore:
    """
    Create the store for one logical log (``ontology`` or ``messages``).

    Raises StorageIOError for a misconfigured backend.
    """
    if config.backend_type == "memory":
        return InMemoryRecordStore()

    if config.backend_type == "file":
        if not config.storage_dir:
            raise StorageIOError("File storage needs a storage directory")
        return FileRecordStore(os.path.join(config.storage_dir, f"{name}.jsonl"))

    if config.backend_type == "redis":
        key = REDIS_KEYS.get(name, f"jarvis:{name}")
        return RedisRecordStore(key=key, url=config.redis_url)

    raise StorageIOError(f"Unknown storage backend: {config.backend_type}")


__all__ = [
    'RecordStore',
    'InMemoryRecordStore',
    'FileRecordStore',
    'RedisRecordStore',
    'StorageConfig',
    'create_record_store',
    'REDIS_KEYS',
]

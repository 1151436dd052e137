"""
Base Contracts and Shared Types

Foundational types used across all layers: error codes, the exception
taxonomy, identifiers and timestamp helpers.

BOUNDARY ENFORCEMENT:
=====================
- This module is READ-ONLY from all layers
- No imports from other jarvis layers
- Errors carry an explicit ErrorCode; nothing is reported by absence
"""

from __future__ import annotations
from datetime import datetime, timezone
from enum import Enum
from typing import Optional
import time
import uuid


# =============================================================================
# ERROR STATES (Explicit, never silent)
# =============================================================================

class ErrorCode(Enum):
    """
    Explicit error codes for deterministic error handling.
    Every failure the gateway can report is enumerated here.
    """
    # Client errors
    MISSING_FIELD = "missing_field"
    MALFORMED_FIELD = "malformed_field"

    # Lookup errors
    ENTITY_NOT_FOUND = "entity_not_found"

    # Concurrency errors
    VERSION_CONFLICT = "version_conflict"

    # Storage errors
    STORAGE_UNREACHABLE = "storage_unreachable"
    STORAGE_WRITE_FAILED = "storage_write_failed"
    STORAGE_READ_FAILED = "storage_read_failed"


class JarvisError(Exception):
    """Base exception for all Jarvis backend errors."""

    code: ErrorCode = ErrorCode.MALFORMED_FIELD

    def __init__(
        self,
        message: str,
        code: Optional[ErrorCode] = None,
        details: Optional[dict] = None
    ):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.details = details or {}


class ValidationError(JarvisError):
    """Missing or malformed required fields. Always a client error."""

    code = ErrorCode.MISSING_FIELD


class NotFoundError(JarvisError):
    """Referenced entity id has no live record."""

    code = ErrorCode.ENTITY_NOT_FOUND


class ConflictError(JarvisError):
    """
    Optimistic concurrency check failed.

    Raised when an update carries an expected ``updated`` timestamp that
    no longer matches the live entity. The caller must re-read and retry.
    """

    code = ErrorCode.VERSION_CONFLICT

    def __init__(self, message: str, entity_id: str, expected: str, actual: str):
        super().__init__(
            message,
            details={
                "entity_id": entity_id,
                "expected_updated": expected,
                "actual_updated": actual,
            }
        )
        self.entity_id = entity_id
        self.expected = expected
        self.actual = actual


class StorageIOError(JarvisError):
    """
    Durable medium unreachable, or a read/write against it failed.

    Never converted into an empty result: "store unreachable" and
    "store empty" must stay distinguishable.
    """

    code = ErrorCode.STORAGE_UNREACHABLE


# =============================================================================
# IDENTITY & TIME
# =============================================================================

def generate_entity_id(entity_type: str) -> str:
    """
    Generate an entity id as ``lower(type) + "_" + random suffix``.

    Uniqueness is probabilistic (32 random bits per type prefix),
    never checked against the store.
    """
    return f"{entity_type.lower()}_{uuid.uuid4().hex[:8]}"


def utc_now_iso() -> str:
    """Current UTC time as ISO-8601 with a trailing Z."""
    return datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z')


def epoch_millis() -> int:
    """Current wall-clock time in integer epoch milliseconds."""
    return time.time_ns() // 1_000_000

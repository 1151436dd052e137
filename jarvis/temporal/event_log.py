"""
Ontology Event Log
==================

Append-only storage of ontology operation records.

INVARIANTS:
- No updates or deletes - append only
- Read order is append order
- A malformed or partial record is skipped, never fatal to the read

This is the SOURCE OF TRUTH for all ontology state.
State is DERIVED from this log, never stored separately.
"""

from __future__ import annotations
from typing import Any, Iterator, List
import logging

from ..contracts.events import OperationRecord, record_from_dict
from ..storage import RecordStore


logger = logging.getLogger(__name__)


class EventLog:
    """
    Append-only log of OperationRecords over a RecordStore.

    GUARANTEES:
    ===========
    1. NO updates - records are immutable once written
    2. NO deletes - log only grows
    3. Deterministic - same records in same order, same derived state
    4. Truncation tolerant - a crash mid-append loses at most that record

    EXPLICIT FAILURE STATES:
    - StorageIOError: medium unreachable or write failed
    """

    def __init__(self, store: RecordStore):
        self._store = store

    @property
    def store(self) -> RecordStore:
        return self._store

    def append(self, record: OperationRecord) -> None:
        """
        Append a record to the log.

        This is the ONLY write operation.
        """
        self._store.append(record.to_dict())
        logger.debug("Appended %s record", record.op.value)

    def read_all(self) -> List[OperationRecord]:
        """All decodable records in append order."""
        return list(self.replay())

    def replay(self) -> Iterator[OperationRecord]:
        """
        Yield records in append order.

        This is the primary read operation for state derivation.
        """
        for position, raw in enumerate(self._store.read_all()):
            try:
                yield record_from_dict(raw)
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping undecodable operation record #%d: %s", position, e)

    def marker(self) -> Any:
        """Changes whenever the log grows, including appends by other processes."""
        return self._store.marker()

    def __len__(self) -> int:
        return len(self.read_all())

"""
Replay Engine
=============

Reconstruction of current ontology state from the event log.

INVARIANT: Replay is deterministic.
Same log prefix = same derived state = same state hash.

FOLD RULES:
1. create  - entity becomes live (unless its id was tombstoned)
2. update  - full snapshot replaces the live entity; ignored if not live
3. delete  - entity leaves the view, id is tombstoned for good
4. relate  - relation appended; relations are never folded
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional, Tuple
import hashlib
import json
import logging
import threading

from ..contracts.events import (
    CreateRecord, DeleteRecord, Entity, OperationRecord, RelateRecord,
    Relation, UpdateRecord
)
from .event_log import EventLog


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OntologyState:
    """
    Immutable derived view of the ontology.

    ``entities`` is in first-creation order, ``relations`` in raw log order.
    """
    entities: Tuple[Entity, ...]
    relations: Tuple[Relation, ...]
    tombstones: frozenset
    record_count: int

    @staticmethod
    def empty() -> OntologyState:
        return OntologyState(entities=(), relations=(), tombstones=frozenset(), record_count=0)

    def get(self, entity_id: str) -> Optional[Entity]:
        for entity in self.entities:
            if entity.id == entity_id:
                return entity
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entities": [e.to_dict() for e in self.entities],
            "relations": [r.to_dict() for r in self.relations],
        }

    @property
    def state_hash(self) -> str:
        """SHA-256 of the canonical JSON view."""
        content = json.dumps(self.to_dict(), sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(content.encode("utf-8")).hexdigest()


def fold_records(records: Iterable[OperationRecord]) -> OntologyState:
    """
    Pure fold of operation records into an OntologyState.

    No I/O, no clock reads: the result depends only on the records.
    """
    live: Dict[str, Entity] = {}
    tombstones = set()
    relations = []
    count = 0

    for record in records:
        count += 1

        if isinstance(record, CreateRecord):
            entity_id = record.entity.id
            if entity_id in tombstones:
                logger.debug("Ignoring create for tombstoned entity %s", entity_id)
                continue
            live[entity_id] = record.entity

        elif isinstance(record, UpdateRecord):
            entity_id = record.entity.id
            if entity_id not in live:
                logger.debug("Ignoring update for non-live entity %s", entity_id)
                continue
            live[entity_id] = record.entity

        elif isinstance(record, DeleteRecord):
            live.pop(record.entity_id, None)
            tombstones.add(record.entity_id)

        elif isinstance(record, RelateRecord):
            relations.append(record.relation)

    return OntologyState(
        entities=tuple(live.values()),
        relations=tuple(relations),
        tombstones=frozenset(tombstones),
        record_count=count,
    )


class ReplayEngine:
    """
    Derives ontology state from the event log.

    GUARANTEES:
    ===========
    1. Replay produces identical state for an identical log
    2. Derivation is always a full fold from empty state, never patching
    3. The cached state is dropped as soon as the log marker moves

    The cache is an optimization only; ``rebuild`` bypasses it.
    """

    def __init__(self, log: EventLog):
        self._log = log
        self._lock = threading.Lock()
        self._cached_marker: Any = None
        self._cached_state: Optional[OntologyState] = None

    def current_state(self) -> OntologyState:
        """Folded state of the whole log, cached by log marker."""
        # Marker is read before the records: a racing append can only
        # make the cache look stale, never make stale data look fresh.
        marker = self._log.marker()

        with self._lock:
            if self._cached_state is not None and self._cached_marker == marker:
                return self._cached_state

        state = self.rebuild()

        with self._lock:
            self._cached_marker = marker
            self._cached_state = state
        return state

    def rebuild(self) -> OntologyState:
        """Fold the full log from empty state, ignoring the cache."""
        return fold_records(self._log.replay())

    def replay_to(self, count: int) -> OntologyState:
        """State after the first ``count`` decodable records."""
        records = self._log.read_all()[:max(0, count)]
        return fold_records(records)

    def verify_determinism(self) -> Tuple[bool, Optional[str]]:
        """
        Fold the log twice from scratch and compare.

        Returns (is_deterministic, difference_description).
        """
        records = self._log.read_all()
        state1 = fold_records(records)
        state2 = fold_records(records)

        if state1.state_hash != state2.state_hash:
            return (False, f"Hash mismatch: {state1.state_hash} != {state2.state_hash}")

        if len(state1.entities) != len(state2.entities):
            return (False, f"Entity count mismatch: {len(state1.entities)} != {len(state2.entities)}")

        return (True, None)

"""
Ontology Store
==============

Typed entity/relation graph backed by the event log.

Every write appends exactly one operation record; every read is served
from the state folded out of the log. Nothing is stored besides the log.

CONSISTENCY:
- Updates are last-writer-wins across processes
- Passing ``expected_updated`` turns an update into a compare-and-append
  (checked under the store lock, so exact within one process)
"""

from __future__ import annotations
from dataclasses import replace
from typing import Any, Callable, Dict, List, Mapping, Optional
import copy
import logging
import threading

from ..contracts.base import (
    ConflictError, ErrorCode, NotFoundError, ValidationError,
    generate_entity_id, utc_now_iso
)
from ..contracts.events import (
    CreateRecord, DeleteRecord, Entity, RelateRecord, Relation, UpdateRecord
)
from ..temporal.event_log import EventLog
from ..temporal.replay import OntologyState, ReplayEngine


logger = logging.getLogger(__name__)


def _require_text(value: Any, name: str) -> str:
    if value is None or value == "":
        raise ValidationError(f"{name} is required")
    if not isinstance(value, str):
        raise ValidationError(f"{name} must be a string", code=ErrorCode.MALFORMED_FIELD)
    return value


def _require_mapping(value: Any, name: str) -> Dict[str, Any]:
    if value is None:
        raise ValidationError(f"{name} is required")
    if not isinstance(value, Mapping):
        raise ValidationError(f"{name} must be an object", code=ErrorCode.MALFORMED_FIELD)
    return dict(value)


def _same_value(left: Any, right: Any) -> bool:
    """
    JSON value equality: booleans never equal numbers, 1 equals 1.0,
    objects and arrays compare element by element.
    """
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left == right
    if isinstance(left, (int, float)) and isinstance(right, (int, float)):
        return left == right
    if isinstance(left, Mapping) and isinstance(right, Mapping):
        return left.keys() == right.keys() and all(
            _same_value(left[key], right[key]) for key in left
        )
    if isinstance(left, (list, tuple)) and isinstance(right, (list, tuple)):
        return len(left) == len(right) and all(
            _same_value(a, b) for a, b in zip(left, right)
        )
    return type(left) is type(right) and left == right


def _detached(item):
    """Copy of an Entity or Relation that shares nothing with the cached fold."""
    return replace(item, properties=copy.deepcopy(item.properties))


class OntologyStore:
    """
    Entity/relation operations over an EventLog.

    READ PATH: ReplayEngine.current_state() (cached fold)
    WRITE PATH: validate, derive the record, EventLog.append()
    """

    def __init__(
        self,
        log: EventLog,
        now: Callable[[], str] = utc_now_iso,
        id_factory: Callable[[str], str] = generate_entity_id
    ):
        self._log = log
        self._replay = ReplayEngine(log)
        self._now = now
        self._id_factory = id_factory
        self._write_lock = threading.RLock()

    @property
    def log(self) -> EventLog:
        return self._log

    @property
    def replay_engine(self) -> ReplayEngine:
        return self._replay

    def state(self) -> OntologyState:
        """Private copy of the folded state; changing it never touches the cache."""
        return copy.deepcopy(self._replay.current_state())

    # =========================================================================
    # ENTITIES
    # =========================================================================

    def create_entity(self, entity_type: Any, properties: Any) -> Entity:
        entity_type = _require_text(entity_type, "type")
        properties = _require_mapping(properties, "properties")

        timestamp = self._now()
        entity = Entity(
            id=self._id_factory(entity_type),
            type=entity_type,
            properties=properties,
            created=timestamp,
            updated=timestamp,
        )

        with self._write_lock:
            self._log.append(CreateRecord(entity=entity, timestamp=timestamp))

        logger.info("Created entity %s (%s)", entity.id, entity.type)
        return entity

    def get_entity(self, entity_id: str) -> Entity:
        entity = self._replay.current_state().get(entity_id)
        if entity is None:
            raise NotFoundError(f"Entity not found: {entity_id}")
        return _detached(entity)

    def update_entity(
        self,
        entity_id: str,
        partial_properties: Any,
        expected_updated: Optional[str] = None
    ) -> Entity:
        """
        Shallow-merge ``partial_properties`` into a live entity.

        Appends the full merged entity. Applying the same update twice
        yields the same properties but two log records.
        """
        if partial_properties is None:
            partial_properties = {}
        partial = _require_mapping(partial_properties, "properties")

        with self._write_lock:
            current = self.get_entity(entity_id)

            if expected_updated is not None and expected_updated != current.updated:
                raise ConflictError(
                    f"Entity {entity_id} was modified concurrently",
                    entity_id=entity_id,
                    expected=expected_updated,
                    actual=current.updated,
                )

            timestamp = self._now()
            merged = dict(current.properties)
            merged.update(partial)

            entity = Entity(
                id=current.id,
                type=current.type,
                properties=merged,
                created=current.created,
                updated=timestamp,
            )
            self._log.append(UpdateRecord(entity=entity, timestamp=timestamp))

        logger.info("Updated entity %s (%d keys)", entity_id, len(partial))
        return entity

    def delete_entity(self, entity_id: str) -> None:
        with self._write_lock:
            self.get_entity(entity_id)
            self._log.append(DeleteRecord(entity_id=entity_id, timestamp=self._now()))
        logger.info("Deleted entity %s", entity_id)

    def query(
        self,
        entity_type: Optional[str] = None,
        where: Optional[Mapping[str, Any]] = None
    ) -> List[Entity]:
        """
        Live entities matching ``entity_type`` exactly and every ``where``
        key by JSON value equality. An entity missing a queried key never
        matches.
        """
        if where is not None and not isinstance(where, Mapping):
            raise ValidationError("where must be an object", code=ErrorCode.MALFORMED_FIELD)
        conditions = dict(where or {})

        results = []
        for entity in self._replay.current_state().entities:
            if entity_type is not None and entity.type != entity_type:
                continue
            if all(
                key in entity.properties and _same_value(entity.properties[key], value)
                for key, value in conditions.items()
            ):
                results.append(_detached(entity))
        return results

    # =========================================================================
    # RELATIONS
    # =========================================================================

    def create_relation(
        self,
        source: Any,
        rel: Any,
        target: Any,
        properties: Any = None
    ) -> Relation:
        """Append a relation. Endpoints are not checked for existence."""
        source = _require_text(source, "from")
        rel = _require_text(rel, "rel")
        target = _require_text(target, "to")
        props = {} if properties is None else _require_mapping(properties, "properties")

        relation = Relation(
            source=source,
            rel=rel,
            target=target,
            properties=props,
            timestamp=self._now(),
        )

        with self._write_lock:
            self._log.append(RelateRecord(relation=relation))

        logger.info("Related %s -%s-> %s", source, rel, target)
        return relation

    def get_related(self, entity_id: str, rel: Optional[str] = None) -> List[Relation]:
        """Relations touching ``entity_id`` on either end, in log order."""
        return [
            _detached(relation) for relation in self._replay.current_state().relations
            if entity_id in (relation.source, relation.target)
            and (rel is None or relation.rel == rel)
        ]

    # =========================================================================
    # FULL VIEW
    # =========================================================================

    def list_all(self) -> Dict[str, Any]:
        """Live entities plus every relation in raw log order."""
        return copy.deepcopy(self._replay.current_state().to_dict())

    def is_empty(self) -> bool:
        return self._replay.current_state().record_count == 0

    def state_hash(self) -> str:
        return self._replay.current_state().state_hash

    def verify_determinism(self):
        return self._replay.verify_determinism()

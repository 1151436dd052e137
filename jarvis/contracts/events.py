"""
Event Contracts
===============

Immutable data types that flow between layers: ontology entities and
relations, the operation records of the ontology event log, and chat
messages.

Every type converts to and from the plain dict that is persisted as one
JSON line. ``from_dict`` raises ValueError/KeyError/TypeError on malformed
input; the log reader treats that as a skippable record.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Union


# =============================================================================
# ONTOLOGY TYPES
# =============================================================================

@dataclass(frozen=True)
class Entity:
    """
    Typed node of the ontology graph.

    ``id`` is immutable after creation. ``properties`` is replaced
    wholesale on every update by the post-merge snapshot.
    """
    id: str
    type: str
    properties: Dict[str, Any]
    created: str
    updated: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "properties": dict(self.properties),
            "created": self.created,
            "updated": self.updated,
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> Entity:
        properties = data["properties"]
        if not isinstance(properties, dict):
            raise TypeError("entity properties must be an object")
        return Entity(
            id=str(data["id"]),
            type=str(data["type"]),
            properties=dict(properties),
            created=str(data["created"]),
            updated=str(data["updated"]),
        )


@dataclass(frozen=True)
class Relation:
    """
    Directed, append-only fact between two entity ids.

    Endpoints are not required to exist. Relations are never updated
    or deleted.
    """
    source: str
    rel: str
    target: str
    properties: Dict[str, Any] = field(default_factory=dict)
    timestamp: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "from": self.source,
            "rel": self.rel,
            "to": self.target,
            "properties": dict(self.properties),
            "timestamp": self.timestamp,
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> Relation:
        properties = data.get("properties") or {}
        if not isinstance(properties, dict):
            raise TypeError("relation properties must be an object")
        return Relation(
            source=str(data["from"]),
            rel=str(data["rel"]),
            target=str(data["to"]),
            properties=dict(properties),
            timestamp=str(data.get("timestamp", "")),
        )


# =============================================================================
# OPERATION RECORDS (EventLog elements)
# =============================================================================

class OperationType(Enum):
    """Tag of an operation record, persisted as the ``op`` field."""
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    RELATE = "relate"


@dataclass(frozen=True)
class CreateRecord:
    entity: Entity
    timestamp: str

    op = OperationType.CREATE

    def to_dict(self) -> Dict[str, Any]:
        return {"op": self.op.value, "entity": self.entity.to_dict(), "timestamp": self.timestamp}


@dataclass(frozen=True)
class UpdateRecord:
    """Carries the full post-merge entity, not a diff."""
    entity: Entity
    timestamp: str

    op = OperationType.UPDATE

    def to_dict(self) -> Dict[str, Any]:
        return {"op": self.op.value, "entity": self.entity.to_dict(), "timestamp": self.timestamp}


@dataclass(frozen=True)
class DeleteRecord:
    """Tombstone. Earlier records for the entity stay in the log."""
    entity_id: str
    timestamp: str

    op = OperationType.DELETE

    def to_dict(self) -> Dict[str, Any]:
        return {"op": self.op.value, "entity_id": self.entity_id, "timestamp": self.timestamp}


@dataclass(frozen=True)
class RelateRecord:
    relation: Relation

    op = OperationType.RELATE

    @property
    def timestamp(self) -> str:
        return self.relation.timestamp

    def to_dict(self) -> Dict[str, Any]:
        data = self.relation.to_dict()
        data["op"] = self.op.value
        return data


OperationRecord = Union[CreateRecord, UpdateRecord, DeleteRecord, RelateRecord]


def record_from_dict(data: Dict[str, Any]) -> OperationRecord:
    """
    Decode one persisted operation record.

    Raises ValueError for an unknown ``op`` tag, KeyError/TypeError for
    missing or ill-typed fields.
    """
    if not isinstance(data, dict):
        raise TypeError("operation record must be an object")

    op = OperationType(data.get("op"))
    timestamp = str(data.get("timestamp", ""))

    if op is OperationType.CREATE:
        return CreateRecord(entity=Entity.from_dict(data["entity"]), timestamp=timestamp)
    if op is OperationType.UPDATE:
        return UpdateRecord(entity=Entity.from_dict(data["entity"]), timestamp=timestamp)
    if op is OperationType.DELETE:
        return DeleteRecord(entity_id=str(data["entity_id"]), timestamp=timestamp)
    return RelateRecord(relation=Relation.from_dict(data))


# =============================================================================
# CHAT TYPES
# =============================================================================

@dataclass(frozen=True)
class ChatMessage:
    """
    Immutable chat message.

    ``timestamp`` is integer epoch milliseconds assigned by the store at
    append time. It is both the sort key and the delivery cursor.
    """
    sender: str
    message: str
    timestamp: int

    def to_dict(self) -> Dict[str, Any]:
        return {"sender": self.sender, "message": self.message, "timestamp": self.timestamp}

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> ChatMessage:
        timestamp = data["timestamp"]
        if isinstance(timestamp, bool) or not isinstance(timestamp, int):
            raise TypeError("message timestamp must be an integer")
        return ChatMessage(
            sender=str(data.get("sender") or "guest"),
            message=str(data["message"]),
            timestamp=timestamp,
        )

"""
Contracts Package

Immutable types and the error taxonomy shared by every layer.
Layers import from here, never from each other's internals.
"""

from .base import (
    ErrorCode,
    JarvisError,
    ValidationError,
    NotFoundError,
    ConflictError,
    StorageIOError,
    generate_entity_id,
    utc_now_iso,
    epoch_millis,
)
from .events import (
    Entity,
    Relation,
    OperationType,
    CreateRecord,
    UpdateRecord,
    DeleteRecord,
    RelateRecord,
    OperationRecord,
    record_from_dict,
    ChatMessage,
)

__all__ = [
    'ErrorCode',
    'JarvisError',
    'ValidationError',
    'NotFoundError',
    'ConflictError',
    'StorageIOError',
    'generate_entity_id',
    'utc_now_iso',
    'epoch_millis',
    'Entity',
    'Relation',
    'OperationType',
    'CreateRecord',
    'UpdateRecord',
    'DeleteRecord',
    'RelateRecord',
    'OperationRecord',
    'record_from_dict',
    'ChatMessage',
]

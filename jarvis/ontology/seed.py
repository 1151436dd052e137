"""
Default ontology contents written on first boot.

Seeding appends ordinary records, so it is replayed like any other
history. It only runs against a log with no records at all.
"""

from __future__ import annotations
import logging

from ..contracts.base import utc_now_iso
from ..contracts.events import CreateRecord, Entity, RelateRecord, Relation
from .store import OntologyStore


logger = logging.getLogger(__name__)

SEED_ENTITIES = (
    ("pers_dawid", "Person", {"name": "Dawid", "role": "owner"}),
    ("proj_re_leadgen", "Project", {"name": "Real Estate Lead Gen", "status": "planning"}),
)

SEED_RELATIONS = (
    ("proj_re_leadgen", "has_owner", "pers_dawid"),
)


def seed_if_empty(store: OntologyStore) -> bool:
    """
    Append the default entities and relations if the log is empty.

    Returns True if anything was written.
    """
    if not store.is_empty():
        return False

    timestamp = utc_now_iso()
    for entity_id, entity_type, properties in SEED_ENTITIES:
        entity = Entity(
            id=entity_id,
            type=entity_type,
            properties=dict(properties),
            created=timestamp,
            updated=timestamp,
        )
        store.log.append(CreateRecord(entity=entity, timestamp=timestamp))

    for source, rel, target in SEED_RELATIONS:
        store.log.append(RelateRecord(relation=Relation(
            source=source, rel=rel, target=target, timestamp=timestamp
        )))

    logger.info(
        "Seeded ontology with %d entities and %d relations",
        len(SEED_ENTITIES), len(SEED_RELATIONS)
    )
    return True

"""
Ontology Layer

RESPONSIBILITY: Entity/relation graph operations over the event log
ALLOWED INPUTS: Validated entity types, property maps, relation triples
OUTPUTS: Entities, relations and filtered views derived by replay

WHAT THIS LAYER MUST NOT DO:
============================
- Keep state outside the event log
- Rewrite history (deletes are tombstones, relations are never removed)
- Reason about the graph beyond type and equality filters
"""

from .store import OntologyStore
from .seed import seed_if_empty, SEED_ENTITIES, SEED_RELATIONS

__all__ = [
    'OntologyStore',
    'seed_if_empty',
    'SEED_ENTITIES',
    'SEED_RELATIONS',
]

"""
Jarvis Backend

Personal-assistant backend exposing two independent append-only stores
over HTTP: a typed entity/relation ontology and a chat message log read
by polling clients.

LAYER STRUCTURE:
================

1. CONTRACTS (contracts/)
   - Immutable entities, relations, operation records, chat messages
   - Error taxonomy: ValidationError, NotFoundError, ConflictError, StorageIOError

2. STORAGE (storage/)
   - Append-only JSON record stores: memory, NDJSON file, Redis list
   - MUST NOT: interpret records, hide faults behind empty results

3. TEMPORAL (temporal/)
   - Ontology event log, deterministic replay fold, millisecond clock
   - MUST NOT: keep state that cannot be rebuilt from the log

4. ONTOLOGY (ontology/)
   - Entity/relation operations, filters, traversal, first-boot seed

5. CHAT (chat/)
   - Message log with cursor reads; responder worker polling over HTTP

6. API (api/)
   - FastAPI polling gateway, error-to-status mapping

CONSTRAINTS ENFORCED:
=====================
- Append-only: no record is ever rewritten or removed
- Deterministic: the same log always folds to the same state
- Explicit errors: storage faults are raised, never smoothed over
- No push: delivery is polling with caller-held cursors
"""

__version__ = "0.1.0"

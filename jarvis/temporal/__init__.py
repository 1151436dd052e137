"""
Temporal Layer
==============

Event-sourced state management for the ontology, plus the clock used to
stamp chat messages.

INVARIANTS:
- All ontology state is derived from the append-only event log
- No mutation of stored records
- Same log → same derived state (deterministic)

Modules:
- event_log: Append-only operation record storage
- replay: Pure fold and cached state derivation
- clock: Non-decreasing millisecond clock
"""

from .event_log import EventLog
from .replay import OntologyState, ReplayEngine, fold_records
from .clock import MillisClock, ClockExhausted

__all__ = [
    'EventLog',
    'OntologyState',
    'ReplayEngine',
    'fold_records',
    'MillisClock',
    'ClockExhausted',
]

"""
Engine Orchestration Module

Builds the process-wide stores from configuration and owns their
lifecycle: opened once at startup, seeded once if empty, closed on
shutdown. Never rebuilt mid-request.

DESIGN PRINCIPLES:
==================
1. Ontology and chat are independent domains with separate stores
2. No cross-store transactions
3. Storage faults propagate; nothing degrades to an empty result
"""

from __future__ import annotations
from typing import Optional
import logging

from .chat.message_log import MessageLog
from .ontology.seed import seed_if_empty
from .ontology.store import OntologyStore
from .storage import RecordStore, StorageConfig, create_record_store
from .temporal.clock import MillisClock
from .temporal.event_log import EventLog


logger = logging.getLogger(__name__)


class JarvisBackend:
    """
    Unified backend: one OntologyStore and one MessageLog.

    LAYER FLOW:
    ===========
    OntologyStore → EventLog → RecordStore("ontology")
    MessageLog → RecordStore("messages")
    """

    def __init__(
        self,
        config: Optional[StorageConfig] = None,
        ontology_store: Optional[RecordStore] = None,
        message_store: Optional[RecordStore] = None,
        clock: Optional[MillisClock] = None
    ):
        self._config = config or StorageConfig()
        self._ontology_records = ontology_store or create_record_store(self._config, "ontology")
        self._message_records = message_store or create_record_store(self._config, "messages")

        self.ontology = OntologyStore(EventLog(self._ontology_records))
        self.messages = MessageLog(self._message_records, clock=clock)

        logger.info("Backend initialized with %s storage", self._config.backend_type)

    def seed(self) -> bool:
        """Write default ontology records if the event log is empty."""
        return seed_if_empty(self.ontology)

    def close(self) -> None:
        self._ontology_records.close()
        self._message_records.close()
        logger.info("Backend storage closed")

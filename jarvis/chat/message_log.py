"""
Chat Message Log
================

Append-only ordered chat history with cursor-based retrieval.

DELIVERY CONTRACT:
- Pollers pass the ``serverTime`` of their previous read as the next
  cursor, not the timestamp of the last message they saw
- Delivery is at-least-once; consumers deduplicate on (sender, timestamp)

INVARIANTS:
- Log order equals append order
- Timestamps from this writer never decrease
- A message appended after a read is stamped strictly above the
  ``serverTime`` that read returned, so no poller can skip it
"""

from __future__ import annotations
from typing import Any, Dict, List, Optional
import logging
import threading

from ..contracts.base import ErrorCode, ValidationError
from ..contracts.events import ChatMessage
from ..storage import RecordStore
from ..temporal.clock import MillisClock


logger = logging.getLogger(__name__)

DEFAULT_SENDER = "guest"


class MessageLog:
    """
    ChatMessage log over a RecordStore.

    Stamping and reading share one lock, so within a process a message is
    either visible to a read or stamped after that read's serverTime.
    """

    def __init__(self, store: RecordStore, clock: Optional[MillisClock] = None):
        self._store = store
        self._clock = clock or MillisClock.live()
        self._lock = threading.Lock()
        self._last_served = 0

    @property
    def store(self) -> RecordStore:
        return self._store

    def append(self, message: Any, sender: Any = None) -> ChatMessage:
        if message is None or message == "":
            raise ValidationError("message required")
        if not isinstance(message, str):
            raise ValidationError("message must be a string", code=ErrorCode.MALFORMED_FIELD)
        if sender is not None and not isinstance(sender, str):
            raise ValidationError("sender must be a string", code=ErrorCode.MALFORMED_FIELD)

        with self._lock:
            timestamp = max(self._clock.now(), self._last_served + 1)
            self._clock.observe(timestamp)
            chat_message = ChatMessage(
                sender=sender or DEFAULT_SENDER,
                message=message,
                timestamp=timestamp,
            )
            self._store.append(chat_message.to_dict())

        logger.debug("Appended message from %s at %d", chat_message.sender, timestamp)
        return chat_message

    def read_all(self) -> List[ChatMessage]:
        messages = []
        for position, raw in enumerate(self._store.read_all()):
            try:
                messages.append(ChatMessage.from_dict(raw))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping undecodable chat message #%d: %s", position, e)
        return messages

    def read_since(self, cursor: int) -> Dict[str, Any]:
        """
        Messages with ``timestamp > cursor`` in log order, plus the
        ``serverTime`` to use as the next cursor.
        """
        with self._lock:
            messages = self.read_all()
            for chat_message in messages:
                self._clock.observe(chat_message.timestamp)
            server_time = self._clock.now()
            self._last_served = max(self._last_served, server_time)

        return {
            "messages": [m for m in messages if m.timestamp > cursor],
            "serverTime": server_time,
        }

    def __len__(self) -> int:
        return len(self.read_all())

"""
Responder Agent
===============

Out-of-process chat participant. Polls the gateway for new guest messages
and posts assistant replies through the same public endpoints any client
uses; it has no privileged access to the logs.

POLLING RULES:
- The cursor is always the ``serverTime`` of the previous poll
- Replies are deduplicated on (sender, timestamp), since delivery is
  at-least-once
- Stopping the agent is simply not polling again; there is no server-side
  subscription to tear down
"""

from __future__ import annotations
from typing import Callable, Dict, Iterator, List, Optional, Set, Tuple
import logging
import re
import time

import httpx


logger = logging.getLogger(__name__)

GUEST_SENDER = "guest"
ASSISTANT_SENDER = "assistant"


def keyword_reply(message: Dict) -> str:
    """Canned reply chosen by keywords in the guest message."""
    original = message.get("message", "")
    text = original.lower()
    words = set(re.findall(r"[a-z']+", text))

    if words & {"hello", "hi", "hey"}:
        return "Hey! I'm here. What would you like to work on?"
    if "how are" in text:
        return "I'm doing great! Ready to help with whatever you need."
    if "create" in words and "project" in words:
        return "Let's create a project. What should I name it and what's the goal?"
    if "task" in words:
        return "I'll add a task. What's the task and who's responsible?"
    if "remember" in words:
        return "Got it. I'll save that to our ontology."
    if "?" in text:
        return "Interesting question! Let me think about that."
    return f'I got: "{original}". What would you like me to do with this?'


def tick_generator(poll_interval_seconds: float) -> Iterator[int]:
    """Logical ticks, one per poll interval."""
    tick = 0
    while True:
        tick += 1
        yield tick
        time.sleep(poll_interval_seconds)


class ResponderAgent:
    """
    Polling responder over the gateway's /messages endpoints.

    With ``cursor=None`` the first poll only primes the cursor, so a
    restarted agent does not answer the whole history again.
    """

    def __init__(
        self,
        client: httpx.Client,
        reply_fn: Callable[[Dict], str] = keyword_reply,
        cursor: Optional[int] = None,
        sender: str = ASSISTANT_SENDER
    ):
        self._client = client
        self._reply_fn = reply_fn
        self._cursor = cursor
        self._sender = sender
        self._seen: Set[Tuple[str, int]] = set()

    @property
    def cursor(self) -> Optional[int]:
        return self._cursor

    def poll_once(self) -> List[Dict]:
        """
        One poll: fetch messages after the cursor, answer new guest
        messages, advance the cursor. Returns the replies posted.

        Raises httpx.HTTPError on transport or status failures; the cursor
        only advances after every reply for the batch has been posted.
        """
        response = self._client.get("/messages", params={"last": self._cursor or 0})
        response.raise_for_status()
        payload = response.json()

        if self._cursor is None:
            self._cursor = payload["serverTime"]
            logger.info("Responder primed at cursor %d", self._cursor)
            return []

        replies = []
        for message in payload["messages"]:
            if message.get("sender") != GUEST_SENDER:
                continue
            key = (message["sender"], message["timestamp"])
            if key in self._seen:
                continue

            logger.info("New guest message: %s", message.get("message"))
            posted = self._client.post(
                "/messages",
                json={"message": self._reply_fn(message), "sender": self._sender},
            )
            posted.raise_for_status()
            replies.append(posted.json())
            self._seen.add(key)

        self._cursor = payload["serverTime"]
        # Nothing at or below the cursor can be delivered again
        self._seen = {key for key in self._seen if key[1] > self._cursor}
        return replies

    def run(self, poll_interval_seconds: float, max_ticks: Optional[int] = None) -> None:
        """Poll until interrupted (or for ``max_ticks`` ticks)."""
        for tick in tick_generator(poll_interval_seconds):
            try:
                replies = self.poll_once()
                if replies:
                    logger.info("Tick %d: posted %d repl%s", tick, len(replies), "y" if len(replies) == 1 else "ies")
            except httpx.HTTPError as e:
                logger.error("Tick %d: poll failed: %s", tick, e)
            if max_ticks is not None and tick >= max_ticks:
                break

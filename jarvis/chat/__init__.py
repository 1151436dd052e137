"""
Chat Layer

RESPONSIBILITY: Ordered chat history and poll-based delivery
ALLOWED INPUTS: Message text and sender from the gateway
OUTPUTS: ChatMessages after a caller-supplied cursor

WHAT THIS LAYER MUST NOT DO:
============================
- Push to clients or hold per-subscriber state
- Share a transaction boundary with the ontology
"""

from .message_log import MessageLog, DEFAULT_SENDER
from .responder import ResponderAgent, keyword_reply

__all__ = [
    'MessageLog',
    'DEFAULT_SENDER',
    'ResponderAgent',
    'keyword_reply',
]

"""
Observability Layer

RESPONSIBILITY: Process-wide logging setup
ALLOWED INPUTS: Log level from configuration
OUTPUTS: Configured root logger

WHAT THIS LAYER MUST NOT DO:
============================
- Modify system behavior
- Swallow or reinterpret errors raised by other layers
"""

from __future__ import annotations
import logging
import sys


LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(level: str = "INFO") -> None:
    """Configure the root logger once for the process."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)]
    )


def get_logger(name: str, level: str = None) -> logging.Logger:
    """Named logger, optionally pinned to its own level."""
    logger = logging.getLogger(name)
    if level:
        logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    return logger


__all__ = ['setup_logging', 'get_logger', 'LOG_FORMAT']

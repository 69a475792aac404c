"""
respmux
-------

respmux is an async redis client that multiplexes requests from any number
of concurrent tasks over a single RESP connection.
"""

from __future__ import annotations

import logging

from respmux.client import Pipeline, Redis
from respmux.config import Config
from respmux.connection import Connection, TCPLocation
from respmux.multiplexer import Multiplexer

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())

__all__ = [
    "Config",
    "Connection",
    "Multiplexer",
    "Pipeline",
    "Redis",
    "TCPLocation",
]

__version__ = "0.1.0"

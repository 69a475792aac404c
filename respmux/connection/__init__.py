from __future__ import annotations

from ._statistics import ConnectionStatistics
from ._tcp import Connection, ConnectionParams, ConnectionState, TCPLocation

__all__ = [
    "Connection",
    "ConnectionParams",
    "ConnectionState",
    "ConnectionStatistics",
    "TCPLocation",
]

"""
RESP protocol constants
"""

from __future__ import annotations

import enum
from typing import Final

SYM_STAR: Final[bytes] = b"*"
SYM_DOLLAR: Final[bytes] = b"$"
SYM_CRLF: Final[bytes] = b"\r\n"
SYM_EMPTY: Final[bytes] = b""

#: Length marker used by the server for null bulk strings and null arrays
NULL_LENGTH: Final[int] = -1

DEFAULT_DIAL_TIMEOUT: Final[float] = 5.0
DEFAULT_READ_TIMEOUT: Final[float] = 2.0
DEFAULT_WRITE_TIMEOUT: Final[float] = 1.0
DEFAULT_RECONNECT_ATTEMPTS: Final[int] = 2
DEFAULT_READ_BUFFER_SIZE: Final[int] = 65536
DEFAULT_TICKET_RING_CAPACITY: Final[int] = 100_000


class DataType(enum.IntEnum):
    """
    Markers used by redis server to signal
    the type of data being sent.

    See:

    - `RESP protocol spec <https://redis.io/docs/develop/reference/protocol-spec>`__
    """

    SIMPLE_STRING = ord(b"+")
    ERROR = ord(b"-")
    INT = ord(b":")
    BULK_STRING = ord(b"$")
    ARRAY = ord(b"*")

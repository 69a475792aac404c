from __future__ import annotations

from .types import (
    EMPTY_ARRAY,
    NULL_ARRAY,
    NULL_BULK_STRING,
    Array,
    BulkString,
    Error,
    Integer,
    Reply,
    ReplyT,
    SimpleString,
)

__all__ = [
    "Array",
    "BulkString",
    "EMPTY_ARRAY",
    "Error",
    "Integer",
    "NULL_ARRAY",
    "NULL_BULK_STRING",
    "Reply",
    "ReplyT",
    "SimpleString",
]

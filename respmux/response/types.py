"""
Typed representation of RESP replies.

Every reply decoded by :class:`respmux.parser.Parser` is one of the
variants below. The accessor helpers (:meth:`Reply.as_bytes`,
:meth:`Reply.as_int`, ...) return the python value of the expected
variant and raise :exc:`~respmux.exceptions.ReplyTypeError` for any
other variant, so callers only ever need a single check.
"""

from __future__ import annotations

import dataclasses

from respmux.exceptions import ReplyTypeError
from respmux.typing import Final, Iterator, Optional, Union


@dataclasses.dataclass(frozen=True, slots=True)
class Reply:
    @property
    def is_null(self) -> bool:
        """
        Whether this is a null bulk string or a null array
        """
        return False

    def as_bytes(self) -> Optional[bytes]:
        raise ReplyTypeError("string", self)

    def as_str(self, encoding: str = "utf-8") -> Optional[str]:
        value = self.as_bytes()
        return value.decode(encoding) if value is not None else None

    def as_int(self) -> int:
        raise ReplyTypeError("integer", self)

    def as_list(self) -> Optional[list[Reply]]:
        raise ReplyTypeError("array", self)


@dataclasses.dataclass(frozen=True, slots=True)
class SimpleString(Reply):
    value: bytes

    def as_bytes(self) -> bytes:
        return self.value


@dataclasses.dataclass(frozen=True, slots=True)
class Error(Reply):
    message: str

    @property
    def code(self) -> str:
        return self.message.split(" ", 1)[0]


@dataclasses.dataclass(frozen=True, slots=True)
class Integer(Reply):
    value: int

    def as_int(self) -> int:
        return self.value


@dataclasses.dataclass(frozen=True, slots=True)
class BulkString(Reply):
    #: ``None`` for the null bulk string (``$-1``)
    value: Optional[bytes]

    @property
    def is_null(self) -> bool:
        return self.value is None

    def as_bytes(self) -> Optional[bytes]:
        return self.value


@dataclasses.dataclass(frozen=True, slots=True)
class Array(Reply):
    #: ``None`` for the null array (``*-1``), an empty tuple for ``*0``
    items: Optional[tuple[Reply, ...]]

    @property
    def is_null(self) -> bool:
        return self.items is None

    def as_list(self) -> Optional[list[Reply]]:
        return list(self.items) if self.items is not None else None

    def __len__(self) -> int:
        return len(self.items or ())

    def __iter__(self) -> Iterator[Reply]:
        return iter(self.items or ())

    def __getitem__(self, index: int) -> Reply:
        if self.items is None:
            raise IndexError("null array has no items")
        return self.items[index]


NULL_BULK_STRING: Final[BulkString] = BulkString(None)
NULL_ARRAY: Final[Array] = Array(None)
EMPTY_ARRAY: Final[Array] = Array(())

#: Any value that can be decoded from the wire
ReplyT = Union[SimpleString, Error, Integer, BulkString, Array]

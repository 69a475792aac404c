"""
respmux.response.callbacks
--------------------------

Conversions from :class:`~respmux.response.types.Reply` values to the python
types returned by the command methods. Every callback checks the reply
variant once and raises :exc:`~respmux.exceptions.ReplyTypeError` if the
server sent something else.
"""

from __future__ import annotations

from abc import ABC, ABCMeta, abstractmethod

from respmux.exceptions import ReplyTypeError
from respmux.response.types import BulkString, Reply, SimpleString
from respmux.typing import (
    Generic,
    Optional,
    R,
    StringT,
    Union,
    add_runtime_checks,
)


class ResponseCallbackMeta(ABCMeta):
    def __new__(
        cls, name: str, bases: tuple[type, ...], namespace: dict[str, object]
    ) -> ResponseCallbackMeta:
        kls = super().__new__(cls, name, bases, namespace)
        setattr(kls, "transform", add_runtime_checks(getattr(kls, "transform")))
        return kls


class ResponseCallback(ABC, Generic[R], metaclass=ResponseCallbackMeta):
    def __call__(self, reply: Reply, encoding: Optional[str] = None) -> R:
        """
        :param reply: the reply to convert
        :param encoding: if provided string values are decoded with it
        """
        return self.transform(reply, encoding)

    @abstractmethod
    def transform(self, reply: Reply, encoding: Optional[str]) -> R:
        pass

    @staticmethod
    def decode(value: bytes, encoding: Optional[str]) -> StringT:
        return value.decode(encoding) if encoding else value


class NoopCallback(ResponseCallback[Reply]):
    def transform(self, reply: Reply, encoding: Optional[str]) -> Reply:
        return reply


class SimpleStringCallback(ResponseCallback[bool]):
    """
    ``True`` if the server acknowledged with the expected status
    (``OK`` by default). A null bulk string (for example ``SET .. NX``
    on an existing key) is ``False``.
    """

    def __init__(self, ok_values: frozenset[bytes] = frozenset({b"OK"})) -> None:
        self.ok_values = ok_values

    def transform(self, reply: Reply, encoding: Optional[str]) -> bool:
        if isinstance(reply, SimpleString):
            return reply.value in self.ok_values
        if isinstance(reply, BulkString) and reply.is_null:
            return False
        raise ReplyTypeError("simple string", reply)


class IntCallback(ResponseCallback[int]):
    def transform(self, reply: Reply, encoding: Optional[str]) -> int:
        return reply.as_int()


class BoolCallback(ResponseCallback[bool]):
    def transform(self, reply: Reply, encoding: Optional[str]) -> bool:
        return bool(reply.as_int())


class AnyStrCallback(ResponseCallback[StringT]):
    def transform(self, reply: Reply, encoding: Optional[str]) -> StringT:
        value = reply.as_bytes()
        if value is None:
            raise ReplyTypeError("non null string", reply)
        return self.decode(value, encoding)


class OptionalAnyStrCallback(ResponseCallback[Optional[StringT]]):
    def transform(self, reply: Reply, encoding: Optional[str]) -> Optional[StringT]:
        value = reply.as_bytes()
        return self.decode(value, encoding) if value is not None else None


class OptionalFloatCallback(ResponseCallback[Optional[float]]):
    def transform(self, reply: Reply, encoding: Optional[str]) -> Optional[float]:
        value = reply.as_bytes()
        return float(value) if value is not None else None


def _items(reply: Reply) -> list[Reply]:
    items = reply.as_list()
    if items is None:
        raise ReplyTypeError("non null array", reply)
    return items


class AnyStrListCallback(ResponseCallback[list[StringT]]):
    def transform(self, reply: Reply, encoding: Optional[str]) -> list[StringT]:
        return [AnyStrCallback()(item, encoding) for item in _items(reply)]


class OptionalAnyStrListCallback(ResponseCallback[list[Optional[StringT]]]):
    def transform(self, reply: Reply, encoding: Optional[str]) -> list[Optional[StringT]]:
        return [OptionalAnyStrCallback()(item, encoding) for item in _items(reply)]


class SetCallback(ResponseCallback[set[StringT]]):
    def transform(self, reply: Reply, encoding: Optional[str]) -> set[StringT]:
        return set(AnyStrListCallback()(reply, encoding))


class DictCallback(ResponseCallback[dict[StringT, StringT]]):
    """
    Converts a flat array of alternating fields and values into a dict
    """

    def transform(self, reply: Reply, encoding: Optional[str]) -> dict[StringT, StringT]:
        flat = AnyStrListCallback()(reply, encoding)
        if len(flat) % 2:
            raise ReplyTypeError("array of field/value pairs", reply)
        it = iter(flat)
        return dict(zip(it, it))


class ZRangeCallback(ResponseCallback[Union[list[StringT], list[tuple[StringT, float]]]]):
    """
    Members of a sorted set range, paired with their scores if the
    range was requested ``WITHSCORES``
    """

    def __init__(self, withscores: bool = False) -> None:
        self.withscores = withscores

    def transform(
        self, reply: Reply, encoding: Optional[str]
    ) -> Union[list[StringT], list[tuple[StringT, float]]]:
        members = AnyStrListCallback()(reply, encoding)
        if not self.withscores:
            return members
        if len(members) % 2:
            raise ReplyTypeError("array of member/score pairs", reply)
        it = iter(members)
        return [(member, float(score)) for member, score in zip(it, it)]


__all__ = [
    "AnyStrCallback",
    "AnyStrListCallback",
    "BoolCallback",
    "DictCallback",
    "IntCallback",
    "NoopCallback",
    "OptionalAnyStrCallback",
    "OptionalAnyStrListCallback",
    "OptionalFloatCallback",
    "ResponseCallback",
    "SetCallback",
    "SimpleStringCallback",
    "ZRangeCallback",
]

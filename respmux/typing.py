from __future__ import annotations

from collections.abc import (
    Callable,
    Coroutine,
    Iterable,
    Iterator,
    Mapping,
    Sequence,
)
from typing import (
    TYPE_CHECKING,
    Final,
    Generic,
    Literal,
    Optional,
    ParamSpec,
    TypedDict,
    TypeVar,
    Union,
)

import beartype
from typing_extensions import NotRequired, Self, Unpack

from respmux.config import Config

RUNTIME_TYPECHECKS = Config.runtime_checks

P = ParamSpec("P")
R = TypeVar("R")


def add_runtime_checks(func: Callable[P, R]) -> Callable[P, R]:
    if RUNTIME_TYPECHECKS and not TYPE_CHECKING:
        return beartype.beartype(func)

    return func


#: Represents the acceptable types of a redis key
KeyT = Union[str, bytes]

#: Represents the python primitives that can be sent as command arguments.
#: ``str`` is encoded with the configured encoding, numbers are sent as their
#: decimal representation.
ValueT = Union[str, bytes, int, float]

#: An argument vector for a single command
CommandArgs = Sequence[ValueT]

StringT = Union[str, bytes]

__all__ = [
    "Callable",
    "CommandArgs",
    "Coroutine",
    "Final",
    "Generic",
    "Iterable",
    "Iterator",
    "KeyT",
    "Literal",
    "Mapping",
    "NotRequired",
    "Optional",
    "P",
    "R",
    "Self",
    "Sequence",
    "StringT",
    "TypedDict",
    "Unpack",
    "ValueT",
    "add_runtime_checks",
]

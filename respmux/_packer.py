from __future__ import annotations

from respmux.config import Config
from respmux.constants import SYM_CRLF, SYM_DOLLAR, SYM_EMPTY, SYM_STAR
from respmux.exceptions import DataError
from respmux.typing import CommandArgs, Iterable, ValueT


class Packer:
    def __init__(self, encoding: str = "utf-8"):
        self.encoding = encoding

    def encode(self, value: ValueT) -> bytes:
        """Returns a bytestring representation of the value"""
        if isinstance(value, bytes):
            return value
        elif isinstance(value, str):
            return value.encode(self.encoding)
        elif isinstance(value, int):
            return b"%d" % value
        elif isinstance(value, float):
            return b"%.15g" % value
        if not Config.optimized:
            raise DataError(
                f"Invalid argument {value!r} of type {type(value).__name__}: "
                "expected bytes, str, int or float"
            )
        return bytes(value)

    def pack_command(self, *args: ValueT) -> bytes:
        "Pack a single argument vector into a RESP array of bulk strings"
        if not args:
            raise DataError("Can not pack an empty command")
        output: list[bytes] = [SYM_STAR, b"%d" % len(args), SYM_CRLF]
        for arg in args:
            arg = self.encode(arg)
            output.extend((SYM_DOLLAR, b"%d" % len(arg), SYM_CRLF, arg, SYM_CRLF))
        return SYM_EMPTY.join(output)

    def pack_commands(self, commands: Iterable[CommandArgs]) -> bytes:
        """
        Pack multiple argument vectors for a pipeline. The frames are
        concatenated back to back, the protocol needs no separator between them.
        """
        return SYM_EMPTY.join(self.pack_command(*cmd) for cmd in commands)

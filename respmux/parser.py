from __future__ import annotations

import re
from io import BytesIO

from respmux.constants import NULL_LENGTH, SYM_CRLF, DataType
from respmux.exceptions import (
    AuthenticationRequiredError,
    AuthorizationError,
    BusyLoadingError,
    ExecAbortError,
    InvalidResponse,
    NoScriptError,
    ReadOnlyError,
    ResponseError,
    StreamConsumerGroupError,
    StreamDuplicateConsumerGroupError,
    UnknownCommandError,
    WrongTypeError,
)
from respmux.response.types import (
    EMPTY_ARRAY,
    NULL_ARRAY,
    NULL_BULK_STRING,
    Array,
    BulkString,
    Error,
    Integer,
    Reply,
    SimpleString,
)
from respmux.typing import Final, Union

INT64_MIN: Final[int] = -(2**63)
INT64_MAX: Final[int] = 2**63 - 1

_DECIMAL: Final[re.Pattern[bytes]] = re.compile(rb"-?[0-9]+")

EXCEPTION_CLASSES: dict[str, Union[type[ResponseError], dict[str, type[ResponseError]]]] = {
    "BUSYGROUP": StreamDuplicateConsumerGroupError,
    "ERR": {
        "unknown command": UnknownCommandError,
        "unknown subcommand": UnknownCommandError,
    },
    "EXECABORT": ExecAbortError,
    "LOADING": BusyLoadingError,
    "NOAUTH": AuthenticationRequiredError,
    "NOGROUP": StreamConsumerGroupError,
    "NOPERM": AuthorizationError,
    "NOSCRIPT": NoScriptError,
    "READONLY": ReadOnlyError,
    "WRONGTYPE": WrongTypeError,
}


class NotEnoughData:
    pass


NOT_ENOUGH_DATA: Final[NotEnoughData] = NotEnoughData()


class ArrayNode:
    __slots__ = ("container", "depth")

    def __init__(self, depth: int) -> None:
        self.depth = depth
        self.container: list[Reply] = []

    def append(self, item: Reply) -> None:
        self.depth -= 1
        self.container.append(item)


class Parser:
    """
    Incremental RESP decoder.

    Data received from the connection is appended to a rolling buffer with
    :meth:`feed` and complete replies are taken off the front with
    :meth:`get_reply`. A reply that has only partially arrived is left in
    the buffer (partially decoded arrays are kept on a node stack) and
    decoding resumes from there once more data is fed.
    """

    def __init__(self) -> None:
        self.localbuffer: BytesIO = BytesIO(b"")
        self.bytes_read: int = 0
        self.bytes_written: int = 0
        #: Total number of bytes belonging to completely decoded replies
        self.bytes_consumed: int = 0
        self._frame_bytes: int = 0
        self.nodes: list[ArrayNode] = []

    def feed(self, data: bytes) -> None:
        self.localbuffer.seek(self.bytes_written)
        self.bytes_written += self.localbuffer.write(data)
        self.localbuffer.seek(self.bytes_read)

    def on_disconnect(self) -> None:
        """Called when the stream disconnects, discards anything buffered"""
        if not self.localbuffer.closed:
            self.localbuffer.seek(0)
            self.localbuffer.truncate()
        self.bytes_read = self.bytes_written = 0
        self._frame_bytes = 0
        self.nodes.clear()

    def get_reply(self) -> Union[Reply, NotEnoughData]:
        """
        :return: The next complete reply available in the buffer or
         :data:`NOT_ENOUGH_DATA` if more data has to be fed first.
        :raises: :exc:`~respmux.exceptions.InvalidResponse` if the buffered
         bytes are not valid RESP.
        """
        self.localbuffer.seek(self.bytes_read)

        while True:
            line = self.localbuffer.readline()
            if not line.endswith(b"\n"):
                return NOT_ENOUGH_DATA
            if line[-2:] != SYM_CRLF:
                raise InvalidResponse(f"Protocol Error: line not terminated by CRLF {line!r}")
            self._advance(len(line))
            marker, chunk = line[0], line[1:-2]
            reply: Reply
            if marker == DataType.SIMPLE_STRING:
                reply = SimpleString(chunk)
            elif marker == DataType.ERROR:
                reply = Error(chunk.decode("utf-8", errors="replace"))
            elif marker == DataType.INT:
                value = self.parse_decimal(chunk)
                if not INT64_MIN <= value <= INT64_MAX:
                    raise InvalidResponse(f"Protocol Error: integer out of range {chunk!r}")
                reply = Integer(value)
            elif marker == DataType.BULK_STRING:
                length = self.parse_length(chunk)
                if length == NULL_LENGTH:
                    reply = NULL_BULK_STRING
                else:
                    if (self.bytes_written - self.bytes_read) < length + 2:
                        self._advance(-len(line))
                        return NOT_ENOUGH_DATA
                    data = self.localbuffer.read(length + 2)
                    if data[-2:] != SYM_CRLF:
                        raise InvalidResponse(
                            f"Protocol Error: bulk string of length {length} not terminated by CRLF"
                        )
                    self._advance(length + 2)
                    reply = BulkString(data[:-2])
            elif marker == DataType.ARRAY:
                length = self.parse_length(chunk)
                if length == NULL_LENGTH:
                    reply = NULL_ARRAY
                elif length == 0:
                    reply = EMPTY_ARRAY
                else:
                    self.nodes.append(ArrayNode(length))
                    continue
            else:
                raise InvalidResponse(f"Protocol Error: {chr(marker)!r}, {chunk!r}")

            while self.nodes:
                node = self.nodes[-1]
                node.append(reply)
                if node.depth > 0:
                    break
                self.nodes.pop()
                reply = Array(tuple(node.container))
            else:
                return self._complete(reply)

    def parse_decimal(self, chunk: bytes) -> int:
        if not _DECIMAL.fullmatch(chunk):
            raise InvalidResponse(f"Protocol Error: invalid decimal {chunk!r}")
        return int(chunk)

    def parse_length(self, chunk: bytes) -> int:
        length = self.parse_decimal(chunk)
        if length < NULL_LENGTH:
            raise InvalidResponse(f"Protocol Error: invalid length {length}")
        return length

    def _advance(self, num_bytes: int) -> None:
        self.bytes_read += num_bytes
        self._frame_bytes += num_bytes

    def _complete(self, reply: Reply) -> Reply:
        self.bytes_consumed += self._frame_bytes
        self._frame_bytes = 0
        if self.bytes_read == self.bytes_written:
            self.localbuffer.seek(0)
            self.localbuffer.truncate()
            self.bytes_read = self.bytes_written = 0
        return reply


def unpack(data: bytes) -> tuple[list[Reply], int]:
    """
    Decode all complete replies in :paramref:`data`

    :return: the decoded replies in order and the number of bytes they
     occupied. Any bytes past that offset belong to a reply that has not
     been received completely yet.
    """
    parser = Parser()
    parser.feed(data)
    replies: list[Reply] = []
    while not isinstance(reply := parser.get_reply(), NotEnoughData):
        replies.append(reply)
    return replies, parser.bytes_consumed


def error_from_reply(reply: Error) -> ResponseError:
    """
    Map an error reply to the matching :exc:`~respmux.exceptions.ResponseError`
    subclass
    """
    exception_class = EXCEPTION_CLASSES.get(reply.code, ResponseError)
    if isinstance(exception_class, dict):
        detail = reply.message[len(reply.code) + 1 :].lower()
        options = exception_class.items()
        exception_class = ResponseError
        for prefix, exc in options:
            if detail.startswith(prefix):
                exception_class = exc
                break
    return exception_class(reply.message)

from __future__ import annotations

from typing import Any

from respmux._packer import Packer
from respmux._utils import logger
from respmux.commands import CommandMixin, CommandName
from respmux.connection import Connection, ConnectionParams, ConnectionStatistics, TCPLocation
from respmux.constants import DEFAULT_TICKET_RING_CAPACITY
from respmux.exceptions import DataError, InvalidResponse, ResponseError
from respmux.multiplexer import Multiplexer
from respmux.parser import error_from_reply
from respmux.response.callbacks import NoopCallback, ResponseCallback
from respmux.response.types import Error, Reply
from respmux.typing import Optional, R, Self, Union, Unpack, ValueT


class Redis(CommandMixin):
    """
    Redis client multiplexing every command issued by concurrent tasks
    over a single connection.

    The client must be used as an async context manager::

        async with Redis("localhost", 6379, decode_responses=True) as client:
            await client.set("fu", "bar")
            assert await client.get("fu") == "bar"
    """

    def __init__(
        self,
        host: str = "127.0.0.1",
        port: int = 6379,
        *,
        decode_responses: bool = False,
        encoding: str = "utf-8",
        ticket_ring_capacity: int = DEFAULT_TICKET_RING_CAPACITY,
        **connection_params: Unpack[ConnectionParams],
    ) -> None:
        """
        :param host: The hostname of the redis server
        :param port: The port at which the redis server is listening on
        :param decode_responses: If ``True`` string replies are decoded
         using :paramref:`encoding` before being returned
        :param encoding: The codec used to encode ``str`` arguments and
         (with :paramref:`decode_responses`) to decode replies
        :param ticket_ring_capacity: Number of distinct ticket identifiers
         used by the multiplexer
        :param connection_params: Passed through to
         :class:`~respmux.connection.Connection`
        """
        self.decode_responses = decode_responses
        self.encoding = encoding
        self.connection = Connection(TCPLocation(host, port), **connection_params)
        self.multiplexer = Multiplexer(self.connection, ticket_ring_capacity=ticket_ring_capacity)
        self._packer = Packer(encoding)

    def __repr__(self) -> str:
        return f"{type(self).__name__}<{self.connection.describe()}>"

    async def __aenter__(self) -> Self:
        await self.multiplexer.__aenter__()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.multiplexer.__aexit__(*args)

    @property
    def statistics(self) -> ConnectionStatistics:
        return self.multiplexer.statistics

    @property
    def response_encoding(self) -> Optional[str]:
        return self.encoding if self.decode_responses else None

    async def execute_command(
        self,
        command: Union[CommandName, bytes],
        *args: ValueT,
        callback: ResponseCallback[R] = NoopCallback(),  # type: ignore[assignment]
    ) -> R:
        """
        Send a single command and wait for its reply

        :raises: :exc:`~respmux.exceptions.ResponseError` (or a subclass)
         if the server answered with an error.
        """
        replies = await self.multiplexer.submit(self._packer.pack_command(command, *args))
        if len(replies) != 1:
            raise InvalidResponse(f"Expected a single reply to {command!r}, got {len(replies)}")
        reply = replies[0]
        if isinstance(reply, Error):
            raise error_from_reply(reply)
        return callback(reply, self.response_encoding)

    def pipeline(self) -> Pipeline:
        """
        Returns a new :class:`Pipeline` that sends its queued commands in
        a single round trip
        """
        return Pipeline(self)


class Pipeline:
    """
    Buffers commands and sends them to the server in one write, collecting
    all replies in a single submission to the multiplexer.

    ``MULTI`` and ``EXEC`` can be queued like any other command and are sent
    verbatim. The replies of the queued commands are then ``QUEUED`` status
    replies and the ``EXEC`` reply carries the actual results.
    """

    def __init__(self, client: Redis) -> None:
        self.client = client
        self.command_stack: list[tuple[tuple[ValueT, ...], ResponseCallback[Any]]] = []

    def __repr__(self) -> str:
        return f"{type(self).__name__}<{self.client.connection.describe()}>"

    def __len__(self) -> int:
        return len(self.command_stack)

    def queue(
        self,
        *args: ValueT,
        callback: ResponseCallback[Any] = NoopCallback(),
    ) -> Self:
        """
        Add a command to the pipeline

        :param args: the command name followed by its arguments
        :param callback: applied to the reply of this command
        :return: the pipeline, to allow chaining calls
        """
        if not args:
            raise DataError("Can not queue an empty command")
        self.command_stack.append((args, callback))
        return self

    def reset(self) -> None:
        self.command_stack.clear()

    async def execute(self, raise_on_error: bool = True) -> list[Any]:
        """
        Send every queued command and return their replies in the order the
        commands were queued. The pipeline is empty afterwards.

        :param raise_on_error: If ``True`` the first error reply is raised as
         :exc:`~respmux.exceptions.ResponseError`. Otherwise the exception
         instances are returned in place of the failed commands' results.
        """
        if not self.command_stack:
            return []
        stack, self.command_stack = self.command_stack, []
        client = self.client
        frame = client._packer.pack_commands([args for args, _ in stack])
        replies = await client.multiplexer.submit(frame, expected_replies=len(stack))
        if len(replies) != len(stack):
            raise InvalidResponse(
                f"Expected {len(stack)} replies to pipeline, received {len(replies)}"
            )
        logger.debug("Executed pipeline of %d commands", len(stack))
        return [
            self._transform(reply, callback, raise_on_error)
            for reply, (_, callback) in zip(replies, stack)
        ]

    def _transform(
        self, reply: Reply, callback: ResponseCallback[Any], raise_on_error: bool
    ) -> Any:
        if isinstance(reply, Error):
            error: ResponseError = error_from_reply(reply)
            if raise_on_error:
                raise error
            return error
        return callback(reply, self.client.response_encoding)

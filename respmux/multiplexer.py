from __future__ import annotations

from typing import Any

from anyio import (
    TASK_STATUS_IGNORED,
    BrokenResourceError,
    CancelScope,
    ClosedResourceError,
    Lock,
    Semaphore,
    create_memory_object_stream,
    create_task_group,
)
from anyio.abc import TaskGroup, TaskStatus

from respmux._slot import Slot
from respmux._utils import logger
from respmux.connection import Connection, ConnectionStatistics
from respmux.constants import DEFAULT_TICKET_RING_CAPACITY
from respmux.exceptions import (
    ConnectionError,
    ConnectionLostError,
    DataError,
    DialFailedError,
    RedisError,
)
from respmux.parser import NotEnoughData, Parser
from respmux.response.types import Reply
from respmux.typing import Optional, Self


class Multiplexer:
    """
    Serializes requests from any number of concurrent callers onto a single
    :class:`~respmux.connection.Connection`.

    Callers hand over an encoded frame with :meth:`submit`. A single loop task
    owns the connection: it takes one submission at a time, writes its frame,
    reads until the expected number of replies have been decoded and hands the
    replies back to the waiting caller before it accepts the next submission.
    Since the server answers in the order it received requests, no further
    correlation is required.

    If the server closes the connection while a submission is being serviced
    the loop reconnects and sends it once more. Any other failure is delivered
    to the affected caller only and the loop carries on with the next
    submission (dialing again first if the connection had to be dropped).
    """

    def __init__(
        self,
        connection: Connection,
        *,
        ticket_ring_capacity: int = DEFAULT_TICKET_RING_CAPACITY,
    ) -> None:
        """
        :param connection: The connection to service requests on. It is
         dialed when the multiplexer starts if it is not already connected.
        :param ticket_ring_capacity: Number of distinct ticket identifiers
        """
        if ticket_ring_capacity < 1:
            raise DataError(f"ticket_ring_capacity must be positive, got {ticket_ring_capacity}")
        self.connection = connection
        self.ticket_ring_capacity = ticket_ring_capacity

        self._ring: list[Optional[Slot]] = [None] * ticket_ring_capacity
        self._next_ticket = 0
        self._ticket_lock = Lock()
        # bounds in-flight submissions so a free ring entry always exists
        self._ring_capacity = Semaphore(ticket_ring_capacity)
        # zero capacity: a send only completes once the loop is idle and takes it
        self._tickets_in, self._tickets_out = create_memory_object_stream[int](0)
        # only ever touched by the loop
        self._parser = Parser()

        self._task_group: Optional[TaskGroup] = None
        self._loop_scope: Optional[CancelScope] = None
        self._closed = False

    def __repr__(self) -> str:
        return f"{type(self).__name__}<{self.connection.describe()}>"

    @property
    def statistics(self) -> ConnectionStatistics:
        return self.connection.statistics

    @property
    def closed(self) -> bool:
        return self._closed

    async def __aenter__(self) -> Self:
        if self._task_group is not None:
            raise RuntimeError("Multiplexer cannot be reused")
        self._task_group = create_task_group()
        await self._task_group.__aenter__()
        try:
            await self._task_group.start(self.run)
        except BaseException:
            await self._task_group.__aexit__(None, None, None)
            raise
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()
        if self._task_group is not None:
            # exceptions raised by the body propagate as they are instead of
            # being wrapped in an exception group
            await self._task_group.__aexit__(None, None, None)

    async def run(self, *, task_status: TaskStatus[None] = TASK_STATUS_IGNORED) -> None:
        """
        Dial the connection (if required) and service submissions until
        :meth:`aclose` is called.

        :raises: :exc:`~respmux.exceptions.DialFailedError` if the initial
         connection could not be established.
        """
        try:
            await self.connection.connect()
            with CancelScope() as self._loop_scope:
                task_status.started()
                try:
                    async with self._tickets_out:
                        async for ticket in self._tickets_out:
                            slot = self._ring[ticket]
                            if slot is None or slot.done:
                                continue
                            await self._service(slot)
                except Exception:
                    logger.exception(
                        "Multiplexer loop for %s terminated unexpectedly", self.connection
                    )
                    raise
        finally:
            self._closed = True
            self._tickets_out.close()
            self._drain()
            self._parser.on_disconnect()
            await self.connection.close()

    async def aclose(self) -> None:
        """
        Stop servicing submissions, fail every pending submission with
        :exc:`~respmux.exceptions.ConnectionError` and close the connection.
        """
        self._closed = True
        self._drain()
        if self._loop_scope is not None:
            self._loop_scope.cancel()
        else:
            await self.connection.close()

    async def submit(self, frame: bytes, expected_replies: int = 1) -> list[Reply]:
        """
        Send :paramref:`frame` to the server and wait for its replies

        :param frame: One or more encoded commands
        :param expected_replies: The number of replies :paramref:`frame`
         results in (the number of commands it contains).
        :return: The decoded replies in the order they were received. Error
         replies are returned as :class:`~respmux.response.types.Error`
         values and not raised.
        :raises: :exc:`~respmux.exceptions.ConnectionError` (or one of its
         subclasses) if the exchange with the server failed.
        """
        if expected_replies < 1:
            raise DataError(f"expected_replies must be a positive integer, got {expected_replies}")
        if self._task_group is None:
            raise ConnectionError(
                f"{self!r} has not been started, use it as an async context manager"
            )
        if self._closed:
            raise ConnectionError(f"Connection to {self.connection.location} closed")
        async with self._ring_capacity:
            async with self._ticket_lock:
                ticket = self._allocate_ticket()
                slot = self._ring[ticket] = Slot(ticket, frame, expected_replies)
            self.statistics.request_created()
            try:
                try:
                    await self._tickets_in.send(ticket)
                except (BrokenResourceError, ClosedResourceError) as err:
                    error = ConnectionError(f"Connection to {self.connection.location} closed")
                    error.__cause__ = err
                    self._fail(slot, error)
                return await slot.get_result()
            finally:
                self._ring[ticket] = None

    def _allocate_ticket(self) -> int:
        for _ in range(self.ticket_ring_capacity):
            ticket = self._next_ticket
            self._next_ticket = (ticket + 1) % self.ticket_ring_capacity
            if self._ring[ticket] is None:
                return ticket
        raise RuntimeError("No free ticket available")

    async def _service(self, slot: Slot) -> None:
        for attempt in range(2):
            try:
                if not self.connection.connected:
                    await self.connection.connect()
                await self.connection.write_all(slot.frame)
                await self._collect(slot)
            except ConnectionLostError as err:
                await self._reset()
                if attempt == 0:
                    logger.info(
                        "Connection to %s lost servicing ticket %d, reconnecting",
                        self.connection.location,
                        slot.ticket,
                    )
                    try:
                        await self.connection.connect()
                    except DialFailedError as dial_error:
                        self._fail(slot, dial_error)
                        return
                    self.statistics.reconnected()
                    continue
                error = ConnectionError(
                    f"Connection to {self.connection.location} lost again after reconnecting"
                )
                error.__cause__ = err
                self._fail(slot, error)
            except RedisError as err:
                # the stream can't be trusted anymore: unread bytes of this
                # exchange would be attributed to the next slot
                await self._reset()
                self._fail(slot, err)
            else:
                self._resolve(slot)
            return

    async def _collect(self, slot: Slot) -> None:
        slot.replies.clear()
        while True:
            while len(slot.replies) < slot.expected_replies:
                reply = self._parser.get_reply()
                if isinstance(reply, NotEnoughData):
                    break
                slot.replies.append(reply)
            else:
                return
            self._parser.feed(await self.connection.read())

    async def _reset(self) -> None:
        self._parser.on_disconnect()
        await self.connection.close()

    def _resolve(self, slot: Slot) -> None:
        if slot.resolve():
            self.statistics.request_resolved()

    def _fail(self, slot: Slot, error: BaseException) -> None:
        if slot.fail(error):
            logger.debug("Ticket %d failed: %s", slot.ticket, error)
            self.statistics.request_failed()

    def _drain(self) -> None:
        for slot in self._ring:
            if slot is not None and not slot.done:
                self._fail(slot, ConnectionError(f"Connection to {self.connection.location} closed"))

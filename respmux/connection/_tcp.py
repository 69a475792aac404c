from __future__ import annotations

import dataclasses
import enum
import socket

from anyio import (
    BrokenResourceError,
    CancelScope,
    ClosedResourceError,
    EndOfStream,
    connect_tcp,
    fail_after,
)
from anyio.abc import ByteStream, SocketAttribute

from respmux import exceptions
from respmux._utils import logger
from respmux.constants import (
    DEFAULT_DIAL_TIMEOUT,
    DEFAULT_READ_BUFFER_SIZE,
    DEFAULT_READ_TIMEOUT,
    DEFAULT_RECONNECT_ATTEMPTS,
    DEFAULT_WRITE_TIMEOUT,
)
from respmux.exceptions import ConnectionError, ConnectionLostError, DataError, DialFailedError
from respmux.retry import ConstantRetryPolicy, RetryPolicy
from respmux.typing import NotRequired, Optional, Self, TypedDict, Unpack

from ._statistics import ConnectionStatistics


@dataclasses.dataclass(unsafe_hash=True)
class TCPLocation:
    """Location of a redis instance listening on a tcp port"""

    #: hostname of the server
    host: str
    #: the port the server is listening on
    port: int

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"

    def __repr__(self) -> str:
        return f"<host={self.host},port={self.port}>"


class ConnectionState(enum.Enum):
    NOT_CONNECTED = "not-connected"
    CONNECTED = "connected"


class ConnectionParams(TypedDict):
    """
    The parameters accepted by :class:`respmux.connection.Connection`
    """

    #: Maximum time to wait for a single tcp dial to succeed
    dial_timeout: NotRequired[float]
    #: Maximum time to wait for a single read from the socket
    read_timeout: NotRequired[float]
    #: Maximum time to wait for a request to be written to the socket
    write_timeout: NotRequired[float]
    #: Number of dials to attempt before giving up
    reconnect_attempts: NotRequired[int]
    #: Seconds to pause between dial attempts
    reconnect_delay: NotRequired[float]
    #: Maximum number of bytes taken off the socket per read
    read_buffer_size: NotRequired[int]
    #: Whether to enable ``SO_KEEPALIVE`` on the socket
    socket_keepalive: NotRequired[Optional[bool]]
    #: Additional ``SOL_TCP`` options applied when keepalive is enabled
    socket_keepalive_options: NotRequired[Optional[dict[int, int | bytes]]]


class Connection:
    """
    A single tcp connection to a redis server.

    The connection only moves bytes: every read and write is bounded by its
    own deadline, end of stream is reported as
    :exc:`~respmux.exceptions.ConnectionLostError` so that callers can
    decide to reconnect, and all other failures are reported as
    :exc:`~respmux.exceptions.ConnectionError`. Framing and correlation of
    replies is the responsibility of :class:`~respmux.multiplexer.Multiplexer`.
    """

    def __init__(
        self,
        location: TCPLocation,
        *,
        dial_timeout: float = DEFAULT_DIAL_TIMEOUT,
        read_timeout: float = DEFAULT_READ_TIMEOUT,
        write_timeout: float = DEFAULT_WRITE_TIMEOUT,
        reconnect_attempts: int = DEFAULT_RECONNECT_ATTEMPTS,
        reconnect_delay: float = 0.0,
        read_buffer_size: int = DEFAULT_READ_BUFFER_SIZE,
        socket_keepalive: Optional[bool] = None,
        socket_keepalive_options: Optional[dict[int, int | bytes]] = None,
    ) -> None:
        """
        :param location: The location of the server this connection is connecting to
        :param dial_timeout: Maximum time to wait for a single tcp dial to succeed
        :param read_timeout: Maximum time to wait for a single read from the socket
        :param write_timeout: Maximum time to wait for a write to complete
        :param reconnect_attempts: Number of dials to attempt in :meth:`connect`
         before raising :exc:`~respmux.exceptions.DialFailedError`
        :param reconnect_delay: Seconds to pause between dial attempts
        :param read_buffer_size: Maximum number of bytes taken off the socket per read
        :param socket_keepalive: Whether to enable ``SO_KEEPALIVE`` on the socket
        :param socket_keepalive_options: ``SOL_TCP`` options to apply when
         :paramref:`socket_keepalive` is enabled
        """
        if reconnect_attempts < 1:
            raise DataError(f"reconnect_attempts must be at least 1, got {reconnect_attempts}")
        if read_buffer_size < 1:
            raise DataError(f"read_buffer_size must be positive, got {read_buffer_size}")
        self.location = location
        self.dial_timeout = dial_timeout
        self.read_timeout = read_timeout
        self.write_timeout = write_timeout
        self.reconnect_attempts = reconnect_attempts
        self.read_buffer_size = read_buffer_size
        self.retry_policy: RetryPolicy = ConstantRetryPolicy(
            (OSError,), reconnect_attempts - 1, reconnect_delay
        )
        self._socket_keepalive = socket_keepalive
        self._socket_keepalive_options: dict[int, int | bytes] = socket_keepalive_options or {}

        self.state = ConnectionState.NOT_CONNECTED
        self.statistics = ConnectionStatistics()
        # The actual connection to the server
        self._stream: Optional[ByteStream] = None

    @classmethod
    async def dial(cls, location: TCPLocation, **params: Unpack[ConnectionParams]) -> Self:
        """
        Create a connection to :paramref:`location` and establish it

        :raises: :exc:`~respmux.exceptions.DialFailedError`
        """
        connection = cls(location, **params)
        await connection.connect()
        return connection

    def __repr__(self) -> str:
        return self.describe()

    def describe(self) -> str:
        return f"Connection<host={self.location.host},port={self.location.port}>"

    @property
    def connected(self) -> bool:
        return self.state == ConnectionState.CONNECTED

    async def connect(self) -> None:
        """
        Establish the tcp connection, making up to
        :paramref:`Connection.reconnect_attempts` dials. Does nothing if the
        connection is already established.

        :raises: :exc:`~respmux.exceptions.DialFailedError` if every attempt failed
        """
        if self.connected:
            return
        try:
            self._stream = await self.retry_policy.call_with_retries(self._dial)
        except OSError as err:
            logger.info("Unable to connect to %s: %s", self.location, err)
            raise DialFailedError(self.location, self.reconnect_attempts) from err
        self.state = ConnectionState.CONNECTED
        self.statistics.connected()
        logger.debug("Connected to %s", self.location)

    async def _dial(self) -> ByteStream:
        self.statistics.dial_attempted()
        with fail_after(self.dial_timeout):
            connection: ByteStream = await connect_tcp(self.location.host, self.location.port)
        sock = connection.extra(SocketAttribute.raw_socket, default=None)
        if sock is not None:
            if self._socket_keepalive:  # TCP_KEEPALIVE
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_KEEPALIVE, 1)
                for k, v in self._socket_keepalive_options.items():
                    sock.setsockopt(socket.SOL_TCP, k, v)
        return connection

    async def write_all(self, data: bytes, timeout: Optional[float] = None) -> None:
        """
        Write all of :paramref:`data` to the socket within
        :paramref:`timeout` (defaults to :paramref:`Connection.write_timeout`)
        """
        stream = self._ensure_stream()
        timeout = self.write_timeout if timeout is None else timeout
        try:
            with fail_after(timeout):
                await stream.send(data)
        except TimeoutError as err:
            raise exceptions.TimeoutError(
                f"Writing to {self.location} timed out after {timeout} seconds"
            ) from err
        except BrokenResourceError as err:
            raise ConnectionLostError(
                f"Connection to {self.location} lost while sending request"
            ) from err
        except (ClosedResourceError, OSError) as err:
            raise ConnectionError(f"Writing to {self.location} failed: {err}") from err
        self.statistics.data_sent(len(data))

    async def read(self, timeout: Optional[float] = None) -> bytes:
        """
        Read up to :paramref:`Connection.read_buffer_size` bytes within
        :paramref:`timeout` (defaults to :paramref:`Connection.read_timeout`)
        """
        stream = self._ensure_stream()
        timeout = self.read_timeout if timeout is None else timeout
        try:
            with fail_after(timeout):
                data = await stream.receive(self.read_buffer_size)
        except TimeoutError as err:
            raise exceptions.TimeoutError(
                f"Reading from {self.location} timed out after {timeout} seconds"
            ) from err
        except (EndOfStream, BrokenResourceError) as err:
            raise ConnectionLostError(
                f"Connection to {self.location} lost while receiving response"
            ) from err
        except (ClosedResourceError, OSError) as err:
            raise ConnectionError(f"Reading from {self.location} failed: {err}") from err
        self.statistics.data_received(len(data))
        return data

    async def close(self) -> None:
        """
        Close the socket. Safe to call on a connection that is not connected.
        """
        stream, self._stream = self._stream, None
        self.state = ConnectionState.NOT_CONNECTED
        if stream is not None:
            with CancelScope(shield=True):
                await stream.aclose()
            logger.debug("Closed connection to %s", self.location)

    def _ensure_stream(self) -> ByteStream:
        if self._stream is None or not self.connected:
            raise ConnectionError(f"Connection to {self.location} is not established")
        return self._stream

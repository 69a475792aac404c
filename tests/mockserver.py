from __future__ import annotations

import inspect
import socket
import struct
from contextlib import asynccontextmanager

import anyio
from anyio import BrokenResourceError, ClosedResourceError, EndOfStream
from anyio.abc import SocketAttribute, SocketStream

from respmux.parser import NotEnoughData, Parser

#: Close the connection instead of replying
CLOSE = object()
#: Read the command but never reply to it
SILENT = object()


def simple(value: bytes) -> bytes:
    return b"+" + value + b"\r\n"


def error(message: bytes) -> bytes:
    return b"-" + message + b"\r\n"


def integer(value: int) -> bytes:
    return b":%d\r\n" % value


def bulk(value: bytes | None) -> bytes:
    if value is None:
        return b"$-1\r\n"
    return b"$%d\r\n%s\r\n" % (len(value), value)


def array(items: list[bytes] | None) -> bytes:
    if items is None:
        return b"*-1\r\n"
    return b"*%d\r\n" % len(items) + b"".join(items)


class MockServer:
    """
    Serves RESP over tcp on localhost, passing every decoded command
    to :paramref:`handler`. The handler (sync or async) returns the raw
    bytes to reply with, :data:`CLOSE` or :data:`SILENT`.

    The first :paramref:`stalled_connections` accepted connections are
    never read from, the first :paramref:`reset_connections` are reset
    as soon as they are accepted.
    """

    def __init__(self, handler, stalled_connections: int = 0, reset_connections: int = 0):
        self.handler = handler
        self.stalled_connections = stalled_connections
        self.reset_connections = reset_connections
        self.port: int = 0
        self.connections = 0
        self.commands: list[list[bytes]] = []
        self.max_commands_per_read = 0

    async def serve(self, stream: SocketStream) -> None:
        self.connections += 1
        if self.connections <= self.reset_connections:
            sock = stream.extra(SocketAttribute.raw_socket)
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_LINGER, struct.pack("ii", 1, 0))
            await stream.aclose()
            return
        parser = Parser()
        async with stream:
            if self.connections <= self.stalled_connections:
                await anyio.sleep_forever()
            try:
                while True:
                    parser.feed(await stream.receive())
                    batch = []
                    while not isinstance(request := parser.get_reply(), NotEnoughData):
                        batch.append([item.as_bytes() for item in request])
                    self.max_commands_per_read = max(self.max_commands_per_read, len(batch))
                    for command in batch:
                        self.commands.append(command)
                        response = self.handler(command)
                        if inspect.isawaitable(response):
                            response = await response
                        if response is CLOSE:
                            return
                        if response is not SILENT:
                            await stream.send(response)
            except (EndOfStream, BrokenResourceError, ClosedResourceError):
                return


@asynccontextmanager
async def mock_server(handler, **options):
    server = MockServer(handler, **options)
    async with await anyio.create_tcp_listener(local_host="127.0.0.1") as listener:
        server.port = listener.extra(SocketAttribute.local_port)
        async with anyio.create_task_group() as tg:
            tg.start_soon(listener.serve, server.serve)
            yield server
            tg.cancel_scope.cancel()


async def unused_port() -> int:
    async with await anyio.create_tcp_listener(local_host="127.0.0.1") as listener:
        return listener.extra(SocketAttribute.local_port)


class FakeRedis:
    """
    Just enough of a redis server, kept in memory, to exercise the
    command methods of the client
    """

    def __init__(self):
        self.data: dict[bytes, object] = {}
        self.ttls: dict[bytes, int] = {}

    def __call__(self, command: list[bytes]) -> bytes:
        name, args = command[0].upper().decode(), command[1:]
        method = getattr(self, f"cmd_{name.lower()}", None)
        if method is None:
            return error(b"ERR unknown command '" + command[0] + b"'")
        try:
            return method(*args)
        except TypeError:
            return error(b"ERR wrong number of arguments for '" + command[0].lower() + b"' command")

    def cmd_ping(self, message=None):
        return simple(b"PONG") if message is None else bulk(message)

    def cmd_echo(self, message):
        return bulk(message)

    def cmd_dbsize(self):
        return integer(len(self.data))

    def cmd_exists(self, *keys):
        return integer(sum(1 for key in keys if key in self.data))

    def cmd_del(self, *keys):
        return integer(sum(1 for key in keys if self.data.pop(key, None) is not None))

    def cmd_expire(self, key, seconds):
        if key not in self.data:
            return integer(0)
        self.ttls[key] = int(seconds)
        return integer(1)

    def cmd_get(self, key):
        value = self.data.get(key)
        if value is not None and not isinstance(value, bytes):
            return error(b"WRONGTYPE Operation against a key holding the wrong kind of value")
        return bulk(value)

    def cmd_set(self, key, value, *options):
        options = [option.upper() for option in options]
        if b"NX" in options and key in self.data:
            return bulk(None)
        if b"XX" in options and key not in self.data:
            return bulk(None)
        if b"EX" in options:
            self.ttls[key] = int(options[options.index(b"EX") + 1])
        self.data[key] = value
        return simple(b"OK")

    def cmd_incr(self, key):
        value = self.data.get(key, b"0")
        try:
            new = int(value) + 1
        except (TypeError, ValueError):
            return error(b"ERR value is not an integer or out of range")
        self.data[key] = b"%d" % new
        return integer(new)

    def cmd_hset(self, key, *pairs):
        if not pairs or len(pairs) % 2:
            raise TypeError
        hash_ = self.data.setdefault(key, {})
        added = 0
        for field, value in zip(pairs[::2], pairs[1::2]):
            added += field not in hash_
            hash_[field] = value
        return integer(added)

    def cmd_hmset(self, key, *pairs):
        self.cmd_hset(key, *pairs)
        return simple(b"OK")

    def cmd_hget(self, key, field):
        return bulk(self.data.get(key, {}).get(field))

    def cmd_hmget(self, key, *fields):
        hash_ = self.data.get(key, {})
        return array([bulk(hash_.get(field)) for field in fields])

    def cmd_hgetall(self, key):
        hash_ = self.data.get(key, {})
        return array([bulk(item) for pair in hash_.items() for item in pair])

    def cmd_hincrby(self, key, field, increment):
        hash_ = self.data.setdefault(key, {})
        value = int(hash_.get(field, b"0")) + int(increment)
        hash_[field] = b"%d" % value
        return integer(value)

    def cmd_sadd(self, key, *members):
        set_ = self.data.setdefault(key, set())
        added = len(set(members) - set_)
        set_.update(members)
        return integer(added)

    def cmd_sismember(self, key, member):
        return integer(int(member in self.data.get(key, set())))

    def cmd_smembers(self, key):
        return array([bulk(member) for member in sorted(self.data.get(key, set()))])

    def cmd_zadd(self, key, *pairs):
        zset = self.data.setdefault(key, {})
        added = 0
        for score, member in zip(pairs[::2], pairs[1::2]):
            added += member not in zset
            zset[member] = float(score)
        return integer(added)

    def _zrange_reply(self, members, withscores):
        items = []
        for member, score in members:
            items.append(bulk(member))
            if withscores:
                items.append(bulk(b"%g" % score))
        return array(items)

    def _sorted(self, key):
        return sorted(self.data.get(key, {}).items(), key=lambda item: (item[1], item[0]))

    def cmd_zrange(self, key, start, stop, *options):
        members = self._sorted(key)
        start, stop = int(start), int(stop)
        stop = len(members) + stop if stop < 0 else stop
        return self._zrange_reply(members[start : stop + 1], b"WITHSCORES" in options)

    def cmd_zrangebyscore(self, key, min_, max_, *options):
        low = float("-inf") if min_ == b"-inf" else float(min_)
        high = float("inf") if max_ == b"+inf" else float(max_)
        members = [(m, s) for m, s in self._sorted(key) if low <= s <= high]
        if b"LIMIT" in options:
            index = options.index(b"LIMIT")
            offset, count = int(options[index + 1]), int(options[index + 2])
            members = members[offset : offset + count]
        return self._zrange_reply(members, b"WITHSCORES" in options)

    def cmd_zscore(self, key, member):
        score = self.data.get(key, {}).get(member)
        return bulk(None if score is None else b"%g" % score)

    def cmd_lpush(self, key, *elements):
        list_ = self.data.setdefault(key, [])
        for element in elements:
            list_.insert(0, element)
        return integer(len(list_))

    def cmd_ltrim(self, key, start, stop):
        list_ = self.data.get(key, [])
        start, stop = int(start), int(stop)
        stop = len(list_) + stop if stop < 0 else stop
        list_[:] = list_[start : stop + 1]
        return simple(b"OK")

    def cmd_lrange(self, key, start, stop):
        list_ = self.data.get(key, [])
        start, stop = int(start), int(stop)
        stop = len(list_) + stop if stop < 0 else stop
        return array([bulk(element) for element in list_[start : stop + 1]])


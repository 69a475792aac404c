from __future__ import annotations

import enum
from abc import ABC, abstractmethod

from deprecated import deprecated

from respmux._utils import dict_to_flat_list
from respmux.exceptions import DataError
from respmux.response.callbacks import (
    AnyStrCallback,
    AnyStrListCallback,
    BoolCallback,
    DictCallback,
    IntCallback,
    OptionalAnyStrCallback,
    OptionalAnyStrListCallback,
    OptionalFloatCallback,
    ResponseCallback,
    SetCallback,
    SimpleStringCallback,
    ZRangeCallback,
)
from respmux.typing import (
    KeyT,
    Literal,
    Mapping,
    Optional,
    R,
    Sequence,
    StringT,
    Union,
    ValueT,
)


@enum.unique
class CommandName(bytes, enum.Enum):
    """
    Enum for the redis commands exposed by :class:`CommandMixin`
    """

    #: Generic commands
    PING = b"PING"
    ECHO = b"ECHO"
    DBSIZE = b"DBSIZE"
    EXISTS = b"EXISTS"
    DEL = b"DEL"
    EXPIRE = b"EXPIRE"

    #: Commands for strings
    GET = b"GET"
    SET = b"SET"
    INCR = b"INCR"

    #: Commands for hashes
    HSET = b"HSET"
    HGET = b"HGET"
    HMGET = b"HMGET"
    HMSET = b"HMSET"
    HGETALL = b"HGETALL"
    HINCRBY = b"HINCRBY"

    #: Commands for sets
    SADD = b"SADD"
    SISMEMBER = b"SISMEMBER"
    SMEMBERS = b"SMEMBERS"

    #: Commands for sorted sets
    ZADD = b"ZADD"
    ZRANGE = b"ZRANGE"
    ZRANGEBYSCORE = b"ZRANGEBYSCORE"
    ZSCORE = b"ZSCORE"

    #: Commands for lists
    LPUSH = b"LPUSH"
    LTRIM = b"LTRIM"
    LRANGE = b"LRANGE"

    #: Transactions (passed through verbatim)
    MULTI = b"MULTI"
    EXEC = b"EXEC"

    def __str__(self) -> str:
        return self.decode("latin-1")


class CommandMixin(ABC):
    """
    Typed wrappers for the supported redis commands. Concrete classes
    provide :meth:`execute_command`.
    """

    @abstractmethod
    async def execute_command(
        self,
        command: Union[CommandName, bytes],
        *args: ValueT,
        callback: ResponseCallback[R],
    ) -> R:
        pass

    async def ping(self, message: Optional[StringT] = None) -> Union[bool, StringT]:
        """
        Ping the server

        :return: ``True`` if the server answered with ``PONG``, or
         :paramref:`message` echoed back if one was provided.
        """
        if message is not None:
            return await self.execute_command(
                CommandName.PING, message, callback=AnyStrCallback()
            )
        return await self.execute_command(
            CommandName.PING, callback=SimpleStringCallback(frozenset({b"PONG"}))
        )

    async def echo(self, message: StringT) -> StringT:
        """
        Echo the given string
        """
        return await self.execute_command(CommandName.ECHO, message, callback=AnyStrCallback())

    async def dbsize(self) -> int:
        """
        Return the number of keys in the selected database
        """
        return await self.execute_command(CommandName.DBSIZE, callback=IntCallback())

    async def exists(self, keys: Sequence[KeyT]) -> int:
        """
        Determine if a key exists

        :return: the number of keys that exist from those specified as arguments.
        """
        return await self.execute_command(CommandName.EXISTS, *keys, callback=IntCallback())

    async def delete(self, keys: Sequence[KeyT]) -> int:
        """
        Delete one or more keys specified by :paramref:`keys`

        :return: The number of keys that were removed.
        """
        return await self.execute_command(CommandName.DEL, *keys, callback=IntCallback())

    async def expire(self, key: KeyT, seconds: int) -> bool:
        """
        Set a key's time to live in seconds

        :return: if the timeout was set or not set.
        """
        return await self.execute_command(
            CommandName.EXPIRE, key, seconds, callback=BoolCallback()
        )

    async def get(self, key: KeyT) -> Optional[StringT]:
        """
        Get the value of a key

        :return: the value of :paramref:`key`, or ``None`` when :paramref:`key`
         does not exist.
        """
        return await self.execute_command(
            CommandName.GET, key, callback=OptionalAnyStrCallback()
        )

    async def set(
        self,
        key: KeyT,
        value: ValueT,
        *,
        condition: Optional[Literal["NX", "XX"]] = None,
        ex: Optional[int] = None,
    ) -> bool:
        """
        Set the string value of a key

        :param condition: Only set the key if it does not (``NX``)
         or does (``XX``) already exist
        :param ex: Number of seconds to expire in

        :return: Whether the operation was performed successfully.
        """
        pieces: list[ValueT] = [key, value]
        if ex is not None:
            pieces.extend(["EX", ex])
        if condition:
            pieces.append(condition)
        return await self.execute_command(
            CommandName.SET, *pieces, callback=SimpleStringCallback()
        )

    async def incr(self, key: KeyT) -> int:
        """
        Increment the integer value of a key by one

        :return: the value of :paramref:`key` after the increment
        """
        return await self.execute_command(CommandName.INCR, key, callback=IntCallback())

    async def hset(self, key: KeyT, field_values: Mapping[StringT, ValueT]) -> int:
        """
        Set the string value of hash fields

        :return: The number of fields that were added
        """
        if not field_values:
            raise DataError("HSET requires at least one field/value pair")
        return await self.execute_command(
            CommandName.HSET, key, *dict_to_flat_list(field_values), callback=IntCallback()
        )

    @deprecated(reason="Use :meth:`hset` with multiple field-value pairs", version="0.1")
    async def hmset(self, key: KeyT, field_values: Mapping[StringT, ValueT]) -> bool:
        """
        Sets key to value within hash :paramref:`key` for each corresponding
        key and value from the :paramref:`field_values` dict.
        """
        if not field_values:
            raise DataError("HMSET requires at least one field/value pair")
        return await self.execute_command(
            CommandName.HMSET,
            key,
            *dict_to_flat_list(field_values),
            callback=SimpleStringCallback(),
        )

    async def hget(self, key: KeyT, field: StringT) -> Optional[StringT]:
        """
        Returns the value of :paramref:`field` within the hash :paramref:`key`
        """
        return await self.execute_command(
            CommandName.HGET, key, field, callback=OptionalAnyStrCallback()
        )

    async def hmget(self, key: KeyT, fields: Sequence[StringT]) -> list[Optional[StringT]]:
        """
        Returns values ordered identically to :paramref:`fields`, ``None``
        for fields that do not exist
        """
        return await self.execute_command(
            CommandName.HMGET, key, *fields, callback=OptionalAnyStrListCallback()
        )

    async def hgetall(self, key: KeyT) -> dict[StringT, StringT]:
        """
        Returns a Python dict of the hash's name/value pairs
        """
        return await self.execute_command(CommandName.HGETALL, key, callback=DictCallback())

    async def hincrby(self, key: KeyT, field: StringT, increment: int) -> int:
        """
        Increments the value of :paramref:`field` in hash :paramref:`key` by
        :paramref:`increment`

        :return: the value of the field after the increment
        """
        return await self.execute_command(
            CommandName.HINCRBY, key, field, increment, callback=IntCallback()
        )

    async def sadd(self, key: KeyT, members: Sequence[ValueT]) -> int:
        """
        Add one or more members to a set

        :return: the number of elements that were added to the set, not
         including all the elements already present in the set.
        """
        return await self.execute_command(CommandName.SADD, key, *members, callback=IntCallback())

    async def sismember(self, key: KeyT, member: ValueT) -> bool:
        """
        Determine if a given value is a member of a set
        """
        return await self.execute_command(
            CommandName.SISMEMBER, key, member, callback=BoolCallback()
        )

    async def smembers(self, key: KeyT) -> set[StringT]:
        """
        Returns all members of the set
        """
        return await self.execute_command(CommandName.SMEMBERS, key, callback=SetCallback())

    async def zadd(self, key: KeyT, members: Mapping[StringT, Union[int, float]]) -> int:
        """
        Add one or more members to a sorted set, or update their scores

        :param members: mapping of member to score
        :return: the number of elements added to the sorted set
        """
        if not members:
            raise DataError("ZADD requires at least one member/score pair")
        pieces: list[ValueT] = []
        for member, score in members.items():
            pieces.extend([score, member])
        return await self.execute_command(CommandName.ZADD, key, *pieces, callback=IntCallback())

    async def zrange(
        self, key: KeyT, start: int, stop: int, withscores: bool = False
    ) -> Union[list[StringT], list[tuple[StringT, float]]]:
        """
        Return a range of members in a sorted set, by index

        :return: the members in the range, as ``(member, score)`` tuples if
         :paramref:`withscores` is set.
        """
        pieces: list[ValueT] = [key, start, stop]
        if withscores:
            pieces.append("WITHSCORES")
        return await self.execute_command(
            CommandName.ZRANGE, *pieces, callback=ZRangeCallback(withscores)
        )

    async def zrangebyscore(
        self,
        key: KeyT,
        min_: Union[int, float, StringT],
        max_: Union[int, float, StringT],
        withscores: bool = False,
        limit: Optional[Sequence[int]] = None,
    ) -> Union[list[StringT], list[tuple[StringT, float]]]:
        """
        Return a range of members in a sorted set, by score

        :param limit: ``(offset, count)`` of the members to return
        :return: elements in the specified score range (optionally with their scores).
        """
        pieces: list[ValueT] = [key, min_, max_]
        if withscores:
            pieces.append("WITHSCORES")
        if limit is not None:
            if len(limit) != 2 or not all(isinstance(v, int) for v in limit):
                raise DataError(f"LIMIT must be a pair of integers (offset, count), got {limit!r}")
            pieces.extend(["LIMIT", limit[0], limit[1]])
        return await self.execute_command(
            CommandName.ZRANGEBYSCORE, *pieces, callback=ZRangeCallback(withscores)
        )

    async def zscore(self, key: KeyT, member: ValueT) -> Optional[float]:
        """
        Get the score associated with the given member in a sorted set

        :return: the score of :paramref:`member`, or ``None`` if it is not a member
        """
        return await self.execute_command(
            CommandName.ZSCORE, key, member, callback=OptionalFloatCallback()
        )

    async def lpush(self, key: KeyT, elements: Sequence[ValueT]) -> int:
        """
        Prepend one or multiple elements to a list

        :return: the length of the list after the push operations.
        """
        return await self.execute_command(
            CommandName.LPUSH, key, *elements, callback=IntCallback()
        )

    async def ltrim(self, key: KeyT, start: int, stop: int) -> bool:
        """
        Trim a list to the specified range
        """
        return await self.execute_command(
            CommandName.LTRIM, key, start, stop, callback=SimpleStringCallback()
        )

    async def lrange(self, key: KeyT, start: int, stop: int) -> list[StringT]:
        """
        Get a range of elements from a list
        """
        return await self.execute_command(
            CommandName.LRANGE, key, start, stop, callback=AnyStrListCallback()
        )


__all__ = ["CommandMixin", "CommandName"]

from __future__ import annotations


class RedisError(Exception):
    """
    Base exception from which all other exceptions in respmux
    derive from.
    """


class DataError(RedisError):
    """
    Raised when a command or a submission is constructed with invalid
    arguments (for example an empty argument vector or a non positive
    number of expected replies)
    """


class ConnectionError(RedisError):
    pass


class DialFailedError(ConnectionError):
    """
    Raised when a tcp connection could not be established within the
    configured number of dial attempts
    """

    def __init__(self, location: object, attempts: int) -> None:
        self.location = location
        self.attempts = attempts
        super().__init__(f"Failed to connect to {location} after {attempts} attempt(s)")


class ConnectionLostError(ConnectionError):
    """
    Raised when the server closed (or reset) the connection. The multiplexer
    reconnects and resends the pending request once when it encounters this.
    """


class TimeoutError(ConnectionError):
    """
    Raised when a read or write on the connection did not complete
    within its deadline
    """


class InvalidResponse(RedisError):
    """
    Raised when the bytes received from the server can not be parsed as RESP
    """


class ReplyTypeError(RedisError):
    """
    Raised when a reply is of a different type than the one the
    command expects
    """

    def __init__(self, expected: str, reply: object) -> None:
        self.expected = expected
        self.reply = reply
        super().__init__(f"Expected a {expected} reply, got {reply!r}")


class ResponseError(RedisError):
    """
    An error reply sent by the server. The message is the text following
    the error marker, :attr:`code` is its first word (for example ``ERR``
    or ``WRONGTYPE``)
    """

    def __init__(self, message: str) -> None:
        self.code = message.split(" ", 1)[0]
        super().__init__(message)


class UnknownCommandError(ResponseError):
    """
    Raised when the server does not recognize the command or subcommand
    """


class WrongTypeError(ResponseError):
    """
    Raised when an operation is performed against a key holding the wrong
    kind of value
    """


class BusyLoadingError(ResponseError):
    pass


class ExecAbortError(ResponseError):
    pass


class ReadOnlyError(ResponseError):
    pass


class NoScriptError(ResponseError):
    pass


class AuthenticationRequiredError(ResponseError):
    pass


class AuthorizationError(ResponseError):
    pass


class StreamConsumerGroupError(ResponseError):
    pass


class StreamDuplicateConsumerGroupError(ResponseError):
    pass

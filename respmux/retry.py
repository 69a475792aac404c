from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any

import anyio

from respmux.typing import Callable, Coroutine, Optional, R

logger = logging.getLogger(__name__)


class RetryPolicy(ABC):
    """
    Abstract retry policy
    """

    def __init__(self, retries: int, retryable_exceptions: tuple[type[BaseException], ...]) -> None:
        """
        :param retries: number of times to retry if a :paramref:`retryable_exception`
         is encountered.
        :param retryable_exceptions: The exceptions to trigger a retry for
        """
        self.retryable_exceptions = retryable_exceptions
        self.retries = retries

    @abstractmethod
    async def delay(self, attempt_number: int) -> None:
        pass

    async def call_with_retries(self, func: Callable[..., Coroutine[Any, Any, R]]) -> R:
        """
        :param func: a function that should return the coroutine that will be
         awaited when retrying if :paramref:`RetryPolicy.retryable_exceptions` is encountered.
        :raises: the last retryable exception once every attempt failed
        """
        last_error: Optional[BaseException] = None
        for attempt in range(self.retries + 1):
            try:
                await self.delay(attempt)
                return await func()
            except self.retryable_exceptions as e:
                logger.info(f"Retry attempt {attempt + 1} due to error: {e}")
                last_error = e
        assert last_error is not None
        raise last_error

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}<"
            f"retries={self.retries}, "
            f"retryable_exceptions={','.join(e.__name__ for e in self.retryable_exceptions)}"
            ">"
        )


class ConstantRetryPolicy(RetryPolicy):
    """
    Retry policy that pauses :paramref:`ConstantRetryPolicy.delay`
    seconds between :paramref:`ConstantRetryPolicy.retries`
    if any of :paramref:`ConstantRetryPolicy.retryable_exceptions` are
    encountered.
    """

    def __init__(
        self,
        retryable_exceptions: tuple[type[BaseException], ...],
        retries: int,
        delay: float,
    ) -> None:
        self.__delay = delay
        super().__init__(retries, retryable_exceptions)

    async def delay(self, attempt_number: int) -> None:
        if attempt_number > 0 and self.__delay > 0:
            await anyio.sleep(self.__delay)

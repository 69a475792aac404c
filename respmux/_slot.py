from __future__ import annotations

import dataclasses

from anyio import Event

from respmux.response.types import Reply


@dataclasses.dataclass(slots=True)
class Slot:
    """
    A single in-flight submission to the multiplexer.

    The slot is written once by the submitting caller, mutated only by the
    multiplexer loop (which appends decoded replies and completes it) and read
    by the caller once the completion event fired.
    """

    ticket: int
    frame: bytes
    expected_replies: int
    replies: list[Reply] = dataclasses.field(default_factory=list)

    _event: Event = dataclasses.field(init=False, default_factory=Event)
    _exc: BaseException | None = dataclasses.field(init=False, default=None)

    @property
    def done(self) -> bool:
        return self._event.is_set()

    def resolve(self) -> bool:
        """
        Complete the slot with the accumulated replies. Only the first
        completion of a slot takes effect.
        """
        if self._event.is_set():
            return False
        self._event.set()
        return True

    def fail(self, error: BaseException) -> bool:
        """
        Complete the slot with :paramref:`error`. Only the first completion
        of a slot takes effect.
        """
        if self._event.is_set():
            return False
        self._exc = error
        self.replies = []
        self._event.set()
        return True

    async def get_result(self) -> list[Reply]:
        await self._event.wait()
        if self._exc is not None:
            raise self._exc
        return self.replies

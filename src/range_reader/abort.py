from __future__ import annotations

import asyncio
from typing import Awaitable, TypeVar

from .errors import AbortedError
from .log_utils import log

__all__ = ["AbortSignal"]

_R = TypeVar("_R")


class AbortSignal:
    """
    A one-way cancellation handle, passed explicitly to a
    :class:`~range_reader.coordinator.RangeCoordinator` (and from it into each
    transport call) rather than registered as a listener. Once
    :meth:`abort` is called the signal stays aborted.

    The same signal may be shared by several coordinators to abort them together.
    To abort them together while still letting each be aborted on its own, give
    each a :meth:`child` of one signal instead: aborting the parent aborts every
    child, but aborting a child leaves the parent and its siblings active.
    """

    def __init__(self):
        self._aborted = False
        self.reason: str | None = None
        self._event: asyncio.Event | None = None
        self._children: list[AbortSignal] = []

    def __repr__(self) -> str:
        state = f"aborted ({self.reason})" if self._aborted else "active"
        return f"{self.__class__.__name__} ⠶ {state}"

    @property
    def aborted(self) -> bool:
        return self._aborted

    def abort(self, reason: str = "Aborted") -> None:
        if self._aborted:
            return
        self._aborted = True
        self.reason = reason
        log.debug(f"Abort signalled: {reason}")
        if self._event is not None:
            self._event.set()
        for child in self._children:
            child.abort(reason=reason)

    def child(self) -> AbortSignal:
        """
        A new signal that is aborted along with this one (at once, if this one
        already is), and can also be aborted by itself.
        """
        signal = AbortSignal()
        if self._aborted:
            signal.abort(reason=self.reason)
        else:
            self._children.append(signal)
        return signal

    def raise_if_aborted(self) -> None:
        if self._aborted:
            raise AbortedError(self.reason)

    async def wait(self) -> None:
        """
        Suspend until the signal is aborted. The :class:`asyncio.Event` is only
        created here, so the signal can be constructed outside a running loop.
        """
        if self._aborted:
            return
        if self._event is None:
            self._event = asyncio.Event()
        await self._event.wait()

    async def guard(self, aw: Awaitable[_R]) -> _R:
        """
        Await ``aw`` unless the signal is aborted first, in which case ``aw`` is
        cancelled and :class:`~range_reader.errors.AbortedError` raised.
        """
        fut = asyncio.ensure_future(aw)
        if self._aborted:
            fut.cancel()
            raise AbortedError(self.reason)
        waiter = asyncio.ensure_future(self.wait())
        try:
            await asyncio.wait({fut, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            fut.cancel()
            raise
        finally:
            waiter.cancel()
        if not fut.done():
            fut.cancel()
            raise AbortedError(self.reason)
        return fut.result()

r""":mod:`range_reader.coordinator` exposes a class
:class:`~range_reader.coordinator.RangeCoordinator`, a random-access reader
over a remote resource which fetches byte windows through a
:class:`~range_reader.transport.RangeTransport` only when the bytes asked
for are not already in its :class:`~range_reader.cache.ByteRangeCache`.

A read (or peek) on the coordinator is resolved to the inclusive range of
positions it needs. If that range is not cached, the window fetched is the
range padded up to the ``minimum_chunk_size`` (since the cost of a request is
mostly in making it, not in its length) and clipped at the end of the
resource, so that small reads nearby are then served from the cache.

    >>> from range_reader import RangeCoordinator, ResourceInfo
    >>> reader = RangeCoordinator(
    ...     transport, ResourceInfo(url=url, size=1000), minimum_chunk_size=256
    ... ) # doctest: +SKIP
    >>> buf = bytearray(10)
    >>> await reader.peek(buf, position=500) # doctest: +SKIP
    10
    >>> reader.cache # doctest: +SKIP
    ByteRangeCache ⠶ [500, 756)

Each coordinator must be used sequentially: there is no locking, so a second
read should not be issued while a first one is still awaiting its fetch.
"""
from __future__ import annotations

from typing import TYPE_CHECKING

from .abort import AbortSignal
from .cache import ByteRangeCache
from .errors import (
    EndOfResourceError,
    IncompletePayloadError,
    InvalidConfigurationError,
    MissingResourceInfoError,
)
from .log_utils import log
from .range_utils import clip_range, round_range, termini_len
from .types import ResourceInfo

if TYPE_CHECKING:  # pragma: no cover
    from .transport import RangeTransport

__all__ = ["ReadCursor", "RangeCoordinator", "DEFAULT_MINIMUM_CHUNK_SIZE"]

DEFAULT_MINIMUM_CHUNK_SIZE = 1024


class ReadCursor:
    """
    The read position on a resource of fixed ``size``. The position is not
    bounds checked: it may be set past the end, which reads then detect.
    """

    def __init__(self, size: int, position: int = 0):
        self.size = size
        self.position = position

    def __repr__(self) -> str:
        return f"{self.__class__.__name__} ⠶ {self.position}/{self.size}"

    @property
    def remaining(self) -> int:
        return max(0, self.size - self.position)


class RangeCoordinator:
    """
    Serve reads on a remote resource of known size from a sparse cache of
    fetched windows, fetching through the ``transport`` on a cache miss.

    Once :meth:`abort` is called the coordinator is aborted for good: reads
    that can be answered entirely from the cache still succeed, but any read
    needing a fetch raises :class:`~range_reader.errors.AbortedError`.
    """

    def __init__(
        self,
        transport: RangeTransport,
        resource_info: ResourceInfo | None,
        minimum_chunk_size: int = DEFAULT_MINIMUM_CHUNK_SIZE,
        signal: AbortSignal | None = None,
    ):
        """
        Args:
          transport          : the fetcher of inclusive byte windows (its ``fetch``
                               coroutine is awaited on each cache miss)
          resource_info      : (:class:`~range_reader.types.ResourceInfo`)
                               describing the resource, whose ``size`` must be set
          minimum_chunk_size : (:class:`int`) the smallest window (in bytes) to fetch
          signal             : (:class:`~range_reader.abort.AbortSignal` | ``None``)
                               the cancellation handle, a fresh one if ``None``
        """
        self.check_minimum_chunk_size(minimum_chunk_size)
        if resource_info is None or resource_info.size is None:
            raise MissingResourceInfoError(
                f"Resource size must be known to read it ({resource_info=})"
            )
        self.transport = transport
        self.resource_info = resource_info
        self.minimum_chunk_size = minimum_chunk_size
        self.signal = AbortSignal() if signal is None else signal
        self.cursor = ReadCursor(size=resource_info.size)
        self.cache = ByteRangeCache()

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__} ⠶ {self.cursor.position}/{self.size} "
            f"@ '{self.resource_info.url}'"
        )

    async def aclose(self) -> None:
        """
        Close the transport, if it has anything to close (the cache is kept).
        """
        close = getattr(self.transport, "aclose", None)
        if close is not None:
            await close()

    async def __aenter__(self) -> RangeCoordinator:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    @staticmethod
    def check_minimum_chunk_size(minimum_chunk_size) -> None:
        if isinstance(minimum_chunk_size, bool) or not isinstance(
            minimum_chunk_size, int
        ):
            raise InvalidConfigurationError(
                f"{minimum_chunk_size=} must be an integer number of bytes"
            )
        if minimum_chunk_size < 0:
            raise InvalidConfigurationError(f"{minimum_chunk_size=} is negative")

    @property
    def size(self) -> int:
        return self.cursor.size

    @property
    def position(self) -> int:
        return self.cursor.position

    @property
    def aborted(self) -> bool:
        return self.signal.aborted

    def supports_random_access(self) -> bool:
        return True

    def set_position(self, position: int) -> None:
        self.cursor.position = position

    async def peek(
        self,
        buffer: bytearray | memoryview,
        position: int | None = None,
        length: int | None = None,
        offset: int = 0,
    ) -> int:
        """
        Read ahead into ``buffer`` without moving the cursor, fetching the bytes
        first if they are not cached.

        Returns the number of bytes put into ``buffer``, which is fewer than the
        ``length`` requested when the end of the resource is reached (and ``0``
        if the position is already at or past the end).

        Args:
          buffer   : writable buffer to fill
          position : position to read from, or the cursor position if ``None``
          length   : number of bytes to read, or the rest of ``buffer`` after
                     ``offset`` if ``None``
          offset   : index in ``buffer`` at which to put the first byte
        """
        if position is None:
            position = self.cursor.position
        if length is None:
            length = len(buffer) - offset
        if length < 0 or offset + length > len(buffer):
            raise ValueError(
                f"Cannot read {length=} bytes into a {len(buffer)} byte buffer "
                f"at {offset=}"
            )
        if length == 0:
            return 0
        log.debug(f"peek {position=} {length=}")
        end = min(self.size - 1, position + length - 1)
        if end < position:
            return 0
        await self.ensure_range(position, end)
        n_bytes = end - position + 1
        self.cache.read(buffer, offset, position, n_bytes)
        return n_bytes

    async def read(
        self,
        buffer: bytearray | memoryview,
        position: int | None = None,
        length: int | None = None,
        offset: int = 0,
    ) -> int:
        """
        As for :meth:`peek`, but moving the cursor: first to ``position`` (if given),
        then on past the bytes read.
        """
        if position is not None:
            self.cursor.position = position
        n_bytes = await self.peek(buffer, length=length, offset=offset)
        self.cursor.position += n_bytes
        return n_bytes

    def ignore(self, length: int) -> int:
        """
        Skip ``length`` bytes (or as many as remain) without reading them.
        Returns the number of bytes the cursor moved.
        """
        n_bytes = max(0, min(length, self.cursor.remaining))
        self.cursor.position += n_bytes
        return n_bytes

    def abort(self) -> None:
        """
        Abort any fetch in flight and refuse any further fetches.
        """
        if not self.signal.aborted:
            log.debug(f"Aborting reader on '{self.resource_info.url}'")
        self.signal.abort()
        self.transport.abort()

    async def ensure_range(self, start: int, end: int) -> None:
        """
        Make sure the inclusive range ``[start, end]`` is cached, fetching a
        window starting at ``start`` of at least ``minimum_chunk_size`` bytes
        (but not past the end of the resource) if it is not.
        """
        if self.cache.contains(start, end):
            log.debug(f"Read {start}..{end} from cache")
            return
        if start > self.size - 1:
            raise EndOfResourceError(position=start, size=self.size)
        self.signal.raise_if_aborted()
        log.debug(f"request range {start}..{end}")
        window = round_range((start, end), self.minimum_chunk_size)
        window = clip_range(window, self.size)
        log.debug(f"blocked range {window[0]}..{window[1]}")
        payload = await self.transport.fetch("GET", window, signal=self.signal)
        # The transport may have completed after an abort it did not observe
        self.signal.raise_if_aborted()
        if len(payload) != termini_len(window):
            raise IncompletePayloadError(requested=window, received=len(payload))
        self.cache.insert(window[0], payload)

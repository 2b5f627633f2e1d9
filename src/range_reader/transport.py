r""":mod:`range_reader.transport` provides the HTTP side of a
:class:`~range_reader.coordinator.RangeCoordinator`: the
:class:`~range_reader.transport.RangeTransport` protocol it fetches through,
an implementation of it on ``httpx`` (:class:`HTTPRangeTransport`), and
:func:`open_range_reader` to set both up for a URL.

The total size of the file is looked up before reading, either from the
``content-length`` of a HEAD request, or (if ``avoid_head`` is ``True``, for
servers which do not answer HEAD requests properly) from the total given in the
``content-range`` of a ranged GET request for the first few kilobytes, which
are then kept in the cache rather than thrown away.

    >>> from range_reader import open_range_reader, _EXAMPLE_URL
    >>> reader = await open_range_reader(_EXAMPLE_URL) # doctest: +SKIP
    >>> reader.size # doctest: +SKIP
    11
"""
from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Protocol, runtime_checkable

MYPY = False  # when using mypy will be overrided as True
if MYPY or not TYPE_CHECKING:  # pragma: no cover
    import httpx  # avoid importing to Sphinx type checker

from .abort import AbortSignal
from .coordinator import DEFAULT_MINIMUM_CHUNK_SIZE, RangeCoordinator
from .errors import AbortedError, MissingResourceInfoError
from .http_utils import detect_header_value
from .log_utils import log
from .request import RangeRequest
from .types import ResourceInfo

__all__ = [
    "RangeTransport",
    "HTTPRangeTransport",
    "open_range_reader",
    "DEFAULT_INITIAL_CHUNK_SIZE",
]

DEFAULT_INITIAL_CHUNK_SIZE = 4096


@runtime_checkable
class RangeTransport(Protocol):
    """
    Fetches inclusive byte windows of a single resource.
    """

    async def fetch(
        self,
        method: str,
        byte_range: tuple[int, int],
        signal: AbortSignal | None = None,
    ) -> bytes:
        """
        Return exactly the bytes at positions ``[start, end]`` of the resource,
        raising :class:`~range_reader.errors.AbortedError` if ``signal`` is
        aborted before they arrive.
        """
        ...

    def abort(self) -> None:
        """
        Cancel any fetch in flight.
        """
        ...


class HTTPRangeTransport:
    """
    A :class:`RangeTransport` sending HTTP range requests for ``url``.

    If no ``client`` is given, a fresh ``httpx.AsyncClient`` is created (and
    closed by :meth:`aclose`), otherwise the client provided is not closed
    (you must handle this yourself).
    """

    def __init__(self, url: str, client=None):  # don't hint httpx (Sphinx gives error)
        self.url = url
        self._owns_client = client is None
        self.client = httpx.AsyncClient() if client is None else client
        self._in_flight: set[asyncio.Future] = set()
        self._aborted = False
        self.requests_sent = 0
        self.bytes_fetched = 0  # running total

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__} ⠶ {self.requests_sent} requests "
            f"({self.bytes_fetched} bytes) @ '{self.url}'"
        )

    @property
    def aborted(self) -> bool:
        return self._aborted

    async def fetch(
        self,
        method: str,
        byte_range: tuple[int, int],
        signal: AbortSignal | None = None,
    ) -> bytes:
        """
        Send a partial content request for the inclusive ``byte_range`` and
        return its payload. Errors from ``httpx`` are not caught.
        """
        if signal is not None:
            signal.raise_if_aborted()
        if self._aborted:
            raise AbortedError(f"Transport for '{self.url}' was aborted")
        request = RangeRequest(
            byte_range=byte_range, url=self.url, client=self.client, method=method
        )
        task = asyncio.ensure_future(request.send())
        self._in_flight.add(task)
        try:
            payload = await (task if signal is None else signal.guard(task))
        except asyncio.CancelledError:
            if self._aborted or (signal is not None and signal.aborted):
                raise AbortedError(f"Fetch of {request} was aborted") from None
            raise
        finally:
            self._in_flight.discard(task)
        self.requests_sent += 1
        self.bytes_fetched += len(payload)
        return payload

    def abort(self) -> None:
        self._aborted = True
        for task in list(self._in_flight):
            task.cancel()

    async def get_resource_info(
        self,
        avoid_head: bool = False,
        initial_chunk_size: int = DEFAULT_INITIAL_CHUNK_SIZE,
    ) -> tuple[ResourceInfo, bytes]:
        """
        Look up the size (and MIME type) of the resource.

        Returns the :class:`~range_reader.types.ResourceInfo` and the bytes from
        the start of the resource that were received along the way (empty, unless
        ``avoid_head`` is ``True``).

        Args:
          avoid_head         : Whether to send a ranged GET request for the first
                               ``initial_chunk_size`` bytes rather than a HEAD
                               request.
          initial_chunk_size : number of bytes to request if ``avoid_head``
        """
        if avoid_head:
            return await self.send_initial_request(initial_chunk_size)
        return await self.send_head_request(), b""

    async def send_head_request(self) -> ResourceInfo:
        """
        Send a 'plain' HEAD request without range headers, raising for status ASAP,
        and read the total size from its ``content-length`` header (raising
        :class:`~range_reader.errors.MissingResourceInfoError` if it is absent or
        not a byte count).
        """
        req = self.client.build_request(method="HEAD", url=self.url)
        resp = await self.client.send(request=req)
        resp.raise_for_status()
        try:
            total_length = detect_header_value(
                headers=resp.headers,
                key="content-length",
                source="HEAD request response",
            )
            size = int(total_length)
        except (KeyError, ValueError) as exc:
            raise MissingResourceInfoError(
                f"HEAD request did not give the size of '{self.url}' ({exc})"
            ) from exc
        if size < 0:
            raise MissingResourceInfoError(
                f"HEAD request gave a negative size for '{self.url}' ({size})"
            )
        log.debug(f"HEAD '{self.url}' gave content-length {size}")
        return ResourceInfo(
            url=self.url,
            size=size,
            mime_type=resp.headers.get("content-type"),
        )

    async def send_initial_request(
        self, initial_chunk_size: int
    ) -> tuple[ResourceInfo, bytes]:
        """
        Request the first ``initial_chunk_size`` bytes, taking the total size from
        the ``content-range`` header. A resource shorter than this gets confirmed
        (and sent) in full, so only the start of the confirmed range is checked
        (the payload must still be as long as the range confirmed).
        """
        request = RangeRequest(
            byte_range=(0, initial_chunk_size - 1),
            url=self.url,
            client=self.client,
            exact=False,
        )
        payload = await request.send()
        total_length = request.total_content_length
        if total_length is None:
            raise MissingResourceInfoError(
                f"Server did not give the total size of '{self.url}'"
            )
        log.debug(f"GET '{self.url}' gave content-range total {total_length}")
        self.requests_sent += 1
        self.bytes_fetched += len(payload)
        info = ResourceInfo(
            url=self.url,
            size=total_length,
            mime_type=request.response.headers.get("content-type"),
        )
        return info, payload

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def __aenter__(self) -> HTTPRangeTransport:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()


async def open_range_reader(
    url: str,
    client=None,
    minimum_chunk_size: int = DEFAULT_MINIMUM_CHUNK_SIZE,
    avoid_head: bool = False,
    initial_chunk_size: int = DEFAULT_INITIAL_CHUNK_SIZE,
    signal: AbortSignal | None = None,
) -> RangeCoordinator:
    """
    Look up the size of the resource at ``url`` and return a
    :class:`~range_reader.coordinator.RangeCoordinator` reading it through a
    :class:`HTTPRangeTransport`.

    Args:
      url                : The URL of the file to be read
      client             : (``httpx.AsyncClient`` | ``None``) The HTTPX client
                           to use for HTTP requests
      minimum_chunk_size : The smallest window (in bytes) to fetch on a cache miss
      avoid_head         : Whether to find the size from a ranged GET request
                           (whose bytes seed the cache) rather than a HEAD request
      initial_chunk_size : The size of that ranged GET request
      signal             : The :class:`~range_reader.abort.AbortSignal` to abort
                           the reader with (a fresh one if ``None``)
    """
    RangeCoordinator.check_minimum_chunk_size(minimum_chunk_size)
    transport = HTTPRangeTransport(url=url, client=client)
    try:
        info, initial_bytes = await transport.get_resource_info(
            avoid_head=avoid_head, initial_chunk_size=initial_chunk_size
        )
        reader = RangeCoordinator(
            transport=transport,
            resource_info=info,
            minimum_chunk_size=minimum_chunk_size,
            signal=signal,
        )
    except BaseException:
        await transport.aclose()
        raise
    reader.cache.insert(0, initial_bytes)
    return reader

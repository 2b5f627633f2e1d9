r""":mod:`range_reader.async_utils` reads many remote files at once: an
:class:`~range_reader.async_utils.AsyncFetcher` opens a
:class:`~range_reader.coordinator.RangeCoordinator` on each URL (at most
``task_limit`` at a time) and hands each one to an async callback.

    >>> from range_reader.async_utils import AsyncFetcher
    >>> async def first_byte(fetcher, reader, url):
    ...     buf = bytearray(1)
    ...     await reader.read(buf)
    ...     return bytes(buf)
    >>> fetcher = AsyncFetcher(urls=urls, callback=first_byte) # doctest: +SKIP
    >>> fetcher.make_calls() # doctest: +SKIP
    >>> fetcher.results # doctest: +SKIP
    {'https://example.com/a.zip': b'P', 'https://example.com/b.png': b'\x89'}

A URL whose reader could not be opened (e.g. a 404, or a server which does not
give the size) is logged and its error kept in
:attr:`~range_reader.async_utils.AsyncFetcher.failures` rather than stopping the
rest. Either way the URL counts as completed, so calling
:meth:`~range_reader.async_utils.AsyncFetcher.make_calls` again (say after an
interrupt) only visits the URLs not yet reached.
"""
from __future__ import annotations

import asyncio
from asyncio.events import AbstractEventLoop
from functools import partial
from signal import SIGINT, SIGTERM, Signals
from sys import stderr
from typing import TYPE_CHECKING, Any, Callable, Coroutine, Iterator

from aiostream import stream
from ranges import Range, RangeSet

MYPY = False  # when using mypy will be overrided as True
if MYPY or not TYPE_CHECKING:  # pragma: no cover
    import httpx  # avoid importing to Sphinx type checker

from tqdm.asyncio import tqdm_asyncio

from .abort import AbortSignal
from .errors import RangeReaderError
from .http_utils import PartialContentStatusError
from .log_utils import log, set_up_logging
from .transport import open_range_reader

if TYPE_CHECKING:  # pragma: no cover
    from .coordinator import RangeCoordinator

__all__ = ["SignalHaltError", "AsyncFetcher"]


class AsyncFetcher:
    def __init__(
        self,
        urls: list[str],
        callback: Callable | None = None,
        verbose: bool = False,
        show_progress_bar: bool = True,
        timeout_s: float = 5.0,
        client=None,
        task_limit: int = 20,
        **kwargs,
    ):
        """
        Any kwargs are passed through to
        :func:`~range_reader.transport.open_range_reader` (e.g.
        ``minimum_chunk_size`` or ``avoid_head``).

        Args:
          urls              : The URLs to read (must not be empty)
          callback          : An async function awaited with 3 values: the
                              AsyncFetcher calling it, the
                              :class:`~range_reader.coordinator.RangeCoordinator`
                              opened on the URL, and the URL. Its return value is
                              stored in :attr:`results`.
          verbose           : Whether to log to the console (replaces the progress bar)
          show_progress_bar : Whether to show a ``tqdm`` progress bar
          timeout_s         : The ``httpx`` timeout for each request
          client            : (``httpx.AsyncClient`` | ``None``) A client to share
                              (left open afterwards), or ``None`` for a new one per run
          task_limit        : The most readers to open concurrently
        """
        if urls == []:
            raise ValueError("The list of URLs to fetch cannot be empty")
        self.reader_kwargs = kwargs
        self.url_list = urls
        self.callback = callback
        self.n = len(urls)
        self.verbose = verbose
        self.show_progress_bar = show_progress_bar and not self.verbose
        self.client = client
        self.timeout = httpx.Timeout(timeout=timeout_s)
        self.task_limit = task_limit
        self.completed = RangeSet()
        self.results: dict[str, Any] = {}
        self.failures: dict[str, Exception] = {}
        self.signal = AbortSignal()
        """
        The parent of the signal given to each reader opened in a run of
        :meth:`make_calls`, so that all of them are aborted together (as on SIGINT
        or SIGTERM) while a callback aborting its own reader leaves the rest be.
        """
        set_up_logging(quiet=not verbose)

    def __repr__(self) -> str:
        n_done = self.n - len(self.filtered_url_list)
        return f"{self.__class__.__name__} ⠶ {n_done}/{self.n} URLs completed"

    def make_calls(self):
        """
        Run an event loop over the URLs not yet completed. Can be called again
        after it returns (or is interrupted) to pick up where it left off.
        """
        pending = self.filtered_url_list
        if not pending:
            log.debug("All URLs already completed, nothing to fetch")
            return
        self.signal = AbortSignal()  # the last run's signal may be aborted
        if self.show_progress_bar:
            self.set_up_progress_bar()
        self.fetch_things(urls=iter(pending))
        if self.show_progress_bar:
            self.pbar.close()

    @property
    def filtered_url_list(self) -> list[str]:
        "The URLs whose rows are not yet in :attr:`completed`"
        return [u for (i, u) in enumerate(self.url_list) if i not in self.completed]

    def complete_row(self, row_index: int):
        """
        Add row ``row_index`` of :attr:`url_list` to the :attr:`completed`
        :class:`~ranges.RangeSet` (as the unit range ``[row_index, row_index+1)``).
        """
        self.completed.add(Range(row_index, row_index + 1))

    def mark_url_complete(self, url: str):
        """
        Mark the row of ``url`` in :attr:`url_list` completed, whether it was
        read or failed, so that it is skipped by later calls to :meth:`make_calls`.
        """
        self.complete_row(row_index=self.url_list.index(url))
        if self.show_progress_bar and hasattr(self, "pbar"):
            self.pbar.update()

    def set_up_progress_bar(self):
        n_already_fetched = self.n - len(self.filtered_url_list)
        self.pbar = tqdm_asyncio(total=self.n)
        if n_already_fetched:
            self.pbar.update(n_already_fetched)
            self.pbar.refresh()

    def fetch_things(self, urls: Iterator[str]):
        try:
            return asyncio.run(self.async_fetch_urlset(urls))
        except SignalHaltError:
            if self.show_progress_bar:
                self.pbar.disable = True
                self.pbar.close()

    async def fetch(self, client, url: str) -> tuple[str, RangeCoordinator | None]:
        """
        Open a reader on ``url``, or record why it could not be opened (in which
        case the reader given back is ``None``).

        Args:
          client : ``httpx.AsyncClient``
          url    : the URL to open a reader on
        """
        try:
            reader = await open_range_reader(
                url=url, client=client, signal=self.signal.child(), **self.reader_kwargs
            )
        except (httpx.HTTPError, PartialContentStatusError, RangeReaderError) as exc:
            log.warning(f"Could not open a reader on {url}: {exc!r}")
            self.failures[url] = exc
            self.mark_url_complete(url)
            return url, None
        return url, reader

    async def process_reader(self, url: str, reader: RangeCoordinator | None):
        """
        Await the :attr:`callback` on an opened reader, keeping what it returns
        in :attr:`results`, then close the reader.

        Args:
          url    : The URL the reader was opened on
          reader : The :class:`~range_reader.coordinator.RangeCoordinator` for
                   ``url`` (``None`` if it failed to open, which is skipped)
        """
        if reader is None:
            return
        try:
            if self.callback is not None:
                self.results[url] = await self.callback(self, reader, url)
        finally:
            await reader.aclose()
        if self.verbose:
            log.debug(f"Processed URL in async callback: {url}")
        self.mark_url_complete(url)

    async def async_fetch_urlset(
        self,
        urls: Iterator[str],
    ) -> Coroutine:
        """
        Without a :attr:`client`, make one for this run only (closing it
        afterwards). A client that was provided is used as is and left open, so
        it must not have been closed already.
        """
        await self.set_async_signal_handlers()
        if self.client is None:
            async with httpx.AsyncClient() as client:
                return await self.fetch_and_process(urls=urls, client=client)
        if self.client.is_closed:
            msg = (
                "Cannot use a closed client to fetch.\n\nDid you attempt to retry "
                " after using the client in a contextmanager block (which implicitly"
                " closes after exiting the block) perhaps?"
            )
            raise ValueError(msg)
        return await self.fetch_and_process(urls=urls, client=self.client)

    async def fetch_and_process(self, urls: Iterator[str], client):
        assert isinstance(client, httpx.AsyncClient)  # Not type checked due to Sphinx
        client.timeout = self.timeout
        pairs = stream.zip(stream.repeat(client), stream.iterate(urls))
        opened = stream.starmap(
            pairs, self.fetch, ordered=False, task_limit=self.task_limit
        )
        processed = stream.starmap(opened, self.process_reader)
        return await processed

    def immediate_exit(self, signal_enum: Signals, loop: AbstractEventLoop) -> None:
        self.signal.abort(reason=f"Received {signal_enum.name}")
        loop.stop()
        raise SignalHaltError(signal_enum=signal_enum)

    async def set_async_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for signal_enum in [SIGINT, SIGTERM]:
            exit_func = partial(self.immediate_exit, signal_enum=signal_enum, loop=loop)
            loop.add_signal_handler(signal_enum, exit_func)


class SignalHaltError(SystemExit):
    """
    Raised from the signal handler to leave the event loop at once, with the
    signal number as the exit code.
    """

    def __init__(self, signal_enum: Signals):
        self.signal_enum = signal_enum
        print("", file=stderr)  # Newline after the signal sequence printed to console
        log.critical(msg=repr(self))
        super().__init__(self.exit_code)

    @property
    def exit_code(self) -> int:
        return self.signal_enum.value

    def __repr__(self) -> str:
        return f"Exited due to {self.signal_enum.name}"

r"""
:mod:`range_reader` lets a parser read a remote file as if it were a local
random-access file, through HTTP `range requests
<https://developer.mozilla.org/en-US/docs/Web/HTTP/Range_requests>`_, without
downloading it in full.

Servers with support for HTTP range requests can provide partial content
requests, so a file format reader which skips about (e.g. reading a ZIP's
central directory at the end first, or only the header of an image) need only
download the parts it reads. Each read is served from a cache of the byte
windows fetched so far, and a request is only sent on a cache miss, for at least
``minimum_chunk_size`` bytes, since the cost of a request lies more in making
it than in its length.

A :class:`~range_reader.coordinator.RangeCoordinator` is opened on a URL by
:func:`~range_reader.transport.open_range_reader`, which first determines the
total length of the file (from a HEAD request, or with ``avoid_head=True`` from
the ``content-range`` header of a ranged GET request).

    >>> from range_reader import open_range_reader, _EXAMPLE_URL
    >>> reader = await open_range_reader(_EXAMPLE_URL) # doctest: +SKIP
    >>> buf = bytearray(5)
    >>> await reader.read(buf) # doctest: +SKIP
    5
    >>> bytes(buf[:1]) # doctest: +SKIP
    b'P'
    >>> reader.position # doctest: +SKIP
    5

Reads go into a buffer (like :meth:`io.RawIOBase.readinto`) and return the number
of bytes read, which is short at the end of the file. :meth:`peek` reads without
moving the cursor, :meth:`ignore` skips bytes without reading them, and
:meth:`set_position` moves the cursor anywhere.

The byte windows are held in a :class:`~range_reader.cache.ByteRangeCache`, whose
ranges are given as :class:`~ranges.Range` objects (from the externally
maintained `python-ranges <https://python-ranges.readthedocs.io/en/latest/>`_
library) in the usual Python convention of half-open intervals ``[start, stop)``.

    >>> reader.cache # doctest: +SKIP
    ByteRangeCache ⠶ [0, 11)

Many files can be read at once with an
:class:`~range_reader.async_utils.AsyncFetcher`, which opens a reader on each
URL and passes it to a callback.
"""

# Get classes into package namespace but exclude from __all__ so Sphinx can access types

from . import errors, http_utils, range_utils
from .abort import AbortSignal
from .cache import ByteRangeCache, Chunk
from .coordinator import RangeCoordinator
from .transport import HTTPRangeTransport, RangeTransport, open_range_reader
from .types import ContentRange, ResourceInfo

__all__ = [
    "abort",
    "cache",
    "coordinator",
    "transport",
    "request",
    "http_utils",
    "range_utils",
    "errors",
    "async_utils",
]

__version__ = "0.1.0"
__author__ = "range-reader maintainers"
__license__ = "MIT"
__description__ = "Random-access reading of remote files via range requests."

_EXAMPLE_DATA_URL = "https://github.com/lmmx/range-streams/raw/master/data/"
_EXAMPLE_URL = f"{_EXAMPLE_DATA_URL}example_text_file.txt"

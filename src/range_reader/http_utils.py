r"""When preparing a HTTP GET request, the HTTP `range request
<https://developer.mozilla.org/en-US/docs/Web/HTTP/Range_requests>`_
header must be provided as a :class:`dict`, for example:

.. code-block:: python

    {"range": "bytes=0-1"}

would request the two bytes at positions ``0`` and ``1`` (i.e. the inclusive
interval ``[0,1]``).

The server confirms the interval it actually sent in the `Content-Range
<https://developer.mozilla.org/en-US/docs/Web/HTTP/Headers/Content-Range>`_
header of its partial content response, along with the total size of the file
(or ``*`` if unknown), e.g. ``bytes 0-1/11``.
"""
from __future__ import annotations

import re

from .errors import MalformedContentRangeError
from .log_utils import log
from .range_utils import validate_termini
from .types import ContentRange

__all__ = [
    "byte_range_from_termini",
    "range_header",
    "parse_content_range",
    "PartialContentStatusError",
    "detect_header_value",
]

CONTENT_RANGE_PATTERN = re.compile(r"bytes (\d+)-(\d+)/(?:(\d+)|\*)", re.IGNORECASE)


def byte_range_from_termini(termini: tuple[int, int]) -> str:
    """Prepare the byte range substring for a HTTP `range request
    <https://developer.mozilla.org/en-US/docs/Web/HTTP/Range_requests>`_.

    For example:

      >>> from range_reader.http_utils import byte_range_from_termini
      >>> byte_range_from_termini((0, 1))
      '0-1'

    Args:
      termini : inclusive ``[start,end]`` positions of the bytes to be requested
                (0-based)

    Returns:
      A hyphen-separated string of start and end positions.
    """
    start_byte, end_byte = validate_termini(termini)
    return f"{start_byte}-{end_byte}"


def range_header(termini: tuple[int, int]) -> dict[str, str]:
    """
    Prepare a :class:`dict` to pass as a ``httpx`` request header
    with a single key ``range`` whose value is the byte range.

    For example:

      >>> from range_reader.http_utils import range_header
      >>> range_header((0, 1))
      {'range': 'bytes=0-1'}

    Args:
      termini : inclusive ``[start,end]`` positions of the bytes to be requested
                (0-based)

    Returns:
      :class:`dict` suitable to be passed to ``httpx.AsyncClient.build_request``
      in :meth:`~range_reader.request.RangeRequest.send`
    """
    byte_range = byte_range_from_termini(termini)
    return {"range": f"bytes={byte_range}"}


def parse_content_range(content_range: str) -> ContentRange:
    """
    Parse a ``content-range`` header value into a
    :class:`~range_reader.types.ContentRange`.

      >>> from range_reader.http_utils import parse_content_range
      >>> parse_content_range("bytes 0-9/100")
      ContentRange(first_byte_position=0, last_byte_position=9, instance_length=100)

    Raises :class:`~range_reader.errors.MalformedContentRangeError` for anything
    other than ``bytes <first>-<last>/<total>`` (where the total may be ``*``).
    """
    if not content_range:
        raise MalformedContentRangeError("Content range must be provided")
    log.debug(f"parse_content_range {content_range=}")
    parsed = CONTENT_RANGE_PATTERN.fullmatch(content_range.strip())
    if parsed is None:
        raise MalformedContentRangeError(
            f"Unknown Content-Range syntax: {content_range!r}"
        )
    first, last, total = parsed.groups()
    return ContentRange(
        first_byte_position=int(first),
        last_byte_position=int(last),
        instance_length=None if total is None else int(total),
    )


class PartialContentStatusError(Exception):
    """
    The response had any HTTP status code other than 206 (Partial Content).

    May be raised when calling
    :meth:`~range_reader.request.RangeRequest.raise_for_non_partial_content`
    """

    def __init__(self, *, request, response):
        super().__init__(f"Got HTTP {response.status_code} not 206 (Partial Content)")
        self.request = request
        self.response = response


def detect_header_value(headers, key: str, source: str = "Response"):
    """
    Detect a title case, lower case, or capitalised version of the given string.
    """
    variants = key.title(), key.lower(), key.capitalize()
    try:
        return next(headers.get(k) for k in variants if k in headers)
    except StopIteration:
        raise KeyError(f"{source} was missing '{key}' header")

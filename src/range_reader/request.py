from __future__ import annotations

from typing import TYPE_CHECKING

MYPY = False  # when using mypy will be overrided as True
if MYPY or not TYPE_CHECKING:  # pragma: no cover
    import httpx  # avoid importing to Sphinx type checker

from .errors import IncompletePayloadError
from .http_utils import (
    PartialContentStatusError,
    detect_header_value,
    parse_content_range,
    range_header,
)
from .range_utils import termini_len, validate_termini
from .types import ContentRange

__all__ = ["RangeRequest"]


class RangeRequest:
    """
    Send a single partial content request for an inclusive byte range through
    an ``httpx.AsyncClient``, keeping a reference to the client that sent it,
    and read the whole (confirmed) payload from the response stream.
    """

    content_range: ContentRange | None = None

    def __init__(
        self,
        byte_range: tuple[int, int],
        url: str,
        client,
        method: str = "GET",
        exact: bool = True,
    ):
        """
        Args:
          byte_range : inclusive ``[start,end]`` positions to request
          url        : The URL to be requested.
          client     : The ``httpx.AsyncClient`` to use for the request
          method     : The HTTP method (default: ``"GET"``)
          exact      : Whether the server must confirm exactly ``byte_range``, or
                       (if ``False``) may confirm a range starting at the same
                       position and ending earlier (as for a short resource)
        """
        self.range = validate_termini(byte_range)
        self.url = url
        self.client = client
        self.method = method
        self.exact = exact
        self.check_client()

    def __repr__(self) -> str:
        start, end = self.range
        cls_name = self.__class__.__name__
        return f"{cls_name} ⠶ {self.method} {start}-{end} @ '{self.url}'"

    @property
    def range_header(self) -> dict[str, str]:
        return range_header(self.range)

    async def send(self) -> bytes:
        """
        ``client.stream(method, url)`` with the range header, checking the
        status and the confirmed range before reading the body. The response
        is closed before returning (or raising).
        """
        self.request = self.client.build_request(
            method=self.method, url=self.url, headers=self.range_header
        )
        self.response = await self.client.send(request=self.request, stream=True)
        try:
            self.raise_for_non_partial_content()
            self.content_range = self.content_range_header()
            self.raise_for_unconfirmed_range()
            payload = await self.response.aread()
        finally:
            await self.close()
        self.raise_for_unconfirmed_payload(payload)
        return payload

    def raise_for_non_partial_content(self):
        """
        Raise the :class:`~range_reader.http_utils.PartialContentStatusError` if the
        response status code is anything other than 206 (Partial Content), as that is
        what was requested.
        """
        if self.response.status_code != 206:
            raise PartialContentStatusError(
                request=self.request, response=self.response
            )

    def content_range_header(self) -> ContentRange:
        """
        Validate request was range request by presence of ``content-range`` header,
        and parse it.
        """
        value = detect_header_value(headers=self.response.headers, key="content-range")
        return parse_content_range(value)

    def raise_for_unconfirmed_range(self):
        """
        Raise :class:`~range_reader.errors.IncompletePayloadError` if the server
        confirmed a different range from the one requested (or, if not
        :attr:`exact`, one not a prefix of it).
        """
        confirmed = (
            self.content_range.first_byte_position,
            self.content_range.last_byte_position,
        )
        if self.exact:
            is_confirmed = confirmed == self.range
        else:
            start, end = self.range
            is_confirmed = confirmed[0] == start and start <= confirmed[1] <= end
        if not is_confirmed:
            raise IncompletePayloadError(requested=self.range, received=confirmed)

    def raise_for_unconfirmed_payload(self, payload: bytes):
        """
        Raise :class:`~range_reader.errors.IncompletePayloadError` if the body is
        not exactly as long as the range confirmed in the ``content-range`` header.
        """
        confirmed = (
            self.content_range.first_byte_position,
            self.content_range.last_byte_position,
        )
        if len(payload) != termini_len(confirmed):
            raise IncompletePayloadError(requested=confirmed, received=len(payload))

    @property
    def total_content_length(self) -> int | None:
        """
        Obtain the total content length from the ``content-range`` header of the
        partial content response (``None`` if the server did not state it, or
        the request has not been sent).
        """
        if self.content_range is None:
            return None
        return self.content_range.instance_length

    async def close(self) -> None:
        """
        Close the :attr:`~range_reader.request.RangeRequest.response`.
        """
        if not self.response.is_closed:
            await self.response.aclose()

    def check_client(self):
        """
        Type checking workaround (Sphinx type hint extension does not like httpx
        so check the type manually with a method called at initialisation).
        """
        if not isinstance(self.client, httpx.AsyncClient):  # pragma: no cover
            raise NotImplementedError("Only HTTPX async clients currently supported")

from __future__ import annotations

__all__ = [
    "RangeReaderError",
    "InvalidConfigurationError",
    "MissingResourceInfoError",
    "EndOfResourceError",
    "AbortedError",
    "MissingDataError",
    "MalformedContentRangeError",
    "IncompletePayloadError",
]


class RangeReaderError(Exception):
    """
    Base class for the errors raised by this package (transport errors from
    ``httpx`` are passed through as they are and do not derive from it).
    """


class InvalidConfigurationError(RangeReaderError, ValueError):
    """
    The minimum chunk size given to a
    :class:`~range_reader.coordinator.RangeCoordinator` is not a non-negative
    integer.
    """


class MissingResourceInfoError(RangeReaderError):
    """
    The total size of the resource is not known, so no range can be resolved
    against it.
    """


class EndOfResourceError(RangeReaderError, EOFError):
    """
    A fetch was requested starting at or beyond the end of the resource.
    """

    def __init__(self, position: int, size: int):
        super().__init__(f"End-Of-Resource: {position=} is not below {size=}")
        self.position = position
        self.size = size


class AbortedError(RangeReaderError):
    """
    The reader was aborted, so the fetch this operation needed was cancelled
    or never issued.
    """


class MissingDataError(RangeReaderError, LookupError):
    """
    Bytes were read from a :class:`~range_reader.cache.ByteRangeCache` that
    does not hold them. The cache never fetches, so this indicates the caller
    skipped :meth:`~range_reader.cache.ByteRangeCache.contains`.
    """


class MalformedContentRangeError(RangeReaderError, ValueError):
    """
    A ``content-range`` header value did not match ``bytes <first>-<last>/<total>``.
    """


class IncompletePayloadError(RangeReaderError):
    """
    The transport returned (or confirmed) a different byte interval from the
    one that was requested.
    """

    def __init__(self, *, requested: tuple[int, int], received: int | tuple[int, int]):
        if isinstance(received, tuple):
            detail = f"confirmed range {received[0]}-{received[1]}"
        else:
            detail = f"got {received} bytes"
        start, end = requested
        super().__init__(f"Requested bytes {start}-{end} but {detail}")
        self.requested = requested
        self.received = received

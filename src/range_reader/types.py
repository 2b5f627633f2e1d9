from __future__ import annotations

from typing import NamedTuple

__all__ = ["ResourceInfo", "ContentRange"]


class ResourceInfo(NamedTuple):
    """
    What is known about the remote resource before any of its bytes are read.
    The ``size`` must be set for a
    :class:`~range_reader.coordinator.RangeCoordinator` to operate on it.
    """

    url: str = ""
    size: int | None = None
    mime_type: str | None = None


class ContentRange(NamedTuple):
    """
    A parsed ``content-range`` header value, i.e. the server's confirmation of
    the inclusive byte interval a partial content response covers. The
    ``instance_length`` is ``None`` when the server gave the total as ``*``.
    """

    first_byte_position: int
    last_byte_position: int
    instance_length: int | None = None

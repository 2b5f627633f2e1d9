r""":mod:`range_reader.cache` exposes the sparse byte cache
:class:`~range_reader.cache.ByteRangeCache` on which a
:class:`~range_reader.coordinator.RangeCoordinator` stores every window of
the resource fetched so far.

The cache holds :class:`~range_reader.cache.Chunk` objects in ascending order
of their start position, and keeps them disjoint *and* non-touching: a newly
inserted chunk is merged with every chunk it overlaps or abuts. Because of
this, a range that is fully cached always lies inside a single chunk, so
containment can be answered by a binary search on the chunk start positions.

    >>> from range_reader.cache import ByteRangeCache
    >>> cache = ByteRangeCache()
    >>> cache.insert(0, b"abc")
    >>> cache.insert(3, b"def")
    >>> cache
    ByteRangeCache ⠶ [0, 6)
    >>> cache.contains(2, 4)
    True
"""
from __future__ import annotations

from bisect import bisect_left, bisect_right
from typing import Iterator

from ranges import Range, RangeSet

from .errors import MissingDataError
from .range_utils import termini_range

__all__ = ["Chunk", "ByteRangeCache"]


class Chunk:
    """
    A contiguous run of bytes of the resource, stored with the inclusive
    positions ``[start, end]`` it was fetched from.
    """

    def __init__(self, start: int, data: bytes | bytearray):
        self.start = start
        self.data = bytearray(data)

    @property
    def end(self) -> int:
        return self.start + len(self.data) - 1

    @property
    def range(self) -> Range:
        """
        The positions covered, as a half-closed :class:`~ranges.Range`
        ``[start, end + 1)``.
        """
        return termini_range(self.start, self.end)

    def __len__(self) -> int:
        return len(self.data)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__} ⠶ {self.range}"


class ByteRangeCache:
    """
    An unbounded, append-only store of fetched byte windows. Data only ever
    enters through :meth:`insert`, and only leaves as copies through
    :meth:`read`, so chunks may be merged and reshaped freely.
    """

    _chunks: list[Chunk]
    _starts: list[int]
    """
    Start positions of ``_chunks``, kept in step with it for :mod:`bisect` lookup.
    """

    def __init__(self):
        self._chunks = []
        self._starts = []

    def __repr__(self) -> str:
        rngs = ", ".join(str(c.range) for c in self._chunks)
        return f"{self.__class__.__name__} ⠶ {rngs}"

    def __len__(self) -> int:
        return len(self._chunks)

    def __iter__(self) -> Iterator[Chunk]:
        return iter(self._chunks)

    @property
    def coverage(self) -> RangeSet:
        """
        The positions held in the cache as a :class:`~ranges.RangeSet`.
        """
        return RangeSet(*(c.range for c in self._chunks))

    @property
    def cached_bytes(self) -> int:
        return sum(map(len, self._chunks))

    def _chunk_index(self, position: int) -> int | None:
        """
        Index of the chunk containing ``position``, or ``None`` if it is not cached.
        """
        i = bisect_right(self._starts, position) - 1
        if i >= 0 and position <= self._chunks[i].end:
            return i
        return None

    def contains(self, start: int, end: int) -> bool:
        """
        Whether the inclusive range ``[start, end]`` is entirely cached.

        Args:
          start : first position of the range
          end   : last position of the range (not before ``start``)
        """
        if start > end:
            raise ValueError(f"Range start {start} is after its end {end}")
        i = self._chunk_index(start)
        return i is not None and end <= self._chunks[i].end

    def insert(self, start: int, data: bytes | bytearray) -> None:
        """
        Store ``data`` as the bytes at positions ``[start, start + len(data) - 1]``,
        merging it with any chunk it overlaps or abuts. Where it overlaps, the
        new bytes replace the previously cached ones.

        Args:
          start : position of the first byte of ``data`` in the resource
          data  : the fetched bytes
        """
        if start < 0:
            raise ValueError(f"Cannot insert data at negative position {start}")
        if not data:
            return
        end = start + len(data) - 1
        # Chunks ending at or after ``start - 1`` and starting at or before
        # ``end + 1`` touch the new data: these are ``_chunks[lo:hi]``
        lo = bisect_left(self._starts, start)
        if lo > 0 and self._chunks[lo - 1].end >= start - 1:
            lo -= 1
        hi = bisect_right(self._starts, end + 1)
        if lo == hi:
            merged = Chunk(start, data)
        else:
            merged_start = min(start, self._chunks[lo].start)
            merged_end = max(end, self._chunks[hi - 1].end)
            buf = bytearray(merged_end - merged_start + 1)
            for old in self._chunks[lo:hi]:
                offset = old.start - merged_start
                buf[offset : offset + len(old)] = old.data
            offset = start - merged_start
            buf[offset : offset + len(data)] = data
            merged = Chunk(merged_start, buf)
        self._chunks[lo:hi] = [merged]
        self._starts[lo:hi] = [merged.start]

    def read(
        self,
        target: bytearray | memoryview,
        target_offset: int,
        position: int,
        length: int,
    ) -> None:
        """
        Copy ``length`` cached bytes from ``position`` into ``target`` starting at
        ``target_offset``. The range must already be cached (this never fetches):
        if not, :class:`~range_reader.errors.MissingDataError` is raised.

        Args:
          target        : writable buffer to copy into
          target_offset : index in ``target`` at which to put the first byte
          position      : position in the resource of the first byte to copy
          length        : number of bytes to copy
        """
        if length == 0:
            return
        end = position + length - 1
        if length < 0 or not self.contains(position, end):
            raise MissingDataError(f"Bytes {position}-{end} are not in {self!r}")
        chunk = self._chunks[self._chunk_index(position)]
        rel = position - chunk.start
        with memoryview(target) as view:
            view[target_offset : target_offset + length] = chunk.data[
                rel : rel + length
            ]

r"""Helpers for the two interval conventions used in this package.

Fetch windows, cache queries and the HTTP ``range`` header all work in
*inclusive* byte termini ``[start, end]`` (given as a 2-tuple of integers),
while a :class:`~ranges.Range` from the `python-ranges
<https://python-ranges.readthedocs.io/en/latest/>`_ package is by default the
half-open interval ``[start, end)`` usual in Python.

    >>> from range_reader.range_utils import round_range, clip_range
    >>> round_range((10, 29), minimum_chunk_size=1000)
    (10, 1009)
    >>> clip_range((10, 1009), total_bytes=500)
    (10, 499)
"""
from __future__ import annotations

__all__ = [
    "range_termini",
    "range_len",
    "range_min",
    "range_max",
    "termini_range",
    "termini_len",
    "validate_termini",
    "round_range",
    "clip_range",
]

from ranges import Range


def range_termini(rng: Range) -> tuple[int, int]:
    """Get the inclusive start and end positions ``[start,end]``
    from a :class:`ranges.Range`. These are referred to as the
    'termini'. Ranges are always ascending.

    Args:
      rng : A :class:`~ranges.Range` (which by default will be
            half-closed, i.e. not inclusive of the end position).
    """
    if rng.isempty():
        raise ValueError("Empty range has no termini")
    # If range is not empty then can compare regardless of if interval is closed/open
    start = rng.start if rng.include_start else rng.start + 1
    end = rng.end if rng.include_end else rng.end - 1
    return start, end


def range_len(rng: Range) -> int:
    """Get the number of positions in a :class:`~ranges.Range`
    (``0`` for the empty range).

    Args:
      rng : A :class:`~ranges.Range` (which by default will be
            half-closed, i.e. not inclusive of the end position).
    """
    if rng.isempty():
        return 0
    rmin, rmax = range_termini(rng)
    return rmax - rmin + 1


def range_min(rng: Range) -> int:
    """Get the minimum (or start terminus) of a :class:`~ranges.Range`.

    Args:
      rng : A :class:`~ranges.Range` (which by default will be
            half-closed, i.e. not inclusive of the end position).
    """
    if rng.isempty():
        raise ValueError("Empty range has no minimum")
    return range_termini(rng)[0]


def range_max(rng: Range) -> int:
    """Get the maximum (or end terminus) of a :class:`~ranges.Range`.

    Args:
      rng : A :class:`~ranges.Range` (which by default will be
            half-closed, i.e. not inclusive of the end position).
    """
    if rng.isempty():
        raise ValueError("Empty range has no maximum")
    return range_termini(rng)[1]


def termini_range(start: int, end: int) -> Range:
    """Convert inclusive termini ``[start,end]`` to the equivalent half-closed
    :class:`~ranges.Range` ``[start,end+1)``.
    """
    return Range(start, end + 1)


def termini_len(termini: tuple[int, int]) -> int:
    start, end = termini
    return end - start + 1


def validate_termini(byte_range: Range | tuple[int, int]) -> tuple[int, int]:
    """Validate ``byte_range`` and convert to inclusive termini if given as a
    :class:`~ranges.Range`.

    Args:
      byte_range : Either a :class:`tuple` of two :class:`int` positions, taken
                   to be the inclusive ``[start,end]`` interval; or a non-empty
                   :class:`~ranges.Range`.
    """
    complain_about_types = (
        f"{byte_range=} must be a Range from the python-ranges"
        " package or an integer 2-tuple"
    )
    if isinstance(byte_range, Range):
        if not all(isinstance(o, int) for o in (byte_range.start, byte_range.end)):
            raise TypeError("Ranges must be discrete: use integers for start and end")
        byte_range = range_termini(byte_range)
    elif not isinstance(byte_range, tuple) or len(byte_range) != 2:
        raise TypeError(complain_about_types)
    elif not all(isinstance(x, int) and not isinstance(x, bool) for x in byte_range):
        raise TypeError(complain_about_types)
    start, end = byte_range
    if start < 0:
        raise ValueError(f"Range cannot start at a negative position ({start})")
    if start > end:
        raise ValueError(f"Range start {start} is after its end {end}")
    return start, end


def round_range(termini: tuple[int, int], minimum_chunk_size: int) -> tuple[int, int]:
    """Pad the inclusive termini up to at least ``minimum_chunk_size`` positions,
    keeping the start fixed. Never shrinks a range that is already longer.

    Args:
      termini            : inclusive ``[start,end]`` of the requested bytes
      minimum_chunk_size : the smallest number of bytes worth fetching at once
    """
    start, _ = termini
    new_length = max(minimum_chunk_size, termini_len(termini))
    return start, start + new_length - 1


def clip_range(termini: tuple[int, int], total_bytes: int) -> tuple[int, int]:
    """Clip the end terminus so the range does not pass the last position
    (``total_bytes - 1``) of the resource.
    """
    start, end = termini
    return start, min(total_bytes - 1, end)

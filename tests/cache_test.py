from pytest import fixture, mark, raises
from ranges import Range, RangeSet

from range_reader.cache import ByteRangeCache, Chunk
from range_reader.errors import MissingDataError

from .data import make_resource

RESOURCE = make_resource(1000)


def read_back(cache: ByteRangeCache, position: int, length: int) -> bytes:
    buf = bytearray(length)
    cache.read(buf, 0, position, length)
    return bytes(buf)


@fixture
def empty_cache():
    return ByteRangeCache()


@fixture
def gappy_cache():
    """
    Cache holding positions [0,9] and [20,29] of the resource.
    """
    cache = ByteRangeCache()
    cache.insert(0, RESOURCE[0:10])
    cache.insert(20, RESOURCE[20:30])
    return cache


def test_chunk():
    chunk = Chunk(5, b"hello")
    assert (chunk.start, chunk.end, len(chunk)) == (5, 9, 5)
    assert chunk.range == Range(5, 10)
    assert repr(chunk) == "Chunk ⠶ [5, 10)"


def test_empty_cache(empty_cache):
    assert len(empty_cache) == 0
    assert empty_cache.cached_bytes == 0
    assert empty_cache.coverage.isempty()
    assert not empty_cache.contains(0, 0)


def test_insert_empty_data_is_ignored(empty_cache):
    empty_cache.insert(10, b"")
    assert len(empty_cache) == 0


def test_insert_negative_position(empty_cache):
    with raises(ValueError, match="negative position"):
        empty_cache.insert(-1, b"x")


@mark.parametrize("start,end", [(0, 9), (20, 29), (3, 7), (25, 25)])
def test_contains_within_chunk(gappy_cache, start, end):
    assert gappy_cache.contains(start, end)


@mark.parametrize(
    "start,end", [(0, 10), (9, 20), (10, 19), (15, 25), (29, 30), (40, 40)]
)
def test_not_contains_across_gap(gappy_cache, start, end):
    assert not gappy_cache.contains(start, end)


def test_contains_backwards_range(gappy_cache):
    with raises(ValueError, match="is after its end"):
        gappy_cache.contains(5, 4)


def test_read_back_inserted(gappy_cache):
    assert read_back(gappy_cache, 0, 10) == RESOURCE[0:10]
    assert read_back(gappy_cache, 22, 5) == RESOURCE[22:27]


def test_read_into_offset(gappy_cache):
    buf = bytearray(b"-" * 8)
    gappy_cache.read(buf, 2, 21, 4)
    assert bytes(buf) == b"--" + RESOURCE[21:25] + b"--"


def test_read_into_memoryview(gappy_cache):
    buf = bytearray(6)
    gappy_cache.read(memoryview(buf)[3:], 0, 0, 3)
    assert bytes(buf) == bytes(3) + RESOURCE[0:3]


@mark.parametrize("position,length", [(5, 10), (10, 1), (25, 10), (100, 1)])
def test_read_missing_data(gappy_cache, position, length):
    with raises(MissingDataError, match="are not in"):
        read_back(gappy_cache, position, length)


def test_read_nothing(empty_cache):
    buf = bytearray(0)
    empty_cache.read(buf, 0, 500, 0)


def test_disjoint_chunks_stay_apart(gappy_cache):
    assert len(gappy_cache) == 2
    assert gappy_cache.coverage == RangeSet(Range(0, 10), Range(20, 30))
    assert repr(gappy_cache) == "ByteRangeCache ⠶ [0, 10), [20, 30)"


def test_adjacent_chunks_merge(empty_cache):
    empty_cache.insert(0, b"abc")
    empty_cache.insert(3, b"def")
    assert len(empty_cache) == 1
    assert read_back(empty_cache, 0, 6) == b"abcdef"
    assert repr(empty_cache) == "ByteRangeCache ⠶ [0, 6)"


def test_adjacent_before_merges(empty_cache):
    empty_cache.insert(3, b"def")
    empty_cache.insert(0, b"abc")
    assert len(empty_cache) == 1
    assert empty_cache.contains(0, 5)


def test_gap_filled_merges_both_sides(gappy_cache):
    gappy_cache.insert(10, RESOURCE[10:20])
    assert len(gappy_cache) == 1
    assert gappy_cache.contains(0, 29)
    assert read_back(gappy_cache, 0, 30) == RESOURCE[0:30]


def test_overlap_new_data_wins(empty_cache):
    empty_cache.insert(0, b"aaaaaa")
    empty_cache.insert(2, b"XX")
    assert read_back(empty_cache, 0, 6) == b"aaXXaa"
    empty_cache.insert(4, b"YYYY")
    assert read_back(empty_cache, 0, 8) == b"aaXXYYYY"
    assert len(empty_cache) == 1


def test_insert_spanning_several_chunks(empty_cache):
    for start in (0, 10, 20, 30):
        empty_cache.insert(start, b"o" * 5)
    assert len(empty_cache) == 4
    empty_cache.insert(3, b"n" * 25)
    assert len(empty_cache) == 2
    assert read_back(empty_cache, 0, 28) == b"ooo" + b"n" * 25
    assert empty_cache.coverage == RangeSet(Range(0, 28), Range(30, 35))
    assert empty_cache.cached_bytes == 33
    assert not empty_cache.contains(27, 30)


def test_chunks_sorted_and_separated(empty_cache):
    for start in (500, 0, 250, 100, 750):
        empty_cache.insert(start, RESOURCE[start : start + 50])
    chunks = list(empty_cache)
    assert [c.start for c in chunks] == sorted(c.start for c in chunks)
    for before, after in zip(chunks, chunks[1:]):
        assert before.end + 1 < after.start
    for chunk in chunks:
        assert bytes(chunk.data) == RESOURCE[chunk.start : chunk.end + 1]


def test_boundary_spanning_after_merge(empty_cache):
    empty_cache.insert(0, RESOURCE[0:100])
    empty_cache.insert(100, RESOURCE[100:200])
    assert empty_cache.contains(0, 199)
    assert empty_cache.contains(50, 150)
    assert not empty_cache.contains(50, 200)


def test_overlap_precedence(empty_cache):
    a, b = b"A" * 100, b"B" * 100
    empty_cache.insert(0, a)
    empty_cache.insert(50, b)
    assert read_back(empty_cache, 0, 50) == a[:50]
    assert read_back(empty_cache, 50, 50) == b[:50]
    assert read_back(empty_cache, 100, 50) == b[50:]


@mark.parametrize("start,length", [(0, 1), (17, 64), (300, 250)])
def test_every_sub_interval_contained(empty_cache, start, length):
    empty_cache.insert(start, RESOURCE[start : start + length])
    end = start + length - 1
    for i in range(start, end + 1, max(1, length // 7)):
        assert empty_cache.contains(i, end)
        assert empty_cache.contains(start, i)
    assert not empty_cache.contains(start, end + 1)
    if start > 0:
        assert not empty_cache.contains(start - 1, end)
    assert read_back(empty_cache, start, length) == RESOURCE[start : start + length]

#!filepath: tests/core/test_source_heap.py
import pytest

from logmerge.adapters.sources import ListLogSource
from logmerge.core.entry import LogEntry
from logmerge.core.heap import SourceHeap
from logmerge.merge.context import SourceContext


def make_ctx(index: int, ts) -> SourceContext:
    return SourceContext(
        index=index,
        source=ListLogSource([]),
        head=None if ts is None else LogEntry(ts, f"s{index}"),
    )


def test_extract_min_orders_by_head_timestamp():
    heap = SourceHeap()
    for i, ts in enumerate([7, 2, 9, 4]):
        heap.insert(make_ctx(i, ts))

    out = []
    while not heap.is_empty():
        out.append(heap.extract_min().head.timestamp)

    assert out == [2, 4, 7, 9]


def test_equal_timestamps_break_ties_by_source_index():
    heap = SourceHeap()
    heap.insert(make_ctx(2, 5))
    heap.insert(make_ctx(0, 5))
    heap.insert(make_ctx(1, 5))

    assert [heap.extract_min().index for _ in range(3)] == [0, 1, 2]


def test_reinsert_after_head_advance():
    heap = SourceHeap()
    a, b = make_ctx(0, 1), make_ctx(1, 2)
    heap.insert(a)
    heap.insert(b)

    ctx = heap.extract_min()
    assert ctx is a
    assert a not in heap

    a.head = LogEntry(3)
    heap.insert(a)

    assert len(heap) == 2
    assert heap.extract_min() is b
    assert heap.extract_min() is a


def test_duplicate_insert_rejected():
    heap = SourceHeap()
    ctx = make_ctx(0, 1)
    heap.insert(ctx)

    with pytest.raises(ValueError):
        heap.insert(ctx)


def test_insert_without_head_rejected():
    with pytest.raises(ValueError):
        SourceHeap().insert(make_ctx(0, None))


def test_extract_from_empty_heap():
    heap = SourceHeap()
    assert heap.is_empty()
    with pytest.raises(IndexError):
        heap.extract_min()

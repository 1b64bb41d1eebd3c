#!filepath: tests/merge/test_sync_merge.py
import pytest

from logmerge.adapters.sources import ListLogSource
from logmerge.core.entry import LogEntry
from logmerge.core.interfaces import LogSource
from logmerge.merge.sync_merge import iter_sorted, sync_sorted_merge
from logmerge.observability.metrics import MergeStats, MetricRecorder
from logmerge.utils.errors import SinkError, SourceFetchError


class ExplodingSource(LogSource):
    def __init__(self, good: int):
        self.good = good

    def pop(self):
        if self.good <= 0:
            raise ValueError("corrupt page")
        self.good -= 1
        return LogEntry(self.good)


def test_three_interleaved_sources(make_sources, sink):
    sources = make_sources([1, 4, 7], [2, 5, 8], [3, 6, 9])

    stats = sync_sorted_merge(sources, sink)

    assert sink.timestamps == [1, 2, 3, 4, 5, 6, 7, 8, 9]
    assert sink.done_calls == 1
    assert stats.emitted == 9
    assert stats.sources == 3
    assert stats.mode == "sync"


def test_empty_and_single_source(make_sources, sink):
    stats = sync_sorted_merge(make_sources([], [5]), sink)

    assert sink.timestamps == [5]
    assert sink.done_calls == 1
    assert stats.empty_sources == 1


def test_all_sources_empty(make_sources, sink):
    sync_sorted_merge(make_sources([], [], []), sink)

    assert sink.entries == []
    assert sink.done_calls == 1


def test_no_sources_at_all(sink):
    sync_sorted_merge([], sink)
    assert sink.done_calls == 1


def test_iter_sorted_is_lazy():
    sources = [ListLogSource.from_timestamps([1, 3]), ListLogSource.from_timestamps([2, 4])]
    it = iter_sorted(sources)

    assert next(it).timestamp == 1
    # 只拉了每个 source 的第一个
    assert [s.calls for s in sources] == [1, 1]

    assert [e.timestamp for e in it] == [2, 3, 4]
    # 每个 source 恰好查询到第一次 None
    assert [s.calls for s in sources] == [3, 3]


def test_equal_timestamps_follow_source_order():
    a = ListLogSource([LogEntry(1, "a1"), LogEntry(2, "a2")])
    b = ListLogSource([LogEntry(1, "b1"), LogEntry(2, "b2")])

    assert [e.payload for e in iter_sorted([b, a])] == ["b1", "a1", "b2", "a2"]


def test_stats_collected_by_iter_sorted(make_sources):
    stats = MergeStats(mode="sync")
    list(iter_sorted(make_sources([1], [], [2, 3]), stats))

    assert stats.sources == 3
    assert stats.empty_sources == 1


def test_source_failure_propagates(sink):
    sources = [ListLogSource.from_timestamps([0, 10]), ExplodingSource(good=1)]

    with pytest.raises(SourceFetchError) as exc_info:
        sync_sorted_merge(sources, sink)

    assert exc_info.value.source_index == 1
    assert sink.done_calls == 0


def test_sink_failure_propagates(make_sources):
    class BadSink:
        def print(self, entry):
            raise IOError("broken pipe")

        def done(self):
            raise AssertionError("done must not be called")

    with pytest.raises(SinkError):
        sync_sorted_merge(make_sources([1, 2]), BadSink())


def test_metrics_recorded(make_sources, sink):
    metrics = MetricRecorder()
    sync_sorted_merge(make_sources([1, 2], [3]), sink, metrics=metrics)

    assert metrics.metrics["sync.emitted"] == 3
    assert metrics.metrics["sync.sources"] == 2

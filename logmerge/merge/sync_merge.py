#!filepath: logmerge/merge/sync_merge.py
from __future__ import annotations

import heapq
from time import perf_counter
from typing import Any, Iterable, Iterator, List, Optional, Tuple

from logmerge import logs
from logmerge.core.entry import LogEntry
from logmerge.core.interfaces import LogSource, OutputSink
from logmerge.observability.metrics import MergeStats, MetricRecorder
from logmerge.utils.errors import SinkError, SourceFetchError


def _pop(index: int, source: LogSource) -> Optional[LogEntry]:
    try:
        return source.pop()
    except Exception as e:
        raise SourceFetchError(index, e) from e


def iter_sorted(
    sources: Iterable[LogSource],
    stats: Optional[MergeStats] = None,
) -> Iterator[LogEntry]:
    """
    同步 k-way merge（无 buffer、无并发），作为 async engine 的对照。

    heap item: (timestamp, source_index, entry, source)
    与 SourceHeap 使用同一排序键，相同输入下两者输出完全一致。
    """
    heap: List[Tuple[Any, int, LogEntry, LogSource]] = []

    # 初始化：每个 source 取第一个 entry
    for index, source in enumerate(sources):
        if stats is not None:
            stats.sources += 1
        entry = _pop(index, source)
        if entry is None:
            if stats is not None:
                stats.empty_sources += 1
            logs.warning(f"[SyncMerge] empty log source: #{index}")
            continue
        heap.append((entry.timestamp, index, entry, source))

    heapq.heapify(heap)

    while heap:
        _, index, entry, source = heap[0]
        yield entry

        # 推进该 source
        nxt = _pop(index, source)
        if nxt is None:
            heapq.heappop(heap)
        else:
            heapq.heapreplace(heap, (nxt.timestamp, index, nxt, source))


def sync_sorted_merge(
    sources: Iterable[LogSource],
    sink: OutputSink,
    *,
    metrics: Optional[MetricRecorder] = None,
) -> MergeStats:
    stats = MergeStats(mode="sync")
    start = perf_counter()

    for entry in iter_sorted(sources, stats):
        try:
            sink.print(entry)
        except Exception as e:
            raise SinkError(f"sink.print failed: {e!r}") from e
        stats.emitted += 1

    try:
        sink.done()
    except Exception as e:
        raise SinkError(f"sink.done failed: {e!r}") from e

    stats.elapsed = perf_counter() - start
    logs.info("Sync sort complete.")

    if metrics is not None:
        metrics.record_stats(stats)
    return stats

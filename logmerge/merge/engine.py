#!filepath: logmerge/merge/engine.py
from __future__ import annotations

import asyncio
from enum import Enum
from time import perf_counter
from typing import Iterable, List, Optional

from pydantic import ValidationError

from logmerge import logs
from logmerge.config.merge_config import MergeConfig
from logmerge.core.entry import LogEntry
from logmerge.core.heap import SourceHeap
from logmerge.core.interfaces import LogSource, OutputSink
from logmerge.merge.context import SourceContext
from logmerge.merge.prefetch import BufferBudget, PrefetchScheduler
from logmerge.observability.metrics import MergeStats, MetricRecorder
from logmerge.utils.errors import SinkError, SourceFetchError, UserInputError


class MergeState(str, Enum):
    IDLE = "IDLE"
    RUNNING = "RUNNING"
    WAITING_ON_FETCH = "WAITING_ON_FETCH"
    DONE = "DONE"
    FAILED = "FAILED"


class AsyncMergeEngine:
    """
    AsyncMergeEngine

    职责：
      - 多个 LogSource 的 k-way merge（按 timestamp 全局单调不回退）
      - 后台 prefetch，read-ahead 总量受 max_buffer 限制
      - 每个 entry 恰好输出一次；sink.done() 恰好调用一次

    输入假设：
      - 每个 source 内部 timestamp 升序（不校验）
      - timestamp 相等时按 source 在列表中的位置输出

    失败语义：
      - source / sink 任一失败 → 整个 merge 中止并向调用方抛出，
        不调用 done()，不重试
    """

    def __init__(
        self,
        sources: Iterable[LogSource],
        sink: OutputSink,
        *,
        config: Optional[MergeConfig] = None,
        max_buffer: Optional[int] = None,
        metrics: Optional[MetricRecorder] = None,
    ):
        if config is None:
            try:
                config = MergeConfig() if max_buffer is None else MergeConfig(max_buffer=max_buffer)
            except ValidationError as e:
                raise UserInputError(f"invalid max_buffer={max_buffer!r}") from e

        self.sources: List[LogSource] = list(sources)
        self.sink = sink
        self.max_buffer = config.max_buffer
        self.metrics = metrics

        self.state = MergeState.IDLE
        self.stats = MergeStats(mode="async", sources=len(self.sources))
        self._contexts: List[SourceContext] = []

    @property
    def buffered(self) -> int:
        """当前所有 read-ahead buffer 中的 entry 总数"""
        return sum(len(ctx.buffer) for ctx in self._contexts)

    # --------------------------------------------------
    async def run(self) -> MergeStats:
        if self.state is not MergeState.IDLE:
            raise RuntimeError(f"[AsyncMerge] engine already used (state={self.state.value})")

        self.state = MergeState.RUNNING
        start = perf_counter()
        budget = BufferBudget(self.max_buffer)
        scheduler = PrefetchScheduler(budget)
        heap = SourceHeap()

        try:
            await self._prime(heap, scheduler)
            await self._drive(heap, scheduler)
        except BaseException as e:
            self.state = MergeState.FAILED
            if isinstance(e, Exception):
                logs.error(f"[AsyncMerge] aborted after {self.stats.emitted} entries: {e}")
            raise
        finally:
            await scheduler.close()
            self.stats.peak_reserved = budget.peak
            self.stats.elapsed = perf_counter() - start

        if self.metrics is not None:
            self.metrics.record_stats(self.stats)
        return self.stats

    # --------------------------------------------------
    # 初始化：每个 source 并发取第一个 entry
    # --------------------------------------------------
    async def _prime(self, heap: SourceHeap, scheduler: PrefetchScheduler) -> None:
        tasks = [
            asyncio.ensure_future(self._fetch_first(index, source))
            for index, source in enumerate(self.sources)
        ]
        try:
            heads = await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        for index, (source, entry) in enumerate(zip(self.sources, heads)):
            if entry is None:
                self.stats.empty_sources += 1
                logs.warning(f"[AsyncMerge] empty log source: #{index}")
                continue

            ctx = SourceContext(index=index, source=source, head=entry)
            self._contexts.append(ctx)
            heap.insert(ctx)
            scheduler.maintain(ctx)

    @staticmethod
    async def _fetch_first(index: int, source: LogSource) -> Optional[LogEntry]:
        try:
            return await source.pop_async()
        except Exception as e:
            raise SourceFetchError(index, e) from e

    # --------------------------------------------------
    # 主循环：不断弹出最小 timestamp
    # --------------------------------------------------
    async def _drive(self, heap: SourceHeap, scheduler: PrefetchScheduler) -> None:
        while True:
            scheduler.raise_if_failed()

            if heap.is_empty():
                self._done()
                break

            ctx = heap.extract_min()
            self._emit(ctx.head)
            ctx.head = None

            if await self._refill(ctx, scheduler):
                heap.insert(ctx)

        self.state = MergeState.DONE
        logs.info("Async sort complete.")

    async def _refill(self, ctx: SourceContext, scheduler: PrefetchScheduler) -> bool:
        """
        为刚输出的 ctx 补上新的 head。返回 False 表示该 source 已彻底耗尽。
        """
        # CASE 1：buffer 里已有数据
        if ctx.buffer:
            ctx.head = ctx.buffer.popleft()
            scheduler.budget.release()
            scheduler.maintain(ctx)
            return True

        # CASE 2：后台 fetch 进行中，等它完成后重新判断
        if ctx.in_flight is not None:
            self.stats.fetch_waits += 1
            self.state = MergeState.WAITING_ON_FETCH
            await scheduler.wait_for(ctx)
            self.state = MergeState.RUNNING
            return await self._refill(ctx, scheduler)

        # CASE 3：source 已耗尽，堆缩小一个
        if ctx.drained:
            logs.debug(f"[AsyncMerge] source #{ctx.index} drained")
            return False

        # CASE 4：无 buffer、无 in-flight（max_buffer 很小时会出现），直接拉取
        self.stats.direct_fetches += 1
        self.state = MergeState.WAITING_ON_FETCH
        entry = await scheduler.fetch_direct(ctx)
        self.state = MergeState.RUNNING
        if entry is None:
            return False

        ctx.head = entry
        scheduler.maintain(ctx)
        return True

    # --------------------------------------------------
    def _emit(self, entry: LogEntry) -> None:
        try:
            self.sink.print(entry)
        except Exception as e:
            raise SinkError(f"sink.print failed: {e!r}") from e
        self.stats.emitted += 1

    def _done(self) -> None:
        try:
            self.sink.done()
        except Exception as e:
            raise SinkError(f"sink.done failed: {e!r}") from e


async def async_sorted_merge(
    sources: Iterable[LogSource],
    sink: OutputSink,
    *,
    max_buffer: Optional[int] = None,
    config: Optional[MergeConfig] = None,
    metrics: Optional[MetricRecorder] = None,
) -> MergeStats:
    """
    打印所有 source 的全部 entry（按时间顺序），完成后返回统计。
    """
    engine = AsyncMergeEngine(
        sources, sink, config=config, max_buffer=max_buffer, metrics=metrics
    )
    return await engine.run()

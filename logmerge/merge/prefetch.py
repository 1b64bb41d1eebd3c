#!filepath: logmerge/merge/prefetch.py
from __future__ import annotations

import asyncio
from typing import Optional, Set

from logmerge import logs
from logmerge.core.entry import LogEntry
from logmerge.merge.context import SourceContext
from logmerge.utils.errors import SourceFetchError, UserInputError


class BufferBudget:
    """
    全局 read-ahead 配额（所有 source 共享，单写者：事件循环线程）

    不变量：sum(len(ctx.buffer)) <= used <= capacity

    - fetch 发出时 reserve()
    - entry 从 buffer 提升为 head 时 release()
    - fetch 返回 None 时立即 release()（该槽位从未存放 entry）
    """

    def __init__(self, capacity: int):
        if capacity <= 0:
            raise UserInputError(f"buffer capacity must be positive, got {capacity}")
        self.capacity = capacity
        self.used = 0
        self.peak = 0

    @property
    def full(self) -> bool:
        return self.used >= self.capacity

    def reserve(self) -> None:
        if self.full:
            raise RuntimeError(f"[BufferBudget] reserve beyond capacity={self.capacity}")
        self.used += 1
        if self.used > self.peak:
            self.peak = self.used

    def release(self) -> None:
        if self.used <= 0:
            raise RuntimeError("[BufferBudget] release without reservation")
        self.used -= 1


class PrefetchScheduler:
    """
    PrefetchScheduler

    职责：
      - 在全局配额内让每个 source 的 buffer 尽量满
      - 每个 source 最多一个 fill task、最多一个 in-flight fetch
      - 后台 fetch 失败时记录第一个错误，由 driver 在下一次检查时抛出

    fill task 循环：fetch → 入 buffer → 检查配额 → 再 fetch，
    直到配额用完或 source 耗尽。配额释放后由 driver 再次调用 maintain()。
    必须在运行中的事件循环里构造。
    """

    def __init__(self, budget: BufferBudget):
        self.budget = budget
        self._loop = asyncio.get_running_loop()
        self._tasks: Set[asyncio.Task] = set()
        self._failure: Optional[SourceFetchError] = None
        self._failed: asyncio.Future = self._loop.create_future()

    # --------------------------------------------------
    def can_fetch(self, ctx: SourceContext) -> bool:
        return not (
            self.budget.full
            or ctx.exhausted
            or ctx.in_flight is not None
            or self._failure is not None
        )

    def maintain(self, ctx: SourceContext) -> None:
        """
        非阻塞：条件满足时为 ctx 启动后台 fill task，否则 no-op。
        """
        if not self.can_fetch(ctx):
            return

        # 同步占位：task 还没开始运行时 ctx 也已经是 in-flight 状态
        self._issue(ctx)
        task = self._loop.create_task(self._fill(ctx), name=f"prefetch-{ctx.index}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _issue(self, ctx: SourceContext) -> None:
        self.budget.reserve()
        ctx.in_flight = self._loop.create_future()

    async def _fill(self, ctx: SourceContext) -> None:
        while True:
            fetched = ctx.in_flight
            try:
                entry = await ctx.source.pop_async()
            except asyncio.CancelledError:
                self._abandon(ctx, fetched)
                raise
            except Exception as e:
                self._abandon(ctx, fetched)
                self._fail(ctx, e)
                return

            if entry is None:
                ctx.exhausted = True
                self.budget.release()
                logs.debug(f"[Prefetch] source #{ctx.index} exhausted")
            else:
                ctx.buffer.append(entry)

            ctx.in_flight = None
            fetched.set_result(entry)

            if not self.can_fetch(ctx):
                return
            self._issue(ctx)

    def _abandon(self, ctx: SourceContext, fetched: asyncio.Future) -> None:
        ctx.in_flight = None
        self.budget.release()
        fetched.cancel()

    def _fail(self, ctx: SourceContext, cause: Exception) -> None:
        if self._failure is not None:
            return
        err = SourceFetchError(ctx.index, cause)
        err.__cause__ = cause
        self._failure = err
        self._failed.set_result(None)
        logs.error(f"[Prefetch] {err}")

    # --------------------------------------------------
    def raise_if_failed(self) -> None:
        if self._failure is not None:
            raise self._failure

    async def wait_for(self, ctx: SourceContext) -> None:
        """
        挂起直到 ctx 当前的 in-flight fetch 完成（或任一后台 fetch 失败）。
        """
        fetched = ctx.in_flight
        if fetched is not None:
            await asyncio.wait(
                {fetched, self._failed},
                return_when=asyncio.FIRST_COMPLETED,
            )
        self.raise_if_failed()

    async def fetch_direct(self, ctx: SourceContext) -> Optional[LogEntry]:
        """
        driver 自己发起的一次 fetch（不占配额，结果直接成为 head）。

        和 wait_for 一样同时等待后台失败信号：其他 source 先失败时
        取消这次 fetch 并抛出那个失败。
        """
        fetched = self._loop.create_future()
        ctx.in_flight = fetched
        task = self._loop.create_task(ctx.source.pop_async(), name=f"direct-{ctx.index}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        try:
            await asyncio.wait(
                {task, self._failed},
                return_when=asyncio.FIRST_COMPLETED,
            )
            if not task.done():
                self.raise_if_failed()
            try:
                entry = task.result()
            except Exception as e:
                raise SourceFetchError(ctx.index, e) from e
        finally:
            ctx.in_flight = None
            if not task.done():
                task.cancel()

        if entry is None:
            ctx.exhausted = True
        fetched.set_result(entry)
        return entry

    async def close(self) -> None:
        """取消所有未完成的 fill / direct fetch task 并等待其退出"""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

#!filepath: logmerge/adapters/sources.py
from __future__ import annotations

import asyncio
import random
from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Tuple, Type

from logmerge.core.entry import LogEntry
from logmerge.core.interfaces import LogSource
from logmerge.config.retry_config import RetryConfig
from logmerge.utils.retry import call_with_retry, call_with_retry_async


class ListLogSource(LogSource):
    """
    内存 source：按给定顺序逐条返回，耗尽后一直返回 None。

    latency > 0 时 pop_async 会先 sleep，模拟 I/O 延迟。
    """

    def __init__(self, entries: Iterable[LogEntry], latency: float = 0.0):
        self._entries: List[LogEntry] = list(entries)
        self._pos = 0
        self.latency = latency
        self.calls = 0

    @classmethod
    def from_timestamps(cls, timestamps: Iterable, latency: float = 0.0) -> "ListLogSource":
        return cls((LogEntry(ts, f"msg@{ts}") for ts in timestamps), latency=latency)

    def pop(self) -> Optional[LogEntry]:
        self.calls += 1
        if self._pos >= len(self._entries):
            return None
        entry = self._entries[self._pos]
        self._pos += 1
        return entry

    async def pop_async(self) -> Optional[LogEntry]:
        if self.latency > 0:
            await asyncio.sleep(self.latency)
        else:
            await asyncio.sleep(0)
        return self.pop()

    def __len__(self) -> int:
        return len(self._entries)


_WORDS = (
    "connection", "request", "timeout", "retry", "cache", "worker",
    "shard", "flush", "commit", "index", "session", "queue",
)
_LEVELS = ("DEBUG", "INFO", "INFO", "INFO", "WARNING", "ERROR")


class RandomLogSource(LogSource):
    """
    Demo source：生成 count 条时间递增的随机日志。

    每条 entry 的时间在上一条基础上随机前进 (0, max_step] 秒；
    payload 为一行随机文本。
    """

    def __init__(
        self,
        count: int,
        *,
        start: Optional[datetime] = None,
        max_step: float = 3600.0,
        latency: float = 0.0,
        seed: Optional[int] = None,
    ):
        self.remaining = count
        self.latency = latency
        self._rng = random.Random(seed)
        self._last = start or datetime(2020, 1, 1) + timedelta(
            seconds=self._rng.uniform(0, 86400)
        )
        self._max_step = max_step

    def _next(self) -> LogEntry:
        self._last = self._last + timedelta(seconds=self._rng.uniform(0.001, self._max_step))
        words = " ".join(self._rng.choice(_WORDS) for _ in range(self._rng.randint(2, 5)))
        return LogEntry(self._last, f"{self._rng.choice(_LEVELS)} {words}")

    def pop(self) -> Optional[LogEntry]:
        if self.remaining <= 0:
            return None
        self.remaining -= 1
        return self._next()

    async def pop_async(self) -> Optional[LogEntry]:
        if self.latency > 0:
            # 随机延迟：模拟不同 source 的网络抖动
            await asyncio.sleep(self._rng.uniform(0, self.latency))
        else:
            await asyncio.sleep(0)
        return self.pop()


class RetryingSource(LogSource):
    """
    给不稳定的 source 加一层重试（指数退避）。

    merge engine 自身不重试；需要容错的 source 用它包一层。
    """

    def __init__(
        self,
        inner: LogSource,
        config: Optional[RetryConfig] = None,
        *,
        exceptions: Tuple[Type[Exception], ...] = (Exception,),
    ):
        self.inner = inner
        self.config = config or RetryConfig()
        self.exceptions = exceptions

    def pop(self) -> Optional[LogEntry]:
        return call_with_retry(self.inner.pop, self.config, self.exceptions)

    async def pop_async(self) -> Optional[LogEntry]:
        return await call_with_retry_async(self.inner.pop_async, self.config, self.exceptions)

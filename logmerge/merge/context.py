#!filepath: logmerge/merge/context.py
from __future__ import annotations

import asyncio
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Optional

from logmerge.core.entry import LogEntry
from logmerge.core.interfaces import LogSource


@dataclass(eq=False)
class SourceContext:
    """
    每个 source 一份的可变状态，只由 PrefetchScheduler / AsyncMergeEngine 持有。

    head:      当前参与堆比较的 entry（被 extract 之后、补位之前为 None）
    buffer:    已拉取、尚未提升为 head 的 entry（FIFO）
    in_flight: 当前未完成的 fetch（同一时刻最多一个）；
               future 在 buffer / exhausted 更新之后才 resolve
    exhausted: source 已返回 None，之后不再查询
    """

    index: int
    source: LogSource
    head: Optional[LogEntry] = None
    buffer: Deque[LogEntry] = field(default_factory=deque)
    in_flight: Optional[asyncio.Future] = None
    exhausted: bool = False

    @property
    def drained(self) -> bool:
        return self.exhausted and not self.buffer and self.head is None

    def __repr__(self) -> str:
        return (
            f"SourceContext(index={self.index}, head={self.head!r}, "
            f"buffered={len(self.buffer)}, in_flight={self.in_flight is not None}, "
            f"exhausted={self.exhausted})"
        )

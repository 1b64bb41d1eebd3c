#!filepath: logmerge/core/heap.py
from __future__ import annotations

import heapq
from typing import Any, List, Set, Tuple, TYPE_CHECKING

if TYPE_CHECKING:
    from logmerge.merge.context import SourceContext


class SourceHeap:
    """
    按 head.timestamp 排序的 SourceContext 小顶堆。

    heap item: (timestamp, source_index, ctx)

    timestamp 相等时按 source_index 排序，保证 replay 可复现；
    每个 ctx 在堆里最多出现一次，所以 (timestamp, index) 唯一，
    heapq 永远不会比较 ctx 本身。
    """

    def __init__(self) -> None:
        self._heap: List[Tuple[Any, int, "SourceContext"]] = []
        self._members: Set[int] = set()

    def insert(self, ctx: "SourceContext") -> None:
        if ctx.head is None:
            raise ValueError(f"[SourceHeap] source #{ctx.index} has no head entry")
        if ctx.index in self._members:
            raise ValueError(f"[SourceHeap] source #{ctx.index} already in heap")

        heapq.heappush(self._heap, (ctx.head.timestamp, ctx.index, ctx))
        self._members.add(ctx.index)

    def extract_min(self) -> "SourceContext":
        if not self._heap:
            raise IndexError("[SourceHeap] extract_min from empty heap")

        _, index, ctx = heapq.heappop(self._heap)
        self._members.discard(index)
        return ctx

    def is_empty(self) -> bool:
        return not self._heap

    def __len__(self) -> int:
        return len(self._heap)

    def __contains__(self, ctx: "SourceContext") -> bool:
        return ctx.index in self._members

#!filepath: logmerge/adapters/sinks.py
from __future__ import annotations

from time import perf_counter
from typing import Any, List, Optional

from rich.console import Console
from rich.markup import escape

from logmerge.core.entry import LogEntry
from logmerge.core.interfaces import OutputSink
from logmerge.utils.errors import OrderViolationError


class CollectingSink(OutputSink):
    """把输出收集到列表里（测试 / 嵌入式使用）"""

    def __init__(self) -> None:
        self.entries: List[LogEntry] = []
        self.done_calls = 0

    def print(self, entry: LogEntry) -> None:
        self.entries.append(entry)

    def done(self) -> None:
        self.done_calls += 1

    @property
    def timestamps(self) -> List[Any]:
        return [e.timestamp for e in self.entries]


class ConsolePrinter(OutputSink):
    """
    终端输出 sink

    - 逐条打印 entry（quiet=True 时只计数）
    - 校验 timestamp 不回退，回退时抛 OrderViolationError
    - done() 时打印汇总：条数 / 耗时 / 每秒条数
    """

    def __init__(self, console: Optional[Console] = None, quiet: bool = False):
        self.console = console or Console()
        self.quiet = quiet
        self.count = 0
        self.last: Optional[LogEntry] = None
        self._start: Optional[float] = None
        self.finished = False

    def print(self, entry: LogEntry) -> None:
        if self._start is None:
            self._start = perf_counter()

        if self.last is not None and entry.timestamp < self.last.timestamp:
            raise OrderViolationError(
                f"entry {entry.timestamp!r} printed after {self.last.timestamp!r}"
            )

        self.last = entry
        self.count += 1
        if not self.quiet:
            self.console.print(f"[cyan]{entry.timestamp}[/cyan] {escape(str(entry.payload))}", highlight=False)

    def done(self) -> None:
        if self.finished:
            raise RuntimeError("[ConsolePrinter] done() called twice")
        self.finished = True

        elapsed = perf_counter() - self._start if self._start is not None else 0.0
        rate = self.count / elapsed if elapsed > 0 else 0.0
        self.console.print()
        self.console.print("[bold]***********************************[/bold]")
        self.console.print(f"Logs printed:   {self.count}")
        self.console.print(f"Time taken (s): {elapsed:.3f}")
        self.console.print(f"Logs/s:         {rate:.1f}")
        self.console.print("[bold]***********************************[/bold]")

# logmerge/core/interfaces.py
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from logmerge.core.entry import LogEntry


class LogSource(ABC):
    """
    LogSource（外部协作者）

    契约：
      - 内部按 timestamp 升序（merge 不校验）
      - 返回 None 表示已耗尽，之后再调用也只会返回 None
      - merge 在第一次拿到 None 之后不会再查询
    """

    @abstractmethod
    def pop(self) -> Optional[LogEntry]:
        ...

    async def pop_async(self) -> Optional[LogEntry]:
        """
        默认退化为同步 pop()；有真实 I/O 的 source 应覆写。
        """
        return self.pop()


class OutputSink(ABC):
    """
    OutputSink（外部协作者）

    print() 按最终顺序逐条调用；done() 在最后一条之后恰好调用一次。
    """

    @abstractmethod
    def print(self, entry: LogEntry) -> None:
        ...

    @abstractmethod
    def done(self) -> None:
        ...

from __future__ import annotations
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class LogEntry:
    """
    一条带时间戳的日志

    timestamp: 任意可比较的值（int / float / datetime）
    payload:   不透明内容，merge 不读取
    """

    timestamp: Any
    payload: Any = None

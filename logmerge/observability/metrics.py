#!filepath: logmerge/observability/metrics.py
from __future__ import annotations

from dataclasses import dataclass, field, asdict
from typing import Dict, Any

from logmerge import logs


@dataclass
class MergeStats:
    """
    一次 merge 的运行统计（冷路径，merge 结束后才读取）
    """

    mode: str = "async"
    sources: int = 0
    empty_sources: int = 0
    emitted: int = 0
    # CASE 4：buffer 空、无 in-flight，只能直接 pop_async
    direct_fetches: int = 0
    # CASE 2：driver 等待后台 fetch 的次数
    fetch_waits: int = 0
    # 峰值占用的配额槽位（含 in-flight fetch），是 buffer 实际条目数的上界
    peak_reserved: int = 0
    elapsed: float = 0.0

    @property
    def throughput(self) -> float:
        if not self.elapsed:
            return 0.0
        return self.emitted / self.elapsed

    def as_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["throughput"] = self.throughput
        return d


@dataclass
class MetricRecorder:
    enabled: bool = True
    metrics: Dict[str, Any] = field(default_factory=dict)

    def record(self, name: str, value: Any):
        if not self.enabled:
            return
        self.metrics[name] = value
        logs.info(f"[Metric] {name} = {value}")

    def record_stats(self, stats: MergeStats, prefix: str | None = None):
        """把 MergeStats 的每个字段记为 <prefix>.<field>"""
        prefix = prefix or stats.mode
        for name, value in stats.as_dict().items():
            if name == "mode":
                continue
            self.record(f"{prefix}.{name}", value)

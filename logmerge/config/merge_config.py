#!filepath: logmerge/config/merge_config.py
from pydantic import BaseModel, PositiveInt

# 可按内存 / 吞吐权衡调整：越大打印越快，占用内存越多
DEFAULT_MAX_BUFFER = 100_000


class MergeConfig(BaseModel):
    """
    Async merge 参数

    max_buffer:
        所有 source read-ahead buffer 的条目总数上限（全局，不是 per-source）
    """

    max_buffer: PositiveInt = DEFAULT_MAX_BUFFER

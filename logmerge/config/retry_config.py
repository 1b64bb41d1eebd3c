#!filepath: logmerge/config/retry_config.py
from pydantic import BaseModel, Field, NonNegativeFloat, PositiveInt


class RetryConfig(BaseModel):
    """
    RetryingSource 的退避参数

    第 n 次失败后等待 delay * backoff ** (n - 1) 秒（jitter 时再乘 0.8~1.2）
    """

    max_attempts: PositiveInt = 3
    delay: NonNegativeFloat = 0.1
    backoff: float = Field(default=2.0, ge=1.0)
    jitter: bool = True

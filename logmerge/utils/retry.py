#!filepath: logmerge/utils/retry.py
import time
import random
import asyncio
from typing import Awaitable, Callable, Optional, Tuple, Type, TypeVar

from logmerge import logs
from logmerge.config.retry_config import RetryConfig

T = TypeVar("T")


def backoff_delay(cfg: RetryConfig, attempt: int) -> float:
    wait = cfg.delay * (cfg.backoff ** (attempt - 1))
    if cfg.jitter:
        wait = wait * random.uniform(0.8, 1.2)
    return wait


def _next_wait(cfg: RetryConfig, name: str, attempt: int, e: Exception) -> Optional[float]:
    """返回下一次重试前的等待秒数；None 表示放弃"""
    if attempt >= cfg.max_attempts:
        logs.error(f"[Retry] {name} failed after {attempt} attempts: {e!r}")
        return None

    wait = backoff_delay(cfg, attempt)
    logs.warning(
        f"[Retry] {name} attempt {attempt}/{cfg.max_attempts} failed: {e!r}. "
        f"retrying in {wait:.2f}s"
    )
    return wait


def call_with_retry(
    func: Callable[[], T],
    cfg: RetryConfig,
    exceptions: Tuple[Type[Exception], ...] = (Exception,),
) -> T:
    """
    同步重试：只重试 exceptions 中的异常，其他异常直接抛出。
    """
    name = getattr(func, "__qualname__", repr(func))
    attempt = 1
    while True:
        try:
            return func()
        except exceptions as e:
            wait = _next_wait(cfg, name, attempt, e)
            if wait is None:
                raise
            time.sleep(wait)
            attempt += 1


async def call_with_retry_async(
    func: Callable[[], Awaitable[T]],
    cfg: RetryConfig,
    exceptions: Tuple[Type[Exception], ...] = (Exception,),
) -> T:
    name = getattr(func, "__qualname__", repr(func))
    attempt = 1
    while True:
        try:
            return await func()
        except exceptions as e:
            wait = _next_wait(cfg, name, attempt, e)
            if wait is None:
                raise
            await asyncio.sleep(wait)
            attempt += 1

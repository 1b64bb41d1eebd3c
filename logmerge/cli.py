#!filepath: logmerge/cli.py
import asyncio
from enum import Enum
from typing import Optional

import typer
from pydantic import ValidationError
from rich import print
from rich.markup import escape

from logmerge import __version__, logs
from logmerge.adapters.sinks import ConsolePrinter
from logmerge.adapters.sources import RandomLogSource, RetryingSource
from logmerge.config.app_config import AppConfig
from logmerge.config.merge_config import MergeConfig
from logmerge.merge.engine import async_sorted_merge
from logmerge.merge.sync_merge import sync_sorted_merge
from logmerge.observability.metrics import MetricRecorder
from logmerge.utils.errors import UserInputError
from logmerge.utils.logger import Logging

app = typer.Typer(help="Time-ordered merge of sorted log sources")


class Mode(str, Enum):
    sync = "sync"
    async_ = "async"


@app.command()
def version():
    print(f"v{__version__}")


@app.command()
def demo(
    sources: int = typer.Option(10, "--sources", "-n", min=0, help="number of random log sources"),
    entries: int = typer.Option(100, "--entries", "-m", min=0, help="entries per source"),
    mode: Mode = typer.Option(Mode.async_, "--mode", help="merge implementation"),
    max_buffer: Optional[int] = typer.Option(None, "--max-buffer", help="override merge.max_buffer"),
    latency: float = typer.Option(0.0, "--latency", help="max simulated pop_async latency (s)"),
    seed: Optional[int] = typer.Option(None, "--seed", help="random seed"),
    config: Optional[str] = typer.Option(None, "--config", help="YAML config path"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="only print the summary"),
    with_retry: bool = typer.Option(False, "--retry", help="wrap every source with RetryingSource (retry.* config)"),
):
    """
    用随机 source 跑一次 merge 并打印结果
    """
    try:
        cfg = AppConfig.load(config)
        if max_buffer is not None:
            cfg.merge = MergeConfig(max_buffer=max_buffer)
    except (FileNotFoundError, UserInputError, ValidationError) as e:
        print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(code=2)

    Logging.from_config(cfg.log)

    log_sources = [
        RandomLogSource(
            entries,
            latency=latency,
            seed=None if seed is None else seed + i,
        )
        for i in range(sources)
    ]
    if with_retry:
        log_sources = [RetryingSource(s, cfg.retry) for s in log_sources]
    printer = ConsolePrinter(quiet=quiet)
    metrics = MetricRecorder()

    logs.info(
        f"[CLI] {mode.value} merge: sources={sources} entries={entries} "
        f"max_buffer={cfg.merge.max_buffer}"
    )
    if mode is Mode.sync:
        sync_sorted_merge(log_sources, printer, metrics=metrics)
    else:
        asyncio.run(async_sorted_merge(log_sources, printer, config=cfg.merge, metrics=metrics))


if __name__ == "__main__":
    app()

# python -m logmerge.cli demo --sources 100 --entries 1000 --quiet

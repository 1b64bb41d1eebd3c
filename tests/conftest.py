# tests/conftest.py
from __future__ import annotations

import pytest
from loguru import logger

from logmerge.adapters.sinks import CollectingSink
from logmerge.adapters.sources import ListLogSource


@pytest.fixture(autouse=True)
def disable_file_logger():
    logger.remove()
    logger.add(lambda msg: None)  # or sys.stderr
    yield


@pytest.fixture
def make_sources():
    """
    Factory fixture：每个参数是一个 timestamp 列表

    Usage:
        sources = make_sources([1, 4, 7], [2, 5, 8])
        sources = make_sources([1, 3], latency=0.001)
    """

    def _make(*timestamp_lists, latency: float = 0.0):
        return [ListLogSource.from_timestamps(ts, latency=latency) for ts in timestamp_lists]

    return _make


@pytest.fixture
def sink() -> CollectingSink:
    return CollectingSink()

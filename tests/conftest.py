"""Shared test fixtures."""

from __future__ import annotations

import numpy as np
import pytest

from pgmproc.utils.types import Grid


def make_grid(rows, max_value: int = 255) -> Grid:
    return Grid(np.asarray(rows, dtype=np.int64), max_value)


@pytest.fixture
def rng() -> np.random.Generator:
    return np.random.default_rng(20261019)


@pytest.fixture
def random_grid(rng) -> Grid:
    return Grid(rng.integers(1, 256, size=(12, 10)), 255)


@pytest.fixture
def two_bars() -> Grid:
    """10x10, 세로 막대(label 1) 와 가로 막대(label 2)"""
    px = np.zeros((10, 10), dtype=np.int64)
    px[1:6, 2] = 255       # 세로, 면적 5
    px[8, 4:9] = 255       # 가로, 면적 5
    return Grid(px, 255)

"""Shared pytest configuration and fixtures.

Puts `src` on `sys.path` so the tests run without installing the package.
"""

from __future__ import annotations

import sys
from collections.abc import Callable
from pathlib import Path

import numpy as np
import pytest

_SRC_PATH: Path = Path(__file__).resolve().parents[1] / "src"
if str(_SRC_PATH) not in sys.path:
    sys.path.insert(0, str(_SRC_PATH))


def _make_homogeneous_net(shape: tuple[int, ...], seed: int) -> np.ndarray:
    """Homogeneous net `(*shape, 4)` with normal points and weights in [0.5, 2]."""
    rng = np.random.default_rng(seed)
    points = rng.normal(size=(*shape, 3))
    weights = rng.uniform(0.5, 2.0, size=shape)
    return np.concatenate([points * weights[..., np.newaxis], weights[..., np.newaxis]], axis=-1)


@pytest.fixture
def homogeneous_net() -> Callable[[tuple[int, ...], int], np.ndarray]:
    """Factory of reproducible random rational control nets."""
    return _make_homogeneous_net

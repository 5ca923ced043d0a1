"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Generator

import pytest

from probegate.health.evaluator import Evaluator


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def evaluator() -> Generator[Evaluator, None, None]:
    """An evaluator with a short default deadline."""
    ev = Evaluator(timeout_seconds=1.0)
    yield ev
    ev.close()


@pytest.fixture
def sequential_evaluator() -> Generator[Evaluator, None, None]:
    ev = Evaluator(timeout_seconds=1.0, parallel=False)
    yield ev
    ev.close()

"""Shared fixtures for lwwset tests."""

from __future__ import annotations

import random
from datetime import datetime, timedelta
from typing import Any

import pytest

from lwwset import LWWElementSet

START = datetime(2018, 10, 2)


def build_random_set(
    rng: random.Random,
    start: datetime = START,
    operations: int = 1000,
) -> tuple[LWWElementSet[int], datetime]:
    """
    Build a set from a random history of adds and removes.

    Timestamps strictly increase, so no add and remove ever collide.
    Returns the set and the last timestamp used.
    """
    element_set: LWWElementSet[int] = LWWElementSet()
    timestamp = start
    for _ in range(operations):
        timestamp += timedelta(milliseconds=rng.randint(1, 10000))
        element = rng.randint(1, 99)
        # Present values can be added again or removed
        if element_set.lookup(element) and rng.randint(1, 9) % 2 != 0:
            element_set.remove(element, timestamp)
        else:
            element_set.add(element, timestamp)
    return element_set, timestamp


def seconds(n: float) -> datetime:
    return START + timedelta(seconds=n)


@pytest.fixture
def rng() -> random.Random:
    return random.Random(20181002)


@pytest.fixture
def counter_clock() -> Any:
    """A logical clock returning 1, 2, 3, ..."""
    ticks = iter(range(1, 1_000_000))
    return lambda: next(ticks)

"""Shared fixtures for the session tests."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from datetime import UTC, datetime, timedelta
import random

import pytest

from duel import CodeAllocator, InMemorySessionStore, SessionManager

START = datetime(2026, 1, 1, 12, 0, 0, tzinfo=UTC)


class FakeClock:
    """Manually advanced clock injected into ``SessionManager``."""

    def __init__(self, now: datetime = START) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, milliseconds: int) -> None:
        self.now += timedelta(milliseconds=milliseconds)


class ScriptedRandom(random.Random):
    """Random source whose ``randrange`` replays a fixed list of draws."""

    def __init__(self, draws: list[int]) -> None:
        super().__init__(0)
        self._draws = list(draws)

    def randrange(self, *args, **kwargs) -> int:  # type: ignore[override]
        if not self._draws:
            raise AssertionError("ScriptedRandom ran out of draws.")
        return self._draws.pop(0)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def scripted_rng() -> Callable[[list[int]], ScriptedRandom]:
    return ScriptedRandom


@pytest.fixture
def store() -> Iterator[InMemorySessionStore]:
    with InMemorySessionStore() as opened:
        yield opened


@pytest.fixture
def manager(store: InMemorySessionStore, clock: FakeClock) -> SessionManager:
    allocator = CodeAllocator(store, rng=random.Random(1234))
    return SessionManager(store, allocator=allocator, clock=clock)

"""Tests for game-code allocation."""

from __future__ import annotations

import random

import pytest

from duel import CodeAllocator, CodeSpaceExhaustedError, SessionManager
from duel.session import Session


def test_allocated_codes_are_four_zero_padded_digits(store) -> None:
    allocator = CodeAllocator(store, rng=random.Random(99))

    for _ in range(200):
        code = allocator.allocate()
        assert len(code) == 4
        assert code.isdigit()


def test_small_draws_are_zero_padded(store, scripted_rng) -> None:
    allocator = CodeAllocator(store, rng=scripted_rng([0, 7, 9999]))

    assert [allocator.allocate() for _ in range(3)] == ["0000", "0007", "9999"]


def test_allocator_skips_codes_in_use(store, clock, scripted_rng) -> None:
    store.insert(Session.create("0042", "Alice", clock()))
    allocator = CodeAllocator(store, rng=scripted_rng([42, 42, 43]))

    assert allocator.allocate() == "0043"


def test_forced_collision_never_yields_duplicate_codes(store, clock, scripted_rng) -> None:
    allocator = CodeAllocator(store, rng=scripted_rng([42, 42, 42, 77]))
    manager = SessionManager(store, allocator=allocator, clock=clock)

    first = manager.create_session("Alice")
    second = manager.create_session("Bob")

    assert first.code == "0042"
    assert second.code == "0077"
    assert store.codes() == ["0042", "0077"]


class _BlindStore:
    """Wraps a store so ``find_by_code`` misses, like a create racing another."""

    def __init__(self, inner) -> None:
        self.inner = inner

    def __getattr__(self, name):
        return getattr(self.inner, name)

    def find_by_code(self, code):
        return None


def test_insert_race_is_retried_with_a_new_code(store, clock, scripted_rng) -> None:
    store.insert(Session.create("0042", "Alice", clock()))
    blind = _BlindStore(store)
    allocator = CodeAllocator(blind, rng=scripted_rng([42, 43]))
    manager = SessionManager(blind, allocator=allocator, clock=clock)

    session = manager.create_session("Bob")

    assert session.code == "0043"
    assert store.find_by_code("0042").host_nickname == "Alice"


def test_exhausted_code_space_raises(store, clock, scripted_rng) -> None:
    store.insert(Session.create("0001", "Alice", clock()))
    allocator = CodeAllocator(store, rng=scripted_rng([1] * 5), max_attempts=5)

    with pytest.raises(CodeSpaceExhaustedError) as info:
        allocator.allocate()
    assert info.value.attempts == 5


def test_max_attempts_must_be_positive(store) -> None:
    with pytest.raises(ValueError):
        CodeAllocator(store, max_attempts=0)

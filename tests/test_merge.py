"""Tests for comparison and merging of LWWElementSets."""

from __future__ import annotations

from datetime import timedelta

import pytest

from conftest import START, build_random_set, seconds
from lwwset import LWWElementSet, TimestampedValue, hash_value


def assert_same_lookups(left: LWWElementSet[int], right: LWWElementSet[int]) -> None:
    for element in range(0, 101):
        assert left.lookup(element) == right.lookup(element), element


def test_compare_is_reflexive(rng):
    empty: LWWElementSet[int] = LWWElementSet()
    assert empty.compare(empty)
    assert empty.compare(empty.clone())

    element_set, _ = build_random_set(rng)
    assert element_set.compare(element_set)
    assert element_set.compare(element_set.clone())
    assert element_set <= element_set.clone()


def test_comparison(rng):
    first, latest = build_random_set(rng)
    second = first.clone()

    assert first.compare(second)

    # One more element in the clone keeps the original below it
    second.add(500, latest + timedelta(seconds=1))
    assert first.compare(second)
    assert not second.compare(first)

    # A new operation on the original breaks the relationship
    first.add(600, latest + timedelta(seconds=2))
    assert not first.compare(second)


def test_clone_stays_above_original_after_each_mutation(rng):
    original, latest = build_random_set(rng, operations=200)
    derived = original.clone()
    timestamp = latest
    for _ in range(200):
        timestamp += timedelta(milliseconds=rng.randint(1, 1000))
        element = rng.randint(1, 120)
        if derived.lookup(element) and rng.random() < 0.5:
            derived.remove(element, timestamp)
        else:
            derived.add(element, timestamp)
        assert original.compare(derived)


def test_compare_requires_remove_events_too():
    base: LWWElementSet[str] = LWWElementSet()
    base.add("a", 1)
    other = base.clone()
    base.remove("a", 2)
    assert not base.compare(other)
    assert other.compare(base)


def test_merge_is_above_both_inputs(rng):
    first, latest = build_random_set(rng)
    second, _ = build_random_set(rng, start=latest + timedelta(seconds=1))

    merged = first.merge(second)

    assert first.compare(merged)
    assert second.compare(merged)


def test_merge_is_idempotent(rng):
    element_set, _ = build_random_set(rng)
    merged = element_set.merge(element_set)
    assert merged == element_set
    assert_same_lookups(merged, element_set)


def test_merge_is_commutative(rng):
    first, _ = build_random_set(rng)
    second, _ = build_random_set(rng)

    left = first.merge(second)
    right = second.merge(first)

    assert left.add_log == right.add_log
    assert left.remove_log == right.remove_log
    assert_same_lookups(left, right)


def test_merge_is_associative(rng):
    first, _ = build_random_set(rng, operations=300)
    second, _ = build_random_set(rng, operations=300)
    third, _ = build_random_set(rng, operations=300)

    left = first.merge(second).merge(third)
    right = first.merge(second.merge(third))

    assert left.add_log == right.add_log
    assert left.remove_log == right.remove_log
    assert_same_lookups(left, right)


def test_merge_resolves_conflicts_toward_add():
    t = START
    first: LWWElementSet[int] = LWWElementSet()
    first.add(101, t + timedelta(seconds=1))

    second: LWWElementSet[int] = LWWElementSet()
    second.add(101, t)
    second.remove(101, t + timedelta(seconds=1))
    assert second.lookup(101) is False

    merged = first.merge(second)

    assert 101 in merged.add_log
    assert 101 not in merged.remove_log
    assert merged.lookup(101) is True
    assert first.compare(merged)
    assert not second.compare(merged)


def test_merge_keeps_non_colliding_removals():
    first: LWWElementSet[str] = LWWElementSet()
    first.add("a", 1)
    first.remove("a", 3)

    second: LWWElementSet[str] = LWWElementSet()
    second.add("a", 3)
    second.add("a", 5)
    second.remove("a", 4)

    merged = first.merge(second)

    assert merged.remove_log == {"a": [TimestampedValue("a", 4)]}
    assert merged.lookup("a") is True


def test_merge_does_not_mutate_inputs():
    first: LWWElementSet[int] = LWWElementSet()
    first.add(101, seconds(1))

    second: LWWElementSet[int] = LWWElementSet()
    second.add(101, seconds(0))
    second.remove(101, seconds(1))

    first_logs = (first.add_log, first.remove_log)
    second_logs = (second.add_log, second.remove_log)

    merged = first.merge(second)
    merged.add(7, seconds(9))

    assert (first.add_log, first.remove_log) == first_logs
    assert (second.add_log, second.remove_log) == second_logs
    assert second.lookup(101) is False
    assert first.lookup(7) is False


def test_merge_with_empty_set(rng):
    element_set, _ = build_random_set(rng, operations=100)
    empty: LWWElementSet[int] = LWWElementSet()
    assert element_set.merge(empty) == element_set
    assert empty.merge(element_set) == element_set
    assert empty.compare(element_set)


def test_merge_rejects_other_types():
    with pytest.raises(TypeError):
        LWWElementSet().merge({1, 2})  # type: ignore[arg-type]


def test_merge_rejects_different_key_strategies():
    with pytest.raises(ValueError):
        LWWElementSet(key=hash_value).merge(LWWElementSet())
    with pytest.raises(ValueError):
        LWWElementSet(key=hash_value).compare(LWWElementSet())


def test_merged_set_keeps_key_strategy():
    first: LWWElementSet[dict] = LWWElementSet(key=hash_value)
    first.add({"id": 1}, 1)
    second: LWWElementSet[dict] = LWWElementSet(key=hash_value)
    second.add({"id": 2}, 1)

    merged = first.merge(second)

    assert merged.key is hash_value
    assert merged.lookup({"id": 1}) and merged.lookup({"id": 2})

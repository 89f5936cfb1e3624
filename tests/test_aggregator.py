"""Unit tests for aggregates and the keyed aggregate map."""

from __future__ import annotations

import itertools

import pytest

from models.records import AggregateKey
from services.aggregator import Aggregate, KeyedAggregateMap


def _key(device: str = "A", month: int = 3, sensor_index: int = 0) -> AggregateKey:
    """Helper to build deterministic keys."""

    return AggregateKey(device=device, year=2024, month=month, sensor_index=sensor_index)


def _map(*entries: tuple[AggregateKey, float]) -> KeyedAggregateMap:
    result = KeyedAggregateMap()
    for key, value in entries:
        result.upsert(key, value)
    return result


def test_upsert_inserts_new_aggregate() -> None:
    stats = KeyedAggregateMap()

    stats.upsert(_key(), 4.5)

    assert len(stats) == 1
    assert stats.get(_key()) == Aggregate(min_value=4.5, max_value=4.5, total=4.5, count=1)


def test_upsert_updates_existing_key() -> None:
    stats = _map((_key(), 2.0), (_key(), -1.0), (_key(), 5.0))

    aggregate = stats.get(_key())
    assert len(stats) == 1
    assert aggregate is not None
    assert aggregate.min_value == -1.0
    assert aggregate.max_value == 5.0
    assert aggregate.total == 6.0
    assert aggregate.count == 3
    assert aggregate.mean_value == 2.0


def test_keys_differ_by_every_component() -> None:
    stats = _map(
        (_key(), 1.0),
        (_key(device="B"), 1.0),
        (_key(month=4), 1.0),
        (_key(sensor_index=5), 1.0),
        (AggregateKey("A", 2025, 3, 0), 1.0),
    )

    assert len(stats) == 5
    assert all(stats.get(key).count == 1 for key in stats)


def test_merge_combines_pairwise_and_copies_new_keys() -> None:
    left = _map((_key(), 1.0), (_key(), 3.0))
    right = _map((_key(), 0.5), (_key(device="B"), 7.0))

    left.merge(right)

    assert left.get(_key()) == Aggregate(min_value=0.5, max_value=3.0, total=4.5, count=3)
    copied = left.get(_key(device="B"))
    assert copied == Aggregate(min_value=7.0, max_value=7.0, total=7.0, count=1)

    copied.add(100.0)
    assert right.get(_key(device="B")).count == 1


def test_merge_is_order_independent() -> None:
    first = _map((_key(), 1.0), (_key(sensor_index=1), 10.0))
    second = _map((_key(), 4.0), (_key(device="B"), 2.0))
    third = _map((_key(), -2.0), (_key(sensor_index=1), 12.0), (_key(device="B"), 8.0))

    results = []
    for order in itertools.permutations((first, second, third)):
        merged = KeyedAggregateMap()
        for partial in order:
            merged.merge(partial)
        results.append(merged)

    grouped = KeyedAggregateMap().merge(first).merge(
        KeyedAggregateMap().merge(second).merge(third)
    )
    results.append(grouped)

    reference = results[0]
    for merged in results[1:]:
        assert set(merged) == set(reference)
        for key in reference:
            expected = reference.get(key)
            actual = merged.get(key)
            assert actual.min_value == expected.min_value
            assert actual.max_value == expected.max_value
            assert actual.count == expected.count
            assert actual.total == pytest.approx(expected.total)


def test_merge_with_empty_map_is_identity() -> None:
    stats = _map((_key(), 1.0), (_key(device="B"), 2.0))
    snapshot = KeyedAggregateMap().merge(stats)

    stats.merge(KeyedAggregateMap())

    assert stats == snapshot


def test_mean_stays_within_bounds() -> None:
    stats = _map(*((_key(), value) for value in (0.1, 0.2, 0.3, -7.25, 1e6)))

    aggregate = stats.get(_key())
    assert aggregate.min_value <= aggregate.mean_value <= aggregate.max_value

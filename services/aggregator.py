"""Mergeable statistics for sensor readings."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, ItemsView, Iterator, Optional

from models.records import AggregateKey


@dataclass(slots=True)
class Aggregate:
    """Running min/max/sum/count for one key. ``count`` is never zero."""

    min_value: float
    max_value: float
    total: float
    count: int

    @classmethod
    def from_value(cls, value: float) -> "Aggregate":
        return cls(min_value=value, max_value=value, total=value, count=1)

    @property
    def mean_value(self) -> float:
        return self.total / self.count

    def add(self, value: float) -> None:
        if value < self.min_value:
            self.min_value = value
        if value > self.max_value:
            self.max_value = value
        self.total += value
        self.count += 1

    def merge(self, other: "Aggregate") -> None:
        """Combine ``other`` into this aggregate in place."""
        if other.min_value < self.min_value:
            self.min_value = other.min_value
        if other.max_value > self.max_value:
            self.max_value = other.max_value
        self.total += other.total
        self.count += other.count

    def copy(self) -> "Aggregate":
        return Aggregate(self.min_value, self.max_value, self.total, self.count)


class KeyedAggregateMap:
    """Unordered collection of aggregates with at most one entry per key.

    Entries are indexed by the composite key, so lookups stay constant time
    regardless of how many devices and months are present.
    """

    def __init__(self) -> None:
        self._entries: Dict[AggregateKey, Aggregate] = {}

    def upsert(self, key: AggregateKey, value: float) -> None:
        """Fold a single reading into the aggregate for ``key``."""
        entry = self._entries.get(key)
        if entry is None:
            self._entries[key] = Aggregate.from_value(value)
        else:
            entry.add(value)

    def merge(self, other: "KeyedAggregateMap") -> "KeyedAggregateMap":
        """Combine every entry of ``other`` into this map and return it.

        Keys missing here receive a copy, so ``other`` is never aliased.
        """
        for key, aggregate in other.items():
            entry = self._entries.get(key)
            if entry is None:
                self._entries[key] = aggregate.copy()
            else:
                entry.merge(aggregate)
        return self

    def get(self, key: AggregateKey) -> Optional[Aggregate]:
        return self._entries.get(key)

    def items(self) -> ItemsView[AggregateKey, Aggregate]:
        return self._entries.items()

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __iter__(self) -> Iterator[AggregateKey]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, KeyedAggregateMap):
            return NotImplemented
        return self._entries == other._entries

    def __repr__(self) -> str:
        return f"KeyedAggregateMap(keys={len(self._entries)})"

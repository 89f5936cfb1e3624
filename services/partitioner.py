"""Static partitioning of a record sequence across a worker pool."""

from __future__ import annotations

from typing import List, Tuple


def partition(n_records: int, n_workers: int) -> List[Tuple[int, int]]:
    """Split ``n_records`` into ``n_workers`` contiguous half-open ranges.

    Every range holds ``n_records // n_workers`` items except the last one,
    which absorbs the remainder.
    """
    if n_workers < 1:
        raise ValueError("At least one worker is required.")
    if n_records < 0:
        raise ValueError("Record count cannot be negative.")

    chunk = n_records // n_workers
    ranges = [(index * chunk, (index + 1) * chunk) for index in range(n_workers - 1)]
    ranges.append(((n_workers - 1) * chunk, n_records))
    return ranges

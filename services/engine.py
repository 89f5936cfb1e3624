"""Fork-join aggregation of records over a fixed thread pool."""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from functools import lru_cache
from typing import Iterable, List, Optional, Sequence

from models.records import AggregateKey, Record
from services.aggregator import KeyedAggregateMap
from services.partitioner import partition
from settings import MAX_WORKERS, get_settings

logger = logging.getLogger(__name__)


def fold_slice(records: Sequence[Record], start: int, end: int) -> KeyedAggregateMap:
    """Aggregate ``records[start:end]`` into a new private map.

    Records are read in place by index; the shared sequence is never copied
    or mutated.
    """
    local_map = KeyedAggregateMap()
    for index in range(start, end):
        record = records[index]
        for sensor_index, value in enumerate(record.readings):
            key = AggregateKey(record.device, record.year, record.month, sensor_index)
            local_map.upsert(key, value)
    return local_map


def merge_maps(maps: Iterable[KeyedAggregateMap]) -> KeyedAggregateMap:
    """Fold partial maps, in the given order, into a fresh global map."""
    global_map = KeyedAggregateMap()
    for partial in maps:
        global_map.merge(partial)
    return global_map


class AggregationEngine:
    """Partitions records across workers and merges their partial maps."""

    def __init__(self, workers: int = 1) -> None:
        if workers < 1:
            raise ValueError("At least one worker is required.")
        self.workers = workers
        self.executor = ThreadPoolExecutor(
            max_workers=workers, thread_name_prefix="aggregation-worker"
        )

    def aggregate(self, records: Sequence[Record]) -> KeyedAggregateMap:
        """Run the full partition, fold, join and merge cycle over ``records``."""
        ranges = self.partition(len(records))
        futures = self.submit(records, ranges)
        partials = self.join(futures)
        return merge_maps(partials)

    def partition(self, n_records: int) -> List[tuple[int, int]]:
        return partition(n_records, self.workers)

    def submit(
        self, records: Sequence[Record], ranges: Sequence[tuple[int, int]]
    ) -> List[Future[KeyedAggregateMap]]:
        futures: List[Future[KeyedAggregateMap]] = []
        for worker, (start, end) in enumerate(ranges):
            logger.debug(
                "Dispatching slice",
                extra={"worker": worker, "start": start, "end": end},
            )
            futures.append(self.executor.submit(self.fold_slice, records, start, end))
        return futures

    def join(self, futures: Sequence[Future[KeyedAggregateMap]]) -> List[KeyedAggregateMap]:
        """Block until every worker is done and collect maps in worker order.

        A worker failure is re-raised here, after the remaining workers have
        completed, so no partial result escapes.
        """
        partials: List[KeyedAggregateMap] = []
        failure: Optional[BaseException] = None
        for worker, future in enumerate(futures):
            exc = future.exception()
            if exc is not None:
                failure = failure or exc
                continue
            local_map = future.result()
            logger.debug(
                "Worker finished",
                extra={"worker": worker, "key_count": len(local_map)},
            )
            partials.append(local_map)
        if failure is not None:
            raise failure
        return partials

    def fold_slice(
        self, records: Sequence[Record], start: int, end: int
    ) -> KeyedAggregateMap:
        return fold_slice(records, start, end)

    def shutdown(self) -> None:
        """Release the worker threads."""
        self.executor.shutdown(wait=True)


@lru_cache
def build_default_engine(workers: Optional[int] = None) -> AggregationEngine:
    """Factory that sizes the engine from settings unless told otherwise."""
    worker_count = min(workers or get_settings().processor_workers, MAX_WORKERS)
    return AggregationEngine(workers=worker_count)

"""Batch orchestration: ingest, filter, parallel fold, merge and emit."""

from __future__ import annotations

import logging
import time
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Optional

from models.summary import RunReport, RunStatus
from services.engine import AggregationEngine, build_default_engine, merge_maps
from services.errors import NoValidRecordsError
from services.ingest import Cutoff, RecordReader, filter_records
from services.report import ReportWriter, build_rows
from settings import get_settings

logger = logging.getLogger(__name__)


class PipelineStage(str, Enum):
    """Lifecycle of a single run; stages only ever move forward."""

    created = "created"
    loaded = "loaded"
    filtered = "filtered"
    partitioned = "partitioned"
    running = "running"
    joined = "joined"
    merged = "merged"
    emitted = "emitted"
    terminated = "terminated"


_STAGE_ORDER = list(PipelineStage)


class PipelineService:
    """Coordinates the collaborators of one input-to-output run."""

    def __init__(
        self,
        engine: AggregationEngine,
        reader: RecordReader,
        writer: ReportWriter,
        cutoff: Cutoff,
    ) -> None:
        self.engine = engine
        self.reader = reader
        self.writer = writer
        self.cutoff = cutoff
        self.stage = PipelineStage.created

    def run(self, input_path: Path, output_path: Path) -> RunReport:
        """Execute one batch run and return its report.

        Any fatal condition raises a ``PipelineError`` before the output file
        is touched.
        """
        start_time = time.perf_counter()
        self.stage = PipelineStage.created

        ingest = self.reader.load(input_path, self.cutoff)
        self._advance(PipelineStage.loaded, record_count=len(ingest.records))

        records, late_filtered = filter_records(ingest.records, self.cutoff)
        filtered_count = ingest.filtered_count + late_filtered
        self._advance(PipelineStage.filtered, record_count=len(records))
        if not records:
            raise NoValidRecordsError(
                f"No valid records dated {self.cutoff} or later in {input_path}."
            )

        ranges = self.engine.partition(len(records))
        self._advance(PipelineStage.partitioned)

        futures = self.engine.submit(records, ranges)
        self._advance(PipelineStage.running)

        partials = self.engine.join(futures)
        self._advance(PipelineStage.joined)

        global_map = merge_maps(partials)
        self._advance(PipelineStage.merged, key_count=len(global_map))

        rows = build_rows(global_map)
        self.writer.write(rows, output_path)
        self._advance(PipelineStage.emitted)

        processing_ms = int((time.perf_counter() - start_time) * 1000)
        status = RunStatus.partial if ingest.errors else RunStatus.processed
        report = RunReport(
            status=status,
            input_path=str(input_path),
            output_path=str(output_path),
            workers=self.engine.workers,
            line_count=ingest.line_count,
            record_count=len(records),
            filtered_count=filtered_count,
            key_count=len(global_map),
            processing_ms=processing_ms,
            rows=rows,
            errors=ingest.errors,
        )
        self._advance(PipelineStage.terminated, processing_ms=processing_ms)
        return report

    def _advance(self, stage: PipelineStage, **context: object) -> None:
        if _STAGE_ORDER.index(stage) <= _STAGE_ORDER.index(self.stage):
            raise RuntimeError(
                f"Cannot move pipeline from {self.stage.value} back to {stage.value}."
            )
        self.stage = stage
        logger.debug("Pipeline stage reached", extra={"stage": stage.value, **context})

    def shutdown(self) -> None:
        self.engine.shutdown()


@lru_cache
def build_default_pipeline(workers: Optional[int] = None) -> PipelineService:
    """Factory that wires the pipeline with default collaborators."""
    settings = get_settings()
    engine = build_default_engine(workers)
    return PipelineService(
        engine=engine,
        reader=RecordReader(),
        writer=ReportWriter(),
        cutoff=Cutoff(*settings.cutoff),
    )

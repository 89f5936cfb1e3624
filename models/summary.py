"""Pydantic schemas describing the outcome of a pipeline run."""

from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class RunStatus(str, Enum):
    """Final state of a run as reported to the caller."""

    processed = "processed"
    partial = "partial"
    failed = "failed"


class SummaryRow(BaseModel):
    """One output row: statistics for a (device, year-month, sensor) key."""

    device: str
    year_month: str = Field(..., pattern=r"^\d{4}-\d{2}$")
    sensor: str
    max_value: float
    mean_value: float
    min_value: float


class LineError(BaseModel):
    """Details about an input line that was dropped during ingestion."""

    line_number: int = Field(..., ge=1)
    reason: str


class RunReport(BaseModel):
    """Full record of a completed run."""

    status: RunStatus
    input_path: str
    output_path: str
    workers: int = Field(..., ge=1)
    line_count: int = Field(default=0, ge=0)
    record_count: int = Field(default=0, ge=0)
    filtered_count: int = Field(default=0, ge=0)
    key_count: int = Field(default=0, ge=0)
    processing_ms: Optional[int] = Field(
        default=None, description="Duration in milliseconds from load to emit."
    )
    rows: List[SummaryRow] = Field(default_factory=list)
    errors: List[LineError] = Field(default_factory=list)

"""Loading and date filtering of the pipe-delimited device table."""

from __future__ import annotations

import csv
import logging
import math
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from models.records import MAX_DEVICE_LENGTH, SENSOR_COUNT, Record
from models.summary import LineError
from services.errors import InputSourceError

logger = logging.getLogger(__name__)

DELIMITER = "|"
_DEVICE_COL = 1
_DATE_COL = 3
_FIRST_SENSOR_COL = 4
_REQUIRED_FIELDS = _FIRST_SENSOR_COL + SENSOR_COUNT


@dataclass(frozen=True)
class Cutoff:
    """Earliest (year, month) a record must fall in to be kept."""

    year: int
    month: int

    def includes(self, record: Record) -> bool:
        return (record.year, record.month) >= (self.year, self.month)

    def __str__(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"


@dataclass
class IngestResult:
    records: List[Record] = field(default_factory=list)
    errors: List[LineError] = field(default_factory=list)
    line_count: int = 0
    filtered_count: int = 0


class RecordReader:
    """Parses the device table into validated records.

    Malformed lines are dropped, logged and reported as ``LineError`` entries;
    only an unreadable source or a missing header is fatal.
    """

    def __init__(self, encoding: str = "utf-8") -> None:
        self.encoding = encoding

    def load(self, path: Path, cutoff: Optional[Cutoff] = None) -> IngestResult:
        """Parse ``path``; lines dated before ``cutoff`` are counted, never diagnosed."""
        result = IngestResult()
        try:
            with path.open("r", encoding=self.encoding, newline="") as handle:
                reader = csv.reader(handle, delimiter=DELIMITER, quoting=csv.QUOTE_NONE)
                if next(reader, None) is None:
                    raise InputSourceError(f"Input file {path} is missing a header row.")
                for row in reader:
                    if not row:
                        continue
                    result.line_count += 1
                    line_number = reader.line_num
                    record, reason = self.parse_row(row, cutoff)
                    if record is None and not reason:
                        result.filtered_count += 1
                        continue
                    if record is None:
                        self._skip(result, path, line_number, reason)
                        continue
                    result.records.append(record)
        except (OSError, UnicodeDecodeError, csv.Error) as exc:
            raise InputSourceError(f"Cannot read input file {path}: {exc}") from exc

        logger.info(
            "Loaded input table",
            extra={
                "input_path": str(path),
                "record_count": len(result.records),
                "error_count": len(result.errors),
            },
        )
        return result

    @staticmethod
    def parse_row(
        row: Sequence[str], cutoff: Optional[Cutoff] = None
    ) -> Tuple[Optional[Record], str]:
        """Return the record for ``row`` or ``None`` with the rejection reason.

        A line dated before ``cutoff`` yields ``None`` with an empty reason; the
        date is checked before the sensor fields so such lines stay silent.
        """
        if len(row) <= _DATE_COL:
            return None, "missing fields"

        device = row[_DEVICE_COL].strip()[:MAX_DEVICE_LENGTH]
        if not device:
            return None, "missing device"

        try:
            date = datetime.strptime(row[_DATE_COL].strip()[:10], "%Y-%m-%d")
        except ValueError:
            return None, "invalid date"
        if cutoff is not None and (date.year, date.month) < (cutoff.year, cutoff.month):
            return None, ""

        if len(row) < _REQUIRED_FIELDS:
            return None, "missing fields"

        try:
            readings = tuple(
                float(value)
                for value in row[_FIRST_SENSOR_COL:_REQUIRED_FIELDS]
            )
        except ValueError:
            return None, "invalid sensor value"
        if not all(math.isfinite(value) for value in readings):
            return None, "invalid sensor value"

        return Record(device=device, year=date.year, month=date.month, readings=readings), ""

    @staticmethod
    def _skip(result: IngestResult, path: Path, line_number: int, reason: str) -> None:
        logger.warning(
            "Skipping line %s: %s",
            line_number,
            reason,
            extra={
                "input_path": str(path),
                "line_number": line_number,
                "reason": reason,
            },
        )
        result.errors.append(LineError(line_number=line_number, reason=reason))


def filter_records(records: Sequence[Record], cutoff: Cutoff) -> Tuple[List[Record], int]:
    """Keep records on or after ``cutoff``; earlier ones are only counted."""
    kept = [record for record in records if cutoff.includes(record)]
    return kept, len(records) - len(kept)

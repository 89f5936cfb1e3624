"""Rendering and writing of the per-key summary table."""

from __future__ import annotations

import logging
import os
import stat
import tempfile
from pathlib import Path
from typing import Iterable, List

from models.summary import SummaryRow
from services.aggregator import KeyedAggregateMap
from services.errors import OutputSinkError

logger = logging.getLogger(__name__)

SEPARATOR = ";"
HEADER = SEPARATOR.join(
    ("device", "ano-mes", "sensor", "valor_maximo", "valor_medio", "valor_minimo")
)


def build_rows(global_map: KeyedAggregateMap) -> List[SummaryRow]:
    """Turn the merged map into output rows, sorted by key."""
    rows: List[SummaryRow] = []
    for key, aggregate in sorted(global_map.items(), key=lambda item: item[0]):
        rows.append(
            SummaryRow(
                device=key.device,
                year_month=key.year_month,
                sensor=key.sensor_name,
                max_value=aggregate.max_value,
                mean_value=aggregate.mean_value,
                min_value=aggregate.min_value,
            )
        )
    return rows


def format_row(row: SummaryRow) -> str:
    return SEPARATOR.join(
        (
            row.device,
            row.year_month,
            row.sensor,
            f"{row.max_value:.2f}",
            f"{row.mean_value:.2f}",
            f"{row.min_value:.2f}",
        )
    )


def render_lines(rows: Iterable[SummaryRow]) -> List[str]:
    return [HEADER, *(format_row(row) for row in rows)]


def _target_mode(path: Path) -> int:
    """Mode for the written table: keep an existing file's, else honour the umask."""
    try:
        return stat.S_IMODE(path.stat().st_mode)
    except FileNotFoundError:
        pass
    umask = os.umask(0)
    os.umask(umask)
    return 0o666 & ~umask


class ReportWriter:
    """Writes the summary table so readers never observe a partial file."""

    def __init__(self, encoding: str = "utf-8") -> None:
        self.encoding = encoding

    def write(self, rows: Iterable[SummaryRow], path: Path) -> None:
        content = "".join(f"{line}\n" for line in render_lines(rows))
        tmp_name = None
        try:
            with tempfile.NamedTemporaryFile(
                "w",
                encoding=self.encoding,
                dir=path.parent,
                prefix=f".{path.name}.",
                suffix=".tmp",
                delete=False,
            ) as handle:
                tmp_name = handle.name
                handle.write(content)
            os.chmod(tmp_name, _target_mode(path))
            os.replace(tmp_name, path)
        except OSError as exc:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise OutputSinkError(f"Cannot write output file {path}: {exc}") from exc

        logger.info("Wrote summary table", extra={"output_path": str(path)})

from __future__ import annotations

import os
import stat

import pytest

from models.records import AggregateKey
from models.summary import SummaryRow
from services.aggregator import KeyedAggregateMap
from services.errors import OutputSinkError
from services.report import HEADER, ReportWriter, build_rows, format_row, render_lines


def _global_map() -> KeyedAggregateMap:
    stats = KeyedAggregateMap()
    for value in (1.0, 2.0, 3.0):
        stats.upsert(AggregateKey("B", 2024, 3, 0), value)
    stats.upsert(AggregateKey("A", 2024, 11, 5), 0.125)
    stats.upsert(AggregateKey("A", 2024, 3, 1), -0.004)
    return stats


def test_build_rows_sorts_by_key_and_names_sensors() -> None:
    rows = build_rows(_global_map())

    assert [(row.device, row.year_month, row.sensor) for row in rows] == [
        ("A", "2024-03", "umidade"),
        ("A", "2024-11", "etvoc"),
        ("B", "2024-03", "temperatura"),
    ]
    assert rows[2].max_value == 3.0
    assert rows[2].mean_value == 2.0
    assert rows[2].min_value == 1.0


def test_format_row_uses_two_decimals() -> None:
    row = SummaryRow(
        device="A",
        year_month="2024-03",
        sensor="temperatura",
        max_value=3.0,
        mean_value=2.0,
        min_value=1.0,
    )

    assert format_row(row) == "A;2024-03;temperatura;3.00;2.00;1.00"


def test_render_lines_starts_with_header() -> None:
    lines = render_lines(build_rows(_global_map()))

    assert lines[0] == HEADER == "device;ano-mes;sensor;valor_maximo;valor_medio;valor_minimo"
    assert len(lines) == 4


def test_writer_writes_table(tmp_path) -> None:
    target = tmp_path / "resumo.csv"

    ReportWriter().write(build_rows(_global_map()), target)

    lines = target.read_text(encoding="utf-8").splitlines()
    assert lines[0] == HEADER
    assert lines[-1] == "B;2024-03;temperatura;3.00;2.00;1.00"
    assert sorted(path.name for path in tmp_path.iterdir()) == ["resumo.csv"]


def test_writer_unwritable_target_is_fatal(tmp_path) -> None:
    target = tmp_path / "missing-dir" / "resumo.csv"

    with pytest.raises(OutputSinkError):
        ReportWriter().write(build_rows(_global_map()), target)

    assert not target.exists()


def test_writer_honours_umask_for_new_files(tmp_path) -> None:
    target = tmp_path / "resumo.csv"
    previous = os.umask(0o022)
    try:
        ReportWriter().write(build_rows(_global_map()), target)
    finally:
        os.umask(previous)

    assert stat.S_IMODE(target.stat().st_mode) == 0o644


def test_writer_keeps_mode_of_existing_output(tmp_path) -> None:
    target = tmp_path / "resumo.csv"
    target.write_text("stale\n", encoding="utf-8")
    target.chmod(0o664)

    ReportWriter().write(build_rows(_global_map()), target)

    assert stat.S_IMODE(target.stat().st_mode) == 0o664
    assert target.read_text(encoding="utf-8").startswith(HEADER)

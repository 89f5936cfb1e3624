from __future__ import annotations

from typing import Any, Iterable

import typer

from models.summary import RunReport, SummaryRow
from services.report import render_lines


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def render_table(rows: Iterable[SummaryRow]) -> None:
    echo_heading("Result")
    for line in render_lines(rows):
        typer.echo(line)


def render_report(report: RunReport) -> None:
    echo_heading("Run Report")
    echo_key_values(
        [
            ("status", report.status.value),
            ("input_path", report.input_path),
            ("output_path", report.output_path),
            ("workers", report.workers),
            ("line_count", report.line_count),
            ("record_count", report.record_count),
            ("filtered_count", report.filtered_count),
            ("key_count", report.key_count),
            ("processing_ms", report.processing_ms),
        ]
    )

    typer.echo()
    echo_heading("Errors")
    if report.errors:
        for error in report.errors:
            typer.echo(f"  - line {error.line_number}: {error.reason}")
    else:
        typer.echo("No errors recorded.")

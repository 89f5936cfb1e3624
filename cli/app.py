from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from cli.render import render_report, render_table
from logging_config import configure_logging
from services.engine import build_default_engine
from services.errors import PipelineError
from services.pipeline import PipelineService, build_default_pipeline
from settings import MAX_WORKERS, get_settings


app = typer.Typer(
    help="Per-device monthly min/mean/max statistics for sensor readings.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _release(pipeline: PipelineService) -> None:
    pipeline.shutdown()
    build_default_pipeline.cache_clear()
    build_default_engine.cache_clear()


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        "-l",
        help="Logging level (defaults to LOG_LEVEL env or INFO).",
    ),
) -> None:
    """Entry point for the CLI."""
    configure_logging(log_level)


@app.command("run")
def run_command(
    ctx: typer.Context,
    input_path: Optional[Path] = typer.Option(
        None,
        "--input",
        "-i",
        dir_okay=False,
        help="Pipe-delimited device table (defaults to SENSOR_INPUT_PATH env or devices.csv).",
    ),
    output_path: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        dir_okay=False,
        help="Summary table to write (defaults to SENSOR_OUTPUT_PATH env or resumo.csv).",
    ),
    workers: Optional[int] = typer.Option(
        None,
        "--workers",
        "-w",
        min=1,
        max=MAX_WORKERS,
        clamp=True,
        help="Worker threads (defaults to PROCESSOR_WORKER_COUNT env or CPU count).",
    ),
    details: bool = typer.Option(
        False,
        "--details/--no-details",
        help="Print the run report after the table.",
    ),
) -> None:
    """Aggregate the input table and write the summary table."""
    settings = get_settings()
    source = input_path or Path(settings.input_path)
    target = output_path or Path(settings.output_path)

    pipeline = build_default_pipeline(workers)
    ctx.call_on_close(lambda: _release(pipeline))

    try:
        report = pipeline.run(source, target)
    except PipelineError as exc:
        typer.secho(str(exc), fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc

    render_table(report.rows)
    typer.secho(f"{target} written successfully.", fg=typer.colors.GREEN)
    if details:
        typer.echo()
        render_report(report)


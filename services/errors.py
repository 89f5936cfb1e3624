"""Fatal error taxonomy for a pipeline run."""

from __future__ import annotations


class PipelineError(Exception):
    """Base class for failures that halt a run without emitting output."""


class InputSourceError(PipelineError):
    """The input table is missing, unreadable or has no header row."""


class NoValidRecordsError(PipelineError):
    """No record survived ingestion and the date cutoff."""


class OutputSinkError(PipelineError):
    """The summary table could not be written."""

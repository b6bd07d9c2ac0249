"""Exceptions raised by the query pipeline."""

from __future__ import annotations


class PipelineError(Exception):
    """Base class for pipeline failures."""


class ConfigurationError(PipelineError, ValueError):
    """Invalid pipeline configuration, e.g. no active or an unknown data source."""


class SourceUnavailableError(PipelineError, RuntimeError):
    """The active data source reported itself unavailable."""

    def __init__(self, source_id: str):
        super().__init__(f"Data source '{source_id}' is not available")
        self.source_id = source_id

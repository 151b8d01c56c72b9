"""
Error taxonomy shared by the telemetry core and its outer surfaces.

Log loading/exporting errors propagate to callers. Adapters raise
SourceConnectionError from their open hook and connect() turns it into a
False result. InvalidStateError is raised by the HTTP layer when a control
the core ignored (returned False) has to become a 409.
"""
from __future__ import annotations

from typing import Any


class TelemetryError(Exception):
    """Base class for ground-station errors."""


class SourceConnectionError(TelemetryError):
    """A source adapter could not reach or release its endpoint."""


class LogNotFoundError(TelemetryError, FileNotFoundError):
    """No recording matches the requested identifier."""


class LogParseError(TelemetryError, ValueError):
    """A recording exists but its content cannot be decoded into a Log."""


class InvalidStateError(TelemetryError):
    """A control was invoked in a state where it has no meaning."""

    def __init__(self, error: str, **context: Any):
        super().__init__(error)
        self.error = error
        self.context = context


class ExportError(TelemetryError):
    """Serializing a Log failed; the recording session is unaffected."""

"""
Centralized error handling for report generation.

Defines the error taxonomy used across the engine, the normalized error
envelope returned to callers, and small utilities for input validation and
best-effort cleanup logging.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable, List, Mapping


class ReportError(Exception):
    """Base class for all report generation failures."""

    kind: str = "report"


class InputContractError(ReportError):
    """Request data violates the input contract (missing fields, bad shapes)."""

    kind = "input"


class InvalidMovementError(InputContractError):
    """A material movement has a missing or unrecognized direction."""


class TemplateResolutionError(ReportError):
    """Unknown report category or missing template asset."""

    kind = "template"


class BrowserLaunchError(ReportError):
    """Browser process could not be started, fallback included."""

    kind = "launch"


class RasterizationError(ReportError):
    """PDF export failed."""

    kind = "rasterization"


class EmptyContentError(RasterizationError):
    """Export returned without producing any bytes."""


class RenderTimeoutError(ReportError):
    """A render exceeded its wall-clock deadline."""

    kind = "timeout"


class StorageError(ReportError):
    """Object storage operation failed."""

    kind = "storage"


class ObjectNotFoundError(StorageError):
    """Requested object does not exist in storage."""


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass
class ErrorEnvelope:
    """
    Normalized failure response.

    Carries only a human-readable message and a timestamp; stack traces are
    logged, never returned.
    """

    error: str
    timestamp: str = field(default_factory=_utc_timestamp)
    kind: str = "internal"

    @classmethod
    def from_exception(cls, exc: BaseException) -> "ErrorEnvelope":
        """Build an envelope from any exception."""
        message = str(exc) or type(exc).__name__
        kind = exc.kind if isinstance(exc, ReportError) else "internal"
        return cls(error=message, kind=kind)

    def to_dict(self) -> dict:
        """Convert to the response contract shape."""
        return {
            "success": False,
            "error": self.error,
            "timestamp": self.timestamp,
        }


def validate_required_params(params: Mapping[str, Any], required_fields: Iterable[str]) -> None:
    """
    Ensure every required field is present and truthy.

    Raises:
        InputContractError: naming every missing field, in the given order
    """
    missing: List[str] = [name for name in required_fields if not params.get(name)]
    if missing:
        raise InputContractError(f"Missing required parameters: {', '.join(missing)}")


def log_on_exception(
    logger: logging.Logger,
    operation: str,
    level: int = logging.WARNING,
    include_traceback: bool = False,
    suppress: bool = False,
):
    """
    Context manager for logging exceptions.

    By default the exception propagates after logging. With suppress=True the
    exception is logged and swallowed, which is how best-effort cleanup (e.g.
    closing the browser) is expressed.

    Usage:
        with log_on_exception(logger, "Browser close", suppress=True):
            await browser.close()
    """

    class ExceptionLogger:
        def __enter__(self):
            return self

        def __exit__(self, exc_type, exc_val, exc_tb):
            if exc_val is not None and isinstance(exc_val, Exception):
                logger.log(level, f"[{operation}] Failed: {exc_val}", exc_info=include_traceback)
                return suppress
            return False

    return ExceptionLogger()

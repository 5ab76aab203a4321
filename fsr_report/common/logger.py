"""
Centralized logging configuration for the report service.

Provides a report-aware logger that tags every message with the call number
and product group being rendered, plus helpers for the PDF generation and
storage lifecycle events that operations dashboards filter on.
"""

import json
import logging
import sys
from typing import Any, Optional


class ReportLogger:
    """
    Structured logger for a single report invocation.

    Adds contextual information like call number and product group to all
    log messages.
    """

    def __init__(
        self,
        name: str,
        call_no: Optional[str] = None,
        product_group: Optional[str] = None,
        debug_mode: bool = False
    ):
        """
        Initialize report logger.

        Args:
            name: Logger name (usually __name__)
            call_no: Optional service call number for correlation
            product_group: Optional report category (e.g., "thermal", "dcps")
            debug_mode: If True, enables DEBUG level for this logger.
        """
        self.logger = logging.getLogger(name)
        self.call_no = call_no
        self.product_group = product_group
        self._debug_mode = debug_mode

        if self._debug_mode:
            self.logger.setLevel(logging.DEBUG)

    @property
    def level(self) -> int:
        """Get current logging level."""
        return self.logger.level

    def bind(self, call_no: Optional[str] = None, product_group: Optional[str] = None) -> "ReportLogger":
        """Return a logger carrying additional call context."""
        return ReportLogger(
            self.logger.name,
            call_no=call_no or self.call_no,
            product_group=product_group or self.product_group,
            debug_mode=self._debug_mode,
        )

    def _format_message(self, message: str) -> str:
        """Add contextual prefix to message."""
        prefix_parts = []
        if self.call_no:
            prefix_parts.append(f"[call:{self.call_no}]")
        if self.product_group:
            prefix_parts.append(f"[{self.product_group}]")

        if prefix_parts:
            return f"{' '.join(prefix_parts)} {message}"
        return message

    def debug(self, message: str, **kwargs):
        """Log debug message."""
        self.logger.debug(self._format_message(message), **kwargs)

    def info(self, message: str, **kwargs):
        """Log info message."""
        self.logger.info(self._format_message(message), **kwargs)

    def warning(self, message: str, **kwargs):
        """Log warning message."""
        self.logger.warning(self._format_message(message), **kwargs)

    def error(self, message: str, **kwargs):
        """Log error message."""
        self.logger.error(self._format_message(message), **kwargs)

    def exception(self, message: str, **kwargs):
        """Log exception with traceback."""
        self.logger.exception(self._format_message(message), **kwargs)

    def log_pdf_generation(self, status: str, details: str = "") -> None:
        """
        Log a PDF generation lifecycle event.

        SUCCESS goes to INFO, FAILED to ERROR, anything else (STARTED,
        RETRYING) to DEBUG.
        """
        message = f"PDF generation {status} for {self.product_group or 'unknown'} - call {self.call_no or 'unknown'}"
        if details:
            message = f"{message}: {details}"
        if status == "SUCCESS":
            self.info(message)
        elif status == "FAILED":
            self.error(message)
        else:
            self.debug(message)

    def log_request_start(self, endpoint: str, method: str, payload: Any, user_agent: str = "") -> None:
        """Log an incoming request body at DEBUG."""
        body = json.dumps({"method": method, "payload": payload}, default=str)
        self.debug(f"{endpoint} request started: {body} {user_agent}".rstrip())

    def log_response(self, endpoint: str, response: Any, user_agent: str = "") -> None:
        """Log an outgoing response body at DEBUG."""
        body = json.dumps(response, default=str)
        self.debug(f"{endpoint} response: {body} {user_agent}".rstrip())

    def log_storage_operation(self, operation: str, key: str, status: str, details: str = "") -> None:
        """Log a storage upload/read/sign event with the same status levels."""
        message = f"Storage {operation} {status} for {key}"
        if details:
            message = f"{message}: {details}"
        if status == "SUCCESS":
            self.info(message)
        elif status == "FAILED":
            self.error(message)
        else:
            self.debug(message)


def setup_logging(level: str = "INFO", format: str = "simple") -> None:
    """
    Configure global logging settings.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        format: Log format ("simple" or "json")
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    # Remove existing handlers
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)

    if format == "json":
        # JSON lines for hosted log aggregation
        formatter = logging.Formatter(
            '{"time": "%(asctime)s", "level": "%(levelname)s", "name": "%(name)s", "message": "%(message)s"}'
        )
    else:
        formatter = logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )

    handler.setFormatter(formatter)
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)


def get_logger(
    name: str,
    call_no: Optional[str] = None,
    product_group: Optional[str] = None,
    debug_mode: bool = False
) -> ReportLogger:
    """
    Get a report logger instance.

    Args:
        name: Logger name (usually __name__)
        call_no: Optional service call number
        product_group: Optional report category
        debug_mode: If True, enables DEBUG level.

    Returns:
        ReportLogger instance
    """
    return ReportLogger(name, call_no, product_group, debug_mode)

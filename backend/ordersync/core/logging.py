"""Structured logging setup and the diagnostic-log sink."""

import logging
from typing import Any

import structlog


def configure_logging(level: str = "INFO", json: bool = False) -> None:
    """Configure structlog for console or JSON output.

    Args:
        level: Minimum log level name (e.g. "INFO", "DEBUG")
        json: Render one JSON object per line instead of console output
    """
    renderer = (
        structlog.processors.JSONRenderer()
        if json
        else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="%H:%M:%S"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(level.upper())
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
    )


class StructlogDiagnosticSink:
    """Default diagnostic sink that forwards values to structlog.

    Accepts plain strings or caught exceptions. Never raises.
    """

    def __init__(self, name: str = "ordersync.diagnostics"):
        self.logger = structlog.get_logger(name)

    async def __call__(self, value: Any) -> None:
        try:
            if isinstance(value, BaseException):
                self.logger.warning(
                    "diagnostic_error",
                    error=str(value),
                    error_type=type(value).__name__,
                )
            else:
                self.logger.info("diagnostic", message=str(value))
        except Exception:
            # sink must never raise
            pass

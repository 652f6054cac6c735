"""
Logging and metrics setup for the VoiceBridge data-access layer.
"""

import logging
import sys
import time
from typing import Any, Dict, Optional

import structlog


def configure_logging(log_level: str = "INFO", json_output: bool = True) -> None:
    """
    Configure stdlib logging and structlog.

    Args:
        log_level: Minimum level for both stdlib and structlog loggers
        json_output: Render JSON lines (default) or the console renderer for development
    """
    level = getattr(logging, log_level.upper(), logging.INFO)
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)

    renderer = structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


class DispatchMetrics:
    """
    In-memory counters for dispatched operations.
    """

    def __init__(self):
        self.request_count = 0
        self.error_count = 0
        self.total_processing_time = 0.0
        self.operations: Dict[str, int] = {}
        self.started_at = time.time()

    def record(self, operation: str, success: bool, processing_time: float) -> None:
        """Count one finished dispatch."""
        self.request_count += 1
        self.total_processing_time += processing_time
        self.operations[operation] = self.operations.get(operation, 0) + 1
        if not success:
            self.error_count += 1

    def get_metrics(self, extra: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Get current metrics."""
        avg_processing_time = (
            self.total_processing_time / self.request_count
            if self.request_count > 0 else 0
        )

        metrics = {
            "total_requests": self.request_count,
            "error_count": self.error_count,
            "error_rate": self.error_count / self.request_count if self.request_count > 0 else 0,
            "avg_processing_time_ms": round(avg_processing_time * 1000, 2),
            "operations": dict(self.operations),
            "uptime_seconds": round(time.time() - self.started_at, 1),
        }
        if extra:
            metrics.update(extra)
        return metrics

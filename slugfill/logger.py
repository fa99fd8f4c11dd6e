"""
Structured logging for slugfill.

Provides centralized logging with console and file outputs, plus
metrics tracking for a backfill run (rows filled, suffixes needed,
count queries issued, uniqueness budget exhaustion).
"""

import logging
import sys
from pathlib import Path
from typing import Optional
from datetime import datetime
import json


class StructuredLogger:
    """
    Centralized logger with support for console and file outputs.
    Tracks metrics for a backfill run.
    """

    def __init__(
        self,
        name: str = "slugfill",
        level: str = "INFO",
        log_dir: Optional[Path] = None,
        enable_file: bool = True,
        enable_console: bool = True,
    ):
        """
        Initialize the structured logger.

        Args:
            name: Logger name
            level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            log_dir: Directory for log files (default: logs/)
            enable_file: Write logs to file
            enable_console: Output logs to console
        """
        self.logger = logging.getLogger(name)
        self.logger.setLevel(logging.DEBUG)
        self.logger.handlers.clear()
        self.logger.propagate = False

        self.metrics = {}
        self.reset_metrics()

        if enable_console:
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setLevel(getattr(logging, level.upper()))
            console_formatter = logging.Formatter(
                fmt='%(asctime)s | %(levelname)-8s | %(name)s | %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )
            console_handler.setFormatter(console_formatter)
            self.logger.addHandler(console_handler)

        if enable_file:
            if log_dir is None:
                log_dir = Path("logs")
            log_dir.mkdir(parents=True, exist_ok=True)

            log_file = log_dir / f"slugfill_{datetime.now().strftime('%Y%m%d')}.log"
            file_handler = logging.FileHandler(log_file, encoding='utf-8')
            file_handler.setLevel(logging.DEBUG)  # Always log everything to file
            file_formatter = logging.Formatter(
                fmt='%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )
            file_handler.setFormatter(file_formatter)
            self.logger.addHandler(file_handler)

    def debug(self, message: str, **kwargs):
        """Log debug message with optional context."""
        self._log(logging.DEBUG, message, kwargs)

    def info(self, message: str, **kwargs):
        """Log info message with optional context."""
        self._log(logging.INFO, message, kwargs)

    def warning(self, message: str, **kwargs):
        """Log warning message with optional context."""
        self._log(logging.WARNING, message, kwargs)

    def error(self, message: str, **kwargs):
        """Log error message with optional context."""
        self._log(logging.ERROR, message, kwargs)

    def critical(self, message: str, **kwargs):
        """Log critical message with optional context."""
        self._log(logging.CRITICAL, message, kwargs)

    def _log(self, level: int, message: str, context: dict):
        if context:
            message = f"{message} | Context: {json.dumps(context, default=str)}"
        self.logger.log(level, message)

    # Metric tracking methods

    def reset_metrics(self):
        self.metrics = {
            "rows_scanned": 0,
            "rows_updated": 0,
            "rows_suffixed": 0,
            "count_queries": 0,
            "budget_exhausted": 0,
            "skipped_by_reason": {},
        }

    def record_count_query(self):
        """Increment collision count query counter."""
        self.metrics["count_queries"] += 1

    def record_row_scanned(self):
        self.metrics["rows_scanned"] += 1

    def record_slug_assigned(self, suffixed: bool = False):
        """Record a persisted slug, and whether it needed a numeric suffix."""
        self.metrics["rows_updated"] += 1
        if suffixed:
            self.metrics["rows_suffixed"] += 1

    def record_row_skipped(self, reason: str):
        skipped = self.metrics["skipped_by_reason"]
        skipped[reason] = skipped.get(reason, 0) + 1

    def record_budget_exhausted(self):
        self.metrics["budget_exhausted"] += 1

    def get_metrics(self) -> dict:
        """Return current metrics, including the derived suffix rate."""
        metrics_copy = dict(self.metrics)
        metrics_copy["skipped_by_reason"] = dict(self.metrics["skipped_by_reason"])
        metrics_copy["suffix_rate"] = 0.0
        if metrics_copy["rows_updated"] > 0:
            metrics_copy["suffix_rate"] = round(
                metrics_copy["rows_suffixed"] / metrics_copy["rows_updated"], 3
            )
        return metrics_copy

    def log_metrics_summary(self):
        """Log a summary of current metrics."""
        metrics = self.get_metrics()

        self.info("=== Slug Backfill Metrics ===")
        self.info(f"Rows scanned: {metrics['rows_scanned']}")
        self.info(
            f"Rows updated: {metrics['rows_updated']} "
            f"({metrics['suffix_rate'] * 100:.1f}% needed a suffix)"
        )
        self.info(f"Count queries: {metrics['count_queries']}")

        if metrics["skipped_by_reason"]:
            self.info("Skipped rows:")
            for reason, count in metrics["skipped_by_reason"].items():
                self.info(f"  {reason}: {count}")

        if metrics["budget_exhausted"]:
            self.warning(
                f"Uniqueness budget exhausted for {metrics['budget_exhausted']} row(s); "
                "duplicate slugs were written"
            )


# Global logger instance
_global_logger: Optional[StructuredLogger] = None


def get_logger(
    name: str = "slugfill",
    level: str = "INFO",
    **kwargs
) -> StructuredLogger:
    """
    Get or create the global logger instance.

    Args:
        name: Logger name
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        **kwargs: Additional arguments passed to StructuredLogger

    Returns:
        StructuredLogger instance
    """
    global _global_logger

    if _global_logger is None:
        _global_logger = StructuredLogger(name=name, level=level, **kwargs)

    return _global_logger


def reset_logger():
    """Reset the global logger (useful for testing)."""
    global _global_logger
    _global_logger = None

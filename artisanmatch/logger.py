"""
Structured logging for artisan resolution.

Provides centralized logging with console and file destinations plus
in-process counters for resolution tiers, corrections and catalog health.
"""

import logging
import os
import sys
from pathlib import Path
from typing import Optional
from datetime import datetime
import json

from .env import getenv_bool


class StructuredLogger:
    """
    Centralized logger with support for console and file outputs.
    Tracks metrics for monitoring resolution quality and catalog access.
    """

    def __init__(
        self,
        name: str = "artisanmatch",
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
        self.logger.setLevel(getattr(logging, level.upper()))
        self.logger.handlers.clear()
        self.logger.propagate = False

        self.metrics = {
            "catalog_calls": 0,
            "catalog_failures": 0,
            "resolutions_attempted": 0,
            "resolutions_by_tier": {},
            "automated_writes_skipped": 0,
            "corrections_by_operation": {},
            "errors_by_type": {},
        }

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

            log_file = log_dir / f"artisanmatch_{datetime.now().strftime('%Y%m%d')}.log"
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
            message = f"{message} | Context: {json.dumps(context, default=str, ensure_ascii=False)}"
        self.logger.log(level, message)

    # Metric tracking methods

    def record_catalog_call(self):
        self.metrics["catalog_calls"] += 1

    def record_catalog_failure(self, error_type: str):
        self.metrics["catalog_failures"] += 1
        self.record_error(error_type)

    def record_resolution(self, tier: str):
        """Record one automated resolution and the tier it landed in."""
        self.metrics["resolutions_attempted"] += 1
        by_tier = self.metrics["resolutions_by_tier"]
        by_tier[tier] = by_tier.get(tier, 0) + 1

    def record_skipped_write(self):
        """Record an automated write that was refused to protect a human decision."""
        self.metrics["automated_writes_skipped"] += 1

    def record_correction(self, operation: str):
        by_op = self.metrics["corrections_by_operation"]
        by_op[operation] = by_op.get(operation, 0) + 1

    def record_error(self, error_type: str):
        errors = self.metrics["errors_by_type"]
        errors[error_type] = errors.get(error_type, 0) + 1

    def get_metrics(self) -> dict:
        """Return current metrics, with the share of each tier filled in."""
        metrics_copy = json.loads(json.dumps(self.metrics))
        total = metrics_copy["resolutions_attempted"]
        if total > 0:
            metrics_copy["tier_share"] = {
                tier: round(count / total, 3)
                for tier, count in metrics_copy["resolutions_by_tier"].items()
            }
        else:
            metrics_copy["tier_share"] = {}
        return metrics_copy

    def log_metrics_summary(self):
        """Log a summary of current metrics."""
        metrics = self.get_metrics()

        self.info("=== Artisan Resolution Metrics ===")
        self.info(f"Catalog calls: {metrics['catalog_calls']} ({metrics['catalog_failures']} failed)")
        self.info(f"Resolutions: {metrics['resolutions_attempted']}")

        if metrics["resolutions_by_tier"]:
            self.info("Tiers:")
            for tier, count in sorted(metrics["resolutions_by_tier"].items()):
                share = metrics["tier_share"].get(tier, 0) * 100
                self.info(f"  {tier}: {count} ({share:.1f}%)")

        if metrics["automated_writes_skipped"]:
            self.info(f"Automated writes skipped (human-verified): {metrics['automated_writes_skipped']}")

        if metrics["corrections_by_operation"]:
            self.info("Corrections:")
            for operation, count in metrics["corrections_by_operation"].items():
                self.info(f"  {operation}: {count}")

        if metrics["errors_by_type"]:
            self.info("Error Types:")
            for error_type, count in metrics["errors_by_type"].items():
                self.info(f"  {error_type}: {count}")


# Global logger instance
_global_logger: Optional[StructuredLogger] = None


def get_logger(
    name: str = "artisanmatch",
    level: Optional[str] = None,
    **kwargs
) -> StructuredLogger:
    """
    Get or create the global logger instance.

    Level, log directory and file output default to ARTISANMATCH_LOG_LEVEL,
    ARTISANMATCH_LOG_DIR and ARTISANMATCH_LOG_TO_FILE when not given.

    Returns:
        StructuredLogger instance
    """
    global _global_logger

    if _global_logger is None:
        if level is None:
            level = os.getenv("ARTISANMATCH_LOG_LEVEL", "INFO")
        if "log_dir" not in kwargs and os.getenv("ARTISANMATCH_LOG_DIR"):
            kwargs["log_dir"] = Path(os.environ["ARTISANMATCH_LOG_DIR"])
        if "enable_file" not in kwargs:
            kwargs["enable_file"] = getenv_bool("ARTISANMATCH_LOG_TO_FILE", True)
        _global_logger = StructuredLogger(name=name, level=level, **kwargs)

    return _global_logger


def reset_logger():
    """Reset the global logger (useful for testing)."""
    global _global_logger
    _global_logger = None

"""Observability utilities for sn-dotfiles.

Provides persistent disk logging with rotation, operation timing,
and in-process operation metrics.
"""
import logging
import sys
import time
import uuid
from contextlib import contextmanager
from dataclasses import asdict, dataclass
from logging.handlers import RotatingFileHandler
from pathlib import Path
from threading import Lock
from typing import Any, Dict, Optional, Union

logger = logging.getLogger(__name__)

# Root of the package logger hierarchy
LOGGER_NAME = "sn_dotfiles"

# Logging format with ISO 8601 timestamps
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S%z"

def configure_logging(
    log_dir: Optional[Union[str, Path]] = None,
    level: int = logging.WARNING,
    max_bytes: int = 10 * 1024 * 1024,  # 10 MB per file
    backup_count: int = 5,
    console: bool = True,
) -> Optional[Path]:
    """Configure logging for the sn_dotfiles logger hierarchy.

    File logging always records INFO and above so that each sync pass
    leaves a trail; ``level`` controls what reaches the console.

    Args:
        log_dir: Directory for log files. File logging is skipped if None.
        level: Console logging level (default: WARNING)
        max_bytes: Maximum size per log file before rotation (default: 10 MB)
        backup_count: Number of rotated files to keep (default: 5)
        console: Also log to stderr (default: True)

    Returns:
        Path to the log directory, or None if file logging is disabled
    """
    root_logger = logging.getLogger(LOGGER_NAME)
    root_logger.setLevel(min(level, logging.INFO))
    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    log_path = None
    if log_dir is not None:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        log_file = log_path / "sn-dotfiles.log"
        if not any(isinstance(h, RotatingFileHandler) for h in root_logger.handlers):
            file_handler = RotatingFileHandler(
                log_file,
                maxBytes=max_bytes,
                backupCount=backup_count,
                encoding="utf-8",
            )
            file_handler.setLevel(min(level, logging.INFO))
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)

    if console and not any(
        isinstance(h, logging.StreamHandler) and not isinstance(h, RotatingFileHandler)
        for h in root_logger.handlers
    ):
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    root_logger.debug(f"Logging configured (dir={log_path}, level={level})")
    return log_path


@dataclass
class OperationMetrics:
    """Metrics for a single operation type."""
    count: int = 0
    success_count: int = 0
    error_count: int = 0
    total_duration_ms: float = 0.0
    max_duration_ms: float = 0.0
    last_error: Optional[str] = None

    @property
    def avg_duration_ms(self) -> float:
        return self.total_duration_ms / self.count if self.count else 0.0


class MetricsCollector:
    """Thread-safe collector of per-operation counts and durations."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._metrics: Dict[str, OperationMetrics] = {}

    def record_operation(
        self,
        operation: str,
        duration_ms: float,
        success: bool = True,
        error: Optional[str] = None,
    ) -> None:
        with self._lock:
            m = self._metrics.setdefault(operation, OperationMetrics())
            m.count += 1
            m.total_duration_ms += duration_ms
            m.max_duration_ms = max(m.max_duration_ms, duration_ms)
            if success:
                m.success_count += 1
            else:
                m.error_count += 1
                m.last_error = error

    def get_metrics(self) -> Dict[str, Dict[str, Any]]:
        """Return a snapshot of all recorded metrics."""
        with self._lock:
            return {
                name: {**asdict(m), "avg_duration_ms": round(m.avg_duration_ms, 2)}
                for name, m in self._metrics.items()
            }

    def get_summary(self) -> Dict[str, Any]:
        """Aggregate counts across every operation."""
        with self._lock:
            return {
                "total_operations": sum(m.count for m in self._metrics.values()),
                "total_success": sum(m.success_count for m in self._metrics.values()),
                "total_errors": sum(m.error_count for m in self._metrics.values()),
            }

    def log_summary(self) -> None:
        """Log one INFO line per recorded operation, e.g. on exit."""
        for name, m in sorted(self.get_metrics().items()):
            logger.info(
                f"{name}: count={m['count']} errors={m['error_count']} "
                f"avg={m['avg_duration_ms']}ms max={m['max_duration_ms']:.2f}ms"
            )
        summary = self.get_summary()
        if summary["total_operations"]:
            logger.info(
                f"{summary['total_operations']} operations, "
                f"{summary['total_errors']} failed"
            )

    def reset(self) -> None:
        with self._lock:
            self._metrics.clear()


# Global metrics collector instance
metrics = MetricsCollector()


@contextmanager
def timed_operation(operation: str, **context):
    """Context manager for timing and logging operations.

    Args:
        operation: Name of the operation being performed
        **context: Additional context to include in log messages

    Yields:
        A dictionary where you can store result info (e.g., pushed=3)

    Example:
        with timed_operation('sync', home=home) as op:
            result = reconcile(...)
            op['pushed'] = result.pushed
    """
    correlation_id = str(uuid.uuid4())[:8]
    start_time = time.perf_counter()
    result_info: Dict[str, Any] = {'correlation_id': correlation_id}

    context_str = ', '.join(f'{k}={v}' for k, v in context.items())
    logger.debug(f"[{correlation_id}] START {operation} ({context_str})")

    error_msg = None
    success = True

    try:
        yield result_info
    except Exception as e:
        success = False
        error_msg = str(e)
        raise
    finally:
        duration_ms = (time.perf_counter() - start_time) * 1000
        metrics.record_operation(operation, duration_ms, success, error_msg)

        result_str = ', '.join(f'{k}={v}' for k, v in result_info.items() if k != 'correlation_id')
        status = 'OK' if success else f'ERROR: {error_msg}'
        logger.debug(
            f"[{correlation_id}] END {operation} "
            f"({duration_ms:.2f}ms) [{status}] {result_str}"
        )

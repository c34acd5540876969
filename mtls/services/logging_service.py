"""
Structured logging and build timings for mutual-TLS context preparation.

LoggingService attaches a rotating JSON log file and console output to the
``mtls`` logger and owns the PerformanceMonitor that MaterialService reports
material loads and context builds to. Records carry subjects, algorithms and
protocol names; key material and passphrases are never passed to a logger.
"""
import json
import logging
import logging.handlers
import sys
import threading
import time
import traceback
from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Deque, Dict, List, Optional

PACKAGE_LOGGER = "mtls"
DEFAULT_MAX_TIMINGS = 1000
LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5
CONSOLE_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


@dataclass
class OperationTiming:
    """How long one load or build took and whether it succeeded."""
    operation: str
    duration_ms: float
    finished_at: datetime
    success: bool
    error_type: Optional[str] = None
    details: Optional[Dict[str, Any]] = None


class JSONFormatter(logging.Formatter):
    """
    Renders each record as one JSON object per line.

    Structured fields are passed with ``extra={'details': {...}}`` and land
    under the ``details`` key.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            'timestamp': datetime.fromtimestamp(record.created).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'location': f"{record.module}.{record.funcName}:{record.lineno}",
            'thread': record.threadName,
            'details': getattr(record, 'details', None),
            'exception': None
        }

        if record.exc_info and record.exc_info[0] is not None:
            exc_type, exc_value, exc_traceback = record.exc_info
            entry['exception'] = {
                'type': exc_type.__name__,
                'message': str(exc_value),
                'traceback': traceback.format_exception(exc_type, exc_value, exc_traceback)
            }

        return json.dumps(entry, default=str)


class PerformanceMonitor:
    """
    Keeps the most recent operation timings in a bounded buffer.

    Only the newest ``max_timings`` entries are retained, so a long-lived
    service that builds a context per connection does not grow without limit.
    """

    def __init__(self, max_timings: int = DEFAULT_MAX_TIMINGS):
        if max_timings <= 0:
            raise ValueError("max_timings must be positive")
        self._timings: Deque[OperationTiming] = deque(maxlen=max_timings)
        self._lock = threading.Lock()
        self.logger = logging.getLogger(__name__)

    @property
    def max_timings(self) -> int:
        return self._timings.maxlen

    @contextmanager
    def measure_operation(self, operation: str, details: Optional[Dict[str, Any]] = None):
        """Time the wrapped block; exceptions are recorded and re-raised."""
        started = time.perf_counter()
        error_type = None

        try:
            yield
        except Exception as e:
            error_type = type(e).__name__
            raise
        finally:
            timing = OperationTiming(
                operation=operation,
                duration_ms=(time.perf_counter() - started) * 1000,
                finished_at=datetime.now(),
                success=error_type is None,
                error_type=error_type,
                details=details
            )
            with self._lock:
                self._timings.append(timing)

            self.logger.debug(
                f"{operation} took {timing.duration_ms:.2f} ms",
                extra={'details': {'operation': operation, 'success': timing.success,
                                   'error_type': error_type, **(details or {})}}
            )

    def get_timings(self, operation: Optional[str] = None) -> List[OperationTiming]:
        with self._lock:
            timings = list(self._timings)
        if operation:
            timings = [t for t in timings if t.operation == operation]
        return timings

    def prune(self, max_age_hours: float = 24) -> int:
        """Drop timings older than max_age_hours; returns how many were dropped."""
        cutoff = datetime.now() - timedelta(hours=max_age_hours)
        with self._lock:
            kept = [t for t in self._timings if t.finished_at >= cutoff]
            dropped = len(self._timings) - len(kept)
            self._timings.clear()
            self._timings.extend(kept)
        return dropped

    def get_operation_stats(self, operation: str) -> Dict[str, Any]:
        """Call counts and duration summary for one operation; empty if unseen."""
        timings = self.get_timings(operation)
        if not timings:
            return {}

        durations = [t.duration_ms for t in timings]
        failures = sum(1 for t in timings if not t.success)
        return {
            'operation': operation,
            'total_calls': len(timings),
            'failure_count': failures,
            'success_rate': (len(timings) - failures) / len(timings),
            'avg_duration_ms': sum(durations) / len(durations),
            'max_duration_ms': max(durations)
        }

    def get_all_stats(self) -> Dict[str, Dict[str, Any]]:
        operations = {t.operation for t in self.get_timings()}
        return {operation: self.get_operation_stats(operation) for operation in sorted(operations)}


class LoggingService:
    """
    Sends ``mtls`` records to a rotating JSON file and to the console.

    Only the package logger is touched; handlers installed elsewhere in the
    application are left alone and close() removes exactly what was added.
    """

    def __init__(self, config, performance_monitor: Optional[PerformanceMonitor] = None):
        self.config = config
        self.performance_monitor = performance_monitor or PerformanceMonitor()
        self._handlers: List[logging.Handler] = []
        self._install_handlers()
        self.logger = logging.getLogger(__name__)
        self.logger.info(f"Logging to {config.log_file_path} at {config.log_level}")

    def _install_handlers(self):
        level = getattr(logging, self.config.log_level.upper())
        Path(self.config.log_file_path).parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            filename=self.config.log_file_path,
            maxBytes=LOG_FILE_MAX_BYTES,
            backupCount=LOG_FILE_BACKUPS,
            encoding='utf-8'
        )
        file_handler.setFormatter(JSONFormatter())

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))

        package_logger = logging.getLogger(PACKAGE_LOGGER)
        package_logger.setLevel(level)
        for handler in (file_handler, console_handler):
            handler.setLevel(level)
            package_logger.addHandler(handler)
            self._handlers.append(handler)

    def close(self):
        """Detach and close the handlers installed by this service."""
        package_logger = logging.getLogger(PACKAGE_LOGGER)
        for handler in self._handlers:
            package_logger.removeHandler(handler)
            handler.close()
        self._handlers.clear()

"""Logging setup and per-operation timing for the notes engine.

Service calls are wrapped with ``traced``; each call lands in the global
``metrics`` collector, which ``NotesService.metrics_report`` exposes.
"""
import functools
import logging
import time
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from threading import Lock
from typing import Any, Callable, Dict, Iterator, Optional, TypeVar, Union

logger = logging.getLogger(__name__)

DEFAULT_LOG_DIR = Path.home() / ".notesmd" / "logs"
LOG_FILE_NAME = "notesmd.log"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S%z"

F = TypeVar("F", bound=Callable[..., Any])


def configure_logging(
    log_dir: Optional[Union[str, Path]] = None,
    level: int = logging.INFO,
    max_bytes: int = 5 * 1024 * 1024,
    backup_count: int = 3,
    console: bool = True,
) -> Path:
    """Send the ``notesmd`` logger hierarchy to a rotating file.

    Calling it again with the same directory does not add handlers.

    Returns:
        The log directory in use.
    """
    log_path = Path(log_dir) if log_dir else DEFAULT_LOG_DIR
    log_path.mkdir(parents=True, exist_ok=True)
    log_file = (log_path / LOG_FILE_NAME).resolve()

    package_logger = logging.getLogger("notesmd")
    package_logger.setLevel(level)
    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    handlers = package_logger.handlers
    has_file = any(
        isinstance(h, RotatingFileHandler) and Path(h.baseFilename) == log_file
        for h in handlers
    )
    if not has_file:
        file_handler = RotatingFileHandler(
            log_file, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
        )
        file_handler.setFormatter(formatter)
        package_logger.addHandler(file_handler)

    has_console = any(type(h) is logging.StreamHandler for h in handlers)
    if console and not has_console:
        stream_handler = logging.StreamHandler()
        stream_handler.setFormatter(formatter)
        package_logger.addHandler(stream_handler)

    package_logger.info(f"Logging to {log_file}")
    return log_path


def _sanitize_error_message(
    message: Optional[str], max_length: int = 200
) -> Optional[str]:
    """Shorten an error for metrics: home dir as ``~``, one line, capped."""
    if message is None:
        return None
    home = str(Path.home())
    if home and home != "/":
        message = message.replace(home, "~")
    message = " ".join(message.splitlines())
    if len(message) > max_length:
        message = message[: max_length - 3] + "..."
    return message


@dataclass
class OperationStats:
    """Running totals for one operation name."""

    calls: int = 0
    failures: int = 0
    total_ms: float = 0.0
    slowest_ms: float = 0.0
    last_error: Optional[str] = None
    last_error_at: Optional[datetime] = None

    def add(self, duration_ms: float, error: Optional[str]) -> None:
        self.calls += 1
        self.total_ms += duration_ms
        self.slowest_ms = max(self.slowest_ms, duration_ms)
        if error is not None:
            self.failures += 1
            self.last_error = _sanitize_error_message(error)
            self.last_error_at = datetime.now(timezone.utc)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "calls": self.calls,
            "failures": self.failures,
            "mean_ms": round(self.total_ms / self.calls, 2) if self.calls else 0.0,
            "slowest_ms": round(self.slowest_ms, 2),
            "last_error": self.last_error,
            "last_error_at": (
                self.last_error_at.isoformat() if self.last_error_at else None
            ),
        }


class MetricsCollector:
    """Thread-safe, in-memory operation statistics. Nothing is persisted."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._stats: Dict[str, OperationStats] = {}
        self._since = datetime.now(timezone.utc)

    def record(
        self, operation: str, duration_ms: float, error: Optional[str] = None
    ) -> None:
        """Add one call of ``operation``; ``error`` marks it as failed."""
        with self._lock:
            stats = self._stats.setdefault(operation, OperationStats())
            stats.add(duration_ms, error)

    def snapshot(self, reset: bool = False) -> Dict[str, Any]:
        """Statistics per operation plus the collection window.

        With ``reset`` the counters start over once the snapshot is taken.
        """
        with self._lock:
            now = datetime.now(timezone.utc)
            report = {
                "since": self._since.isoformat(),
                "total_calls": sum(s.calls for s in self._stats.values()),
                "total_failures": sum(s.failures for s in self._stats.values()),
                "operations": {
                    name: stats.as_dict()
                    for name, stats in sorted(self._stats.items())
                },
            }
            if reset:
                self._stats = {}
                self._since = now
            return report


metrics = MetricsCollector()


@contextmanager
def timed_operation(operation: str, **context: Any) -> Iterator[Dict[str, Any]]:
    """Time a block and record it under ``operation``.

    Yields a dict the block can fill with result details (for example
    ``result_count``); they are appended to the closing debug line.
    Exceptions are recorded and re-raised.
    """
    call_id = uuid.uuid4().hex[:8]
    details: Dict[str, Any] = {}
    if context:
        logger.debug(
            f"[{call_id}] {operation} "
            + " ".join(f"{k}={v!r}" for k, v in context.items())
        )
    started = time.perf_counter()
    error: Optional[str] = None
    try:
        yield details
    except Exception as e:
        error = str(e)
        raise
    finally:
        elapsed_ms = (time.perf_counter() - started) * 1000
        metrics.record(operation, elapsed_ms, error)
        outcome = "ok" if error is None else f"failed: {_sanitize_error_message(error)}"
        extra = "".join(f" {k}={v}" for k, v in details.items())
        logger.debug(f"[{call_id}] {operation} {outcome} in {elapsed_ms:.1f}ms{extra}")


def traced(operation_name: Optional[str] = None) -> Callable[[F], F]:
    """Run the decorated method inside ``timed_operation``.

    The first string argument after ``self`` (a title, filename or search
    criteria) is logged with the call; sized results log their length.
    """

    def decorator(func: F) -> F:
        name = operation_name or func.__name__

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            subject = next(
                (a for a in list(args[1:]) + list(kwargs.values()) if isinstance(a, str)),
                None,
            )
            context = {"subject": subject[:50]} if subject is not None else {}
            with timed_operation(name, **context) as details:
                result = func(*args, **kwargs)
                if isinstance(result, (list, tuple, dict, set)):
                    details["result_count"] = len(result)
                return result

        return wrapper  # type: ignore[return-value]

    return decorator

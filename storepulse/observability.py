"""
Logging setup, request correlation and in-process timing metrics.

Every log line carries the correlation id of the HTTP request being served
(set by web.middleware) and any fields bound with log_context(), such as
the store currently being analysed:

    with log_context(store_id=store_id):
        logger.info("Computing analytics")   # -> ... | {'store_id': 'store-1'}

Timings recorded with @timed land in the global `metrics` collector and
are served by GET /api/metrics.
"""
import functools
import inspect
import logging
import time
import uuid
from collections import Counter, deque
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from statistics import median
from typing import Any, Callable, Deque, Dict, Iterator, Optional

import orjson

_correlation_id: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)

# Fields bound to every record emitted in the current context
_bound_fields: ContextVar[Dict[str, Any]] = ContextVar("bound_fields", default={})

_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}


def get_correlation_id() -> Optional[str]:
    return _correlation_id.get()


def set_correlation_id(correlation_id: str) -> None:
    _correlation_id.set(correlation_id)


def generate_correlation_id() -> str:
    """Short random id for a request without an X-Request-ID header."""
    return uuid.uuid4().hex[:8]


@contextmanager
def log_context(**fields) -> Iterator[Dict[str, Any]]:
    """Bind fields to every log record emitted inside the block.

    Nested blocks add to the outer fields; leaving a block restores them.
    """
    merged = {**_bound_fields.get(), **fields}
    token = _bound_fields.set(merged)
    try:
        yield merged
    finally:
        _bound_fields.reset(token)


def bound_fields() -> Dict[str, Any]:
    return dict(_bound_fields.get())


def record_fields(record: logging.LogRecord) -> Dict[str, Any]:
    """Bound context fields overlaid with the record's own `extra=` fields."""
    fields = bound_fields()
    for key, value in vars(record).items():
        if key not in _RECORD_ATTRS and not key.startswith("_"):
            fields[key] = value
    return fields


class StructuredFormatter(logging.Formatter):
    """One JSON object per line, for log shippers."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc)
            .isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if get_correlation_id():
            entry["correlation_id"] = get_correlation_id()
        entry.update(record_fields(record))
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return orjson.dumps(entry, default=str).decode()


class HumanReadableFormatter(logging.Formatter):
    """TIMESTAMP - LEVEL - LOGGER [CORRELATION_ID] - MESSAGE | fields"""

    def __init__(self):
        super().__init__(datefmt="%Y-%m-%d %H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        correlation_id = get_correlation_id()
        line = (
            f"{self.formatTime(record, self.datefmt)} - {record.levelname:8} - {record.name}"
            f"{f' [{correlation_id}]' if correlation_id else ''} - {record.getMessage()}"
        )

        fields = record_fields(record)
        if fields:
            line += f" | {fields}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_logging(level: str = "INFO", json_format: bool = False) -> None:
    """Route all logging through one stderr handler with the chosen formatter."""
    handler = logging.StreamHandler()
    handler.setFormatter(StructuredFormatter() if json_format else HumanReadableFormatter())

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level.upper())

    # Access lines duplicate RequestContextMiddleware's own
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


# ═══════════════════════════════════════════════════════════════════════════════
# TIMING
# ═══════════════════════════════════════════════════════════════════════════════

class Timer:
    """
    Wall-clock timer for a block.

    Usage:
        with Timer("health_check_db") as timer:
            stats = await store.get_stats()
        latency = timer.elapsed_ms
    """

    def __init__(self, name: str):
        self.name = name
        self.elapsed_ms = 0.0
        self._started = 0.0

    def __enter__(self) -> "Timer":
        self._started = time.perf_counter()
        return self

    def __exit__(self, *exc_info) -> None:
        self.elapsed_ms = (time.perf_counter() - self._started) * 1000


def timed(name: Optional[str] = None, warn_threshold_ms: float = 1000):
    """
    Record how long the wrapped function takes under `name`.

    Slow calls are logged at WARNING; failed calls are timed too.
    """
    def decorator(func: Callable) -> Callable:
        operation = name or func.__name__
        func_logger = get_logger(func.__module__)

        def _finish(timer: Timer) -> None:
            metrics.record_timing(operation, timer.elapsed_ms)
            if timer.elapsed_ms > warn_threshold_ms:
                func_logger.warning(
                    f"{operation} slow", extra={"duration_ms": round(timer.elapsed_ms, 2)}
                )

        if inspect.iscoroutinefunction(func):
            @functools.wraps(func)
            async def async_wrapper(*args, **kwargs):
                timer = Timer(operation)
                try:
                    with timer:
                        return await func(*args, **kwargs)
                finally:
                    _finish(timer)
            return async_wrapper

        @functools.wraps(func)
        def sync_wrapper(*args, **kwargs):
            timer = Timer(operation)
            try:
                with timer:
                    return func(*args, **kwargs)
            finally:
                _finish(timer)
        return sync_wrapper

    return decorator


# ═══════════════════════════════════════════════════════════════════════════════
# METRICS
# ═══════════════════════════════════════════════════════════════════════════════

class MetricsCollector:
    """In-memory request, error and timing counters for GET /api/metrics."""

    def __init__(self, max_samples: int = 100):
        self._max_samples = max_samples
        self._requests: Counter = Counter()
        self._errors: Counter = Counter()
        self._timings: Dict[str, Deque[float]] = {}

    def record_request(self, endpoint: str) -> None:
        self._requests[endpoint] += 1

    def record_error(self, error_type: str) -> None:
        self._errors[error_type] += 1

    def record_timing(self, operation: str, duration_ms: float) -> None:
        """Keep the most recent max_samples durations per operation."""
        if operation not in self._timings:
            self._timings[operation] = deque(maxlen=self._max_samples)
        self._timings[operation].append(duration_ms)

    def get_stats(self) -> Dict[str, Any]:
        timing = {
            operation: {
                "count": len(samples),
                "avg_ms": round(sum(samples) / len(samples), 2),
                "min_ms": round(min(samples), 2),
                "max_ms": round(max(samples), 2),
                "p50_ms": round(median(samples), 2),
            }
            for operation, samples in self._timings.items()
            if samples
        }
        return {
            "requests": dict(self._requests),
            "errors": dict(self._errors),
            "timing": timing,
        }

    def reset(self) -> None:
        self._requests.clear()
        self._errors.clear()
        self._timings.clear()


metrics = MetricsCollector()

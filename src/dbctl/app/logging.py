"""JSON logging configuration with member context and rate limiting."""

import logging
import sys
import time
from collections import deque
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from pythonjsonlogger import jsonlogger

from dbctl.app.config import get_settings


class RateLimitFilter(logging.Filter):
    """Per-message rate limit for non-error records.

    Probes run on a fixed cadence, so a dead database produces the same
    warning every few seconds. A message logged more than `rate_per_minute`
    times in the trailing minute is dropped after one "[RATE LIMITED]"
    marker. ERROR and above always pass.

    Keys whose window has emptied are swept once per window, so the
    filter's memory is bounded by the messages seen in the last minute.
    """

    WINDOW = 60.0  # seconds

    def __init__(
        self, rate_per_minute: int = 100, clock: Callable[[], float] = time.monotonic
    ) -> None:
        super().__init__()
        self.rate_per_minute = rate_per_minute
        self._clock = clock
        self._seen: dict[str, deque[float]] = {}
        self._marked: set[str] = set()
        self._last_sweep = clock()

    @property
    def tracked(self) -> int:
        """Number of messages currently tracked."""
        return len(self._seen)

    def _sweep(self, now: float) -> None:
        cutoff = now - self.WINDOW
        for key in list(self._seen):
            stamps = self._seen[key]
            while stamps and stamps[0] <= cutoff:
                stamps.popleft()
            if not stamps:
                del self._seen[key]
                self._marked.discard(key)
        self._last_sweep = now

    def filter(self, record: logging.LogRecord) -> bool:
        if record.levelno >= logging.ERROR:
            return True

        now = self._clock()
        if now - self._last_sweep >= self.WINDOW:
            self._sweep(now)

        key = f"{record.name}:{record.lineno}:{record.msg}"
        stamps = self._seen.setdefault(key, deque())
        while stamps and stamps[0] <= now - self.WINDOW:
            stamps.popleft()

        if len(stamps) < self.rate_per_minute:
            if len(stamps) < self.rate_per_minute // 2:
                self._marked.discard(key)
            stamps.append(now)
            return True

        if key in self._marked:
            return False
        self._marked.add(key)
        stamps.append(now)
        record.msg = f"[RATE LIMITED] {record.msg} (max {self.rate_per_minute}/min)"
        return True


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter adding schema version, service and member identity.

    Adds the following standard fields to all logs:
    - timestamp: ISO 8601 format with timezone
    - level: Log level name
    - logger: Logger name
    - schema_version: Log schema version
    - service: Service name
    - member: Pod name of this replica
    - namespace: Kubernetes namespace (if known)
    """

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        settings = get_settings()
        self._schema_version = settings.logging.schema_version
        self._service = settings.logging.service_name
        self._member = settings.identity.pod_name
        self._namespace = settings.identity.namespace

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record["timestamp"] = datetime.fromtimestamp(
            record.created, tz=timezone.utc
        ).isoformat()
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["pid"] = record.process
        log_record["lineno"] = record.lineno

        log_record["schema_version"] = self._schema_version
        log_record["service"] = self._service
        log_record.setdefault("member", self._member)
        if self._namespace:
            log_record.setdefault("namespace", self._namespace)

        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)


def setup_logging(level: int | None = None) -> None:
    """Configure JSON logging for the sidecar.

    Args:
        level: Log level. If None, uses LOGGING_LEVEL from settings.
    """
    settings = get_settings()

    if level is None:
        level = getattr(logging, settings.logging.level.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(CustomJsonFormatter())
    handler.addFilter(RateLimitFilter(settings.logging.rate_limit_per_minute))

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    # Driver noise
    for name in ("httpx", "httpcore", "asyncio", "sqlalchemy.engine", "pymongo"):
        logging.getLogger(name).setLevel(logging.WARNING)

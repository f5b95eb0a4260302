from __future__ import annotations

import logging
import threading
import time
from collections import deque
from collections.abc import Callable, Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import TypeVar

from requests_monitor.config import MonitorConfig
from requests_monitor.report import StatusReport, format_timestamp, render_report

logger = logging.getLogger("requests_monitor")

T = TypeVar("T")


class ReportRenderingError(RuntimeError):
    """The status report could not be written to the response."""


@dataclass(frozen=True)
class RequestInfo:
    path: str
    url: str
    query_string: str | None = None


@dataclass(frozen=True)
class LogEntry:
    started_at: datetime
    elapsed_ms: int
    url: str
    query_string: str | None
    slow_count: int
    total_count: int

    def format_line(self) -> str:
        line = (
            f"{format_timestamp(self.started_at)} "
            f"[ {self.slow_count} / {self.total_count} ] "
            f"{self.elapsed_ms} ms : {self.url}"
        )
        if self.query_string is not None:
            line += f"?{self.query_string}"
        return line


@dataclass(frozen=True)
class MonitorSnapshot:
    config: MonitorConfig
    initialized_at: datetime
    total_requests: int
    slow_requests: int
    entries: tuple[LogEntry, ...]


class MonitorState:
    """Counters and bounded slow-request log, guarded by a single lock."""

    def __init__(self, max_log_entries: int, initialized_at: datetime) -> None:
        self.initialized_at = initialized_at
        self.total_requests = 0
        self.slow_requests = 0
        self.log: deque[LogEntry] = deque(maxlen=max_log_entries)
        self.lock = threading.Lock()

    def count_request(self) -> None:
        with self.lock:
            self.total_requests += 1

    def record_slow(
        self,
        started_at: datetime,
        elapsed_ms: int,
        url: str,
        query_string: str | None,
    ) -> LogEntry:
        """Count a slow request and append it, evicting the oldest entry when full."""
        with self.lock:
            self.slow_requests += 1
            entry = LogEntry(
                started_at=started_at,
                elapsed_ms=elapsed_ms,
                url=url,
                query_string=query_string,
                slow_count=self.slow_requests,
                total_count=self.total_requests,
            )
            # deque(maxlen=...) drops from the left on append
            self.log.append(entry)
        return entry

    def clear(self) -> None:
        with self.lock:
            self.log.clear()


class RequestMonitor:
    """Times requests, keeps the slow ones, and renders the status report.

    One instance owns its configuration and state. It is safe to share between
    threads: the only call made outside the state lock is the downstream
    handler itself.
    """

    def __init__(
        self,
        config: MonitorConfig | None = None,
        clock: Callable[[], int] = time.perf_counter_ns,
        now: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.config = config or MonitorConfig()
        self._clock = clock
        self._now = now
        self.state = MonitorState(self.config.max_log_entries, now())
        self._trace(
            "MONITOR INITIALIZED. duration threshold = %d, reporting path = %s",
            self.config.duration_threshold_ms,
            self.config.reporting_path,
        )

    @classmethod
    def from_options(cls, options: Mapping[str, str] | None = None, **kwargs) -> RequestMonitor:
        return cls(MonitorConfig.from_options(options), **kwargs)

    def _trace(self, msg: str, *args) -> None:
        if self.config.trace:
            logger.info("[TRACE] : " + msg, *args)

    def is_reporting_request(self, path: str) -> bool:
        return path.startswith(self.config.reporting_path)

    def wants_report(self, request: RequestInfo) -> bool:
        """Route an incoming request: True for the status report, False to monitor it."""
        self._trace("REQUEST RECEIVED : %s", request.url)
        return self.is_reporting_request(request.path)

    @contextmanager
    def track(self, request: RequestInfo) -> Iterator[None]:
        """Count and time the block; log it if it ran past the threshold."""
        self.state.count_request()
        started_at = self._now()
        start = self._clock()
        try:
            yield
        finally:
            elapsed_ms = (self._clock() - start) // 1_000_000
            if elapsed_ms > self.config.duration_threshold_ms:
                self._log_slow(request, started_at, elapsed_ms)

    def _log_slow(self, request: RequestInfo, started_at: datetime, elapsed_ms: int) -> None:
        entry = self.state.record_slow(
            started_at, elapsed_ms, request.url, request.query_string
        )
        logger.warning("SLOW REQUEST: %s took %dms", request.url, elapsed_ms)
        if self.config.trace:
            self._trace("Logging line : %s", entry.format_line())

    def intercept(self, request: RequestInfo, continuation: Callable[[], T]) -> T | StatusReport:
        """Answer a reporting request, or time the continuation and return its result."""
        if self.wants_report(request):
            return self.report()
        with self.track(request):
            return continuation()

    def snapshot(self) -> MonitorSnapshot:
        state = self.state
        with state.lock:
            return MonitorSnapshot(
                config=self.config,
                initialized_at=state.initialized_at,
                total_requests=state.total_requests,
                slow_requests=state.slow_requests,
                entries=tuple(state.log),
            )

    def report(self) -> StatusReport:
        return render_report(self.snapshot(), self._now())

    def close(self) -> None:
        """Release the slow-request log. Counters are left as they are."""
        self.state.clear()

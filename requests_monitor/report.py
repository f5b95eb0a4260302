from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from requests_monitor.monitor import MonitorSnapshot

TIMESTAMP_FORMAT = "%Y/%m/%d %H:%M:%S"
MEDIA_TYPE = "text/plain"

NO_CACHE_HEADERS = {
    "Pragma": "no-cache",
    "Cache-Control": "no-store, no-cache, must-revalidate",
    # Epoch 0: already expired for proxies
    "Expires": "Thu, 01 Jan 1970 00:00:00 GMT",
}


def format_timestamp(value: datetime) -> str:
    return value.strftime(TIMESTAMP_FORMAT)


@dataclass(frozen=True)
class StatusReport:
    body: str
    media_type: str = MEDIA_TYPE
    headers: dict[str, str] = field(default_factory=lambda: dict(NO_CACHE_HEADERS))


def render_report(snapshot: MonitorSnapshot, now: datetime) -> StatusReport:
    """Render the plain-text status page, log entries oldest first."""
    config = snapshot.config
    lines = [
        f"Requests monitoring status ({format_timestamp(now)})",
        "",
        f"Duration threshold : {config.duration_threshold_ms}",
        f"Log in memory size : {config.max_log_entries} lines",
        "",
        f"Initialization date/time : {format_timestamp(snapshot.initialized_at)}",
        f"Total requests count     : {snapshot.total_requests}",
        f"Long time requests count : {snapshot.slow_requests}",
        "",
        f"{len(snapshot.entries)} last long time requests :",
    ]
    lines.extend(entry.format_line() for entry in snapshot.entries)
    return StatusReport(body="\n".join(lines) + "\n")

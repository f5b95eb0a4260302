from requests_monitor.config import MonitorConfig
from requests_monitor.middleware import RequestsMonitorMiddleware
from requests_monitor.monitor import (
    LogEntry,
    MonitorSnapshot,
    MonitorState,
    ReportRenderingError,
    RequestInfo,
    RequestMonitor,
)
from requests_monitor.report import StatusReport

__all__ = [
    "LogEntry",
    "MonitorConfig",
    "MonitorSnapshot",
    "MonitorState",
    "ReportRenderingError",
    "RequestInfo",
    "RequestMonitor",
    "RequestsMonitorMiddleware",
    "StatusReport",
]

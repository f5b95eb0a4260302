from __future__ import annotations

from collections.abc import Mapping

from starlette.datastructures import URL
from starlette.requests import ClientDisconnect
from starlette.responses import PlainTextResponse

from requests_monitor.monitor import ReportRenderingError, RequestInfo, RequestMonitor


def route_path(scope) -> str:
    """Path relative to the app, without the root_path it is mounted under."""
    path = scope["path"]
    root_path = scope.get("root_path", "")
    if root_path and path.startswith(root_path):
        rest = path[len(root_path):]
        if not rest or rest.startswith("/"):
            return rest
    return path


def request_info(scope) -> RequestInfo:
    """Describe an HTTP scope: app-relative path for routing, URL without query for the log."""
    url = URL(scope=scope)
    query_string = scope.get("query_string", b"").decode("latin-1")
    return RequestInfo(
        path=route_path(scope),
        url=str(url.replace(query="")),
        query_string=query_string or None,
    )


class RequestsMonitorMiddleware:
    """Pure ASGI middleware: times every request and serves the status report."""

    def __init__(
        self,
        app,
        monitor: RequestMonitor | None = None,
        options: Mapping[str, str] | None = None,
    ):
        self.app = app
        self.monitor = monitor or RequestMonitor.from_options(options)

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        info = request_info(scope)
        if self.monitor.wants_report(info):
            await self._send_report(scope, receive, send)
            return

        with self.monitor.track(info):
            await self.app(scope, receive, send)

    async def _send_report(self, scope, receive, send):
        report = self.monitor.report()
        response = PlainTextResponse(
            report.body, headers=report.headers, media_type=report.media_type
        )
        try:
            await response(scope, receive, send)
        except (OSError, ClientDisconnect) as exc:
            raise ReportRenderingError("cannot write monitoring report") from exc

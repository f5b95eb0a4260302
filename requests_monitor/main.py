import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from requests_monitor.config import settings
from requests_monitor.middleware import RequestsMonitorMiddleware
from requests_monitor.monitor import RequestMonitor

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)

monitor = RequestMonitor.from_options(settings.monitor_options())


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    monitor.close()


app = FastAPI(title="Requests Monitor", version="1.0.0", lifespan=lifespan)
app.add_middleware(RequestsMonitorMiddleware, monitor=monitor)


@app.get("/health")
async def health():
    return {"status": "ok"}

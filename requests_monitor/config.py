from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

from pydantic_settings import BaseSettings

DEFAULT_DURATION_THRESHOLD_MS = 1000
DEFAULT_REPORTING_PATH = "/monitor"
DEFAULT_MAX_LOG_ENTRIES = 100
MAX_OPTION_VALUE = 2**31 - 1


def _parse_int(value: str | None, default: int) -> int:
    """Parse a non-negative 32-bit int, falling back to default on anything else."""
    if value is None:
        return default
    value = value.strip()
    # int() also takes "1_000"; option values are plain digits
    if "_" in value:
        return default
    try:
        parsed = int(value)
    except ValueError:
        return default
    if parsed < 0 or parsed > MAX_OPTION_VALUE:
        return default
    return parsed


@dataclass(frozen=True)
class MonitorConfig:
    duration_threshold_ms: int = DEFAULT_DURATION_THRESHOLD_MS
    reporting_path: str = DEFAULT_REPORTING_PATH
    max_log_entries: int = DEFAULT_MAX_LOG_ENTRIES
    trace: bool = False

    def __post_init__(self) -> None:
        if self.duration_threshold_ms < 0:
            raise ValueError("duration_threshold_ms must be >= 0")
        if self.max_log_entries < 0:
            raise ValueError("max_log_entries must be >= 0")

    @classmethod
    def from_options(cls, options: Mapping[str, str] | None = None) -> MonitorConfig:
        """Build a config from flat string options. Never raises."""
        options = options or {}
        reporting = options.get("reporting")
        trace = options.get("trace")
        return cls(
            duration_threshold_ms=_parse_int(
                options.get("duration"), DEFAULT_DURATION_THRESHOLD_MS
            ),
            reporting_path=reporting if reporting else DEFAULT_REPORTING_PATH,
            max_log_entries=_parse_int(options.get("logsize"), DEFAULT_MAX_LOG_ENTRIES),
            trace=trace is not None and trace.lower() == "true",
        )


class Settings(BaseSettings):
    # Kept as raw strings: bad values fall back to defaults in from_options.
    duration: str | None = None
    logsize: str | None = None
    reporting: str | None = None
    trace: str | None = None
    log_level: str = "INFO"

    model_config = {"env_prefix": "REQUESTS_MONITOR_"}

    def monitor_options(self) -> dict[str, str]:
        options = {
            "duration": self.duration,
            "logsize": self.logsize,
            "reporting": self.reporting,
            "trace": self.trace,
        }
        return {key: value for key, value in options.items() if value is not None}


settings = Settings()

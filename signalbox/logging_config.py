"""
Logging setup shared by the relay and the uvicorn server it runs under.

Relay decisions (session created, joined, forwarded, cleaned up) log under
the ``signalbox`` tree; uvicorn keeps its own loggers but writes through the
same console handler. Access lines for probe endpoints are dropped.
"""

import logging
import logging.config
from typing import Any, Dict, Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Hit by load balancers and Prometheus every few seconds
PROBE_PATHS = frozenset({"/health", "/healthz", "/metrics"})

# Frame-level chatter from the WebSocket implementation
QUIET_LOGGERS = ("websockets", "wsproto")

APP_LOGGERS = ("signalbox", "uvicorn", "uvicorn.error")


def _access_path(record: logging.LogRecord) -> Optional[str]:
    # uvicorn.access args: (client_addr, method, full_path, http_version, status_code)
    args = record.args
    if isinstance(args, tuple) and len(args) >= 3:
        return str(args[2]).split("?", 1)[0]
    return None


class ProbeAccessFilter(logging.Filter):
    """Drop uvicorn access lines for probe endpoints."""

    def filter(self, record: logging.LogRecord) -> bool:
        if record.name != "uvicorn.access":
            return True
        return _access_path(record) not in PROBE_PATHS


def get_logging_config(level: str = "INFO", access_log: bool = True) -> Dict[str, Any]:
    """
    Build the dictConfig used by the relay and passed to uvicorn.

    Args:
        level: Level for relay and server loggers
        access_log: When False, HTTP access lines are raised to WARNING
    """
    level = level.upper()

    loggers: Dict[str, Any] = {
        name: {"handlers": ["console"], "level": level, "propagate": False}
        for name in APP_LOGGERS
    }
    loggers["uvicorn.access"] = {
        "handlers": ["access"],
        "level": level if access_log else "WARNING",
        "propagate": False,
    }
    for name in QUIET_LOGGERS:
        loggers[name] = {"level": "WARNING"}

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {"probe_access": {"()": ProbeAccessFilter}},
        "formatters": {
            "relay": {"format": LOG_FORMAT},
            "access": {"format": "%(message)s"},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "relay",
                "stream": "ext://sys.stdout",
            },
            "access": {
                "class": "logging.StreamHandler",
                "formatter": "access",
                "stream": "ext://sys.stdout",
                "filters": ["probe_access"],
            },
        },
        "loggers": loggers,
        "root": {"level": level, "handlers": ["console"]},
    }


def configure_logging(level: str = "INFO") -> None:
    logging.config.dictConfig(get_logging_config(level))

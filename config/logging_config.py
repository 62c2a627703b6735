"""
Central logging configuration for the API and the ingest job.

- JSON logs when LOG_JSON=1 or RAILWAY_ENVIRONMENT is set, plain text otherwise.
- LOG_LEVEL from env (default INFO); callers may force a level (CLI --verbose).
- Never log PII: no emails, passwords, session cookies. Log user ids and
  tickers only, as key=value pairs.
"""
import json
import logging
import os
import sys
from typing import Any, Optional

NOISY_LOGGERS = ("uvicorn.access", "httpx", "httpcore", "openai", "sqlalchemy.engine")


def _json_serial(obj: Any):
    if hasattr(obj, "isoformat"):
        return obj.isoformat()
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


class JsonFormatter(logging.Formatter):
    """Single-line JSON records for log aggregators."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": self.formatTime(record, "%Y-%m-%dT%H:%M:%S") + "Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info and record.exc_info[0]:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=_json_serial)


def _use_json() -> bool:
    return (
        os.getenv("LOG_JSON", "").lower() in ("1", "true", "yes")
        or bool(os.getenv("RAILWAY_ENVIRONMENT"))
    )


def configure_logging(level_name: Optional[str] = None) -> None:
    """Configure the root logger once; safe to call again on reload."""
    level_name = (level_name or os.getenv("LOG_LEVEL") or "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)

    root = logging.getLogger()
    root.setLevel(level)
    for h in root.handlers[:]:
        root.removeHandler(h)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    if _use_json():
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
        )
    root.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

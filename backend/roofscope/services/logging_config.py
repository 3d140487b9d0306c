"""Structured logging configuration for the RoofScope estimator."""
import logging
import json
import sys
from datetime import datetime, timezone

# extra= fields copied into the JSON payload when present on a record
_EXTRA_FIELDS = ("estimate_id", "duration_ms", "item_count", "quote_id")


class JSONFormatter(logging.Formatter):
    """JSON structured log formatter for production."""
    def format(self, record):
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)
        for key in _EXTRA_FIELDS:
            if hasattr(record, key):
                log_entry[key] = getattr(record, key)
        return json.dumps(log_entry)


def setup_logging(level: str = "INFO", json_output: bool = True):
    """Configure application logging."""
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    handler = logging.StreamHandler(sys.stdout)
    if json_output:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s [%(name)s] %(levelname)s: %(message)s"
        ))

    root.handlers = [handler]

    # Third-party noise
    for name in ["pandas", "dotenv"]:
        logging.getLogger(name).setLevel(logging.WARNING)


def configure_from_env():
    """setup_logging() driven by LOG_LEVEL / LOG_FORMAT (json|text)."""
    from roofscope.config import LOG_JSON, LOG_LEVEL
    setup_logging(level=LOG_LEVEL, json_output=LOG_JSON)

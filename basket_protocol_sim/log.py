#!/usr/bin/env python3
"""
Logging Setup

Plain text or JSON log output for simulation runs. JSON records carry the
block height, basket nonce and account attached by the engines as extras.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

EXTRA_FIELDS = ("block", "nonce", "account", "scenario")


class JsonFormatter(logging.Formatter):
    """A minimal JSON formatter for structured logs"""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        for key in EXTRA_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                payload[key] = value
        return json.dumps(payload, separators=(",", ":"))


def configure_logging(fmt: Optional[str] = None, level: str = "WARNING") -> None:
    """
    Configure the root logger with plain text or JSON output

    Args:
        fmt: 'json' or 'text'. Defaults to LOG_FORMAT env or 'text'.
        level: root log level name
    """
    fmt = (fmt or os.getenv("LOG_FORMAT", "text")).lower()
    root = logging.getLogger()
    root.setLevel(level.upper())

    for h in list(root.handlers):
        root.removeHandler(h)

    handler = logging.StreamHandler(sys.stderr)
    if fmt == "json":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("[%(asctime)s] %(levelname)s %(name)s: %(message)s")
        )
    root.addHandler(handler)

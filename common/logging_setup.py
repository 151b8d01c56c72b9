from __future__ import annotations

import json
import logging
import os
import sys
import time
from typing import IO, Optional


class JsonFormatter(logging.Formatter):
    """
    One JSON object per line:
      { "t": 1718000000123, "lvl": "INFO", "name": "fusion", "msg": "text", "extra": {...} }
    """

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        payload = {
            "t": int(time.time() * 1000),
            "lvl": record.levelname,
            "name": record.name,
            "msg": record.getMessage(),
        }
        # Structured context travels as extra={"extra": {...}}
        if hasattr(record, "extra") and isinstance(record.extra, dict):  # type: ignore[attr-defined]
            payload["extra"] = record.extra  # type: ignore[attr-defined]
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def _resolve_level(level: Optional[str]) -> int:
    name = (level or os.environ.get("LOG_LEVEL") or "INFO").upper()
    if name == "WARN":
        name = "WARNING"
    lvl = getattr(logging, name, None)
    return lvl if isinstance(lvl, int) else logging.INFO


def setup_logging(level: Optional[str] = None, stream: Optional[IO[str]] = None, force: bool = False) -> None:
    """
    Configure the root logger once with JSON formatting.

    Level precedence:
      - explicit `level` arg
      - env LOG_LEVEL (DEBUG/INFO/WARN/ERROR)
      - default INFO

    A later call with an explicit level only adjusts the level; pass
    force=True to rebuild the handler (e.g. to redirect the stream).
    """
    root = logging.getLogger()
    if getattr(root, "_groundstation_configured", False) and not force:
        if level:
            root.setLevel(_resolve_level(level))
        return

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(JsonFormatter())

    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(_resolve_level(level))
    root._groundstation_configured = True  # type: ignore[attr-defined]


def get_logger(name: str) -> logging.Logger:
    """Get a module logger; ensures root is configured."""
    setup_logging()
    return logging.getLogger(name)

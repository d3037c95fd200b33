"""Logging helpers: logger setup plus one-line JSON operation events."""

from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timezone
from typing import Any, Mapping

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(message)s"


def utc_now_iso8601() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


def setup_logger(name: str, *, level: str = "INFO", log_path: str | None = None) -> logging.Logger:
    """Configure a named logger with a stream handler and an optional UTF-8 file handler."""

    resolved_level = logging.getLevelName(str(level).strip().upper())
    if not isinstance(resolved_level, int):
        raise ValueError(f"Invalid log level: {level!r}")

    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG)
    logger.handlers.clear()

    formatter = logging.Formatter(LOG_FORMAT)

    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(resolved_level)
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    if log_path:
        directory = os.path.dirname(os.path.abspath(log_path))
        os.makedirs(directory, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.propagate = False
    logger.debug("Logging initialized (logger=%s level=%s file=%s)", name, level, log_path or "<none>")
    return logger


def log_operation(
    logger: logging.Logger,
    *,
    build_id: str,
    step: str,
    status: str,
    duration_ms: int = 0,
    error_message: str | None = None,
    metadata: Mapping[str, Any] | None = None,
    level: int = logging.INFO,
) -> dict[str, Any]:
    """Emit one compact JSON event describing a pipeline operation and return it."""

    event: dict[str, Any] = {
        "timestamp": utc_now_iso8601(),
        "buildId": build_id,
        "step": step,
        "status": status,
        "durationMs": int(duration_ms),
    }
    if error_message:
        event["errorMessage"] = error_message
    if metadata:
        event["metadata"] = dict(metadata)

    logger.log(level, "%s", json.dumps(event, sort_keys=True, default=str, separators=(",", ":")))
    return event

"""
app/logging_utils.py

Structured logging helpers shared by the importer and its entry points.
"""

from __future__ import annotations

import json
import logging
from typing import Any


def configure_logging(level: str | None = None) -> None:
    """
    Configure root logging once for a process entry point.
    """

    if level is None:
        from app.config import get_log_level

        level = get_log_level()
    logging.basicConfig(
        level=getattr(logging, level.strip().upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def log_event(
    logger: logging.Logger,
    level: int,
    event: str,
    **fields: Any,
) -> None:
    """
    Emit one structured log line as compact JSON.
    """

    payload = {"event": event, **fields}
    logger.log(level, json.dumps(payload, default=str, sort_keys=True))

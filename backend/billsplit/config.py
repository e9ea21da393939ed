from __future__ import annotations

import os

from loguru import logger


def _env_positive_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        value = 0
    if value < 1:
        logger.warning("{}={!r} is not a positive integer, using {}", name, raw, default)
        return default
    return value


class Config:
    MAX_HISTORY_DEPTH = _env_positive_int("MAX_HISTORY_DEPTH", 50)
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").strip().upper()
    CURRENCY = os.getenv("CURRENCY", "USD").strip() or "USD"

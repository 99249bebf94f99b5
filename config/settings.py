"""Runtime settings read from the environment (entry points load .env first)."""

import os

from loguru import logger


def _int_env(name: str, default: int | None = None) -> int | None:
    """Read a positive integer env var; blank or invalid values fall back to the default."""
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning(f"{name}={raw!r} is not an integer — using {default}")
        return default
    if value < 0:
        logger.warning(f"{name}={value} is negative — using {default}")
        return default
    return value


PROCESSOR_NAME = os.getenv("COMPLIANCE_PROCESSOR_NAME", "compliance-scoring-v2")

# Lines either side of a trigger searched for safe exceptions.
# Unset = the whole transcript (historical behaviour).
SAFE_EXCEPTION_WINDOW_LINES = _int_env("SAFE_EXCEPTION_WINDOW_LINES")

# Batch worker pool size. Unset = CPU count.
MAX_WORKERS = _int_env("COMPLIANCE_MAX_WORKERS")

LOG_LEVEL = os.getenv("COMPLIANCE_LOG_LEVEL", "INFO").upper()

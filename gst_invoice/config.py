"""Runtime configuration loaded from environment variables."""

from __future__ import annotations

import os


def env_int(name: str, default: int, minimum: int = 1) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value >= minimum else default


def env_str(name: str, default: str = "") -> str:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip()


HOST = env_str("INVOICE_HOST", "0.0.0.0")
PORT = env_int("INVOICE_PORT", 8080, minimum=0)

# Each render owns a whole worker process, so keep the pool small.
DEFAULT_MAX_CONCURRENT_RENDERS = max(2, min(8, os.cpu_count() or 2))
MAX_CONCURRENT_RENDERS = env_int(
    "INVOICE_MAX_CONCURRENT_RENDERS",
    DEFAULT_MAX_CONCURRENT_RENDERS,
    minimum=1,
)
MAX_INFLIGHT_RENDERS = env_int(
    "INVOICE_MAX_INFLIGHT_RENDERS",
    max(16, MAX_CONCURRENT_RENDERS * 4),
    minimum=1,
)
RENDER_QUEUE_TIMEOUT_MS = env_int("INVOICE_RENDER_QUEUE_TIMEOUT_MS", 5000, minimum=0)
RENDER_TIMEOUT_MS = env_int("INVOICE_RENDER_TIMEOUT_MS", 60000, minimum=1000)

MAX_BODY_BYTES = env_int("INVOICE_MAX_BODY_BYTES", 4 * 1024 * 1024, minimum=1024)
MAX_PAGES = env_int("INVOICE_MAX_PAGES", 200, minimum=1)
LISTEN_BACKLOG = env_int("INVOICE_LISTEN_BACKLOG", 128, minimum=1)

AUTH_URL = env_str("INVOICE_AUTH_URL")
AUTH_API_KEY = env_str("INVOICE_AUTH_API_KEY")
AUTH_TIMEOUT_MS = env_int("INVOICE_AUTH_TIMEOUT_MS", 5000, minimum=100)

CURRENCY_SYMBOL = env_str("INVOICE_CURRENCY_SYMBOL", "₹")
LOG_LEVEL = env_str("INVOICE_LOG_LEVEL", "INFO").upper()

"""Public package API for GST invoice generation."""

from __future__ import annotations

from .config import CURRENCY_SYMBOL
from .errors import (
    AuthorizationError,
    InvoiceError,
    NotFoundError,
    RenderError,
    RenderInProgressError,
    ValidationError,
)
from .ledger import TAX_RATE, Identity, InvoiceAggregate, InvoiceSnapshot, Ledger, LineItem
from .render_pool import RenderPool
from .session import InvoiceSession


def render_snapshot(snapshot: InvoiceSnapshot, currency_symbol: str = CURRENCY_SYMBOL):
    from .rendering import render_snapshot as _render_snapshot

    return _render_snapshot(snapshot, currency_symbol)


def run(host: str = "0.0.0.0", port: int = 8080) -> None:
    from .server import run as _run

    _run(host, port)


__all__ = [
    "TAX_RATE",
    "AuthorizationError",
    "Identity",
    "InvoiceAggregate",
    "InvoiceError",
    "InvoiceSession",
    "InvoiceSnapshot",
    "Ledger",
    "LineItem",
    "NotFoundError",
    "RenderPool",
    "RenderError",
    "RenderInProgressError",
    "ValidationError",
    "render_snapshot",
    "run",
]

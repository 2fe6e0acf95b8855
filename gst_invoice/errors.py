"""Error types shared by the ledger, renderer and HTTP layer."""

from __future__ import annotations

from typing import Optional


class InvoiceError(Exception):
    """Base class for all recoverable invoice errors."""


class ValidationError(InvoiceError):
    """Raised when a ledger mutation receives bad input."""

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        super().__init__(message)
        self.field = field


class NotFoundError(InvoiceError):
    """Raised when an operation references an unknown line item."""

    def __init__(self, item_id: str) -> None:
        super().__init__(f"Line item {item_id!r} does not exist.")
        self.item_id = item_id


class AuthorizationError(InvoiceError):
    """Raised when a request carries no valid credential."""


class RenderError(InvoiceError):
    """Raised when a document cannot be produced.

    ``retryable`` marks failures caused by resource pressure (timeouts, a full
    queue, memory exhaustion) where the caller should back off and retry.
    """

    def __init__(self, message: str, retryable: bool = False) -> None:
        super().__init__(message)
        self.retryable = retryable


class RenderTimeoutError(RenderError):
    def __init__(self, message: str) -> None:
        super().__init__(message, retryable=True)


class RenderBusyError(RenderError):
    def __init__(self, message: str) -> None:
        super().__init__(message, retryable=True)


class RenderInProgressError(InvoiceError):
    """Raised when a session requests a render while one is still pending."""

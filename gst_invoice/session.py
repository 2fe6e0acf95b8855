"""Per-invoice session tying a ledger to its owner and the render pool."""

from __future__ import annotations

import logging
from concurrent.futures import Future
from datetime import datetime, timezone
from typing import Any, Optional, Tuple

from .errors import RenderError, RenderInProgressError
from .ledger import Identity, InvoiceAggregate, InvoiceSnapshot, Ledger, LineItem
from .render_pool import RenderPool

logger = logging.getLogger(__name__)


class InvoiceSession:
    """One invoice being edited by one user.

    The UI layer creates a session per open invoice and calls into it; there
    is no module-level store. Ledger calls are synchronous. ``request_render``
    returns a future so the caller keeps handling input while the PDF is
    produced, and only one render per session may be outstanding.
    """

    def __init__(self, identity: Identity, render_pool: RenderPool, ledger: Optional[Ledger] = None) -> None:
        self.identity = identity
        self.render_pool = render_pool
        self.ledger = ledger if ledger is not None else Ledger()
        self._pending: Optional[Future] = None

    @property
    def items(self) -> Tuple[LineItem, ...]:
        return self.ledger.items

    @property
    def aggregate(self) -> InvoiceAggregate:
        return self.ledger.aggregate

    def add_item(self, name: Any, quantity: Any, unit_rate: Any) -> LineItem:
        return self.ledger.add_item(name, quantity, unit_rate)

    def update_item(self, item_id: str, quantity: Any, unit_rate: Any) -> LineItem:
        return self.ledger.update_item(item_id, quantity, unit_rate)

    def remove_item(self, item_id: str) -> None:
        self.ledger.remove_item(item_id)

    def clear(self) -> None:
        self.ledger.clear()

    def snapshot(self, issued_at: Optional[datetime] = None) -> InvoiceSnapshot:
        return self.ledger.snapshot(self.identity, issued_at or datetime.now(timezone.utc))

    @property
    def render_in_flight(self) -> bool:
        return self._pending is not None and not self._pending.done()

    def request_render(self, issued_at: Optional[datetime] = None) -> Future:
        if self.render_in_flight:
            raise RenderInProgressError("A render for this invoice is already in progress.")
        snapshot = self.snapshot(issued_at)
        if not snapshot.items:
            raise RenderError("Cannot render an invoice without line items.")
        self._pending = self.render_pool.submit(snapshot)
        logger.debug(
            "Render requested for user %s (%d items)", self.identity.user_id, len(snapshot.items)
        )
        return self._pending

    def cancel_render(self) -> bool:
        if self._pending is None:
            return False
        return self.render_pool.cancel(self._pending)

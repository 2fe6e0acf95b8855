"""Line-item ledger and the invoice snapshot handed to the renderer."""

from __future__ import annotations

import math
import uuid
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .errors import NotFoundError, ValidationError

TAX_RATE = Decimal("0.18")
ZERO = Decimal("0")


@dataclass(frozen=True)
class LineItem:
    id: str
    name: str
    quantity: int
    unit_rate: Decimal
    line_amount: Decimal
    tax_amount: Decimal


@dataclass(frozen=True)
class InvoiceAggregate:
    subtotal: Decimal
    total_tax: Decimal
    grand_total: Decimal

    @classmethod
    def zero(cls) -> "InvoiceAggregate":
        return cls(subtotal=ZERO, total_tax=ZERO, grand_total=ZERO)

    @classmethod
    def from_items(cls, items: Iterable[LineItem]) -> "InvoiceAggregate":
        subtotal = ZERO
        total_tax = ZERO
        for item in items:
            subtotal += item.line_amount
            total_tax += item.tax_amount
        return cls(subtotal=subtotal, total_tax=total_tax, grand_total=subtotal + total_tax)


@dataclass(frozen=True)
class Identity:
    user_id: str
    display_name: str
    email: str


@dataclass(frozen=True)
class InvoiceSnapshot:
    bill_to_name: str
    bill_to_email: str
    items: Tuple[LineItem, ...]
    aggregate: InvoiceAggregate
    issued_at: datetime
    invoice_number: str


def new_invoice_number() -> str:
    return f"INV-{uuid.uuid4().hex[:10].upper()}"


def _validate_name(name: Any) -> str:
    if not isinstance(name, str) or not name.strip():
        raise ValidationError("Product name is required.", field="name")
    return name.strip()


def _validate_quantity(quantity: Any) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise ValidationError("Quantity must be a whole number.", field="qty")
    if quantity < 1:
        raise ValidationError("Quantity must be at least 1.", field="qty")
    return quantity


def _validate_rate(unit_rate: Any) -> Decimal:
    if isinstance(unit_rate, bool):
        raise ValidationError("Rate must be a number.", field="rate")
    if isinstance(unit_rate, float) and not math.isfinite(unit_rate):
        raise ValidationError("Rate must be a finite number.", field="rate")
    try:
        # str() keeps 0.1 as Decimal("0.1") instead of its binary expansion.
        rate = unit_rate if isinstance(unit_rate, Decimal) else Decimal(str(unit_rate).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError("Rate must be a number.", field="rate") from None
    if not rate.is_finite():
        raise ValidationError("Rate must be a finite number.", field="rate")
    if rate <= ZERO:
        raise ValidationError("Rate must be greater than 0.", field="rate")
    return rate


def _price(item_id: str, name: str, quantity: int, unit_rate: Decimal) -> LineItem:
    line_amount = quantity * unit_rate
    return LineItem(
        id=item_id,
        name=name,
        quantity=quantity,
        unit_rate=unit_rate,
        line_amount=line_amount,
        tax_amount=line_amount * TAX_RATE,
    )


class Ledger:
    """Ordered line items plus the aggregate derived from them.

    The ledger is the only writer of ``line_amount``/``tax_amount`` and of the
    aggregate. Every mutation validates first and only then touches state, and
    the aggregate is refolded over the full item list afterwards.
    """

    def __init__(self) -> None:
        self._items: List[LineItem] = []
        self._aggregate = InvoiceAggregate.zero()

    @classmethod
    def from_products(cls, products: Iterable[Any]) -> "Ledger":
        """Build a ledger from transport ``products`` entries.

        Only ``name``, ``qty`` and ``rate`` are read; client-computed ``total``
        and ``gst`` values are recomputed.
        """
        ledger = cls()
        for index, product in enumerate(products):
            if not isinstance(product, dict):
                raise ValidationError(
                    f"products[{index}] must be an object.",
                    field=f"products[{index}]",
                )
            try:
                ledger.add_item(product.get("name"), product.get("qty"), product.get("rate"))
            except ValidationError as exc:
                raise ValidationError(
                    f"products[{index}].{exc.field}: {exc}",
                    field=f"products[{index}].{exc.field}",
                ) from exc
        return ledger

    def __len__(self) -> int:
        return len(self._items)

    @property
    def items(self) -> Tuple[LineItem, ...]:
        return tuple(self._items)

    @property
    def aggregate(self) -> InvoiceAggregate:
        return self._aggregate

    def get(self, item_id: str) -> LineItem:
        return self._items[self._index_of(item_id)]

    def add_item(self, name: Any, quantity: Any, unit_rate: Any) -> LineItem:
        item = _price(
            uuid.uuid4().hex,
            _validate_name(name),
            _validate_quantity(quantity),
            _validate_rate(unit_rate),
        )
        self._items.append(item)
        self._recompute()
        return item

    def update_item(self, item_id: str, quantity: Any, unit_rate: Any) -> LineItem:
        index = self._index_of(item_id)
        current = self._items[index]
        item = _price(
            current.id,
            current.name,
            _validate_quantity(quantity),
            _validate_rate(unit_rate),
        )
        self._items[index] = item
        self._recompute()
        return item

    def remove_item(self, item_id: str) -> None:
        # Unknown ids are ignored; the aggregate is refolded either way.
        self._items = [item for item in self._items if item.id != item_id]
        self._recompute()

    def clear(self) -> None:
        self._items = []
        self._aggregate = InvoiceAggregate.zero()

    def snapshot(
        self,
        identity: Identity,
        issued_at: datetime,
        invoice_number: Optional[str] = None,
    ) -> InvoiceSnapshot:
        return InvoiceSnapshot(
            bill_to_name=identity.display_name,
            bill_to_email=identity.email,
            items=tuple(self._items),
            aggregate=self._aggregate,
            issued_at=issued_at,
            invoice_number=invoice_number or new_invoice_number(),
        )

    def to_products(self) -> List[Dict[str, Any]]:
        """Serialize items in the transport ``products`` shape."""
        return [
            {
                "id": item.id,
                "name": item.name,
                "qty": item.quantity,
                "rate": float(item.unit_rate),
                "total": float(item.line_amount),
                "gst": float(item.tax_amount),
            }
            for item in self._items
        ]

    def _index_of(self, item_id: str) -> int:
        for index, item in enumerate(self._items):
            if item.id == item_id:
                return index
        raise NotFoundError(item_id)

    def _recompute(self) -> None:
        self._aggregate = InvoiceAggregate.from_items(self._items)

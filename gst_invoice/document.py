"""Intermediate document tree built from an invoice snapshot."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

from .errors import RenderError
from .formatting import epoch_millis, fmt_date, fmt_money, fmt_qty
from .ledger import TAX_RATE, InvoiceSnapshot
from .pdf_constants import COLUMN_WIDTHS

TAX_LABEL = f"GST ({int(TAX_RATE * 100)}%)"
PDF_CONTENT_TYPE = "application/pdf"


@dataclass(frozen=True)
class Column:
    title: str
    width: float
    align: str


@dataclass(frozen=True)
class HeaderBlock:
    title: str
    invoice_number: str
    bill_to_name: str
    bill_to_email: str
    issued_on: str


@dataclass(frozen=True)
class TableRow:
    cells: Tuple[str, ...]


@dataclass(frozen=True)
class TableSection:
    columns: Tuple[Column, ...]
    rows: Tuple[TableRow, ...]


@dataclass(frozen=True)
class SummaryLine:
    label: str
    value: str
    emphasis: bool = False


@dataclass(frozen=True)
class SummaryBlock:
    lines: Tuple[SummaryLine, ...]


@dataclass(frozen=True)
class InvoiceDocument:
    header: HeaderBlock
    table: TableSection
    summary: SummaryBlock
    filename: str


@dataclass(frozen=True)
class RenderedDocument:
    content: bytes
    content_type: str
    filename: str
    page_count: int


COLUMNS = tuple(
    Column(title=title, width=width, align=align)
    for (title, align), width in zip(
        (
            ("Product Name", "L"),
            ("Qty", "C"),
            ("Rate", "R"),
            ("Total", "R"),
            (TAX_LABEL, "R"),
        ),
        COLUMN_WIDTHS,
    )
)


def document_filename(snapshot: InvoiceSnapshot) -> str:
    return f"invoice-{epoch_millis(snapshot.issued_at)}.pdf"


def build_document(snapshot: InvoiceSnapshot, currency_symbol: str) -> InvoiceDocument:
    """Turn a snapshot into the header/table/summary tree the renderer lays out.

    Every string drawn on the page is produced here, so two snapshots with
    equal fields always give equal trees.
    """
    if not snapshot.items:
        raise RenderError("Cannot render an invoice without line items.")

    header = HeaderBlock(
        title="INVOICE",
        invoice_number=f"Invoice #{snapshot.invoice_number}",
        bill_to_name=snapshot.bill_to_name,
        bill_to_email=snapshot.bill_to_email,
        issued_on=fmt_date(snapshot.issued_at),
    )

    rows = tuple(
        TableRow(
            cells=(
                item.name,
                fmt_qty(item.quantity),
                fmt_money(item.unit_rate, currency_symbol),
                fmt_money(item.line_amount, currency_symbol),
                fmt_money(item.tax_amount, currency_symbol),
            )
        )
        for item in snapshot.items
    )

    aggregate = snapshot.aggregate
    summary = SummaryBlock(
        lines=(
            SummaryLine("Subtotal:", fmt_money(aggregate.subtotal, currency_symbol)),
            SummaryLine(f"Total {TAX_LABEL}:", fmt_money(aggregate.total_tax, currency_symbol)),
            SummaryLine("Grand Total:", fmt_money(aggregate.grand_total, currency_symbol), emphasis=True),
        )
    )

    return InvoiceDocument(
        header=header,
        table=TableSection(columns=COLUMNS, rows=rows),
        summary=summary,
        filename=document_filename(snapshot),
    )

"""Invoice PDF rendering logic."""

from __future__ import annotations

from datetime import datetime
from typing import List, Sequence

from fpdf import FPDF

from .config import CURRENCY_SYMBOL
from .document import PDF_CONTENT_TYPE, InvoiceDocument, RenderedDocument, TableRow, build_document
from .errors import RenderError
from .fonts import FontManager
from .formatting import round_rect, wrap_text
from .ledger import InvoiceSnapshot
from .pagination import paginate
from .pdf_constants import (
    BAR_H,
    BAR_RADIUS,
    BAR_TEXT_OFFSET,
    BAR_Y_CONT,
    BAR_Y_FIRST,
    BILL_TO_EMAIL_Y,
    BILL_TO_LABEL_Y,
    BILL_TO_NAME_Y,
    CELL_PAD,
    COLOR_BAR,
    COLOR_BAR_TEXT,
    COLOR_MUTED,
    COLOR_RULE,
    COLOR_TEXT,
    COLOR_TITLE,
    COLOR_TOTAL_RULE,
    CONTENT_W,
    DATE_LABEL_Y,
    DATE_Y,
    FONT_SIZE_HEADING,
    FONT_SIZE_NORMAL,
    FONT_SIZE_SMALL,
    FONT_SIZE_TITLE,
    FOOTER_Y,
    HEADER_RULE_Y,
    ITEM_ROW_H,
    ITEM_TEXT_OFFSET,
    MARGIN,
    MAX_NAME_LINES,
    NAME_LINE_H,
    NUMBER_Y,
    PAGE_W,
    SUMMARY_BOX_W,
    SUMMARY_GAP,
    SUMMARY_LABEL_RIGHT,
    SUMMARY_ROW_H,
    TITLE_Y,
    X_LEFT,
    X_RIGHT,
)

FALLBACK_CURRENCY_SYMBOL = "Rs. "


class InvoiceRenderer:
    def __init__(self) -> None:
        self.pdf = FPDF(unit="pt", format="A4")
        self.pdf.set_auto_page_break(False)
        self.pdf.set_margins(MARGIN, MARGIN, MARGIN)
        self.fonts = FontManager(self.pdf)
        self.page_count = 0

    def currency_symbol(self, preferred: str) -> str:
        return preferred if self.fonts.supports(preferred) else FALLBACK_CURRENCY_SYMBOL

    def _column_lefts(self, document: InvoiceDocument) -> List[float]:
        lefts = []
        x = X_LEFT
        for column in document.table.columns:
            lefts.append(x)
            x += column.width
        return lefts

    def _name_lines(self, document: InvoiceDocument, row: TableRow) -> List[str]:
        name_width = document.table.columns[0].width - 2 * CELL_PAD
        return wrap_text(
            self.fonts,
            row.cells[0],
            name_width,
            FONT_SIZE_NORMAL,
            max_lines=MAX_NAME_LINES,
        )

    def _rule(self, y: float, color=COLOR_RULE, width: float = 0.5, left: float = X_LEFT) -> None:
        self.pdf.set_draw_color(*color)
        self.pdf.set_line_width(width)
        self.pdf.line(left, y, X_RIGHT, y)

    def _draw_header(self, document: InvoiceDocument) -> None:
        header = document.header
        self.fonts.draw_aligned(
            X_LEFT, CONTENT_W, TITLE_Y, header.title, FONT_SIZE_TITLE, COLOR_TITLE, align="C", bold=True
        )
        self.fonts.draw_aligned(
            X_LEFT, CONTENT_W, NUMBER_Y, header.invoice_number, FONT_SIZE_NORMAL, COLOR_MUTED, align="C"
        )
        self._rule(HEADER_RULE_Y)

        self.fonts.draw_text(X_LEFT, BILL_TO_LABEL_Y, "Bill To:", FONT_SIZE_HEADING, COLOR_TITLE, bold=True)
        if header.bill_to_name:
            self.fonts.draw_text(X_LEFT, BILL_TO_NAME_Y, header.bill_to_name, FONT_SIZE_NORMAL, COLOR_TEXT, bold=True)
        if header.bill_to_email:
            self.fonts.draw_text(X_LEFT, BILL_TO_EMAIL_Y, header.bill_to_email, FONT_SIZE_NORMAL, COLOR_MUTED)

        self.fonts.draw_aligned(
            X_LEFT, CONTENT_W, DATE_LABEL_Y, "Invoice Date:", FONT_SIZE_HEADING, COLOR_TITLE, align="R", bold=True
        )
        self.fonts.draw_aligned(X_LEFT, CONTENT_W, DATE_Y, header.issued_on, FONT_SIZE_NORMAL, COLOR_TEXT, align="R")

    def _draw_table_header(self, document: InvoiceDocument, bar_y: float) -> float:
        self.pdf.set_fill_color(*COLOR_BAR)
        round_rect(self.pdf, X_LEFT, bar_y, CONTENT_W, BAR_H, BAR_RADIUS, fill=True)
        self._rule(bar_y + BAR_H)

        text_y = bar_y + BAR_TEXT_OFFSET
        for left, column in zip(self._column_lefts(document), document.table.columns):
            self.fonts.draw_aligned(
                left + CELL_PAD,
                column.width - 2 * CELL_PAD,
                text_y,
                column.title,
                FONT_SIZE_NORMAL,
                COLOR_BAR_TEXT,
                align=column.align,
                bold=True,
            )
        return bar_y + BAR_H

    def _draw_row(self, document: InvoiceDocument, top: float, row: TableRow, name_lines: Sequence[str]) -> float:
        text_y = top + ITEM_TEXT_OFFSET
        lefts = self._column_lefts(document)
        columns = document.table.columns

        for index, line in enumerate(name_lines):
            self.fonts.draw_text(
                lefts[0] + CELL_PAD,
                text_y + index * NAME_LINE_H,
                line,
                FONT_SIZE_NORMAL,
                COLOR_TEXT,
            )
        for left, column, value in zip(lefts[1:], columns[1:], row.cells[1:]):
            self.fonts.draw_aligned(
                left + CELL_PAD,
                column.width - 2 * CELL_PAD,
                text_y,
                value,
                FONT_SIZE_NORMAL,
                COLOR_TEXT,
                align=column.align,
            )

        bottom = top + ITEM_ROW_H + (len(name_lines) - 1) * NAME_LINE_H
        self._rule(bottom)
        return bottom

    def _draw_summary(self, document: InvoiceDocument, top: float) -> None:
        summary_left = X_RIGHT - SUMMARY_BOX_W
        for index, line in enumerate(document.summary.lines):
            row_top = top + index * SUMMARY_ROW_H
            text_y = row_top + ITEM_TEXT_OFFSET
            size = FONT_SIZE_HEADING if line.emphasis else FONT_SIZE_NORMAL
            if line.emphasis:
                self._rule(row_top, color=COLOR_TOTAL_RULE, width=1.5, left=summary_left)
            self.fonts.draw_text(summary_left + CELL_PAD, text_y, line.label, size, COLOR_TITLE, bold=line.emphasis)
            self.fonts.draw_aligned(
                SUMMARY_LABEL_RIGHT,
                X_RIGHT - SUMMARY_LABEL_RIGHT - CELL_PAD,
                text_y,
                line.value,
                size,
                COLOR_TEXT,
                align="R",
                bold=line.emphasis,
            )

    def _draw_footer(self, page_number: int, page_total: int) -> None:
        label = f"Page {page_number} of {page_total}"
        self.fonts.draw_aligned(0.0, PAGE_W, FOOTER_Y, label, FONT_SIZE_SMALL, COLOR_MUTED, align="C")

    def render(self, document: InvoiceDocument, issued_at: datetime) -> bytes:
        self.pdf.set_title(document.header.invoice_number)
        self.pdf.set_creation_date(issued_at)

        wrapped = [self._name_lines(document, row) for row in document.table.rows]
        heights = [ITEM_ROW_H + (len(lines) - 1) * NAME_LINE_H for lines in wrapped]
        pages = paginate(heights)
        self.page_count = len(pages)

        for page_index, row_range in enumerate(pages):
            self.pdf.add_page()
            if page_index == 0:
                self._draw_header(document)
                y = self._draw_table_header(document, BAR_Y_FIRST)
            else:
                y = self._draw_table_header(document, BAR_Y_CONT)

            for row_index in row_range:
                y = self._draw_row(document, y, document.table.rows[row_index], wrapped[row_index])

            if page_index == len(pages) - 1:
                self._draw_summary(document, y + SUMMARY_GAP)
            self._draw_footer(page_index + 1, len(pages))

        pdf_blob = self.pdf.output()
        if isinstance(pdf_blob, (bytes, bytearray)):
            return bytes(pdf_blob)
        if isinstance(pdf_blob, str):
            try:
                return pdf_blob.encode("latin-1")
            except UnicodeEncodeError as exc:
                raise RenderError(
                    "PDF serialization failed due to non-Latin-1 content. "
                    "Check Unicode font configuration (INVOICE_FONT_PATH/INVOICE_FONT_BOLD_PATH)."
                ) from exc
        raise RenderError(f"Unexpected PDF output type: {type(pdf_blob).__name__}")


def render_snapshot(snapshot: InvoiceSnapshot, currency_symbol: str = CURRENCY_SYMBOL) -> RenderedDocument:
    """Render a snapshot to a complete PDF, or raise RenderError.

    Runs inside render pool workers, so it takes and returns plain picklable
    values and keeps no state between calls.
    """
    if not snapshot.items:
        raise RenderError("Cannot render an invoice without line items.")

    try:
        renderer = InvoiceRenderer()
        document = build_document(snapshot, renderer.currency_symbol(currency_symbol))
        content = renderer.render(document, snapshot.issued_at)
    except RenderError:
        raise
    except MemoryError as exc:
        raise RenderError("Renderer ran out of memory; retry later.", retryable=True) from exc
    except Exception as exc:
        raise RenderError(f"PDF rendering failed: {exc}") from exc

    if not content:
        raise RenderError("Renderer produced an empty document.")

    return RenderedDocument(
        content=content,
        content_type=PDF_CONTENT_TYPE,
        filename=document.filename,
        page_count=renderer.page_count,
    )

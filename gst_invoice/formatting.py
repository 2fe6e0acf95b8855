"""Formatting and drawing utility helpers."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import List, Optional, Protocol

from dateutil import parser as dateutil_parser

CENT = Decimal("0.01")
ELLIPSIS = "..."


class TextWidthProvider(Protocol):
    def text_width(self, text: str, size: int, bold: bool = False) -> float:
        ...


class PdfPathCanvas(Protocol):
    k: float
    h: float

    def rect(self, x: float, y: float, w: float, h: float, style: str) -> None:
        ...

    def _out(self, value: str) -> None:
        ...


def round_money(amount: Decimal) -> Decimal:
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def fmt_money(amount: Decimal, symbol: str) -> str:
    return f"{symbol}{round_money(amount):,.2f}"


def fmt_qty(qty: int) -> str:
    return f"{qty:,d}"


def fmt_date(moment: datetime) -> str:
    """Format a timestamp as a long date, e.g. '19 October 2026'."""
    return f"{moment.day} {moment:%B %Y}"


def parse_timestamp(raw: str) -> datetime:
    """Parse an ISO-ish timestamp; naive values are taken as UTC.

    Raises ValueError for anything dateutil cannot read.
    """
    raw = raw.strip()
    if not raw:
        raise ValueError("timestamp is empty")
    try:
        moment = dateutil_parser.isoparse(raw)
    except ValueError:
        try:
            moment = dateutil_parser.parse(raw)
        except OverflowError as exc:
            raise ValueError(str(exc)) from exc
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


def epoch_millis(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


def wrap_text(
    fonts_obj: TextWidthProvider,
    text: str,
    max_width: float,
    font_size: int,
    bold: bool = False,
    max_lines: Optional[int] = None,
) -> List[str]:
    def line_width(value: str) -> float:
        return fonts_obj.text_width(value, font_size, bold=bold)

    def wrap_paragraph(paragraph: str) -> List[str]:
        words = paragraph.split()
        if not words:
            return []

        lines: List[str] = []
        current = ""
        for word in words:
            candidate = word if not current else f"{current} {word}"
            if line_width(candidate) <= max_width:
                current = candidate
                continue

            if current:
                lines.append(current)
                current = ""

            # Hard-break words wider than the column.
            for char in word:
                if current and line_width(current + char) > max_width:
                    lines.append(current)
                    current = char
                else:
                    current += char

        if current:
            lines.append(current)
        return lines

    result: List[str] = []
    for paragraph in text.split("\n"):
        result.extend(wrap_paragraph(paragraph))
    if not result:
        return [""]

    if max_lines is not None and len(result) > max_lines:
        result = result[:max_lines]
        last = result[-1]
        while last and line_width(last + ELLIPSIS) > max_width:
            last = last[:-1]
        result[-1] = last.rstrip() + ELLIPSIS
    return result


def round_rect(
    pdf: PdfPathCanvas,
    x: float,
    y: float,
    width: float,
    height: float,
    radius: float,
    fill: bool = True,
) -> None:
    radius = max(0.0, min(radius, width / 2.0, height / 2.0))
    if radius == 0:
        pdf.rect(x, y, width, height, "F" if fill else "D")
        return

    k = pdf.k
    hp = pdf.h
    kappa = 0.5522847498307936  # bezier quarter-circle constant

    def arc(x1: float, y1: float, x2: float, y2: float, x3: float, y3: float) -> None:
        pdf._out(
            "%.2f %.2f %.2f %.2f %.2f %.2f c"
            % (x1 * k, (hp - y1) * k, x2 * k, (hp - y2) * k, x3 * k, (hp - y3) * k)
        )

    right = x + width
    bottom = y + height
    bend = radius - radius * kappa

    pdf._out("%.2f %.2f m" % ((x + radius) * k, (hp - y) * k))
    pdf._out("%.2f %.2f l" % ((right - radius) * k, (hp - y) * k))
    arc(right - bend, y, right, y + bend, right, y + radius)
    pdf._out("%.2f %.2f l" % (right * k, (hp - (bottom - radius)) * k))
    arc(right, bottom - bend, right - bend, bottom, right - radius, bottom)
    pdf._out("%.2f %.2f l" % ((x + radius) * k, (hp - bottom) * k))
    arc(x + bend, bottom, x, bottom - bend, x, bottom - radius)
    pdf._out("%.2f %.2f l" % (x * k, (hp - (y + radius)) * k))
    arc(x, y + bend, x + bend, y, x + radius, y)

    pdf._out("f" if fill else "S")

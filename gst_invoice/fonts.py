"""Font discovery and text rendering helpers."""

from __future__ import annotations

import logging
import os
import threading
from typing import List, Optional, Tuple

from fpdf import FPDF

logger = logging.getLogger(__name__)

_PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


def find_font_path(env_var: str, candidates: List[str]) -> Optional[str]:
    override = os.getenv(env_var)
    if override and os.path.exists(override):
        return override

    for path in candidates:
        if os.path.exists(path):
            return path
    return None


FONT_INIT_LOCK = threading.Lock()


class FontManager:
    """Registers the invoice font on a document and draws text with it.

    DejaVu Sans is preferred for its Unicode coverage (the rupee sign among
    it). Without a TTF on disk the core Helvetica font is used, and text is
    reduced to Latin-1 before drawing.
    """

    FAMILY = "InvoiceFont"
    CORE_FAMILY = "helvetica"
    BUNDLED_REGULAR = os.path.join(_PROJECT_ROOT, "fonts", "DejaVuSans.ttf")
    BUNDLED_BOLD = os.path.join(_PROJECT_ROOT, "fonts", "DejaVuSans-Bold.ttf")
    SYSTEM_REGULAR_CANDIDATES = [
        "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
        "/usr/share/fonts/dejavu/DejaVuSans.ttf",
        "/usr/share/fonts/TTF/DejaVuSans.ttf",
        "/Library/Fonts/DejaVuSans.ttf",
    ]
    SYSTEM_BOLD_CANDIDATES = [
        "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf",
        "/usr/share/fonts/dejavu/DejaVuSans-Bold.ttf",
        "/usr/share/fonts/TTF/DejaVuSans-Bold.ttf",
        "/Library/Fonts/DejaVuSans-Bold.ttf",
    ]

    def __init__(self, pdf: FPDF) -> None:
        self.pdf = pdf
        self.family = self.CORE_FAMILY
        self.use_unicode = False
        self.has_bold = True

        regular_path = find_font_path(
            "INVOICE_FONT_PATH",
            [self.BUNDLED_REGULAR, *self.SYSTEM_REGULAR_CANDIDATES],
        )
        if not regular_path:
            logger.debug("No Unicode TTF found; using core %s font", self.CORE_FAMILY)
            return

        bold_path = find_font_path(
            "INVOICE_FONT_BOLD_PATH",
            [self.BUNDLED_BOLD, *self.SYSTEM_BOLD_CANDIDATES],
        )

        # Font parsing touches shared fontTools state; serialize it.
        with FONT_INIT_LOCK:
            self.pdf.add_font(self.FAMILY, "", regular_path)
            self.has_bold = False
            if bold_path:
                self.pdf.add_font(self.FAMILY, "B", bold_path)
                self.has_bold = True
        self.family = self.FAMILY
        self.use_unicode = True

    def supports(self, text: str) -> bool:
        if self.use_unicode:
            return True
        try:
            text.encode("latin-1")
        except UnicodeEncodeError:
            return False
        return True

    def _encodable(self, text: str) -> str:
        if self.use_unicode:
            return text
        return text.encode("latin-1", "replace").decode("latin-1")

    def _select(self, size: int, bold: bool) -> None:
        style = "B" if bold and self.has_bold else ""
        self.pdf.set_font(self.family, style, size)

    def text_width(self, text: str, size: int, bold: bool = False) -> float:
        self._select(size, bold)
        return self.pdf.get_string_width(self._encodable(text))

    def draw_text(
        self,
        x: float,
        y: float,
        text: str,
        size: int,
        color: Tuple[int, int, int],
        bold: bool = False,
    ) -> None:
        text = self._encodable(text)
        self.pdf.set_text_color(*color)
        self._select(size, bold)
        if bold and not self.has_bold:
            self.pdf.text(x, y, text)
            self.pdf.text(x + 0.4, y, text)
        else:
            self.pdf.text(x, y, text)

    def draw_aligned(
        self,
        left: float,
        width: float,
        y: float,
        text: str,
        size: int,
        color: Tuple[int, int, int],
        align: str = "L",
        bold: bool = False,
    ) -> None:
        if align == "R":
            x = left + width - self.text_width(text, size, bold=bold)
        elif align == "C":
            x = left + (width - self.text_width(text, size, bold=bold)) / 2.0
        else:
            x = left
        self.draw_text(x, y, text, size, color, bold=bold)

"""A4 layout geometry for the invoice PDF (points, top-left origin)."""

from __future__ import annotations

PAGE_W = 595.28
PAGE_H = 841.89
MARGIN = 36.0
CONTENT_W = PAGE_W - 2 * MARGIN
X_LEFT = MARGIN
X_RIGHT = PAGE_W - MARGIN

# First-page identity header
TITLE_Y = 66.0
NUMBER_Y = 86.0
BILL_TO_LABEL_Y = 128.0
BILL_TO_NAME_Y = 144.0
BILL_TO_EMAIL_Y = 158.0
DATE_LABEL_Y = 128.0
DATE_Y = 144.0
HEADER_RULE_Y = 100.0

# Table header bar
BAR_Y_FIRST = 184.0
BAR_Y_CONT = MARGIN
BAR_H = 20.0
BAR_TEXT_OFFSET = 13.5
BAR_RADIUS = 3.0
CELL_PAD = 6.0

# Column widths, left to right: name, qty, rate, total, gst
COLUMN_WIDTHS = (CONTENT_W - 270.0, 45.0, 75.0, 75.0, 75.0)

ITEM_ROW_H = 20.0
ITEM_TEXT_OFFSET = 13.5
NAME_LINE_H = 12.0
MAX_NAME_LINES = 3

FOOTER_Y = PAGE_H - 20.0
ROWS_BOTTOM = PAGE_H - MARGIN - 14.0

FIRST_PAGE_TABLE_HEIGHT = ROWS_BOTTOM - (BAR_Y_FIRST + BAR_H)
CONT_PAGE_TABLE_HEIGHT = ROWS_BOTTOM - (BAR_Y_CONT + BAR_H)

SUMMARY_GAP = 18.0
SUMMARY_ROW_H = 20.0
SUMMARY_ROWS = 3
SUMMARY_RESERVE = SUMMARY_GAP + SUMMARY_ROW_H * SUMMARY_ROWS
SUMMARY_LABEL_RIGHT = X_RIGHT - 110.0
SUMMARY_BOX_W = 250.0

# Colors (RGB)
COLOR_TITLE = (51, 51, 51)          # #333333
COLOR_MUTED = (102, 102, 102)       # #666666
COLOR_TEXT = (34, 34, 34)           # #222222
COLOR_BAR = (248, 249, 250)         # #F8F9FA
COLOR_BAR_TEXT = (51, 51, 51)       # #333333
COLOR_RULE = (221, 221, 221)        # #DDDDDD
COLOR_TOTAL_RULE = (51, 51, 51)     # #333333

FONT_SIZE_TITLE = 26
FONT_SIZE_HEADING = 11
FONT_SIZE_NORMAL = 10
FONT_SIZE_SMALL = 8

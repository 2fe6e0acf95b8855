import unittest
from datetime import datetime, timezone

from gst_invoice.document import build_document
from gst_invoice.errors import RenderError
from gst_invoice.ledger import Identity, Ledger

IDENTITY = Identity(user_id="user-1", display_name="Asha Rao", email="asha@example.com")
ISSUED_AT = datetime(2026, 1, 15, 10, 30, tzinfo=timezone.utc)


def make_snapshot(*products):
    ledger = Ledger()
    for name, qty, rate in products:
        ledger.add_item(name, qty, rate)
    return ledger.snapshot(IDENTITY, ISSUED_AT, invoice_number="INV-0001")


class BuildDocumentTests(unittest.TestCase):
    def test_header_block(self) -> None:
        document = build_document(make_snapshot(("Widget", 3, 100)), "₹")

        self.assertEqual(document.header.title, "INVOICE")
        self.assertEqual(document.header.invoice_number, "Invoice #INV-0001")
        self.assertEqual(document.header.bill_to_name, "Asha Rao")
        self.assertEqual(document.header.bill_to_email, "asha@example.com")
        self.assertEqual(document.header.issued_on, "15 January 2026")

    def test_table_rows_follow_item_order(self) -> None:
        document = build_document(make_snapshot(("Widget", 3, 100), ("Gadget", 1, 50)), "₹")

        self.assertEqual(
            [column.title for column in document.table.columns],
            ["Product Name", "Qty", "Rate", "Total", "GST (18%)"],
        )
        self.assertEqual(
            [row.cells for row in document.table.rows],
            [
                ("Widget", "3", "₹100.00", "₹300.00", "₹54.00"),
                ("Gadget", "1", "₹50.00", "₹50.00", "₹9.00"),
            ],
        )

    def test_summary_block(self) -> None:
        document = build_document(make_snapshot(("Widget", 3, 100), ("Gadget", 1, 50)), "Rs. ")

        lines = document.summary.lines
        self.assertEqual(
            [(line.label, line.value) for line in lines],
            [
                ("Subtotal:", "Rs. 350.00"),
                ("Total GST (18%):", "Rs. 63.00"),
                ("Grand Total:", "Rs. 413.00"),
            ],
        )
        self.assertEqual([line.emphasis for line in lines], [False, False, True])

    def test_filename_uses_issue_time_in_milliseconds(self) -> None:
        document = build_document(make_snapshot(("Widget", 1, 1)), "₹")
        self.assertEqual(document.filename, f"invoice-{int(ISSUED_AT.timestamp() * 1000)}.pdf")

    def test_same_snapshot_builds_equal_documents(self) -> None:
        snapshot = make_snapshot(("Widget", 3, 100))
        self.assertEqual(build_document(snapshot, "₹"), build_document(snapshot, "₹"))

    def test_empty_snapshot_is_rejected(self) -> None:
        with self.assertRaises(RenderError):
            build_document(make_snapshot(), "₹")


if __name__ == "__main__":
    unittest.main()

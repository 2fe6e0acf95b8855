import random
import unittest
from datetime import datetime, timezone
from decimal import Decimal

from gst_invoice.errors import NotFoundError, ValidationError
from gst_invoice.ledger import TAX_RATE, Identity, InvoiceAggregate, Ledger

IDENTITY = Identity(user_id="user-1", display_name="Asha Rao", email="asha@example.com")
ISSUED_AT = datetime(2026, 1, 15, 10, 30, tzinfo=timezone.utc)


class LedgerArithmeticTests(unittest.TestCase):
    def assertConsistent(self, ledger: Ledger) -> None:
        items = ledger.items
        aggregate = ledger.aggregate
        self.assertEqual(aggregate.subtotal, sum((i.line_amount for i in items), Decimal("0")))
        self.assertEqual(aggregate.total_tax, sum((i.tax_amount for i in items), Decimal("0")))
        self.assertEqual(aggregate.grand_total, aggregate.subtotal + aggregate.total_tax)
        for item in items:
            self.assertEqual(item.line_amount, item.quantity * item.unit_rate)
            self.assertEqual(item.tax_amount, item.line_amount * TAX_RATE)

    def test_single_item_example(self) -> None:
        ledger = Ledger()
        item = ledger.add_item("Widget", 3, 100.00)

        self.assertEqual(item.quantity, 3)
        self.assertEqual(item.unit_rate, Decimal("100.00"))
        self.assertEqual(item.line_amount, Decimal("300.00"))
        self.assertEqual(item.tax_amount, Decimal("54.00"))
        self.assertEqual(
            ledger.aggregate,
            InvoiceAggregate(Decimal("300.00"), Decimal("54.00"), Decimal("354.00")),
        )

    def test_two_item_example(self) -> None:
        ledger = Ledger()
        ledger.add_item("Widget", 3, 100.00)
        ledger.add_item("Gadget", 1, 50.00)

        self.assertEqual(ledger.aggregate.subtotal, Decimal("350.00"))
        self.assertEqual(ledger.aggregate.total_tax, Decimal("63.00"))
        self.assertEqual(ledger.aggregate.grand_total, Decimal("413.00"))

    def test_fractional_rates_do_not_drift(self) -> None:
        ledger = Ledger()
        for _ in range(10):
            ledger.add_item("Bolt", 1, 0.1)

        self.assertEqual(ledger.aggregate.subtotal, Decimal("1.0"))
        self.assertEqual(ledger.aggregate.total_tax, Decimal("0.18"))

    def test_random_mutation_sequences_keep_aggregate_consistent(self) -> None:
        rng = random.Random(1234)
        ledger = Ledger()
        for _ in range(300):
            action = rng.choice(["add", "add", "update", "remove", "remove_missing", "clear"])
            ids = [item.id for item in ledger.items]
            if action == "add":
                ledger.add_item(f"Item {rng.randint(1, 99)}", rng.randint(1, 20), round(rng.uniform(0.01, 999), 2))
            elif action == "update" and ids:
                ledger.update_item(rng.choice(ids), rng.randint(1, 20), round(rng.uniform(0.01, 999), 2))
            elif action == "remove" and ids:
                ledger.remove_item(rng.choice(ids))
            elif action == "remove_missing":
                ledger.remove_item("missing")
            elif action == "clear" and rng.random() < 0.2:
                ledger.clear()
            self.assertConsistent(ledger)


class LedgerMutationTests(unittest.TestCase):
    def test_add_preserves_insertion_order_and_assigns_unique_ids(self) -> None:
        ledger = Ledger()
        first = ledger.add_item("A", 1, 1)
        second = ledger.add_item("B", 1, 1)
        third = ledger.add_item("C", 1, 1)

        self.assertEqual([i.name for i in ledger.items], ["A", "B", "C"])
        self.assertEqual(len({first.id, second.id, third.id}), 3)

    def test_add_strips_name(self) -> None:
        item = Ledger().add_item("  Widget  ", 1, 5)
        self.assertEqual(item.name, "Widget")

    def test_add_rejects_invalid_input_without_state_change(self) -> None:
        ledger = Ledger()
        ledger.add_item("Widget", 3, 100)
        before = (ledger.items, ledger.aggregate)

        cases = [
            ("", 1, 10, "name"),
            ("   ", 1, 10, "name"),
            (None, 1, 10, "name"),
            ("Widget", 0, 10, "qty"),
            ("Widget", -2, 10, "qty"),
            ("Widget", 1.5, 10, "qty"),
            ("Widget", True, 10, "qty"),
            ("Widget", "3", 10, "qty"),
            ("Widget", 1, 0, "rate"),
            ("Widget", 1, -5, "rate"),
            ("Widget", 1, "abc", "rate"),
            ("Widget", 1, float("nan"), "rate"),
            ("Widget", 1, float("inf"), "rate"),
            ("Widget", 1, None, "rate"),
        ]
        for name, qty, rate, field in cases:
            with self.subTest(name=name, qty=qty, rate=rate):
                with self.assertRaises(ValidationError) as ctx:
                    ledger.add_item(name, qty, rate)
                self.assertEqual(ctx.exception.field, field)
                self.assertEqual((ledger.items, ledger.aggregate), before)

    def test_add_accepts_decimal_and_numeric_string_rates(self) -> None:
        ledger = Ledger()
        self.assertEqual(ledger.add_item("A", 2, Decimal("12.50")).line_amount, Decimal("25.00"))
        self.assertEqual(ledger.add_item("B", 1, "7.25").unit_rate, Decimal("7.25"))

    def test_update_recomputes_item_and_aggregate_in_place(self) -> None:
        ledger = Ledger()
        first = ledger.add_item("Widget", 3, 100)
        ledger.add_item("Gadget", 1, 50)

        updated = ledger.update_item(first.id, 1, 200)

        self.assertEqual(updated.id, first.id)
        self.assertEqual(updated.name, "Widget")
        self.assertEqual(updated.line_amount, Decimal("200"))
        self.assertEqual(updated.tax_amount, Decimal("36.00"))
        self.assertEqual([i.name for i in ledger.items], ["Widget", "Gadget"])
        self.assertEqual(ledger.aggregate.subtotal, Decimal("250"))
        self.assertEqual(ledger.aggregate.grand_total, Decimal("295.00"))

    def test_update_unknown_id_raises_not_found(self) -> None:
        ledger = Ledger()
        ledger.add_item("Widget", 1, 1)
        with self.assertRaises(NotFoundError) as ctx:
            ledger.update_item("nope", 1, 1)
        self.assertEqual(ctx.exception.item_id, "nope")

    def test_update_with_invalid_values_leaves_item_untouched(self) -> None:
        ledger = Ledger()
        item = ledger.add_item("Widget", 2, 10)
        with self.assertRaises(ValidationError):
            ledger.update_item(item.id, 0, 10)
        self.assertEqual(ledger.get(item.id), item)

    def test_remove_item(self) -> None:
        ledger = Ledger()
        widget = ledger.add_item("Widget", 3, 100)
        ledger.add_item("Gadget", 1, 50)

        ledger.remove_item(widget.id)

        self.assertEqual([i.name for i in ledger.items], ["Gadget"])
        self.assertEqual(ledger.aggregate.subtotal, Decimal("50"))

    def test_remove_missing_id_is_a_no_op(self) -> None:
        ledger = Ledger()
        ledger.add_item("Widget", 3, 100)
        before = ledger.aggregate

        ledger.remove_item("does-not-exist")

        self.assertEqual(ledger.aggregate, before)
        self.assertEqual(len(ledger), 1)

    def test_removed_id_is_not_reused(self) -> None:
        ledger = Ledger()
        removed = ledger.add_item("Widget", 1, 1)
        ledger.remove_item(removed.id)
        for _ in range(20):
            self.assertNotEqual(ledger.add_item("Widget", 1, 1).id, removed.id)

    def test_clear_then_snapshot_is_empty_and_zero(self) -> None:
        ledger = Ledger()
        ledger.add_item("Widget", 3, 100)
        ledger.clear()

        snapshot = ledger.snapshot(IDENTITY, ISSUED_AT)

        self.assertEqual(snapshot.items, ())
        self.assertEqual(snapshot.aggregate.subtotal, 0)
        self.assertEqual(snapshot.aggregate.total_tax, 0)
        self.assertEqual(snapshot.aggregate.grand_total, 0)


class SnapshotTests(unittest.TestCase):
    def test_snapshot_copies_state_and_identity(self) -> None:
        ledger = Ledger()
        ledger.add_item("Widget", 3, 100)

        snapshot = ledger.snapshot(IDENTITY, ISSUED_AT, invoice_number="INV-1")

        self.assertEqual(snapshot.bill_to_name, "Asha Rao")
        self.assertEqual(snapshot.bill_to_email, "asha@example.com")
        self.assertEqual(snapshot.issued_at, ISSUED_AT)
        self.assertEqual(snapshot.invoice_number, "INV-1")
        self.assertEqual(snapshot.items, ledger.items)
        self.assertEqual(snapshot.aggregate, ledger.aggregate)

    def test_snapshot_is_unaffected_by_later_mutations(self) -> None:
        ledger = Ledger()
        ledger.add_item("Widget", 3, 100)
        snapshot = ledger.snapshot(IDENTITY, ISSUED_AT)

        ledger.add_item("Gadget", 1, 50)
        ledger.clear()

        self.assertEqual(len(snapshot.items), 1)
        self.assertEqual(snapshot.aggregate.grand_total, Decimal("354.00"))

    def test_repeated_snapshots_do_not_mutate_ledger(self) -> None:
        ledger = Ledger()
        ledger.add_item("Widget", 3, 100)
        items, aggregate = ledger.items, ledger.aggregate

        first = ledger.snapshot(IDENTITY, ISSUED_AT, invoice_number="INV-1")
        second = ledger.snapshot(IDENTITY, ISSUED_AT, invoice_number="INV-1")

        self.assertEqual(first, second)
        self.assertEqual((ledger.items, ledger.aggregate), (items, aggregate))

    def test_generated_invoice_numbers_differ(self) -> None:
        ledger = Ledger()
        numbers = {ledger.snapshot(IDENTITY, ISSUED_AT).invoice_number for _ in range(50)}
        self.assertEqual(len(numbers), 50)
        self.assertTrue(all(number.startswith("INV-") for number in numbers))


class FromProductsTests(unittest.TestCase):
    def test_recomputes_client_totals(self) -> None:
        ledger = Ledger.from_products(
            [
                {"id": "1", "name": "Widget", "qty": 3, "rate": 100, "total": 1, "gst": 1},
                {"id": "2", "name": "Gadget", "qty": 1, "rate": 50.0},
            ]
        )

        self.assertEqual(ledger.aggregate.grand_total, Decimal("413.00"))
        self.assertNotIn("1", [item.id for item in ledger.items])

    def test_reports_product_index_and_field(self) -> None:
        with self.assertRaises(ValidationError) as ctx:
            Ledger.from_products([{"name": "Widget", "qty": 1, "rate": 5}, {"name": "Gadget", "qty": 0, "rate": 5}])
        self.assertEqual(ctx.exception.field, "products[1].qty")

    def test_rejects_non_object_entries(self) -> None:
        with self.assertRaises(ValidationError) as ctx:
            Ledger.from_products(["Widget"])
        self.assertEqual(ctx.exception.field, "products[0]")

    def test_to_products_matches_transport_shape(self) -> None:
        ledger = Ledger()
        ledger.add_item("Widget", 3, 100)

        (product,) = ledger.to_products()

        self.assertEqual(set(product), {"id", "name", "qty", "rate", "total", "gst"})
        self.assertEqual(product["total"], 300.0)
        self.assertAlmostEqual(product["gst"], 54.0)


if __name__ == "__main__":
    unittest.main()

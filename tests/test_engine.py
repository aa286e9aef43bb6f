"""
Unit tests for the ledger models and the reconciliation engine.
"""
import itertools
from datetime import date
from decimal import Decimal
import unittest

import numpy as np

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from ledger.engine import ReconciliationEngine, UnknownMemberError
from ledger.models import (
    SIZE_KEYS,
    CashBreakdown,
    CylinderLine,
    DailyLedgerEntry,
    MemberRecord,
    batch_totals,
    resolve_breakdown_field,
    resolve_cylinder_size,
)


def make_engine():
    roster = [
        MemberRecord(id="m1", name="John Smith"),
        MemberRecord(id="m2", name="Ravi Kumar"),
    ]
    return ReconciliationEngine(roster=roster, today=lambda: "2025-01-15")


class TestModels(unittest.TestCase):
    """Derived totals on the data classes."""

    def test_line_total(self):
        line = CylinderLine(unit_price=905.0, quantity=10)
        self.assertEqual(line.line_total, 9050.0)

    def test_line_total_is_read_only(self):
        line = CylinderLine()
        with self.assertRaises(AttributeError):
            line.line_total = 5

    def test_denomination_total_example(self):
        breakdown = CashBreakdown(
            notes={500: 2, 200: 1, 100: 0, 50: 3, 20: 0, 10: 0},
            old_pending=50,
            old_balance=0,
            coins=5.50,
        )
        self.assertAlmostEqual(breakdown.denomination_total, 1405.50)

    def test_adjustments_may_be_negative(self):
        breakdown = CashBreakdown(notes={500: 1}, old_balance=-120.0)
        self.assertAlmostEqual(breakdown.denomination_total, 380.0)

    def test_resolve_cylinder_size_spellings(self):
        for spelling in ("14.2kg", "14.2 Kg", "14_2kg", "cylinder14_2kg", "14.2"):
            self.assertEqual(resolve_cylinder_size(spelling), "14.2kg")
        with self.assertRaises(ValueError):
            resolve_cylinder_size("12kg")

    def test_resolve_breakdown_field_spellings(self):
        self.assertEqual(resolve_breakdown_field("denomination500"), ("note", 500))
        self.assertEqual(resolve_breakdown_field("₹200 Notes"), ("note", 200))
        self.assertEqual(resolve_breakdown_field("notes10"), ("note", 10))
        self.assertEqual(resolve_breakdown_field("oldPending"), ("adjustment", "old_pending"))
        self.assertEqual(resolve_breakdown_field("coins"), ("adjustment", "coins"))
        with self.assertRaises(ValueError):
            resolve_breakdown_field("denomination2000")

    def test_dict_roundtrip_recomputes_totals(self):
        entry = DailyLedgerEntry.blank("m1", "John Smith", "2025-01-15")
        entry.cylinders["10kg"] = CylinderLine(unit_price=700.0, quantity=3)
        entry.cash = 100.0

        data = entry.to_dict()
        self.assertEqual(data["cylinder10kg"], {"amount": 700.0, "quantity": 3, "total": 2100.0})
        self.assertEqual(data["grandTotal"], 2200.0)

        # Stale totals in stored data are ignored
        data["cylinderTotal"] = 1
        data["grandTotal"] = 1
        data["cylinder10kg"]["total"] = 1
        restored = DailyLedgerEntry.from_dict(data)
        self.assertEqual(restored.cylinder_total, 2100.0)
        self.assertEqual(restored.grand_total, 2200.0)
        self.assertEqual(restored.member_id, "m1")

    def test_from_dict_tolerates_junk(self):
        restored = DailyLedgerEntry.from_dict({
            "memberName": "X",
            "cylinder14_2kg": {"amount": "abc", "quantity": None},
            "cash": "-5",
            "cashDenomination": "not a dict",
        }, member_id="k1")
        self.assertEqual(restored.member_id, "k1")
        self.assertEqual(restored.grand_total, 0.0)
        self.assertEqual(restored.denomination_total, 0.0)

    def test_to_row_has_28_columns(self):
        entry = DailyLedgerEntry.blank("m1", "John Smith", "2025-01-15")
        row = entry.to_row()
        self.assertEqual(len(row), 28)
        self.assertEqual(row[:2], ["John Smith", "2025-01-15"])

    def test_batch_totals(self):
        a = DailyLedgerEntry.blank("a", "A", "2025-01-15")
        a.cylinders["14.2kg"] = CylinderLine(905.0, 10)
        a.online_payment = 500.0
        b = DailyLedgerEntry.blank("b", "B", "2025-01-15")
        b.cylinders["14.2kg"] = CylinderLine(905.0, 2)
        b.cash = 200.0

        totals = batch_totals([a, b])
        self.assertEqual(totals["member_count"], 2)
        self.assertEqual(totals["cylinders"]["14.2kg"]["quantity"], 12)
        self.assertAlmostEqual(totals["cylinders"]["14.2kg"]["total"], 10860.0)
        self.assertAlmostEqual(totals["grand_total"], 11560.0)


class TestSelectMember(unittest.TestCase):

    def test_select_creates_zero_entry_without_adding_it(self):
        engine = make_engine()
        entry = engine.select_member("m1")

        self.assertEqual(entry.member_name, "John Smith")
        self.assertEqual(entry.date, "2025-01-15")
        self.assertEqual(entry.grand_total, 0.0)
        self.assertEqual(engine.entries, {})

    def test_select_twice_returns_same_entry(self):
        engine = make_engine()
        self.assertIs(engine.select_member("m1"), engine.select_member("m1"))

    def test_first_edit_adds_entry(self):
        engine = make_engine()
        selected = engine.select_member("m1")
        edited = engine.update_payment("m1", "cash", 200)

        self.assertIs(selected, edited)
        self.assertEqual(list(engine.entries), ["m1"])

    def test_breakdown_edit_adds_entry(self):
        engine = make_engine()
        engine.update_cash_breakdown("m2", "denomination500", 1)
        self.assertIn("m2", engine.entries)

    def test_date_edit_alone_does_not_add_entry(self):
        engine = make_engine()
        entry = engine.update_date("m1", "16/01/2025")
        self.assertEqual(entry.date, "2025-01-16")
        self.assertEqual(engine.entries, {})

    def test_unknown_member_raises(self):
        engine = make_engine()
        with self.assertRaises(UnknownMemberError):
            engine.select_member("nobody")
        with self.assertRaises(KeyError):
            engine.update_payment("nobody", "cash", 1)

    def test_placeholder_member_allowed(self):
        engine = make_engine()
        entry = engine.select_member("temp_abc", member_name=" Walk-in ")
        self.assertEqual(entry.member_name, "Walk-in")

    def test_name_is_a_snapshot(self):
        engine = make_engine()
        engine.update_payment("m1", "cash", 10)
        engine.set_roster([MemberRecord(id="m1", name="John A. Smith")])
        self.assertEqual(engine.select_member("m1").member_name, "John Smith")

    def test_bad_field_name_does_not_add_entry(self):
        engine = make_engine()
        with self.assertRaises(ValueError):
            engine.update_cylinder_line("m1", "14.2kg", "colour", 1)
        with self.assertRaises(ValueError):
            engine.update_payment("m1", "cheque", 1)
        self.assertEqual(engine.entries, {})


class TestRecomputation(unittest.TestCase):

    def test_worked_example(self):
        engine = make_engine()
        engine.update_cylinder_line("m1", "14.2kg", "unit_price", "905.00")
        engine.update_cylinder_line("m1", "14.2kg", "quantity", 10)
        engine.update_payment("m1", "online_payment", 500)
        entry = engine.update_payment("m1", "cash", 200)

        self.assertEqual(entry.line("14.2kg").line_total, 9050.0)
        self.assertEqual(entry.cylinder_total, 9050.0)
        self.assertEqual(entry.grand_total, 9750.0)

    def test_breakdown_example_and_grand_total_untouched(self):
        engine = make_engine()
        engine.update_payment("m1", "cash", 200)
        before = engine.select_member("m1").grand_total

        for field, value in [
            ("denomination500", 2), ("denomination200", 1), ("denomination50", 3),
            ("oldPending", 50), ("old_balance", 0), ("coins", "5.50"),
        ]:
            entry = engine.update_cash_breakdown("m1", field, value)

        self.assertAlmostEqual(entry.denomination_total, 1405.50)
        self.assertEqual(entry.grand_total, before)

    def test_cash_is_not_forced_to_match_breakdown(self):
        engine = make_engine()
        engine.update_payment("m1", "cash", 999)
        entry = engine.update_cash_breakdown("m1", "denomination500", 1)
        self.assertEqual(entry.cash, 999.0)
        self.assertEqual(entry.denomination_total, 500.0)

    def test_any_update_order_keeps_totals_consistent(self):
        edits = [
            ("14.2kg", "unit_price", 905), ("14.2kg", "quantity", 10),
            ("10kg", "amount", 700), ("10kg", "quantity", 2),
            ("19kg", "unitPrice", 1750.5), ("19kg", "qty", 1),
        ]
        for order in itertools.permutations(edits, 4):
            engine = make_engine()
            for size, field, value in order:
                entry = engine.update_cylinder_line("m1", size, field, value)
            expected_lines = [entry.cylinders[s].unit_price * entry.cylinders[s].quantity for s in SIZE_KEYS]
            self.assertAlmostEqual(entry.cylinder_total, sum(expected_lines))
            self.assertAlmostEqual(entry.grand_total, entry.cylinder_total + entry.online_payment + entry.cash)

    def test_repeated_updates_overwrite(self):
        engine = make_engine()
        engine.update_cylinder_line("m1", "5kg", "quantity", 4)
        engine.update_cylinder_line("m1", "5kg", "unit_price", 400)
        entry = engine.update_cylinder_line("m1", "5kg", "quantity", 1)
        self.assertEqual(entry.line("5kg").line_total, 400.0)

    def test_malformed_input_becomes_zero(self):
        engine = make_engine()
        engine.update_cylinder_line("m1", "14.2kg", "unit_price", 905)
        entry = engine.update_cylinder_line("m1", "14.2kg", "quantity", "ten")
        self.assertEqual(entry.line("14.2kg").quantity, 0)
        entry = engine.update_payment("m1", "online_payment", None)
        self.assertEqual(entry.online_payment, 0.0)
        entry = engine.update_payment("m1", "cash", "-40")
        self.assertEqual(entry.cash, 0.0)
        entry = engine.update_cash_breakdown("m1", "denomination100", "many")
        self.assertEqual(entry.cash_breakdown.notes[100], 0)

    def test_decimal_and_numpy_inputs(self):
        engine = make_engine()
        engine.update_cylinder_line("m1", "14.2kg", "unit_price", Decimal("905.00"))
        entry = engine.update_cylinder_line("m1", "14.2kg", "quantity", np.int64(10))
        self.assertEqual(entry.line("14.2kg").line_total, 9050.0)
        self.assertIsInstance(entry.line("14.2kg").quantity, int)

        engine.update_payment("m1", "online_payment", np.float64(500))
        entry = engine.update_payment("m1", "cash", Decimal("200"))
        self.assertEqual(entry.grand_total, 9750.0)

        entry = engine.update_cash_breakdown("m1", "denomination500", np.int32(2))
        entry = engine.update_cash_breakdown("m1", "coins", Decimal("5.50"))
        self.assertAlmostEqual(entry.denomination_total, 1005.50)

    def test_signed_adjustments(self):
        engine = make_engine()
        entry = engine.update_cash_breakdown("m1", "old_balance", "-75")
        self.assertEqual(entry.denomination_total, -75.0)

    def test_summary_and_batch_date(self):
        engine = make_engine()
        self.assertIsNone(engine.batch_date())
        self.assertEqual(engine.export_filename(), "Daily_Updates_" + date.today().strftime("%Y_%m_%d") + ".xlsx")

        engine.update_payment("m1", "cash", 100)
        engine.update_payment("m2", "online", 50)
        self.assertEqual(engine.batch_date(), "2025-01-15")
        self.assertEqual(engine.export_filename(), "Daily_Updates_2025_01_15.xlsx")
        self.assertEqual(engine.get_summary()["grand_total"], 150.0)

    def test_load_and_remove(self):
        engine = make_engine()
        engine.update_payment("m1", "cash", 100)
        replacement = {"temp_1": DailyLedgerEntry.blank("temp_1", "Guest", "2025-01-10")}
        engine.load_entries(replacement)
        self.assertEqual(list(engine.entries), ["temp_1"])

        engine.update_payment("temp_1", "cash", 30)
        self.assertEqual(engine.entries["temp_1"].cash, 30.0)
        self.assertIsNotNone(engine.remove_member("temp_1"))
        self.assertEqual(engine.entries, {})


if __name__ == '__main__':
    unittest.main()

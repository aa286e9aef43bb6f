"""
Integration tests for the command line: import, save, list, show and export.
"""
import io
import os
import sys
import tempfile
import unittest
from contextlib import redirect_stdout

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from openpyxl import load_workbook

from ledger.models import CylinderLine, DailyLedgerEntry, MemberRecord
from main import main
from output.excel_generator import save_daily_updates_excel
from storage.document_store import JSONFileDocumentStore
from storage.repositories import DailyUpdateRepository, MemberRepository


class TestCommandLine(unittest.TestCase):
    """End to end runs of main() against a JSON file store."""

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.store_path = os.path.join(self.tmp.name, "store.json")
        self.sheet_path = os.path.join(self.tmp.name, "Daily_Updates_2025_01_15.xlsx")

        MemberRepository(JSONFileDocumentStore(self.store_path)).create(
            MemberRecord(name="John Smith", join_date="2024-01-01")
        )

        john = DailyLedgerEntry.blank("", "john smith", "2025-01-15")
        john.cylinders["14.2kg"] = CylinderLine(905.0, 10)
        john.online_payment = 500.0
        john.cash = 200.0
        walk_in = DailyLedgerEntry.blank("", "Walk-in", "2025-01-15")
        walk_in.cash = 50.0
        save_daily_updates_excel([john, walk_in], self.sheet_path)

    def tearDown(self):
        self.tmp.cleanup()

    def run_cli(self, *args):
        out = io.StringIO()
        with redirect_stdout(out):
            code = main(["--store", self.store_path, *args])
        return code, out.getvalue()

    def saved_updates(self):
        return DailyUpdateRepository(JSONFileDocumentStore(self.store_path)).list_updates()

    def test_import_without_save(self):
        code, output = self.run_cli("import", self.sheet_path)

        self.assertEqual(code, 0)
        self.assertIn("Walk-in", output)
        self.assertIn("did not match", output)
        self.assertIn("₹9,800.00", output)
        self.assertEqual(self.saved_updates(), [])

    def test_import_save_list_show_export(self):
        code, output = self.run_cli("import", self.sheet_path, "--save", "--status", "pending")
        self.assertEqual(code, 0)

        updates = self.saved_updates()
        self.assertEqual(len(updates), 1)
        update = updates[0]
        self.assertEqual(update.status, "pending")
        self.assertIn(update.id, output)

        entries = update.entries()
        self.assertEqual(len(entries), 2)
        john = [e for e in entries.values() if e.member_name == "John Smith"][0]
        self.assertEqual(john.grand_total, 9750.0)

        code, output = self.run_cli("list")
        self.assertEqual(code, 0)
        self.assertIn(update.id, output)

        code, output = self.run_cli("show", update.id)
        self.assertEqual(code, 0)
        self.assertIn("John Smith", output)

        out_path = os.path.join(self.tmp.name, "exported.xlsx")
        code, _ = self.run_cli("export", update.id, "-o", out_path)
        self.assertEqual(code, 0)
        ws = load_workbook(out_path).active
        self.assertEqual(ws.title, "Daily Updates")
        self.assertEqual(ws.max_row, 3)

    def test_missing_input(self):
        code, output = self.run_cli("import", os.path.join(self.tmp.name, "nope.xlsx"))
        self.assertEqual(code, 1)
        self.assertIn("not found", output)

    def test_unreadable_workbook(self):
        bad_path = os.path.join(self.tmp.name, "bad.xlsx")
        with open(bad_path, "wb") as f:
            f.write(b"plain text")
        code, output = self.run_cli("import", bad_path)
        self.assertEqual(code, 1)
        self.assertIn("Invalid Excel file format", output)

    def test_unknown_update(self):
        self.assertEqual(self.run_cli("show", "nope")[0], 1)
        self.assertEqual(self.run_cli("export", "nope")[0], 1)

    def test_corrupt_store(self):
        with open(self.store_path, "w", encoding="utf-8") as f:
            f.write("{broken")
        code, output = self.run_cli("list")
        self.assertEqual(code, 1)
        self.assertIn("Could not read store", output)


if __name__ == '__main__':
    unittest.main()

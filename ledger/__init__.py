"""
Ledger module: per-member daily figures and their totals.

The engine lives in ``ledger.engine``; it is not re-exported here because
it depends on the spreadsheet parser, which itself imports these models.
"""
from ledger.models import (
    CashBreakdown,
    CylinderLine,
    DailyLedgerEntry,
    MemberRecord,
    batch_totals,
)

__all__ = [
    "CashBreakdown",
    "CylinderLine",
    "DailyLedgerEntry",
    "MemberRecord",
    "batch_totals",
]

"""
Reconciliation engine for one daily update session.

Holds one ledger entry per selected member, applies field edits with
zero-fallback coercion, and moves the whole batch in and out of the
spreadsheet format.
"""
import logging
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from config import export_filename
from ledger.models import (
    DailyLedgerEntry,
    MemberRecord,
    batch_totals,
    is_placeholder_id,
    resolve_cylinder_field,
    resolve_cylinder_size,
    resolve_payment_field,
    resolve_breakdown_field,
)
from normalizer.amount_parser import to_count, to_non_negative_amount
from normalizer.date_parser import to_iso_date, today_iso
from output.excel_generator import generate_daily_updates_excel
from parsers.base_parser import ValidationIssue
from parsers.xlsx_parser import DailyUpdateXLSXParser
from reconciler.roster_matcher import RosterMatchResult, match_roster

logger = logging.getLogger(__name__)


class UnknownMemberError(KeyError):
    """Raised when a member id is neither on the roster nor a placeholder."""


class ReconciliationEngine:
    """
    Owns the per-member entries of one editing session.

    Entries are keyed by member id. Selecting a member without editing
    anything leaves the batch unchanged; the entry joins the batch on its
    first cylinder, payment or cash breakdown edit.
    """

    def __init__(
        self,
        roster: Optional[Iterable[MemberRecord]] = None,
        today: Optional[Callable[[], str]] = None,
    ):
        """
        Initialize the engine.

        Args:
            roster: Members that may be selected (usually the active ones)
            today: Returns today's date as YYYY-MM-DD; defaults to the clock
        """
        self._roster: Dict[str, MemberRecord] = {}
        self._today = today or today_iso
        self._entries: Dict[str, DailyLedgerEntry] = {}
        self._pending: Dict[str, DailyLedgerEntry] = {}
        self.last_import_issues: List[ValidationIssue] = []
        self.last_match: Optional[RosterMatchResult] = None
        self.set_roster(roster or [])

    # ------------------------------------------------------------------
    # Roster and collection
    # ------------------------------------------------------------------

    def set_roster(self, members: Iterable[MemberRecord]) -> None:
        self._roster = {m.id: m for m in members if m.id}

    @property
    def roster(self) -> List[MemberRecord]:
        return list(self._roster.values())

    @property
    def entries(self) -> Dict[str, DailyLedgerEntry]:
        """The batch, keyed by member id. The dict is a copy; entries are live."""
        return dict(self._entries)

    def load_entries(self, entries: Mapping[str, DailyLedgerEntry]) -> None:
        """Replace the whole batch, e.g. after an import or when editing a saved one."""
        self._entries = dict(entries)
        self._pending.clear()
        logger.info("Loaded %d ledger entries", len(self._entries))

    def remove_member(self, member_id: str) -> Optional[DailyLedgerEntry]:
        self._pending.pop(member_id, None)
        return self._entries.pop(member_id, None)

    def clear(self) -> None:
        self._entries.clear()
        self._pending.clear()

    # ------------------------------------------------------------------
    # Selection and edits
    # ------------------------------------------------------------------

    def select_member(self, member_id: str, member_name: Optional[str] = None) -> DailyLedgerEntry:
        """
        Return the entry for a member, creating a zero entry if needed.

        Args:
            member_id: Roster id, or a placeholder id from an import
            member_name: Display name for a placeholder id

        Returns:
            The member's entry; a new one is not part of the batch yet

        Raises:
            UnknownMemberError: if the id is not on the roster and is not
                a placeholder
        """
        entry = self._entries.get(member_id) or self._pending.get(member_id)
        if entry is not None:
            return entry

        member = self._roster.get(member_id)
        if member is not None:
            name = member.name
        elif is_placeholder_id(member_id):
            name = (member_name or "").strip()
        else:
            raise UnknownMemberError(member_id)

        entry = DailyLedgerEntry.blank(member_id, name, self._today())
        self._pending[member_id] = entry
        return entry

    def _entry_for_edit(self, member_id: str) -> DailyLedgerEntry:
        entry = self.select_member(member_id)
        if member_id in self._pending:
            self._entries[member_id] = self._pending.pop(member_id)
        return entry

    def update_cylinder_line(self, member_id: str, size: Any, field: str, value: Any) -> DailyLedgerEntry:
        """
        Set the unit price or quantity of one cylinder size.

        Non-numeric and negative values become 0; quantities are truncated
        to whole cylinders.
        """
        size_key = resolve_cylinder_size(size)
        attr = resolve_cylinder_field(field)
        entry = self._entry_for_edit(member_id)

        line = entry.cylinders[size_key]
        if attr == "quantity":
            line.quantity = to_count(value)
        else:
            line.unit_price = to_non_negative_amount(value)

        logger.debug("%s %s %s=%r -> line total %.2f", member_id, size_key, attr, value, line.line_total)
        return entry

    def update_payment(self, member_id: str, field: str, value: Any) -> DailyLedgerEntry:
        """Set online payment or cash."""
        attr = resolve_payment_field(field)
        entry = self._entry_for_edit(member_id)
        setattr(entry, attr, to_non_negative_amount(value))
        return entry

    def update_cash_breakdown(self, member_id: str, field: str, value: Any) -> DailyLedgerEntry:
        """
        Set one note count or cash adjustment.

        Only the denomination total moves; the grand total does not.
        """
        resolve_breakdown_field(field)
        entry = self._entry_for_edit(member_id)
        entry.cash_breakdown.set_field(field, value)
        return entry

    def update_date(self, member_id: str, value: Any) -> DailyLedgerEntry:
        """Change an entry's date. An unreadable date leaves it as it was."""
        entry = self.select_member(member_id)
        iso = to_iso_date(value)
        if iso is None:
            logger.warning("Ignoring unreadable date %r for %s", value, member_id)
        else:
            entry.date = iso
        return entry

    # ------------------------------------------------------------------
    # Spreadsheet and roster
    # ------------------------------------------------------------------

    def batch_date(self) -> Optional[str]:
        """Date of the first entry, which names the exported file."""
        for entry in self._entries.values():
            if entry.date:
                return entry.date
        return None

    def export_batch(self) -> bytes:
        """Render the batch as an .xlsx workbook."""
        return generate_daily_updates_excel(self._entries.values())

    def export_filename(self) -> str:
        return export_filename(self.batch_date())

    def import_batch(self, data: bytes) -> Dict[str, DailyLedgerEntry]:
        """
        Parse a daily update workbook.

        The batch held by the engine is not touched; pass the result through
        ``reconcile_imported_with_roster`` and ``load_entries`` to adopt it.

        Returns:
            Entries keyed by the member name as written in the sheet

        Raises:
            ImportFormatError: if the workbook cannot be read
        """
        parser = DailyUpdateXLSXParser(data, today=self._today)
        imported = parser.parse()
        self.last_import_issues = parser.validate()
        return imported

    def reconcile_imported_with_roster(
        self,
        imported: Mapping[str, DailyLedgerEntry],
        roster: Optional[Iterable[MemberRecord]] = None,
    ) -> Dict[str, DailyLedgerEntry]:
        """
        Re-key imported entries by member id; see ``match_roster``.

        The matched and unmatched sheet names are kept on ``last_match``
        for reporting.
        """
        members = list(roster) if roster is not None else self.roster
        self.last_match = match_roster(imported, members)
        return self.last_match.entries

    def get_summary(self) -> Dict[str, Any]:
        return batch_totals(self._entries.values())

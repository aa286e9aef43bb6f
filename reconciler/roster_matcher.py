"""
Roster Matching Module.

Links rows imported from a spreadsheet (keyed by the name typed in the
sheet) to team members (keyed by id):
1. Match names case-insensitively, ignoring surrounding whitespace
2. File matched rows under the member's id and roster name
3. Keep unmatched rows under fresh placeholder ids so nothing is dropped
"""
import logging
import uuid
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping

from config import PLACEHOLDER_ID_PREFIX
from ledger.models import DailyLedgerEntry, MemberRecord

logger = logging.getLogger(__name__)


@dataclass
class RosterMatchResult:
    """Outcome of matching one imported batch against the roster."""
    entries: Dict[str, DailyLedgerEntry] = field(default_factory=dict)
    matched: List[str] = field(default_factory=list)
    unmatched: List[str] = field(default_factory=list)

    @property
    def unmatched_count(self) -> int:
        return len(self.unmatched)


def normalize_name(name: str) -> str:
    return str(name).strip().lower()


def new_placeholder_id() -> str:
    return f"{PLACEHOLDER_ID_PREFIX}{uuid.uuid4().hex}"


def match_roster(
    imported: Mapping[str, DailyLedgerEntry],
    roster: Iterable[MemberRecord],
) -> RosterMatchResult:
    """
    Match imported entries to roster members.

    A roster member claimed by an earlier row is not reused: a second row
    that normalizes to the same name is kept under a placeholder instead of
    overwriting the first.

    Args:
        imported: Entries keyed by the member name from the sheet
        roster: Members to match against

    Returns:
        RosterMatchResult with entries keyed by member or placeholder id
    """
    by_name: Dict[str, MemberRecord] = {}
    for member in roster:
        if member.id:
            # First member wins when two share a name
            by_name.setdefault(normalize_name(member.name), member)

    result = RosterMatchResult()

    for sheet_name, entry in imported.items():
        member = by_name.get(normalize_name(sheet_name))

        if member is not None and member.id not in result.entries:
            result.entries[member.id] = entry.with_identity(member.id, member.name)
            result.matched.append(sheet_name)
            continue

        if member is not None:
            logger.warning("%r matches %s, already taken by another row", sheet_name, member.id)

        placeholder = new_placeholder_id()
        while placeholder in result.entries:
            placeholder = new_placeholder_id()
        result.entries[placeholder] = entry.with_identity(placeholder, sheet_name.strip())
        result.unmatched.append(sheet_name)

    logger.info(
        "Roster match: %d matched, %d unmatched",
        len(result.matched), len(result.unmatched),
    )
    return result


def reconcile_with_roster(
    imported: Mapping[str, DailyLedgerEntry],
    roster: Iterable[MemberRecord],
) -> Dict[str, DailyLedgerEntry]:
    """Re-key imported entries by member id; see ``match_roster``."""
    return match_roster(imported, roster).entries

"""
Abstract base class for daily update sheet parsers.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from io import BytesIO
from typing import Any, BinaryIO, Dict, List, Union

from ledger.models import DailyLedgerEntry, batch_totals

Source = Union[str, bytes, BinaryIO]

# Differences below half a paisa are rounding noise
CASH_TOLERANCE = 0.005


@dataclass
class ValidationIssue:
    """
    Represents a validation issue found during parsing.
    """
    row_numbers: List[int]
    issue_type: str
    message: str
    severity: str = "warning"  # "info", "warning" or "error"


class BaseParser(ABC):
    """
    Abstract base class for daily update sheet parsers.
    """

    def __init__(self, source: Source):
        """
        Initialize the parser.

        Args:
            source: File path, raw bytes, or a binary file object
        """
        self.source = source
        self._entries: Dict[str, DailyLedgerEntry] = {}
        self._row_numbers: Dict[str, List[int]] = {}
        self._parse_issues: List[ValidationIssue] = []
        self._validation_issues: List[ValidationIssue] = []

    def _open_source(self) -> Union[str, BinaryIO]:
        if isinstance(self.source, (bytes, bytearray)):
            return BytesIO(self.source)
        return self.source

    @abstractmethod
    def parse(self) -> Dict[str, DailyLedgerEntry]:
        """
        Parse the sheet and return entries keyed by member name.
        """
        pass

    def validate(self) -> List[ValidationIssue]:
        """
        Validate the parsed entries and return any issues found.

        Issues raised while parsing (unreadable dates, duplicate rows, ...)
        come first. A cash figure that differs from its note breakdown is
        reported as "info" only: the breakdown is a counting aid, not a rule.

        Returns:
            List of ValidationIssue objects
        """
        issues = list(self._parse_issues)

        for name, entry in self._entries.items():
            rows = self._row_numbers.get(name, [])

            if entry.is_blank:
                issues.append(ValidationIssue(
                    row_numbers=rows,
                    issue_type="empty_entry",
                    message=f"{name} has no cylinder, payment or cash figures",
                ))
                continue

            breakdown_total = entry.denomination_total
            if breakdown_total and abs(breakdown_total - entry.cash) > CASH_TOLERANCE:
                issues.append(ValidationIssue(
                    row_numbers=rows,
                    issue_type="cash_mismatch",
                    message=(
                        f"{name}: cash {entry.cash:.2f} differs from note "
                        f"breakdown {breakdown_total:.2f}"
                    ),
                    severity="info",
                ))

        self._validation_issues = issues
        return issues

    @property
    def entries(self) -> Dict[str, DailyLedgerEntry]:
        return self._entries

    @property
    def validation_issues(self) -> List[ValidationIssue]:
        return self._validation_issues

    def get_summary(self) -> Dict[str, Any]:
        """
        Get batch totals for the parsed entries.
        """
        return batch_totals(self._entries.values())

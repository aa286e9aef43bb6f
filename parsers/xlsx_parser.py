"""
XLSX parser for daily update workbooks.

Columns are located by header text, not position, so sheets exported by
older versions of the app (no ₹ in note headers, "Member" instead of
"D MAN") and hand-edited sheets with reordered or missing columns import
cleanly. Totals in the sheet are never read; they are recomputed.
"""
import logging
from typing import Any, Callable, Dict, List, Optional

import pandas as pd

from config import (
    CYLINDER_SIZES,
    DERIVED_COLUMN_HEADERS,
    NOTE_DENOMINATIONS,
    get_column_aliases,
    get_config,
)
from ledger.models import CashBreakdown, CylinderLine, DailyLedgerEntry
from normalizer.amount_parser import (
    has_valid_amount,
    to_amount,
    to_count,
    to_non_negative_amount,
)
from normalizer.date_parser import to_iso_date, today_iso
from parsers.base_parser import BaseParser, Source, ValidationIssue

logger = logging.getLogger(__name__)


class ImportFormatError(Exception):
    """Raised when an uploaded workbook is not a readable daily update sheet."""


def _normalize_header(value: Any) -> str:
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return ""
    return " ".join(str(value).split()).lower()


class DailyUpdateXLSXParser(BaseParser):
    """
    Parser for "Daily Updates" workbooks.
    """

    def __init__(
        self,
        source: Source,
        sheet_name: Optional[str] = None,
        today: Optional[Callable[[], str]] = None,
    ):
        """
        Initialize the XLSX parser.

        Args:
            source: Path, bytes or binary file object of the workbook
            sheet_name: Sheet to read (defaults to the first sheet)
            today: Returns the date used for rows without a readable date
        """
        super().__init__(source)
        self.sheet_name = sheet_name
        self._today = today or today_iso
        self._header_row: Optional[int] = None
        self._column_mapping: Dict[str, int] = {}

    @property
    def column_mapping(self) -> Dict[str, int]:
        return self._column_mapping

    def parse(self) -> Dict[str, DailyLedgerEntry]:
        """
        Parse the workbook into entries keyed by member name.

        Raises:
            ImportFormatError: if the file is not a workbook, or it has no
                header row followed by at least one data row
        """
        df = self._read_sheet()

        if len(df.index) < 2:
            raise ImportFormatError(
                "Invalid Excel file format: expected a header row and at least one data row"
            )

        self._header_row = self._find_header_row(df)
        if self._header_row >= len(df.index) - 1:
            raise ImportFormatError("Invalid Excel file format: no data rows after the header")

        headers = list(df.iloc[self._header_row])
        self._column_mapping = self._identify_columns(headers)
        logger.info("Header row %d, column mapping: %s", self._header_row, self._column_mapping)

        if 'member_name' not in self._column_mapping:
            logger.warning("No member column ('D MAN' or 'Member') found")
            self._parse_issues.append(ValidationIssue(
                row_numbers=[self._header_row + 1],
                issue_type="missing_member_column",
                message="No 'D MAN' or 'Member' column; no rows imported",
                severity="error",
            ))
            self._entries = {}
            return self._entries

        self._entries = self._extract_entries(df.iloc[self._header_row + 1:])
        logger.info("Imported %d ledger entries", len(self._entries))
        return self._entries

    def _read_sheet(self) -> pd.DataFrame:
        """Read the sheet without assuming where the header is."""
        try:
            df = pd.read_excel(
                self._open_source(),
                sheet_name=self.sheet_name if self.sheet_name is not None else 0,
                header=None,
                dtype=str,
                # Only truly empty cells are missing; "NA" or "Nan" may be a name
                keep_default_na=False,
                na_values=[""],
                engine="openpyxl",
            )
        except Exception as e:
            # pandas/openpyxl/zipfile raise a zoo of types for junk input
            raise ImportFormatError(f"Invalid Excel file format: {e}") from e

        # Blank rows carry no data and would throw off the header search
        return df.dropna(how="all").reset_index(drop=True)

    def _find_header_row(self, df: pd.DataFrame) -> int:
        """
        Find the header row by counting cells that are known headers.

        Returns:
            Index of the best row among the first few; 0 if none scores
        """
        scan_rows = int(get_config().get("header_scan_rows", 10))
        best_row = 0
        best_score = 0

        for idx in range(min(scan_rows, len(df.index))):
            score = self._score_header_row(df.iloc[idx])
            if score > best_score:
                best_score = score
                best_row = idx

        return best_row

    def _score_header_row(self, row: pd.Series) -> int:
        known = {_normalize_header(h) for h in DERIVED_COLUMN_HEADERS}
        for aliases in get_column_aliases().values():
            known.update(_normalize_header(a) for a in aliases)
        return sum(1 for value in row if _normalize_header(value) in known)

    def _identify_columns(self, headers: List[Any]) -> Dict[str, int]:
        """
        Map each input field to a column index.

        Exact header matches are resolved first, then any field still
        missing takes the first unclaimed column whose header contains one
        of its aliases. Total columns are reserved so "Cash" can never land
        on "Cash Denomination Total".

        Args:
            headers: Header cell values in sheet order

        Returns:
            Dictionary mapping field names to column positions
        """
        aliases = get_column_aliases()
        normalized = {idx: _normalize_header(h) for idx, h in enumerate(headers)}
        reserved = {_normalize_header(h) for h in DERIVED_COLUMN_HEADERS}
        claimed = {idx for idx, text in normalized.items() if not text or text in reserved}
        mapping: Dict[str, int] = {}

        def claim(field: str, matches: Callable[[str, str], bool]) -> None:
            for alias in aliases[field]:
                wanted = _normalize_header(alias)
                for idx, text in normalized.items():
                    if idx not in claimed and matches(wanted, text):
                        mapping[field] = idx
                        claimed.add(idx)
                        return

        for field in aliases:
            claim(field, lambda wanted, text: wanted == text)
        for field in aliases:
            if field not in mapping:
                claim(field, lambda wanted, text: wanted in text)

        return mapping

    def _extract_entries(self, rows: pd.DataFrame) -> Dict[str, DailyLedgerEntry]:
        entries: Dict[str, DailyLedgerEntry] = {}
        self._row_numbers = {}

        for offset, (_, row) in enumerate(rows.iterrows()):
            # 1-based position among non-blank rows, counting the header
            row_num = self._header_row + offset + 2

            member_name = self._text(row, 'member_name')
            if not member_name:
                continue

            date_text = self._text(row, 'date')
            entry_date = to_iso_date(date_text) if date_text else None
            if entry_date is None:
                entry_date = self._today()
                if date_text:
                    self._parse_issues.append(ValidationIssue(
                        row_numbers=[row_num],
                        issue_type="invalid_date",
                        message=f"Unreadable date {date_text!r} for {member_name}; using {entry_date}",
                    ))

            cylinders = {
                size: CylinderLine(
                    unit_price=to_non_negative_amount(self._number(row, f"{size}:unit_price", row_num)),
                    quantity=to_count(self._number(row, f"{size}:quantity", row_num)),
                )
                for size, _, _ in CYLINDER_SIZES
            }

            breakdown = CashBreakdown(
                notes={
                    face: to_count(self._number(row, f"denomination{face}", row_num))
                    for face in NOTE_DENOMINATIONS
                },
                old_pending=to_amount(self._number(row, 'old_pending', row_num)),
                old_balance=to_amount(self._number(row, 'old_balance', row_num)),
                coins=to_amount(self._number(row, 'coins', row_num)),
            )

            entry = DailyLedgerEntry(
                member_id="",
                member_name=member_name,
                date=entry_date,
                cylinders=cylinders,
                online_payment=to_non_negative_amount(self._number(row, 'online_payment', row_num)),
                cash=to_non_negative_amount(self._number(row, 'cash', row_num)),
                cash_breakdown=breakdown,
            )

            if member_name in entries:
                self._parse_issues.append(ValidationIssue(
                    row_numbers=self._row_numbers[member_name] + [row_num],
                    issue_type="duplicate_member",
                    message=f"{member_name} appears more than once; keeping row {row_num}",
                ))
                self._row_numbers[member_name].append(row_num)
            else:
                self._row_numbers[member_name] = [row_num]

            entries[member_name] = entry

        return entries

    def _cell(self, row: pd.Series, field: str) -> Any:
        idx = self._column_mapping.get(field)
        if idx is None or idx >= len(row):
            return None
        value = row.iloc[idx]
        if value is None or (not isinstance(value, str) and pd.isna(value)):
            return None
        return value

    def _text(self, row: pd.Series, field: str) -> str:
        value = self._cell(row, field)
        if value is None:
            return ""
        return str(value).strip()

    def _number(self, row: pd.Series, field: str, row_num: int) -> Any:
        """Raw numeric cell; junk is reported and then coerced to 0 by the caller."""
        text = self._text(row, field)
        if text and not has_valid_amount(text):
            self._parse_issues.append(ValidationIssue(
                row_numbers=[row_num],
                issue_type="non_numeric",
                message=f"Non-numeric value {text!r} in {field}; treated as 0",
            ))
        return text or None


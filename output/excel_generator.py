"""
Excel output generator for daily update batches.

Writes a single "Daily Updates" sheet, one row per member, in the fixed
28-column layout that the importer and existing spreadsheets rely on.
"""
import logging
from io import BytesIO
from typing import Iterable, List

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

from config import EXPORT_HEADERS, SHEET_NAME
from ledger.models import DailyLedgerEntry

logger = logging.getLogger(__name__)

# Style definitions
HEADER_FONT = Font(bold=True, color="FFFFFF")
HEADER_FILL = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")
TOTAL_FILL = PatternFill(start_color="FFF2CC", end_color="FFF2CC", fill_type="solid")
ALT_ROW_FILL = PatternFill(start_color="F2F2F2", end_color="F2F2F2", fill_type="solid")
THIN_BORDER = Border(
    left=Side(style='thin'),
    right=Side(style='thin'),
    top=Side(style='thin'),
    bottom=Side(style='thin')
)
CURRENCY_FORMAT = '#,##0.00'
COUNT_FORMAT = '0'


def _column_kind(header: str) -> str:
    if header in ("D MAN", "Date"):
        return "text"
    if header.endswith("Quantity") or header.endswith("Notes"):
        return "count"
    if header.endswith("Total"):
        return "total"
    return "money"


COLUMN_KINDS: List[str] = [_column_kind(h) for h in EXPORT_HEADERS]


def generate_daily_updates_excel(entries: Iterable[DailyLedgerEntry]) -> bytes:
    """
    Render ledger entries as an .xlsx workbook.

    Args:
        entries: Entries to write, in row order

    Returns:
        The workbook file contents
    """
    entries = list(entries)

    wb = Workbook()
    ws = wb.active
    ws.title = SHEET_NAME
    _write_daily_updates_sheet(ws, entries)

    buffer = BytesIO()
    wb.save(buffer)
    logger.info("Generated daily update workbook with %d rows", len(entries))
    return buffer.getvalue()


def save_daily_updates_excel(entries: Iterable[DailyLedgerEntry], output_path: str) -> str:
    """
    Write ledger entries to an .xlsx file.

    Returns:
        Path to the generated file
    """
    with open(output_path, 'wb') as f:
        f.write(generate_daily_updates_excel(entries))
    logger.info("Excel file saved: %s", output_path)
    return output_path


def _write_daily_updates_sheet(ws: Worksheet, entries: List[DailyLedgerEntry]) -> None:
    for col, header in enumerate(EXPORT_HEADERS, 1):
        cell = ws.cell(row=1, column=col, value=header)
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
        cell.border = THIN_BORDER
        cell.alignment = Alignment(horizontal='center', wrap_text=True)

    for row_idx, entry in enumerate(entries, 2):
        for col, (value, kind) in enumerate(zip(entry.to_row(), COLUMN_KINDS), 1):
            cell = ws.cell(row=row_idx, column=col, value=value)
            cell.border = THIN_BORDER
            if kind == "count":
                cell.number_format = COUNT_FORMAT
            elif kind in ("money", "total"):
                cell.number_format = CURRENCY_FORMAT

            if kind == "total":
                cell.fill = TOTAL_FILL
                cell.font = Font(bold=True)
            elif row_idx % 2 == 0:
                cell.fill = ALT_ROW_FILL

    column_widths = {"text": 18, "count": 11, "money": 14, "total": 16}
    for col, kind in enumerate(COLUMN_KINDS, 1):
        ws.column_dimensions[get_column_letter(col)].width = column_widths[kind]

    ws.auto_filter.ref = f"A1:{get_column_letter(len(EXPORT_HEADERS))}{len(entries) + 1}"

    # Freeze header row and the member column
    ws.freeze_panes = "B2"

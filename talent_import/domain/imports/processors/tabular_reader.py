"""
Read CSV/XLSX uploads into a uniform grid of strings.

No typing happens here: every cell comes back as a stripped string so header
detection and the row transformer see the same representation regardless of
the source format.
"""
import csv
import io
import logging
from dataclasses import dataclass, field
from io import StringIO
from typing import Dict, List, Tuple

import pandas as pd

from talent_import.domain.imports.errors import FileStructureError

logger = logging.getLogger(__name__)

CSV = "csv"
EXCEL = "excel"

_EXTENSIONS = {
    ".csv": CSV,
    ".tsv": CSV,
    ".txt": CSV,
    ".xlsx": EXCEL,
    ".xlsm": EXCEL,
}


@dataclass
class Sheet:
    """First (or only) sheet of an uploaded file as rows of strings."""
    rows: List[List[str]] = field(default_factory=list)
    file_type: str = CSV


def detect_file_type(filename: str) -> str:
    """Map an upload filename to the reader that handles it."""
    lowered = (filename or "").lower()
    for extension, file_type in _EXTENSIONS.items():
        if lowered.endswith(extension):
            return file_type
    if lowered.endswith(".xls"):
        raise FileStructureError("Legacy .xls workbooks are not supported; save the file as .xlsx", file_type=EXCEL)
    raise FileStructureError(f"Unsupported file type: {filename}")


def _cell_text(value) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and pd.isna(value):
        return ""
    return str(value).strip()


def _decode_text(file_content: bytes) -> str:
    try:
        return file_content.decode("utf-8-sig")
    except UnicodeDecodeError:
        logger.warning("CSV is not valid UTF-8; decoding as Latin-1")
        return file_content.decode("latin-1")


def _read_csv_rows(file_content: bytes) -> List[List[str]]:
    text_content = _decode_text(file_content)
    sample = text_content[:8192]
    try:
        dialect = csv.Sniffer().sniff(sample, delimiters=",;\t|")
    except csv.Error:
        dialect = csv.excel

    try:
        reader = csv.reader(StringIO(text_content), dialect)
        rows = [[_cell_text(cell) for cell in row] for row in reader]
    except csv.Error as e:
        raise FileStructureError(f"Could not read CSV file: {e}", file_type=CSV) from e

    return [row for row in rows if row]


def _read_excel_rows(file_content: bytes) -> List[List[str]]:
    try:
        df = pd.read_excel(
            io.BytesIO(file_content),
            sheet_name=0,
            header=None,
            dtype=str,
            keep_default_na=False,
            engine="openpyxl",
        )
    except Exception as e:
        raise FileStructureError(f"Could not read Excel file: {e}", file_type=EXCEL) from e

    return [[_cell_text(value) for value in row] for row in df.itertuples(index=False, name=None)]


def read_workbook(file_content: bytes, format_hint: str) -> Sheet:
    """
    Open an uploaded file and return its first sheet.

    Args:
        file_content: Raw upload bytes (never modified)
        format_hint: "csv" or "excel"

    Raises:
        FileStructureError: If the content cannot be parsed at all
    """
    if not file_content:
        raise FileStructureError("Uploaded file is empty", file_type=format_hint)

    if format_hint == CSV:
        rows = _read_csv_rows(file_content)
    elif format_hint == EXCEL:
        rows = _read_excel_rows(file_content)
    else:
        raise FileStructureError(f"Unsupported file type: {format_hint}")

    width = max((len(row) for row in rows), default=0)
    padded = [row + [""] * (width - len(row)) for row in rows]

    logger.info("Read %d raw rows x %d columns from %s upload", len(padded), width, format_hint)
    return Sheet(rows=padded, file_type=format_hint)


def raw_rows(sheet: Sheet, max_rows: int) -> List[List[str]]:
    """Return the first ``max_rows`` rows exactly as read, for header scanning."""
    return [list(row) for row in sheet.rows[:max_rows]]


def _unique_column_names(header: List[str]) -> List[str]:
    names: List[str] = []
    seen: Dict[str, int] = {}
    for position, value in enumerate(header, start=1):
        base = value or f"Column {position}"
        name = base
        while name in seen:
            seen[base] += 1
            name = f"{base}_{seen[base]}"
        seen.setdefault(base, 0)
        seen.setdefault(name, 0)
        names.append(name)
    return names


def _header_layout(sheet: Sheet, start_row_index: int) -> Tuple[List[str], List[int], List[List[str]]]:
    """Column names, kept column positions and non-blank data rows below the header."""
    header = sheet.rows[start_row_index]
    columns = _unique_column_names(header)
    data_rows = [row for row in sheet.rows[start_row_index + 1:] if any(row)]

    # Unnamed columns survive only if they actually hold data
    keep = [
        idx for idx, value in enumerate(header)
        if value or any(idx < len(row) and row[idx] for row in data_rows)
    ]
    return columns, keep, data_rows


def columns_from(sheet: Sheet, start_row_index: int) -> List[str]:
    """Column names ``rows_from`` uses for the same header row (also for header-only files)."""
    if not sheet.rows or start_row_index >= len(sheet.rows):
        return []
    columns, keep, _ = _header_layout(sheet, start_row_index)
    return [columns[idx] for idx in keep]


def rows_from(sheet: Sheet, start_row_index: int) -> List[Dict[str, str]]:
    """
    Turn the sheet into records using row ``start_row_index`` as the header.

    Rows above the header and blank rows below it are dropped.
    """
    if not sheet.rows or start_row_index >= len(sheet.rows):
        return []

    columns, keep, data_rows = _header_layout(sheet, start_row_index)
    return [
        {columns[idx]: (row[idx] if idx < len(row) else "") for idx in keep}
        for row in data_rows
    ]

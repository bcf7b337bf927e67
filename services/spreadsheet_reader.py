"""
Spreadsheet Reader - Forward-only access to the first worksheet of a workbook.

Every call opens a fresh read-only workbook, so reading the header and then
streaming the full sheet re-opens the file; that is expected.
"""

import logging
from itertools import zip_longest
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

import openpyxl

logger = logging.getLogger(__name__)

HEADER_ROW_INDEX = 1


def header_names(header_row: Sequence[Any]) -> List[Optional[str]]:
    """Header cells as text; empty header cells stay ``None``."""
    return [None if cell is None else str(cell) for cell in header_row]


def combine_row(header: Sequence[Optional[str]], row: Sequence[Any]) -> Dict[str, Any]:
    """
    Key a data row by its header.

    Short rows are padded with ``None``, cells beyond the header are dropped,
    columns with an empty header are skipped. A repeated header name keeps the
    value of its last occurrence.
    """
    combined: Dict[str, Any] = {}
    for name, value in zip_longest(header, row[:len(header)]):
        if name is not None:
            combined[name] = value
    return combined


class SpreadsheetReader:
    """Reads ``.xlsx`` workbooks with openpyxl in read-only mode."""

    def iter_rows(self, file_path: str) -> Iterator[Tuple[int, Tuple[Any, ...]]]:
        """
        Yield ``(row_index, values)`` for the first worksheet, row_index 1-based.

        Only the first sheet is read; any further sheets are ignored.
        """
        workbook = openpyxl.load_workbook(file_path, read_only=True, data_only=True)
        try:
            if not workbook.worksheets:
                return
            sheet = workbook.worksheets[0]
            logger.debug(f"Reading sheet '{sheet.title}' of {file_path}")

            for row_index, values in enumerate(sheet.iter_rows(values_only=True), 1):
                yield row_index, values
        finally:
            workbook.close()

    def read_header(self, file_path: str) -> List[Optional[str]]:
        """Header row of the first worksheet (empty list for an empty sheet)."""
        rows = self.iter_rows(file_path)
        try:
            for row_index, values in rows:
                if row_index == HEADER_ROW_INDEX:
                    return header_names(values)
            return []
        finally:
            rows.close()

"""Excel and CSV row extractor adapter.

This adapter implements IRowExtractor to read phone device spreadsheets.
"""

import csv
import io
import logging
import zipfile
from typing import Any, Iterator, Optional

from openpyxl import load_workbook

from ..domain.entities import HeaderSchema, ImportRow
from ..domain.exceptions import MalformedFileError, MissingRequiredColumnsError
from ..domain.ports import IRowExtractor

logger = logging.getLogger(__name__)


def cell_text(value: Any) -> str:
    """Render a cell value as text.

    Numeric cells holding whole numbers lose their ".0" so that an
    extension typed as 101 reads back as "101".
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


class ExtractedRows:
    """Lazy, restartable sequence of ImportRow.

    Each iteration re-reads the file from the original bytes, so the
    sequence can be consumed more than once.
    """

    def __init__(
        self,
        file_content: bytes,
        column_map: dict[int, str],
        is_csv: bool,
    ):
        self._content = file_content
        self._column_map = column_map
        self._is_csv = is_csv

    @property
    def columns(self) -> list[str]:
        return list(self._column_map.values())

    def __iter__(self) -> Iterator[ImportRow]:
        raw_rows = _iter_csv(self._content) if self._is_csv else _iter_excel(self._content)
        try:
            next(raw_rows, None)  # Header
            for row_num, values in raw_rows:
                fields = {
                    name: cell_text(values[idx]) if idx < len(values) else ""
                    for idx, name in self._column_map.items()
                }
                # Skip empty rows
                if not any(fields.values()):
                    continue
                yield ImportRow(row_number=row_num, fields=fields)
        except MalformedFileError:
            raise
        except (csv.Error, ValueError, OSError, KeyError, zipfile.BadZipFile) as e:
            logger.error(f"Failed to read data rows: {e}")
            raise MalformedFileError(f"Failed to read file as a spreadsheet: {e}") from e
        finally:
            raw_rows.close()


def _iter_excel(file_content: bytes) -> Iterator[tuple[int, tuple]]:
    wb = load_workbook(filename=io.BytesIO(file_content), read_only=True, data_only=True)
    try:
        ws = wb.active
        if ws is None:
            raise MalformedFileError("Excel file has no active worksheet")
        yield from enumerate(ws.iter_rows(values_only=True), start=1)
    finally:
        wb.close()


def _iter_csv(file_content: bytes) -> Iterator[tuple[int, list[str]]]:
    """Yield (line number, record) pairs.

    The line number is where the record starts, so quoted cells spanning
    several lines do not shift the rows below them.
    """
    text = file_content.decode("utf-8-sig")  # Handle BOM

    # Detect delimiter
    try:
        dialect = csv.Sniffer().sniff(text[:1024], delimiters=",;\t")
    except csv.Error:
        dialect = csv.excel

    reader = csv.reader(io.StringIO(text), dialect)
    first_line = 1
    for values in reader:
        yield first_line, values
        first_line = reader.line_num + 1


class OpenpyxlRowExtractor(IRowExtractor):
    """Row extractor using openpyxl for workbooks and csv for delimited text.

    Expected format (header names are matched case-insensitively and
    several spellings are accepted, see DEFAULT_SCHEMA):
    | MAC               | Number | Vendor  | Model     | User  | Lines |
    |-------------------|--------|---------|-----------|-------|-------|
    | AA-BB-CC-DD-EE-FF | 101    | yealink | T46S      | alice | 2     |

    - First row is treated as header
    - Rows with all cells empty are skipped
    """

    def extract(self, file_content: bytes, schema: HeaderSchema) -> ExtractedRows:
        """Open the file and match its header.

        Raises:
            MalformedFileError: If the file cannot be read as tabular data
            MissingRequiredColumnsError: If a required header is absent
        """
        is_csv = self._is_csv(file_content)
        try:
            rows = _iter_csv(file_content) if is_csv else _iter_excel(file_content)
            _, header = next(rows, (None, None))
            rows.close()
        except MalformedFileError:
            raise
        except Exception as e:
            logger.error(f"Failed to read uploaded file: {e}")
            raise MalformedFileError(f"Failed to read file as a spreadsheet: {e}")

        if header is None or not any(cell_text(cell) for cell in header):
            raise MalformedFileError("File is empty")

        column_map = self._find_columns(header, schema)
        missing = [name for name in schema.required_names if name not in column_map.values()]
        if missing:
            raise MissingRequiredColumnsError(missing)

        logger.info(f"Matched columns: {', '.join(column_map.values())}")
        return ExtractedRows(file_content, column_map, is_csv)

    @staticmethod
    def _find_columns(header: tuple, schema: HeaderSchema) -> dict[int, str]:
        """Map header cell indices to canonical column names.

        The first header cell matching a column wins.
        """
        column_map: dict[int, str] = {}
        for idx, cell in enumerate(header):
            if cell is None:
                continue
            text = str(cell)
            for spec in schema.columns:
                if spec.name in column_map.values():
                    continue
                if spec.matches(text):
                    column_map[idx] = spec.name
                    break
        return column_map

    @staticmethod
    def _is_csv(file_content: bytes) -> bool:
        """Detect if file content is CSV format.

        Workbooks are zip (xlsx) or OLE (xls) containers and never decode
        as UTF-8 text with delimiters on the first line.
        """
        try:
            text = file_content.decode("utf-8-sig")
        except UnicodeDecodeError:
            return False
        first_line: Optional[str] = text.splitlines()[0] if text else None
        if not first_line:
            return False
        return "," in first_line or ";" in first_line or "\t" in first_line

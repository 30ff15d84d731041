"""
CSV tokenizer for catalog uploads.

Lenient RFC 4180-style reader: quoted cells may hold delimiters, newlines and
doubled quotes, and a file that ends inside an open quote still yields
whatever was buffered.
"""

from typing import Optional, Sequence
import structlog

from exceptions import CsvParseError, UnsupportedFileTypeError
from models.csv_import import FileAnalysis, ParsedTable

logger = structlog.get_logger(__name__)

CSV_CONTENT_TYPES = {"text/csv", "application/csv"}
UTF8_BOM = "\ufeff"


def tokenize(text: str, delimiter: str = ",") -> list[list[str]]:
    """
    Split CSV text into rows of trimmed cells.

    Args:
        text: Raw file contents
        delimiter: Single-character cell separator

    Returns:
        List of rows; each row is a list of cell strings
    """
    rows: list[list[str]] = []
    row: list[str] = []
    cell: list[str] = []
    in_quotes = False
    i = 0
    length = len(text)

    while i < length:
        ch = text[i]
        if in_quotes:
            if ch == '"':
                if i + 1 < length and text[i + 1] == '"':
                    cell.append('"')
                    i += 1
                else:
                    in_quotes = False
            else:
                cell.append(ch)
        elif ch == '"':
            in_quotes = True
        elif ch == delimiter:
            row.append("".join(cell))
            cell = []
        elif ch == "\r" or ch == "\n":
            if ch == "\r" and i + 1 < length and text[i + 1] == "\n":
                i += 1
            row.append("".join(cell))
            rows.append(row)
            row = []
            cell = []
        else:
            cell.append(ch)
        i += 1

    # Unterminated quote: keep what was buffered
    if cell or row:
        row.append("".join(cell))
        rows.append(row)

    return [[c.strip() for c in r] for r in rows]


def serialize(rows: Sequence[Sequence[str]], delimiter: str = ",") -> str:
    """Write rows back to CSV text, quoting cells that need it."""
    lines = []
    for row in rows:
        cells = []
        for value in row:
            value = "" if value is None else str(value)
            if any(ch in value for ch in (delimiter, '"', "\n", "\r")):
                value = '"' + value.replace('"', '""') + '"'
            cells.append(value)
        lines.append(delimiter.join(cells))
    return "\r\n".join(lines) + ("\r\n" if lines else "")


def decode_upload(data: bytes) -> str:
    """Decode an uploaded file as UTF-8, dropping a leading BOM."""
    text = data.decode("utf-8", errors="replace")
    if text.startswith(UTF8_BOM):
        text = text[len(UTF8_BOM):]
    return text


def ensure_csv_file(file_name: Optional[str], content_type: Optional[str] = None) -> None:
    """
    Reject anything that is not a CSV upload.

    Raises:
        UnsupportedFileTypeError: Neither the name nor the content type says CSV
    """
    if file_name and file_name.lower().endswith(".csv"):
        return
    if content_type and content_type.split(";")[0].strip().lower() in CSV_CONTENT_TYPES:
        return
    logger.warning("unsupported_file_type", file_name=file_name, content_type=content_type)
    raise UnsupportedFileTypeError(file_name, content_type)


def _clean_header(header: str) -> str:
    return header.replace('"', "").replace("'", "").strip()


def read_table(text: str, delimiter: str = ",", skip_rows: int = 0) -> ParsedTable:
    """
    Tokenize an upload into a header row and data rows.

    Args:
        text: Decoded file contents
        delimiter: Cell separator
        skip_rows: Leading rows to drop before the header (export preambles)

    Returns:
        ParsedTable

    Raises:
        CsvParseError: Fewer than two rows remain (no header or no data)
    """
    rows = tokenize(text, delimiter)
    if skip_rows > 0:
        rows = rows[skip_rows:]

    if len(rows) < 2:
        logger.warning("csv_too_short", row_count=len(rows), skip_rows=skip_rows)
        raise CsvParseError(
            message="Not a valid CSV file: a header row and at least one data row are required",
            details={"row_count": len(rows), "skip_rows": skip_rows}
        )

    headers = tuple(_clean_header(h) for h in rows[0])
    data_rows = tuple(tuple(r) for r in rows[1:])

    logger.info(
        "csv_tokenized",
        columns=len(headers),
        data_rows=len(data_rows),
        skip_rows=skip_rows
    )

    return ParsedTable(headers=headers, rows=data_rows)


def analyze(file_name: str, file_size: int, table: ParsedTable, sample_size: int = 5) -> FileAnalysis:
    """Summarize a parsed upload for the preview screen."""
    return FileAnalysis(
        file_name=file_name,
        file_size=file_size,
        total_rows=table.row_count,
        total_columns=len(table.headers),
        headers=list(table.headers),
        sample_rows=[list(r) for r in table.rows[:sample_size]],
    )

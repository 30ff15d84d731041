"""
Row normalization and validation.

Rules per canonical field:
    name   blank -> "required"
    code   blank -> synthesized PRD-{yyyyMMdd}-{row:04d}, never an error
    price  blank -> "required"
    brand  blank -> "required"; "A; B ;C" becomes ["A", "B", "C"]

The full pass runs once after upload. Each cell edit re-validates only the
path it wrote.
"""

from datetime import date
from typing import Callable, Optional, Sequence
import structlog

from config import settings
from models.catalog_row import CatalogRow, CellPath, FieldValue, RowDocument, RowErrors
from models.csv_import import ParsedTable
from models.platform import CANONICAL_FIELDS

logger = structlog.get_logger(__name__)

REQUIRED_MESSAGE = "required"
BRAND_SEPARATOR = ";"


def generate_code(row_index: int, today: Optional[date] = None, prefix: Optional[str] = None) -> str:
    """Product code for a blank cell: PRD-20240601-0003 for the third data row."""
    today = today or date.today()
    prefix = prefix or settings.generated_code_prefix
    return f"{prefix}-{today:%Y%m%d}-{row_index + 1:04d}"


def split_brands(text: str) -> list[str]:
    """'A; B ;C' -> ['A', 'B', 'C']"""
    return [part.strip() for part in text.split(BRAND_SEPARATOR) if part.strip()]


def build_document(table: ParsedTable, binding: dict[str, Optional[str]]) -> RowDocument:
    """
    Project table rows onto canonical fields.

    Args:
        table: Parsed upload
        binding: Canonical field -> header (from bind_columns)
    """
    positions = {
        canonical: table.headers.index(header)
        for canonical, header in binding.items()
        if header is not None and header in table.headers
    }
    document = RowDocument()
    for row_index in range(table.row_count):
        row = CatalogRow(index=row_index)
        for canonical in CANONICAL_FIELDS:
            column = positions.get(canonical)
            text = table.cell(row_index, column) if column is not None else ""
            row.set(canonical, FieldValue.scalar(text))
        document.rows.append(row)
    return document


def reproject_field(
    document: RowDocument,
    table: ParsedTable,
    canonical: str,
    header: Optional[str],
) -> list[CellPath]:
    """Reload one canonical field from a (new) source column for every row."""
    column = table.headers.index(header) if header in table.headers else None
    changed = []
    for row in document:
        text = table.cell(row.index, column) if column is not None else ""
        changed.append(document.apply_at((row.index, canonical), FieldValue.scalar(text)))
    return changed


# ===================
# FIELD RULES
# ===================

def _check_required(row: CatalogRow, field_name: str, errors: RowErrors, today: date) -> None:
    if row.get(field_name).is_blank:
        errors.set(row.index, field_name, REQUIRED_MESSAGE)
    else:
        errors.clear(row.index, field_name)


def _check_code(row: CatalogRow, field_name: str, errors: RowErrors, today: date) -> None:
    value = row.get(field_name)
    if value.is_blank:
        row.set(field_name, FieldValue.scalar(generate_code(row.index, today)))
    errors.clear(row.index, field_name)


def _check_brand(row: CatalogRow, field_name: str, errors: RowErrors, today: date) -> None:
    value = row.get(field_name)
    if not value.is_list and value.text and BRAND_SEPARATOR in value.text:
        value = FieldValue.many(split_brands(value.text))
        row.set(field_name, value)
    elif value.is_list:
        value = FieldValue.many([item.strip() for item in value.items if item.strip()])
        row.set(field_name, value)

    if value.is_blank:
        errors.set(row.index, field_name, REQUIRED_MESSAGE)
    else:
        errors.clear(row.index, field_name)


RULES: dict[str, Callable[[CatalogRow, str, RowErrors, date], None]] = {
    "name": _check_required,
    "code": _check_code,
    "price": _check_required,
    "brand": _check_brand,
}


# ===================
# PASSES
# ===================

def validate_cell(
    document: RowDocument,
    errors: RowErrors,
    path: CellPath,
    today: Optional[date] = None,
) -> None:
    """Run the rule for one (row, field) path, normalizing in place."""
    row_index, field_name = path
    rule = RULES.get(field_name)
    if rule is None:
        return
    rule(document.row(row_index), field_name, errors, today or date.today())


def validate_all(document: RowDocument, today: Optional[date] = None) -> RowErrors:
    """
    Full validation pass over every row.

    Returns:
        Fresh RowErrors for the document
    """
    today = today or date.today()
    errors = RowErrors()
    for row in document:
        for field_name in CANONICAL_FIELDS:
            validate_cell(document, errors, (row.index, field_name), today)

    logger.info(
        "rows_validated",
        rows=len(document),
        rows_with_errors=len(errors.rows()),
        error_count=len(errors)
    )
    return errors


def revalidate(
    document: RowDocument,
    errors: RowErrors,
    paths: Sequence[CellPath],
    today: Optional[date] = None,
) -> None:
    """Re-run validation for exactly the given paths."""
    today = today or date.today()
    for path in paths:
        validate_cell(document, errors, path, today)


def apply_edit(
    document: RowDocument,
    errors: RowErrors,
    row_index: int,
    field_name: str,
    value,
    today: Optional[date] = None,
) -> FieldValue:
    """
    Write one cell and re-validate it.

    Returns:
        The stored (normalized) value

    Raises:
        IndexError: row_index outside the document
        KeyError: field_name is not a canonical field
    """
    path = document.apply_at((row_index, field_name), value)
    validate_cell(document, errors, path, today)

    logger.debug(
        "cell_edited",
        row_index=row_index,
        field=field_name,
        has_error=field_name in errors.for_row(row_index)
    )
    return document.get_at(path)


def valid_rows(document: RowDocument, errors: RowErrors) -> list[CatalogRow]:
    """Rows with zero errors."""
    return [row for row in document if not errors.has_errors(row.index)]

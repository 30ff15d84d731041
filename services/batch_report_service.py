"""
Batch report construction.

Counts: `success` is `total - error`, where `error` counts failing
(row, field) pairs rather than rows. A row failing two fields lowers `success`
by two. `valid_rows` is the row-level count.
"""

from datetime import date
from typing import Optional
import structlog

from config import settings
from models.catalog_row import RowDocument, RowErrors
from models.csv_import import ErrorGroup, UploadErrorItem, UploadResult

logger = structlog.get_logger(__name__)


def make_batch_id(batch_seq: int, year: Optional[int] = None, prefix: Optional[str] = None) -> str:
    """BATCH_2024_007 for the seventh batch of 2024."""
    year = year or date.today().year
    prefix = prefix or settings.batch_prefix
    return f"{prefix}_{year}_{batch_seq:03d}"


def group_errors(errors: list[UploadErrorItem]) -> list[ErrorGroup]:
    """One group per CSV line, listing its failing fields."""
    grouped: dict[int, list[str]] = {}
    for item in errors:
        fields = grouped.setdefault(item.row, [])
        if item.field not in fields:
            fields.append(item.field)
    return [ErrorGroup(row=row, fields=fields) for row, fields in sorted(grouped.items())]


def collect_errors(row_errors: RowErrors) -> list[UploadErrorItem]:
    """Error tuples with CSV line numbers (data row index + 2)."""
    return [
        UploadErrorItem(row=row_index + 2, field=field_name, message=message)
        for row_index, field_name, message in row_errors.items()
    ]


def build_result(
    document: RowDocument,
    row_errors: RowErrors,
    batch_seq: int,
    year: Optional[int] = None,
) -> UploadResult:
    """
    Summarize a submit.

    Args:
        document: Validated rows
        row_errors: Errors at submit time
        batch_seq: Position of this batch in history (1-based)
        year: Batch year (defaults to current year)
    """
    errors = collect_errors(row_errors)
    total = len(document)
    error = len(errors)
    result = UploadResult(
        total=total,
        success=total - error,
        error=error,
        valid_rows=total - len(row_errors.rows()),
        batch_id=make_batch_id(batch_seq, year),
        errors=errors,
        error_groups=group_errors(errors),
    )

    logger.info(
        "batch_result_built",
        batch_id=result.batch_id,
        total=result.total,
        success=result.success,
        error=result.error
    )
    return result

"""
Create/update reconciliation.

The product code is the idempotency key: a valid row whose code the product
store already knows is an update, anything else is a create. Rows with errors
never reach this module.
"""

from typing import Collection, Sequence
import structlog

from models.catalog_row import CatalogRow
from models.csv_import import ReconciliationResult, UpsertAction, UpsertRecord

logger = structlog.get_logger(__name__)


def _code_of(row: CatalogRow) -> str:
    return row.get("code").to_python() or ""


def reconcile(valid_rows: Sequence[CatalogRow], existing_codes: Collection[str]) -> ReconciliationResult:
    """
    Count creates and updates.

    Args:
        valid_rows: Rows with zero validation errors
        existing_codes: Codes already present in the product store

    Returns:
        ReconciliationResult; created_count + updated_count == len(valid_rows)
    """
    existing = set(existing_codes)
    created: list[str] = []
    updated: list[str] = []

    for row in valid_rows:
        code = _code_of(row)
        if code in existing:
            updated.append(code)
        else:
            created.append(code)

    logger.info(
        "rows_reconciled",
        valid_rows=len(valid_rows),
        created=len(created),
        updated=len(updated)
    )

    return ReconciliationResult(
        created_count=len(created),
        updated_count=len(updated),
        created_codes=created,
        updated_codes=updated,
    )


def build_upsert_records(
    valid_rows: Sequence[CatalogRow],
    existing_codes: Collection[str],
) -> list[UpsertRecord]:
    """Normalized records for the product store, in file order."""
    existing = set(existing_codes)
    records = []
    for row in valid_rows:
        code = _code_of(row)
        brand = row.get("brand").to_python()
        records.append(UpsertRecord(
            code=code,
            name=row.get("name").to_python(),
            price=row.get("price").to_python(),
            brand=brand if isinstance(brand, list) else [brand],
            action=UpsertAction.UPDATE if code in existing else UpsertAction.CREATE,
            source_row=row.csv_line,
        ))
    return records

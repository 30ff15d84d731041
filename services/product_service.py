"""
Product store access for catalog imports.

This is the persistence collaborator of the import pipeline: it answers which
product codes already exist and, when asked, writes the normalized records.
The pipeline itself never writes.
"""

from typing import Optional, Sequence
import structlog

from config import get_supabase_client, settings
from models.csv_import import UpsertRecord
from exceptions import DatabaseError

logger = structlog.get_logger(__name__)

# Keeps IN (...) filters and upsert payloads at a size PostgREST accepts
CHUNK_SIZE = 500


def _chunks(items: Sequence, size: int = CHUNK_SIZE):
    for start in range(0, len(items), size):
        yield items[start:start + size]


def to_product_row(record: UpsertRecord) -> dict:
    """Shape an upsert record as a products table row."""
    return {
        "sku": record.code,
        "name": record.name,
        "price": record.price,
        "meta": {
            "brand": record.brand,
            "source_row": record.source_row,
        },
    }


class ProductService:
    """
    Product lookups and bulk upserts keyed by product code (sku column).
    """

    def __init__(self):
        self.db = get_supabase_client()
        self.table = settings.products_table

    # ===================
    # READ OPERATIONS
    # ===================

    def get_existing_codes(self, codes: Sequence[str]) -> set[str]:
        """
        Which of the given codes already exist.

        Args:
            codes: Candidate product codes from an upload

        Returns:
            Subset of codes present in the product store

        Raises:
            DatabaseError: Query failed
        """
        unique = sorted({c for c in codes if c})
        if not unique:
            return set()

        logger.debug("getting_existing_codes", count=len(unique))

        existing: set[str] = set()
        try:
            for chunk in _chunks(unique):
                result = (
                    self.db.table(self.table)
                    .select("sku")
                    .in_("sku", list(chunk))
                    .execute()
                )
                existing.update(row["sku"] for row in result.data if row.get("sku"))
        except Exception as e:
            logger.error(
                "get_existing_codes_failed",
                count=len(unique),
                error=str(e)
            )
            raise DatabaseError("select", str(e))

        logger.info(
            "existing_codes_retrieved",
            requested=len(unique),
            found=len(existing)
        )
        return existing

    # ===================
    # WRITE OPERATIONS
    # ===================

    def upsert_products(self, records: Sequence[UpsertRecord]) -> int:
        """
        Create or update products by code.

        Args:
            records: Hand-off records from a submitted batch

        Returns:
            Number of rows written

        Raises:
            DatabaseError: Upsert failed
        """
        if not records:
            return 0

        logger.info("upserting_products", count=len(records))

        written = 0
        try:
            for chunk in _chunks(list(records)):
                rows = [to_product_row(r) for r in chunk]
                self.db.table(self.table).upsert(rows, on_conflict="sku").execute()
                written += len(rows)
        except Exception as e:
            logger.error(
                "upsert_products_failed",
                written=written,
                count=len(records),
                error=str(e)
            )
            raise DatabaseError("upsert", str(e), details={"written": written})

        logger.info("products_upserted", count=written)
        return written


_service: Optional[ProductService] = None


def get_product_service() -> ProductService:
    global _service
    if _service is None:
        _service = ProductService()
    return _service

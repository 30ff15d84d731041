"""
Test data factories.

Uses factory pattern to generate consistent upload files, rows and platforms.
"""

from typing import Optional, Sequence

from models.catalog_row import CatalogRow, FieldValue
from models.platform import Platform
from parsers.csv_tokenizer import UTF8_BOM, serialize

STANDARD_HEADERS = ["name", "code", "price", "brand"]


class CsvFactory:
    """
    Factory for CSV upload contents.

    Usage:
        # Scenario file: three rows, second row missing name and code
        text = CsvFactory.standard_csv()

        # Custom rows
        text = CsvFactory.create(["상품명", "판매가"], [["티셔츠", "9900"]])

        # Upload bytes with a BOM
        data = CsvFactory.create_bytes(bom=True)
    """

    _counter = 0

    @classmethod
    def _next_counter(cls) -> int:
        cls._counter += 1
        return cls._counter

    @classmethod
    def row(
        cls,
        name: Optional[str] = None,
        code: Optional[str] = None,
        price: Optional[str] = None,
        brand: Optional[str] = None,
    ) -> list[str]:
        """
        One data row in standard column order.

        Pass "" to leave a cell blank; None gets a generated value.
        """
        counter = cls._next_counter()
        return [
            f"Product {counter}" if name is None else name,
            f"SKU-{counter:03d}" if code is None else code,
            "1000" if price is None else price,
            "Acme" if brand is None else brand,
        ]

    @classmethod
    def create(
        cls,
        headers: Optional[Sequence[str]] = None,
        rows: Optional[Sequence[Sequence[str]]] = None,
        preamble: Optional[Sequence[Sequence[str]]] = None,
        delimiter: str = ",",
    ) -> str:
        """
        CSV text with a header row.

        Args:
            headers: Header row (standard headers if not provided)
            rows: Data rows (three generated rows if not provided)
            preamble: Rows written before the header
            delimiter: Cell separator
        """
        headers = list(headers or STANDARD_HEADERS)
        rows = rows if rows is not None else [cls.row() for _ in range(3)]
        return serialize([*(preamble or []), headers, *rows], delimiter)

    @classmethod
    def create_bytes(cls, bom: bool = False, **kwargs) -> bytes:
        text = cls.create(**kwargs)
        return ((UTF8_BOM if bom else "") + text).encode("utf-8")

    @classmethod
    def standard_csv(cls) -> str:
        """Rows: complete, blank name and code, complete."""
        return cls.create(rows=[
            ["Walnut Chair", "SKU-001", "120", "Acme"],
            ["", "", "80", "Acme; Northwind"],
            ["Oak Table", "SKU-002", "480", "Northwind"],
        ])

    @classmethod
    def reset_counter(cls):
        """Reset the counter (call in test setup if needed)."""
        cls._counter = 0


class CatalogRowFactory:
    """
    Factory for normalized CatalogRow objects.

    Usage:
        row = CatalogRowFactory.create(index=0, code="SKU-001")
        rows = CatalogRowFactory.create_batch(3)
    """

    @classmethod
    def create(
        cls,
        index: int = 0,
        name: str = "Walnut Chair",
        code: Optional[str] = None,
        price: str = "120",
        brand: Optional[list[str]] = None,
    ) -> CatalogRow:
        return CatalogRow(
            index=index,
            values={
                "name": FieldValue.scalar(name),
                "code": FieldValue.scalar(code if code is not None else f"SKU-{index + 1:03d}"),
                "price": FieldValue.scalar(price),
                "brand": FieldValue.many(brand if brand is not None else ["Acme"]),
            },
        )

    @classmethod
    def create_batch(cls, count: int, **overrides) -> list[CatalogRow]:
        return [cls.create(index=i, **overrides) for i in range(count)]


class PlatformFactory:
    """
    Factory for Platform models outside the shipped catalog.

    Usage:
        platform = PlatformFactory.create(detection_keywords=("품번",))
    """

    _counter = 0

    @classmethod
    def create(
        cls,
        id: Optional[str] = None,
        name: Optional[str] = None,
        detection_keywords: Sequence[str] = ("상품명",),
        required_fields: Sequence[str] = ("상품명", "판매가"),
        field_labels: Optional[dict] = None,
        template_extra_headers: Sequence[str] = (),
    ) -> Platform:
        cls._counter += 1
        return Platform(
            id=id or f"platform{cls._counter}",
            name=name or f"Platform {cls._counter}",
            detection_keywords=tuple(detection_keywords),
            required_fields=tuple(required_fields),
            field_labels=field_labels if field_labels is not None else {
                "name": ("상품명",),
                "price": ("판매가",),
            },
            template_extra_headers=tuple(template_extra_headers),
        )

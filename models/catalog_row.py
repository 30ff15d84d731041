"""
Editable row document for the import preview.

Each data row of the upload becomes a CatalogRow: a sparse record of canonical
field id -> FieldValue. The document is addressed by (row_index, field) paths
so an edit can be applied and re-validated for exactly the cell it touched.
"""

from dataclasses import dataclass, field
from typing import Iterator, Optional, Union

from models.platform import CANONICAL_FIELDS

CellPath = tuple[int, str]


@dataclass(frozen=True)
class FieldValue:
    """Tagged cell value: scalar text or a list of strings."""
    text: Optional[str] = None
    items: Optional[tuple[str, ...]] = None

    @classmethod
    def scalar(cls, text: Optional[str]) -> "FieldValue":
        return cls(text=(text or "").strip())

    @classmethod
    def many(cls, items: list[str]) -> "FieldValue":
        return cls(items=tuple(items))

    @classmethod
    def coerce(cls, value: Union["FieldValue", str, list, tuple, None]) -> "FieldValue":
        """Accept the shapes an edit can arrive in."""
        if isinstance(value, FieldValue):
            return value
        if isinstance(value, (list, tuple)):
            return cls.many([str(v).strip() for v in value])
        return cls.scalar(value)

    @property
    def is_list(self) -> bool:
        return self.items is not None

    @property
    def is_blank(self) -> bool:
        if self.is_list:
            return not any(item.strip() for item in self.items)
        return not self.text

    def to_python(self) -> Union[str, list[str]]:
        if self.is_list:
            return list(self.items)
        return self.text or ""


BLANK = FieldValue.scalar("")


@dataclass
class CatalogRow:
    """One data row, keyed by its 0-based position in the file."""
    index: int
    values: dict[str, FieldValue] = field(default_factory=dict)

    def get(self, field_name: str) -> FieldValue:
        return self.values.get(field_name, BLANK)

    def set(self, field_name: str, value: FieldValue) -> None:
        self.values[field_name] = value

    @property
    def csv_line(self) -> int:
        """1-based line number in the file, counting the header row."""
        return self.index + 2

    def to_dict(self) -> dict:
        return {name: self.get(name).to_python() for name in CANONICAL_FIELDS}


@dataclass
class RowDocument:
    """Ordered rows with path-addressed writes."""
    rows: list[CatalogRow] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.rows)

    def __iter__(self) -> Iterator[CatalogRow]:
        return iter(self.rows)

    def row(self, row_index: int) -> CatalogRow:
        if row_index < 0 or row_index >= len(self.rows):
            raise IndexError(row_index)
        return self.rows[row_index]

    def get_at(self, path: CellPath) -> FieldValue:
        row_index, field_name = path
        return self.row(row_index).get(field_name)

    def apply_at(self, path: CellPath, value) -> CellPath:
        """Write one cell and return the path that changed."""
        row_index, field_name = path
        if field_name not in CANONICAL_FIELDS:
            raise KeyError(field_name)
        self.row(row_index).set(field_name, FieldValue.coerce(value))
        return path


class RowErrors:
    """
    row_index -> {field: message}.

    A row with no errors is never present as a key, so membership alone
    answers "does this row have errors".
    """

    def __init__(self):
        self._errors: dict[int, dict[str, str]] = {}

    def set(self, row_index: int, field_name: str, message: str) -> None:
        self._errors.setdefault(row_index, {})[field_name] = message

    def clear(self, row_index: int, field_name: str) -> None:
        fields = self._errors.get(row_index)
        if fields is None:
            return
        fields.pop(field_name, None)
        if not fields:
            del self._errors[row_index]

    def for_row(self, row_index: int) -> dict[str, str]:
        return dict(self._errors.get(row_index, {}))

    def has_errors(self, row_index: int) -> bool:
        return row_index in self._errors

    def rows(self) -> list[int]:
        return sorted(self._errors)

    def items(self) -> Iterator[tuple[int, str, str]]:
        """(row_index, field, message), rows ascending, fields in canonical order."""
        for row_index in self.rows():
            fields = self._errors[row_index]
            ordered = sorted(
                fields,
                key=lambda f: CANONICAL_FIELDS.index(f) if f in CANONICAL_FIELDS else len(CANONICAL_FIELDS),
            )
            for field_name in ordered:
                yield row_index, field_name, fields[field_name]

    def __len__(self) -> int:
        return sum(len(fields) for fields in self._errors.values())

    def __contains__(self, row_index: int) -> bool:
        return row_index in self._errors

    def to_dict(self) -> dict[int, dict[str, str]]:
        return {row_index: dict(fields) for row_index, fields in self._errors.items()}

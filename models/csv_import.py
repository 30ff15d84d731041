"""
CSV catalog import schemas.

Dataclasses hold pipeline state (parsed table, field mapping). Pydantic models
are the results and API payloads handed back to the operator.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from models.base import BaseSchema
from models.platform import PlatformCandidate


# ===================
# PIPELINE STATE
# ===================

@dataclass(frozen=True)
class ParsedTable:
    """Header row plus data rows, built once per upload."""
    headers: tuple[str, ...]
    rows: tuple[tuple[str, ...], ...]

    @property
    def row_count(self) -> int:
        return len(self.rows)

    def cell(self, row_index: int, column: int) -> str:
        """Cell text, or "" for short rows."""
        row = self.rows[row_index]
        return row[column] if column < len(row) else ""


@dataclass
class FieldMapping:
    """Required field -> header (None when unmapped)."""
    assignments: dict[str, Optional[str]] = field(default_factory=dict)

    @property
    def valid(self) -> bool:
        return all(self.assignments.values())

    @property
    def missing_fields(self) -> list[str]:
        return [name for name, header in self.assignments.items() if not header]

    def assign(self, required_field: str, header: Optional[str]) -> None:
        self.assignments[required_field] = header or None

    def header_for(self, required_field: str) -> Optional[str]:
        return self.assignments.get(required_field)

    def to_dict(self) -> dict[str, Optional[str]]:
        return dict(self.assignments)


class FileAnalysis(BaseModel):
    """Summary of an uploaded file shown before import."""
    file_name: str
    file_size: int = Field(..., ge=0)
    total_rows: int = Field(..., ge=0, description="Data rows, header excluded")
    total_columns: int = Field(..., ge=0)
    headers: list[str]
    sample_rows: list[list[str]]


# ===================
# RESULTS
# ===================

class UploadErrorItem(BaseModel):
    """One failing (row, field) pair."""
    model_config = ConfigDict(frozen=True)

    row: int = Field(..., ge=2, description="CSV line number, header row is line 1")
    field: str
    message: str


class ErrorGroup(BaseModel):
    """All failing fields of one CSV line."""
    model_config = ConfigDict(frozen=True)

    row: int
    fields: list[str]


class UploadResult(BaseModel):
    """Outcome of one submit. Built once, never mutated."""
    model_config = ConfigDict(frozen=True)

    total: int = Field(..., ge=0)
    success: int = Field(..., description="total minus error tuples")
    error: int = Field(..., ge=0, description="Number of error tuples")
    valid_rows: int = Field(..., ge=0, description="Rows with no errors")
    batch_id: str
    errors: list[UploadErrorItem] = Field(default_factory=list)
    error_groups: list[ErrorGroup] = Field(default_factory=list)


class ReconciliationResult(BaseModel):
    """Create/update classification of valid rows."""
    model_config = ConfigDict(frozen=True)

    created_count: int = Field(0, ge=0)
    updated_count: int = Field(0, ge=0)
    created_codes: list[str] = Field(default_factory=list)
    updated_codes: list[str] = Field(default_factory=list)


class UpsertAction(str, Enum):
    """What the product store should do with a row."""
    CREATE = "create"
    UPDATE = "update"


class UpsertRecord(BaseModel):
    """Normalized row handed to the product store."""
    model_config = ConfigDict(frozen=True)

    code: str
    name: str
    price: str
    brand: list[str]
    action: UpsertAction
    source_row: int = Field(..., description="CSV line number of the row")


class UploadHistoryEntry(BaseModel):
    """One submitted batch."""
    model_config = ConfigDict(frozen=True)

    id: int
    batch_id: str
    platform_id: str
    platform_name: str
    file_name: str
    timestamp: datetime
    total_count: int
    success_count: int
    error_count: int
    status: str = "completed"


# ===================
# API PAYLOADS
# ===================

class PlatformSelectRequest(BaseSchema):
    platform_id: str = Field(..., min_length=1)


class MappingUpdateRequest(BaseSchema):
    """Assign (or clear, with header=None) one required field."""
    field: str = Field(..., min_length=1)
    header: Optional[str] = None


class CellEditRequest(BaseSchema):
    """Replace one cell of the preview."""
    field: str = Field(..., min_length=1, description="Canonical field id")
    value: Union[str, list[str], None] = None


class PreviewRowResponse(BaseModel):
    index: int
    row: int
    values: dict[str, Union[str, list[str]]]
    errors: dict[str, str] = Field(default_factory=dict)


class ImportSessionResponse(BaseModel):
    """Current state of one upload session."""
    session_id: str
    analysis: FileAnalysis
    platform_id: Optional[str] = None
    platform_name: Optional[str] = None
    auto_detected: bool = False
    candidates: list[PlatformCandidate] = Field(default_factory=list)
    mapping: dict[str, Optional[str]] = Field(default_factory=dict)
    mapping_valid: bool = False
    column_binding: dict[str, Optional[str]] = Field(default_factory=dict)
    error_count: int = 0
    error_groups: list[ErrorGroup] = Field(default_factory=list)
    rows: list[PreviewRowResponse] = Field(default_factory=list)
    submitted_batch_id: Optional[str] = None


class SubmitResponse(BaseModel):
    """Submit outcome returned to the operator."""
    result: UploadResult
    reconciliation: ReconciliationResult
    history_entry: UploadHistoryEntry
    records: list[UpsertRecord] = Field(default_factory=list)
    persisted: bool = False


class HistoryListResponse(BaseModel):
    data: list[UploadHistoryEntry]
    total: int

"""
Pydantic models and row containers for catalog imports.
"""

from models.base import BaseSchema
from models.platform import (
    CANONICAL_FIELDS,
    Platform,
    PlatformCatalog,
    PlatformCandidate,
    PlatformSummary,
    PlatformListResponse,
)
from models.catalog_row import (
    BLANK,
    CellPath,
    FieldValue,
    CatalogRow,
    RowDocument,
    RowErrors,
)
from models.csv_import import (
    ParsedTable,
    FieldMapping,
    FileAnalysis,
    UploadErrorItem,
    ErrorGroup,
    UploadResult,
    ReconciliationResult,
    UpsertAction,
    UpsertRecord,
    UploadHistoryEntry,
    PlatformSelectRequest,
    MappingUpdateRequest,
    CellEditRequest,
    PreviewRowResponse,
    ImportSessionResponse,
    SubmitResponse,
    HistoryListResponse,
)

__all__ = [
    # Base
    "BaseSchema",
    # Platform
    "CANONICAL_FIELDS",
    "Platform",
    "PlatformCatalog",
    "PlatformCandidate",
    "PlatformSummary",
    "PlatformListResponse",
    # Rows
    "BLANK",
    "CellPath",
    "FieldValue",
    "CatalogRow",
    "RowDocument",
    "RowErrors",
    # Import
    "ParsedTable",
    "FieldMapping",
    "FileAnalysis",
    "UploadErrorItem",
    "ErrorGroup",
    "UploadResult",
    "ReconciliationResult",
    "UpsertAction",
    "UpsertRecord",
    "UploadHistoryEntry",
    "PlatformSelectRequest",
    "MappingUpdateRequest",
    "CellEditRequest",
    "PreviewRowResponse",
    "ImportSessionResponse",
    "SubmitResponse",
    "HistoryListResponse",
]

"""
Custom exception classes for the application.

Core pipeline functions return data for expected outcomes (row errors,
ambiguous detection, incomplete mappings). These exceptions are raised at the
session and route boundary, where misuse has to become an HTTP response.
"""

from typing import Optional, Any
from datetime import datetime


class AppError(Exception):
    """
    Base exception for all application errors.

    All custom exceptions inherit from this.

    Attributes:
        code: Error code (e.g., "PLATFORM_NOT_FOUND")
        message: Human-readable message
        status_code: HTTP status code
        details: Additional context
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: Optional[dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.utcnow().isoformat()
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to API response format."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
                "timestamp": self.timestamp
            }
        }


class NotFoundError(AppError):
    """Resource not found (404)."""

    def __init__(
        self,
        resource: str,
        identifier: str,
        code: Optional[str] = None
    ):
        super().__init__(
            code=code or f"{resource.upper()}_NOT_FOUND",
            message=f"{resource} not found",
            status_code=404,
            details={"id": identifier}
        )


class ValidationError(AppError):
    """Validation failed (422)."""

    def __init__(
        self,
        message: str,
        code: str = "VALIDATION_ERROR",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=422,
            details=details
        )


class DatabaseError(AppError):
    """Database operation failed (500)."""

    def __init__(
        self,
        operation: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="DATABASE_ERROR",
            message=f"Database {operation} failed: {message}",
            status_code=500,
            details={"operation": operation, **(details or {})}
        )


# ===================
# FILE-LEVEL ERRORS
# ===================

class UnsupportedFileTypeError(AppError):
    """Uploaded file is not a CSV (400)."""

    def __init__(self, file_name: Optional[str], content_type: Optional[str] = None):
        super().__init__(
            code="UNSUPPORTED_FILE_TYPE",
            message="Only CSV files can be uploaded",
            status_code=400,
            details={"file_name": file_name, "content_type": content_type}
        )


class CsvParseError(ValidationError):
    """CSV file could not be turned into a header row plus data rows."""

    def __init__(
        self,
        message: str = "Not a valid CSV file",
        details: Optional[dict] = None
    ):
        super().__init__(
            code="CSV_PARSE_ERROR",
            message=message,
            details=details
        )


# ===================
# PLATFORM ERRORS
# ===================

class PlatformNotFoundError(NotFoundError):
    """Platform id is not in the catalog."""

    def __init__(self, platform_id: str):
        super().__init__(
            resource="Platform",
            identifier=platform_id,
            code="PLATFORM_NOT_FOUND"
        )


class PlatformCatalogError(AppError):
    """Platform catalog file is missing or malformed (500)."""

    def __init__(self, path: str, message: str):
        super().__init__(
            code="PLATFORM_CATALOG_INVALID",
            message=f"Platform catalog could not be loaded: {message}",
            status_code=500,
            details={"path": path}
        )


# ===================
# MAPPING ERRORS
# ===================

class MappingIncompleteError(ValidationError):
    """Submission attempted while a required field is unmapped."""

    def __init__(self, missing_fields: list[str]):
        super().__init__(
            code="MAPPING_INCOMPLETE",
            message="All required fields must be mapped before uploading",
            details={"missing_fields": missing_fields}
        )


class InvalidMappingError(ValidationError):
    """Mapping edit references an unknown field or header."""

    def __init__(self, field: str, header: Optional[str], reason: str):
        super().__init__(
            code="MAPPING_INVALID",
            message=reason,
            details={"field": field, "header": header}
        )


class PlatformNotSelectedError(ValidationError):
    """An operation needs a platform but none is detected or picked."""

    def __init__(self):
        super().__init__(
            code="PLATFORM_NOT_SELECTED",
            message="Select a source platform before continuing"
        )


class SavedMappingNotFoundError(NotFoundError):
    """No mapping was saved for this platform and file name."""

    def __init__(self, platform_id: str, file_name: str):
        super().__init__(
            resource="Saved mapping",
            identifier=f"{platform_id}:{file_name}",
            code="SAVED_MAPPING_NOT_FOUND"
        )


# ===================
# ROW ERRORS
# ===================

class InvalidCellError(ValidationError):
    """Cell edit the row document cannot take (unknown cell, or a list for a single-valued field)."""

    def __init__(self, row_index: int, field: str, reason: str):
        super().__init__(
            code="INVALID_CELL",
            message=reason,
            details={"row_index": row_index, "field": field}
        )


# ===================
# SESSION ERRORS
# ===================

class ImportSessionNotFoundError(NotFoundError):
    """Import session expired or never existed."""

    def __init__(self, session_id: str):
        super().__init__(
            resource="Import session",
            identifier=session_id,
            code="IMPORT_SESSION_NOT_FOUND"
        )


class ImportAlreadySubmittedError(AppError):
    """Session was already submitted (409)."""

    def __init__(self, session_id: str, batch_id: str):
        super().__init__(
            code="IMPORT_ALREADY_SUBMITTED",
            message="This upload was already submitted",
            status_code=409,
            details={"session_id": session_id, "batch_id": batch_id}
        )

"""
Custom exceptions module.
"""

from exceptions.errors import (
    # Base exceptions
    AppError,
    NotFoundError,
    ValidationError,
    DatabaseError,

    # File level
    UnsupportedFileTypeError,
    CsvParseError,

    # Platforms
    PlatformNotFoundError,
    PlatformCatalogError,

    # Mapping
    MappingIncompleteError,
    InvalidMappingError,
    PlatformNotSelectedError,
    SavedMappingNotFoundError,

    # Rows
    InvalidCellError,

    # Sessions
    ImportSessionNotFoundError,
    ImportAlreadySubmittedError,
)

__all__ = [
    # Base
    "AppError",
    "NotFoundError",
    "ValidationError",
    "DatabaseError",

    # File level
    "UnsupportedFileTypeError",
    "CsvParseError",

    # Platforms
    "PlatformNotFoundError",
    "PlatformCatalogError",

    # Mapping
    "MappingIncompleteError",
    "InvalidMappingError",
    "PlatformNotSelectedError",
    "SavedMappingNotFoundError",

    # Rows
    "InvalidCellError",

    # Sessions
    "ImportSessionNotFoundError",
    "ImportAlreadySubmittedError",
]

"""
Field mapping resolution.

A mapping assigns each of a platform's required columns to one header of the
uploaded file. It is resolved automatically whenever the platform or headers
change, and the operator may then reassign or clear individual fields.
Submission is blocked until every required field has a header.
"""

from typing import Optional, Sequence
import structlog

from exceptions import InvalidMappingError, SavedMappingNotFoundError
from models.csv_import import FieldMapping
from models.platform import CANONICAL_FIELDS, Platform

logger = structlog.get_logger(__name__)


def resolve(platform: Platform, headers: Sequence[str]) -> FieldMapping:
    """
    Map each required field to the first header that contains its name.

    Args:
        platform: Selected or detected platform
        headers: Header row of the upload

    Returns:
        FieldMapping; fields with no matching header map to None
    """
    mapping = FieldMapping()
    for required in platform.required_fields:
        needle = required.lower()
        found = next((h for h in headers if needle in h.lower()), None)
        mapping.assign(required, found)

    logger.debug(
        "field_mapping_resolved",
        platform_id=platform.id,
        valid=mapping.valid,
        missing=mapping.missing_fields
    )
    return mapping


def assign(
    mapping: FieldMapping,
    platform: Platform,
    headers: Sequence[str],
    required_field: str,
    header: Optional[str],
) -> FieldMapping:
    """
    Apply one operator edit. Passing header=None clears the field.

    Raises:
        InvalidMappingError: Field is not required by the platform, or the
            header is not in the file
    """
    if required_field not in platform.required_fields:
        raise InvalidMappingError(
            required_field, header,
            f"'{required_field}' is not a required field of {platform.name}"
        )
    if header and header not in headers:
        raise InvalidMappingError(
            required_field, header,
            f"Header '{header}' is not in the uploaded file"
        )

    mapping.assign(required_field, header)
    logger.info(
        "field_mapping_assigned",
        platform_id=platform.id,
        field=required_field,
        header=header,
        valid=mapping.valid
    )
    return mapping


def _first_header(headers: Sequence[str], names: Sequence[str]) -> Optional[str]:
    lowered = [n.lower() for n in names if n]
    for header in headers:
        if header.lower() in lowered:
            return header
    for header in headers:
        if any(n in header.lower() for n in lowered):
            return header
    return None


def bind_columns(
    platform: Optional[Platform],
    headers: Sequence[str],
    mapping: Optional[FieldMapping] = None,
) -> dict[str, Optional[str]]:
    """
    Decide which header feeds each canonical field.

    A platform label that is also a mapped required field follows the
    operator's mapping. Otherwise the first header equal to, then containing,
    the canonical id or one of the platform's labels is used.

    Returns:
        Canonical field -> header (None when nothing matches)
    """
    binding: dict[str, Optional[str]] = {}
    for canonical in CANONICAL_FIELDS:
        labels = platform.labels_for(canonical) if platform else ()
        bound = None
        if mapping is not None:
            for label in labels:
                header = mapping.header_for(label)
                if header:
                    bound = header
                    break
        if bound is None:
            bound = _first_header(headers, [*labels, canonical])
        binding[canonical] = bound
    return binding


class SavedMappingStore:
    """
    Operator-saved mappings keyed by (platform id, file name).

    Process-local; lets an operator re-apply the mapping they built for the
    same export next time.
    """

    def __init__(self):
        self._saved: dict[tuple[str, str], dict[str, Optional[str]]] = {}

    def save(self, platform_id: str, file_name: str, mapping: FieldMapping) -> None:
        self._saved[(platform_id, file_name)] = mapping.to_dict()
        logger.info("field_mapping_saved", platform_id=platform_id, file_name=file_name)

    def load(
        self,
        platform: Platform,
        file_name: str,
        headers: Sequence[str],
    ) -> FieldMapping:
        """
        Rebuild a saved mapping against the current headers.

        Headers no longer present in the file come back unmapped.

        Raises:
            SavedMappingNotFoundError: Nothing saved for this platform and file
        """
        saved = self._saved.get((platform.id, file_name))
        if saved is None:
            raise SavedMappingNotFoundError(platform.id, file_name)

        mapping = FieldMapping()
        for required in platform.required_fields:
            header = saved.get(required)
            mapping.assign(required, header if header in headers else None)

        logger.info(
            "field_mapping_loaded",
            platform_id=platform.id,
            file_name=file_name,
            valid=mapping.valid
        )
        return mapping


_store: Optional[SavedMappingStore] = None


def get_saved_mapping_store() -> SavedMappingStore:
    global _store
    if _store is None:
        _store = SavedMappingStore()
    return _store

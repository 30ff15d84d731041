"""
Import sessions: one pipeline per uploaded file.

A session owns the parsed table, the platform choice, the field mapping, the
editable row document and its errors. Sessions are kept in memory with a TTL
and are never shared between uploads, so no locking is needed.
"""
import uuid
from datetime import date, datetime, timedelta
from typing import Any, Collection, Optional

import structlog

from config import settings
from exceptions import (
    ImportAlreadySubmittedError,
    ImportSessionNotFoundError,
    InvalidCellError,
    MappingIncompleteError,
    PlatformNotSelectedError,
)
from models.catalog_row import RowDocument, RowErrors
from models.csv_import import (
    FieldMapping,
    FileAnalysis,
    ImportSessionResponse,
    ParsedTable,
    PreviewRowResponse,
    SubmitResponse,
    UploadResult,
)
from models.platform import CANONICAL_FIELDS, MULTI_VALUED_FIELDS, Platform, PlatformCandidate
from parsers.csv_tokenizer import analyze, decode_upload, ensure_csv_file, read_table
from services import (
    batch_report_service,
    field_mapping_service,
    reconciliation_service,
    row_validation_service,
)
from services.platform_service import PlatformService, get_platform_service
from services.upload_history_service import UploadHistoryService

logger = structlog.get_logger(__name__)


class ImportSession:
    """State and operations for one upload."""

    def __init__(
        self,
        file_name: str,
        table: ParsedTable,
        analysis: FileAnalysis,
        platforms: PlatformService,
        today: Optional[date] = None,
        session_id: Optional[str] = None,
    ):
        self.session_id = session_id or str(uuid.uuid4())
        self.file_name = file_name
        self.table = table
        self.analysis = analysis
        self.platforms = platforms
        self.today = today

        self.candidates: list[PlatformCandidate] = platforms.rank(table.headers)
        self.platform: Optional[Platform] = platforms.detect(table.headers)
        self.auto_detected = self.platform is not None
        self.mapping = FieldMapping()
        self.binding: dict[str, Optional[str]] = {}
        self.document = RowDocument()
        self.errors = RowErrors()
        self.submitted: Optional[SubmitResponse] = None

        self._reset_for_platform()

    @classmethod
    def open(
        cls,
        file_name: str,
        data: bytes,
        content_type: Optional[str] = None,
        delimiter: Optional[str] = None,
        skip_rows: int = 0,
        platforms: Optional[PlatformService] = None,
        today: Optional[date] = None,
    ) -> "ImportSession":
        """
        Read an upload and run detection, mapping and the initial validation.

        Raises:
            UnsupportedFileTypeError: Not a CSV upload
            CsvParseError: Fewer than two rows
        """
        ensure_csv_file(file_name, content_type)

        table = read_table(
            decode_upload(data),
            delimiter=delimiter or settings.csv_delimiter,
            skip_rows=skip_rows,
        )
        analysis = analyze(file_name, len(data), table, settings.preview_sample_rows)
        session = cls(
            file_name=file_name,
            table=table,
            analysis=analysis,
            platforms=platforms or get_platform_service(),
            today=today,
        )

        logger.info(
            "import_session_opened",
            session_id=session.session_id,
            file_name=file_name,
            rows=table.row_count,
            platform_id=session.platform.id if session.platform else None,
            auto_detected=session.auto_detected,
        )
        return session

    # ===================
    # PLATFORM & MAPPING
    # ===================

    def _reset_for_platform(self) -> None:
        """Re-resolve the mapping and rebuild the rows for the current platform."""
        headers = self.table.headers
        if self.platform is not None:
            self.mapping = field_mapping_service.resolve(self.platform, headers)
        else:
            self.mapping = FieldMapping()
        self.binding = field_mapping_service.bind_columns(self.platform, headers, self.mapping)
        self.document = row_validation_service.build_document(self.table, self.binding)
        self.errors = row_validation_service.validate_all(self.document, self.today)

    def select_platform(self, platform_id: str) -> Platform:
        """
        Manual platform pick. Resets the mapping and rebuilds the rows.

        Raises:
            PlatformNotFoundError: Unknown id
        """
        self._ensure_open()
        self.platform = self.platforms.get_by_id(platform_id)
        self.auto_detected = False
        self._reset_for_platform()
        logger.info("platform_selected", session_id=self.session_id, platform_id=platform_id)
        return self.platform

    def _require_platform(self) -> Platform:
        if self.platform is None:
            raise PlatformNotSelectedError()
        return self.platform

    def _rebind(self) -> None:
        """Reload canonical fields whose source column changed, keeping other edits."""
        new_binding = field_mapping_service.bind_columns(self.platform, self.table.headers, self.mapping)
        changed = [f for f in CANONICAL_FIELDS if new_binding.get(f) != self.binding.get(f)]
        self.binding = new_binding
        for canonical in changed:
            paths = row_validation_service.reproject_field(
                self.document, self.table, canonical, new_binding[canonical]
            )
            row_validation_service.revalidate(self.document, self.errors, paths, self.today)
        if changed:
            logger.info("columns_rebound", session_id=self.session_id, fields=changed)

    def assign_mapping(self, required_field: str, header: Optional[str]) -> FieldMapping:
        """
        Operator edit of one mapping entry (header=None clears it).

        Raises:
            PlatformNotSelectedError: No platform yet
            InvalidMappingError: Unknown field or header
        """
        self._ensure_open()
        platform = self._require_platform()
        field_mapping_service.assign(self.mapping, platform, self.table.headers, required_field, header)
        self._rebind()
        return self.mapping

    def save_mapping(self) -> None:
        platform = self._require_platform()
        field_mapping_service.get_saved_mapping_store().save(platform.id, self.file_name, self.mapping)

    def load_mapping(self) -> FieldMapping:
        """
        Apply the mapping saved for this platform and file name.

        Raises:
            SavedMappingNotFoundError: Nothing saved
        """
        self._ensure_open()
        platform = self._require_platform()
        self.mapping = field_mapping_service.get_saved_mapping_store().load(
            platform, self.file_name, self.table.headers
        )
        self._rebind()
        return self.mapping

    # ===================
    # ROWS
    # ===================

    def edit_cell(self, row_index: int, field_name: str, value: Any):
        """
        Replace one cell and re-validate it.

        Raises:
            InvalidCellError: Row or field outside the document, or a list
                for a single-valued field
        """
        self._ensure_open()
        if field_name not in CANONICAL_FIELDS:
            raise InvalidCellError(row_index, field_name, f"Unknown field '{field_name}'")
        if row_index < 0 or row_index >= len(self.document):
            raise InvalidCellError(row_index, field_name, f"Row {row_index} does not exist")
        if isinstance(value, (list, tuple)) and field_name not in MULTI_VALUED_FIELDS:
            raise InvalidCellError(row_index, field_name, f"Field '{field_name}' takes a single value")

        return row_validation_service.apply_edit(
            self.document, self.errors, row_index, field_name, value, self.today
        )

    def valid_codes(self) -> list[str]:
        """Codes of rows that would be reconciled on submit."""
        return [
            row.get("code").to_python()
            for row in row_validation_service.valid_rows(self.document, self.errors)
        ]

    # ===================
    # SUBMIT
    # ===================

    def _ensure_open(self) -> None:
        if self.submitted is not None:
            raise ImportAlreadySubmittedError(self.session_id, self.submitted.result.batch_id)

    @property
    def awaiting_persist(self) -> bool:
        """Submitted, with records the product store has not taken yet."""
        return (
            self.submitted is not None
            and not self.submitted.persisted
            and bool(self.submitted.records)
        )

    def mark_persisted(self) -> SubmitResponse:
        self.submitted = self.submitted.model_copy(update={"persisted": True})
        logger.info("import_persisted", session_id=self.session_id, batch_id=self.submitted.result.batch_id)
        return self.submitted

    def submit(
        self,
        existing_codes: Collection[str],
        history: UploadHistoryService,
        year: Optional[int] = None,
    ) -> SubmitResponse:
        """
        Reconcile valid rows and record the batch.

        Args:
            existing_codes: Codes already in the product store
            history: Batch history to append to
            year: Batch id year (defaults to the current year)

        Raises:
            PlatformNotSelectedError: No platform
            MappingIncompleteError: A required field is unmapped
            ImportAlreadySubmittedError: Submitted before
        """
        self._ensure_open()
        platform = self._require_platform()
        if not self.mapping.valid:
            raise MappingIncompleteError(self.mapping.missing_fields)

        result: UploadResult = batch_report_service.build_result(
            self.document, self.errors, history.next_batch_seq(), year
        )
        rows = row_validation_service.valid_rows(self.document, self.errors)
        reconciliation = reconciliation_service.reconcile(rows, existing_codes)
        records = reconciliation_service.build_upsert_records(rows, existing_codes)
        entry = history.append_history(result, platform, self.file_name)

        self.submitted = SubmitResponse(
            result=result,
            reconciliation=reconciliation,
            history_entry=entry,
            records=records,
        )
        logger.info(
            "import_submitted",
            session_id=self.session_id,
            batch_id=result.batch_id,
            created=reconciliation.created_count,
            updated=reconciliation.updated_count,
        )
        return self.submitted

    # ===================
    # VIEW
    # ===================

    def to_response(self, include_rows: bool = True) -> ImportSessionResponse:
        error_items = batch_report_service.collect_errors(self.errors)
        rows = []
        if include_rows:
            rows = [
                PreviewRowResponse(
                    index=row.index,
                    row=row.csv_line,
                    values=row.to_dict(),
                    errors=self.errors.for_row(row.index),
                )
                for row in self.document
            ]
        return ImportSessionResponse(
            session_id=self.session_id,
            analysis=self.analysis,
            platform_id=self.platform.id if self.platform else None,
            platform_name=self.platform.name if self.platform else None,
            auto_detected=self.auto_detected,
            candidates=self.candidates,
            mapping=self.mapping.to_dict(),
            mapping_valid=self.mapping.valid,
            column_binding=dict(self.binding),
            error_count=len(error_items),
            error_groups=batch_report_service.group_errors(error_items),
            rows=rows,
            submitted_batch_id=self.submitted.result.batch_id if self.submitted else None,
        )


# ===================
# SESSION STORE
# ===================

_sessions: dict[str, tuple[datetime, ImportSession]] = {}


def store_session(session: ImportSession, ttl_minutes: Optional[int] = None) -> str:
    """Keep a session, return its id."""
    ttl = ttl_minutes or settings.session_ttl_minutes
    _sessions[session.session_id] = (datetime.now() + timedelta(minutes=ttl), session)
    _cleanup_expired()
    return session.session_id


def get_session(session_id: str) -> ImportSession:
    """
    Fetch a live session and extend its expiry.

    Raises:
        ImportSessionNotFoundError: Unknown or expired
    """
    entry = _sessions.get(session_id)
    if entry is None:
        raise ImportSessionNotFoundError(session_id)
    expires_at, session = entry
    if datetime.now() > expires_at:
        del _sessions[session_id]
        logger.info("import_session_expired", session_id=session_id)
        raise ImportSessionNotFoundError(session_id)
    store_session(session)
    return session


def delete_session(session_id: str) -> None:
    """Drop a session (reset or finished)."""
    _sessions.pop(session_id, None)


def _cleanup_expired() -> None:
    """Remove all expired entries."""
    now = datetime.now()
    expired = [k for k, (exp, _) in _sessions.items() if now > exp]
    for k in expired:
        del _sessions[k]

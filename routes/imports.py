"""
Catalog CSV import routes.

Upload -> (detect or pick platform) -> adjust mapping -> fix cells -> submit.
Each upload gets its own session id; every step below addresses it.
"""

import asyncio
from typing import Optional

from fastapi import APIRouter, File, Form, Query, UploadFile
from fastapi.responses import JSONResponse, Response, StreamingResponse
import structlog

from config import settings
from exceptions import AppError, ValidationError
from models.csv_import import (
    CellEditRequest,
    HistoryListResponse,
    ImportSessionResponse,
    MappingUpdateRequest,
    PlatformSelectRequest,
    SubmitResponse,
)
from models.platform import PlatformListResponse, PlatformSummary
from parsers.csv_tokenizer import UTF8_BOM
from services import import_session_service
from services.export_service import get_export_service
from services.import_session_service import ImportSession
from services.platform_service import get_platform_service
from services.product_service import get_product_service
from services.upload_history_service import get_upload_history_service

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/catalog-imports", tags=["Catalog Import"])


# ===================
# EXCEPTION HANDLER
# ===================

def handle_error(e: Exception) -> JSONResponse:
    """Convert exception to JSON response."""
    if isinstance(e, AppError):
        return JSONResponse(
            status_code=e.status_code,
            content=e.to_dict()
        )
    # Unexpected error
    logger.error("unexpected_error", error=str(e), type=type(e).__name__)
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred"
            }
        }
    )


# ===================
# PLATFORMS
# ===================

@router.get("/platforms", response_model=PlatformListResponse)
async def list_platforms():
    """List known source platforms and the catalog version."""
    try:
        service = get_platform_service()
        return PlatformListResponse(
            version=service.version,
            platforms=[PlatformSummary.from_platform(p) for p in service.get_all()],
        )
    except Exception as e:
        return handle_error(e)


@router.get("/platforms/{platform_id}/template")
async def download_template(platform_id: str):
    """
    CSV template with the platform's columns.

    Raises:
        404: Unknown platform
    """
    try:
        platform = get_platform_service().get_by_id(platform_id)
        content = get_export_service().generate_template_csv(platform)
        return Response(
            content=UTF8_BOM + content,
            media_type="text/csv; charset=utf-8",
            headers={"Content-Disposition": f'attachment; filename="{platform.id}_template.csv"'},
        )
    except Exception as e:
        return handle_error(e)


# ===================
# SESSION LIFECYCLE
# ===================

@router.post("/upload", response_model=ImportSessionResponse, status_code=201)
async def upload_csv(
    file: UploadFile = File(..., description="CSV export from a storefront"),
    skip_rows: int = Form(0, ge=0, le=100, description="Leading rows before the header"),
    delimiter: Optional[str] = Form(None, description="Cell delimiter (defaults to settings)"),
):
    """
    Upload a CSV file and start an import session.

    Parses the file, detects the platform, resolves the field mapping and
    validates every row. Nothing is saved.

    Raises:
        400: Not a CSV file
        422: Fewer than two rows, or delimiter not a single character
    """
    logger.info(
        "catalog_upload_started",
        filename=file.filename,
        content_type=file.content_type,
        skip_rows=skip_rows,
    )
    try:
        if delimiter is not None and len(delimiter) != 1:
            raise ValidationError("Delimiter must be a single character", details={"delimiter": delimiter})

        data = await file.read()
        if len(data) > settings.max_upload_bytes:
            raise ValidationError(
                "File is too large",
                code="FILE_TOO_LARGE",
                details={"size": len(data), "max_size": settings.max_upload_bytes},
            )

        if settings.analysis_delay_seconds:
            await asyncio.sleep(settings.analysis_delay_seconds)

        session = ImportSession.open(
            file_name=file.filename or "upload.csv",
            data=data,
            content_type=file.content_type,
            delimiter=delimiter,
            skip_rows=skip_rows,
        )
        import_session_service.store_session(session)
        return session.to_response()

    except Exception as e:
        return handle_error(e)


@router.get("/history", response_model=HistoryListResponse)
async def list_history():
    """Submitted batches, newest first."""
    try:
        entries = get_upload_history_service().list_entries()
        return HistoryListResponse(data=entries, total=len(entries))
    except Exception as e:
        return handle_error(e)


@router.get("/{session_id}", response_model=ImportSessionResponse)
async def get_import_session(
    session_id: str,
    include_rows: bool = Query(True, description="Include every preview row"),
):
    """Current state of an import session."""
    try:
        session = import_session_service.get_session(session_id)
        return session.to_response(include_rows=include_rows)
    except Exception as e:
        return handle_error(e)


@router.delete("/{session_id}", status_code=204)
async def reset_import_session(session_id: str):
    """Discard an import session (table, mapping, rows)."""
    try:
        import_session_service.get_session(session_id)
        import_session_service.delete_session(session_id)
        logger.info("import_session_reset", session_id=session_id)
        return Response(status_code=204)
    except Exception as e:
        return handle_error(e)


# ===================
# PLATFORM & MAPPING
# ===================

@router.post("/{session_id}/platform", response_model=ImportSessionResponse)
async def select_platform(session_id: str, data: PlatformSelectRequest):
    """
    Pick the source platform manually.

    Resets the field mapping and re-validates every row.
    """
    try:
        session = import_session_service.get_session(session_id)
        session.select_platform(data.platform_id)
        return session.to_response()
    except Exception as e:
        return handle_error(e)


@router.put("/{session_id}/mapping", response_model=ImportSessionResponse)
async def update_mapping(session_id: str, data: MappingUpdateRequest):
    """
    Assign one required field to a header, or clear it with header=null.

    Raises:
        422: Field not required by the platform, or header not in the file
    """
    try:
        session = import_session_service.get_session(session_id)
        session.assign_mapping(data.field, data.header)
        return session.to_response()
    except Exception as e:
        return handle_error(e)


@router.post("/{session_id}/mapping/save", status_code=204)
async def save_mapping(session_id: str):
    """Remember this mapping for the platform and file name."""
    try:
        session = import_session_service.get_session(session_id)
        session.save_mapping()
        return Response(status_code=204)
    except Exception as e:
        return handle_error(e)


@router.post("/{session_id}/mapping/load", response_model=ImportSessionResponse)
async def load_mapping(session_id: str):
    """
    Re-apply the mapping saved for this platform and file name.

    Raises:
        404: No saved mapping
    """
    try:
        session = import_session_service.get_session(session_id)
        session.load_mapping()
        return session.to_response()
    except Exception as e:
        return handle_error(e)


# ===================
# ROWS
# ===================

@router.patch("/{session_id}/rows/{row_index}", response_model=ImportSessionResponse)
async def edit_row(session_id: str, row_index: int, data: CellEditRequest):
    """
    Edit one cell of the preview and re-validate it.

    Raises:
        422: Unknown field or row
    """
    try:
        session = import_session_service.get_session(session_id)
        session.edit_cell(row_index, data.field, data.value)
        return session.to_response()
    except Exception as e:
        return handle_error(e)


@router.get("/{session_id}/error-report")
async def download_error_report(session_id: str):
    """Excel list of every failing cell."""
    try:
        session = import_session_service.get_session(session_id)
        output = get_export_service().generate_error_report_excel(
            session.analysis, session.document, session.errors, session.platform
        )
        filename = f"{session.analysis.file_name.rsplit('.', 1)[0]}_errors.xlsx"
        return StreamingResponse(
            output,
            media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )
    except Exception as e:
        return handle_error(e)


# ===================
# SUBMIT
# ===================

@router.post("/{session_id}/submit", response_model=SubmitResponse)
async def submit_import(
    session_id: str,
    persist: bool = Query(False, description="Also upsert valid rows into the product store"),
):
    """
    Reconcile valid rows against the product store and record the batch.

    With persist=true on a submitted session whose records were never
    stored, only the upsert runs again.

    Raises:
        409: Already submitted (and nothing left to persist)
        422: Platform not selected or mapping incomplete
        500: Product store error
    """
    try:
        session = import_session_service.get_session(session_id)

        if persist and not settings.supabase_configured:
            raise ValidationError(
                "Product store is not configured; submit without persist",
                code="PRODUCT_STORE_NOT_CONFIGURED",
            )

        if persist and session.awaiting_persist:
            # Batch already recorded; only the hand-off is retried
            outcome = session.submitted
        else:
            existing: set[str] = set()
            if settings.supabase_configured:
                existing = get_product_service().get_existing_codes(session.valid_codes())
            else:
                logger.warning("product_store_not_configured", session_id=session_id)

            outcome = session.submit(existing, get_upload_history_service())

        if persist and outcome.records:
            get_product_service().upsert_products(outcome.records)
            outcome = session.mark_persisted()

        return outcome

    except Exception as e:
        return handle_error(e)

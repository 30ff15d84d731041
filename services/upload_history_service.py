"""
Keeps the history of submitted import batches.

Entries live for the process lifetime; durable storage belongs to the hosting
application.
"""
import structlog
from datetime import datetime
from typing import Optional

from models.csv_import import UploadHistoryEntry, UploadResult
from models.platform import Platform

logger = structlog.get_logger(__name__)


class UploadHistoryService:
    def __init__(self):
        self._entries: list[UploadHistoryEntry] = []

    def next_batch_seq(self) -> int:
        """Sequence number for the next batch id (history length + 1)."""
        return len(self._entries) + 1

    def append_history(
        self,
        result: UploadResult,
        platform: Platform,
        file_name: str,
        timestamp: Optional[datetime] = None,
    ) -> UploadHistoryEntry:
        """Record a submitted batch."""
        entry = UploadHistoryEntry(
            id=len(self._entries) + 1,
            batch_id=result.batch_id,
            platform_id=platform.id,
            platform_name=platform.name,
            file_name=file_name,
            timestamp=timestamp or datetime.now(),
            total_count=result.total,
            success_count=result.success,
            error_count=result.error,
        )
        self._entries.append(entry)
        logger.info(
            "upload_recorded",
            batch_id=entry.batch_id,
            platform_id=entry.platform_id,
            file_name=file_name,
            total=entry.total_count,
            errors=entry.error_count,
        )
        return entry

    def list_entries(self) -> list[UploadHistoryEntry]:
        """All entries, newest first."""
        return list(reversed(self._entries))


_service: Optional[UploadHistoryService] = None


def get_upload_history_service() -> UploadHistoryService:
    global _service
    if _service is None:
        _service = UploadHistoryService()
    return _service

"""
Platform catalog and detection.

Detection is a substring heuristic over the header row. Keyword sets overlap
between platforms, so only a single unambiguous match is returned; anything
else goes to the operator as a manual pick, with ranked candidates to help.
"""

from pathlib import Path
from typing import Optional, Sequence
import structlog

from pydantic import ValidationError as PydanticValidationError

from config import settings
from exceptions import PlatformNotFoundError, PlatformCatalogError
from models.platform import Platform, PlatformCatalog, PlatformCandidate

logger = structlog.get_logger(__name__)


def load_catalog(path: Path) -> PlatformCatalog:
    """
    Load and validate the platform catalog file.

    Raises:
        PlatformCatalogError: File missing or not a valid catalog
    """
    try:
        raw = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        logger.error("platform_catalog_read_failed", path=str(path), error=str(e))
        raise PlatformCatalogError(str(path), str(e))

    try:
        catalog = PlatformCatalog.model_validate_json(raw)
    except PydanticValidationError as e:
        logger.error("platform_catalog_invalid", path=str(path), error=str(e))
        raise PlatformCatalogError(str(path), str(e))

    logger.info(
        "platform_catalog_loaded",
        version=catalog.version,
        platforms=len(catalog.platforms)
    )
    return catalog


def matched_keywords(platform: Platform, headers: Sequence[str]) -> list[str]:
    """Keywords of a platform found (case-insensitive substring) in any header."""
    lowered = [h.lower() for h in headers]
    return [
        keyword for keyword in platform.detection_keywords
        if any(keyword.lower() in header for header in lowered)
    ]


class PlatformService:
    """
    Platform lookups and header-based detection.
    """

    def __init__(self, catalog: Optional[PlatformCatalog] = None):
        self.catalog = catalog or load_catalog(settings.platform_catalog_path)

    @property
    def version(self) -> str:
        return self.catalog.version

    def get_all(self) -> list[Platform]:
        return list(self.catalog.platforms)

    def get_by_id(self, platform_id: str) -> Platform:
        """
        Raises:
            PlatformNotFoundError: Unknown id
        """
        platform = self.catalog.get(platform_id)
        if platform is None:
            raise PlatformNotFoundError(platform_id)
        return platform

    def detect(self, headers: Sequence[str]) -> Optional[Platform]:
        """
        Identify the platform that produced a header row.

        Args:
            headers: Header row of the upload

        Returns:
            The only platform with at least one keyword match, or None when
            no platform or several platforms match
        """
        matches = [p for p in self.catalog.platforms if matched_keywords(p, headers)]

        if len(matches) == 1:
            logger.info("platform_detected", platform_id=matches[0].id)
            return matches[0]

        logger.info(
            "platform_detection_inconclusive",
            match_count=len(matches),
            matched=[p.id for p in matches]
        )
        return None

    def rank(self, headers: Sequence[str]) -> list[PlatformCandidate]:
        """
        Score every platform by the share of its keywords present.

        Returns:
            Candidates by confidence (highest first), catalog order on ties
        """
        candidates = []
        for platform in self.catalog.platforms:
            found = matched_keywords(platform, headers)
            confidence = round(len(found) / len(platform.detection_keywords) * 100)
            candidates.append(PlatformCandidate(
                platform_id=platform.id,
                platform_name=platform.name,
                confidence=confidence,
                matched_keywords=found,
            ))
        # sorted() is stable, so ties keep catalog order
        return sorted(candidates, key=lambda c: -c.confidence)


_service: Optional[PlatformService] = None


def get_platform_service() -> PlatformService:
    global _service
    if _service is None:
        _service = PlatformService()
    return _service

"""
Unit tests for PlatformService.

Run: pytest tests/unit/test_platform_service.py -v
"""

import json

import pytest

from services.platform_service import (
    PlatformService,
    get_platform_service,
    load_catalog,
    matched_keywords,
)
from models.platform import PlatformCatalog
from exceptions import PlatformCatalogError, PlatformNotFoundError

from tests.factories import PlatformFactory


class TestLoadCatalog:
    """Tests for load_catalog()"""

    def test_shipped_catalog_loads(self, platform_service):
        ids = [p.id for p in platform_service.get_all()]

        assert platform_service.version == "2024.06"
        assert ids == ["company", "cafe24", "wiseamall", "smartstore", "makeshop", "godo5", "standard"]

    def test_missing_file(self, tmp_path):
        with pytest.raises(PlatformCatalogError) as exc_info:
            load_catalog(tmp_path / "missing.json")

        assert exc_info.value.status_code == 500

    def test_duplicate_ids_rejected(self, tmp_path):
        entry = {"id": "dup", "name": "Dup", "detection_keywords": ["x"]}
        path = tmp_path / "platforms.json"
        path.write_text(json.dumps({"version": "1", "platforms": [entry, entry]}), encoding="utf-8")

        with pytest.raises(PlatformCatalogError):
            load_catalog(path)

    def test_unknown_canonical_label_rejected(self, tmp_path):
        entry = {
            "id": "x",
            "name": "X",
            "detection_keywords": ["x"],
            "field_labels": {"colour": ["색상"]},
        }
        path = tmp_path / "platforms.json"
        path.write_text(json.dumps({"version": "1", "platforms": [entry]}), encoding="utf-8")

        with pytest.raises(PlatformCatalogError):
            load_catalog(path)


class TestGetById:
    """Tests for PlatformService.get_by_id()"""

    def test_known_platform(self, platform_service):
        platform = platform_service.get_by_id("cafe24")

        assert platform.name == "Cafe24"
        assert platform.required_fields == ("상품코드", "상품명", "판매가")

    def test_unknown_platform(self, platform_service):
        with pytest.raises(PlatformNotFoundError) as exc_info:
            platform_service.get_by_id("shopify")

        assert exc_info.value.status_code == 404


class TestDetect:
    """Tests for PlatformService.detect()"""

    def test_unique_match(self, platform_service):
        platform = platform_service.detect(["Product Name", "SKU", "Unit Price", "Brand"])

        assert platform is not None
        assert platform.id == "standard"

    def test_no_match_returns_none(self, platform_service):
        assert platform_service.detect(["name", "code", "price", "brand"]) is None

    def test_ambiguous_returns_none(self, platform_service):
        """상품명 is a keyword of every Korean platform."""
        assert platform_service.detect(["상품명", "판매가", "브랜드"]) is None

    def test_deterministic(self, platform_service):
        headers = ["상품ID", "상품명", "판매가격"]

        first = platform_service.detect(headers)
        second = platform_service.detect(list(headers))

        assert first == second

    def test_keyword_is_substring_case_insensitive(self):
        only = PlatformFactory.create(id="only", detection_keywords=("Item No",))
        other = PlatformFactory.create(id="other", detection_keywords=("품번",))
        service = PlatformService(PlatformCatalog(version="t", platforms=(only, other)))

        assert service.detect(["ITEM NO.", "Title"]).id == "only"


class TestRank:
    """Tests for PlatformService.rank()"""

    def test_sorted_by_confidence(self, platform_service):
        candidates = platform_service.rank(["상품관리코드", "상품명", "판매가격", "상품분류", "제조회사", "브랜드"])

        confidences = [c.confidence for c in candidates]
        assert confidences == sorted(confidences, reverse=True)
        assert candidates[0].platform_id == "godo5"
        assert candidates[0].confidence == 100

    def test_ties_keep_catalog_order(self):
        first = PlatformFactory.create(id="first", detection_keywords=("a",))
        second = PlatformFactory.create(id="second", detection_keywords=("a",))
        service = PlatformService(PlatformCatalog(version="t", platforms=(first, second)))

        candidates = service.rank(["a"])

        assert [c.platform_id for c in candidates] == ["first", "second"]

    def test_matched_keywords_listed(self, platform_service, cafe24_platform):
        assert matched_keywords(cafe24_platform, ["상품코드", "상품명 (필수)"]) == ["상품코드", "상품명"]


class TestGetPlatformService:

    def test_singleton(self):
        assert get_platform_service() is get_platform_service()

"""
Shared test fixtures.
"""

import sys
from pathlib import Path

# Add project root to Python path
project_dir = Path(__file__).parent.parent
sys.path.insert(0, str(project_dir))

import pytest
from unittest.mock import patch
from datetime import date, datetime
from typing import Generator

from tests.factories import CsvFactory

# ===================
# MOCK SUPABASE CLIENT
# ===================

class MockSupabaseResponse:
    """Mock Supabase query response."""

    def __init__(self, data: list = None, count: int = None):
        self.data = data or []
        self.count = count if count is not None else len(self.data)


class MockSupabaseQuery:
    """Mock Supabase query builder with chainable methods."""

    def __init__(self, data: list = None, count: int = None):
        self._data = data or []
        self._count = count

    def select(self, *args, **kwargs):
        return self

    def in_(self, column, values):
        values = set(values)
        self._data = [row for row in self._data if row.get(column) in values]
        return self

    def eq(self, column, value):
        self._data = [row for row in self._data if row.get(column) == value]
        return self

    def limit(self, count):
        return self

    def execute(self) -> MockSupabaseResponse:
        return MockSupabaseResponse(
            data=self._data,
            count=self._count if self._count is not None else len(self._data)
        )


class MockSupabaseTable:
    """Mock Supabase table with configurable responses."""

    def __init__(self, name: str, client: "MockSupabaseClient", data: list = None, count: int = None):
        self._name = name
        self._client = client
        self._data = data or []
        self._count = count

    def select(self, *args, **kwargs):
        return MockSupabaseQuery(self._data.copy(), self._count)

    def upsert(self, rows, on_conflict: str = None):
        if isinstance(rows, dict):
            rows = [rows]
        self._client.upserts.setdefault(self._name, []).append(
            {"rows": rows, "on_conflict": on_conflict}
        )
        return MockSupabaseQuery(list(rows))


class MockSupabaseClient:
    """Mock Supabase client."""

    def __init__(self):
        self._tables = {}
        self.upserts: dict[str, list[dict]] = {}

    def set_table_data(self, table_name: str, data: list, count: int = None):
        """Configure mock data for a table."""
        self._tables[table_name] = {"data": data, "count": count}

    def table(self, name: str) -> MockSupabaseTable:
        """Get mock table."""
        config = self._tables.get(name, {"data": [], "count": None})
        return MockSupabaseTable(name, self, config["data"], config["count"])


# ===================
# FIXTURES
# ===================

@pytest.fixture(autouse=True)
def reset_in_memory_state(monkeypatch):
    """Sessions, saved mappings, history and service singletons are process-local."""
    from config import settings
    from services import (
        field_mapping_service,
        import_session_service,
        product_service,
        upload_history_service,
    )

    # Tests opt in to a product store with the supabase_configured fixture
    monkeypatch.setattr(settings, "supabase_url", None)
    monkeypatch.setattr(settings, "supabase_key", None)

    import_session_service._sessions.clear()
    monkeypatch.setattr(field_mapping_service, "_store", None)
    monkeypatch.setattr(upload_history_service, "_service", None)
    monkeypatch.setattr(product_service, "_service", None)
    yield
    import_session_service._sessions.clear()


@pytest.fixture
def mock_supabase() -> MockSupabaseClient:
    """
    Create a mock Supabase client.

    Usage:
        def test_something(mock_supabase):
            mock_supabase.set_table_data("products", [
                {"id": "1", "sku": "PRD-20240601-0001", ...}
            ])
    """
    return MockSupabaseClient()


@pytest.fixture
def mock_db(mock_supabase) -> Generator:
    """
    Patch the database client with mock.

    Usage:
        def test_something(mock_db, mock_supabase):
            mock_supabase.set_table_data("products", [...])
            # Now any code using get_supabase_client() gets the mock
    """
    with patch("config.database.get_supabase_client", return_value=mock_supabase):
        with patch("services.product_service.get_supabase_client", return_value=mock_supabase):
            yield mock_supabase


@pytest.fixture
def supabase_configured(monkeypatch):
    """Make settings report a configured product store."""
    from config import settings

    monkeypatch.setattr(settings, "supabase_url", "https://test.supabase.co")
    monkeypatch.setattr(settings, "supabase_key", "test-anon-key")
    return settings


@pytest.fixture
def today() -> date:
    """Fixed import date so generated codes are predictable."""
    return date(2024, 6, 1)


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2024, 6, 1, 9, 30, 0)


@pytest.fixture
def platform_service():
    """Platform service backed by the shipped catalog."""
    from services.platform_service import PlatformService

    return PlatformService()


@pytest.fixture
def standard_platform(platform_service):
    return platform_service.get_by_id("standard")


@pytest.fixture
def cafe24_platform(platform_service):
    return platform_service.get_by_id("cafe24")


@pytest.fixture
def sample_csv() -> str:
    """Three data rows; the second has a blank name and a blank code."""
    return CsvFactory.standard_csv()


@pytest.fixture
def sample_products_list() -> list:
    """Products already in the store."""
    return [
        {"id": "uuid-1", "sku": "SKU-001", "name": "Walnut Chair", "price": "120"},
        {"id": "uuid-2", "sku": "SKU-002", "name": "Oak Table", "price": "480"},
        {"id": "uuid-3", "sku": "PRD-20240601-1", "name": "Maple Shelf", "price": "75"},
    ]


# ===================
# API TEST CLIENT
# ===================

@pytest.fixture
def test_client():
    """
    Create FastAPI test client.

    Usage:
        def test_endpoint(test_client):
            response = test_client.get("/api/catalog-imports/platforms")
            assert response.status_code == 200
    """
    from fastapi.testclient import TestClient
    from main import app

    return TestClient(app)


@pytest.fixture
def test_client_with_mock_db(mock_supabase, supabase_configured):
    """
    Create FastAPI test client with mocked database.

    Usage:
        def test_endpoint(test_client_with_mock_db, mock_supabase):
            mock_supabase.set_table_data("products", [...])
            response = test_client_with_mock_db.post(...)
    """
    from fastapi.testclient import TestClient
    from main import app

    with patch("config.database.get_supabase_client", return_value=mock_supabase):
        with patch("services.product_service.get_supabase_client", return_value=mock_supabase):
            yield TestClient(app)

"""
Unit tests for row normalization and validation.

Run: pytest tests/unit/test_row_validation_service.py -v
"""

from datetime import date

import pytest

from services.row_validation_service import (
    REQUIRED_MESSAGE,
    apply_edit,
    build_document,
    generate_code,
    reproject_field,
    revalidate,
    split_brands,
    valid_rows,
    validate_all,
)
from services.field_mapping_service import bind_columns
from models.catalog_row import FieldValue, RowErrors
from parsers.csv_tokenizer import read_table

from tests.factories import CsvFactory


@pytest.fixture
def standard_table():
    return read_table(CsvFactory.standard_csv())


@pytest.fixture
def document(standard_table):
    return build_document(standard_table, bind_columns(None, standard_table.headers))


class TestGenerateCode:
    """Tests for generate_code()"""

    def test_format(self):
        assert generate_code(2, date(2024, 6, 1)) == "PRD-20240601-0003"

    def test_custom_prefix(self):
        assert generate_code(0, date(2024, 6, 1), prefix="SKU") == "SKU-20240601-0001"


class TestSplitBrands:
    """Tests for split_brands()"""

    def test_split_and_trim(self):
        assert split_brands("A; B ;C") == ["A", "B", "C"]

    def test_empty_parts_dropped(self):
        assert split_brands(";A;;") == ["A"]


class TestBuildDocument:
    """Tests for build_document()"""

    def test_projects_bound_columns(self, document):
        assert len(document) == 3
        assert document.row(0).to_dict() == {
            "name": "Walnut Chair",
            "code": "SKU-001",
            "price": "120",
            "brand": "Acme",
        }

    def test_unbound_field_is_blank(self):
        table = read_table("title,price\nChair,10")

        doc = build_document(table, bind_columns(None, table.headers))

        assert doc.row(0).get("name").is_blank
        assert doc.row(0).get("price").to_python() == "10"


class TestValidateAll:
    """Tests for validate_all()"""

    def test_scenario_blank_name(self, document, today):
        """Row 2 (index 1) has a blank name and blank code: one error, code auto-filled."""
        errors = validate_all(document, today)

        assert errors.to_dict() == {1: {"name": REQUIRED_MESSAGE}}
        assert document.row(1).get("code").to_python() == "PRD-20240601-0002"

    def test_blank_code_never_an_error(self, today):
        table = read_table(CsvFactory.create(rows=[CsvFactory.row(code=""), CsvFactory.row(code="")]))
        doc = build_document(table, bind_columns(None, table.headers))

        errors = validate_all(doc, today)

        assert len(errors) == 0

    def test_generated_codes_distinct_and_positional(self, today):
        rows = [CsvFactory.row(code=""), CsvFactory.row(), CsvFactory.row(code="")]
        table = read_table(CsvFactory.create(rows=rows))
        doc = build_document(table, bind_columns(None, table.headers))

        validate_all(doc, today)

        first = doc.row(0).get("code").to_python()
        third = doc.row(2).get("code").to_python()
        assert first != third
        assert first.endswith("-0001")
        assert third.endswith("-0003")

    def test_brand_split_into_list(self, document, today):
        validate_all(document, today)

        assert document.row(1).get("brand").to_python() == ["Acme", "Northwind"]
        assert document.row(0).get("brand").to_python() == "Acme"

    def test_brand_of_only_separators_is_required(self, today):
        table = read_table(CsvFactory.create(rows=[CsvFactory.row(brand=" ; ;")]))
        doc = build_document(table, bind_columns(None, table.headers))

        errors = validate_all(doc, today)

        assert errors.for_row(0) == {"brand": REQUIRED_MESSAGE}

    def test_row_failing_several_fields(self, today):
        table = read_table(CsvFactory.create(rows=[["", "", "", ""]]))
        doc = build_document(table, bind_columns(None, table.headers))

        errors = validate_all(doc, today)

        assert list(errors.items()) == [
            (0, "name", REQUIRED_MESSAGE),
            (0, "price", REQUIRED_MESSAGE),
            (0, "brand", REQUIRED_MESSAGE),
        ]


class TestApplyEdit:
    """Tests for apply_edit()"""

    def test_fixing_cell_clears_error(self, document, today):
        errors = validate_all(document, today)

        stored = apply_edit(document, errors, 1, "name", "Pine Stool", today)

        assert stored == FieldValue.scalar("Pine Stool")
        assert errors.has_errors(1) is False
        assert 1 not in errors

    def test_clearing_cell_adds_error(self, document, today):
        errors = validate_all(document, today)

        apply_edit(document, errors, 0, "price", "", today)

        assert errors.for_row(0) == {"price": REQUIRED_MESSAGE}

    def test_other_rows_untouched(self, document, today):
        errors = validate_all(document, today)
        errors.set(2, "price", "stale")

        apply_edit(document, errors, 0, "name", "", today)

        assert errors.for_row(2) == {"price": "stale"}

    def test_list_brand_edit(self, document, today):
        errors = validate_all(document, today)

        stored = apply_edit(document, errors, 0, "brand", [" Acme ", "", "Contoso"], today)

        assert stored.to_python() == ["Acme", "Contoso"]
        assert not errors.has_errors(0)

    def test_empty_brand_list_is_required(self, document, today):
        errors = validate_all(document, today)

        apply_edit(document, errors, 0, "brand", [], today)

        assert errors.for_row(0) == {"brand": REQUIRED_MESSAGE}

    def test_blank_code_edit_regenerates(self, document, today):
        errors = validate_all(document, today)

        stored = apply_edit(document, errors, 2, "code", "", today)

        assert stored.to_python() == "PRD-20240601-0003"

    def test_unknown_field(self, document, today):
        errors = validate_all(document, today)

        with pytest.raises(KeyError):
            apply_edit(document, errors, 0, "colour", "red", today)

    def test_row_out_of_range(self, document, today):
        errors = validate_all(document, today)

        with pytest.raises(IndexError):
            apply_edit(document, errors, 9, "name", "x", today)


class TestReprojectField:
    """Tests for reproject_field() + revalidate()"""

    def test_reload_from_other_column(self, standard_table, document, today):
        errors = validate_all(document, today)

        paths = reproject_field(document, standard_table, "name", "code")
        revalidate(document, errors, paths, today)

        assert paths == [(0, "name"), (1, "name"), (2, "name")]
        assert document.row(0).get("name").to_python() == "SKU-001"
        # The code cell of row 1 is blank in the file
        assert errors.for_row(1) == {"name": REQUIRED_MESSAGE}

    def test_unbind_blanks_field(self, standard_table, document, today):
        errors = validate_all(document, today)

        revalidate(document, errors, reproject_field(document, standard_table, "price", None), today)

        assert all(errors.for_row(i).get("price") == REQUIRED_MESSAGE for i in range(3))


class TestValidRows:
    """Tests for valid_rows()"""

    def test_excludes_rows_with_errors(self, document, today):
        errors = validate_all(document, today)

        rows = valid_rows(document, errors)

        assert [r.index for r in rows] == [0, 2]

    def test_all_valid_when_no_errors(self, document):
        assert len(valid_rows(document, RowErrors())) == 3

"""Tests for the procedure catalog service."""

import json

import pytest

from app.schemas.procedure import ProcedureConfig
from app.services.procedure_catalog import (
    ProcedureCatalogService,
    get_procedure_catalog_service,
    reset_procedure_catalog_service,
)

from conftest import make_procedure


# ============================================================================
# Loading
# ============================================================================


class TestCatalogLoading:
    """Test loading the catalog from configuration."""

    def test_fixture_loads(self, procedure_catalog):
        """Test that the bundled configuration loads."""
        assert procedure_catalog.is_loaded
        assert len(procedure_catalog.procedures) == 51
        assert len(procedure_catalog.config.categories) == 10

    def test_default_fixture_path(self):
        """Test that the default path finds the bundled fixture."""
        catalog = ProcedureCatalogService()

        assert catalog.fixture_path.name == "procedure_config.json"
        assert catalog.fixture_path.exists()

    def test_missing_file_gives_empty_catalog(self, tmp_path):
        """Test that a missing configuration leaves the catalog empty."""
        catalog = ProcedureCatalogService(tmp_path / "missing.json")
        catalog.load()

        assert catalog.is_loaded
        assert catalog.procedures == []

    def test_duplicate_control_names_rejected(self, tmp_path):
        """Test that duplicate control names fail validation."""
        path = tmp_path / "config.json"
        path.write_text(json.dumps({
            "version": "1.0",
            "procedures": [
                {"controlName": "A", "description": "First"},
                {"controlName": "A", "description": "Second"},
            ],
        }))

        with pytest.raises(ValueError, match="Duplicate procedure control names: A"):
            ProcedureCatalogService(path).load()

    def test_list_field_requires_items(self, tmp_path):
        """Test that list fields without items fail validation."""
        path = tmp_path / "config.json"
        path.write_text(json.dumps({
            "procedures": [{
                "controlName": "A",
                "description": "A",
                "fields": [{"type": "list", "label": "Side", "controlName": "A_side"}],
            }],
        }))

        with pytest.raises(ValueError):
            ProcedureCatalogService(path).load()

    def test_config_argument(self):
        """Test building a catalog from an already-parsed configuration."""
        config = ProcedureConfig(procedures=[make_procedure("A"), make_procedure("B")])
        catalog = ProcedureCatalogService(config=config)

        assert catalog.is_loaded
        assert [p.control_name for p in catalog.procedures] == ["A", "B"]

    def test_camel_case_fields_parsed(self, procedure_catalog):
        """Test that camelCase keys populate snake_case attributes."""
        intubation = procedure_catalog.get_procedure("Procedures01_Intubation_cbo")

        assert intubation.category_id == "pulmonary"
        assert intubation.subcategory_id == "airway-management"
        assert intubation.fields[0].control_name == "Procedures01_Intubation_cbo_by"
        assert intubation.fields[0].list_items == ["EMS", "ED MD", "Anesthesia"]
        assert intubation.aliases == ["ETT", "RSI"]


# ============================================================================
# Lookup and Search
# ============================================================================


class TestCatalogLookup:
    """Test lookup by control name and category."""

    def test_get_procedure(self, procedure_catalog):
        """Test lookup by control name."""
        cpr = procedure_catalog.get_procedure("Procedures01_CPR_chk")

        assert cpr is not None
        assert cpr.description == "CPR"

    def test_get_unknown_procedure(self, procedure_catalog):
        """Test that unknown control names return None."""
        assert procedure_catalog.get_procedure("Nope") is None
        assert "Nope" not in procedure_catalog
        assert "Procedures01_CPR_chk" in procedure_catalog

    def test_get_category_and_subcategory(self, procedure_catalog):
        """Test category and subcategory lookup."""
        assert procedure_catalog.get_category("cardiovascular").name == "Cardiovascular"
        assert procedure_catalog.get_subcategory("ng-tube").name == "NG Tube"
        assert procedure_catalog.get_category("missing") is None

    def test_procedures_by_category(self, procedure_catalog):
        """Test filtering procedures by category."""
        procedures = procedure_catalog.get_procedures_by_category("cardiovascular")

        assert len(procedures) == 11
        assert all(p.category_id == "cardiovascular" for p in procedures)


class TestCatalogSearch:
    """Test catalog search."""

    def test_description_matches_first(self, procedure_catalog):
        """Test that description matches rank before tag matches."""
        results = procedure_catalog.search("chest")

        assert [p.control_name for p in results] == [
            "Procedures01_ChestTubes_cbo",
            "Procedures01_Thoracentesis_cbo",
        ]

    def test_alias_match(self, procedure_catalog):
        """Test matching by alias, case-insensitively."""
        results = procedure_catalog.search("SPINAL TAP")

        assert [p.control_name for p in results] == ["Procedures02_LumbarPuncture_chk"]

    def test_tag_match(self, procedure_catalog):
        """Test matching by tag."""
        results = procedure_catalog.search("airway")

        assert {p.control_name for p in results} == {
            "Procedures01_Intubation_cbo",
            "Procedures01_Cricothyroidotomy_chk",
            "Procedures01_Tracheostomy_chk",
        }

    def test_control_name_match(self, procedure_catalog):
        """Test matching by control name."""
        results = procedure_catalog.search("DeclotVascular")

        assert [p.control_name for p in results] == ["Procedures01_DeclotVascularDevice_chk"]

    def test_limit(self, procedure_catalog):
        """Test that results are limited."""
        assert len(procedure_catalog.search("Procedures", limit=5)) == 5

    def test_blank_query(self, procedure_catalog):
        """Test that a blank query returns nothing."""
        assert procedure_catalog.search("   ") == []


class TestCatalogStats:
    """Test catalog statistics."""

    def test_stats(self, procedure_catalog):
        """Test summary statistics of the bundled catalog."""
        stats = procedure_catalog.get_stats()

        assert stats["total_procedures"] == 51
        assert stats["total_categories"] == 10
        assert stats["total_subcategories"] == 29
        assert stats["procedures_with_fields"] == 9
        assert stats["by_category"]["cardiovascular"] == 11
        assert "load_time_ms" in stats


# ============================================================================
# Singleton
# ============================================================================


class TestCatalogSingleton:
    """Test the shared catalog instance."""

    def setup_method(self):
        """Reset singleton before each test."""
        reset_procedure_catalog_service()

    def teardown_method(self):
        reset_procedure_catalog_service()

    def test_singleton_pattern(self):
        """Test that the same loaded instance is returned."""
        first = get_procedure_catalog_service()
        second = get_procedure_catalog_service()

        assert first is second
        assert first.is_loaded
        assert first.get_procedure("Procedures01_CPR_chk") is not None

    def test_reset(self):
        """Test that reset creates a new instance."""
        first = get_procedure_catalog_service()
        reset_procedure_catalog_service()

        assert get_procedure_catalog_service() is not first

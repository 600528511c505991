"""Procedure catalog service.

Loads the procedure configuration (categories, subcategories, procedures)
from the JSON fixture and provides lookup by control name plus simple
search over descriptions, aliases and tags.

This module uses a singleton pattern to ensure the catalog is loaded
only once and shared across all services.
"""

import json
import logging
import time
from pathlib import Path
from threading import Lock
from typing import ClassVar

from app.core.config import settings
from app.schemas.procedure import (
    CategoryDefinition,
    ProcedureConfig,
    ProcedureDefinition,
    SubcategoryDefinition,
)

logger = logging.getLogger(__name__)

# Singleton instance and lock for thread-safe initialization
_catalog_instance: "ProcedureCatalogService | None" = None
_catalog_lock = Lock()


class ProcedureCatalogService:
    """Service for loading and querying the procedure catalog.

    Usage:
        catalog = ProcedureCatalogService()
        catalog.load()
        procedure = catalog.get_procedure("Procedures01_CPR_chk")
    """

    DEFAULT_FIXTURE_NAME: ClassVar[str] = "procedure_config.json"

    def __init__(
        self,
        fixture_path: str | Path | None = None,
        config: ProcedureConfig | None = None,
    ) -> None:
        """Initialize the catalog service.

        Args:
            fixture_path: Path to the procedure configuration JSON.
                         Defaults to fixtures/procedure_config.json.
            config: Already-parsed configuration. Takes precedence over
                    the fixture path and marks the catalog as loaded.
        """
        self._fixture_path = fixture_path
        self._config = ProcedureConfig()
        self._procedures: dict[str, ProcedureDefinition] = {}
        self._categories: dict[str, CategoryDefinition] = {}
        self._subcategories: dict[str, SubcategoryDefinition] = {}
        self._loaded = False
        self._load_time_ms: float = 0.0

        if config is not None:
            self._index(config)
            self._loaded = True

    def _find_fixtures_dir(self) -> Path:
        """Find the fixtures directory."""
        current = Path(__file__).parent
        while current.parent != current:
            potential_path = current / "fixtures"
            if potential_path.exists():
                return potential_path
            current = current.parent
        # Fallback to relative path from cwd
        return Path("fixtures")

    @property
    def fixture_path(self) -> Path:
        """Get the fixture file path."""
        if self._fixture_path:
            return Path(self._fixture_path)
        return self._find_fixtures_dir() / self.DEFAULT_FIXTURE_NAME

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    def load(self) -> None:
        """Load the catalog from the fixture file.

        A missing fixture leaves the catalog empty; an invalid one raises.

        Raises:
            ValueError: If the configuration is malformed or contains
                duplicate procedure control names.
        """
        if self._loaded:
            return

        start_time = time.perf_counter()
        path = self.fixture_path

        if path.exists():
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
            self._index(ProcedureConfig.model_validate(data))
        else:
            logger.warning(f"Procedure config not found: {path}")

        self._loaded = True
        self._load_time_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            f"Procedure catalog loaded: {len(self._procedures)} procedures, "
            f"{len(self._categories)} categories in {self._load_time_ms:.1f}ms"
        )

    def _index(self, config: ProcedureConfig) -> None:
        self._config = config
        self._procedures = {p.control_name: p for p in config.procedures}
        self._categories = {c.id: c for c in config.categories}
        self._subcategories = {s.id: s for s in config.subcategories}

    @property
    def config(self) -> ProcedureConfig:
        return self._config

    @property
    def procedures(self) -> list[ProcedureDefinition]:
        """Get all procedures in catalog order."""
        return list(self._procedures.values())

    def get_procedure(self, control_name: str) -> ProcedureDefinition | None:
        """Get a procedure by its control name."""
        return self._procedures.get(control_name)

    def __contains__(self, control_name: object) -> bool:
        return control_name in self._procedures

    def get_category(self, category_id: str) -> CategoryDefinition | None:
        return self._categories.get(category_id)

    def get_subcategory(self, subcategory_id: str) -> SubcategoryDefinition | None:
        return self._subcategories.get(subcategory_id)

    def get_procedures_by_category(self, category_id: str) -> list[ProcedureDefinition]:
        """Get all procedures in a category."""
        return [p for p in self._procedures.values() if p.category_id == category_id]

    def search(self, query: str, limit: int = 20) -> list[ProcedureDefinition]:
        """Search procedures by description, control name, alias or tag.

        Description matches are listed before alias, tag and control name
        matches.
        """
        query_lower = query.strip().lower()
        if not query_lower:
            return []

        primary: list[ProcedureDefinition] = []
        secondary: list[ProcedureDefinition] = []
        for procedure in self._procedures.values():
            if query_lower in procedure.description.lower():
                primary.append(procedure)
            elif (
                any(query_lower in alias.lower() for alias in procedure.aliases)
                or any(query_lower in tag.lower() for tag in procedure.tags)
                or query_lower in procedure.control_name.lower()
            ):
                secondary.append(procedure)

        return (primary + secondary)[:limit]

    def get_stats(self) -> dict:
        """Get statistics about the catalog."""
        by_category: dict[str, int] = {}
        for procedure in self._procedures.values():
            by_category[procedure.category_id] = by_category.get(procedure.category_id, 0) + 1

        return {
            "total_procedures": len(self._procedures),
            "total_categories": len(self._categories),
            "total_subcategories": len(self._subcategories),
            "procedures_with_fields": sum(1 for p in self._procedures.values() if p.fields),
            "by_category": by_category,
            "load_time_ms": round(self._load_time_ms, 2),
        }


def get_procedure_catalog_service() -> ProcedureCatalogService:
    """Get the singleton ProcedureCatalogService instance.

    The catalog is loaded lazily on first access, from
    ``settings.procedure_config_path`` when set.

    Returns:
        The singleton ProcedureCatalogService instance.
    """
    global _catalog_instance

    if _catalog_instance is None:
        with _catalog_lock:
            # Double-check locking pattern
            if _catalog_instance is None:
                logger.info("Creating singleton ProcedureCatalogService instance")
                instance = ProcedureCatalogService(settings.procedure_config_path)
                instance.load()
                _catalog_instance = instance

    return _catalog_instance


def reset_procedure_catalog_service() -> None:
    """Reset the singleton instance (for testing only)."""
    global _catalog_instance
    with _catalog_lock:
        _catalog_instance = None

"""Pytest configuration and fixtures for backend tests."""

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient

from app.main import app
from app.schemas.prediction import PredictionData, SuggestionSettings
from app.schemas.procedure import ProcedureDefinition
from app.services.prediction_store import JSONFilePredictionStore
from app.services.procedure_catalog import ProcedureCatalogService, get_procedure_catalog_service
from app.services.procedure_suggestions import (
    ProcedureSuggestionService,
    get_procedure_suggestion_service,
)

FIXTURES_DIR = Path(__file__).parent.parent.parent / "fixtures"
PROCEDURE_CONFIG_PATH = FIXTURES_DIR / "procedure_config.json"


def make_procedure(control_name: str, description: str | None = None, **kwargs) -> ProcedureDefinition:
    """Build a procedure definition with sensible defaults."""
    return ProcedureDefinition(
        control_name=control_name,
        description=description or control_name,
        **kwargs,
    )


def make_prediction_data(
    add_counts: dict[str, int] | None = None,
    co_occurrences: dict[str, dict[str, int]] | None = None,
) -> PredictionData:
    """Build prediction data from plain dictionaries."""
    return PredictionData(
        procedure_add_counts=add_counts or {},
        co_occurrences=co_occurrences or {},
    )


@pytest.fixture
def procedure_catalog() -> ProcedureCatalogService:
    """Catalog loaded from the bundled procedure configuration."""
    catalog = ProcedureCatalogService(PROCEDURE_CONFIG_PATH)
    catalog.load()
    return catalog


@pytest.fixture
def suggestion_service(procedure_catalog, tmp_path) -> ProcedureSuggestionService:
    """Suggestion service backed by a temporary JSON store."""
    store = JSONFilePredictionStore(tmp_path / "prediction_data.json")
    return ProcedureSuggestionService(procedure_catalog, store, SuggestionSettings())


@pytest.fixture
async def api_client(
    procedure_catalog: ProcedureCatalogService,
    suggestion_service: ProcedureSuggestionService,
) -> AsyncGenerator[AsyncClient, None]:
    """Create async test client with isolated catalog and statistics.

    This allows testing API endpoints without touching the configured store.
    """
    app.dependency_overrides[get_procedure_catalog_service] = lambda: procedure_catalog
    app.dependency_overrides[get_procedure_suggestion_service] = lambda: suggestion_service

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    # Clean up overrides
    app.dependency_overrides.clear()


@pytest.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    """Create async test client without dependency overrides."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

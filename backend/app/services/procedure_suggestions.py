"""Procedure suggestion service.

Ties the procedure catalog, the prediction statistics store and the
configured suggestion provider together. API endpoints and scripts talk to
this service rather than to the individual pieces.
"""

import logging
from collections.abc import Iterable, Sequence
from threading import Lock

from app.core.config import settings as app_settings
from app.schemas.base import FacilityType
from app.schemas.prediction import PredictionData, PredictionStats, SuggestionSettings
from app.services.prediction_data import get_prediction_stats
from app.services.prediction_store import PredictionStoreInterface, create_prediction_store
from app.services.procedure_catalog import ProcedureCatalogService, get_procedure_catalog_service
from app.services.seed_predictions import generate_seed_predictions
from app.services.suggestion_provider import (
    ProcedureSuggestion,
    SuggestionProviderInterface,
    create_suggestion_provider,
)

logger = logging.getLogger(__name__)

# Singleton instance and lock for thread-safe initialization
_service_instance: "ProcedureSuggestionService | None" = None
_service_lock = Lock()


class ProcedureSuggestionService:
    """Suggests, records and seeds procedure co-occurrence statistics.

    Usage:
        service = ProcedureSuggestionService(catalog, store, settings.suggestion_settings)
        suggestions = service.suggest(["Procedures01_CPR_chk"])
    """

    def __init__(
        self,
        catalog: ProcedureCatalogService,
        store: PredictionStoreInterface,
        settings: SuggestionSettings | None = None,
    ) -> None:
        self._catalog = catalog
        self._store = store
        self._settings = settings or SuggestionSettings()
        self._provider = create_suggestion_provider(self._settings)

    @property
    def catalog(self) -> ProcedureCatalogService:
        return self._catalog

    @property
    def store(self) -> PredictionStoreInterface:
        return self._store

    @property
    def settings(self) -> SuggestionSettings:
        return self._settings

    @property
    def provider(self) -> SuggestionProviderInterface:
        return self._provider

    def suggest(
        self,
        session_control_names: Sequence[str],
        threshold: float | None = None,
        max_results: int | None = None,
    ) -> list[ProcedureSuggestion]:
        """Suggest procedures for the current session.

        Args:
            session_control_names: Control names already in the session.
            threshold: Minimum confidence percentage. Defaults to settings.
            max_results: Maximum suggestions. Defaults to settings.

        Returns:
            Suggestions ordered best first; empty when suggestions are disabled.
        """
        if not self._settings.enabled:
            return []

        if threshold is None:
            threshold = self._settings.threshold
        if max_results is None:
            max_results = self._settings.max_suggestions

        return self._provider.get_suggestions(
            session_control_names,
            self._catalog.procedures,
            self._store.load(),
            threshold=threshold,
            max_results=max_results,
        )

    def record_procedure_added(
        self,
        control_name: str,
        session_control_names: Iterable[str],
    ) -> PredictionData:
        """Record that a procedure was added to a session.

        Raises:
            KeyError: If the procedure is not in the catalog.
        """
        if control_name not in self._catalog:
            raise KeyError(control_name)

        data = self._store.record_procedure_added(control_name, session_control_names)
        logger.debug(f"Recorded addition of {control_name}")
        return data

    def seed(
        self,
        facility_types: Iterable[FacilityType | str],
        replace: bool = False,
    ) -> PredictionData:
        """Seed statistics from clinical bundles.

        Args:
            facility_types: Facility types whose bundles are applied.
            replace: Discard existing statistics instead of merging.

        Returns:
            The statistics now held by the store.
        """
        seed_data = generate_seed_predictions(
            self._catalog.procedures,
            [FacilityType(ft) for ft in facility_types],
        )

        if replace:
            self._store.save(seed_data)
            data = seed_data
        else:
            data = self._store.merge(seed_data)

        logger.info(
            f"Seeded {len(seed_data.procedure_add_counts)} procedures "
            f"({'replaced' if replace else 'merged'})"
        )
        return data

    def get_stats(self) -> PredictionStats:
        """Summarize the stored statistics."""
        return get_prediction_stats(self._store.load())


def get_procedure_suggestion_service() -> ProcedureSuggestionService:
    """Get the singleton ProcedureSuggestionService instance.

    Built from the application settings on first access.
    """
    global _service_instance

    if _service_instance is None:
        with _service_lock:
            # Double-check locking pattern
            if _service_instance is None:
                logger.info("Creating singleton ProcedureSuggestionService instance")
                store = create_prediction_store(
                    app_settings.prediction_store_backend,
                    app_settings.prediction_data_path,
                )
                _service_instance = ProcedureSuggestionService(
                    get_procedure_catalog_service(),
                    store,
                    app_settings.suggestion_settings,
                )

    return _service_instance


def reset_procedure_suggestion_service() -> None:
    """Reset the singleton instance (for testing only)."""
    global _service_instance
    with _service_lock:
        _service_instance = None

"""Services for the Procedure Suggestion Engine.

Services implement business logic and data processing:
- ProcedureCatalogService: procedure configuration lookup and search
- Suggestion providers: local statistical engine, Gemini placeholder, factory
- Prediction data operations, seeding and persistence stores
- ProcedureSuggestionService: orchestration used by the API
"""

from app.services.prediction_data import (
    PredictionDataError,
    create_empty_prediction_data,
    get_prediction_stats,
    is_valid_prediction_data,
    merge_prediction_data,
    record_procedure_added,
    record_session,
    validate_prediction_data,
)
from app.services.prediction_store import (
    JSONFilePredictionStore,
    PredictionStoreInterface,
    create_prediction_store,
)
from app.services.procedure_catalog import (
    ProcedureCatalogService,
    get_procedure_catalog_service,
    reset_procedure_catalog_service,
)
from app.services.procedure_suggestions import (
    ProcedureSuggestionService,
    get_procedure_suggestion_service,
    reset_procedure_suggestion_service,
)
from app.services.seed_predictions import CLINICAL_BUNDLES, ClinicalBundle, generate_seed_predictions
from app.services.suggestion_provider import (
    DEFAULT_MAX_SUGGESTIONS,
    MIN_COOCCURRENCE_COUNT,
    MIN_SAMPLE_SIZE,
    GeminiProvider,
    LocalStatisticalProvider,
    ProcedureSuggestion,
    SuggestionProviderInterface,
    create_suggestion_provider,
    get_default_provider,
    get_registered_providers,
    register_suggestion_provider,
)
from app.services.variant_detection import are_procedure_variants, get_base_procedure_name

__all__ = [
    # Catalog
    "ProcedureCatalogService",
    "get_procedure_catalog_service",
    "reset_procedure_catalog_service",
    # Suggestion providers
    "DEFAULT_MAX_SUGGESTIONS",
    "MIN_COOCCURRENCE_COUNT",
    "MIN_SAMPLE_SIZE",
    "GeminiProvider",
    "LocalStatisticalProvider",
    "ProcedureSuggestion",
    "SuggestionProviderInterface",
    "create_suggestion_provider",
    "get_default_provider",
    "get_registered_providers",
    "register_suggestion_provider",
    # Variant detection
    "are_procedure_variants",
    "get_base_procedure_name",
    # Prediction data
    "PredictionDataError",
    "create_empty_prediction_data",
    "get_prediction_stats",
    "is_valid_prediction_data",
    "merge_prediction_data",
    "record_procedure_added",
    "record_session",
    "validate_prediction_data",
    # Seeding
    "CLINICAL_BUNDLES",
    "ClinicalBundle",
    "generate_seed_predictions",
    # Stores
    "JSONFilePredictionStore",
    "PredictionStoreInterface",
    "create_prediction_store",
    # Orchestration
    "ProcedureSuggestionService",
    "get_procedure_suggestion_service",
    "reset_procedure_suggestion_service",
]

"""Pydantic schemas for the Procedure Suggestion Engine."""

from app.schemas.base import (
    AIProviderName,
    FacilityType,
    FieldType,
    PredictionStoreBackend,
)
from app.schemas.prediction import (
    PREDICTION_DATA_VERSION,
    PredictionData,
    PredictionStats,
    SeededFrom,
    SuggestionSettings,
)
from app.schemas.procedure import (
    CategoryDefinition,
    ProcedureConfig,
    ProcedureDefinition,
    ProcedureFieldDefinition,
    SubcategoryDefinition,
)

__all__ = [
    # Enums
    "AIProviderName",
    "FacilityType",
    "FieldType",
    "PredictionStoreBackend",
    # Catalog
    "CategoryDefinition",
    "ProcedureConfig",
    "ProcedureDefinition",
    "ProcedureFieldDefinition",
    "SubcategoryDefinition",
    # Prediction
    "PREDICTION_DATA_VERSION",
    "PredictionData",
    "PredictionStats",
    "SeededFrom",
    "SuggestionSettings",
]

"""Procedure suggestion API endpoints."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from app.schemas.base import FacilityType
from app.schemas.prediction import PredictionStats
from app.services.prediction_data import PredictionDataError
from app.services.procedure_suggestions import (
    ProcedureSuggestionService,
    get_procedure_suggestion_service,
)
from app.services.suggestion_provider import get_registered_providers

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/suggestions", tags=["Suggestions"])

# Type alias for the suggestion service dependency
SuggestionService = Annotated[ProcedureSuggestionService, Depends(get_procedure_suggestion_service)]


class SuggestionRequest(BaseModel):
    """Request body for procedure suggestions."""

    session_ids: list[str] = Field(..., description="Control names already in the session")
    threshold: float | None = Field(None, ge=0, le=100, description="Minimum confidence percentage")
    max_results: int | None = Field(None, ge=1, description="Maximum number of suggestions")


class SuggestionItem(BaseModel):
    """Single suggested procedure."""

    control_name: str
    description: str
    category_id: str
    subcategory_id: str
    confidence: int = Field(..., description="Combined confidence percentage (0-100)")
    co_occurrence_count: int
    contributing_procedures: int


class SuggestionResponse(BaseModel):
    """Response with ranked suggestions."""

    provider: str
    suggestions: list[SuggestionItem]
    total: int


class ProviderInfo(BaseModel):
    """Configured provider and the selectable backends."""

    name: str
    ai_provider: str
    available: bool
    registered: list[str]


class RecordRequest(BaseModel):
    """Request body for recording a procedure addition."""

    control_name: str = Field(..., min_length=1, description="Procedure being added")
    session_ids: list[str] = Field(default_factory=list, description="Procedures already in the session")


class SeedRequest(BaseModel):
    """Request body for seeding statistics."""

    facility_types: list[FacilityType] = Field(..., min_length=1)
    replace: bool = Field(False, description="Replace existing statistics instead of merging")


def _store_failure(action: str, error: Exception) -> HTTPException:
    logger.error(f"Prediction store failed to {action}: {error}")
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Prediction data could not be {action}: {error}",
    )


@router.post(
    "",
    response_model=SuggestionResponse,
    summary="Suggest procedures",
    description="Rank procedures likely to be added next given the current session.",
)
def suggest_procedures(request: SuggestionRequest, service: SuggestionService) -> SuggestionResponse:
    """Suggest procedures for the current session.

    Args:
        request: Session control names and optional threshold/limit overrides.

    Returns:
        SuggestionResponse with suggestions ordered best first.
    """
    try:
        suggestions = service.suggest(
            request.session_ids,
            threshold=request.threshold,
            max_results=request.max_results,
        )
    except PredictionDataError as e:
        raise _store_failure("loaded", e) from e

    return SuggestionResponse(
        provider=service.provider.name,
        suggestions=[SuggestionItem(**s.to_dict()) for s in suggestions],
        total=len(suggestions),
    )


@router.get(
    "/providers",
    response_model=ProviderInfo,
    summary="Get suggestion provider",
)
def get_provider(service: SuggestionService) -> ProviderInfo:
    """Get the configured suggestion provider and its availability."""
    return ProviderInfo(
        name=service.provider.name,
        ai_provider=service.settings.ai_provider,
        available=service.provider.is_available(),
        registered=get_registered_providers(),
    )


@router.post(
    "/record",
    response_model=PredictionStats,
    summary="Record a procedure addition",
)
def record_procedure(request: RecordRequest, service: SuggestionService) -> PredictionStats:
    """Record that a procedure was added to a session.

    Raises:
        HTTPException: 404 if the procedure is not in the catalog.
    """
    try:
        service.record_procedure_added(request.control_name, request.session_ids)
    except KeyError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Procedure {request.control_name} not found",
        ) from e
    except PredictionDataError as e:
        raise _store_failure("updated", e) from e

    return service.get_stats()


@router.post(
    "/seed",
    response_model=PredictionStats,
    summary="Seed prediction statistics",
    description="Generate co-occurrence statistics from clinical bundles for the given facility types.",
)
def seed_predictions(request: SeedRequest, service: SuggestionService) -> PredictionStats:
    """Seed statistics and return the resulting summary."""
    try:
        service.seed(request.facility_types, replace=request.replace)
    except PredictionDataError as e:
        raise _store_failure("seeded", e) from e

    return service.get_stats()


@router.get(
    "/stats",
    response_model=PredictionStats,
    summary="Get prediction statistics summary",
)
def get_prediction_stats(service: SuggestionService) -> PredictionStats:
    try:
        return service.get_stats()
    except PredictionDataError as e:
        raise _store_failure("loaded", e) from e

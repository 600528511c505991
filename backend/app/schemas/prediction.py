"""Prediction statistics and suggestion settings schemas."""

from datetime import datetime
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.schemas.base import AIProviderName, FacilityType

Count = Annotated[int, Field(ge=0)]

PREDICTION_DATA_VERSION = "1.0"


class SeededFrom(BaseModel):
    """Provenance of seeded statistics. Informational only."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    facility_types: list[FacilityType] = Field(default_factory=list)
    method: str = Field(default="rules", description="Generation method")
    seeded_at: datetime | None = Field(None, description="When the seed was generated")


class PredictionData(BaseModel):
    """Aggregated procedure co-occurrence statistics.

    ``co_occurrences[anchor][companion]`` counts sessions in which the
    companion was added while the anchor was already present. The map is
    directional: ``co_occurrences[a][b]`` and ``co_occurrences[b][a]`` are
    independent counters.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    version: str = Field(default=PREDICTION_DATA_VERSION)
    procedure_add_counts: dict[str, Count] = Field(
        default_factory=dict,
        description="Total times each procedure was added across sessions",
    )
    co_occurrences: dict[str, dict[str, Count]] = Field(
        default_factory=dict,
        description="Anchor -> companion -> session count",
    )
    seeded_from: SeededFrom | None = Field(None, description="Seed provenance")


class PredictionStats(BaseModel):
    """Summary of a PredictionData value."""

    total_procedures: int = Field(..., description="Procedures with an add count")
    total_pairs: int = Field(..., description="Distinct (anchor, companion) pairs")
    total_observations: int = Field(..., description="Sum of all co-occurrence counts")
    is_seeded: bool = Field(..., description="Whether seed provenance is present")


class SuggestionSettings(BaseModel):
    """Settings consumed by the suggestion provider factory."""

    enabled: bool = Field(default=True)
    threshold: float = Field(default=30.0, ge=0, le=100, description="Minimum confidence percentage")
    max_suggestions: int = Field(default=10, gt=0)
    ai_provider: str = Field(default=AIProviderName.LOCAL.value, description="Provider tag")
    ai_api_key: str | None = Field(None, description="API key for remote providers")

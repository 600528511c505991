"""SQLAlchemy ORM models for the Procedure Suggestion Engine.

All models inherit from Base which provides:
- id: UUID primary key
- created_at: Timestamp

Models:
- ProcedureAddCount, ProcedureCoOccurrence: prediction counters
- PredictionSeedRun: seed provenance
"""

from app.core.database import Base
from app.models.prediction import PredictionSeedRun, ProcedureAddCount, ProcedureCoOccurrence

__all__ = [
    "Base",
    "ProcedureAddCount",
    "ProcedureCoOccurrence",
    "PredictionSeedRun",
]

"""API routers for the Procedure Suggestion Engine."""

from app.api.procedures import router as procedures_router
from app.api.suggestions import router as suggestions_router

__all__ = [
    "procedures_router",
    "suggestions_router",
]

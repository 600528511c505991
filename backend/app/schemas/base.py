"""Base schemas and enums for the Procedure Suggestion Engine."""

from enum import Enum


class FieldType(str, Enum):
    """Input control types a procedure field can render as."""

    TEXTBOX = "textbox"
    NUMBER = "number"
    LIST = "list"
    CHECKBOX = "checkbox"


class FacilityType(str, Enum):
    """Facility types used to select clinical bundles when seeding."""

    ED = "ed"
    OBSERVATION = "observation"
    URGENT_CARE = "urgent-care"
    INFUSION_CENTER = "infusion-center"


class AIProviderName(str, Enum):
    """Known suggestion backends."""

    LOCAL = "local"
    GEMINI = "gemini"


class PredictionStoreBackend(str, Enum):
    """Persistence backends for prediction statistics."""

    JSON = "json"
    DATABASE = "database"

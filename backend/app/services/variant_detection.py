"""Procedure variant detection.

Catalogs often list the same clinical procedure several times, split by
patient age bracket, size or site (e.g. "Central Line >= 5 years old" and
"Central line < 5 years old"). Those entries are mutually exclusive within
a session, so once one is selected the others should never be suggested.

Variants are detected from the description text: qualifiers are stripped
to produce a base name, and two different procedures with the same base
name are variants. This is a heuristic; descriptions that do not follow the
qualifier conventions below will not be grouped.
"""

import re
from collections.abc import Callable

from app.schemas.procedure import ProcedureDefinition

# Predicate deciding whether two catalog procedures are variants of each other
VariantDetector = Callable[[ProcedureDefinition, ProcedureDefinition], bool]

# "< 5 years old", ">= 5 yo", "≥ 2 y.o.", "3 months", "< 28 days"
_AGE_QUALIFIER = re.compile(
    r"\s*(?:[<>=≤≥]+\s*)?\d+\s*(?:years?(?:\s*old)?|yrs?|yo|y\.?o\.?|months?|days?)(?![a-z])\s*"
)
# "(Adult)", "(Electric)"
_PARENTHETICAL_QUALIFIER = re.compile(r"\s*\([^)]*\)\s*")
# Trailing "- Tibial", "- Femoral"
_DASH_QUALIFIER = re.compile(r"\s*-\s*[a-z]+\s*$")
_SIZE_AGE_WORDS = re.compile(r"\b(?:small|medium|large|adult|pediatric|infant|neonate)\b")
_WHITESPACE = re.compile(r"\s+")


def get_base_procedure_name(description: str) -> str:
    """Reduce a procedure description to its base name.

    Examples:
        "Central Line >= 5 years old" -> "central line"
        "Lumbar Puncture (Adult)"     -> "lumbar puncture"
        "IO Access - Tibial"          -> "io access"

    Args:
        description: Human-readable procedure description.

    Returns:
        Lower-cased description with age, parenthetical, trailing dash and
        size/age-word qualifiers removed and whitespace collapsed.
    """
    name = description.lower()
    name = _AGE_QUALIFIER.sub(" ", name)
    name = _PARENTHETICAL_QUALIFIER.sub(" ", name)
    name = _DASH_QUALIFIER.sub("", name)
    name = _SIZE_AGE_WORDS.sub(" ", name)
    return _WHITESPACE.sub(" ", name).strip()


def are_procedure_variants(first: ProcedureDefinition, second: ProcedureDefinition) -> bool:
    """Check if two procedures are variants of the same base procedure.

    A procedure is never a variant of itself.
    """
    if first.control_name == second.control_name:
        return False
    return get_base_procedure_name(first.description) == get_base_procedure_name(second.description)

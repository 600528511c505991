"""Operations on PredictionData values.

Prediction data is treated as an immutable snapshot: every operation here
returns a new PredictionData and leaves its inputs untouched.
"""

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import ValidationError

from app.schemas.prediction import PREDICTION_DATA_VERSION, PredictionData, PredictionStats

logger = logging.getLogger(__name__)


class PredictionDataError(ValueError):
    """Raised when persisted prediction statistics are malformed."""


def create_empty_prediction_data() -> PredictionData:
    """Create cold-start prediction data with no statistics."""
    return PredictionData(version=PREDICTION_DATA_VERSION)


def _copy_co_occurrences(co_occurrences: Mapping[str, Mapping[str, int]]) -> dict[str, dict[str, int]]:
    return {anchor: dict(companions) for anchor, companions in co_occurrences.items()}


def merge_prediction_data(existing: PredictionData, incoming: PredictionData) -> PredictionData:
    """Merge two prediction data sets, summing counts for matching keys.

    Counts are additive, so merge(a, b) and merge(b, a) hold the same
    counts. Metadata follows the incoming value when it has one.

    Args:
        existing: Current statistics.
        incoming: Statistics to add (e.g. freshly generated seed data).

    Returns:
        New PredictionData with summed counts.
    """
    add_counts = dict(existing.procedure_add_counts)
    for control_name, count in incoming.procedure_add_counts.items():
        add_counts[control_name] = add_counts.get(control_name, 0) + count

    co_occurrences = _copy_co_occurrences(existing.co_occurrences)
    for anchor, companions in incoming.co_occurrences.items():
        merged = co_occurrences.setdefault(anchor, {})
        for companion, count in companions.items():
            merged[companion] = merged.get(companion, 0) + count

    return PredictionData(
        version=incoming.version or existing.version,
        procedure_add_counts=add_counts,
        co_occurrences=co_occurrences,
        seeded_from=incoming.seeded_from or existing.seeded_from,
    )


def get_prediction_stats(data: PredictionData) -> PredictionStats:
    """Summarize prediction data.

    ``total_pairs`` counts distinct (anchor, companion) entries, while
    ``total_observations`` sums their counts.
    """
    total_pairs = 0
    total_observations = 0
    for companions in data.co_occurrences.values():
        total_pairs += len(companions)
        total_observations += sum(companions.values())

    return PredictionStats(
        total_procedures=len(data.procedure_add_counts),
        total_pairs=total_pairs,
        total_observations=total_observations,
        is_seeded=data.seeded_from is not None,
    )


def validate_prediction_data(raw: Any) -> PredictionData:
    """Parse untrusted prediction data (e.g. an imported JSON document).

    Args:
        raw: Decoded JSON value.

    Returns:
        Validated PredictionData.

    Raises:
        PredictionDataError: If the value is not a mapping with a string
            version and well-formed count maps.
    """
    if not isinstance(raw, Mapping):
        raise PredictionDataError(f"Prediction data must be an object, got {type(raw).__name__}")
    if not isinstance(raw.get("version"), str):
        raise PredictionDataError("Prediction data is missing a string 'version'")
    try:
        return PredictionData.model_validate(raw)
    except ValidationError as e:
        raise PredictionDataError(f"Invalid prediction data: {e.error_count()} errors") from e


def is_valid_prediction_data(raw: Any) -> bool:
    """Check whether a value is well-formed prediction data."""
    try:
        validate_prediction_data(raw)
    except PredictionDataError:
        return False
    return True


def record_procedure_added(
    data: PredictionData,
    control_name: str,
    session_control_names: Iterable[str],
) -> PredictionData:
    """Record that a procedure was added to a session.

    Increments the procedure's add count and, for every distinct procedure
    already in the session, the anchor -> added co-occurrence counter.

    Args:
        data: Current statistics.
        control_name: Procedure being added.
        session_control_names: Procedures present before the addition.

    Returns:
        New PredictionData with the updated counters.
    """
    add_counts = dict(data.procedure_add_counts)
    add_counts[control_name] = add_counts.get(control_name, 0) + 1

    co_occurrences = _copy_co_occurrences(data.co_occurrences)
    for anchor in dict.fromkeys(session_control_names):
        if anchor == control_name:
            continue
        companions = co_occurrences.setdefault(anchor, {})
        companions[control_name] = companions.get(control_name, 0) + 1

    return data.model_copy(
        update={"procedure_add_counts": add_counts, "co_occurrences": co_occurrences}
    )


def record_session(data: PredictionData, ordered_control_names: Iterable[str]) -> PredictionData:
    """Record a whole session, replaying additions in order."""
    session: list[str] = []
    for control_name in ordered_control_names:
        if control_name in session:
            continue
        data = record_procedure_added(data, control_name, session)
        session.append(control_name)
    return data

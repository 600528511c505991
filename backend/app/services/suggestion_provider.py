"""Procedure suggestion providers.

Given the procedures already selected in the current session, a provider
recommends additional procedures likely to be added next. Consumers depend
only on SuggestionProviderInterface; the concrete backend is chosen from
settings by create_suggestion_provider().

The local statistical provider works on pre-aggregated co-occurrence
counts (PredictionData):

- Each session procedure S with enough history (add count >= MIN_SAMPLE_SIZE)
  gives an individual confidence for every companion C it has co-occurred
  with: p = co_occurrences[S][C] / procedure_add_counts[S]
- Evidence for the same candidate is combined with a noisy-OR model:
  P(C) = 1 - prod(1 - p_i). If A suggests D at 40% and B suggests D at 30%,
  the combined confidence is 1 - (0.6 * 0.7) = 58%
- Candidates already in the session, unknown to the catalog, or variants of
  a session procedure (see variant_detection) are never suggested
"""

import logging
import math
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from threading import Lock
from typing import Any

from app.schemas.base import AIProviderName
from app.schemas.prediction import PredictionData, SuggestionSettings
from app.schemas.procedure import ProcedureDefinition
from app.services.variant_detection import VariantDetector, are_procedure_variants

logger = logging.getLogger(__name__)

# Minimum times a procedure must have been added before it is used as evidence
MIN_SAMPLE_SIZE = 2

# Minimum co-occurrence count for a relationship to be considered
MIN_COOCCURRENCE_COUNT = 1

# Default number of suggestions returned
DEFAULT_MAX_SUGGESTIONS = 10

# Tolerance for comparing combined percentages against the threshold
_THRESHOLD_EPSILON = 1e-9


@dataclass(frozen=True)
class ProcedureSuggestion:
    """A suggested procedure with its combined confidence."""

    procedure: ProcedureDefinition
    confidence: int  # Combined percentage, rounded, 0-100
    co_occurrence_count: int  # Raw co-occurrence counts summed over contributing anchors
    contributing_procedures: int  # Session procedures that provided evidence

    def to_dict(self) -> dict[str, Any]:
        return {
            "control_name": self.procedure.control_name,
            "description": self.procedure.description,
            "category_id": self.procedure.category_id,
            "subcategory_id": self.procedure.subcategory_id,
            "confidence": self.confidence,
            "co_occurrence_count": self.co_occurrence_count,
            "contributing_procedures": self.contributing_procedures,
        }


class SuggestionProviderInterface(ABC):
    """Interface for suggestion providers.

    Implementations can use local statistics, LLMs, or other methods.
    Providers must not mutate the catalog or prediction data passed in.
    """

    name: str = ""

    @abstractmethod
    def get_suggestions(
        self,
        session_control_names: Sequence[str],
        all_procedures: Iterable[ProcedureDefinition],
        prediction_data: PredictionData,
        threshold: float,
        max_results: int = DEFAULT_MAX_SUGGESTIONS,
    ) -> list[ProcedureSuggestion]:
        """Suggest procedures to add to the current session.

        Args:
            session_control_names: Control names already in the session.
            all_procedures: Full procedure catalog.
            prediction_data: Aggregated co-occurrence statistics.
            threshold: Minimum confidence percentage (0-100, inclusive).
            max_results: Maximum number of suggestions to return.

        Returns:
            Suggestions ordered best first.
        """
        pass  # pragma: no cover

    @abstractmethod
    def is_available(self) -> bool:
        """Check if this provider is configured and usable."""
        pass  # pragma: no cover


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class LocalStatisticalProvider(SuggestionProviderInterface):
    """Suggests procedures from locally tracked co-occurrence statistics.

    Stateless: every call is a pure function of its arguments, so a single
    instance can be shared between callers without locking.

    Usage:
        provider = LocalStatisticalProvider()
        suggestions = provider.get_suggestions(
            ["Procedures01_CPR_chk"], catalog.procedures, predictions, threshold=30
        )
    """

    name = "Local Statistical"

    def __init__(
        self,
        variant_detector: VariantDetector = are_procedure_variants,
        min_sample_size: int = MIN_SAMPLE_SIZE,
        min_co_occurrence_count: int = MIN_COOCCURRENCE_COUNT,
    ) -> None:
        """Initialize the provider.

        Args:
            variant_detector: Predicate deciding whether two procedures are
                mutually exclusive variants. Defaults to description matching.
            min_sample_size: Minimum add count for an anchor to contribute.
            min_co_occurrence_count: Minimum count for a companion relationship.
        """
        self._variant_detector = variant_detector
        self._min_sample_size = min_sample_size
        self._min_co_occurrence_count = min_co_occurrence_count

    def is_available(self) -> bool:
        """Always available - uses local data."""
        return True

    def get_suggestions(
        self,
        session_control_names: Sequence[str],
        all_procedures: Iterable[ProcedureDefinition],
        prediction_data: PredictionData,
        threshold: float,
        max_results: int = DEFAULT_MAX_SUGGESTIONS,
    ) -> list[ProcedureSuggestion]:
        """Suggest procedures using noisy-OR combined co-occurrence evidence."""
        if not session_control_names:
            return []

        procedure_map = {procedure.control_name: procedure for procedure in all_procedures}
        # Collapse duplicates, keeping first-seen order
        session_ids = list(dict.fromkeys(session_control_names))
        session_set = set(session_ids)
        session_procedures = [procedure_map[cid] for cid in session_ids if cid in procedure_map]

        evidence, co_occurrence_sums = self._collect_evidence(
            session_ids, session_set, session_procedures, procedure_map, prediction_data
        )

        suggestions: list[ProcedureSuggestion] = []
        for control_name, confidences in evidence.items():
            combined_percent = self.combine_confidences(confidences) * 100
            # Compare before rounding; entries exactly at the threshold are kept
            if combined_percent + _THRESHOLD_EPSILON < threshold:
                continue
            suggestions.append(
                ProcedureSuggestion(
                    procedure=procedure_map[control_name],
                    confidence=_round_half_up(combined_percent),
                    co_occurrence_count=co_occurrence_sums[control_name],
                    contributing_procedures=len(confidences),
                )
            )

        suggestions.sort(
            key=lambda s: (s.confidence, s.contributing_procedures, s.co_occurrence_count),
            reverse=True,
        )

        logger.debug(
            f"{len(evidence)} candidates from {len(session_ids)} session procedures, "
            f"{len(suggestions)} at or above {threshold}%"
        )
        return suggestions[: max(max_results, 0)]

    def _collect_evidence(
        self,
        session_ids: list[str],
        session_set: set[str],
        session_procedures: list[ProcedureDefinition],
        procedure_map: dict[str, ProcedureDefinition],
        prediction_data: PredictionData,
    ) -> tuple[dict[str, list[float]], dict[str, int]]:
        """Gather individual confidences per candidate from every session anchor.

        Returns:
            Tuple of (candidate -> individual confidences in [0, 1],
            candidate -> summed raw co-occurrence counts).
        """
        add_counts = prediction_data.procedure_add_counts or {}
        co_occurrences = prediction_data.co_occurrences or {}

        evidence: dict[str, list[float]] = {}
        co_occurrence_sums: dict[str, int] = {}
        variant_cache: dict[str, bool] = {}

        for anchor in session_ids:
            companions = co_occurrences.get(anchor)
            if not companions:
                continue

            anchor_count = add_counts.get(anchor, 0)
            if anchor_count < self._min_sample_size:
                continue

            for candidate, count in companions.items():
                if candidate in session_set or candidate not in procedure_map:
                    continue
                if count < self._min_co_occurrence_count:
                    continue

                if candidate not in variant_cache:
                    candidate_procedure = procedure_map[candidate]
                    variant_cache[candidate] = any(
                        self._variant_detector(session_procedure, candidate_procedure)
                        for session_procedure in session_procedures
                    )
                if variant_cache[candidate]:
                    continue

                # Counts can exceed the anchor total after merging datasets
                confidence = min(count / anchor_count, 1.0)
                evidence.setdefault(candidate, []).append(confidence)
                co_occurrence_sums[candidate] = co_occurrence_sums.get(candidate, 0) + count

        return evidence, co_occurrence_sums

    @staticmethod
    def combine_confidences(confidences: Iterable[float]) -> float:
        """Combine independent confidences with a noisy-OR model.

        The product of complements is the probability that none of the
        signals fires; its complement is the probability that at least one does.

        Args:
            confidences: Individual probabilities in [0, 1].

        Returns:
            Combined probability in [0, 1].
        """
        none_fire = 1.0
        for confidence in confidences:
            none_fire *= 1.0 - confidence
        return 1.0 - none_fire


class GeminiProvider(SuggestionProviderInterface):
    """Suggests procedures using Google's Gemini models.

    Placeholder backend: it reports itself unavailable and returns no
    suggestions until the remote integration is implemented.
    """

    name = "Gemini AI"

    def __init__(self, api_key: str | None = None) -> None:
        self._api_key = api_key

    @property
    def has_api_key(self) -> bool:
        return bool(self._api_key)

    def set_api_key(self, api_key: str | None) -> None:
        self._api_key = api_key

    def is_available(self) -> bool:
        return False

    def get_suggestions(
        self,
        session_control_names: Sequence[str],
        all_procedures: Iterable[ProcedureDefinition],
        prediction_data: PredictionData,
        threshold: float,
        max_results: int = DEFAULT_MAX_SUGGESTIONS,
    ) -> list[ProcedureSuggestion]:
        logger.debug(f"GeminiProvider not implemented, API key present: {self.has_api_key}")
        return []


# ============================================================================
# Provider Factory
# ============================================================================

ProviderFactory = Callable[[SuggestionSettings], SuggestionProviderInterface]

_provider_factories: dict[str, ProviderFactory] = {
    AIProviderName.LOCAL.value: lambda settings: LocalStatisticalProvider(),
    AIProviderName.GEMINI.value: lambda settings: GeminiProvider(settings.ai_api_key),
}
_provider_factories_lock = Lock()


def register_suggestion_provider(name: str, factory: ProviderFactory) -> None:
    """Register a backend under a provider tag.

    Registered backends become selectable through the ``ai_provider``
    setting without changes to calling code.

    Args:
        name: Provider tag matched against SuggestionSettings.ai_provider.
        factory: Callable building the provider from settings.
    """
    with _provider_factories_lock:
        _provider_factories[name.lower()] = factory


def get_registered_providers() -> list[str]:
    """Get the provider tags that can be selected."""
    return sorted(_provider_factories)


def create_suggestion_provider(settings: SuggestionSettings) -> SuggestionProviderInterface:
    """Create the suggestion provider selected by settings.

    Unknown provider tags fall back to the local statistical provider.
    """
    tag = (settings.ai_provider or "").lower()
    factory = _provider_factories.get(tag)
    if factory is None:
        logger.warning(f"Unknown suggestion provider '{settings.ai_provider}', using local statistics")
        return LocalStatisticalProvider()
    return factory(settings)


def get_default_provider() -> SuggestionProviderInterface:
    """Get a new local statistical provider."""
    return LocalStatisticalProvider()

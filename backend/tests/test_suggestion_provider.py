"""Tests for procedure suggestion providers.

Covers the local statistical engine (evidence gating, noisy-OR combination,
threshold, variant suppression, ranking and truncation), the Gemini
placeholder and the provider factory.
"""

import pytest

from app.schemas.prediction import PredictionData, SuggestionSettings
from app.services.suggestion_provider import (
    DEFAULT_MAX_SUGGESTIONS,
    MIN_COOCCURRENCE_COUNT,
    MIN_SAMPLE_SIZE,
    GeminiProvider,
    LocalStatisticalProvider,
    ProcedureSuggestion,
    _provider_factories,
    create_suggestion_provider,
    get_default_provider,
    get_registered_providers,
    register_suggestion_provider,
)

from conftest import make_prediction_data, make_procedure

PROCEDURES = [
    make_procedure("A", "Anchor A", category_id="cat-a", subcategory_id="sub-a"),
    make_procedure("B", "Anchor B"),
    make_procedure("C", "Anchor C"),
    make_procedure("D", "Companion D", category_id="cat-d", subcategory_id="sub-d"),
    make_procedure("E", "Companion E"),
    make_procedure("F", "Companion F"),
    make_procedure("CentralLineGTE5", "Central Line >= 5 years old"),
    make_procedure("CentralLineLT5", "Central line < 5 years old"),
]


def _control_names(suggestions: list[ProcedureSuggestion]) -> list[str]:
    return [s.procedure.control_name for s in suggestions]


# ============================================================================
# Constants
# ============================================================================


class TestConstants:
    """Test engine constants."""

    def test_defaults(self):
        """Test the default gating and result constants."""
        assert MIN_SAMPLE_SIZE == 2
        assert MIN_COOCCURRENCE_COUNT == 1
        assert DEFAULT_MAX_SUGGESTIONS == 10


# ============================================================================
# Local Statistical Provider
# ============================================================================


class TestLocalProviderBasics:
    """Test provider identity and trivial inputs."""

    def setup_method(self):
        self.provider = LocalStatisticalProvider()

    def test_name_and_availability(self):
        """Test that the local provider is always available."""
        assert self.provider.name == "Local Statistical"
        assert self.provider.is_available() is True

    def test_empty_session_returns_empty(self):
        """Test that an empty session yields no suggestions."""
        data = make_prediction_data({"A": 10}, {"A": {"D": 9}})

        assert self.provider.get_suggestions([], PROCEDURES, data, threshold=0) == []

    def test_cold_start_returns_empty(self):
        """Test that empty prediction data yields no suggestions."""
        assert self.provider.get_suggestions(["A"], PROCEDURES, PredictionData(), threshold=0) == []

    def test_suggestion_fields(self):
        """Test the fields of a single suggestion."""
        data = make_prediction_data({"A": 10}, {"A": {"D": 4}})

        suggestions = self.provider.get_suggestions(["A"], PROCEDURES, data, threshold=0)

        assert len(suggestions) == 1
        suggestion = suggestions[0]
        assert suggestion.procedure.control_name == "D"
        assert suggestion.confidence == 40
        assert suggestion.co_occurrence_count == 4
        assert suggestion.contributing_procedures == 1

    def test_to_dict(self):
        """Test the serialized form of a suggestion."""
        data = make_prediction_data({"A": 10}, {"A": {"D": 4}})

        result = self.provider.get_suggestions(["A"], PROCEDURES, data, threshold=0)[0].to_dict()

        assert result == {
            "control_name": "D",
            "description": "Companion D",
            "category_id": "cat-d",
            "subcategory_id": "sub-d",
            "confidence": 40,
            "co_occurrence_count": 4,
            "contributing_procedures": 1,
        }

    def test_inputs_not_mutated(self):
        """Test that prediction data is left untouched."""
        data = make_prediction_data({"A": 10, "B": 10}, {"A": {"D": 4}, "B": {"D": 3, "A": 2}})
        before = data.model_dump()

        self.provider.get_suggestions(["A", "B"], PROCEDURES, data, threshold=0)

        assert data.model_dump() == before


class TestEvidenceGating:
    """Test which co-occurrences count as evidence."""

    def setup_method(self):
        self.provider = LocalStatisticalProvider()

    def test_no_self_suggestion(self):
        """Test that a procedure never suggests itself."""
        data = make_prediction_data({"A": 10}, {"A": {"A": 9, "D": 5}})

        suggestions = self.provider.get_suggestions(["A"], PROCEDURES, data, threshold=0)

        assert _control_names(suggestions) == ["D"]

    def test_session_members_not_suggested(self):
        """Test that procedures already in the session are excluded."""
        data = make_prediction_data({"A": 10, "B": 10}, {"A": {"B": 9, "D": 5}})

        suggestions = self.provider.get_suggestions(["A", "B"], PROCEDURES, data, threshold=0)

        assert "B" not in _control_names(suggestions)
        assert "D" in _control_names(suggestions)

    def test_anchor_below_min_sample_size_ignored(self):
        """Test that anchors with too little history contribute nothing."""
        data = make_prediction_data({"A": 1}, {"A": {"D": 1}})

        assert self.provider.get_suggestions(["A"], PROCEDURES, data, threshold=0) == []

    def test_anchor_without_add_count_ignored(self):
        """Test that anchors missing from the add counts contribute nothing."""
        data = make_prediction_data({}, {"A": {"D": 50}})

        assert self.provider.get_suggestions(["A"], PROCEDURES, data, threshold=0) == []

    def test_anchor_at_min_sample_size_used(self):
        """Test that an anchor exactly at the minimum sample size contributes."""
        data = make_prediction_data({"A": 2}, {"A": {"D": 1}})

        suggestions = self.provider.get_suggestions(["A"], PROCEDURES, data, threshold=0)

        assert _control_names(suggestions) == ["D"]
        assert suggestions[0].confidence == 50

    def test_unknown_candidate_skipped(self):
        """Test that companions missing from the catalog are skipped."""
        data = make_prediction_data({"A": 10}, {"A": {"Unknown": 9, "D": 2}})

        suggestions = self.provider.get_suggestions(["A"], PROCEDURES, data, threshold=0)

        assert _control_names(suggestions) == ["D"]

    def test_unknown_session_procedure_still_used_as_anchor(self):
        """Test that statistics for a session id missing from the catalog still count."""
        data = make_prediction_data({"Retired": 10}, {"Retired": {"D": 6}})

        suggestions = self.provider.get_suggestions(["Retired"], PROCEDURES, data, threshold=0)

        assert _control_names(suggestions) == ["D"]

    def test_zero_count_companion_skipped(self):
        """Test that companions below the minimum co-occurrence count are skipped."""
        data = make_prediction_data({"A": 10}, {"A": {"D": 0, "E": 1}})

        suggestions = self.provider.get_suggestions(["A"], PROCEDURES, data, threshold=0)

        assert _control_names(suggestions) == ["E"]

    def test_confidence_clamped_to_100(self):
        """Test that co-occurrence above the add count caps at 100%."""
        data = make_prediction_data({"A": 10}, {"A": {"D": 15}})

        suggestions = self.provider.get_suggestions(["A"], PROCEDURES, data, threshold=0)

        assert suggestions[0].confidence == 100

    def test_duplicate_session_ids_counted_once(self):
        """Test that repeated session ids contribute a single piece of evidence."""
        data = make_prediction_data({"A": 10}, {"A": {"D": 4}})

        suggestions = self.provider.get_suggestions(["A", "A"], PROCEDURES, data, threshold=0)

        assert suggestions[0].confidence == 40
        assert suggestions[0].contributing_procedures == 1

    def test_custom_min_sample_size(self):
        """Test overriding the minimum sample size."""
        provider = LocalStatisticalProvider(min_sample_size=20)
        data = make_prediction_data({"A": 10}, {"A": {"D": 4}})

        assert provider.get_suggestions(["A"], PROCEDURES, data, threshold=0) == []


class TestNoisyOrCombination:
    """Test noisy-OR combination of evidence."""

    def setup_method(self):
        self.provider = LocalStatisticalProvider()

    def test_combine_confidences(self):
        """Test the combination formula directly."""
        assert LocalStatisticalProvider.combine_confidences([0.4, 0.3]) == pytest.approx(0.58)
        assert LocalStatisticalProvider.combine_confidences([0.3, 0.3, 0.3]) == pytest.approx(0.657)
        assert LocalStatisticalProvider.combine_confidences([]) == 0.0
        assert LocalStatisticalProvider.combine_confidences([1.0, 0.2]) == 1.0

    def test_two_anchors(self):
        """Test that 40% and 30% evidence combine to 58%."""
        data = make_prediction_data({"A": 10, "B": 10}, {"A": {"D": 4}, "B": {"D": 3}})

        suggestions = self.provider.get_suggestions(["A", "B"], PROCEDURES, data, threshold=0)

        assert len(suggestions) == 1
        assert suggestions[0].confidence == 58
        assert suggestions[0].contributing_procedures == 2
        assert suggestions[0].co_occurrence_count == 7

    def test_third_anchor_raises_confidence(self):
        """Test that additional evidence strictly increases confidence."""
        two = make_prediction_data({"A": 10, "B": 10}, {"A": {"D": 3}, "B": {"D": 3}})
        three = make_prediction_data(
            {"A": 10, "B": 10, "C": 10},
            {"A": {"D": 3}, "B": {"D": 3}, "C": {"D": 3}},
        )

        with_two = self.provider.get_suggestions(["A", "B", "C"], PROCEDURES, two, threshold=0)
        with_three = self.provider.get_suggestions(["A", "B", "C"], PROCEDURES, three, threshold=0)

        assert with_two[0].confidence == 51
        assert with_three[0].confidence == 66
        assert with_three[0].confidence > with_two[0].confidence
        assert with_three[0].contributing_procedures == 3


class TestThreshold:
    """Test threshold filtering."""

    def setup_method(self):
        self.provider = LocalStatisticalProvider()
        self.data = make_prediction_data(
            {"A": 10, "B": 100},
            {"A": {"D": 5}, "B": {"E": 49}},
        )

    def test_exact_threshold_included(self):
        """Test that a candidate exactly at the threshold is kept."""
        suggestions = self.provider.get_suggestions(["A"], PROCEDURES, self.data, threshold=50)

        assert _control_names(suggestions) == ["D"]

    def test_below_threshold_excluded(self):
        """Test that a candidate one point below the threshold is dropped."""
        suggestions = self.provider.get_suggestions(["B"], PROCEDURES, self.data, threshold=50)

        assert suggestions == []

    def test_comparison_uses_unrounded_value(self):
        """Test that 49.6% rounds to 50 for display but fails a 50% threshold."""
        data = make_prediction_data({"A": 250}, {"A": {"D": 124}})

        assert self.provider.get_suggestions(["A"], PROCEDURES, data, threshold=50) == []
        suggestions = self.provider.get_suggestions(["A"], PROCEDURES, data, threshold=49)
        assert suggestions[0].confidence == 50

    def test_zero_threshold_keeps_everything(self):
        """Test that threshold 0 keeps every candidate with evidence."""
        suggestions = self.provider.get_suggestions(["A", "B"], PROCEDURES, self.data, threshold=0)

        assert set(_control_names(suggestions)) == {"D", "E"}


class TestVariantSuppression:
    """Test that variants of session procedures are never suggested."""

    def setup_method(self):
        self.provider = LocalStatisticalProvider()

    def test_age_variant_suppressed(self):
        """Test that the other age bracket is suppressed despite strong evidence."""
        data = make_prediction_data(
            {"CentralLineGTE5": 10},
            {"CentralLineGTE5": {"CentralLineLT5": 10, "D": 5}},
        )

        suggestions = self.provider.get_suggestions(["CentralLineGTE5"], PROCEDURES, data, threshold=0)

        assert _control_names(suggestions) == ["D"]

    def test_variant_of_any_session_procedure_suppressed(self):
        """Test suppression when the evidence comes from a different anchor."""
        data = make_prediction_data({"A": 10}, {"A": {"CentralLineLT5": 9, "D": 5}})

        suggestions = self.provider.get_suggestions(
            ["A", "CentralLineGTE5"], PROCEDURES, data, threshold=0
        )

        assert _control_names(suggestions) == ["D"]

    def test_custom_variant_detector(self):
        """Test that the variant predicate can be replaced."""
        data = make_prediction_data(
            {"CentralLineGTE5": 10},
            {"CentralLineGTE5": {"CentralLineLT5": 10, "D": 5}},
        )

        never = LocalStatisticalProvider(variant_detector=lambda first, second: False)
        always = LocalStatisticalProvider(variant_detector=lambda first, second: True)

        assert _control_names(
            never.get_suggestions(["CentralLineGTE5"], PROCEDURES, data, threshold=0)
        ) == ["CentralLineLT5", "D"]
        assert always.get_suggestions(["CentralLineGTE5"], PROCEDURES, data, threshold=0) == []


class TestRanking:
    """Test ordering and truncation of suggestions."""

    def setup_method(self):
        self.provider = LocalStatisticalProvider()
        # D: 51% from two anchors, E: 51% from one anchor with 102 co-occurrences,
        # F: 51% from one anchor with 51 co-occurrences
        self.data = make_prediction_data(
            {"A": 10, "B": 10, "C": 200, "CentralLineGTE5": 100},
            {
                "A": {"D": 3},
                "B": {"D": 3},
                "C": {"E": 102},
                "CentralLineGTE5": {"F": 51},
            },
        )
        self.session = ["A", "B", "C", "CentralLineGTE5"]

    def test_confidence_descending(self):
        """Test that higher confidence ranks first."""
        data = make_prediction_data({"A": 10}, {"A": {"D": 2, "E": 7, "F": 4}})

        suggestions = self.provider.get_suggestions(["A"], PROCEDURES, data, threshold=0)

        assert _control_names(suggestions) == ["E", "F", "D"]
        assert [s.confidence for s in suggestions] == [70, 40, 20]

    def test_tie_breaks(self):
        """Test contributor count then co-occurrence sum as tie-breaks."""
        suggestions = self.provider.get_suggestions(self.session, PROCEDURES, self.data, threshold=0)

        assert [s.confidence for s in suggestions] == [51, 51, 51]
        assert _control_names(suggestions) == ["D", "E", "F"]

    def test_max_results_truncates_in_order(self):
        """Test that truncation keeps the best entries in order."""
        suggestions = self.provider.get_suggestions(
            self.session, PROCEDURES, self.data, threshold=0, max_results=2
        )

        assert _control_names(suggestions) == ["D", "E"]

    def test_max_results_zero_returns_empty(self):
        """Test that a non-positive limit returns nothing."""
        assert self.provider.get_suggestions(
            self.session, PROCEDURES, self.data, threshold=0, max_results=0
        ) == []

    def test_default_max_results(self):
        """Test that at most ten suggestions are returned by default."""
        procedures = [make_procedure("Anchor")] + [make_procedure(f"P{i:02d}") for i in range(15)]
        data = make_prediction_data(
            {"Anchor": 100},
            {"Anchor": {f"P{i:02d}": 50 + i for i in range(15)}},
        )

        suggestions = self.provider.get_suggestions(["Anchor"], procedures, data, threshold=0)

        assert len(suggestions) == DEFAULT_MAX_SUGGESTIONS
        assert _control_names(suggestions)[0] == "P14"


# ============================================================================
# Gemini Provider
# ============================================================================


class TestGeminiProvider:
    """Test the Gemini placeholder provider."""

    def test_not_available(self):
        """Test that the provider reports itself unavailable."""
        provider = GeminiProvider(api_key="secret")

        assert provider.name == "Gemini AI"
        assert provider.is_available() is False

    def test_returns_no_suggestions(self):
        """Test that suggestions are always empty."""
        provider = GeminiProvider(api_key="secret")
        data = make_prediction_data({"A": 10}, {"A": {"D": 9}})

        assert provider.get_suggestions(["A"], PROCEDURES, data, threshold=0) == []

    def test_api_key(self):
        """Test API key configuration."""
        provider = GeminiProvider()
        assert provider.has_api_key is False

        provider.set_api_key("secret")
        assert provider.has_api_key is True


# ============================================================================
# Provider Factory
# ============================================================================


class TestProviderFactory:
    """Test provider selection from settings."""

    def test_local_by_default(self):
        """Test that default settings select the local provider."""
        provider = create_suggestion_provider(SuggestionSettings())

        assert isinstance(provider, LocalStatisticalProvider)

    def test_gemini_selected(self):
        """Test that the gemini tag selects the Gemini provider with its key."""
        provider = create_suggestion_provider(SuggestionSettings(ai_provider="gemini", ai_api_key="k"))

        assert isinstance(provider, GeminiProvider)
        assert provider.has_api_key is True

    def test_tag_case_insensitive(self):
        """Test that provider tags are matched case-insensitively."""
        provider = create_suggestion_provider(SuggestionSettings(ai_provider="GEMINI"))

        assert isinstance(provider, GeminiProvider)

    def test_unknown_tag_falls_back_to_local(self):
        """Test that unrecognized tags fall back to the local provider."""
        provider = create_suggestion_provider(SuggestionSettings(ai_provider="openai"))

        assert isinstance(provider, LocalStatisticalProvider)

    def test_registered_providers(self):
        """Test that built-in tags are registered."""
        assert {"gemini", "local"} <= set(get_registered_providers())

    def test_register_new_provider(self):
        """Test that a new backend becomes selectable without changing callers."""
        custom = LocalStatisticalProvider(min_sample_size=1)
        register_suggestion_provider("Custom", lambda settings: custom)
        try:
            assert "custom" in get_registered_providers()
            assert create_suggestion_provider(SuggestionSettings(ai_provider="custom")) is custom
        finally:
            _provider_factories.pop("custom", None)

    def test_default_provider_is_fresh_instance(self):
        """Test that the default provider is not a shared singleton."""
        first = get_default_provider()
        second = get_default_provider()

        assert isinstance(first, LocalStatisticalProvider)
        assert first is not second

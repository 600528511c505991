"""Tests for procedure variant detection."""

import pytest

from app.services.variant_detection import are_procedure_variants, get_base_procedure_name

from conftest import make_procedure


class TestBaseProcedureName:
    """Tests for description normalization."""

    @pytest.mark.parametrize(
        "description,expected",
        [
            ("Central Line >= 5 years old", "central line"),
            ("Central line < 5 years old", "central line"),
            ("PICC Line >= 5 years", "picc line"),
            ("Sedation ≥ 2 yo", "sedation"),
            ("Lumbar Puncture (Adult)", "lumbar puncture"),
            ("Lumbar Puncture (Pediatric)", "lumbar puncture"),
            ("IO Access - Tibial", "io access"),
            ("Large w/ US guidance", "w/ us guidance"),
            ("Small w/ US guidance", "w/ us guidance"),
            ("Neonate Intubation", "intubation"),
            ("Bilirubin check 3 months", "bilirubin check"),
        ],
    )
    def test_qualifiers_stripped(self, description: str, expected: str) -> None:
        """Test that age, parenthetical, dash and size qualifiers are removed."""
        assert get_base_procedure_name(description) == expected

    def test_plain_description_lowercased(self) -> None:
        """Test that unqualified descriptions are only lowercased."""
        assert get_base_procedure_name("Bladder Scan") == "bladder scan"

    def test_whitespace_collapsed(self) -> None:
        """Test that repeated whitespace collapses to a single space."""
        assert get_base_procedure_name("  Nasal   Pack  ") == "nasal pack"

    def test_size_words_match_whole_words_only(self) -> None:
        """Test that size words inside other words are kept."""
        assert get_base_procedure_name("Adulteration Screen") == "adulteration screen"

    def test_digits_without_unit_kept(self) -> None:
        """Test that numbers that are not ages survive normalization."""
        assert get_base_procedure_name("End Tidal CO2") == "end tidal co2"

    def test_multi_word_dash_suffix_kept(self) -> None:
        """Test that only single-word trailing dash qualifiers are removed."""
        assert get_base_procedure_name("Catheter - Straight Cath") == "catheter - straight cath"


class TestAreProcedureVariants:
    """Tests for the variant predicate."""

    def test_age_variants_detected(self) -> None:
        """Test that procedures differing by age bracket are variants."""
        older = make_procedure("CentralLineGTE5", "Central Line >= 5 years old")
        younger = make_procedure("CentralLineLT5", "Central line < 5 years old")

        assert are_procedure_variants(older, younger) is True
        assert are_procedure_variants(younger, older) is True

    def test_size_variants_detected(self) -> None:
        """Test that procedures differing by size word are variants."""
        large = make_procedure("JointLarge", "Large w/ US guidance")
        small = make_procedure("JointSmall", "Small w/ US guidance")

        assert are_procedure_variants(large, small) is True

    def test_procedure_is_not_its_own_variant(self) -> None:
        """Test that the same control name is never a variant."""
        procedure = make_procedure("CentralLineGTE5", "Central Line >= 5 years old")

        assert are_procedure_variants(procedure, procedure) is False

    def test_unrelated_procedures_not_variants(self) -> None:
        """Test that different base names are not variants."""
        cpr = make_procedure("CPR", "CPR")
        intubation = make_procedure("Intubation", "Intubation")

        assert are_procedure_variants(cpr, intubation) is False

    def test_fixture_variants(self, procedure_catalog) -> None:
        """Test variant pairs in the bundled catalog."""
        picc_older = procedure_catalog.get_procedure("Procedures01_PICCLineGTE5_chk")
        picc_younger = procedure_catalog.get_procedure("Procedures01_PICCLineLT5_chk")
        central = procedure_catalog.get_procedure("Procedures01_CentralLineGTE5_chk")

        assert are_procedure_variants(picc_older, picc_younger) is True
        assert are_procedure_variants(picc_older, central) is False

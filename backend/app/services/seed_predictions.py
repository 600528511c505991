"""Seed prediction data from clinical bundles.

A fresh installation has no history, so no suggestions can be made. Seeding
pre-populates co-occurrence counts from bundles of procedures that are
commonly performed together at a given facility type. The bundle weight is
used as a simulated co-occurrence count.

Note: Bundles reflect common emergency-department workflows and are a
starting point only; real usage statistics accumulate on top of them.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime

from app.schemas.base import FacilityType
from app.schemas.prediction import PREDICTION_DATA_VERSION, PredictionData, SeededFrom
from app.schemas.procedure import ProcedureDefinition

logger = logging.getLogger(__name__)

ED = FacilityType.ED
OBSERVATION = FacilityType.OBSERVATION
URGENT_CARE = FacilityType.URGENT_CARE
INFUSION_CENTER = FacilityType.INFUSION_CENTER


@dataclass(frozen=True)
class ClinicalBundle:
    """Procedures commonly performed together."""

    name: str
    facility_types: tuple[FacilityType, ...]
    # Case-insensitive substrings matched against control names and descriptions
    procedure_patterns: tuple[str, ...]
    weight: int  # Simulated co-occurrence count

    def applies_to(self, facility_types: Iterable[FacilityType]) -> bool:
        return any(ft in self.facility_types for ft in facility_types)


# ============================================================================
# Clinical Bundles
# ============================================================================

CLINICAL_BUNDLES: list[ClinicalBundle] = [
    # ED Trauma / Resuscitation
    ClinicalBundle(
        name="Trauma Resuscitation",
        facility_types=(ED,),
        procedure_patterns=(
            "Intubation", "ChestTube", "CentralLine", "ArterialCat",
            "CPR", "ProceduralSedation", "Thoracentesis",
        ),
        weight=50,
    ),
    ClinicalBundle(
        name="Cardiac Arrest",
        facility_types=(ED,),
        procedure_patterns=(
            "CPR", "Cardioversion", "PacerExternal", "PacerInternal",
            "CentralLine", "Intubation", "EndTidalCO2", "ArterialCat",
        ),
        weight=60,
    ),
    ClinicalBundle(
        name="Airway Management Bundle",
        facility_types=(ED,),
        procedure_patterns=(
            "Intubation", "Cricothyroidotomy", "Tracheostomy",
            "ProceduralSedation", "EndTidalCO2", "OxygenTherapy",
        ),
        weight=55,
    ),
    # Respiratory
    ClinicalBundle(
        name="Respiratory Distress",
        facility_types=(ED, OBSERVATION),
        procedure_patterns=(
            "BiPap", "CPap", "Nebulizer", "OxygenTherapy",
            "Intubation", "ArterialCat", "EndTidalCO2",
        ),
        weight=45,
    ),
    ClinicalBundle(
        name="Asthma/COPD Exacerbation",
        facility_types=(ED, URGENT_CARE),
        procedure_patterns=("Nebulizer", "OxygenTherapy", "BiPap", "CPap"),
        weight=40,
    ),
    # Cardiovascular
    ClinicalBundle(
        name="Arrhythmia Management",
        facility_types=(ED,),
        procedure_patterns=("Cardioversion", "CardiacMonitor", "ProceduralSedation", "CentralLine"),
        weight=45,
    ),
    ClinicalBundle(
        name="Vascular Access Bundle",
        facility_types=(ED, OBSERVATION, INFUSION_CENTER),
        procedure_patterns=("CentralLine", "PICCLine", "ArterialCat", "DeclotVascularDevice"),
        weight=35,
    ),
    # Epistaxis
    ClinicalBundle(
        name="Epistaxis Management",
        facility_types=(ED, URGENT_CARE),
        procedure_patterns=("NasalCautery", "NasalPackAnterior", "NasalPackPosterior", "NasalPackBalloon"),
        weight=50,
    ),
    # Sedation
    ClinicalBundle(
        name="Procedural Sedation Pairing",
        facility_types=(ED,),
        procedure_patterns=("ProceduralSedation", "Cardioversion", "LumbarPuncture", "ChestTube"),
        weight=55,
    ),
    # GI
    ClinicalBundle(
        name="GI Bleed Workup",
        facility_types=(ED, OBSERVATION),
        procedure_patterns=("NGWithLavage", "NGWithSuction", "FoleyCatheter", "CentralLine"),
        weight=40,
    ),
    ClinicalBundle(
        name="GI Tube Management",
        facility_types=(ED, OBSERVATION),
        procedure_patterns=("NGWithLavage", "NGWithSuction", "GTubeReposition", "GTubeReplacement"),
        weight=35,
    ),
    # Abscess / Wound Care
    ClinicalBundle(
        name="Abscess Drainage",
        facility_types=(ED, URGENT_CARE),
        procedure_patterns=("IncisionDrainage", "DigitialBlock", "BlocksForPain"),
        weight=50,
    ),
    ClinicalBundle(
        name="Wound Care Bundle",
        facility_types=(ED, URGENT_CARE),
        procedure_patterns=("IncisionDrainage", "Debridement", "WoundDehiscence"),
        weight=40,
    ),
    # Neuro
    ClinicalBundle(
        name="LP Procedure",
        facility_types=(ED,),
        procedure_patterns=("LumbarPuncture", "ProceduralSedation", "EpiduralBloodPatch"),
        weight=45,
    ),
    # Foreign Body
    ClinicalBundle(
        name="Eye Foreign Body",
        facility_types=(ED, URGENT_CARE),
        procedure_patterns=("FBCornea", "FBConjunctiva"),
        weight=45,
    ),
    ClinicalBundle(
        name="ENT Foreign Body",
        facility_types=(ED, URGENT_CARE),
        procedure_patterns=(
            "ForeignBodyRemoval_Nose", "ForeignBodyRemoval_Ear",
            "ForeignBodyRemoval_Pharynx", "Laryngoscopy",
        ),
        weight=40,
    ),
    # Urinary
    ClinicalBundle(
        name="Urinary Catheterization",
        facility_types=(ED, OBSERVATION),
        procedure_patterns=("FoleyCatheter", "CatheterStraighCath", "CathForUA", "BladderScan", "IrrigationBladder"),
        weight=45,
    ),
    # Observation Unit
    ClinicalBundle(
        name="CHF Observation",
        facility_types=(OBSERVATION,),
        procedure_patterns=("BiPap", "CPap", "FoleyCatheter", "CardiacMonitor", "OxygenTherapy"),
        weight=40,
    ),
    # Obstetrics
    ClinicalBundle(
        name="Delivery Bundle",
        facility_types=(ED,),
        procedure_patterns=("VaginalDelivery", "CesareanSection", "NewbornResuscitation", "FetalNonStressTest"),
        weight=50,
    ),
    # Orthopedic / Cast
    ClinicalBundle(
        name="Fracture Care",
        facility_types=(ED, URGENT_CARE),
        procedure_patterns=("CastChangesSimpleImmob", "Splint", "DigitialBlock", "ProceduralSedation"),
        weight=40,
    ),
    ClinicalBundle(
        name="Cast Management",
        facility_types=(ED, URGENT_CARE),
        procedure_patterns=(
            "RemoveLongArmCast", "RemoveLegCast", "RemoveArmCastGauntlet",
            "Bivalve", "WedgeCast", "WindowCast",
        ),
        weight=35,
    ),
    # Burns
    ClinicalBundle(
        name="Burn Care",
        facility_types=(ED,),
        procedure_patterns=("Escharotomy", "FirstDegree", "PartialThickness", "Debridement"),
        weight=45,
    ),
    # Infusion Center
    ClinicalBundle(
        name="Infusion Access",
        facility_types=(INFUSION_CENTER,),
        procedure_patterns=("PICCLine", "CentralLine", "DeclotVascularDevice"),
        weight=50,
    ),
    # Urgent Care
    ClinicalBundle(
        name="Minor Procedures",
        facility_types=(URGENT_CARE,),
        procedure_patterns=("IncisionDrainage_Skin", "DigitialBlock", "ImpactedCerumen", "DrainSubungualHematoma"),
        weight=35,
    ),
    ClinicalBundle(
        name="Nail Procedures",
        facility_types=(ED, URGENT_CARE),
        procedure_patterns=(
            "DrainSubungualHematoma", "AvulsionOfNailPlate", "DebridementOfNail",
            "RepairOfNailbed", "WedgeResectionToenail", "ExciseIngrownToenail", "DigitialBlock",
        ),
        weight=45,
    ),
    ClinicalBundle(
        name="Joint Procedures",
        facility_types=(ED, URGENT_CARE),
        procedure_patterns=("InjectAspirateJoints", "GanglionCyst", "BlocksForPain"),
        weight=40,
    ),
]


def procedure_matches_pattern(procedure: ProcedureDefinition, pattern: str) -> bool:
    """Check if a pattern is a case-insensitive substring of the id or description."""
    pattern_lower = pattern.lower()
    return (
        pattern_lower in procedure.control_name.lower()
        or pattern_lower in procedure.description.lower()
    )


def find_matching_procedures(
    procedures: Iterable[ProcedureDefinition],
    patterns: Iterable[str],
) -> list[ProcedureDefinition]:
    """Find all procedures matching any of the given patterns."""
    patterns = list(patterns)
    return [
        procedure for procedure in procedures
        if any(procedure_matches_pattern(procedure, pattern) for pattern in patterns)
    ]


def generate_seed_predictions(
    procedures: Iterable[ProcedureDefinition],
    facility_types: Iterable[FacilityType],
    bundles: Iterable[ClinicalBundle] | None = None,
) -> PredictionData:
    """Generate seed prediction data from clinical bundles.

    Every procedure matched by an applicable bundle gets the bundle weight
    added to its add count and to its co-occurrence with every other
    procedure in the same bundle.

    Args:
        procedures: The procedure catalog.
        facility_types: Facility types whose bundles should be applied.
        bundles: Bundle table to use. Defaults to CLINICAL_BUNDLES.

    Returns:
        Seeded PredictionData with provenance metadata.
    """
    procedures = list(procedures)
    facility_types = [FacilityType(ft) for ft in facility_types]
    bundle_table = CLINICAL_BUNDLES if bundles is None else list(bundles)

    add_counts: dict[str, int] = {}
    co_occurrences: dict[str, dict[str, int]] = {}

    applicable = [bundle for bundle in bundle_table if bundle.applies_to(facility_types)]
    logger.info(
        f"Seeding predictions for {len(procedures)} procedures: "
        f"{len(applicable)} bundles apply to {[ft.value for ft in facility_types]}"
    )

    for bundle in applicable:
        matches = find_matching_procedures(procedures, bundle.procedure_patterns)
        logger.debug(
            f"Bundle '{bundle.name}': {len(matches)} matching procedures "
            f"from {len(bundle.procedure_patterns)} patterns"
        )
        # Need at least 2 procedures for a co-occurrence
        if len(matches) < 2:
            continue

        for anchor in matches:
            add_counts[anchor.control_name] = add_counts.get(anchor.control_name, 0) + bundle.weight
            companions = co_occurrences.setdefault(anchor.control_name, {})
            for companion in matches:
                if companion.control_name == anchor.control_name:
                    continue
                companions[companion.control_name] = (
                    companions.get(companion.control_name, 0) + bundle.weight
                )

    return PredictionData(
        version=PREDICTION_DATA_VERSION,
        procedure_add_counts=add_counts,
        co_occurrences=co_occurrences,
        seeded_from=SeededFrom(
            facility_types=facility_types,
            method="rules",
            seeded_at=datetime.now(UTC),
        ),
    )

"""Seed script for generating procedure co-occurrence statistics.

Usage:
    python -m app.scripts.seed_predictions --facility ed --facility observation
    python -m app.scripts.seed_predictions --facility ed --replace
    python -m app.scripts.seed_predictions --facility urgent-care --dry-run

Statistics are generated from the clinical bundle table for the requested
facility types and merged into (or, with --replace, written over) the
configured prediction store.
"""

import argparse
import logging
import sys

from app.core.config import settings
from app.schemas.base import FacilityType, PredictionStoreBackend
from app.services.prediction_data import get_prediction_stats
from app.services.prediction_store import create_prediction_store
from app.services.procedure_catalog import ProcedureCatalogService
from app.services.procedure_suggestions import ProcedureSuggestionService
from app.services.seed_predictions import generate_seed_predictions

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Seed procedure prediction statistics")
    parser.add_argument(
        "--facility",
        "-f",
        action="append",
        choices=[ft.value for ft in FacilityType],
        required=True,
        help="Facility type to seed (repeatable)",
    )
    parser.add_argument("--catalog", help="Path to procedure_config.json")
    parser.add_argument(
        "--backend",
        choices=[b.value for b in PredictionStoreBackend],
        default=settings.prediction_store_backend.value,
        help="Prediction store backend",
    )
    parser.add_argument("--output", "-o", default=settings.prediction_data_path, help="JSON store path")
    parser.add_argument("--replace", action="store_true", help="Replace existing statistics")
    parser.add_argument("--dry-run", action="store_true", help="Generate without saving")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Entry point for running seed script."""
    args = parse_args(argv)

    catalog = ProcedureCatalogService(args.catalog or settings.procedure_config_path)
    catalog.load()
    if not catalog.procedures:
        logger.error(f"No procedures found in {catalog.fixture_path}")
        return 1

    facility_types = [FacilityType(ft) for ft in args.facility]

    if args.dry_run:
        data = generate_seed_predictions(catalog.procedures, facility_types)
    else:
        store = create_prediction_store(args.backend, args.output)
        service = ProcedureSuggestionService(catalog, store, settings.suggestion_settings)
        data = service.seed(facility_types, replace=args.replace)

    stats = get_prediction_stats(data)
    logger.info(
        f"Prediction statistics: {stats.total_procedures} procedures, "
        f"{stats.total_pairs} pairs, {stats.total_observations} observations"
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())

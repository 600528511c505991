#!/usr/bin/env python3
"""
Procedure Suggestion Engine - Interactive Demo CLI

Builds a session one procedure at a time and shows the suggestions the
local statistical provider produces after each addition.

Usage:
    python demo_cli.py                                  # Interactive mode
    python demo_cli.py --session Procedures01_CPR_chk   # One-shot suggestions
    python demo_cli.py --facility ed --threshold 20     # Seed for ED, lower threshold
"""

import argparse
import logging
import sys

from app.schemas.base import FacilityType
from app.services.prediction_data import create_empty_prediction_data, get_prediction_stats
from app.services.procedure_catalog import ProcedureCatalogService
from app.services.seed_predictions import generate_seed_predictions
from app.services.suggestion_provider import DEFAULT_MAX_SUGGESTIONS, LocalStatisticalProvider

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# ============================================================================
# Display Functions
# ============================================================================

class Colors:
    """ANSI color codes for terminal output."""
    HEADER = '\033[95m'
    CYAN = '\033[96m'
    GREEN = '\033[92m'
    YELLOW = '\033[93m'
    RED = '\033[91m'
    BOLD = '\033[1m'
    END = '\033[0m'
    GRAY = '\033[90m'

def print_header(text: str, char: str = "="):
    """Print a formatted header."""
    width = 80
    print()
    print(f"{Colors.BOLD}{Colors.CYAN}{char * width}{Colors.END}")
    print(f"{Colors.BOLD}{Colors.CYAN}{text.center(width)}{Colors.END}")
    print(f"{Colors.BOLD}{Colors.CYAN}{char * width}{Colors.END}")

def print_item(label: str, value: str, indent: int = 2):
    """Print a labeled item."""
    spaces = " " * indent
    print(f"{spaces}{Colors.GRAY}{label}:{Colors.END} {value}")

def print_warning(text: str):
    """Print warning message."""
    print(f"  {Colors.YELLOW}!{Colors.END} {text}")

def confidence_color(confidence: int) -> str:
    if confidence >= 70:
        return Colors.GREEN
    if confidence >= 40:
        return Colors.YELLOW
    return Colors.RED

def display_suggestions(suggestions) -> None:
    """Print ranked suggestions with a confidence bar."""
    if not suggestions:
        print_warning("No suggestions above threshold")
        return

    for rank, suggestion in enumerate(suggestions, 1):
        color = confidence_color(suggestion.confidence)
        bar = "█" * (suggestion.confidence // 5)
        print(
            f"  {rank:>2}. {color}{suggestion.confidence:>3}%{Colors.END} {bar:<20} "
            f"{suggestion.procedure.description}"
        )
        print(
            f"      {Colors.GRAY}{suggestion.procedure.control_name} | "
            f"{suggestion.contributing_procedures} contributing, "
            f"{suggestion.co_occurrence_count} co-occurrences{Colors.END}"
        )

# ============================================================================
# Demo Engine
# ============================================================================

class SuggestionDemo:
    """Holds the catalog, statistics and session for the demo."""

    def __init__(self, facility_types: list[FacilityType], threshold: float, max_results: int):
        self.catalog = ProcedureCatalogService()
        self.catalog.load()
        self.provider = LocalStatisticalProvider()
        self.threshold = threshold
        self.max_results = max_results
        self.session: list[str] = []

        if facility_types:
            self.predictions = generate_seed_predictions(self.catalog.procedures, facility_types)
        else:
            self.predictions = create_empty_prediction_data()

    def add(self, query: str) -> bool:
        """Add a procedure by control name or search text."""
        procedure = self.catalog.get_procedure(query)
        if procedure is None:
            matches = self.catalog.search(query, limit=1)
            if not matches:
                print_warning(f"No procedure matches '{query}'")
                return False
            procedure = matches[0]

        if procedure.control_name in self.session:
            print_warning(f"{procedure.description} is already in the session")
            return False

        self.session.append(procedure.control_name)
        print(f"  {Colors.GREEN}+{Colors.END} {procedure.description}")
        return True

    def suggest(self):
        return self.provider.get_suggestions(
            self.session,
            self.catalog.procedures,
            self.predictions,
            threshold=self.threshold,
            max_results=self.max_results,
        )

    def show_stats(self) -> None:
        stats = get_prediction_stats(self.predictions)
        print_item("Procedures in catalog", str(len(self.catalog.procedures)))
        print_item("Procedures with history", str(stats.total_procedures))
        print_item("Co-occurrence pairs", str(stats.total_pairs))
        print_item("Observations", str(stats.total_observations))
        print_item("Threshold", f"{self.threshold}%")

# ============================================================================
# Interactive Mode
# ============================================================================

def interactive_mode(demo: SuggestionDemo):
    """Run interactive demo mode."""
    print_header("PROCEDURE SUGGESTION ENGINE - INTERACTIVE DEMO")
    demo.show_stats()
    print()
    print("  Commands: add <procedure>, search <text>, clear, stats, quit")

    while True:
        try:
            line = input(f"{Colors.BOLD}demo>{Colors.END} ").strip()
            cmd, _, arg = line.partition(" ")
            cmd = cmd.lower()

            if cmd in ('quit', 'exit', 'q'):
                print("Goodbye!")
                break

            elif cmd == 'add' and arg:
                if demo.add(arg.strip()):
                    display_suggestions(demo.suggest())

            elif cmd == 'search' and arg:
                for procedure in demo.catalog.search(arg.strip(), limit=10):
                    print_item(procedure.control_name, procedure.description)

            elif cmd == 'clear':
                demo.session.clear()
                print("  Session cleared.")

            elif cmd == 'stats':
                demo.show_stats()

            elif cmd:
                print(f"  Unknown command: {cmd}.")

        except KeyboardInterrupt:
            print("\n\nGoodbye!")
            break
        except EOFError:
            print("\nGoodbye!")
            break

# ============================================================================
# Main Entry Point
# ============================================================================

def main():
    parser = argparse.ArgumentParser(
        description="Procedure Suggestion Engine - Interactive Demo CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python demo_cli.py                                   # Interactive mode
  python demo_cli.py --session Procedures01_CPR_chk    # One-shot suggestions
  python demo_cli.py --facility ed --facility observation
"""
    )
    parser.add_argument('--session', '-s', action='append', default=[], help='Procedure already in the session (repeatable)')
    parser.add_argument('--facility', '-f', action='append', choices=[ft.value for ft in FacilityType], help='Facility type used to seed statistics (default: ed)')
    parser.add_argument('--threshold', '-t', type=float, default=30.0, help='Minimum confidence percentage')
    parser.add_argument('--max', '-m', type=int, default=DEFAULT_MAX_SUGGESTIONS, help='Maximum suggestions')

    args = parser.parse_args()

    facility_types = [FacilityType(ft) for ft in (args.facility or [FacilityType.ED.value])]
    demo = SuggestionDemo(facility_types, args.threshold, args.max)

    if args.session:
        for item in args.session:
            if not demo.add(item):
                sys.exit(1)
        print_header("SUGGESTIONS")
        display_suggestions(demo.suggest())
    else:
        interactive_mode(demo)

if __name__ == "__main__":
    main()

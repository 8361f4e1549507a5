"""
CLI Entry Point: Run the Lead Finder

Usage:
    python scripts/run_lead_finder.py                  # today's scheduled rotation
    python scripts/run_lead_finder.py --random         # ad-hoc run, cooldown ignored
    python scripts/run_lead_finder.py --random --keep-cooldown
    python scripts/run_lead_finder.py --dry-run        # in-memory repository, nothing persisted
    python scripts/run_lead_finder.py --date 2026-03-14
"""

import argparse
import sys
from datetime import date
from pathlib import Path

# Add repository root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.common.config import Config
from src.common.logger import set_global_debug_mode, setup_logging
from src.common.repositories import InMemoryLeadFinderRepository
from src.lead_finder.orchestrator import create_lead_finder_orchestrator


def main():
    """Main CLI function."""
    parser = argparse.ArgumentParser(description="Run the daily lead finder")
    parser.add_argument(
        "--random",
        action="store_true",
        help="Pick geography, trigger and industry at random instead of the daily rotation"
    )
    parser.add_argument(
        "--keep-cooldown",
        action="store_true",
        help="With --random, keep the configured lead cooldown instead of ignoring it"
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Use the in-memory repository (nothing is written to MongoDB)"
    )
    parser.add_argument(
        "--date",
        type=date.fromisoformat,
        default=None,
        help="Run date (YYYY-MM-DD, default today)"
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Verbose logging"
    )
    parser.add_argument(
        "--log-format",
        default="simple",
        choices=["simple", "json"],
        help="Log line format"
    )

    args = parser.parse_args()

    set_global_debug_mode(args.debug)
    setup_logging(level="DEBUG" if args.debug else "INFO", format=args.log_format)

    try:
        print("🔍 Validating configuration...")
        if not args.dry_run:
            Config.validate()
        print(Config.summary())
        print()

        repository = InMemoryLeadFinderRepository() if args.dry_run else None
        orchestrator = create_lead_finder_orchestrator(repository=repository)

        run_config = None
        if args.random:
            run_config = orchestrator.planner.plan_random(ignore_cooldown=not args.keep_cooldown)

        result = orchestrator.execute_run(config=run_config, run_date=args.date)

        print("\n" + "=" * 70)
        print("📊 RUN RESULTS")
        print("=" * 70)
        print(f"Run ID:   {result.run_id or '(not created)'}")
        print(f"Status:   {result.status.value}")
        if result.run_config:
            print(f"Geo:      {result.run_config.geo_name}")
            print(f"Trigger:  {result.run_config.trigger_focus}")
            print(f"Industry: {result.run_config.industry_focus or '-'}")

        stats = result.stats
        print(f"\nQueries: {stats.queries_executed}  URLs: {stats.search_results_found}  "
              f"Pages: {stats.pages_fetched}  Candidates: {stats.candidates_extracted}")
        print(f"Scored: {stats.leads_scored}  Selected: {stats.leads_selected}  "
              f"Emails: {stats.emails_generated}")

        for lead in result.leads:
            print(f"  [{lead.tier.value}] {lead.score:3d}  {lead.full_name}, "
                  f"{lead.title or '-'} @ {lead.company or '-'}")

        if stats.errors:
            print(f"\n⚠️  {len(stats.errors)} errors:")
            for error in stats.errors:
                print(f"  - {error}")

        if not result.succeeded:
            print(f"\n❌ {result.error_message or 'Run failed'}")
            sys.exit(1)

        print("\n✅ Run complete")

    except ValueError as e:
        print(f"\n❌ Configuration error: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        print("\n\n⚠️  Run interrupted by user")
        sys.exit(130)


if __name__ == "__main__":
    main()

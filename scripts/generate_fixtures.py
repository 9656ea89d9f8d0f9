#!/usr/bin/env python3
"""
Generate (or regenerate) the fixtures of one tournament phase.

Normal usage:
    python scripts/generate_fixtures.py --tournament-id 1 --phase-id 3

Generate and move the phase to active in the same transaction:
    python scripts/generate_fixtures.py --tournament-id 1 --phase-id 3 --start

Dry run (generate, print the summary, roll everything back):
    python scripts/generate_fixtures.py --tournament-id 1 --phase-id 3 --dry-run

Regenerating a phase deletes its existing matches, finished ones included.
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from time import perf_counter

# Add src to path so this script can be run directly
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from fixtura.config import settings
from fixtura.db import get_session
from fixtura.exceptions import FixturaError
from fixtura.phases import PhaseEngine


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Generate fixtures for a tournament phase.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--tournament-id", type=int, required=True, help="Tournament ID.")
    parser.add_argument("--phase-id", type=int, required=True, help="Phase ID.")
    parser.add_argument(
        "--start",
        action="store_true",
        help="Transition the phase to active after generating.",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Generate but do not write to the database.",
    )
    parser.add_argument(
        "--metrics-json",
        default=None,
        help="Write a JSON summary to this path on completion.",
    )
    return parser


def main() -> int:
    args = _build_parser().parse_args()
    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    started_at = _utc_now_iso()
    print(
        f"FIXTURE GENERATION  tournament={args.tournament_id}  phase={args.phase_id}  "
        f"dry_run={args.dry_run}  started={started_at}"
    )
    print("-" * 60)

    t_start = perf_counter()
    try:
        with get_session() as session:
            engine = PhaseEngine.from_session(session)
            result = engine.generate_fixtures(args.tournament_id, args.phase_id)
            if args.start:
                engine.start_phase(args.phase_id)
            progress = engine.get_progress(args.phase_id)

            if args.dry_run:
                session.rollback()
                print("(dry run - changes rolled back)")
    except FixturaError as exc:
        print(f"ERROR: {exc}")
        return 1

    elapsed = perf_counter() - t_start

    print("-" * 60)
    print(result.summary())
    print(f"Phase status:     {progress.status.value}")
    print(f"Elapsed:          {elapsed:.2f}s")
    if result.standings_stale:
        print("Finished matches were dropped: run scripts/recalculate_standings.py")

    if args.metrics_json:
        payload = {
            "status": "success",
            "dry_run": args.dry_run,
            "started_at": started_at,
            "elapsed_s": round(elapsed, 3),
            "tournament_id": args.tournament_id,
            "phase_id": args.phase_id,
            "matches_created": result.matches_created,
            "total_rounds": result.total_rounds,
            "byes": result.byes,
            "standings_stale": result.standings_stale,
        }
        metrics_path = Path(args.metrics_json)
        metrics_path.parent.mkdir(parents=True, exist_ok=True)
        metrics_path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")

    return 0


if __name__ == "__main__":
    raise SystemExit(main())

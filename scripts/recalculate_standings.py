#!/usr/bin/env python3
"""
Rebuild a tournament's standings from its finished matches.

Normal usage:
    python scripts/recalculate_standings.py --tournament-id 1

Only print one group's table after rebuilding:
    python scripts/recalculate_standings.py --tournament-id 1 --group-id 7

Dry run (rebuild, print, roll back):
    python scripts/recalculate_standings.py --tournament-id 1 --dry-run
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from time import perf_counter

# Add src to path so this script can be run directly
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from fixtura.config import settings
from fixtura.db import get_session
from fixtura.exceptions import FixturaError
from fixtura.services import recalculate_standings
from fixtura.standings import StandingsEngine


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Rebuild standings from finished matches.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--tournament-id", type=int, required=True, help="Tournament ID.")
    parser.add_argument(
        "--group-id",
        type=int,
        default=None,
        help="Print only this group's table.",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Rebuild but do not write to the database.",
    )
    return parser


def main() -> int:
    args = _build_parser().parse_args()
    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    print(f"STANDINGS REBUILD  tournament={args.tournament_id}  dry_run={args.dry_run}")
    print("-" * 60)

    t_start = perf_counter()
    try:
        with get_session() as session:
            rows = recalculate_standings(session, args.tournament_id)
            if args.group_id is not None:
                rows = StandingsEngine.from_session(session).list_standings(
                    args.tournament_id, args.group_id
                )

            print(f"{'#':>3}  {'Team':<28} {'P':>3} {'W':>3} {'D':>3} {'L':>3} "
                  f"{'GF':>4} {'GA':>4} {'GD':>4} {'Pts':>4}")
            for rank, row in enumerate(rows, start=1):
                print(
                    f"{rank:>3}  {row.team.name[:28]:<28} {row.matches_played:>3} "
                    f"{row.wins:>3} {row.draws:>3} {row.losses:>3} "
                    f"{row.goals_for:>4} {row.goals_against:>4} "
                    f"{row.goal_difference:>4} {row.points:>4}"
                )

            if args.dry_run:
                session.rollback()
                print("(dry run - changes rolled back)")
    except FixturaError as exc:
        print(f"ERROR: {exc}")
        return 1

    print("-" * 60)
    print(f"Rows:     {len(rows)}")
    print(f"Elapsed:  {perf_counter() - t_start:.2f}s")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

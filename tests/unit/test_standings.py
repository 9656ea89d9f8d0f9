"""
Unit tests for the standings engine.

Tests the standings maintenance to ensure:
- A single result moves points, goals and goal difference correctly
- Applying the same finished match twice changes nothing
- Table invariants hold (W+D+L == played, GD == GF - GA)
- Each match hands out 2 (draw) or 3 (decisive) points
- Recalculation matches incremental application and is repeatable
"""

import random

import pytest

from fixtura.db.models import Standing
from fixtura.standings import PointsSystem, StandingsEngine, apply_result, match_outcomes
from fixtura.statuses import MatchStatus, PhaseType


@pytest.fixture
def league(phase_engine, store, make_tournament, make_phase):
    """A generated four-team round robin: (tournament, teams, matches)."""
    tournament, teams = make_tournament(["A", "B", "C", "D"])
    phase = make_phase(tournament, PhaseType.ROUND_ROBIN)
    phase_engine.generate_fixtures(tournament.id, phase.id)
    return tournament, teams, store.list_phase_matches(phase.id)


def _finish(db_session, match, home_score, away_score):
    match.home_score = home_score
    match.away_score = away_score
    match.status = MatchStatus.FINISHED
    db_session.flush()
    return match


def _snapshot(rows):
    return sorted(
        (
            r.team_id,
            r.group_id,
            r.matches_played,
            r.wins,
            r.draws,
            r.losses,
            r.goals_for,
            r.goals_against,
            r.goal_difference,
            r.points,
        )
        for r in rows
    )


class TestPureHelpers:

    def test_match_outcomes(self):
        assert match_outcomes(2, 1) == ("win", "loss")
        assert match_outcomes(0, 3) == ("loss", "win")
        assert match_outcomes(1, 1) == ("draw", "draw")

    def test_apply_result(self):
        standing = Standing(
            matches_played=0, wins=0, draws=0, losses=0,
            goals_for=0, goals_against=0, goal_difference=0, points=0,
        )
        apply_result(standing, 1, 4, "loss", PointsSystem())

        assert standing.matches_played == 1
        assert standing.losses == 1
        assert standing.goal_difference == -3
        assert standing.points == 0

    def test_custom_points(self):
        points = PointsSystem(win=2, draw=1, loss=0)
        assert points.points_for("win") == 2


class TestApplyFinishedMatch:

    def test_home_win(self, standings_engine, store, db_session, league):
        tournament, teams, matches = league
        match = _finish(db_session, matches[0], 2, 1)

        assert standings_engine.apply_finished_match(match) is True

        home = store.get_or_create_standing(tournament.id, match.home_team_id)
        away = store.get_or_create_standing(tournament.id, match.away_team_id)
        assert (home.matches_played, home.wins, home.points) == (1, 1, 3)
        assert (home.goals_for, home.goals_against, home.goal_difference) == (2, 1, 1)
        assert (away.matches_played, away.losses, away.points) == (1, 1, 0)
        assert away.goal_difference == -1
        assert match.standings_applied_at is not None

    def test_draw(self, standings_engine, store, db_session, league):
        tournament, _, matches = league
        match = _finish(db_session, matches[0], 1, 1)

        standings_engine.apply_finished_match(match)

        for team_id in (match.home_team_id, match.away_team_id):
            row = store.get_or_create_standing(tournament.id, team_id)
            assert (row.draws, row.points, row.goal_difference) == (1, 1, 0)

    def test_second_apply_is_noop(self, standings_engine, store, db_session, league):
        tournament, _, matches = league
        match = _finish(db_session, matches[0], 3, 0)

        assert standings_engine.apply_finished_match(match) is True
        assert standings_engine.apply_finished_match(match) is False

        row = store.get_or_create_standing(tournament.id, match.home_team_id)
        assert row.matches_played == 1
        assert row.points == 3

    def test_unfinished_match_ignored(self, standings_engine, store, league):
        tournament, _, matches = league

        assert standings_engine.apply_finished_match(matches[0]) is False
        assert store.list_standings(tournament.id) == []

    def test_configured_points(self, store, db_session, league):
        tournament, _, matches = league
        engine = StandingsEngine(store, points=PointsSystem(win=2, draw=1, loss=0))
        match = _finish(db_session, matches[0], 1, 0)

        engine.apply_finished_match(match)

        assert store.get_or_create_standing(tournament.id, match.home_team_id).points == 2


class TestInvariants:

    def test_full_league(self, standings_engine, db_session, league):
        tournament, _, matches = league
        rng = random.Random(7)
        for match in matches:
            _finish(db_session, match, rng.randint(0, 4), rng.randint(0, 4))
            standings_engine.apply_finished_match(match)

        rows = standings_engine.list_standings(tournament.id)
        assert len(rows) == 4
        for row in rows:
            assert row.wins + row.draws + row.losses == row.matches_played == 3
            assert row.goal_difference == row.goals_for - row.goals_against

        total_points = sum(row.points for row in rows)
        draws = sum(1 for m in matches if m.home_score == m.away_score)
        assert total_points == 3 * (len(matches) - draws) + 2 * draws
        assert sum(r.goals_for for r in rows) == sum(r.goals_against for r in rows)

    def test_ranking_order(self, standings_engine, db_session, league):
        tournament, teams, matches = league
        a, b, c, d = (t.id for t in teams)
        # round 1: A-D, B-C; round 2: A-C, D-B; round 3: A-B, C-D
        results = {(a, d): (3, 0), (b, c): (1, 0), (a, c): (0, 0), (d, b): (2, 2),
                   (a, b): (1, 2), (c, d): (5, 1)}
        for match in matches:
            _finish(db_session, match, *results[(match.home_team_id, match.away_team_id)])
            standings_engine.apply_finished_match(match)

        rows = standings_engine.list_standings(tournament.id)
        # B: 7 pts, C: 4 pts (GD +3), A: 4 pts (GD +2), D: 1 pt
        assert rows[0].team_id == b
        assert rows[-1].team_id == d
        assert [r.points for r in rows] == [7, 4, 4, 1]
        assert {rows[1].team_id, rows[2].team_id} == {a, c}
        assert rows[1].team_id == c

    def test_goals_for_breaks_points_and_difference_tie(self, standings_engine, db_session, league):
        tournament, teams, matches = league
        a, b, c, d = (t.id for t in teams)
        results = {(a, d): (1, 1), (b, c): (1, 1), (a, c): (2, 1), (d, b): (1, 0),
                   (a, b): (0, 0), (c, d): (0, 0)}
        for match in matches:
            _finish(db_session, match, *results[(match.home_team_id, match.away_team_id)])
            standings_engine.apply_finished_match(match)

        rows = standings_engine.list_standings(tournament.id)
        # A and D: 5 pts, GD +1, scored 3 and 2; C and B: 2 pts, GD -1, scored 2 and 1
        assert [(r.points, r.goal_difference) for r in rows] == [(5, 1), (5, 1), (2, -1), (2, -1)]
        assert [r.team_id for r in rows] == [a, d, c, b]
        assert [r.goals_for for r in rows] == [3, 2, 2, 1]


class TestRecalculate:

    def test_matches_incremental_result(self, standings_engine, db_session, league):
        tournament, _, matches = league
        for index, match in enumerate(matches):
            _finish(db_session, match, index % 3, 1)
            standings_engine.apply_finished_match(match)
        incremental = _snapshot(standings_engine.list_standings(tournament.id))

        rebuilt = _snapshot(standings_engine.recalculate(tournament.id))

        assert rebuilt == incremental

    def test_idempotent(self, standings_engine, db_session, league):
        tournament, _, matches = league
        for match in matches[:4]:
            _finish(db_session, match, 2, 0)

        first = _snapshot(standings_engine.recalculate(tournament.id))
        second = _snapshot(standings_engine.recalculate(tournament.id))

        assert first == second
        assert sum(r[2] for r in first) == 8

    def test_marks_matches_applied(self, standings_engine, db_session, league):
        tournament, _, matches = league
        _finish(db_session, matches[0], 1, 0)

        standings_engine.recalculate(tournament.id)

        assert matches[0].standings_applied_at is not None
        assert standings_engine.apply_finished_match(matches[0]) is False

    def test_ignores_unfinished(self, standings_engine, db_session, league):
        tournament, _, matches = league
        _finish(db_session, matches[0], 1, 0)
        matches[1].status = MatchStatus.LIVE
        matches[1].home_score = 5
        db_session.flush()

        rows = standings_engine.recalculate(tournament.id)

        assert sum(r.matches_played for r in rows) == 2

    def test_order_independent(self, store, test_settings, db_session, league):
        tournament, _, matches = league
        for index, match in enumerate(matches):
            _finish(db_session, match, index, 5 - index)

        engine = StandingsEngine(store, settings=test_settings)
        expected = _snapshot(engine.recalculate(tournament.id))

        store.delete_standings(tournament.id)
        store.clear_standings_markers(tournament.id)
        shuffled = list(matches)
        random.Random(3).shuffle(shuffled)
        for match in shuffled:
            engine.apply_finished_match(match)

        assert _snapshot(engine.list_standings(tournament.id)) == expected


class TestGroupStandings:

    def test_rows_scoped_to_group(
        self, phase_engine, standings_engine, store, db_session, make_tournament, make_phase
    ):
        tournament, teams = make_tournament([f"T{i}" for i in range(1, 9)])
        phase = make_phase(tournament, PhaseType.GROUPS, groups_count=2, teams_per_group=4)
        phase_engine.generate_fixtures(tournament.id, phase.id)

        for match in store.list_phase_matches(phase.id):
            _finish(db_session, match, 1, 0)
            standings_engine.apply_finished_match(match)

        group_one = store.get_group_by_number(phase.id, 1)
        rows = standings_engine.list_standings(tournament.id, group_one.id)
        assert len(rows) == 4
        assert {r.team_id for r in rows} == {t.id for t in teams[:4]}
        assert all(r.matches_played == 3 for r in rows)
        assert len(standings_engine.list_standings(tournament.id)) == 8

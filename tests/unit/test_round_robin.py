"""
Unit tests for the round-robin scheduler.

Covers:
- The four-team circle-method schedule, round by round
- Every pair meeting exactly once (twice, mirrored, with home/away)
- No team playing twice in a round
- Odd team counts (one team idle per round)
- Repeated cycles numbered contiguously
"""

from collections import Counter
from itertools import combinations

import pytest

from fixtura.exceptions import ConfigurationError
from fixtura.scheduling.round_robin import (
    count_round_robin_matches,
    count_round_robin_rounds,
    generate_round_robin,
    generate_round_robin_cycles,
    rotate,
)


class TestRotate:

    def test_keeps_first_fixed(self):
        assert rotate(["A", "B", "C", "D"]) == ["A", "D", "B", "C"]

    def test_two_positions_unchanged(self):
        assert rotate(["A", "B"]) == ["A", "B"]


class TestGenerateRoundRobin:
    """Tests for generate_round_robin()."""

    def test_four_team_schedule(self):
        rounds = generate_round_robin(["A", "B", "C", "D"])

        assert rounds == [
            [("A", "D"), ("B", "C")],
            [("A", "C"), ("D", "B")],
            [("A", "B"), ("C", "D")],
        ]

    def test_four_team_home_away_mirrors_second_half(self):
        rounds = generate_round_robin(["A", "B", "C", "D"], home_away=True)

        assert len(rounds) == 6
        assert rounds[3] == [("D", "A"), ("C", "B")]
        assert rounds[4] == [("C", "A"), ("B", "D")]
        assert rounds[5] == [("B", "A"), ("D", "C")]

    def test_two_teams(self):
        assert generate_round_robin([1, 2]) == [[(1, 2)]]
        assert generate_round_robin([1, 2], home_away=True) == [[(1, 2)], [(2, 1)]]

    @pytest.mark.parametrize("team_ids", [[], [7]])
    def test_fewer_than_two_teams_yields_nothing(self, team_ids):
        assert generate_round_robin(team_ids) == []

    def test_duplicates_rejected(self):
        with pytest.raises(ConfigurationError):
            generate_round_robin([1, 2, 2, 3])

    @pytest.mark.parametrize("n", [2, 3, 4, 5, 6, 7, 8, 10, 13, 16])
    def test_every_pair_meets_exactly_once(self, n):
        teams = list(range(1, n + 1))
        rounds = generate_round_robin(teams)

        pairs = Counter(frozenset(pair) for pairs in rounds for pair in pairs)
        assert set(pairs) == {frozenset(p) for p in combinations(teams, 2)}
        assert all(count == 1 for count in pairs.values())
        assert sum(pairs.values()) == count_round_robin_matches(n)
        assert len(rounds) == count_round_robin_rounds(n)

    @pytest.mark.parametrize("n", [3, 4, 5, 6, 9, 12])
    def test_no_team_twice_in_a_round(self, n):
        for pairs in generate_round_robin(list(range(n)), home_away=True):
            teams = [team for pair in pairs for team in pair]
            assert len(teams) == len(set(teams))

    def test_odd_count_one_team_rests_each_round(self):
        rounds = generate_round_robin(["A", "B", "C", "D", "E"])

        assert len(rounds) == 5
        assert all(len(pairs) == 2 for pairs in rounds)
        resting = [
            ({"A", "B", "C", "D", "E"} - {t for pair in pairs for t in pair}).pop()
            for pairs in rounds
        ]
        assert sorted(resting) == ["A", "B", "C", "D", "E"]

    @pytest.mark.parametrize("n", [4, 5, 6])
    def test_home_away_each_ordered_pair_once(self, n):
        rounds = generate_round_robin(list(range(n)), home_away=True)

        ordered = Counter(pair for pairs in rounds for pair in pairs)
        assert len(ordered) == n * (n - 1)
        assert set(ordered.values()) == {1}
        assert len(rounds) == count_round_robin_rounds(n, home_away=True)

    def test_deterministic(self):
        teams = [11, 4, 9, 2, 30, 7]
        assert generate_round_robin(teams) == generate_round_robin(teams)


class TestCycles:

    def test_cycles_repeat_schedule(self):
        single = generate_round_robin([1, 2, 3, 4])
        double = generate_round_robin_cycles([1, 2, 3, 4], cycles=2)

        assert double == single + single

    def test_cycles_with_home_away(self):
        rounds = generate_round_robin_cycles([1, 2, 3, 4], home_away=True, cycles=3)
        assert len(rounds) == 18

    def test_invalid_cycles(self):
        with pytest.raises(ConfigurationError):
            generate_round_robin_cycles([1, 2], cycles=0)


def test_expected_counts():
    assert count_round_robin_matches(6) == 15
    assert count_round_robin_matches(6, home_away=True) == 30
    assert count_round_robin_rounds(6) == 5
    assert count_round_robin_rounds(5) == 5
    assert count_round_robin_rounds(1) == 0

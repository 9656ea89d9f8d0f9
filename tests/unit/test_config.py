"""Unit tests for settings loading."""

import pytest
from pydantic import ValidationError

from fixtura.config import Settings
from fixtura.standings import PointsSystem


def test_defaults():
    settings = Settings(_env_file=None)

    assert (settings.points_for_win, settings.points_for_draw, settings.points_for_loss) == (3, 1, 0)
    assert settings.default_bracket_size == 8
    assert settings.default_groups_count == 4
    assert settings.default_teams_per_group == 4


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("FIXTURA_POINTS_FOR_WIN", "2")
    monkeypatch.setenv("FIXTURA_LOG_LEVEL", "debug")

    settings = Settings(_env_file=None)

    assert settings.log_level == "DEBUG"
    assert PointsSystem.from_settings(settings) == PointsSystem(win=2, draw=1, loss=0)


def test_invalid_log_level():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, log_level="chatty")


def test_bracket_size_lower_bound():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, default_bracket_size=1)

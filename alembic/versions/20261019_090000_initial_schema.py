"""Initial schema: tournaments, teams, phases, groups, matches, standings

Revision ID: 3c1f9a6e2b07
Revises:
Create Date: 2026-10-19 09:00:00.000000+00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# Revision identifiers, used by Alembic
revision: str = '3c1f9a6e2b07'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


PHASE_TYPES = ('round_robin', 'single_elimination', 'groups')
PHASE_STATUSES = ('pending', 'active', 'completed', 'cancelled')
MATCH_STATUSES = ('scheduled', 'live', 'finished')


def _enum(name: str, values: tuple[str, ...]) -> sa.Enum:
    return sa.Enum(*values, name=name, native_enum=False, length=30)


def upgrade() -> None:
    """Upgrade database schema."""
    op.create_table(
        'tournaments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('rounds', sa.Integer(), nullable=False),
        sa.Column('format', sa.String(length=30), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.CheckConstraint('rounds >= 1', name='ck_tournament_rounds_positive'),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'teams',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'tournament_teams',
        sa.Column('tournament_id', sa.Integer(), nullable=False),
        sa.Column('team_id', sa.Integer(), nullable=False),
        sa.Column('joined_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['tournament_id'], ['tournaments.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['team_id'], ['teams.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('tournament_id', 'team_id'),
    )
    op.create_index(
        'idx_tournament_teams_order',
        'tournament_teams',
        ['tournament_id', 'joined_at', 'team_id'],
        unique=False,
    )

    op.create_table(
        'tournament_phases',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tournament_id', sa.Integer(), nullable=False),
        sa.Column('phase_number', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('type', _enum('phasetype', PHASE_TYPES), nullable=False),
        sa.Column('status', _enum('phasestatus', PHASE_STATUSES), nullable=False),
        sa.Column('home_away', sa.Boolean(), nullable=False),
        sa.Column('teams_advance', sa.Integer(), nullable=True),
        sa.Column('groups_count', sa.Integer(), nullable=True),
        sa.Column('teams_per_group', sa.Integer(), nullable=True),
        sa.Column('fixtures_generated_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['tournament_id'], ['tournaments.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tournament_id', 'phase_number', name='uq_phase_number'),
    )
    op.create_index(
        'idx_phases_tournament_status',
        'tournament_phases',
        ['tournament_id', 'status'],
        unique=False,
    )

    op.create_table(
        'groups',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tournament_id', sa.Integer(), nullable=False),
        sa.Column('phase_id', sa.Integer(), nullable=False),
        sa.Column('group_number', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=50), nullable=False),
        sa.ForeignKeyConstraint(['tournament_id'], ['tournaments.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['phase_id'], ['tournament_phases.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('phase_id', 'group_number', name='uq_group_phase_number'),
    )

    op.create_table(
        'matches',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tournament_id', sa.Integer(), nullable=False),
        sa.Column('phase_id', sa.Integer(), nullable=False),
        sa.Column('round', sa.Integer(), nullable=False),
        sa.Column('group_number', sa.Integer(), nullable=True),
        sa.Column('group_id', sa.Integer(), nullable=True),
        sa.Column('match_type', sa.String(length=40), nullable=False),
        sa.Column('bracket_position', sa.Integer(), nullable=True),
        sa.Column('leg', sa.Integer(), nullable=False),
        sa.Column('home_source', sa.String(length=40), nullable=True),
        sa.Column('away_source', sa.String(length=40), nullable=True),
        sa.Column('home_team_id', sa.Integer(), nullable=True),
        sa.Column('away_team_id', sa.Integer(), nullable=True),
        sa.Column('status', _enum('matchstatus', MATCH_STATUSES), nullable=False),
        sa.Column('home_score', sa.Integer(), nullable=False),
        sa.Column('away_score', sa.Integer(), nullable=False),
        sa.Column('standings_applied_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.CheckConstraint(
            'home_team_id IS NULL OR away_team_id IS NULL OR home_team_id <> away_team_id',
            name='ck_match_distinct_teams',
        ),
        sa.CheckConstraint(
            'home_score >= 0 AND away_score >= 0',
            name='ck_match_scores_non_negative',
        ),
        sa.ForeignKeyConstraint(['tournament_id'], ['tournaments.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['phase_id'], ['tournament_phases.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['group_id'], ['groups.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['home_team_id'], ['teams.id']),
        sa.ForeignKeyConstraint(['away_team_id'], ['teams.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_matches_phase_round', 'matches', ['phase_id', 'round'], unique=False)
    op.create_index(
        'idx_matches_tournament_status', 'matches', ['tournament_id', 'status'], unique=False
    )
    op.create_index(
        'idx_matches_bracket', 'matches', ['phase_id', 'round', 'bracket_position'], unique=False
    )

    op.create_table(
        'standings',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tournament_id', sa.Integer(), nullable=False),
        sa.Column('team_id', sa.Integer(), nullable=False),
        sa.Column('group_id', sa.Integer(), nullable=True),
        sa.Column('matches_played', sa.Integer(), nullable=False),
        sa.Column('wins', sa.Integer(), nullable=False),
        sa.Column('draws', sa.Integer(), nullable=False),
        sa.Column('losses', sa.Integer(), nullable=False),
        sa.Column('goals_for', sa.Integer(), nullable=False),
        sa.Column('goals_against', sa.Integer(), nullable=False),
        sa.Column('goal_difference', sa.Integer(), nullable=False),
        sa.Column('points', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['tournament_id'], ['tournaments.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['team_id'], ['teams.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['group_id'], ['groups.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tournament_id', 'team_id', 'group_id', name='uq_standing_key'),
    )
    op.create_index(
        'idx_standings_ranking',
        'standings',
        ['tournament_id', 'points', 'goal_difference', 'goals_for'],
        unique=False,
    )


def downgrade() -> None:
    """Downgrade database schema."""
    op.drop_index('idx_standings_ranking', table_name='standings')
    op.drop_table('standings')
    op.drop_index('idx_matches_bracket', table_name='matches')
    op.drop_index('idx_matches_tournament_status', table_name='matches')
    op.drop_index('idx_matches_phase_round', table_name='matches')
    op.drop_table('matches')
    op.drop_table('groups')
    op.drop_index('idx_phases_tournament_status', table_name='tournament_phases')
    op.drop_table('tournament_phases')
    op.drop_index('idx_tournament_teams_order', table_name='tournament_teams')
    op.drop_table('tournament_teams')
    op.drop_table('teams')
    op.drop_table('tournaments')

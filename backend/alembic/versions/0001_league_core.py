from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB

revision = "0001_league_core"
down_revision = None
branch_labels = None
depends_on = None


def _created_at():
    return sa.Column(
        "created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False
    )


def upgrade():
    op.create_table(
        "player",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("deleted_at", sa.DateTime(), nullable=True),
    )
    op.create_table(
        "season",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
    )
    op.create_table(
        "division",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("season_id", sa.String(), sa.ForeignKey("season.id"), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("sport_id", sa.String(), nullable=True),
        sa.Column("matches_scheduled", sa.Integer(), nullable=True),
    )
    op.create_table(
        "match",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("sport_id", sa.String(), nullable=False),
        sa.Column("game_mode", sa.String(), nullable=False),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("division_id", sa.String(), sa.ForeignKey("division.id"), nullable=True),
        sa.Column("season_id", sa.String(), sa.ForeignKey("season.id"), nullable=True),
        sa.Column("final_set_format", sa.String(), nullable=False),
        sa.Column("is_walkover", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("walkover_winner_side", sa.String(), nullable=True),
        sa.Column("played_at", sa.DateTime(), nullable=True),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        _created_at(),
    )
    op.create_table(
        "match_participant",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("match_id", sa.String(), sa.ForeignKey("match.id"), nullable=False),
        sa.Column("player_id", sa.String(), sa.ForeignKey("player.id"), nullable=False),
        sa.Column("team", sa.String(), nullable=True),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        _created_at(),
        sa.UniqueConstraint(
            "match_id", "player_id", name="uq_match_participant_match_player"
        ),
    )
    op.create_table(
        "set_score",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("match_id", sa.String(), sa.ForeignKey("match.id"), nullable=False),
        sa.Column("set_number", sa.Integer(), nullable=False),
        sa.Column("games_a", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("games_b", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("tiebreak_a", sa.Integer(), nullable=True),
        sa.Column("tiebreak_b", sa.Integer(), nullable=True),
    )
    op.create_table(
        "game_score",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("match_id", sa.String(), sa.ForeignKey("match.id"), nullable=False),
        sa.Column("game_number", sa.Integer(), nullable=False),
        sa.Column("points_a", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("points_b", sa.Integer(), nullable=False, server_default="0"),
    )
    op.create_table(
        "match_result",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("match_id", sa.String(), sa.ForeignKey("match.id"), nullable=False),
        sa.Column("player_id", sa.String(), sa.ForeignKey("player.id"), nullable=False),
        sa.Column("opponent_id", sa.String(), sa.ForeignKey("player.id"), nullable=True),
        sa.Column("division_id", sa.String(), sa.ForeignKey("division.id"), nullable=False),
        sa.Column("season_id", sa.String(), sa.ForeignKey("season.id"), nullable=False),
        sa.Column("sport_id", sa.String(), nullable=False),
        sa.Column("game_mode", sa.String(), nullable=False),
        sa.Column("is_win", sa.Boolean(), nullable=False),
        sa.Column("participation_points", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("sets_won_points", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("win_bonus_points", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("match_points", sa.Integer(), nullable=False),
        sa.Column("margin", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("sets_won", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("sets_lost", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("games_won", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("games_lost", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("date_played", sa.DateTime(), nullable=True),
        sa.Column(
            "counts_for_standings", sa.Boolean(), nullable=False, server_default=sa.false()
        ),
        sa.Column("result_sequence", sa.Integer(), nullable=True),
        _created_at(),
        sa.UniqueConstraint("match_id", "player_id", name="uq_match_result_match_player"),
    )
    op.create_index(
        "ix_match_result_division_player",
        "match_result",
        ["division_id", "season_id", "player_id"],
    )
    op.create_table(
        "player_rating",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("player_id", sa.String(), sa.ForeignKey("player.id"), nullable=False),
        sa.Column("season_id", sa.String(), sa.ForeignKey("season.id"), nullable=False),
        sa.Column("sport_id", sa.String(), nullable=False),
        sa.Column("game_mode", sa.String(), nullable=False),
        sa.Column("rating", sa.Float(), nullable=False, server_default="1500"),
        sa.Column("rd", sa.Float(), nullable=False, server_default="350"),
        sa.Column("volatility", sa.Float(), nullable=False, server_default="0.06"),
        sa.Column("is_provisional", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("matches_played", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("peak_rating", sa.Float(), nullable=False, server_default="1500"),
        sa.Column("peak_rating_at", sa.DateTime(), nullable=True),
        sa.Column("lowest_rating", sa.Float(), nullable=False, server_default="1500"),
        sa.Column("last_match_id", sa.String(), nullable=True),
        sa.Column("last_updated", sa.DateTime(), server_default=sa.func.now(), nullable=True),
        sa.UniqueConstraint(
            "player_id", "season_id", "sport_id", "game_mode", name="uq_player_rating_scope"
        ),
    )
    op.create_table(
        "rating_history",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column(
            "player_rating_id", sa.String(), sa.ForeignKey("player_rating.id"), nullable=False
        ),
        sa.Column("match_id", sa.String(), sa.ForeignKey("match.id"), nullable=True),
        sa.Column("reason", sa.String(), nullable=False),
        sa.Column("rating_before", sa.Float(), nullable=False),
        sa.Column("rating_after", sa.Float(), nullable=False),
        sa.Column("delta", sa.Float(), nullable=False),
        sa.Column("rd_before", sa.Float(), nullable=False),
        sa.Column("rd_after", sa.Float(), nullable=False),
        sa.Column("volatility_before", sa.Float(), nullable=True),
        sa.Column("volatility_after", sa.Float(), nullable=True),
        sa.Column("matches_played_before", sa.Integer(), nullable=True),
        sa.Column("reversed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("reversed_at", sa.DateTime(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        _created_at(),
    )
    op.create_index("ix_rating_history_match_id", "rating_history", ["match_id"])
    op.create_table(
        "division_standing",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("division_id", sa.String(), sa.ForeignKey("division.id"), nullable=False),
        sa.Column("season_id", sa.String(), sa.ForeignKey("season.id"), nullable=False),
        sa.Column("player_id", sa.String(), sa.ForeignKey("player.id"), nullable=False),
        sa.Column("rank", sa.Integer(), nullable=True),
        sa.Column("wins", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("losses", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("matches_played", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("matches_scheduled", sa.Integer(), nullable=False, server_default="9"),
        sa.Column("counted_wins", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("counted_losses", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("win_points", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("set_points", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("completion_bonus", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_points", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("sets_won", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("sets_lost", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("set_differential", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("games_won", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("games_lost", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("set_win_pct", sa.Float(), nullable=False, server_default="0"),
        sa.Column("game_win_pct", sa.Float(), nullable=False, server_default="0"),
        sa.Column(
            "head_to_head", sa.JSON().with_variant(JSONB, "postgresql"), nullable=False
        ),
        sa.Column("last_calculated_at", sa.DateTime(), nullable=True),
        sa.UniqueConstraint(
            "player_id", "division_id", name="uq_division_standing_player_division"
        ),
    )


def downgrade():
    op.drop_table("division_standing")
    op.drop_index("ix_rating_history_match_id", table_name="rating_history")
    op.drop_table("rating_history")
    op.drop_table("player_rating")
    op.drop_index("ix_match_result_division_player", table_name="match_result")
    op.drop_table("match_result")
    op.drop_table("game_score")
    op.drop_table("set_score")
    op.drop_table("match_participant")
    op.drop_table("match")
    op.drop_table("division")
    op.drop_table("season")
    op.drop_table("player")

from __future__ import annotations
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None

def upgrade() -> None:
    op.create_table(
        "levels",
        sa.Column("id", sa.String(length=64), primary_key=True, nullable=False),
        # not unique: drift has to be storable so the auditor can find it
        sa.Column("placement", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("creator", sa.String(length=120), nullable=False),
        sa.Column("verifier", sa.String(length=120), nullable=False),
        sa.Column("video_ref", sa.String(length=32), nullable=True),
        sa.Column("difficulty", sa.String(length=32), nullable=False),
        sa.Column("gamemode", sa.String(length=32), nullable=False),
        sa.Column("decoration_style", sa.String(length=32), nullable=False),
        sa.Column("extra_tags", postgresql.JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("enjoyment_ratings", postgresql.JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("added_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index("ix_levels_placement", "levels", ["placement"])

    op.create_table(
        "packs",
        sa.Column("id", sa.String(length=64), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("category", sa.String(length=64), nullable=True),
        sa.Column("bonus_points", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("level_ids", postgresql.JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("created_by", sa.String(length=64), nullable=True),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.CheckConstraint("bonus_points >= 0", name="ck_packs_bonus_nonneg"),
    )

    op.create_table(
        "user_activity",
        sa.Column("user_id", sa.String(length=64), primary_key=True, nullable=False),
        sa.Column("username", sa.String(length=120), nullable=True),
        sa.Column("avatar", sa.Text(), nullable=True),
        sa.Column("online", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("last_online", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("completed_levels", postgresql.JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("completed_packs", postgresql.JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
    )
    op.create_index("ix_user_activity_username", "user_activity", ["username"])

    op.create_table(
        "submissions",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("type", sa.String(length=16), nullable=False),
        sa.Column("submitter_id", sa.String(length=64), nullable=False),
        sa.Column("submitter_name", sa.String(length=120), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="pending"),
        sa.Column("payload", postgresql.JSONB(), nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column("submitted_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("reviewed_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("reviewed_by", sa.String(length=64), nullable=True),
        sa.CheckConstraint("type IN ('level','completion')", name="ck_submissions_type"),
        sa.CheckConstraint("status IN ('pending','approved','declined')", name="ck_submissions_status"),
    )
    op.create_index("ix_submissions_submitter_id", "submissions", ["submitter_id"])
    op.create_index("ix_submissions_status", "submissions", ["status"])

def downgrade() -> None:
    op.drop_index("ix_submissions_status", table_name="submissions")
    op.drop_index("ix_submissions_submitter_id", table_name="submissions")
    op.drop_table("submissions")
    op.drop_index("ix_user_activity_username", table_name="user_activity")
    op.drop_table("user_activity")
    op.drop_table("packs")
    op.drop_index("ix_levels_placement", table_name="levels")
    op.drop_table("levels")

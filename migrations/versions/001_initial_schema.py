"""
001 — Initial schema: athlete_risk_scores table

One row per membership (unique membership_id), replaced by upsert on every
calculation. Behavioral tables (wod_attendance, athlete_prs, ...) are owned
by the platform schema and are not created here.

Revision ID: 001
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSON

revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "athlete_risk_scores",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("box_id", sa.String(36), nullable=False),
        sa.Column("membership_id", sa.String(36), nullable=False),

        sa.Column("overall_risk_score", sa.Numeric(5, 2), nullable=False),
        sa.Column("risk_level", sa.String(10), nullable=False),
        sa.Column("churn_probability", sa.Numeric(5, 4), nullable=False),

        sa.Column("attendance_score", sa.Numeric(5, 2), nullable=False),
        sa.Column("performance_score", sa.Numeric(5, 2), nullable=False),
        sa.Column("engagement_score", sa.Numeric(5, 2), nullable=False),
        sa.Column("wellness_score", sa.Numeric(5, 2), nullable=False),

        sa.Column("attendance_trend", sa.Numeric, nullable=False),
        sa.Column("performance_trend", sa.Numeric, nullable=False),
        sa.Column("engagement_trend", sa.Numeric, nullable=False),
        sa.Column("wellness_trend", sa.Numeric, nullable=False),

        sa.Column("days_since_last_visit", sa.Integer, nullable=True),
        sa.Column("days_since_last_checkin", sa.Integer, nullable=True),
        sa.Column("days_since_last_pr", sa.Integer, nullable=True),

        sa.Column("factors", JSON, nullable=False),

        sa.Column("calculated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("valid_until", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),

        sa.UniqueConstraint("membership_id", name="athlete_risk_scores_membership_id_key"),
        sa.CheckConstraint(
            "overall_risk_score >= 0 AND overall_risk_score <= 100",
            name="overall_risk_score_range",
        ),
        sa.CheckConstraint(
            "churn_probability >= 0 AND churn_probability <= 1",
            name="churn_probability_range",
        ),
    )

    op.create_index("ix_athlete_risk_scores_box_id", "athlete_risk_scores", ["box_id"])
    op.create_index("athlete_risk_scores_box_risk_level_idx", "athlete_risk_scores", ["box_id", "risk_level"])
    op.create_index("athlete_risk_scores_valid_until_idx", "athlete_risk_scores", ["valid_until"])


def downgrade() -> None:
    op.drop_table("athlete_risk_scores")

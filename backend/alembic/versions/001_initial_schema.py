"""Initial schema: teams, profiles, projects, timesheets, audit_log

Revision ID: 001
Revises:
Create Date: 2026-10-19

Creates the allocation tables and seeds the default teams and project catalog.
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB

from engtrack.constants import DEFAULT_PROJECTS, DEFAULT_TEAMS, LEAVE_PROJECTS

revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    teams = op.create_table(
        "teams",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("type", sa.String(20), nullable=False, server_default="rd"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint("type IN ('rd', 'support')", name="ck_teams_type"),
    )

    op.create_table(
        "profiles",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("full_name", sa.String(200), nullable=False),
        sa.Column("role", sa.String(20), nullable=False, server_default="user"),
        sa.Column("team_id", sa.String(64), sa.ForeignKey("teams.id", ondelete="SET NULL"), nullable=True),
        sa.Column("preferred_projects", JSONB, nullable=False,
                  server_default=sa.text("""'["new_dagger", "project_mgmt", "testing_guns"]'::jsonb""")),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column("start_date", sa.Date, nullable=True),
        sa.Column("end_date", sa.Date, nullable=True),
        sa.Column("leave_reason", sa.String(20), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_profiles_email", "profiles", ["email"])
    op.create_index("ix_profiles_team_id", "profiles", ["team_id"])

    projects = op.create_table(
        "projects",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("category", sa.String(20), nullable=False),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint(
            "category IN ('R&D', 'R&D Support', 'MFG Support', 'Leave')",
            name="ck_projects_category",
        ),
    )

    op.create_table(
        "timesheets",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(64), sa.ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False),
        sa.Column("year", sa.Integer, nullable=False),
        sa.Column("week_number", sa.Integer, nullable=False),
        sa.Column("project_id", sa.String(64), nullable=False),
        sa.Column("hours", sa.Numeric(5, 2), nullable=False, server_default="0"),
        sa.Column("percentage", sa.Numeric(5, 2), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("user_id", "year", "week_number", "project_id", name="uq_timesheets_user_week_project"),
        sa.CheckConstraint("week_number >= 1 AND week_number <= 53", name="ck_timesheets_week_number"),
    )
    op.create_index("ix_timesheets_user_id", "timesheets", ["user_id"])
    op.create_index("idx_timesheets_week", "timesheets", ["year", "week_number"])
    op.create_index("idx_timesheets_user_week", "timesheets", ["user_id", "year", "week_number"])

    op.create_table(
        "audit_log",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("action", sa.String(100), nullable=False),
        sa.Column("resource_type", sa.String(100), nullable=False),
        sa.Column("resource_id", sa.String(255), nullable=True),
        sa.Column("details", JSONB, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_audit_log_user_id", "audit_log", ["user_id"])

    # ── Seed data ──
    op.bulk_insert(teams, [{"id": i, "name": n, "type": t} for i, n, t in DEFAULT_TEAMS])
    op.bulk_insert(projects, [
        {"id": i, "name": n, "category": c.value, "is_active": True}
        for i, n, c in DEFAULT_PROJECTS + LEAVE_PROJECTS
    ])


def downgrade():
    op.drop_table("audit_log")
    op.drop_table("timesheets")
    op.drop_table("projects")
    op.drop_table("profiles")
    op.drop_table("teams")

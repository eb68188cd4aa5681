"""store hours, exception rules, occurrences, change log and templates

Revision ID: 20261001_01
Revises:
Create Date: 2026-10-01
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op


# revision identifiers, used by Alembic.
revision = "20261001_01"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "store_hours",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("site_id", sa.String(length=64), nullable=False, index=True),
        sa.Column("org_id", sa.String(length=64), nullable=True, index=True),
        sa.Column("day_of_week", sa.String(length=16), nullable=False),
        sa.Column("open_time", sa.String(length=8), nullable=True),
        sa.Column("close_time", sa.String(length=8), nullable=True),
        sa.Column("is_closed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("site_id", "day_of_week", name="uq_store_hours_site_day"),
    )

    op.create_table(
        "store_hours_exception_rules",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("site_id", sa.String(length=64), nullable=False, index=True),
        sa.Column("name", sa.String(length=256), nullable=False),
        sa.Column("event_type", sa.String(length=64), nullable=False, server_default="store_hours_schedule"),
        sa.Column("rule_type", sa.String(length=32), nullable=False),
        sa.Column("effective_from_date", sa.Date(), nullable=False),
        sa.Column("effective_to_date", sa.Date(), nullable=True),
        sa.Column("retired_on", sa.Date(), nullable=True),
        sa.Column("is_closed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("open_time", sa.String(length=8), nullable=True),
        sa.Column("close_time", sa.String(length=8), nullable=True),
        sa.Column("start_day_open", sa.String(length=8), nullable=True),
        sa.Column("start_day_close", sa.String(length=8), nullable=True),
        sa.Column("middle_days_closed", sa.Boolean(), nullable=True),
        sa.Column("middle_days_open", sa.String(length=8), nullable=True),
        sa.Column("middle_days_close", sa.String(length=8), nullable=True),
        sa.Column("end_day_open", sa.String(length=8), nullable=True),
        sa.Column("end_day_close", sa.String(length=8), nullable=True),
        sa.Column("date", sa.Date(), nullable=True),
        sa.Column("month", sa.Integer(), nullable=True),
        sa.Column("day", sa.Integer(), nullable=True),
        sa.Column("weekday", sa.String(length=16), nullable=True),
        sa.Column("nth", sa.Integer(), nullable=True),
        sa.Column("days", sa.JSON(), nullable=True),
        sa.Column("interval", sa.Integer(), nullable=True),
        sa.Column("unit", sa.String(length=16), nullable=True),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("created_by", sa.String(length=256), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "ix_store_hours_exception_rules_site_created",
        "store_hours_exception_rules",
        ["site_id", "created_at"],
    )

    op.create_table(
        "store_hours_occurrences",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("site_id", sa.String(length=64), nullable=False, index=True),
        sa.Column(
            "exception_id",
            sa.String(length=36),
            sa.ForeignKey("store_hours_exception_rules.id", ondelete="SET NULL"),
            nullable=True,
            index=True,
        ),
        sa.Column("occurrence_date", sa.Date(), nullable=False),
        sa.Column("name", sa.String(length=256), nullable=True),
        sa.Column("open_time", sa.String(length=8), nullable=True),
        sa.Column("close_time", sa.String(length=8), nullable=True),
        sa.Column("is_closed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_by", sa.String(length=256), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "ix_store_hours_occurrences_site_date",
        "store_hours_occurrences",
        ["site_id", "occurrence_date"],
    )

    op.create_table(
        "store_hours_change_log",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("site_id", sa.String(length=64), nullable=False, index=True),
        sa.Column("org_id", sa.String(length=64), nullable=True),
        sa.Column("source", sa.String(length=32), nullable=False),
        sa.Column("action", sa.String(length=16), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("changed_by", sa.String(length=256), nullable=False),
        sa.Column("store_hours_id", sa.String(length=36), nullable=True),
        sa.Column("day_of_week", sa.String(length=16), nullable=True),
        sa.Column("open_time_old", sa.String(length=8), nullable=True),
        sa.Column("open_time_new", sa.String(length=8), nullable=True),
        sa.Column("close_time_old", sa.String(length=8), nullable=True),
        sa.Column("close_time_new", sa.String(length=8), nullable=True),
        sa.Column("is_closed_old", sa.Boolean(), nullable=True),
        sa.Column("is_closed_new", sa.Boolean(), nullable=True),
        sa.Column("exception_id", sa.String(length=36), nullable=True),
        sa.Column("occurrence_id", sa.String(length=36), nullable=True),
        sa.Column("event_date", sa.Date(), nullable=True),
        sa.Column("details", sa.JSON(), nullable=False),
        sa.Column("changed_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "ix_store_hours_change_log_site_changed",
        "store_hours_change_log",
        ["site_id", "changed_at"],
    )

    op.create_table(
        "store_hours_templates",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("org_id", sa.String(length=64), nullable=False, index=True),
        sa.Column("template_name", sa.String(length=128), nullable=False),
        sa.Column("is_global", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("days", sa.JSON(), nullable=False),
        sa.Column("created_by", sa.String(length=256), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("store_hours_templates")
    op.drop_index("ix_store_hours_change_log_site_changed", table_name="store_hours_change_log")
    op.drop_table("store_hours_change_log")
    op.drop_index("ix_store_hours_occurrences_site_date", table_name="store_hours_occurrences")
    op.drop_table("store_hours_occurrences")
    op.drop_index("ix_store_hours_exception_rules_site_created", table_name="store_hours_exception_rules")
    op.drop_table("store_hours_exception_rules")
    op.drop_table("store_hours")

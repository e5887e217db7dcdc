"""Ticketing schema: counters, tickets, projects and users."""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision = "20261018_000001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "ticket_counters",
        sa.Column("key", sa.Text(), primary_key=True, nullable=False),
        sa.Column("value", sa.BigInteger(), nullable=False),
        sa.CheckConstraint("value >= 0", name="ticket_counters_value_check"),
    )

    op.create_table(
        "tickets",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("ticket_number", sa.Text(), nullable=False),
        sa.Column("subject", sa.Text(), nullable=False),
        sa.Column("email", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("customer", sa.Text(), nullable=False, server_default=""),
        sa.Column("project", sa.Text(), nullable=False),
        sa.Column("project_id", sa.Text(), nullable=False, server_default=""),
        sa.Column("module", sa.Text(), nullable=False, server_default=""),
        sa.Column("category", sa.Text(), nullable=False, server_default=""),
        sa.Column("sub_category", sa.Text(), nullable=False, server_default=""),
        sa.Column("type_of_issue", sa.Text(), nullable=False, server_default=""),
        sa.Column("priority", sa.Text(), nullable=False),
        sa.Column("status", sa.Text(), nullable=False),
        sa.Column("starred", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("user_id", sa.Text(), nullable=False),
        sa.Column("reported_by", sa.Text(), nullable=False, server_default=""),
        sa.Column("attachments", postgresql.JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("comments", postgresql.JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("assigned_to", postgresql.JSONB(), nullable=True),
        sa.Column("created", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("last_updated", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.UniqueConstraint("ticket_number", name="tickets_ticket_number_key"),
    )
    op.create_index("tickets_email_idx", "tickets", ["email"])
    op.create_index("tickets_project_idx", "tickets", ["project"])
    op.create_index("tickets_status_idx", "tickets", ["status"])
    op.create_index("tickets_created_idx", "tickets", [sa.text("created DESC")])

    op.create_table(
        "projects",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("name", sa.Text(), nullable=False, unique=True),
        sa.Column("members", postgresql.JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
    )

    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("email", sa.Text(), nullable=True, unique=True),
        sa.Column("role", sa.Text(), nullable=False),
        sa.Column("projects", postgresql.ARRAY(sa.Text()), nullable=False, server_default=sa.text("'{}'")),
    )
    op.create_index("users_projects_idx", "users", ["projects"], postgresql_using="gin")


def downgrade() -> None:
    op.drop_index("users_projects_idx", table_name="users")
    op.drop_table("users")
    op.drop_table("projects")
    op.drop_index("tickets_created_idx", table_name="tickets")
    op.drop_index("tickets_status_idx", table_name="tickets")
    op.drop_index("tickets_project_idx", table_name="tickets")
    op.drop_index("tickets_email_idx", table_name="tickets")
    op.drop_table("tickets")
    op.drop_table("ticket_counters")

"""Ticket lifecycle schema with seeded status and priority catalogs."""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "20260301_000001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "customers",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("email", sa.String(length=100), nullable=True, unique=True),
        sa.Column("phone", sa.String(length=20), nullable=True),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "agents",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("email", sa.String(length=100), nullable=True, unique=True),
        sa.Column("phone", sa.String(length=20), nullable=True),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    statuses = op.create_table(
        "ticket_statuses",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=50), nullable=False, unique=True),
        sa.Column("description", sa.String(length=200), nullable=True),
    )

    priorities = op.create_table(
        "ticket_priorities",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=50), nullable=False, unique=True),
        sa.Column("level", sa.Integer(), nullable=False, unique=True),
    )

    op.create_table(
        "tickets",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("customer_id", sa.Integer(), sa.ForeignKey("customers.id"), nullable=False),
        sa.Column("agent_id", sa.Integer(), sa.ForeignKey("agents.id"), nullable=True),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("status_id", sa.Integer(), sa.ForeignKey("ticket_statuses.id"), nullable=False),
        sa.Column("priority_id", sa.Integer(), sa.ForeignKey("ticket_priorities.id"), nullable=False),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("updated_at", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("closed_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default=sa.text("0")),
    )

    op.create_table(
        "ticket_messages",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("ticket_id", sa.Integer(), sa.ForeignKey("tickets.id", ondelete="CASCADE"), nullable=False),
        sa.Column("sender_id", sa.Integer(), nullable=False),
        sa.Column("sender_kind", sa.String(length=20), nullable=False),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("kind", sa.String(length=30), nullable=False, server_default=sa.text("'normal'")),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), nullable=False),
    )

    op.create_index("ix_ticket_statuses_name", "ticket_statuses", ["name"])
    op.create_index("ix_ticket_priorities_level", "ticket_priorities", ["level"])
    op.create_index("ix_tickets_customer_id", "tickets", ["customer_id"])
    op.create_index("ix_tickets_agent_id", "tickets", ["agent_id"])
    op.create_index("ix_tickets_status_id", "tickets", ["status_id"])
    op.create_index("ix_ticket_messages_ticket_id", "ticket_messages", ["ticket_id"])

    op.bulk_insert(
        statuses,
        [
            {"id": 1, "name": "Open", "description": "Waiting for a representative"},
            {"id": 2, "name": "Assigned", "description": "Assigned to a representative"},
            {"id": 3, "name": "InProgress", "description": "A representative is working on it"},
            {"id": 4, "name": "Closed", "description": "Resolved and closed"},
            {"id": 5, "name": "Waiting", "description": "Waiting for the customer"},
            {"id": 6, "name": "Resolved", "description": "Solution provided"},
        ],
    )
    op.bulk_insert(
        priorities,
        [
            {"id": 1, "name": "Low", "level": 1},
            {"id": 2, "name": "Normal", "level": 2},
            {"id": 3, "name": "High", "level": 3},
            {"id": 4, "name": "Urgent", "level": 4},
        ],
    )


def downgrade() -> None:
    op.drop_index("ix_ticket_messages_ticket_id", table_name="ticket_messages")
    op.drop_index("ix_tickets_status_id", table_name="tickets")
    op.drop_index("ix_tickets_agent_id", table_name="tickets")
    op.drop_index("ix_tickets_customer_id", table_name="tickets")
    op.drop_index("ix_ticket_priorities_level", table_name="ticket_priorities")
    op.drop_index("ix_ticket_statuses_name", table_name="ticket_statuses")
    op.drop_table("ticket_messages")
    op.drop_table("tickets")
    op.drop_table("ticket_priorities")
    op.drop_table("ticket_statuses")
    op.drop_table("agents")
    op.drop_table("customers")

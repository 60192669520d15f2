"""Create leave_requests and users tables.

Revision ID: 1a2b3c4d5e6f
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "1a2b3c4d5e6f"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    # --- users table ---
    if not inspector.has_table("users"):
        op.create_table(
            "users",
            sa.Column("id", sa.Uuid(), nullable=False),
            sa.Column("email", sa.String(), nullable=False),
            sa.Column("name", sa.String(), nullable=False, server_default=""),
            sa.Column("role", sa.String(), nullable=False, server_default="EMPLOYEE"),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index(op.f("ix_users_email"), "users", ["email"], unique=True)
        op.create_index(op.f("ix_users_role"), "users", ["role"])

    # --- leave_requests table ---
    if not inspector.has_table("leave_requests"):
        op.create_table(
            "leave_requests",
            sa.Column("identity", sa.String(length=64), nullable=False),
            sa.Column("applicant_id", sa.String(), nullable=False),
            sa.Column("applicant_name", sa.String(), nullable=False),
            sa.Column("from_instant", sa.DateTime(), nullable=False),
            sa.Column("to_instant", sa.DateTime(), nullable=False),
            sa.Column("reason", sa.String(), nullable=False, server_default=""),
            sa.Column("status", sa.String(), nullable=False, server_default="PENDING"),
            sa.Column("applied_on", sa.DateTime(), nullable=False),
            sa.Column("reviewed_on", sa.DateTime(), nullable=True),
            sa.Column("reviewer_id", sa.String(), nullable=True),
            sa.Column("reviewer_name", sa.String(), nullable=True),
            sa.Column("continuation_token", sa.String(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.Column("updated_at", sa.DateTime(), nullable=False),
            sa.PrimaryKeyConstraint("identity"),
        )
        op.create_index(
            op.f("ix_leave_requests_applicant_id"),
            "leave_requests",
            ["applicant_id"],
        )
        op.create_index(op.f("ix_leave_requests_status"), "leave_requests", ["status"])


def downgrade() -> None:
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    if inspector.has_table("leave_requests"):
        op.drop_index(op.f("ix_leave_requests_status"), table_name="leave_requests")
        op.drop_index(op.f("ix_leave_requests_applicant_id"), table_name="leave_requests")
        op.drop_table("leave_requests")
    if inspector.has_table("users"):
        op.drop_index(op.f("ix_users_role"), table_name="users")
        op.drop_index(op.f("ix_users_email"), table_name="users")
        op.drop_table("users")

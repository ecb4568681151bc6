"""create users and clients

Learn: Two tables. users.email carries the unique constraint that is the
real guard against duplicate registrations (the service's lookup is
only a fast path). clients.user_id is a foreign key with ON DELETE
CASCADE, so removing a user removes their clients in the database.

Revision ID: 3f2a9c1d7b10
Revises:
Create Date: 2025-10-06 10:00:00.000000
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f2a9c1d7b10'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


provider_enum = sa.Enum("local", "google", name="users_provider_enum")
plan_enum = sa.Enum("free", "pro", name="users_plan_enum")


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=True),
        sa.Column("provider", provider_enum, server_default="local", nullable=False),
        sa.Column("plan", plan_enum, server_default="free", nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )

    op.create_table(
        "clients",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("phone", sa.String(length=50), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id", name="pk_clients"),
        sa.ForeignKeyConstraint(
            ["user_id"],
            ["users.id"],
            name="fk_clients_user_id_users",
            ondelete="CASCADE",
        ),
    )
    op.create_index(
        "ix_clients_user_id_created_at", "clients", ["user_id", "created_at"]
    )


def downgrade() -> None:
    op.drop_index("ix_clients_user_id_created_at", table_name="clients")
    op.drop_table("clients")
    op.drop_table("users")
    plan_enum.drop(op.get_bind(), checkfirst=True)
    provider_enum.drop(op.get_bind(), checkfirst=True)

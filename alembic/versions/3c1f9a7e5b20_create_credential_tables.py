"""create credential tables

Revision ID: 3c1f9a7e5b20
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3c1f9a7e5b20"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "token_owners",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("owner", sa.String(length=128), nullable=False),
    )
    op.create_index("ix_token_owners_owner", "token_owners", ["owner"])

    op.create_table(
        "credentials",
        sa.Column(
            "id", sa.Integer(), sa.ForeignKey("token_owners.id"), primary_key=True
        ),
        sa.Column("holder_id", sa.String(length=255), nullable=False),
        sa.Column("issued_at", sa.BigInteger(), nullable=False),
        sa.Column("expires_at", sa.BigInteger(), nullable=False),
        sa.Column("subject_hash", sa.LargeBinary(length=32), nullable=False),
        sa.Column("level", sa.SmallInteger(), nullable=False),
        sa.Column("revoked", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.CheckConstraint("expires_at >= issued_at", name="ck_credentials_expiry"),
        sa.CheckConstraint("level IN (0, 1)", name="ck_credentials_level"),
    )

    op.create_table(
        "holder_index",
        sa.Column("holder", sa.String(length=128), primary_key=True),
        sa.Column(
            "credential_id",
            sa.Integer(),
            sa.ForeignKey("credentials.id"),
            nullable=False,
            unique=True,
        ),
    )


def downgrade() -> None:
    op.drop_table("holder_index")
    op.drop_table("credentials")
    op.drop_index("ix_token_owners_owner", table_name="token_owners")
    op.drop_table("token_owners")

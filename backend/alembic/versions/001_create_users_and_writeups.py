"""Create users and writeups tables

Revision ID: 001
Revises: None
Create Date: 2024-06-01 00:00:00.000000+00:00

users:    credential store, email unique
writeups: the bottles; likes never negative, claimed_by NULL while unclaimed

Rollback: downgrade() drops both tables (destructive).
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column(
            "password_hash",
            sa.String(255),
            nullable=False,
            comment="argon2id hash; the plaintext is never stored",
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )

    op.create_table(
        "writeups",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column(
            "user_id",
            sa.Integer(),
            nullable=False,
            comment="Owner; the only user allowed to delete the writeup",
        ),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("content", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column("is_public", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("likes", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column(
            "claimed_by",
            sa.Integer(),
            nullable=True,
            comment="Current claimant; NULL while the bottle is unclaimed",
        ),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["claimed_by"], ["users.id"], ondelete="SET NULL"),
        sa.CheckConstraint("likes >= 0", name="ck_writeups_likes_non_negative"),
    )

    # Feeds are always ordered newest first
    op.create_index("idx_writeups_created_at", "writeups", [sa.text("created_at DESC")])
    # GET /writeups/myclaims
    op.create_index("idx_writeups_claimed_by", "writeups", ["claimed_by"])


def downgrade() -> None:
    op.drop_index("idx_writeups_claimed_by", table_name="writeups")
    op.drop_index("idx_writeups_created_at", table_name="writeups")
    op.drop_table("writeups")
    op.drop_table("users")

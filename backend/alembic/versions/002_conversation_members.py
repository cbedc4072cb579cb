"""Add conversation_members and group metadata on conversations.

Revision ID: 002_conversation_members
Revises: 001_initial
Create Date: 2026-10-19

conversation_members gets one row per entry of conversations.participants so
a user's conversations can be listed with an indexed lookup. Existing rows are
backfilled on PostgreSQL.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "002_conversation_members"
down_revision: Union[str, None] = "001_initial"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.add_column(
        "conversations", sa.Column("name", sa.String(100), nullable=True),
    )
    op.add_column(
        "conversations",
        sa.Column(
            "created_by", sa.Integer,
            sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True,
        ),
    )

    op.create_table(
        "conversation_members",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("conversation_id", sa.Integer, sa.ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.Integer, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("last_read_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), nullable=False,
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint(
            "conversation_id", "user_id", name="uq_conversation_members_member",
        ),
    )

    if op.get_bind().dialect.name == "postgresql":
        op.execute(
            "INSERT INTO conversation_members (conversation_id, user_id) "
            "SELECT c.id, p.value::int "
            "FROM conversations c, json_array_elements_text(c.participants) AS p "
            "ON CONFLICT DO NOTHING"
        )


def downgrade() -> None:
    op.drop_table("conversation_members")
    op.drop_column("conversations", "created_by")
    op.drop_column("conversations", "name")

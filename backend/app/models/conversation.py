"""Conversation ORM: direct and group message threads.

Invariants:
    - direct_key is unique (NULL for group conversations); it is the only
      guard against two direct conversations for the same pair
    - participants is a JSON list of user ids, ascending; conversation_members
      holds one row per entry
    - name and created_by are only set for group conversations
"""

from datetime import datetime, timezone

from sqlalchemy import String, Integer, Boolean, DateTime, ForeignKey, JSON
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


class Conversation(Base):
    __tablename__ = "conversations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    direct_key: Mapped[str | None] = mapped_column(
        String(64), nullable=True, unique=True,
    )
    is_group: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    created_by: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True,
    )
    participants: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    last_message_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    last_message_preview: Mapped[str | None] = mapped_column(
        String(100), nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

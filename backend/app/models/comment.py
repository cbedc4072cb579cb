"""Comment ORM: two-level threaded comments on posts.

Invariants:
    - parent_comment_id, when set, points at a top-level comment of the same post
    - (author_id, post_id, client_mutation_id) is unique so a retried create
      resolves to the original comment; NULL mutation ids never collide
"""

from datetime import datetime, timezone

from sqlalchemy import String, Text, Integer, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


class Comment(Base):
    __tablename__ = "comments"
    __table_args__ = (
        UniqueConstraint(
            "author_id", "post_id", "client_mutation_id",
            name="uq_comments_client_mutation",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    post_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("posts.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    author_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
    )
    parent_comment_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("comments.id", ondelete="CASCADE"), nullable=True,
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    client_mutation_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    likes_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

"""Relation ORM: one row per directed social-graph edge (like, bookmark, follow, block).

Invariants:
    - At most one row per (subject_id, object_id, relation_type); the unique
      constraint is what makes concurrent activations converge
    - Rows are created and deleted, never updated in place
    - object_id is polymorphic (post, comment or user id), so it has no FK

Design Decisions:
    - Single table for all relation types: one toggle implementation, one
      counting query shape for every denormalized counter
"""

from datetime import datetime, timezone

from sqlalchemy import String, Integer, DateTime, ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


class Relation(Base):
    __tablename__ = "relations"
    __table_args__ = (
        UniqueConstraint(
            "subject_id", "object_id", "relation_type",
            name="uq_relations_edge",
        ),
        Index("ix_relations_object_type", "object_id", "relation_type"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    subject_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
    )
    object_id: Mapped[int] = mapped_column(Integer, nullable=False)
    relation_type: Mapped[str] = mapped_column(String(20), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

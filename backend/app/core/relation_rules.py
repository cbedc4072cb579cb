"""Relation Rules: per-relation-type configuration for the idempotent toggle.

Invariants:
    - Every RelationType has exactly one RelationRule
    - A CounterRule names the entity holding a denormalized count and which
      side of the relation identifies it; the count is always the number of
      relation records with that side id (never an increment)
    - forbid_self rules reject subject == object before any store access

Design Decisions:
    - Table-driven: like, comment_like, bookmark, follow and block share one
      state machine and differ only in this table
"""

from dataclasses import dataclass
from typing import Literal

from app.core.domain_types import (
    COMMENTS, POSTS, USERS, NotificationType, RelationType,
)


@dataclass(frozen=True)
class CounterRule:
    collection: str
    field: str
    side: Literal["subject", "object"]

    @property
    def filter_field(self) -> str:
        return f"{self.side}_id"


@dataclass(frozen=True)
class RelationRule:
    relation_type: RelationType
    target_collection: str
    noun: str
    counters: tuple[CounterRule, ...] = ()
    forbid_self: bool = False
    notification_type: NotificationType | None = None


RELATION_RULES: dict[RelationType, RelationRule] = {
    RelationType.LIKE: RelationRule(
        RelationType.LIKE, POSTS, "like",
        counters=(CounterRule(POSTS, "likes_count", "object"),),
        notification_type=NotificationType.LIKE_POST,
    ),
    RelationType.COMMENT_LIKE: RelationRule(
        RelationType.COMMENT_LIKE, COMMENTS, "like",
        counters=(CounterRule(COMMENTS, "likes_count", "object"),),
        notification_type=NotificationType.LIKE_COMMENT,
    ),
    RelationType.BOOKMARK: RelationRule(
        RelationType.BOOKMARK, POSTS, "bookmark",
    ),
    RelationType.FOLLOW: RelationRule(
        RelationType.FOLLOW, USERS, "follow",
        counters=(
            CounterRule(USERS, "followers_count", "object"),
            CounterRule(USERS, "following_count", "subject"),
        ),
        forbid_self=True,
        notification_type=NotificationType.FOLLOW,
    ),
    RelationType.BLOCK: RelationRule(
        RelationType.BLOCK, USERS, "block", forbid_self=True,
    ),
}


def rule_for(relation_type: RelationType | str) -> RelationRule:
    """Look up the rule for a relation type (accepts the enum or its value)."""
    return RELATION_RULES[RelationType(relation_type)]

"""Relation Toggle: idempotent activate/deactivate of social-graph edges.

Invariants:
    - At most one relation record per (subject_id, object_id, relation_type);
      the store's unique constraint enforces it, not this class
    - A UniquenessConflict on create means "already active", never an error
    - deactivate reports changed=True only if this call removed the record
    - Denormalized counters are recounted from relations after every toggle,
      no-ops included (never incremented or decremented)
    - Self-referential follow/block is rejected before any store access
    - Blocking unfollows both directions best-effort; cleanup failures are
      logged and never reach the caller

Design Decisions:
    - One state machine for like, comment_like, bookmark, follow and block;
      per-type differences live in core/relation_rules.py
    - No locks: concurrent toggles converge through the unique constraint
"""

import logging

from app.core.domain_types import (
    RELATIONS, USERS, RelationState, RelationType, ToggleResult,
)
from app.core.errors import UniquenessConflict
from app.core.relation_rules import RelationRule, rule_for
from app.core.repository_protocols import DocumentStore
from app.core.validate_input import check_not_self, parse_identifier

logger = logging.getLogger(__name__)


class RelationToggle:
    """Idempotent toggle over the relations collection."""

    def __init__(self, store: DocumentStore):
        self.store = store

    async def activate(
        self, subject_id: int, object_id: int, relation_type: RelationType,
    ) -> ToggleResult:
        return await self.toggle(
            subject_id, object_id, relation_type, RelationState.ACTIVE,
        )

    async def deactivate(
        self, subject_id: int, object_id: int, relation_type: RelationType,
    ) -> ToggleResult:
        return await self.toggle(
            subject_id, object_id, relation_type, RelationState.INACTIVE,
        )

    async def toggle(
        self,
        subject_id: int,
        object_id: int,
        relation_type: RelationType,
        desired: RelationState,
    ) -> ToggleResult:
        """Converge the edge to `desired` and return the resulting state."""
        rule = rule_for(relation_type)
        desired = RelationState(desired)
        subject_id, object_id = self._validate(rule, subject_id, object_id)
        await self.store.find_by_id(USERS, subject_id)
        await self.store.find_by_id(rule.target_collection, object_id)

        edge = _edge(subject_id, object_id, rule.relation_type)
        if desired is RelationState.ACTIVE:
            changed = await self._create_edge(edge)
        else:
            changed = await self.store.delete_where(RELATIONS, edge) > 0

        counts = await self._sync_counters(rule, subject_id, object_id)
        if changed:
            logger.info(
                f"Relation {rule.relation_type.value} {desired.value}",
                extra={
                    "user_id": subject_id,
                    "target_id": object_id,
                    "relation_type": rule.relation_type.value,
                },
            )
        if (
            changed
            and rule.relation_type is RelationType.BLOCK
            and desired is RelationState.ACTIVE
        ):
            await self._unfollow_both_ways(subject_id, object_id)
        return ToggleResult(state=desired, changed=changed, counts=counts)

    async def state(
        self, subject_id: int, object_id: int, relation_type: RelationType,
    ) -> ToggleResult:
        """Read the current edge state and its counters without writing."""
        rule = rule_for(relation_type)
        subject_id = parse_identifier(subject_id, "subject id")
        object_id = parse_identifier(object_id, f"{rule.target_collection} id")
        await self.store.find_by_id(rule.target_collection, object_id)
        record = await self.store.find_one(
            RELATIONS, _edge(subject_id, object_id, rule.relation_type),
        )
        counts = {}
        for counter in rule.counters:
            entity_id = object_id if counter.side == "object" else subject_id
            counts[counter.field] = await self._count(rule, counter.filter_field, entity_id)
        return ToggleResult(
            state=RelationState.ACTIVE if record else RelationState.INACTIVE,
            changed=False,
            counts=counts,
        )

    async def is_active(
        self, subject_id: int, object_id: int, relation_type: RelationType,
    ) -> bool:
        record = await self.store.find_one(
            RELATIONS, _edge(subject_id, object_id, rule_for(relation_type).relation_type),
        )
        return record is not None

    # ─── Internals ───────────────────────────────────────────────

    def _validate(
        self, rule: RelationRule, subject_id: int, object_id: int,
    ) -> tuple[int, int]:
        subject_id = parse_identifier(subject_id, "subject id")
        object_id = parse_identifier(object_id, f"{rule.target_collection} id")
        if rule.forbid_self:
            check_not_self(subject_id, object_id, rule.noun)
        return subject_id, object_id

    async def _create_edge(self, edge: dict) -> bool:
        if await self.store.find_one(RELATIONS, edge) is not None:
            return False
        try:
            await self.store.create(RELATIONS, edge)
        except UniquenessConflict:
            # Lost a race with an identical activation
            return False
        return True

    async def _count(self, rule: RelationRule, filter_field: str, entity_id: int) -> int:
        return await self.store.count(
            RELATIONS,
            {filter_field: entity_id, "relation_type": rule.relation_type.value},
        )

    async def _sync_counters(
        self, rule: RelationRule, subject_id: int, object_id: int,
    ) -> dict[str, int]:
        counts = {}
        for counter in rule.counters:
            entity_id = object_id if counter.side == "object" else subject_id
            total = await self._count(rule, counter.filter_field, entity_id)
            await self.store.update(counter.collection, entity_id, {counter.field: total})
            counts[counter.field] = total
        return counts

    async def _unfollow_both_ways(self, user_a: int, user_b: int) -> None:
        follow = rule_for(RelationType.FOLLOW)
        for subject_id, object_id in ((user_a, user_b), (user_b, user_a)):
            try:
                removed = await self.store.delete_where(
                    RELATIONS, _edge(subject_id, object_id, RelationType.FOLLOW),
                )
                if removed:
                    await self._sync_counters(follow, subject_id, object_id)
            except Exception as e:
                logger.warning(
                    f"Reciprocal unfollow after block failed: {e}",
                    extra={"user_id": subject_id, "target_id": object_id},
                )


def _edge(subject_id: int, object_id: int, relation_type: RelationType) -> dict:
    return {
        "subject_id": subject_id,
        "object_id": object_id,
        "relation_type": relation_type.value,
    }

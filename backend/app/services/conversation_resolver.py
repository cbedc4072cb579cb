"""Conversation Resolver: direct conversations per user pair, group creation
and the membership rows behind conversation listings.

Invariants:
    - resolve_direct(a, b) and resolve_direct(b, a) return the same record
    - direct_key = direct:<min>:<max> carries the store's unique constraint
    - A losing concurrent create resolves to the winner's record (created=False)
    - a == b is InvalidRequestError; an unknown user is ResourceNotFoundError
    - Every conversation this module returns has one conversation_members row
      per participant; a missing row (lost race, crash between writes) is
      filled in on the next resolve
    - A group always includes its creator plus at least one other user
"""

import logging

from app.core.dedupe_keys import direct_conversation_key
from app.core.domain_types import (
    CONVERSATION_MEMBERS, CONVERSATIONS, USERS, Record, ResolveResult,
)
from app.core.errors import InvalidRequestError, UniquenessConflict
from app.core.repository_protocols import DocumentStore
from app.core.validate_input import check_not_self, parse_identifier

logger = logging.getLogger(__name__)

MAX_GROUP_SIZE = 50
MAX_GROUP_NAME_LENGTH = 100


class ConversationResolver:

    def __init__(self, store: DocumentStore):
        self.store = store

    async def resolve_direct(self, user_a: int, user_b: int) -> ResolveResult:
        user_a = parse_identifier(user_a, "user id")
        user_b = parse_identifier(user_b, "user id")
        check_not_self(user_a, user_b, "start a conversation with")
        await self.store.find_by_id(USERS, user_a)
        await self.store.find_by_id(USERS, user_b)

        key = direct_conversation_key(user_a, user_b)
        existing = await self.store.find_one(CONVERSATIONS, {"direct_key": key})
        if existing is not None:
            await self.ensure_members(existing)
            return ResolveResult(conversation=existing, created=False)

        try:
            conversation = await self.store.create(CONVERSATIONS, {
                "direct_key": key,
                "is_group": False,
                "participants": sorted((user_a, user_b)),
            })
        except UniquenessConflict as conflict:
            logger.info(
                f"Direct conversation {key} created concurrently; using winner",
                extra={"conversation_id": conflict.existing_id},
            )
            winner = await self.store.find_by_id(CONVERSATIONS, conflict.existing_id)
            await self.ensure_members(winner)
            return ResolveResult(conversation=winner, created=False)
        await self.ensure_members(conversation)
        logger.info(
            f"Direct conversation {key} created",
            extra={"conversation_id": conversation["id"]},
        )
        return ResolveResult(conversation=conversation, created=True)

    async def create_group(
        self, creator_id: int, participant_ids: list, name: str | None = None,
    ) -> Record:
        """Create a group conversation of the creator plus participant_ids.

        Duplicate ids and the creator's own id in participant_ids are ignored.
        """
        creator_id = parse_identifier(creator_id, "user id")
        others = {parse_identifier(p, "participant id") for p in participant_ids}
        others.discard(creator_id)
        if not others:
            raise InvalidRequestError("At least one participant required")
        participants = sorted(others | {creator_id})
        if len(participants) > MAX_GROUP_SIZE:
            raise InvalidRequestError(
                f"A group can have at most {MAX_GROUP_SIZE} participants",
            )
        name = (name or "").strip() or None
        if name is not None and len(name) > MAX_GROUP_NAME_LENGTH:
            raise InvalidRequestError(
                f"Group name exceeds {MAX_GROUP_NAME_LENGTH} characters",
            )
        for user_id in participants:
            await self.store.find_by_id(USERS, user_id)

        conversation = await self.store.create(CONVERSATIONS, {
            "is_group": True,
            "name": name,
            "created_by": creator_id,
            "participants": participants,
        })
        await self.ensure_members(conversation)
        logger.info(
            f"Group conversation created with {len(participants)} participants",
            extra={"user_id": creator_id, "conversation_id": conversation["id"]},
        )
        return conversation

    async def ensure_members(self, conversation: Record) -> None:
        participants = conversation["participants"]
        present = await self.store.count(
            CONVERSATION_MEMBERS, {"conversation_id": conversation["id"]},
        )
        if present >= len(participants):
            return
        for user_id in participants:
            member = {"conversation_id": conversation["id"], "user_id": user_id}
            if await self.store.find_one(CONVERSATION_MEMBERS, member) is not None:
                continue
            try:
                await self.store.create(CONVERSATION_MEMBERS, member)
            except UniquenessConflict:
                # another request added this member first
                continue

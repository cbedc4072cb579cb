"""Messaging Handlers: conversations, messages and story replies.

Invariants:
    - Only participants may read, post to or mark a conversation
      (ForbiddenError otherwise)
    - client_mutation_id dedupes a retried send per (conversation, sender);
      a deduplicated send produces no notification
    - Every new message sets last_message_at and a preview of at most
      PREVIEW_LENGTH characters on its conversation
    - Story replies go through ConversationResolver, so a reply reuses the
      one direct conversation between the pair
    - Listing splits conversations into boxes: groups and direct threads with
      someone the user follows or is followed by are "inbox", other direct
      threads are "spam"
    - Marking a conversation read also marks its unread notifications read,
      which is what the messages badge counts
"""

import logging
from datetime import datetime, timezone

from app.core.domain_types import (
    CONVERSATION_MEMBERS, CONVERSATIONS, MESSAGES, NOTIFICATIONS, RELATIONS,
    STORIES, USERS, HandlerOutcome, Record, RelationType,
)
from app.core.errors import ForbiddenError, InvalidRequestError, UniquenessConflict
from app.core.format_notifications import PREVIEW_LENGTH, message_notification
from app.core.repository_protocols import DocumentStore
from app.core.validate_input import normalize_text, parse_identifier
from app.services.conversation_resolver import ConversationResolver

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 4000
MAX_CONVERSATIONS_PAGE = 50
MEMBERSHIP_BATCH = 100
BOXES = ("inbox", "spam")


def _other_participant(conversation: Record, user_id: int) -> int | None:
    return next((p for p in conversation["participants"] if p != user_id), None)


class MessagingHandlers:

    def __init__(self, store: DocumentStore):
        self.store = store
        self.resolver = ConversationResolver(store)

    async def open_direct(self, user_id: int, other_user_id: int) -> dict:
        result = await self.resolver.resolve_direct(user_id, other_user_id)
        return {"conversation": result.conversation, "created": result.created}

    async def create_group(
        self, user_id: int, participant_ids: list, name: str | None = None,
    ) -> dict:
        conversation = await self.resolver.create_group(user_id, participant_ids, name)
        return {"conversation": conversation}

    async def list_conversations(
        self, user_id: int, box: str = "inbox", page: int = 1, limit: int = 20,
    ) -> dict:
        """The user's conversations, most recent activity first.

        Paging runs over all of the user's conversations and the box filter is
        applied within the page, so a page can hold fewer than limit docs.
        """
        if box not in BOXES:
            raise InvalidRequestError(f"Invalid box: {box!r}")
        limit = min(limit, MAX_CONVERSATIONS_PAGE)
        memberships = await self._memberships(user_id)
        result = await self.store.find(
            CONVERSATIONS, {"id": list(memberships)},
            page=page, limit=limit, sort="-last_message_at",
        )
        direct_others = {
            _other_participant(c, user_id)
            for c in result.docs if not c["is_group"]
        }
        direct_others.discard(None)
        contacts = await self._follow_contacts(user_id, direct_others)

        docs = []
        for conversation in result.docs:
            in_inbox = (
                conversation["is_group"]
                or _other_participant(conversation, user_id) in contacts
            )
            if ("inbox" if in_inbox else "spam") != box:
                continue
            docs.append({
                **conversation,
                "box": box,
                "last_read_at": memberships[conversation["id"]]["last_read_at"],
            })
        return {**result.as_body(docs), "box": box}

    async def list_messages(
        self, user_id: int, conversation_id: int, page: int = 1, limit: int = 50,
    ) -> dict:
        conversation = await self._conversation_for(user_id, conversation_id)
        result = await self.store.find(
            MESSAGES, {"conversation_id": conversation["id"]},
            page=page, limit=limit, sort="-created_at",
        )
        return result.as_body()

    async def mark_conversation_read(self, user_id: int, conversation_id: int) -> dict:
        conversation = await self._conversation_for(user_id, conversation_id)
        now = datetime.now(timezone.utc)
        await self.resolver.ensure_members(conversation)
        await self.store.update_where(
            CONVERSATION_MEMBERS,
            {"conversation_id": conversation["id"], "user_id": user_id},
            {"last_read_at": now},
        )
        cleared = await self.store.update_where(
            NOTIFICATIONS,
            {
                "recipient_id": user_id,
                "conversation_id": conversation["id"],
                "read_at": None,
            },
            {"read_at": now},
        )
        return {
            "read": True,
            "conversation_id": conversation["id"],
            "notifications_read": cleared,
        }

    async def send_message(
        self,
        user_id: int,
        conversation_id: int,
        content: str,
        client_mutation_id: str | None = None,
    ) -> HandlerOutcome:
        content = normalize_text(content, "Text", MAX_MESSAGE_LENGTH)
        conversation = await self._conversation_for(user_id, conversation_id)

        message, created = await self._create_message(
            conversation, user_id, content, None, client_mutation_id,
        )
        notifications = ()
        if created:
            actor = await self.store.find_by_id(USERS, user_id)
            notifications = tuple(
                message_notification(actor, message, participant)
                for participant in conversation["participants"]
                if participant != user_id
            )
        return HandlerOutcome(
            body={"message": message, "deduplicated": not created},
            notifications=notifications,
        )

    async def reply_to_story(
        self,
        user_id: int,
        story_id: int,
        content: str,
        client_mutation_id: str | None = None,
    ) -> HandlerOutcome:
        story_id = parse_identifier(story_id, "story id")
        content = normalize_text(content, "Text", MAX_MESSAGE_LENGTH)
        story = await self.store.find_by_id(STORIES, story_id)
        author_id = story["author_id"]
        if author_id == user_id:
            raise InvalidRequestError("Cannot reply to your own story")

        resolved = await self.resolver.resolve_direct(user_id, author_id)
        message, created = await self._create_message(
            resolved.conversation, user_id, content, story_id, client_mutation_id,
        )
        notifications = ()
        if created:
            actor = await self.store.find_by_id(USERS, user_id)
            notifications = (message_notification(actor, message, author_id),)
        return HandlerOutcome(
            body={
                "message": message,
                "conversation_id": resolved.conversation["id"],
                "deduplicated": not created,
            },
            notifications=notifications,
        )

    async def _create_message(
        self,
        conversation: Record,
        sender_id: int,
        content: str,
        story_id: int | None,
        client_mutation_id: str | None,
    ) -> tuple[Record, bool]:
        if client_mutation_id:
            existing = await self.store.find_one(MESSAGES, {
                "conversation_id": conversation["id"],
                "sender_id": sender_id,
                "client_mutation_id": client_mutation_id,
            })
            if existing is not None:
                return existing, False
        try:
            message = await self.store.create(MESSAGES, {
                "conversation_id": conversation["id"],
                "sender_id": sender_id,
                "content": content,
                "story_id": story_id,
                "client_mutation_id": client_mutation_id or None,
            })
        except UniquenessConflict as conflict:
            return await self.store.find_by_id(MESSAGES, conflict.existing_id), False

        await self.store.update(CONVERSATIONS, conversation["id"], {
            "last_message_at": datetime.now(timezone.utc),
            "last_message_preview": content[:PREVIEW_LENGTH],
        })
        logger.info(
            f"Message {message['id']} sent",
            extra={"user_id": sender_id, "conversation_id": conversation["id"]},
        )
        return message, True

    async def _conversation_for(self, user_id: int, conversation_id: int) -> Record:
        conversation_id = parse_identifier(conversation_id, "conversation id")
        conversation = await self.store.find_by_id(CONVERSATIONS, conversation_id)
        if user_id not in conversation["participants"]:
            raise ForbiddenError("Not a participant in this conversation")
        return conversation

    async def _memberships(self, user_id: int) -> dict[int, Record]:
        """conversation_id -> membership row, for every conversation of the user."""
        memberships: dict[int, Record] = {}
        page = 1
        while True:
            result = await self.store.find(
                CONVERSATION_MEMBERS, {"user_id": user_id},
                page=page, limit=MEMBERSHIP_BATCH,
            )
            memberships.update((m["conversation_id"], m) for m in result.docs)
            if not result.has_next_page:
                return memberships
            page += 1

    async def _follow_contacts(self, user_id: int, others: set[int]) -> set[int]:
        """Users in others that user_id follows or is followed by."""
        if not others:
            return set()
        following = await self.store.find(
            RELATIONS,
            {
                "subject_id": user_id,
                "object_id": list(others),
                "relation_type": RelationType.FOLLOW.value,
            },
            limit=len(others),
        )
        followers = await self.store.find(
            RELATIONS,
            {
                "subject_id": list(others),
                "object_id": user_id,
                "relation_type": RelationType.FOLLOW.value,
            },
            limit=len(others),
        )
        return (
            {r["object_id"] for r in following.docs}
            | {r["subject_id"] for r in followers.docs}
        )

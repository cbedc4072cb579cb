"""Inbox Handlers: notification listing, read state, badges and push devices.

Invariants:
    - A user only reads or marks their own notifications (ForbiddenError)
    - mark_read is idempotent: an already-read notification keeps its read_at
    - register_device upserts by (user_id, device_id); a concurrent duplicate
      create becomes an update of the winner
    - Registration never clears disabled_at: a tombstoned device stays out of
      fan-out for good
"""

import logging
from datetime import datetime, timezone

from app.core.domain_types import (
    NOTIFICATIONS, USER_DEVICES, NotificationType,
)
from app.core.errors import ForbiddenError, InvalidRequestError, UniquenessConflict
from app.core.repository_protocols import DocumentStore
from app.core.validate_input import looks_like_expo_token, normalize_text, parse_identifier

logger = logging.getLogger(__name__)

PLATFORMS = ("ios", "android", "web")
MESSAGE_TYPES = [NotificationType.MESSAGE.value, NotificationType.STORY_REPLY.value]


class InboxHandlers:

    def __init__(self, store: DocumentStore):
        self.store = store

    async def list_notifications(
        self, user_id: int, page: int = 1, limit: int = 50, unread_only: bool = False,
    ) -> dict:
        filters = {"recipient_id": user_id}
        if unread_only:
            filters["read_at"] = None
        result = await self.store.find(
            NOTIFICATIONS, filters, page=page, limit=limit, sort="-created_at",
        )
        return result.as_body()

    async def mark_read(self, user_id: int, notification_id: int) -> dict:
        notification_id = parse_identifier(notification_id, "notification id")
        notification = await self.store.find_by_id(NOTIFICATIONS, notification_id)
        if notification["recipient_id"] != user_id:
            raise ForbiddenError("Cannot modify another user's notification")
        if notification["read_at"] is None:
            notification = await self.store.update(
                NOTIFICATIONS, notification_id,
                {"read_at": datetime.now(timezone.utc)},
            )
        return {"read": True, "notification": notification}

    async def mark_all_read(self, user_id: int) -> dict:
        updated = await self.store.update_where(
            NOTIFICATIONS,
            {"recipient_id": user_id, "read_at": None},
            {"read_at": datetime.now(timezone.utc)},
        )
        return {"updated": updated}

    async def badges(self, user_id: int) -> dict:
        """Unread counters; messages count unread message and story-reply notifications."""
        unread = await self.store.count(
            NOTIFICATIONS, {"recipient_id": user_id, "read_at": None},
        )
        unread_messages = await self.store.count(
            NOTIFICATIONS,
            {"recipient_id": user_id, "read_at": None, "type": MESSAGE_TYPES},
        )
        return {"notifications_unread": unread, "messages_unread": unread_messages}

    async def register_device(
        self,
        user_id: int,
        device_id: str,
        push_token: str,
        platform: str | None = None,
    ) -> dict:
        device_id = normalize_text(device_id, "device_id", 128)
        if not looks_like_expo_token(push_token):
            raise InvalidRequestError("Invalid Expo push token")
        platform = (platform or "ios").lower()
        if platform not in PLATFORMS:
            raise InvalidRequestError(f"Unsupported platform: {platform}")

        changes = {
            "push_token": push_token,
            "platform": platform,
            "last_seen_at": datetime.now(timezone.utc),
        }
        existing = await self.store.find_one(
            USER_DEVICES, {"user_id": user_id, "device_id": device_id},
        )
        if existing is not None:
            device = await self.store.update(USER_DEVICES, existing["id"], changes)
            return {"registered": True, "created": False, "device": device}
        try:
            device = await self.store.create(USER_DEVICES, {
                "user_id": user_id, "device_id": device_id, **changes,
            })
        except UniquenessConflict as conflict:
            device = await self.store.update(USER_DEVICES, conflict.existing_id, changes)
            return {"registered": True, "created": False, "device": device}
        logger.info("Push device registered", extra={"user_id": user_id, "device_id": device_id})
        return {"registered": True, "created": True, "device": device}

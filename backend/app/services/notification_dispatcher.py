"""Notification Dispatcher: at-most-once in-app notification plus push fan-out.

Invariants:
    - One notification record per dedupe key; a UniquenessConflict resolves to
      the existing record and no push is sent for it
    - actor == recipient is a silent no-op (no record, no push)
    - Fan-out reaches at most max_devices non-disabled devices, newest first,
      and only tokens starting with ExponentPushToken[
    - DeviceNotRegistered sets the device's disabled_at (one-way tombstone)
    - push_status moves pending -> sent | failed | skipped exactly once;
      failure to record it leaves the notification pending
    - Push errors never propagate: a gateway outage counts every message in
      the batch as failed
    - Tombstone and push_status writes are best-effort; a store failure there
      is logged and the remaining tickets are still classified

Design Decisions:
    - One gateway call per notification; no retry
    - dispatch_in_background opens its own session: the request session is
      closed by the time FastAPI runs background tasks
"""

import logging
from datetime import datetime, timezone

from app.core.dedupe_keys import generate_dedupe_key
from app.core.domain_types import (
    NOTIFICATIONS, USER_DEVICES, NotificationRequest, NotifyOutcome,
    PushMessage, PushResult, PushStatus, Record,
)
from app.core.errors import UniquenessConflict, UpstreamDegradedError
from app.core.repository_protocols import DocumentStore, PushGateway
from app.core.validate_input import looks_like_expo_token

logger = logging.getLogger(__name__)

DEVICE_NOT_REGISTERED = "DeviceNotRegistered"


def _value(member) -> str | None:
    return getattr(member, "value", member)


class NotificationDispatcher:
    """Creates notification records and fans pushes out to devices."""

    def __init__(
        self, store: DocumentStore, gateway: PushGateway, max_devices: int = 10,
    ):
        self.store = store
        self.gateway = gateway
        self.max_devices = max_devices

    async def notify(self, request: NotificationRequest) -> NotifyOutcome | None:
        """Create the notification (deduplicated) and push it once.

        Returns None when the notification is suppressed because the actor
        is the recipient.
        """
        if request.actor_id is not None and request.actor_id == request.recipient_id:
            logger.debug(
                "Self-notification suppressed",
                extra={"user_id": request.recipient_id},
            )
            return None

        notification, created = await self.create_notification(request)
        if not created:
            return NotifyOutcome(
                notification_id=notification["id"], is_duplicate=True,
            )

        if request.skip_push:
            status = PushStatus.SKIPPED
        else:
            result = await self.send_push(
                request.recipient_id,
                request.push_title,
                request.push_body,
                {
                    **request.push_data,
                    "notificationId": notification["id"],
                    "type": _value(request.type),
                    "entityType": _value(request.entity_type),
                    "entityId": request.entity_id,
                    "conversationId": request.conversation_id,
                },
            )
            status = result.push_status
        await self._record_push_status(notification["id"], status)
        return NotifyOutcome(
            notification_id=notification["id"], is_duplicate=False,
            push_status=status,
        )

    async def create_notification(
        self, request: NotificationRequest,
    ) -> tuple[Record, bool]:
        """Insert the record; returns (record, created)."""
        dedupe_key = request.dedupe_key or generate_dedupe_key(
            request.type, request.entity_id, request.actor_id, request.recipient_id,
        )
        existing = await self.store.find_one(NOTIFICATIONS, {"dedupe_key": dedupe_key})
        if existing is not None:
            logger.info("Duplicate notification skipped", extra={"dedupe_key": dedupe_key})
            return existing, False
        try:
            notification = await self.store.create(NOTIFICATIONS, {
                "recipient_id": request.recipient_id,
                "actor_id": request.actor_id,
                "type": _value(request.type),
                "entity_type": _value(request.entity_type),
                "entity_id": request.entity_id,
                "conversation_id": request.conversation_id,
                "text": request.text,
                "dedupe_key": dedupe_key,
                "push_status": PushStatus.PENDING.value,
            })
        except UniquenessConflict as conflict:
            logger.info("Duplicate notification skipped", extra={"dedupe_key": dedupe_key})
            return await self.store.find_by_id(NOTIFICATIONS, conflict.existing_id), False
        logger.info(
            f"Notification created: {_value(request.type)}",
            extra={
                "notification_id": notification["id"],
                "user_id": request.recipient_id,
            },
        )
        return notification, True

    async def send_push(
        self, user_id: int, title: str, body: str, data: dict | None = None,
    ) -> PushResult:
        """Submit one batch to the recipient's active devices."""
        page = await self.store.find(
            USER_DEVICES,
            {"user_id": user_id, "disabled_at": None},
            limit=self.max_devices,
            sort="-last_seen_at",
        )
        devices = [d for d in page.docs if looks_like_expo_token(d["push_token"])]
        if not devices:
            logger.info("No active push devices", extra={"user_id": user_id})
            return PushResult(sent=0, failed=0)

        messages = [
            PushMessage(to=d["push_token"], title=title, body=body, data=data or {})
            for d in devices
        ]
        try:
            tickets = await self.gateway.submit(messages)
        except UpstreamDegradedError as e:
            logger.warning(f"Push gateway unavailable: {e.message}", extra={"user_id": user_id})
            return PushResult(sent=0, failed=len(messages))

        sent = failed = 0
        for device, ticket in zip(devices, tickets):
            if ticket.ok:
                sent += 1
                continue
            failed += 1
            if ticket.error_reason == DEVICE_NOT_REGISTERED:
                await self._tombstone(device)
        # Messages the gateway returned no ticket for
        failed += max(len(messages) - len(tickets), 0)
        logger.info(
            "Push batch submitted",
            extra={"user_id": user_id, "sent": sent, "failed": failed},
        )
        return PushResult(sent=sent, failed=failed)

    async def _tombstone(self, device: Record) -> None:
        try:
            await self.store.update(
                USER_DEVICES, device["id"],
                {"disabled_at": datetime.now(timezone.utc)},
            )
        except Exception as e:
            logger.error(
                f"Failed to disable device {device['id']}: {e}",
                extra={"user_id": device["user_id"]},
                exc_info=True,
            )
            return
        logger.info(
            "Disabled unregistered push device",
            extra={"user_id": device["user_id"], "device_id": device["device_id"]},
        )

    async def _record_push_status(self, notification_id: int, status: PushStatus) -> None:
        try:
            await self.store.update(
                NOTIFICATIONS, notification_id, {"push_status": status.value},
            )
        except Exception as e:
            logger.error(
                f"Failed to record push status: {e}",
                extra={"notification_id": notification_id},
                exc_info=True,
            )


async def dispatch_in_background(
    requests: list[NotificationRequest], gateway: PushGateway,
) -> None:
    """BackgroundTasks entry point: notify each request in a fresh session."""
    from app.config import get_settings
    from app.infrastructure.database import get_db_manager
    from app.infrastructure.document_store import SqlDocumentStore

    max_devices = get_settings().push_max_devices
    for request in requests:
        try:
            async with get_db_manager().session() as db:
                dispatcher = NotificationDispatcher(
                    SqlDocumentStore(db), gateway, max_devices=max_devices,
                )
                await dispatcher.notify(request)
        except Exception as e:
            logger.error(
                f"Background notification failed: {e}",
                extra={"user_id": request.recipient_id},
                exc_info=True,
            )

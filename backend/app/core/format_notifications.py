"""Notification Formatting: pure builders for NotificationRequest objects.

Invariants:
    - All functions are pure (no IO, no async, no DB)
    - The actor's display name falls back to the username, then to "Someone"
    - entity_id is always a string so dedupe keys stay stable
    - Push bodies are truncated to PREVIEW_LENGTH characters
    - push_data keys are camelCase, matching the keys the dispatcher adds
"""

from app.core.domain_types import (
    EntityType, NotificationRequest, NotificationType, Record,
)

PREVIEW_LENGTH = 100


def _actor_name(actor: Record) -> str:
    return actor.get("display_name") or actor.get("username") or "Someone"


def _preview(text: str) -> str:
    text = text.strip()
    if len(text) <= PREVIEW_LENGTH:
        return text
    return text[: PREVIEW_LENGTH - 3] + "..."


def follow_notification(actor: Record, recipient_id: int) -> NotificationRequest:
    return NotificationRequest(
        recipient_id=recipient_id,
        actor_id=actor["id"],
        type=NotificationType.FOLLOW,
        entity_type=EntityType.USER,
        text="started following you",
        push_title="New follower",
        push_body=f"{_actor_name(actor)} started following you",
    )


def post_like_notification(actor: Record, post: Record) -> NotificationRequest:
    return NotificationRequest(
        recipient_id=post["author_id"],
        actor_id=actor["id"],
        type=NotificationType.LIKE_POST,
        entity_type=EntityType.POST,
        entity_id=str(post["id"]),
        text="liked your post",
        push_title="New like",
        push_body=f"{_actor_name(actor)} liked your post",
    )


def comment_like_notification(actor: Record, comment: Record) -> NotificationRequest:
    return NotificationRequest(
        recipient_id=comment["author_id"],
        actor_id=actor["id"],
        type=NotificationType.LIKE_COMMENT,
        entity_type=EntityType.COMMENT,
        entity_id=str(comment["id"]),
        text="liked your comment",
        push_title="New like",
        push_body=f"{_actor_name(actor)} liked your comment",
    )


def comment_notification(
    actor: Record, comment: Record, recipient_id: int, is_reply: bool,
) -> NotificationRequest:
    """Comment on a post (to the post author) or reply (to the parent author)."""
    verb = "replied to your comment" if is_reply else "commented on your post"
    return NotificationRequest(
        recipient_id=recipient_id,
        actor_id=actor["id"],
        type=NotificationType.REPLY_COMMENT if is_reply else NotificationType.COMMENT_POST,
        entity_type=EntityType.COMMENT,
        entity_id=str(comment["id"]),
        text=_preview(comment["content"]),
        push_title=f"{_actor_name(actor)} {verb}",
        push_body=_preview(comment["content"]),
        push_data={"postId": comment["post_id"]},
    )


def message_notification(
    actor: Record, message: Record, recipient_id: int,
) -> NotificationRequest:
    is_story_reply = message.get("story_id") is not None
    return NotificationRequest(
        recipient_id=recipient_id,
        actor_id=actor["id"],
        type=NotificationType.STORY_REPLY if is_story_reply else NotificationType.MESSAGE,
        entity_type=EntityType.MESSAGE,
        entity_id=str(message["id"]),
        conversation_id=message["conversation_id"],
        text=_preview(message["content"]),
        push_title=(
            f"{_actor_name(actor)} replied to your story"
            if is_story_reply else _actor_name(actor)
        ),
        push_body=_preview(message["content"]),
    )

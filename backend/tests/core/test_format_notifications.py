"""Notification Formatting: recipients, types, entity ids and push text."""

from app.core.domain_types import EntityType, NotificationType
from app.core.format_notifications import (
    PREVIEW_LENGTH, comment_like_notification, comment_notification,
    follow_notification, message_notification, post_like_notification,
)

ACTOR = {"id": 7, "username": "ana", "display_name": "Ana Costa"}


def test_follow_notification_targets_followed_user():
    req = follow_notification(ACTOR, 9)
    assert req.recipient_id == 9
    assert req.actor_id == 7
    assert req.type is NotificationType.FOLLOW
    assert req.entity_id is None
    assert req.push_body == "Ana Costa started following you"


def test_actor_name_falls_back_to_username():
    req = follow_notification({"id": 7, "username": "ana", "display_name": None}, 9)
    assert req.push_body.startswith("ana ")


def test_post_like_goes_to_post_author():
    req = post_like_notification(ACTOR, {"id": 42, "author_id": 3})
    assert req.recipient_id == 3
    assert req.type is NotificationType.LIKE_POST
    assert req.entity_type is EntityType.POST
    assert req.entity_id == "42"


def test_comment_like_uses_comment_id():
    req = comment_like_notification(ACTOR, {"id": 5, "author_id": 4})
    assert req.recipient_id == 4
    assert req.entity_id == "5"
    assert req.type is NotificationType.LIKE_COMMENT


def test_comment_vs_reply_type():
    comment = {"id": 11, "post_id": 42, "content": "nice"}
    assert comment_notification(ACTOR, comment, 3, is_reply=False).type is NotificationType.COMMENT_POST
    reply = comment_notification(ACTOR, comment, 4, is_reply=True)
    assert reply.type is NotificationType.REPLY_COMMENT
    assert reply.push_data == {"postId": 42}


def test_long_text_is_truncated():
    comment = {"id": 11, "post_id": 42, "content": "x" * 500}
    req = comment_notification(ACTOR, comment, 3, is_reply=False)
    assert len(req.push_body) == PREVIEW_LENGTH
    assert req.push_body.endswith("...")


def test_message_and_story_reply():
    message = {"id": 30, "conversation_id": 2, "content": "hey", "story_id": None}
    req = message_notification(ACTOR, message, 9)
    assert req.type is NotificationType.MESSAGE
    assert req.conversation_id == 2
    assert req.entity_id == "30"

    story_reply = message_notification(ACTOR, {**message, "story_id": 6}, 9)
    assert story_reply.type is NotificationType.STORY_REPLY
    assert story_reply.push_title == "Ana Costa replied to your story"

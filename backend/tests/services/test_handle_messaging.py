"""Messaging Handlers: participants, previews, story replies, listings and read markers."""

import pytest

from app.core.domain_types import (
    CONVERSATION_MEMBERS, CONVERSATIONS, MESSAGES, NOTIFICATIONS, RELATIONS,
    NotificationType,
)
from app.core.errors import ForbiddenError, InvalidRequestError, ResourceNotFoundError
from app.services.handle_messaging import MessagingHandlers


async def test_send_message_updates_conversation(store, seed):
    a = await seed.user()
    b = await seed.user()
    handlers = MessagingHandlers(store)
    opened = await handlers.open_direct(a["id"], b["id"])
    conversation_id = opened["conversation"]["id"]

    outcome = await handlers.send_message(a["id"], conversation_id, "x" * 150)

    conversation = await store.find_by_id(CONVERSATIONS, conversation_id)
    assert conversation["last_message_at"] is not None
    assert len(conversation["last_message_preview"]) == 100
    [notification] = outcome.notifications
    assert notification.recipient_id == b["id"]
    assert notification.type is NotificationType.MESSAGE
    assert notification.conversation_id == conversation_id


async def test_group_message_notifies_every_other_participant(store, seed):
    users = [await seed.user() for _ in range(3)]
    group = await seed.group([u["id"] for u in users])

    outcome = await MessagingHandlers(store).send_message(users[0]["id"], group["id"], "hi all")

    assert sorted(n.recipient_id for n in outcome.notifications) == sorted(
        u["id"] for u in users[1:]
    )


async def test_non_participant_forbidden(store, seed):
    a = await seed.user()
    b = await seed.user()
    outsider = await seed.user()
    opened = await MessagingHandlers(store).open_direct(a["id"], b["id"])

    with pytest.raises(ForbiddenError):
        await MessagingHandlers(store).send_message(
            outsider["id"], opened["conversation"]["id"], "let me in",
        )


async def test_missing_conversation_not_found(store, seed):
    a = await seed.user()
    with pytest.raises(ResourceNotFoundError):
        await MessagingHandlers(store).send_message(a["id"], 77, "hello")


async def test_message_retry_deduplicated(store, seed):
    a = await seed.user()
    b = await seed.user()
    handlers = MessagingHandlers(store)
    conversation_id = (await handlers.open_direct(a["id"], b["id"]))["conversation"]["id"]

    first = await handlers.send_message(a["id"], conversation_id, "hey", client_mutation_id="c1")
    again = await handlers.send_message(a["id"], conversation_id, "hey", client_mutation_id="c1")

    assert again.body["deduplicated"] is True
    assert again.body["message"]["id"] == first.body["message"]["id"]
    assert again.notifications == ()
    assert await store.count(MESSAGES) == 1


async def test_story_reply_reuses_direct_conversation(store, seed):
    author = await seed.user()
    fan = await seed.user()
    story = await seed.story(author["id"])
    handlers = MessagingHandlers(store)
    existing = await handlers.open_direct(author["id"], fan["id"])

    outcome = await handlers.reply_to_story(fan["id"], story["id"], "love it")

    assert outcome.body["conversation_id"] == existing["conversation"]["id"]
    assert outcome.body["message"]["story_id"] == story["id"]
    [notification] = outcome.notifications
    assert notification.type is NotificationType.STORY_REPLY
    assert notification.recipient_id == author["id"]


async def test_reply_to_own_story_rejected(store, seed):
    author = await seed.user()
    story = await seed.story(author["id"])
    with pytest.raises(InvalidRequestError, match="own story"):
        await MessagingHandlers(store).reply_to_story(author["id"], story["id"], "me")


async def _follow(store, subject_id, object_id):
    await store.create(RELATIONS, {
        "subject_id": subject_id, "object_id": object_id, "relation_type": "follow",
    })


async def test_conversations_split_into_inbox_and_spam(store, seed):
    me = await seed.user()
    friend = await seed.user()
    fan = await seed.user()
    stranger = await seed.user()
    handlers = MessagingHandlers(store)
    with_friend = (await handlers.open_direct(me["id"], friend["id"]))["conversation"]
    with_fan = (await handlers.open_direct(fan["id"], me["id"]))["conversation"]
    with_stranger = (await handlers.open_direct(stranger["id"], me["id"]))["conversation"]
    group = (await handlers.create_group(stranger["id"], [me["id"]]))["conversation"]
    await _follow(store, me["id"], friend["id"])
    await _follow(store, fan["id"], me["id"])

    inbox = await handlers.list_conversations(me["id"])
    spam = await handlers.list_conversations(me["id"], box="spam")

    assert inbox["box"] == "inbox"
    assert {c["id"] for c in inbox["docs"]} == {with_friend["id"], with_fan["id"], group["id"]}
    assert {c["id"] for c in spam["docs"]} == {with_stranger["id"]}
    assert all(c["last_read_at"] is None for c in inbox["docs"])
    assert inbox["total_docs"] == 4


async def test_conversation_list_only_shows_own_threads(store, seed):
    a = await seed.user()
    b = await seed.user()
    c = await seed.user()
    handlers = MessagingHandlers(store)
    await handlers.create_group(a["id"], [b["id"]])

    result = await handlers.list_conversations(c["id"])

    assert result["docs"] == []
    assert result["total_docs"] == 0


async def test_conversation_list_rejects_unknown_box(store, seed):
    a = await seed.user()
    with pytest.raises(InvalidRequestError):
        await MessagingHandlers(store).list_conversations(a["id"], box="archive")


async def test_group_conversation_accepts_messages(store, seed):
    a = await seed.user()
    b = await seed.user()
    c = await seed.user()
    handlers = MessagingHandlers(store)
    group = (await handlers.create_group(a["id"], [b["id"], c["id"]], "trip"))["conversation"]

    outcome = await handlers.send_message(b["id"], group["id"], "when do we leave?")

    assert sorted(n.recipient_id for n in outcome.notifications) == sorted((a["id"], c["id"]))


async def test_list_messages_newest_first(store, seed):
    a = await seed.user()
    b = await seed.user()
    handlers = MessagingHandlers(store)
    conversation_id = (await handlers.open_direct(a["id"], b["id"]))["conversation"]["id"]
    for text in ("one", "two", "three"):
        await handlers.send_message(a["id"], conversation_id, text)

    first_page = await handlers.list_messages(b["id"], conversation_id, limit=2)
    second_page = await handlers.list_messages(b["id"], conversation_id, page=2, limit=2)

    assert [m["content"] for m in first_page["docs"]] == ["three", "two"]
    assert first_page["total_docs"] == 3
    assert first_page["has_next_page"] is True
    assert [m["content"] for m in second_page["docs"]] == ["one"]


async def test_list_messages_requires_participant(store, seed):
    a = await seed.user()
    b = await seed.user()
    outsider = await seed.user()
    handlers = MessagingHandlers(store)
    conversation_id = (await handlers.open_direct(a["id"], b["id"]))["conversation"]["id"]

    with pytest.raises(ForbiddenError):
        await handlers.list_messages(outsider["id"], conversation_id)
    with pytest.raises(ForbiddenError):
        await handlers.mark_conversation_read(outsider["id"], conversation_id)


async def test_mark_conversation_read_clears_its_notifications(store, seed):
    a = await seed.user()
    b = await seed.user()
    handlers = MessagingHandlers(store)
    conversation_id = (await handlers.open_direct(a["id"], b["id"]))["conversation"]["id"]
    other_id = (await handlers.open_direct(b["id"], await _user_id(seed)))["conversation"]["id"]
    for key, conv in (("m1", conversation_id), ("m2", conversation_id), ("m3", other_id)):
        await store.create(NOTIFICATIONS, {
            "recipient_id": b["id"], "actor_id": a["id"], "type": "message",
            "conversation_id": conv, "dedupe_key": key,
        })

    result = await handlers.mark_conversation_read(b["id"], conversation_id)
    again = await handlers.mark_conversation_read(b["id"], conversation_id)

    assert result == {"read": True, "conversation_id": conversation_id, "notifications_read": 2}
    assert again["notifications_read"] == 0
    assert await store.count(NOTIFICATIONS, {"recipient_id": b["id"], "read_at": None}) == 1
    member = await store.find_one(
        CONVERSATION_MEMBERS, {"conversation_id": conversation_id, "user_id": b["id"]},
    )
    assert member["last_read_at"] is not None


async def _user_id(seed):
    return (await seed.user())["id"]

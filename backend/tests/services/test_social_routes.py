"""Social Routes: HTTP behaviour of the toggle, comment, message and inbox routes.

Tests:
    - User 7 likes post 42 twice, then unlikes twice ("Already liked"/"Not liked")
    - Missing or invalid credentials -> 401, nothing written
    - Notifications are dispatched in the background after the response
    - Error envelopes for 400/404
    - Bookmark, block, conversation and message listings; group creation;
      marking a conversation read clears the messages badge

Design Decisions:
    - Background tasks run before the httpx ASGI client returns, so DB state
      and recorded push batches can be asserted right after the call
"""

from app.core.domain_types import NOTIFICATIONS, POSTS, RELATIONS

AUTHOR_ID = 1
LIKER_ID = 7
POST_ID = 42


async def _seed_post(seed):
    await seed.user(user_id=AUTHOR_ID, display_name="Author")
    await seed.user(user_id=LIKER_ID, display_name="Liker")
    return await seed.post(AUTHOR_ID, post_id=POST_ID)


async def _like_edges(store):
    return await store.count(RELATIONS, {
        "subject_id": LIKER_ID, "object_id": POST_ID, "relation_type": "like",
    })


async def test_like_unlike_scenario(client, seed, store, auth_headers):
    await _seed_post(seed)
    headers = auth_headers(LIKER_ID)

    first = await client.post(f"/api/v1/posts/{POST_ID}/like", headers=headers)
    assert first.status_code == 200
    assert first.json() == {"liked": True, "likes_count": 1}
    assert await _like_edges(store) == 1

    second = await client.post(f"/api/v1/posts/{POST_ID}/like", headers=headers)
    assert second.json() == {"liked": True, "likes_count": 1, "message": "Already liked"}
    assert await _like_edges(store) == 1

    unlike = await client.delete(f"/api/v1/posts/{POST_ID}/like", headers=headers)
    assert unlike.json() == {"liked": False, "likes_count": 0}
    assert await _like_edges(store) == 0

    again = await client.delete(f"/api/v1/posts/{POST_ID}/like", headers=headers)
    assert again.json() == {"liked": False, "likes_count": 0, "message": "Not liked"}


async def test_like_state(client, seed, auth_headers):
    await _seed_post(seed)
    await client.post(f"/api/v1/posts/{POST_ID}/like", headers=auth_headers(LIKER_ID))

    res = await client.get(f"/api/v1/posts/{POST_ID}/like-state", headers=auth_headers(AUTHOR_ID))

    assert res.json() == {"liked": False, "likes_count": 1}


async def test_missing_credentials_rejected(client, seed, store):
    await _seed_post(seed)

    res = await client.post(f"/api/v1/posts/{POST_ID}/like")

    assert res.status_code == 401
    assert res.json()["error"]["code"] == "UNAUTHORIZED"
    assert await _like_edges(store) == 0


async def test_forged_token_rejected(client, seed):
    await _seed_post(seed)
    res = await client.post(
        f"/api/v1/posts/{POST_ID}/like",
        headers={"Authorization": "Bearer not-a-jwt"},
    )
    assert res.status_code == 401


async def test_like_notifies_author_in_background(client, seed, store, gateway, auth_headers):
    await _seed_post(seed)
    await seed.device(AUTHOR_ID, "phone", "ExponentPushToken[author]")

    await client.post(f"/api/v1/posts/{POST_ID}/like", headers=auth_headers(LIKER_ID))
    await client.post(f"/api/v1/posts/{POST_ID}/like", headers=auth_headers(LIKER_ID))

    page = await store.find(NOTIFICATIONS, {"recipient_id": AUTHOR_ID})
    assert page.total_docs == 1
    assert page.docs[0]["type"] == "like_post"
    assert page.docs[0]["push_status"] == "sent"
    assert gateway.sent_tokens == ["ExponentPushToken[author]"]


async def test_liking_own_post_sends_nothing(client, seed, store, gateway, auth_headers):
    await _seed_post(seed)
    await seed.device(AUTHOR_ID, "phone", "ExponentPushToken[author]")

    res = await client.post(f"/api/v1/posts/{POST_ID}/like", headers=auth_headers(AUTHOR_ID))

    assert res.json()["liked"] is True
    assert await store.count(NOTIFICATIONS) == 0
    assert gateway.batches == []


async def test_follow_messages(client, seed, auth_headers):
    await _seed_post(seed)
    url = f"/api/v1/users/{AUTHOR_ID}/follow"
    headers = auth_headers(LIKER_ID)

    first = await client.post(url, headers=headers)
    repeat = await client.post(url, headers=headers)
    unfollow = await client.delete(url, headers=headers)
    unfollow_again = await client.delete(url, headers=headers)

    assert first.json() == {"following": True, "followers_count": 1, "following_count": 1}
    assert repeat.json()["message"] == "Already following"
    assert unfollow.json()["following"] is False
    assert unfollow_again.json()["message"] == "Not following"


async def test_follow_self_is_400(client, seed, auth_headers):
    await _seed_post(seed)
    res = await client.post(f"/api/v1/users/{LIKER_ID}/follow", headers=auth_headers(LIKER_ID))
    assert res.status_code == 400
    assert res.json()["error"]["message"] == "Cannot follow yourself"


async def test_block_state_and_messages(client, seed, auth_headers):
    await _seed_post(seed)
    headers = auth_headers(LIKER_ID)
    await client.post(f"/api/v1/users/{AUTHOR_ID}/follow", headers=headers)

    blocked = await client.post(f"/api/v1/users/{AUTHOR_ID}/block", headers=headers)
    repeat = await client.post(f"/api/v1/users/{AUTHOR_ID}/block", headers=headers)
    state = await client.get(f"/api/v1/users/{AUTHOR_ID}/follow-state", headers=headers)
    seen_by_author = await client.get(
        f"/api/v1/users/{LIKER_ID}/block-state", headers=auth_headers(AUTHOR_ID),
    )

    assert blocked.json() == {"blocked": True}
    assert repeat.json() == {"blocked": True, "message": "Already blocked"}
    assert state.json()["is_following"] is False
    assert seen_by_author.json() == {"blocked": False, "blocked_by": True}


async def test_bookmark_messages(client, seed, auth_headers):
    await _seed_post(seed)
    headers = auth_headers(LIKER_ID)
    url = f"/api/v1/posts/{POST_ID}/bookmark"

    assert (await client.post(url, headers=headers)).json() == {"bookmarked": True}
    assert (await client.post(url, headers=headers)).json()["message"] == "Already bookmarked"
    assert (await client.delete(url, headers=headers)).json() == {"bookmarked": False}
    assert (await client.delete(url, headers=headers)).json()["message"] == "Not bookmarked"
    state = await client.get(f"/api/v1/posts/{POST_ID}/bookmark-state", headers=headers)
    assert state.json() == {"bookmarked": False}


async def test_like_missing_post_404(client, seed, auth_headers):
    await _seed_post(seed)
    res = await client.post("/api/v1/posts/999/like", headers=auth_headers(LIKER_ID))
    assert res.status_code == 404
    assert res.json()["error"]["code"] == "RESOURCE_NOT_FOUND"


async def test_create_comment_route(client, seed, store, auth_headers):
    await _seed_post(seed)

    res = await client.post(
        f"/api/v1/posts/{POST_ID}/comments",
        json={"content": "nice one", "client_mutation_id": "abc"},
        headers=auth_headers(LIKER_ID),
    )

    assert res.status_code == 201
    assert res.json()["comment"]["content"] == "nice one"
    assert res.json()["comments_count"] == 1
    page = await store.find(NOTIFICATIONS, {"recipient_id": AUTHOR_ID})
    assert page.docs[0]["type"] == "comment_post"


async def test_blank_comment_is_400(client, seed, auth_headers):
    await _seed_post(seed)
    res = await client.post(
        f"/api/v1/posts/{POST_ID}/comments",
        json={"content": "   "},
        headers=auth_headers(LIKER_ID),
    )
    assert res.status_code == 400
    assert res.json()["error"]["code"] == "VALIDATION_ERROR"


async def test_direct_conversation_and_message(client, seed, store, auth_headers):
    await _seed_post(seed)

    opened = await client.post(
        "/api/v1/conversations/direct", json={"user_id": AUTHOR_ID},
        headers=auth_headers(LIKER_ID),
    )
    reopened = await client.post(
        "/api/v1/conversations/direct", json={"user_id": LIKER_ID},
        headers=auth_headers(AUTHOR_ID),
    )
    conversation_id = opened.json()["conversation"]["id"]
    sent = await client.post(
        f"/api/v1/conversations/{conversation_id}/messages",
        json={"text": "hello"}, headers=auth_headers(LIKER_ID),
    )

    assert opened.json()["created"] is True
    assert reopened.json()["created"] is False
    assert reopened.json()["conversation"]["id"] == conversation_id
    assert sent.status_code == 201
    page = await store.find(NOTIFICATIONS, {"recipient_id": AUTHOR_ID, "type": "message"})
    assert page.docs[0]["conversation_id"] == conversation_id


async def test_story_reply_route(client, seed, auth_headers):
    await _seed_post(seed)
    story = await seed.story(AUTHOR_ID)

    res = await client.post(
        f"/api/v1/stories/{story['id']}/reply",
        json={"text": "wow"}, headers=auth_headers(LIKER_ID),
    )

    assert res.status_code == 200
    assert res.json()["message"]["story_id"] == story["id"]


async def test_inbox_routes(client, seed, auth_headers):
    await _seed_post(seed)
    await client.post(f"/api/v1/users/{AUTHOR_ID}/follow", headers=auth_headers(LIKER_ID))
    headers = auth_headers(AUTHOR_ID)

    registered = await client.post(
        "/api/v1/devices/register",
        json={"device_id": "phone", "push_token": "ExponentPushToken[x]", "platform": "ios"},
        headers=headers,
    )
    badges = await client.get("/api/v1/badges", headers=headers)
    listing = await client.get("/api/v1/notifications?unread=true", headers=headers)
    notification_id = listing.json()["docs"][0]["id"]
    forbidden = await client.post(
        f"/api/v1/notifications/{notification_id}/read", headers=auth_headers(LIKER_ID),
    )
    read = await client.post(f"/api/v1/notifications/{notification_id}/read", headers=headers)
    read_all = await client.post("/api/v1/notifications/read-all", headers=headers)
    after = await client.get("/api/v1/badges", headers=headers)

    assert registered.json()["registered"] is True
    assert badges.json() == {"notifications_unread": 1, "messages_unread": 0}
    assert listing.json()["docs"][0]["type"] == "follow"
    assert forbidden.status_code == 403
    assert read.json()["read"] is True
    assert read_all.json() == {"updated": 0}
    assert after.json()["notifications_unread"] == 0


async def test_health(client):
    res = await client.get("/api/v1/health/")
    assert res.status_code == 200
    assert res.json()["status"] == "healthy"


async def test_jwt_scheme_header_accepted(client, seed, auth_headers):
    await _seed_post(seed)
    token = auth_headers(LIKER_ID)["Authorization"].split(" ", 1)[1]

    res = await client.post(
        f"/api/v1/posts/{POST_ID}/like", headers={"Authorization": f"JWT {token}"},
    )

    assert res.status_code == 200
    assert res.json()["liked"] is True


async def test_bookmark_listing(client, seed, store, auth_headers):
    await _seed_post(seed)
    older = await seed.post(AUTHOR_ID, content="older")
    gone = await seed.post(AUTHOR_ID, content="deleted later")
    headers = auth_headers(LIKER_ID)
    for post_id in (older["id"], gone["id"], POST_ID):
        await client.post(f"/api/v1/posts/{post_id}/bookmark", headers=headers)
    await store.delete(POSTS, gone["id"])

    res = await client.get("/api/v1/users/me/bookmarks?limit=10", headers=headers)
    other = await client.get("/api/v1/users/me/bookmarks", headers=auth_headers(AUTHOR_ID))

    body = res.json()
    assert res.status_code == 200
    assert [p["id"] for p in body["docs"]] == [POST_ID, older["id"]]
    assert body["docs"][0]["bookmark_id"] is not None
    assert body["docs"][0]["bookmarked_at"] is not None
    assert body["total_docs"] == 3
    assert other.json()["docs"] == []


async def test_block_listing(client, seed, auth_headers):
    await _seed_post(seed)
    await client.post(f"/api/v1/users/{LIKER_ID}/block", headers=auth_headers(AUTHOR_ID))

    mine = await client.get("/api/v1/blocks/me", headers=auth_headers(AUTHOR_ID))
    theirs = await client.get("/api/v1/blocks/me", headers=auth_headers(LIKER_ID))

    [entry] = mine.json()["docs"]
    assert entry["user"]["id"] == LIKER_ID
    assert entry["user"]["display_name"] == "Liker"
    assert theirs.json()["total_docs"] == 0


async def test_group_conversation_routes(client, seed, auth_headers):
    await _seed_post(seed)
    third = await seed.user()
    headers = auth_headers(AUTHOR_ID)

    created = await client.post(
        "/api/v1/conversations/group",
        json={"participant_ids": [LIKER_ID, third["id"]], "name": "Launch"},
        headers=headers,
    )
    empty = await client.post(
        "/api/v1/conversations/group", json={"participant_ids": []}, headers=headers,
    )

    assert created.status_code == 201
    group = created.json()["conversation"]
    assert group["participants"] == sorted((AUTHOR_ID, LIKER_ID, third["id"]))
    assert empty.status_code == 400

    listing = await client.get("/api/v1/conversations", headers=auth_headers(third["id"]))
    assert [c["id"] for c in listing.json()["docs"]] == [group["id"]]
    assert listing.json()["box"] == "inbox"


async def test_message_history_and_read_marker(client, seed, auth_headers):
    await _seed_post(seed)
    opened = await client.post(
        "/api/v1/conversations/direct", json={"user_id": AUTHOR_ID},
        headers=auth_headers(LIKER_ID),
    )
    conversation_id = opened.json()["conversation"]["id"]
    for text in ("hi", "are you there?"):
        await client.post(
            f"/api/v1/conversations/{conversation_id}/messages",
            json={"text": text}, headers=auth_headers(LIKER_ID),
        )
    headers = auth_headers(AUTHOR_ID)

    history = await client.get(f"/api/v1/conversations/{conversation_id}/messages", headers=headers)
    before = await client.get("/api/v1/badges", headers=headers)
    read = await client.post(f"/api/v1/conversations/{conversation_id}/read", headers=headers)
    after = await client.get("/api/v1/badges", headers=headers)
    spam = await client.get("/api/v1/conversations?box=spam", headers=headers)
    bad_box = await client.get("/api/v1/conversations?box=archive", headers=headers)

    assert [m["content"] for m in history.json()["docs"]] == ["are you there?", "hi"]
    assert before.json()["messages_unread"] == 2
    assert read.json()["notifications_read"] == 2
    assert after.json()["messages_unread"] == 0
    assert [c["id"] for c in spam.json()["docs"]] == [conversation_id]
    assert bad_box.status_code == 400


async def test_outsider_cannot_read_messages(client, seed, auth_headers):
    await _seed_post(seed)
    outsider = await seed.user()
    opened = await client.post(
        "/api/v1/conversations/direct", json={"user_id": AUTHOR_ID},
        headers=auth_headers(LIKER_ID),
    )
    conversation_id = opened.json()["conversation"]["id"]

    res = await client.get(
        f"/api/v1/conversations/{conversation_id}/messages",
        headers=auth_headers(outsider["id"]),
    )

    assert res.status_code == 403
    assert res.json()["error"]["code"] == "FORBIDDEN"

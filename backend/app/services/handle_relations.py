"""Relation Handlers: like, bookmark, follow and block actions for the API.

Invariants:
    - Every action is idempotent; a no-op response carries a "message"
      ("Already liked", "Not following", ...) and no notification
    - Notifications are only returned for a changed activation of like,
      comment_like and follow (bookmark and block never notify)
    - Counts in responses are the recounted totals from RelationToggle
    - Listings page over the caller's own edges, newest first; an edge whose
      target no longer exists is left out of docs
"""

import logging

from app.core.domain_types import (
    COMMENTS, POSTS, RELATIONS, USERS, HandlerOutcome, Page, Record,
    RelationType, ToggleResult,
)
from app.core.format_notifications import (
    comment_like_notification, follow_notification, post_like_notification,
)
from app.core.repository_protocols import DocumentStore
from app.services.relation_toggle import RelationToggle

logger = logging.getLogger(__name__)

_NOOP_MESSAGES = {
    # relation type -> (already active, already inactive)
    RelationType.LIKE: ("Already liked", "Not liked"),
    RelationType.COMMENT_LIKE: ("Already liked", "Not liked"),
    RelationType.BOOKMARK: ("Already bookmarked", "Not bookmarked"),
    RelationType.FOLLOW: ("Already following", "Not following"),
    RelationType.BLOCK: ("Already blocked", "Not blocked"),
}


def _with_message(
    body: dict, result: ToggleResult, relation_type: RelationType,
) -> dict:
    if not result.changed:
        already_active, already_inactive = _NOOP_MESSAGES[relation_type]
        body["message"] = already_active if result.active else already_inactive
    return body


class RelationHandlers:
    """Route-facing wrappers around RelationToggle."""

    def __init__(self, store: DocumentStore):
        self.store = store
        self.toggle = RelationToggle(store)

    # ─── Post likes ──────────────────────────────────────────────

    async def like_post(self, user_id: int, post_id: int) -> HandlerOutcome:
        result = await self.toggle.activate(user_id, post_id, RelationType.LIKE)
        notifications = ()
        if result.changed:
            actor = await self.store.find_by_id(USERS, user_id)
            post = await self.store.find_by_id(POSTS, post_id)
            notifications = (post_like_notification(actor, post),)
        return HandlerOutcome(body=self._like_body(result), notifications=notifications)

    async def unlike_post(self, user_id: int, post_id: int) -> HandlerOutcome:
        result = await self.toggle.deactivate(user_id, post_id, RelationType.LIKE)
        return HandlerOutcome(body=self._like_body(result))

    async def like_state(self, user_id: int, post_id: int) -> dict:
        result = await self.toggle.state(user_id, post_id, RelationType.LIKE)
        return {"liked": result.active, "likes_count": result.counts["likes_count"]}

    # ─── Comment likes ───────────────────────────────────────────

    async def like_comment(self, user_id: int, comment_id: int) -> HandlerOutcome:
        result = await self.toggle.activate(user_id, comment_id, RelationType.COMMENT_LIKE)
        notifications = ()
        if result.changed:
            actor = await self.store.find_by_id(USERS, user_id)
            comment = await self.store.find_by_id(COMMENTS, comment_id)
            notifications = (comment_like_notification(actor, comment),)
        return HandlerOutcome(
            body=self._like_body(result, RelationType.COMMENT_LIKE),
            notifications=notifications,
        )

    async def unlike_comment(self, user_id: int, comment_id: int) -> HandlerOutcome:
        result = await self.toggle.deactivate(user_id, comment_id, RelationType.COMMENT_LIKE)
        return HandlerOutcome(body=self._like_body(result, RelationType.COMMENT_LIKE))

    # ─── Bookmarks ───────────────────────────────────────────────

    async def bookmark_post(self, user_id: int, post_id: int) -> HandlerOutcome:
        result = await self.toggle.activate(user_id, post_id, RelationType.BOOKMARK)
        return HandlerOutcome(body=_with_message(
            {"bookmarked": True}, result, RelationType.BOOKMARK,
        ))

    async def unbookmark_post(self, user_id: int, post_id: int) -> HandlerOutcome:
        result = await self.toggle.deactivate(user_id, post_id, RelationType.BOOKMARK)
        return HandlerOutcome(body=_with_message(
            {"bookmarked": False}, result, RelationType.BOOKMARK,
        ))

    async def bookmark_state(self, user_id: int, post_id: int) -> dict:
        result = await self.toggle.state(user_id, post_id, RelationType.BOOKMARK)
        return {"bookmarked": result.active}

    async def list_bookmarks(self, user_id: int, page: int = 1, limit: int = 20) -> dict:
        """Bookmarked posts, newest bookmark first; deleted posts are skipped."""
        page_result, posts = await self._list_edges(
            user_id, RelationType.BOOKMARK, POSTS, page, limit,
        )
        docs = [
            {
                **posts[edge["object_id"]],
                "bookmark_id": edge["id"],
                "bookmarked_at": edge["created_at"],
            }
            for edge in page_result.docs if edge["object_id"] in posts
        ]
        return page_result.as_body(docs)

    # ─── Follows ─────────────────────────────────────────────────

    async def follow_user(self, user_id: int, target_id: int) -> HandlerOutcome:
        result = await self.toggle.activate(user_id, target_id, RelationType.FOLLOW)
        notifications = ()
        if result.changed:
            actor = await self.store.find_by_id(USERS, user_id)
            notifications = (follow_notification(actor, target_id),)
        return HandlerOutcome(
            body=self._follow_body(result), notifications=notifications,
        )

    async def unfollow_user(self, user_id: int, target_id: int) -> HandlerOutcome:
        result = await self.toggle.deactivate(user_id, target_id, RelationType.FOLLOW)
        return HandlerOutcome(body=self._follow_body(result))

    async def follow_state(self, user_id: int, target_id: int) -> dict:
        result = await self.toggle.state(user_id, target_id, RelationType.FOLLOW)
        followed_by = await self.toggle.is_active(target_id, user_id, RelationType.FOLLOW)
        return {
            "is_following": result.active,
            "is_followed_by": followed_by,
            "followers_count": result.counts["followers_count"],
        }

    # ─── Blocks ──────────────────────────────────────────────────

    async def block_user(self, user_id: int, target_id: int) -> HandlerOutcome:
        result = await self.toggle.activate(user_id, target_id, RelationType.BLOCK)
        return HandlerOutcome(body=_with_message(
            {"blocked": True}, result, RelationType.BLOCK,
        ))

    async def unblock_user(self, user_id: int, target_id: int) -> HandlerOutcome:
        result = await self.toggle.deactivate(user_id, target_id, RelationType.BLOCK)
        return HandlerOutcome(body=_with_message(
            {"blocked": False}, result, RelationType.BLOCK,
        ))

    async def block_state(self, user_id: int, target_id: int) -> dict:
        result = await self.toggle.state(user_id, target_id, RelationType.BLOCK)
        blocked_by = await self.toggle.is_active(target_id, user_id, RelationType.BLOCK)
        return {"blocked": result.active, "blocked_by": blocked_by}

    async def list_blocked(self, user_id: int, page: int = 1, limit: int = 50) -> dict:
        page_result, users = await self._list_edges(
            user_id, RelationType.BLOCK, USERS, page, limit,
        )
        docs = [
            {
                "block_id": edge["id"],
                "user": users[edge["object_id"]],
                "blocked_at": edge["created_at"],
            }
            for edge in page_result.docs if edge["object_id"] in users
        ]
        return page_result.as_body(docs)

    async def _list_edges(
        self,
        user_id: int,
        relation_type: RelationType,
        target_collection: str,
        page: int,
        limit: int,
    ) -> tuple[Page, dict[int, Record]]:
        """One page of the user's outgoing edges plus their targets by id."""
        edges = await self.store.find(
            RELATIONS,
            {"subject_id": user_id, "relation_type": relation_type.value},
            page=page, limit=limit, sort="-created_at",
        )
        target_ids = [edge["object_id"] for edge in edges.docs]
        if not target_ids:
            return edges, {}
        targets = await self.store.find(
            target_collection, {"id": target_ids}, limit=len(target_ids),
        )
        return edges, {t["id"]: t for t in targets.docs}

    # ─── Response bodies ─────────────────────────────────────────

    @staticmethod
    def _like_body(
        result: ToggleResult, relation_type: RelationType = RelationType.LIKE,
    ) -> dict:
        return _with_message(
            {"liked": result.active, "likes_count": result.counts["likes_count"]},
            result, relation_type,
        )

    @staticmethod
    def _follow_body(result: ToggleResult) -> dict:
        return _with_message(
            {
                "following": result.active,
                "followers_count": result.counts["followers_count"],
                "following_count": result.counts["following_count"],
            },
            result, RelationType.FOLLOW,
        )

"""Comment Handlers: create a comment or a one-level reply on a post.

Invariants:
    - Content is stripped and 1..MAX_COMMENT_LENGTH characters
    - A parent comment must exist, belong to the same post, and be top-level
    - client_mutation_id makes a retried create return the original comment
      (deduplicated=True, no notification); the unique constraint on
      (author_id, post_id, client_mutation_id) covers concurrent retries
    - posts.comments_count is recounted after every create
"""

import logging

from app.core.domain_types import COMMENTS, POSTS, USERS, HandlerOutcome, Record
from app.core.errors import InvalidRequestError, UniquenessConflict
from app.core.format_notifications import comment_notification
from app.core.repository_protocols import DocumentStore
from app.core.validate_input import normalize_text, parse_identifier

logger = logging.getLogger(__name__)

MAX_COMMENT_LENGTH = 2000


class CommentHandlers:

    def __init__(self, store: DocumentStore):
        self.store = store

    async def create_comment(
        self,
        user_id: int,
        post_id: int,
        content: str,
        parent_comment_id: int | None = None,
        client_mutation_id: str | None = None,
    ) -> HandlerOutcome:
        post_id = parse_identifier(post_id, "post id")
        content = normalize_text(content, "Content", MAX_COMMENT_LENGTH)
        post = await self.store.find_by_id(POSTS, post_id)
        parent = await self._reply_target(post_id, parent_comment_id)

        if client_mutation_id:
            existing = await self.store.find_one(COMMENTS, {
                "author_id": user_id,
                "post_id": post_id,
                "client_mutation_id": client_mutation_id,
            })
            if existing is not None:
                return self._duplicate(existing, post)

        try:
            comment = await self.store.create(COMMENTS, {
                "post_id": post_id,
                "author_id": user_id,
                "parent_comment_id": parent["id"] if parent else None,
                "content": content,
                "client_mutation_id": client_mutation_id or None,
            })
        except UniquenessConflict as conflict:
            existing = await self.store.find_by_id(COMMENTS, conflict.existing_id)
            return self._duplicate(existing, post)

        comments_count = await self.store.count(COMMENTS, {"post_id": post_id})
        await self.store.update(POSTS, post_id, {"comments_count": comments_count})
        logger.info(
            f"Comment {comment['id']} created on post {post_id}",
            extra={"user_id": user_id},
        )

        actor = await self.store.find_by_id(USERS, user_id)
        recipient_id = parent["author_id"] if parent else post["author_id"]
        notification = comment_notification(
            actor, comment, recipient_id, is_reply=parent is not None,
        )
        return HandlerOutcome(
            body={
                "message": "Comment created successfully",
                "comment": comment,
                "comments_count": comments_count,
            },
            notifications=(notification,),
        )

    async def _reply_target(
        self, post_id: int, parent_comment_id: int | None,
    ) -> Record | None:
        if parent_comment_id is None:
            return None
        parent_id = parse_identifier(parent_comment_id, "parent comment id")
        parent = await self.store.find_one(COMMENTS, {"id": parent_id})
        if parent is None:
            raise InvalidRequestError("Parent comment not found")
        if parent["post_id"] != post_id:
            raise InvalidRequestError("Parent comment belongs to a different post")
        if parent["parent_comment_id"] is not None:
            raise InvalidRequestError("Cannot reply to a reply")
        return parent

    @staticmethod
    def _duplicate(comment: Record, post: Record) -> HandlerOutcome:
        logger.info(f"Duplicate comment create returned existing {comment['id']}")
        return HandlerOutcome(body={
            "message": "Comment already exists",
            "comment": comment,
            "comments_count": post["comments_count"],
            "deduplicated": True,
        })

"""Post Routes: like, bookmark and comment on posts.

Invariants:
    - Every route requires a principal (401 otherwise)
    - like/bookmark POST and DELETE are idempotent; repeats return 200 with
      a "message" describing the no-op
"""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, status

from app.api.dependencies import get_push_gateway, get_store, require_principal
from app.api.routes.response_helpers import respond
from app.core.domain_types import Principal
from app.core.repository_protocols import DocumentStore, PushGateway
from app.schemas.social import CommentCreate
from app.services.handle_comments import CommentHandlers
from app.services.handle_relations import RelationHandlers

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/posts", tags=["posts"])


@router.post("/{post_id}/like")
async def like_post(
    post_id: int,
    background_tasks: BackgroundTasks,
    principal: Principal = Depends(require_principal),
    store: DocumentStore = Depends(get_store),
    gateway: PushGateway = Depends(get_push_gateway),
):
    outcome = await RelationHandlers(store).like_post(principal.user_id, post_id)
    return respond(outcome, background_tasks, gateway)


@router.delete("/{post_id}/like")
async def unlike_post(
    post_id: int,
    background_tasks: BackgroundTasks,
    principal: Principal = Depends(require_principal),
    store: DocumentStore = Depends(get_store),
    gateway: PushGateway = Depends(get_push_gateway),
):
    outcome = await RelationHandlers(store).unlike_post(principal.user_id, post_id)
    return respond(outcome, background_tasks, gateway)


@router.get("/{post_id}/like-state")
async def like_state(
    post_id: int,
    principal: Principal = Depends(require_principal),
    store: DocumentStore = Depends(get_store),
):
    return await RelationHandlers(store).like_state(principal.user_id, post_id)


@router.post("/{post_id}/bookmark")
async def bookmark_post(
    post_id: int,
    background_tasks: BackgroundTasks,
    principal: Principal = Depends(require_principal),
    store: DocumentStore = Depends(get_store),
    gateway: PushGateway = Depends(get_push_gateway),
):
    outcome = await RelationHandlers(store).bookmark_post(principal.user_id, post_id)
    return respond(outcome, background_tasks, gateway)


@router.delete("/{post_id}/bookmark")
async def unbookmark_post(
    post_id: int,
    background_tasks: BackgroundTasks,
    principal: Principal = Depends(require_principal),
    store: DocumentStore = Depends(get_store),
    gateway: PushGateway = Depends(get_push_gateway),
):
    outcome = await RelationHandlers(store).unbookmark_post(principal.user_id, post_id)
    return respond(outcome, background_tasks, gateway)


@router.get("/{post_id}/bookmark-state")
async def bookmark_state(
    post_id: int,
    principal: Principal = Depends(require_principal),
    store: DocumentStore = Depends(get_store),
):
    return await RelationHandlers(store).bookmark_state(principal.user_id, post_id)


@router.post("/{post_id}/comments", status_code=status.HTTP_201_CREATED)
async def create_comment(
    post_id: int,
    body: CommentCreate,
    background_tasks: BackgroundTasks,
    principal: Principal = Depends(require_principal),
    store: DocumentStore = Depends(get_store),
    gateway: PushGateway = Depends(get_push_gateway),
):
    """Create a comment or reply; a retried client_mutation_id returns the original."""
    outcome = await CommentHandlers(store).create_comment(
        principal.user_id,
        post_id,
        body.content,
        parent_comment_id=body.parent_comment_id,
        client_mutation_id=body.client_mutation_id,
    )
    return respond(outcome, background_tasks, gateway)

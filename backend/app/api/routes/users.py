"""User Routes: follow and block other users, and the caller's bookmarks.

Invariants:
    - Following or blocking yourself is 400
    - Blocking removes follows in both directions (best-effort)
"""

from fastapi import APIRouter, BackgroundTasks, Depends, Query

from app.api.dependencies import get_push_gateway, get_store, require_principal
from app.api.routes.response_helpers import respond
from app.core.domain_types import Principal
from app.core.repository_protocols import DocumentStore, PushGateway
from app.services.handle_relations import RelationHandlers

router = APIRouter(prefix="/api/v1/users", tags=["users"])


@router.get("/me/bookmarks")
async def list_bookmarks(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    principal: Principal = Depends(require_principal),
    store: DocumentStore = Depends(get_store),
):
    """Bookmarked posts, newest bookmark first."""
    return await RelationHandlers(store).list_bookmarks(
        principal.user_id, page=page, limit=limit,
    )


@router.post("/{user_id}/follow")
async def follow_user(
    user_id: int,
    background_tasks: BackgroundTasks,
    principal: Principal = Depends(require_principal),
    store: DocumentStore = Depends(get_store),
    gateway: PushGateway = Depends(get_push_gateway),
):
    outcome = await RelationHandlers(store).follow_user(principal.user_id, user_id)
    return respond(outcome, background_tasks, gateway)


@router.delete("/{user_id}/follow")
async def unfollow_user(
    user_id: int,
    background_tasks: BackgroundTasks,
    principal: Principal = Depends(require_principal),
    store: DocumentStore = Depends(get_store),
    gateway: PushGateway = Depends(get_push_gateway),
):
    outcome = await RelationHandlers(store).unfollow_user(principal.user_id, user_id)
    return respond(outcome, background_tasks, gateway)


@router.get("/{user_id}/follow-state")
async def follow_state(
    user_id: int,
    principal: Principal = Depends(require_principal),
    store: DocumentStore = Depends(get_store),
):
    return await RelationHandlers(store).follow_state(principal.user_id, user_id)


@router.post("/{user_id}/block")
async def block_user(
    user_id: int,
    background_tasks: BackgroundTasks,
    principal: Principal = Depends(require_principal),
    store: DocumentStore = Depends(get_store),
    gateway: PushGateway = Depends(get_push_gateway),
):
    outcome = await RelationHandlers(store).block_user(principal.user_id, user_id)
    return respond(outcome, background_tasks, gateway)


@router.delete("/{user_id}/block")
async def unblock_user(
    user_id: int,
    background_tasks: BackgroundTasks,
    principal: Principal = Depends(require_principal),
    store: DocumentStore = Depends(get_store),
    gateway: PushGateway = Depends(get_push_gateway),
):
    outcome = await RelationHandlers(store).unblock_user(principal.user_id, user_id)
    return respond(outcome, background_tasks, gateway)


@router.get("/{user_id}/block-state")
async def block_state(
    user_id: int,
    principal: Principal = Depends(require_principal),
    store: DocumentStore = Depends(get_store),
):
    return await RelationHandlers(store).block_state(principal.user_id, user_id)

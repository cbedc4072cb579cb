"""Comment Routes: like and unlike comments."""

from fastapi import APIRouter, BackgroundTasks, Depends

from app.api.dependencies import get_push_gateway, get_store, require_principal
from app.api.routes.response_helpers import respond
from app.core.domain_types import Principal
from app.core.repository_protocols import DocumentStore, PushGateway
from app.services.handle_relations import RelationHandlers

router = APIRouter(prefix="/api/v1/comments", tags=["comments"])


@router.post("/{comment_id}/like")
async def like_comment(
    comment_id: int,
    background_tasks: BackgroundTasks,
    principal: Principal = Depends(require_principal),
    store: DocumentStore = Depends(get_store),
    gateway: PushGateway = Depends(get_push_gateway),
):
    outcome = await RelationHandlers(store).like_comment(principal.user_id, comment_id)
    return respond(outcome, background_tasks, gateway)


@router.delete("/{comment_id}/like")
async def unlike_comment(
    comment_id: int,
    background_tasks: BackgroundTasks,
    principal: Principal = Depends(require_principal),
    store: DocumentStore = Depends(get_store),
    gateway: PushGateway = Depends(get_push_gateway),
):
    outcome = await RelationHandlers(store).unlike_comment(principal.user_id, comment_id)
    return respond(outcome, background_tasks, gateway)

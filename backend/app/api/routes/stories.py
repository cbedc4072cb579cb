"""Story Routes: reply to a story through the direct conversation."""

from fastapi import APIRouter, BackgroundTasks, Depends

from app.api.dependencies import get_push_gateway, get_store, require_principal
from app.api.routes.response_helpers import respond
from app.core.domain_types import Principal
from app.core.repository_protocols import DocumentStore, PushGateway
from app.schemas.social import StoryReplyCreate
from app.services.handle_messaging import MessagingHandlers

router = APIRouter(prefix="/api/v1/stories", tags=["stories"])


@router.post("/{story_id}/reply")
async def reply_to_story(
    story_id: int,
    body: StoryReplyCreate,
    background_tasks: BackgroundTasks,
    principal: Principal = Depends(require_principal),
    store: DocumentStore = Depends(get_store),
    gateway: PushGateway = Depends(get_push_gateway),
):
    outcome = await MessagingHandlers(store).reply_to_story(
        principal.user_id, story_id, body.text,
        client_mutation_id=body.client_mutation_id,
    )
    return respond(outcome, background_tasks, gateway)

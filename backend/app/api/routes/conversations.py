"""Conversation Routes: direct and group conversations, message history and
sending, read markers.

Invariants:
    - Only participants can read, post to or mark a conversation (403)
    - Literal paths (/direct, /group) are registered before /{conversation_id}
"""

from typing import Literal

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status

from app.api.dependencies import get_push_gateway, get_store, require_principal
from app.api.routes.response_helpers import respond
from app.core.domain_types import Principal
from app.core.repository_protocols import DocumentStore, PushGateway
from app.schemas.social import (
    DirectConversationCreate, GroupConversationCreate, MessageCreate,
)
from app.services.handle_messaging import MessagingHandlers

router = APIRouter(prefix="/api/v1/conversations", tags=["conversations"])


@router.get("")
async def list_conversations(
    box: Literal["inbox", "spam"] = Query("inbox"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=50),
    principal: Principal = Depends(require_principal),
    store: DocumentStore = Depends(get_store),
):
    """Most recent activity first; spam holds direct threads with non-contacts."""
    return await MessagingHandlers(store).list_conversations(
        principal.user_id, box=box, page=page, limit=limit,
    )


@router.post("/direct")
async def open_direct(
    body: DirectConversationCreate,
    principal: Principal = Depends(require_principal),
    store: DocumentStore = Depends(get_store),
):
    """Return the caller's direct conversation with body.user_id, creating it once."""
    return await MessagingHandlers(store).open_direct(principal.user_id, body.user_id)


@router.post("/group", status_code=status.HTTP_201_CREATED)
async def create_group(
    body: GroupConversationCreate,
    principal: Principal = Depends(require_principal),
    store: DocumentStore = Depends(get_store),
):
    return await MessagingHandlers(store).create_group(
        principal.user_id, body.participant_ids, body.name,
    )


@router.get("/{conversation_id}/messages")
async def list_messages(
    conversation_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    principal: Principal = Depends(require_principal),
    store: DocumentStore = Depends(get_store),
):
    return await MessagingHandlers(store).list_messages(
        principal.user_id, conversation_id, page=page, limit=limit,
    )


@router.post("/{conversation_id}/messages", status_code=status.HTTP_201_CREATED)
async def send_message(
    conversation_id: int,
    body: MessageCreate,
    background_tasks: BackgroundTasks,
    principal: Principal = Depends(require_principal),
    store: DocumentStore = Depends(get_store),
    gateway: PushGateway = Depends(get_push_gateway),
):
    outcome = await MessagingHandlers(store).send_message(
        principal.user_id, conversation_id, body.text,
        client_mutation_id=body.client_mutation_id,
    )
    return respond(outcome, background_tasks, gateway)


@router.post("/{conversation_id}/read")
async def mark_conversation_read(
    conversation_id: int,
    principal: Principal = Depends(require_principal),
    store: DocumentStore = Depends(get_store),
):
    return await MessagingHandlers(store).mark_conversation_read(
        principal.user_id, conversation_id,
    )

"""Inbox Routes: notifications, badges and push device registration.

Invariants:
    - Callers only see and modify their own notifications
    - read-all is registered before /{notification_id}/read so the literal
      path wins
"""

from fastapi import APIRouter, Depends, Query

from app.api.dependencies import get_store, require_principal
from app.core.domain_types import Principal
from app.core.repository_protocols import DocumentStore
from app.schemas.social import DeviceRegister
from app.services.handle_inbox import InboxHandlers

router = APIRouter(prefix="/api/v1", tags=["notifications"])


@router.get("/notifications")
async def list_notifications(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    unread: bool = Query(False),
    principal: Principal = Depends(require_principal),
    store: DocumentStore = Depends(get_store),
):
    """Newest first; unread=true limits the page to unread notifications."""
    return await InboxHandlers(store).list_notifications(
        principal.user_id, page=page, limit=limit, unread_only=unread,
    )


@router.post("/notifications/read-all")
async def mark_all_read(
    principal: Principal = Depends(require_principal),
    store: DocumentStore = Depends(get_store),
):
    return await InboxHandlers(store).mark_all_read(principal.user_id)


@router.post("/notifications/{notification_id}/read")
async def mark_read(
    notification_id: int,
    principal: Principal = Depends(require_principal),
    store: DocumentStore = Depends(get_store),
):
    return await InboxHandlers(store).mark_read(principal.user_id, notification_id)


@router.get("/badges")
async def badges(
    principal: Principal = Depends(require_principal),
    store: DocumentStore = Depends(get_store),
):
    return await InboxHandlers(store).badges(principal.user_id)


@router.post("/devices/register")
async def register_device(
    body: DeviceRegister,
    principal: Principal = Depends(require_principal),
    store: DocumentStore = Depends(get_store),
):
    return await InboxHandlers(store).register_device(
        principal.user_id, body.device_id, body.push_token, body.platform,
    )

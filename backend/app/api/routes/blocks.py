"""Block Routes: the caller's block list."""

from fastapi import APIRouter, Depends, Query

from app.api.dependencies import get_store, require_principal
from app.core.domain_types import Principal
from app.core.repository_protocols import DocumentStore
from app.services.handle_relations import RelationHandlers

router = APIRouter(prefix="/api/v1/blocks", tags=["users"])


@router.get("/me")
async def list_blocked(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    principal: Principal = Depends(require_principal),
    store: DocumentStore = Depends(get_store),
):
    return await RelationHandlers(store).list_blocked(
        principal.user_id, page=page, limit=limit,
    )

"""API Dependencies: FastAPI providers for the store, caller and push gateway.

Invariants:
    - require_principal raises UnauthorizedError before any handler runs
    - The principal resolver and push gateway are built once per process
      from settings; tests replace them through app.dependency_overrides
"""

from functools import lru_cache

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.core.domain_types import Principal
from app.core.errors import UnauthorizedError
from app.core.repository_protocols import DocumentStore, PrincipalResolver, PushGateway
from app.infrastructure.database import get_db
from app.infrastructure.document_store import SqlDocumentStore
from app.infrastructure.principal_resolver import JWTPrincipalResolver
from app.infrastructure.push_gateway import ExpoPushGateway


async def get_store(db: AsyncSession = Depends(get_db)) -> DocumentStore:
    return SqlDocumentStore(db)


@lru_cache
def get_principal_resolver() -> PrincipalResolver:
    settings = get_settings()
    return JWTPrincipalResolver(
        settings.auth_jwt_secret,
        algorithm=settings.auth_jwt_algorithm,
        audience=settings.auth_jwt_audience,
    )


@lru_cache
def get_push_gateway() -> PushGateway:
    settings = get_settings()
    return ExpoPushGateway(
        settings.push_gateway_url,
        timeout_seconds=settings.push_timeout_seconds,
        access_token=settings.push_access_token,
    )


async def require_principal(
    authorization: str | None = Header(None),
    resolver: PrincipalResolver = Depends(get_principal_resolver),
) -> Principal:
    """Resolve the caller or reject the request with 401."""
    principal = resolver.resolve(authorization)
    if principal is None:
        raise UnauthorizedError()
    return principal

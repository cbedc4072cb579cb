"""Boundary Protocols: contracts between core/services and the shell.

Invariants:
    - Core NEVER imports from shell; dependency arrows point inward only
    - The document store, principal resolver and push gateway are accessed
      only through these Protocol types
    - DocumentStore.create raises UniquenessConflict (never a driver error)
      when a declared unique key already exists
    - PrincipalResolver.resolve never raises for "not authenticated"; it
      returns None

Design Decisions:
    - Protocol over ABC: structural subtyping, no inheritance hierarchy
    - Records are plain dicts: services never hold ORM instances across calls
"""

from typing import Any, Mapping, Protocol, Sequence

from app.core.domain_types import (
    Page, Principal, PushMessage, PushTicket, Record,
)

Filters = Mapping[str, Any]


class DocumentStore(Protocol):
    """Generic CRUD over named collections with equality filters.

    A filter value of None matches NULL; a list/tuple/set matches any member.
    """
    async def find(
        self,
        collection: str,
        filters: Filters | None = None,
        page: int = 1,
        limit: int = 10,
        sort: str | None = None,
    ) -> Page: ...
    async def find_one(
        self, collection: str, filters: Filters,
    ) -> Record | None: ...
    async def find_by_id(self, collection: str, record_id: int) -> Record: ...
    async def count(
        self, collection: str, filters: Filters | None = None,
    ) -> int: ...
    async def create(self, collection: str, data: Mapping[str, Any]) -> Record: ...
    async def update(
        self, collection: str, record_id: int, data: Mapping[str, Any],
    ) -> Record: ...
    async def update_where(
        self, collection: str, filters: Filters, data: Mapping[str, Any],
    ) -> int: ...
    async def delete(self, collection: str, record_id: int) -> int: ...
    async def delete_where(self, collection: str, filters: Filters) -> int: ...


class PrincipalResolver(Protocol):
    """Extracts the calling user from request credentials."""
    def resolve(self, authorization: str | None) -> Principal | None: ...


class PushGateway(Protocol):
    """Submits a batch of push messages in one network call.

    Returns one ticket per message in submission order; raises
    UpstreamDegradedError when the gateway cannot be reached.
    """
    async def submit(
        self, messages: Sequence[PushMessage],
    ) -> list[PushTicket]: ...

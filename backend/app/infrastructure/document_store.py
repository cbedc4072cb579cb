"""SQL Document Store: the DocumentStore protocol over an async SQLAlchemy session.

Invariants:
    - Records cross the boundary as plain dicts; no ORM instance escapes
    - Every write commits immediately; a failed write rolls back before raising
    - An IntegrityError on create is reported as UniquenessConflict carrying the
      id of the record that owns the colliding unique key; if no such record
      can be found the error is a DatabaseError instead
    - Every other SQLAlchemyError rolls the session back and is raised as
      DatabaseError; no driver exception leaves this module
    - Reads use populate_existing so a shared session never serves stale rows

Design Decisions:
    - Collection names map to ORM models through COLLECTION_MODELS (explicit,
      no table reflection)
    - Unique keys are read from the table metadata, so a new constraint on a
      model is picked up by conflict resolution without code changes here
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Mapping

from sqlalchemy import UniqueConstraint, delete, func, inspect, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.domain_types import (
    COMMENTS, CONVERSATION_MEMBERS, CONVERSATIONS, MESSAGES, NOTIFICATIONS,
    POSTS, RELATIONS, STORIES, USER_DEVICES, USERS, Page, Record,
)
from app.core.errors import DatabaseError, ResourceNotFoundError, UniquenessConflict
from app.db.base import Base
from app.models import (
    Comment, Conversation, ConversationMember, Message, Notification, Post,
    Relation, Story, User, UserDevice,
)

logger = logging.getLogger(__name__)

COLLECTION_MODELS: dict[str, type[Base]] = {
    USERS: User,
    POSTS: Post,
    COMMENTS: Comment,
    STORIES: Story,
    RELATIONS: Relation,
    NOTIFICATIONS: Notification,
    USER_DEVICES: UserDevice,
    CONVERSATIONS: Conversation,
    CONVERSATION_MEMBERS: ConversationMember,
    MESSAGES: Message,
}

MAX_PAGE_SIZE = 100

RESOURCE_LABELS = {
    USERS: "User",
    POSTS: "Post",
    COMMENTS: "Comment",
    STORIES: "Story",
    RELATIONS: "Relation",
    NOTIFICATIONS: "Notification",
    USER_DEVICES: "Device",
    CONVERSATIONS: "Conversation",
    CONVERSATION_MEMBERS: "Conversation member",
    MESSAGES: "Message",
}


def _model_for(collection: str) -> type[Base]:
    try:
        return COLLECTION_MODELS[collection]
    except KeyError:
        raise ValueError(f"Unknown collection '{collection}'") from None


def _to_record(row: Base) -> Record:
    mapper = inspect(type(row))
    return {attr.key: getattr(row, attr.key) for attr in mapper.column_attrs}


def _conditions(model: type[Base], filters: Mapping[str, Any] | None) -> list:
    conditions = []
    for name, value in (filters or {}).items():
        column = getattr(model, name)
        if value is None:
            conditions.append(column.is_(None))
        elif isinstance(value, (list, tuple, set, frozenset)):
            conditions.append(column.in_(list(value)))
        else:
            conditions.append(column == value)
    return conditions


def _order_by(model: type[Base], sort: str | None) -> list:
    """Parse "-created_at,id" style sort strings; default is ascending id."""
    if not sort:
        return [model.id.asc()]
    clauses = []
    for part in sort.split(","):
        part = part.strip()
        if not part:
            continue
        column = getattr(model, part.lstrip("-"))
        clauses.append(column.desc() if part.startswith("-") else column.asc())
    clauses.append(model.id.desc() if sort.startswith("-") else model.id.asc())
    return clauses


def _unique_keys(model: type[Base]) -> list[tuple[str, ...]]:
    table = model.__table__
    keys = [
        tuple(col.name for col in constraint.columns)
        for constraint in table.constraints
        if isinstance(constraint, UniqueConstraint)
    ]
    keys.extend((col.name,) for col in table.columns if col.unique)
    return keys


class SqlDocumentStore:
    """Collection-oriented CRUD over one AsyncSession."""

    def __init__(self, db: AsyncSession):
        self._db = db

    @asynccontextmanager
    async def _translate_errors(self, operation: str) -> AsyncIterator[None]:
        try:
            yield
        except IntegrityError as e:
            await self._db.rollback()
            logger.error(f"Integrity error during {operation}: {e}")
            raise DatabaseError("Integrity constraint violated", operation) from e
        except SQLAlchemyError as e:
            await self._db.rollback()
            logger.error(f"Store {operation} failed: {e}")
            raise DatabaseError("Database operation failed", operation) from e

    async def find(
        self,
        collection: str,
        filters: Mapping[str, Any] | None = None,
        page: int = 1,
        limit: int = 10,
        sort: str | None = None,
    ) -> Page:
        """Paged query; limit=0 returns only the total."""
        model = _model_for(collection)
        page = max(page, 1)
        limit = min(max(limit, 0), MAX_PAGE_SIZE)
        total = await self.count(collection, filters)
        if limit == 0:
            return Page(docs=[], total_docs=total, page=page, limit=0)
        query = (
            select(model)
            .where(*_conditions(model, filters))
            .order_by(*_order_by(model, sort))
            .limit(limit)
            .offset((page - 1) * limit)
            .execution_options(populate_existing=True)
        )
        async with self._translate_errors("find"):
            result = await self._db.execute(query)
            docs = [_to_record(row) for row in result.scalars().all()]
        return Page(docs=docs, total_docs=total, page=page, limit=limit)

    async def find_one(
        self, collection: str, filters: Mapping[str, Any],
    ) -> Record | None:
        model = _model_for(collection)
        query = (
            select(model)
            .where(*_conditions(model, filters))
            .order_by(model.id.asc())
            .limit(1)
            .execution_options(populate_existing=True)
        )
        async with self._translate_errors("find_one"):
            result = await self._db.execute(query)
            row = result.scalar_one_or_none()
        return _to_record(row) if row is not None else None

    async def find_by_id(self, collection: str, record_id: int) -> Record:
        record = await self.find_one(collection, {"id": record_id})
        if record is None:
            raise ResourceNotFoundError(RESOURCE_LABELS[collection], str(record_id))
        return record

    async def count(
        self, collection: str, filters: Mapping[str, Any] | None = None,
    ) -> int:
        model = _model_for(collection)
        query = (
            select(func.count())
            .select_from(model)
            .where(*_conditions(model, filters))
        )
        async with self._translate_errors("count"):
            result = await self._db.execute(query)
            return int(result.scalar_one())

    async def create(self, collection: str, data: Mapping[str, Any]) -> Record:
        """Insert one record; raises UniquenessConflict on a duplicate unique key."""
        model = _model_for(collection)
        row = model(**data)
        self._db.add(row)
        try:
            await self._db.commit()
        except IntegrityError as e:
            await self._db.rollback()
            existing = await self._find_conflicting(model, collection, data)
            if existing is None:
                logger.error(f"Integrity error without conflicting record in {collection}: {e}")
                raise DatabaseError("Integrity constraint violated", "create") from e
            raise UniquenessConflict(collection, existing["id"]) from e
        except SQLAlchemyError as e:
            await self._db.rollback()
            logger.error(f"Store create failed in {collection}: {e}")
            raise DatabaseError("Database operation failed", "create") from e
        return _to_record(row)

    async def update(
        self, collection: str, record_id: int, data: Mapping[str, Any],
    ) -> Record:
        model = _model_for(collection)
        async with self._translate_errors("update"):
            row = await self._db.get(model, record_id, populate_existing=True)
            if row is None:
                raise ResourceNotFoundError(RESOURCE_LABELS[collection], str(record_id))
            for name, value in data.items():
                setattr(row, name, value)
            await self._db.commit()
        return _to_record(row)

    async def update_where(
        self, collection: str, filters: Mapping[str, Any], data: Mapping[str, Any],
    ) -> int:
        model = _model_for(collection)
        async with self._translate_errors("update"):
            result = await self._db.execute(
                update(model)
                .where(*_conditions(model, filters))
                .values(**data)
                .execution_options(synchronize_session=False),
            )
            await self._db.commit()
        return result.rowcount or 0

    async def delete(self, collection: str, record_id: int) -> int:
        """Delete by id; returns rows removed (0 when someone else got there first)."""
        return await self.delete_where(collection, {"id": record_id})

    async def delete_where(
        self, collection: str, filters: Mapping[str, Any],
    ) -> int:
        model = _model_for(collection)
        async with self._translate_errors("delete"):
            result = await self._db.execute(
                delete(model)
                .where(*_conditions(model, filters))
                .execution_options(synchronize_session=False),
            )
            await self._db.commit()
        return result.rowcount or 0

    async def _find_conflicting(
        self, model: type[Base], collection: str, data: Mapping[str, Any],
    ) -> Record | None:
        for key in _unique_keys(model):
            if not all(data.get(name) is not None for name in key):
                continue
            existing = await self.find_one(
                collection, {name: data[name] for name in key},
            )
            if existing is not None:
                return existing
        return None

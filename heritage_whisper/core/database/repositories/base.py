"""
Shared repository plumbing.

Every table is keyed on a single ``id`` column, and most rows belong to one
storyteller. ``SQLModelRepository`` covers plain CRUD; ``OwnedRepository``
adds the lookups that keep one storyteller from reading another's rows.
Repositories commit on write so a service call leaves the session clean.
"""

from __future__ import annotations

from typing import Any, ClassVar, Dict, Generic, List, Optional, Type, TypeVar

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel, select
from sqlmodel.sql.expression import SelectOfScalar

EntityType = TypeVar("EntityType", bound=SQLModel)


def apply_filters(
    stmt: SelectOfScalar[EntityType], model: Type[EntityType], filters: Dict[str, Any]
) -> SelectOfScalar[EntityType]:
    """Equality filters; ``None`` values and names that are not columns are skipped."""
    for key, value in filters.items():
        if value is not None and hasattr(model, key):
            stmt = stmt.where(getattr(model, key) == value)
    return stmt


def paginate(stmt: SelectOfScalar[EntityType], limit: Optional[int], offset: Optional[int]) -> SelectOfScalar[EntityType]:
    if limit is not None:
        stmt = stmt.limit(limit)
    if offset is not None:
        stmt = stmt.offset(offset)
    return stmt


class SQLModelRepository(Generic[EntityType]):
    """CRUD over one table.

    Args:
        session: Session the repository reads and commits through.
        model: Table class handled by the repository.
    """

    def __init__(self, session: AsyncSession, model: Type[EntityType]) -> None:
        self.session = session
        self.model = model

    async def create(self, entity: EntityType) -> EntityType:
        self.session.add(entity)
        await self.session.commit()
        await self.session.refresh(entity)
        return entity

    async def get_by_id(self, entity_id: str | int) -> Optional[EntityType]:
        stmt = select(self.model).where(self.model.id == entity_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def update(self, entity: EntityType) -> EntityType:
        self.session.add(entity)
        await self.session.commit()
        await self.session.refresh(entity)
        return entity

    async def delete(self, entity_id: str | int) -> bool:
        """Delete by id; False when nothing matched."""
        entity = await self.get_by_id(entity_id)
        if entity is None:
            return False
        await self.session.delete(entity)
        await self.session.commit()
        return True

    async def list(
        self, limit: Optional[int] = None, offset: Optional[int] = None, filters: Optional[Dict[str, Any]] = None
    ) -> List[EntityType]:
        stmt = select(self.model)
        if filters:
            stmt = apply_filters(stmt, self.model, filters)
        result = await self.session.execute(paginate(stmt, limit, offset))
        return list(result.scalars().all())


class OwnedRepository(SQLModelRepository[EntityType]):
    """Repository for rows that carry the owning storyteller's id."""

    owner_column: ClassVar[str] = "user_id"

    def _owned_by(self, user_id: str):
        return getattr(self.model, self.owner_column) == user_id

    async def get_for_user(self, entity_id: str, user_id: str) -> Optional[EntityType]:
        """The row with ``entity_id`` when ``user_id`` owns it, else None."""
        stmt = select(self.model).where(self.model.id == entity_id, self._owned_by(user_id))
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def count_for_user(self, user_id: str) -> int:
        stmt = select(func.count()).select_from(self.model).where(self._owned_by(user_id))
        result = await self.session.execute(stmt)
        return int(result.scalar_one())

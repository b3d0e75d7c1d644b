"""Generic async repository for owner-scoped SQLAlchemy 2.0 models."""
from __future__ import annotations

from typing import Any, ClassVar, Generic, Optional, TypeVar
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

ModelT = TypeVar("ModelT")


class BaseRepository(Generic[ModelT]):
    model: ClassVar[type]

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_by_id(self, id: UUID) -> Optional[ModelT]:
        return await self.session.get(self.model, id)  # type: ignore[return-value]

    async def get_for_owner(self, id: UUID, owner_id: UUID) -> Optional[ModelT]:
        """Return the row only if it belongs to ``owner_id``."""
        stmt = (
            select(self.model)
            .where(self.model.id == id)  # type: ignore[attr-defined]
            .where(self.model.owner_id == owner_id)  # type: ignore[attr-defined]
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def create(self, data: dict[str, Any]) -> ModelT:
        instance = self.model(**data)
        self.session.add(instance)
        await self.session.flush()
        await self.session.refresh(instance)
        return instance  # type: ignore[return-value]

    async def update(self, id: UUID, data: dict[str, Any]) -> Optional[ModelT]:
        instance = await self.get_by_id(id)
        if instance is None:
            return None
        for attr, value in data.items():
            setattr(instance, attr, value)
        await self.session.flush()
        await self.session.refresh(instance)
        return instance  # type: ignore[return-value]

    async def attach_external_id(self, id: UUID, external_event_id: str) -> Optional[ModelT]:
        """The only mutation the sync engine performs on an existing row."""
        return await self.update(id, {"external_event_id": external_event_id})

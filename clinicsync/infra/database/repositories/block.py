"""Block repository: active-block lookups per owner/day and soft removal."""
from __future__ import annotations

import datetime as _dt
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select

from clinicsync.infra.database.models.block import Block
from clinicsync.infra.database.repositories.base import BaseRepository


class BlockRepository(BaseRepository[Block]):
    model = Block

    async def list_active_for_day(self, owner_id: UUID, day: _dt.date) -> List[Block]:
        stmt = (
            select(Block)
            .where(Block.owner_id == owner_id)
            .where(Block.date == day)
            .where(Block.active.is_(True))
            .order_by(Block.range_start)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_active(self, owner_id: UUID) -> List[Block]:
        stmt = (
            select(Block)
            .where(Block.owner_id == owner_id)
            .where(Block.active.is_(True))
            .order_by(Block.date, Block.range_start)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_unsynced(self, owner_id: UUID) -> List[Block]:
        stmt = (
            select(Block)
            .where(Block.owner_id == owner_id)
            .where(Block.active.is_(True))
            .where(Block.external_event_id.is_(None))
            .order_by(Block.date)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_by_external_id(self, owner_id: UUID, external_event_id: str) -> Optional[Block]:
        stmt = (
            select(Block)
            .where(Block.owner_id == owner_id)
            .where(Block.external_event_id == external_event_id)
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def deactivate(self, id: UUID) -> Optional[Block]:
        return await self.update(id, {"active": False})

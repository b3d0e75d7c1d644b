"""BlockService: create, remove and list agenda blocks."""
from __future__ import annotations

import logging
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from clinicsync.config import SyncConfig
from clinicsync.core.exceptions import NotFoundError
from clinicsync.infra.calendar import CalendarAdapterFactory
from clinicsync.infra.database.models import Block
from clinicsync.infra.database.repositories import BlockRepository
from clinicsync.scheduling.conflict_resolver import ConflictResolver
from clinicsync.scheduling.locks import OwnerLocks
from clinicsync.scheduling.types import BlockRequest
from clinicsync.services.notification_service import (
    BLOCK_CREATED,
    BLOCK_REMOVED,
    NotificationSink,
    block_fields,
)
from clinicsync.services.reconciliation_service import ReconciliationService

logger = logging.getLogger(__name__)


class BlockService:
    def __init__(
        self,
        session: AsyncSession,
        config: SyncConfig,
        notifier: Optional[NotificationSink] = None,
        *,
        locks: Optional[OwnerLocks] = None,
        adapter_factory: Optional[CalendarAdapterFactory] = None,
    ) -> None:
        self._repo = BlockRepository(session)
        self._resolver = ConflictResolver(session, locks)
        self._sync = ReconciliationService(session, config, adapter_factory=adapter_factory, locks=locks)
        self._notifier = notifier

    async def create(self, owner_id: UUID, request: BlockRequest) -> Tuple[Block, Optional[str]]:
        block = await self._resolver.admit_block(owner_id, request)
        if self._notifier is not None:
            self._notifier.notify(BLOCK_CREATED, block.id, **block_fields(block))
        warning = await self._sync.export_block(block)
        return block, warning

    async def remove(self, owner_id: UUID, block_id: UUID) -> Tuple[Block, Optional[str]]:
        """Deactivate the block; the row and its external id are kept."""
        block = await self._repo.get_for_owner(block_id, owner_id)
        if block is None:
            raise NotFoundError("Block not found", details={"block_id": str(block_id)})
        if not block.active:
            return block, None

        updated = await self._repo.deactivate(block.id)
        await self._repo.session.commit()
        logger.info("Block removed: id=%s owner=%s", block_id, owner_id)

        if self._notifier is not None:
            self._notifier.notify(BLOCK_REMOVED, updated.id, **block_fields(updated))
        warning = await self._sync.delete_external(owner_id, updated.external_event_id)
        return updated, warning

    async def list_active(self, owner_id: UUID) -> List[Block]:
        return await self._repo.list_active(owner_id)

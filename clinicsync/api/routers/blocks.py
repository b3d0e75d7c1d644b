"""Blocks API: create, list and remove blackout periods."""
from __future__ import annotations

import logging
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends

from clinicsync.api.dependencies import get_block_service, get_current_owner
from clinicsync.api.schemas.blocks import BlockCreate, BlockResponse
from clinicsync.scheduling.types import BlockRequest
from clinicsync.services import BlockService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/blocks", tags=["blocks"])


def to_response(block, warning: Optional[str] = None) -> BlockResponse:
    return BlockResponse.model_validate(block).model_copy(update={"sync_warning": warning})


def to_request(body: BlockCreate) -> BlockRequest:
    return BlockRequest(
        kind=body.kind,
        date=body.date,
        range_start=body.range_start,
        range_end=body.range_end,
        reason=body.reason,
    )


@router.post("", response_model=BlockResponse, status_code=201)
async def create_block(
    body: BlockCreate,
    owner_id: UUID = Depends(get_current_owner),
    svc: BlockService = Depends(get_block_service),
):
    block, warning = await svc.create(owner_id, to_request(body))
    return to_response(block, warning)


@router.get("", response_model=List[BlockResponse])
async def list_blocks(
    owner_id: UUID = Depends(get_current_owner),
    svc: BlockService = Depends(get_block_service),
):
    return [to_response(b) for b in await svc.list_active(owner_id)]


@router.delete("/{block_id}", response_model=BlockResponse)
async def remove_block(
    block_id: UUID,
    owner_id: UUID = Depends(get_current_owner),
    svc: BlockService = Depends(get_block_service),
):
    block, warning = await svc.remove(owner_id, block_id)
    return to_response(block, warning)

"""Automation webhooks: scheduling and blocking driven by an external agent.

These routes live under /webhooks/ (NOT /api/v1/) so they skip the admin
API-key middleware; callers authenticate with the shared secret in
``X-Webhook-Secret`` and name the owner in the request body. Appointments
created here go through the same admission checks as the dashboard.
"""
from __future__ import annotations

import logging
import os

from fastapi import APIRouter, Depends, Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from clinicsync.api.dependencies import (
    get_appointment_service,
    get_block_service,
    require_webhook_secret,
)
from clinicsync.api.routers.appointments import to_request as to_appointment_request
from clinicsync.api.routers.appointments import to_response as to_appointment_response
from clinicsync.api.routers.blocks import to_request as to_block_request
from clinicsync.api.routers.blocks import to_response as to_block_response
from clinicsync.api.schemas.appointments import AppointmentResponse, AutomationAppointmentCreate
from clinicsync.api.schemas.blocks import AutomationBlockCreate, AutomationBlockRemove, BlockResponse
from clinicsync.scheduling.types import AppointmentOrigin
from clinicsync.services import AppointmentService, BlockService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/webhooks",
    tags=["automation"],
    dependencies=[Depends(require_webhook_secret)],
)

_RATE_LIMIT = os.environ.get("AUTOMATION_RATE_LIMIT", "60/minute")
limiter = Limiter(key_func=get_remote_address)


@router.post("/appointments", response_model=AppointmentResponse, status_code=201)
@limiter.limit(_RATE_LIMIT)
async def automation_schedule(
    request: Request,
    body: AutomationAppointmentCreate,
    svc: AppointmentService = Depends(get_appointment_service),
):
    appointment, warning = await svc.schedule(
        body.owner_id,
        to_appointment_request(body, external_event_id=body.external_event_id),
        AppointmentOrigin.EXTERNAL_AUTOMATION,
    )
    logger.info("Automation scheduled appointment %s for owner %s", appointment.id, body.owner_id)
    return to_appointment_response(appointment, warning)


@router.post("/blocks", response_model=BlockResponse, status_code=201)
@limiter.limit(_RATE_LIMIT)
async def automation_block(
    request: Request,
    body: AutomationBlockCreate,
    svc: BlockService = Depends(get_block_service),
):
    block, warning = await svc.create(body.owner_id, to_block_request(body))
    logger.info("Automation created block %s for owner %s", block.id, body.owner_id)
    return to_block_response(block, warning)


@router.delete("/blocks", response_model=BlockResponse)
@limiter.limit(_RATE_LIMIT)
async def automation_unblock(
    request: Request,
    body: AutomationBlockRemove,
    svc: BlockService = Depends(get_block_service),
):
    block, warning = await svc.remove(body.owner_id, body.block_id)
    logger.info("Automation removed block %s for owner %s", block.id, body.owner_id)
    return to_block_response(block, warning)

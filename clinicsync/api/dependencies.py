"""FastAPI dependency providers."""
from __future__ import annotations

import hmac
from collections.abc import AsyncGenerator
from typing import Optional
from uuid import UUID

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from clinicsync.config import SyncConfig
from clinicsync.core.exceptions import UnauthorizedError
from clinicsync.infra.calendar import CalendarAdapterFactory
from clinicsync.services import AppointmentService, BlockService, NotificationSink, ReconciliationService


async def get_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Yield a transactional AsyncSession from the app-level session factory."""
    session_factory = request.app.state.session_factory
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def get_sync_config(request: Request) -> SyncConfig:
    return request.app.state.sync_config


def get_notifier(request: Request) -> Optional[NotificationSink]:
    return getattr(request.app.state, "notifier", None)


def get_adapter_factory(request: Request) -> Optional[CalendarAdapterFactory]:
    return getattr(request.app.state, "adapter_factory", None)


def get_current_owner(x_owner_id: Optional[str] = Header(None, alias="X-Owner-Id")) -> UUID:
    """Owner identity is set by the upstream auth layer as an opaque UUID header."""
    if not x_owner_id:
        raise UnauthorizedError("Missing X-Owner-Id header")
    try:
        return UUID(x_owner_id.strip())
    except ValueError as exc:
        raise UnauthorizedError("Invalid X-Owner-Id header", cause=exc) from exc


def require_webhook_secret(
    config: SyncConfig = Depends(get_sync_config),
    x_webhook_secret: Optional[str] = Header(None, alias="X-Webhook-Secret"),
) -> None:
    expected = config.inbound_webhook_secret
    if not expected or not x_webhook_secret:
        raise UnauthorizedError("Invalid webhook secret")
    if not hmac.compare_digest(expected.encode("utf-8"), x_webhook_secret.encode("utf-8")):
        raise UnauthorizedError("Invalid webhook secret")


def get_appointment_service(
    session: AsyncSession = Depends(get_session),
    config: SyncConfig = Depends(get_sync_config),
    notifier: Optional[NotificationSink] = Depends(get_notifier),
    adapter_factory: Optional[CalendarAdapterFactory] = Depends(get_adapter_factory),
) -> AppointmentService:
    return AppointmentService(session, config, notifier, adapter_factory=adapter_factory)


def get_block_service(
    session: AsyncSession = Depends(get_session),
    config: SyncConfig = Depends(get_sync_config),
    notifier: Optional[NotificationSink] = Depends(get_notifier),
    adapter_factory: Optional[CalendarAdapterFactory] = Depends(get_adapter_factory),
) -> BlockService:
    return BlockService(session, config, notifier, adapter_factory=adapter_factory)


def get_reconciliation_service(
    session: AsyncSession = Depends(get_session),
    config: SyncConfig = Depends(get_sync_config),
    adapter_factory: Optional[CalendarAdapterFactory] = Depends(get_adapter_factory),
) -> ReconciliationService:
    return ReconciliationService(session, config, adapter_factory=adapter_factory)

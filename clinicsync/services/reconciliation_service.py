"""ReconciliationService: mirror local records to the external calendar and back.

Export pushes confirmed appointments and active blocks that have no
``external_event_id``; Import pulls timed events in a window and inserts
the ones not already known by id. ``external_event_id`` is the only
idempotency key in both directions, so either pass can be re-run after a
partial failure. Adapter failures never abort a pass; they are classified
and reported as warnings.
"""
from __future__ import annotations

import datetime as _dt
import logging
from typing import Optional, Tuple
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from clinicsync.config import SyncConfig
from clinicsync.core.exceptions import (
    CalendarCredentialExpiredError,
    CalendarNotConnectedError,
    ExternalServiceError,
)
from clinicsync.infra.calendar import CalendarAdapter, CalendarAdapterFactory, classify_calendar_error
from clinicsync.infra.database.models import Appointment, Block
from clinicsync.infra.database.repositories import AppointmentRepository, BlockRepository
from clinicsync.scheduling import time_model
from clinicsync.scheduling.event_payloads import appointment_event, block_event
from clinicsync.scheduling.locks import OwnerLocks, owner_locks
from clinicsync.scheduling.title_parser import TitleParser
from clinicsync.scheduling.types import (
    AppointmentOrigin,
    AppointmentStatus,
    EntityCounts,
    EventPayload,
    ExportReport,
    ExternalEvent,
    ImportReport,
    SyncReport,
)

logger = logging.getLogger(__name__)


def _describe(error: ExternalServiceError) -> str:
    if isinstance(error, CalendarCredentialExpiredError):
        return "Google Calendar authorization expired; reconnect the account"
    return error.message


class ReconciliationService:
    def __init__(
        self,
        session: AsyncSession,
        config: SyncConfig,
        *,
        adapter_factory: Optional[CalendarAdapterFactory] = None,
        title_parser: Optional[TitleParser] = None,
        locks: Optional[OwnerLocks] = None,
    ) -> None:
        self._session = session
        self._config = config
        self._appointments = AppointmentRepository(session)
        self._blocks = BlockRepository(session)
        self._adapters = adapter_factory or CalendarAdapterFactory(config)
        self._parser = title_parser or TitleParser()
        self._locks = locks if locks is not None else owner_locks

    async def _require_adapter(self, owner_id: UUID) -> CalendarAdapter:
        adapter = await self._adapters.for_owner(owner_id)
        if adapter is None:
            raise CalendarNotConnectedError(
                "Google Calendar is not connected for this account",
                details={"owner_id": str(owner_id)},
            )
        return adapter

    def default_window(self) -> Tuple[_dt.datetime, _dt.datetime]:
        return time_model.import_window(self._config.import_days_back, self._config.import_days_forward)

    # ── Export ────────────────────────────────────────────────────────────────

    async def export(self, owner_id: UUID, *, adapter: Optional[CalendarAdapter] = None) -> ExportReport:
        """Create external events for every unsynced confirmed appointment and active block."""
        adapter = adapter or await self._require_adapter(owner_id)
        report = ExportReport()

        appointments = await self._appointments.list_unsynced(owner_id)
        blocks = await self._blocks.list_unsynced(owner_id)
        logger.info(
            "Export started: owner=%s appointments=%d blocks=%d",
            owner_id, len(appointments), len(blocks),
        )

        for appointment in appointments:
            await self._export_one(
                adapter, self._appointments, appointment, appointment_event(appointment),
                report.appointments, report, "appointment",
            )
        for block in blocks:
            await self._export_one(
                adapter, self._blocks, block, block_event(block),
                report.blocks, report, "block",
            )

        logger.info(
            "Export finished: owner=%s appointments=%s blocks=%s",
            owner_id, report.appointments.to_dict(), report.blocks.to_dict(),
        )
        return report

    async def _export_one(
        self,
        adapter: CalendarAdapter,
        repo,
        record,
        payload: EventPayload,
        counts: EntityCounts,
        report: ExportReport,
        label: str,
    ) -> None:
        try:
            external_id = await adapter.create_event(payload)
        except Exception as exc:
            error = classify_calendar_error(exc, operation=f"export {label}")
            counts.failed += 1
            report.credential_expired |= isinstance(error, CalendarCredentialExpiredError)
            report.warnings.append(f"Failed to export {label} {record.id}: {_describe(error)}")
            logger.warning("Export of %s %s failed: %s", label, record.id, error.code)
            return

        # Commit per record so a later failure never loses an attached id
        try:
            await repo.attach_external_id(record.id, external_id)
            await self._session.commit()
        except SQLAlchemyError as exc:
            await self._session.rollback()
            counts.failed += 1
            report.warnings.append(
                f"Exported {label} {record.id} as event {external_id!r}, but the event id was not saved: {exc}"
            )
            logger.warning("Saving event id for %s %s failed: %s", label, record.id, exc)
            return
        counts.exported += 1
        logger.info("Exported %s %s as event %s", label, record.id, external_id)

    async def export_appointment(self, appointment: Appointment) -> Optional[str]:
        """Best-effort export right after admission. Returns a warning or None."""
        if appointment.external_event_id:
            return None
        return await self._export_single(
            appointment.owner_id, self._appointments, appointment, appointment_event(appointment), "appointment",
        )

    async def export_block(self, block: Block) -> Optional[str]:
        if block.external_event_id:
            return None
        return await self._export_single(block.owner_id, self._blocks, block, block_event(block), "block")

    async def _export_single(self, owner_id: UUID, repo, record, payload: EventPayload, label: str) -> Optional[str]:
        adapter = await self._adapters.for_owner(owner_id)
        if adapter is None:
            return None
        try:
            external_id = await adapter.create_event(payload)
        except Exception as exc:
            error = classify_calendar_error(exc, operation=f"export {label}")
            logger.warning("Immediate export of %s %s failed: %s", label, record.id, error.code)
            return f"Saved, but not sent to Google Calendar: {_describe(error)}"
        try:
            await repo.attach_external_id(record.id, external_id)
            await self._session.commit()
        except SQLAlchemyError as exc:
            await self._session.rollback()
            logger.warning("Saving event id for %s %s failed: %s", label, record.id, exc)
            return f"Sent to Google Calendar, but the event id was not saved: {exc}"
        record.external_event_id = external_id
        logger.info("Exported %s %s as event %s", label, record.id, external_id)
        return None

    async def delete_external(self, owner_id: UUID, external_event_id: Optional[str]) -> Optional[str]:
        """Best-effort removal of a mirrored event. Returns a warning or None."""
        if not external_event_id:
            return None
        adapter = await self._adapters.for_owner(owner_id)
        if adapter is None:
            return None
        try:
            await adapter.delete_event(external_event_id)
        except Exception as exc:
            error = classify_calendar_error(exc, operation="delete event")
            logger.warning("Delete of event %s failed: %s", external_event_id, error.code)
            return f"Google Calendar event was not removed: {_describe(error)}"
        logger.info("Deleted external event %s", external_event_id)
        return None

    # ── Import ────────────────────────────────────────────────────────────────

    async def import_events(
        self,
        owner_id: UUID,
        time_min: Optional[_dt.datetime] = None,
        time_max: Optional[_dt.datetime] = None,
        *,
        adapter: Optional[CalendarAdapter] = None,
    ) -> ImportReport:
        """Insert an Appointment for every new timed event in [time_min, time_max)."""
        if time_min is None or time_max is None:
            default_min, default_max = self.default_window()
            time_min = time_min or default_min
            time_max = time_max or default_max
        adapter = adapter or await self._require_adapter(owner_id)
        report = ImportReport()

        try:
            events = await adapter.list_events(time_min, time_max)
        except Exception as exc:
            error = classify_calendar_error(exc, operation="list events")
            report.credential_expired = isinstance(error, CalendarCredentialExpiredError)
            report.warnings.append(f"Could not read Google Calendar: {_describe(error)}")
            logger.warning("Import listing failed for owner %s: %s", owner_id, error.code)
            return report

        report.total = len(events)
        for event in events:
            await self._import_one(owner_id, event, report)

        logger.info(
            "Import finished: owner=%s imported=%d skipped=%d failed=%d total=%d",
            owner_id, report.imported, report.skipped, report.failed, report.total,
        )
        return report

    async def _import_one(self, owner_id: UUID, event: ExternalEvent, report: ImportReport) -> None:
        if event.is_all_day:
            report.skipped += 1
            logger.debug("Import of event %s skipped: all-day", event.external_id)
            return
        if event.start_at is None:
            report.skipped += 1
            logger.debug("Import of event %s skipped: no start", event.external_id)
            return
        if await self._is_known(owner_id, event.external_id):
            report.skipped += 1
            return

        parsed = self._parser.parse(event.title)
        start_at = time_model.to_clinic(event.start_at)

        async with self._locks.hold(owner_id):
            clash = await self._appointments.find_confirmed_at(owner_id, start_at)
            if clash is not None:
                report.skipped += 1
                report.warnings.append(
                    f"Event {event.external_id!r} at {start_at.isoformat()} skipped: "
                    f"slot already booked by appointment {clash.id}"
                )
                logger.warning("Import of event %s skipped: slot taken", event.external_id)
                return
            try:
                await self._appointments.create({
                    "owner_id": owner_id,
                    "subject_name": parsed.subject_name,
                    "subject_phone": "",
                    "subject_email": event.attendee_emails[0] if event.attendee_emails else None,
                    "start_at": start_at,
                    "kind": parsed.kind,
                    "notes": event.description or None,
                    "origin": AppointmentOrigin.IMPORTED.value,
                    "status": AppointmentStatus.CONFIRMED.value,
                    "external_event_id": event.external_id,
                })
                await self._session.commit()
            except SQLAlchemyError as exc:
                # The failed statement aborts the transaction; later events need a clean one
                await self._session.rollback()
                report.failed += 1
                report.warnings.append(
                    f"Event {event.external_id!r} could not be imported: {getattr(exc, 'orig', None) or exc}"
                )
                logger.warning("Import of event %s failed: %s", event.external_id, exc)
                return

        report.imported += 1
        logger.info("Imported event %s as %s (%s)", event.external_id, parsed.kind, parsed.subject_name)

    async def _is_known(self, owner_id: UUID, external_id: str) -> bool:
        """An event is known if any appointment (cancelled too) or block carries its id."""
        if await self._appointments.get_by_external_id(owner_id, external_id) is not None:
            return True
        return await self._blocks.get_by_external_id(owner_id, external_id) is not None

    # ── Sync ──────────────────────────────────────────────────────────────────

    async def sync(self, owner_id: UUID) -> SyncReport:
        """Drift repair: Export, then Import over the default window.

        Local records are never deleted because of their absence externally.
        """
        adapter = await self._require_adapter(owner_id)
        exported = await self.export(owner_id, adapter=adapter)
        time_min, time_max = self.default_window()
        imported = await self.import_events(owner_id, time_min, time_max, adapter=adapter)
        report = SyncReport(export=exported, import_=imported)
        if report.credential_expired:
            logger.warning("Sync for owner %s hit an expired calendar credential", owner_id)
        return report

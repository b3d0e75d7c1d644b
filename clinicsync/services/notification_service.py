"""NotificationSink: outbound HMAC-signed webhook for scheduling events.

Every event is POSTed as JSON ``{event, timestamp, record_id, data}``.
The body is signed with HMAC-SHA256 using the configured secret and sent as
``X-Clinic-Signature: sha256=<hex>``; the secret itself also travels in
``X-Webhook-Secret`` for receivers that only do a shared-secret check.

Receiver-side verification:
    expected = hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()
    assert hmac.compare_digest(expected, received_sig.removeprefix("sha256="))

Events fired
------------
- ``appointment.created``
- ``appointment.cancelled``
- ``block.created``
- ``block.removed``
"""
from __future__ import annotations

import asyncio
import datetime as _dt
import hashlib
import hmac
import json
import logging
from typing import Any, Dict, Optional, Set

import httpx

logger = logging.getLogger(__name__)

_TIMEOUT_SECONDS = 10

APPOINTMENT_CREATED = "appointment.created"
APPOINTMENT_CANCELLED = "appointment.cancelled"
BLOCK_CREATED = "block.created"
BLOCK_REMOVED = "block.removed"


def build_payload(event: str, record_id: Any, data: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "event": event,
        "timestamp": _dt.datetime.now(_dt.timezone.utc).isoformat().replace("+00:00", "Z"),
        "record_id": str(record_id),
        "data": data,
    }


def sign(body: bytes, secret: str) -> str:
    """Return ``sha256=<hex>`` HMAC signature for *body* using *secret*."""
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return f"sha256={digest}"


class NotificationSink:
    def __init__(
        self,
        url: Optional[str],
        secret: Optional[str] = None,
        *,
        timeout: float = _TIMEOUT_SECONDS,
    ) -> None:
        self.url = url
        self._secret = secret
        self._timeout = timeout
        self._pending: Set[asyncio.Task] = set()

    @property
    def enabled(self) -> bool:
        return bool(self.url)

    def notify(self, event: str, record_id: Any, **fields: Any) -> Optional[asyncio.Task]:
        """Schedule delivery on the running loop and return immediately.

        Returns the task (None when no sink URL is configured).
        """
        if not self.enabled:
            return None
        task = asyncio.create_task(self.deliver(event, record_id, fields))
        # Keep a strong reference until the task finishes
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def deliver(self, event: str, record_id: Any, data: Dict[str, Any]) -> bool:
        """POST one event. Never raises; returns True on a 2xx/3xx response."""
        if not self.url:
            return False

        payload = build_payload(event, record_id, data)
        body = json.dumps(payload, ensure_ascii=False, default=str).encode("utf-8")
        headers = {"Content-Type": "application/json", "X-Clinic-Event": event}
        if self._secret:
            headers["X-Webhook-Secret"] = self._secret
            headers["X-Clinic-Signature"] = sign(body, self._secret)

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.post(self.url, content=body, headers=headers)
        except httpx.HTTPError as exc:
            logger.warning("Notification %s for %s failed: %s", event, record_id, exc)
            return False

        if resp.status_code >= 400:
            logger.warning(
                "Notification %s for %s → %s returned HTTP %d",
                event, record_id, self.url, resp.status_code,
            )
            return False
        logger.info("Notification %s dispatched for %s (%d)", event, record_id, resp.status_code)
        return True

    async def drain(self) -> None:
        """Wait for in-flight deliveries (used on shutdown and in tests)."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)


def appointment_fields(appointment) -> Dict[str, Any]:
    return {
        "subject_name": appointment.subject_name,
        "subject_phone": appointment.subject_phone,
        "subject_email": appointment.subject_email,
        "start_at": appointment.start_at.isoformat() if appointment.start_at else None,
        "kind": appointment.kind,
        "origin": appointment.origin,
        "status": appointment.status,
        "external_event_id": appointment.external_event_id,
    }


def block_fields(block) -> Dict[str, Any]:
    return {
        "kind": block.kind,
        "date": block.date.isoformat() if block.date else None,
        "range_start": block.range_start.strftime("%H:%M") if block.range_start else None,
        "range_end": block.range_end.strftime("%H:%M") if block.range_end else None,
        "reason": block.reason,
        "active": block.active,
    }

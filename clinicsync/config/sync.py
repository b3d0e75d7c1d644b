"""
clinicsync.config.sync – configuration injected into the reconciliation
engine and the notification sink.

Env vars: GOOGLE_API_BASE_URL, NOTIFICATION_WEBHOOK_URL, NOTIFICATION_WEBHOOK_SECRET,
AUTOMATION_WEBHOOK_SECRET, CALENDAR_TIMEOUT_SECONDS, IMPORT_DAYS_BACK, IMPORT_DAYS_FORWARD,
GOOGLE_CLIENT_ID, GOOGLE_CLIENT_SECRET, GOOGLE_REDIRECT_URI, FRONTEND_URL.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from clinicsync.core.exceptions import ConfigurationError

if TYPE_CHECKING:
    from clinicsync.infra.calendar.base import CredentialProvider


def _optional(name: str) -> Optional[str]:
    return os.environ.get(name, "").strip() or None


@dataclass(frozen=True)
class SyncConfig:
    """Calendar and notification settings for one deployment."""

    credential_provider: Optional["CredentialProvider"] = None
    """Resolves an owner id to stored calendar credentials."""

    external_api_base_url: Optional[str] = None
    """Overrides the calendar API endpoint (None = provider default)."""

    notification_sink_url: Optional[str] = None
    notification_secret: Optional[str] = None

    inbound_webhook_secret: Optional[str] = None
    """Shared secret expected in X-Webhook-Secret on automation webhooks."""

    request_timeout: float = 15.0
    """Seconds per adapter call; exceeding it counts as a transient failure."""

    import_days_back: int = 30
    import_days_forward: int = 60

    def __post_init__(self) -> None:
        if self.request_timeout <= 0:
            raise ValueError(f"request_timeout must be positive, got {self.request_timeout!r}")
        if self.import_days_back < 0 or self.import_days_forward < 0:
            raise ValueError("import window bounds must be non-negative")

    @classmethod
    def from_env(cls, credential_provider: Optional["CredentialProvider"] = None) -> SyncConfig:
        return cls(
            credential_provider=credential_provider,
            external_api_base_url=_optional("GOOGLE_API_BASE_URL"),
            notification_sink_url=_optional("NOTIFICATION_WEBHOOK_URL"),
            notification_secret=_optional("NOTIFICATION_WEBHOOK_SECRET"),
            inbound_webhook_secret=_optional("AUTOMATION_WEBHOOK_SECRET"),
            request_timeout=float(os.environ.get("CALENDAR_TIMEOUT_SECONDS", "15")),
            import_days_back=int(os.environ.get("IMPORT_DAYS_BACK", "30")),
            import_days_forward=int(os.environ.get("IMPORT_DAYS_FORWARD", "60")),
        )


@dataclass(frozen=True)
class GoogleOAuthConfig:
    """OAuth client used to connect an owner's Google Calendar."""

    client_id: str
    client_secret: str
    redirect_uri: str = "http://localhost:8000/api/v1/google/callback"
    frontend_url: str = "http://localhost:3000"

    @classmethod
    def from_env(cls) -> GoogleOAuthConfig:
        client_id = _optional("GOOGLE_CLIENT_ID")
        client_secret = _optional("GOOGLE_CLIENT_SECRET")
        if not client_id or not client_secret:
            raise ConfigurationError(
                "GOOGLE_CLIENT_ID and GOOGLE_CLIENT_SECRET env vars are required for OAuth.",
                http_status=503,
            )
        return cls(
            client_id=client_id,
            client_secret=client_secret,
            redirect_uri=os.environ.get(
                "GOOGLE_REDIRECT_URI", "http://localhost:8000/api/v1/google/callback"
            ),
            frontend_url=os.environ.get("FRONTEND_URL", "http://localhost:3000"),
        )

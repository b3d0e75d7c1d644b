"""
Base exception types for clinicsync.

Every domain error carries a machine-readable code and a suggested HTTP
status, so the API layer can render any of them without knowing the
concrete class.
"""
from __future__ import annotations

import traceback
from typing import Any, Optional


class ProjectError(Exception):
    """
    Base exception for all clinicsync errors.

    Attributes:
        message: Human-readable error description.
        code: Machine-readable slug (e.g. ``SLOT_TAKEN``).
        http_status: Suggested HTTP status for API responses (default 500).
        details: Optional dict with extra context (offending field, record id).
        cause: Optional chained exception.
    """

    default_code: str = "ERROR"
    default_http_status: int = 500

    def __init__(
        self,
        message: str,
        *,
        code: Optional[str] = None,
        http_status: Optional[int] = None,
        details: Optional[dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code if code is not None else self.default_code
        self.http_status = http_status if http_status is not None else self.default_http_status
        self.details: dict[str, Any] = details or {}
        self.cause = cause

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, code={self.code!r}, "
            f"http_status={self.http_status})"
        )

    def __str__(self) -> str:
        return self.message

    def to_dict(self, *, include_cause: bool = False) -> dict[str, Any]:
        """Serialize for logging or API responses.

        The cause traceback is only included on request; API responses
        should not leak it.
        """
        out: dict[str, Any] = {
            "error": self.code,
            "message": self.message,
        }
        if self.details:
            out["details"] = self.details
        if include_cause and self.cause is not None:
            out["cause"] = str(self.cause)
            out["cause_traceback"] = traceback.format_exception(
                type(self.cause), self.cause, self.cause.__traceback__
            )
        return out

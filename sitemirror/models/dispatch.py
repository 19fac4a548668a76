"""
Dispatch Result — What happened to an alert.

Dispatchers never raise; every attempt produces one of these. The
orchestrator logs it and moves on, so alert delivery can never change a
run's exit code.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, Field


class ErrorDetails(BaseModel):
    """Details about a dispatch error."""

    code: str
    message: str
    retryable: bool = False


class DispatchResult(BaseModel):
    """Result of an alert dispatch attempt."""

    status: Literal["ok", "skipped", "failed"]
    dispatcher: str
    request_id: Optional[str] = None
    ts_iso: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )
    details: Optional[Dict[str, Any]] = None
    error: Optional[ErrorDetails] = None

    @property
    def delivered(self) -> bool:
        return self.status == "ok"

    @classmethod
    def ok(
        cls,
        dispatcher: str,
        request_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> "DispatchResult":
        """Create a successful result."""
        return cls(
            status="ok",
            dispatcher=dispatcher,
            request_id=request_id,
            details=details,
        )

    @classmethod
    def skipped(cls, dispatcher: str, reason: str) -> "DispatchResult":
        """Create a skipped result."""
        return cls(
            status="skipped",
            dispatcher=dispatcher,
            details={"skip_reason": reason},
        )

    @classmethod
    def failed(
        cls,
        dispatcher: str,
        error_code: str,
        error_message: str,
        retryable: bool = False,
    ) -> "DispatchResult":
        """Create a failed result."""
        return cls(
            status="failed",
            dispatcher=dispatcher,
            error=ErrorDetails(
                code=error_code,
                message=error_message,
                retryable=retryable,
            ),
        )

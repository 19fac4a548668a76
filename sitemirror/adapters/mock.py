"""
Mock Dispatchers — Non-delivering dispatchers.

NullDispatcher is used when no alerting credential is configured;
MockDispatcher records payloads for tests and local runs.
"""

from __future__ import annotations

import logging
from typing import List, Optional
from uuid import uuid4

from ..config.settings import Settings
from ..models.alert import AlertPayload
from ..models.dispatch import DispatchResult
from .base import AlertDispatcher

logger = logging.getLogger(__name__)


class NullDispatcher(AlertDispatcher):
    """Alerting disabled: every dispatch is a silent skip."""

    @property
    def name(self) -> str:
        return "null"

    def send(self, payload: AlertPayload) -> DispatchResult:
        logger.debug("Alerting not configured, skipping alert")
        return DispatchResult.skipped(self.name, reason="alerting_not_configured")


class MockDispatcher(AlertDispatcher):
    """Logs and records alerts without sending them."""

    def __init__(self, settings: Optional[Settings] = None):
        super().__init__(settings or Settings())
        self.sent: List[AlertPayload] = []

    @property
    def name(self) -> str:
        return "mock"

    def send(self, payload: AlertPayload) -> DispatchResult:
        self.sent.append(payload)
        logger.info(
            f"[MOCK:alert] Would send {payload.priority}: {payload.message}\n"
            f"  Tags: {', '.join(payload.tags)}"
        )
        return DispatchResult.ok(
            dispatcher=self.name,
            request_id=f"mock_{uuid4().hex[:8]}",
            details={"mock": True, "priority": payload.priority},
        )

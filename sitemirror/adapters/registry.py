"""
Dispatcher Registry — Pick the alert dispatcher for the current settings.
"""

from __future__ import annotations

import logging
import os

from ..config.settings import Settings
from .base import AlertDispatcher
from .mock import MockDispatcher, NullDispatcher

logger = logging.getLogger(__name__)


def build_dispatcher(settings: Settings) -> AlertDispatcher:
    """
    Return the dispatcher for these settings.

    ALERT_MOCK_MODE=true forces the mock dispatcher; without an API key
    alerts are disabled.
    """
    if os.environ.get("ALERT_MOCK_MODE", "").lower() in ("true", "1", "yes"):
        logger.info("Alert mock mode enabled")
        return MockDispatcher(settings)

    if not settings.alerting_enabled:
        logger.debug("OPSGENIE_API_KEY not set, alerts disabled")
        return NullDispatcher(settings)

    from .opsgenie import OpsgenieDispatcher

    logger.info("Registered Opsgenie alert dispatcher")
    return OpsgenieDispatcher(settings)

"""
Opsgenie Dispatcher — POST alerts to the Opsgenie alerts API.

## Configuration

- OPSGENIE_API_KEY: API integration key (required; absent disables alerts)
- OPSGENIE_API_URL: Alerts endpoint (default: https://api.opsgenie.com/v2/alerts)
- OPSGENIE_TIMEOUT_SECONDS: Request timeout (default: 10)

## Request

    POST /v2/alerts
    Authorization: GenieKey <key>

    {
        "message": "[Warning] Site mirror 12 (12FILESRV01) completed with warnings - code 3",
        "alias": "sitemirror-12-R-20261018T020000-1A2B3C",
        "description": "Location: 12\n...",
        "responders": [{"name": "site-mirror", "type": "team"}],
        "tags": ["SiteMirror", "Warning", "Location12"],
        "entity": "12FILESRV01",
        "source": "sitemirror",
        "priority": "P3"
    }

Opsgenie answers 202 with a requestId; delivery is asynchronous on its side.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from ..config.settings import Settings
from ..models.alert import AlertPayload
from ..models.dispatch import DispatchResult
from .base import AlertDispatcher

logger = logging.getLogger(__name__)


class OpsgenieDispatcher(AlertDispatcher):
    """Real alert dispatcher using httpx."""

    def __init__(self, settings: Settings, client: Optional[httpx.Client] = None):
        super().__init__(settings)
        self.url = settings.opsgenie_api_url
        self.timeout = settings.opsgenie_timeout_seconds
        self._client = client

    @property
    def name(self) -> str:
        return "opsgenie"

    def send(self, payload: AlertPayload) -> DispatchResult:
        api_key = self.settings.opsgenie_api_key
        if not api_key:
            return DispatchResult.skipped(self.name, reason="no_api_key")

        headers = {
            "Authorization": f"GenieKey {api_key}",
            "Content-Type": "application/json",
            "User-Agent": "sitemirror/1.0",
        }

        try:
            if self._client is not None:
                response = self._client.post(
                    self.url, json=payload.to_opsgenie(), headers=headers, timeout=self.timeout
                )
            else:
                with httpx.Client(timeout=self.timeout) as client:
                    response = client.post(
                        self.url, json=payload.to_opsgenie(), headers=headers
                    )
        except httpx.TimeoutException:
            logger.error(f"Opsgenie alert POST to {self.url} timed out")
            return DispatchResult.failed(
                dispatcher=self.name,
                error_code="timeout",
                error_message=f"Timed out after {self.timeout}s",
                retryable=True,
            )
        except httpx.RequestError as e:
            logger.error(f"Opsgenie alert POST to {self.url} failed: {e}")
            return DispatchResult.failed(
                dispatcher=self.name,
                error_code="request_error",
                error_message=str(e),
                retryable=True,
            )

        if response.status_code >= 400:
            logger.warning(
                f"Opsgenie rejected alert: {response.status_code} {response.text[:200]}"
            )
            return DispatchResult.failed(
                dispatcher=self.name,
                error_code=f"http_{response.status_code}",
                error_message=response.text[:500],
                retryable=response.status_code >= 500 or response.status_code == 429,
            )

        request_id = None
        try:
            request_id = response.json().get("requestId")
        except ValueError:
            pass

        logger.info(
            f"Opsgenie alert sent: priority={payload.priority}, "
            f"status={response.status_code}, request_id={request_id}"
        )
        return DispatchResult.ok(
            dispatcher=self.name,
            request_id=request_id,
            details={"priority": payload.priority, "tags": payload.tags},
        )

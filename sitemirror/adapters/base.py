"""
Alert Dispatcher Base — Interface for all alert dispatchers.

Dispatch is best-effort. dispatch() never raises: payload errors and
delivery errors both come back as a failed DispatchResult, which the
orchestrator logs and discards.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional

from ..config.settings import Settings
from ..models.alert import AlertPayload
from ..models.dispatch import DispatchResult
from ..models.outcome import RunOutcome, SeverityBand

logger = logging.getLogger(__name__)


def build_payload(
    outcome: RunOutcome,
    settings: Settings,
    summary_path: Optional[Path] = None,
) -> AlertPayload:
    """Build the alert for a run outcome. Pure."""
    identity = outcome.identity
    band = outcome.band

    if outcome.aborted:
        verb = "aborted during preflight"
    elif band == SeverityBand.SUCCESS:
        verb = "completed"
    elif band == SeverityBand.WARNING:
        verb = "completed with warnings"
    else:
        verb = "failed"

    prefix = "[DRY RUN] " if outcome.dry_run else ""
    message = (
        f"{prefix}[{band.value}] Site mirror {identity.code} ({identity.hostname}) "
        f"{verb} - code {outcome.overall_code}"
    )

    lines: List[str] = [
        f"Location: {identity.code}",
        f"Hostname: {identity.hostname}",
        f"Run ID: {outcome.run_id}",
        f"Overall code: {outcome.overall_code} ({band.value})",
        f"Started: {outcome.started_at.isoformat()}",
        f"Ended: {outcome.ended_at.isoformat()}",
    ]
    if outcome.dry_run:
        lines.append("Mode: DRY RUN (no changes made)")
    if outcome.aborted:
        lines.append("Preflight failures:")
        lines.extend(f"  - {failure}" for failure in outcome.preflight_failures)
    for result in outcome.results:
        line = (
            f"Job {result.job_name}: status {result.status_label}, "
            f"{result.duration_seconds:.1f}s, log {result.log_path}"
        )
        if result.error:
            line += f" ({result.error})"
        lines.append(line)
    if outcome.capacity_warning:
        lines.append(f"Capacity: {outcome.capacity_warning}")
    if summary_path is not None:
        lines.append(f"Summary: {summary_path}")

    tags = ["SiteMirror", band.value, identity.tag]
    if outcome.dry_run:
        tags.append("DryRun")
    if outcome.aborted:
        tags.append("Aborted")
    if outcome.capacity_warning:
        tags.append("LowDiskSpace")

    return AlertPayload(
        message=message,
        description="\n".join(lines),
        responders=settings.responders_for(band),
        tags=tags,
        priority=settings.priority_for(band),
        alias=f"sitemirror-{identity.code}-{outcome.run_id}",
        entity=identity.hostname,
    )


class AlertDispatcher(ABC):
    """
    Abstract base class for alert dispatchers.

    Subclasses implement send(); dispatch() wraps it so nothing escapes.
    """

    def __init__(self, settings: Settings):
        self.settings = settings

    @property
    @abstractmethod
    def name(self) -> str:
        """The dispatcher identifier (e.g., 'opsgenie', 'null')."""
        pass

    @abstractmethod
    def send(self, payload: AlertPayload) -> DispatchResult:
        """Deliver a payload. May raise; dispatch() catches."""
        pass

    def dispatch(
        self,
        outcome: RunOutcome,
        summary_path: Optional[Path] = None,
    ) -> DispatchResult:
        """Build and send the alert for an outcome. Never raises."""
        try:
            payload = build_payload(outcome, self.settings, summary_path)
        except Exception as e:
            logger.error(f"[{self.name}] Failed to build alert payload: {e}")
            return DispatchResult.failed(
                dispatcher=self.name,
                error_code="payload_error",
                error_message=str(e),
            )

        try:
            return self.send(payload)
        except Exception as e:
            logger.error(f"[{self.name}] Alert dispatch failed: {e}")
            return DispatchResult.failed(
                dispatcher=self.name,
                error_code="dispatch_error",
                error_message=str(e),
                retryable=True,
            )

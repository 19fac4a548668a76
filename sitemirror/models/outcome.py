"""
Run Outcome — The classified result of one location run.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .job import MirrorJobResult
from .location import LocationIdentity


class SeverityBand(str, Enum):
    """Three-level classification of a run."""

    SUCCESS = "Success"
    WARNING = "Warning"
    ERROR = "Error"


class RunOutcome(BaseModel):
    """
    Everything known about a finished (or aborted) run.

    overall_code is derived from the job statuses only. Aborted runs
    carry the reserved abort code instead and have no results.
    """

    model_config = ConfigDict(frozen=True)

    run_id: str
    identity: LocationIdentity
    results: List[MirrorJobResult] = Field(default_factory=list)
    overall_code: int
    band: SeverityBand
    dry_run: bool = False
    started_at: datetime
    ended_at: datetime
    capacity_warning: Optional[str] = None
    preflight_failures: List[str] = Field(default_factory=list)
    aborted: bool = False

    @property
    def exit_code(self) -> int:
        return self.overall_code

    @property
    def duration_seconds(self) -> float:
        return (self.ended_at - self.started_at).total_seconds()

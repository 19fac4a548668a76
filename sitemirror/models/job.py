"""
Job Models — Mirror job specs and their results.

Every job spec produces exactly one result, even when the copy engine
could not be started. Such results carry ENGINE_INVOCATION_FAILED, which
sets the engine's fatal bit so classification always treats them as
errors.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

# Fatal bit of the engine's exit status bitmask.
ENGINE_INVOCATION_FAILED = 16


class MirrorJobSpec(BaseModel):
    """A named source → destination mirror unit."""

    model_config = ConfigDict(frozen=True)

    name: str
    source: str
    destination: str
    log_path: str


class MirrorJobResult(BaseModel):
    """Outcome of one job spec."""

    model_config = ConfigDict(frozen=True)

    job_name: str
    exit_status: int = Field(ge=0)
    duration_seconds: float = 0.0
    log_path: str
    dry_run: bool = False
    invocation_failed: bool = False
    error: Optional[str] = None

    @classmethod
    def invocation_failure(
        cls,
        spec: MirrorJobSpec,
        error: str,
        duration_seconds: float = 0.0,
        dry_run: bool = False,
    ) -> "MirrorJobResult":
        """Record a job whose engine process crashed or never ran."""
        return cls(
            job_name=spec.name,
            exit_status=ENGINE_INVOCATION_FAILED,
            duration_seconds=duration_seconds,
            log_path=spec.log_path,
            dry_run=dry_run,
            invocation_failed=True,
            error=error,
        )

    @property
    def status_label(self) -> str:
        """Exit status as shown in summaries, e.g. '3 (dry run)'."""
        label = str(self.exit_status)
        if self.invocation_failed:
            label += " (engine invocation failed)"
        if self.dry_run:
            label += " (dry run)"
        return label

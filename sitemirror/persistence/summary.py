"""
Run Summary Writer — Human-readable record of a run.

One file per run, named by location code and run start time:

    <log_root>/<code>/<code>_<YYYYmmdd-HHMMSS>_summary.log

All timestamps come from the outcome, so writing the same outcome twice
produces identical files.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List

from ..models.outcome import RunOutcome

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S %Z"


def summary_path(log_root: Path, outcome: RunOutcome) -> Path:
    code = outcome.identity.code
    stamp = outcome.started_at.strftime("%Y%m%d-%H%M%S")
    return Path(log_root) / code / f"{code}_{stamp}_summary.log"


def render_summary(outcome: RunOutcome) -> str:
    """Render the summary text for an outcome."""
    identity = outcome.identity
    rule = "=" * 64
    lines: List[str] = [rule]

    title = "SITE MIRROR RUN SUMMARY"
    if outcome.dry_run:
        title += "  [DRY RUN - no changes made]"
    lines.append(title)
    lines.append(rule)

    lines.append(f"Run ID:      {outcome.run_id}")
    lines.append(f"Location:    {identity.code}")
    lines.append(f"Hostname:    {identity.hostname}")
    lines.append(f"Started:     {outcome.started_at.strftime(TIMESTAMP_FORMAT).strip()}")
    lines.append(f"Ended:       {outcome.ended_at.strftime(TIMESTAMP_FORMAT).strip()}")
    lines.append(f"Duration:    {outcome.duration_seconds:.1f}s")
    lines.append("")

    lines.append("Paths:")
    for name, path in identity.addresses.items():
        lines.append(f"  {name:<20} {path}")
    lines.append("")

    if outcome.aborted:
        lines.append("RUN ABORTED DURING PREFLIGHT")
        for failure in outcome.preflight_failures:
            lines.append(f"  - {failure}")
        lines.append("")
    else:
        lines.append("Jobs:")
        for result in outcome.results:
            lines.append(
                f"  {result.job_name:<10} status={result.status_label:<12} "
                f"duration={result.duration_seconds:.1f}s"
            )
            lines.append(f"  {'':<10} log={result.log_path}")
            if result.error:
                lines.append(f"  {'':<10} error={result.error}")
        lines.append("")

    if outcome.capacity_warning:
        lines.append(f"WARNING: {outcome.capacity_warning}")
        lines.append("")

    lines.append(f"Overall code: {outcome.overall_code}")
    lines.append(f"Severity:     {outcome.band.value}")
    if outcome.dry_run:
        lines.append("Mode:         DRY RUN")
    lines.append(rule)

    return "\n".join(lines) + "\n"


class RunSummaryWriter:
    """Writes the per-run summary file."""

    def __init__(self, log_root: Path):
        self.log_root = Path(log_root)

    def write(self, outcome: RunOutcome) -> Path:
        """
        Write the summary and return its path.

        Raises:
            OSError: If the file cannot be written
        """
        path = summary_path(self.log_root, outcome)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(render_summary(outcome), encoding="utf-8")
        logger.info(f"Summary written: {path}")
        return path

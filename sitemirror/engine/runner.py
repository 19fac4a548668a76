"""
Mirror Job Runner — Invoke the external copy engine for each job.

The engine is robocopy-compatible: it mirrors source into destination
and exits with a small bitmask status:

    1   files were copied
    2   extra files or directories at the destination
    4   mismatched files or directories
    8   some files could not be copied
    16  fatal error, nothing copied

Dry runs add /L, which lists what would change without touching the
destination. A result is recorded for every job; crashes, timeouts and
out-of-range statuses become ENGINE_INVOCATION_FAILED.
"""

from __future__ import annotations

import logging
import subprocess
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from pathlib import Path
from typing import Callable, List

from ..config.settings import Settings
from ..errors import EngineInvocationFailed, JobExecutionError
from ..models.job import MirrorJobResult, MirrorJobSpec
from ..models.location import LocationIdentity

logger = logging.getLogger(__name__)

# Highest status the engine's five flag bits can produce.
MAX_ENGINE_STATUS = 31

# Flag bit set when some files could not be copied.
FAILED_COPIES_FLAG = 8


def plan_jobs(
    identity: LocationIdentity,
    settings: Settings,
    started_at: datetime,
) -> List[MirrorJobSpec]:
    """Create the share and profile job specs for a location."""
    stamp = started_at.strftime("%Y%m%d-%H%M%S")
    log_dir = Path(settings.log_root) / identity.code
    addresses = identity.addresses

    pairs = [
        ("share", addresses.source_share, addresses.destination_share),
        ("profile", addresses.source_profile, addresses.destination_profile),
    ]

    return [
        MirrorJobSpec(
            name=name,
            source=source,
            destination=destination,
            log_path=str(log_dir / f"{identity.code}_{name}_{stamp}.log"),
        )
        for name, source, destination in pairs
    ]


class MirrorJobRunner:
    """Runs mirror jobs through the copy engine."""

    def __init__(
        self,
        settings: Settings,
        run_process: Callable[..., subprocess.CompletedProcess] = subprocess.run,
    ):
        self.settings = settings
        self._run_process = run_process

    def build_command(self, spec: MirrorJobSpec, dry_run: bool = False) -> List[str]:
        s = self.settings
        cmd = [
            s.engine,
            spec.source,
            spec.destination,
            "/MIR",
            "/COPY:DAT",
            "/DCOPY:T",
            f"/R:{s.engine_retries}",
            f"/W:{s.engine_wait_seconds}",
            f"/MT:{s.engine_threads}",
            "/NP",
            "/NDL",
            f"/LOG:{spec.log_path}",
        ]
        if dry_run:
            cmd.append("/L")
        if s.exclude_files:
            cmd.append("/XF")
            cmd.extend(s.exclude_files)
        if s.exclude_dirs:
            cmd.append("/XD")
            cmd.extend(s.exclude_dirs)
        return cmd

    def run(self, spec: MirrorJobSpec, dry_run: bool = False) -> MirrorJobResult:
        """Run one job. Never raises."""
        cmd = self.build_command(spec, dry_run)
        timeout = self.settings.job_timeout_seconds or None

        logger.info(
            f"→ Starting job {spec.name}: {spec.source} → {spec.destination}"
            f"{' [DRY RUN]' if dry_run else ''}",
            extra={"job": spec.name},
        )

        start = time.monotonic()
        try:
            Path(spec.log_path).parent.mkdir(parents=True, exist_ok=True)
            completed = self._run_process(
                cmd,
                capture_output=True,
                text=True,
                errors="replace",
                timeout=timeout,
                check=False,
            )
        except subprocess.TimeoutExpired:
            error = EngineInvocationFailed(f"Engine timed out after {timeout}s")
            return self._failed(spec, error, start, dry_run)
        except (OSError, subprocess.SubprocessError) as e:
            return self._failed(spec, EngineInvocationFailed(str(e)), start, dry_run)

        duration = time.monotonic() - start
        status = completed.returncode

        if status < 0 or status > MAX_ENGINE_STATUS:
            error = EngineInvocationFailed(f"Unexpected engine exit status {status}")
            return self._failed(spec, error, start, dry_run)

        error = None
        if status >= FAILED_COPIES_FLAG:
            error = str(JobExecutionError(
                f"Engine reported failures (status {status}), see {spec.log_path}"
            ))
            logger.warning(
                f"  ⚠ {spec.name}: {error} [{duration:.1f}s]", extra={"job": spec.name}
            )
        else:
            logger.info(
                f"  ✓ {spec.name}: exit status {status} [{duration:.1f}s]",
                extra={"job": spec.name},
            )

        return MirrorJobResult(
            job_name=spec.name,
            exit_status=status,
            duration_seconds=duration,
            log_path=spec.log_path,
            dry_run=dry_run,
            error=error,
        )

    @staticmethod
    def _failed(
        spec: MirrorJobSpec,
        error: EngineInvocationFailed,
        start: float,
        dry_run: bool,
    ) -> MirrorJobResult:
        logger.error(f"  ✗ {spec.name}: {error}", extra={"job": spec.name})
        return MirrorJobResult.invocation_failure(
            spec, str(error), time.monotonic() - start, dry_run
        )

    def run_all(
        self,
        specs: List[MirrorJobSpec],
        dry_run: bool = False,
        parallel: bool = True,
    ) -> List[MirrorJobResult]:
        """
        Run every spec and return results in submission order.

        Returns only once all jobs have finished.
        """
        if not specs:
            return []

        if not parallel or len(specs) == 1:
            return [self._run_safely(spec, dry_run) for spec in specs]

        with ThreadPoolExecutor(
            max_workers=len(specs), thread_name_prefix="mirror-job"
        ) as pool:
            futures = [pool.submit(self._run_safely, spec, dry_run) for spec in specs]
            return [future.result() for future in futures]

    def _run_safely(self, spec: MirrorJobSpec, dry_run: bool) -> MirrorJobResult:
        try:
            return self.run(spec, dry_run)
        except Exception as e:
            logger.exception(f"Job {spec.name} crashed")
            return MirrorJobResult.invocation_failure(
                spec, f"Job crashed: {e}", dry_run=dry_run
            )

"""
Preflight Validator — Checks that run before any copy starts.

Three independent checks, all evaluated so the failure report is
complete:

1. Mutual exclusion (skipped for dry runs and forced runs)
2. Reachability of every resolved path
3. Free space on every destination volume (warning only)
"""

from __future__ import annotations

import logging
import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional

from ..config.settings import Settings
from ..errors import ConcurrentRunDetected, PathUnreachable, PreconditionError
from ..models.location import LocationIdentity
from .guards import RunGuard, build_guard

logger = logging.getLogger(__name__)


@dataclass
class CapacityReport:
    """Free space of one destination volume."""

    path: str
    total_bytes: int
    free_bytes: int

    @property
    def free_ratio(self) -> float:
        if self.total_bytes <= 0:
            return 0.0
        return self.free_bytes / self.total_bytes


@dataclass
class ValidationResult:
    """Pass, or Fail with every failure found."""

    failures: List[PreconditionError] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    capacities: List[CapacityReport] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return not self.failures

    @property
    def concurrency_conflict(self) -> bool:
        return any(isinstance(f, ConcurrentRunDetected) for f in self.failures)

    @property
    def exit_code(self) -> int:
        """Reserved abort code: 98 wins over 99."""
        if not self.failures:
            return 0
        if self.concurrency_conflict:
            return ConcurrentRunDetected.exit_code
        return PathUnreachable.exit_code

    @property
    def capacity(self) -> Optional[CapacityReport]:
        """The destination volume with the least free space."""
        if not self.capacities:
            return None
        return min(self.capacities, key=lambda c: c.free_ratio)

    @property
    def capacity_warning(self) -> Optional[str]:
        return "; ".join(self.warnings) if self.warnings else None

    def messages(self) -> List[str]:
        return [str(f) for f in self.failures]


def _is_reachable(path: str) -> bool:
    try:
        p = Path(path)
        return p.exists() and os.access(p, os.R_OK)
    except OSError:
        return False


def _device_of(path: str) -> int:
    return os.stat(path).st_dev


def _nearest_existing(path: str) -> Optional[Path]:
    p = Path(path)
    for candidate in (p, *p.parents):
        try:
            if candidate.exists():
                return candidate
        except OSError:
            continue
    return None


class PreflightValidator:
    """Runs the preflight checks for one location."""

    def __init__(
        self,
        settings: Settings,
        guard: Optional[RunGuard] = None,
        disk_usage: Callable = shutil.disk_usage,
        volume_of: Callable[[str], object] = _device_of,
    ):
        self.settings = settings
        self.guard = guard or build_guard(settings)
        self._disk_usage = disk_usage
        self._volume_of = volume_of

    def validate(
        self,
        identity: LocationIdentity,
        allow_concurrent: bool = False,
        dry_run: bool = False,
    ) -> ValidationResult:
        result = ValidationResult()

        # --- Mutual exclusion ---
        if allow_concurrent or dry_run:
            logger.info(
                f"Concurrency check skipped "
                f"(force={allow_concurrent}, dry_run={dry_run})"
            )
        else:
            detail = self.guard.check(identity)
            if detail:
                result.failures.append(ConcurrentRunDetected(identity.code, detail))

        # --- Reachability ---
        for name, path in identity.addresses.items():
            if not _is_reachable(path):
                logger.error(f"Unreachable {name}: {path}")
                result.failures.append(PathUnreachable(name, path))

        # --- Capacity ---
        result.warnings.extend(self._check_capacity(identity, result))

        if result.passed:
            logger.info(f"Preflight passed for location {identity.code}")
        else:
            logger.error(
                f"Preflight failed for location {identity.code}: "
                f"{len(result.failures)} failure(s)"
            )

        return result

    def _check_capacity(
        self, identity: LocationIdentity, result: ValidationResult
    ) -> List[str]:
        warnings: List[str] = []
        seen = set()
        threshold = self.settings.min_free_ratio

        for name in ("destination_share", "destination_profile"):
            path = getattr(identity.addresses, name)
            target = _nearest_existing(path)
            if target is None:
                warnings.append(f"Capacity unknown: no existing path for {path}")
                continue

            try:
                volume = self._volume_of(str(target))
                if volume in seen:
                    continue
                seen.add(volume)
                usage = self._disk_usage(str(target))
            except OSError as e:
                warnings.append(f"Capacity unknown for {target}: {e}")
                continue

            report = CapacityReport(
                path=str(target), total_bytes=usage.total, free_bytes=usage.free
            )
            result.capacities.append(report)
            logger.info(f"Destination free space: {report.free_ratio:.1%} at {target}")

            if report.free_ratio < threshold:
                message = (
                    f"Low disk space on {target}: {report.free_ratio:.1%} free "
                    f"(threshold {threshold:.0%})"
                )
                logger.warning(message)
                warnings.append(message)

        return warnings

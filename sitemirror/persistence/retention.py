"""
Log Retention — Delete a location's log files past the retention horizon.

A file is pruned when its creation time is strictly older than
now - horizon_days. Creation time is the earlier of the platform birth
time (where the OS reports one) and the modification time. Failures on
individual files are logged and counted; pruning continues with the rest.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Iterable, List, Optional

from ..errors import RetentionError
from .audit import ledger_path

logger = logging.getLogger(__name__)


@dataclass
class RetentionPolicy:
    """Where to prune and how far back to keep."""

    log_root: Path
    horizon_days: int = 30

    @property
    def enabled(self) -> bool:
        return self.horizon_days > 0


@dataclass
class PruneResult:
    """Outcome of a pruning pass."""

    deleted: int = 0
    failed: int = 0
    errors: List[str] = field(default_factory=list)
    deleted_paths: List[Path] = field(default_factory=list)

    @property
    def count(self) -> int:
        return self.deleted


def created_at(path: Path) -> float:
    """Best available creation timestamp (epoch seconds)."""
    st = path.stat()
    birth = getattr(st, "st_birthtime", None)
    if birth:
        return min(birth, st.st_mtime)
    return st.st_mtime


def prune(
    log_dir: Path,
    horizon_days: int,
    now: Optional[datetime] = None,
    keep: Iterable[Path] = (),
) -> PruneResult:
    """
    Delete regular files under log_dir older than the horizon.

    Paths in `keep` are never deleted. Disabled (nothing deleted) when
    horizon_days <= 0.
    """
    result = PruneResult()
    log_dir = Path(log_dir)

    if horizon_days <= 0:
        logger.info("Log retention disabled (horizon <= 0)")
        return result

    if not log_dir.is_dir():
        logger.debug(f"No log directory to prune: {log_dir}")
        return result

    if now is None:
        now = datetime.now(timezone.utc)
    cutoff = (now - timedelta(days=horizon_days)).timestamp()
    protected = {Path(p).absolute() for p in keep}

    for path in sorted(log_dir.rglob("*")):
        try:
            if not path.is_file() or path.is_symlink():
                continue
            if path.absolute() in protected:
                continue
            if created_at(path) >= cutoff:
                continue
            path.unlink()
        except OSError as e:
            error = RetentionError(f"Failed to delete old log {path}: {e}")
            result.failed += 1
            result.errors.append(str(error))
            logger.warning(str(error))
            continue

        result.deleted += 1
        result.deleted_paths.append(path)
        logger.debug(f"Deleted old log {path}")

    logger.info(
        f"Retention: deleted {result.deleted} file(s) older than "
        f"{horizon_days} day(s) from {log_dir}"
        + (f", {result.failed} failure(s)" if result.failed else "")
    )
    return result


class LogRetentionManager:
    """Applies a RetentionPolicy to one location's log directory."""

    def __init__(self, policy: RetentionPolicy):
        self.policy = policy

    def location_dir(self, code: str) -> Path:
        return Path(self.policy.log_root) / code

    def prune(
        self,
        code: str,
        now: Optional[datetime] = None,
        keep: Iterable[Path] = (),
    ) -> PruneResult:
        """Prune one location. The current month's run ledger is always kept."""
        now = now or datetime.now(timezone.utc)
        current_ledger = ledger_path(self.policy.log_root, code, now)
        return prune(
            self.location_dir(code),
            self.policy.horizon_days,
            now=now,
            keep=[current_ledger, *keep],
        )

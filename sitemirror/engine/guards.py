"""
Run Guards — Detect another mirror run for the same location.

The process scan is advisory: there is a gap between the scan and the
engine launch, so two runs started at the same moment can both pass.
LockFileGuard closes that gap for runs on the same host.

## Usage

    guard = ProcessScanGuard(engine="robocopy")
    detail = guard.check(identity)
    if detail:
        ...  # another run is active
"""

from __future__ import annotations

import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Set

import psutil

from ..config.settings import Settings
from ..models.location import LocationIdentity

logger = logging.getLogger(__name__)


class RunGuard(ABC):
    """Interface for mutual exclusion between runs of one location."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Guard identifier (e.g., 'process', 'lockfile')."""
        pass

    @abstractmethod
    def check(self, identity: LocationIdentity) -> Optional[str]:
        """
        Check for a concurrent run.

        Returns a description of the conflicting run, or None.
        """
        pass

    def release(self, identity: LocationIdentity) -> None:
        """Release anything check() acquired."""
        return None


def _executable_stem(name: str) -> str:
    base = os.path.basename(name or "").lower()
    if base.endswith(".exe"):
        base = base[:-4]
    return base


def location_markers(identity: LocationIdentity) -> List[str]:
    """Lowercase substrings that tie a command line to a location."""
    code = identity.code
    markers = [path.lower() for _, path in identity.addresses.items()]
    markers.append(identity.hostname.lower())
    markers.append(f"\\{code}\\")
    markers.append(f"/{code}/")
    return markers


class ProcessScanGuard(RunGuard):
    """Scan running copy-engine processes for this location's paths."""

    def __init__(
        self,
        engine: str = "robocopy",
        process_iter: Callable[..., Iterable] = psutil.process_iter,
    ):
        self.engine = _executable_stem(engine)
        self._process_iter = process_iter

    @property
    def name(self) -> str:
        return "process"

    def check(self, identity: LocationIdentity) -> Optional[str]:
        markers = location_markers(identity)
        own_pid = os.getpid()

        for proc in self._process_iter(["pid", "name", "cmdline"]):
            info = proc.info
            if info.get("pid") == own_pid:
                continue
            if _executable_stem(info.get("name") or "") != self.engine:
                continue

            cmdline = " ".join(info.get("cmdline") or []).lower()
            if any(marker in cmdline for marker in markers):
                detail = f"{info.get('name')} pid {info.get('pid')}"
                logger.warning(
                    f"Found running {detail} for location {identity.code}"
                )
                return detail

        return None


class LockFileGuard(RunGuard):
    """
    Exclusive lock file per location under the log root.

    check() acquires the lock; release() removes it.
    """

    def __init__(self, lock_dir: Path):
        self.lock_dir = Path(lock_dir)
        self._held: Set[str] = set()

    @property
    def name(self) -> str:
        return "lockfile"

    def lock_path(self, identity: LocationIdentity) -> Path:
        return self.lock_dir / f"{identity.code}.lock"

    def check(self, identity: LocationIdentity) -> Optional[str]:
        path = self.lock_path(identity)
        path.parent.mkdir(parents=True, exist_ok=True)

        try:
            fd = self._create(path)
        except FileExistsError:
            holder = self._holder(path)
            if holder is None or psutil.pid_exists(holder):
                return f"lock file {path} held by pid {holder or 'unknown'}"

            logger.warning(f"Removing stale lock {path} (pid {holder} not running)")
            try:
                path.unlink()
            except FileNotFoundError:
                pass
            except OSError as e:
                return f"stale lock file {path} could not be removed: {e}"

            try:
                fd = self._create(path)
            except FileExistsError:
                return f"lock file {path} taken over by pid {self._holder(path) or 'unknown'}"

        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(str(os.getpid()))

        self._held.add(identity.code)
        logger.debug(f"Acquired lock {path}")
        return None

    @staticmethod
    def _create(path: Path) -> int:
        return os.open(str(path), os.O_CREAT | os.O_EXCL | os.O_WRONLY)

    @staticmethod
    def _holder(path: Path) -> Optional[int]:
        """Pid recorded in a lock file, or None if unreadable."""
        try:
            return int(path.read_text(encoding="utf-8").strip())
        except (OSError, ValueError):
            return None

    def release(self, identity: LocationIdentity) -> None:
        if identity.code not in self._held:
            return
        path = self.lock_path(identity)
        try:
            path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.error(f"Failed to remove lock file {path}: {e}")
        self._held.discard(identity.code)


def build_guard(settings: Settings) -> RunGuard:
    """Create the guard selected by settings.guard."""
    if settings.guard == "lockfile":
        return LockFileGuard(Path(settings.log_root) / "locks")
    return ProcessScanGuard(engine=settings.engine)

"""
Shared fixtures for orchestrator tests.

Location paths are redirected into a temporary directory and the copy
engine, process table and disk usage are faked, so the tests run the same
on any platform.
"""

from __future__ import annotations

import subprocess
from collections import namedtuple
from pathlib import Path
from typing import Dict, List, Optional

import pytest

from sitemirror.adapters.mock import MockDispatcher
from sitemirror.config.settings import PathTemplates, Settings
from sitemirror.engine.guards import RunGuard
from sitemirror.engine.preflight import PreflightValidator
from sitemirror.engine.runner import MirrorJobRunner

HOSTNAME = "12FILESRV01"

DiskUsage = namedtuple("DiskUsage", ["total", "used", "free"])


class FakeGuard(RunGuard):
    """Guard that reports a conflict when told to."""

    def __init__(self, conflict: Optional[str] = None):
        self.conflict = conflict
        self.checked = 0
        self.released = 0

    @property
    def name(self) -> str:
        return "fake"

    def check(self, identity):
        self.checked += 1
        return self.conflict

    def release(self, identity):
        self.released += 1


class FakeEngine:
    """
    Stands in for subprocess.run.

    Exit statuses are looked up by job name, parsed from the /LOG: path
    (<code>_<job>_<stamp>.log).
    """

    def __init__(self, statuses: Optional[Dict[str, int]] = None, raises: Optional[Exception] = None):
        self.statuses = statuses or {}
        self.raises = raises
        self.calls: List[List[str]] = []

    @staticmethod
    def job_name(cmd: List[str]) -> str:
        log_arg = next(arg for arg in cmd if arg.startswith("/LOG:"))
        return Path(log_arg[len("/LOG:"):]).name.split("_")[1]

    def __call__(self, cmd, **kwargs):
        self.calls.append(list(cmd))
        if self.raises is not None:
            raise self.raises
        status = self.statuses.get(self.job_name(cmd), 0)
        return subprocess.CompletedProcess(cmd, status, stdout="", stderr="")


@pytest.fixture
def location_root(tmp_path: Path) -> Path:
    """Create source and destination trees for HOSTNAME."""
    root = tmp_path / "fleet"
    for sub in (
        f"src/{HOSTNAME}/Share",
        f"src/{HOSTNAME}/Profiles",
        "dst/12/Share",
        "dst/12/Profiles",
    ):
        (root / sub).mkdir(parents=True)
    return root


@pytest.fixture
def settings(tmp_path: Path, location_root: Path) -> Settings:
    """Settings with every path inside tmp_path."""
    return Settings(
        log_root=str(tmp_path / "logs"),
        retention_days=30,
        paths=PathTemplates(
            source_share=str(location_root / "src" / "{hostname}" / "Share"),
            source_profile=str(location_root / "src" / "{hostname}" / "Profiles"),
            destination_share=str(location_root / "dst" / "{code}" / "Share"),
            destination_profile=str(location_root / "dst" / "{code}" / "Profiles"),
        ),
    )


@pytest.fixture
def roomy_disk():
    """Disk usage with 50% free."""
    return lambda path: DiskUsage(total=1000, used=500, free=500)


@pytest.fixture
def fake_guard() -> FakeGuard:
    return FakeGuard()


@pytest.fixture
def validator(settings, fake_guard, roomy_disk) -> PreflightValidator:
    return PreflightValidator(settings, guard=fake_guard, disk_usage=roomy_disk)


@pytest.fixture
def engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
def runner(settings, engine) -> MirrorJobRunner:
    return MirrorJobRunner(settings, run_process=engine)


@pytest.fixture
def dispatcher(settings) -> MockDispatcher:
    return MockDispatcher(settings)

"""
Tests for the Preflight Validator and run guards.
"""

import os
from types import SimpleNamespace
from unittest import mock

import pytest

from conftest import HOSTNAME, DiskUsage, FakeGuard
from sitemirror.config.settings import Settings
from sitemirror.engine.guards import (
    LockFileGuard,
    ProcessScanGuard,
    build_guard,
    location_markers,
)
from sitemirror.engine.preflight import PreflightValidator
from sitemirror.engine.resolver import resolve
from sitemirror.errors import ConcurrentRunDetected, PathUnreachable


def fake_process(pid, name, cmdline):
    return SimpleNamespace(info={"pid": pid, "name": name, "cmdline": cmdline})


class TestReachability:
    """Tests for the path existence check."""

    def test_all_paths_present_passes(self, settings, validator):
        """A fully provisioned location passes."""
        identity = resolve(HOSTNAME, settings)
        result = validator.validate(identity)

        assert result.passed
        assert result.exit_code == 0
        assert result.failures == []

    def test_every_missing_path_is_reported(self, settings, validator, location_root):
        """All missing paths are listed, not just the first."""
        (location_root / "src" / HOSTNAME / "Profiles").rmdir()
        (location_root / "dst" / "12" / "Share").rmdir()
        (location_root / "dst" / "12" / "Profiles").rmdir()

        identity = resolve(HOSTNAME, settings)
        result = validator.validate(identity)

        assert not result.passed
        assert result.exit_code == 99
        names = [f.name for f in result.failures]
        assert names == ["source_profile", "destination_share", "destination_profile"]
        assert all(isinstance(f, PathUnreachable) for f in result.failures)


class TestMutualExclusion:
    """Tests for the concurrency check."""

    def test_conflict_fails_with_98(self, settings, roomy_disk):
        """A detected run fails validation with exit code 98."""
        guard = FakeGuard(conflict="robocopy pid 4242")
        validator = PreflightValidator(settings, guard=guard, disk_usage=roomy_disk)

        result = validator.validate(resolve(HOSTNAME, settings))

        assert not result.passed
        assert result.concurrency_conflict
        assert result.exit_code == 98
        assert isinstance(result.failures[0], ConcurrentRunDetected)

    def test_conflict_and_missing_path_both_reported(self, settings, roomy_disk, location_root):
        """Checks are not short-circuited; 98 takes precedence."""
        (location_root / "dst" / "12" / "Share").rmdir()
        guard = FakeGuard(conflict="robocopy pid 4242")
        validator = PreflightValidator(settings, guard=guard, disk_usage=roomy_disk)

        result = validator.validate(resolve(HOSTNAME, settings))

        assert len(result.failures) == 2
        assert result.exit_code == 98

    @pytest.mark.parametrize("flags", [{"allow_concurrent": True}, {"dry_run": True}])
    def test_force_and_dry_run_skip_guard(self, settings, roomy_disk, flags):
        """The guard is not consulted for forced or dry runs."""
        guard = FakeGuard(conflict="robocopy pid 4242")
        validator = PreflightValidator(settings, guard=guard, disk_usage=roomy_disk)

        result = validator.validate(resolve(HOSTNAME, settings), **flags)

        assert result.passed
        assert guard.checked == 0


class TestCapacity:
    """Tests for the free-space check."""

    def test_low_space_is_warning_only(self, settings, fake_guard):
        """Below 10% free warns but still passes."""
        validator = PreflightValidator(
            settings,
            guard=fake_guard,
            disk_usage=lambda p: DiskUsage(total=1000, used=950, free=50),
        )

        result = validator.validate(resolve(HOSTNAME, settings))

        assert result.passed
        assert result.capacity.free_ratio == pytest.approx(0.05)
        assert "Low disk space" in result.capacity_warning

    def test_enough_space_no_warning(self, settings, validator):
        """50% free produces no warning."""
        result = validator.validate(resolve(HOSTNAME, settings))
        assert result.warnings == []

    def test_disk_usage_error_is_warning(self, settings, fake_guard):
        """Failure to measure capacity does not fail validation."""
        def broken(path):
            raise OSError("device not ready")

        validator = PreflightValidator(settings, guard=fake_guard, disk_usage=broken)
        result = validator.validate(resolve(HOSTNAME, settings))

        assert result.passed
        assert "Capacity unknown" in result.capacity_warning

    def test_each_destination_volume_is_checked(self, settings, fake_guard):
        """A full profile volume warns even when the share volume is roomy."""
        def usage(path):
            if path.endswith("Profiles"):
                return DiskUsage(total=1000, used=980, free=20)
            return DiskUsage(total=1000, used=500, free=500)

        validator = PreflightValidator(
            settings, guard=fake_guard, disk_usage=usage, volume_of=lambda p: p
        )
        result = validator.validate(resolve(HOSTNAME, settings))

        assert result.passed
        assert len(result.capacities) == 2
        assert result.capacity.path.endswith("Profiles")
        assert result.capacity.free_ratio == pytest.approx(0.02)
        assert len(result.warnings) == 1
        assert "Profiles" in result.capacity_warning

    def test_shared_volume_is_measured_once(self, settings, fake_guard):
        """Destinations on one volume give a single report and warning."""
        calls = []

        def usage(path):
            calls.append(path)
            return DiskUsage(total=1000, used=950, free=50)

        validator = PreflightValidator(
            settings, guard=fake_guard, disk_usage=usage, volume_of=lambda p: "D:"
        )
        result = validator.validate(resolve(HOSTNAME, settings))

        assert len(calls) == 1
        assert len(result.capacities) == 1
        assert len(result.warnings) == 1


class TestProcessScanGuard:
    """Tests for the process-scan guard."""

    def test_matching_engine_process_conflicts(self, settings):
        """A robocopy process mirroring this location is detected."""
        identity = resolve(HOSTNAME, settings)
        procs = [
            fake_process(100, "explorer.exe", ["explorer.exe"]),
            fake_process(
                200,
                "Robocopy.exe",
                ["robocopy", identity.addresses.source_share, identity.addresses.destination_share, "/MIR"],
            ),
        ]
        guard = ProcessScanGuard("robocopy", process_iter=lambda attrs: procs)

        detail = guard.check(identity)

        assert detail is not None
        assert "200" in detail

    def test_other_location_does_not_conflict(self, settings):
        """A robocopy for another location is ignored."""
        identity = resolve(HOSTNAME, settings)
        procs = [fake_process(200, "robocopy.exe", ["robocopy", r"\\34SRV\Share", r"D:\Mirror\34\Share"])]
        guard = ProcessScanGuard("robocopy", process_iter=lambda attrs: procs)

        assert guard.check(identity) is None

    def test_own_process_ignored(self, settings):
        """The current process is never a conflict."""
        identity = resolve(HOSTNAME, settings)
        procs = [fake_process(os.getpid(), "robocopy", [identity.addresses.source_share])]
        guard = ProcessScanGuard("robocopy", process_iter=lambda attrs: procs)

        assert guard.check(identity) is None

    def test_missing_info_tolerated(self, settings):
        """Processes with inaccessible name/cmdline are skipped."""
        identity = resolve(HOSTNAME, settings)
        procs = [fake_process(300, None, None)]
        guard = ProcessScanGuard("robocopy", process_iter=lambda attrs: procs)

        assert guard.check(identity) is None

    def test_markers_include_code_segment(self):
        """Markers cover paths, hostname and the code as a path segment."""
        identity = resolve("12srv", Settings())
        markers = location_markers(identity)
        assert "12srv" in markers
        assert "\\12\\" in markers


class TestLockFileGuard:
    """Tests for the lock-file guard."""

    def test_second_check_conflicts_until_release(self, tmp_path, settings):
        """The lock is exclusive until released."""
        identity = resolve(HOSTNAME, settings)
        first = LockFileGuard(tmp_path / "locks")
        second = LockFileGuard(tmp_path / "locks")

        assert first.check(identity) is None
        assert "held by pid" in second.check(identity)

        first.release(identity)
        assert second.check(identity) is None
        second.release(identity)
        assert not first.lock_path(identity).exists()

    def test_release_without_acquire_keeps_foreign_lock(self, tmp_path, settings):
        """release() only removes locks this guard acquired."""
        identity = resolve(HOSTNAME, settings)
        owner = LockFileGuard(tmp_path / "locks")
        other = LockFileGuard(tmp_path / "locks")

        owner.check(identity)
        other.release(identity)

        assert owner.lock_path(identity).exists()

    def test_lock_of_dead_process_is_taken_over(self, tmp_path, settings):
        """A lock left behind by a killed run does not block later runs."""
        identity = resolve(HOSTNAME, settings)
        guard = LockFileGuard(tmp_path / "locks")
        path = guard.lock_path(identity)
        path.parent.mkdir(parents=True)
        path.write_text("999999")

        with mock.patch("sitemirror.engine.guards.psutil.pid_exists", return_value=False):
            assert guard.check(identity) is None

        assert path.read_text() == str(os.getpid())
        guard.release(identity)
        assert not path.exists()

    def test_lock_of_live_process_conflicts(self, tmp_path, settings):
        identity = resolve(HOSTNAME, settings)
        guard = LockFileGuard(tmp_path / "locks")
        path = guard.lock_path(identity)
        path.parent.mkdir(parents=True)
        path.write_text(str(os.getpid()))

        assert "held by pid" in guard.check(identity)
        assert path.read_text() == str(os.getpid())

    def test_unreadable_lock_is_kept(self, tmp_path, settings):
        """A lock without a pid is treated as held."""
        identity = resolve(HOSTNAME, settings)
        guard = LockFileGuard(tmp_path / "locks")
        path = guard.lock_path(identity)
        path.parent.mkdir(parents=True)
        path.write_text("")

        assert "held by pid unknown" in guard.check(identity)
        assert path.exists()


class TestBuildGuard:
    """Tests for guard selection."""

    def test_default_is_process_scan(self):
        assert isinstance(build_guard(Settings()), ProcessScanGuard)

    def test_lockfile(self, tmp_path):
        guard = build_guard(Settings(guard="lockfile", log_root=str(tmp_path)))
        assert isinstance(guard, LockFileGuard)
        assert guard.lock_dir == tmp_path / "locks"

"""
Error Taxonomy — Exceptions raised across the orchestrator.

Only configuration errors escape a run. Precondition failures are
reported as data (ValidationResult), and engine, reporting and retention
failures are folded into their results and logged.
"""

from __future__ import annotations


class SiteMirrorError(Exception):
    """Base class for all orchestrator errors."""


class ConfigurationError(SiteMirrorError):
    """Invalid configuration; aborts before any I/O."""


class InvalidHostnameFormat(ConfigurationError):
    """Hostname does not carry a location code."""

    def __init__(self, hostname: str, pattern: str):
        self.hostname = hostname
        self.pattern = pattern
        super().__init__(
            f"Hostname '{hostname}' does not match location pattern {pattern!r}"
        )


class PreconditionError(SiteMirrorError):
    """A preflight check failed; the run must not start."""

    exit_code: int = 99


class ConcurrentRunDetected(PreconditionError):
    """Another mirror run for this location is in progress."""

    exit_code = 98

    def __init__(self, code: str, detail: str = ""):
        self.code = code
        self.detail = detail
        message = f"Concurrent mirror run detected for location {code}"
        if detail:
            message += f" ({detail})"
        super().__init__(message)


class PathUnreachable(PreconditionError):
    """A resolved path does not exist or cannot be read."""

    exit_code = 99

    def __init__(self, name: str, path: str):
        self.name = name
        self.path = path
        super().__init__(f"Path unreachable: {name} = {path}")


class JobExecutionError(SiteMirrorError):
    """The copy engine ran but reported failed copies."""


class EngineInvocationFailed(SiteMirrorError):
    """The copy engine could not be started or did not complete."""


class ReportingError(SiteMirrorError):
    """Summary write or alert dispatch failed."""


class RetentionError(SiteMirrorError):
    """A log file could not be deleted during pruning."""

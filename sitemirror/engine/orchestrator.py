"""
Mirror Orchestrator — One complete run for one location.

Each run:
1. Resolves the location from the hostname
2. Runs preflight checks (abort with 98/99 on failure, still alerting)
3. Executes the mirror jobs
4. Classifies the combined exit status
5. Writes the summary and dispatches the alert
6. Prunes old logs

## States

    INIT → RESOLVED → VALIDATED → RUNNING → CLASSIFIED → REPORTED → RETAINED → DONE
      └────────┴──→ ABORTED

Summary, alert and pruning failures are logged and never change the exit
code; only the job classification (or a reserved abort code) does.

## Run ID Format

    R-{YYYYMMDD}T{HHMMSS}-{RANDOM}
    Example: R-20261018T020000-4F1C2A

## Usage

    from sitemirror.engine.orchestrator import MirrorOrchestrator

    report = MirrorOrchestrator(settings).run(RunOptions(hostname="12FILESRV01"))
    sys.exit(report.exit_code)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional
from uuid import uuid4

from ..adapters.base import AlertDispatcher
from ..adapters.registry import build_dispatcher
from ..config.settings import RunOptions, Settings
from ..errors import ConfigurationError, ReportingError
from ..models.dispatch import DispatchResult
from ..models.location import LocationIdentity
from ..models.outcome import RunOutcome, SeverityBand
from ..persistence.audit import AuditWriter, ledger_path
from ..persistence.retention import LogRetentionManager, PruneResult, RetentionPolicy
from ..persistence.summary import RunSummaryWriter
from .classifier import classify
from .preflight import PreflightValidator, ValidationResult
from .resolver import resolve
from .runner import MirrorJobRunner, plan_jobs

logger = logging.getLogger(__name__)

EXIT_CONFIGURATION_ERROR = 1


class RunState(str, Enum):
    """Orchestrator states."""

    INIT = "init"
    RESOLVED = "resolved"
    VALIDATED = "validated"
    RUNNING = "running"
    CLASSIFIED = "classified"
    REPORTED = "reported"
    RETAINED = "retained"
    DONE = "done"
    ABORTED = "aborted"


@dataclass
class RunReport:
    """What the orchestrator did during one run."""

    run_id: str
    exit_code: int = 0
    states: List[RunState] = field(default_factory=lambda: [RunState.INIT])
    identity: Optional[LocationIdentity] = None
    validation: Optional[ValidationResult] = None
    outcome: Optional[RunOutcome] = None
    summary_path: Optional[Path] = None
    dispatch: Optional[DispatchResult] = None
    prune: Optional[PruneResult] = None
    errors: List[str] = field(default_factory=list)

    @property
    def state(self) -> RunState:
        return self.states[-1]

    @property
    def aborted(self) -> bool:
        return self.state == RunState.ABORTED

    def advance(self, state: RunState) -> None:
        logger.debug(f"Run {self.run_id}: {self.state.value} → {state.value}")
        self.states.append(state)


def generate_run_id(now: Optional[datetime] = None) -> str:
    """Generate a unique run ID."""
    now = now or datetime.now(timezone.utc)
    suffix = uuid4().hex[:6].upper()
    return f"R-{now.strftime('%Y%m%dT%H%M%S')}-{suffix}"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MirrorOrchestrator:
    """Composes resolver, preflight, runner, classifier and reporting."""

    def __init__(
        self,
        settings: Settings,
        validator: Optional[PreflightValidator] = None,
        runner: Optional[MirrorJobRunner] = None,
        dispatcher: Optional[AlertDispatcher] = None,
        summary_writer: Optional[RunSummaryWriter] = None,
        retention: Optional[LogRetentionManager] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.settings = settings
        self.validator = validator or PreflightValidator(settings)
        self.runner = runner or MirrorJobRunner(settings)
        self.dispatcher = dispatcher or build_dispatcher(settings)
        self.summary_writer = summary_writer or RunSummaryWriter(Path(settings.log_root))
        self.retention = retention or LogRetentionManager(
            RetentionPolicy(Path(settings.log_root), settings.retention_days)
        )
        self._clock = clock

    def run(self, options: RunOptions) -> RunReport:
        started_at = self._clock()
        report = RunReport(run_id=generate_run_id(started_at))

        # --- Phase 1: Resolve ---
        try:
            identity = resolve(options.hostname, self.settings)
        except ConfigurationError as e:
            logger.error(f"Run {report.run_id} aborted: {e}")
            report.errors.append(str(e))
            report.exit_code = EXIT_CONFIGURATION_ERROR
            report.advance(RunState.ABORTED)
            return report

        report.identity = identity
        report.advance(RunState.RESOLVED)

        logger.info(
            f"{'═' * 50}\n"
            f"  Starting Run {report.run_id}\n"
            f"  ├─ Location: {identity.code}\n"
            f"  ├─ Hostname: {identity.hostname}\n"
            f"  ├─ Force: {options.allow_concurrent}\n"
            f"  └─ Mode: {'DRY RUN' if options.dry_run else 'LIVE'}\n"
            f"{'─' * 50}",
            extra={"run_id": report.run_id, "location": identity.code},
        )

        audit = self._open_audit(identity, started_at)
        self._emit(
            audit, "emit_run_start",
            run_id=report.run_id,
            location=identity.code,
            hostname=identity.hostname,
            dry_run=options.dry_run,
            allow_concurrent=options.allow_concurrent,
        )

        try:
            self._run_resolved(report, identity, options, started_at, audit)
        finally:
            self.validator.guard.release(identity)

        return report

    def _run_resolved(
        self,
        report: RunReport,
        identity: LocationIdentity,
        options: RunOptions,
        started_at: datetime,
        audit: Optional[AuditWriter],
    ) -> None:
        # --- Phase 2: Preflight ---
        validation = self.validator.validate(
            identity,
            allow_concurrent=options.allow_concurrent,
            dry_run=options.dry_run,
        )
        report.validation = validation
        self._emit(
            audit, "emit_preflight",
            run_id=report.run_id,
            location=identity.code,
            passed=validation.passed,
            failures=validation.messages(),
            warnings=list(validation.warnings),
        )

        if not validation.passed:
            outcome = RunOutcome(
                run_id=report.run_id,
                identity=identity,
                overall_code=validation.exit_code,
                band=SeverityBand.ERROR,
                dry_run=options.dry_run,
                started_at=started_at,
                ended_at=self._clock(),
                capacity_warning=validation.capacity_warning,
                preflight_failures=validation.messages(),
                aborted=True,
            )
            report.outcome = outcome
            report.exit_code = outcome.exit_code
            for message in validation.messages():
                logger.error(f"  ✗ {message}")
            self._report(report, outcome)
            self._emit_end(audit, outcome)
            report.advance(RunState.ABORTED)
            logger.error(
                f"Run {report.run_id} aborted in preflight "
                f"(exit {report.exit_code})",
                extra={"run_id": report.run_id, "location": identity.code},
            )
            return

        report.advance(RunState.VALIDATED)

        # --- Phase 3: Jobs ---
        specs = plan_jobs(identity, self.settings, started_at)
        report.advance(RunState.RUNNING)
        results = self.runner.run_all(
            specs, dry_run=options.dry_run, parallel=options.parallel
        )
        if len(results) != len(specs):
            raise RuntimeError(
                f"Expected {len(specs)} job results, got {len(results)}"
            )

        for result in results:
            self._emit(
                audit, "emit_job_result",
                run_id=report.run_id,
                location=identity.code,
                result=result.model_dump(),
            )

        # --- Phase 4: Classify ---
        code, band = classify(
            [r.exit_status for r in results],
            policy=self.settings.combine,
            rules=self.settings.severity_rules,
        )
        outcome = RunOutcome(
            run_id=report.run_id,
            identity=identity,
            results=results,
            overall_code=code,
            band=band,
            dry_run=options.dry_run,
            started_at=started_at,
            ended_at=self._clock(),
            capacity_warning=validation.capacity_warning,
        )
        report.outcome = outcome
        report.exit_code = outcome.exit_code
        report.advance(RunState.CLASSIFIED)

        # --- Phase 5: Report ---
        self._report(report, outcome)
        report.advance(RunState.REPORTED)

        # --- Phase 6: Retention ---
        try:
            keep = [audit.path] if audit else []
            report.prune = self.retention.prune(identity.code, keep=keep)
        except OSError as e:
            logger.error(f"Log retention failed: {e}")
            report.errors.append(f"retention: {e}")
        report.advance(RunState.RETAINED)

        self._emit_end(audit, outcome)
        report.advance(RunState.DONE)

        logger.info(
            f"{'═' * 50}\n"
            f"  Run {report.run_id} Complete\n"
            f"  ├─ Duration: {outcome.duration_seconds:.1f}s\n"
            f"  ├─ Jobs: {', '.join(f'{r.job_name}={r.exit_status}' for r in results)}\n"
            f"  ├─ Overall: {code} ({band.value})\n"
            f"  └─ Alert: {report.dispatch.status if report.dispatch else 'n/a'}\n"
            f"{'═' * 50}",
            extra={"run_id": report.run_id, "location": identity.code},
        )

    def _report(self, report: RunReport, outcome: RunOutcome) -> None:
        """Write the summary, then dispatch the alert. Never raises."""
        try:
            report.summary_path = self.summary_writer.write(outcome)
        except OSError as e:
            error = ReportingError(f"Summary write failed: {e}")
            logger.error(str(error))
            report.errors.append(str(error))

        result = self.dispatcher.dispatch(outcome, report.summary_path)
        report.dispatch = result
        if result.delivered:
            logger.info(f"Alert delivered via {result.dispatcher} ({result.request_id})")
        elif result.status == "skipped":
            logger.info(f"Alert skipped via {result.dispatcher}")
        else:
            message = result.error.message if result.error else "unknown error"
            logger.warning(f"Alert not delivered ({self.dispatcher.name}): {message}")
            report.errors.append(f"alert: {message}")

    def _open_audit(
        self, identity: LocationIdentity, started_at: datetime
    ) -> Optional[AuditWriter]:
        path = ledger_path(Path(self.settings.log_root), identity.code, started_at)
        try:
            return AuditWriter(path)
        except OSError as e:
            logger.warning(f"Run ledger unavailable at {path}: {e}")
            return None

    def _emit(self, audit: Optional[AuditWriter], method: str, **kwargs) -> None:
        if audit is None:
            return
        try:
            getattr(audit, method)(**kwargs)
        except OSError as e:
            logger.warning(f"Run ledger write failed: {e}")

    def _emit_end(self, audit: Optional[AuditWriter], outcome: RunOutcome) -> None:
        self._emit(
            audit, "emit_run_end",
            run_id=outcome.run_id,
            location=outcome.identity.code,
            overall_code=outcome.overall_code,
            band=outcome.band.value,
            duration_seconds=outcome.duration_seconds,
            aborted=outcome.aborted,
        )

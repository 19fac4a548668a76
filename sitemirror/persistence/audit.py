"""
Run Ledger — Append-only NDJSON audit log per location.

Each line is one JSON object (newline-delimited JSON).
Events are never edited, only appended.

The ledger rotates monthly:

    <log_root>/<code>/audit-<YYYYMM>.ndjson

Retention never deletes the file a run is writing to; older months age
out like any other log.
"""

from __future__ import annotations

import json
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional
from uuid import uuid4


def ledger_path(log_root: Path, code: str, when: datetime) -> Path:
    """Ledger file for a location and the month of `when`."""
    return Path(log_root) / code / f"audit-{when.strftime('%Y%m')}.ndjson"


class AuditWriter:
    """
    Append-only NDJSON run ledger writer.

    Usage:
        audit = AuditWriter(ledger_path(Path("logs"), "12", started_at))
        audit.emit("run_start", run_id="R-123", location="12")
    """

    def __init__(self, path: Path):
        """Initialize the audit writer."""
        self.path = path
        self._lock = threading.Lock()
        self._ensure_exists()

    def _ensure_exists(self) -> None:
        """Ensure the audit file and directory exist."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        if not self.path.exists():
            self.path.touch()

    def emit(
        self,
        event_type: str,
        run_id: str,
        location: str,
        level: str = "info",
        details: Optional[Dict[str, Any]] = None,
        dry_run: Optional[bool] = None,
    ) -> str:
        """
        Emit an audit event.

        Args:
            event_type: Type of event (run_start, job_result, run_end, etc.)
            run_id: Unique identifier for this run
            location: Location code
            level: Log level (info, warning, error)
            details: Additional event details
            dry_run: Whether the run is a dry run

        Returns:
            Generated event_id
        """
        event_id = f"E-{uuid4().hex[:8].upper()}"
        now = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")

        entry: Dict[str, Any] = {
            "ts_iso": now,
            "event_id": event_id,
            "run_id": run_id,
            "location": location,
            "level": level,
            "type": event_type,
        }

        if dry_run is not None:
            entry["dry_run"] = dry_run
        if details is not None:
            entry["details"] = details

        with self._lock:
            with self.path.open("a", encoding="utf-8") as f:
                f.write(json.dumps(entry, default=str) + "\n")

        return event_id

    def emit_run_start(
        self,
        run_id: str,
        location: str,
        hostname: str,
        dry_run: bool,
        allow_concurrent: bool,
    ) -> str:
        """Emit a run_start event."""
        return self.emit(
            event_type="run_start",
            run_id=run_id,
            location=location,
            dry_run=dry_run,
            details={"hostname": hostname, "allow_concurrent": allow_concurrent},
        )

    def emit_preflight(
        self,
        run_id: str,
        location: str,
        passed: bool,
        failures: List[str],
        warnings: List[str],
    ) -> str:
        """Emit a preflight event."""
        return self.emit(
            event_type="preflight",
            run_id=run_id,
            location=location,
            level="info" if passed else "error",
            details={"passed": passed, "failures": failures, "warnings": warnings},
        )

    def emit_job_result(
        self,
        run_id: str,
        location: str,
        result: Dict[str, Any],
    ) -> str:
        """Emit a job_result event."""
        return self.emit(
            event_type="job_result",
            run_id=run_id,
            location=location,
            level="error" if result.get("invocation_failed") else "info",
            details=result,
        )

    def emit_run_end(
        self,
        run_id: str,
        location: str,
        overall_code: int,
        band: str,
        duration_seconds: float,
        aborted: bool = False,
    ) -> str:
        """Emit a run_end or run_aborted event."""
        return self.emit(
            event_type="run_aborted" if aborted else "run_end",
            run_id=run_id,
            location=location,
            level="info" if band == "Success" else ("warning" if band == "Warning" else "error"),
            details={
                "overall_code": overall_code,
                "band": band,
                "duration_seconds": round(duration_seconds, 3),
            },
        )

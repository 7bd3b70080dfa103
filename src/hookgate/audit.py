"""Structured JSON audit trail of hook outcomes."""

import json
from datetime import datetime, timedelta, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Union

from .config import Config
from .hooks.models import HookOutcome


class AuditEvent(str, Enum):
    """Audit event types for hook invocations."""

    HOOK_ALLOWED = "hook_allowed"
    HOOK_DENIED = "hook_denied"
    INPUT_UNAVAILABLE = "input_unavailable"


class AuditLogger:
    """
    Structured JSON audit logger for hook outcomes.

    Receives finished outcomes from the caller; the gate pipeline itself
    never writes here.

    Features:
    - JSON Lines format (one JSON object per line)
    - ISO 8601 UTC timestamps
    - Append-only file mode
    - Size-based rotation with timestamped backups
    - Retention cleanup based on AUDIT_RETENTION_DAYS

    Records hold rule ids, severities and redacted messages only. Matched
    text and excerpts are left out so credentials caught by a rule never
    reach the log.
    """

    def __init__(
        self,
        log_path: Union[str, Path],
        rotation_bytes: Optional[int] = None,
        retention_days: Optional[int] = None,
    ):
        """
        Initialize audit logger.

        Args:
            log_path: Path to the audit log file
            rotation_bytes: Rotate once the file reaches this size
            retention_days: Delete rotated files older than this (0 keeps all)
        """
        self.log_path = Path(log_path)
        self.rotation_bytes = rotation_bytes or Config.AUDIT_ROTATION_BYTES
        self.retention_days = (
            Config.AUDIT_RETENTION_DAYS if retention_days is None else retention_days
        )
        self.log_path.parent.mkdir(parents=True, exist_ok=True)
        self._cleanup_old_logs()

    def _rotate_if_needed(self) -> None:
        """Rotate the audit log if it exceeds the configured size."""
        if not self.log_path.exists():
            return
        if self.log_path.stat().st_size < self.rotation_bytes:
            return

        timestamp = datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S")
        rotated_path = self.log_path.with_name(f"{self.log_path.name}.{timestamp}")
        counter = 1
        while rotated_path.exists():
            rotated_path = self.log_path.with_name(
                f"{self.log_path.name}.{timestamp}.{counter}"
            )
            counter += 1
        self.log_path.replace(rotated_path)

    def _cleanup_old_logs(self) -> None:
        """Remove audit log files older than the retention window."""
        if self.retention_days <= 0:
            return
        cutoff = datetime.now(timezone.utc) - timedelta(days=self.retention_days)
        for path in self.log_path.parent.glob(f"{self.log_path.name}*"):
            if not path.is_file():
                continue
            modified = datetime.fromtimestamp(path.stat().st_mtime, timezone.utc)
            if modified < cutoff:
                path.unlink()

    def log(self, event: AuditEvent, **kwargs: Any) -> None:
        """
        Write one audit record in JSON Lines format.

        Args:
            event: Audit event type
            **kwargs: Additional fields to include in the record
        """
        record = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "event": event.value,
            **kwargs,
        }
        json_line = json.dumps(record, ensure_ascii=False)

        self._rotate_if_needed()
        with open(self.log_path, "a", encoding="utf-8") as f:
            f.write(json_line + "\n")

    def log_outcome(self, outcome: HookOutcome, **context: Any) -> None:
        """
        Record a finished hook invocation.

        Args:
            outcome: Terminal outcome returned by an adapter
            **context: Extra fields (repository, remote, ...)
        """
        if outcome.error is not None:
            event = AuditEvent.INPUT_UNAVAILABLE
        elif outcome.allowed:
            event = AuditEvent.HOOK_ALLOWED
        else:
            event = AuditEvent.HOOK_DENIED

        data = outcome.to_dict()
        verdicts = (data.pop("result") or {}).get("verdicts", [])

        self.log(
            event,
            **data,
            rules_evaluated=len(verdicts),
            failures=[v for v in verdicts if v["status"] == "fail"],
            **context,
        )

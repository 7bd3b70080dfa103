"""Hook system models for the policy gate pipeline."""

import fnmatch
import posixpath
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Mapping, Optional

from ..errors import ConfigurationError


class TriggerPoint(str, Enum):
    """Git hook trigger points a gate can guard."""

    PRE_COMMIT = "pre-commit"
    COMMIT_MSG = "commit-msg"
    PRE_PUSH = "pre-push"

    @property
    def action(self) -> str:
        """Name of the guarded git action, for diagnostics."""
        return "push" if self is TriggerPoint.PRE_PUSH else "commit"


class Severity(str, Enum):
    """How a failing rule affects the overall outcome."""

    BLOCK = "block"
    WARN = "warn"


class MatchMode(str, Enum):
    """Whether a rule requires or forbids its pattern."""

    MUST_MATCH = "must_match"
    MUST_NOT_MATCH = "must_not_match"


class RuleTarget(str, Enum):
    """Which part of the input a rule inspects."""

    TEXT = "text"
    PATHS = "paths"


class VerdictStatus(str, Enum):
    PASS = "pass"
    FAIL = "fail"


class GateStatus(str, Enum):
    ALLOW = "allow"
    DENY = "deny"


class HookState(str, Enum):
    """
    Per-invocation hook states.

    Start -> InputExtracted -> RulesEvaluated -> {Allowed | Denied}.
    Allowed and Denied are terminal.
    """

    START = "start"
    INPUT_EXTRACTED = "input_extracted"
    RULES_EVALUATED = "rules_evaluated"
    ALLOWED = "allowed"
    DENIED = "denied"


class _TemplateFields(dict):
    """Format mapping that leaves unknown placeholders untouched."""

    def __missing__(self, key: str) -> str:
        return "{" + key + "}"


_RULE_KEYS = {
    "id",
    "rule_id",
    "pattern",
    "severity",
    "message",
    "mode",
    "target",
    "paths",
    "description",
}


def _coerce_enum(enum_cls, value: Any, rule_id: str, field_name: str):
    if isinstance(value, str):
        value = value.strip().lower().replace("-", "_")
    try:
        return enum_cls(value)
    except ValueError:
        choices = ", ".join(member.value for member in enum_cls)
        raise ConfigurationError(
            f"Rule '{rule_id}' has invalid {field_name} {value!r} (expected one of: {choices})"
        ) from None


@dataclass(frozen=True)
class Rule:
    """
    One pattern-based policy rule.

    Immutable once built. The pattern is compiled on construction, so a
    malformed rule raises ConfigurationError at load time rather than
    producing a verdict.

    Invariants:
    - rule_id and pattern must not be empty
    - pattern must be a valid Python regular expression
    - message must be a valid str.format template
    """

    rule_id: str
    pattern: str
    severity: Severity = Severity.BLOCK
    message: str = ""
    mode: MatchMode = MatchMode.MUST_NOT_MATCH
    target: RuleTarget = RuleTarget.TEXT
    paths: tuple[str, ...] = ()
    description: str = ""
    regex: re.Pattern = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if not self.rule_id or not isinstance(self.rule_id, str):
            raise ConfigurationError("Rule id must be a non-empty string")
        if not self.pattern or not isinstance(self.pattern, str):
            raise ConfigurationError(f"Rule '{self.rule_id}' needs a non-empty pattern")

        object.__setattr__(
            self, "severity", _coerce_enum(Severity, self.severity, self.rule_id, "severity")
        )
        object.__setattr__(
            self, "mode", _coerce_enum(MatchMode, self.mode, self.rule_id, "mode")
        )
        object.__setattr__(
            self, "target", _coerce_enum(RuleTarget, self.target, self.rule_id, "target")
        )

        if isinstance(self.paths, str):
            paths: tuple = (self.paths,)
        elif isinstance(self.paths, (list, tuple)):
            paths = tuple(self.paths)
        elif self.paths is None:
            paths = ()
        else:
            raise ConfigurationError(f"Rule '{self.rule_id}' has an invalid paths filter")
        if not all(isinstance(p, str) and p for p in paths):
            raise ConfigurationError(f"Rule '{self.rule_id}' has an invalid paths filter")
        object.__setattr__(self, "paths", paths)

        try:
            compiled = re.compile(self.pattern)
        except re.error as e:
            raise ConfigurationError(
                f"Rule '{self.rule_id}' has an invalid pattern {self.pattern!r}: {e}"
            ) from e
        object.__setattr__(self, "regex", compiled)

        if not isinstance(self.message, str):
            raise ConfigurationError(f"Rule '{self.rule_id}' message must be a string")
        if not isinstance(self.description, str):
            raise ConfigurationError(f"Rule '{self.rule_id}' description must be a string")
        try:
            self.message.format_map(_TemplateFields())
        except (ValueError, IndexError, AttributeError, KeyError) as e:
            raise ConfigurationError(
                f"Rule '{self.rule_id}' has an invalid message template: {e}"
            ) from e

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Rule":
        """
        Build a rule from a rules-file entry.

        Args:
            data: Mapping with at least ``id`` and ``pattern``

        Returns:
            Validated Rule

        Raises:
            ConfigurationError: If the entry is not a mapping, has unknown
                keys, or fails rule validation
        """
        if not isinstance(data, Mapping):
            raise ConfigurationError(f"Rule entry must be a mapping, got {type(data).__name__}")

        rule_id = data.get("id", data.get("rule_id"))
        unknown = set(data) - _RULE_KEYS
        if unknown:
            raise ConfigurationError(
                f"Rule '{rule_id}' has unknown keys: {', '.join(sorted(unknown))}"
            )
        if "pattern" not in data:
            raise ConfigurationError(f"Rule '{rule_id}' is missing 'pattern'")

        return cls(
            rule_id=rule_id,
            pattern=data["pattern"],
            severity=data.get("severity", Severity.BLOCK),
            message=data.get("message") or "",
            mode=data.get("mode", MatchMode.MUST_NOT_MATCH),
            target=data.get("target", RuleTarget.TEXT),
            paths=data.get("paths") or (),
            description=data.get("description") or "",
        )

    def applies_to(self, path: str) -> bool:
        """
        Check whether a file path falls under this rule's paths filter.

        An empty filter covers every path. Globs are matched against the
        full path and against its basename, so ``*.js`` covers ``src/app.js``.
        """
        if not self.paths:
            return True
        basename = posixpath.basename(path)
        return any(
            fnmatch.fnmatch(path, glob) or fnmatch.fnmatch(basename, glob)
            for glob in self.paths
        )

    def render_message(self, match: str = "", line: str = "", path: str = "") -> str:
        """Render the failure message for this rule."""
        if not self.message:
            if self.mode is MatchMode.MUST_MATCH:
                return f"required pattern not found: {self.pattern}"
            return f"forbidden pattern found: {self.pattern}"

        fields = _TemplateFields(
            rule_id=self.rule_id,
            severity=self.severity.value,
            match=match,
            line=line,
            path=path,
        )
        return self.message.format_map(fields)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary in rules-file shape."""
        data: dict[str, Any] = {
            "id": self.rule_id,
            "pattern": self.pattern,
            "severity": self.severity.value,
            "mode": self.mode.value,
            "target": self.target.value,
        }
        if self.paths:
            data["paths"] = list(self.paths)
        if self.message:
            data["message"] = self.message
        if self.description:
            data["description"] = self.description
        return data


@dataclass(frozen=True)
class GateInput:
    """
    Content checked by one gate invocation.

    text: commit message, or the added lines of a diff
    paths: files touched by the guarded action
    segments: added lines per file, for diff-based triggers
    """

    text: str = ""
    paths: tuple[str, ...] = ()
    segments: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_segments(
        cls, segments: Mapping[str, str], paths: Optional[Iterable[str]] = None
    ) -> "GateInput":
        """Build input from per-file content; paths default to the segment keys."""
        segments = dict(segments)
        return cls(
            text="\n".join(segments.values()),
            paths=tuple(paths) if paths is not None else tuple(segments),
            segments=segments,
        )

    def is_empty(self) -> bool:
        return not self.text and not self.paths


@dataclass(frozen=True)
class Verdict:
    """
    Outcome of one rule against one input.

    ``message`` and ``excerpt`` may quote the offending text and are meant
    for the terminal. ``redacted_message`` is the same message rendered
    without the matched text, for logs and the audit trail.
    """

    rule_id: str
    severity: Severity
    status: VerdictStatus
    message: Optional[str] = None
    excerpt: Optional[str] = None
    path: Optional[str] = None
    redacted_message: Optional[str] = None

    @property
    def passed(self) -> bool:
        return self.status is VerdictStatus.PASS

    @property
    def failed(self) -> bool:
        return self.status is VerdictStatus.FAIL

    @property
    def is_blocking(self) -> bool:
        """True if this verdict forces the gate to deny."""
        return self.failed and self.severity is Severity.BLOCK

    @property
    def log_message(self) -> Optional[str]:
        """Message safe to write to logs."""
        if self.redacted_message is not None:
            return self.redacted_message
        return self.message

    def to_dict(self) -> dict[str, Any]:
        """
        Convert to dictionary for JSON serialization.

        The excerpt is left out and the message is the redacted one.
        """
        return {
            "rule_id": self.rule_id,
            "severity": self.severity.value,
            "status": self.status.value,
            "message": self.log_message,
            "path": self.path,
        }

    def __str__(self) -> str:
        return f"Verdict({self.rule_id}={self.status.value})"


@dataclass(frozen=True)
class AggregateResult:
    """
    Ordered verdicts of one gate run plus the derived overall status.

    The status is DENY iff any block-severity verdict failed. Verdict order
    only affects diagnostic order.
    """

    verdicts: tuple[Verdict, ...] = ()

    @property
    def status(self) -> GateStatus:
        if any(v.is_blocking for v in self.verdicts):
            return GateStatus.DENY
        return GateStatus.ALLOW

    @property
    def allowed(self) -> bool:
        return self.status is GateStatus.ALLOW

    @property
    def failures(self) -> list[Verdict]:
        return [v for v in self.verdicts if v.failed]

    @property
    def blocking(self) -> list[Verdict]:
        return [v for v in self.verdicts if v.is_blocking]

    @property
    def warnings(self) -> list[Verdict]:
        return [v for v in self.verdicts if v.failed and v.severity is Severity.WARN]

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "status": self.status.value,
            "verdicts": [v.to_dict() for v in self.verdicts],
        }


@dataclass(frozen=True)
class HookOutcome:
    """
    Terminal result of one hook invocation.

    Returned by adapters; printing and auditing are left to the caller.
    """

    trigger: TriggerPoint
    state: HookState
    result: Optional[AggregateResult] = None
    error: Optional[str] = None

    @property
    def allowed(self) -> bool:
        return self.state is HookState.ALLOWED

    @property
    def exit_code(self) -> int:
        """Process exit status for git: 0 lets the action proceed."""
        return 0 if self.allowed else 1

    def diagnostics(self) -> list[str]:
        """Human-readable lines describing the outcome."""
        prefix = f"[{self.trigger.value}]"
        lines: list[str] = []

        if self.error is not None:
            lines.append(f"{prefix} cannot check {self.trigger.action}: {self.error}")

        if self.result is not None:
            for verdict in self.result.failures:
                label = "BLOCKED" if verdict.is_blocking else "WARNING"
                lines.append(f"{prefix} {label} {verdict.rule_id}: {verdict.message}")
                if verdict.path:
                    lines.append(f"    in {verdict.path}")
                if verdict.excerpt:
                    lines.append(f"    > {verdict.excerpt}")

        if not self.allowed:
            lines.append(
                f"{prefix} {self.trigger.action} aborted. "
                f"Fix the issues above and try again."
            )
        return lines

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "trigger": self.trigger.value,
            "state": self.state.value,
            "exit_code": self.exit_code,
            "error": self.error,
            "result": self.result.to_dict() if self.result else None,
        }

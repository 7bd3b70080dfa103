"""Policy gate pipeline for git hooks.

Key components:
- RuleMatcher: evaluates one Rule against one GateInput, returns a Verdict
- GateRunner: runs an ordered rule set and aggregates verdicts
- Adapters: one per trigger point (pre-commit, commit-msg, pre-push),
  turning git context into a GateInput and the result into a HookOutcome

Usage:
    adapter = CommitMsgAdapter(".git/COMMIT_EDITMSG")
    outcome = adapter.run(rulebook.rules_for(TriggerPoint.COMMIT_MSG))
    for line in outcome.diagnostics():
        print(line, file=sys.stderr)
    sys.exit(outcome.exit_code)
"""

from .adapters import (
    CommitMsgAdapter,
    HookAdapter,
    PreCommitAdapter,
    PreparedInputAdapter,
    PrePushAdapter,
    clean_commit_message,
)
from .matcher import RuleMatcher, rule_matcher
from .models import (
    AggregateResult,
    GateInput,
    GateStatus,
    HookOutcome,
    HookState,
    MatchMode,
    Rule,
    RuleTarget,
    Severity,
    TriggerPoint,
    Verdict,
    VerdictStatus,
)
from .runner import GateRunner

__all__ = [
    # Pipeline
    "RuleMatcher",
    "rule_matcher",
    "GateRunner",
    # Adapters
    "HookAdapter",
    "PreCommitAdapter",
    "CommitMsgAdapter",
    "PrePushAdapter",
    "PreparedInputAdapter",
    "clean_commit_message",
    # Models
    "AggregateResult",
    "GateInput",
    "GateStatus",
    "HookOutcome",
    "HookState",
    "MatchMode",
    "Rule",
    "RuleTarget",
    "Severity",
    "TriggerPoint",
    "Verdict",
    "VerdictStatus",
]

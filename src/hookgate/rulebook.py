"""Rule set loading: built-in defaults plus the repository's YAML rules file."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Union

import yaml
from loguru import logger

from .errors import ConfigurationError
from .hooks.models import MatchMode, Rule, RuleTarget, Severity, TriggerPoint

# ============================================================================
# Built-in rules
# ============================================================================

DEFAULT_RULES: dict[TriggerPoint, tuple[Rule, ...]] = {
    TriggerPoint.PRE_COMMIT: (
        Rule(
            rule_id="unterminated-statement",
            pattern=r"(?m)^(?!.*;[ \t]*$).*\S.*$",
            severity=Severity.BLOCK,
            mode=MatchMode.MUST_NOT_MATCH,
            paths=("*.js",),
            message="JavaScript line does not end with ';'",
            description="Every non-blank added line in a .js file ends with a semicolon.",
        ),
        Rule(
            rule_id="debug-statement",
            pattern=r"\bconsole\.log\(|\bdebugger\b|\bbreakpoint\(\)|\bpdb\.set_trace\(\)",
            severity=Severity.WARN,
            mode=MatchMode.MUST_NOT_MATCH,
            message="Debug statement left in code: {match}",
            description="Flags leftover debugging calls.",
        ),
    ),
    TriggerPoint.COMMIT_MSG: (
        Rule(
            rule_id="conventional-subject",
            pattern=(
                r"^((feat|fix|docs|style|refactor|test|chore)(\([a-z0-9-]+\))?: .+"
                r"|Merge .+|Revert \".+)"
            ),
            severity=Severity.BLOCK,
            mode=MatchMode.MUST_MATCH,
            message=(
                "Commit subject must look like 'type(scope): description' "
                "with type one of feat, fix, docs, style, refactor, test, chore"
            ),
            description="Subject line follows the conventional commit format.",
        ),
        Rule(
            rule_id="issue-reference",
            pattern=r"#\d+",
            severity=Severity.WARN,
            mode=MatchMode.MUST_MATCH,
            message="No issue reference (e.g. #123) found in the commit message",
            description="Commit message mentions an issue number.",
        ),
    ),
    TriggerPoint.PRE_PUSH: (
        Rule(
            rule_id="credential-assignment",
            pattern=(
                r"(?i)\b(api[_-]?key|secret[_-]?key|secret|password|passwd"
                r"|access[_-]?key|auth[_-]?token|token)\b[\"']?\s*[:=]\s*[\"'][^\"'\s]+[\"']"
            ),
            severity=Severity.BLOCK,
            mode=MatchMode.MUST_NOT_MATCH,
            message="Possible hard-coded credential",
            description="Blocks string literals assigned to credential-like names.",
        ),
        Rule(
            rule_id="private-key-header",
            pattern=r"-----BEGIN ([A-Z0-9]+ )*PRIVATE KEY( BLOCK)?-----",
            severity=Severity.BLOCK,
            mode=MatchMode.MUST_NOT_MATCH,
            message="Private key material detected",
            description="Blocks PEM/OpenSSH/PGP private key blocks.",
        ),
        Rule(
            rule_id="env-file",
            pattern=r"(?m)(^|/)\.env$",
            severity=Severity.BLOCK,
            mode=MatchMode.MUST_NOT_MATCH,
            target=RuleTarget.PATHS,
            message="Environment file must not be pushed: {line}",
            description="Blocks pushing .env files.",
        ),
    ),
}

_TOP_LEVEL_KEYS = {"enabled", "hooks"}
_SECTION_KEYS = {"rules", "replace_defaults", "disable"}


@dataclass
class RuleBook:
    """
    Effective rules per trigger for one invocation.

    Built fresh on every run; nothing is cached between invocations.
    """

    rules: dict[TriggerPoint, tuple[Rule, ...]] = field(default_factory=dict)
    source: Optional[Path] = None
    enabled: bool = True

    def rules_for(self, trigger: TriggerPoint) -> tuple[Rule, ...]:
        """Ordered rules for a trigger (empty when disabled)."""
        if not self.enabled:
            return ()
        return self.rules.get(trigger, ())

    @classmethod
    def defaults(cls) -> "RuleBook":
        return cls(rules=dict(DEFAULT_RULES))


def _parse_trigger(name: Any) -> TriggerPoint:
    try:
        return TriggerPoint(name)
    except ValueError:
        choices = ", ".join(t.value for t in TriggerPoint)
        raise ConfigurationError(
            f"Unknown hook {name!r} in rules file (expected one of: {choices})"
        ) from None


def _merge_section(
    trigger: TriggerPoint, section: Any, defaults: tuple[Rule, ...]
) -> tuple[Rule, ...]:
    """
    Combine a trigger's configured rules with its defaults.

    Configured rules replace defaults with the same id in place and are
    appended otherwise. ``replace_defaults: true`` starts from nothing;
    ``disable`` drops default rules by id.
    """
    if isinstance(section, list):
        section = {"rules": section}
    if section is None:
        section = {}
    if not isinstance(section, dict):
        raise ConfigurationError(f"Hook '{trigger.value}' must be a mapping or a list of rules")

    unknown = set(section) - _SECTION_KEYS
    if unknown:
        raise ConfigurationError(
            f"Hook '{trigger.value}' has unknown keys: {', '.join(sorted(unknown))}"
        )

    entries = section.get("rules") or []
    if not isinstance(entries, list):
        raise ConfigurationError(f"Hook '{trigger.value}' rules must be a list")

    configured: list[Rule] = []
    seen: set[str] = set()
    for entry in entries:
        rule = Rule.from_dict(entry)
        if rule.rule_id in seen:
            raise ConfigurationError(
                f"Duplicate rule id '{rule.rule_id}' in hook '{trigger.value}'"
            )
        seen.add(rule.rule_id)
        configured.append(rule)

    merged: list[Rule] = [] if section.get("replace_defaults", False) else list(defaults)

    disabled = section.get("disable") or []
    if not isinstance(disabled, list) or not all(isinstance(r, str) for r in disabled):
        raise ConfigurationError(f"Hook '{trigger.value}' disable must be a list of rule ids")
    known_ids = {rule.rule_id for rule in merged}
    missing = [rule_id for rule_id in disabled if rule_id not in known_ids]
    if missing:
        raise ConfigurationError(
            f"Hook '{trigger.value}' disables unknown rules: {', '.join(map(str, missing))}"
        )
    merged = [rule for rule in merged if rule.rule_id not in disabled]

    positions = {rule.rule_id: index for index, rule in enumerate(merged)}
    for rule in configured:
        if rule.rule_id in positions:
            merged[positions[rule.rule_id]] = rule
        else:
            merged.append(rule)

    return tuple(merged)


def load_rulebook(config_path: Optional[Union[str, Path]] = None) -> RuleBook:
    """
    Load the effective rules.

    Args:
        config_path: Path to the YAML rules file. A missing file (or None)
            yields the built-in defaults.

    Returns:
        RuleBook with validated rules for every trigger

    Raises:
        ConfigurationError: If the file cannot be read or parsed, or any
            rule in it is invalid
    """
    if config_path is None:
        return RuleBook.defaults()

    path = Path(config_path)
    if not path.exists():
        logger.debug(f"Rules file not found at {path}, using built-in rules")
        return RuleBook.defaults()

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Failed to parse rules file {path}: {e}") from e
    except OSError as e:
        raise ConfigurationError(f"Failed to read rules file {path}: {e}") from e

    if not data:
        logger.debug(f"Rules file {path} is empty, using built-in rules")
        return RuleBook(rules=dict(DEFAULT_RULES), source=path)

    if not isinstance(data, dict):
        raise ConfigurationError(f"Rules file {path} must contain a mapping")

    unknown = set(data) - _TOP_LEVEL_KEYS
    if unknown:
        raise ConfigurationError(
            f"Rules file {path} has unknown keys: {', '.join(sorted(map(str, unknown)))}"
        )

    if not data.get("enabled", True):
        logger.info(f"All hook rules disabled via {path}")
        return RuleBook(rules={}, source=path, enabled=False)

    hooks = data.get("hooks") or {}
    if not isinstance(hooks, dict):
        raise ConfigurationError(f"'hooks' in {path} must be a mapping")

    sections = {_parse_trigger(name): section for name, section in hooks.items()}
    rules = {
        trigger: _merge_section(trigger, sections[trigger], DEFAULT_RULES[trigger])
        if trigger in sections
        else DEFAULT_RULES[trigger]
        for trigger in TriggerPoint
    }

    logger.debug(
        f"Loaded rules from {path}: "
        + ", ".join(f"{t.value}={len(r)}" for t, r in rules.items())
    )
    return RuleBook(rules=rules, source=path)

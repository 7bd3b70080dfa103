"""Evaluation of a single rule against a gate input."""

import re
from typing import Optional

from loguru import logger

from ..config import Config
from .models import GateInput, MatchMode, Rule, RuleTarget, Verdict, VerdictStatus

# Stands in for matched text in messages written to logs.
REDACTED = "[redacted]"


class RuleMatcher:
    """
    Evaluates one rule against one input and returns a Verdict.

    Semantics:
    - must_not_match: fails when the pattern is found in any inspected file
      (or in the text, for inputs without files)
    - must_match: fails when the pattern is found nowhere
    - An empty subject passes must_not_match and fails must_match
    - A rule whose paths filter covers none of the input's files does not
      apply and passes

    The matcher has no side effects besides debug logging.
    """

    def __init__(self, max_excerpt_length: Optional[int] = None):
        self.max_excerpt_length = max_excerpt_length or Config.MAX_EXCERPT_LENGTH

    def evaluate(self, rule: Rule, gate_input: GateInput) -> Verdict:
        """
        Evaluate rule against input.

        Args:
            rule: Compiled rule
            gate_input: Content under check

        Returns:
            PASS or FAIL verdict; failing verdicts carry the rendered message
        """
        subjects = self._subjects(rule, gate_input)
        if subjects is None:
            logger.debug(f"Rule {rule.rule_id} not applicable: no files match {list(rule.paths)}")
            return self._pass(rule)

        if rule.mode is MatchMode.MUST_NOT_MATCH:
            for path, text in subjects:
                match = rule.regex.search(text)
                if match:
                    return self._fail(rule, text=text, match=match, path=path)
            return self._pass(rule)

        if any(rule.regex.search(text) for _, text in subjects):
            return self._pass(rule)

        excerpt = None
        if rule.target is RuleTarget.TEXT and len(subjects) == 1:
            excerpt = self._first_line(subjects[0][1])
        return self._fail(rule, excerpt=excerpt)

    @staticmethod
    def _subjects(
        rule: Rule, gate_input: GateInput
    ) -> Optional[list[tuple[Optional[str], str]]]:
        """
        Select the (path, text) pairs a rule inspects.

        Returns None when the rule's paths filter excludes every file.
        """
        if rule.target is RuleTarget.PATHS:
            paths = [p for p in gate_input.paths if rule.applies_to(p)]
            if rule.paths and not paths:
                return None
            return [(None, "\n".join(paths))]

        if gate_input.segments:
            selected = [
                (path, text)
                for path, text in gate_input.segments.items()
                if rule.applies_to(path)
            ]
            return selected or None

        if rule.paths:
            return None
        return [(None, gate_input.text)]

    def _truncate(self, value: str) -> str:
        if len(value) > self.max_excerpt_length:
            return value[: self.max_excerpt_length] + "..."
        return value

    def _first_line(self, text: str) -> Optional[str]:
        for line in text.splitlines():
            if line.strip():
                return self._truncate(line.strip())
        return None

    @staticmethod
    def _line_at(text: str, match: re.Match) -> str:
        """Return the full line containing the start of a match."""
        start = text.rfind("\n", 0, match.start()) + 1
        end = text.find("\n", match.start())
        if end == -1:
            end = len(text)
        return text[start:end].strip()

    @staticmethod
    def _pass(rule: Rule) -> Verdict:
        return Verdict(
            rule_id=rule.rule_id,
            severity=rule.severity,
            status=VerdictStatus.PASS,
        )

    def _fail(
        self,
        rule: Rule,
        text: Optional[str] = None,
        match: Optional[re.Match] = None,
        path: Optional[str] = None,
        excerpt: Optional[str] = None,
    ) -> Verdict:
        matched = ""
        if match is not None and text is not None:
            matched = self._truncate(match.group(0).strip())
            excerpt = self._truncate(self._line_at(text, match))

        message = rule.render_message(match=matched, line=excerpt or "", path=path or "")
        redacted = rule.render_message(
            match=REDACTED if matched else "",
            line=REDACTED if excerpt else "",
            path=path or "",
        )
        logger.debug(
            f"Rule {rule.rule_id} failed ({rule.severity.value}, {rule.mode.value})"
            + (f" in {path}" if path else "")
        )
        return Verdict(
            rule_id=rule.rule_id,
            severity=rule.severity,
            status=VerdictStatus.FAIL,
            message=message,
            excerpt=excerpt or None,
            path=path,
            redacted_message=redacted,
        )


# Default matcher instance for easy import
rule_matcher = RuleMatcher()

"""Gate runner: ordered rule evaluation and verdict aggregation."""

from typing import Iterable, Optional

from loguru import logger

from .matcher import RuleMatcher, rule_matcher
from .models import AggregateResult, GateInput, Rule


class GateRunner:
    """
    Runs an ordered set of rules against one input.

    Rule order decides diagnostic order only; the overall status is DENY
    iff some block-severity rule failed, whatever its position.

    With fail_fast enabled the runner stops after the first blocking
    failure. The outcome is unchanged but later verdicts are not collected.
    """

    def __init__(self, matcher: Optional[RuleMatcher] = None, fail_fast: bool = False):
        self.matcher = matcher or rule_matcher
        self.fail_fast = fail_fast

    def run(self, rules: Iterable[Rule], gate_input: GateInput) -> AggregateResult:
        """
        Evaluate rules in order and aggregate their verdicts.

        Args:
            rules: Ordered rules to apply
            gate_input: Content under check

        Returns:
            AggregateResult holding one verdict per evaluated rule
        """
        verdicts = []
        for rule in rules:
            verdict = self.matcher.evaluate(rule, gate_input)
            verdicts.append(verdict)

            if verdict.is_blocking:
                logger.info(f"Gate blocked by rule {rule.rule_id}: {verdict.log_message}")
                if self.fail_fast:
                    break
            elif verdict.failed:
                logger.info(f"Gate warning from rule {rule.rule_id}: {verdict.log_message}")

        result = AggregateResult(verdicts=tuple(verdicts))
        logger.debug(
            f"Gate evaluated {len(verdicts)} rules: status={result.status.value}, "
            f"failures={len(result.failures)}"
        )
        return result

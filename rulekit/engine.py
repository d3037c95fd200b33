"""Unconditional rule evaluation over a `RuleRegistry`.

This module is intentionally app-agnostic and must not import `specgate.*`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from rulekit.rule_registry import RuleRegistry
from rulekit.rule_types import RuleFinding, RuleHit, RuleOutcome, RuleRef

logger = logging.getLogger(__name__)

RULE_EVALUATION_FAILED = "RULE_EVALUATION_FAILED"


@dataclass(frozen=True)
class RuleReport:
    registry_version: str
    errors: tuple[RuleFinding, ...]
    warnings: tuple[RuleFinding, ...]
    infos: tuple[RuleFinding, ...]
    downgrades: tuple[RuleFinding, ...]
    outcomes: tuple[RuleOutcome, ...]
    total_rules: int
    executed_rules: int
    passed_rules: int

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def fired_rule_ids(self) -> tuple[str, ...]:
        return tuple(outcome.rule_id for outcome in self.outcomes if not outcome.passed)


def _finding(ref: RuleRef, hit: RuleHit) -> RuleFinding:
    return RuleFinding(
        rule_id=ref.id,
        category=ref.category,
        severity=ref.severity,
        message=ref.render_message(hit),
        suggestion=ref.render_suggestion(hit),
        auto_fixable=ref.auto_fixable,
        subject=hit.subject,
        fix=hit.fix,
        details=dict(hit.params),
    )


def _run_rule(ref: RuleRef, subject: Any, context: Any) -> tuple[RuleFinding, ...]:
    hits = ref.check(subject, context)
    findings: list[RuleFinding] = []
    for hit in hits or ():
        if not isinstance(hit, RuleHit):
            raise TypeError(f"Rule check returned non-RuleHit (rule={ref.id}, type={type(hit).__name__})")
        findings.append(_finding(ref, hit))
    return tuple(findings)


def evaluate_rules(registry: RuleRegistry, subject: Any, *, context: Any = None) -> RuleReport:
    """Evaluate every registered rule against `subject` with no short-circuiting.

    Findings are partitioned as follows:
      - auto-fixable rules that fire become downgrades, whatever their severity
      - otherwise findings land in errors / warnings / infos by rule severity

    A rule whose check raises is recorded as a failed error outcome, so an
    evaluation bug can never turn into a silent pass.
    """

    errors: list[RuleFinding] = []
    warnings: list[RuleFinding] = []
    infos: list[RuleFinding] = []
    downgrades: list[RuleFinding] = []
    outcomes: list[RuleOutcome] = []
    fired_error_rules = 0
    executed = 0

    for ref in registry:
        executed += 1
        try:
            findings = _run_rule(ref, subject, context)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Rule evaluation failed: rule=%s error=%s", ref.id, exc)
            failure = RuleFinding(
                rule_id=ref.id,
                category=ref.category,
                severity="error",
                message=f"Rule {ref.id} could not be evaluated: {exc}",
                suggestion="Fix the rule definition or the malformed input it inspects",
                details={"code": RULE_EVALUATION_FAILED, "exception": type(exc).__name__},
            )
            errors.append(failure)
            outcomes.append(RuleOutcome(rule_id=ref.id, severity="error", passed=False, findings=(failure,)))
            fired_error_rules += 1
            continue

        outcomes.append(
            RuleOutcome(rule_id=ref.id, severity=ref.severity, passed=not findings, findings=findings)
        )
        if not findings:
            continue

        if ref.auto_fixable:
            downgrades.extend(findings)
        elif ref.severity == "error":
            errors.extend(findings)
            fired_error_rules += 1
        elif ref.severity == "warning":
            warnings.extend(findings)
        else:
            infos.extend(findings)

    total = len(registry)
    return RuleReport(
        registry_version=registry.version,
        errors=tuple(errors),
        warnings=tuple(warnings),
        infos=tuple(infos),
        downgrades=tuple(downgrades),
        outcomes=tuple(outcomes),
        total_rules=total,
        executed_rules=executed,
        passed_rules=total - fired_error_rules,
    )

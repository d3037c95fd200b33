"""Reusable rule kernel (rule table, evaluation engine, settings namespace).

This package is intentionally independent of `specgate.*`. Domain rules, the
subject types they inspect, and how findings map to verdicts live in the
consuming application.
"""

from rulekit.config_namespace import ConfigNamespace
from rulekit.engine import RULE_EVALUATION_FAILED, RuleReport, evaluate_rules
from rulekit.rule_registry import RuleRegistry
from rulekit.rule_types import (
    ALLOWED_SEVERITIES,
    RuleCheck,
    RuleFinding,
    RuleHit,
    RuleOutcome,
    RuleRef,
    Severity,
)

__all__ = [
    "ALLOWED_SEVERITIES",
    "ConfigNamespace",
    "RULE_EVALUATION_FAILED",
    "RuleCheck",
    "RuleFinding",
    "RuleHit",
    "RuleOutcome",
    "RuleRef",
    "RuleRegistry",
    "RuleReport",
    "Severity",
    "evaluate_rules",
]

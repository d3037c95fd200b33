"""Trust boundary gate for specifications produced by an untrusted generator.

Every payload crossing the boundary is re-validated here, whatever the producer
claims about its own success. The gate composes the structural gate, the rule
engine and the capability bounds validator, and adds capability-identity
re-affirmation against the capability selected earlier in the same run.
"""

from __future__ import annotations

import enum
import logging
import time
from dataclasses import dataclass
from typing import Any

from rulekit import RuleRegistry

from specgate.contract.errors import CapabilityViolation, GateError
from specgate.contract.models import Capability, Specification, ValidationResult
from specgate.foundation.logging_utils import log_operation
from specgate.framework.runtime import CancelSignal, raise_if_cancelled
from specgate.validation.capability_bounds import validate_capability_bounds
from specgate.validation.downgrades import apply_downgrades
from specgate.validation.rules import RuleSettings, validate_rules
from specgate.validation.structural import check_structure

logger = logging.getLogger(__name__)

CAPABILITY_CATEGORIES: frozenset[str] = frozenset({"capability", "security"})


class Verdict(str, enum.Enum):
    APPROVE = "approve"
    REJECT = "reject"
    RETRY = "retry"


@dataclass(frozen=True)
class TrustDecision:
    verdict: Verdict
    reason: str
    errors: tuple[dict[str, Any], ...] = ()
    specification: Specification | None = None
    validation: ValidationResult | None = None

    @property
    def is_trusted(self) -> bool:
        return self.verdict is Verdict.APPROVE

    def to_dict(self) -> dict[str, Any]:
        return {
            "verdict": self.verdict.value,
            "trusted": self.is_trusted,
            "reason": self.reason,
            "errors": [dict(error) for error in self.errors],
            "validation": self.validation.to_dict() if self.validation is not None else None,
        }


def _capability_mismatch(spec: Specification, expected: Capability) -> CapabilityViolation:
    return CapabilityViolation(
        f"Capability ID mismatch: expected '{expected.capability_id}', got '{spec.capability_id}'",
        code="CAPABILITY_MISMATCH",
        stage="trust-boundary",
        user_message="The generated specification targets a different component type than requested.",
        suggestion=f"Regenerate the specification for capability '{expected.capability_id}'",
        alternatives=(expected.capability_id,),
        details={"expected": expected.capability_id, "actual": spec.capability_id},
    )


class TrustBoundaryGate:
    """Issues Approve / Reject / Retry for one untrusted payload."""

    def __init__(
        self,
        *,
        rule_settings: RuleSettings | None = None,
        rule_registry: RuleRegistry | None = None,
        build_id: str = "-",
    ) -> None:
        self._rule_settings = rule_settings or RuleSettings()
        self._rule_registry = rule_registry
        self._build_id = build_id

    def _finish(self, decision: TrustDecision, *, started: float) -> TrustDecision:
        duration_ms = int((time.monotonic() - started) * 1000)
        metadata: dict[str, Any] = {"reason": decision.reason}
        if decision.validation is not None:
            metadata.update(
                {
                    "totalRules": decision.validation.total_rules,
                    "passedRules": decision.validation.passed_rules,
                    "errors": len(decision.validation.errors),
                    "warnings": len(decision.validation.warnings),
                    "downgrades": len(decision.validation.downgrades),
                }
            )
        log_operation(
            logger,
            build_id=self._build_id,
            step="TrustBoundaryGate",
            status=decision.verdict.value,
            duration_ms=duration_ms,
            metadata=metadata,
        )
        return decision

    def evaluate(
        self,
        raw: Any,
        *,
        expected_capability: Capability,
        cancel: CancelSignal | None = None,
    ) -> TrustDecision:
        raise_if_cancelled(cancel, stage="trust-boundary", operation="Trust boundary validation")
        started = time.monotonic()

        try:
            spec = check_structure(raw, cancel=cancel)
        except GateError as exc:
            verdict = Verdict.RETRY if exc.retryable else Verdict.REJECT
            return self._finish(
                TrustDecision(verdict=verdict, reason=f"{exc.code}: {exc.message}", errors=(exc.to_dict(),)),
                started=started,
            )

        if spec.capability_id != expected_capability.capability_id:
            mismatch = _capability_mismatch(spec, expected_capability)
            return self._finish(
                TrustDecision(
                    verdict=Verdict.REJECT,
                    reason=f"{mismatch.code}: {mismatch.message}",
                    errors=(mismatch.to_dict(),),
                    specification=spec,
                ),
                started=started,
            )

        rules_result = validate_rules(
            spec,
            capability=expected_capability,
            settings=self._rule_settings,
            registry=self._rule_registry,
            cancel=cancel,
        )
        bounds_result = validate_capability_bounds(spec, expected_capability, cancel=cancel)
        validation = rules_result.merge(bounds_result)

        if not validation.is_valid:
            errors = tuple(
                issue.to_error(
                    "capability-validation"
                    if issue.category in CAPABILITY_CATEGORIES
                    else "rules-validation"
                )
                for issue in validation.errors
            )
            return self._finish(
                TrustDecision(
                    verdict=Verdict.REJECT,
                    reason=f"Validation failed: {len(validation.errors)} error(s)",
                    errors=errors,
                    specification=spec,
                    validation=validation,
                ),
                started=started,
            )

        try:
            apply_downgrades(spec, validation.downgrades)
        except GateError as exc:
            return self._finish(
                TrustDecision(
                    verdict=Verdict.REJECT,
                    reason=f"{exc.code}: {exc.message}",
                    errors=(exc.to_dict(),),
                    specification=spec,
                    validation=validation,
                ),
                started=started,
            )

        return self._finish(
            TrustDecision(
                verdict=Verdict.APPROVE,
                reason="All trust boundary checks passed",
                specification=spec,
                validation=validation,
            ),
            started=started,
        )

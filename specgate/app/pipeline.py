"""End-to-end governance run: generate -> trust gate -> plan.

The generator is an injected callable and is treated as untrusted. Its
payloads always go through the trust boundary gate, whatever it reports.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Mapping

from specgate.contract.errors import CapabilityViolation, PlanConstructionError, TransientGenerationError
from specgate.contract.models import Capability, ExecutionPlan, Intent, ValidationResult
from specgate.foundation.logging_utils import log_operation
from specgate.framework.config import ForbiddenBehaviorMode, GateConfig
from specgate.framework.retry import call_with_retries
from specgate.framework.runtime import CancelSignal, raise_if_cancelled
from specgate.planning.build_ids import PinnedBuildIds, get_build_id_strategy
from specgate.planning.plan_builder import TemplateCatalog, build_execution_plan
from specgate.validation.capability_bounds import scan_generated_sources
from specgate.validation.downgrades import apply_downgrades
from specgate.validation.trust_boundary import TrustBoundaryGate, TrustDecision, Verdict

logger = logging.getLogger(__name__)

SpecGenerator = Callable[[Intent, Capability], Any]


@dataclass(frozen=True)
class GovernanceOutcome:
    decision: TrustDecision
    plan: ExecutionPlan | None
    attempts: int

    @property
    def approved(self) -> bool:
        return self.decision.is_trusted and self.plan is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            "attempts": self.attempts,
            "decision": self.decision.to_dict(),
            "plan": self.plan.to_dict() if self.plan is not None else None,
        }


def _check_intent_capability(intent: Intent, capability: Capability, *, build_id: str) -> None:
    if intent.component_type and intent.component_type != capability.capability_id:
        log_operation(
            logger,
            build_id=build_id,
            step="IntentCapabilityCheck",
            status="warning",
            error_message="INTENT_CAPABILITY_MISMATCH",
            metadata={"componentType": intent.component_type, "capabilityId": capability.capability_id},
            level=logging.WARNING,
        )


def run_governance(
    intent: Intent,
    capability: Capability,
    generate: SpecGenerator,
    *,
    config: GateConfig | None = None,
    build_id_strategy: str | None = None,
    templates: TemplateCatalog | None = None,
    cancel: CancelSignal | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> GovernanceOutcome:
    """
    Drive one governance run for a pre-selected capability.

    - Transient generator failures are retried with backoff inside each attempt.
    - A `Retry` verdict regenerates until `generation.max_attempts` is spent,
      then escalates to `Reject`.
    - `Reject` is terminal and never retried.
    - `Approve` applies auto-fix downgrades and builds the execution plan.
    """

    cfg = config or GateConfig()
    raise_if_cancelled(cancel, stage="spec-generation", operation="Governance run")

    strategy = get_build_id_strategy(build_id_strategy or cfg.planning.build_id_strategy)
    build_id = strategy.generate(intent, capability)
    _check_intent_capability(intent, capability, build_id=build_id)

    gate = TrustBoundaryGate(rule_settings=cfg.rules, build_id=build_id)
    max_attempts = cfg.generation.max_attempts

    decision: TrustDecision | None = None
    attempt = 0
    while attempt < max_attempts:
        attempt += 1
        try:
            raw = call_with_retries(
                lambda: generate(intent, capability),
                max_attempts=max_attempts,
                initial_delay=cfg.generation.initial_delay_seconds,
                backoff_factor=cfg.generation.backoff_factor,
                sleep=sleep,
                cancel=cancel,
                logger=logger,
            )
        except TransientGenerationError as exc:
            decision = TrustDecision(
                verdict=Verdict.REJECT,
                reason=f"{exc.code}: {exc.message}",
                errors=(exc.to_dict(),),
            )
            break

        decision = gate.evaluate(raw, expected_capability=capability, cancel=cancel)
        if decision.verdict is not Verdict.RETRY:
            break
        logger.info("Trust gate requested regeneration (attempt %d/%d): %s", attempt, max_attempts, decision.reason)
    else:
        assert decision is not None
        decision = TrustDecision(
            verdict=Verdict.REJECT,
            reason=f"Retries exhausted after {attempt} attempt(s): {decision.reason}",
            errors=decision.errors,
        )

    assert decision is not None
    if decision.verdict is not Verdict.APPROVE:
        log_operation(
            logger,
            build_id=build_id,
            step="Governance",
            status=decision.verdict.value,
            error_message=decision.reason,
            metadata={"attempts": attempt},
            level=logging.WARNING,
        )
        return GovernanceOutcome(decision=decision, plan=None, attempts=attempt)

    assert decision.specification is not None
    validation = decision.validation or ValidationResult()
    trusted = apply_downgrades(decision.specification, validation.downgrades)
    plan = build_execution_plan(
        trusted,
        intent=intent,
        capability=capability,
        build_ids=PinnedBuildIds(strategy.name, build_id),
        templates=templates,
        validation_report=validation,
        cancel=cancel,
    )
    return GovernanceOutcome(decision=decision, plan=plan, attempts=attempt)


def enforce_forbidden_behaviors(
    files: Mapping[str, str],
    capability: Capability,
    *,
    mode: ForbiddenBehaviorMode | None = None,
    config: GateConfig | None = None,
    build_id: str = "-",
    cancel: CancelSignal | None = None,
) -> ValidationResult:
    """
    Scan generated sources for the capability's forbidden behaviors.

    `mode` defaults to `capabilities.forbidden_behavior_mode` from `config`.
    In `enforce` mode any pattern hit raises CapabilityViolation; in `advisory`
    mode hits are logged and returned.
    """

    if mode is None:
        mode = (config or GateConfig()).capabilities.forbidden_behavior_mode
    result = scan_generated_sources(files, capability, cancel=cancel)
    status = "clean" if result.is_valid else ("blocked" if mode == "enforce" else "flagged")
    log_operation(
        logger,
        build_id=build_id,
        step="ForbiddenBehaviorScan",
        status=status,
        metadata={
            "capabilityId": capability.capability_id,
            "files": len(files),
            "errors": len(result.errors),
            "warnings": len(result.warnings),
            "mode": mode,
        },
        level=logging.INFO if result.is_valid else logging.WARNING,
    )
    if mode == "enforce" and not result.is_valid:
        first = result.errors[0]
        raise CapabilityViolation(
            f"Generated sources contain {len(result.errors)} forbidden behavior(s): {first.message}",
            code="CAP_FORBIDDEN_ENFORCED",
            suggestion=first.suggestion,
            details={"errors": [issue.to_dict() for issue in result.errors]},
        )
    return result


def verify_generated_output(
    outcome: GovernanceOutcome,
    capability: Capability,
    files: Mapping[str, str],
    *,
    config: GateConfig | None = None,
    cancel: CancelSignal | None = None,
) -> ValidationResult:
    """Scan the sources generated from an approved plan under the configured mode."""

    if outcome.plan is None:
        raise PlanConstructionError(
            f"No approved plan to verify output against: {outcome.decision.reason}",
            code="PLAN_SPEC_NOT_APPROVED",
            suggestion="Only scan output generated from an approved governance run",
        )
    if outcome.plan.capability_id != capability.capability_id:
        raise CapabilityViolation(
            f"Capability ID mismatch: plan targets '{outcome.plan.capability_id}', got '{capability.capability_id}'",
            code="CAPABILITY_MISMATCH",
            alternatives=(outcome.plan.capability_id,),
        )
    return enforce_forbidden_behaviors(
        files,
        capability,
        config=config,
        build_id=outcome.plan.build_id,
        cancel=cancel,
    )

"""Accepted specification -> ordered, fixed-length execution plan.

Plan construction is pure: it never calls the generator, and the only
non-deterministic input is the build id strategy chosen by the caller.
The step catalog is part of the versioned contract, so any drift in its
length or ordering fails loudly instead of producing a shorter plan.
"""

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass
from typing import Iterable, Sequence

from specgate.contract.errors import PlanConstructionError
from specgate.contract.models import (
    Capability,
    ExecutionPlan,
    Intent,
    PlanStep,
    Specification,
    ValidationResult,
)
from specgate.contract.versioning import CONTRACT_VERSION
from specgate.foundation.logging_utils import log_operation
from specgate.framework.runtime import CancelSignal, raise_if_cancelled
from specgate.planning.build_ids import BuildIdStrategy, DeterministicBuildIds

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StepTemplate:
    template: str
    output_path: str
    required: bool = True

    def render_output_path(self, spec: Specification) -> str:
        return self.output_path.format(ComponentName=spec.component_name)


STEP_CATALOG: tuple[StepTemplate, ...] = (
    StepTemplate("ControlManifest.Input.xml.hbs", "ControlManifest.Input.xml"),
    StepTemplate("package.json.hbs", "package.json"),
    StepTemplate("tsconfig.json.hbs", "tsconfig.json"),
    StepTemplate("index.ts.hbs", "index.ts"),
    StepTemplate("css/component.css.hbs", "css/{ComponentName}.css"),
    StepTemplate("strings/strings.resx.hbs", "strings/{ComponentName}.resx"),
    StepTemplate("README.md.hbs", "README.md"),
    StepTemplate(".gitignore.hbs", ".gitignore"),
)

# Step count declared by contract version 1.0.
EXPECTED_STEP_COUNT = 8


class TemplateCatalog:
    """Set of template references known to the external renderer."""

    def __init__(self, available: Iterable[str]) -> None:
        self._available = frozenset(ref.replace("\\", "/").strip("/") for ref in available if ref)

    @staticmethod
    def generic() -> "TemplateCatalog":
        return TemplateCatalog(step.template for step in STEP_CATALOG)

    @staticmethod
    def from_directory(path: str | os.PathLike[str]) -> "TemplateCatalog":
        root = os.fspath(path)
        if not os.path.isdir(root):
            raise FileNotFoundError(f"Templates directory not found: {root}")
        refs: list[str] = []
        for dirpath, _dirnames, filenames in os.walk(root):
            for name in filenames:
                rel = os.path.relpath(os.path.join(dirpath, name), root)
                refs.append(rel.replace(os.sep, "/"))
        return TemplateCatalog(refs)

    def __contains__(self, ref: object) -> bool:
        return ref in self._available

    def available(self) -> tuple[str, ...]:
        return tuple(sorted(self._available))

    def resolve(
        self,
        template: str,
        capability_id: str,
        *,
        hint: str | None = None,
    ) -> tuple[str, bool]:
        """
        Return (template_ref, fell_back).

        Capability-scoped candidates are tried first: the capability's own
        hint for this template, then `{capability_id}/{template}`. A generic
        `{template}` is the fallback. Nothing matching raises.
        """

        scoped = [candidate for candidate in (hint, f"{capability_id}/{template}") if candidate]
        for candidate in scoped:
            if candidate in self._available:
                return candidate, False
        if template in self._available:
            return template, True
        raise PlanConstructionError(
            f"No template found for {template!r} (capability={capability_id!r})",
            code="PLAN_TEMPLATE_MISSING",
            user_message="The build templates for this component are incomplete.",
            suggestion=f"Add {capability_id}/{template} or a generic {template} to the templates directory",
            details={"template": template, "capabilityId": capability_id, "tried": [*scoped, template]},
        )


def validate_plan_shape(plan: ExecutionPlan, *, expected_steps: int = EXPECTED_STEP_COUNT) -> None:
    if plan.version != CONTRACT_VERSION:
        raise PlanConstructionError(
            f"Plan version {plan.version!r} does not match contract version {CONTRACT_VERSION!r}",
            code="PLAN_VERSION_MISMATCH",
            details={"version": plan.version, "expected": CONTRACT_VERSION},
        )
    if len(plan.steps) != expected_steps:
        raise PlanConstructionError(
            f"Execution plan has {len(plan.steps)} steps; contract {CONTRACT_VERSION} requires {expected_steps}",
            code="PLAN_STEP_COUNT_DRIFT",
            user_message="The build plan does not match the expected set of generation steps.",
            details={"steps": len(plan.steps), "expected": expected_steps},
        )
    orders = [step.order for step in plan.steps]
    if orders != list(range(1, expected_steps + 1)):
        raise PlanConstructionError(
            f"Execution plan steps must be ordered 1..{expected_steps} (got {orders})",
            code="PLAN_STEP_ORDER_DRIFT",
            details={"orders": orders},
        )


def build_execution_plan(
    spec: Specification,
    *,
    intent: Intent,
    capability: Capability,
    build_ids: BuildIdStrategy | None = None,
    templates: TemplateCatalog | None = None,
    validation_report: ValidationResult | None = None,
    step_catalog: Sequence[StepTemplate] = STEP_CATALOG,
    cancel: CancelSignal | None = None,
) -> ExecutionPlan:
    raise_if_cancelled(cancel, stage="plan-construction", operation="Execution plan construction")
    started = time.monotonic()

    if spec.capability_id != capability.capability_id:
        raise PlanConstructionError(
            f"Specification capability {spec.capability_id!r} does not match {capability.capability_id!r}",
            code="CAPABILITY_MISMATCH",
            details={"expected": capability.capability_id, "actual": spec.capability_id},
        )
    if validation_report is not None and not validation_report.is_valid:
        raise PlanConstructionError(
            f"Cannot plan a specification with {len(validation_report.errors)} validation error(s)",
            code="PLAN_SPEC_NOT_APPROVED",
        )

    strategy = build_ids or DeterministicBuildIds()
    build_id = strategy.generate(intent, capability)
    catalog = templates or TemplateCatalog.generic()

    steps: list[PlanStep] = []
    for order, step in enumerate(step_catalog, start=1):
        template_ref, fell_back = catalog.resolve(
            step.template,
            capability.capability_id,
            hint=capability.templates.get(step.template),
        )
        if fell_back:
            log_operation(
                logger,
                build_id=build_id,
                step="plan.template_fallback",
                status="fallback",
                metadata={
                    "capabilityId": capability.capability_id,
                    "template": step.template,
                    "templateRef": template_ref,
                },
            )
        steps.append(
            PlanStep(
                order=order,
                template_ref=template_ref,
                output_path=step.render_output_path(spec),
                required=step.required,
                fallback=fell_back,
            )
        )

    plan = ExecutionPlan(
        version=CONTRACT_VERSION,
        build_id=build_id,
        build_id_strategy=strategy.name,
        capability_id=capability.capability_id,
        component_type=spec.component_type,
        specification=spec,
        steps=tuple(steps),
        validation_report=validation_report,
    )
    validate_plan_shape(plan)

    log_operation(
        logger,
        build_id=build_id,
        step="PlanBuilder",
        status="created",
        duration_ms=int((time.monotonic() - started) * 1000),
        metadata={
            "steps": len(plan.steps),
            "fallbacks": sum(1 for item in plan.steps if item.fallback),
            "strategy": strategy.name,
        },
    )
    return plan

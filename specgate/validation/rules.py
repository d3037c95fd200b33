"""PCF rule catalog and the specification-level rule validation entry point.

Rules are data: each `RuleRef` names its id, category, severity, message
template, suggestion and auto-fix flag, and points at a small check function.
The registry is built once per process and is the only place rules are defined.
"""

from __future__ import annotations

import logging
import re
from collections import Counter
from dataclasses import dataclass
from functools import lru_cache
from typing import Iterator, Mapping

from rulekit import ConfigNamespace, RuleFinding, RuleHit, RuleRef, RuleRegistry, evaluate_rules

from specgate.contract.models import (
    ALLOWED_USAGES,
    Capability,
    RuleAudit,
    Specification,
    ValidationIssue,
    ValidationResult,
)
from specgate.contract.versioning import CONTRACT_VERSION
from specgate.framework.runtime import CancelSignal, raise_if_cancelled

logger = logging.getLogger(__name__)

RULE_REGISTRY_VERSION = "1.0"

PASCAL_CASE_RE = re.compile(r"^[A-Z][A-Za-z0-9]*$")
CAMEL_CASE_RE = re.compile(r"^[a-z][a-zA-Z0-9]*$")
_WORD_SPLIT_RE = re.compile(r"[^A-Za-z0-9]+")

DISPLAY_NAME_MIN = 1
DISPLAY_NAME_MAX = 100
DESCRIPTION_MIN = 10
DESCRIPTION_MAX = 500

DEFAULT_PROPERTY_SOFT_CEILING = 10
DEFAULT_BINDING_REQUIRED_CLASSIFICATIONS: tuple[str, ...] = ("input", "display")


@dataclass(frozen=True)
class RuleSettings:
    property_soft_ceiling: int = DEFAULT_PROPERTY_SOFT_CEILING
    binding_required_classifications: tuple[str, ...] = DEFAULT_BINDING_REQUIRED_CLASSIFICATIONS

    @classmethod
    def from_mapping(cls, data: Mapping[str, object] | None) -> "RuleSettings":
        ns = ConfigNamespace(dict(data or {}), path="rules")
        classifications = ns.get_list_str(
            "binding_required_classifications",
            default=list(DEFAULT_BINDING_REQUIRED_CLASSIFICATIONS),
            allow_empty=True,
        )
        params = ns.namespace("params", default=None)
        perf = params.namespace("PCF_PERF_002", default=None)
        ceiling = perf.get_int("max_properties", default=DEFAULT_PROPERTY_SOFT_CEILING, min_value=1)
        ns.assert_consumed()
        return cls(
            property_soft_ceiling=ceiling,
            binding_required_classifications=tuple(classifications),
        )


@dataclass(frozen=True)
class RuleContext:
    settings: RuleSettings
    capability: Capability | None = None

    def requires_binding(self) -> bool:
        # Without a matched capability the strict default applies.
        if self.capability is None:
            return True
        return self.capability.classification in self.settings.binding_required_classifications


def camel_case_fix(name: str) -> str | None:
    """Deterministic re-casing used by the property-name downgrade."""

    parts = [part for part in _WORD_SPLIT_RE.split(name or "") if part]
    if not parts:
        return None
    head = parts[0].lstrip("0123456789")
    if not head:
        parts = parts[1:]
        if not parts:
            return None
        head = parts[0]
    tail = parts[1:]
    fixed = head[:1].lower() + head[1:] + "".join(p[:1].upper() + p[1:] for p in tail)
    return fixed if CAMEL_CASE_RE.match(fixed) else None


def _check_component_name(spec: Specification, _ctx: RuleContext) -> Iterator[RuleHit]:
    if not PASCAL_CASE_RE.match(spec.component_name or ""):
        yield RuleHit(params={"name": spec.component_name}, subject="componentName")


def _check_namespace(spec: Specification, _ctx: RuleContext) -> Iterator[RuleHit]:
    if not PASCAL_CASE_RE.match(spec.namespace or ""):
        yield RuleHit(params={"namespace": spec.namespace}, subject="namespace")


def _check_property_names(spec: Specification, _ctx: RuleContext) -> Iterator[RuleHit]:
    for idx, prop in enumerate(spec.properties):
        if CAMEL_CASE_RE.match(prop.name or ""):
            continue
        fix = camel_case_fix(prop.name)
        yield RuleHit(
            params={"name": prop.name, "fix": fix or "<rename manually>"},
            subject=f"properties[{idx}].name",
            fix=fix,
        )


def _check_bound_property(spec: Specification, ctx: RuleContext) -> Iterator[RuleHit]:
    if not ctx.requires_binding():
        return
    if not any(prop.usage == "bound" for prop in spec.properties):
        classification = ctx.capability.classification if ctx.capability else "<unknown>"
        yield RuleHit(params={"classification": classification}, subject="properties")


def _check_display_name(spec: Specification, _ctx: RuleContext) -> Iterator[RuleHit]:
    length = len(spec.display_name.strip()) if spec.display_name else 0
    if length < DISPLAY_NAME_MIN or len(spec.display_name or "") > DISPLAY_NAME_MAX:
        yield RuleHit(
            params={"length": len(spec.display_name or ""), "min": DISPLAY_NAME_MIN, "max": DISPLAY_NAME_MAX},
            subject="displayName",
        )


def _check_description(spec: Specification, _ctx: RuleContext) -> Iterator[RuleHit]:
    length = len(spec.description or "")
    if not (spec.description or "").strip() or length < DESCRIPTION_MIN or length > DESCRIPTION_MAX:
        yield RuleHit(
            params={"length": length, "min": DESCRIPTION_MIN, "max": DESCRIPTION_MAX},
            subject="description",
        )


def _check_property_count(spec: Specification, ctx: RuleContext) -> Iterator[RuleHit]:
    ceiling = ctx.settings.property_soft_ceiling
    if len(spec.properties) > ceiling:
        yield RuleHit(params={"count": len(spec.properties), "ceiling": ceiling}, subject="properties")


def _check_property_usage(spec: Specification, _ctx: RuleContext) -> Iterator[RuleHit]:
    for idx, prop in enumerate(spec.properties):
        if prop.usage not in ALLOWED_USAGES:
            yield RuleHit(
                params={
                    "name": prop.name,
                    "usage": prop.usage,
                    "allowed": ", ".join(ALLOWED_USAGES),
                    "alternatives": list(ALLOWED_USAGES),
                },
                subject=f"properties[{idx}].usage",
            )


def _check_duplicate_properties(spec: Specification, _ctx: RuleContext) -> Iterator[RuleHit]:
    counts = Counter(prop.name for prop in spec.properties)
    for name, count in sorted(counts.items()):
        if count > 1:
            yield RuleHit(params={"name": name, "count": count}, subject="properties")


def _check_code_resource(spec: Specification, _ctx: RuleContext) -> Iterator[RuleHit]:
    if not spec.resources.code.strip():
        yield RuleHit(params={}, subject="resources.code")


def _check_property_display_names(spec: Specification, _ctx: RuleContext) -> Iterator[RuleHit]:
    for idx, prop in enumerate(spec.properties):
        if not prop.display_name.strip():
            yield RuleHit(params={"name": prop.name}, subject=f"properties[{idx}].displayName")


PCF_RULES: tuple[RuleRef, ...] = (
    RuleRef(
        id="PCF_NAMING_001",
        category="pcf-compliance",
        severity="error",
        check=_check_component_name,
        message="Component name '{name}' must be PascalCase",
        suggestion="Use PascalCase for the component name (e.g., StarRating)",
        doc="Component name must match ^[A-Z][A-Za-z0-9]*$.",
        tags=("naming",),
    ),
    RuleRef(
        id="PCF_NAMING_002",
        category="pcf-compliance",
        severity="error",
        check=_check_namespace,
        message="Namespace '{namespace}' must be PascalCase",
        suggestion="Use PascalCase for the namespace (e.g., Contoso)",
        doc="Namespace must match ^[A-Z][A-Za-z0-9]*$.",
        tags=("naming",),
    ),
    RuleRef(
        id="PCF_NAMING_003",
        category="pcf-compliance",
        severity="warning",
        check=_check_property_names,
        message="Property name '{name}' should be camelCase",
        suggestion="Convert to camelCase: {fix}",
        auto_fixable=True,
        doc="Property names must match ^[a-z][a-zA-Z0-9]*$; re-cased automatically.",
        tags=("naming",),
    ),
    RuleRef(
        id="PCF_BINDING_001",
        category="pcf-compliance",
        severity="error",
        check=_check_bound_property,
        message="Component must have at least one bound property (classification: {classification})",
        suggestion="Add a property with usage: 'bound'",
        doc="Binding-required classifications need a property with usage 'bound'.",
        tags=("binding",),
    ),
    RuleRef(
        id="PCF_MANIFEST_001",
        category="pcf-compliance",
        severity="error",
        check=_check_display_name,
        message="Display name must be between {min}-{max} characters (got {length})",
        suggestion="Provide a valid display name",
        tags=("manifest",),
    ),
    RuleRef(
        id="PCF_MANIFEST_002",
        category="pcf-compliance",
        severity="error",
        check=_check_description,
        message="Description must be between {min}-{max} characters (got {length})",
        suggestion="Provide a meaningful description",
        tags=("manifest",),
    ),
    RuleRef(
        id="PCF_PERF_002",
        category="performance",
        severity="warning",
        check=_check_property_count,
        message="Component has {count} properties (recommended: <= {ceiling})",
        suggestion="Consider grouping related properties",
        tags=("performance",),
    ),
    RuleRef(
        id="PCF_PROP_001",
        category="pcf-compliance",
        severity="error",
        check=_check_property_usage,
        message="Property '{name}' has invalid usage '{usage}' (allowed: {allowed})",
        suggestion="Use one of: {allowed}",
        tags=("properties",),
    ),
    RuleRef(
        id="PCF_PROP_002",
        category="pcf-compliance",
        severity="error",
        check=_check_duplicate_properties,
        message="Property name '{name}' is declared {count} times",
        suggestion="Give every property a unique name",
        tags=("properties",),
    ),
    RuleRef(
        id="PCF_RES_001",
        category="best-practice",
        severity="warning",
        check=_check_code_resource,
        message="Resources do not declare a code entry point",
        suggestion="Set resources.code (e.g., index.ts)",
        tags=("resources",),
    ),
    RuleRef(
        id="PCF_A11Y_001",
        category="accessibility",
        severity="info",
        check=_check_property_display_names,
        message="Property '{name}' has no display name for assistive technologies",
        suggestion="Add a displayName to the property",
        tags=("accessibility",),
    ),
)


@lru_cache(maxsize=1)
def get_rule_registry() -> RuleRegistry:
    return RuleRegistry.from_refs(PCF_RULES, version=RULE_REGISTRY_VERSION)


def _issues(findings: tuple[RuleFinding, ...]) -> tuple[ValidationIssue, ...]:
    return tuple(ValidationIssue.from_finding(finding) for finding in findings)


def validate_rules(
    spec: Specification,
    *,
    capability: Capability | None = None,
    settings: RuleSettings | None = None,
    registry: RuleRegistry | None = None,
    cancel: CancelSignal | None = None,
) -> ValidationResult:
    """Evaluate every registered rule against the specification."""

    raise_if_cancelled(cancel, stage="rules-validation", operation="Rule validation")
    active = registry if registry is not None else get_rule_registry()
    ctx = RuleContext(settings=settings or RuleSettings(), capability=capability)
    report = evaluate_rules(active, spec, context=ctx)

    logger.debug(
        "Rule evaluation: registry=%s total=%d passed=%d errors=%d warnings=%d downgrades=%d",
        report.registry_version,
        report.total_rules,
        report.passed_rules,
        len(report.errors),
        len(report.warnings),
        len(report.downgrades),
    )

    return ValidationResult(
        version=CONTRACT_VERSION,
        errors=_issues(report.errors),
        warnings=_issues(report.warnings),
        downgrades=_issues(report.downgrades),
        infos=_issues(report.infos),
        outcomes=tuple(
            RuleAudit(
                rule_id=outcome.rule_id,
                severity=outcome.severity,
                passed=outcome.passed,
                findings=len(outcome.findings),
            )
            for outcome in report.outcomes
        ),
        total_rules=report.total_rules,
        executed_rules=report.executed_rules,
        passed_rules=report.passed_rules,
    )

"""Capability bounds: requested features and customizations vs. the matched capability.

This layer rejects; it never clamps. Clamping, when wanted, is an upstream
decision recorded as a downgrade.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Iterator, Mapping

from rulekit import RuleHit, RuleRef, RuleRegistry, evaluate_rules

from specgate.contract.models import (
    Capability,
    RuleAudit,
    Specification,
    ValidationIssue,
    ValidationResult,
)
from specgate.contract.versioning import CONTRACT_VERSION
from specgate.framework.runtime import CancelSignal, raise_if_cancelled

logger = logging.getLogger(__name__)

CAPABILITY_REGISTRY_VERSION = "1.0"


@dataclass(frozen=True)
class BoundsSubject:
    spec: Specification
    capability: Capability


@dataclass(frozen=True)
class GeneratedSources:
    capability: Capability
    files: Mapping[str, str]


def _capitalize(key: str) -> str:
    return key[:1].upper() + key[1:]


def max_limit_key(customization_key: str) -> str:
    """`stars` -> `maxStars`."""

    return "max" + _capitalize(customization_key)


def allowed_limit_key(customization_key: str) -> str:
    """`theme` -> `allowedTheme`."""

    return "allowed" + _capitalize(customization_key)


def _check_features(subject: BoundsSubject, _ctx: object) -> Iterator[RuleHit]:
    supported = sorted(subject.capability.supported_features)
    for idx, feature in enumerate(subject.spec.capabilities.features):
        if feature in subject.capability.supported_features:
            continue
        yield RuleHit(
            params={
                "feature": feature,
                "capability_id": subject.capability.capability_id,
                "supported": ", ".join(supported) or "<none>",
                "alternatives": supported,
            },
            subject=f"capabilities.features[{idx}]",
        )


def _check_numeric_limits(subject: BoundsSubject, _ctx: object) -> Iterator[RuleHit]:
    for key, value in subject.spec.capabilities.customizations.items():
        limit_key = max_limit_key(key)
        limit = subject.capability.limits.get(limit_key)
        if limit is None or limit.kind != "number" or value.kind != "number":
            continue
        assert limit.number is not None and value.number is not None
        if value.number > limit.number:
            yield RuleHit(
                params={
                    "key": key,
                    "value": value.describe(),
                    "limit": limit.describe(),
                    "limit_key": limit_key,
                },
                subject=f"capabilities.customizations.{key}",
            )


def _check_numeric_types(subject: BoundsSubject, _ctx: object) -> Iterator[RuleHit]:
    for key, value in subject.spec.capabilities.customizations.items():
        limit_key = max_limit_key(key)
        limit = subject.capability.limits.get(limit_key)
        if limit is None or limit.kind != "number" or value.kind == "number":
            continue
        yield RuleHit(
            params={"key": key, "kind": value.kind, "limit_key": limit_key, "limit": limit.describe()},
            subject=f"capabilities.customizations.{key}",
        )


def _check_enum_limits(subject: BoundsSubject, _ctx: object) -> Iterator[RuleHit]:
    for key, value in subject.spec.capabilities.customizations.items():
        limit_key = allowed_limit_key(key)
        limit = subject.capability.limits.get(limit_key)
        if limit is None or limit.kind != "enum":
            continue
        if value.kind == "string" and value.text in limit.choices:
            continue
        yield RuleHit(
            params={
                "key": key,
                "value": value.describe(),
                "choices": limit.describe(),
                "alternatives": list(limit.choices),
            },
            subject=f"capabilities.customizations.{key}",
        )


def _advise_forbidden(subject: BoundsSubject, _ctx: object) -> Iterator[RuleHit]:
    # Structured fields cannot prove a behavior absent; see scan_generated_sources.
    for item in subject.capability.forbidden:
        yield RuleHit(
            params={
                "behavior": item.behavior,
                "reason": item.reason,
                "alternative": item.alternative or "<none>",
                "alternatives": [item.alternative] if item.alternative else [],
            },
            subject="capability.forbidden",
        )


def _scan_forbidden_patterns(subject: GeneratedSources, _ctx: object) -> Iterator[RuleHit]:
    for item in subject.capability.forbidden:
        for pattern in item.patterns:
            compiled = re.compile(pattern, re.MULTILINE)
            for path in sorted(subject.files):
                match = compiled.search(subject.files[path])
                if match is None:
                    continue
                line = subject.files[path].count("\n", 0, match.start()) + 1
                yield RuleHit(
                    params={
                        "behavior": item.behavior,
                        "path": path,
                        "line": line,
                        "reason": item.reason,
                        "alternative": item.alternative or "<none>",
                        "alternatives": [item.alternative] if item.alternative else [],
                    },
                    subject=f"{path}:{line}",
                )


def _unprovable_forbidden(subject: GeneratedSources, _ctx: object) -> Iterator[RuleHit]:
    for item in subject.capability.forbidden:
        if not item.patterns:
            yield RuleHit(params={"behavior": item.behavior}, subject="capability.forbidden")


CAPABILITY_RULES: tuple[RuleRef, ...] = (
    RuleRef(
        id="CAP_FEATURE_001",
        category="capability",
        severity="error",
        check=_check_features,
        message="Feature '{feature}' is not supported by capability '{capability_id}'",
        suggestion="Supported features: {supported}",
    ),
    RuleRef(
        id="CAP_LIMIT_001",
        category="capability",
        severity="error",
        check=_check_numeric_limits,
        message="Customization '{key}' value {value} exceeds limit {limit_key} of {limit}",
        suggestion="Set '{key}' to a value <= {limit}",
    ),
    RuleRef(
        id="CAP_LIMIT_002",
        category="capability",
        severity="error",
        check=_check_enum_limits,
        message="Customization '{key}' value {value} is not one of the allowed values: {choices}",
        suggestion="Choose one of: {choices}",
    ),
    RuleRef(
        id="CAP_LIMIT_003",
        category="capability",
        severity="error",
        check=_check_numeric_types,
        message="Customization '{key}' must be a number to be checked against {limit_key} (got {kind})",
        suggestion="Set '{key}' to a number <= {limit}",
    ),
    RuleRef(
        id="CAP_FORBIDDEN_001",
        category="security",
        severity="warning",
        check=_advise_forbidden,
        message="Ensure component does not use forbidden behavior: {behavior}",
        suggestion="{reason} (alternative: {alternative})",
    ),
)

FORBIDDEN_SCAN_RULES: tuple[RuleRef, ...] = (
    RuleRef(
        id="CAP_FORBIDDEN_002",
        category="security",
        severity="error",
        check=_scan_forbidden_patterns,
        message="Generated file {path} uses forbidden behavior '{behavior}' (line {line})",
        suggestion="{reason} (alternative: {alternative})",
    ),
    RuleRef(
        id="CAP_FORBIDDEN_003",
        category="security",
        severity="warning",
        check=_unprovable_forbidden,
        message="Forbidden behavior '{behavior}' declares no patterns and cannot be checked in generated output",
        suggestion="Add detection patterns to the capability definition",
    ),
)


@lru_cache(maxsize=1)
def get_capability_rule_registry() -> RuleRegistry:
    return RuleRegistry.from_refs(CAPABILITY_RULES, version=CAPABILITY_REGISTRY_VERSION)


@lru_cache(maxsize=1)
def get_forbidden_scan_registry() -> RuleRegistry:
    return RuleRegistry.from_refs(FORBIDDEN_SCAN_RULES, version=CAPABILITY_REGISTRY_VERSION)


def _to_result(registry: RuleRegistry, subject: object) -> ValidationResult:
    report = evaluate_rules(registry, subject)
    return ValidationResult(
        version=CONTRACT_VERSION,
        errors=tuple(ValidationIssue.from_finding(f) for f in report.errors),
        warnings=tuple(ValidationIssue.from_finding(f) for f in report.warnings),
        downgrades=tuple(ValidationIssue.from_finding(f) for f in report.downgrades),
        infos=tuple(ValidationIssue.from_finding(f) for f in report.infos),
        outcomes=tuple(
            RuleAudit(rule_id=o.rule_id, severity=o.severity, passed=o.passed, findings=len(o.findings))
            for o in report.outcomes
        ),
        total_rules=report.total_rules,
        executed_rules=report.executed_rules,
        passed_rules=report.passed_rules,
    )


def validate_capability_bounds(
    spec: Specification,
    capability: Capability,
    *,
    cancel: CancelSignal | None = None,
) -> ValidationResult:
    """Check requested features and customizations against the capability's declared bounds."""

    raise_if_cancelled(cancel, stage="capability-validation", operation="Capability bounds validation")
    result = _to_result(get_capability_rule_registry(), BoundsSubject(spec=spec, capability=capability))
    logger.debug(
        "Capability bounds: capability=%s errors=%d warnings=%d",
        capability.capability_id,
        len(result.errors),
        len(result.warnings),
    )
    return result


def scan_generated_sources(
    files: Mapping[str, str],
    capability: Capability,
    *,
    cancel: CancelSignal | None = None,
) -> ValidationResult:
    """Static scan of generated output for the capability's forbidden-behavior patterns."""

    raise_if_cancelled(cancel, stage="capability-validation", operation="Forbidden behavior scan")
    for path, text in files.items():
        if not isinstance(text, str):
            raise TypeError(f"Generated file content must be text (path={path}, type={type(text).__name__})")
    return _to_result(
        get_forbidden_scan_registry(),
        GeneratedSources(capability=capability, files=dict(files)),
    )

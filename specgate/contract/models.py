"""Versioned data shapes exchanged across the governance pipeline.

All records are frozen. Mapping-valued registry fields are exposed read-only so
validators cannot mutate capability definitions.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Literal, Mapping

from rulekit import RuleFinding

from specgate.contract.versioning import CONTRACT_VERSION

PropertyUsage = Literal["bound", "input", "output"]
ALLOWED_USAGES: tuple[str, ...] = ("bound", "input", "output")

ValueKind = Literal["number", "enum", "string", "bool"]
ALLOWED_VALUE_KINDS: tuple[str, ...] = ("number", "enum", "string", "bool")


def _plain(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {str(k): _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    if isinstance(value, (set, frozenset)):
        return sorted(_plain(v) for v in value)
    return value


def _frozen_mapping(value: Mapping[str, Any] | None) -> Mapping[str, Any]:
    return MappingProxyType(dict(value or {}))


@dataclass(frozen=True)
class TaggedValue:
    """Limit / customization value decoded at the ingestion boundary."""

    kind: ValueKind
    number: float | None = None
    choices: tuple[str, ...] = ()
    text: str | None = None
    flag: bool | None = None

    def __post_init__(self) -> None:
        if self.kind not in ALLOWED_VALUE_KINDS:
            raise ValueError(
                f"TaggedValue.kind must be one of: {', '.join(ALLOWED_VALUE_KINDS)} (got {self.kind!r})"
            )
        if self.kind == "number" and (self.number is None or not math.isfinite(self.number)):
            raise ValueError("TaggedValue(kind=number) requires a finite number")
        if self.kind == "enum" and not self.choices:
            raise ValueError("TaggedValue(kind=enum) requires at least one choice")
        if self.kind == "string" and self.text is None:
            raise ValueError("TaggedValue(kind=string) requires text")
        if self.kind == "bool" and self.flag is None:
            raise ValueError("TaggedValue(kind=bool) requires a flag")
        object.__setattr__(self, "choices", tuple(self.choices))

    @classmethod
    def of_number(cls, value: float) -> "TaggedValue":
        return cls(kind="number", number=float(value))

    @classmethod
    def of_enum(cls, choices: tuple[str, ...] | list[str]) -> "TaggedValue":
        return cls(kind="enum", choices=tuple(choices))

    @classmethod
    def of_string(cls, value: str) -> "TaggedValue":
        return cls(kind="string", text=value)

    @classmethod
    def of_bool(cls, value: bool) -> "TaggedValue":
        return cls(kind="bool", flag=value)

    def to_raw(self) -> Any:
        if self.kind == "number":
            assert self.number is not None
            return int(self.number) if self.number.is_integer() else self.number
        if self.kind == "enum":
            return list(self.choices)
        if self.kind == "string":
            return self.text
        return self.flag

    def describe(self) -> str:
        raw = self.to_raw()
        if isinstance(raw, list):
            return ", ".join(raw)
        return str(raw)


@dataclass(frozen=True)
class Intent:
    classification: str
    component_type: str
    behavior: Mapping[str, Any] = field(default_factory=dict)
    accessibility: Mapping[str, Any] = field(default_factory=dict)
    responsiveness: Mapping[str, Any] = field(default_factory=dict)
    ui_intent: Mapping[str, Any] = field(default_factory=dict)
    interaction: Mapping[str, Any] = field(default_factory=dict)
    constraints: Mapping[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "classification": self.classification,
            "componentType": self.component_type,
            "uiIntent": _plain(self.ui_intent),
            "behavior": _plain(self.behavior),
            "interaction": _plain(self.interaction),
            "accessibility": _plain(self.accessibility),
            "responsiveness": _plain(self.responsiveness),
            "constraints": _plain(self.constraints),
        }


@dataclass(frozen=True)
class ForbiddenBehavior:
    behavior: str
    reason: str
    alternative: str | None = None
    patterns: tuple[str, ...] = ()


@dataclass(frozen=True)
class Capability:
    capability_id: str
    classification: str
    supported_features: frozenset[str] = frozenset()
    limits: Mapping[str, TaggedValue] = field(default_factory=dict)
    forbidden: tuple[ForbiddenBehavior, ...] = ()
    templates: Mapping[str, str] = field(default_factory=dict)
    display_name: str | None = None
    description: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.capability_id, str) or not self.capability_id.strip():
            raise TypeError("Capability.capability_id must be a non-empty string")
        object.__setattr__(self, "capability_id", self.capability_id.strip())
        object.__setattr__(self, "supported_features", frozenset(self.supported_features))
        object.__setattr__(self, "limits", _frozen_mapping(self.limits))
        object.__setattr__(self, "forbidden", tuple(self.forbidden))
        object.__setattr__(self, "templates", _frozen_mapping(self.templates))

    def to_dict(self) -> dict[str, Any]:
        return {
            "capabilityId": self.capability_id,
            "classification": self.classification,
            "displayName": self.display_name,
            "description": self.description,
            "supportedFeatures": sorted(self.supported_features),
            "limits": {key: value.to_raw() for key, value in sorted(self.limits.items())},
            "forbidden": [
                {
                    "behavior": item.behavior,
                    "reason": item.reason,
                    "alternative": item.alternative,
                    "patterns": list(item.patterns),
                }
                for item in self.forbidden
            ],
            "templates": dict(self.templates),
        }


@dataclass(frozen=True)
class Property:
    name: str
    display_name: str
    data_type: str
    usage: str
    required: bool = False
    description: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "displayName": self.display_name,
            "dataType": self.data_type,
            "usage": self.usage,
            "required": self.required,
            "description": self.description,
        }


@dataclass(frozen=True)
class CapabilityRequest:
    capability_id: str
    features: tuple[str, ...] = ()
    customizations: Mapping[str, TaggedValue] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "features", tuple(self.features))
        object.__setattr__(self, "customizations", _frozen_mapping(self.customizations))

    def to_dict(self) -> dict[str, Any]:
        return {
            "capabilityId": self.capability_id,
            "features": list(self.features),
            "customizations": {key: value.to_raw() for key, value in self.customizations.items()},
        }


@dataclass(frozen=True)
class Resources:
    code: str = ""
    css: tuple[str, ...] = ()
    resx: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "css": list(self.css), "resx": list(self.resx)}


@dataclass(frozen=True)
class ValidationMetadata:
    rules_applied: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()
    downgrades: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "rulesApplied": list(self.rules_applied),
            "warnings": list(self.warnings),
            "downgrades": list(self.downgrades),
        }


@dataclass(frozen=True)
class Specification:
    version: str
    component_type: str
    component_name: str
    namespace: str
    display_name: str
    description: str
    capabilities: CapabilityRequest
    properties: tuple[Property, ...] = ()
    resources: Resources = field(default_factory=Resources)
    component_id: str | None = None
    validation: ValidationMetadata | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "properties", tuple(self.properties))

    @property
    def capability_id(self) -> str:
        return self.capabilities.capability_id

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "version": self.version,
            "componentType": self.component_type,
            "componentId": self.component_id,
            "componentName": self.component_name,
            "namespace": self.namespace,
            "displayName": self.display_name,
            "description": self.description,
            "capabilities": self.capabilities.to_dict(),
            "properties": [prop.to_dict() for prop in self.properties],
            "resources": self.resources.to_dict(),
        }
        if self.validation is not None:
            out["validation"] = self.validation.to_dict()
        return out


@dataclass(frozen=True)
class ValidationIssue:
    rule_id: str
    category: str
    severity: str
    message: str
    suggestion: str | None = None
    auto_fixable: bool = False
    fix: str | None = None
    subject: str | None = None
    alternatives: tuple[str, ...] = ()
    details: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_finding(cls, finding: RuleFinding) -> "ValidationIssue":
        alternatives = finding.details.get("alternatives", ())
        return cls(
            rule_id=finding.rule_id,
            category=finding.category,
            severity=finding.severity,
            message=finding.message,
            suggestion=finding.suggestion,
            auto_fixable=finding.auto_fixable,
            fix=finding.fix,
            subject=finding.subject,
            alternatives=tuple(str(item) for item in alternatives)
            if isinstance(alternatives, (list, tuple))
            else (),
            details=dict(finding.details),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "ruleId": self.rule_id,
            "category": self.category,
            "severity": self.severity,
            "message": self.message,
            "suggestion": self.suggestion,
            "autoFixable": self.auto_fixable,
            "fix": self.fix,
            "subject": self.subject,
            "alternatives": list(self.alternatives),
        }

    def to_error(self, stage: str) -> dict[str, Any]:
        return {
            "code": self.rule_id,
            "stage": stage,
            "message": self.message,
            "userMessage": self.message,
            "suggestion": self.suggestion,
            "alternatives": list(self.alternatives),
            "details": _plain(self.details),
        }


@dataclass(frozen=True)
class RuleAudit:
    rule_id: str
    severity: str
    passed: bool
    findings: int = 0


@dataclass(frozen=True)
class ValidationResult:
    version: str = CONTRACT_VERSION
    errors: tuple[ValidationIssue, ...] = ()
    warnings: tuple[ValidationIssue, ...] = ()
    downgrades: tuple[ValidationIssue, ...] = ()
    infos: tuple[ValidationIssue, ...] = ()
    outcomes: tuple[RuleAudit, ...] = ()
    total_rules: int = 0
    executed_rules: int = 0
    passed_rules: int = 0

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def merge(self, other: "ValidationResult") -> "ValidationResult":
        return ValidationResult(
            version=self.version,
            errors=self.errors + other.errors,
            warnings=self.warnings + other.warnings,
            downgrades=self.downgrades + other.downgrades,
            infos=self.infos + other.infos,
            outcomes=self.outcomes + other.outcomes,
            total_rules=self.total_rules + other.total_rules,
            executed_rules=self.executed_rules + other.executed_rules,
            passed_rules=self.passed_rules + other.passed_rules,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "isValid": self.is_valid,
            "errors": [issue.to_dict() for issue in self.errors],
            "warnings": [issue.to_dict() for issue in self.warnings],
            "downgrades": [issue.to_dict() for issue in self.downgrades],
            "infos": [issue.to_dict() for issue in self.infos],
            "totalRules": self.total_rules,
            "executedRules": self.executed_rules,
            "passedRules": self.passed_rules,
        }


@dataclass(frozen=True)
class PlanStep:
    order: int
    template_ref: str
    output_path: str
    required: bool = True
    fallback: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "order": self.order,
            "templateRef": self.template_ref,
            "outputPath": self.output_path,
            "required": self.required,
        }


@dataclass(frozen=True)
class ExecutionPlan:
    version: str
    build_id: str
    build_id_strategy: str
    capability_id: str
    component_type: str
    specification: Specification
    steps: tuple[PlanStep, ...]
    validation_report: ValidationResult | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "steps", tuple(self.steps))

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "buildId": self.build_id,
            "buildIdStrategy": self.build_id_strategy,
            "capabilityId": self.capability_id,
            "componentType": self.component_type,
            "steps": [step.to_dict() for step in self.steps],
            "specification": self.specification.to_dict(),
            "validationReport": self.validation_report.to_dict()
            if self.validation_report is not None
            else None,
        }

"""Versioned contract between the generation step and the governance gate."""

from specgate.contract.errors import (
    CapabilityViolation,
    ContractViolation,
    GateError,
    GateStage,
    OperationCancelled,
    PlanConstructionError,
    SchemaViolation,
    TransientGenerationError,
)
from specgate.contract.models import (
    ALLOWED_USAGES,
    Capability,
    CapabilityRequest,
    ExecutionPlan,
    ForbiddenBehavior,
    Intent,
    PlanStep,
    Property,
    Resources,
    RuleAudit,
    Specification,
    TaggedValue,
    ValidationIssue,
    ValidationMetadata,
    ValidationResult,
)
from specgate.contract.versioning import (
    CONTRACT_VERSION,
    MIN_SUPPORTED_VERSION,
    is_version_supported,
    parse_version,
)

__all__ = [
    "ALLOWED_USAGES",
    "CONTRACT_VERSION",
    "Capability",
    "CapabilityRequest",
    "CapabilityViolation",
    "ContractViolation",
    "ExecutionPlan",
    "ForbiddenBehavior",
    "GateError",
    "GateStage",
    "Intent",
    "MIN_SUPPORTED_VERSION",
    "OperationCancelled",
    "PlanConstructionError",
    "PlanStep",
    "Property",
    "Resources",
    "RuleAudit",
    "SchemaViolation",
    "Specification",
    "TaggedValue",
    "TransientGenerationError",
    "ValidationIssue",
    "ValidationMetadata",
    "ValidationResult",
    "is_version_supported",
    "parse_version",
]

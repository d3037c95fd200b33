"""Error taxonomy surfaced to callers and UIs.

Every rejection carries a stage tag, a machine-readable code and a
human-readable suggestion; `to_dict()` is the wire shape.
"""

from __future__ import annotations

from typing import Any, Literal, Mapping, Sequence

GateStage = Literal[
    "spec-generation",
    "structural-validation",
    "rules-validation",
    "capability-validation",
    "trust-boundary",
    "plan-construction",
]


class GateError(Exception):
    default_code = "GATE_ERROR"
    default_stage: GateStage = "trust-boundary"
    retryable = False

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        stage: GateStage | None = None,
        user_message: str | None = None,
        suggestion: str | None = None,
        alternatives: Sequence[str] = (),
        details: Mapping[str, Any] | None = None,
        retryable: bool | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.stage = stage or self.default_stage
        self.user_message = user_message or message
        self.suggestion = suggestion
        self.alternatives = tuple(str(item) for item in alternatives)
        self.details = dict(details or {})
        if retryable is not None:
            self.retryable = retryable

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "stage": self.stage,
            "message": self.message,
            "userMessage": self.user_message,
            "suggestion": self.suggestion,
            "alternatives": list(self.alternatives),
            "details": dict(self.details),
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, stage={self.stage!r}, message={self.message!r})"


class ContractViolation(GateError):
    """Malformed structure, missing required field, or unsupported contract version."""

    default_code = "CONTRACT_VIOLATION"
    default_stage: GateStage = "structural-validation"


class SchemaViolation(GateError):
    """Structurally anomalous collections such as null entries."""

    default_code = "SCHEMA_VIOLATION"
    default_stage: GateStage = "structural-validation"


class CapabilityViolation(GateError):
    """Capability mismatch, unsupported feature, limit exceeded, or any rule error."""

    default_code = "CAPABILITY_VIOLATION"
    default_stage: GateStage = "capability-validation"


class TransientGenerationError(GateError):
    default_code = "GENERATION_TRANSIENT_FAILURE"
    default_stage: GateStage = "spec-generation"
    retryable = True


class PlanConstructionError(GateError):
    default_code = "PLAN_CONSTRUCTION_FAILED"
    default_stage: GateStage = "plan-construction"


class OperationCancelled(GateError):
    default_code = "OPERATION_CANCELLED"
    default_stage: GateStage = "spec-generation"

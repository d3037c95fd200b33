"""Structural gate: proves a generated payload is well-formed enough to reason about.

Checks run in a fixed order (decode, required scalars, properties collection,
contract version) and never look at business semantics such as naming or
capability limits.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from specgate.contract.decode import decode_specification, load_json_payload
from specgate.contract.errors import ContractViolation, SchemaViolation
from specgate.contract.models import Specification
from specgate.contract.versioning import CONTRACT_VERSION, is_version_supported
from specgate.framework.runtime import CancelSignal, raise_if_cancelled

logger = logging.getLogger(__name__)

REQUIRED_SCALARS: tuple[str, ...] = ("componentType", "displayName")
REQUIRED_KEYS: tuple[str, ...] = (
    "componentType",
    "componentName",
    "namespace",
    "displayName",
    "description",
    "capabilities",
)
_MAPPING_KEYS: tuple[str, ...] = ("capabilities", "resources", "validation")


def _check_shape(payload: Mapping[str, Any]) -> None:
    missing = [key for key in REQUIRED_KEYS if key not in payload]
    if missing:
        raise ContractViolation(
            f"Specification is missing required fields: {', '.join(missing)}",
            code="SPEC_REQUIRED_FIELD_MISSING",
            user_message="The generated specification is incomplete.",
            suggestion="Regenerate the specification with every required field",
            details={"missing": missing},
        )

    for key in _MAPPING_KEYS:
        value = payload.get(key)
        if value is not None and not isinstance(value, Mapping):
            raise ContractViolation(
                f"Specification field {key} must be an object (type={type(value).__name__})",
                code="SPEC_SHAPE_INVALID",
                user_message="The generated specification is malformed.",
                suggestion=f"Regenerate the specification with {key} as an object",
                details={"field": key},
            )


def _check_required_scalars(payload: Mapping[str, Any]) -> None:
    for key in REQUIRED_SCALARS:
        value = payload.get(key)
        if not isinstance(value, str) or not value.strip():
            raise ContractViolation(
                f"Specification field {key} must be a non-empty string",
                code="SPEC_REQUIRED_FIELD_MISSING",
                user_message="The generated specification is incomplete.",
                suggestion=f"Provide a value for {key}",
                details={"field": key},
            )


def _check_properties(payload: Mapping[str, Any]) -> None:
    if "properties" not in payload or payload.get("properties") is None:
        raise SchemaViolation(
            "Specification properties collection is missing",
            code="SPEC_PROPERTIES_MISSING",
            user_message="The generated specification has no properties collection.",
            suggestion="Provide a properties list (it may be empty)",
        )
    properties = payload.get("properties")
    if not isinstance(properties, (list, tuple)):
        raise SchemaViolation(
            f"Specification properties must be a list (type={type(properties).__name__})",
            code="SPEC_PROPERTIES_MISSING",
            user_message="The generated specification has a malformed properties collection.",
            suggestion="Provide properties as a list of objects",
        )
    null_indexes = [idx for idx, item in enumerate(properties) if item is None]
    if null_indexes:
        raise SchemaViolation(
            f"Specification properties contain null entries at: {', '.join(str(i) for i in null_indexes)}",
            code="SPEC_PROPERTY_NULL",
            user_message="The generated specification contains empty property entries.",
            suggestion="Remove null entries from properties",
            details={"indexes": null_indexes},
        )


def _check_version(payload: Mapping[str, Any]) -> None:
    version = payload.get("version")
    if version is None:
        raise ContractViolation(
            "Specification version is missing",
            code="SPEC_VERSION_UNSUPPORTED",
            user_message="The generated specification does not declare a contract version.",
            suggestion=f"Set version to {CONTRACT_VERSION}",
        )
    if not is_version_supported(version):
        raise ContractViolation(
            f"Unsupported contract version: {version!r} (supported: {CONTRACT_VERSION})",
            code="SPEC_VERSION_UNSUPPORTED",
            user_message="The generated specification targets an unsupported contract version.",
            suggestion=f"Set version to {CONTRACT_VERSION}",
            alternatives=(CONTRACT_VERSION,),
            details={"version": version},
        )


def check_structure(raw: Any, *, cancel: CancelSignal | None = None) -> Specification:
    """Run the structural checks and return the decoded specification.

    Raises:
      ContractViolation: undecodable payload, missing fields, wrong shapes,
        unsupported version. Decode failures are flagged retryable.
      SchemaViolation: missing properties collection or null entries.
      OperationCancelled: `cancel` was set before the checks started.
    """

    raise_if_cancelled(cancel, stage="structural-validation", operation="Structural validation")
    payload = load_json_payload(raw)
    _check_shape(payload)
    _check_required_scalars(payload)
    _check_properties(payload)
    _check_version(payload)
    spec = decode_specification(payload)
    logger.debug(
        "Structural gate passed: componentType=%s properties=%d",
        spec.component_type,
        len(spec.properties),
    )
    return spec

"""Ingestion-boundary decoding of raw JSON-like payloads into contract records.

Loosely typed limit / customization maps are converted into `TaggedValue`
immediately so the validators never see untyped values.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

from specgate.contract.errors import ContractViolation
from specgate.contract.models import (
    Capability,
    CapabilityRequest,
    ForbiddenBehavior,
    Intent,
    Property,
    Resources,
    Specification,
    TaggedValue,
    ValidationMetadata,
)


def decode_tagged_value(raw: Any, path: str) -> TaggedValue:
    # bool before number: bool is an int subclass.
    if isinstance(raw, bool):
        return TaggedValue.of_bool(raw)
    if isinstance(raw, (int, float)):
        try:
            return TaggedValue.of_number(raw)
        except ValueError as exc:
            raise ValueError(f"Invalid number for {path}: {raw!r}") from exc
    if isinstance(raw, str):
        return TaggedValue.of_string(raw)
    if isinstance(raw, (list, tuple)):
        choices: list[str] = []
        for idx, item in enumerate(raw):
            if not isinstance(item, str) or not item.strip():
                raise ValueError(f"Invalid enum choice for {path}[{idx}]: {item!r}")
            choices.append(item.strip())
        if not choices:
            raise ValueError(f"Enum value for {path} cannot be empty")
        return TaggedValue.of_enum(choices)
    raise ValueError(f"Unsupported value type for {path}: {type(raw).__name__}")


def _mapping(raw: Any, path: str) -> Mapping[str, Any]:
    if raw is None:
        return {}
    if not isinstance(raw, Mapping):
        raise ValueError(f"{path} must be a mapping (type={type(raw).__name__})")
    return raw


def _str(raw: Any, path: str, *, default: str | None = None) -> str:
    if raw is None:
        if default is None:
            raise ValueError(f"Missing required field: {path}")
        return default
    if not isinstance(raw, str):
        raise ValueError(f"{path} must be a string (type={type(raw).__name__})")
    return raw


def _optional_str(raw: Any, path: str) -> str | None:
    if raw is None:
        return None
    return _str(raw, path)


def _str_list(raw: Any, path: str) -> tuple[str, ...]:
    if raw is None:
        return ()
    if not isinstance(raw, (list, tuple)):
        raise ValueError(f"{path} must be a list of strings (type={type(raw).__name__})")
    items: list[str] = []
    for idx, item in enumerate(raw):
        if not isinstance(item, str):
            raise ValueError(f"{path}[{idx}] must be a string (type={type(item).__name__})")
        items.append(item)
    return tuple(items)


def _bool(raw: Any, path: str, *, default: bool) -> bool:
    if raw is None:
        return default
    if not isinstance(raw, bool):
        raise ValueError(f"{path} must be a boolean (type={type(raw).__name__})")
    return raw


def decode_intent(raw: Mapping[str, Any]) -> Intent:
    data = _mapping(raw, "intent")
    return Intent(
        classification=_str(data.get("classification"), "intent.classification"),
        component_type=_str(data.get("componentType"), "intent.componentType"),
        ui_intent=dict(_mapping(data.get("uiIntent"), "intent.uiIntent")),
        behavior=dict(_mapping(data.get("behavior"), "intent.behavior")),
        interaction=dict(_mapping(data.get("interaction"), "intent.interaction")),
        accessibility=dict(_mapping(data.get("accessibility"), "intent.accessibility")),
        responsiveness=dict(_mapping(data.get("responsiveness"), "intent.responsiveness")),
        constraints=dict(_mapping(data.get("constraints"), "intent.constraints")),
    )


def _decode_features(raw: Any, path: str) -> frozenset[str]:
    # Registry documents list features either as ids or as {featureId: ...} records.
    if raw is None:
        return frozenset()
    if not isinstance(raw, (list, tuple)):
        raise ValueError(f"{path} must be a list (type={type(raw).__name__})")
    features: set[str] = set()
    for idx, item in enumerate(raw):
        if isinstance(item, Mapping):
            feature_id = _str(item.get("featureId"), f"{path}[{idx}].featureId")
        else:
            feature_id = _str(item, f"{path}[{idx}]")
        if not feature_id.strip():
            raise ValueError(f"{path}[{idx}] cannot be empty")
        features.add(feature_id.strip())
    return frozenset(features)


def decode_capability(raw: Mapping[str, Any], *, path: str = "capability") -> Capability:
    data = _mapping(raw, path)
    capability_id = _str(data.get("capabilityId"), f"{path}.capabilityId").strip()
    if not capability_id:
        raise ValueError(f"{path}.capabilityId cannot be empty")

    limits = {
        str(key): decode_tagged_value(value, f"{path}.limits.{key}")
        for key, value in _mapping(data.get("limits"), f"{path}.limits").items()
    }

    forbidden_raw = data.get("forbidden") or []
    if not isinstance(forbidden_raw, (list, tuple)):
        raise ValueError(f"{path}.forbidden must be a list (type={type(forbidden_raw).__name__})")
    forbidden: list[ForbiddenBehavior] = []
    for idx, item in enumerate(forbidden_raw):
        item_path = f"{path}.forbidden[{idx}]"
        entry = _mapping(item, item_path)
        forbidden.append(
            ForbiddenBehavior(
                behavior=_str(entry.get("behavior"), f"{item_path}.behavior"),
                reason=_str(entry.get("reason"), f"{item_path}.reason"),
                alternative=_optional_str(entry.get("alternative"), f"{item_path}.alternative"),
                patterns=_str_list(entry.get("patterns"), f"{item_path}.patterns"),
            )
        )

    templates: dict[str, str] = {}
    for key, value in _mapping(data.get("templates"), f"{path}.templates").items():
        if value is None:
            continue
        templates[str(key)] = _str(value, f"{path}.templates.{key}")

    return Capability(
        capability_id=capability_id,
        classification=_str(data.get("classification"), f"{path}.classification"),
        display_name=_optional_str(data.get("displayName"), f"{path}.displayName"),
        description=_optional_str(data.get("description"), f"{path}.description"),
        supported_features=_decode_features(data.get("supportedFeatures"), f"{path}.supportedFeatures"),
        limits=limits,
        forbidden=tuple(forbidden),
        templates=templates,
    )


def decode_property(raw: Mapping[str, Any], path: str) -> Property:
    data = _mapping(raw, path)
    return Property(
        name=_str(data.get("name"), f"{path}.name"),
        display_name=_str(data.get("displayName"), f"{path}.displayName", default=""),
        data_type=_str(data.get("dataType"), f"{path}.dataType", default=""),
        usage=_str(data.get("usage"), f"{path}.usage", default=""),
        required=_bool(data.get("required"), f"{path}.required", default=False),
        description=_str(data.get("description"), f"{path}.description", default=""),
    )


def _decode_capability_request(raw: Any) -> CapabilityRequest:
    data = _mapping(raw, "capabilities")
    customizations = {
        str(key): decode_tagged_value(value, f"capabilities.customizations.{key}")
        for key, value in _mapping(data.get("customizations"), "capabilities.customizations").items()
    }
    return CapabilityRequest(
        capability_id=_str(data.get("capabilityId"), "capabilities.capabilityId"),
        features=_str_list(data.get("features"), "capabilities.features"),
        customizations=customizations,
    )


def decode_specification(payload: Mapping[str, Any]) -> Specification:
    """Decode a structurally checked payload; shape errors become ContractViolation."""

    try:
        resources_raw = _mapping(payload.get("resources"), "resources")
        validation_raw = payload.get("validation")
        validation: ValidationMetadata | None = None
        if validation_raw is not None:
            validation_data = _mapping(validation_raw, "validation")
            validation = ValidationMetadata(
                rules_applied=_str_list(validation_data.get("rulesApplied"), "validation.rulesApplied"),
                warnings=_str_list(validation_data.get("warnings"), "validation.warnings"),
                downgrades=_str_list(validation_data.get("downgrades"), "validation.downgrades"),
            )

        properties_raw = payload.get("properties") or []
        return Specification(
            version=_str(payload.get("version"), "version"),
            component_type=_str(payload.get("componentType"), "componentType"),
            component_id=_optional_str(payload.get("componentId"), "componentId"),
            component_name=_str(payload.get("componentName"), "componentName"),
            namespace=_str(payload.get("namespace"), "namespace"),
            display_name=_str(payload.get("displayName"), "displayName"),
            description=_str(payload.get("description"), "description"),
            capabilities=_decode_capability_request(payload.get("capabilities")),
            properties=tuple(
                decode_property(item, f"properties[{idx}]") for idx, item in enumerate(properties_raw)
            ),
            resources=Resources(
                code=_str(resources_raw.get("code"), "resources.code", default=""),
                css=_str_list(resources_raw.get("css"), "resources.css"),
                resx=_str_list(resources_raw.get("resx"), "resources.resx"),
            ),
            validation=validation,
        )
    except ValueError as exc:
        raise ContractViolation(
            f"Specification does not match the contract shape: {exc}",
            code="SPEC_SHAPE_INVALID",
            user_message="The generated specification is malformed.",
            suggestion="Regenerate the specification so every field has the contract type",
        ) from exc


def load_json_payload(raw: Any) -> Mapping[str, Any]:
    """Turn JSON text/bytes or a mapping into a mapping, or raise a retryable ContractViolation."""

    payload: Any = raw
    if isinstance(raw, (bytes, bytearray)):
        try:
            payload = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ContractViolation(
                f"Specification payload is not UTF-8: {exc}",
                code="SPEC_DECODE_FAILED",
                user_message="The generator returned an unreadable response.",
                suggestion="Retry generation",
                retryable=True,
            ) from exc
    if isinstance(payload, str):
        try:
            payload = json.loads(payload)
        except json.JSONDecodeError as exc:
            raise ContractViolation(
                f"Specification payload is not valid JSON: {exc.msg} (line {exc.lineno}, column {exc.colno})",
                code="SPEC_DECODE_FAILED",
                user_message="The generator returned malformed JSON.",
                suggestion="Retry generation",
                retryable=True,
            ) from exc
    if not isinstance(payload, Mapping):
        raise ContractViolation(
            f"Specification payload must be a JSON object (type={type(payload).__name__})",
            code="SPEC_DECODE_FAILED",
            user_message="The generator returned a response that is not a specification object.",
            suggestion="Retry generation",
            retryable=True,
        )
    return payload

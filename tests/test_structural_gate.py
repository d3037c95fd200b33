import json
import threading

import pytest

from specgate.contract.errors import ContractViolation, OperationCancelled, SchemaViolation
from specgate.validation.structural import check_structure


def test_valid_payload_decodes_from_text_and_mapping(spec_payload):
    from_text = check_structure(json.dumps(spec_payload))
    from_mapping = check_structure(spec_payload)

    assert from_text == from_mapping
    assert from_text.capability_id == "star-rating"
    assert [prop.name for prop in from_text.properties] == ["value", "maxValue"]
    assert from_text.capabilities.customizations["stars"].number == 5


def test_empty_properties_list_is_allowed(spec_payload):
    spec_payload["properties"] = []
    assert check_structure(spec_payload).properties == ()


def test_missing_properties_raises_schema_violation(spec_payload):
    del spec_payload["properties"]
    with pytest.raises(SchemaViolation, match=r"properties collection is missing"):
        check_structure(spec_payload)


def test_null_properties_raises_schema_violation(spec_payload):
    spec_payload["properties"] = None
    with pytest.raises(SchemaViolation) as excinfo:
        check_structure(spec_payload)
    assert excinfo.value.code == "SPEC_PROPERTIES_MISSING"


def test_null_property_entry_raises_schema_violation(spec_payload):
    spec_payload["properties"].append(None)
    with pytest.raises(SchemaViolation, match=r"null entries at: 2") as excinfo:
        check_structure(spec_payload)
    assert excinfo.value.details == {"indexes": [2]}


@pytest.mark.parametrize("field", ["componentType", "displayName"])
def test_blank_required_scalar_is_a_contract_violation(spec_payload, field):
    spec_payload[field] = "   "
    with pytest.raises(ContractViolation, match=rf"{field} must be a non-empty string"):
        check_structure(spec_payload)


def test_missing_required_field_lists_every_missing_key(spec_payload):
    del spec_payload["namespace"]
    del spec_payload["capabilities"]
    with pytest.raises(ContractViolation, match=r"missing required fields: namespace, capabilities") as excinfo:
        check_structure(spec_payload)
    assert excinfo.value.retryable is False


@pytest.mark.parametrize("version", [None, "2.0", "1", "one.zero"])
def test_unsupported_version_is_a_contract_violation(spec_payload, version):
    if version is None:
        del spec_payload["version"]
    else:
        spec_payload["version"] = version
    with pytest.raises(ContractViolation) as excinfo:
        check_structure(spec_payload)
    assert excinfo.value.code == "SPEC_VERSION_UNSUPPORTED"
    assert excinfo.value.stage == "structural-validation"


def test_structural_checks_run_before_version_check(spec_payload):
    spec_payload["version"] = "9.9"
    spec_payload["properties"] = [None]
    with pytest.raises(SchemaViolation):
        check_structure(spec_payload)


def test_wrongly_typed_nested_field_is_not_retryable(spec_payload):
    spec_payload["properties"][0]["required"] = "yes please"
    with pytest.raises(ContractViolation) as excinfo:
        check_structure(spec_payload)
    assert excinfo.value.code == "SPEC_SHAPE_INVALID"
    assert excinfo.value.retryable is False


def test_non_object_payload_is_retryable():
    with pytest.raises(ContractViolation) as excinfo:
        check_structure("[1, 2, 3]")
    assert excinfo.value.retryable is True


def test_cancelled_before_checks_raises(spec_payload):
    cancel = threading.Event()
    cancel.set()

    with pytest.raises(OperationCancelled) as excinfo:
        check_structure(spec_payload, cancel=cancel)
    assert excinfo.value.stage == "structural-validation"

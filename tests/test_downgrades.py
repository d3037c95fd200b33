import pytest

from specgate.contract.errors import ContractViolation
from specgate.contract.models import ValidationIssue
from specgate.validation.downgrades import apply_downgrades
from specgate.validation.structural import check_structure


def _recase(idx, fix):
    return ValidationIssue(
        rule_id="PCF_NAMING_003",
        category="pcf-compliance",
        severity="warning",
        message="m",
        auto_fixable=True,
        fix=fix,
        subject=f"properties[{idx}].name",
    )


def test_no_applicable_downgrades_returns_same_object(spec_payload):
    spec = check_structure(spec_payload)
    manual = ValidationIssue(rule_id="X", category="c", severity="warning", message="m", subject="properties[0].name")

    assert apply_downgrades(spec, ()) is spec
    assert apply_downgrades(spec, [manual]) is spec


def test_renames_only_targeted_properties(spec_payload):
    spec = check_structure(spec_payload)

    fixed = apply_downgrades(spec, [_recase(1, "maxRating")])

    assert [prop.name for prop in fixed.properties] == ["value", "maxRating"]
    assert fixed.properties[0] is spec.properties[0]
    assert fixed.component_name == spec.component_name


def test_out_of_range_subject_fails(spec_payload):
    spec = check_structure(spec_payload)
    with pytest.raises(ValueError, match=r"Downgrade subject out of range: properties\[7\]\.name"):
        apply_downgrades(spec, [_recase(7, "x")])


def test_fix_colliding_with_existing_name_is_refused(spec_payload):
    spec = check_structure(spec_payload)

    with pytest.raises(ContractViolation, match=r"would duplicate property name\(s\): value") as excinfo:
        apply_downgrades(spec, [_recase(1, "value")])
    assert excinfo.value.code == "DOWNGRADE_NAME_COLLISION"

import dataclasses
import threading

import pytest

from rulekit import RuleRegistry
from specgate.contract.errors import OperationCancelled

from specgate.contract.models import Property
from specgate.validation.downgrades import apply_downgrades
from specgate.validation.rules import RuleSettings, camel_case_fix, get_rule_registry, validate_rules
from specgate.validation.structural import check_structure


def _rule_ids(issues):
    return [issue.rule_id for issue in issues]


def test_registry_is_fixed_and_versioned():
    registry = get_rule_registry()

    assert registry is get_rule_registry()
    assert registry.version == "1.0"
    assert len(registry) == 11
    assert "PCF_NAMING_003" in registry.available()


def test_valid_spec_passes_every_rule(spec_payload, star_rating):
    spec = check_structure(spec_payload)

    result = validate_rules(spec, capability=star_rating)

    assert result.is_valid
    assert result.errors == ()
    assert result.total_rules == 11
    assert result.executed_rules == 11
    assert result.passed_rules == 11
    assert all(audit.passed for audit in result.outcomes)


def test_property_name_is_downgraded_never_an_error(spec_payload, star_rating):
    spec_payload["properties"][1]["name"] = "Output1"
    spec = check_structure(spec_payload)

    result = validate_rules(spec, capability=star_rating)

    assert result.is_valid
    (downgrade,) = result.downgrades
    assert downgrade.rule_id == "PCF_NAMING_003"
    assert downgrade.auto_fixable is True
    assert downgrade.message == "Property name 'Output1' should be camelCase"
    assert downgrade.suggestion == "Convert to camelCase: output1"
    assert downgrade.subject == "properties[1].name"

    fixed = apply_downgrades(spec, result.downgrades)
    assert [prop.name for prop in fixed.properties] == ["value", "output1"]
    assert spec.properties[1].name == "Output1"


@pytest.mark.parametrize(
    "name, expected",
    [
        ("Output1", "output1"),
        ("my_prop", "myProp"),
        ("Max-Value", "maxValue"),
        ("URL", "uRL"),
        ("2fast", "fast"),
        ("___", None),
    ],
)
def test_camel_case_fix(name, expected):
    assert camel_case_fix(name) == expected


def test_missing_bound_property_is_an_error_for_input_capabilities(spec_payload, star_rating):
    spec_payload["properties"][0]["usage"] = "input"
    spec = check_structure(spec_payload)

    result = validate_rules(spec, capability=star_rating)

    assert not result.is_valid
    assert _rule_ids(result.errors) == ["PCF_BINDING_001"]
    assert "classification: input" in result.errors[0].message
    assert result.passed_rules == result.total_rules - 1


def test_binding_is_not_required_for_other_classifications(spec_payload, star_rating):
    spec_payload["properties"][0]["usage"] = "input"
    spec = check_structure(spec_payload)
    layout = dataclasses.replace(star_rating, classification="layout")

    assert validate_rules(spec, capability=layout).is_valid
    # Without a matched capability binding is always required.
    assert _rule_ids(validate_rules(spec).errors) == ["PCF_BINDING_001"]

    settings = RuleSettings(binding_required_classifications=())
    assert validate_rules(spec, capability=star_rating, settings=settings).is_valid


def test_naming_and_manifest_errors_all_fire_together(spec_payload, star_rating):
    spec_payload["componentName"] = "starRating"
    spec_payload["namespace"] = "contoso"
    spec_payload["displayName"] = "x" * 101
    spec_payload["description"] = "short"
    spec = check_structure(spec_payload)

    result = validate_rules(spec, capability=star_rating)

    assert _rule_ids(result.errors) == [
        "PCF_NAMING_001",
        "PCF_NAMING_002",
        "PCF_MANIFEST_001",
        "PCF_MANIFEST_002",
    ]
    assert result.passed_rules == 7
    assert result.errors[3].message == "Description must be between 10-500 characters (got 5)"


def test_property_count_over_soft_ceiling_only_warns(spec_payload, star_rating):
    spec = check_structure(spec_payload)
    extra = tuple(
        Property(name=f"extra{idx}", display_name=f"Extra {idx}", data_type="SingleLine.Text", usage="input")
        for idx in range(3)
    )
    spec = dataclasses.replace(spec, properties=spec.properties + extra)

    result = validate_rules(spec, capability=star_rating, settings=RuleSettings(property_soft_ceiling=4))

    assert result.is_valid
    assert _rule_ids(result.warnings) == ["PCF_PERF_002"]
    assert result.warnings[0].message == "Component has 5 properties (recommended: <= 4)"


def test_invalid_usage_and_duplicates_are_errors(spec_payload, star_rating):
    spec_payload["properties"][1]["usage"] = "readonly"
    spec_payload["properties"].append(dict(spec_payload["properties"][0]))
    spec = check_structure(spec_payload)

    result = validate_rules(spec, capability=star_rating)

    assert _rule_ids(result.errors) == ["PCF_PROP_001", "PCF_PROP_002"]
    assert result.errors[0].alternatives == ("bound", "input", "output")
    assert result.errors[1].message == "Property name 'value' is declared 2 times"


def test_missing_code_resource_warns_and_missing_display_name_is_info(spec_payload, star_rating):
    spec_payload["resources"] = {"code": ""}
    spec_payload["properties"][1]["displayName"] = ""
    spec = check_structure(spec_payload)

    result = validate_rules(spec, capability=star_rating)

    assert result.is_valid
    assert _rule_ids(result.warnings) == ["PCF_RES_001"]
    assert _rule_ids(result.infos) == ["PCF_A11Y_001"]


def test_results_are_recomputed_per_call(spec_payload, star_rating):
    good = check_structure(spec_payload)
    spec_payload["componentName"] = "bad name"
    bad = check_structure(spec_payload)

    assert not validate_rules(bad, capability=star_rating).is_valid
    assert validate_rules(good, capability=star_rating).is_valid


def test_explicit_empty_registry_is_not_replaced_by_default(spec_payload, star_rating):
    spec_payload["componentName"] = "bad name"
    spec = check_structure(spec_payload)

    result = validate_rules(spec, capability=star_rating, registry=RuleRegistry.from_refs([], version="0.1"))

    assert result.is_valid
    assert result.total_rules == 0
    assert result.outcomes == ()


def test_cancelled_rule_validation_raises_before_evaluation(spec_payload, star_rating):
    spec = check_structure(spec_payload)
    cancel = threading.Event()
    cancel.set()

    with pytest.raises(OperationCancelled) as excinfo:
        validate_rules(spec, capability=star_rating, cancel=cancel)
    assert excinfo.value.stage == "rules-validation"

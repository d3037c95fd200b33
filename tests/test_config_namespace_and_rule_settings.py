import pytest

from rulekit import ConfigNamespace
from specgate.validation.rules import DEFAULT_PROPERTY_SOFT_CEILING, RuleSettings


def test_config_namespace_get_bool_is_strict():
    ns = ConfigNamespace({"enabled": "false"}, path="rules.params.PCF_PERF_002")
    with pytest.raises(TypeError, match=r"must be a boolean"):
        ns.get_bool("enabled")


def test_config_namespace_get_int_is_strict_and_validates_constraints():
    ns = ConfigNamespace({"count": 2.0}, path="rules.params.PCF_PERF_002")
    with pytest.raises(TypeError, match=r"must be an int"):
        ns.get_int("count")

    ns2 = ConfigNamespace({"count": 2}, path="rules.params.PCF_PERF_002")
    with pytest.raises(ValueError, match=r"must be >= 3"):
        ns2.get_int("count", min_value=3)
    with pytest.raises(ValueError, match=r"must be <= 1"):
        ns2.get_int("count", max_value=1)


def test_config_namespace_get_str_choices():
    ns = ConfigNamespace({"mode": "loud"}, path="capabilities")
    with pytest.raises(ValueError, match=r"must be one of: advisory, enforce"):
        ns.get_str("mode", choices=("advisory", "enforce"))


def test_config_namespace_unknown_keys_name_the_rule():
    ns = ConfigNamespace({"max_properties": 3, "typo": True}, path="rules.params.PCF_PERF_002")
    ns.get_int("max_properties")
    assert ns.consumed_keys() == ("max_properties",)
    assert ns.unconsumed_keys() == ("typo",)
    with pytest.raises(ValueError, match=r"Unknown config keys under rules\.params\.PCF_PERF_002: typo \(rule: PCF_PERF_002"):
        ns.assert_consumed()


def test_config_namespace_effective_values_include_children():
    ns = ConfigNamespace({"params": {"PCF_PERF_002": {"max_properties": 4}}}, path="rules")
    ns.namespace("params").namespace("PCF_PERF_002").get_int("max_properties")
    ns.get_list_str("binding_required_classifications", default=["input"])

    assert ns.effective_values() == {
        "binding_required_classifications": ["input"],
        "params": {"PCF_PERF_002": {"max_properties": 4}},
    }
    ns.assert_consumed()


def test_rule_settings_defaults():
    settings = RuleSettings.from_mapping(None)
    assert settings.property_soft_ceiling == DEFAULT_PROPERTY_SOFT_CEILING
    assert settings.binding_required_classifications == ("input", "display")


def test_rule_settings_parse_rule_params():
    settings = RuleSettings.from_mapping(
        {
            "binding_required_classifications": [],
            "params": {"PCF_PERF_002": {"max_properties": 3}},
        }
    )
    assert settings.property_soft_ceiling == 3
    assert settings.binding_required_classifications == ()


def test_rule_settings_reject_unknown_rule_params():
    with pytest.raises(ValueError, match=r"rule: PCF_PERF_002"):
        RuleSettings.from_mapping({"params": {"PCF_PERF_002": {"max_props": 3}}})

    with pytest.raises(ValueError, match=r"Unknown config keys under rules: property_ceiling"):
        RuleSettings.from_mapping({"property_ceiling": 3})

    with pytest.raises(ValueError, match=r"must be >= 1"):
        RuleSettings.from_mapping({"params": {"PCF_PERF_002": {"max_properties": 0}}})

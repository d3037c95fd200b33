import json
import logging
import threading

import pytest

from specgate.contract.errors import OperationCancelled
from specgate.validation.trust_boundary import TrustBoundaryGate, Verdict


def test_valid_payload_is_approved(spec_payload, star_rating):
    decision = TrustBoundaryGate().evaluate(json.dumps(spec_payload), expected_capability=star_rating)

    assert decision.verdict is Verdict.APPROVE
    assert decision.is_trusted
    assert decision.reason == "All trust boundary checks passed"
    assert decision.specification is not None
    assert decision.validation.total_rules == 16
    assert decision.validation.passed_rules == 16


def test_self_reported_success_is_ignored(spec_payload, star_rating):
    spec_payload["validation"] = {"rulesApplied": ["PCF_NAMING_001"], "warnings": [], "downgrades": []}
    spec_payload["componentName"] = "not pascal"

    decision = TrustBoundaryGate().evaluate(spec_payload, expected_capability=star_rating)

    assert decision.verdict is Verdict.REJECT


def test_capability_mismatch_rejects_before_rules(spec_payload, star_rating):
    spec_payload["capabilities"]["capabilityId"] = "text-display"

    decision = TrustBoundaryGate().evaluate(spec_payload, expected_capability=star_rating)

    assert decision.verdict is Verdict.REJECT
    assert decision.validation is None
    (error,) = decision.errors
    assert error["code"] == "CAPABILITY_MISMATCH"
    assert error["stage"] == "trust-boundary"
    assert error["message"] == "Capability ID mismatch: expected 'star-rating', got 'text-display'"


def test_malformed_json_requests_retry(star_rating):
    decision = TrustBoundaryGate().evaluate('{"componentType": ', expected_capability=star_rating)

    assert decision.verdict is Verdict.RETRY
    assert decision.errors[0]["code"] == "SPEC_DECODE_FAILED"


def test_structural_violations_are_rejected_not_retried(spec_payload, star_rating):
    spec_payload["properties"] = [None]

    decision = TrustBoundaryGate().evaluate(spec_payload, expected_capability=star_rating)

    assert decision.verdict is Verdict.REJECT
    assert decision.errors[0]["code"] == "SPEC_PROPERTY_NULL"
    assert decision.errors[0]["stage"] == "structural-validation"


def test_rule_and_capability_errors_are_aggregated_with_stage_tags(spec_payload, star_rating):
    spec_payload["namespace"] = "contoso"
    spec_payload["capabilities"]["customizations"]["stars"] = 15

    decision = TrustBoundaryGate().evaluate(spec_payload, expected_capability=star_rating)

    assert decision.verdict is Verdict.REJECT
    assert decision.reason == "Validation failed: 2 error(s)"
    assert [(e["code"], e["stage"]) for e in decision.errors] == [
        ("PCF_NAMING_002", "rules-validation"),
        ("CAP_LIMIT_001", "capability-validation"),
    ]
    assert all(e["suggestion"] for e in decision.errors)


def test_downgrades_do_not_block_approval(spec_payload, star_rating):
    spec_payload["properties"][1]["name"] = "Output1"

    decision = TrustBoundaryGate().evaluate(spec_payload, expected_capability=star_rating)

    assert decision.verdict is Verdict.APPROVE
    assert [issue.rule_id for issue in decision.validation.downgrades] == ["PCF_NAMING_003"]


def test_cancelled_before_start_raises(spec_payload, star_rating):
    cancel = threading.Event()
    cancel.set()

    with pytest.raises(OperationCancelled) as excinfo:
        TrustBoundaryGate().evaluate(spec_payload, expected_capability=star_rating, cancel=cancel)
    assert excinfo.value.stage == "trust-boundary"


def test_gate_logs_one_json_event_per_decision(spec_payload, star_rating, caplog):
    caplog.set_level(logging.INFO, logger="specgate.validation.trust_boundary")

    TrustBoundaryGate(build_id="build_0123456789abcdef").evaluate(spec_payload, expected_capability=star_rating)

    events = [json.loads(r.getMessage()) for r in caplog.records if r.name == "specgate.validation.trust_boundary"]
    (event,) = events
    assert event["step"] == "TrustBoundaryGate"
    assert event["status"] == "approve"
    assert event["buildId"] == "build_0123456789abcdef"
    assert event["metadata"]["totalRules"] == 16


def test_unsupported_version_rejects_before_any_rule_runs(spec_payload, star_rating):
    spec_payload["version"] = "2.0"

    decision = TrustBoundaryGate().evaluate(spec_payload, expected_capability=star_rating)

    assert decision.verdict is Verdict.REJECT
    assert decision.validation is None
    (error,) = decision.errors
    assert error["code"] == "SPEC_VERSION_UNSUPPORTED"
    assert error["stage"] == "structural-validation"


def test_recasing_that_duplicates_a_property_name_is_rejected(spec_payload, star_rating):
    spec_payload["properties"][1]["name"] = "Value"

    decision = TrustBoundaryGate().evaluate(spec_payload, expected_capability=star_rating)

    assert decision.verdict is Verdict.REJECT
    assert [issue.rule_id for issue in decision.validation.downgrades] == ["PCF_NAMING_003"]
    (error,) = decision.errors
    assert error["code"] == "DOWNGRADE_NAME_COLLISION"
    assert error["stage"] == "rules-validation"
    assert error["details"] == {"collisions": {"value": ["value", "Value"]}}

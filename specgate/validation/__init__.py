from specgate.validation.capability_bounds import (
    allowed_limit_key,
    max_limit_key,
    scan_generated_sources,
    validate_capability_bounds,
)
from specgate.validation.downgrades import apply_downgrades
from specgate.validation.rules import (
    RULE_REGISTRY_VERSION,
    RuleContext,
    RuleSettings,
    camel_case_fix,
    get_rule_registry,
    validate_rules,
)
from specgate.validation.structural import check_structure
from specgate.validation.trust_boundary import TrustBoundaryGate, TrustDecision, Verdict

__all__ = [
    "RULE_REGISTRY_VERSION",
    "RuleContext",
    "RuleSettings",
    "TrustBoundaryGate",
    "TrustDecision",
    "Verdict",
    "allowed_limit_key",
    "apply_downgrades",
    "camel_case_fix",
    "check_structure",
    "get_rule_registry",
    "max_limit_key",
    "scan_generated_sources",
    "validate_capability_bounds",
    "validate_rules",
]

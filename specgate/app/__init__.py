from specgate.app.pipeline import (
    GovernanceOutcome,
    enforce_forbidden_behaviors,
    run_governance,
    verify_generated_output,
)

__all__ = ["GovernanceOutcome", "enforce_forbidden_behaviors", "run_governance", "verify_generated_output"]

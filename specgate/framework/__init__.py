"""Runtime plumbing shared by the gate.

Common entrypoints:

- `specgate.framework.config`: typed `GateConfig` parsing
- `specgate.framework.capabilities`: read-only capability registry loading
- `specgate.framework.retry`: bounded retries for transient generator failures
- `specgate.framework.runtime`: cooperative cancellation

For the app-agnostic rule kernel, use `rulekit`.
"""

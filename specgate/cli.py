from __future__ import annotations

import argparse
import json
import os
import sys
from collections.abc import Sequence
from typing import Any

EXIT_APPROVE = 0
EXIT_REJECT = 1
EXIT_RETRY = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="specgate", add_help=True)
    parser.add_argument("--config", default=None, help="Path to a config YAML/JSON file")
    sub = parser.add_subparsers(dest="command", required=True)

    validate = sub.add_parser("validate", help="Run the trust boundary gate on a generated specification")
    validate.add_argument("spec", help="Path to the generated specification JSON")
    validate.add_argument("--capability", required=True, help="Capability id selected for this request")
    validate.add_argument("--registry", default=None, help="Capability registry file or directory")

    plan = sub.add_parser("plan", help="Validate a specification and print its execution plan")
    plan.add_argument("spec", help="Path to the generated specification JSON")
    plan.add_argument("--capability", required=True, help="Capability id selected for this request")
    plan.add_argument("--registry", default=None, help="Capability registry file or directory")
    plan.add_argument("--intent", default=None, help="Path to the intent JSON (defaults to the capability)")
    plan.add_argument("--templates", default=None, help="Templates directory used for template resolution")
    plan.add_argument("--strategy", choices=("deterministic", "unique"), default=None, help="Build id strategy")

    scan = sub.add_parser("scan", help="Scan generated sources for the capability's forbidden behaviors")
    scan.add_argument("files", nargs="+", help="Generated source files")
    scan.add_argument("--capability", required=True, help="Capability id selected for this request")
    scan.add_argument("--registry", default=None, help="Capability registry file or directory")
    scan.add_argument(
        "--mode",
        choices=("advisory", "enforce"),
        default=None,
        help="Override capabilities.forbidden_behavior_mode",
    )

    sub.add_parser("list-rules", help="List registered validation rules")

    return parser


def _setup_logging(cfg: Any) -> None:
    from specgate.foundation.logging_utils import setup_logger

    setup_logger("specgate", level=cfg.logging.level, log_path=cfg.logging.log_path)


def _load_gate_config(path: str | None):
    from specgate.foundation.config_io import DEFAULT_ENV_VAR, load_config
    from specgate.framework.config import GateConfig

    if path is None and not os.environ.get(DEFAULT_ENV_VAR, "").strip():
        gate_cfg = GateConfig()
        _setup_logging(gate_cfg)
        return gate_cfg
    cfg, _meta = load_config(config_path=path)
    gate_cfg, warnings = GateConfig.from_dict(cfg)
    _setup_logging(gate_cfg)
    for warning in warnings:
        print(f"warning: {warning}", file=sys.stderr)
    return gate_cfg


def _read_text(path: str) -> str:
    with open(path, "r", encoding="utf-8") as handle:
        return handle.read()


def _resolve_capability(args: argparse.Namespace, registry_path: str | None):
    from specgate.framework.capabilities import load_capability_registry

    path = args.registry or registry_path
    if not path:
        raise SystemExit("error: no capability registry (pass --registry or set capabilities.registry_path)")
    return load_capability_registry(path).get(args.capability)


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, indent=2, sort_keys=True, default=str))


def _verdict_exit_code(verdict: Any) -> int:
    from specgate.validation.trust_boundary import Verdict

    if verdict is Verdict.APPROVE:
        return EXIT_APPROVE
    if verdict is Verdict.RETRY:
        return EXIT_RETRY
    return EXIT_REJECT


def _cmd_validate(args: argparse.Namespace) -> int:
    from specgate.validation.trust_boundary import TrustBoundaryGate

    cfg = _load_gate_config(args.config)
    capability = _resolve_capability(args, cfg.capabilities.registry_path)
    decision = TrustBoundaryGate(rule_settings=cfg.rules).evaluate(
        _read_text(args.spec), expected_capability=capability
    )
    _print_json(decision.to_dict())
    return _verdict_exit_code(decision.verdict)


def _cmd_plan(args: argparse.Namespace) -> int:
    from specgate.contract.decode import decode_intent, load_json_payload
    from specgate.contract.models import Intent
    from specgate.planning.build_ids import get_build_id_strategy
    from specgate.planning.plan_builder import TemplateCatalog, build_execution_plan
    from specgate.validation.downgrades import apply_downgrades
    from specgate.validation.trust_boundary import TrustBoundaryGate, Verdict

    cfg = _load_gate_config(args.config)
    capability = _resolve_capability(args, cfg.capabilities.registry_path)
    if args.intent:
        intent = decode_intent(load_json_payload(_read_text(args.intent)))
    else:
        intent = Intent(classification=capability.classification, component_type=capability.capability_id)

    decision = TrustBoundaryGate(rule_settings=cfg.rules).evaluate(
        _read_text(args.spec), expected_capability=capability
    )
    if decision.verdict is not Verdict.APPROVE:
        _print_json(decision.to_dict())
        return _verdict_exit_code(decision.verdict)

    assert decision.specification is not None and decision.validation is not None
    templates_dir = args.templates or cfg.planning.templates_dir
    plan = build_execution_plan(
        apply_downgrades(decision.specification, decision.validation.downgrades),
        intent=intent,
        capability=capability,
        build_ids=get_build_id_strategy(args.strategy or cfg.planning.build_id_strategy),
        templates=TemplateCatalog.from_directory(templates_dir) if templates_dir else None,
        validation_report=decision.validation,
    )
    _print_json(plan.to_dict())
    return EXIT_APPROVE


def _cmd_scan(args: argparse.Namespace) -> int:
    from specgate.app.pipeline import enforce_forbidden_behaviors

    cfg = _load_gate_config(args.config)
    capability = _resolve_capability(args, cfg.capabilities.registry_path)
    files = {path: _read_text(path) for path in args.files}
    result = enforce_forbidden_behaviors(files, capability, mode=args.mode, config=cfg)
    _print_json(result.to_dict())
    return EXIT_APPROVE


def _cmd_list_rules() -> int:
    from specgate.validation.capability_bounds import get_capability_rule_registry
    from specgate.validation.rules import get_rule_registry

    for registry in (get_rule_registry(), get_capability_rule_registry()):
        print(f"# registry version {registry.version} ({len(registry)} rules)")
        for row in registry.describe():
            fixable = " auto-fix" if row["auto_fixable"] else ""
            print(f"{row['rule_id']:<20} {row['severity']:<8} {row['category']:<12}{fixable}  {row['message']}")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    from specgate.contract.errors import GateError

    args = build_parser().parse_args(list(argv) if argv is not None else None)

    try:
        if args.command == "validate":
            return _cmd_validate(args)

        if args.command == "plan":
            return _cmd_plan(args)

        if args.command == "scan":
            return _cmd_scan(args)
    except GateError as exc:
        _print_json({"error": exc.to_dict()})
        return EXIT_RETRY if exc.retryable else EXIT_REJECT

    if args.command == "list-rules":
        return _cmd_list_rules()

    raise AssertionError(f"Unhandled command: {args.command}")


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main(sys.argv[1:]))

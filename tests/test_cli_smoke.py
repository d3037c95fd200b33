import json
from pathlib import Path

from specgate import cli

REPO_ROOT = Path(__file__).resolve().parents[1]
REGISTRY = str(REPO_ROOT / "registry" / "capabilities")


def _write_spec(tmp_path, payload) -> str:
    path = tmp_path / "spec.json"
    path.write_text(payload if isinstance(payload, str) else json.dumps(payload), encoding="utf-8")
    return str(path)


def test_cli_list_rules_smoke(capsys):
    rc = cli.main(["list-rules"])
    assert rc == 0

    out = capsys.readouterr().out
    assert "PCF_NAMING_003" in out
    assert "auto-fix" in out
    assert "CAP_LIMIT_001" in out


def test_cli_validate_exit_codes(tmp_path, spec_payload, monkeypatch, capsys):
    monkeypatch.delenv("SPECGATE_CONFIG", raising=False)

    rc = cli.main(["validate", _write_spec(tmp_path, spec_payload), "--capability", "star-rating", "--registry", REGISTRY])
    assert rc == cli.EXIT_APPROVE
    assert json.loads(capsys.readouterr().out)["verdict"] == "approve"

    spec_payload["capabilities"]["customizations"]["stars"] = 15
    rc = cli.main(["validate", _write_spec(tmp_path, spec_payload), "--capability", "star-rating", "--registry", REGISTRY])
    assert rc == cli.EXIT_REJECT
    report = json.loads(capsys.readouterr().out)
    assert report["errors"][0]["code"] == "CAP_LIMIT_001"

    rc = cli.main(["validate", _write_spec(tmp_path, "{truncated"), "--capability", "star-rating", "--registry", REGISTRY])
    assert rc == cli.EXIT_RETRY


def test_cli_unknown_capability_is_reported(tmp_path, spec_payload, monkeypatch, capsys):
    monkeypatch.delenv("SPECGATE_CONFIG", raising=False)

    rc = cli.main(["validate", _write_spec(tmp_path, spec_payload), "--capability", "star-ratng", "--registry", REGISTRY])

    assert rc == cli.EXIT_REJECT
    error = json.loads(capsys.readouterr().out)["error"]
    assert error["code"] == "CAPABILITY_NOT_FOUND"
    assert error["alternatives"] == ["star-rating"]


def test_cli_plan_uses_config_file(tmp_path, spec_payload, capsys):
    log_path = tmp_path / "logs" / "specgate.log"
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        "\n".join(
            [
                "capabilities:",
                f"  registry_path: '{Path(REGISTRY).as_posix()}'",
                "planning:",
                f"  templates_dir: '{(REPO_ROOT / 'templates').as_posix()}'",
                "  build_id_strategy: unique",
                "logging:",
                f"  log_path: '{log_path.as_posix()}'",
            ]
        ),
        encoding="utf-8",
    )

    rc = cli.main(["--config", str(config_path), "plan", _write_spec(tmp_path, spec_payload), "--capability", "star-rating"])

    assert rc == 0
    plan = json.loads(capsys.readouterr().out)
    assert plan["buildIdStrategy"] == "unique"
    assert [step["order"] for step in plan["steps"]] == list(range(1, 9))
    assert plan["steps"][3]["templateRef"] == "star-rating/index.ts.hbs"
    assert "plan.template_fallback" in log_path.read_text(encoding="utf-8")


def test_cli_scan_follows_configured_mode(tmp_path, capsys):
    source = tmp_path / "index.ts"
    source.write_text("fetch('https://example.com')\n", encoding="utf-8")
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        "\n".join(
            [
                "capabilities:",
                f"  registry_path: '{Path(REGISTRY).as_posix()}'",
                "  forbidden_behavior_mode: enforce",
            ]
        ),
        encoding="utf-8",
    )

    rc = cli.main(["--config", str(config_path), "scan", str(source), "--capability", "star-rating"])
    assert rc == cli.EXIT_REJECT
    assert json.loads(capsys.readouterr().out)["error"]["code"] == "CAP_FORBIDDEN_ENFORCED"

    rc = cli.main(
        ["--config", str(config_path), "scan", str(source), "--capability", "star-rating", "--mode", "advisory"]
    )
    assert rc == cli.EXIT_APPROVE
    assert json.loads(capsys.readouterr().out)["errors"][0]["ruleId"] == "CAP_FORBIDDEN_002"

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Mapping

from specgate.validation.rules import RuleSettings

ForbiddenBehaviorMode = Literal["advisory", "enforce"]
BuildIdStrategyName = Literal["deterministic", "unique"]

_RULES_PASSTHROUGH: object = object()


@dataclass(frozen=True)
class CapabilityConfig:
    registry_path: str | None = None
    forbidden_behavior_mode: ForbiddenBehaviorMode = "advisory"


@dataclass(frozen=True)
class GenerationConfig:
    max_attempts: int = 3
    initial_delay_seconds: float = 0.5
    backoff_factor: float = 2.0


@dataclass(frozen=True)
class PlanningConfig:
    templates_dir: str | None = None
    build_id_strategy: BuildIdStrategyName = "deterministic"


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"
    log_path: str | None = None


def parse_bool(value: Any, path: str) -> bool:
    """
    Strict boolean parsing to avoid bool('false') footguns.

    Accepts True/False, 0/1 and the strings true/false/1/0/yes/no
    (case-insensitive); raises ValueError naming the config path otherwise.
    """

    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in {"true", "1", "yes"}:
            return True
        if normalized in {"false", "0", "no"}:
            return False
    raise ValueError(f"Invalid boolean for {path}: {value!r}")


def parse_int(value: Any, path: str, *, min_value: int | None = None) -> int:
    if value is None:
        raise ValueError(f"Invalid config value for {path}: None")
    if isinstance(value, bool):
        raise ValueError(f"Invalid config type for {path}: expected int, got bool")
    if isinstance(value, int):
        parsed = value
    elif isinstance(value, str) and value.strip():
        try:
            parsed = int(value.strip())
        except ValueError as exc:
            raise ValueError(f"Invalid config value for {path}: must be an int") from exc
    else:
        raise ValueError(f"Invalid config type for {path}: expected int")
    if min_value is not None and parsed < min_value:
        raise ValueError(f"Invalid config value for {path}: must be >= {min_value}")
    return parsed


def parse_float(value: Any, path: str, *, min_value: float | None = None) -> float:
    if value is None:
        raise ValueError(f"Invalid config value for {path}: None")
    if isinstance(value, bool):
        raise ValueError(f"Invalid config type for {path}: expected float, got bool")
    if isinstance(value, (int, float)):
        parsed = float(value)
    elif isinstance(value, str) and value.strip():
        try:
            parsed = float(value.strip())
        except ValueError as exc:
            raise ValueError(f"Invalid config value for {path}: must be a float") from exc
    else:
        raise ValueError(f"Invalid config type for {path}: expected float")
    if min_value is not None and parsed < min_value:
        raise ValueError(f"Invalid config value for {path}: must be >= {min_value}")
    return parsed


def _parse_choice(value: Any, path: str, choices: tuple[str, ...]) -> str:
    if not isinstance(value, str) or value.strip().lower() not in choices:
        raise ValueError(f"Invalid config value for {path}: must be one of {', '.join(choices)} (got {value!r})")
    return value.strip().lower()


def _optional_path(value: Any, path: str) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError(f"Invalid config type for {path}: expected string path")
    return value.strip() or None


def _section(cfg: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    raw = cfg.get(key)
    if raw is None:
        return {}
    if not isinstance(raw, Mapping):
        raise ValueError(f"Config section {key} must be a mapping (type={type(raw).__name__})")
    return raw


@dataclass(frozen=True)
class GateConfig:
    rules: RuleSettings = field(default_factory=RuleSettings)
    capabilities: CapabilityConfig = field(default_factory=CapabilityConfig)
    generation: GenerationConfig = field(default_factory=GenerationConfig)
    planning: PlanningConfig = field(default_factory=PlanningConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    strict: bool = False

    @staticmethod
    def from_dict(cfg: Mapping[str, Any]) -> tuple["GateConfig", list[str]]:
        """
        Parse and validate configuration, returning (GateConfig, warnings).

        Unknown keys produce warnings, or a ValueError when `strict: true`.
        The `rules` section is owned by the rule catalog and always strict.
        """

        if not isinstance(cfg, Mapping):
            raise ValueError("Config must be a mapping")

        strict = parse_bool(cfg.get("strict"), "strict") if "strict" in cfg else False

        schema: Mapping[str, Any] = {
            "strict": None,
            "rules": _RULES_PASSTHROUGH,
            "capabilities": {"registry_path": None, "forbidden_behavior_mode": None},
            "generation": {"max_attempts": None, "initial_delay_seconds": None, "backoff_factor": None},
            "planning": {"templates_dir": None, "build_id_strategy": None},
            "logging": {"level": None, "log_path": None},
        }

        unknown: list[str] = []
        for key, value in cfg.items():
            if key not in schema:
                unknown.append(str(key))
                continue
            subschema = schema[key]
            if isinstance(subschema, Mapping) and isinstance(value, Mapping):
                unknown.extend(f"{key}.{sub}" for sub in value.keys() if sub not in subschema)

        warnings: list[str] = []
        if unknown:
            if strict:
                raise ValueError(f"Unknown config keys: {', '.join(sorted(unknown))}")
            warnings.extend(f"Unknown config key: {key}" for key in sorted(unknown))

        rules = RuleSettings.from_mapping(_section(cfg, "rules"))

        capabilities_raw = _section(cfg, "capabilities")
        capabilities = CapabilityConfig(
            registry_path=_optional_path(capabilities_raw.get("registry_path"), "capabilities.registry_path"),
            forbidden_behavior_mode=_parse_choice(  # type: ignore[arg-type]
                capabilities_raw.get("forbidden_behavior_mode", "advisory"),
                "capabilities.forbidden_behavior_mode",
                ("advisory", "enforce"),
            ),
        )

        generation_raw = _section(cfg, "generation")
        generation = GenerationConfig(
            max_attempts=parse_int(generation_raw.get("max_attempts", 3), "generation.max_attempts", min_value=1),
            initial_delay_seconds=parse_float(
                generation_raw.get("initial_delay_seconds", 0.5),
                "generation.initial_delay_seconds",
                min_value=0.0,
            ),
            backoff_factor=parse_float(
                generation_raw.get("backoff_factor", 2.0), "generation.backoff_factor", min_value=1.0
            ),
        )

        planning_raw = _section(cfg, "planning")
        planning = PlanningConfig(
            templates_dir=_optional_path(planning_raw.get("templates_dir"), "planning.templates_dir"),
            build_id_strategy=_parse_choice(  # type: ignore[arg-type]
                planning_raw.get("build_id_strategy", "deterministic"),
                "planning.build_id_strategy",
                ("deterministic", "unique"),
            ),
        )

        logging_raw = _section(cfg, "logging")
        level = logging_raw.get("level", "INFO")
        if not isinstance(level, str) or level.strip().upper() not in {"DEBUG", "INFO", "WARNING", "ERROR"}:
            raise ValueError(f"Invalid config value for logging.level: {level!r}")
        logging_cfg = LoggingConfig(
            level=level.strip().upper(),
            log_path=_optional_path(logging_raw.get("log_path"), "logging.log_path"),
        )

        return (
            GateConfig(
                rules=rules,
                capabilities=capabilities,
                generation=generation,
                planning=planning,
                logging=logging_cfg,
                strict=strict,
            ),
            warnings,
        )

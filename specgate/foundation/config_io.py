from __future__ import annotations

import json
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

DEFAULT_ENV_VAR = "SPECGATE_CONFIG"
BASE_CONFIG_NAME = "config.yaml"
LOCAL_OVERLAY_NAME = "config.local.yaml"


def find_repo_root(start: str | os.PathLike[str] | None = None) -> str:
    start_path = Path(start or os.getcwd()).resolve()
    if start_path.is_file():
        start_path = start_path.parent

    markers = ("pyproject.toml", ".git")
    for candidate in (start_path, *start_path.parents):
        if (candidate / "pyproject.toml").is_file() or (candidate / ".git").exists():
            return str(candidate)

    raise FileNotFoundError(
        f"Cannot locate repo root: searched from {start_path} for {', '.join(markers)}"
    )


def load_document(path: str | os.PathLike[str]) -> Any:
    """Read a YAML or JSON document (JSON is chosen by the .json suffix)."""

    text_path = str(path)
    with open(text_path, "r", encoding="utf-8") as handle:
        if text_path.lower().endswith(".json"):
            try:
                return json.load(handle)
            except json.JSONDecodeError as exc:
                raise ValueError(f"Invalid JSON in {text_path}: {exc}") from exc
        try:
            return yaml.safe_load(handle)
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in {text_path}: {exc}") from exc


def load_mapping(path: str | os.PathLike[str]) -> dict[str, Any]:
    payload = load_document(path)
    if payload is None:
        return {}
    if not isinstance(payload, Mapping):
        raise ValueError(f"Config file must contain a mapping: {path}")
    return dict(payload)


def deep_merge(base: Any, overlay: Any, *, path: str = "") -> Any:
    if overlay is None:
        return None
    if base is None:
        return overlay

    where = path or "<root>"
    if isinstance(base, Mapping):
        if not isinstance(overlay, Mapping):
            raise ValueError(
                f"Invalid config overlay merge at {where}: base is mapping but overlay is {type(overlay).__name__}"
            )
        merged: dict[str, Any] = dict(base)
        for key, overlay_value in overlay.items():
            next_path = f"{path}.{key}" if path else str(key)
            merged[key] = deep_merge(base[key], overlay_value, path=next_path) if key in base else overlay_value
        return merged

    if isinstance(base, (list, tuple)):
        if not isinstance(overlay, (list, tuple)):
            raise ValueError(
                f"Invalid config overlay merge at {where}: base is list but overlay is {type(overlay).__name__}"
            )
        return list(overlay)

    if isinstance(overlay, (Mapping, list, tuple)):
        raise ValueError(
            f"Invalid config overlay merge at {where}: base is {type(base).__name__} but overlay is {type(overlay).__name__}"
        )
    return overlay


def load_config(
    *,
    config_path: str | os.PathLike[str] | None = None,
    env_var: str | None = DEFAULT_ENV_VAR,
    config_dir: str = "config",
    start_dir: str | os.PathLike[str] | None = None,
) -> tuple[dict[str, Any], dict[str, Any]]:
    """
    Load the gate configuration, returning (cfg, meta).

    Resolution order:
      1. explicit `config_path`, else the path named by `env_var` (single file, no overlay)
      2. `<repo_root>/<config_dir>/config.yaml` plus an optional `config.local.yaml` overlay
    """

    explicit: str | None = None
    if config_path is not None:
        explicit = str(config_path).strip() or None
    elif env_var:
        explicit = os.environ.get(env_var, "").strip() or None

    if explicit:
        expanded = os.path.abspath(os.path.expandvars(os.path.expanduser(explicit)))
        meta = {
            "mode": "explicit" if config_path is not None else "env",
            "paths": [expanded],
            "env_var": env_var,
            "repo_root": None,
        }
        return load_mapping(expanded), meta

    if os.path.isabs(config_dir):
        directory = config_dir
        repo_root = None
    else:
        repo_root = find_repo_root(start_dir)
        directory = os.path.join(repo_root, config_dir)

    base_path = os.path.join(directory, BASE_CONFIG_NAME)
    overlay_path = os.path.join(directory, LOCAL_OVERLAY_NAME)
    if not os.path.exists(base_path):
        raise FileNotFoundError(f"Missing base config file: {base_path}")

    cfg = load_mapping(base_path)
    paths = [os.path.abspath(base_path)]
    mode = "base"
    if os.path.exists(overlay_path):
        cfg = deep_merge(cfg, load_mapping(overlay_path))
        paths.append(os.path.abspath(overlay_path))
        mode = "base+local"

    return cfg, {"mode": mode, "paths": paths, "env_var": env_var, "repo_root": repo_root}

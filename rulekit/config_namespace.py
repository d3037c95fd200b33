"""Strict, rule-owned settings namespace for `rulekit`."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Iterable

_MISSING = object()

RULE_PARAMS_PREFIX = "rules.params."


def _join_path(parent: str, key: str) -> str:
    if not parent:
        return key
    return f"{parent}.{key}"


def _normalize_key(key: Any) -> str:
    if not isinstance(key, str) or not key.strip():
        raise TypeError("ConfigNamespace key must be a non-empty string")
    return key.strip()


@dataclass
class ConfigNamespace:
    """Typed accessors over a settings mapping with consumed-keys enforcement.

    Every accessor marks its key as consumed and records the effective value, so
    `assert_consumed()` can reject typos instead of silently ignoring them.
    """

    data: Mapping[str, Any]
    path: str
    _consumed: set[str] = field(default_factory=set, init=False, repr=False)
    _children: dict[str, "ConfigNamespace"] = field(default_factory=dict, init=False, repr=False)
    _effective: dict[str, Any] = field(default_factory=dict, init=False, repr=False)

    def consumed_keys(self) -> tuple[str, ...]:
        return tuple(sorted(self._consumed))

    def unconsumed_keys(self) -> tuple[str, ...]:
        return tuple(sorted(k for k in self.data.keys() if k not in self._consumed))

    def assert_consumed(self) -> None:
        unknown = list(self.unconsumed_keys())
        if unknown:
            path = self.path or "<root>"
            consumed = ", ".join(self.consumed_keys()) or "<none>"
            rule_id: str | None = None
            if path.startswith(RULE_PARAMS_PREFIX):
                rule_id = path[len(RULE_PARAMS_PREFIX) :].strip() or None

            if rule_id:
                raise ValueError(
                    f"Unknown config keys under {path}: {', '.join(unknown)} "
                    f"(rule: {rule_id}; consumed: {consumed})"
                )
            raise ValueError(
                f"Unknown config keys under {path}: {', '.join(unknown)} (consumed: {consumed})"
            )
        for child in self._children.values():
            child.assert_consumed()

    def effective_values(self) -> dict[str, Any]:
        out = dict(self._effective)
        for key, child in self._children.items():
            child_effective = child.effective_values()
            if child_effective:
                out[key] = child_effective
        return out

    def _get_raw(self, key: str, *, default: Any) -> Any:
        normalized = _normalize_key(key)
        if normalized in self._children:
            raise ValueError(
                f"{_join_path(self.path, normalized)} already accessed as a nested namespace"
            )

        self._consumed.add(normalized)
        if normalized not in self.data:
            if default is _MISSING:
                raise ValueError(f"Missing required config key: {_join_path(self.path, normalized)}")
            return default
        return self.data.get(normalized)

    def _check_range(
        self,
        key: str,
        value: float,
        *,
        min_value: float | None,
        max_value: float | None,
    ) -> None:
        if min_value is not None and value < min_value:
            raise ValueError(f"{_join_path(self.path, key)} must be >= {min_value} (got {value})")
        if max_value is not None and value > max_value:
            raise ValueError(f"{_join_path(self.path, key)} must be <= {max_value} (got {value})")

    def namespace(self, key: str, *, default: Mapping[str, Any] | None | object = _MISSING) -> "ConfigNamespace":
        normalized = _normalize_key(key)
        if normalized in self._children:
            return self._children[normalized]

        self._consumed.add(normalized)
        raw = self.data.get(normalized) if normalized in self.data else None
        child_path = _join_path(self.path, normalized)
        if raw is None:
            if default is _MISSING:
                raise ValueError(f"Missing required config namespace: {child_path}")
            if default is not None and not isinstance(default, Mapping):
                raise TypeError(f"default for {child_path} must be a mapping or None")
            raw = dict(default or {})

        if not isinstance(raw, Mapping):
            raise TypeError(f"{child_path} must be a mapping (type={type(raw).__name__})")

        child = ConfigNamespace(dict(raw), path=child_path)
        self._children[normalized] = child
        return child

    def get_bool(self, key: str, *, default: bool | object = _MISSING) -> bool:
        normalized = _normalize_key(key)
        if default is not _MISSING and not isinstance(default, bool):
            raise TypeError(f"{_join_path(self.path, normalized)} default must be a boolean")

        value = self._get_raw(normalized, default=default)
        if not isinstance(value, bool):
            raise TypeError(
                f"{_join_path(self.path, normalized)} must be a boolean (type={type(value).__name__})"
            )
        self._effective[normalized] = value
        return value

    def get_int(
        self,
        key: str,
        *,
        default: int | object = _MISSING,
        min_value: int | None = None,
        max_value: int | None = None,
    ) -> int:
        normalized = _normalize_key(key)
        if default is not _MISSING and (isinstance(default, bool) or not isinstance(default, int)):
            raise TypeError(f"{_join_path(self.path, normalized)} default must be an int")

        raw = self._get_raw(normalized, default=default)
        if isinstance(raw, bool) or not isinstance(raw, int):
            raise TypeError(
                f"{_join_path(self.path, normalized)} must be an int (type={type(raw).__name__})"
            )
        self._check_range(normalized, raw, min_value=min_value, max_value=max_value)
        self._effective[normalized] = int(raw)
        return int(raw)

    def get_str(
        self,
        key: str,
        *,
        default: str | None | object = _MISSING,
        choices: Iterable[str] | None = None,
    ) -> str | None:
        normalized = _normalize_key(key)
        if default is not _MISSING and default is not None and not isinstance(default, str):
            raise TypeError(f"{_join_path(self.path, normalized)} default must be a string or None")

        raw = self._get_raw(normalized, default=default)
        if raw is None:
            self._effective[normalized] = None
            return None
        if not isinstance(raw, str):
            raise TypeError(
                f"{_join_path(self.path, normalized)} must be a string (type={type(raw).__name__})"
            )
        value = raw.strip()
        if not value:
            raise ValueError(f"{_join_path(self.path, normalized)} cannot be empty")
        if choices is not None:
            choice_set = {str(item).strip() for item in choices if str(item).strip()}
            if value not in choice_set:
                allowed = ", ".join(sorted(choice_set)) or "<none>"
                raise ValueError(
                    f"{_join_path(self.path, normalized)} must be one of: {allowed} (got {value!r})"
                )
        self._effective[normalized] = value
        return value

    def get_list_str(
        self,
        key: str,
        *,
        default: list[str] | tuple[str, ...] | object = _MISSING,
        allow_empty: bool = False,
    ) -> list[str]:
        normalized = _normalize_key(key)
        if default is not _MISSING and not isinstance(default, (list, tuple)):
            raise TypeError(f"{_join_path(self.path, normalized)} default must be a list[str]")

        raw = self._get_raw(normalized, default=default)
        if not isinstance(raw, (list, tuple)):
            raise TypeError(
                f"{_join_path(self.path, normalized)} must be a list[str] (type={type(raw).__name__})"
            )

        items: list[str] = []
        for idx, item in enumerate(raw):
            if not isinstance(item, str):
                raise TypeError(
                    f"{_join_path(self.path, normalized)}[{idx}] must be a string (type={type(item).__name__})"
                )
            trimmed = item.strip()
            if not trimmed:
                raise ValueError(f"{_join_path(self.path, normalized)}[{idx}] cannot be empty")
            items.append(trimmed)

        if not items and not allow_empty:
            raise ValueError(f"{_join_path(self.path, normalized)} cannot be empty")

        self._effective[normalized] = list(items)
        return items

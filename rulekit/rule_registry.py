from __future__ import annotations

import difflib
from dataclasses import dataclass
from typing import Any, Iterable, Iterator

from rulekit.rule_types import RuleRef


@dataclass(frozen=True)
class RuleRegistry:
    """Fixed, versioned rule table. Iteration follows registration order."""

    version: str
    _refs: tuple[RuleRef, ...]

    @classmethod
    def from_refs(cls, refs: Iterable[RuleRef], *, version: str) -> "RuleRegistry":
        if not isinstance(version, str) or not version.strip():
            raise ValueError("RuleRegistry version must be a non-empty string")
        seen: set[str] = set()
        ordered: list[RuleRef] = []
        for ref in refs:
            if not isinstance(ref, RuleRef):
                raise TypeError(f"RuleRegistry entries must be RuleRef (type={type(ref).__name__})")
            if ref.id in seen:
                raise ValueError(f"Duplicate rule id: {ref.id}")
            seen.add(ref.id)
            ordered.append(ref)
        return cls(version=version.strip(), _refs=tuple(ordered))

    def __len__(self) -> int:
        return len(self._refs)

    def __iter__(self) -> Iterator[RuleRef]:
        return iter(self._refs)

    def available(self) -> tuple[str, ...]:
        return tuple(sorted(ref.id for ref in self._refs))

    def describe(self) -> tuple[dict[str, Any], ...]:
        rows: list[dict[str, Any]] = []
        for ref in self._refs:
            rows.append(
                {
                    "rule_id": ref.id,
                    "category": ref.category,
                    "severity": ref.severity,
                    "auto_fixable": ref.auto_fixable,
                    "message": ref.message,
                    "suggestion": ref.suggestion,
                    "doc": ref.doc,
                    "tags": list(ref.tags),
                }
            )
        return tuple(rows)

    def get(self, rule_id: str) -> RuleRef:
        key = (rule_id or "").strip()
        for ref in self._refs:
            if ref.id == key:
                return ref
        raise ValueError(f"Unknown rule id: {rule_id}")

    def resolve(self, rule_id: str) -> RuleRef:
        if not isinstance(rule_id, str) or not rule_id.strip():
            raise ValueError("rule_id must be a non-empty string")
        key = rule_id.strip().upper()

        for ref in self._refs:
            if ref.id.upper() == key:
                return ref

        matches = sorted(ref.id for ref in self._refs if ref.id.upper().endswith("_" + key))
        if len(matches) == 1:
            return self.get(matches[0])
        if len(matches) > 1:
            raise ValueError(f"Ambiguous rule id: {rule_id} (matches: {', '.join(matches)})")

        available = ", ".join(self.available()) or "<none>"
        raise ValueError(f"Unknown rule id: {rule_id} (available: {available})")

    def suggest(self, rule_id: str, *, limit: int = 3) -> tuple[str, ...]:
        key = (rule_id or "").strip().upper()
        if not key:
            return ()
        return tuple(difflib.get_close_matches(key, list(self.available()), n=limit))

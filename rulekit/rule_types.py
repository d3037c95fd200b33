from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Literal, Mapping, Protocol

Severity = Literal["error", "warning", "info"]
ALLOWED_SEVERITIES: tuple[str, ...] = ("error", "warning", "info")


@dataclass(frozen=True)
class RuleHit:
    """One firing of a rule: template params plus an optional auto-fix."""

    params: Mapping[str, Any] = field(default_factory=dict)
    subject: str | None = None
    fix: str | None = None


class RuleCheck(Protocol):
    def __call__(self, subject: Any, ctx: Any) -> Iterable[RuleHit]:
        ...


@dataclass(frozen=True)
class RuleRef:
    id: str
    category: str
    severity: Severity
    check: RuleCheck
    message: str
    suggestion: str | None = None
    auto_fixable: bool = False
    doc: str | None = None
    tags: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not isinstance(self.id, str) or not self.id.strip():
            raise TypeError("RuleRef.id must be a non-empty string")
        object.__setattr__(self, "id", self.id.strip())

        if not isinstance(self.category, str) or not self.category.strip():
            raise TypeError(f"RuleRef.category must be a non-empty string (rule={self.id})")
        object.__setattr__(self, "category", self.category.strip())

        normalized = str(self.severity).strip().lower()
        if normalized not in ALLOWED_SEVERITIES:
            raise ValueError(
                f"RuleRef.severity must be one of: {', '.join(ALLOWED_SEVERITIES)} "
                f"(rule={self.id}, got {self.severity!r})"
            )
        object.__setattr__(self, "severity", normalized)  # type: ignore[arg-type]

        if not callable(self.check):
            raise TypeError(f"RuleRef.check must be callable (rule={self.id})")
        if not isinstance(self.message, str) or not self.message.strip():
            raise TypeError(f"RuleRef.message must be a non-empty string (rule={self.id})")
        if self.suggestion is not None and (
            not isinstance(self.suggestion, str) or not self.suggestion.strip()
        ):
            raise TypeError(f"RuleRef.suggestion must be a non-empty string or None (rule={self.id})")
        if not isinstance(self.auto_fixable, bool):
            raise TypeError(f"RuleRef.auto_fixable must be a boolean (rule={self.id})")

        if self.tags:
            object.__setattr__(
                self, "tags", tuple(str(tag).strip() for tag in self.tags if str(tag).strip())
            )

    def render_message(self, hit: RuleHit) -> str:
        try:
            return self.message.format(**dict(hit.params))
        except (KeyError, IndexError) as exc:
            raise ValueError(f"Rule message template missing param {exc} (rule={self.id})") from exc

    def render_suggestion(self, hit: RuleHit) -> str | None:
        if self.suggestion is None:
            return None
        try:
            return self.suggestion.format(**dict(hit.params))
        except (KeyError, IndexError) as exc:
            raise ValueError(f"Rule suggestion template missing param {exc} (rule={self.id})") from exc


@dataclass(frozen=True)
class RuleFinding:
    rule_id: str
    category: str
    severity: Severity
    message: str
    suggestion: str | None = None
    auto_fixable: bool = False
    subject: str | None = None
    fix: str | None = None
    details: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class RuleOutcome:
    """Audit record for one rule: recorded for passing rules too."""

    rule_id: str
    severity: Severity
    passed: bool
    findings: tuple[RuleFinding, ...] = ()

from __future__ import annotations

import dataclasses
import logging
import re
from collections import Counter
from typing import Iterable

from specgate.contract.errors import ContractViolation
from specgate.contract.models import Specification, ValidationIssue

logger = logging.getLogger(__name__)

_PROPERTY_NAME_SUBJECT_RE = re.compile(r"^properties\[(\d+)\]\.name$")


def apply_downgrades(spec: Specification, downgrades: Iterable[ValidationIssue]) -> Specification:
    """Return a copy of `spec` with every applicable auto-fix applied.

    Only property re-casing is auto-fixable today; downgrades without a concrete
    fix or with an unknown subject are left for the caller to surface.

    Raises:
      ContractViolation: a re-cased name collides with another property name.
    """

    renames: dict[int, str] = {}
    for issue in downgrades:
        if not issue.auto_fixable or not issue.fix or not issue.subject:
            continue
        match = _PROPERTY_NAME_SUBJECT_RE.match(issue.subject)
        if match is None:
            continue
        idx = int(match.group(1))
        if idx >= len(spec.properties):
            raise ValueError(f"Downgrade subject out of range: {issue.subject} (rule={issue.rule_id})")
        renames[idx] = issue.fix

    if not renames:
        return spec

    properties = tuple(
        dataclasses.replace(prop, name=renames[idx]) if idx in renames else prop
        for idx, prop in enumerate(spec.properties)
    )

    counts = Counter(prop.name for prop in properties)
    collisions = sorted(name for name, count in counts.items() if count > 1)
    if collisions:
        originals = {
            name: [spec.properties[idx].name for idx, prop in enumerate(properties) if prop.name == name]
            for name in collisions
        }
        raise ContractViolation(
            f"Auto-fix would duplicate property name(s): {', '.join(collisions)}",
            code="DOWNGRADE_NAME_COLLISION",
            stage="rules-validation",
            user_message="Two properties differ only in casing and cannot both be re-cased.",
            suggestion="Give each property a distinct camelCase name",
            details={"collisions": originals},
        )

    logger.info("Applied %d property re-casing downgrade(s)", len(renames))
    return dataclasses.replace(spec, properties=properties)

"""Build identifier strategies for execution plans."""

from __future__ import annotations

import hashlib
import json
import re
import uuid
from datetime import datetime
from typing import Protocol

from specgate.contract.models import Capability, Intent
from specgate.contract.versioning import CONTRACT_VERSION

DETERMINISTIC_PREFIX = "build_"
DETERMINISTIC_HASH_CHARS = 16

_DETERMINISTIC_RE = re.compile(rf"^{DETERMINISTIC_PREFIX}[0-9a-f]{{{DETERMINISTIC_HASH_CHARS}}}$")


class BuildIdStrategy(Protocol):
    name: str

    def generate(self, intent: Intent, capability: Capability) -> str: ...


def canonical_intent_json(intent: Intent) -> str:
    return json.dumps(intent.to_dict(), sort_keys=True, separators=(",", ":"), ensure_ascii=False, default=str)


class DeterministicBuildIds:
    """Same intent + capability + contract version always yields the same id."""

    name = "deterministic"

    def generate(self, intent: Intent, capability: Capability) -> str:
        material = "|".join((canonical_intent_json(intent), capability.capability_id, CONTRACT_VERSION))
        digest = hashlib.sha256(material.encode("utf-8")).hexdigest()
        return f"{DETERMINISTIC_PREFIX}{digest[:DETERMINISTIC_HASH_CHARS]}"


class UniqueBuildIds:
    name = "unique"

    def generate(self, intent: Intent, capability: Capability) -> str:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        return f"{timestamp}_{uuid.uuid4()}"


class PinnedBuildIds:
    """Replays an id produced earlier in the same run under its original strategy name."""

    def __init__(self, name: str, build_id: str) -> None:
        self.name = name
        self._build_id = build_id

    def generate(self, intent: Intent, capability: Capability) -> str:
        return self._build_id


_STRATEGIES: dict[str, type] = {
    DeterministicBuildIds.name: DeterministicBuildIds,
    UniqueBuildIds.name: UniqueBuildIds,
}


def get_build_id_strategy(name: str) -> BuildIdStrategy:
    key = (name or "").strip().lower()
    strategy_cls = _STRATEGIES.get(key)
    if strategy_cls is None:
        raise ValueError(f"Unknown build id strategy: {name!r} (expected one of: {', '.join(sorted(_STRATEGIES))})")
    return strategy_cls()


def is_deterministic_build_id(value: str) -> bool:
    return bool(_DETERMINISTIC_RE.match(value or ""))

from __future__ import annotations

import difflib
import logging
import os
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Iterable, Mapping

from specgate.contract.decode import decode_capability
from specgate.contract.errors import CapabilityViolation
from specgate.contract.models import Capability
from specgate.foundation.config_io import load_document

logger = logging.getLogger(__name__)

REGISTRY_SUFFIXES: tuple[str, ...] = (".yaml", ".yml", ".json")


@dataclass(frozen=True)
class CapabilityRegistry:
    """Read-only lookup of capability definitions keyed by capability id."""

    _capabilities: Mapping[str, Capability]

    @staticmethod
    def from_capabilities(capabilities: Iterable[Capability]) -> "CapabilityRegistry":
        by_id: dict[str, Capability] = {}
        for capability in capabilities:
            if capability.capability_id in by_id:
                raise ValueError(f"Duplicate capability id: {capability.capability_id}")
            by_id[capability.capability_id] = capability
        return CapabilityRegistry(MappingProxyType(by_id))

    def __len__(self) -> int:
        return len(self._capabilities)

    def __contains__(self, capability_id: object) -> bool:
        return capability_id in self._capabilities

    def available(self) -> tuple[str, ...]:
        return tuple(sorted(self._capabilities))

    def get(self, capability_id: str) -> Capability:
        key = (capability_id or "").strip()
        capability = self._capabilities.get(key)
        if capability is not None:
            return capability

        suggestions = tuple(difflib.get_close_matches(key, self.available(), n=3, cutoff=0.5))
        hint = f" Did you mean: {', '.join(suggestions)}?" if suggestions else ""
        raise CapabilityViolation(
            f"Unknown capability id: {key!r}.{hint}",
            code="CAPABILITY_NOT_FOUND",
            user_message=f"No capability named '{key}' is registered.",
            suggestion=f"Choose one of: {', '.join(suggestions or self.available()[:5])}"
            if self._capabilities
            else "Register at least one capability",
            alternatives=suggestions,
            details={"capabilityId": key},
        )


def _documents(payload: Any, source: str) -> list[tuple[Mapping[str, Any], str]]:
    if payload is None:
        return []
    if isinstance(payload, Mapping) and "capabilities" in payload:
        payload = payload["capabilities"]
    if isinstance(payload, Mapping):
        return [(payload, source)]
    if isinstance(payload, list):
        return [(item, f"{source}[{idx}]") for idx, item in enumerate(payload)]
    raise ValueError(f"Capability document must be a mapping or list: {source}")


def load_capability_registry(path: str | os.PathLike[str]) -> CapabilityRegistry:
    """
    Load capability definitions from a YAML/JSON file or a directory of them.

    A document may hold one capability, a list, or `{capabilities: [...]}`.
    Directory entries are read in sorted order so duplicate errors are stable.
    """

    root = os.fspath(path)
    if os.path.isdir(root):
        files = sorted(
            os.path.join(dirpath, name)
            for dirpath, _dirnames, filenames in os.walk(root)
            for name in filenames
            if name.lower().endswith(REGISTRY_SUFFIXES)
        )
    elif os.path.isfile(root):
        files = [root]
    else:
        raise FileNotFoundError(f"Capability registry not found: {root}")

    capabilities: list[Capability] = []
    for file_path in files:
        for document, source in _documents(load_document(file_path), file_path):
            try:
                capabilities.append(decode_capability(document, path=source))
            except (TypeError, ValueError) as exc:
                raise ValueError(f"Invalid capability definition in {source}: {exc}") from exc

    registry = CapabilityRegistry.from_capabilities(capabilities)
    logger.info("Loaded %d capabilities from %s", len(registry), root)
    return registry

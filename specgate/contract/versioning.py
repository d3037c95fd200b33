from __future__ import annotations

import re
from typing import Any

CONTRACT_VERSION = "1.0"
MIN_SUPPORTED_VERSION = "1.0"

_VERSION_RE = re.compile(r"^(\d+)\.(\d+)$")


def parse_version(version: Any) -> tuple[int, int] | None:
    """Parse a strict `MAJOR.MINOR` pair; anything else yields None."""

    if not isinstance(version, str):
        return None
    match = _VERSION_RE.match(version.strip())
    if match is None:
        return None
    return int(match.group(1)), int(match.group(2))


def is_version_supported(version: Any) -> bool:
    """
    Contract compatibility check.

    The major component must equal the supported major exactly; the minor
    component must be >= the minimum supported minor. Missing, malformed or
    wrong-major versions are unsupported.
    """

    parsed = parse_version(version)
    if parsed is None:
        return False
    minimum = parse_version(MIN_SUPPORTED_VERSION)
    if minimum is None:  # pragma: no cover - constant is well-formed
        raise AssertionError(f"Invalid MIN_SUPPORTED_VERSION: {MIN_SUPPORTED_VERSION!r}")

    major, minor = parsed
    min_major, min_minor = minimum
    if major != min_major:
        return False
    return minor >= min_minor

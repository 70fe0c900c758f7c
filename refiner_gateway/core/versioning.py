"""
App update check.

Compares the version reported by the keyboard app against the configured
latest release. Versions compare numerically per dot-separated component, so
1.9.0 < 1.10.0.
"""

import re
from dataclasses import dataclass
from itertools import zip_longest
from typing import Tuple

from ..config.loader import UpdateConfig

_LEADING_DIGITS = re.compile(r"^\s*(\d+)")


@dataclass(frozen=True)
class UpdateInfo:
    """Answer to a client's update check."""
    update_available: bool
    latest_version: str
    force_update: bool
    update_url: str
    changelog: str


def parse_version(version: str) -> Tuple[int, ...]:
    """Split a version into integer components.

    Components without leading digits count as 0 ("1.x" -> (1, 0)); a
    trailing suffix after the digits is ignored ("2.1-beta" -> (2, 1)).
    """
    parts = []
    for component in str(version or "").split("."):
        match = _LEADING_DIGITS.match(component)
        parts.append(int(match.group(1)) if match else 0)
    return tuple(parts)


def is_newer(latest: str, current: str) -> bool:
    """True when latest > current, padding the shorter version with zeros."""
    for left, right in zip_longest(parse_version(latest), parse_version(current), fillvalue=0):
        if left != right:
            return left > right
    return False


def check_update(client_version: str, settings: UpdateConfig) -> UpdateInfo:
    """Build the update answer for a client. Never raises for malformed input."""
    return UpdateInfo(
        update_available=is_newer(settings.latest_version, client_version),
        latest_version=settings.latest_version,
        force_update=settings.force_update,
        update_url=settings.update_url,
        changelog=settings.changelog,
    )

"""Feature-flag gate for expert routing.

Callers consult ``should_use_routing`` before handing a request to the
router. Routing is used only when the master switch, the tool's switch and,
if a tier is given, the tier's switch are all on.

The gate does not read ``ROLLOUT_PERCENTAGE_FLAG`` or ``METRICS_FLAG``, and
the router never consults any flag. Callers that roll out gradually combine
``in_rollout(key, flags[ROLLOUT_PERCENTAGE_FLAG])`` with the gate themselves,
and map ``METRICS_FLAG`` onto ``RouterConfig.enable_metrics``.
"""

from __future__ import annotations

import hashlib
from collections.abc import Mapping

from skill_router.routing.models import ToolType

MASTER_FLAG = "routing.enabled"
TOOL_FLAG_PREFIX = "routing.tools."
TIER_FLAG_PREFIX = "routing.tiers."
ROLLOUT_PERCENTAGE_FLAG = "routing.rollout.percentage"
METRICS_FLAG = "routing.metrics.enabled"

USER_TIERS: tuple[str, ...] = ("community", "individual", "team", "enterprise")

# Gradual rollout defaults: everything off except the enterprise beta
DEFAULT_FEATURE_FLAGS: dict[str, bool | int] = {
    MASTER_FLAG: False,
    **{f"{TOOL_FLAG_PREFIX}{tool.value}": False for tool in ToolType},
    ROLLOUT_PERCENTAGE_FLAG: 0,
    f"{TIER_FLAG_PREFIX}community": False,
    f"{TIER_FLAG_PREFIX}individual": False,
    f"{TIER_FLAG_PREFIX}team": False,
    f"{TIER_FLAG_PREFIX}enterprise": True,
    METRICS_FLAG: True,
}


def tool_flag(tool: str) -> str:
    return f"{TOOL_FLAG_PREFIX}{tool}"


def tier_flag(tier: str) -> str:
    return f"{TIER_FLAG_PREFIX}{tier}"


def should_use_routing(
    tool: str,
    flags: Mapping[str, bool | int],
    tier: str | None = None,
) -> bool:
    """Decide whether a request for ``tool`` should go through the router.

    Missing flags count as off.

    Args:
        tool: Tool being invoked
        flags: Flag name -> value
        tier: Optional user tier; when omitted the tier check is skipped

    Returns:
        True if routing should be used
    """
    if not flags.get(MASTER_FLAG):
        return False
    if not flags.get(tool_flag(tool)):
        return False
    if tier and not flags.get(tier_flag(tier)):
        return False
    return True


def in_rollout(key: str, percentage: int | float) -> bool:
    """Deterministically place ``key`` inside or outside a rollout percentage.

    The key is hashed into one of 100 buckets; the same key always lands in
    the same bucket, so a user stays in or out as the percentage is held.

    Args:
        key: Stable identifier such as a user id
        percentage: Share of keys admitted, 0-100

    Returns:
        True if the key's bucket is below the percentage
    """
    if percentage <= 0:
        return False
    if percentage >= 100:
        return True
    bucket = int(hashlib.sha256(key.encode("utf-8")).hexdigest()[:8], 16) % 100
    return bucket < percentage


__all__ = [
    "DEFAULT_FEATURE_FLAGS",
    "MASTER_FLAG",
    "METRICS_FLAG",
    "ROLLOUT_PERCENTAGE_FLAG",
    "TIER_FLAG_PREFIX",
    "TOOL_FLAG_PREFIX",
    "USER_TIERS",
    "in_rollout",
    "should_use_routing",
    "tier_flag",
    "tool_flag",
]

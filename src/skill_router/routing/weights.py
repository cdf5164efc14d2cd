"""Per-tool criterion weights.

Every tool type weighs accuracy, latency, reliability and efficiency
differently. The table is validated when this module is imported, so a
broken profile fails at startup instead of skewing decisions at runtime.

Fixed orderings:
- search and compare weight accuracy above latency
- get_skill weights latency above accuracy
- install and uninstall weight reliability above latency
"""

from __future__ import annotations

from collections.abc import Mapping

from skill_router.routing.errors import WeightTableError
from skill_router.routing.models import ToolType, WeightProfile

# Allowed distance of a profile's sum from 1.0
WEIGHT_SUM_TOLERANCE = 0.05


TOOL_WEIGHTS: dict[ToolType, WeightProfile] = {
    ToolType.SEARCH: WeightProfile(accuracy=0.7, latency=0.2, reliability=0.05, efficiency=0.05),
    ToolType.RECOMMEND: WeightProfile(accuracy=0.6, latency=0.2, reliability=0.1, efficiency=0.1),
    ToolType.INSTALL: WeightProfile(accuracy=0.3, latency=0.2, reliability=0.4, efficiency=0.1),
    ToolType.VALIDATE: WeightProfile(accuracy=0.4, latency=0.3, reliability=0.2, efficiency=0.1),
    ToolType.COMPARE: WeightProfile(accuracy=0.65, latency=0.2, reliability=0.1, efficiency=0.05),
    ToolType.GET_SKILL: WeightProfile(accuracy=0.2, latency=0.6, reliability=0.15, efficiency=0.05),
    ToolType.UNINSTALL: WeightProfile(accuracy=0.2, latency=0.3, reliability=0.4, efficiency=0.1),
    ToolType.ANALYZE: WeightProfile(accuracy=0.5, latency=0.25, reliability=0.15, efficiency=0.1),
}


def validate_weight_profile(name: str, profile: WeightProfile) -> WeightProfile:
    """Check that a profile is non-negative and sums to 1.0 within tolerance.

    Args:
        name: Profile name used in the error message
        profile: The profile to check

    Returns:
        The profile, unchanged

    Raises:
        WeightTableError: If the profile is invalid
    """
    for field_name in ("accuracy", "latency", "reliability", "efficiency"):
        if getattr(profile, field_name) < 0:
            raise WeightTableError(name, f"{field_name} weight is negative")
    if abs(profile.total - 1.0) > WEIGHT_SUM_TOLERANCE:
        raise WeightTableError(name, f"weights sum to {profile.total:.3f}, expected 1.0")
    return profile


def validate_weight_table(table: Mapping[str, WeightProfile]) -> None:
    """Validate every profile in a weight table and require all tool types."""
    missing = [tool.value for tool in ToolType if tool not in table]
    if missing:
        raise WeightTableError("table", f"missing tool types: {', '.join(missing)}")
    for tool, profile in table.items():
        validate_weight_profile(str(tool), profile)


def get_tool_weights(tool: str) -> WeightProfile | None:
    """Return the weight profile for a tool, or None for unknown tools."""
    return TOOL_WEIGHTS.get(tool)  # type: ignore[call-overload]


validate_weight_table(TOOL_WEIGHTS)


__all__ = [
    "TOOL_WEIGHTS",
    "WEIGHT_SUM_TOLERANCE",
    "get_tool_weights",
    "validate_weight_profile",
    "validate_weight_table",
]

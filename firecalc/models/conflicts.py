"""Configuration cross-checks between modules.

Some property combinations are individually valid but contradict each
other once the modules are linked. They are reported as Conflict
records, each offering the resolutions a front end can present; a
chosen resolution is applied to the properties with `resolve_conflict`.

Conflicts:
    - spot_needs_head_spread: The surface module reports spread at the
      flank or back while the spot module computes spotting distance
      from the surface fire, which needs the head fire flame length.
    - midflame_and_upper_wind: Midflame wind speed is entered while the
      20-ft or 10-m wind speed is also an entry.
"""

import logging
from typing import List

from firecalc.base_classes.dependency_graph import DependencyGraph
from firecalc.exceptions import ConfigurationError
from firecalc.models.configure import SpreadDirection, WindOption
from firecalc.utilities.data_classes import Conflict, ProblemKind, ValidationResult
from firecalc.utilities.properties import PropertyDict

logger = logging.getLogger(__name__)

SPOT_NEEDS_HEAD_SPREAD = "spot_needs_head_spread"
MIDFLAME_AND_UPPER_WIND = "midflame_and_upper_wind"

# Resolutions
SPREAD_AT_HEAD = "spread_at_head"
DEACTIVATE_SPOT = "deactivate_spot"
USE_20FT_WIND = "use_20ft_wind"


def check_conflicts(graph: DependencyGraph, props: PropertyDict) -> List[Conflict]:
    """Return every conflict in the current configuration.

    The graph must have been reconfigured from `props`.
    """
    conflicts = []

    if (props.boolean("surface_module_active")
            and props.string("surface_spread_direction") != SpreadDirection.HEAD
            and props.boolean("spot_module_active")):
        conflicts.append(Conflict(
            SPOT_NEEDS_HEAD_SPREAD,
            "The spot module computes spotting distance from the head fire flame length, "
            f"but the surface module reports spread at the {props.string('surface_spread_direction')}.",
            [SPREAD_AT_HEAD, DEACTIVATE_SPOT]))

    midflame = graph.variable("wind_speed_at_midflame")
    upper = [graph.variable(n) for n in ("wind_speed_at_20ft", "wind_speed_at_10m")]
    if midflame.is_user_input and any(v.is_user_input for v in upper):
        entered = " and ".join(v.label for v in upper if v.is_user_input)
        conflicts.append(Conflict(
            MIDFLAME_AND_UPPER_WIND,
            f"{midflame.label} and {entered} are both entries; midflame wind speed "
            "should be derived from the 20-ft wind speed.",
            [USE_20FT_WIND]))

    for conflict in conflicts:
        logger.info("Configuration conflict %s", conflict.name)
    return conflicts


def conflict_result(conflicts: List[Conflict]) -> ValidationResult:
    """ValidationResult reporting `conflicts`, or success if there are none."""
    if not conflicts:
        return ValidationResult.success()
    return ValidationResult(ProblemKind.CONFIGURATION_CONFLICT,
                            message=" ".join(c.message for c in conflicts),
                            conflicts=list(conflicts))


def resolve_conflict(props: PropertyDict, name: str, resolution: str) -> None:
    """Apply one offered resolution to the properties.

    Raises:
        ConfigurationError: If the conflict or resolution is unknown.
    """
    if name == SPOT_NEEDS_HEAD_SPREAD and resolution == SPREAD_AT_HEAD:
        props.set("surface_spread_direction", SpreadDirection.HEAD)
    elif name == SPOT_NEEDS_HEAD_SPREAD and resolution == DEACTIVATE_SPOT:
        props.set("spot_module_active", False)
    elif name == MIDFLAME_AND_UPPER_WIND and resolution == USE_20FT_WIND:
        props.set("surface_wind_speed_option", WindOption.AT_20FT_WAF_INPUT)
    else:
        raise ConfigurationError(f"Unknown resolution '{resolution}' for conflict '{name}'")
    logger.info("Resolved %s with %s", name, resolution)

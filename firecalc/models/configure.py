"""Module configuration of the fire behavior graph.

Each configurator reads the properties of one module and activates the
functions that module needs and flags the variables it reports. Modules
share variables: when the surface module is active, the flame length and
fireline intensity read by the crown, scorch, safety and spot modules
are computed by the surface functions; otherwise they become entries.

`configure_modules` is the configurator handed to
`DependencyGraph.reconfigure`.
"""

import logging

from firecalc.base_classes.dependency_graph import DependencyGraph
from firecalc.exceptions import ConfigurationError
from firecalc.models.catalog import VariableTable
from firecalc.utilities.properties import PropertyDict

logger = logging.getLogger(__name__)


class WindOption:
    # Surface wind speed options
    MIDFLAME = "midflame"
    AT_20FT_WAF_INPUT = "20ft_waf_input"
    AT_20FT_WAF_CALCULATED = "20ft_waf_calculated"
    AT_10M_WAF_INPUT = "10m_waf_input"
    AT_10M_WAF_CALCULATED = "10m_waf_calculated"


class SpreadDirection:
    HEAD, FLANK, BACK = "head", "flank", "back"


MODULES = ("surface", "size", "contain", "crown", "scorch", "safety", "spot", "ignition", "weather")


def _activate(graph: DependencyGraph, *names: str) -> None:
    for name in names:
        graph.function(name).active = True


def _request_outputs(graph: DependencyGraph, props: PropertyDict, module: str) -> None:
    # Flag every variable whose output property for this module is set
    for var_name, prop_name in VariableTable.output_properties().items():
        if prop_name.startswith(module + "_calc_") and props.boolean(prop_name):
            graph.variable(var_name).is_user_output = True


def configure_wind(graph: DependencyGraph, props: PropertyDict) -> None:
    """Activate the wind functions selected by the surface wind speed option."""
    option = props.string("surface_wind_speed_option")

    if option == WindOption.MIDFLAME:
        return
    if option not in (WindOption.AT_20FT_WAF_INPUT, WindOption.AT_20FT_WAF_CALCULATED,
                      WindOption.AT_10M_WAF_INPUT, WindOption.AT_10M_WAF_CALCULATED):
        raise ConfigurationError(f"Unknown wind speed option '{option}'",
                                 parameter="surface_wind_speed_option")

    _activate(graph, "wind_midflame_from_20ft")
    if option.startswith("10m"):
        _activate(graph, "wind_20ft_from_10m")
    if option.endswith("calculated"):
        _activate(graph, "wind_adjustment_factor", "surface_fuel_bed_depth")
        if props.boolean("wind_calc_adjustment_factor"):
            graph.variable("wind_adjustment_factor").is_user_output = True


def configure_surface(graph: DependencyGraph, props: PropertyDict) -> None:
    if not props.boolean("surface_module_active"):
        return

    _activate(graph, "surface_fire", "surface_fireline_intensity")

    direction = props.string("surface_spread_direction")
    if direction == SpreadDirection.HEAD:
        _activate(graph, "surface_spread_at_head_vector")
    elif direction == SpreadDirection.FLANK:
        _activate(graph, "surface_spread_at_flank", "surface_length_to_width")
    elif direction == SpreadDirection.BACK:
        _activate(graph, "surface_spread_at_back", "surface_length_to_width")
    else:
        raise ConfigurationError(f"Unknown spread direction '{direction}'",
                                 parameter="surface_spread_direction")

    if props.boolean("surface_wind_is_upslope"):
        graph.variable("wind_direction_from_upslope").is_constant = True
        graph.variable("wind_direction_from_upslope").reset()

    configure_wind(graph, props)
    _request_outputs(graph, props, "surface")


def configure_size(graph: DependencyGraph, props: PropertyDict) -> None:
    """Fire size from the head spread rate and effective wind speed.

    Without the surface module both are entries.
    """
    if not props.boolean("size_module_active"):
        return

    _activate(graph, "size_fire_shape", "surface_length_to_width")
    _request_outputs(graph, props, "size")


def configure_contain(graph: DependencyGraph, props: PropertyDict) -> None:
    """Initial attack from the head spread rate and length-to-width ratio."""
    if not props.boolean("contain_module_active"):
        return

    _activate(graph, "contain_attack", "surface_length_to_width")
    _request_outputs(graph, props, "contain")


def _configure_intensity_source(graph: DependencyGraph, props: PropertyDict, prop_name: str) -> None:
    # Fireline intensity is linked to the surface module, or derived from a flame length entry
    if props.boolean("surface_module_active"):
        return
    if props.boolean(prop_name):
        _activate(graph, "fireline_intensity_from_flame_length")


def configure_crown(graph: DependencyGraph, props: PropertyDict) -> None:
    if not props.boolean("crown_module_active"):
        return

    _configure_intensity_source(graph, props, "crown_input_flame_length")
    _activate(graph, "crown_critical_intensity", "crown_transition")
    _request_outputs(graph, props, "crown")


def configure_scorch(graph: DependencyGraph, props: PropertyDict) -> None:
    if not props.boolean("scorch_module_active"):
        return

    _configure_intensity_source(graph, props, "scorch_input_flame_length")
    if not props.boolean("surface_module_active"):
        configure_wind(graph, props)
    _activate(graph, "scorch_height")
    _request_outputs(graph, props, "scorch")


def configure_safety(graph: DependencyGraph, props: PropertyDict) -> None:
    if not props.boolean("safety_module_active"):
        return

    _activate(graph, "safety_zone")
    _request_outputs(graph, props, "safety")


def configure_spot(graph: DependencyGraph, props: PropertyDict) -> None:
    if not props.boolean("spot_module_active"):
        return

    _activate(graph, "spot_from_surface_fire")
    _request_outputs(graph, props, "spot")


def configure_ignition(graph: DependencyGraph, props: PropertyDict) -> None:
    """Firebrand and lightning ignition probabilities.

    With the surface module active the firebrand moisture is the 1-h
    moisture and the lightning fuel moisture is the 100-h moisture.
    """
    if not props.boolean("ignition_module_active"):
        return

    _activate(graph, "ignition_fuel_temperature", "ignition_firebrand_probability",
              "ignition_lightning_probability")
    if props.boolean("surface_module_active"):
        _activate(graph, "ignition_firebrand_moisture_from_1h", "ignition_lightning_moisture_from_100h")
    _request_outputs(graph, props, "ignition")


def configure_weather(graph: DependencyGraph, props: PropertyDict) -> None:
    if not props.boolean("weather_module_active"):
        return

    _activate(graph, "weather_relative_humidity", "weather_heat_index", "weather_summer_simmer")
    if props.boolean("weather_dew_point_from_wet_bulb"):
        _activate(graph, "weather_dew_point")
    _request_outputs(graph, props, "weather")
    if not props.boolean("weather_dew_point_from_wet_bulb"):
        # Dew point is an entry
        graph.variable("weather_dew_point").is_user_output = False


def configure_modules(graph: DependencyGraph, props: PropertyDict) -> None:
    """Apply every module configurator in calculation order."""
    configure_surface(graph, props)
    configure_size(graph, props)
    configure_contain(graph, props)
    configure_crown(graph, props)
    configure_scorch(graph, props)
    configure_safety(graph, props)
    configure_spot(graph, props)
    configure_ignition(graph, props)
    configure_weather(graph, props)

    active = [m for m in MODULES if props.boolean(f"{m}_module_active")]
    logger.debug("Configured modules: %s", ", ".join(active) or "none")

"""Master definition table of the fire behavior calculator.

Variables are defined in `firecalc/data/variables.json`; functions are
defined below, each tying a formula from `rothermel` or `fire_behavior`
to named input and output variables. `build_graph` puts both into a new
DependencyGraph.

Functions belong to modules (surface, wind, size, contain, crown, scorch,
safety, spot, ignition, weather). Which of them are active is decided by
`firecalc.models.configure`.
"""

import json
import logging
import os
from typing import List, Optional, Tuple

import numpy as np

from firecalc.base_classes.dependency_graph import DependencyGraph
from firecalc.base_classes.function import Formula, Function
from firecalc.base_classes.variable import Variable, VariableItem, VariableKind
from firecalc.exceptions import ConfigurationError
from firecalc.models import fire_behavior as fb
from firecalc.models.fuel_models import Anderson13, get_fuel
from firecalc.models.rothermel import (
    FT_MIN_PER_MPH,
    calc_effective_wind_speed,
    calc_flame_len,
    calc_length_to_width,
    calc_r_h,
    calc_residence_time,
)
from firecalc.units.registry import UnitsRegistry
from firecalc.utilities.properties import PropertyDict

logger = logging.getLogger(__name__)


def fuel_for_item(item_index: int):
    return get_fuel(Anderson13.model_numbers()[int(item_index)])


class SurfaceFireFormula(Formula):
    """Rothermel surface fire at the head for one Anderson 13 fuel model.

    Inputs: fuel model item, 1-h, 10-h, 100-h, live herbaceous and live
    woody moistures (fraction), midflame wind (mi/h), slope (%) and wind
    direction from upslope (deg).

    Outputs: reaction intensity (Btu/ft2/min), no-wind no-slope spread
    rate (ft/min), head spread rate (ft/min), residence time (min), heat
    per unit area (Btu/ft2), effective wind speed (mi/h) and direction
    of maximum spread from upslope (deg).
    """

    def compute(self, fuel_item, m_1h, m_10h, m_100h, m_herb, m_woody, wind, slope, wind_dir):
        fuel = fuel_for_item(fuel_item)
        m_f = np.array([m_1h, m_10h, m_100h, m_herb, m_woody])

        R_h, R_0, I_r, alpha = calc_r_h(fuel, m_f, wind * FT_MIN_PER_MPH,
                                        np.arctan(slope / 100.0), np.radians(wind_dir))

        u_e = calc_effective_wind_speed(fuel, R_h, R_0) / FT_MIN_PER_MPH
        t_r = calc_residence_time(fuel)
        hpua = I_r * t_r

        return (float(I_r), float(R_0), float(R_h), float(t_r), float(hpua), float(u_e),
                fb.direction_degrees(alpha))


def fuel_bed_depth(fuel_item):
    return fuel_for_item(fuel_item).fuel_depth_ft


def length_to_width(effective_wind):
    lw = calc_length_to_width(effective_wind)
    return lw, fb.eccentricity(lw)


def fireline_intensity(spread_rate, hpua):
    # ft/min * Btu/ft2 = Btu/ft/min
    fli = spread_rate * hpua / 60.0
    return fli, calc_flame_len(fli)


def critical_crown_intensity(foliar_moisture, canopy_base_ht):
    critical = fb.critical_surface_intensity(foliar_moisture, canopy_base_ht)
    return critical, fb.flame_length_from_intensity(critical)


# (name, module, formula, inputs, outputs)
FUNCTION_TABLE: List[Tuple] = [
    ("surface_fire", "surface", SurfaceFireFormula(),
     ["surface_fuel_model", "surface_moisture_1h", "surface_moisture_10h", "surface_moisture_100h",
      "surface_moisture_live_herb", "surface_moisture_live_woody", "wind_speed_at_midflame",
      "site_slope", "wind_direction_from_upslope"],
     ["surface_reaction_intensity", "surface_spread_no_wind_no_slope", "surface_fire_spread_at_head",
      "surface_residence_time", "surface_heat_per_unit_area", "surface_effective_wind_speed",
      "surface_direction_of_max_spread"]),
    ("surface_fuel_bed_depth", "surface", fuel_bed_depth,
     ["surface_fuel_model"], ["surface_fuel_bed_depth"]),
    ("surface_length_to_width", "surface", length_to_width,
     ["surface_effective_wind_speed"], ["surface_length_to_width", "surface_eccentricity"]),
    ("surface_spread_at_head_vector", "surface", lambda head: head,
     ["surface_fire_spread_at_head"], ["surface_fire_spread_at_vector"]),
    ("surface_spread_at_flank", "surface", fb.flanking_spread_rate,
     ["surface_fire_spread_at_head", "surface_length_to_width"], ["surface_fire_spread_at_vector"]),
    ("surface_spread_at_back", "surface", fb.backing_spread_rate,
     ["surface_fire_spread_at_head", "surface_eccentricity"], ["surface_fire_spread_at_vector"]),
    ("surface_fireline_intensity", "surface", fireline_intensity,
     ["surface_fire_spread_at_vector", "surface_heat_per_unit_area"],
     ["surface_fireline_intensity", "surface_flame_length"]),

    ("wind_20ft_from_10m", "wind", fb.wind_speed_at_20ft,
     ["wind_speed_at_10m"], ["wind_speed_at_20ft"]),
    ("wind_adjustment_factor", "wind", fb.wind_adjustment_factor,
     ["canopy_cover", "canopy_height", "crown_ratio", "surface_fuel_bed_depth"],
     ["wind_adjustment_factor"]),
    ("wind_midflame_from_20ft", "wind", fb.midflame_wind_speed,
     ["wind_speed_at_20ft", "wind_adjustment_factor"], ["wind_speed_at_midflame"]),

    ("size_fire_shape", "size", fb.fire_size,
     ["surface_fire_spread_at_head", "surface_length_to_width", "size_elapsed_time"],
     ["size_backing_spread_rate", "size_flanking_spread_rate", "size_head_distance",
      "size_back_distance", "size_fire_length", "size_fire_width", "size_fire_area",
      "size_fire_perimeter"]),

    ("fireline_intensity_from_flame_length", "crown", fb.fireline_intensity_from_flame_length,
     ["surface_flame_length"], ["surface_fireline_intensity"]),
    ("crown_critical_intensity", "crown", critical_crown_intensity,
     ["crown_foliar_moisture", "crown_canopy_base_height"],
     ["crown_critical_surface_intensity", "crown_critical_flame_length"]),
    ("crown_transition", "crown", fb.crown_transition,
     ["surface_fireline_intensity", "crown_critical_surface_intensity"],
     ["crown_transition_ratio", "crown_transition_to_crown"]),

    ("scorch_height", "scorch", fb.scorch_height,
     ["surface_fireline_intensity", "wind_speed_at_midflame", "air_temperature"], ["scorch_height"]),

    ("safety_zone", "safety", fb.safety_zone,
     ["surface_flame_length", "safety_personnel_number", "safety_personnel_area",
      "safety_equipment_number", "safety_equipment_area"],
     ["safety_separation_distance", "safety_zone_radius", "safety_zone_area"]),

    ("spot_from_surface_fire", "spot", fb.spot_distance_from_surface_fire,
     ["surface_flame_length", "wind_speed_at_20ft", "spot_cover_height", "spot_canopy_cover",
      "spot_ridge_to_valley_distance", "spot_ridge_to_valley_elevation", "spot_source_location"],
     ["spot_cover_height_used", "spot_firebrand_height", "spot_flat_distance", "spot_distance"]),

    ("contain_attack", "contain", fb.contain_attack,
     ["surface_fire_spread_at_head", "surface_length_to_width", "contain_report_size",
      "contain_resource_arrival", "contain_resource_production", "contain_resource_number",
      "contain_resource_duration"],
     ["contain_attack_size", "contain_attack_perimeter", "contain_time", "contain_size",
      "contain_line", "contain_resources_used", "contain_status"]),

    ("ignition_fuel_temperature", "ignition", fb.fuel_temperature,
     ["air_temperature", "ignition_sun_shade"], ["ignition_fuel_temperature"]),
    ("ignition_firebrand_moisture_from_1h", "ignition", lambda moisture: moisture,
     ["surface_moisture_1h"], ["ignition_firebrand_moisture"]),
    ("ignition_firebrand_probability", "ignition", fb.firebrand_ignition_probability,
     ["ignition_fuel_temperature", "ignition_firebrand_moisture"], ["ignition_firebrand_probability"]),
    ("ignition_lightning_moisture_from_100h", "ignition", lambda moisture: moisture,
     ["surface_moisture_100h"], ["ignition_lightning_moisture"]),
    ("ignition_lightning_probability", "ignition", fb.lightning_ignition_probability,
     ["ignition_lightning_fuel_type", "ignition_lightning_duff_depth", "ignition_lightning_moisture",
      "ignition_lightning_charge"], ["ignition_lightning_probability"]),

    ("weather_dew_point", "weather", fb.dew_point_from_wet_bulb,
     ["weather_dry_bulb", "weather_wet_bulb", "weather_elevation"], ["weather_dew_point"]),
    ("weather_relative_humidity", "weather", fb.relative_humidity,
     ["weather_dry_bulb", "weather_dew_point"], ["weather_relative_humidity"]),
    ("weather_heat_index", "weather", fb.heat_index,
     ["weather_dry_bulb", "weather_relative_humidity"], ["weather_heat_index"]),
    ("weather_summer_simmer", "weather", fb.summer_simmer_index,
     ["weather_dry_bulb", "weather_relative_humidity"], ["weather_summer_simmer"]),
]


class VariableTable:
    _table = None # class-level cache

    @classmethod
    def load_table(cls):
        if cls._table is None:
            json_path = os.path.join(os.path.dirname(os.path.dirname(__file__)), "data", "variables.json")
            with open(json_path, "r") as f:
                cls._table = json.load(f)
        return cls._table

    @classmethod
    def output_properties(cls) -> dict:
        """Variable name to the property that requests it as an output."""
        return {entry["name"]: entry["output_property"]
                for entry in cls.load_table()["variables"] if "output_property" in entry}


def _items(entry) -> List[VariableItem]:
    items = entry["items"]
    if items == "anderson13":
        return [VariableItem(str(num), name)
                for num, name in zip(Anderson13.model_numbers(), Anderson13.model_names())]
    return [VariableItem(name, description) for name, description in items]


def variable_from_entry(entry: dict, registry: UnitsRegistry) -> Variable:
    """Build a Variable from one entry of the variable table."""
    kind = entry.get("kind", VariableKind.CONTINUOUS)
    if kind == VariableKind.DISCRETE:
        return Variable(entry["name"], kind, label=entry.get("label", ""), items=_items(entry),
                        default_item=entry.get("default_item", 0), master=entry.get("master"))
    if kind == VariableKind.TEXT:
        return Variable(entry["name"], kind, label=entry.get("label", ""))
    if kind != VariableKind.CONTINUOUS:
        raise ConfigurationError(f"Unknown variable kind '{kind}'", parameter=entry["name"])

    units = entry["units"]
    native_units, native_decimals = units["native"]
    english_units, english_decimals = units.get("english", units["native"])
    metric_units, metric_decimals = units.get("metric", units["native"])
    return Variable(entry["name"], kind, registry,
                    native_units=native_units, native_decimals=native_decimals,
                    minimum=entry.get("min", 0.0), maximum=entry.get("max", 1.0e12),
                    default=entry.get("default", 0.0),
                    english_units=english_units, english_decimals=english_decimals,
                    metric_units=metric_units, metric_decimals=metric_decimals,
                    label=entry.get("label", ""), master=entry.get("master"))


def build_graph(registry: UnitsRegistry, properties: Optional[PropertyDict] = None,
                name: str = "scenario") -> DependencyGraph:
    """Create a DependencyGraph holding every catalog variable and function.

    Args:
        registry (UnitsRegistry): Registry used by every continuous variable.
        properties (Optional[PropertyDict]): Configuration properties;
            the defaults when omitted.
        name (str): Scenario name.

    Returns:
        DependencyGraph: Unconfigured graph; call `reconfigure` with
        `firecalc.models.configure.configure_modules` before use.
    """
    if properties is None:
        properties = PropertyDict.load_defaults()
    graph = DependencyGraph(registry, properties, name)

    for entry in VariableTable.load_table()["variables"]:
        graph.add_variable(variable_from_entry(entry, registry))

    for fn_name, module, formula, inputs, outputs in FUNCTION_TABLE:
        graph.add_function(Function(fn_name, formula, inputs, outputs, module))

    logger.debug("Built %s with %d variables and %d functions",
                 name, len(graph.variables), len(graph.functions))
    return graph

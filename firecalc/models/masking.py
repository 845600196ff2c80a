"""Advisory masking of entries the other entries make unnecessary.

A masked leaf still belongs to the configuration, but the values entered
elsewhere mean its value cannot change any output: a fuel moisture for a
size class none of the entered fuel models carries, the canopy height
when the canopy cover is zero, and so on. Masked leaves need no entry
and are never ranging variables.

`mask_inputs` is installed as `DependencyGraph.masker`, which runs it at
the end of every reconfiguration and before every validation.
"""

import logging
from typing import List

from firecalc.base_classes.dependency_graph import DependencyGraph
from firecalc.base_classes.variable import Variable
from firecalc.models.fuel_models import Anderson13, get_fuel
from firecalc.utilities.properties import PropertyDict

logger = logging.getLogger(__name__)

# Entries below this count as zero
SMALL = 0.000001

# Surface moisture per fuel size class, in `Fuel.w_0` order
MOISTURE_BY_CLASS = ("surface_moisture_1h", "surface_moisture_10h", "surface_moisture_100h",
                     "surface_moisture_live_herb", "surface_moisture_live_woody")

# Lightning fuel types that read the duff depth; the others read the fuel moisture
DUFF_FUEL_TYPES = ("LPD", "DFD")


def _numbers(variable: Variable) -> List[float]:
    # Numeric tokens of a store; bad tokens are reported by validation
    values = []
    for token in variable.tokens:
        try:
            values.append(float(token.text))
        except ValueError:
            continue
    return values


def _any_at_least(variable: Variable, threshold: float) -> bool:
    return any(value >= threshold for value in _numbers(variable))


def _mask(graph: DependencyGraph, name: str, masked: bool) -> None:
    variable = graph.variable(name)
    variable.is_masked = masked and variable.is_user_input


def mask_fuel_moistures(graph: DependencyGraph) -> None:
    """Mask each surface moisture whose size class no entered fuel model loads."""
    fuel = graph.variable("surface_fuel_model")
    numbers = Anderson13.model_numbers()
    loaded = [False] * len(MOISTURE_BY_CLASS)
    known = 0
    for token in fuel.tokens:
        item = fuel.find_item(token.text)
        if item < 0:
            continue
        known += 1
        for size_class, load in enumerate(get_fuel(numbers[item]).w_0):
            if load > 0.0:
                loaded[size_class] = True

    # Without a usable fuel model entry nothing can be ruled out
    for name, has_load in zip(MOISTURE_BY_CLASS, loaded):
        _mask(graph, name, known > 0 and not has_load)


def mask_wind_adjustment_inputs(graph: DependencyGraph) -> None:
    """Canopy height and crown ratio are unused without canopy cover."""
    open_stand = not _any_at_least(graph.variable("canopy_cover"), SMALL)
    _mask(graph, "canopy_height", open_stand)
    _mask(graph, "crown_ratio", open_stand)


def mask_safety_inputs(graph: DependencyGraph) -> None:
    no_equipment = not _any_at_least(graph.variable("safety_equipment_number"), SMALL)
    _mask(graph, "safety_equipment_area", no_equipment)


def mask_spot_inputs(graph: DependencyGraph) -> None:
    """Ridge and valley geometry needs an elevation difference; canopy type needs a cover height."""
    flat = not _any_at_least(graph.variable("spot_ridge_to_valley_elevation"), SMALL)
    _mask(graph, "spot_ridge_to_valley_distance", flat)
    _mask(graph, "spot_source_location", flat)

    no_cover = not _any_at_least(graph.variable("spot_cover_height"), 0.01)
    _mask(graph, "spot_canopy_cover", no_cover)


def mask_ignition_inputs(graph: DependencyGraph, props: PropertyDict) -> None:
    """Duff depth and fuel moisture each serve only some lightning fuel types.

    The lightning fuel moisture is the 100-h moisture when the surface
    module is active, so a 100-h moisture masked for lack of load is
    unmasked again if a moisture-driven fuel type is entered.
    """
    fuel_types = []
    if props.boolean("ignition_module_active") and props.boolean("ignition_calc_lightning_probability"):
        fuel_types = [token.text.upper() for token in graph.variable("ignition_lightning_fuel_type").tokens]
    needs_depth = any(t in DUFF_FUEL_TYPES for t in fuel_types)
    needs_moisture = any(t not in DUFF_FUEL_TYPES for t in fuel_types)

    _mask(graph, "ignition_lightning_duff_depth", bool(fuel_types) and not needs_depth)
    _mask(graph, "ignition_lightning_moisture", bool(fuel_types) and not needs_moisture)
    if needs_moisture:
        _mask(graph, "surface_moisture_100h", False)


def mask_inputs(graph: DependencyGraph, props: PropertyDict) -> None:
    """Set `is_masked` on every maskable leaf from the current entries.

    Only leaves can be masked; every other variable is left unmasked.

    Args:
        graph (DependencyGraph): Reconfigured graph.
        props (PropertyDict): Its configuration properties.
    """
    mask_fuel_moistures(graph)
    mask_wind_adjustment_inputs(graph)
    mask_safety_inputs(graph)
    mask_spot_inputs(graph)
    mask_ignition_inputs(graph, props)

    masked = [graph.variables[i].name for i in graph.leaves if graph.variables[i].is_masked]
    if masked:
        logger.debug("%s masked inputs: %s", graph.name, ", ".join(masked))

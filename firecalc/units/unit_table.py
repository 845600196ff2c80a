"""Standard unit and derived-unit tables.

The tables live in `firecalc/data/units.json` and are read once into a
class-level cache. Each unit lists its dimension exponents by dimension
name, its factor to SI base units and its aliases.

Classes:
    - UnitTable: Cached access to the JSON unit tables.

Functions:
    - build_default_registry: Create a registry holding the standard tables.
"""

import json
import logging
import os
from typing import Dict, List

from firecalc.exceptions import ConfigurationError
from firecalc.units.registry import DIMENSION_NAMES, UnitsRegistry

logger = logging.getLogger(__name__)


def exponent_vector(dimensions: Dict[str, int]) -> List[int]:
    """Expand a {dimension name: exponent} mapping into a full exponent vector.

    Raises:
        ConfigurationError: If a dimension name is not known.
    """
    vector = [0] * len(DIMENSION_NAMES)
    for name, exp in dimensions.items():
        if name not in DIMENSION_NAMES:
            raise ConfigurationError("Unknown dimension name in unit table", parameter=name)
        vector[DIMENSION_NAMES.index(name)] = int(exp)
    return vector


class UnitTable:
    _table = None # class-level cache

    @classmethod
    def load_table(cls):
        if cls._table is None:
            json_path = os.path.join(os.path.dirname(os.path.dirname(__file__)), "data", "units.json")
            with open(json_path, "r") as f:
                cls._table = json.load(f)
        return cls._table

    @classmethod
    def register_all(cls, registry: UnitsRegistry) -> UnitsRegistry:
        """Define every standard unit and derived signature in `registry`."""
        table = cls.load_table()

        for entry in table["units"]:
            exponents = exponent_vector(entry["dimensions"])
            registry.define(entry["description"], registry.base_units_phrase(exponents),
                            exponents, entry["factor"], entry["aliases"])

        for entry in table["derived"]:
            registry.define_derived(entry["name"], exponent_vector(entry["dimensions"]))

        logger.debug("Registered %d units and %d derived signatures",
                     len(table["units"]), len(table["derived"]))
        return registry


def build_default_registry() -> UnitsRegistry:
    """Create a new registry loaded with the standard unit tables."""
    return UnitTable.register_all(UnitsRegistry())

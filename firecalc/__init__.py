"""firecalc - wildland fire behavior calculator core."""

from firecalc.fire_calculator.calculator import FireCalculator
from firecalc.base_classes.dependency_graph import DependencyGraph
from firecalc.units.registry import UnitsRegistry
from firecalc.units.unit_table import build_default_registry
from firecalc.exceptions import (
    FireCalcError,
    ConfigurationError,
    DuplicateUnitRegistrationError,
    GraphCycleError,
    UnknownVariableError,
    PersistenceError,
)

__version__ = "0.1.0"

__all__ = [
    "FireCalculator",
    "DependencyGraph",
    "UnitsRegistry",
    "build_default_registry",
    "FireCalcError",
    "ConfigurationError",
    "DuplicateUnitRegistrationError",
    "GraphCycleError",
    "UnknownVariableError",
    "PersistenceError",
]

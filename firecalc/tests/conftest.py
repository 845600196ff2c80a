"""Shared pytest fixtures for the firecalc test suite.

This module provides reusable fixtures for testing firecalc components,
including a units registry, small hand-built graphs, fuel models and
configured calculators.
"""

import pytest
import numpy as np


# ============================================================================
# Units Fixtures
# ============================================================================

@pytest.fixture(scope="session")
def registry():
    """Provide a registry loaded with the standard unit tables.

    Returns:
        UnitsRegistry: Shared, read-only standard registry.
    """
    from firecalc.units.unit_table import build_default_registry
    return build_default_registry()


# ============================================================================
# Graph Fixtures
# ============================================================================

@pytest.fixture
def sum_graph(registry):
    """Provide a configured graph computing c = a + b and d = 2 * c.

    Returns:
        DependencyGraph: Graph with leaves a, b and root d.
    """
    from firecalc.base_classes.dependency_graph import DependencyGraph
    from firecalc.base_classes.function import Function
    from firecalc.base_classes.variable import Variable

    graph = DependencyGraph(registry, name="sum")
    for name in ("a", "b", "c", "d"):
        graph.add_variable(Variable(name, native_units="ft", minimum=-1000.0, maximum=1000.0))
    graph.add_function(Function("add", lambda a, b: a + b, ["a", "b"], ["c"]))
    graph.add_function(Function("double", lambda c: 2.0 * c, ["c"], ["d"]))

    def configure(g, props):
        for function in g.functions:
            function.active = True
        g.variable("d").is_user_output = True

    graph.reconfigure(configure)
    return graph


# ============================================================================
# Fuel Model Fixtures
# ============================================================================

@pytest.fixture
def grass_fuel():
    """Provide Anderson Fuel Model 1 (short grass).

    Returns:
        Anderson13: Fuel model for short grass.
    """
    from firecalc.models.fuel_models import Anderson13
    return Anderson13(1)


@pytest.fixture
def timber_grass_fuel():
    """Provide Anderson Fuel Model 2 (timber grass and understory).

    Returns:
        Anderson13: Fuel model with dead and live herbaceous fuel.
    """
    from firecalc.models.fuel_models import Anderson13
    return Anderson13(2)


@pytest.fixture
def chaparral_fuel():
    """Provide Anderson Fuel Model 4 (chaparral).

    Returns:
        Anderson13: Fuel model with live woody fuel.
    """
    from firecalc.models.fuel_models import Anderson13
    return Anderson13(4)


# ============================================================================
# Fuel Moisture Fixtures
# ============================================================================

@pytest.fixture
def standard_fuel_moisture():
    """Provide typical summer fuel moisture content.

    Returns:
        np.ndarray: Moisture for 1-h, 10-h, 100-h, live herb, live woody.
    """
    return np.array([0.06, 0.07, 0.08, 0.60, 0.90])


@pytest.fixture
def wet_fuel_moisture():
    """Provide dead fuel moisture above most extinction moistures.

    Returns:
        np.ndarray: Moisture for 1-h, 10-h, 100-h, live herb, live woody.
    """
    return np.array([0.45, 0.45, 0.45, 3.0, 3.0])


# ============================================================================
# Calculator Fixtures
# ============================================================================

@pytest.fixture
def calculator(registry):
    """Provide a calculator with the default configuration (surface module only).

    Returns:
        FireCalculator: Calculator displaying English units.
    """
    from firecalc.fire_calculator.calculator import FireCalculator
    return FireCalculator(registry=registry)


@pytest.fixture
def native_calculator(registry):
    """Provide a default calculator displaying native units.

    Returns:
        FireCalculator: Calculator whose display values equal native values.
    """
    from firecalc.fire_calculator.calculator import FireCalculator
    from firecalc.utilities.properties import PropertyDict

    props = PropertyDict.load_defaults()
    props.set("app_unit_set", "native")
    return FireCalculator(properties=props, registry=registry)

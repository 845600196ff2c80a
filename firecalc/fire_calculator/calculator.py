"""Fire behavior calculator facade.

`FireCalculator` bundles a units registry, the configuration properties
and the dependency graph of one scenario, and exposes the operations a
front end needs: configure modules, resolve conflicts, enter values,
run a table, and save or load inputs and results.

Classes:
    - FireCalculator: One configured scenario.

Example:
    >>> calc = FireCalculator()
    >>> calc.set_input("surface_fuel_model", "1")
    >>> calc.set_input("surface_moisture_1h", "5 10 15")
    >>> table = calc.run()
    >>> table.output_array("surface_fire_spread_at_head")
"""

import logging
from typing import List, Optional, Sequence, Union

from firecalc.base_classes.dependency_graph import DependencyGraph
from firecalc.models.catalog import build_graph
from firecalc.models.configure import configure_modules
from firecalc.models.conflicts import check_conflicts, conflict_result, resolve_conflict
from firecalc.models.masking import mask_inputs
from firecalc.units.registry import UnitsRegistry
from firecalc.units.unit_table import build_default_registry
from firecalc.utilities import file_io
from firecalc.utilities.data_classes import Conflict, RangeSpec, ResultTable, ValidationResult
from firecalc.utilities.parquet_writer import ParquetWriter
from firecalc.utilities.properties import PropertyDict

logger = logging.getLogger(__name__)


class FireCalculator:
    """One fire behavior scenario.

    Args:
        properties (Optional[PropertyDict]): Configuration; the defaults
            when omitted.
        registry (Optional[UnitsRegistry]): Units registry; may be shared
            between calculators. A new standard registry when omitted.
        name (str): Scenario name used in log messages.

    Attributes:
        graph (DependencyGraph): The scenario's variables and functions.
        conflicts (List[Conflict]): Conflicts found by the last reconfigure.
    """

    def __init__(self, properties: Optional[PropertyDict] = None,
                 registry: Optional[UnitsRegistry] = None, name: str = "scenario"):
        self.registry = registry if registry is not None else build_default_registry()
        self.properties = properties if properties is not None else PropertyDict.load_defaults()
        self.graph: DependencyGraph = build_graph(self.registry, self.properties, name)
        self.graph.masker = mask_inputs
        self.conflicts: List[Conflict] = []

        self.graph.apply_unit_set(self.properties.string("app_unit_set"))
        self.reconfigure()

    def reconfigure(self) -> List[Conflict]:
        """Rebuild the active graph from the properties and check for conflicts."""
        self.graph.reconfigure(configure_modules)
        self.conflicts = check_conflicts(self.graph, self.properties)
        return self.conflicts

    def set_property(self, name: str, value) -> List[Conflict]:
        """Change one property and reconfigure."""
        self.properties.set(name, value)
        if name == "app_unit_set":
            self.graph.apply_unit_set(value)
        return self.reconfigure()

    def resolve(self, conflict: str, resolution: str) -> List[Conflict]:
        """Apply one offered resolution and reconfigure."""
        resolve_conflict(self.properties, conflict, resolution)
        return self.reconfigure()

    def inputs(self) -> List[str]:
        """Names of the entries the current configuration needs."""
        return [self.graph.variables[i].name for i in self.graph.leaves]

    def outputs(self) -> List[str]:
        return [self.graph.variables[i].name for i in self.graph.roots]

    def set_input(self, name: str, text: str) -> ValidationResult:
        """Enter raw text for a variable, e.g. "10" or "0 5 10"."""
        return self.graph.set_leaf_text(name, text)

    def set_range(self, spec: RangeSpec) -> ValidationResult:
        """Enter a range as the variable's raw text."""
        result = spec.check()
        if not result.ok:
            return result
        return self.graph.set_leaf_text(spec.variable, spec.store_text())

    def validate(self) -> ValidationResult:
        """Configuration conflicts first, then the entries."""
        result = conflict_result(self.conflicts)
        if not result.ok:
            return result
        return self.graph.validate_inputs()

    def run(self, outputs: Optional[Sequence[str]] = None,
            ranges: Optional[Sequence[RangeSpec]] = None,
            progress: Optional[bool] = None) -> Union[ResultTable, ValidationResult]:
        """Run the scenario.

        Returns:
            Union[ResultTable, ValidationResult]: The result table, or the
            conflict or validation failure that prevented the run.
        """
        result = conflict_result(self.conflicts)
        if not result.ok:
            return result
        if progress is None:
            progress = self.properties.boolean("app_show_progress")
        return self.graph.run_table(outputs=outputs, ranges=ranges, progress=progress)

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------

    def save_inputs(self, path: str) -> None:
        file_io.save_stores(path, self.graph.dump_store_records())

    def load_inputs(self, path: str) -> ValidationResult:
        """Load entries saved by `save_inputs` and recalculate every output.

        Entries are converted from the units they were saved in to the
        current display units.
        """
        return self.graph.load_stores(file_io.load_stores(path))

    def save_properties(self, path: str) -> None:
        self.properties.save_json(path)

    def load_properties(self, path: str) -> List[Conflict]:
        self.properties.load_json(path)
        self.graph.apply_unit_set(self.properties.string("app_unit_set"))
        return self.reconfigure()

    def export_results(self, table: ResultTable, path: str) -> Optional[str]:
        """Write a result table: Parquet parts to a folder, or text to a `.txt` file."""
        if path.lower().endswith(".txt"):
            file_io.write_result_text(path, table)
            return path
        return ParquetWriter(path).write_table(table)

    def dump_variables(self, path: str) -> None:
        file_io.write_variable_records(path, self.graph)

"""Dependency graph of variables and functions for one calculation scenario.

The graph owns every Variable and Function of a scenario in two arenas
(plain lists addressed by integer index). The configuration layer marks
functions active; each variable then has either no active producer (it
is a leaf whose value comes from the user) or exactly one. Requested
outputs are brought up to date lazily: only functions with a dirty input
slot are rerun, so repeated requests without new entries cost nothing.

Classes:
    - DependencyGraph: Variable/function arenas, configuration,
      lazy evaluation, input validation and persistence.

Example:
    >>> graph = DependencyGraph(build_default_registry())
    >>> graph.add_variable(Variable("a", native_units="ft"))
    >>> graph.add_variable(Variable("b", native_units="ft"))
    >>> graph.add_function(Function("double", lambda a: 2 * a, ["a"], ["b"]))
    >>> graph.function("double").active = True
    >>> graph.variable("b").is_user_output = True
    >>> graph.reconfigure()
"""

import logging
import warnings
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from firecalc.base_classes.function import Function
from firecalc.base_classes.variable import Variable
from firecalc.exceptions import ConfigurationError, GraphCycleError, UnknownVariableError
from firecalc.units.registry import UnitsRegistry
from firecalc.utilities.data_classes import ProblemKind, RangeSpec, ResultTable, ValidationResult
from firecalc.utilities.properties import PropertyDict

logger = logging.getLogger(__name__)

Configurator = Callable[["DependencyGraph", PropertyDict], None]

# Maximum number of variables with more than one entry
MAX_RANGING_VARIABLES = 2


class _Frame:
    # One pending variable of calculate_variable's explicit stack
    __slots__ = ("variable", "function", "slot", "pending", "recompute")

    def __init__(self, variable: int, function: Optional[int]):
        self.variable = variable
        self.function = function
        self.slot = 0
        self.pending = False
        self.recompute = False


class DependencyGraph:
    """Variables and functions of one scenario and the engine that evaluates them.

    Args:
        registry (UnitsRegistry): Units registry shared with every variable.
        properties (Optional[PropertyDict]): Configuration properties handed
            to the configurator on `reconfigure()`.
        name (str): Scenario name used in log messages.

    Attributes:
        variables (List[Variable]): Variable arena.
        functions (List[Function]): Function arena.
        roots (List[int]): Indices of the requested output variables.
        leaves (List[int]): Indices of the leaf variables the roots depend on.
        masker (Optional[Configurator]): Callable that sets `is_masked` on
            leaves from the properties and the current stores. Applied
            after every reconfigure and before every validation.
    """

    def __init__(self, registry: UnitsRegistry, properties: Optional[PropertyDict] = None,
                 name: str = "scenario"):
        self.registry = registry
        self.properties = properties if properties is not None else PropertyDict()
        self.name = name
        self.masker: Optional[Configurator] = None

        self.variables: List[Variable] = []
        self.functions: List[Function] = []
        self._var_index: Dict[str, int] = {}
        self._fun_index: Dict[str, int] = {}

        self.roots: List[int] = []
        self.leaves: List[int] = []

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    def add_variable(self, variable: Variable) -> int:
        """Add a variable to the arena and return its index.

        Raises:
            ConfigurationError: If a variable with the same name exists.
        """
        if variable.name in self._var_index:
            raise ConfigurationError("Duplicate variable name", parameter=variable.name)
        if variable.registry is None:
            variable.registry = self.registry

        index = len(self.variables)
        variable.bind(index, self._propagate_dirty)
        self.variables.append(variable)
        self._var_index[variable.name] = index
        return index

    def add_function(self, function: Function) -> int:
        """Add a function, resolving its input and output names to indices.

        Raises:
            ConfigurationError: If the name is taken or an input/output
                variable does not exist.
        """
        if function.name in self._fun_index:
            raise ConfigurationError("Duplicate function name", parameter=function.name)

        index = len(self.functions)
        try:
            function.inputs = [self._var_index[n] for n in function.input_names]
            function.outputs = [self._var_index[n] for n in function.output_names]
        except KeyError as e:
            raise ConfigurationError(f"Function '{function.name}' references an unknown variable",
                                     parameter=str(e.args[0])) from e

        function.index = index
        function.set_dirty_all()
        self.functions.append(function)
        self._fun_index[function.name] = index

        for i in function.inputs:
            if index not in self.variables[i].consumers:
                self.variables[i].consumers.append(index)
        for i in function.outputs:
            self.variables[i].producers.append(index)
        return index

    def __contains__(self, name: str) -> bool:
        return name in self._var_index

    def index_of(self, name: str) -> int:
        try:
            return self._var_index[name]
        except KeyError:
            raise UnknownVariableError("Unknown variable", name=name) from None

    def variable(self, name: str) -> Variable:
        return self.variables[self.index_of(name)]

    def function(self, name: str) -> Function:
        try:
            return self.functions[self._fun_index[name]]
        except KeyError:
            raise UnknownVariableError("Unknown function", name=name) from None

    def _resolve(self, target: Union[str, int]) -> int:
        if isinstance(target, str):
            return self.index_of(target)
        return int(target)

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def reconfigure(self, configurator: Optional[Configurator] = None) -> None:
        """Rebuild the active graph from the current properties.

        Every function is deactivated and dirtied and every variable loses
        its input/output/constant/mask flags before `configurator` is
        applied. Active producers are then selected, the active graph is
        checked for cycles and the root and leaf lists are regenerated.

        Args:
            configurator (Optional[Configurator]): Callable that activates
                functions and flags variables from `self.properties`. When
                omitted, function activation and the output, constant and
                mask flags are kept as they are.

        Raises:
            ConfigurationError: If a variable ends up with two active producers.
            GraphCycleError: If the active graph contains a cycle.
        """
        for variable in self.variables:
            variable.is_user_input = False
            if configurator is not None:
                variable.is_user_output = False
                variable.is_constant = False
                variable.is_masked = False

        for function in self.functions:
            if configurator is not None:
                function.active = False
            function.set_dirty_all()

        if configurator is not None:
            configurator(self, self.properties)

        self._select_producers()
        self.check_acyclic()
        self._generate_roots()
        self._generate_leaves()
        self.apply_masks()

        logger.info("%s reconfigured: %d active functions, %d roots, %d leaves", self.name,
                    sum(1 for f in self.functions if f.active), len(self.roots), len(self.leaves))

    def _select_producers(self) -> None:
        for variable in self.variables:
            active = [p for p in variable.producers if self.functions[p].active]
            if len(active) > 1:
                names = ", ".join(self.functions[p].name for p in active)
                raise ConfigurationError(f"More than one active producer ({names})",
                                         parameter=variable.name)
            variable.active_producer = active[0] if active else None

    def _active_inputs(self, index: int) -> List[int]:
        producer = self.variables[index].active_producer
        if producer is None:
            return []
        return self.functions[producer].inputs

    def check_acyclic(self) -> None:
        """Verify that no variable depends on itself through active producers.

        Raises:
            GraphCycleError: With the variable names along the cycle.
        """
        white, gray, black = 0, 1, 2
        state = [white] * len(self.variables)

        for start in range(len(self.variables)):
            if state[start] != white:
                continue
            state[start] = gray
            stack = [(start, 0)]
            path = [start]
            while stack:
                index, slot = stack[-1]
                children = self._active_inputs(index)
                if slot < len(children):
                    stack[-1] = (index, slot + 1)
                    child = children[slot]
                    if state[child] == gray:
                        cycle = path[path.index(child):] + [child]
                        raise GraphCycleError("Active producer graph contains a cycle",
                                              cycle=[self.variables[i].name for i in cycle])
                    if state[child] == white:
                        state[child] = gray
                        stack.append((child, 0))
                        path.append(child)
                else:
                    state[index] = black
                    stack.pop()
                    path.pop()

    def _generate_roots(self) -> None:
        self.roots = [v.index for v in self.variables if v.is_user_output]

    def _generate_leaves(self) -> None:
        # Depth-first from the roots, in input order, without duplicates
        self.leaves = []
        seen = set()
        stack = list(reversed(self.roots))
        while stack:
            index = stack.pop()
            if index in seen:
                continue
            seen.add(index)
            variable = self.variables[index]
            if variable.active_producer is None:
                if not variable.is_constant:
                    variable.is_user_input = True
                    self.leaves.append(index)
            else:
                stack.extend(reversed(self._active_inputs(index)))

    # ------------------------------------------------------------------
    # Values and evaluation
    # ------------------------------------------------------------------

    def _propagate_dirty(self, index: int) -> None:
        stack = [index]
        while stack:
            current = stack.pop()
            for f in self.variables[current].consumers:
                function = self.functions[f]
                if function.mark_input(current):
                    stack.extend(function.outputs)

    def apply_masks(self) -> None:
        """Re-evaluate which leaves are masked, if the graph has a masker."""
        if self.masker is not None:
            self.masker(self, self.properties)

    def check_entry(self, name: str) -> ValidationResult:
        """NOT_AN_INPUT unless `name` is a leaf of the current configuration."""
        variable = self.variable(name)
        if variable.index in self.leaves:
            return ValidationResult.success()
        if variable.active_producer is not None:
            reason = f"is computed by {self.functions[variable.active_producer].name}"
        elif variable.is_constant:
            reason = "is fixed by the current configuration"
        else:
            reason = "is not used by the current configuration"
        return ValidationResult(ProblemKind.NOT_AN_INPUT, name, 0, 0,
                                f"{variable.label} {reason} and takes no entry.")

    def set_leaf_text(self, name: str, text: str) -> ValidationResult:
        """Set a leaf's raw text store; valid entries update its value.

        Returns:
            ValidationResult: NOT_AN_INPUT if `name` is not a leaf, the
            store's INVALID_LEAF_VALUE failure, or success.
        """
        result = self.check_entry(name)
        if not result.ok:
            return result
        return self.variable(name).set_store(text)

    def set_native_value(self, name: str, value: float) -> bool:
        return self.variable(name).set_native_value(value)

    @property
    def evaluations(self) -> int:
        """Total number of formula runs since the graph was built."""
        return sum(f.calls for f in self.functions)

    def calculate_variable(self, target: Union[str, int]) -> int:
        """Bring one variable up to date.

        Walks the active producers depth-first with an explicit stack. For
        every dirty input slot the input is brought up to date first and
        the slot is then cleared; a function is rerun only if at least one
        of its slots was dirty.

        Args:
            target (Union[str, int]): Variable name or arena index.

        Returns:
            int: Number of formula runs this call performed.
        """
        root = self._resolve(target)
        before = self.evaluations
        stack = [_Frame(root, self.variables[root].active_producer)]

        while stack:
            frame = stack[-1]
            if frame.function is None:
                stack.pop()
                continue

            function = self.functions[frame.function]
            if frame.pending:
                function.dirty[frame.slot] = False
                frame.pending = False
                frame.slot += 1

            while frame.slot < len(function.inputs) and not function.dirty[frame.slot]:
                frame.slot += 1

            if frame.slot < len(function.inputs):
                frame.recompute = True
                frame.pending = True
                child = function.inputs[frame.slot]
                stack.append(_Frame(child, self.variables[child].active_producer))
                continue

            if frame.recompute or function.pending:
                function.run(self.variables)
            stack.pop()

        return self.evaluations - before

    def calculate_roots(self) -> int:
        """Bring every requested output up to date."""
        return sum(self.calculate_variable(root) for root in self.roots)

    def request_outputs(self, names: Optional[Iterable[str]] = None) -> Dict[str, Union[float, str]]:
        """Calculate and return display values of the named outputs.

        Args:
            names (Optional[Iterable[str]]): Outputs to calculate; all roots
                when omitted.

        Returns:
            Dict[str, Union[float, str]]: Display value (continuous), item
            name (discrete) or text per output.
        """
        indices = [self._resolve(n) for n in names] if names is not None else list(self.roots)
        results = {}
        for index in indices:
            self.calculate_variable(index)
            variable = self.variables[index]
            if variable.is_continuous:
                results[variable.name] = variable.display_value
            elif variable.is_discrete:
                results[variable.name] = variable.item_name
            else:
                results[variable.name] = variable.text
        return results

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def ranging_variables(self) -> List[int]:
        """Leaves with more than one entry, in leaf order.

        A variable ranged together with its master is not counted.
        """
        ranging = []
        for i in self.leaves:
            variable = self.variables[i]
            if variable.is_masked or not variable.is_ranging:
                continue
            master = variable.master
            if master is not None and master in self and self.variable(master).is_ranging:
                continue
            ranging.append(i)
        return ranging

    def validate_inputs(self) -> ValidationResult:
        """Check every leaf entry before a run.

        Masks are re-evaluated first. Checks then run in this order:
        entries that do not parse or are out of range, required leaves
        without an entry, more than two ranging variables, and ranging
        variables whose entry count differs from their master's.

        Returns:
            ValidationResult: Success, or the first failure found.
        """
        self.apply_masks()

        for index in self.leaves:
            result = self.variables[index].check_store()
            if not result.ok:
                return result

        for index in self.leaves:
            variable = self.variables[index]
            if variable.is_masked or variable.is_text:
                continue
            if variable.token_count == 0:
                return ValidationResult(ProblemKind.MISSING_REQUIRED_INPUT, variable.name, 0, 0,
                                        f"{variable.label} requires an entry.")

        ranging = self.ranging_variables()
        if len(ranging) > MAX_RANGING_VARIABLES:
            extra = self.variables[ranging[MAX_RANGING_VARIABLES]]
            names = ", ".join(self.variables[i].name for i in ranging)
            return ValidationResult(ProblemKind.TOO_MANY_RANGING_VARIABLES, extra.name,
                                    0, len(extra.store),
                                    f"At most {MAX_RANGING_VARIABLES} variables may have "
                                    f"multiple entries ({names}).")

        for index in self.leaves:
            variable = self.variables[index]
            if variable.master is None or variable.is_masked or variable.master not in self:
                continue
            master = self.variable(variable.master)
            if master.is_masked or master.index not in self.leaves:
                continue
            if master.token_count != variable.token_count:
                return ValidationResult(ProblemKind.RANGE_COUNT_MISMATCH, variable.name,
                                        0, len(variable.store),
                                        f"{variable.label} needs {master.token_count} entries "
                                        f"to match {master.label}.")

        return ValidationResult.success()

    # ------------------------------------------------------------------
    # Tables
    # ------------------------------------------------------------------

    def run_table(self, outputs: Optional[Sequence[str]] = None,
                  ranges: Optional[Sequence[RangeSpec]] = None,
                  progress: bool = False) -> Union[ResultTable, ValidationResult]:
        """Produce a scalar, vector or matrix result table.

        See `firecalc.base_classes.range_table.run_table`.
        """
        from firecalc.base_classes.range_table import run_table
        return run_table(self, outputs=outputs, ranges=ranges, progress=progress)

    # ------------------------------------------------------------------
    # Units and persistence
    # ------------------------------------------------------------------

    def apply_unit_set(self, unit_set: str) -> None:
        """Switch every continuous variable to "english", "metric" or "native" display units.

        Raises:
            ConfigurationError: If the unit set is unknown or a variable's
                unit table entry cannot be converted.
        """
        methods = {
            "english": Variable.apply_english_units,
            "metric": Variable.apply_metric_units,
            "native": Variable.apply_native_units,
        }
        if unit_set not in methods:
            raise ConfigurationError("Unknown unit set", parameter=unit_set)

        for variable in self.variables:
            result = methods[unit_set](variable)
            if not result.ok:
                raise ConfigurationError(result.diagnostic.message, parameter=variable.name)
        logger.info("%s display units set to %s", self.name, unit_set)

    def dump_stores(self) -> List[Tuple[str, str]]:
        """Every leaf's raw text store as sorted (name, store) pairs."""
        return sorted((self.variables[i].name, self.variables[i].store) for i in self.leaves)

    def dump_store_records(self) -> List[Tuple[str, str, str]]:
        """Sorted (name, store, display units) triples for every leaf.

        Discrete and text leaves have empty units.
        """
        records = []
        for name, store in self.dump_stores():
            variable = self.variable(name)
            records.append((name, store, variable.display_units if variable.is_continuous else ""))
        return records

    def _set_store_in_units(self, variable: Variable, text: str, units: str) -> ValidationResult:
        # Interpret the text in `units`, then rewrite it into the current display units
        if not variable.is_continuous or units == variable.display_units:
            return variable.set_store(text)

        current, decimals = variable.display_units, variable.display_decimals
        switched = variable.set_display_units(units)
        if not switched.ok:
            return ValidationResult(switched.diagnostic.kind, variable.name, 0, len(text),
                                    switched.diagnostic.message)
        result = variable.set_store(text)
        variable.set_display_units(current, decimals)
        return result

    def load_stores(self, pairs: Iterable[Sequence[str]]) -> ValidationResult:
        """Set leaf stores, then recalculate every root.

        Each record is (name, store) or (name, store, units). A store saved
        with units is read in those units and rewritten into the variable's
        current display units, so native values survive a change of unit
        set between saving and loading.

        Unknown names are skipped with a warning. The recalculation only
        happens when every store is valid.

        Returns:
            ValidationResult: Success, or the first invalid store.
        """
        first_failure = None
        for record in pairs:
            name, text = record[0], record[1]
            units = record[2] if len(record) > 2 else ""
            if name not in self:
                warnings.warn(f"Ignoring stored value for unknown variable '{name}'")
                continue
            variable = self.variable(name)
            if units:
                result = self._set_store_in_units(variable, text, units)
            else:
                result = variable.set_store(text)
            if not result.ok and first_failure is None:
                first_failure = result

        if first_failure is not None:
            return first_failure

        runs = self.calculate_roots()
        logger.debug("%s rehydrated with %d formula runs", self.name, runs)
        return ValidationResult.success()

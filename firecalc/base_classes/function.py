"""Functions of the fire behavior dependency graph.

A Function reads an ordered list of input variables, runs one Formula
and writes an ordered list of output variables. It keeps one dirty bit
per input slot; a slot is dirtied whenever the variable it reads changes
and cleared once that variable has been brought up to date and consumed.

Classes:
    - Formula: Abstract compute interface owned by each Function.
    - CallableFormula: Formula wrapping a plain Python callable.
    - Function: Named computation node with per-input dirty bits.
"""

import logging
from abc import ABC, abstractmethod
from typing import Callable, List, Sequence, Tuple, Union

from firecalc.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class Formula(ABC):
    """Abstract base class for the computation behind a Function.

    Subclasses implement `compute`, which receives one value per input
    slot (native value for continuous inputs, item index for discrete
    inputs, string for text inputs) and returns one value per output
    slot in the same representation.
    """

    @abstractmethod
    def compute(self, *inputs) -> Tuple:
        """Compute output values from input values.

        Returns:
            Tuple: One value per output variable, in output order.
        """


class CallableFormula(Formula):
    """Formula backed by a plain function.

    A callable returning a single value is treated as having one output.
    """

    def __init__(self, routine: Callable):
        self.routine = routine

    def __repr__(self) -> str:
        return f"CallableFormula({getattr(self.routine, '__name__', self.routine)!r})"

    def compute(self, *inputs) -> Tuple:
        result = self.routine(*inputs)
        if not isinstance(result, tuple):
            result = (result,)
        return result


class Function:
    """Named computation node of a DependencyGraph.

    Args:
        name (str): Unique function name.
        formula (Union[Formula, Callable]): Computation to run; plain
            callables are wrapped in a CallableFormula.
        inputs (Sequence[str]): Input variable names, in formula argument order.
        outputs (Sequence[str]): Output variable names, in formula result order.
        module (str): Name of the calculator module this function belongs to.

    Attributes:
        inputs (List[int]): Arena indices of the input variables, set by the graph.
        outputs (List[int]): Arena indices of the output variables, set by the graph.
        dirty (List[bool]): One dirty bit per input slot.
        active (bool): Whether the configuration selected this function.
        calls (int): Number of times the formula has been run.
    """

    def __init__(self, name: str, formula: Union[Formula, Callable],
                 inputs: Sequence[str] = (), outputs: Sequence[str] = (), module: str = ""):
        if not isinstance(formula, Formula):
            formula = CallableFormula(formula)
        self.name = name
        self.formula = formula
        self.module = module
        self.input_names = list(inputs)
        self.output_names = list(outputs)

        self.index = -1
        self.inputs: List[int] = []
        self.outputs: List[int] = []
        self.dirty: List[bool] = [True] * len(self.input_names)
        self.pending = True
        self.active = False
        self.calls = 0

    def __repr__(self) -> str:
        return f"Function({self.name}: {self.input_names} -> {self.output_names})"

    def set_dirty_all(self) -> None:
        self.dirty = [True] * len(self.inputs)
        self.pending = True

    def is_dirty(self) -> bool:
        return self.pending or any(self.dirty)

    def mark_input(self, var_index: int) -> bool:
        """Dirty every input slot reading `var_index`.

        Returns:
            bool: True if the function had no dirty slot before the call.
        """
        was_clean = not self.is_dirty()
        for slot, index in enumerate(self.inputs):
            if index == var_index:
                self.dirty[slot] = True
        return was_clean

    def run(self, variables: Sequence) -> None:
        """Run the formula on the current input values and store the outputs.

        Args:
            variables (Sequence[Variable]): The owning graph's variable arena.

        Raises:
            ConfigurationError: If the formula returns the wrong number of values.
        """
        values = [variables[i].formula_value() for i in self.inputs]
        results = self.formula.compute(*values)
        if len(results) != len(self.outputs):
            raise ConfigurationError(
                f"Formula returned {len(results)} values for {len(self.outputs)} outputs",
                parameter=self.name)

        self.pending = False
        self.calls += 1
        logger.debug("run %s%s -> %s", self.name, tuple(values), tuple(results))

        for index, value in zip(self.outputs, results):
            variables[index].assign_formula_value(value)

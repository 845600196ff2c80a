"""Scalar, vector and matrix runs over ranging variables.

A leaf whose raw store holds more than one entry is a ranging variable.
With no ranging variable a run produces a single cell, with one a
vector (one row per entry) and with two a matrix (rows from the first,
columns from the second). Every cell holds the display value of each
requested output; discrete outputs hold the index of their active item.

Functions:
    - run_table: Validate the entries and evaluate every cell.
"""

import logging
from typing import TYPE_CHECKING, List, Optional, Sequence, Union

import numpy as np
from tqdm import tqdm

from firecalc.utilities.data_classes import ProblemKind, RangeSpec, ResultTable, ValidationResult

if TYPE_CHECKING:
    from firecalc.base_classes.dependency_graph import DependencyGraph

logger = logging.getLogger(__name__)


def _axis_values(variable) -> List:
    if variable.is_discrete:
        return [variable.items[variable.find_item(t.text)].name for t in variable.tokens]
    return [float(t.text) for t in variable.tokens]


def run_table(graph: "DependencyGraph", outputs: Optional[Sequence[str]] = None,
              ranges: Optional[Sequence[RangeSpec]] = None,
              progress: bool = False) -> Union[ResultTable, ValidationResult]:
    """Evaluate the requested outputs over every combination of ranging entries.

    Args:
        graph (DependencyGraph): Reconfigured graph whose leaf stores hold
            the entries.
        outputs (Optional[Sequence[str]]): Output names; every non-text
            root when omitted.
        ranges (Optional[Sequence[RangeSpec]]): Explicit ranges written to
            the named leaves' stores before validation. Their order sets
            the row and column variables, and each one is a table axis
            even when it holds a single value.
        progress (bool): Show a tqdm progress bar over the cells.

    Returns:
        Union[ResultTable, ValidationResult]: The table, or the first
        validation failure.
    """
    ranges = list(ranges or [])
    if len(ranges) > 2:
        extra = ranges[2].variable
        return ValidationResult(ProblemKind.TOO_MANY_RANGING_VARIABLES, extra, 0, 0,
                                "At most 2 variables may be ranged.")

    for spec in ranges:
        result = spec.check()
        if not result.ok:
            return result
        result = graph.set_leaf_text(spec.variable, spec.store_text())
        if not result.ok:
            return result

    validation = graph.validate_inputs()
    if not validation.ok:
        return validation

    for spec in ranges:
        variable = graph.variable(spec.variable)
        if variable.is_masked:
            return ValidationResult(ProblemKind.NOT_AN_INPUT, variable.name, 0, len(variable.store),
                                    f"{variable.label} is not needed by the current entries "
                                    "and cannot be ranged.")

    # Explicit ranges first, even with a single value, then any other ranging leaf
    axes = []
    for spec in ranges:
        index = graph.index_of(spec.variable)
        if index not in axes:
            axes.append(index)
    axes += [i for i in graph.ranging_variables() if i not in axes]
    if len(axes) > 2:
        extra = graph.variables[axes[2]]
        return ValidationResult(ProblemKind.TOO_MANY_RANGING_VARIABLES, extra.name,
                                0, len(extra.store), "At most 2 variables may be ranged.")

    if outputs is None:
        indices = [i for i in graph.roots if not graph.variables[i].is_text]
    else:
        indices = [graph.index_of(name) for name in outputs]
    out_vars = [graph.variables[i] for i in indices]

    row_var = graph.variables[axes[0]] if len(axes) > 0 else None
    col_var = graph.variables[axes[1]] if len(axes) > 1 else None
    rows = row_var.token_count if row_var is not None else 1
    cols = col_var.token_count if col_var is not None else 1

    # Slaves follow their master's entry position
    slaves = []
    for index in graph.leaves:
        variable = graph.variables[index]
        if variable.master is not None and variable.is_ranging and index not in axes:
            slaves.append(variable)

    values = np.zeros((rows, cols, len(out_vars)))
    with tqdm(total=rows * cols, desc="Running table", disable=not progress) as pbar:
        for r in range(rows):
            if row_var is not None:
                row_var.apply_token(r)
                for slave in slaves:
                    if slave.master == row_var.name:
                        slave.apply_token(r)
            for c in range(cols):
                if col_var is not None:
                    col_var.apply_token(c)
                    for slave in slaves:
                        if slave.master == col_var.name:
                            slave.apply_token(c)
                for k, variable in enumerate(out_vars):
                    graph.calculate_variable(variable.index)
                    if variable.is_discrete:
                        values[r, c, k] = variable.item_index
                    else:
                        values[r, c, k] = variable.display_value
                pbar.update(1)

    # Leave every ranging leaf at its first entry
    for variable in [row_var, col_var] + slaves:
        if variable is not None:
            variable.apply_token(0)

    table = ResultTable(
        outputs=[v.name for v in out_vars],
        values=values,
        rank=len(axes),
        row_variable=row_var.name if row_var is not None else None,
        row_values=_axis_values(row_var) if row_var is not None else [],
        col_variable=col_var.name if col_var is not None else None,
        col_values=_axis_values(col_var) if col_var is not None else [],
        units={v.name: v.display_units if v.is_continuous else "" for v in out_vars},
        decimals={v.name: v.display_decimals for v in out_vars},
        item_names={v.name: v.item_names() for v in out_vars if v.is_discrete},
    )
    logger.info("%s table run: %d x %d cells, %d outputs", graph.name, rows, cols, len(out_vars))
    return table

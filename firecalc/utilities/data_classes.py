"""Dataclasses shared across the firecalc engine.

Result objects in this module carry every user-correctable problem back
to the caller instead of raising, so a front end can refocus an entry
field or offer a resolution without unwinding the call stack.

Classes:
    - ProblemKind: Names of the user-correctable problem kinds.
    - UnitDescriptor: One registered unit of measure.
    - DerivedUnit: Named dimension signature used in diagnostics.
    - UnitTerm: One (unit, exponent) term of a compiled phrase.
    - UnitsDiagnostic: Structured units failure.
    - CompiledPhrase: Result of compiling one unit phrase.
    - ConversionResult: Factor/offset (and converted value) of a conversion.
    - Token: One token parsed from a variable's raw text store.
    - ValidationResult: Outcome of validating a store or the input set.
    - Conflict: One configuration conflict with its offered resolutions.
    - RangeSpec: Enumerated values of one ranging variable.
    - ResultCell: One cell of a result table, as a flat record.
    - ResultTable: Scalar, vector or matrix of computed outputs.
"""

from dataclasses import dataclass, field, asdict
from typing import Dict, List, Optional, Tuple

import numpy as np
import pandas as pd


class ProblemKind:
    # User-correctable problem kinds
    UNKNOWN_UNIT_ALIAS = "UnknownUnitAlias"
    INCOMPATIBLE_DIMENSIONS = "IncompatibleDimensions"
    INVALID_LEAF_VALUE = "InvalidLeafValue"
    MISSING_REQUIRED_INPUT = "MissingRequiredInput"
    NOT_AN_INPUT = "NotAnInput"
    TOO_MANY_RANGING_VARIABLES = "TooManyRangingVariables"
    RANGE_COUNT_MISMATCH = "RangeCountMismatch"
    CONFIGURATION_CONFLICT = "ConfigurationConflict"


@dataclass(frozen=True)
class UnitDescriptor:
    description: str
    base_units: str
    exponents: Tuple[int, ...]
    factor: float


@dataclass(frozen=True)
class DerivedUnit:
    name: str
    exponents: Tuple[int, ...]


@dataclass
class UnitTerm:
    unit: UnitDescriptor
    power: int
    prefix: float = 1.0
    token: str = ""


@dataclass
class UnitsDiagnostic:
    """Structured description of a units failure.

    Attributes:
        kind (str): One of ProblemKind.UNKNOWN_UNIT_ALIAS or
            ProblemKind.INCOMPATIBLE_DIMENSIONS.
        message (str): Human readable explanation.
        side (str): "source" or "destination" for unknown aliases,
            empty for incompatibilities.
        token (str): The offending token, if any.
    """
    kind: str
    message: str
    side: str = ""
    token: str = ""


@dataclass
class CompiledPhrase:
    phrase: str
    terms: List[UnitTerm] = field(default_factory=list)
    factor: float = 1.0
    diagnostic: Optional[UnitsDiagnostic] = None

    @property
    def ok(self) -> bool:
        return self.diagnostic is None

    def dimensions(self) -> Tuple[int, ...]:
        """Sum of term exponents per base dimension.

        Returns:
            Tuple[int, ...]: One summed exponent per base dimension.
        """
        if not self.terms:
            return ()
        total = [0] * len(self.terms[0].unit.exponents)
        for term in self.terms:
            for i, exp in enumerate(term.unit.exponents):
                total[i] += exp * term.power
        return tuple(total)


@dataclass
class ConversionResult:
    factor: float = 1.0
    offset: float = 0.0
    value: Optional[float] = None
    diagnostic: Optional[UnitsDiagnostic] = None

    @property
    def ok(self) -> bool:
        return self.diagnostic is None


@dataclass
class Token:
    text: str
    position: int
    length: int


@dataclass
class ValidationResult:
    """Outcome of a validation pass.

    A successful result has `kind` None. Failures name the problem kind,
    the variable involved and, for bad entries, the character span of the
    offending token within the variable's raw text store.
    """
    kind: Optional[str] = None
    variable: Optional[str] = None
    position: int = 0
    length: int = 0
    message: str = ""
    conflicts: List["Conflict"] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.kind is None

    @classmethod
    def success(cls) -> "ValidationResult":
        return cls()


@dataclass
class Conflict:
    name: str
    message: str
    resolutions: List[str] = field(default_factory=list)


@dataclass
class RangeSpec:
    """Enumerated values of one ranging variable, in display units.

    Continuous values are floats; discrete values are item names. The
    order given here is the row (or column) order of the result table.
    Factories given unusable parameters return a spec with no values and
    `problem` set; runs report it as an invalid entry.
    """
    variable: str
    values: List = field(default_factory=list)
    problem: str = ""

    @property
    def ok(self) -> bool:
        return not self.problem and bool(self.values)

    @classmethod
    def from_thru_step(cls, variable: str, start: float, stop: float, step: float) -> "RangeSpec":
        if not step > 0:
            return cls(variable, problem=f"Range step {step:g} must be positive.")
        if stop < start:
            return cls(variable, problem=f"Range end {stop:g} is less than its start {start:g}.")
        count = int(np.floor((stop - start) / step + 1e-9)) + 1
        values = [float(start + i * step) for i in range(count)]
        return cls(variable, values)

    @classmethod
    def from_limits(cls, variable: str, minimum: float, maximum: float, points: int) -> "RangeSpec":
        # Graph mode: evenly spaced points between two limits
        if points < 2:
            return cls(variable, problem=f"A graph range needs at least 2 points, not {points}.")
        return cls(variable, [float(v) for v in np.linspace(minimum, maximum, points)])

    @classmethod
    def from_items(cls, variable: str, items: List[str]) -> "RangeSpec":
        return cls(variable, list(items))

    def check(self) -> "ValidationResult":
        """INVALID_LEAF_VALUE result for an unusable spec, else success."""
        if self.ok:
            return ValidationResult.success()
        message = self.problem or f"The range for {self.variable} has no values."
        return ValidationResult(ProblemKind.INVALID_LEAF_VALUE, self.variable, 0, 0, message)

    def store_text(self, decimals: int = 6) -> str:
        """Raw store text equivalent of this range."""
        parts = []
        for value in self.values:
            if isinstance(value, str):
                parts.append(value)
            else:
                parts.append(format_number(value, decimals))
        return " ".join(parts)


@dataclass
class ResultCell:
    row: int
    col: int
    row_value: Optional[object]
    col_value: Optional[object]
    output: str
    value: float
    units: str

    def to_dict(self):
        return asdict(self)


@dataclass
class ResultTable:
    """Computed outputs for 0, 1 or 2 ranging variables.

    `values` always has shape (rows, cols, outputs); `rank` tells how many
    of the leading axes are real ranging axes. Use `output_array()` to get
    an array of the proper rank for one output.
    """
    outputs: List[str]
    values: np.ndarray
    rank: int = 0
    row_variable: Optional[str] = None
    row_values: List = field(default_factory=list)
    col_variable: Optional[str] = None
    col_values: List = field(default_factory=list)
    units: Dict[str, str] = field(default_factory=dict)
    decimals: Dict[str, int] = field(default_factory=dict)
    item_names: Dict[str, List[str]] = field(default_factory=dict)

    @property
    def shape(self) -> Tuple[int, ...]:
        return self.values.shape[:self.rank]

    def output_array(self, output: str) -> np.ndarray:
        """Return the values of one output with the table's rank.

        Args:
            output (str): Name of a requested output variable.

        Returns:
            np.ndarray: 0-d, 1-d or 2-d array of display values.
        """
        k = self.outputs.index(output)
        data = self.values[:, :, k]
        if self.rank == 0:
            return np.array(data[0, 0])
        if self.rank == 1:
            return data[:, 0].copy()
        return data.copy()

    def value(self, output: str, row: int = 0, col: int = 0) -> float:
        return float(self.values[row, col, self.outputs.index(output)])

    def item_name(self, output: str, row: int = 0, col: int = 0) -> str:
        """Item name of a discrete output cell."""
        return self.item_names[output][int(self.value(output, row, col))]

    def cells(self) -> List[ResultCell]:
        cells = []
        rows, cols, _ = self.values.shape
        for row in range(rows):
            row_value = self.row_values[row] if self.row_values else None
            for col in range(cols):
                col_value = self.col_values[col] if self.col_values else None
                for k, name in enumerate(self.outputs):
                    cells.append(ResultCell(row, col, row_value, col_value, name,
                                            float(self.values[row, col, k]),
                                            self.units.get(name, "")))
        return cells

    def to_frame(self) -> pd.DataFrame:
        """Long-format DataFrame with one row per (row, col, output) cell."""
        return pd.DataFrame([cell.to_dict() for cell in self.cells()])


def format_number(value: float, decimals: int) -> str:
    text = f"{value:.{decimals}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    if text in ("-0", ""):
        text = "0"
    return text

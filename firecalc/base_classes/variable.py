"""Variables of the fire behavior dependency graph.

A Variable holds one physical quantity in two representations: the
native value in the units the formulas are written in, and the display
value in the units the user currently reads and types. Switching display
units never changes the native value.

Classes:
    - VariableKind: Continuous, discrete or text.
    - VariableItem: One choice of a discrete variable.
    - Variable: A named quantity with native/display values and a raw text store.
"""

import logging
import math
import re
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

from firecalc.exceptions import ConfigurationError
from firecalc.units.registry import UnitsRegistry
from firecalc.utilities.data_classes import (
    ConversionResult,
    ProblemKind,
    Token,
    ValidationResult,
    format_number,
)

logger = logging.getLogger(__name__)

# Store tokens are separated by whitespace, commas and double quotes
_TOKEN = re.compile(r'[^\s,"]+')

# Decimals used when a store is rewritten into new display units
STORE_DECIMALS = 6


class VariableKind:
    # Variable kinds
    CONTINUOUS, DISCRETE, TEXT = "continuous", "discrete", "text"


@dataclass
class VariableItem:
    name: str
    description: str = ""


class Variable:
    """A named quantity of the dependency graph.

    Continuous variables keep a native value, a native unit phrase and a
    display unit phrase with a decimal count. Discrete variables keep the
    index of their active item. Text variables keep a string.

    Variables are owned by a DependencyGraph, which assigns `index` and
    registers itself as the change listener so that every value change
    marks the consuming functions dirty.

    Attributes:
        name (str): Unique name.
        kind (str): One of VariableKind.
        label (str): Short human readable description.
        producers (List[int]): Indices of functions that can compute this variable.
        consumers (List[int]): Indices of functions that read this variable.
        active_producer (Optional[int]): Producer chosen by the current configuration.
        is_user_input (bool): Leaf that currently needs an entry.
        is_user_output (bool): Root requested by the current configuration.
        is_constant (bool): Leaf whose value is fixed by the configuration.
        is_masked (bool): Leaf hidden by the current configuration.
        master (Optional[str]): Variable whose entry count this one must match.
        store (str): Raw text entered for this variable.
        tokens (List[Token]): Tokens parsed from `store`.
    """

    def __init__(self, name: str, kind: str = VariableKind.CONTINUOUS,
                 registry: Optional[UnitsRegistry] = None,
                 native_units: str = "", native_decimals: int = 6,
                 minimum: float = 0.0, maximum: float = 1.0e12, default: float = 0.0,
                 english_units: Optional[str] = None, english_decimals: Optional[int] = None,
                 metric_units: Optional[str] = None, metric_decimals: Optional[int] = None,
                 items: Optional[Sequence[VariableItem]] = None, default_item: int = 0,
                 label: str = "", master: Optional[str] = None):
        self.name = name
        self.kind = kind
        self.label = label or name
        self.registry = registry
        self.master = master

        self.index = -1
        self.producers: List[int] = []
        self.consumers: List[int] = []
        self.active_producer: Optional[int] = None

        self.is_user_input = False
        self.is_user_output = False
        self.is_constant = False
        self.is_masked = False
        self.invalid = False

        self.store = ""
        self.tokens: List[Token] = []
        self._listener: Optional[Callable[[int], None]] = None

        # Continuous
        self.native_units = native_units
        self.native_decimals = native_decimals
        self.minimum = minimum
        self.maximum = maximum
        self.default = default
        self.english_units = english_units if english_units is not None else native_units
        self.english_decimals = english_decimals if english_decimals is not None else native_decimals
        self.metric_units = metric_units if metric_units is not None else native_units
        self.metric_decimals = metric_decimals if metric_decimals is not None else native_decimals
        self.native_value = default
        self.display_units = native_units
        self.display_decimals = native_decimals
        self.display_value = default
        self._factor = 1.0
        self._offset = 0.0

        # Discrete
        self.items: List[VariableItem] = list(items or [])
        self.default_item = default_item
        self.item_index = default_item

        # Text
        self.text = ""

        if kind == VariableKind.DISCRETE and not self.items:
            raise ConfigurationError("Discrete variable needs at least one item", parameter=name)

    def __repr__(self) -> str:
        if self.is_continuous:
            return f"Variable({self.name}: {self.native_value} {self.native_units})"
        if self.is_discrete:
            return f"Variable({self.name}: {self.item_name})"
        return f"Variable({self.name}: {self.text!r})"

    @property
    def is_continuous(self) -> bool:
        return self.kind == VariableKind.CONTINUOUS

    @property
    def is_discrete(self) -> bool:
        return self.kind == VariableKind.DISCRETE

    @property
    def is_text(self) -> bool:
        return self.kind == VariableKind.TEXT

    @property
    def is_leaf(self) -> bool:
        return self.active_producer is None

    def bind(self, index: int, listener: Optional[Callable[[int], None]]) -> None:
        """Attach the owning graph's arena index and change listener."""
        self.index = index
        self._listener = listener

    def _changed(self) -> None:
        if self._listener is not None:
            self._listener(self.index)

    # ------------------------------------------------------------------
    # Continuous values
    # ------------------------------------------------------------------

    def in_range(self, native: float) -> bool:
        if not math.isfinite(native):
            return False
        tol = 1.0e-9 * max(1.0, abs(self.minimum), abs(self.maximum))
        return self.minimum - tol <= native <= self.maximum + tol

    def set_native_value(self, value: float) -> bool:
        """Store a native value and derive the display value.

        Args:
            value (float): New value in native units.

        Returns:
            bool: False (and nothing stored) if the value is outside
            [minimum, maximum].
        """
        value = float(value)
        if not self.in_range(value):
            self.invalid = True
            logger.debug("%s rejected native value %r outside [%g, %g]",
                         self.name, value, self.minimum, self.maximum)
            return False
        self.invalid = False
        self.update(value)
        return True

    def update(self, value: float) -> None:
        """Store a computed native value without a bounds check."""
        self.native_value = float(value)
        self.display_value = self._to_display(self.native_value)
        self._changed()

    def set_display_value(self, value: float) -> bool:
        """Store a display value and derive the native value.

        Returns:
            bool: False (and nothing stored) if the converted native value
            is outside [minimum, maximum].
        """
        native = self._to_native(float(value))
        if not self.in_range(native):
            self.invalid = True
            return False
        self.invalid = False
        self.native_value = native
        self.display_value = float(value)
        self._changed()
        return True

    def _to_display(self, native: float) -> float:
        value = self._offset + native * self._factor
        if math.isfinite(value):
            value = round(value, self.display_decimals)
        return value

    def _to_native(self, display: float) -> float:
        return (display - self._offset) / self._factor

    @property
    def display_minimum(self) -> float:
        return self._offset + self.minimum * self._factor

    @property
    def display_maximum(self) -> float:
        return self._offset + self.maximum * self._factor

    def display_text(self) -> str:
        if self.is_discrete:
            return self.item_name
        if self.is_text:
            return self.text
        return f"{self.display_value:.{self.display_decimals}f}"

    def set_display_units(self, units: str, decimals: Optional[int] = None) -> ConversionResult:
        """Switch the display units, keeping the native value unchanged.

        The raw store is rewritten into the new units so that a pending
        entry keeps its meaning.

        Args:
            units (str): New display unit phrase.
            decimals (Optional[int]): New display decimals, unchanged if None.

        Returns:
            ConversionResult: Native-to-display factor and offset, or the
            diagnostic explaining why the units cannot be used.
        """
        if not self.is_continuous:
            return ConversionResult()
        if self.registry is None:
            raise ConfigurationError("Continuous variable has no units registry", parameter=self.name)

        result = self.registry.conversion_factor_offset(self.native_units, units)
        if not result.ok:
            return result

        natives = []
        for token in self.tokens:
            try:
                natives.append(self._to_native(float(token.text)))
            except ValueError:
                natives = None
                break

        self._factor = result.factor
        self._offset = result.offset
        self.display_units = units
        if decimals is not None:
            self.display_decimals = decimals
        self.display_value = self._to_display(self.native_value)

        if natives:
            texts = [format_number(self._offset + v * self._factor, STORE_DECIMALS) for v in natives]
            self._set_tokens(" ".join(texts))
        return result

    def apply_english_units(self) -> ConversionResult:
        return self.set_display_units(self.english_units, self.english_decimals)

    def apply_metric_units(self) -> ConversionResult:
        return self.set_display_units(self.metric_units, self.metric_decimals)

    def apply_native_units(self) -> ConversionResult:
        return self.set_display_units(self.native_units, self.native_decimals)

    # ------------------------------------------------------------------
    # Discrete values
    # ------------------------------------------------------------------

    @property
    def item_name(self) -> str:
        return self.items[self.item_index].name

    def item_names(self) -> List[str]:
        return [item.name for item in self.items]

    def find_item(self, name: str) -> int:
        """Index of the item named `name` (case-insensitive), or -1."""
        lowered = name.lower()
        for i, item in enumerate(self.items):
            if item.name.lower() == lowered:
                return i
        return -1

    def set_item(self, name: str) -> bool:
        index = self.find_item(name)
        if index < 0:
            return False
        self.set_item_index(index)
        return True

    def set_item_index(self, index: int) -> None:
        index = int(index)
        if not 0 <= index < len(self.items):
            raise IndexError(f"{self.name} has no item {index}")
        self.item_index = index
        self._changed()

    # ------------------------------------------------------------------
    # Text values
    # ------------------------------------------------------------------

    def set_text(self, text: str) -> None:
        self.text = text
        self._changed()

    # ------------------------------------------------------------------
    # Formula interface
    # ------------------------------------------------------------------

    def formula_value(self):
        """Value handed to formulas: native value, item index or text."""
        if self.is_continuous:
            return self.native_value
        if self.is_discrete:
            return self.item_index
        return self.text

    def assign_formula_value(self, value) -> None:
        """Write a formula result back: native value, item index or text."""
        if self.is_continuous:
            self.update(value)
        elif self.is_discrete:
            self.set_item_index(value)
        else:
            self.set_text(str(value))

    # ------------------------------------------------------------------
    # Raw text store
    # ------------------------------------------------------------------

    def _set_tokens(self, text: str) -> None:
        self.store = text
        self.tokens = [Token(m.group(0), m.start(), len(m.group(0))) for m in _TOKEN.finditer(text)]

    @property
    def token_count(self) -> int:
        return len(self.tokens)

    @property
    def is_ranging(self) -> bool:
        return len(self.tokens) > 1

    def validate_token(self, token: Token) -> Optional[str]:
        """Return an error message if `token` is not a valid entry, else None."""
        if self.is_discrete:
            if self.find_item(token.text) < 0:
                return (f'{self.label} entry "{token.text}" is not one of: '
                        f'{", ".join(self.item_names())}.')
            return None
        if self.is_text:
            return None

        try:
            value = float(token.text)
        except ValueError:
            return f'{self.label} entry "{token.text}" is not a number.'
        if not self.in_range(self._to_native(value)):
            return (f'{self.label} entry "{token.text}" is outside the range '
                    f'{self.display_minimum:g} to {self.display_maximum:g} {self.display_units}.')
        return None

    def check_store(self) -> ValidationResult:
        """Validate every token of the current store."""
        for token in self.tokens:
            message = self.validate_token(token)
            if message is not None:
                return ValidationResult(ProblemKind.INVALID_LEAF_VALUE, self.name,
                                        token.position, token.length, message)
        return ValidationResult.success()

    def set_store(self, text: str) -> ValidationResult:
        """Set the raw text store and apply its first token.

        Text variables store the whole string. For the other kinds the
        store is tokenized; if every token is valid the first one becomes
        the current value, otherwise the value is left unchanged and the
        span of the first bad token is returned.

        Args:
            text (str): Raw entry text, e.g. "10", "0 5 10" or "8, 9".

        Returns:
            ValidationResult: Success, or the INVALID_LEAF_VALUE failure.
        """
        if self.is_text:
            self.store = text
            self.tokens = [Token(text, 0, len(text))] if text else []
            self.set_text(text)
            return ValidationResult.success()

        self._set_tokens(text)
        result = self.check_store()
        if result.ok and self.tokens:
            self.apply_token(0)
        return result

    def apply_token(self, position: int) -> None:
        """Make token number `position` of the store the current value."""
        text = self.tokens[position].text
        if self.is_discrete:
            self.set_item(text)
        else:
            self.set_display_value(float(text))

    def reset(self) -> None:
        """Clear the store and return to the default value."""
        self.store = ""
        self.tokens = []
        self.invalid = False
        if self.is_continuous:
            self.update(self.default)
        elif self.is_discrete:
            self.set_item_index(self.default_item)
        else:
            self.set_text("")

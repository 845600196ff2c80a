"""Custom exceptions for the firecalc fire behavior calculator.

This module defines the exceptions raised for defects in the fixed
tables or in the configuration layer. Problems a user can correct (an
unknown unit term, an out-of-range entry, a missing input, too many
ranging variables, a configuration conflict) are never raised; they are
returned as result objects from `firecalc.utilities.data_classes`.

Exception Hierarchy:
    FireCalcError (base)
    ├── DuplicateUnitRegistrationError - Unit description or alias defined twice
    ├── ConfigurationError - Invalid property or module configuration
    ├── GraphCycleError - Active producer graph contains a cycle
    ├── UnknownVariableError - Lookup of a variable or function name that does not exist
    └── PersistenceError - Store or result files cannot be read or written

Example:
    >>> from firecalc.exceptions import ConfigurationError
    >>> raise ConfigurationError("Unknown property", parameter="size_module_active")
"""

from typing import List, Optional


class FireCalcError(Exception):
    """Base exception for all firecalc errors.

    Example:
        >>> try:
        ...     graph.reconfigure(configure_modules)
        ... except FireCalcError as e:
        ...     print(f"firecalc error occurred: {e}")
    """

    pass


class DuplicateUnitRegistrationError(FireCalcError):
    """Raised when a unit description or alias is registered twice.

    This exception is raised when:
    - Two unit definitions share the same description key
    - An alias is already mapped to another unit

    It signals a defect in the unit table itself and is expected only
    while a registry is being built.

    Attributes:
        message (str): Explanation of the registration failure.
        key (str): The duplicated description or alias.

    Example:
        >>> raise DuplicateUnitRegistrationError("Alias already defined", key="ft")
    """

    def __init__(self, message: str, key: Optional[str] = None):
        self.key = key

        if key is not None:
            full_message = f"{message} (key: '{key}')"
        else:
            full_message = message

        super().__init__(full_message)


class ConfigurationError(FireCalcError):
    """Raised when configuration properties or definitions are invalid.

    This exception is raised when:
    - An unknown property name is read or written
    - A property value has the wrong type
    - More than one function is active for the same output variable
    - A definition table references a variable that does not exist

    Attributes:
        message (str): Explanation of the configuration error.
        config_path (str): Path to the configuration file, if applicable.
        parameter (str): Name of the problematic property or variable, if applicable.

    Example:
        >>> raise ConfigurationError(
        ...     "Two active producers",
        ...     parameter="surface_fire_spread_at_head"
        ... )
    """

    def __init__(self, message: str, config_path: Optional[str] = None, parameter: Optional[str] = None):
        self.config_path = config_path
        self.parameter = parameter

        parts = []
        if config_path:
            parts.append(f"in {config_path}")
        if parameter:
            parts.append(f"parameter '{parameter}'")

        if parts:
            full_message = f"{message} ({', '.join(parts)})"
        else:
            full_message = message

        super().__init__(full_message)


class GraphCycleError(FireCalcError):
    """Raised when the active producer graph is not acyclic.

    Attributes:
        message (str): Explanation of the failure.
        cycle (List[str]): Variable names forming the cycle, in order.

    Example:
        >>> raise GraphCycleError("Cycle detected", cycle=["a", "b", "a"])
    """

    def __init__(self, message: str, cycle: Optional[List[str]] = None):
        self.cycle = cycle or []

        if self.cycle:
            full_message = f"{message} ({' -> '.join(self.cycle)})"
        else:
            full_message = message

        super().__init__(full_message)


class UnknownVariableError(FireCalcError):
    """Raised when a variable or function name is not part of the graph.

    Attributes:
        message (str): Explanation of the failure.
        name (str): The name that was looked up.
    """

    def __init__(self, message: str, name: Optional[str] = None):
        self.name = name

        if name is not None:
            full_message = f"{message} (name: '{name}')"
        else:
            full_message = message

        super().__init__(full_message)


class PersistenceError(FireCalcError):
    """Raised when a store or result file cannot be read or written.

    Attributes:
        message (str): Explanation of the failure.
        path (str): File involved, if applicable.
        original_error (Exception): The underlying exception, if any.
    """

    def __init__(self, message: str, path: Optional[str] = None, original_error: Optional[Exception] = None):
        self.path = path
        self.original_error = original_error

        parts = []
        if path:
            parts.append(f"path: {path}")
        if original_error:
            parts.append(f"caused by: {type(original_error).__name__}: {original_error}")

        if parts:
            full_message = f"{message} ({', '.join(parts)})"
        else:
            full_message = message

        super().__init__(full_message)

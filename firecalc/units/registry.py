"""Units-of-measure registry and unit phrase compiler.

A unit phrase such as "lb/ft2", "kg per m3" or "Btu/ft/s" is compiled
into a list of (unit, exponent) terms and a scalar factor relative to the
SI base units. Two phrases are compatible when their terms reduce to the
same exponent on each of the 11 base dimensions. Conversions are purely
multiplicative, except between single-term Celsius, Fahrenheit and
Kelvin phrases, which also carry an additive offset.

Registries are plain objects. Build one with
`firecalc.units.unit_table.build_default_registry()` and hand it to every
graph that needs it.

Classes:
    - UnitsRegistry: Unit definitions, aliases and conversions.

Functions:
    - normalize_phrase: Rewrite a raw unit phrase into space separated tokens.

References:
    - Taylor, B. N. (1995). Guide for the Use of the International System
      of Units (SI). NIST Special Publication 811.
"""

import logging
import re
from typing import Dict, List, Optional, Sequence, Tuple

from firecalc.exceptions import ConfigurationError, DuplicateUnitRegistrationError
from firecalc.utilities.data_classes import (
    CompiledPhrase,
    ConversionResult,
    DerivedUnit,
    ProblemKind,
    UnitDescriptor,
    UnitsDiagnostic,
    UnitTerm,
)

logger = logging.getLogger(__name__)

# Base dimensions, in exponent vector order
DIMENSION_NAMES = (
    "class", "distance", "mass", "time", "current", "temperature",
    "luminosity", "substance", "angle", "solid-angle", "ratio",
)
BASE_UNIT_NAMES = ("", "m", "kg", "s", "A", "K", "cd", "mol", "rad", "sr", "dl")
NUM_DIMENSIONS = len(DIMENSION_NAMES)

# SI prefixes are recognized by their full names only
SI_PREFIXES = (
    ("yotta", 1e24), ("zetta", 1e21), ("exa", 1e18), ("peta", 1e15),
    ("tera", 1e12), ("giga", 1e9), ("mega", 1e6), ("kilo", 1e3),
    ("hecto", 1e2), ("deka", 1e1), ("deci", 1e-1), ("centi", 1e-2),
    ("milli", 1e-3), ("micro", 1e-6), ("nano", 1e-9), ("pico", 1e-12),
    ("femto", 1e-15), ("atto", 1e-18), ("zepto", 1e-21), ("yocto", 1e-24),
)

# Unit descriptions that take part in the temperature offset table
TEMPERATURE_UNITS = ("degrees Celsius", "degrees Fahrenheit", "kelvin")

# Additive offsets, TEMPERATURE_OFFSETS[src][dst]
TEMPERATURE_OFFSETS = (
    (0.0, 32.0, 273.15),
    (-(32.0 * 5.0 / 9.0), 0.0, 255.372222222),
    (-273.15, -459.67, 0.0),
)

EQUIVALENCE_TOLERANCE = 1.0e-5

_DIVISORS = ("/", "per")
_TOKEN_EXPONENT = re.compile(r"^(.*?)\^?([+-]?\d+)$")
_LEADING_NUMBER = re.compile(r"^\s*[+-]?\d+(?=\s|$)")
_DEGREES_TEMPERATURE = re.compile(
    r"\bdeg(?:ree)?s?\s+(C|F|K|Celsius|Fahrenheit|Kelvin|celsius|fahrenheit|kelvin)\b")


def normalize_phrase(phrase: str) -> str:
    """Rewrite a raw unit phrase into space separated tokens.

    Alphanumerics and the characters % _ ' " are kept. A caret is kept
    only in front of an exponent, and a sign only in front of a digit.
    Every slash becomes a standalone "/" token and everything else becomes
    a separator. A leading bare number ("1/s") is dropped, and
    "degrees F" style temperature phrases become the matching
    temperature alias ("oF").

    Args:
        phrase (str): Unit phrase as typed by a user or stored in a table.

    Returns:
        str: Normalized phrase.
    """
    phrase = _DEGREES_TEMPERATURE.sub(lambda m: "o" + m.group(1)[0].upper(), phrase)

    out = []
    size = len(phrase)
    for i, ch in enumerate(phrase):
        nxt = phrase[i + 1] if i + 1 < size else ""
        if ch.isalnum() or ch in "%_'\"":
            out.append(ch)
        elif ch == "^" and (nxt.isdigit() or nxt in ("+", "-")):
            out.append(ch)
        elif ch in ("+", "-") and nxt.isdigit():
            out.append(ch)
        elif ch == "/":
            out.append(" / ")
        else:
            out.append(" ")

    return _LEADING_NUMBER.sub("", "".join(out)).strip()


class UnitsRegistry:
    """Registry of units, aliases and derived-unit signatures.

    A registry is read-only once its tables are loaded and can be shared
    by any number of dependency graphs.

    Example:
        >>> registry = build_default_registry()
        >>> registry.convert(100.0, "oF", "oC").value
        37.77777777777778
    """

    def __init__(self):
        self._units: Dict[str, UnitDescriptor] = {}
        self._aliases: Dict[str, str] = {}
        self._derived: List[DerivedUnit] = []

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def define(self, description: str, base_units: str, exponents: Sequence[int],
               factor: float, aliases: Sequence[str] = ()) -> UnitDescriptor:
        """Register one unit and all of its aliases.

        Args:
            description (str): Unique description key, e.g. "foot".
            base_units (str): SI base unit phrase the factor refers to.
            exponents (Sequence[int]): Exponent on each of the 11 base dimensions.
            factor (float): Multiplier converting one of this unit into base units.
            aliases (Sequence[str]): Case sensitive spellings that map to this unit.

        Returns:
            UnitDescriptor: The registered unit.

        Raises:
            DuplicateUnitRegistrationError: If the description or any alias
                is already registered.
            ConfigurationError: If the exponent vector has the wrong size.
        """
        if description in self._units:
            raise DuplicateUnitRegistrationError("Unit description already defined", key=description)
        if len(exponents) != NUM_DIMENSIONS:
            raise ConfigurationError(f"Unit needs {NUM_DIMENSIONS} dimension exponents",
                                     parameter=description)
        for alias in aliases:
            if alias in self._aliases:
                raise DuplicateUnitRegistrationError(
                    f"Alias of '{description}' already defined for '{self._aliases[alias]}'",
                    key=alias)

        unit = UnitDescriptor(description, base_units, tuple(int(e) for e in exponents), float(factor))
        self._units[description] = unit
        for alias in aliases:
            self._aliases[alias] = description
        return unit

    def define_derived(self, name: str, exponents: Sequence[int]) -> DerivedUnit:
        """Register a named dimension signature used to explain incompatibilities."""
        if len(exponents) != NUM_DIMENSIONS:
            raise ConfigurationError(f"Derived unit needs {NUM_DIMENSIONS} dimension exponents",
                                     parameter=name)
        derived = DerivedUnit(name, tuple(int(e) for e in exponents))
        self._derived.append(derived)
        return derived

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def __contains__(self, alias: str) -> bool:
        return alias in self._aliases

    def __len__(self) -> int:
        return len(self._units)

    def unit(self, alias: str) -> Optional[UnitDescriptor]:
        """Return the unit registered under `alias`, or None."""
        description = self._aliases.get(alias)
        if description is None:
            return None
        return self._units[description]

    def aliases_of(self, description: str) -> List[str]:
        return sorted(a for a, d in self._aliases.items() if d == description)

    @property
    def descriptions(self) -> List[str]:
        return list(self._units)

    def _lookup(self, stem: str) -> Optional[Tuple[UnitDescriptor, float]]:
        # Whole token, then plural, then prefix + alias
        unit = self._lookup_plural(stem)
        if unit is not None:
            return unit, 1.0

        if stem.startswith("kilog"):
            return None

        for name, multiplier in SI_PREFIXES:
            if stem.startswith(name) and len(stem) > len(name):
                unit = self._lookup_plural(stem[len(name):])
                if unit is not None:
                    return unit, multiplier
                break
        return None

    def _lookup_plural(self, stem: str) -> Optional[UnitDescriptor]:
        unit = self.unit(stem)
        if unit is None and len(stem) > 1 and stem.endswith("s"):
            unit = self.unit(stem[:-1])
        return unit

    # ------------------------------------------------------------------
    # Compilation
    # ------------------------------------------------------------------

    def compile(self, phrase: str, side: str = "source", debug: bool = False) -> CompiledPhrase:
        """Compile a unit phrase into terms and a scalar factor.

        Terms after a "/" or "per" token have their exponent sign flipped.
        An empty phrase compiles to the dimensionless class unit.

        Args:
            phrase (str): Unit phrase to compile.
            side (str): "source" or "destination", used in diagnostics.
            debug (bool): Log every compiled term at INFO level.

        Returns:
            CompiledPhrase: Compiled terms; `diagnostic` is set when a
            token names an unknown unit.
        """
        compiled = CompiledPhrase(phrase)
        tokens = normalize_phrase(phrase).split()

        if not tokens:
            unit = self.unit("")
            if unit is None:
                compiled.diagnostic = self._unknown(side, "")
                return compiled
            compiled.terms.append(UnitTerm(unit, 1))
            compiled.factor = unit.factor
            return compiled

        denom = 1
        for token in tokens:
            if token in _DIVISORS:
                denom = -1
                continue

            power = denom
            stem = token
            match = _TOKEN_EXPONENT.match(token)
            if match:
                stem = match.group(1)
                power *= int(match.group(2))

            found = self._lookup(stem) if stem else None
            if found is None:
                compiled.diagnostic = self._unknown(side, token)
                return compiled

            unit, prefix = found
            compiled.terms.append(UnitTerm(unit, power, prefix, token))
            compiled.factor *= (prefix * unit.factor) ** power

            if debug:
                logger.info("compile %r: term %r -> %s ^ %d (prefix %g, factor %g)",
                            phrase, token, unit.description, power, prefix, unit.factor)

        return compiled

    @staticmethod
    def _unknown(side: str, token: str) -> UnitsDiagnostic:
        label = "Destination" if side == "destination" else "Source"
        return UnitsDiagnostic(ProblemKind.UNKNOWN_UNIT_ALIAS,
                               f'{label} units term "{token}" is unknown.',
                               side=side, token=token)

    # ------------------------------------------------------------------
    # Dimensions
    # ------------------------------------------------------------------

    def compatible(self, src: CompiledPhrase, dst: CompiledPhrase) -> bool:
        """True if both phrases reduce to the same base-dimension exponents."""
        if not (src.ok and dst.ok):
            return False
        return src.dimensions() == dst.dimensions()

    @staticmethod
    def dimension_phrase(exponents: Sequence[int], names: Sequence[str] = DIMENSION_NAMES) -> str:
        """Compact phrase for an exponent vector, e.g. "distance/time".

        Args:
            exponents (Sequence[int]): Exponent per base dimension.
            names (Sequence[str]): Name per base dimension.

        Returns:
            str: Numerator terms, then "/" and denominator terms.
        """
        num = []
        den = []
        for name, exp in zip(names, exponents):
            if exp == 0 or not name:
                continue
            text = name if abs(exp) == 1 else f"{name}{abs(exp)}"
            (num if exp > 0 else den).append(text)

        phrase = " ".join(num) if num else "1"
        if den:
            phrase += "/" + " ".join(den)
        return phrase

    def base_units_phrase(self, exponents: Sequence[int]) -> str:
        """SI base unit phrase for an exponent vector, e.g. "m/s"."""
        return self.dimension_phrase(exponents, BASE_UNIT_NAMES)

    def derived_name(self, exponents: Sequence[int]) -> str:
        """Name of the first derived unit with this signature, ignoring the class dimension."""
        wanted = tuple(exponents[1:])
        for derived in self._derived:
            if derived.exponents[1:] == wanted:
                return derived.name
        return ""

    def describe_mismatch(self, src: CompiledPhrase, dst: CompiledPhrase) -> str:
        """Explain why two compiled phrases are not compatible."""
        lines = [f'Source units "{src.phrase}" are incompatible with '
                 f'destination units "{dst.phrase}".']
        for label, compiled in (("Source", src), ("Destination", dst)):
            exps = compiled.dimensions()
            dims = self.dimension_phrase(exps)
            derived = self.derived_name(exps) or dims
            lines.append(f'{label} units describe "{derived}" ({dims}) which reduces '
                         f'to SI base units "{self.base_units_phrase(exps)}".')
        return "\n".join(lines)

    # ------------------------------------------------------------------
    # Conversion
    # ------------------------------------------------------------------

    def conversion_factor_offset(self, src: str, dst: str) -> ConversionResult:
        """Compute the factor and offset converting `src` units into `dst` units.

        Args:
            src (str): Source unit phrase.
            dst (str): Destination unit phrase.

        Returns:
            ConversionResult: `factor` and `offset`, or a diagnostic naming
            the unknown term or the incompatible dimensions.
        """
        compiled_src = self.compile(src, "source")
        if not compiled_src.ok:
            return ConversionResult(diagnostic=compiled_src.diagnostic)
        compiled_dst = self.compile(dst, "destination")
        if not compiled_dst.ok:
            return ConversionResult(diagnostic=compiled_dst.diagnostic)

        if not self.compatible(compiled_src, compiled_dst):
            message = self.describe_mismatch(compiled_src, compiled_dst)
            return ConversionResult(diagnostic=UnitsDiagnostic(ProblemKind.INCOMPATIBLE_DIMENSIONS, message))

        factor = compiled_src.factor / compiled_dst.factor
        offset = 0.0
        if len(compiled_src.terms) == 1 and len(compiled_dst.terms) == 1:
            i = _temperature_index(compiled_src.terms[0])
            j = _temperature_index(compiled_dst.terms[0])
            if i is not None and j is not None:
                offset = TEMPERATURE_OFFSETS[i][j]

        return ConversionResult(factor=factor, offset=offset)

    def convert(self, value: float, src: str, dst: str) -> ConversionResult:
        """Convert `value` from `src` units into `dst` units.

        Returns:
            ConversionResult: With `value` set to offset + value * factor on
            success.
        """
        result = self.conversion_factor_offset(src, dst)
        if result.ok:
            result.value = result.offset + value * result.factor
        return result

    def equivalent(self, units1: str, units2: str) -> bool:
        """True if converting between the phrases changes nothing."""
        result = self.conversion_factor_offset(units1, units2)
        return (result.ok
                and abs(1.0 - result.factor) <= EQUIVALENCE_TOLERANCE
                and abs(result.offset) <= EQUIVALENCE_TOLERANCE)


def _temperature_index(term: UnitTerm) -> Optional[int]:
    if term.power != 1 or term.prefix != 1.0:
        return None
    try:
        return TEMPERATURE_UNITS.index(term.unit.description)
    except ValueError:
        return None

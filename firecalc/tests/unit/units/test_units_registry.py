"""Tests for the units-of-measure registry.

These tests cover phrase normalization and compilation, dimensional
compatibility, conversion factors and temperature offsets, and the
structured diagnostics returned for unknown or incompatible units.
"""

import pytest

from firecalc.exceptions import ConfigurationError, DuplicateUnitRegistrationError
from firecalc.units.registry import NUM_DIMENSIONS, UnitsRegistry, normalize_phrase
from firecalc.units.unit_table import UnitTable, exponent_vector
from firecalc.utilities.data_classes import ProblemKind


def _length_registry():
    registry = UnitsRegistry()
    registry.define("meter", "m", exponent_vector({"distance": 1}), 1.0, ["m", "meter"])
    registry.define("foot", "m", exponent_vector({"distance": 1}), 0.3048, ["ft", "foot", "feet"])
    return registry


class TestNormalizePhrase:
    """Tests for raw unit phrase normalization."""

    def test_slash_becomes_token(self):
        """Slashes should become standalone tokens."""
        assert normalize_phrase("lb/ft2").split() == ["lb", "/", "ft2"]

    def test_degrees_fahrenheit_rewritten(self):
        """'degrees F' should become the oF alias."""
        assert normalize_phrase("degrees F") == "oF"

    def test_leading_number_dropped(self):
        """A leading bare number should be removed."""
        assert normalize_phrase("1/s").split() == ["/", "s"]

    def test_caret_kept_before_exponent(self):
        """A caret followed by a digit should be kept."""
        assert normalize_phrase("m^2") == "m^2"

    def test_other_punctuation_separates(self):
        """Characters outside the allowed set become separators."""
        assert normalize_phrase("kg*m").split() == ["kg", "m"]


class TestDefine:
    """Tests for unit registration."""

    def test_duplicate_description_raises(self):
        """Registering the same description twice is a table defect."""
        registry = _length_registry()
        with pytest.raises(DuplicateUnitRegistrationError):
            registry.define("meter", "m", exponent_vector({"distance": 1}), 1.0, ["metre"])

    def test_duplicate_alias_raises(self):
        """An alias can only name one unit."""
        registry = _length_registry()
        with pytest.raises(DuplicateUnitRegistrationError):
            registry.define("yard", "m", exponent_vector({"distance": 1}), 0.9144, ["ft"])

    def test_wrong_exponent_count_raises(self):
        """Exponent vectors must cover every base dimension."""
        registry = UnitsRegistry()
        with pytest.raises(ConfigurationError):
            registry.define("meter", "m", [0, 1], 1.0, ["m"])

    def test_unknown_dimension_name_raises(self):
        """Unit tables may only name known dimensions."""
        with pytest.raises(ConfigurationError):
            exponent_vector({"length": 1})

    def test_aliases_resolve_to_unit(self):
        """Every alias should resolve to its unit."""
        registry = _length_registry()
        assert registry.unit("feet").description == "foot"
        assert "ft" in registry
        assert len(registry) == 2


class TestStandardTable:
    """Tests for the standard unit table."""

    def test_table_loads_without_duplicates(self, registry):
        """The standard table registers every entry."""
        table = UnitTable.load_table()
        assert len(registry) == len(table["units"])

    def test_every_unit_has_full_exponent_vector(self, registry):
        """Every registered unit covers every base dimension."""
        for description in registry.descriptions:
            for alias in registry.aliases_of(description)[:1]:
                assert len(registry.unit(alias).exponents) == NUM_DIMENSIONS


class TestCompile:
    """Tests for unit phrase compilation."""

    def test_simple_phrase(self, registry):
        """A single alias compiles to one term with power 1."""
        compiled = registry.compile("ft")
        assert compiled.ok
        assert len(compiled.terms) == 1
        assert compiled.terms[0].power == 1
        assert compiled.factor == pytest.approx(0.3048)

    def test_denominator_flips_sign(self, registry):
        """Terms after '/' get negative exponents."""
        compiled = registry.compile("lb/ft2")
        assert [t.power for t in compiled.terms] == [1, -2]

    def test_per_keyword(self, registry):
        """'per' acts like a slash."""
        compiled = registry.compile("kg per m3")
        assert registry.compatible(compiled, registry.compile("kg/m3"))

    def test_plural_alias(self, registry):
        """A trailing 's' is accepted on aliases."""
        assert registry.compile("meters").ok

    def test_prefix_name(self, registry):
        """Full SI prefix names scale the unit."""
        compiled = registry.compile("kilofoot")
        assert compiled.factor == pytest.approx(304.8)

    def test_empty_phrase_is_class_unit(self, registry):
        """An empty phrase compiles to the dimensionless class unit."""
        compiled = registry.compile("")
        assert compiled.ok
        assert compiled.factor == pytest.approx(1.0)

    def test_unknown_term(self, registry):
        """Unknown terms produce a diagnostic naming the token."""
        compiled = registry.compile("furlongs/fortnight")
        assert not compiled.ok
        assert compiled.diagnostic.kind == ProblemKind.UNKNOWN_UNIT_ALIAS
        assert compiled.diagnostic.token == "furlongs"

    def test_whole_alias_beats_prefix(self, registry):
        """The whole alias "kilogram" is found before any prefix split."""
        compiled = registry.compile("kilogram")
        assert compiled.ok
        assert compiled.factor == pytest.approx(1.0)
        assert len(compiled.terms) == 1
        assert compiled.terms[0].prefix == 1.0
        assert compiled.terms[0].unit.description == "kilogram"

    def test_kilog_not_split(self, registry):
        """Stems starting with "kilog" never take the kilo prefix."""
        compiled = registry.compile("kilogm")
        assert compiled.diagnostic.kind == ProblemKind.UNKNOWN_UNIT_ALIAS
        assert compiled.diagnostic.token == "kilogm"

    def test_all_digit_token_unknown(self, registry):
        """A bare number after the first token is not an exponent."""
        compiled = registry.compile("ft 12")
        assert not compiled.ok
        assert compiled.diagnostic.kind == ProblemKind.UNKNOWN_UNIT_ALIAS
        assert compiled.diagnostic.token == "12"

    def test_unknown_destination_token(self, registry):
        compiled = registry.compile("ft 12", side="destination")
        assert compiled.diagnostic.side == "destination"


class TestCompatibility:
    """Tests for dimensional compatibility."""

    def test_loading_units_compatible(self, registry):
        """lb/ft2 and kg/m2 describe the same quantity."""
        assert registry.compatible(registry.compile("lb/ft2"), registry.compile("kg/m2"))

    def test_velocity_and_distance_incompatible(self, registry):
        """m/s and ft are not convertible."""
        assert not registry.compatible(registry.compile("m/s"), registry.compile("ft"))

    def test_incompatible_diagnostic_names_dimensions(self, registry):
        """The mismatch message names both dimension signatures."""
        result = registry.conversion_factor_offset("m/s", "ft")
        assert not result.ok
        assert result.diagnostic.kind == ProblemKind.INCOMPATIBLE_DIMENSIONS
        assert "distance/time" in result.diagnostic.message
        assert "(distance)" in result.diagnostic.message

    def test_incompatible_diagnostic_names_derived_unit(self, registry):
        """Known signatures are described by their derived unit name."""
        result = registry.conversion_factor_offset("m/s", "ft")
        assert "velocity (m/s)" in result.diagnostic.message

    @pytest.mark.parametrize("first, second", [
        ("lb/ft2", "kg/m2"),
        ("m/s", "ft"),
        ("oF", "oC"),
        ("Btu/ft/s", "kW/m"),
        ("", "%"),
        ("mi/h", "ch/h"),
    ])
    def test_symmetric(self, registry, first, second):
        """Compatibility does not depend on argument order."""
        a, b = registry.compile(first), registry.compile(second)
        assert registry.compatible(a, b) == registry.compatible(b, a)

    def test_symmetric_conversion_factors(self, registry):
        """Converting there and back multiplies to one."""
        there = registry.conversion_factor_offset("mi/h", "m/s")
        back = registry.conversion_factor_offset("m/s", "mi/h")
        assert there.factor * back.factor == pytest.approx(1.0)


class TestConversion:
    """Tests for conversion factors and offsets."""

    @pytest.mark.parametrize("units", ["ft", "mi/h", "oF", "oC", "Btu/ft2/min", "", "%"])
    def test_identity(self, registry, units):
        """Converting a phrase into itself changes nothing."""
        result = registry.convert(12.5, units, units)
        assert result.ok
        assert result.factor == pytest.approx(1.0)
        assert result.offset == 0.0
        assert result.value == pytest.approx(12.5)

    def test_degrees_phrase(self, registry):
        """Spelled-out temperature phrases convert like their aliases."""
        assert registry.convert(212.0, "degrees F", "degrees C").value == pytest.approx(100.0)
        assert registry.convert(0.0, "deg C", "oF").value == pytest.approx(32.0)


    def test_fahrenheit_to_celsius(self, registry):
        """100 oF is 37.78 oC."""
        result = registry.convert(100.0, "oF", "oC")
        assert result.ok
        assert result.value == pytest.approx(37.7777778, abs=1e-6)

    def test_celsius_to_kelvin(self, registry):
        """0 oC is 273.15 K."""
        assert registry.convert(0.0, "oC", "K").value == pytest.approx(273.15)

    def test_temperature_difference_has_no_offset(self, registry):
        """Temperature terms with an exponent carry no offset."""
        result = registry.conversion_factor_offset("J/oC", "J/oF")
        assert result.ok
        assert result.offset == 0.0

    def test_feet_to_meters(self, registry):
        """1 ft is 0.3048 m."""
        assert registry.convert(1.0, "ft", "m").value == pytest.approx(0.3048)

    def test_mph_to_ft_per_min(self, registry):
        """1 mi/h is 88 ft/min."""
        assert registry.convert(1.0, "mi/h", "ft/min").value == pytest.approx(88.0)

    def test_fraction_to_percent(self, registry):
        """A fraction displays as percent times 100."""
        assert registry.convert(0.06, "fraction", "%").value == pytest.approx(6.0)

    def test_fireline_intensity(self, registry):
        """1 Btu/ft/s is about 3.46 kW/m (mean Btu)."""
        assert registry.convert(1.0, "Btu/ft/s", "kW/m").value == pytest.approx(3.4641, abs=1e-3)

    def test_unknown_destination_side(self, registry):
        """Unknown destination terms say which side failed."""
        result = registry.conversion_factor_offset("ft", "cubits")
        assert not result.ok
        assert result.diagnostic.side == "destination"


class TestEquivalent:
    """Tests for unit phrase equivalence."""

    def test_aliases_equivalent(self, registry):
        """Two aliases of the same unit are equivalent."""
        assert registry.equivalent("ft", "feet")

    def test_reordered_phrase_equivalent(self, registry):
        """Equivalent compound phrases compare equal."""
        assert registry.equivalent("lb/ft2", "lb ft-2")

    def test_different_units_not_equivalent(self, registry):
        """Compatible but scaled units are not equivalent."""
        assert not registry.equivalent("ft", "m")

    def test_temperature_offset_not_equivalent(self, registry):
        """Kelvin and Celsius share a factor but not an offset."""
        assert not registry.equivalent("K", "oC")

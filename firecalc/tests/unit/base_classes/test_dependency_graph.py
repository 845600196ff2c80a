"""Tests for the dependency graph engine.

These tests cover construction, reconfiguration (producer selection,
cycle detection, root and leaf generation), lazy evaluation with per-input
dirty bits, input validation and store persistence.
"""

import pytest

from firecalc.base_classes.dependency_graph import DependencyGraph
from firecalc.base_classes.function import Function
from firecalc.base_classes.variable import Variable
from firecalc.exceptions import ConfigurationError, GraphCycleError, UnknownVariableError
from firecalc.utilities.data_classes import ProblemKind


def _graph(registry, names, **kwargs):
    graph = DependencyGraph(registry, name="test")
    for name in names:
        graph.add_variable(Variable(name, native_units="ft", minimum=-1000.0,
                                    maximum=1000.0, **kwargs))
    return graph


def _activate_all(outputs):
    def configure(graph, props):
        for function in graph.functions:
            function.active = True
        for name in outputs:
            graph.variable(name).is_user_output = True
    return configure


class TestConstruction:
    """Tests for adding variables and functions."""

    def test_duplicate_variable_raises(self, registry):
        """Variable names are unique within a graph."""
        graph = _graph(registry, ["a"])
        with pytest.raises(ConfigurationError):
            graph.add_variable(Variable("a"))

    def test_unknown_function_input_raises(self, registry):
        """Functions may only reference known variables."""
        graph = _graph(registry, ["a"])
        with pytest.raises(ConfigurationError):
            graph.add_function(Function("f", lambda x: x, ["x"], ["a"]))

    def test_producers_and_consumers_linked(self, sum_graph):
        """Adding a function links its variables both ways."""
        add = sum_graph.function("add")
        assert sum_graph.variable("c").producers == [add.index]
        assert sum_graph.variable("a").consumers == [add.index]

    def test_unknown_variable_lookup(self, sum_graph):
        """Looking up a missing name raises UnknownVariableError."""
        with pytest.raises(UnknownVariableError):
            sum_graph.variable("zzz")

    def test_registry_assigned(self, sum_graph, registry):
        """Variables without a registry use the graph's."""
        assert sum_graph.variable("a").registry is registry


class TestReconfigure:
    """Tests for configuration of the active graph."""

    def test_roots_and_leaves(self, sum_graph):
        """Leaves are found depth-first from the roots."""
        assert [sum_graph.variables[i].name for i in sum_graph.roots] == ["d"]
        assert [sum_graph.variables[i].name for i in sum_graph.leaves] == ["a", "b"]
        assert sum_graph.variable("a").is_user_input
        assert not sum_graph.variable("c").is_user_input

    def test_constant_leaf_excluded(self, sum_graph):
        """Constant leaves need no entry."""
        def configure(graph, props):
            _activate_all(["d"])(graph, props)
            graph.variable("b").is_constant = True

        sum_graph.reconfigure(configure)
        assert [sum_graph.variables[i].name for i in sum_graph.leaves] == ["a"]

    def test_inactive_function_makes_leaf(self, sum_graph):
        """Outputs of inactive functions become leaves."""
        def configure(graph, props):
            graph.function("double").active = True
            graph.variable("d").is_user_output = True

        sum_graph.reconfigure(configure)
        assert [sum_graph.variables[i].name for i in sum_graph.leaves] == ["c"]

    def test_two_active_producers_raise(self, registry):
        """A variable may have only one active producer."""
        graph = _graph(registry, ["a", "b"])
        graph.add_function(Function("one", lambda a: a, ["a"], ["b"]))
        graph.add_function(Function("two", lambda a: -a, ["a"], ["b"]))
        with pytest.raises(ConfigurationError):
            graph.reconfigure(_activate_all(["b"]))

    def test_cycle_detected(self, registry):
        """A cycle through active producers is rejected."""
        graph = _graph(registry, ["a", "b", "c"])
        graph.add_function(Function("ab", lambda b: b, ["b"], ["a"]))
        graph.add_function(Function("bc", lambda c: c, ["c"], ["b"]))
        graph.add_function(Function("ca", lambda a: a, ["a"], ["c"]))
        with pytest.raises(GraphCycleError) as excinfo:
            graph.reconfigure(_activate_all(["a"]))
        assert excinfo.value.cycle[0] == excinfo.value.cycle[-1]
        assert set(excinfo.value.cycle) == {"a", "b", "c"}

    def test_inactive_cycle_allowed(self, registry):
        """Cycles among inactive functions are harmless."""
        graph = _graph(registry, ["a", "b"])
        graph.add_function(Function("ab", lambda b: b, ["b"], ["a"]))
        graph.add_function(Function("ba", lambda a: a, ["a"], ["b"]))

        def configure(g, props):
            g.function("ab").active = True
            g.variable("a").is_user_output = True

        graph.reconfigure(configure)
        assert [graph.variables[i].name for i in graph.leaves] == ["b"]


class TestEvaluation:
    """Tests for lazy evaluation."""

    def test_first_calculation_runs_chain(self, sum_graph):
        """The first request runs every function on the path."""
        sum_graph.set_native_value("a", 2.0)
        sum_graph.set_native_value("b", 3.0)
        assert sum_graph.calculate_variable("d") == 2
        assert sum_graph.variable("d").native_value == 10.0

    def test_repeat_request_runs_nothing(self, sum_graph):
        """An up-to-date output costs no formula runs."""
        sum_graph.calculate_variable("d")
        assert sum_graph.calculate_variable("d") == 0

    def test_one_dirty_slot_runs_once(self, sum_graph):
        """Changing one input of a two-input function reruns it once."""
        sum_graph.calculate_variable("d")
        sum_graph.set_native_value("a", 5.0)
        assert sum_graph.function("add").dirty == [True, False]

        assert sum_graph.calculate_variable("c") == 1
        assert sum_graph.variable("c").native_value == 5.0
        assert sum_graph.calculate_variable("c") == 0

    def test_change_propagates_downstream(self, sum_graph):
        """A leaf change dirties every function downstream."""
        sum_graph.calculate_variable("d")
        sum_graph.set_native_value("b", 1.0)
        assert sum_graph.function("double").is_dirty()
        assert sum_graph.calculate_variable("d") == 2
        assert sum_graph.variable("d").native_value == 2.0

    def test_leaf_request_runs_nothing(self, sum_graph):
        """Leaves have no producer to run."""
        assert sum_graph.calculate_variable("a") == 0

    def test_request_outputs(self, sum_graph):
        """request_outputs returns display values of the roots."""
        sum_graph.set_leaf_text("a", "1")
        sum_graph.set_leaf_text("b", "2")
        assert sum_graph.request_outputs() == {"d": 6.0}

    def test_reconfigure_forces_rerun(self, sum_graph):
        """Every function reruns after a reconfigure."""
        sum_graph.calculate_variable("d")
        sum_graph.reconfigure()
        assert [sum_graph.variables[i].name for i in sum_graph.roots] == ["d"]
        assert sum_graph.calculate_variable("d") == 2

    def test_zero_input_function_runs(self, registry):
        """Functions without inputs run once per configuration."""
        graph = _graph(registry, ["k"])
        graph.add_function(Function("const", lambda: 42.0, [], ["k"]))
        graph.reconfigure(_activate_all(["k"]))
        assert graph.calculate_variable("k") == 1
        assert graph.variable("k").native_value == 42.0
        assert graph.calculate_variable("k") == 0

    def test_shared_input_evaluated_once(self, registry):
        """A function read through two paths runs only once."""
        graph = _graph(registry, ["a", "b", "c", "d"])
        graph.add_function(Function("fb", lambda a: a + 1, ["a"], ["b"]))
        graph.add_function(Function("fc", lambda b: b * 2, ["b"], ["c"]))
        graph.add_function(Function("fd", lambda b, c: b + c, ["b", "c"], ["d"]))
        graph.reconfigure(_activate_all(["d"]))

        graph.set_native_value("a", 1.0)
        assert graph.calculate_variable("d") == 3
        assert graph.variable("d").native_value == 6.0
        assert graph.function("fb").calls == 1


class TestValidation:
    """Tests for validate_inputs."""

    def test_missing_entry(self, sum_graph):
        """Leaves without an entry are reported first by leaf order."""
        sum_graph.set_leaf_text("b", "1")
        result = sum_graph.validate_inputs()
        assert result.kind == ProblemKind.MISSING_REQUIRED_INPUT
        assert result.variable == "a"
        assert result.message == "a requires an entry."

    def test_invalid_entry_before_missing(self, sum_graph):
        """Bad entries are reported before missing ones."""
        sum_graph.set_leaf_text("b", "abc")
        result = sum_graph.validate_inputs()
        assert result.kind == ProblemKind.INVALID_LEAF_VALUE
        assert result.variable == "b"

    def test_masked_leaf_needs_no_entry(self, sum_graph):
        """Masked leaves are skipped."""
        sum_graph.variable("a").is_masked = True
        sum_graph.set_leaf_text("b", "1")
        assert sum_graph.validate_inputs().ok

    def test_too_many_ranging(self, registry):
        """More than two ranging variables fail validation."""
        graph = _graph(registry, ["a", "b", "c", "d"])
        graph.add_function(Function("f", lambda a, b, c: a + b + c, ["a", "b", "c"], ["d"]))
        graph.reconfigure(_activate_all(["d"]))
        for name in ("a", "b", "c"):
            graph.set_leaf_text(name, "1 2")

        result = graph.validate_inputs()
        assert result.kind == ProblemKind.TOO_MANY_RANGING_VARIABLES
        assert result.variable == "c"

    def test_slave_not_counted_as_ranging(self, registry):
        """A variable ranged with its master does not count."""
        graph = _graph(registry, ["a", "c", "d"])
        graph.add_variable(Variable("b", native_units="ft", maximum=1000.0, master="a"))
        graph.add_function(Function("f", lambda a, b, c: a + b + c, ["a", "b", "c"], ["d"]))
        graph.reconfigure(_activate_all(["d"]))
        graph.set_leaf_text("a", "1 2")
        graph.set_leaf_text("b", "3 4")
        graph.set_leaf_text("c", "5 6")

        assert [graph.variables[i].name for i in graph.ranging_variables()] == ["a", "c"]
        assert graph.validate_inputs().ok

    def test_master_count_mismatch(self, registry):
        """A slave must have as many entries as its master."""
        graph = _graph(registry, ["a", "c"])
        graph.add_variable(Variable("b", native_units="ft", maximum=1000.0, master="a"))
        graph.add_function(Function("f", lambda a, b: a + b, ["a", "b"], ["c"]))
        graph.reconfigure(_activate_all(["c"]))
        graph.set_leaf_text("a", "1 2 3")
        graph.set_leaf_text("b", "3 4")

        result = graph.validate_inputs()
        assert result.kind == ProblemKind.RANGE_COUNT_MISMATCH
        assert result.variable == "b"

    def test_masker_runs_before_validation(self, sum_graph):
        """The masker is applied on every validation."""
        def mask_b(graph, props):
            graph.variable("b").is_masked = bool(graph.variable("a").store)

        sum_graph.masker = mask_b
        assert sum_graph.validate_inputs().variable == "a"
        sum_graph.set_leaf_text("a", "1")
        assert sum_graph.validate_inputs().ok

    def test_masker_runs_after_reconfigure(self, sum_graph):
        calls = []
        sum_graph.masker = lambda graph, props: calls.append(graph.name)
        sum_graph.reconfigure()
        assert calls == ["sum"]


class TestEntries:
    """Tests for which variables accept entries."""

    def test_computed_variable_rejected(self, sum_graph):
        """Entries for a computed variable are refused."""
        result = sum_graph.set_leaf_text("c", "5")
        assert result.kind == ProblemKind.NOT_AN_INPUT
        assert result.variable == "c"
        assert "add" in result.message
        assert sum_graph.variable("c").store == ""

    def test_unused_variable_rejected(self, sum_graph):
        """Variables outside the active graph take no entry."""
        def configure(graph, props):
            graph.function("add").active = True
            graph.variable("c").is_user_output = True

        sum_graph.reconfigure(configure)
        result = sum_graph.set_leaf_text("d", "5")
        assert result.kind == ProblemKind.NOT_AN_INPUT
        assert "not used" in result.message

    def test_constant_rejected(self, sum_graph):
        def configure(graph, props):
            _activate_all(["d"])(graph, props)
            graph.variable("b").is_constant = True

        sum_graph.reconfigure(configure)
        assert sum_graph.check_entry("b").kind == ProblemKind.NOT_AN_INPUT
        assert sum_graph.check_entry("a").ok


class TestUnitSets:
    """Tests for switching unit sets."""

    def test_unknown_unit_set_raises(self, sum_graph):
        """Only english, metric and native are known."""
        with pytest.raises(ConfigurationError):
            sum_graph.apply_unit_set("imperial")

    def test_native_unit_set(self, sum_graph):
        """The native unit set displays native values."""
        sum_graph.apply_unit_set("native")
        sum_graph.set_native_value("a", 2.5)
        assert sum_graph.variable("a").display_value == 2.5


class TestPersistence:
    """Tests for dumping and loading leaf stores."""

    def test_dump_sorted(self, sum_graph):
        """Stores are dumped as sorted (name, store) pairs."""
        sum_graph.set_leaf_text("b", "2")
        sum_graph.set_leaf_text("a", "1 2")
        assert sum_graph.dump_stores() == [("a", "1 2"), ("b", "2")]

    def test_load_recalculates(self, sum_graph):
        """Loading valid stores recalculates every root."""
        result = sum_graph.load_stores([("a", "4"), ("b", "1")])
        assert result.ok
        assert sum_graph.variable("d").native_value == 10.0
        assert sum_graph.calculate_variable("d") == 0

    def test_load_unknown_name_warns(self, sum_graph):
        """Unknown names are skipped with a warning."""
        with pytest.warns(UserWarning, match="ghost"):
            result = sum_graph.load_stores([("ghost", "1"), ("a", "1"), ("b", "1")])
        assert result.ok

    def test_load_reports_first_failure(self, sum_graph):
        """An invalid store is reported and nothing is recalculated."""
        result = sum_graph.load_stores([("a", "x"), ("b", "1")])
        assert result.kind == ProblemKind.INVALID_LEAF_VALUE
        assert result.variable == "a"
        assert sum_graph.evaluations == 0

    def test_dump_records_units(self, sum_graph):
        """Records carry the display units of each store."""
        sum_graph.set_leaf_text("a", "1")
        sum_graph.set_leaf_text("b", "2")
        assert sum_graph.dump_store_records() == [("a", "1", "ft"), ("b", "2", "ft")]

    def test_load_converts_units(self, sum_graph):
        """Stores saved in other units are converted to the display units."""
        result = sum_graph.load_stores([("a", "1", "m"), ("b", "0", "ft")])
        assert result.ok
        assert sum_graph.variable("a").native_value == pytest.approx(3.28084, rel=1e-5)
        assert sum_graph.variable("a").display_units == "ft"
        assert sum_graph.variable("d").native_value == pytest.approx(6.56168, rel=1e-5)

    def test_load_unknown_units(self, sum_graph):
        result = sum_graph.load_stores([("a", "1", "furlongs"), ("b", "0")])
        assert result.kind == ProblemKind.UNKNOWN_UNIT_ALIAS
        assert result.variable == "a"
        assert sum_graph.variable("a").display_units == "ft"

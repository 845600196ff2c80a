"""Tests for scalar, vector and matrix table runs."""

import numpy as np
import pytest

from firecalc.base_classes.dependency_graph import DependencyGraph
from firecalc.base_classes.function import Function
from firecalc.base_classes.variable import Variable, VariableItem, VariableKind
from firecalc.utilities.data_classes import ProblemKind, RangeSpec


@pytest.fixture
def slaved_graph(registry):
    """Graph computing c = a + b where b follows a's entry position."""
    graph = DependencyGraph(registry, name="slaved")
    graph.add_variable(Variable("a", native_units="ft", maximum=100.0))
    graph.add_variable(Variable("b", native_units="ft", maximum=100.0, master="a"))
    graph.add_variable(Variable("c", native_units="ft", maximum=1000.0))
    graph.add_function(Function("add", lambda a, b: a + b, ["a", "b"], ["c"]))

    def configure(g, props):
        g.function("add").active = True
        g.variable("c").is_user_output = True

    graph.reconfigure(configure)
    return graph


class TestScalarRuns:
    """Tests for runs without ranging variables."""

    def test_scalar(self, sum_graph):
        """Single entries produce a rank-0 table."""
        sum_graph.set_leaf_text("a", "1")
        sum_graph.set_leaf_text("b", "2")
        table = sum_graph.run_table()

        assert table.rank == 0
        assert table.outputs == ["d"]
        assert float(table.output_array("d")) == 6.0
        assert table.units["d"] == "ft"

    def test_validation_failure_returned(self, sum_graph):
        """A run with missing entries returns the validation failure."""
        sum_graph.set_leaf_text("a", "1")
        result = sum_graph.run_table()
        assert result.kind == ProblemKind.MISSING_REQUIRED_INPUT

    def test_explicit_outputs(self, sum_graph):
        """Intermediate variables can be requested as outputs."""
        sum_graph.set_leaf_text("a", "1")
        sum_graph.set_leaf_text("b", "2")
        table = sum_graph.run_table(outputs=["c", "d"])
        assert table.value("c") == 3.0
        assert table.value("d") == 6.0


class TestVectorRuns:
    """Tests for one ranging variable."""

    def test_from_thru_step(self, sum_graph):
        """0 through 10 by 5 gives three rows."""
        sum_graph.set_leaf_text("b", "1")
        table = sum_graph.run_table(ranges=[RangeSpec.from_thru_step("a", 0, 10, 5)])

        assert table.rank == 1
        assert table.shape == (3,)
        assert table.row_variable == "a"
        assert table.row_values == [0.0, 5.0, 10.0]
        np.testing.assert_allclose(table.output_array("d"), [2.0, 12.0, 22.0])

    def test_store_ranging(self, sum_graph):
        """Multiple entries in a store range without a RangeSpec."""
        sum_graph.set_leaf_text("a", "1")
        sum_graph.set_leaf_text("b", "1 2 3 4")
        table = sum_graph.run_table()
        assert table.row_variable == "b"
        np.testing.assert_allclose(table.output_array("d"), [4.0, 6.0, 8.0, 10.0])

    def test_first_entry_restored(self, sum_graph):
        """Ranging leaves return to their first entry after a run."""
        sum_graph.set_leaf_text("a", "1")
        sum_graph.set_leaf_text("b", "1 2 3")
        sum_graph.run_table()
        assert sum_graph.variable("b").native_value == 1.0

    def test_slave_follows_master(self, slaved_graph):
        """A slave takes the entry at its master's position."""
        slaved_graph.set_leaf_text("a", "1 2 3")
        slaved_graph.set_leaf_text("b", "10 20 30")
        table = slaved_graph.run_table()

        assert table.rank == 1
        assert table.row_variable == "a"
        np.testing.assert_allclose(table.output_array("c"), [11.0, 22.0, 33.0])

    def test_graph_mode_limits(self, sum_graph):
        """Graph ranges space points evenly between two limits."""
        sum_graph.set_leaf_text("b", "0")
        spec = RangeSpec.from_limits("a", 0.0, 4.0, 5)
        table = sum_graph.run_table(ranges=[spec])
        np.testing.assert_allclose(table.output_array("d"), [0.0, 2.0, 4.0, 6.0, 8.0])

    def test_single_value_range_is_an_axis(self, sum_graph):
        """An explicit range with one value still makes a vector."""
        sum_graph.set_leaf_text("b", "1")
        table = sum_graph.run_table(ranges=[RangeSpec("a", [3.0])])

        assert table.rank == 1
        assert table.shape == (1,)
        assert table.row_variable == "a"
        assert table.row_values == [3.0]
        np.testing.assert_allclose(table.output_array("d"), [8.0])

    def test_single_value_ranges_make_a_matrix(self, sum_graph):
        ranges = [RangeSpec("a", [1.0]), RangeSpec("b", [2.0, 3.0])]
        table = sum_graph.run_table(ranges=ranges)
        assert table.shape == (1, 2)
        assert table.col_variable == "b"

    def test_computed_variable_cannot_be_ranged(self, sum_graph):
        """Ranging a variable computed by an active function is refused."""
        sum_graph.set_leaf_text("a", "1")
        sum_graph.set_leaf_text("b", "1")
        result = sum_graph.run_table(ranges=[RangeSpec("c", [1.0, 2.0])])

        assert result.kind == ProblemKind.NOT_AN_INPUT
        assert result.variable == "c"

    def test_masked_variable_cannot_be_ranged(self, sum_graph):
        def mask_b(graph, props):
            graph.variable("b").is_masked = True

        sum_graph.masker = mask_b
        sum_graph.set_leaf_text("a", "1")
        result = sum_graph.run_table(ranges=[RangeSpec("b", [1.0, 2.0])])
        assert result.kind == ProblemKind.NOT_AN_INPUT
        assert result.variable == "b"


class TestMatrixRuns:
    """Tests for two ranging variables."""

    def test_matrix(self, sum_graph):
        """Rows come from the first range, columns from the second."""
        ranges = [RangeSpec("a", [0.0, 1.0]), RangeSpec("b", [10.0, 20.0, 30.0])]
        table = sum_graph.run_table(ranges=ranges)

        assert table.rank == 2
        assert table.shape == (2, 3)
        assert table.col_variable == "b"
        expected = [[20.0, 40.0, 60.0], [22.0, 42.0, 62.0]]
        np.testing.assert_allclose(table.output_array("d"), expected)

    def test_range_order_sets_axes(self, sum_graph):
        """The order of the ranges decides rows and columns."""
        ranges = [RangeSpec("b", [10.0, 20.0, 30.0]), RangeSpec("a", [0.0, 1.0])]
        table = sum_graph.run_table(ranges=ranges)
        assert table.row_variable == "b"
        assert table.shape == (3, 2)

    def test_three_ranges_rejected(self, sum_graph):
        """Three explicit ranges are too many."""
        ranges = [RangeSpec("a", [1.0, 2.0]), RangeSpec("b", [1.0, 2.0]), RangeSpec("c", [1.0, 2.0])]
        result = sum_graph.run_table(ranges=ranges)
        assert result.kind == ProblemKind.TOO_MANY_RANGING_VARIABLES

    def test_bad_range_value(self, sum_graph):
        """Out-of-range range values fail like typed entries."""
        result = sum_graph.run_table(ranges=[RangeSpec("a", [1.0, 5000.0])])
        assert result.kind == ProblemKind.INVALID_LEAF_VALUE
        assert result.variable == "a"


class TestDiscreteRuns:
    """Tests for discrete ranging and discrete outputs."""

    def test_discrete_axis_and_output(self, registry):
        """Discrete ranges use item names and outputs hold item indices."""
        graph = DependencyGraph(registry)
        items = [VariableItem("Low"), VariableItem("High")]
        graph.add_variable(Variable("level", kind=VariableKind.DISCRETE, items=items))
        graph.add_variable(Variable("flag", kind=VariableKind.DISCRETE, items=items))
        graph.add_function(Function("invert", lambda level: 1 - level, ["level"], ["flag"]))

        def configure(g, props):
            g.function("invert").active = True
            g.variable("flag").is_user_output = True

        graph.reconfigure(configure)
        table = graph.run_table(ranges=[RangeSpec.from_items("level", ["Low", "High"])])

        assert table.row_values == ["Low", "High"]
        assert table.item_name("flag", 0) == "High"
        assert table.item_name("flag", 1) == "Low"


class TestResultTable:
    """Tests for ResultTable helpers."""

    def test_to_frame(self, sum_graph):
        """Tables flatten to one DataFrame row per cell and output."""
        sum_graph.set_leaf_text("b", "1")
        table = sum_graph.run_table(outputs=["c", "d"], ranges=[RangeSpec("a", [0.0, 1.0])])
        frame = table.to_frame()

        assert len(frame) == 4
        assert list(frame["output"]) == ["c", "d", "c", "d"]
        assert list(frame["row_value"]) == [0.0, 0.0, 1.0, 1.0]

    def test_bad_step_reported(self, sum_graph):
        """A range with a non-positive step is reported, not raised."""
        spec = RangeSpec.from_thru_step("a", 0, 10, 0)
        assert not spec.ok
        assert spec.values == []

        result = sum_graph.run_table(ranges=[spec])
        assert result.kind == ProblemKind.INVALID_LEAF_VALUE
        assert result.variable == "a"
        assert "step" in result.message

    def test_descending_limits_reported(self):
        spec = RangeSpec.from_thru_step("a", 10, 0, 5)
        assert spec.check().kind == ProblemKind.INVALID_LEAF_VALUE

    def test_too_few_points_reported(self):
        """Graph ranges need at least two points."""
        spec = RangeSpec.from_limits("a", 0.0, 4.0, 1)
        assert not spec.ok
        assert spec.check().variable == "a"

"""
Tests for balance verification and completeness checks.
"""

import math

import pytest

from sankey import schemas
from sankey.verification import (
    TOLERANCE,
    get_undetermined_flow_ids,
    is_fully_solved,
    verify_balance,
    verify_node_balance,
)


def _flows(*edges):
    return [schemas.FlowSpec(id=fid, source=src, target=dst) for fid, src, dst in edges]


HUB_FLOWS = _flows(
    ("in1", "S1", "B"),
    ("in2", "S2", "B"),
    ("out1", "B", "T1"),
    ("out2", "B", "T2"),
)
B = schemas.NodeSpec(id="B")


class TestVerifyNodeBalance:
    def test_balanced_node(self):
        defined = {"in1": 100, "in2": 50, "out1": 80, "out2": 70}
        assert verify_node_balance(B, HUB_FLOWS, defined) is None

    def test_imbalanced_node(self):
        defined = {"in1": 100, "in2": 50, "out1": 80, "out2": 60}
        violation = verify_node_balance(B, HUB_FLOWS, defined)
        assert violation == schemas.BalanceViolation(
            node="B", sum_inputs=150, sum_outputs=140, difference=10,
        )

    def test_sources_and_sinks_are_skipped(self):
        defined = {"in1": 100, "in2": 50, "out1": 0, "out2": 0}
        assert verify_node_balance(schemas.NodeSpec(id="S1"), HUB_FLOWS, defined) is None
        assert verify_node_balance(schemas.NodeSpec(id="T1"), HUB_FLOWS, defined) is None

    def test_partial_information_is_not_a_violation(self):
        assert verify_node_balance(B, HUB_FLOWS, {"in1": 100, "in2": 50, "out1": 999}) is None

    def test_small_float_error_is_tolerated(self):
        defined = {"in1": 100, "in2": 50, "out1": 80, "out2": 70.00001}
        assert verify_node_balance(B, HUB_FLOWS, defined) is None

    def test_small_but_significant_imbalance(self):
        defined = {"in1": 100, "in2": 50, "out1": 80, "out2": 70.5}
        violation = verify_node_balance(B, HUB_FLOWS, defined)
        assert violation is not None
        assert violation.difference == pytest.approx(-0.5)

    def test_tolerance_boundary(self):
        assert TOLERANCE == 1e-4
        defined = {"in1": 100, "in2": 50, "out1": 80, "out2": 70.001}
        assert verify_node_balance(B, HUB_FLOWS, defined) is not None

    def test_negative_difference(self):
        defined = {"in1": 100, "in2": 50, "out1": 90, "out2": 70}
        violation = verify_node_balance(B, HUB_FLOWS, defined)
        assert violation.sum_inputs == 150
        assert violation.sum_outputs == 160
        assert violation.difference == -10

    def test_nan_is_reported(self):
        defined = {"in1": math.nan, "in2": 50, "out1": 80, "out2": 70}
        assert verify_node_balance(B, HUB_FLOWS, defined) is not None


class TestVerifyBalance:
    nodes = [schemas.NodeSpec(id=i) for i in ("A", "B", "C", "D")]
    flows = _flows(("ab", "A", "B"), ("bc", "B", "C"), ("cd", "C", "D"))

    def test_valid_system(self):
        assert verify_balance(self.nodes, self.flows, {"ab": 100, "bc": 100, "cd": 100}) == []

    def test_single_imbalance(self):
        violations = verify_balance(self.nodes, self.flows, {"ab": 100, "bc": 90, "cd": 90})
        assert [v.node for v in violations] == ["B"]

    def test_multiple_imbalances_in_node_order(self):
        violations = verify_balance(self.nodes, self.flows, {"ab": 100, "bc": 90, "cd": 80})
        assert [v.node for v in violations] == ["B", "C"]
        assert [v.difference for v in violations] == [10, 10]

    def test_partially_defined(self):
        assert verify_balance(self.nodes, self.flows, {"ab": 100, "cd": 50}) == []

    def test_empty_flows(self):
        assert verify_balance(self.nodes, [], {}) == []

    def test_isolated_nodes(self):
        nodes = [schemas.NodeSpec(id="lonely")]
        assert verify_balance(nodes, self.flows, {"ab": 1, "bc": 2, "cd": 3}) == []


class TestCompleteness:
    flows = _flows(("f1", "A", "B"), ("f2", "B", "C"), ("f3", "C", "D"))

    def test_all_defined(self):
        assert is_fully_solved(self.flows, {"f1": 1, "f2": 2, "f3": 3}) is True

    def test_some_undefined(self):
        assert is_fully_solved(self.flows, {"f1": 1, "f3": 3}) is False

    def test_none_defined(self):
        assert is_fully_solved(self.flows, {}) is False

    def test_empty_flow_list(self):
        assert is_fully_solved([], {}) is True

    def test_zero_is_a_value(self):
        assert is_fully_solved(self.flows, {"f1": 0, "f2": 0, "f3": 0}) is True
        assert get_undetermined_flow_ids(self.flows, {"f1": 0, "f2": 0, "f3": 0}) == []

    def test_none_is_not_a_value(self):
        assert is_fully_solved(self.flows, {"f1": 100, "f2": None, "f3": 300}) is False
        assert get_undetermined_flow_ids(self.flows, {"f1": 100, "f2": None, "f3": 300}) == ["f2"]

    def test_undetermined_ids_in_topology_order(self):
        assert get_undetermined_flow_ids(self.flows, {"f2": 5}) == ["f1", "f3"]

    def test_undetermined_ids_empty_list(self):
        assert get_undetermined_flow_ids([], {"x": 1}) == []

    @pytest.mark.parametrize(
        "defined",
        [{}, {"f1": 1}, {"f1": 1, "f2": None, "f3": 3}, {"f1": 1, "f2": 2, "f3": 3}, {"other": 1}],
    )
    def test_completeness_matches_undetermined_list(self, defined):
        assert is_fully_solved(self.flows, defined) == (get_undetermined_flow_ids(self.flows, defined) == [])

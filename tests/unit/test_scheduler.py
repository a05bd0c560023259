"""Tests for the calculated-field dependency graph and evaluation order."""

from __future__ import annotations

import pytest

from formlogic.core.errors import CycleError
from formlogic.core.ir import CalculationSpec
from formlogic.core.scheduler import DependencyGraph, build_order


def _calc(target: str, *depends_on: str) -> CalculationSpec:
    return CalculationSpec(target=target, formula="0", depends_on=list(depends_on))


class TestTopologicalOrder:
    def test_dependency_comes_first(self) -> None:
        assert build_order([_calc("a", "b"), _calc("b", "x")]) == ["b", "a"]

    def test_independent_targets_keep_declaration_order(self) -> None:
        calcs = [_calc("c", "x"), _calc("a", "y"), _calc("b", "z")]
        assert build_order(calcs) == ["c", "a", "b"]

    def test_chain(self) -> None:
        calcs = [
            _calc("finalTotal", "total", "discountAmount"),
            _calc("total", "subtotal", "shippingCost", "taxAmount"),
            _calc("taxAmount", "subtotal", "shippingCost", "taxRate"),
            _calc("subtotal", "quantity", "unitPrice"),
        ]
        assert build_order(calcs) == ["subtotal", "taxAmount", "total", "finalTotal"]

    def test_diamond(self) -> None:
        calcs = [_calc("d", "b", "c"), _calc("b", "a"), _calc("c", "a"), _calc("a", "x")]
        order = build_order(calcs)
        assert order[0] == "a"
        assert order[-1] == "d"
        assert order.index("b") < order.index("d")
        assert order.index("c") < order.index("d")

    def test_empty(self) -> None:
        assert build_order([]) == []


class TestCycleDetection:
    def test_two_node_cycle(self) -> None:
        with pytest.raises(CycleError) as exc_info:
            build_order([_calc("a", "b"), _calc("b", "a")])
        assert exc_info.value.cycle == ["a", "b", "a"]
        assert "a -> b -> a" in str(exc_info.value)

    def test_self_loop(self) -> None:
        with pytest.raises(CycleError) as exc_info:
            build_order([_calc("a", "a", "x")])
        assert exc_info.value.cycle == ["a", "a"]

    def test_cycle_behind_acyclic_prefix(self) -> None:
        calcs = [_calc("ok", "x"), _calc("p", "q"), _calc("q", "r"), _calc("r", "p")]
        with pytest.raises(CycleError) as exc_info:
            build_order(calcs)
        cycle = exc_info.value.cycle
        assert cycle[0] == cycle[-1]
        assert set(cycle) == {"p", "q", "r"}

    def test_downstream_of_cycle_is_not_reported_as_cycle(self) -> None:
        calcs = [_calc("tail", "a"), _calc("a", "b"), _calc("b", "a")]
        with pytest.raises(CycleError) as exc_info:
            build_order(calcs)
        assert "tail" not in exc_info.value.cycle


class TestDependencyGraph:
    def test_edges_only_between_calculated_targets(self) -> None:
        graph = DependencyGraph([_calc("total", "subtotal", "tax"), _calc("subtotal", "qty")])
        assert graph.dependencies == {"total": ["subtotal"], "subtotal": []}
        assert graph.dependents == {"total": [], "subtotal": ["total"]}
        assert len(graph) == 2

    def test_affected_by_input(self) -> None:
        graph = DependencyGraph(
            [
                _calc("finalTotal", "total", "discount"),
                _calc("total", "subtotal", "tax"),
                _calc("subtotal", "qty", "price"),
                _calc("label", "name"),
            ]
        )
        assert graph.affected_by(["qty"]) == ["finalTotal", "total", "subtotal"]
        assert graph.affected_by(["discount"]) == ["finalTotal"]
        assert graph.affected_by(["name"]) == ["label"]
        assert graph.affected_by(["unrelated"]) == []

    def test_affected_by_calculated_target(self) -> None:
        graph = DependencyGraph([_calc("total", "subtotal"), _calc("subtotal", "qty")])
        # A changed target itself is not listed, only what reads it
        assert graph.affected_by(["subtotal"]) == ["total"]

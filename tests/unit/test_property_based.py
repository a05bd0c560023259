"""
Property-based tests using Hypothesis.

These tests verify invariants of rule evaluation, formula evaluation and
calculation ordering across a wide range of inputs.
"""

from typing import Any

from hypothesis import assume, given, settings
from hypothesis import strategies as st

from formlogic.core.conditions import evaluate_rule
from formlogic.core.engine import FormEngine
from formlogic.core.errors import CycleError
from formlogic.core.formula_lang.evaluator import evaluate_formula
from formlogic.core.ir import AndRule, CalculationSpec, Comparison, OrRule, RuleOperator
from formlogic.core.scheduler import DependencyGraph, build_order

json_scalars = st.one_of(
    st.none(),
    st.booleans(),
    st.integers(min_value=-(10**6), max_value=10**6),
    st.floats(allow_nan=True, allow_infinity=True),
    st.text(max_size=10),
)
json_values = st.one_of(json_scalars, st.lists(json_scalars, max_size=4))
snapshots = st.dictionaries(st.sampled_from(["a", "b", "c", "d"]), json_values, max_size=4)

# =============================================================================
# Rule Evaluation Properties
# =============================================================================


class TestRuleProperties:
    """Property-based tests for rule evaluation."""

    @given(snapshots)
    @settings(max_examples=100)
    def test_empty_and_always_holds(self, values: dict[str, Any]) -> None:
        """Invariant: an AND with no children holds for every snapshot."""
        assert evaluate_rule(AndRule(children=[]), values) is True

    @given(snapshots)
    @settings(max_examples=100)
    def test_empty_or_never_holds(self, values: dict[str, Any]) -> None:
        """Invariant: an OR with no children never holds."""
        assert evaluate_rule(OrRule(children=[]), values) is False

    @given(
        snapshots,
        st.sampled_from(["a", "b", "c", "d"]),
        st.sampled_from(list(RuleOperator)),
        json_values,
    )
    @settings(max_examples=300)
    def test_comparison_is_total(
        self, values: dict[str, Any], field: str, operator: RuleOperator, expected: Any
    ) -> None:
        """Invariant: a comparison returns a bool for any values, never raises."""
        if operator.takes_list and not isinstance(expected, list):
            expected = [expected]
        rule = Comparison(field=field, operator=operator, value=expected)
        assert isinstance(evaluate_rule(rule, values), bool)

    @given(snapshots, st.sampled_from(["a", "b", "c", "d"]))
    @settings(max_examples=100)
    def test_is_empty_and_is_not_empty_are_complements(
        self, values: dict[str, Any], field: str
    ) -> None:
        empty = Comparison(field=field, operator=RuleOperator.IS_EMPTY)
        not_empty = Comparison(field=field, operator=RuleOperator.IS_NOT_EMPTY)
        assert evaluate_rule(empty, values) != evaluate_rule(not_empty, values)


# =============================================================================
# Formula Evaluation Properties
# =============================================================================


class TestFormulaProperties:
    """Property-based tests for formula evaluation."""

    @given(st.text(alphabet="abcxyz0123456789.+-*/%()<>=!&|?:, '\"", max_size=40))
    @settings(max_examples=300)
    def test_never_raises_on_arbitrary_input(self, source: str) -> None:
        """Invariant: evaluate_formula turns every failure into None."""
        evaluate_formula(source, {"a": 1, "b": 0, "c": "x"}, ["a", "b", "c"])

    @given(
        st.integers(min_value=1, max_value=5000),
        st.sampled_from([("(", ")"), ("-", ""), ("!", ""), ("abs(", ")")]),
    )
    @settings(max_examples=30, deadline=None)
    def test_never_raises_on_deep_nesting(self, depth: int, wrap: tuple[str, str]) -> None:
        """Invariant: nesting depth alone never escapes as an exception."""
        opening, closing = wrap
        evaluate_formula(opening * depth + "a" + closing * depth, {"a": 1}, ["a"])

    @given(st.integers(min_value=-(10**500), max_value=10**500))
    @settings(max_examples=100)
    def test_never_raises_on_huge_integers(self, value: int) -> None:
        evaluate_formula("round(x * 2) + x / 3", {"x": value}, ["x"])
        evaluate_formula("x * 2", {"x": str(value)}, ["x"])

    @given(
        st.integers(min_value=-(10**6), max_value=10**6),
        st.integers(min_value=-(10**6), max_value=10**6),
    )
    @settings(max_examples=200)
    def test_product_of_integers(self, quantity: int, price: int) -> None:
        result = evaluate_formula(
            "quantity * unitPrice",
            {"quantity": quantity, "unitPrice": price},
            ["quantity", "unitPrice"],
        )
        assert result == quantity * price

    @given(st.one_of(st.none(), st.just("")), st.integers())
    @settings(max_examples=50)
    def test_empty_dependency_is_indeterminate(self, empty: Any, other: int) -> None:
        assert evaluate_formula("a + b", {"a": empty, "b": other}, ["a", "b"]) is None

    @given(st.floats(allow_nan=False, allow_infinity=False, min_value=-1e6, max_value=1e6))
    @settings(max_examples=100)
    def test_any_finite_number_is_ready(self, value: float) -> None:
        """Invariant: a numeric dependency (including 0) never makes a formula indeterminate."""
        assert evaluate_formula("x", {"x": value}, ["x"]) == value


# =============================================================================
# Scheduling Properties
# =============================================================================


@st.composite
def acyclic_calculations(draw: st.DrawFn) -> list[CalculationSpec]:
    """Random DAG: node i may only depend on nodes before it, then shuffled."""
    size = draw(st.integers(min_value=1, max_value=12))
    names = [f"f{i}" for i in range(size)]
    calcs = []
    for i, name in enumerate(names):
        deps = draw(st.lists(st.sampled_from(names[:i] + ["input"]), unique=True, max_size=4))
        calcs.append(CalculationSpec(target=name, formula="0", depends_on=deps))
    return draw(st.permutations(calcs))


class TestSchedulingProperties:
    """Property-based tests for calculation ordering."""

    @given(acyclic_calculations())
    @settings(max_examples=200)
    def test_order_is_valid_linearization(self, calcs: list[CalculationSpec]) -> None:
        """Invariant: every calculated dependency precedes the calculation reading it."""
        order = build_order(calcs)
        assert sorted(order) == sorted(c.target for c in calcs)
        position = {target: i for i, target in enumerate(order)}
        for calc in calcs:
            for dep in calc.depends_on:
                if dep in position:
                    assert position[dep] < position[calc.target]

    @given(acyclic_calculations(), st.data())
    @settings(max_examples=100)
    def test_back_edge_creates_cycle(
        self, calcs: list[CalculationSpec], data: st.DataObject
    ) -> None:
        """Invariant: closing a loop yields a CycleError, never a partial order."""
        graph = DependencyGraph(calcs)
        edges = [(t, d) for t in graph.targets for d in graph.dependencies[t]]
        assume(edges)
        target, dep = data.draw(st.sampled_from(edges))
        looped = [
            c.model_copy(update={"depends_on": [*c.depends_on, target]}) if c.target == dep else c
            for c in calcs
        ]
        try:
            build_order(looped)
        except CycleError as e:
            assert e.cycle[0] == e.cycle[-1]
            assert len(e.cycle) >= 3
        else:
            raise AssertionError("expected a cycle")

    @given(acyclic_calculations())
    @settings(max_examples=50)
    def test_engine_pass_is_consistent(self, calcs: list[CalculationSpec]) -> None:
        """Invariant: with every input present, one pass determines every calculation."""
        schema = {
            "properties": {
                name: {"type": "number"} for name in ["input", *(c.target for c in calcs)]
            },
            "logic": {
                "calculated": [
                    {
                        "target": c.target,
                        "formula": " + ".join(["1", *c.depends_on]),
                        "dependsOn": c.depends_on,
                    }
                    for c in calcs
                ]
            },
        }
        result = FormEngine.from_schema(schema).recompute({"input": 1})
        assert result.indeterminate == frozenset()
        for calc in calcs:
            expected = 1 + sum(result.values.get(d, 1) for d in calc.depends_on)
            assert result.values[calc.target] == expected

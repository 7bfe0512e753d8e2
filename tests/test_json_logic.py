"""JSON-logic interpreter tests: operator semantics and failure modes."""

import pytest

from localdecisioning.domain import json_logic
from localdecisioning.domain.json_logic import (
    ArrayExpr,
    Literal,
    Operation,
    SUPPORTED_OPERATIONS,
    compile_expression,
    truthy,
)
from localdecisioning.errors import RuleEvaluationError


class TestCompile:
    def test_literal(self):
        assert compile_expression(5) == Literal(5)

    def test_operation_with_scalar_operand_is_wrapped(self):
        expr = compile_expression({"var": "a"})
        assert expr == Operation("var", (Literal("a"),))

    def test_array(self):
        expr = compile_expression([1, {"var": "x"}])
        assert isinstance(expr, ArrayExpr)
        assert expr.items[0] == Literal(1)

    def test_unknown_operator_rejected(self):
        with pytest.raises(RuleEvaluationError) as exc:
            compile_expression({"eval": ["os.system('x')"]})
        assert "eval" in exc.value.message

    def test_iterating_operator_needs_two_args(self):
        with pytest.raises(RuleEvaluationError):
            compile_expression({"map": [[1, 2]]})

    def test_documented_operator_set(self):
        for op in ("var", "missing", "missing_some", "if", "?:", "==", "===", "!=", "!==",
                   "!", "!!", "and", "or", ">", ">=", "<", "<=", "max", "min", "+", "-",
                   "*", "/", "%", "in", "cat", "substr", "merge", "map", "filter",
                   "reduce", "all", "some", "none"):
            assert op in SUPPORTED_OPERATIONS


class TestTruthiness:
    @pytest.mark.parametrize("value", [0, "", [], None, False, 0.0])
    def test_falsy(self, value):
        assert truthy(value) is False

    @pytest.mark.parametrize("value", [1, "0", [0], {}, True, -1])
    def test_truthy(self, value):
        assert truthy(value) is True


class TestData:
    def test_var_dotted_path(self):
        assert json_logic.apply({"var": "user.browserType"}, {"user": {"browserType": "chrome"}}) == "chrome"

    def test_var_default(self):
        assert json_logic.apply({"var": ["missing.key", "fallback"]}, {}) == "fallback"

    def test_var_array_index(self):
        assert json_logic.apply({"var": "items.1"}, {"items": ["a", "b"]}) == "b"

    def test_missing(self):
        assert json_logic.apply({"missing": ["a", "b"]}, {"a": 1}) == ["b"]

    def test_missing_some(self):
        data = {"a": 1, "b": 2}
        assert json_logic.apply({"missing_some": [2, ["a", "b", "c"]]}, data) == []
        assert json_logic.apply({"missing_some": [3, ["a", "b", "c"]]}, data) == ["c"]


class TestComparison:
    def test_loose_equality_coerces_numeric_strings(self):
        assert json_logic.apply({"==": [1, "1"]}, {}) is True
        assert json_logic.apply({"===": [1, "1"]}, {}) is False

    def test_null_only_equals_null(self):
        assert json_logic.apply({"==": [None, 0]}, {}) is False
        assert json_logic.apply({"==": [None, None]}, {}) is True

    def test_between(self):
        assert json_logic.apply({"<": [0, {"var": "allocation"}, 50]}, {"allocation": 25.5}) is True
        assert json_logic.apply({"<": [0, {"var": "allocation"}, 50]}, {"allocation": 50}) is False
        assert json_logic.apply({"<=": [0, {"var": "allocation"}, 50]}, {"allocation": 50}) is True

    def test_string_comparison(self):
        assert json_logic.apply({">=": [{"var": "current_time"}, "0900"]}, {"current_time": "1030"}) is True

    def test_in_string_and_array(self):
        assert json_logic.apply({"in": ["shop", "www.shop.com"]}, {}) is True
        assert json_logic.apply({"in": ["b", ["a", "b"]]}, {}) is True
        assert json_logic.apply({"in": ["c", ["a", "b"]]}, {}) is False


class TestLogic:
    def test_and_short_circuits(self):
        # the division by zero is never evaluated
        assert json_logic.apply({"and": [False, {"/": [1, 0]}]}, {}) is False

    def test_or_returns_first_truthy(self):
        assert json_logic.apply({"or": [0, "", "x"]}, {}) == "x"

    def test_if_chain(self):
        rule = {"if": [{"<": [{"var": "n"}, 0]}, "neg", {"==": [{"var": "n"}, 0]}, "zero", "pos"]}
        assert json_logic.apply(rule, {"n": -1}) == "neg"
        assert json_logic.apply(rule, {"n": 0}) == "zero"
        assert json_logic.apply(rule, {"n": 3}) == "pos"

    def test_not(self):
        assert json_logic.apply({"!": [[]]}, {}) is True
        assert json_logic.apply({"!!": ["0"]}, {}) is True


class TestArithmeticAndStrings:
    def test_arithmetic(self):
        assert json_logic.apply({"+": [1, "2", 3]}, {}) == 6
        assert json_logic.apply({"-": [5]}, {}) == -5
        assert json_logic.apply({"*": [2, 2.5]}, {}) == 5
        assert json_logic.apply({"/": [7, 2]}, {}) == 3.5
        assert json_logic.apply({"%": [7, 3]}, {}) == 1
        assert json_logic.apply({"max": [1, 9, 3]}, {}) == 9
        assert json_logic.apply({"min": [1, 9, 3]}, {}) == 1

    def test_division_by_zero(self):
        with pytest.raises(RuleEvaluationError):
            json_logic.apply({"/": [1, 0]}, {})

    def test_cat_and_substr(self):
        assert json_logic.apply({"cat": ["a", 1, True]}, {}) == "a1true"
        assert json_logic.apply({"substr": ["jsonlogic", 4]}, {}) == "logic"
        assert json_logic.apply({"substr": ["jsonlogic", -5]}, {}) == "logic"
        assert json_logic.apply({"substr": ["jsonlogic", 1, 3]}, {}) == "son"
        assert json_logic.apply({"substr": ["jsonlogic", 0, -1]}, {}) == "jsonlogi"

    def test_merge(self):
        assert json_logic.apply({"merge": [[1, 2], 3, [4]]}, {}) == [1, 2, 3, 4]


class TestIteration:
    def test_map_filter_reduce(self):
        data = {"xs": [1, 2, 3, 4]}
        assert json_logic.apply({"map": [{"var": "xs"}, {"*": [{"var": ""}, 2]}]}, data) == [2, 4, 6, 8]
        assert json_logic.apply({"filter": [{"var": "xs"}, {"%": [{"var": ""}, 2]}]}, data) == [1, 3]
        total = {"reduce": [{"var": "xs"}, {"+": [{"var": "current"}, {"var": "accumulator"}]}, 0]}
        assert json_logic.apply(total, data) == 10

    def test_all_some_none(self):
        data = {"xs": [1, 2, 3]}
        assert json_logic.apply({"all": [{"var": "xs"}, {">": [{"var": ""}, 0]}]}, data) is True
        assert json_logic.apply({"all": [[], {">": [{"var": ""}, 0]}]}, data) is False
        assert json_logic.apply({"some": [{"var": "xs"}, {">": [{"var": ""}, 2]}]}, data) is True
        assert json_logic.apply({"none": [{"var": "xs"}, {">": [{"var": ""}, 5]}]}, data) is True

"""Tests for the value model: display, equality, ordering and operators."""

from __future__ import annotations

import pytest

from sheetscript.errors import ScriptRuntimeError, TypeMismatchError
from sheetscript.values import (
    INT_MAX,
    INT_MIN,
    SheetRef,
    apply_binary,
    apply_unary,
    compare_values,
    display,
    is_table,
    is_truthy,
    round_half_away,
    type_name,
    values_equal,
)


class TestDisplay:
    def test_scalars(self) -> None:
        assert display(None) == "null"
        assert display(True) == "true"
        assert display(3) == "3"
        assert display(2.0) == "2"
        assert display(2.5) == "2.5"
        assert display("x") == "x"

    def test_arrays_quote_strings(self) -> None:
        assert display([1, "a", [True, None]]) == '[1, "a", [true, null]]'

    def test_special_floats(self) -> None:
        assert display(float("inf")) == "inf"
        assert display(float("-inf")) == "-inf"
        assert display(float("nan")) == "NaN"

    def test_sheet_ref(self) -> None:
        assert display(SheetRef("b1", "Data")) == "<sheet Data>"


class TestTypes:
    @pytest.mark.parametrize(
        "value,name",
        [
            (None, "null"),
            (True, "bool"),
            (1, "int"),
            (1.5, "float"),
            ("s", "string"),
            ([], "array"),
            (SheetRef("b", "S"), "sheet"),
        ],
    )
    def test_type_name(self, value, name) -> None:
        assert type_name(value) == name

    def test_truthiness(self) -> None:
        for falsy in (None, False, 0, 0.0, "", []):
            assert not is_truthy(falsy)
        for truthy in (True, 1, -0.5, "0", [0], SheetRef("b", "S")):
            assert is_truthy(truthy)

    def test_is_table(self) -> None:
        assert is_table([[1, 2], [3, 4]])
        assert not is_table([[1, 2], [3]])
        assert not is_table([])
        assert not is_table([1, 2])


class TestArithmetic:
    def test_int_arithmetic_stays_int(self) -> None:
        assert apply_binary("+", 2, 3) == 5
        assert isinstance(apply_binary("*", 2, 3), int)

    def test_mixed_widens_to_float(self) -> None:
        result = apply_binary("+", 1, 0.5)
        assert result == 1.5 and isinstance(result, float)

    def test_int_division_truncates_toward_zero(self) -> None:
        assert apply_binary("/", 7, 2) == 3
        assert apply_binary("/", -7, 2) == -3
        assert apply_binary("/", 7.0, 2) == 3.5

    def test_mod_follows_dividend_sign(self) -> None:
        assert apply_binary("mod", 7, 3) == 1
        assert apply_binary("mod", -7, 3) == -1

    def test_mod_requires_ints(self) -> None:
        with pytest.raises(TypeMismatchError):
            apply_binary("mod", 7.5, 2)

    def test_division_by_zero(self) -> None:
        with pytest.raises(ScriptRuntimeError, match="Division by zero"):
            apply_binary("/", 1, 0)
        with pytest.raises(ScriptRuntimeError, match="Modulo by zero"):
            apply_binary("mod", 1, 0)

    def test_overflow(self) -> None:
        with pytest.raises(ScriptRuntimeError, match="overflow"):
            apply_binary("+", INT_MAX, 1)
        with pytest.raises(ScriptRuntimeError, match="overflow"):
            apply_unary("-", INT_MIN)
        with pytest.raises(ScriptRuntimeError, match="overflow"):
            apply_binary("^", 2, 64)

    def test_power(self) -> None:
        assert apply_binary("^", 2, 10) == 1024
        assert apply_binary("^", 2, -1) == 0.5
        with pytest.raises(ScriptRuntimeError):
            apply_binary("^", -8, 0.5)

    def test_plus_with_string_concatenates(self) -> None:
        assert apply_binary("+", "n=", 1) == "n=1"
        assert apply_binary("+", 2.5, "x") == "2.5x"

    def test_ampersand_concatenates_anything(self) -> None:
        assert apply_binary("&", 1, True) == "1true"
        assert apply_binary("&", None, [1]) == "null[1]"

    def test_array_plus_array(self) -> None:
        assert apply_binary("+", [1], [2, 3]) == [1, 2, 3]

    def test_arithmetic_type_mismatch(self) -> None:
        with pytest.raises(TypeMismatchError):
            apply_binary("-", "a", 1)
        with pytest.raises(TypeMismatchError):
            apply_binary("*", True, 2)

    def test_unary(self) -> None:
        assert apply_unary("-", 3) == -3
        assert apply_unary("not", 0) is True
        with pytest.raises(TypeMismatchError):
            apply_unary("-", "x")


class TestComparison:
    def test_numbers_compare_across_kinds(self) -> None:
        assert apply_binary("=", 1, 1.0) is True
        assert apply_binary("<", 1, 1.5) is True

    def test_strings_compare_lexicographically(self) -> None:
        assert apply_binary("<", "apple", "banana") is True

    def test_null_equality_allowed(self) -> None:
        assert apply_binary("=", None, None) is True
        assert apply_binary("=", None, 1) is False
        assert apply_binary("<>", "a", None) is True

    def test_incompatible_equality_raises(self) -> None:
        with pytest.raises(TypeMismatchError):
            apply_binary("=", "1", 1)

    def test_incompatible_ordering_raises(self) -> None:
        with pytest.raises(TypeMismatchError):
            apply_binary("<", "a", [1])
        with pytest.raises(TypeMismatchError):
            apply_binary(">", None, 1)
        with pytest.raises(TypeMismatchError):
            compare_values([1], [2])

    def test_values_equal_is_lenient(self) -> None:
        assert values_equal("1", 1) is False
        assert values_equal([1, "a"], [1.0, "a"]) is True
        assert values_equal(True, 1) is False


class TestRounding:
    def test_half_away_from_zero(self) -> None:
        assert round_half_away(2.5) == 3.0
        assert round_half_away(-2.5) == -3.0
        assert round_half_away(2.675, 2) == 2.68

    def test_ints_unchanged(self) -> None:
        assert round_half_away(7) == 7
        assert round_half_away(1234, -2) == 1200.0

"""Tests for the lookup algorithms shared by built-ins and formulas."""

from __future__ import annotations

import pytest

from sheetscript import lookups
from sheetscript.errors import BoundsError, InvalidArgumentsError, NotFoundError
from sheetscript.interpreter import run_script

LETTERS = [["A", 10], ["B", 20], ["C", 30]]
STEPS = [[10, "low"], [20, "mid"], [30, "high"]]


class TestVlookup:
    def test_exact_match(self) -> None:
        assert lookups.vlookup("B", LETTERS, 2, True) == 20

    def test_approximate_takes_greatest_not_above(self) -> None:
        assert lookups.vlookup(25, STEPS, 2) == "mid"
        assert lookups.vlookup(30, STEPS, 2) == "high"
        assert lookups.vlookup(99, STEPS, 2) == "high"

    def test_approximate_below_first_key(self) -> None:
        with pytest.raises(NotFoundError):
            lookups.vlookup(5, STEPS, 2)

    def test_exact_not_found(self) -> None:
        with pytest.raises(NotFoundError) as exc_info:
            lookups.vlookup("Z", LETTERS, 2, True)
        assert not isinstance(exc_info.value, BoundsError)

    def test_exact_match_is_kind_strict(self) -> None:
        with pytest.raises(NotFoundError):
            lookups.vlookup("1", [[1, "x"]], 2, True)

    def test_first_duplicate_wins(self) -> None:
        table = [["A", 1], ["B", 2], ["B", 3]]
        assert lookups.vlookup("B", table, 2, True) == 2

    def test_column_bounds(self) -> None:
        with pytest.raises(BoundsError):
            lookups.vlookup("A", LETTERS, 3, True)
        with pytest.raises(BoundsError):
            lookups.vlookup("A", LETTERS, 0, True)

    def test_ragged_table_rejected(self) -> None:
        with pytest.raises(InvalidArgumentsError):
            lookups.vlookup("A", [["A", 1], ["B"]], 2, True)


class TestHlookup:
    def test_exact(self) -> None:
        table = [["A", "B", "C"], [1, 2, 3]]
        assert lookups.hlookup("B", table, 2, True) == 2

    def test_row_bounds(self) -> None:
        with pytest.raises(BoundsError):
            lookups.hlookup("A", [["A"], [1]], 3, True)


class TestIndex:
    def test_two_dimensional(self) -> None:
        assert lookups.index([[1, 2], [3, 4]], 2, 2) == 4

    def test_whole_row_when_column_omitted(self) -> None:
        assert lookups.index([[1, 2], [3, 4]], 2) == [3, 4]

    def test_one_dimensional(self) -> None:
        assert lookups.index([5, 6, 7], 2) == 6
        assert lookups.index([5, 6, 7], 3, 1) == 7

    def test_integral_float_positions(self) -> None:
        assert lookups.index([5, 6, 7], 1.0) == 5

    def test_bounds(self) -> None:
        with pytest.raises(BoundsError):
            lookups.index([[1, 2], [3, 4]], 3, 1)
        with pytest.raises(BoundsError):
            lookups.index([5, 6], 0)
        with pytest.raises(BoundsError):
            lookups.index([5, 6], 1, 2)


class TestMatch:
    def test_exact(self) -> None:
        assert lookups.match("B", ["A", "B", "C"], 0) == 2
        assert lookups.match("B", ["A", "B", "B"], 0) == 2

    def test_ascending(self) -> None:
        assert lookups.match(25, [10, 20, 30]) == 2
        assert lookups.match(20, [20, 10, 20]) == 1

    def test_descending(self) -> None:
        assert lookups.match(25, [30, 20, 10], -1) == 1
        with pytest.raises(NotFoundError):
            lookups.match(40, [30, 20, 10], -1)

    def test_unorderable_elements_are_skipped(self) -> None:
        assert lookups.match(2, ["a", 1, 3]) == 2

    def test_bad_match_type(self) -> None:
        with pytest.raises(InvalidArgumentsError):
            lookups.match(1, [1], 2)

    def test_requires_flat_array(self) -> None:
        with pytest.raises(InvalidArgumentsError):
            lookups.match(1, [[1]], 0)


class TestXlookup:
    def test_aligned_element(self) -> None:
        assert lookups.xlookup("b", ["a", "b"], [1, 2]) == 2

    def test_not_found_default(self) -> None:
        assert lookups.xlookup("z", ["a"], [1], "none") == "none"
        assert lookups.xlookup("z", ["a"], [1], None) is None
        with pytest.raises(NotFoundError):
            lookups.xlookup("z", ["a"], [1])

    def test_returns_whole_row(self) -> None:
        assert lookups.xlookup(2, [1, 2], [["a", "b"], ["c", "d"]]) == ["c", "d"]

    def test_length_mismatch(self) -> None:
        with pytest.raises(InvalidArgumentsError):
            lookups.xlookup(1, [1, 2], [1])


class TestLookupBuiltins:
    def test_from_script(self) -> None:
        source = (
            'table = [["A", 10], ["B", 20], ["C", 30]]\n'
            'v = vlookup("B", table, 2, true)\n'
            "i = index([[1, 2], [3, 4]], 2, 2)\n"
            'm = match("B", ["A", "B", "C"], 0)\n'
        )
        env = run_script(source).raise_for_error().environment
        assert env.get("v") == 20
        assert env.get("i") == 4
        assert env.get("m") == 2

    def test_not_found_stops_script_with_line(self) -> None:
        result = run_script('x = 1\ny = match("Q", ["A"], 0)\n')
        assert isinstance(result.error, NotFoundError)
        assert result.error.line == 2

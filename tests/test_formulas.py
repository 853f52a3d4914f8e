"""Tests for formula parsing and evaluation."""

from __future__ import annotations

import pytest

from sheetscript.formulas import (
    BinaryOp,
    CellRef,
    FormulaEvalError,
    FormulaFunctionError,
    FormulaParseError,
    FormulaRefError,
    FunctionCall,
    RangeRef,
    SheetResolver,
    evaluate_formula,
    extract_names,
    extract_refs,
    function_names,
    parse_formula,
    parse_sheet_ref,
)
from sheetscript.tabular.book import Book
from sheetscript.tabular.cells import CellError
from sheetscript.tabular.sheet import Sheet


@pytest.fixture
def sheet() -> Sheet:
    # A1..C3:  1 2 3 / 4 5 6 / x (blank) #N/A
    grid = [[1, 2, 3], [4, 5, 6], ["x", None, CellError("#N/A")]]
    return Sheet.from_grid(grid, "Main")


@pytest.fixture
def resolver(sheet: Sheet) -> SheetResolver:
    book = Book()
    book.add_sheet("Main", sheet)
    book.add_sheet("Rates", Sheet.from_grid([["eur", 1.1], ["gbp", 1.3]]))
    book.add_sheet("My Data", Sheet.from_grid([[7]]))
    return SheetResolver(sheet, book)


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


class TestParseFormula:
    def test_leading_equals_is_optional(self) -> None:
        assert parse_formula("=1+2") == parse_formula("1+2")

    def test_empty_formula(self) -> None:
        with pytest.raises(FormulaParseError):
            parse_formula("=  ")

    def test_syntax_error_has_position(self) -> None:
        with pytest.raises(FormulaParseError) as exc_info:
            parse_formula("=1 + * 2")
        assert exc_info.value.position is not None

    def test_function_names_upper_cased(self) -> None:
        node = parse_formula("=sum(A1:B2)")
        assert isinstance(node, FunctionCall)
        assert node.name == "SUM"
        assert node.args == (RangeRef(None, "A1", "B2"),)

    def test_references(self) -> None:
        node = parse_formula("=$A$1 + Rates!B2 + 'My Data'!A1")
        assert isinstance(node, BinaryOp)
        assert extract_refs(node) == ["A1", "Rates!B2", "'My Data'!A1"]
        assert node.right == CellRef("My Data", "A1")

    def test_names(self) -> None:
        assert extract_names(parse_formula("=price * (1 + $tax)")) == {"price", "tax"}

    def test_parse_sheet_ref(self) -> None:
        assert parse_sheet_ref("Sheet1!a$1") == ("Sheet1", "A1")
        assert parse_sheet_ref("'My Sheet'!B2:C4") == ("My Sheet", "B2:C4")


# ---------------------------------------------------------------------------
# Evaluation
# ---------------------------------------------------------------------------


class TestEvaluate:
    def test_arithmetic(self) -> None:
        assert evaluate_formula("=1 + 2 * 3") == 7
        assert evaluate_formula("=2^3^2") == 512
        assert evaluate_formula("=50%") == 0.5
        assert evaluate_formula("=-2 + 5") == 3

    def test_concat_and_comparison(self) -> None:
        assert evaluate_formula('="a" & 1') == "a1"
        assert evaluate_formula("=2 > 1") is True

    def test_context_names(self) -> None:
        assert evaluate_formula("=price * qty", context={"price": 2.5, "qty": 4}) == 10.0

    def test_unknown_name(self) -> None:
        with pytest.raises(FormulaRefError) as exc_info:
            evaluate_formula("=missing + 1", context={"other": 1})
        assert exc_info.value.tag == "#REF!"
        assert exc_info.value.available == ["other"]

    def test_cell_refs_need_resolver(self) -> None:
        with pytest.raises(FormulaRefError):
            evaluate_formula("=A1")

    def test_division_by_zero_tag(self) -> None:
        with pytest.raises(FormulaEvalError) as exc_info:
            evaluate_formula("=1/0")
        assert exc_info.value.tag == "#DIV/0!"

    def test_unknown_function_tag(self) -> None:
        with pytest.raises(FormulaFunctionError) as exc_info:
            evaluate_formula("=NOPE(1)")
        assert exc_info.value.tag == "#NAME?"

    def test_text_type_mismatch(self) -> None:
        with pytest.raises(FormulaEvalError) as exc_info:
            evaluate_formula('="a" - 1')
        assert exc_info.value.tag == "#VALUE!"

    def test_parsed_expression_reused(self, resolver: SheetResolver) -> None:
        expr = parse_formula("=A1 + B2")
        assert evaluate_formula(expr, resolver) == 6
        assert evaluate_formula(expr, resolver) == 6


class TestSheetResolver:
    def test_cells_and_ranges(self, resolver: SheetResolver) -> None:
        assert evaluate_formula("=C2", resolver) == 6
        assert evaluate_formula("=SUM(A1:C2)", resolver) == 21
        assert evaluate_formula("=AVERAGE(A1:A2)", resolver) == 2.5

    def test_blank_cell_counts_as_zero(self, resolver: SheetResolver) -> None:
        assert evaluate_formula("=B3 + 1", resolver) == 1
        assert evaluate_formula('=B3 & "!"', resolver) == "!"

    def test_error_cell_propagates_tag(self, resolver: SheetResolver) -> None:
        with pytest.raises(FormulaEvalError) as exc_info:
            evaluate_formula("=C3 + 1", resolver)
        assert exc_info.value.tag == "#N/A"
        assert evaluate_formula("=IFERROR(C3, 0)", resolver) == 0
        assert evaluate_formula("=ISERROR(C3)", resolver) is True

    def test_na_specific_error_functions(self, resolver: SheetResolver) -> None:
        assert evaluate_formula("=ISNA(C3)", resolver) is True
        assert evaluate_formula("=ISNA(Z99)", resolver) is False
        assert evaluate_formula("=ISERROR(Z99)", resolver) is True
        assert evaluate_formula("=ISERROR(A1)", resolver) is False
        assert evaluate_formula("=IFNA(C3, 7)", resolver) == 7
        assert evaluate_formula("=IFNA(A1, 7)", resolver) == 1
        with pytest.raises(FormulaEvalError) as exc_info:
            evaluate_formula("=IFNA(Z99, 7)", resolver)
        assert exc_info.value.tag == "#REF!"

    def test_error_function_arity(self, resolver: SheetResolver) -> None:
        with pytest.raises(FormulaFunctionError):
            evaluate_formula("=ISERROR(A1, B1)", resolver)
        with pytest.raises(FormulaFunctionError):
            evaluate_formula("=IFNA(A1)", resolver)

    def test_cross_sheet(self, resolver: SheetResolver) -> None:
        assert evaluate_formula("=Rates!B2", resolver) == 1.3
        assert evaluate_formula("='My Data'!A1 * 2", resolver) == 14

    def test_missing_sheet(self, resolver: SheetResolver) -> None:
        with pytest.raises(FormulaRefError):
            evaluate_formula("=Nowhere!A1", resolver)

    def test_out_of_range_cell(self, resolver: SheetResolver) -> None:
        with pytest.raises(FormulaEvalError) as exc_info:
            evaluate_formula("=Z99", resolver)
        assert exc_info.value.tag == "#REF!"

    def test_qualified_ref_without_book(self, sheet: Sheet) -> None:
        with pytest.raises(FormulaRefError):
            evaluate_formula("=Rates!A1", SheetResolver(sheet))


# ---------------------------------------------------------------------------
# Function library
# ---------------------------------------------------------------------------


class TestFunctions:
    def test_library_names(self) -> None:
        names = function_names()
        for expected in ("SUM", "IF", "IFERROR", "VLOOKUP", "XLOOKUP", "CONCAT", "AND"):
            assert expected in names

    def test_aggregates(self, resolver: SheetResolver) -> None:
        assert evaluate_formula("=MIN(A1:C2)", resolver) == 1
        assert evaluate_formula("=MAX(A1:C2)", resolver) == 6
        assert evaluate_formula("=COUNT(A1:B3)", resolver) == 4
        assert evaluate_formula("=COUNTA(A1:B3)", resolver) == 5

    def test_if_is_lazy(self) -> None:
        assert evaluate_formula("=IF(1 > 0, 10, 1/0)") == 10
        assert evaluate_formula("=IF(FALSE, 1)") is False

    def test_logical(self) -> None:
        assert evaluate_formula("=AND(TRUE, 1)") is True
        assert evaluate_formula("=OR(FALSE, 0)") is False
        assert evaluate_formula("=NOT(FALSE)") is True

    def test_text(self) -> None:
        assert evaluate_formula('=CONCATENATE("a", 1, TRUE)') == "a1true"
        assert evaluate_formula('=LEN("hello")') == 5
        assert evaluate_formula('=UPPER("abc")') == "ABC"
        assert evaluate_formula('=LEFT("hello", 2)') == "he"
        assert evaluate_formula('=RIGHT("hello")') == "o"

    def test_round(self) -> None:
        assert evaluate_formula("=ROUND(2.5)") == 3.0
        assert evaluate_formula("=ROUND(1.005, 2)") == 1.01

    def test_vlookup_range_lookup_flag(self, resolver: SheetResolver) -> None:
        assert evaluate_formula('=VLOOKUP("gbp", Rates!A1:B2, 2, FALSE)', resolver) == 1.3
        assert evaluate_formula("=VLOOKUP(5, A1:C2, 3)", resolver) == 6

    def test_lookup_not_found_tag(self, resolver: SheetResolver) -> None:
        with pytest.raises(FormulaFunctionError) as exc_info:
            evaluate_formula('=VLOOKUP("usd", Rates!A1:B2, 2, FALSE)', resolver)
        assert exc_info.value.tag == "#N/A"

    def test_lookup_bounds_tag(self, resolver: SheetResolver) -> None:
        with pytest.raises(FormulaFunctionError) as exc_info:
            evaluate_formula("=INDEX(A1:B2, 3, 1)", resolver)
        assert exc_info.value.tag == "#REF!"

    def test_match_and_index_on_ranges(self, resolver: SheetResolver) -> None:
        assert evaluate_formula("=MATCH(5, A2:C2, 0)", resolver) == 2
        assert evaluate_formula("=INDEX(A1:C2, 2, 3)", resolver) == 6
        assert evaluate_formula("=XLOOKUP(4, A1:A2, C1:C2)", resolver) == 6
        assert evaluate_formula('=XLOOKUP(9, A1:A2, C1:C2, "none")', resolver) == "none"

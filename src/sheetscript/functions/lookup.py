"""Lookup built-ins: thin arity checks over :mod:`sheetscript.lookups`.

``vlookup`` and ``hlookup`` take ``exact`` directly (truthy means exact
match), unlike the formula ``VLOOKUP`` whose fourth argument is the
spreadsheet ``range_lookup`` flag.
"""

from __future__ import annotations

from typing import Any

from sheetscript import lookups
from sheetscript.functions.registry import BuiltinContext, check_arity, register_builtin


@register_builtin("vlookup", "lookup")
def _vlookup(ctx: BuiltinContext, args: list[Any]) -> Any:
    """vlookup(key, table, col[, exact])"""
    check_arity("vlookup", args, 3, 4)
    return lookups.vlookup(*args)


@register_builtin("hlookup", "lookup")
def _hlookup(ctx: BuiltinContext, args: list[Any]) -> Any:
    """hlookup(key, table, row[, exact])"""
    check_arity("hlookup", args, 3, 4)
    return lookups.hlookup(*args)


@register_builtin("index", "lookup")
def _index(ctx: BuiltinContext, args: list[Any]) -> Any:
    """index(table, row, col) or index(array, n)"""
    check_arity("index", args, 2, 3)
    return lookups.index(*args)


@register_builtin("match", "lookup")
def _match(ctx: BuiltinContext, args: list[Any]) -> int:
    """match(key, array[, match_type])"""
    check_arity("match", args, 2, 3)
    return lookups.match(*args)


@register_builtin("xlookup", "lookup")
def _xlookup(ctx: BuiltinContext, args: list[Any]) -> Any:
    """xlookup(key, lookup_array, return_array[, if_not_found])"""
    check_arity("xlookup", args, 3, 4)
    return lookups.xlookup(*args)

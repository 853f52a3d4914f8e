"""Variable environment: a stack of insertion-ordered scopes."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator, Mapping

from sheetscript.errors import UnknownIdentifierError


class Environment:
    """Stack of scopes mapping identifiers to values.

    The bottom scope is the global scope.  Lookup walks the stack
    innermost-first; :meth:`assign` updates the nearest scope that already
    declares a name, otherwise it declares the name in the current scope.
    """

    def __init__(self, variables: Mapping[str, Any] | None = None) -> None:
        self._scopes: list[dict[str, Any]] = [dict(variables or {})]

    @property
    def depth(self) -> int:
        return len(self._scopes)

    @property
    def globals(self) -> dict[str, Any]:
        return self._scopes[0]

    def get(self, name: str, line: int | None = None) -> Any:
        for scope in reversed(self._scopes):
            if name in scope:
                return scope[name]
        raise UnknownIdentifierError(name, line, kind="variable")

    def __contains__(self, name: object) -> bool:
        return any(name in scope for scope in self._scopes)

    def declare(self, name: str, value: Any) -> None:
        """Bind *name* in the current (innermost) scope."""
        self._scopes[-1][name] = value

    def assign(self, name: str, value: Any) -> None:
        """Update the nearest declaring scope, or declare in the current one."""
        for scope in reversed(self._scopes):
            if name in scope:
                scope[name] = value
                return
        self._scopes[-1][name] = value

    def push_scope(self) -> None:
        self._scopes.append({})

    def pop_scope(self) -> dict[str, Any]:
        if len(self._scopes) == 1:
            raise RuntimeError("Cannot pop the global scope")
        return self._scopes.pop()

    @contextmanager
    def scope(self) -> Iterator[dict[str, Any]]:
        """Open a block scope, destroyed when the block exits (however it exits)."""
        self.push_scope()
        try:
            yield self._scopes[-1]
        finally:
            self.pop_scope()

    @contextmanager
    def call_frame(self, bindings: Mapping[str, Any]) -> Iterator[dict[str, Any]]:
        """Swap in a function-call frame of ``[globals, bindings]``.

        The caller's block scopes are hidden for the duration of the call
        and restored afterwards.
        """
        saved = self._scopes
        frame = dict(bindings)
        self._scopes = [saved[0], frame]
        try:
            yield frame
        finally:
            self._scopes = saved

    def snapshot(self) -> dict[str, Any]:
        """Flattened view of visible bindings, inner scopes shadowing outer."""
        merged: dict[str, Any] = {}
        for scope in self._scopes:
            merged.update(scope)
        return merged

    def __repr__(self) -> str:
        return f"Environment(depth={self.depth}, names={list(self.snapshot())})"

"""Tests for the scope stack."""

from __future__ import annotations

import pytest

from sheetscript.environment import Environment
from sheetscript.errors import UnknownIdentifierError


class TestEnvironment:
    def test_initial_mapping_is_copied(self) -> None:
        initial = {"a": 1}
        env = Environment(initial)
        env.assign("a", 2)
        assert initial == {"a": 1}
        assert env.get("a") == 2

    def test_unknown_name_carries_line(self) -> None:
        env = Environment()
        with pytest.raises(UnknownIdentifierError) as exc_info:
            env.get("missing", 7)
        assert exc_info.value.line == 7
        assert exc_info.value.name == "missing"

    def test_assign_updates_nearest_declaring_scope(self) -> None:
        env = Environment({"x": 1})
        with env.scope():
            env.assign("x", 5)
            env.assign("y", 9)
            assert "y" in env
        assert env.get("x") == 5
        assert "y" not in env

    def test_declare_shadows_outer(self) -> None:
        env = Environment({"x": 1})
        with env.scope():
            env.declare("x", 2)
            assert env.get("x") == 2
            assert env.snapshot()["x"] == 2
        assert env.get("x") == 1

    def test_scope_is_popped_on_error(self) -> None:
        env = Environment()
        with pytest.raises(KeyError):
            with env.scope():
                raise KeyError("boom")
        assert env.depth == 1

    def test_global_scope_cannot_be_popped(self) -> None:
        with pytest.raises(RuntimeError):
            Environment().pop_scope()

    def test_call_frame_hides_block_scopes(self) -> None:
        env = Environment({"g": 1})
        with env.scope():
            env.declare("local", 2)
            with env.call_frame({"p": 3}) as frame:
                assert "local" not in env
                assert env.get("g") == 1
                env.assign("q", 4)
                assert frame["q"] == 4
            assert env.get("local") == 2
        assert env.snapshot() == {"g": 1}

    def test_snapshot_preserves_insertion_order(self) -> None:
        env = Environment()
        for name in ("b", "a", "c"):
            env.assign(name, None)
        assert list(env.snapshot()) == ["b", "a", "c"]

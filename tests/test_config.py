"""Tests for configuration loading."""

from __future__ import annotations

import pytest

from sheetscript.config import CONFIG_FILENAME, DEFAULT_CONFIG, load_config
from sheetscript.interpreter import run_script


class TestLoadConfig:
    def test_defaults_without_directory(self) -> None:
        config = load_config()
        assert config == DEFAULT_CONFIG
        assert config is not DEFAULT_CONFIG

    def test_defaults_without_file(self, tmp_path) -> None:
        assert load_config(tmp_path) == DEFAULT_CONFIG

    def test_yaml_overrides(self, tmp_path) -> None:
        (tmp_path / CONFIG_FILENAME).write_text(
            "max_loop_iterations: 50\ndefault_book_name: Budget\nextra_key: 1\n"
        )
        config = load_config(tmp_path)
        assert config["max_loop_iterations"] == 50
        assert config["default_book_name"] == "Budget"
        assert config["max_call_depth"] == 100
        assert config["extra_key"] == 1

    def test_empty_file_gives_defaults(self, tmp_path) -> None:
        (tmp_path / CONFIG_FILENAME).write_text("")
        assert load_config(tmp_path) == DEFAULT_CONFIG

    def test_non_mapping_rejected(self, tmp_path) -> None:
        (tmp_path / CONFIG_FILENAME).write_text("- a\n- b\n")
        with pytest.raises(ValueError, match="must contain a mapping"):
            load_config(tmp_path)


class TestConfigEffects:
    def test_loop_limit(self) -> None:
        result = run_script("i = 0\nwhile true\n  i = i + 1\nwend\n", config={"max_loop_iterations": 5})
        assert result.error is not None
        assert "Loop exceeded 5 iterations" in str(result.error)

    def test_call_depth(self) -> None:
        source = "function f(n)\n  return f(n + 1)\nend function\nx = f(0)\n"
        result = run_script(source, config={"max_call_depth": 10})
        assert "Maximum call depth (10) exceeded" in str(result.error)

    def test_default_book_name(self) -> None:
        from sheetscript.interpreter import Interpreter

        assert Interpreter(config={"default_book_name": "Ledger"}).book.name == "Ledger"

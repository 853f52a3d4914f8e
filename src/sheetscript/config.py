"""Engine configuration: defaults merged with an optional ``sheetscript.yaml``."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

CONFIG_FILENAME = "sheetscript.yaml"

DEFAULT_CONFIG: dict[str, Any] = {
    "max_loop_iterations": 10_000_000,  # per loop statement; None disables
    "max_call_depth": 100,
    "log_dir": None,
    "default_book_name": "Book1",
    "csv_has_headers": True,
    "echo_events": False,
}


def load_config(directory: Path | str | None = None) -> dict[str, Any]:
    """Load configuration from ``sheetscript.yaml`` in *directory*, with defaults.

    Unknown keys are passed through unchanged.

    Args:
        directory: Directory to look in; ``None`` returns the defaults.

    Returns:
        Merged configuration dict.

    Raises:
        ValueError: If the file does not hold a mapping.
    """
    config = dict(DEFAULT_CONFIG)
    if directory is None:
        return config
    config_path = Path(directory) / CONFIG_FILENAME
    if config_path.exists():
        user_config = yaml.safe_load(config_path.read_text()) or {}
        if not isinstance(user_config, dict):
            raise ValueError(f"{config_path} must contain a mapping")
        config.update(user_config)
    return config

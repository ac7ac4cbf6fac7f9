"""Runtime loader for parser threshold overrides."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any

from tillroll.receipt.ocr_parser.config import DEFAULT_PARSER_CONFIG, ParserConfig
from tillroll.runtime.paths import get_paths


def _load_toml(path: Path) -> dict[str, Any]:
    """Load TOML file and return parsed dict; missing files map to empty dict."""
    try:
        import tomllib
    except ImportError:
        import tomli as tomllib  # type: ignore[no-redef]

    if not path.exists():
        return {}

    with open(path, "rb") as f:
        data = tomllib.load(f)
    return data if isinstance(data, dict) else {}


@lru_cache(maxsize=8)
def _load_parser_config(config_path: Path) -> ParserConfig:
    overrides = _load_toml(config_path).get("parser", {})
    if not isinstance(overrides, dict):
        raise ValueError(f"[parser] in {config_path} must be a table")
    if not overrides:
        return DEFAULT_PARSER_CONFIG
    return DEFAULT_PARSER_CONFIG.replace(**overrides)


def load_parser_config(path: str | None = None) -> ParserConfig:
    """
    Load parser thresholds from the ``[parser]`` table of a TOML file.

    Defaults to ``config/parser.toml`` under the project root, resolved on
    every call so a changed root is picked up. A missing file or table yields
    the built-in defaults.

    Raises:
        ValueError: on keys that are not parser settings
    """
    config_path = Path(path) if path is not None else get_paths().parser_config
    return _load_parser_config(config_path)

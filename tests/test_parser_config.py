"""Tests for parser threshold configuration."""

from decimal import Decimal

import pytest

from tillroll.receipt.ocr_parser import DEFAULT_PARSER_CONFIG, ParserConfig
from tillroll.runtime.parser_config import _load_parser_config, load_parser_config
from tillroll.runtime.paths import reset_paths


@pytest.fixture(autouse=True)
def _fresh_cache():
    _load_parser_config.cache_clear()
    yield
    _load_parser_config.cache_clear()


def test_replace_overrides_and_coerces_decimal() -> None:
    config = ParserConfig().replace(group_vertical_gap=0.03, small_amount_threshold=0.25)

    assert config.group_vertical_gap == 0.03
    assert config.small_amount_threshold == Decimal("0.25")
    assert DEFAULT_PARSER_CONFIG.group_vertical_gap == 0.04


def test_replace_rejects_unknown_keys() -> None:
    with pytest.raises(ValueError, match="not_a_setting"):
        ParserConfig().replace(not_a_setting=1)


def test_load_parser_config_from_toml(tmp_path) -> None:
    path = tmp_path / "parser.toml"
    path.write_text("[parser]\ngroup_vertical_gap = 0.03\nstore_scan_tokens = 4\n")

    config = load_parser_config(str(path))

    assert config.group_vertical_gap == 0.03
    assert config.store_scan_tokens == 4
    assert config.row_merge_tolerance == DEFAULT_PARSER_CONFIG.row_merge_tolerance


def test_load_parser_config_missing_file_uses_defaults(tmp_path) -> None:
    assert load_parser_config(str(tmp_path / "absent.toml")) is DEFAULT_PARSER_CONFIG


def test_load_parser_config_rejects_unknown_keys(tmp_path) -> None:
    path = tmp_path / "parser.toml"
    path.write_text("[parser]\nrow_tolerance = 0.02\n")

    with pytest.raises(ValueError):
        load_parser_config(str(path))


def test_load_parser_config_default_path(tillroll_home) -> None:
    config_dir = tillroll_home / "config"
    config_dir.mkdir()
    (config_dir / "parser.toml").write_text("[parser]\nlookback_max_steps = 5\n")

    assert load_parser_config().lookback_max_steps == 5


def test_load_parser_config_follows_project_root(tillroll_home, monkeypatch) -> None:
    for name, steps in (("first", 5), ("second", 9)):
        config_dir = tillroll_home / name / "config"
        config_dir.mkdir(parents=True)
        (config_dir / "parser.toml").write_text(f"[parser]\nlookback_max_steps = {steps}\n")

    monkeypatch.setenv("TILLROLL_HOME", str(tillroll_home / "first"))
    reset_paths()
    assert load_parser_config().lookback_max_steps == 5

    monkeypatch.setenv("TILLROLL_HOME", str(tillroll_home / "second"))
    reset_paths()
    assert load_parser_config().lookback_max_steps == 9

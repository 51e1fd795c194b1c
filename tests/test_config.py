"""Tests for configuration loading and saving."""

import yaml

from rpai.config import (
    DEFAULT_THEME,
    MIN_REFRESH_INTERVAL,
    Config,
    available_themes,
    config_path,
    load_config,
    save_config,
)


def test_defaults():
    config = Config()

    assert config.idle_threshold == 3.0
    assert config.refresh_interval == 2.0
    assert config.ascii_symbols is False
    assert config.theme == DEFAULT_THEME


def test_missing_file_gives_defaults(tmp_path):
    assert load_config(tmp_path / "absent.yaml") == Config()


def test_env_override(config_file):
    assert config_path() == config_file


def test_load_values(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("idle_threshold: 5\nrefresh_interval: 0.5\nascii_symbols: true\ntheme: nord\n")

    config = load_config(path)

    assert config == Config(idle_threshold=5.0, refresh_interval=0.5, ascii_symbols=True, theme="nord")


def test_values_clamped(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("idle_threshold: -1\nrefresh_interval: 0\n")

    config = load_config(path)

    assert config.idle_threshold == 0.0
    assert config.refresh_interval == MIN_REFRESH_INTERVAL


def test_invalid_values_fall_back(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("idle_threshold: lots\nrefresh_interval: true\ntheme: 7\nextra: 1\n")

    assert load_config(path) == Config()


def test_malformed_yaml_gives_defaults(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("idle_threshold: [1, 2\n")

    assert load_config(path) == Config()


def test_non_mapping_gives_defaults(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("- just\n- a list\n")

    assert load_config(path) == Config()


def test_save_theme(tmp_path):
    path = tmp_path / "nested" / "config.yaml"

    written = save_config(Config().with_theme("nord"), path)

    assert written == path
    assert yaml.safe_load(path.read_text())["theme"] == "nord"
    assert load_config(path).theme == "nord"


def test_with_theme_returns_copy():
    config = Config()

    updated = config.with_theme("nord")

    assert config.theme == DEFAULT_THEME
    assert updated.theme == "nord"
    assert updated.idle_threshold == config.idle_threshold


def test_available_themes_include_default():
    themes = available_themes()

    assert DEFAULT_THEME in themes
    assert themes == sorted(themes)


def test_quoted_flag_is_not_true(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text('ascii_symbols: "false"\n')

    assert load_config(path).ascii_symbols is False


def test_non_bool_flag_falls_back(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("ascii_symbols: 1\n")

    assert load_config(path).ascii_symbols is False

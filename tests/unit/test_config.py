"""Tests for the appindex config loader."""

from __future__ import annotations

import logging
import stat
import warnings
from pathlib import Path

import pytest
import yaml

from appindex.config import (
    DEFAULT_HIDDEN_IDS,
    AppIndexConfig,
    ConfigError,
    ensure_global_config,
    load_config,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _write_yaml(path: Path, data: dict) -> None:
    path.write_text(yaml.dump(data), encoding="utf-8")


@pytest.fixture(autouse=True)
def _no_env_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("APPINDEX_DB", raising=False)
    monkeypatch.delenv("APPINDEX_LOG_LEVEL", raising=False)


# ---------------------------------------------------------------------------
# Defaults — no config files present
# ---------------------------------------------------------------------------


def test_load_config_defaults_no_files(tmp_path: Path) -> None:
    """No config files → all hardcoded defaults."""
    missing_global = tmp_path / "nonexistent" / "config.yaml"
    cfg = load_config(config_dir=tmp_path, global_config_path=missing_global)

    assert cfg.store.path.name == "catalog.db"
    assert cfg.discovery.application_dirs == []
    assert cfg.discovery.known_ids == []
    assert cfg.discovery.hidden_ids == list(DEFAULT_HIDDEN_IDS)
    assert cfg.discovery.self_id is None
    assert cfg.search.debounce_ms == 100
    assert cfg.search.history_min_length == 2
    assert cfg.retention.enabled is True
    assert cfg.retention.days == 30
    assert cfg.icons.extensions == ["png", "svg", "xpm"]
    assert cfg.logging.level == "WARNING"
    assert cfg.log_level == logging.WARNING


# ---------------------------------------------------------------------------
# Layering
# ---------------------------------------------------------------------------


def test_load_config_global_overrides_defaults(tmp_path: Path) -> None:
    global_cfg = tmp_path / "config.yaml"
    _write_yaml(global_cfg, {"retention": {"days": 7}})

    cfg = load_config(config_dir=tmp_path / "elsewhere", global_config_path=global_cfg)
    assert cfg.retention.days == 7
    assert cfg.retention.enabled is True


def test_load_config_global_null_yaml(tmp_path: Path) -> None:
    global_cfg = tmp_path / "config.yaml"
    global_cfg.write_text("# only a comment\n", encoding="utf-8")

    cfg = load_config(config_dir=tmp_path, global_config_path=global_cfg)
    assert cfg == AppIndexConfig()


def test_load_config_local_overrides_global(tmp_path: Path) -> None:
    global_cfg = tmp_path / "global.yaml"
    _write_yaml(global_cfg, {"search": {"debounce_ms": 250, "history_min_length": 3}})
    _write_yaml(tmp_path / "appindex.yaml", {"search": {"debounce_ms": 0}})

    cfg = load_config(config_dir=tmp_path, global_config_path=global_cfg)
    assert cfg.search.debounce_ms == 0
    assert cfg.search.history_min_length == 3


def test_load_config_discovery_section(tmp_path: Path) -> None:
    _write_yaml(
        tmp_path / "appindex.yaml",
        {
            "discovery": {
                "application_dirs": [str(tmp_path / "apps")],
                "known_ids": ["org.example.Calc", "firefox"],
                "hidden_ids": [],
                "self_id": "org.example.Launcher",
            }
        },
    )
    cfg = load_config(config_dir=tmp_path, global_config_path=tmp_path / "none.yaml")
    assert cfg.discovery.application_dirs == [tmp_path / "apps"]
    assert cfg.discovery.known_ids == ["org.example.Calc", "firefox"]
    assert cfg.discovery.hidden_ids == []
    assert cfg.discovery.self_id == "org.example.Launcher"


def test_load_config_store_path_expands_user(tmp_path: Path) -> None:
    _write_yaml(tmp_path / "appindex.yaml", {"store": {"path": "~/apps.db"}})
    cfg = load_config(config_dir=tmp_path, global_config_path=tmp_path / "none.yaml")
    assert cfg.store.path == Path.home() / "apps.db"


def test_load_config_icon_extensions_strip_dots(tmp_path: Path) -> None:
    _write_yaml(tmp_path / "appindex.yaml", {"icons": {"extensions": [".png", "svg"]}})
    cfg = load_config(config_dir=tmp_path, global_config_path=tmp_path / "none.yaml")
    assert cfg.icons.extensions == ["png", "svg"]


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "data",
    [
        {"retention": {"days": 0}},
        {"retention": {"days": "soon"}},
        {"search": {"debounce_ms": -5}},
        {"search": {"history_min_length": 0}},
        {"discovery": {"known_ids": "firefox"}},
        {"logging": {"level": "LOUD"}},
    ],
)
def test_invalid_values_raise_config_error(tmp_path: Path, data: dict) -> None:
    _write_yaml(tmp_path / "appindex.yaml", data)
    with pytest.raises(ConfigError):
        load_config(config_dir=tmp_path, global_config_path=tmp_path / "none.yaml")


def test_log_level_case_insensitive(tmp_path: Path) -> None:
    _write_yaml(tmp_path / "appindex.yaml", {"logging": {"level": "debug"}})
    cfg = load_config(config_dir=tmp_path, global_config_path=tmp_path / "none.yaml")
    assert cfg.logging.level == "DEBUG"
    assert cfg.log_level == logging.DEBUG


def test_unknown_top_level_key_warns(tmp_path: Path) -> None:
    """Unknown top-level key in config emits UserWarning (not error)."""
    global_cfg = tmp_path / "config.yaml"
    _write_yaml(global_cfg, {"unknown_section": {"foo": "bar"}})

    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always")
        cfg = load_config(config_dir=tmp_path, global_config_path=global_cfg)

    assert any("unknown_section" in str(w.message) for w in caught)
    assert cfg.retention.days == 30


# ---------------------------------------------------------------------------
# Environment variable overrides
# ---------------------------------------------------------------------------


def test_env_var_db_override(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    _write_yaml(tmp_path / "appindex.yaml", {"store": {"path": str(tmp_path / "yaml.db")}})
    monkeypatch.setenv("APPINDEX_DB", str(tmp_path / "env.db"))

    cfg = load_config(config_dir=tmp_path, global_config_path=tmp_path / "none.yaml")
    assert cfg.store.path == tmp_path / "env.db"


def test_env_var_log_level_override(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("APPINDEX_LOG_LEVEL", "info")
    cfg = load_config(config_dir=tmp_path, global_config_path=tmp_path / "none.yaml")
    assert cfg.logging.level == "INFO"


def test_env_var_invalid_log_level(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("APPINDEX_LOG_LEVEL", "chatty")
    with pytest.raises(ConfigError):
        load_config(config_dir=tmp_path, global_config_path=tmp_path / "none.yaml")


# ---------------------------------------------------------------------------
# ensure_global_config
# ---------------------------------------------------------------------------


def test_ensure_global_config_creates_loadable_file(tmp_path: Path) -> None:
    target = tmp_path / ".appindex" / "config.yaml"
    result = ensure_global_config(global_config_path=target)

    assert result == target
    cfg = load_config(config_dir=tmp_path, global_config_path=target)
    assert cfg.retention.days == 30
    assert cfg.search.debounce_ms == 100


def test_ensure_global_config_file_mode(tmp_path: Path) -> None:
    """ensure_global_config creates file with mode 0o600 (owner-only)."""
    target = tmp_path / ".appindex" / "config.yaml"
    ensure_global_config(global_config_path=target)

    assert stat.S_IMODE(target.stat().st_mode) == 0o600


def test_ensure_global_config_idempotent(tmp_path: Path) -> None:
    """Calling ensure_global_config twice does not overwrite existing file."""
    target = tmp_path / ".appindex" / "config.yaml"
    ensure_global_config(global_config_path=target)
    target.write_text("retention:\n  days: 3\n", encoding="utf-8")

    ensure_global_config(global_config_path=target)
    assert "days: 3" in target.read_text(encoding="utf-8")


# ---------------------------------------------------------------------------
# yaml.safe_load enforcement (regression guard)
# ---------------------------------------------------------------------------


def test_config_does_not_execute_yaml_tags(tmp_path: Path) -> None:
    (tmp_path / "appindex.yaml").write_text(
        "store: !!python/object/apply:os.getcwd []\n", encoding="utf-8"
    )
    with pytest.raises(yaml.YAMLError):
        load_config(config_dir=tmp_path, global_config_path=tmp_path / "none.yaml")

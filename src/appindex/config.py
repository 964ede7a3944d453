"""appindex configuration loader.

Priority (high → low):
  1. CLI flags           (handled at call site — not in this module)
  2. Environment variables  (APPINDEX_DB, APPINDEX_LOG_LEVEL)
  3. Per-directory appindex.yaml
  4. Global ~/.appindex/config.yaml
  5. Hardcoded defaults

Result caps (50 results, 10 most-used, 20 history entries, 100 icons) are
performance bounds and not configurable here.
All YAML reads use yaml.safe_load() — never yaml.load().
"""

from __future__ import annotations

import logging
import os
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_GLOBAL_CONFIG_DIR: Path = Path.home() / ".appindex"
_GLOBAL_CONFIG_PATH: Path = _GLOBAL_CONFIG_DIR / "config.yaml"
_LOCAL_CONFIG_NAME: str = "appindex.yaml"
_DEFAULT_DB_PATH: Path = _GLOBAL_CONFIG_DIR / "catalog.db"

# Known top-level sections — unknown keys produce a warning
_KNOWN_SECTIONS: frozenset[str] = frozenset(
    ["store", "discovery", "search", "retention", "icons", "logging"]
)

_LOG_LEVELS: frozenset[str] = frozenset(
    ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
)

# Launchers, settings panels and package installers are never indexed.
DEFAULT_HIDDEN_IDS: tuple[str, ...] = (
    "org.gnome.Shell",
    "org.kde.plasmashell",
    "org.gnome.Settings",
    "systemsettings",
    "org.gnome.PackageUpdater",
    "gnome-software-local-file",
    "packagekit",
)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ConfigError(ValueError):
    """Raised when a config file contains an invalid value."""


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass
class StoreCfg:
    """Catalog store location (appindex.yaml: store:)."""

    path: Path = _DEFAULT_DB_PATH


@dataclass
class DiscoveryCfg:
    """Discovery strategies (appindex.yaml: discovery:).

    Attributes:
        application_dirs: Desktop-entry directories, highest precedence first.
            Empty means the XDG defaults.
        known_ids: Desktop ids probed directly when listing is restricted.
        hidden_ids: Ids (matched as substrings) that are never indexed.
        self_id: This program's own id, never indexed.
    """

    application_dirs: list[Path] = field(default_factory=list)
    known_ids: list[str] = field(default_factory=list)
    hidden_ids: list[str] = field(default_factory=lambda: list(DEFAULT_HIDDEN_IDS))
    self_id: str | None = None


@dataclass
class SearchCfg:
    """Live search behaviour (appindex.yaml: search:)."""

    debounce_ms: int = 100
    history_min_length: int = 2


@dataclass
class RetentionCfg:
    """Retention sweep (appindex.yaml: retention:)."""

    enabled: bool = True
    days: int = 30


@dataclass
class IconsCfg:
    """Icon lookup (appindex.yaml: icons:). Empty theme_dirs means XDG defaults."""

    theme_dirs: list[Path] = field(default_factory=list)
    extensions: list[str] = field(default_factory=lambda: ["png", "svg", "xpm"])


@dataclass
class LoggingCfg:
    """Log level for the CLI (appindex.yaml: logging:)."""

    level: str = "WARNING"


@dataclass
class AppIndexConfig:
    """Root configuration object, built by load_config() from merged YAML layers."""

    store: StoreCfg = field(default_factory=StoreCfg)
    discovery: DiscoveryCfg = field(default_factory=DiscoveryCfg)
    search: SearchCfg = field(default_factory=SearchCfg)
    retention: RetentionCfg = field(default_factory=RetentionCfg)
    icons: IconsCfg = field(default_factory=IconsCfg)
    logging: LoggingCfg = field(default_factory=LoggingCfg)

    @property
    def log_level(self) -> int:
        return logging.getLevelName(self.logging.level)


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def _warn_unknown_keys(data: dict[str, Any], source: Path) -> None:
    """Emit a UserWarning for unrecognised top-level keys."""
    for key in data:
        if key not in _KNOWN_SECTIONS:
            warnings.warn(
                f"Unknown config key '{key}' in '{source}' — ignored.",
                UserWarning,
                stacklevel=4,
            )


def _as_list(value: Any, key: str) -> list[Any]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ConfigError(
            f"'{key}' must be a list, got {type(value).__name__}.\n"
            f"  Example:\n    {key.split('.')[-1]}:\n      - value"
        )
    return value


def _positive_int(value: Any, key: str, *, allow_zero: bool = False) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"'{key}' must be an integer, got {value!r}.") from None
    if number < 0 or (number == 0 and not allow_zero):
        bound = ">= 0" if allow_zero else "> 0"
        raise ConfigError(f"'{key}' must be {bound}, got {number}.")
    return number


def _validate_level(level: str) -> str:
    upper = level.upper()
    if upper not in _LOG_LEVELS:
        raise ConfigError(
            f"logging.level must be one of {', '.join(sorted(_LOG_LEVELS))}, got '{level}'."
        )
    return upper


# ---------------------------------------------------------------------------
# Merge + build
# ---------------------------------------------------------------------------


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return a new dict that is *base* deep-merged with *override*."""
    result = dict(base)
    for k, v in override.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = _deep_merge(result[k], v)
        else:
            result[k] = v
    return result


def _cfg_from_dict(data: dict[str, Any]) -> AppIndexConfig:
    """Build an *AppIndexConfig* from a merged raw YAML dict."""
    cfg = AppIndexConfig()

    if "store" in data:
        s = data["store"] or {}
        if s.get("path"):
            cfg.store = StoreCfg(path=Path(str(s["path"])).expanduser())

    if "discovery" in data:
        d = data["discovery"] or {}
        hidden = (
            _as_list(d["hidden_ids"], "discovery.hidden_ids")
            if "hidden_ids" in d
            else list(cfg.discovery.hidden_ids)
        )
        cfg.discovery = DiscoveryCfg(
            application_dirs=[
                Path(str(p)).expanduser()
                for p in _as_list(d.get("application_dirs"), "discovery.application_dirs")
            ],
            known_ids=[str(i) for i in _as_list(d.get("known_ids"), "discovery.known_ids")],
            hidden_ids=[str(i) for i in hidden],
            self_id=d.get("self_id") or cfg.discovery.self_id,
        )

    if "search" in data:
        se = data["search"] or {}
        cfg.search = SearchCfg(
            debounce_ms=_positive_int(
                se.get("debounce_ms", cfg.search.debounce_ms),
                "search.debounce_ms",
                allow_zero=True,
            ),
            history_min_length=_positive_int(
                se.get("history_min_length", cfg.search.history_min_length),
                "search.history_min_length",
            ),
        )

    if "retention" in data:
        r = data["retention"] or {}
        cfg.retention = RetentionCfg(
            enabled=bool(r.get("enabled", cfg.retention.enabled)),
            days=_positive_int(r.get("days", cfg.retention.days), "retention.days"),
        )

    if "icons" in data:
        i = data["icons"] or {}
        exts = (
            _as_list(i["extensions"], "icons.extensions")
            if "extensions" in i
            else list(cfg.icons.extensions)
        )
        cfg.icons = IconsCfg(
            theme_dirs=[
                Path(str(p)).expanduser()
                for p in _as_list(i.get("theme_dirs"), "icons.theme_dirs")
            ],
            extensions=[str(e).lstrip(".") for e in exts],
        )

    if "logging" in data:
        lg = data["logging"] or {}
        cfg.logging = LoggingCfg(level=_validate_level(str(lg.get("level", cfg.logging.level))))

    return cfg


def _apply_env_overrides(cfg: AppIndexConfig) -> AppIndexConfig:
    """Apply APPINDEX_* environment variable overrides (layer 2)."""
    if db := os.environ.get("APPINDEX_DB"):
        cfg.store.path = Path(db).expanduser()
    if level := os.environ.get("APPINDEX_LOG_LEVEL"):
        cfg.logging.level = _validate_level(level)
    return cfg


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(
    config_dir: Path | None = None,
    *,
    global_config_path: Path | None = None,
) -> AppIndexConfig:
    """Load and return a merged *AppIndexConfig*.

    Applies layers in order: global → per-directory → env vars.
    CLI flag overrides must be applied by the caller after this function.

    Args:
        config_dir: Directory to search for *appindex.yaml*. Defaults to CWD.
        global_config_path: Override the global config path (for testing).

    Returns:
        Fully merged *AppIndexConfig* with env var overrides applied.

    Raises:
        ConfigError: If any value has the wrong type or is out of range.
    """
    global_path = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    search_dir = config_dir if config_dir is not None else Path.cwd()

    merged: dict[str, Any] = {}

    # Layer 1: global config
    if global_path.exists():
        raw_global = yaml.safe_load(global_path.read_text(encoding="utf-8")) or {}
        _warn_unknown_keys(raw_global, global_path)
        merged = _deep_merge(merged, raw_global)

    # Layer 2: per-directory config
    local_cfg_path = search_dir / _LOCAL_CONFIG_NAME
    if local_cfg_path.exists():
        raw_local = yaml.safe_load(local_cfg_path.read_text(encoding="utf-8")) or {}
        _warn_unknown_keys(raw_local, local_cfg_path)
        merged = _deep_merge(merged, raw_local)

    cfg = _cfg_from_dict(merged)

    # Layer 3: env var overrides
    cfg = _apply_env_overrides(cfg)

    return cfg


def ensure_global_config(
    global_config_path: Path | None = None,
) -> Path:
    """Create ``~/.appindex/config.yaml`` with defaults if it does not exist.

    Creates parent directory with mode 0o700 and the config file with
    mode 0o600 (owner-readable only).

    Args:
        global_config_path: Override path (for testing).

    Returns:
        Path to the global config file.
    """
    target = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    target.parent.mkdir(mode=0o700, parents=True, exist_ok=True)

    if not target.exists():
        content = (
            "# appindex global configuration.\n"
            "# Per-directory appindex.yaml files override these values.\n"
            "\n"
            "search:\n"
            "  debounce_ms: 100\n"
            "\n"
            "retention:\n"
            "  enabled: true\n"
            "  days: 30\n"
            "\n"
            "logging:\n"
            "  level: WARNING\n"
        )
        target.write_text(content, encoding="utf-8")
        target.chmod(0o600)

    return target

"""
Config loading and views for fund-kraken.

- load_config(...):      compose the packaged default.yaml with overrides and the environment
- morningstar_view(cfg): endpoints used for symbol lookup and report download
- couchdb_view(cfg):     document store URL and database name
- http_view(cfg):        HTTP adapter settings (timeout, retry attempts, user agent)
- batch_view(cfg):       batch driver settings (funds file, pacing delay, run log dir)
- ensure_config(cfg):    fail early with `ConfigError` on missing or empty settings
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Iterable, Mapping, Optional

from dotenv import find_dotenv, load_dotenv
from omegaconf import DictConfig, OmegaConf
from omegaconf.errors import OmegaConfBaseException

DEFAULT_CONFIG_PATH = Path(__file__).with_name("default.yaml")


class ConfigError(RuntimeError):
    pass


def load_config(
    overrides: Optional[Mapping[str, Any]] = None,
    *,
    config_path: Optional[Path] = None,
    dotenv_path: Optional[Path] = None,
) -> DictConfig:
    """
    Build the resolved, read-only application config.

    Precedence (highest first):
      1) `overrides` (e.g. from CLI flags), as a nested mapping
      2) environment variables (after loading `.env` without overriding the
         real environment)
      3) defaults from `default.yaml`

    Raises:
      ConfigError: if the YAML cannot be read or interpolations fail.
    """
    load_dotenv(dotenv_path or find_dotenv(usecwd=True), override=False)
    path = config_path or DEFAULT_CONFIG_PATH
    try:
        cfg = OmegaConf.load(path)
        if overrides:
            cfg = OmegaConf.merge(cfg, OmegaConf.create(dict(overrides)))
        OmegaConf.resolve(cfg)
    except (OSError, OmegaConfBaseException) as exc:
        raise ConfigError(f"Cannot load config from {path}: {exc}") from exc
    if not isinstance(cfg, DictConfig):
        raise ConfigError(f"Config root at {path} must be a mapping")
    OmegaConf.set_readonly(cfg, True)
    return cfg


def _view(cfg: DictConfig, path: str) -> DictConfig:
    node = OmegaConf.select(cfg, path, default=None)
    if not isinstance(node, DictConfig):
        raise ConfigError(f"Missing config section: {path}")
    return node


def morningstar_view(cfg: DictConfig) -> DictConfig:
    """Read-only view rooted at `morningstar`."""
    return _view(cfg, "morningstar")


def couchdb_view(cfg: DictConfig) -> DictConfig:
    """Read-only view rooted at `couchdb`."""
    return _view(cfg, "couchdb")


def http_view(cfg: DictConfig) -> DictConfig:
    """Read-only view rooted at `http`."""
    return _view(cfg, "http")


def batch_view(cfg: DictConfig) -> DictConfig:
    """Read-only view rooted at `batch`."""
    return _view(cfg, "batch")


def _must_have(d: DictConfig, path: str, keys: Iterable[str]) -> None:
    missing = [k for k in keys if k not in d or d[k] is None]
    if missing:
        raise ConfigError(f"Missing keys at {path}: {', '.join(missing)}")


def _must_be_number(d: DictConfig, path: str, key: str, *, minimum: float) -> None:
    try:
        value = float(d[key])
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{path}.{key} must be a number, got {d[key]!r}") from exc
    if value < minimum:
        raise ConfigError(f"{path}.{key} must be >= {minimum}, got {value}")


def ensure_config(cfg: DictConfig, *, require_database: bool = True) -> None:
    """Validate the config tree; `require_database=False` allows dry runs without a DB URL."""
    ms = morningstar_view(cfg)
    _must_have(ms, "morningstar", ("lookup_url", "report_base_url", "security_type_filter", "sort"))

    db = couchdb_view(cfg)
    _must_have(db, "couchdb", ("url", "database"))
    if require_database and not str(db.url).strip():
        raise ConfigError("couchdb.url is empty (set CLOUDANT_URL)")
    if not str(db.database).strip():
        raise ConfigError("couchdb.database is empty")

    http = http_view(cfg)
    _must_have(http, "http", ("user_agent", "timeout", "retry_attempts"))
    _must_be_number(http, "http", "timeout", minimum=0.0)
    _must_be_number(http, "http", "retry_attempts", minimum=1)

    batch = batch_view(cfg)
    _must_have(batch, "batch", ("funds_file", "delay_seconds", "runs_dir"))
    _must_be_number(batch, "batch", "delay_seconds", minimum=0.0)


__all__ = [
    "ConfigError",
    "DEFAULT_CONFIG_PATH",
    "load_config",
    "morningstar_view",
    "couchdb_view",
    "http_view",
    "batch_view",
    "ensure_config",
]

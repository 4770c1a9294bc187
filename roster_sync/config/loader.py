from __future__ import annotations

import json
import os
from collections.abc import Mapping
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from roster_sync.models.record import DEFAULT_STATUS

"""Config loader.

Responsibilities:
- Load YAML config (default ``config/roster.yml``)
- Validate against ``config_schema.json`` shipped next to this module
- Apply defaults (collection/document identity, 8s read timeout, display formats)
- Apply environment overrides (DATABASE_URL / PGDSN, ROSTER_ADMIN_*,
  ROSTER_STORE_TIMEOUT); ``.env`` loading itself is done by the CLI
"""

SCHEMA_PATH = Path(__file__).with_name("config_schema.json")
DEFAULT_CONFIG_PATH = Path("config/roster.yml")

DEFAULT_COLLECTION = "app_data"
DEFAULT_DOCUMENT_ID = "employee_records"
DEFAULT_TIMEOUT_SECONDS = 8.0
DEFAULT_TIMESTAMP_FORMAT = "%H:%M:%S - %d/%m/%Y"
DEFAULT_DATE_FORMAT = "%d/%m/%Y"


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class StoreConfig:
    dsn: str | None
    collection: str = DEFAULT_COLLECTION
    document_id: str = DEFAULT_DOCUMENT_ID
    timeout_seconds: float | None = DEFAULT_TIMEOUT_SECONDS  # None = no bound
    cache_path: str | None = None


@dataclass(frozen=True)
class AuthConfig:
    username: str
    password: str


@dataclass(frozen=True)
class DisplayConfig:
    timestamp_format: str = DEFAULT_TIMESTAMP_FORMAT
    date_format: str = DEFAULT_DATE_FORMAT
    default_status: str = DEFAULT_STATUS


@dataclass(frozen=True)
class RosterConfig:
    store: StoreConfig
    auth: AuthConfig
    display: DisplayConfig


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the JSON schema.

    Raises:
        ConfigError: schema file missing or unreadable, or validation failed
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")
    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def build_config(data: dict[str, Any]) -> RosterConfig:
    """Validate a raw mapping and build RosterConfig with defaults applied."""
    if not isinstance(data, dict):
        raise ConfigError("config root must be a mapping")
    _validate_config_schema(data)

    store_raw = data.get("store") or {}
    auth_raw = data["auth"]
    display_raw = data.get("display") or {}

    timeout = store_raw.get("timeout_seconds", DEFAULT_TIMEOUT_SECONDS)
    store = StoreConfig(
        dsn=store_raw.get("dsn"),
        collection=store_raw.get("collection", DEFAULT_COLLECTION),
        document_id=store_raw.get("document_id", DEFAULT_DOCUMENT_ID),
        timeout_seconds=float(timeout) if timeout is not None else None,
        cache_path=store_raw.get("cache_path"),
    )
    auth = AuthConfig(username=auth_raw["username"], password=auth_raw["password"])
    display = DisplayConfig(
        timestamp_format=display_raw.get("timestamp_format", DEFAULT_TIMESTAMP_FORMAT),
        date_format=display_raw.get("date_format", DEFAULT_DATE_FORMAT),
        default_status=display_raw.get("default_status", DEFAULT_STATUS),
    )
    return RosterConfig(store=store, auth=auth, display=display)


def apply_env_overrides(cfg: RosterConfig, environ: Mapping[str, str] | None = None) -> RosterConfig:
    """Return a copy of ``cfg`` with environment values taking precedence.

    優先順位: DATABASE_URL > PGDSN > config の store.dsn
    """
    env = os.environ if environ is None else environ

    store = cfg.store
    dsn = env.get("DATABASE_URL") or env.get("PGDSN")
    if dsn:
        store = replace(store, dsn=dsn)
    timeout_raw = env.get("ROSTER_STORE_TIMEOUT")
    if timeout_raw:
        try:
            timeout = float(timeout_raw)
        except ValueError as e:
            raise ConfigError(f"ROSTER_STORE_TIMEOUT is not a number: {timeout_raw!r}") from e
        if timeout <= 0:
            raise ConfigError(f"ROSTER_STORE_TIMEOUT must be positive: {timeout_raw!r}")
        store = replace(store, timeout_seconds=timeout)

    auth = cfg.auth
    username = env.get("ROSTER_ADMIN_USERNAME")
    password = env.get("ROSTER_ADMIN_PASSWORD")
    if username:
        auth = replace(auth, username=username)
    if password:
        auth = replace(auth, password=password)

    return replace(cfg, store=store, auth=auth)


def load_config(path: Path = DEFAULT_CONFIG_PATH, environ: Mapping[str, str] | None = None) -> RosterConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e

    cfg = build_config(data)
    return apply_env_overrides(cfg, environ)

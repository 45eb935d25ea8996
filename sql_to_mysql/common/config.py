# common/config.py
from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterable, Mapping, Optional

import yaml
from dotenv import load_dotenv

from .exceptions import ConfigError

DEFAULT_CONCURRENCY = 150
DEFAULT_LOG_FILE = "logs.txt"
DEFAULT_MYSQL_ODBC_DRIVER = "MySQL ODBC 8.0 Unicode Driver"
ON_ERROR_CHOICES = ("abort", "drain", "continue")

# Environment prefixes for each side of the migration
SOURCE_ENV_PREFIX = "SQL_DB"
TARGET_ENV_PREFIX = "MYSQL_DB"

_FIELDS = ("USERNAME", "PASSWORD", "HOST", "PORT", "NAME")
_SETTINGS_KEYS = {"excluded_tables", "concurrency", "on_error", "log_file", "migrate_schema"}


@dataclass(frozen=True)
class ConnectionConfig:
    username: str
    password: str
    host: str
    port: str
    database: str

    def mssql_locator(self) -> str:
        return f"sqlserver://{self.username}:{self.password}@{self.host}:{self.port}?database={self.database}"

    def mysql_locator(self) -> str:
        return f"{self.username}:{self.password}@tcp({self.host}:{self.port})/{self.database}"

    def masked(self) -> "ConnectionConfig":
        return ConnectionConfig(self.username, "***", self.host, self.port, self.database)


@dataclass
class MigrationSettings:
    source: ConnectionConfig
    target: ConnectionConfig
    migrate_schema: bool = False
    excluded_tables: FrozenSet[str] = field(default_factory=frozenset)
    concurrency: int = DEFAULT_CONCURRENCY
    on_error: str = "abort"
    log_file: str = DEFAULT_LOG_FILE
    odbc_driver: str = DEFAULT_MYSQL_ODBC_DRIVER

    def __post_init__(self) -> None:
        if self.concurrency < 1:
            raise ConfigError(f"concurrency must be >= 1, got {self.concurrency}")
        if self.on_error not in ON_ERROR_CHOICES:
            raise ConfigError(f"on_error must be one of {', '.join(ON_ERROR_CHOICES)}, got {self.on_error!r}")


def parse_schema_flag(value: Optional[str]) -> bool:
    """Only the literal "yes" turns the schema phase on."""
    return value == "yes"


def _schema_flag(value: Any) -> bool:
    if value is None or isinstance(value, bool):
        return bool(value)
    if isinstance(value, str):
        return parse_schema_flag(value)
    raise ConfigError(f"migrate_schema must be a boolean or \"yes\", got {value!r}")


def load_connection_config(prefix: str, environ: Optional[Mapping[str, str]] = None) -> ConnectionConfig:
    env = os.environ if environ is None else environ
    names = [f"{prefix}_{f}" for f in _FIELDS]
    # empty password is allowed, the other fields are required
    missing = [n for n in names if n not in env or (not env[n] and not n.endswith("PASSWORD"))]
    if missing:
        raise ConfigError(f"Missing environment variables: {', '.join(missing)}")
    username, password, host, port, database = (env[n] for n in names)
    return ConnectionConfig(username, password, host, port, database)


def load_yaml_settings(path: str) -> Dict[str, Any]:
    if not path or not os.path.exists(path):
        raise ConfigError(f"Settings file not found: {path}")
    with open(path, "r", encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping at the top level")
    unknown = sorted(set(data) - _SETTINGS_KEYS)
    if unknown:
        raise ConfigError(f"Unknown settings in {path}: {', '.join(unknown)}")
    excluded = data.get("excluded_tables") or []
    if not isinstance(excluded, list):
        raise ConfigError("excluded_tables must be a list of table names")
    return data


def _split_env_list(value: Optional[str]) -> Iterable[str]:
    if not value:
        return []
    return [p.strip() for p in value.split(",") if p.strip()]


def load_settings(
    *,
    env_file: Optional[str] = ".env",
    config_file: Optional[str] = None,
    migrate_schema: Optional[bool] = None,
    excluded_tables: Iterable[str] = (),
    concurrency: Optional[int] = None,
    on_error: Optional[str] = None,
    log_file: Optional[str] = None,
) -> MigrationSettings:
    """
    Resolve settings: command-line values > YAML file > defaults.
    Exclusions from every source are unioned.
    """
    if env_file and os.path.exists(env_file):
        load_dotenv(env_file, override=False)

    file_conf: Dict[str, Any] = load_yaml_settings(config_file) if config_file else {}

    excluded = set(str(t) for t in file_conf.get("excluded_tables") or [])
    excluded.update(_split_env_list(os.getenv("EXCLUDED_TABLES")))
    excluded.update(excluded_tables)

    def pick(cli_value, key, default):
        if cli_value is not None:
            return cli_value
        return file_conf.get(key, default)

    try:
        resolved_concurrency = int(pick(concurrency, "concurrency", DEFAULT_CONCURRENCY))
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"concurrency must be an integer: {exc}") from exc

    return MigrationSettings(
        source=load_connection_config(SOURCE_ENV_PREFIX),
        target=load_connection_config(TARGET_ENV_PREFIX),
        migrate_schema=_schema_flag(pick(migrate_schema, "migrate_schema", False)),
        excluded_tables=frozenset(excluded),
        concurrency=resolved_concurrency,
        on_error=str(pick(on_error, "on_error", "abort")),
        log_file=str(pick(log_file, "log_file", DEFAULT_LOG_FILE)),
        odbc_driver=os.getenv("MYSQL_ODBC_DRIVER", DEFAULT_MYSQL_ODBC_DRIVER),
    )

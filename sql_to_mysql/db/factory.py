# sql_to_mysql/db/factory.py
from __future__ import annotations
from typing import Any, Optional

from ..common.config import ConnectionConfig
from .base import Driver
from .mssql import MssqlDriver
from .mysql import MysqlDriver
from .pool import ConnectionPool


def make_driver(kind: str) -> Driver:
    k = (kind or "").lower()
    if k in {"mssql", "sqlserver", "sql_server"}: return MssqlDriver()
    if k in {"mysql", "mariadb"}: return MysqlDriver()
    raise ValueError(f"Unknown db kind: {kind}")


def connect_pool(kind: str, conf: ConnectionConfig, *, max_size: Optional[int] = None, **options: Any) -> ConnectionPool:
    drv = make_driver(kind)
    return ConnectionPool(
        lambda: drv.connect(conf, **options),
        name=drv.dialect.name,
        dialect=drv.dialect,
        max_size=max_size,
        close=drv.close,
    )

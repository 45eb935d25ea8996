# sql_to_mysql/db/mysql.py
from __future__ import annotations
from typing import Any

from ..common.config import DEFAULT_MYSQL_ODBC_DRIVER, ConnectionConfig
from ..common.exceptions import DatabaseConnectionError
from ..common.logger import logger
from .base import Dialect, Driver


class MysqlDialect(Dialect):
    name = "mysql"
    placeholder = "?"

    def qident(self, ident: str) -> str: return "`" + ident.replace("`", "``") + "`"

    def foreign_key_checks_sql(self, enabled: bool) -> str:
        return f"SET FOREIGN_KEY_CHECKS={1 if enabled else 0};"


def odbc_connection_string(conf: ConnectionConfig, driver: str = DEFAULT_MYSQL_ODBC_DRIVER) -> str:
    parts = {
        "DRIVER": "{" + driver + "}",
        "SERVER": conf.host,
        "PORT": conf.port,
        "DATABASE": conf.database,
        "UID": conf.username,
        "PWD": conf.password,
        "CHARSET": "utf8mb4",
    }
    return ";".join(f"{k}={v}" for k, v in parts.items() if v)


class MysqlDriver(Driver):
    dialect: Dialect = MysqlDialect()

    def connect(self, conf: ConnectionConfig, **options: Any):
        import pyodbc

        conn_str = odbc_connection_string(conf, options.get("odbc_driver") or DEFAULT_MYSQL_ODBC_DRIVER)
        try:
            return pyodbc.connect(conn_str, autocommit=True, timeout=int(options.get("login_timeout", 15)))
        except pyodbc.Error as e:
            logger.error(f"Open connection failed (MySQL {conf.masked().mysql_locator()}): {e}")
            raise DatabaseConnectionError(f"MySQL connection failed: {e}") from e

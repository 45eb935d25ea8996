# sql_to_mysql/db/mssql.py
from __future__ import annotations
from typing import Any

from ..common.config import ConnectionConfig
from ..common.exceptions import DatabaseConnectionError
from ..common.logger import logger
from .base import Dialect, Driver


class MssqlDialect(Dialect):
    name = "mssql"
    placeholder = "%s"

    def qident(self, ident: str) -> str: return f'[{ident.replace("]", "]]")}]'

    def table_list_query(self) -> str:
        return f"""
        SELECT TABLE_NAME
        FROM INFORMATION_SCHEMA.TABLES
        WHERE TABLE_TYPE = 'BASE TABLE' AND TABLE_CATALOG = {self.placeholder}
        """

    def column_datatype_query(self) -> str:
        # base tables only; ordinal position keeps declaration order within a table
        return f"""
        SELECT c.TABLE_NAME, c.COLUMN_NAME, c.DATA_TYPE
        FROM INFORMATION_SCHEMA.COLUMNS c
        JOIN INFORMATION_SCHEMA.TABLES t
          ON t.TABLE_CATALOG = c.TABLE_CATALOG
         AND t.TABLE_SCHEMA = c.TABLE_SCHEMA
         AND t.TABLE_NAME = c.TABLE_NAME
        WHERE t.TABLE_TYPE = 'BASE TABLE' AND t.TABLE_CATALOG = {self.placeholder}
        ORDER BY c.TABLE_NAME, c.ORDINAL_POSITION
        """


class MssqlDriver(Driver):
    dialect: Dialect = MssqlDialect()

    def connect(self, conf: ConnectionConfig, **options: Any):
        import pymssql

        try:
            return pymssql.connect(
                server=conf.host, port=int(conf.port), user=conf.username, password=conf.password,
                database=conf.database, autocommit=True, charset="UTF-8", as_dict=False,
                login_timeout=int(options.get("login_timeout", 15)),
            )
        except (pymssql.Error, ValueError) as e:
            logger.error(f"Open connection failed (SQL Server {conf.masked().mssql_locator()}): {e}")
            raise DatabaseConnectionError(f"SQL Server connection failed: {e}") from e

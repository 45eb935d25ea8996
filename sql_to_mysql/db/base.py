# sql_to_mysql/db/base.py
from __future__ import annotations
from typing import Any

from ..common.config import ConnectionConfig


class Dialect:
    name = "generic"
    placeholder = "?"

    def qident(self, ident: str) -> str: return '"' + ident.replace('"', '""') + '"'

    def select_all_sql(self, table: str) -> str: return f"SELECT * FROM {self.qident(table)}"


class Driver:
    dialect: Dialect = Dialect()

    def connect(self, conf: ConnectionConfig, **options: Any):
        raise NotImplementedError

    def close(self, conn) -> None: conn.close()

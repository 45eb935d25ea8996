# sql_to_mysql/etl/extract.py
from __future__ import annotations
from contextlib import contextmanager
from typing import AbstractSet, Any, Iterator, List, Optional, Tuple

from ..common.exceptions import QueryError
from ..common.logger import logger
from ..db.mssql import MssqlDialect
from ..db.pool import ConnectionPool
from .transform import TableSchema, group_columns


class Extractor:
    """Reads catalog metadata and table rows from the source database."""

    def __init__(self, pool: ConnectionPool, catalog: str, excluded_tables: AbstractSet[str] = frozenset()) -> None:
        self.pool = pool
        self.catalog = catalog
        self.excluded_tables = frozenset(excluded_tables)
        self.dialect: MssqlDialect = pool.dialect if isinstance(pool.dialect, MssqlDialect) else MssqlDialect()

    def is_excluded(self, table: str) -> bool:
        return table in self.excluded_tables

    # ---- schema introspection ----
    def get_table_schema(self) -> TableSchema:
        sql = self.dialect.column_datatype_query()
        try:
            with self.pool.connection() as conn:
                cur = conn.cursor()
                try:
                    cur.execute(sql, (self.catalog,))
                    rows = [r for r in cur if not self.is_excluded(r[0])]
                finally:
                    cur.close()
        except Exception as e:
            raise QueryError(f"Schema introspection failed: {e}") from e
        schema = group_columns(rows)
        logger.info(f"Introspected {len(schema)} table(s), {len(rows)} column(s) from {self.catalog}")
        return schema

    # ---- table enumeration ----
    def iter_tables(self) -> Iterator[str]:
        """
        Lazily yields base-table names of the catalog, skipping excluded ones.
        The enumeration cursor stays open while the caller consumes names.
        """
        sql = self.dialect.table_list_query()
        try:
            with self.pool.connection() as conn:
                cur = conn.cursor()
                try:
                    cur.execute(sql, (self.catalog,))
                    for row in cur:
                        table = row[0]
                        if self.is_excluded(table):
                            logger.info(f"Skipping excluded table: {table}")
                            continue
                        yield table
                finally:
                    cur.close()
        except Exception as e:
            raise QueryError(f"Table enumeration failed: {e}") from e

    # ---- row streaming ----
    @contextmanager
    def open_rows(self, table: str) -> Iterator[Tuple[List[str], Iterator[Tuple[Any, ...]]]]:
        """
        Opens SELECT * on the source and yields (column names, row iterator).
        Rows come back in cursor order, one tuple per row.
        """
        with self.pool.connection() as conn:
            cur = conn.cursor()
            try:
                cur.execute(self.dialect.select_all_sql(table))
                description: Optional[list] = cur.description
                columns = [d[0] for d in description or []]
                yield columns, iter(cur)
            finally:
                cur.close()

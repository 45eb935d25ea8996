# sql_to_mysql/etl/load.py
from __future__ import annotations
from contextlib import contextmanager
from typing import Any, Iterable, Iterator, Sequence

from ..common.exceptions import RowError, SchemaError
from ..common.logger import logger
from ..db.mysql import MysqlDialect
from ..db.pool import ConnectionPool
from .transform import TableSchema, create_table_statements

FOREIGN_KEY_CHECKS = "FOREIGN_KEY_CHECKS"


def build_insert(dialect: MysqlDialect, table: str, column_count: int) -> str:
    placeholders = ",".join([dialect.placeholder] * column_count)
    return f"INSERT INTO {dialect.qident(table)} VALUES ({placeholders})"


class Loader:
    """Writes DDL and rows into the target database."""

    def __init__(self, pool: ConnectionPool) -> None:
        self.pool = pool
        self.dialect: MysqlDialect = pool.dialect if isinstance(pool.dialect, MysqlDialect) else MysqlDialect()

    # ---- schema ----
    def create_tables(self, schema: TableSchema) -> int:
        """
        One CREATE TABLE per table, executed in order. The first failure
        raises SchemaError; tables created before it are left in place.
        """
        created = 0
        with self.pool.connection() as conn:
            cur = conn.cursor()
            try:
                for table, ddl in create_table_statements(self.dialect, schema):
                    logger.debug(f"DDL for {table}:\n{ddl}")
                    try:
                        cur.execute(ddl)
                    except Exception as e:
                        logger.error(f"CREATE TABLE failed for {table}: {e}")
                        raise SchemaError(table, e) from e
                    created += 1
                    logger.info(f"Table {table} created ({len(schema[table])} columns).")
            finally:
                cur.close()
        return created

    # ---- rows ----
    def insert_rows(self, table: str, column_count: int, rows: Iterable[Sequence[Any]]) -> int:
        """
        Inserts rows one statement at a time, in iteration order, on a single
        autocommit connection. Stops at the first failing row.
        """
        sql = build_insert(self.dialect, table, column_count)
        row_number = 0
        with self.pool.connection() as conn:
            cur = conn.cursor()
            try:
                it = iter(rows)
                while True:
                    try:
                        row = next(it)
                    except StopIteration:
                        break
                    except Exception as e:
                        # source side: scan / cursor iteration error
                        raise RowError(table, row_number + 1, e) from e
                    row_number += 1
                    try:
                        cur.execute(sql, tuple(row))
                    except Exception as e:
                        raise RowError(table, row_number, e) from e
            finally:
                cur.close()
        return row_number

    # ---- referential integrity ----
    def set_foreign_key_checks(self, enabled: bool) -> None:
        self.pool.set_session(FOREIGN_KEY_CHECKS, self.dialect.foreign_key_checks_sql(enabled))

    @contextmanager
    def foreign_key_checks_disabled(self) -> Iterator[None]:
        """FOREIGN_KEY_CHECKS=0 on every target connection for the block, restored on any exit."""
        self.set_foreign_key_checks(False)
        logger.info("Foreign key checks disabled on target.")
        try:
            yield
        except BaseException:
            # keep the original error; a failed restore is only logged here
            try:
                self.set_foreign_key_checks(True)
                logger.info("Foreign key checks re-enabled on target.")
            except Exception as e:
                logger.error(f"Could not re-enable foreign key checks: {e}")
            raise
        self.set_foreign_key_checks(True)
        logger.info("Foreign key checks re-enabled on target.")

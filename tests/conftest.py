"""
In-memory stand-ins for the pymssql (source) and pyodbc (target) DB-API
objects, so the engine can be exercised without a live server.
"""
import re
import threading
import time
from typing import Dict, List, Optional, Sequence, Tuple

import pytest

from sql_to_mysql.db.mssql import MssqlDialect
from sql_to_mysql.db.mysql import MysqlDialect
from sql_to_mysql.db.pool import ConnectionPool
from sql_to_mysql.etl.extract import Extractor
from sql_to_mysql.etl.load import Loader

_SELECT_ALL = re.compile(r"^SELECT \* FROM \[(.+)\]$")
_INSERT = re.compile(r"^INSERT INTO `(.+)` VALUES \((.*)\)$")
_CREATE = re.compile(r"^CREATE TABLE `(.+?)` \(")
_SET = re.compile(r"^SET (\w+)=(\w+);$")


class FakeCursor:
    def __init__(self, conn: "FakeConnection") -> None:
        self.conn = conn
        self.description = None
        self._rows = iter(())
        self.closed = False

    def execute(self, sql: str, params: Optional[Sequence] = None) -> None:
        if self.conn.closed:
            raise RuntimeError("connection is closed")
        self.conn.server.handle(self, sql.strip(), params)

    def __iter__(self):
        return self

    def __next__(self):
        return next(self._rows)

    def close(self) -> None:
        self.closed = True


class FakeConnection:
    def __init__(self, server: "FakeServer") -> None:
        self.server = server
        self.closed = False
        self.session: Dict[str, str] = {}

    def cursor(self) -> FakeCursor:
        return FakeCursor(self)

    def close(self) -> None:
        self.closed = True


class FakeServer:
    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.connections: List[FakeConnection] = []
        self.statements: List[Tuple[str, Optional[tuple]]] = []

    def connect(self) -> FakeConnection:
        conn = FakeConnection(self)
        with self.lock:
            self.connections.append(conn)
        return conn

    def handle(self, cursor: FakeCursor, sql: str, params) -> None:
        with self.lock:
            self.statements.append((sql, tuple(params) if params is not None else None))
        m = _SET.match(sql)
        if m:
            cursor.conn.session[m.group(1)] = m.group(2)
            return
        self.dispatch(cursor, sql, params)

    def dispatch(self, cursor: FakeCursor, sql: str, params) -> None:
        raise NotImplementedError(sql)


class FakeSqlServer(FakeServer):
    """
    tables: {name: (column names, rows)}; catalog_columns are the
    INFORMATION_SCHEMA.COLUMNS rows returned by introspection.
    """

    def __init__(self, tables=None, catalog_columns=None, table_names=None) -> None:
        super().__init__()
        self.tables: Dict[str, Tuple[List[str], List[tuple]]] = dict(tables or {})
        self.catalog_columns = list(catalog_columns or [])
        self.table_names = list(table_names) if table_names is not None else list(self.tables)
        self.fail_select: Dict[str, Exception] = {}
        self.fail_read_after: Dict[str, int] = {}
        self.fail_catalog: Optional[Exception] = None
        self.fail_enumeration_after: Optional[int] = None
        self.row_delay = 0.0
        self.active = 0
        self.peak_active = 0

    def _rows(self, table: str, rows: List[tuple]):
        with self.lock:
            self.active += 1
            self.peak_active = max(self.peak_active, self.active)
        try:
            for i, row in enumerate(rows):
                if table in self.fail_read_after and i >= self.fail_read_after[table]:
                    raise IOError(f"read error on {table}")
                if self.row_delay:
                    time.sleep(self.row_delay)
                yield row
        finally:
            with self.lock:
                self.active -= 1

    def _names(self):
        for i, name in enumerate(self.table_names):
            if self.fail_enumeration_after is not None and i >= self.fail_enumeration_after:
                raise IOError("enumeration cursor broke")
            yield (name,)

    def dispatch(self, cursor, sql, params) -> None:
        if "INFORMATION_SCHEMA.COLUMNS" in sql:
            if self.fail_catalog:
                raise self.fail_catalog
            cursor._rows = iter(self.catalog_columns)
            return
        if "INFORMATION_SCHEMA.TABLES" in sql:
            if self.fail_catalog:
                raise self.fail_catalog
            cursor._rows = self._names()
            return
        m = _SELECT_ALL.match(sql)
        if m:
            table = m.group(1).replace("]]", "]")
            if table in self.fail_select:
                raise self.fail_select[table]
            columns, rows = self.tables[table]
            cursor.description = [(c, None, None, None, None, None, None) for c in columns]
            cursor._rows = self._rows(table, list(rows))
            return
        raise ValueError(f"unexpected source SQL: {sql}")


class FakeMySql(FakeServer):
    def __init__(self) -> None:
        super().__init__()
        self.created: List[str] = []
        self.ddl: List[str] = []
        self.rows: Dict[str, List[tuple]] = {}
        self.fail_create: Dict[str, Exception] = {}
        self.fail_insert_at: Dict[str, int] = {}
        # FOREIGN_KEY_CHECKS seen by each INSERT
        self.fk_during_insert: List[Optional[str]] = []

    def dispatch(self, cursor, sql, params) -> None:
        m = _CREATE.match(sql)
        if m:
            table = m.group(1).replace("``", "`")
            if table in self.fail_create:
                raise self.fail_create[table]
            with self.lock:
                self.created.append(table)
                self.ddl.append(sql)
            return
        m = _INSERT.match(sql)
        if m:
            table = m.group(1).replace("``", "`")
            placeholders = m.group(2).split(",") if m.group(2) else []
            assert len(placeholders) == len(params), sql
            with self.lock:
                bucket = self.rows.setdefault(table, [])
                if self.fail_insert_at.get(table) == len(bucket) + 1:
                    raise RuntimeError(f"duplicate key on {table}")
                bucket.append(tuple(params))
                self.fk_during_insert.append(cursor.conn.session.get("FOREIGN_KEY_CHECKS"))
            return
        raise ValueError(f"unexpected target SQL: {sql}")


@pytest.fixture
def make_source():
    pools = []

    def _make(tables=None, catalog_columns=None, table_names=None, excluded=()):
        server = FakeSqlServer(tables, catalog_columns, table_names)
        pool = ConnectionPool(server.connect, name="mssql", dialect=MssqlDialect())
        pools.append(pool)
        return server, Extractor(pool, "shop", frozenset(excluded))

    yield _make
    for p in pools:
        p.close()


@pytest.fixture
def target():
    server = FakeMySql()
    pool = ConnectionPool(server.connect, name="mysql", dialect=MysqlDialect())
    yield server, Loader(pool)
    pool.close()


def table_of(n: int, columns=("id", "name")) -> Tuple[List[str], List[tuple]]:
    return list(columns), [(i, f"row-{i}") + tuple(f"{c}-{i}" for c in columns[2:]) for i in range(1, n + 1)]

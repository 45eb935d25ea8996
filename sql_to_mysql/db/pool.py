# sql_to_mysql/db/pool.py
from __future__ import annotations

import queue
import threading
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Optional

from ..common.exceptions import DatabaseConnectionError
from ..common.logger import logger
from .base import Dialect


class ConnectionPool:
    """
    Thread-safe pool of DB-API connections for one database.

    pymssql and pyodbc connections must not be used by two threads at once,
    so every worker borrows its own connection:

        with pool.connection() as conn:
            cur = conn.cursor()
            ...

    Session statements registered with set_session() are replayed on every
    connection, idle ones immediately and busy ones when they next change
    hands, so session-level switches reach the whole pool.
    """

    def __init__(
        self,
        connect: Callable[[], Any],
        *,
        name: str = "db",
        dialect: Optional[Dialect] = None,
        min_size: int = 1,
        max_size: Optional[int] = None,
        close: Optional[Callable[[Any], None]] = None,
    ) -> None:
        self.name = name
        self.dialect = dialect
        self._connect = connect
        self._close = close or (lambda c: c.close())
        self._max_size = max_size

        self._available: "queue.LifoQueue[Any]" = queue.LifoQueue()
        self._semaphore = threading.BoundedSemaphore(max_size) if max_size else None
        self._lock = threading.Lock()
        self._all: List[Any] = []
        self._session: Dict[str, str] = {}
        self._applied: Dict[int, Dict[str, str]] = {}
        self._closed = False

        for _ in range(min_size):
            self._available.put(self._create_connection())
        logger.info(f"[{self.name}] connection pool ready (min={min_size}, max={max_size or 'unbounded'})")

    def _create_connection(self):
        conn = self._connect()
        if conn is None:
            raise DatabaseConnectionError(f"[{self.name}] driver returned no connection")
        with self._lock:
            self._all.append(conn)
            self._applied[id(conn)] = {}
        return conn

    def _discard(self, conn) -> None:
        try:
            self._close(conn)
        except Exception as e:
            logger.warning(f"[{self.name}] closing connection failed: {e}")
        with self._lock:
            if conn in self._all:
                self._all.remove(conn)
            self._applied.pop(id(conn), None)

    def _sync_session(self, conn) -> None:
        with self._lock:
            wanted = dict(self._session)
            applied = self._applied.setdefault(id(conn), {})
            todo = [(k, sql) for k, sql in wanted.items() if applied.get(k) != sql]
        if not todo:
            return
        cur = conn.cursor()
        try:
            for key, sql in todo:
                cur.execute(sql)
                with self._lock:
                    applied[key] = sql
        finally:
            cur.close()

    # ---- borrowing ----
    def acquire(self):
        if self._closed:
            raise RuntimeError(f"[{self.name}] connection pool has been closed")
        if self._semaphore is not None:
            self._semaphore.acquire()
        try:
            try:
                conn = self._available.get_nowait()
            except queue.Empty:
                conn = self._create_connection()
            try:
                self._sync_session(conn)
            except BaseException:
                self._discard(conn)
                raise
            return conn
        except BaseException:
            if self._semaphore is not None:
                self._semaphore.release()
            raise

    def release(self, conn) -> None:
        if conn is None:
            return
        try:
            if self._closed:
                self._discard(conn)
                return
            try:
                self._sync_session(conn)
            except Exception as e:
                logger.warning(f"[{self.name}] session reset failed, dropping connection: {e}")
                self._discard(conn)
                return
            self._available.put(conn)
        finally:
            if self._semaphore is not None:
                self._semaphore.release()

    @contextmanager
    def connection(self) -> Iterator[Any]:
        conn = self.acquire()
        try:
            yield conn
        finally:
            self.release(conn)

    # ---- session state ----
    def set_session(self, key: str, sql: str) -> None:
        """Register a session statement and apply it to every idle connection now."""
        with self._lock:
            self._session[key] = sql
        idle: List[Any] = []
        while True:
            try:
                idle.append(self._available.get_nowait())
            except queue.Empty:
                break
        errors: List[BaseException] = []
        for conn in idle:
            try:
                self._sync_session(conn)
                self._available.put(conn)
            except Exception as e:
                errors.append(e)
                self._discard(conn)
        if errors:
            raise errors[0]

    # ---- lifecycle ----
    def close(self) -> None:
        """Close idle connections; borrowed ones are closed when they come back."""
        self._closed = True
        while True:
            try:
                self._discard(self._available.get_nowait())
            except queue.Empty:
                break
        with self._lock:
            busy = len(self._all)
        if busy:
            logger.warning(f"[{self.name}] pool closed with {busy} connection(s) still in use")
        else:
            logger.info(f"[{self.name}] connection pool closed")

    def __enter__(self) -> "ConnectionPool":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()

    @property
    def stats(self) -> Dict[str, Any]:
        with self._lock:
            total = len(self._all)
        return {"total": total, "available": self._available.qsize(), "max": self._max_size}

"""Errors raised by the migration engine.

Library code raises these; only the command-line entry point turns them
into a log line and an exit status.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional, Sequence

if TYPE_CHECKING:
    from ..utilities.worker import MigrationTask


class MigrationError(Exception):
    """Base class for every failure the tool reports."""


class ConfigError(MigrationError):
    """Settings are missing or invalid."""


class DatabaseConnectionError(MigrationError):
    """A source or target connection could not be opened."""


class QueryError(MigrationError):
    """A catalog query (introspection or table enumeration) failed."""


class SchemaError(MigrationError):
    def __init__(self, table: str, cause: BaseException) -> None:
        self.table = table
        self.cause = cause
        super().__init__(f"CREATE TABLE `{table}` failed: {cause}")


class RowError(MigrationError):
    """
    A single table copy failed. row_number is 1-based; 0 means the failure
    happened before the first row (cursor open or result metadata).
    """

    def __init__(self, table: str, row_number: int, cause: BaseException) -> None:
        self.table = table
        self.row_number = row_number
        self.cause = cause
        where = f"row {row_number}" if row_number else "opening the source cursor"
        super().__init__(f"Copy of table {table} failed at {where}: {cause}")


class AggregateFailure(MigrationError):
    def __init__(self, failures: Sequence["MigrationTask"], scheduled: Optional[int] = None) -> None:
        self.failures: List["MigrationTask"] = list(failures)
        self.scheduled = scheduled
        names = ", ".join(t.table_name for t in self.failures)
        msg = f"{len(self.failures)} table(s) failed: {names}"
        if self.failures and self.failures[0].error is not None:
            msg += f" (first error: {self.failures[0].error})"
        super().__init__(msg)

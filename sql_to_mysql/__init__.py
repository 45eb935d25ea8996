"""
SQL Server to MySQL migration tool.

Copies every base table of a SQL Server catalog into a MySQL database,
optionally creating the tables first, with a bounded number of tables
copied in parallel.

Usage:
    sql-to-mysql --schemas yes
    python -m sql_to_mysql --exclude audit_log --concurrency 20
"""

__version__ = "1.0.0"

from .common.exceptions import (
    AggregateFailure,
    ConfigError,
    DatabaseConnectionError,
    MigrationError,
    QueryError,
    RowError,
    SchemaError,
)
from .etl.transform import ColumnDescriptor, build_create_table, mssql_type_to_mysql
from .utilities.etl_manager import CopyEngine, ETLManager, FailurePolicy, ResultAggregator

__all__ = [
    "AggregateFailure",
    "ColumnDescriptor",
    "ConfigError",
    "CopyEngine",
    "DatabaseConnectionError",
    "ETLManager",
    "FailurePolicy",
    "MigrationError",
    "QueryError",
    "ResultAggregator",
    "RowError",
    "SchemaError",
    "build_create_table",
    "mssql_type_to_mysql",
]

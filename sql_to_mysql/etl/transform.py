# sql_to_mysql/etl/transform.py
from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, Iterable, List, Sequence, Tuple

from ..db.base import Dialect

TEXT_TYPE = "TEXT"

# ================= TYPE MAP ==================
# SQL Server DATA_TYPE -> MySQL column type. Lossy on purpose: lengths,
# precision and collation are not carried over.
MSSQL_TO_MYSQL_TYPE: Dict[str, str] = {
    "bit": "TINYINT(1)", "tinyint": "TINYINT", "smallint": "SMALLINT",
    "int": "INT", "bigint": "BIGINT",
    "numeric": "DECIMAL", "decimal": "DECIMAL",
    "smallmoney": "DECIMAL(6, 4)", "money": "DECIMAL(19, 4)",
    "float": "DOUBLE", "real": "FLOAT",
    "date": "DATE", "time": "TIME",
    "datetime": "DATETIME", "datetime2": "DATETIME", "smalldatetime": "DATETIME",
    "year": "YEAR", "timestamp": "DATETIME",
    "char": TEXT_TYPE, "nchar": TEXT_TYPE,
    "varchar": TEXT_TYPE, "nvarchar": TEXT_TYPE, "text": TEXT_TYPE, "ntext": TEXT_TYPE,
    "binary": "BINARY", "varbinary": "VARBINARY(255)", "image": "BLOB",
}


def mssql_type_to_mysql(data_type: str) -> str:
    """Case-sensitive lookup; anything unknown becomes TEXT."""
    return MSSQL_TO_MYSQL_TYPE.get(data_type, TEXT_TYPE)


@dataclass(frozen=True)
class ColumnDescriptor:
    table_name: str
    column_name: str
    source_type: str

    @property
    def target_type(self) -> str:
        return mssql_type_to_mysql(self.source_type)


TableSchema = Dict[str, List[ColumnDescriptor]]


def group_columns(rows: Iterable[Sequence[str]]) -> TableSchema:
    """
    (table, column, type) rows -> {table: [ColumnDescriptor, ...]}.
    Tables keep first-occurrence order, columns keep row order.
    """
    tables: TableSchema = {}
    for table_name, column_name, data_type in rows:
        tables.setdefault(table_name, []).append(ColumnDescriptor(table_name, column_name, data_type))
    return tables


def build_create_table(dialect: Dialect, table: str, columns: Sequence[ColumnDescriptor]) -> str:
    cols_sql = ",".join(f"{dialect.qident(c.column_name)} {c.target_type}" for c in columns)
    return f"CREATE TABLE {dialect.qident(table)} ({cols_sql}\n);"


def create_table_statements(dialect: Dialect, schema: TableSchema) -> List[Tuple[str, str]]:
    return [(table, build_create_table(dialect, table, cols)) for table, cols in schema.items()]

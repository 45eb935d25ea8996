from unittest import mock

import pytest

from sql_to_mysql.common.config import ConnectionConfig
from sql_to_mysql.common.exceptions import DatabaseConnectionError
from sql_to_mysql.db.factory import connect_pool, make_driver
from sql_to_mysql.db.mssql import MssqlDialect, MssqlDriver
from sql_to_mysql.db.mysql import MysqlDialect, MysqlDriver, odbc_connection_string

CONF = ConnectionConfig("sa", "secret", "db.local", "1433", "shop")


@pytest.mark.parametrize("kind, cls", [("mssql", MssqlDriver), ("SQLServer", MssqlDriver), ("mysql", MysqlDriver), ("mariadb", MysqlDriver)])
def test_make_driver(kind, cls):
    assert isinstance(make_driver(kind), cls)


def test_unknown_kind():
    with pytest.raises(ValueError):
        make_driver("oracle")


def test_quoting():
    assert MssqlDialect().select_all_sql("a]b") == "SELECT * FROM [a]]b]"
    assert MysqlDialect().qident("a`b") == "`a``b`"
    assert MysqlDialect().foreign_key_checks_sql(False) == "SET FOREIGN_KEY_CHECKS=0;"


def test_catalog_queries_take_the_database_name():
    dialect = MssqlDialect()
    assert "TABLE_TYPE = 'BASE TABLE'" in dialect.table_list_query()
    assert "ORDER BY c.TABLE_NAME, c.ORDINAL_POSITION" in dialect.column_datatype_query()
    assert dialect.table_list_query().count("%s") == 1
    assert dialect.column_datatype_query().count("%s") == 1


def test_catalog_queries_follow_the_placeholder_style():
    dialect = MssqlDialect()
    dialect.placeholder = "?"
    assert "TABLE_CATALOG = ?" in dialect.table_list_query()
    assert "t.TABLE_CATALOG = ?" in dialect.column_datatype_query()
    assert "%s" not in dialect.column_datatype_query()


def test_odbc_connection_string():
    conn_str = odbc_connection_string(CONF, "MySQL ODBC 8.0 Unicode Driver")
    assert conn_str.startswith("DRIVER={MySQL ODBC 8.0 Unicode Driver};SERVER=db.local;PORT=1433;")
    assert "UID=sa;PWD=secret" in conn_str


def test_mssql_connect_arguments():
    pymssql = pytest.importorskip("pymssql")
    with mock.patch.object(pymssql, "connect") as connect:
        MssqlDriver().connect(CONF)
    kwargs = connect.call_args.kwargs
    assert kwargs["server"] == "db.local"
    assert kwargs["port"] == 1433
    assert kwargs["database"] == "shop"
    assert kwargs["autocommit"] is True


def test_mssql_connect_failure_is_wrapped():
    pymssql = pytest.importorskip("pymssql")
    with mock.patch.object(pymssql, "connect", side_effect=pymssql.OperationalError("login failed")):
        with pytest.raises(DatabaseConnectionError):
            MssqlDriver().connect(CONF)


def test_mysql_connect_failure_is_wrapped():
    pyodbc = pytest.importorskip("pyodbc")
    with mock.patch.object(pyodbc, "connect", side_effect=pyodbc.Error("IM002", "no driver")):
        with pytest.raises(DatabaseConnectionError):
            MysqlDriver().connect(CONF)


def test_connect_pool_opens_one_connection():
    pymssql = pytest.importorskip("pymssql")
    with mock.patch.object(pymssql, "connect") as connect:
        with connect_pool("mssql", CONF, max_size=3) as pool:
            assert pool.dialect.name == "mssql"
            assert pool.stats == {"total": 1, "available": 1, "max": 3}
    connect.return_value.close.assert_called_once()

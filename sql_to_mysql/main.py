import argparse
import sys
from typing import List, Optional

from .common.config import DEFAULT_LOG_FILE, ON_ERROR_CHOICES, MigrationSettings, load_settings, parse_schema_flag
from .common.exceptions import MigrationError
from .common.logger import logger
from .db.factory import connect_pool
from .etl.extract import Extractor
from .etl.load import Loader
from .utilities.etl_manager import ETLManager, FailurePolicy
from .utilities.progress import Spinner
from .utilities.worker import MigrationTask


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sql-to-mysql",
        description="Copy every table of a SQL Server database into MySQL.",
    )
    parser.add_argument("--schemas", type=str, default=None, help="'yes' creates the tables in MySQL before copying data")
    parser.add_argument("--env-file", type=str, default=".env", help="dotenv file with SQL_DB_* and MYSQL_DB_* settings")
    parser.add_argument("--config", type=str, required=False, help="YAML settings file")
    parser.add_argument("--exclude", action="append", default=[], metavar="TABLE", help="Table to skip in both the schema and data phases (repeatable)")
    parser.add_argument("--concurrency", type=int, required=False, help="Tables copied at the same time (default 150)")
    parser.add_argument("--on-error", choices=ON_ERROR_CHOICES, required=False, help="Failure policy (default abort)")
    parser.add_argument("--log-file", type=str, required=False, help=f"Append log lines here (default {DEFAULT_LOG_FILE})")
    parser.add_argument("--no-spinner", action="store_true", help="Do not draw the progress glyph")
    return parser


def run(settings: MigrationSettings, *, show_spinner: bool = True) -> List[MigrationTask]:
    logger.info(" Connecting to database...")
    pool_size = settings.concurrency + 1  # one extra for the enumeration cursor
    source_pool = connect_pool("mssql", settings.source, max_size=pool_size)
    try:
        target_pool = connect_pool("mysql", settings.target, max_size=pool_size, odbc_driver=settings.odbc_driver)
    except BaseException:
        source_pool.close()
        raise

    with source_pool, target_pool:
        logger.success("Both connections established!")
        logger.info(f"Source: {settings.source.masked().mssql_locator()}")
        logger.info(f"Target: {settings.target.masked().mysql_locator()}")
        if settings.excluded_tables:
            logger.info(f"Excluded tables: {', '.join(sorted(settings.excluded_tables))}")

        manager = ETLManager(
            Extractor(source_pool, settings.source.database, settings.excluded_tables),
            Loader(target_pool),
            concurrency=settings.concurrency,
            policy=FailurePolicy(settings.on_error),
            spinner=Spinner(enabled=None if show_spinner else False),
        )
        return manager.start_migration(settings.migrate_schema)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        settings = load_settings(
            env_file=args.env_file,
            config_file=args.config,
            migrate_schema=parse_schema_flag(args.schemas) if args.schemas is not None else None,
            excluded_tables=args.exclude,
            concurrency=args.concurrency,
            on_error=args.on_error,
            log_file=args.log_file,
        )
    except MigrationError as e:
        logger.add_file_handler(args.log_file or DEFAULT_LOG_FILE)
        logger.error(f"💣 {e}")
        return 1

    logger.add_file_handler(settings.log_file)
    try:
        run(settings, show_spinner=not args.no_spinner)
    except MigrationError as e:
        logger.error(f"💣 {e}")
        return 1
    except KeyboardInterrupt:
        logger.warning("Migration interrupted.")
        return 130
    return 0


def cli() -> None:
    sys.exit(main())


if __name__ == "__main__":
    cli()

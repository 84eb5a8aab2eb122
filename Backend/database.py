import argparse
import logging
import sys
from typing import List, Optional

from sqlalchemy import event, inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, SQLModel, create_engine

import models  # noqa: F401  registers the tables on SQLModel.metadata
import settings
from logger import setup_logger

logger = logging.getLogger(__name__)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # SQLite ignores ON DELETE CASCADE unless the pragma is set per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_db_engine(url: str = settings.DATABASE_URL, **kwargs) -> Engine:
    connect_args = {}
    if url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    engine = create_engine(url, echo=settings.SQL_ECHO, connect_args=connect_args, **kwargs)
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    return engine


# ----- DB setup -----
engine = create_db_engine()


def get_session():
    with Session(engine) as session:
        yield session


def create_db_and_tables(bind: Optional[Engine] = None):
    SQLModel.metadata.create_all(bind or engine)


def check_connection(bind: Optional[Engine] = None) -> List[str]:
    """Run a trivial query and return the table names the database holds."""
    bind = bind or engine
    with bind.connect() as conn:
        conn.execute(text("SELECT 1"))
    return inspect(bind).get_table_names()


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog="habit-tracker-db", description="Habit tracker database tools")
    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("init", help="create the users, habits and habit_logs tables")
    subparsers.add_parser("check", help="test the database connection")
    args = parser.parse_args(argv)

    setup_logger()
    try:
        if args.command == "init":
            logger.info("Running schema migration...")
            create_db_and_tables()
            logger.info("Schema created successfully.")
        else:
            logger.info("Testing DB connection...")
            tables = check_connection()
            logger.info("DB connection successful. Tables: %s", ", ".join(tables) or "none")
    except SQLAlchemyError:
        logger.exception("Database command '%s' failed", args.command)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())

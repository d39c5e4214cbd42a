# Overview: Transaction and retry helpers shared by write paths.

from __future__ import annotations

import time

from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


def begin_write() -> None:
    """
    Take the database write lock up front on SQLite.

    Without it two SQLite connections can both read before either writes,
    then one fails at commit with "database is locked". The check is made on
    the DBAPI connection: pysqlite only opens a real transaction on the first
    write, so an ORM-level transaction left open by earlier reads does not
    hold any lock yet.
    """
    if db.engine.dialect.name != "sqlite":
        return
    dbapi_connection = db.session.connection().connection.dbapi_connection
    if not dbapi_connection.in_transaction:
        db.session.execute(text("BEGIN IMMEDIATE"))


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError.
    Any other exception rolls the session back and propagates unchanged.
    """
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError):
            db.session.rollback()
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
        except Exception:
            db.session.rollback()
            raise

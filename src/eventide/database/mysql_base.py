from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, List, Optional

import mysql.connector
from mysql.connector import errorcode

from ..core.exceptions import ConflictError, TransientError
from .connection import DatabaseConnection

# Errors after which the whole transaction can simply be replayed
RETRYABLE_ERRNOS = frozenset({errorcode.ER_LOCK_DEADLOCK, errorcode.ER_LOCK_WAIT_TIMEOUT})


def translate_error(exc: mysql.connector.Error) -> Optional[Exception]:
    """Map driver errors onto the domain taxonomy (None = not ours to map)."""

    if getattr(exc, "errno", None) in RETRYABLE_ERRNOS:
        return ConflictError(f"Concurrent update detected: {exc.msg}")
    if isinstance(exc, (mysql.connector.InterfaceError, mysql.connector.OperationalError)):
        return TransientError("Database is temporarily unavailable")
    return None


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True):
    """Open a connection + cursor for one transaction.

    Commits when the block exits normally, rolls back otherwise. Driver errors are
    re-raised as ConflictError/TransientError when they are retryable.
    """

    try:
        conn = conn_factory.connect()
    except mysql.connector.Error as e:
        raise TransientError("Database is temporarily unavailable") from e

    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except mysql.connector.Error as e:
        conn.rollback()
        mapped = translate_error(e)
        if mapped is not None:
            raise mapped from e
        raise
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def fetchone(cur) -> Optional[Dict[str, Any]]:
    row = cur.fetchone()
    return row if row else None


def fetchall(cur) -> List[Dict[str, Any]]:
    rows = cur.fetchall()
    return list(rows or [])


def is_duplicate_key(exc: mysql.connector.Error) -> bool:
    return getattr(exc, "errno", None) == errorcode.ER_DUP_ENTRY

from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

import mysql.connector

from ..core.enums import Role
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, is_duplicate_key
from .model import ProfileDetails, UserProfile
from .repository import UserRepository

_COLUMNS = "uid, email, role, name, phone, department, register_no, batch_year, created_at, updated_at"


def _to_profile(row: dict) -> UserProfile:
    return UserProfile(
        uid=row["uid"],
        email=row.get("email"),
        role=Role(row["role"]),
        name=row.get("name"),
        phone=row.get("phone"),
        department=row.get("department"),
        register_no=row.get("register_no"),
        batch_year=row.get("batch_year"),
        created_at=row.get("created_at"),
        updated_at=row.get("updated_at"),
    )


class MySQLUserRepository(UserRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_uid(self, uid: str) -> Optional[UserProfile]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM users WHERE uid=%s", (uid,))
            row = fetchone(cur)
            return _to_profile(row) if row else None

    def create(self, *, uid: str, email: Optional[str], role: Role, now: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            try:
                cur.execute(
                    """
                    INSERT INTO users(uid, email, role, created_at, updated_at)
                    VALUES(%s,%s,%s,%s,%s)
                    """,
                    (uid, email, role.value, now, now),
                )
            except mysql.connector.IntegrityError as e:
                if is_duplicate_key(e):
                    return False
                raise
            return True

    def update_details(self, *, uid: str, details: ProfileDetails, now: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE users
                SET name=%s, phone=%s, department=%s, register_no=%s, batch_year=%s, updated_at=%s
                WHERE uid=%s
                """,
                (
                    details.name,
                    details.phone,
                    details.department,
                    details.register_no,
                    details.batch_year,
                    now,
                    uid,
                ),
            )
            return cur.rowcount > 0

    def set_role(self, *, uid: str, role: Role, now: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE users SET role=%s, updated_at=%s WHERE uid=%s", (role.value, now, uid))
            return cur.rowcount > 0

    def list_all(self, *, limit: int) -> Sequence[UserProfile]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM users ORDER BY email ASC LIMIT %s", (int(limit),))
            return [_to_profile(r) for r in fetchall(cur)]

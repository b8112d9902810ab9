from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

import mysql.connector

from ..core.enums import ACTIVE_REGISTRATION_STATUSES, EventStatus, RegistrationStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, is_duplicate_key
from .model import EventRegistrationRow, Registration, Reservation, ReserveOutcome, StudentRegistrationRow
from .repository import RegistrationRepository

_COLUMNS = (
    "r.registration_id, r.event_id, r.student_id, r.status, r.registered_at, r.updated_at, "
    "r.checked_in_at, r.qr_code_data, r.certificate_url"
)

_ACTIVE = tuple(sorted(s.value for s in ACTIVE_REGISTRATION_STATUSES))
_ACTIVE_IN = "(" + ",".join(["%s"] * len(_ACTIVE)) + ")"


def _to_registration(row: dict) -> Registration:
    return Registration(
        registration_id=int(row["registration_id"]),
        event_id=int(row["event_id"]),
        student_id=row["student_id"],
        status=RegistrationStatus(row["status"]),
        registered_at=row["registered_at"],
        updated_at=row["updated_at"],
        qr_code_data=row["qr_code_data"],
        checked_in_at=row.get("checked_in_at"),
        certificate_url=row.get("certificate_url"),
    )


class MySQLRegistrationRepository(RegistrationRepository):
    """Registration ledger on InnoDB.

    Capacity-sensitive writes lock the event row first (``SELECT ... FOR UPDATE``), so
    registrations for one event are serialized while other events proceed in parallel.
    """

    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    @staticmethod
    def _lock_event(cur, event_id: int) -> Optional[dict]:
        cur.execute("SELECT event_id, capacity, status FROM events WHERE event_id=%s FOR UPDATE", (int(event_id),))
        return fetchone(cur)

    @staticmethod
    def _has_active(cur, event_id: int, student_id: str, *, exclude_id: Optional[int] = None) -> bool:
        sql = f"SELECT registration_id FROM registrations WHERE event_id=%s AND student_id=%s AND status IN {_ACTIVE_IN}"
        params: list[object] = [int(event_id), student_id, *_ACTIVE]
        if exclude_id is not None:
            sql += " AND registration_id<>%s"
            params.append(int(exclude_id))
        cur.execute(sql + " LIMIT 1 FOR UPDATE", tuple(params))
        return fetchone(cur) is not None

    @staticmethod
    def _active_count(cur, event_id: int) -> int:
        cur.execute(
            f"SELECT COUNT(*) AS n FROM registrations WHERE event_id=%s AND status IN {_ACTIVE_IN} FOR UPDATE",
            (int(event_id), *_ACTIVE),
        )
        row = fetchone(cur)
        return int(row["n"]) if row else 0

    def reserve(self, *, event_id: int, student_id: str, qr_code_data: str, now: datetime) -> Reservation:
        with db_cursor(self._conn_factory) as (_, cur):
            event = self._lock_event(cur, event_id)
            if not event or event["status"] != EventStatus.PUBLISHED.value:
                return Reservation(ReserveOutcome.EVENT_UNAVAILABLE)

            if self._has_active(cur, event_id, student_id):
                return Reservation(ReserveOutcome.ALREADY_REGISTERED)

            if self._active_count(cur, event_id) >= int(event["capacity"]):
                return Reservation(ReserveOutcome.FULL)

            try:
                cur.execute(
                    """
                    INSERT INTO registrations(event_id, student_id, status, registered_at, updated_at, qr_code_data)
                    VALUES(%s,%s,%s,%s,%s,%s)
                    """,
                    (int(event_id), student_id, RegistrationStatus.PENDING.value, now, now, qr_code_data),
                )
            except mysql.connector.IntegrityError as e:
                if is_duplicate_key(e):
                    return Reservation(ReserveOutcome.ALREADY_REGISTERED)
                raise
            return Reservation(ReserveOutcome.CREATED, int(cur.lastrowid))

    def reactivate(
        self,
        *,
        registration_id: int,
        expected: RegistrationStatus,
        new: RegistrationStatus,
        now: datetime,
    ) -> ReserveOutcome:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT event_id FROM registrations WHERE registration_id=%s", (int(registration_id),))
            ref = fetchone(cur)
            if not ref:
                return ReserveOutcome.STALE

            # event first, same lock order as reserve()
            event = self._lock_event(cur, ref["event_id"])
            cur.execute(
                "SELECT event_id, student_id, status FROM registrations WHERE registration_id=%s FOR UPDATE",
                (int(registration_id),),
            )
            reg = fetchone(cur)
            if not event or not reg or reg["status"] != expected.value:
                return ReserveOutcome.STALE

            if self._has_active(cur, reg["event_id"], reg["student_id"], exclude_id=registration_id):
                return ReserveOutcome.ALREADY_REGISTERED

            if self._active_count(cur, reg["event_id"]) >= int(event["capacity"]):
                return ReserveOutcome.FULL

            cur.execute(
                "UPDATE registrations SET status=%s, updated_at=%s WHERE registration_id=%s",
                (new.value, now, int(registration_id)),
            )
            return ReserveOutcome.CREATED

    def change_status(self, *, registration_id: int, expected: RegistrationStatus, new: RegistrationStatus, now: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE registrations
                SET status=%s, updated_at=%s
                WHERE registration_id=%s AND status=%s
                """,
                (new.value, now, int(registration_id), expected.value),
            )
            return cur.rowcount > 0

    def mark_attended(self, *, registration_id: int, checked_in_at: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                UPDATE registrations
                SET status=%s, checked_in_at=%s, updated_at=%s
                WHERE registration_id=%s AND status IN {_ACTIVE_IN}
                """,
                (RegistrationStatus.ATTENDED.value, checked_in_at, checked_in_at, int(registration_id), *_ACTIVE),
            )
            return cur.rowcount > 0

    def set_certificate(self, *, registration_id: int, certificate_url: str, now: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE registrations SET certificate_url=%s, updated_at=%s WHERE registration_id=%s",
                (certificate_url, now, int(registration_id)),
            )
            return cur.rowcount > 0

    def get_by_id(self, registration_id: int) -> Optional[Registration]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM registrations r WHERE r.registration_id=%s", (int(registration_id),))
            row = fetchone(cur)
            return _to_registration(row) if row else None

    def find_by_code(self, *, event_id: int, qr_code_data: str) -> Optional[Registration]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM registrations r WHERE r.event_id=%s AND r.qr_code_data=%s",
                (int(event_id), qr_code_data),
            )
            row = fetchone(cur)
            return _to_registration(row) if row else None

    def list_for_event(self, *, event_id: int, limit: int) -> Sequence[EventRegistrationRow]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}, u.name AS student_name, u.email AS student_email,
                       u.register_no, u.department
                FROM registrations r
                LEFT JOIN users u ON u.uid = r.student_id
                WHERE r.event_id=%s
                ORDER BY r.registered_at DESC, r.registration_id DESC
                LIMIT %s
                """,
                (int(event_id), int(limit)),
            )
            return [
                EventRegistrationRow(
                    registration=_to_registration(r),
                    student_name=r.get("student_name"),
                    student_email=r.get("student_email"),
                    register_no=r.get("register_no"),
                    department=r.get("department"),
                )
                for r in fetchall(cur)
            ]

    def list_for_student(self, *, student_id: str, limit: int) -> Sequence[StudentRegistrationRow]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}, e.name AS event_name, e.starts_at AS event_starts_at, e.venue AS event_venue
                FROM registrations r
                JOIN events e ON e.event_id = r.event_id
                WHERE r.student_id=%s
                ORDER BY r.registered_at DESC, r.registration_id DESC
                LIMIT %s
                """,
                (student_id, int(limit)),
            )
            return [
                StudentRegistrationRow(
                    registration=_to_registration(r),
                    event_name=r["event_name"],
                    event_starts_at=r["event_starts_at"],
                    event_venue=r["event_venue"],
                )
                for r in fetchall(cur)
            ]

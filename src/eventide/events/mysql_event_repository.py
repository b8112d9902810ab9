from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from ..core.enums import ACTIVE_REGISTRATION_STATUSES, EventStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import Event, EventFields, EventSummary, FieldsUpdate, FieldsUpdateOutcome
from .repository import EventRepository

_ACTIVE = tuple(sorted(s.value for s in ACTIVE_REGISTRATION_STATUSES))
_ACTIVE_IN = "(" + ",".join(["%s"] * len(_ACTIVE)) + ")"

_COLUMNS = (
    "e.event_id, e.name, e.description, e.starts_at, e.venue, e.capacity, e.image_url, e.brochure_url, "
    "e.organizer_id, e.status, e.created_at, e.updated_at"
)


def row_to_event(row: dict) -> Event:
    return Event(
        event_id=int(row["event_id"]),
        name=row["name"],
        description=row["description"],
        starts_at=row["starts_at"],
        venue=row["venue"],
        capacity=int(row["capacity"]),
        organizer_id=row["organizer_id"],
        status=EventStatus(row["status"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
        image_url=row.get("image_url"),
        brochure_url=row.get("brochure_url"),
    )


class MySQLEventRepository(EventRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create(self, *, fields: EventFields, organizer_id: str, now: datetime) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO events(name, description, starts_at, venue, capacity, organizer_id, status, created_at, updated_at)
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    fields.name,
                    fields.description,
                    fields.starts_at,
                    fields.venue,
                    int(fields.capacity),
                    organizer_id,
                    EventStatus.DRAFT.value,
                    now,
                    now,
                ),
            )
            return int(cur.lastrowid)

    def get_by_id(self, event_id: int) -> Optional[Event]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM events e WHERE e.event_id=%s", (int(event_id),))
            row = fetchone(cur)
            return row_to_event(row) if row else None

    def update_fields(self, *, event_id: int, fields: EventFields, now: datetime) -> FieldsUpdate:
        with db_cursor(self._conn_factory) as (_, cur):
            # same lock order as registration: event row first, then its registrations
            cur.execute("SELECT event_id FROM events WHERE event_id=%s FOR UPDATE", (int(event_id),))
            if not fetchone(cur):
                return FieldsUpdate(FieldsUpdateOutcome.MISSING)

            cur.execute(
                f"SELECT COUNT(*) AS n FROM registrations WHERE event_id=%s AND status IN {_ACTIVE_IN} FOR UPDATE",
                (int(event_id), *_ACTIVE),
            )
            row = fetchone(cur)
            active_count = int(row["n"]) if row else 0
            if int(fields.capacity) < active_count:
                return FieldsUpdate(FieldsUpdateOutcome.BELOW_ACTIVE, active_count)

            cur.execute(
                """
                UPDATE events
                SET name=%s, description=%s, starts_at=%s, venue=%s, capacity=%s, updated_at=%s
                WHERE event_id=%s
                """,
                (
                    fields.name,
                    fields.description,
                    fields.starts_at,
                    fields.venue,
                    int(fields.capacity),
                    now,
                    int(event_id),
                ),
            )
            return FieldsUpdate(FieldsUpdateOutcome.UPDATED, active_count)

    def set_attachment(
        self,
        *,
        event_id: int,
        image_url: Optional[str] = None,
        brochure_url: Optional[str] = None,
        now: datetime,
    ) -> bool:
        sets = ["updated_at=%s"]
        params: list[object] = [now]
        if image_url is not None:
            sets.append("image_url=%s")
            params.append(image_url)
        if brochure_url is not None:
            sets.append("brochure_url=%s")
            params.append(brochure_url)
        params.append(int(event_id))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"UPDATE events SET {', '.join(sets)} WHERE event_id=%s", tuple(params))
            return cur.rowcount > 0

    def set_status(self, *, event_id: int, expected: EventStatus, new: EventStatus, now: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE events
                SET status=%s, updated_at=%s
                WHERE event_id=%s AND status=%s
                """,
                (new.value, now, int(event_id), expected.value),
            )
            return cur.rowcount > 0

    def list_published(self, *, limit: int) -> Sequence[Event]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM events e
                WHERE e.status=%s
                ORDER BY e.starts_at ASC
                LIMIT %s
                """,
                (EventStatus.PUBLISHED.value, int(limit)),
            )
            return [row_to_event(r) for r in fetchall(cur)]

    def list_summaries(self, *, organizer_id: Optional[str], limit: int) -> Sequence[EventSummary]:
        where = ""
        params: list[object] = []
        if organizer_id is not None:
            where = "WHERE e.organizer_id=%s"
            params.append(organizer_id)
        params.append(int(limit))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT
                    {_COLUMNS},
                    COALESCE(SUM(r.status='pending'), 0) AS pending_count,
                    COALESCE(SUM(r.status='approved'), 0) AS approved_count
                FROM events e
                LEFT JOIN registrations r ON r.event_id = e.event_id
                {where}
                GROUP BY e.event_id
                ORDER BY e.created_at DESC, e.event_id DESC
                LIMIT %s
                """,
                tuple(params),
            )
            return [
                EventSummary(
                    event=row_to_event(r),
                    pending_count=int(r["pending_count"] or 0),
                    approved_count=int(r["approved_count"] or 0),
                )
                for r in fetchall(cur)
            ]

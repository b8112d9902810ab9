from __future__ import annotations

from datetime import datetime
from typing import Optional

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone
from .model import CertificateTemplate
from .repository import CertificateTemplateRepository


class MySQLCertificateTemplateRepository(CertificateTemplateRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_for_event(self, event_id: int) -> Optional[CertificateTemplate]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT event_id, template_html, placeholder_name, uploaded_by, created_at, updated_at
                FROM certificate_templates
                WHERE event_id=%s
                """,
                (int(event_id),),
            )
            row = fetchone(cur)
            if not row:
                return None
            return CertificateTemplate(
                event_id=int(row["event_id"]),
                template_html=row["template_html"],
                placeholder_name=row["placeholder_name"],
                uploaded_by=row["uploaded_by"],
                created_at=row["created_at"],
                updated_at=row["updated_at"],
            )

    def upsert(self, *, event_id: int, template_html: str, placeholder_name: str, uploaded_by: str, now: datetime) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO certificate_templates(event_id, template_html, placeholder_name, uploaded_by, created_at, updated_at)
                VALUES(%s,%s,%s,%s,%s,%s)
                ON DUPLICATE KEY UPDATE
                    template_html=VALUES(template_html),
                    placeholder_name=VALUES(placeholder_name),
                    uploaded_by=VALUES(uploaded_by),
                    updated_at=VALUES(updated_at)
                """,
                (int(event_id), template_html, placeholder_name, uploaded_by, now, now),
            )

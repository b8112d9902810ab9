from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol

from .model import CertificateTemplate


class CertificateTemplateRepository(Protocol):
    def get_for_event(self, event_id: int) -> Optional[CertificateTemplate]:
        raise NotImplementedError

    def upsert(self, *, event_id: int, template_html: str, placeholder_name: str, uploaded_by: str, now: datetime) -> None:
        raise NotImplementedError

from __future__ import annotations

import html
import logging
from datetime import datetime
from typing import Optional

from ..access.gate import RoleGate
from ..access.policy import Action, Target
from ..common.datetime_utils import now_local
from ..common.validators import require_non_empty
from ..core.constants import DEFAULT_CERTIFICATE_PLACEHOLDER
from ..core.enums import RegistrationStatus
from ..core.exceptions import NotFoundError, ValidationError
from ..events.repository import EventRepository
from ..registrations.repository import RegistrationRepository
from ..storage.files import AttachmentStorage
from ..users.repository import UserRepository
from .model import CertificateTemplate, IssuedCertificate
from .repository import CertificateTemplateRepository

logger = logging.getLogger(__name__)


def render_certificate(template: CertificateTemplate, student_name: str) -> str:
    return template.template_html.replace(template.placeholder_name, html.escape(student_name))


class CertificateService:
    def __init__(
        self,
        templates: CertificateTemplateRepository,
        registrations: RegistrationRepository,
        events: EventRepository,
        users: UserRepository,
        gate: RoleGate,
        storage: AttachmentStorage,
    ):
        self._templates = templates
        self._registrations = registrations
        self._events = events
        self._users = users
        self._gate = gate
        self._storage = storage

    def _event_target(self, event_id: int) -> Target:
        event = self._events.get_by_id(int(event_id))
        if not event:
            raise NotFoundError("Event not found")
        return Target(event_organizer_id=event.organizer_id)

    def save_template(
        self,
        *,
        caller_id: str,
        event_id: int,
        template_html: str,
        placeholder_name: Optional[str] = None,
        now: datetime | None = None,
    ) -> CertificateTemplate:
        caller = self._gate.require(caller_id, Action.MANAGE_CERTIFICATE_TEMPLATE, self._event_target(event_id))
        body = require_non_empty(template_html, "Template HTML")
        placeholder = require_non_empty(placeholder_name or DEFAULT_CERTIFICATE_PLACEHOLDER, "Placeholder")
        if placeholder not in body:
            raise ValidationError(f"Template does not contain the placeholder {placeholder}")

        self._templates.upsert(
            event_id=int(event_id),
            template_html=body,
            placeholder_name=placeholder,
            uploaded_by=caller.uid,
            now=now or now_local(),
        )
        logger.info("certificate template for event %s saved by %s", event_id, caller.uid)
        return self.get_template(caller_id=caller_id, event_id=event_id)

    def get_template(self, *, caller_id: str, event_id: int) -> CertificateTemplate:
        self._gate.require(caller_id, Action.MANAGE_CERTIFICATE_TEMPLATE, self._event_target(event_id))
        template = self._templates.get_for_event(int(event_id))
        if not template:
            raise NotFoundError("No certificate template for this event")
        return template

    def issue_certificate(self, *, caller_id: str, registration_id: int, now: datetime | None = None) -> IssuedCertificate:
        reg = self._registrations.get_by_id(int(registration_id))
        if not reg:
            raise NotFoundError("Registration not found")

        target = self._event_target(reg.event_id)
        self._gate.require(
            caller_id,
            Action.ISSUE_CERTIFICATE,
            Target(event_organizer_id=target.event_organizer_id, registration_student_id=reg.student_id),
        )

        if reg.status != RegistrationStatus.ATTENDED:
            raise ValidationError("Certificates are only issued after attendance is recorded")

        template = self._templates.get_for_event(reg.event_id)
        if not template:
            raise NotFoundError("No certificate template for this event")

        student = self._users.get_by_uid(reg.student_id)
        if not student or not (student.name or "").strip():
            raise ValidationError("The student's profile has no name yet")

        rendered = render_certificate(template, student.name.strip())
        url = self._storage.save(
            folder=f"certificates/{reg.event_id}",
            filename=f"registration-{reg.registration_id}.html",
            content=rendered.encode("utf-8"),
        )
        self._registrations.set_certificate(registration_id=reg.registration_id, certificate_url=url, now=now or now_local())
        logger.info("certificate issued for registration %s", reg.registration_id)
        return IssuedCertificate(registration_id=reg.registration_id, certificate_url=url, html=rendered)

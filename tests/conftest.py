from __future__ import annotations

import dataclasses
import threading
from datetime import datetime

import pytest

from eventide.certificates.model import CertificateTemplate
from eventide.container import Container, wire
from eventide.core.enums import ACTIVE_REGISTRATION_STATUSES, EventStatus, RegistrationStatus, Role
from eventide.core.exceptions import TransientError
from eventide.core.retry import RetryPolicy
from eventide.events.model import Event, EventSummary, FieldsUpdate, FieldsUpdateOutcome
from eventide.registrations.model import (
    EventRegistrationRow,
    Registration,
    Reservation,
    ReserveOutcome,
    StudentRegistrationRow,
)
from eventide.users.model import UserProfile

NOW = datetime(2026, 3, 1, 9, 0, 0)


class InMemoryDB:
    """Shared tables for the fake repositories; one lock plays the transaction."""

    def __init__(self):
        self.lock = threading.RLock()
        self.users: dict[str, UserProfile] = {}
        self.events: dict[int, Event] = {}
        self.registrations: dict[int, Registration] = {}
        self.templates: dict[int, CertificateTemplate] = {}
        self._next_event_id = 1
        self._next_registration_id = 1

    def next_event_id(self) -> int:
        n = self._next_event_id
        self._next_event_id += 1
        return n

    def next_registration_id(self) -> int:
        n = self._next_registration_id
        self._next_registration_id += 1
        return n

    def active_for_event(self, event_id: int) -> list[Registration]:
        return [
            r for r in self.registrations.values()
            if r.event_id == event_id and r.status in ACTIVE_REGISTRATION_STATUSES
        ]


class FakeUsersRepo:
    def __init__(self, db: InMemoryDB):
        self._db = db

    def get_by_uid(self, uid):
        return self._db.users.get(uid)

    def create(self, *, uid, email, role, now):
        with self._db.lock:
            if uid in self._db.users:
                return False
            self._db.users[uid] = UserProfile(uid=uid, email=email, role=role, created_at=now, updated_at=now)
            return True

    def update_details(self, *, uid, details, now):
        with self._db.lock:
            user = self._db.users.get(uid)
            if not user:
                return False
            self._db.users[uid] = dataclasses.replace(user, **dataclasses.asdict(details), updated_at=now)
            return True

    def set_role(self, *, uid, role, now):
        with self._db.lock:
            user = self._db.users.get(uid)
            if not user:
                return False
            self._db.users[uid] = dataclasses.replace(user, role=role, updated_at=now)
            return True

    def list_all(self, *, limit):
        return sorted(self._db.users.values(), key=lambda u: u.email or "")[:limit]


class FakeEventsRepo:
    def __init__(self, db: InMemoryDB):
        self._db = db

    def create(self, *, fields, organizer_id, now):
        with self._db.lock:
            event_id = self._db.next_event_id()
            self._db.events[event_id] = Event(
                event_id=event_id,
                name=fields.name,
                description=fields.description,
                starts_at=fields.starts_at,
                venue=fields.venue,
                capacity=fields.capacity,
                organizer_id=organizer_id,
                status=EventStatus.DRAFT,
                created_at=now,
                updated_at=now,
            )
            return event_id

    def get_by_id(self, event_id):
        return self._db.events.get(int(event_id))

    def update_fields(self, *, event_id, fields, now):
        with self._db.lock:
            event = self._db.events.get(int(event_id))
            if not event:
                return FieldsUpdate(FieldsUpdateOutcome.MISSING)
            active_count = len(self._db.active_for_event(event.event_id))
            if fields.capacity < active_count:
                return FieldsUpdate(FieldsUpdateOutcome.BELOW_ACTIVE, active_count)
            self._db.events[event.event_id] = dataclasses.replace(event, **dataclasses.asdict(fields), updated_at=now)
            return FieldsUpdate(FieldsUpdateOutcome.UPDATED, active_count)

    def set_attachment(self, *, event_id, image_url=None, brochure_url=None, now):
        with self._db.lock:
            event = self._db.events[int(event_id)]
            self._db.events[event.event_id] = dataclasses.replace(
                event,
                image_url=image_url or event.image_url,
                brochure_url=brochure_url or event.brochure_url,
                updated_at=now,
            )
            return True

    def set_status(self, *, event_id, expected, new, now):
        with self._db.lock:
            event = self._db.events.get(int(event_id))
            if not event or event.status != expected:
                return False
            self._db.events[event.event_id] = dataclasses.replace(event, status=new, updated_at=now)
            return True

    def list_published(self, *, limit):
        published = [e for e in self._db.events.values() if e.status == EventStatus.PUBLISHED]
        return sorted(published, key=lambda e: e.starts_at)[:limit]

    def list_summaries(self, *, organizer_id, limit):
        events = [e for e in self._db.events.values() if organizer_id is None or e.organizer_id == organizer_id]
        events.sort(key=lambda e: (e.created_at, e.event_id), reverse=True)
        summaries = []
        for e in events[:limit]:
            regs = [r for r in self._db.registrations.values() if r.event_id == e.event_id]
            summaries.append(
                EventSummary(
                    event=e,
                    pending_count=sum(1 for r in regs if r.status == RegistrationStatus.PENDING),
                    approved_count=sum(1 for r in regs if r.status == RegistrationStatus.APPROVED),
                )
            )
        return summaries


class FakeRegistrationsRepo:
    def __init__(self, db: InMemoryDB):
        self._db = db

    def _pair_active(self, event_id, student_id, exclude_id=None):
        return any(
            r.student_id == student_id and r.registration_id != exclude_id
            for r in self._db.active_for_event(event_id)
        )

    def reserve(self, *, event_id, student_id, qr_code_data, now):
        with self._db.lock:
            event = self._db.events.get(int(event_id))
            if not event or event.status != EventStatus.PUBLISHED:
                return Reservation(ReserveOutcome.EVENT_UNAVAILABLE)
            if self._pair_active(event.event_id, student_id):
                return Reservation(ReserveOutcome.ALREADY_REGISTERED)
            if len(self._db.active_for_event(event.event_id)) >= event.capacity:
                return Reservation(ReserveOutcome.FULL)
            reg_id = self._db.next_registration_id()
            self._db.registrations[reg_id] = Registration(
                registration_id=reg_id,
                event_id=event.event_id,
                student_id=student_id,
                status=RegistrationStatus.PENDING,
                registered_at=now,
                updated_at=now,
                qr_code_data=qr_code_data,
            )
            return Reservation(ReserveOutcome.CREATED, reg_id)

    def reactivate(self, *, registration_id, expected, new, now):
        with self._db.lock:
            reg = self._db.registrations.get(int(registration_id))
            if not reg or reg.status != expected:
                return ReserveOutcome.STALE
            event = self._db.events[reg.event_id]
            if self._pair_active(reg.event_id, reg.student_id, exclude_id=reg.registration_id):
                return ReserveOutcome.ALREADY_REGISTERED
            if len(self._db.active_for_event(reg.event_id)) >= event.capacity:
                return ReserveOutcome.FULL
            self._db.registrations[reg.registration_id] = dataclasses.replace(reg, status=new, updated_at=now)
            return ReserveOutcome.CREATED

    def change_status(self, *, registration_id, expected, new, now):
        with self._db.lock:
            reg = self._db.registrations.get(int(registration_id))
            if not reg or reg.status != expected:
                return False
            self._db.registrations[reg.registration_id] = dataclasses.replace(reg, status=new, updated_at=now)
            return True

    def mark_attended(self, *, registration_id, checked_in_at):
        with self._db.lock:
            reg = self._db.registrations.get(int(registration_id))
            if not reg or not reg.is_active:
                return False
            self._db.registrations[reg.registration_id] = dataclasses.replace(
                reg, status=RegistrationStatus.ATTENDED, checked_in_at=checked_in_at, updated_at=checked_in_at
            )
            return True

    def set_certificate(self, *, registration_id, certificate_url, now):
        with self._db.lock:
            reg = self._db.registrations.get(int(registration_id))
            if not reg:
                return False
            self._db.registrations[reg.registration_id] = dataclasses.replace(
                reg, certificate_url=certificate_url, updated_at=now
            )
            return True

    def get_by_id(self, registration_id):
        return self._db.registrations.get(int(registration_id))

    def find_by_code(self, *, event_id, qr_code_data):
        for r in self._db.registrations.values():
            if r.event_id == int(event_id) and r.qr_code_data == qr_code_data:
                return r
        return None

    def list_for_event(self, *, event_id, limit):
        regs = [r for r in self._db.registrations.values() if r.event_id == int(event_id)]
        regs.sort(key=lambda r: (r.registered_at, r.registration_id), reverse=True)
        rows = []
        for r in regs[:limit]:
            u = self._db.users.get(r.student_id)
            rows.append(
                EventRegistrationRow(
                    registration=r,
                    student_name=u.name if u else None,
                    student_email=u.email if u else None,
                    register_no=u.register_no if u else None,
                    department=u.department if u else None,
                )
            )
        return rows

    def list_for_student(self, *, student_id, limit):
        regs = [r for r in self._db.registrations.values() if r.student_id == student_id]
        regs.sort(key=lambda r: (r.registered_at, r.registration_id), reverse=True)
        rows = []
        for r in regs[:limit]:
            e = self._db.events[r.event_id]
            rows.append(StudentRegistrationRow(registration=r, event_name=e.name, event_starts_at=e.starts_at, event_venue=e.venue))
        return rows


class FakeTemplatesRepo:
    def __init__(self, db: InMemoryDB):
        self._db = db

    def get_for_event(self, event_id):
        return self._db.templates.get(int(event_id))

    def upsert(self, *, event_id, template_html, placeholder_name, uploaded_by, now):
        with self._db.lock:
            existing = self._db.templates.get(int(event_id))
            self._db.templates[int(event_id)] = CertificateTemplate(
                event_id=int(event_id),
                template_html=template_html,
                placeholder_name=placeholder_name,
                uploaded_by=uploaded_by,
                created_at=existing.created_at if existing else now,
                updated_at=now,
            )


class FakeStorage:
    def __init__(self):
        self.files: dict[str, bytes] = {}
        self.fail = False

    def save(self, *, folder, filename, content):
        if self.fail:
            raise TransientError("File storage is temporarily unavailable")
        url = f"/uploads/{folder}/{filename}"
        self.files[url] = content
        return url


@pytest.fixture
def db() -> InMemoryDB:
    return InMemoryDB()


@pytest.fixture
def storage() -> FakeStorage:
    return FakeStorage()


@pytest.fixture
def container(db, storage) -> Container:
    return wire(
        users_repo=FakeUsersRepo(db),
        events_repo=FakeEventsRepo(db),
        registrations_repo=FakeRegistrationsRepo(db),
        templates_repo=FakeTemplatesRepo(db),
        storage=storage,
        qr_secret="test-qr-secret",
        retry=RetryPolicy(attempts=3, backoff_seconds=0.0),
    )


@pytest.fixture
def add_user(db):
    def _add(uid: str, role: Role = Role.STUDENT, *, name: str | None = None, email: str | None = None) -> UserProfile:
        user = UserProfile(
            uid=uid,
            email=email or f"{uid}@example.edu",
            role=role,
            name=name,
            created_at=NOW,
            updated_at=NOW,
        )
        db.users[uid] = user
        return user

    return _add


@pytest.fixture
def people(add_user):
    """One user per role plus a second organizer and two extra students."""

    return {
        "admin": add_user("admin-1", Role.ADMIN, name="Ada Admin"),
        "coadmin": add_user("coadmin-1", Role.COADMIN, name="Cole Coadmin"),
        "organizer": add_user("org-1", Role.ORGANIZER, name="Olga Organizer"),
        "other_organizer": add_user("org-2", Role.ORGANIZER, name="Otto Organizer"),
        "student": add_user("stu-1", Role.STUDENT, name="Sam Student"),
        "student2": add_user("stu-2", Role.STUDENT, name="Sara Student"),
        "student3": add_user("stu-3", Role.STUDENT, name="Stan Student"),
    }


@pytest.fixture
def make_event(container, people):
    def _make(*, capacity: int = 10, status: EventStatus = EventStatus.PUBLISHED, organizer: str = "org-1") -> int:
        result = container.event_service.create_event(
            caller_id=organizer,
            name="Robotics Workshop",
            description="Hands-on session",
            starts_at="2026-04-01T10:00",
            venue="Hall A",
            capacity=capacity,
            now=NOW,
        )
        event_id = result.event.event_id
        if status != EventStatus.DRAFT:
            container.event_service.update_event_status(caller_id=organizer, event_id=event_id, new_status=EventStatus.PUBLISHED)
        if status in (EventStatus.ARCHIVED, EventStatus.COMPLETED):
            container.event_service.update_event_status(caller_id=organizer, event_id=event_id, new_status=status)
        return event_id

    return _make

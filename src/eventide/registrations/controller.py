from __future__ import annotations

import io

from flask import Flask, Response, send_file

from ..common.datetime_utils import iso_or_none
from ..common.http import caller_id, ok, payload
from ..container import Container
from .model import EventRegistrationRow, Registration, StudentRegistrationRow


def registration_json(reg: Registration) -> dict:
    return {
        "registration_id": reg.registration_id,
        "event_id": reg.event_id,
        "student_id": reg.student_id,
        "status": reg.status.value,
        "qr_code_data": reg.qr_code_data,
        "registered_at": iso_or_none(reg.registered_at),
        "updated_at": iso_or_none(reg.updated_at),
        "checked_in_at": iso_or_none(reg.checked_in_at),
        "certificate_url": reg.certificate_url,
    }


def event_row_json(row: EventRegistrationRow) -> dict:
    data = registration_json(row.registration)
    data.update(
        student_name=row.student_name,
        student_email=row.student_email,
        register_no=row.register_no,
        department=row.department,
    )
    return data


def student_row_json(row: StudentRegistrationRow) -> dict:
    data = registration_json(row.registration)
    data.update(event_name=row.event_name, event_starts_at=iso_or_none(row.event_starts_at), event_venue=row.event_venue)
    return data


def register(app: Flask, container: Container) -> None:
    @app.route("/api/events/<int:event_id>/registrations", methods=["POST"], endpoint="register_for_event")
    def register_for_event(event_id: int):
        reg = container.registration_service.register(caller_id=caller_id(), event_id=event_id)
        return ok(registration_json(reg), 201)

    @app.route("/api/events/<int:event_id>/registrations", methods=["GET"], endpoint="list_event_registrations")
    def list_event_registrations(event_id: int):
        rows = container.registration_service.list_event_registrations(caller_id=caller_id(), event_id=event_id)
        return ok([event_row_json(r) for r in rows])

    @app.route("/api/events/<int:event_id>/registrations.csv", methods=["GET"], endpoint="export_registrations")
    def export_registrations(event_id: int):
        body = container.registration_service.export_attendance_csv(caller_id=caller_id(), event_id=event_id)
        return Response(
            body,
            mimetype="text/csv",
            headers={"Content-Disposition": f"attachment; filename=event-{event_id}-attendance.csv"},
        )

    @app.route("/api/me/registrations", methods=["GET"], endpoint="my_registrations")
    def my_registrations():
        rows = container.registration_service.list_my_registrations(caller_id=caller_id())
        return ok([student_row_json(r) for r in rows])

    @app.route("/api/registrations/<int:registration_id>/status", methods=["PUT"], endpoint="update_registration_status")
    def update_registration_status(registration_id: int):
        reg = container.registration_service.update_registration_status(
            caller_id=caller_id(),
            registration_id=registration_id,
            new_status=payload().get("status"),
        )
        return ok(registration_json(reg))

    @app.route("/api/registrations/<int:registration_id>/qr.png", methods=["GET"], endpoint="registration_qr")
    def registration_qr(registration_id: int):
        png = container.registration_service.qr_code_png(caller_id=caller_id(), registration_id=registration_id)
        return send_file(io.BytesIO(png), mimetype="image/png")

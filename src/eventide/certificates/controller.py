from __future__ import annotations

from flask import Flask

from ..common.datetime_utils import iso_or_none
from ..common.http import caller_id, ok, payload
from ..container import Container
from .model import CertificateTemplate


def template_json(template: CertificateTemplate) -> dict:
    return {
        "event_id": template.event_id,
        "template_html": template.template_html,
        "placeholder_name": template.placeholder_name,
        "uploaded_by": template.uploaded_by,
        "created_at": iso_or_none(template.created_at),
        "updated_at": iso_or_none(template.updated_at),
    }


def register(app: Flask, container: Container) -> None:
    @app.route("/api/events/<int:event_id>/certificate-template", methods=["GET"], endpoint="get_certificate_template")
    def get_certificate_template(event_id: int):
        template = container.certificate_service.get_template(caller_id=caller_id(), event_id=event_id)
        return ok(template_json(template))

    @app.route("/api/events/<int:event_id>/certificate-template", methods=["PUT"], endpoint="save_certificate_template")
    def save_certificate_template(event_id: int):
        data = payload()
        template = container.certificate_service.save_template(
            caller_id=caller_id(),
            event_id=event_id,
            template_html=data.get("template_html", ""),
            placeholder_name=data.get("placeholder_name"),
        )
        return ok(template_json(template))

    @app.route("/api/registrations/<int:registration_id>/certificate", methods=["POST"], endpoint="issue_certificate")
    def issue_certificate(registration_id: int):
        issued = container.certificate_service.issue_certificate(caller_id=caller_id(), registration_id=registration_id)
        return ok({"registration_id": issued.registration_id, "certificate_url": issued.certificate_url}, 201)

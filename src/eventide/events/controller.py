from __future__ import annotations

from flask import Flask, request

from ..common.datetime_utils import iso_or_none
from ..common.http import caller_id, ok, payload, upload
from ..container import Container
from .model import Event, EventSummary, EventWriteResult


def event_json(event: Event) -> dict:
    return {
        "event_id": event.event_id,
        "name": event.name,
        "description": event.description,
        "starts_at": iso_or_none(event.starts_at),
        "venue": event.venue,
        "capacity": event.capacity,
        "organizer_id": event.organizer_id,
        "status": event.status.value,
        "image_url": event.image_url,
        "brochure_url": event.brochure_url,
        "created_at": iso_or_none(event.created_at),
        "updated_at": iso_or_none(event.updated_at),
    }


def summary_json(summary: EventSummary) -> dict:
    data = event_json(summary.event)
    data["pending_count"] = summary.pending_count
    data["approved_count"] = summary.approved_count
    return data


def _write_response(result: EventWriteResult, status: int):
    return ok(event_json(result.event), status, warnings=result.warnings)


def register(app: Flask, container: Container) -> None:
    def _event_form() -> dict:
        data = payload()
        return {
            "name": data.get("name", ""),
            "description": data.get("description", ""),
            "starts_at": data.get("starts_at"),
            "venue": data.get("venue", ""),
            "capacity": data.get("capacity"),
            "image": upload("image"),
            "brochure": upload("brochure"),
        }

    @app.route("/api/events", methods=["GET"], endpoint="list_published_events")
    def list_published_events():
        limit = request.args.get("limit", type=int)
        kwargs = {"limit": limit} if limit else {}
        events = container.event_service.list_published_events(**kwargs)
        return ok([event_json(e) for e in events])

    @app.route("/api/events", methods=["POST"], endpoint="create_event")
    def create_event():
        result = container.event_service.create_event(caller_id=caller_id(), **_event_form())
        return _write_response(result, 201)

    @app.route("/api/events/<int:event_id>", methods=["GET"], endpoint="get_event")
    def get_event(event_id: int):
        event = container.event_service.get_event(event_id=event_id, caller_id=caller_id() or None)
        return ok(event_json(event))

    @app.route("/api/events/<int:event_id>", methods=["PUT"], endpoint="update_event")
    def update_event(event_id: int):
        result = container.event_service.update_event(caller_id=caller_id(), event_id=event_id, **_event_form())
        return _write_response(result, 200)

    @app.route("/api/events/<int:event_id>/status", methods=["POST"], endpoint="update_event_status")
    def update_event_status(event_id: int):
        event = container.event_service.update_event_status(
            caller_id=caller_id(),
            event_id=event_id,
            new_status=payload().get("status"),
        )
        return ok(event_json(event))

    @app.route("/api/organizer/events", methods=["GET"], endpoint="list_managed_events")
    def list_managed_events():
        summaries = container.event_service.list_managed_events(caller_id=caller_id())
        return ok([summary_json(s) for s in summaries])

from __future__ import annotations

from flask import Flask, request

from ..common.datetime_utils import iso_or_none
from ..common.http import caller_id, ok, payload
from ..container import Container
from .model import UserProfile


def user_json(user: UserProfile) -> dict:
    return {
        "uid": user.uid,
        "email": user.email,
        "role": user.role.value,
        "name": user.name,
        "phone": user.phone,
        "department": user.department,
        "register_no": user.register_no,
        "batch_year": user.batch_year,
        "created_at": iso_or_none(user.created_at),
        "updated_at": iso_or_none(user.updated_at),
    }


def register(app: Flask, container: Container) -> None:
    @app.route("/api/me", methods=["POST"], endpoint="ensure_profile")
    def ensure_profile():
        data = payload()
        user = container.user_service.ensure_profile(caller_id=caller_id(), email=data.get("email"))
        return ok(user_json(user))

    @app.route("/api/me", methods=["GET"], endpoint="get_profile")
    def get_profile():
        return ok(user_json(container.user_service.get_profile(caller_id=caller_id())))

    @app.route("/api/me", methods=["PUT"], endpoint="update_profile")
    def update_profile():
        data = payload()
        user = container.user_service.update_profile(
            caller_id=caller_id(),
            name=data.get("name", ""),
            phone=data.get("phone", ""),
            department=data.get("department", ""),
            register_no=data.get("register_no", ""),
            batch_year=str(data.get("batch_year", "") or ""),
        )
        return ok(user_json(user))

    @app.route("/api/users", methods=["GET"], endpoint="list_users")
    def list_users():
        limit = request.args.get("limit", type=int)
        kwargs = {"limit": limit} if limit else {}
        users = container.user_service.list_users(caller_id=caller_id(), **kwargs)
        return ok([user_json(u) for u in users])

    @app.route("/api/users/<uid>/role", methods=["PUT"], endpoint="set_user_role")
    def set_user_role(uid: str):
        data = payload()
        user = container.user_service.set_user_role(caller_id=caller_id(), target_uid=uid, new_role=data.get("role"))
        return ok(user_json(user))

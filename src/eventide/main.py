from __future__ import annotations

import importlib
import logging
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from flask import Flask, send_from_directory

from .certificates.controller import register as register_certificates
from .checkin.controller import register as register_checkin
from .common.http import ok, register_error_handlers
from .config import get_settings_module
from .container import Container, build_container
from .core.retry import RetryPolicy
from .database.bootstrap import SCHEMA_PATH, apply_schema, ensure_demo_users, list_tables
from .events.controller import register as register_events
from .registrations.controller import register as register_registrations
from .users.controller import register as register_users

logger = logging.getLogger(__name__)

def create_app(container: Optional[Container] = None) -> Flask:
    """App factory; pass ``container`` to run against something other than MySQL."""

    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    db_config = getattr(settings, "DB_CONFIG")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))
    app.config["CALLER_HEADER"] = getattr(settings, "CALLER_HEADER", "X-User-Id")
    app.config["UPLOAD_DIR"] = str(getattr(settings, "UPLOAD_DIR", "uploads"))
    app.config["UPLOAD_URL_PREFIX"] = str(getattr(settings, "UPLOAD_URL_PREFIX", "/uploads")).rstrip("/")

    logging.basicConfig(
        level=getattr(settings, "LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if container is None:
        logger.info(
            "settings=%s db=%s@%s:%s/%s",
            settings_module,
            db_config.get("user"),
            db_config.get("host"),
            db_config.get("port", 3306),
            db_config.get("database"),
        )
        if bool(getattr(settings, "AUTO_INIT_DB", False)):
            apply_schema(db_config, schema_path=getattr(settings, "SCHEMA_PATH", None) or SCHEMA_PATH)
            logger.info("schema ready (tables=%d)", len(list_tables(db_config)))
        if bool(getattr(settings, "AUTO_SEED_DB", False)):
            ensure_demo_users(db_config)

        container = build_container(
            db_config=db_config,
            qr_secret=getattr(settings, "QR_SECRET"),
            upload_dir=app.config["UPLOAD_DIR"],
            upload_url_prefix=app.config["UPLOAD_URL_PREFIX"],
            retry=RetryPolicy(
                attempts=int(getattr(settings, "RETRY_ATTEMPTS", 3)),
                backoff_seconds=float(getattr(settings, "RETRY_BACKOFF_SECONDS", 0.05)),
            ),
        )

    app.extensions["eventide"] = container

    register_error_handlers(app)
    register_users(app, container)
    register_events(app, container)
    register_registrations(app, container)
    register_checkin(app, container)
    register_certificates(app, container)

    @app.route("/api/health", methods=["GET"], endpoint="health")
    def health():
        return ok(status="ok")

    @app.route(f"{app.config['UPLOAD_URL_PREFIX']}/<path:filename>", methods=["GET"], endpoint="uploaded_file")
    def uploaded_file(filename: str):
        return send_from_directory(Path(app.config["UPLOAD_DIR"]).resolve(), filename)

    return app

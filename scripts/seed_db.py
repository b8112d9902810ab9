from __future__ import annotations

import importlib
import logging

from dotenv import load_dotenv

from eventide.config import get_settings_module
from eventide.database.bootstrap import DEMO_USERS, ensure_demo_users

logger = logging.getLogger("eventide.scripts.seed_db")


def main() -> None:
    load_dotenv(override=False)
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    settings = importlib.import_module(get_settings_module())
    db_config = dict(settings.DB_CONFIG)

    ensure_demo_users(db_config)
    for uid, _, role, _ in DEMO_USERS:
        # send this uid in the caller header to act as that role
        logger.info("demo user %s (%s)", uid, role)


if __name__ == "__main__":
    main()

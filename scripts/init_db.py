from __future__ import annotations

import importlib
import logging

from dotenv import load_dotenv

from eventide.config import get_settings_module
from eventide.database.bootstrap import SCHEMA_PATH, apply_schema, list_tables

logger = logging.getLogger("eventide.scripts.init_db")


def main() -> None:
    load_dotenv(override=False)
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    settings = importlib.import_module(get_settings_module())
    db_config = dict(settings.DB_CONFIG)

    schema_path = getattr(settings, "SCHEMA_PATH", None) or SCHEMA_PATH
    apply_schema(db_config, schema_path=schema_path)
    tables = list_tables(db_config)
    logger.info(
        "applied %s -> %s@%s:%s/%s (tables=%d)",
        schema_path,
        db_config.get("user"),
        db_config.get("host"),
        db_config.get("port", 3306),
        db_config.get("database"),
        len(tables),
    )


if __name__ == "__main__":
    main()

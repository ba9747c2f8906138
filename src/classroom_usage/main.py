from __future__ import annotations

import importlib
import logging
from datetime import time
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from flask import Flask

from .archival.controller import register as register_archival
from .common.logging_utils import configure_logging
from .config import get_settings_module
from .container import Container, build_container
from .core.constants import (
    DEFAULT_ARCHIVE_ACTOR,
    DEFAULT_ARCHIVE_HOUR,
    DEFAULT_ARCHIVE_MINUTE,
    DEFAULT_ARCHIVE_TIMEZONE,
)
from .database.bootstrap import apply_schema, list_tables
from .entities.controller import register as register_entities
from .reports.controller import register as register_reports
from .timein.controller import register as register_timein

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).resolve().parents[2] / "database" / "schema.sql"


def create_app(container: Optional[Container] = None) -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))
    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))

    db_config = getattr(settings, "DB_CONFIG")
    backend = getattr(settings, "STORAGE_BACKEND", "mysql")
    logger.info("settings=%s backend=%s", settings_module, backend)

    if container is None:
        if backend == "mysql" and bool(getattr(settings, "AUTO_INIT_DB", False)):
            apply_schema(db_config, schema_path=SCHEMA_PATH)
            logger.info("schema ready (tables=%s)", len(list_tables(db_config)))

        container = build_container(
            db_config=db_config,
            backend=backend,
            timezone_name=getattr(settings, "ARCHIVE_TIMEZONE", DEFAULT_ARCHIVE_TIMEZONE),
            fire_at=time(
                int(getattr(settings, "ARCHIVE_HOUR", DEFAULT_ARCHIVE_HOUR)),
                int(getattr(settings, "ARCHIVE_MINUTE", DEFAULT_ARCHIVE_MINUTE)),
            ),
            actor=getattr(settings, "ARCHIVE_ACTOR", DEFAULT_ARCHIVE_ACTOR),
        )

        if bool(getattr(settings, "ARCHIVE_ENABLED", False)):
            container.scheduler.start()

    app.extensions["container"] = container

    register_entities(app, container)
    register_timein(app, container)
    register_reports(app, container)
    register_archival(app, container)

    return app

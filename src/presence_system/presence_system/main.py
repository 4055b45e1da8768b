from __future__ import annotations

import atexit
import importlib
import logging
from pathlib import Path

from dotenv import load_dotenv
from flask import Flask, jsonify

from config import get_settings_module

from .attendance.controller import register as register_attendance
from .container import Container, build_container
from .database.bootstrap import apply_schema, apply_seed_sql, list_tables
from .devices.controller import register as register_devices
from .presence.controller import register as register_presence

logger = logging.getLogger(__name__)

DATABASE_DIR = Path(__file__).resolve().parents[3] / "database"


def create_app(container: Container | None = None) -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    db_config = getattr(settings, "DB_CONFIG")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))

    logging.basicConfig(
        level=getattr(settings, "LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    logger.info(
        "settings=%s db=%s@%s:%s/%s",
        settings_module,
        db_config.get("user"),
        db_config.get("host"),
        db_config.get("port", 3306),
        db_config.get("database"),
    )

    if container is None:
        if bool(getattr(settings, "AUTO_INIT_DB", False)):
            apply_schema(db_config, schema_path=DATABASE_DIR / "schema.sql")
            logger.info("schema ready (tables=%d)", len(list_tables(db_config)))
        if bool(getattr(settings, "AUTO_SEED_DB", False)):
            apply_seed_sql(db_config, seed_path=DATABASE_DIR / "seed.sql")
            logger.info("demo seed ready")

        container = build_container(
            db_config=db_config,
            sweep_interval_seconds=float(getattr(settings, "PRESENCE_SWEEP_INTERVAL_SECONDS", 60)),
            sweep_batch_size=int(getattr(settings, "PRESENCE_SWEEP_BATCH_SIZE", 500)),
        )

    app.extensions["presence_container"] = container

    register_presence(app, container)
    register_attendance(app, container)
    register_devices(app, container)

    @app.route("/health", endpoint="health")
    def health():
        return jsonify({"status": "ok", "service": "presence-system"})

    if bool(getattr(settings, "PRESENCE_SWEEP_AUTOSTART", False)):
        container.presence_sweeper.start()
        atexit.register(container.presence_sweeper.stop)

    return app

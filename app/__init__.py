from __future__ import annotations

import logging

from dotenv import load_dotenv
from flask import Flask
from flask_cors import CORS

from app.config import get_config
from app.middlewares.compression import init_compression
from app.middlewares.device import DEVICE_HEADER, init_device_slot
from app.middlewares.error_handler import init_error_handlers
from app.middlewares.logging import init_request_logging
from app.middlewares.rate_limit import init_rate_limiting
from app.middlewares.request_id import init_request_id
from app.middlewares.security_headers import init_security_headers
from app.routes.admin import admin_bp
from app.routes.api import api_bp
from app.routes.core import core_bp
from app.routes.jobs import jobs_bp
from app.routes.orientation import orientation_bp
from app.utils.logging import setup_logging
from db import Base, init_engine


def create_app() -> Flask:
    load_dotenv()

    cfg = get_config()
    setup_logging(cfg.LOG_LEVEL)

    app = Flask(__name__)
    app.config["CFG"] = cfg
    app.json.sort_keys = False

    CORS(
        app,
        origins=cfg.CORS_ORIGINS,
        supports_credentials=cfg.CORS_ALLOW_CREDENTIALS,
        allow_headers=["Content-Type", "X-Request-ID", DEVICE_HEADER, "X-Admin-Token"],
        expose_headers=["X-Request-ID"],
        methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        max_age=3600,
    )

    init_request_id(app)
    init_device_slot(app)
    init_security_headers(app)
    init_rate_limiting(app)
    init_request_logging(app)
    init_compression(app)
    init_error_handlers(app)

    import models  # noqa: F401  registers tables on Base.metadata

    engine = init_engine(cfg.DATABASE_URL)
    Base.metadata.create_all(bind=engine)

    app.register_blueprint(core_bp)
    app.register_blueprint(api_bp)
    app.register_blueprint(orientation_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(jobs_bp, url_prefix="/api/v1/jobs")

    logging.getLogger("api").info("env=%s version=%s database=%s", cfg.ENV, cfg.APP_VERSION, engine.url.render_as_string(hide_password=True))
    return app

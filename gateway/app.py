# gateway/app.py
# Flask app factory: admission control, route table, error boundary, health checks.
# Launch with `gunicorn gateway.app:app` or `python -m gateway.app`.

import os
from datetime import datetime, timezone
from typing import Optional

from flask import Flask, jsonify

from .config import default_db_path, load_settings
from .observability import (
    init_logging,
    register_error_handlers,
    register_latency_logging,
    register_request_id,
)
from .pipeline import register_admission
from .ratelimit import build_limiters
from .routing import RouteTable, default_route_table
from .schemas import HealthResponse
from .security import init_cors, register_security_headers
from .services.ai_service import AIService
from .store import init_store

API_MESSAGE = "Mind Mentor API is running"


def _ensure_directories(app: Flask) -> None:
    uploads_dir = app.config["UPLOADS_DIR"]
    if not os.path.isdir(uploads_dir):
        os.makedirs(uploads_dir, exist_ok=True)
        app.logger.info("Created uploads directory", extra={"event": "bootstrap.uploads_dir"})
    if app.config.get("SQLALCHEMY_DATABASE_URI") == f"sqlite:///{default_db_path}":
        os.makedirs(os.path.dirname(default_db_path), exist_ok=True)


def register_health(app: Flask) -> None:
    @app.route("/", methods=["GET"])
    def index():
        return jsonify(HealthResponse(status="ok", message=API_MESSAGE).model_dump(exclude_none=True)), 200

    @app.route("/health", methods=["GET"])
    def health():
        payload = HealthResponse(
            status="ok",
            message=API_MESSAGE,
            timestamp=datetime.now(timezone.utc).isoformat(),
        )
        return jsonify(payload.model_dump()), 200


def create_app(overrides: Optional[dict] = None, routes: Optional[RouteTable] = None) -> Flask:
    app = Flask(__name__)
    app.config.update(load_settings())
    if overrides:
        app.config.update(overrides)

    # ---------------------- Cross-cutting initialization ----------------------
    init_logging(app)
    _ensure_directories(app)
    register_request_id(app)
    register_latency_logging(app)
    register_error_handlers(app)
    register_security_headers(app)
    init_cors(app)

    # ---------------------- Admission control + routing -----------------------
    routes = routes or default_route_table()
    global_limiter, ai_limiter = build_limiters(app.config)
    register_admission(app, global_limiter, ai_limiter, routes)
    register_health(app)
    routes.register(app)

    # ---------------------- External collaborators ---------------------------
    app.extensions["ai_service"] = AIService(
        logger=app.logger,
        api_key=app.config.get("OPENAI_API_KEY"),
        model=app.config["OPENAI_MODEL"],
    )
    # Connection runs in the background; traffic is never gated on it
    init_store(app, autoconnect=app.config.get("STORE_AUTOCONNECT", True))
    return app


app = create_app()


def main() -> None:
    port = app.config["PORT"]
    app.logger.info(f"Server is running on port {port}", extra={"event": "bootstrap.listen"})
    app.run(host="0.0.0.0", port=port)


if __name__ == "__main__":
    main()

# gateway/observability.py
# Cross-cutting concerns: JSON logging, request IDs, latency logging, and the
# error boundary that turns handler failures into one JSON response.

import sys
import time
import logging
from uuid import uuid4
from typing import Any, Dict, Iterable, Iterator

from flask import current_app, g, request, jsonify
from pythonjsonlogger.json import JsonFormatter
from werkzeug.exceptions import HTTPException

from .schemas import ErrorEnvelope

GENERIC_ERROR = "Something went wrong!"


def _json_formatter() -> logging.Formatter:
    return JsonFormatter(
        "%(asctime)s %(levelname)s %(name)s %(message)s "
        "%(request_id)s %(method)s %(path)s %(status)s %(latency_ms)s "
        "%(remote_ip)s %(user_agent)s %(event)s %(limiter)s %(model)s"
    )


def init_logging(app) -> None:
    if app.config.get("_OBS_LOGGING_INIT", False):
        return
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(_json_formatter())
    app.logger.handlers.clear()
    app.logger.addHandler(handler)
    app.logger.setLevel(logging.INFO)
    app.logger.propagate = False
    app.config["_OBS_LOGGING_INIT"] = True


def register_request_id(app) -> None:
    if app.config.get("_OBS_REQID_INIT", False):
        return

    @app.before_request
    def _before_request():
        g.request_id = str(uuid4())
        g._start_time = time.monotonic()
        g.response_started = False

    @app.after_request
    def _after_request(resp):
        resp.headers["X-Request-ID"] = getattr(g, "request_id", "")
        return resp

    app.config["_OBS_REQID_INIT"] = True


def register_latency_logging(app) -> None:
    if app.config.get("_OBS_LATENCY_INIT", False):
        return

    @app.after_request
    def _access_log(resp):
        start = getattr(g, "_start_time", None)
        latency_ms = int((time.monotonic() - start) * 1000) if start else None
        record: Dict[str, Any] = {
            "request_id": getattr(g, "request_id", None),
            "method": request.method,
            "path": request.path,
            "status": resp.status_code,
            "latency_ms": latency_ms,
            "remote_ip": getattr(g, "client_key", request.remote_addr),
            "user_agent": request.user_agent.string if request.user_agent else None,
            "event": "http.access",
        }
        app.logger.info("http.access", extra=record)
        return resp

    app.config["_OBS_LATENCY_INIT"] = True


def _error_payload(error: str, details: str) -> Dict[str, str]:
    return ErrorEnvelope(error=error, details=details).model_dump()


def handle_failure(exc: BaseException):
    """
    Single recovery point for handler failures.

    Logs the full traceback, then answers 500 with the generic envelope. If
    the response has already started streaming nothing more may be written,
    so the exception is re-raised for the server's default unwind.
    """
    _log_failure(exc)
    if getattr(g, "response_started", False):
        raise exc
    return jsonify(_error_payload(GENERIC_ERROR, str(exc))), 500


def _log_failure(exc: BaseException) -> None:
    current_app.logger.error(
        "http.exception",
        exc_info=exc,
        extra={
            "event": "http.exception",
            "request_id": getattr(g, "request_id", None),
            "method": request.method,
            "path": request.path,
            "status": 500,
        },
    )


def guard_stream(chunks: Iterable[str]) -> Iterator[str]:
    """Mark the response as started and send mid-stream failures to the boundary."""
    g.response_started = True
    try:
        for chunk in chunks:
            yield chunk
    except Exception as exc:
        # Headers are already out: log, then let the server unwind
        _log_failure(exc)
        raise


def register_error_handlers(app) -> None:
    if app.config.get("_OBS_ERRORS_INIT", False):
        return

    @app.errorhandler(HTTPException)
    def _http_exception(e: HTTPException):
        payload = _error_payload(e.name, e.description or e.name)
        app.logger.warning(
            "http.error",
            extra={
                "event": "http.error",
                "request_id": getattr(g, "request_id", None),
                "path": request.path,
                "status": e.code,
            },
        )
        return jsonify(payload), e.code

    @app.errorhandler(Exception)
    def _unhandled_exception(e: Exception):
        return handle_failure(e)

    app.config["_OBS_ERRORS_INIT"] = True

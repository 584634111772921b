# gateway/security.py
# CORS allow-list and common security headers for every response.

import re

from flask_cors import CORS

from .config import ALLOWED_HEADERS, ALLOWED_METHODS


def _exact(origin: str):
    # Compiled patterns are matched case-sensitively by Flask-CORS; anchor both ends
    return re.compile(re.escape(origin) + r"\Z")


def init_cors(app) -> None:
    """Echo allow-listed origins only; unlisted origins get no CORS headers at all."""
    if app.config.get("_CORS_INIT", False):
        return
    CORS(
        app,
        origins=[_exact(o) for o in app.config["CORS_ORIGINS"]],
        supports_credentials=True,
        methods=list(ALLOWED_METHODS),
        allow_headers=list(ALLOWED_HEADERS),
    )
    app.config["_CORS_INIT"] = True


def register_security_headers(app) -> None:
    """Attach common security headers on all responses."""
    if app.config.get("_SEC_HEADERS_INIT", False):
        return  # idempotent for reloader

    @app.after_request
    def _security_headers(resp):
        # JSON API: nothing here should ever render as a page
        resp.headers.setdefault("Content-Security-Policy", "default-src 'none'; frame-ancestors 'none'")
        resp.headers.setdefault("X-Content-Type-Options", "nosniff")
        resp.headers.setdefault("Referrer-Policy", "no-referrer")
        resp.headers.setdefault("X-Frame-Options", "DENY")
        # HSTS only makes sense over HTTPS
        if app.config.get("PREFERRED_URL_SCHEME", "http") == "https":
            resp.headers.setdefault(
                "Strict-Transport-Security", "max-age=31536000; includeSubDomains"
            )
        return resp

    app.config["_SEC_HEADERS_INIT"] = True

# gateway/config.py
# Environment-driven settings and shared Flask extensions.

import os

from dotenv import load_dotenv
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import MetaData

load_dotenv()  # load .env for local dev

# --- Base paths -----------------------------------------------------------
BASE_DIR = os.path.abspath(os.path.dirname(__file__))
default_db_path = os.path.join(BASE_DIR, "instance", "app.db")
# -------------------------------------------------------------------------

# Naming conventions keep constraint names stable across SQLite/Postgres
naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}
metadata = MetaData(naming_convention=naming_convention)

db = SQLAlchemy(metadata=metadata)

# CORS allow-list is compiled in; FRONTEND_ORIGIN may add one more entry.
ALLOWED_ORIGINS = (
    "https://mind-mentor-pearl.vercel.app",
    "https://mind-mentor.kartiklabhshetwar.me",
    "http://localhost:3000",
    "https://www.mind-mentor.ink",
    "https://mind-mentor.ink",
)
ALLOWED_METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE")
ALLOWED_HEADERS = ("Content-Type", "Authorization")

GLOBAL_RATE_LIMIT_WINDOW_MS = 15 * 60 * 1000  # 15 minutes
GLOBAL_RATE_LIMIT_MAX = 100
GLOBAL_RATE_LIMIT_MESSAGE = "Too many requests from this IP, please try again after 15 minutes"
AI_RATE_LIMIT_MESSAGE = "Too many AI requests from this IP, please try again later"


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


def _bool_env(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() not in ("0", "false", "no", "off")


def allowed_origins() -> list:
    origins = list(ALLOWED_ORIGINS)
    frontend_origin = os.getenv("FRONTEND_ORIGIN")  # e.g., http://localhost:5173
    if frontend_origin and frontend_origin not in origins:
        origins.append(frontend_origin)
    return origins


def load_settings() -> dict:
    """Read the process environment into a dict suitable for ``app.config``."""
    return {
        "PORT": _int_env("PORT", 8000),
        "SQLALCHEMY_DATABASE_URI": os.getenv("DATABASE_URI", f"sqlite:///{default_db_path}"),
        "SQLALCHEMY_TRACK_MODIFICATIONS": False,
        "OPENAI_API_KEY": os.getenv("OPENAI_API_KEY"),
        "OPENAI_MODEL": os.getenv("OPENAI_MODEL", "gpt-4o-mini"),
        "UPLOADS_DIR": os.getenv("UPLOADS_DIR", os.path.join(os.getcwd(), "uploads")),
        # Number of reverse proxies in front of the process: 0 or 1.
        "TRUST_PROXY_HOPS": _int_env("TRUST_PROXY_HOPS", 1),
        "GLOBAL_RATE_LIMIT_WINDOW_MS": GLOBAL_RATE_LIMIT_WINDOW_MS,
        "GLOBAL_RATE_LIMIT_MAX": GLOBAL_RATE_LIMIT_MAX,
        "AI_RATE_LIMIT_WINDOW_MS": _int_env("AI_RATE_LIMIT_WINDOW_MS", 60 * 1000),
        "AI_RATE_LIMIT_MAX": _int_env("AI_RATE_LIMIT_MAX", 10),
        "GLOBAL_RATE_LIMIT_MESSAGE": GLOBAL_RATE_LIMIT_MESSAGE,
        "AI_RATE_LIMIT_MESSAGE": AI_RATE_LIMIT_MESSAGE,
        "CORS_ORIGINS": allowed_origins(),
        "MAX_CONTENT_LENGTH": _int_env("MAX_CONTENT_LENGTH", 10 * 1024 * 1024),
        "STORE_AUTOCONNECT": _bool_env("STORE_AUTOCONNECT", True),
        "PDF_CONTEXT_MAX_CHARS": _int_env("PDF_CONTEXT_MAX_CHARS", 12000),
    }

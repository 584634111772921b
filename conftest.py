# conftest.py  (at repo root)
# Ensure the repository root is importable as a package root during pytest runs,
# and keep test runs off the developer's database and uploads directory.
import os, sys, pathlib, tempfile

import pytest

ROOT = pathlib.Path(__file__).resolve().parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))  # <-- add repo root to Python path

# Set before gateway.config runs load_dotenv(), which never overrides existing vars
os.environ.setdefault("DATABASE_URI", "sqlite://")
os.environ.setdefault("STORE_AUTOCONNECT", "false")
os.environ.setdefault("UPLOADS_DIR", tempfile.mkdtemp(prefix="gateway-uploads-"))


@pytest.fixture
def make_app(tmp_path):
    """Build a fresh app (fresh limiter counters) with test overrides."""
    from gateway.app import create_app

    def _make(**overrides):
        config = {
            "TESTING": True,
            "SQLALCHEMY_DATABASE_URI": "sqlite://",
            "STORE_AUTOCONNECT": False,
            "UPLOADS_DIR": str(tmp_path / "uploads"),
        }
        config.update(overrides)
        return create_app(config)

    return _make


@pytest.fixture
def app(make_app):
    return make_app()


@pytest.fixture
def client(app):
    with app.test_client() as c:
        yield c


@pytest.fixture
def connected_app(make_app):
    """App whose document store is connected to an in-memory SQLite database."""
    app = make_app()
    app.extensions["store"].connect(app)
    return app

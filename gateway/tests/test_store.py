# gateway/tests/test_store.py
# Document store lifecycle: observed, logged, never enforced on traffic.

import pytest

from gateway.store import ConnectionState, StoreMonitor, StoreUnavailableError


def test_starts_disconnected(app):
    store = app.extensions["store"]
    assert store.state is ConnectionState.DISCONNECTED
    with pytest.raises(StoreUnavailableError):
        store.require_connected()


def test_connect_success(app):
    store = app.extensions["store"]
    assert store.connect(app) is ConnectionState.CONNECTED
    assert store.connected
    store.require_connected()


def test_connect_failure_is_recorded_not_raised(make_app, tmp_path):
    bad_uri = f"sqlite:///{tmp_path}/missing-dir/nested/app.db"
    app = make_app(SQLALCHEMY_DATABASE_URI=bad_uri)
    store = app.extensions["store"]
    assert store.connect(app) is ConnectionState.FAILED
    assert store.last_error
    # Traffic still flows while the store is down
    with app.test_client() as c:
        assert c.get("/health").status_code == 200


def test_background_connect(app):
    store = StoreMonitor()
    worker = store.connect_in_background(app)
    worker.join(timeout=5)
    assert store.state is ConnectionState.CONNECTED

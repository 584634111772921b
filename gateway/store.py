# gateway/store.py
# Observed lifecycle of the document store connection. Requests are never
# gated on it; handlers that need the store ask for it explicitly.

from __future__ import annotations

import threading
from enum import Enum
from typing import Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from .config import db


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    FAILED = "failed"


class StoreUnavailableError(RuntimeError):
    """Raised when a handler needs the store before it has connected."""


class StoreMonitor:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._state = ConnectionState.DISCONNECTED
        self.last_error: Optional[str] = None

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def connected(self) -> bool:
        return self._state is ConnectionState.CONNECTED

    def connect(self, app) -> ConnectionState:
        """Ping the database and create tables; log the outcome either way."""
        with self._lock:
            self._state = ConnectionState.CONNECTING
        with app.app_context():
            try:
                with db.engine.connect() as conn:
                    conn.execute(text("SELECT 1"))
                db.create_all()
            except SQLAlchemyError as exc:
                with self._lock:
                    self._state = ConnectionState.FAILED
                    self.last_error = str(exc)
                app.logger.error(
                    "store.connection_error",
                    exc_info=True,
                    extra={"event": "store.connection_error"},
                )
                return self._state
        with self._lock:
            self._state = ConnectionState.CONNECTED
            self.last_error = None
        app.logger.info("store.connected", extra={"event": "store.connected"})
        return self._state

    def connect_in_background(self, app) -> threading.Thread:
        worker = threading.Thread(target=self.connect, args=(app,), name="store-connect", daemon=True)
        worker.start()
        return worker

    def require_connected(self) -> None:
        if not self.connected:
            raise StoreUnavailableError(f"Document store is not available (state: {self._state.value})")


def init_store(app, autoconnect: bool = True) -> StoreMonitor:
    if "store" in app.extensions:
        return app.extensions["store"]
    db.init_app(app)
    monitor = StoreMonitor()
    app.extensions["store"] = monitor
    if autoconnect:
        monitor.connect_in_background(app)
    return monitor

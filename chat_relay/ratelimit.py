# chat_relay/ratelimit.py
# Per-client fixed-window admission for /api/chat, plus an app-wide
# Flask-Limiter safety net. Both answer 429 with the same JSON body.

from __future__ import annotations

from typing import Optional

from flask import jsonify, request
from flask_limiter import Limiter
from flask_limiter.errors import RateLimitExceeded  # v3: use Flask error handler
from flask_limiter.util import get_remote_address
from limits import RateLimitItemPerSecond
from limits.storage import MemoryStorage, Storage
from limits.strategies import FixedWindowRateLimiter

from .errors import RATE_LIMIT_ERROR
from .observability import error_payload

UNLIMITED_PATHS = ("/ping", "/health")


def client_ip() -> str:
    """
    Prefer edge-provided IPs when behind a proxy/CDN.
    Falls back to Werkzeug's remote_addr via get_remote_address().
    """
    ip = request.headers.get("CF-Connecting-IP")
    if ip:
        return ip.strip()
    xff = request.headers.get("X-Forwarded-For")  # first XFF hop is the client
    if xff:
        return xff.split(",")[0].strip()
    return get_remote_address() or "unknown"


class ChatRateLimiter:
    """Per-client budget for /api/chat on the ``limits`` fixed-window strategy.

    Every call counts, rejected or not. A client's window opens at its first
    hit and closes ``window_seconds`` later; the storage drops expired keys.
    """

    namespace = "chat"

    def __init__(
        self,
        max_per_window: int = 150,
        window_seconds: int = 60 * 60,
        *,
        storage: Optional[Storage] = None,
    ) -> None:
        self.max_per_window = max_per_window
        self.window_seconds = window_seconds
        self._item = RateLimitItemPerSecond(max_per_window, max(1, int(window_seconds)))
        self._storage = storage if storage is not None else MemoryStorage()
        self._strategy = FixedWindowRateLimiter(self._storage)

    def admit(self, client_id: str) -> bool:
        return self._strategy.hit(self._item, self.namespace, client_id)

    def hits(self, client_id: str) -> int:
        """Calls counted for ``client_id`` in its current window (0 once it expired)."""
        return self._storage.get(self._item.key_for(self.namespace, client_id))


def rate_limit_payload() -> dict:
    return error_payload(RATE_LIMIT_ERROR, 429)


def init_rate_limiter(app, default_limit: str = "300/minute") -> Limiter:
    """
    Initialize Flask-Limiter as a global safety net for every route.
    The chat-specific budget is enforced by ChatRateLimiter in the route.
    """
    if app.config.get("_RATE_LIMITER_INIT", False):
        limiter = app.extensions.get("chat_relay.limiter")
        if limiter:
            return limiter  # already initialized

    app.config["RATELIMIT_HEADERS_ENABLED"] = True

    limiter = Limiter(
        key_func=client_ip,
        app=app,
        default_limits=[default_limit],
        storage_uri="memory://",  # per-process, matches the in-memory conversation
        headers_enabled=True,
    )

    @limiter.request_filter
    def _unlimited_paths():
        return request.path in UNLIMITED_PATHS

    @app.errorhandler(RateLimitExceeded)
    def _rate_limit_exceeded(_e):
        app.logger.warning("http.rate_limited", extra={"event": "http.rate_limited", "remote_ip": client_ip()})
        return jsonify(rate_limit_payload()), 429

    app.extensions["chat_relay.limiter"] = limiter
    app.config["_RATE_LIMITER_INIT"] = True
    return limiter

# chat_relay/app.py
# App factory: wires settings, process-wide chat state, logging, headers and limits.
# Production: gunicorn chat_relay.app:app

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from flask import Flask

from .config import Settings, make_flask_app
from .observability import (
    init_logging,
    register_request_id,
    register_latency_logging,
    register_error_handlers,
)
from .ratelimit import ChatRateLimiter, init_rate_limiter
from .routes.chat import chat_bp
from .security import register_security_headers
from .services.chat_service import ChatService
from .services.conversation_store import ConversationStore
from .services.fallback import FallbackResponder
from .services.gemini_client import GeminiClient


@dataclass
class ChatState:
    """Everything that lives for the process lifetime and is never persisted."""

    settings: Settings
    store: ConversationStore
    limiter: ChatRateLimiter
    service: ChatService


def build_upstream(settings: Settings, logger=None, session: Any = None, sleep=None) -> Optional[GeminiClient]:
    if not settings.has_upstream:
        return None
    kwargs = {}
    if sleep is not None:
        kwargs["sleep"] = sleep
    return GeminiClient(
        api_key=settings.gemini_api_key,
        model=settings.gemini_model,
        api_base=settings.gemini_api_base,
        timeout=settings.upstream_timeout_seconds,
        max_retries=settings.upstream_max_retries,
        backoff_base=settings.upstream_backoff_base_seconds,
        session=session,
        logger=logger,
        **kwargs,
    )


def create_app(
    settings: Optional[Settings] = None,
    *,
    store: Optional[ConversationStore] = None,
    limiter: Optional[ChatRateLimiter] = None,
    upstream: Optional[GeminiClient] = None,
    http_session: Any = None,
    sleep=None,
) -> Flask:
    """Build a Flask app with its own conversation store and rate limiter.

    Tests pass fresh collaborators (or a fake ``http_session`` / ``sleep``)
    instead of touching module-level state.
    """
    settings = settings or Settings.from_env()
    app = make_flask_app(settings)

    # ---------------------- Cross-cutting initialization ----------------------
    init_logging(app)
    register_request_id(app)
    register_latency_logging(app)
    register_error_handlers(app)
    register_security_headers(app)

    if store is None:
        store = ConversationStore(
            max_exchanges=settings.max_history,
            max_message_chars=settings.max_message_chars,
        )
    if limiter is None:
        limiter = ChatRateLimiter(
            max_per_window=settings.rate_limit_max,
            window_seconds=settings.rate_limit_window_seconds,
        )
    if upstream is None:
        upstream = build_upstream(settings, logger=app.logger, session=http_session, sleep=sleep)
    service = ChatService(
        store=store,
        upstream=upstream,
        fallback=FallbackResponder(settings.fallback_profile_url),
        logger=app.logger,
    )
    app.extensions["chat_relay"] = ChatState(
        settings=settings, store=store, limiter=limiter, service=service
    )

    app.register_blueprint(chat_bp)

    # Initialize the global limiter AFTER routes are registered
    init_rate_limiter(app, settings.rate_limit_default)

    app.logger.info(
        "chat relay ready",
        extra={
            "event": "app.start",
            "provider": service.provider,
            "model": settings.gemini_model if upstream is not None else None,
        },
    )
    return app


app = create_app()


def main() -> None:
    # Local dev convenience; production uses gunicorn
    settings = app.extensions["chat_relay"].settings
    app.run(host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    main()

# chat_relay/tests/conftest.py
# Shared fixtures: a fresh app per test with injected fakes (no network, no real sleeps).

import pytest

from chat_relay.app import create_app
from chat_relay.config import Settings
from chat_relay.ratelimit import ChatRateLimiter
from chat_relay.services.conversation_store import ConversationStore


@pytest.fixture
def sleeps():
    """Backoff delays requested by GeminiClient, in order."""
    return []


@pytest.fixture
def make_app(sleeps):
    """make_app(api_key=None, session=None, limiter=None, **settings) -> Flask app."""

    def _make(api_key=None, session=None, limiter=None, **overrides):
        settings = Settings(gemini_api_key=api_key, **overrides)
        app = create_app(
            settings,
            store=ConversationStore(settings.max_history, settings.max_message_chars),
            limiter=limiter
            or ChatRateLimiter(settings.rate_limit_max, settings.rate_limit_window_seconds),
            http_session=session,
            sleep=sleeps.append,
        )
        app.config["TESTING"] = True
        return app

    return _make


@pytest.fixture
def fallback_app(make_app):
    return make_app()


@pytest.fixture
def client(fallback_app):
    with fallback_app.test_client() as c:
        yield c

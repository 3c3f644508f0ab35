# chat_relay/config.py
# Settings from the environment (.env for local dev) and the bare Flask app with CORS.

from __future__ import annotations

import os
from typing import List, Optional

from dotenv import load_dotenv
from flask import Flask
from flask_cors import CORS
from pydantic import BaseModel, Field

load_dotenv()  # load .env for local dev

# --- Base paths -----------------------------------------------------------
BASE_DIR = os.path.abspath(os.path.dirname(__file__))
default_static_dir = os.path.join(BASE_DIR, "..", "public")  # browser UI lives next to the package
# -------------------------------------------------------------------------


def _env_int(name: str, default: int, minimum: int = 1) -> int:
    """Malformed or out-of-range values (0 included) fall back to ``default``."""
    try:
        value = int(os.getenv(name, str(default)))
    except (TypeError, ValueError):
        return default
    return value if value >= minimum else default


def _env_float(name: str, default: float) -> float:
    try:
        value = float(os.getenv(name, str(default)))
    except (TypeError, ValueError):
        return default
    return value if value > 0 else default


class Settings(BaseModel):
    gemini_api_key: Optional[str] = None
    gemini_model: str = "models/gemini-2.5-flash"
    gemini_api_base: str = "https://generativelanguage.googleapis.com/v1beta"

    max_history: int = Field(10, ge=1)  # exchanges (user + model)
    max_message_chars: int = Field(20000, ge=1)

    upstream_timeout_seconds: float = Field(20.0, gt=0)  # wall-clock cap per attempt
    upstream_max_retries: int = Field(3, ge=1)
    upstream_backoff_base_seconds: float = 0.8

    rate_limit_max: int = Field(150, ge=1)
    rate_limit_window_seconds: int = Field(60 * 60, ge=1)
    rate_limit_default: str = "300/minute"  # Flask-Limiter safety net for every route

    cors_origins: List[str] = ["*"]
    static_dir: str = default_static_dir
    fallback_profile_url: Optional[str] = None
    port: int = 8000

    @property
    def has_upstream(self) -> bool:
        return bool(self.gemini_api_key)

    @classmethod
    def from_env(cls) -> "Settings":
        origins = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
        return cls(
            gemini_api_key=os.getenv("GEMINI_API_KEY") or None,
            gemini_model=os.getenv("GEMINI_MODEL") or cls.model_fields["gemini_model"].default,
            gemini_api_base=os.getenv("GEMINI_API_BASE") or cls.model_fields["gemini_api_base"].default,
            max_history=_env_int("MAX_HISTORY", 10),
            max_message_chars=_env_int("MAX_MESSAGE_CHARS", 20000),
            upstream_timeout_seconds=_env_float("UPSTREAM_TIMEOUT_SECONDS", 20.0),
            upstream_max_retries=_env_int("UPSTREAM_MAX_RETRIES", 3),
            upstream_backoff_base_seconds=_env_float("UPSTREAM_BACKOFF_BASE_SECONDS", 0.8),
            rate_limit_max=_env_int("RATE_LIMIT_MAX", 150),
            rate_limit_window_seconds=_env_int("RATE_LIMIT_WINDOW_SECONDS", 60 * 60),
            rate_limit_default=os.getenv("RATE_LIMIT_DEFAULT", "300/minute"),
            cors_origins=origins or ["*"],
            static_dir=os.getenv("STATIC_DIR", default_static_dir),
            fallback_profile_url=os.getenv("FALLBACK_PROFILE_URL") or None,
            port=_env_int("PORT", 8000),
        )


def make_flask_app(settings: Settings) -> Flask:
    app = Flask(
        __name__,
        static_url_path="",  # serve UI assets at root
        static_folder=os.path.abspath(settings.static_dir),
    )
    app.secret_key = os.getenv("FLASK_SECRET_KEY", "dev")
    app.config["CHAT_RELAY_SETTINGS"] = settings

    # The UI may be hosted elsewhere (static host) and call this relay cross-origin.
    CORS(app, origins=settings.cors_origins)
    return app

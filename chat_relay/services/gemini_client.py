# chat_relay/services/gemini_client.py
# Purpose: Single place for Gemini generateContent calls with a hard timeout and
# bounded exponential backoff. Keeps Flask routes thin and testable.
# Notes:
# - Accepts an injected requests.Session (tests pass a fake).
# - The timeout is a wall-clock deadline per attempt: the body is streamed and
#   reading stops once the deadline passes, however slowly bytes arrive.
# - Retry decisions are small pure functions, separate from the HTTP call site.
# - Emits lightweight logs via the provided logger (optional).

from __future__ import annotations

import json
import logging
import re
import time
from typing import Any, Callable, Dict, List, Optional, Sequence

import requests

from ..errors import UpstreamError, UpstreamFatalError, UpstreamTransientError
from .conversation_store import Role, Turn

DEFAULT_API_BASE = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_MODEL = "models/gemini-2.5-flash"

RETRYABLE_STATUSES = frozenset({429, 503})
TRANSIENT_MESSAGE_RE = re.compile(r"overload|temporar", re.IGNORECASE)
NO_REPLY_MESSAGE = "No reply text in response"
# Small reads return as soon as bytes arrive, so a trickling body is checked
# against the deadline byte by byte instead of blocking for a full buffer.
READ_CHUNK_SIZE = 1


# ---- Retry policy --------------------------------------------------------------


def is_retryable(status: Optional[int], message: str) -> bool:
    """Classify an HTTP error response as transient."""
    if status in RETRYABLE_STATUSES:
        return True
    return bool(TRANSIENT_MESSAGE_RE.search(message or ""))


def should_retry(attempt: int, max_retries: int, error: UpstreamError) -> bool:
    """Retry transient failures unless ``attempt`` (0-based) is the last one."""
    if attempt >= max_retries - 1:
        return False
    return isinstance(error, UpstreamTransientError)


def backoff_delay(attempt: int, base: float = 0.8) -> float:
    return base * (2 ** attempt)


# ---- Payload helpers -------------------------------------------------------------


def build_contents(turns: Sequence[Turn]) -> List[Dict[str, Any]]:
    """Map stored turns onto Gemini's user/model vocabulary."""
    return [
        {
            "role": "model" if turn.role == Role.ASSISTANT else "user",
            "parts": [{"text": turn.text}],
        }
        for turn in turns
    ]


def extract_reply(data: Any) -> Optional[str]:
    """candidates[0].content.parts[0].text, or None when the payload is malformed."""
    try:
        text = data["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return None
    if text is None or text == "":
        return None
    return str(text)


def error_message(status: int, data: Any) -> str:
    if isinstance(data, dict):
        err = data.get("error")
        if isinstance(err, dict) and err.get("message"):
            return str(err["message"])
    if data is not None:
        try:
            return json.dumps(data)
        except (TypeError, ValueError):
            return str(data)
    return f"HTTP {status}"


class GeminiClient:
    """Typed façade around the generateContent endpoint."""

    provider = "gemini"

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_MODEL,
        *,
        api_base: str = DEFAULT_API_BASE,
        timeout: float = 20.0,
        max_retries: int = 3,
        backoff_base: float = 0.8,
        session: Optional[Any] = None,
        logger: Optional[logging.Logger] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._api_key = api_key
        self.model = model
        self._api_base = api_base.rstrip("/")
        self._timeout = timeout
        self._max_retries = max(1, max_retries)
        self._backoff_base = backoff_base
        self._session = session or requests.Session()
        self._logger = logger
        self._sleep = sleep
        self._clock = clock

    @property
    def url(self) -> str:
        return f"{self._api_base}/{self.model}:generateContent"

    # ---- Single attempt ------------------------------------------------------------

    def _timed_out(self) -> UpstreamTransientError:
        return UpstreamTransientError(f"Upstream timed out after {self._timeout}s")

    def _read_body(self, resp: Any, deadline: float) -> bytes:
        """Read the streamed body, giving up once ``deadline`` has passed."""
        chunks = []
        try:
            if self._clock() > deadline:
                raise self._timed_out()
            for chunk in resp.iter_content(chunk_size=READ_CHUNK_SIZE):
                chunks.append(chunk)
                if self._clock() > deadline:
                    raise self._timed_out()
        finally:
            resp.close()
        return b"".join(chunks)

    def _attempt(self, payload: Dict[str, Any]) -> str:
        deadline = self._clock() + self._timeout
        try:
            resp = self._session.post(
                self.url,
                json=payload,
                # header, not ?key=, so the key never shows up in exception text
                headers={"Content-Type": "application/json", "x-goog-api-key": self._api_key},
                timeout=self._timeout,  # connect / per-read; the deadline caps the whole call
                stream=True,
            )
            body = self._read_body(resp, deadline)
        except requests.Timeout as exc:
            raise UpstreamTransientError(f"Upstream timed out after {self._timeout}s: {exc}") from exc
        except requests.RequestException as exc:
            raise UpstreamTransientError(str(exc) or exc.__class__.__name__) from exc

        try:
            data = json.loads(body) if body else None
        except ValueError:
            data = None

        if not resp.ok:
            msg = error_message(resp.status_code, data)
            cls = UpstreamTransientError if is_retryable(resp.status_code, msg) else UpstreamFatalError
            raise cls(msg, status=resp.status_code, raw=data)

        reply = extract_reply(data)
        if reply is None:
            raise UpstreamTransientError(NO_REPLY_MESSAGE, status=resp.status_code, raw=data)
        return reply

    # ---- Public API ------------------------------------------------------------------

    def generate(self, turns: Sequence[Turn]) -> str:
        """Send the conversation and return the reply text.

        Raises UpstreamFatalError once retries are exhausted or the failure is
        not retryable; status, message and raw come from the last attempt.
        """
        payload = {"contents": build_contents(turns)}
        attempt = 0
        while True:
            try:
                reply = self._attempt(payload)
                if self._logger:
                    self._logger.info(
                        "gemini generate complete",
                        extra={"event": "gemini.complete", "model": self.model, "attempt": attempt},
                    )
                return reply
            except UpstreamError as exc:
                if not should_retry(attempt, self._max_retries, exc):
                    if self._logger:
                        self._logger.error(
                            "gemini generate failed",
                            extra={
                                "event": "gemini.error",
                                "model": self.model,
                                "attempt": attempt,
                                "status": exc.status,
                                "error": exc.message,
                            },
                        )
                    if isinstance(exc, UpstreamFatalError):
                        raise
                    raise UpstreamFatalError(exc.message, status=exc.status, raw=exc.raw) from exc

                delay = backoff_delay(attempt, self._backoff_base)
                if self._logger:
                    self._logger.warning(
                        "gemini transient error",
                        extra={
                            "event": "gemini.retry",
                            "model": self.model,
                            "attempt": attempt,
                            "status": exc.status,
                            "error": exc.message,
                            "backoff_s": delay,
                        },
                    )
                self._sleep(delay)
                attempt += 1

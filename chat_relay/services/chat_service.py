# chat_relay/services/chat_service.py
# Orchestrates one chat turn: merge client history, record the user message,
# ask Gemini (or the fallback), record the reply.
# Routes handle rate limiting and body validation before calling in here.

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..errors import UpstreamError
from .conversation_store import ConversationStore, Role
from .fallback import FallbackResponder
from .gemini_client import GeminiClient
from .history import normalize_history

FALLBACK_PROVIDER = "fallback"


@dataclass
class ChatResult:
    reply: str
    provider: str
    error: Optional[Dict[str, Any]] = None


class ChatService:
    def __init__(
        self,
        store: ConversationStore,
        upstream: Optional[GeminiClient] = None,
        fallback: Optional[FallbackResponder] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.store = store
        self.upstream = upstream
        self.fallback = fallback or FallbackResponder()
        self._logger = logger or logging.getLogger(__name__)

    @property
    def provider(self) -> str:
        """Provider that will be tried first ("gemini" when a key is configured)."""
        return self.upstream.provider if self.upstream is not None else FALLBACK_PROVIDER

    def merge_history(self, history: Any) -> int:
        if not isinstance(history, list) or not history:
            return 0
        turns = normalize_history(history, self.store.max_message_chars)
        return self.store.merge(turns)

    def _fallback(self, message: str, error: Optional[UpstreamError] = None) -> ChatResult:
        reply = self.fallback.reply(message)
        self.store.append(Role.ASSISTANT, reply)
        return ChatResult(
            reply=reply,
            provider=FALLBACK_PROVIDER,
            error=error.to_dict() if error is not None else None,
        )

    def respond(self, message: str, history: Any = None) -> ChatResult:
        merged = self.merge_history(history)
        if merged:
            self._logger.info("chat.history.merged", extra={"event": "chat.history.merged", "turns": merged})

        self.store.append(Role.USER, message)

        if self.upstream is None:
            return self._fallback(message)

        try:
            reply = self.upstream.generate(self.store.snapshot())
        except UpstreamError as exc:
            self._logger.warning(
                "chat.fallback",
                extra={"event": "chat.fallback", "status": exc.status, "error": exc.message},
            )
            return self._fallback(message, exc)

        self.store.append(Role.ASSISTANT, reply)
        return ChatResult(reply=reply, provider=self.upstream.provider)

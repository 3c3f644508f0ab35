# chat_relay/services/fallback.py
# Deterministic keyword replies used when Gemini is unconfigured or unavailable.
# Must never raise and never touch the network.

from __future__ import annotations

from typing import Optional, Sequence, Tuple

DEFAULT_PROFILE_URL = "https://github.com/sagr12004"

EMPTY_REPLY = "Say something and I'll reply 🙂"
DEMO_REPLY = "Sorry, I'm a demo. Try 'hello', 'projects', or 'help'."


class FallbackResponder:
    """Keyword table checked in priority order; first substring match wins."""

    def __init__(self, profile_url: Optional[str] = None) -> None:
        url = profile_url or DEFAULT_PROFILE_URL
        self.rules: Sequence[Tuple[Tuple[str, ...], str]] = (
            (("hello", "hi"), "Hello! How can I help you today?"),
            (
                ("help",),
                "I can answer simple questions or act as a demo AI. "
                "Ask about weather, coding tips, or say 'projects' to learn about me.",
            ),
            (
                ("project",),
                "You can build a weather app, personal finance tracker, or an AI chatbot "
                "like this one. Great starter projects!",
            ),
            (("github",), f"Check out my GitHub profile for projects: {url}"),
            (("thank",), "You're welcome! Happy to help."),
        )

    def reply(self, message: object) -> str:
        text = str(message or "").lower().strip()
        if not text:
            return EMPTY_REPLY
        for keywords, answer in self.rules:
            if any(k in text for k in keywords):
                return answer
        return DEMO_REPLY


_default = FallbackResponder()


def rule_based_reply(message: object) -> str:
    return _default.reply(message)

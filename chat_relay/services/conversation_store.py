# chat_relay/services/conversation_store.py
# Process-wide bounded buffer of conversation turns.
# Lives for the lifetime of the app (one instance in app.extensions); never persisted.

from __future__ import annotations

import threading
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List

DEFAULT_MAX_EXCHANGES = 10
DEFAULT_MAX_MESSAGE_CHARS = 20000


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class Turn:
    role: Role
    text: str

    def to_dict(self) -> dict:
        return {"role": self.role.value, "content": self.text}


def cap_text(text: str, max_chars: int = DEFAULT_MAX_MESSAGE_CHARS) -> str:
    """Keep the trailing ``max_chars`` characters (most recent context wins)."""
    if not text:
        return ""
    text = str(text)
    if len(text) > max_chars:
        return text[len(text) - max(max_chars, 0):]  # text[-0:] would keep everything
    return text


class ConversationStore:
    """Ordered list of turns trimmed to the last ``max_exchanges * 2`` entries.

    Every mutation takes the lock, so appends from concurrent requests are
    serialized. They can still interleave in completion order.
    """

    def __init__(
        self,
        max_exchanges: int = DEFAULT_MAX_EXCHANGES,
        max_message_chars: int = DEFAULT_MAX_MESSAGE_CHARS,
    ) -> None:
        # 0 or less means "unset", as with the env settings
        self.max_exchanges = max_exchanges if max_exchanges >= 1 else DEFAULT_MAX_EXCHANGES
        self.max_message_chars = max_message_chars if max_message_chars >= 1 else DEFAULT_MAX_MESSAGE_CHARS
        self._turns: List[Turn] = []
        self._lock = threading.Lock()

    @property
    def max_turns(self) -> int:
        return self.max_exchanges * 2

    def _trim(self) -> None:
        excess = len(self._turns) - self.max_turns
        if excess > 0:
            del self._turns[:excess]

    def append(self, role: Role, text: str) -> Turn:
        turn = Turn(role=Role(role), text=cap_text(text, self.max_message_chars))
        with self._lock:
            self._turns.append(turn)
            self._trim()
        return turn

    def merge(self, turns: Iterable[Turn]) -> int:
        """Append client-replayed turns, skipping any that equal the current last turn.

        Returns the number of turns actually appended.
        """
        added = 0
        with self._lock:
            for turn in turns:
                last = self._turns[-1] if self._turns else None
                if last is not None and last.role == turn.role and last.text == turn.text:
                    continue
                self._turns.append(turn)
                added += 1
            self._trim()
        return added

    def snapshot(self) -> List[Turn]:
        with self._lock:
            return list(self._turns)

    def __len__(self) -> int:
        with self._lock:
            return len(self._turns)

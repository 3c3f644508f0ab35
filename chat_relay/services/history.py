# chat_relay/services/history.py
# Purpose: Map client-shaped history entries onto the two-role Turn schema.
# Notes:
# - Pure functions; no Flask types so tests can call them directly.
# - The browser sends {role: "user"|"assistant", content}, older clients {who, text}.

from __future__ import annotations

import json
from typing import Any, Iterable, List, Mapping, Optional, Sequence

from .conversation_store import DEFAULT_MAX_MESSAGE_CHARS, Role, Turn, cap_text

ROLE_FIELDS: Sequence[str] = ("role", "who")
TEXT_FIELDS: Sequence[str] = ("content", "text", "message")
ASSISTANT_LABELS = frozenset({"assistant", "bot", "model", "system"})


def first_present(entry: Mapping[str, Any], fields: Sequence[str]) -> Optional[Any]:
    """Return the first value among ``fields`` that is present and non-empty."""
    for name in fields:
        value = entry.get(name)
        if value is None:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        return value
    return None


def resolve_role(entry: Mapping[str, Any]) -> Role:
    label = first_present(entry, ROLE_FIELDS)
    if label is not None and str(label).strip().lower() in ASSISTANT_LABELS:
        return Role.ASSISTANT
    return Role.USER


def resolve_text(entry: Mapping[str, Any]) -> str:
    for name in TEXT_FIELDS:
        value = entry.get(name)
        if isinstance(value, str):
            return value
    # No usable text field: keep whatever the client sent, stringified
    try:
        return json.dumps(entry, ensure_ascii=False, default=str)
    except (TypeError, ValueError):
        return str(entry)


def normalize_entry(entry: Any, max_chars: int = DEFAULT_MAX_MESSAGE_CHARS) -> Optional[Turn]:
    if not isinstance(entry, Mapping):
        return None
    text = resolve_text(entry).strip()
    if not text:
        return None
    return Turn(role=resolve_role(entry), text=cap_text(text, max_chars))


def normalize_history(
    entries: Iterable[Any],
    max_chars: int = DEFAULT_MAX_MESSAGE_CHARS,
) -> List[Turn]:
    turns = []
    for entry in entries:
        turn = normalize_entry(entry, max_chars)
        if turn is not None:
            turns.append(turn)
    return turns

# chat_relay/tests/test_history.py
# Normalizing client history entries and merging them into the store.

import pytest

from chat_relay.services.conversation_store import ConversationStore, Role, Turn
from chat_relay.services.history import normalize_entry, normalize_history, resolve_role, resolve_text


@pytest.mark.parametrize("label", ["assistant", "bot", "model", "system", "Assistant", " BOT "])
def test_assistant_labels_map_to_assistant(label):
    assert resolve_role({"role": label}) == Role.ASSISTANT


@pytest.mark.parametrize("entry", [{"role": "user"}, {"role": "human"}, {"role": ""}, {}, {"role": 42}])
def test_other_labels_map_to_user(entry):
    assert resolve_role(entry) == Role.USER


def test_role_falls_back_to_who_field():
    assert resolve_role({"role": "", "who": "assistant"}) == Role.ASSISTANT
    assert resolve_role({"who": "user", "text": "x"}) == Role.USER


def test_text_field_priority():
    assert resolve_text({"content": "c", "text": "t", "message": "m"}) == "c"
    assert resolve_text({"content": None, "text": "t", "message": "m"}) == "t"
    assert resolve_text({"content": 5, "message": "m"}) == "m"


def test_text_stringifies_entry_without_text_fields():
    assert resolve_text({"role": "user", "body": "hey"}) == '{"role": "user", "body": "hey"}'


def test_normalize_entry_trims_and_drops_empty():
    assert normalize_entry({"role": "user", "content": "  hi  "}) == Turn(Role.USER, "hi")
    assert normalize_entry({"role": "user", "content": "   "}) is None
    assert normalize_entry({"role": "user", "content": "", "text": "ignored"}) is None
    assert normalize_entry("just a string") is None
    assert normalize_entry(None) is None


def test_long_text_keeps_trailing_portion():
    text = "A" * 10 + "B" * 20
    turn = normalize_entry({"content": text}, max_chars=20)
    assert turn.text == "B" * 20
    assert turn.text == text[-20:]


def test_normalize_history_skips_junk():
    turns = normalize_history(
        [
            {"role": "user", "content": "one"},
            7,
            {"who": "bot", "text": "two"},
            ["nested"],
        ]
    )
    assert turns == [Turn(Role.USER, "one"), Turn(Role.ASSISTANT, "two")]


def test_merge_skips_entry_equal_to_last_turn():
    store = ConversationStore()
    store.append(Role.USER, "hi")
    store.append(Role.ASSISTANT, "hello")

    added = store.merge(normalize_history([{"role": "assistant", "content": "hello"}]))
    assert added == 0
    assert len(store) == 2

    # Same text, different role is a new turn
    added = store.merge(normalize_history([{"role": "user", "content": "hello"}]))
    assert added == 1
    assert len(store) == 3


def test_merge_repeated_entries_collapse():
    store = ConversationStore()
    entry = {"role": "user", "content": "again"}
    store.merge(normalize_history([entry, entry, entry]))
    assert store.snapshot() == [Turn(Role.USER, "again")]

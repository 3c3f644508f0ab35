# chat_relay/tests/test_fallback.py

import pytest

from chat_relay.services.fallback import DEMO_REPLY, EMPTY_REPLY, FallbackResponder, rule_based_reply


@pytest.mark.parametrize(
    "message, expected",
    [
        ("hello there", "Hello! How can I help you today?"),
        ("", EMPTY_REPLY),
        ("   ", EMPTY_REPLY),
        (None, EMPTY_REPLY),
        ("xyzzy", DEMO_REPLY),
        ("THANK you", "You're welcome! Happy to help."),
    ],
)
def test_keyword_replies(message, expected):
    assert rule_based_reply(message) == expected


def test_project_inquiry():
    assert "starter projects" in rule_based_reply("tell me about your projects")


def test_help_reply():
    assert rule_based_reply("I need help").startswith("I can answer simple questions")


def test_priority_order_greeting_wins():
    # "hello" and "help" both match; greeting comes first
    assert rule_based_reply("hello, help me") == "Hello! How can I help you today?"


def test_profile_url_is_configurable():
    responder = FallbackResponder(profile_url="https://example.com/me")
    assert responder.reply("your github?") == "Check out my GitHub profile for projects: https://example.com/me"


def test_deterministic():
    responder = FallbackResponder()
    assert responder.reply("projects") == responder.reply("projects")

# chat_relay/__init__.py
# Flask relay between the browser chat UI and the Gemini API (with keyword fallback).

__version__ = "1.0.0"

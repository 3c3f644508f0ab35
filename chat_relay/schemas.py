# chat_relay/schemas.py
# Purpose: Pydantic v2 models for validating /api/chat requests & shaping responses.
# Notes:
# - Keep DTOs close to the route surface; easy to re-use in docs/tests.
# - history entries stay loosely typed; services/history.py normalizes them.

from __future__ import annotations

from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, Field, StrictStr


class ChatRequest(BaseModel):
    message: StrictStr = Field(..., min_length=1)  # non-string / empty -> 400
    history: Optional[Any] = None  # only a list is merged; anything else is ignored


class ChatResponse(BaseModel):
    reply: str
    provider: str
    error: Optional[Dict[str, Any]] = None


class PingResponse(BaseModel):
    ok: Literal[True] = True
    time: int  # epoch milliseconds
    provider: str


class ErrorResponse(BaseModel):
    error: str
    code: int
    request_id: Optional[str] = None

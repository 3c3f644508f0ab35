# chat_relay/routes/chat.py
# Flask Blueprint: /ping, /health, /api/chat and the UI index.

import os
import time

from flask import Blueprint, current_app, g, jsonify, request, send_from_directory
from pydantic import ValidationError
from werkzeug.exceptions import NotFound

from ..errors import ChatValidationError, RateLimitError
from ..ratelimit import client_ip
from ..schemas import ChatRequest, ChatResponse, PingResponse

chat_bp = Blueprint("chat", __name__)


def _state():
    """ChatState created by create_app (store, limiter, service)."""
    return current_app.extensions["chat_relay"]


@chat_bp.route("/", methods=["GET"])
def index():
    static_dir = current_app.static_folder
    if not static_dir or not os.path.isfile(os.path.join(static_dir, "index.html")):
        raise NotFound()
    return send_from_directory(static_dir, "index.html")


@chat_bp.route("/health", methods=["GET"])
def health():
    return jsonify({"status": "ok"}), 200


@chat_bp.route("/ping", methods=["GET"])
def ping():
    resp = PingResponse(time=int(time.time() * 1000), provider=_state().service.provider)
    return jsonify(resp.model_dump()), 200


@chat_bp.route("/api/chat", methods=["POST"])
def chat():
    """
    Body: { "message": "string", "history": [ {"role": "user"|"assistant", "content": "..."} ] }
    Always answers 200 once the request is admitted and valid; upstream failures
    come back as a fallback reply carrying the upstream error.
    """
    state = _state()
    ip = client_ip()
    if not state.limiter.admit(ip):
        current_app.logger.warning(
            "chat.rate_limited",
            extra={
                "event": "chat.rate_limited",
                "remote_ip": ip,
                "hits": state.limiter.hits(ip),
                "request_id": getattr(g, "request_id", None),
            },
        )
        raise RateLimitError()

    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ChatValidationError()
    try:
        req = ChatRequest(message=data.get("message"), history=data.get("history"))
    except ValidationError:
        raise ChatValidationError() from None

    result = state.service.respond(req.message, req.history)
    current_app.logger.info(
        "chat.reply",
        extra={
            "event": "chat.reply",
            "provider": result.provider,
            "request_id": getattr(g, "request_id", None),
        },
    )
    body = ChatResponse(reply=result.reply, provider=result.provider, error=result.error).model_dump()
    if body["error"] is None:
        body.pop("error")
    return jsonify(body), 200

"""Structural classification of decoded JSON-RPC messages.

The protocol carries no explicit discriminant, so the kind of a message is
inferred from which members are present. "Present" means the key exists:
``{"id": null}`` has an id, ``{}`` does not.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from .types import INITIALIZE_METHOD


class MessageKind(str, Enum):
    """Kinds of inbound message."""

    REQUEST = "request"
    NOTIFICATION = "notification"
    RESPONSE = "response"
    INITIALIZE = "initialize"
    INVALID = "invalid"


def is_initialize_request(message: Any) -> bool:
    """Check if a message asks to bootstrap a new session."""
    return isinstance(message, dict) and message.get("method") == INITIALIZE_METHOD


def is_response(message: Any) -> bool:
    """Check if a message answers an earlier request."""
    return (
        isinstance(message, dict)
        and "id" in message
        and ("result" in message or "error" in message)
    )


def is_request(message: Any) -> bool:
    """Check if a message expects exactly one response."""
    return isinstance(message, dict) and isinstance(message.get("method"), str) and "id" in message


def is_notification(message: Any) -> bool:
    """Check if a message is fire-and-forget."""
    return (
        isinstance(message, dict)
        and isinstance(message.get("method"), str)
        and "id" not in message
    )


def classify_message(message: Any) -> MessageKind:
    """Classify a decoded message.

    Rules are checked in order: initialize, response, request, notification.
    A message carrying ``method``, ``id`` and ``result`` is a response.
    Never raises; anything unrecognized is ``INVALID``.
    """
    if not isinstance(message, dict):
        return MessageKind.INVALID
    if is_initialize_request(message):
        return MessageKind.INITIALIZE
    if is_response(message):
        return MessageKind.RESPONSE
    if is_request(message):
        return MessageKind.REQUEST
    if is_notification(message):
        return MessageKind.NOTIFICATION
    return MessageKind.INVALID

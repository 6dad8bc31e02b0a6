"""Conversation key derivation."""

from __future__ import annotations

from typing import Any, Mapping, Optional, Sequence

FINGERPRINT_MESSAGES = 3
FINGERPRINT_TEXT_CHARS = 200
KEY_PREFIX = "conv-"

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def _fingerprint_text(content: Any) -> str:
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return " ".join(
            part["text"]
            for part in content
            if isinstance(part, Mapping)
            and part.get("type") == "text"
            and isinstance(part.get("text"), str)
            and part.get("text")
        )
    return ""


def _string_hash(value: str) -> int:
    """31-multiplier rolling hash over UTF-16 code units, as a signed 32-bit int."""
    encoded = value.encode("utf-16-le")
    hashed = 0
    for i in range(0, len(encoded), 2):
        unit = encoded[i] | (encoded[i + 1] << 8)
        hashed = (hashed * 31 + unit) & 0xFFFFFFFF
    if hashed & 0x80000000:
        hashed -= 0x100000000
    return hashed


def _to_base36(number: int) -> str:
    if number == 0:
        return "0"
    digits = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(_BASE36[remainder])
    return "".join(reversed(digits))


def make_conversation_key(
    conversation_id: Optional[str],
    messages: Sequence[Mapping[str, Any]],
) -> str:
    """Derive the key that identifies a conversation's session.

    An explicit ``X-Conversation-Id`` wins. Otherwise the first few
    messages (role plus truncated text) are fingerprinted and hashed into a
    short token. The hash is not collision resistant; a collision can only
    turn into a cache miss or a resumed session with unrelated context.

    Args:
        conversation_id: Header value, or None.
        messages: Message array from the request.
    """
    if conversation_id:
        return conversation_id

    fingerprint = "|".join(
        f"{message.get('role')}:{_fingerprint_text(message.get('content'))[:FINGERPRINT_TEXT_CHARS]}"
        for message in messages[:FINGERPRINT_MESSAGES]
    )
    return f"{KEY_PREFIX}{_to_base36(abs(_string_hash(fingerprint)))}"

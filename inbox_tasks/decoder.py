"""
Body decoding for Gmail message payloads.

Walks the MIME part tree depth-first and returns the first text/plain or
text/html body that decodes to something non-empty. Never raises.
Also holds the header lookups used to build an EmailMessage.
"""

import base64
import binascii
import logging
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

TEXT_MIME_TYPES = ("text/plain", "text/html")


def decode_body_data(data: Optional[str]) -> str:
    """Decode Gmail's URL-safe base64 body data into text."""
    if not data or not isinstance(data, str):
        return ""
    try:
        padded = data + "=" * (-len(data) % 4)
        decoded_bytes = base64.urlsafe_b64decode(padded.encode("ascii"))
    except (binascii.Error, ValueError, UnicodeEncodeError):
        logger.debug("Could not base64-decode message body data.")
        return ""
    return decoded_bytes.decode("utf-8", errors="replace")


def _own_body(part: dict) -> str:
    mime_type = (part.get("mimeType") or "").lower()
    # Parts with no declared type are treated as a raw single-part body.
    if mime_type and mime_type not in TEXT_MIME_TYPES:
        return ""
    body = part.get("body")
    if not isinstance(body, dict):
        return ""
    return decode_body_data(body.get("data"))


def decode_payload(payload: Any) -> str:
    """
    Return the first decodable plain-text or HTML body in the payload.

    A part's own body wins over its children, and earlier children win over
    later ones. Malformed or missing input yields "".
    """
    if not isinstance(payload, dict):
        return ""

    text = _own_body(payload)
    if text:
        return text

    parts = payload.get("parts") or []
    if not isinstance(parts, list):
        return ""
    for part in parts:
        text = decode_payload(part)
        if text:
            return text
    return ""


def payload_headers(message: Dict[str, Any]) -> List[dict]:
    payload = message.get("payload") or {}
    return payload.get("headers") or []


def parse_header(headers: List[dict], name: str) -> Optional[str]:
    """Extract a header value (case-insensitive) from Gmail message headers."""
    for h in headers or []:
        if (h.get("name") or "").lower() == name.lower():
            return h.get("value")
    return None

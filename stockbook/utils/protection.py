"""Base64 at-rest encoding for collection files.

Reads always accept both plain and encoded JSON; writes encode only when
``JSON_PROTECTION`` is on.
"""

from __future__ import annotations

import base64
import binascii
import json


def is_base64_encoded(text: str) -> bool:
    stripped = text.strip()
    if not stripped or stripped[0] in "{[":
        return False
    try:
        decoded = base64.b64decode(stripped, validate=True).decode("utf-8")
        json.loads(decoded)
    except (binascii.Error, UnicodeDecodeError, ValueError):
        return False
    return True


def encode_json_text(text: str) -> str:
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


def decode_json_text(text: str) -> str:
    if not is_base64_encoded(text):
        return text
    return base64.b64decode(text.strip(), validate=True).decode("utf-8")

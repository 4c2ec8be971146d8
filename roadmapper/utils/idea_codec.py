"""Text encoding of idea descriptions for durable storage.

Plain strings are stored verbatim with format ``text``; any other JSON value
is stored as its JSON text with format ``json``. Records written before the
format tag existed are decoded as JSON when the text looks like an object or
an array.
"""

import json
from typing import Any, Optional, Tuple

from .logger import get_app_logger


FORMAT_TEXT = "text"
FORMAT_JSON = "json"


def encode_idea(value: Any) -> Tuple[str, str]:
    """
    Encode an idea description for storage.

    Args:
        value: Plain text or a JSON-serializable structure

    Returns:
        (encoded text, format tag)
    """
    if value is None:
        return "", FORMAT_TEXT
    if isinstance(value, str):
        return value, FORMAT_TEXT
    return json.dumps(value, ensure_ascii=False, sort_keys=True), FORMAT_JSON


def decode_idea(text: Optional[str], fmt: Optional[str] = None, record_id: Optional[str] = None) -> Any:
    """
    Decode a stored idea description.

    Malformed JSON never raises: the value degrades to an empty string and an
    error is logged so the rest of the record still loads.
    """
    if text is None:
        return ""
    if fmt is None:
        stripped = text.lstrip()
        fmt = FORMAT_JSON if stripped.startswith(("{", "[")) else FORMAT_TEXT
    if fmt != FORMAT_JSON:
        return text

    try:
        return json.loads(text)
    except (TypeError, ValueError) as e:
        get_app_logger().error(
            f"Failed to decode ideaDescription for conversation {record_id}: {e}"
        )
        return ""


def preview_idea(value: Any, limit: int = 100) -> str:
    """First ``limit`` characters of the encoded idea, for debug logging."""
    text, _ = encode_idea(value)
    return text[:limit]

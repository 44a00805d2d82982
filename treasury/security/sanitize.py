"""
Input sanitization against script injection in free-text fields.
"""

import html
import re
from typing import Any, Dict, Iterable, Optional

DEFAULT_MAX_LENGTH = 10000

DANGEROUS_PATTERNS = [
    re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE),
    re.compile(r"javascript\s*:", re.IGNORECASE),
    re.compile(r"\bon\w+\s*=", re.IGNORECASE),
    re.compile(r"data\s*:\s*text/html", re.IGNORECASE),
    re.compile(r"vbscript\s*:", re.IGNORECASE),
    re.compile(r"expression\s*\(", re.IGNORECASE),
    re.compile(r"url\s*\(", re.IGNORECASE),
    re.compile(r"<iframe\b[^>]*>.*?</iframe>", re.IGNORECASE | re.DOTALL),
    re.compile(r"<object\b[^>]*>.*?</object>", re.IGNORECASE | re.DOTALL),
    re.compile(r"<embed\b[^>]*>", re.IGNORECASE),
    re.compile(r"<link\b[^>]*>", re.IGNORECASE),
    re.compile(r"<style\b[^>]*>.*?</style>", re.IGNORECASE | re.DOTALL),
]

_HTML_TAG = re.compile(r"<[^>]*>")
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")


def sanitize_string(
    value: Optional[str],
    max_length: int = DEFAULT_MAX_LENGTH,
    allow_html: bool = False,
    escape: bool = False,
) -> str:
    """
    Clean a user supplied string.

    Trims, removes script vectors, strips tags unless ``allow_html``, optionally
    escapes HTML entities, truncates and drops control characters (newlines and
    tabs are kept).
    """
    if value is None:
        return ""
    if not isinstance(value, str):
        value = str(value)

    cleaned = value.strip()
    for pattern in DANGEROUS_PATTERNS:
        cleaned = pattern.sub("", cleaned)
    if not allow_html:
        cleaned = _HTML_TAG.sub("", cleaned)
    if escape:
        cleaned = html.escape(cleaned, quote=True)
    if len(cleaned) > max_length:
        cleaned = cleaned[:max_length]
    cleaned = _CONTROL_CHARS.sub("", cleaned)
    return cleaned.strip()


def sanitize_dict(
    data: Dict[str, Any],
    skip: Iterable[str] = (),
    max_length: int = DEFAULT_MAX_LENGTH,
) -> Dict[str, Any]:
    """Sanitize every string value of a (possibly nested) payload."""
    skip = set(skip)
    result: Dict[str, Any] = {}
    for key, value in data.items():
        if key in skip:
            result[key] = value
        elif isinstance(value, str):
            result[key] = sanitize_string(value, max_length=max_length)
        elif isinstance(value, dict):
            result[key] = sanitize_dict(value, skip=skip, max_length=max_length)
        elif isinstance(value, list):
            result[key] = [
                sanitize_dict(item, skip=skip, max_length=max_length)
                if isinstance(item, dict)
                else sanitize_string(item, max_length=max_length)
                if isinstance(item, str)
                else item
                for item in value
            ]
        else:
            result[key] = value
    return result

"""Sensitive data sanitization for log output.

Provides :func:`sanitize_for_logs` which redacts private key and
certificate bodies and password-like values from data structures
before they are logged.  PEM markers are kept so the kind of object
remains visible.
"""

from __future__ import annotations

import re
from typing import Any

REDACTED = "[REDACTED]"

# Mapping keys whose values are secrets regardless of content
_SECRET_KEY_RE = re.compile(r"pass(word|phrase)?|secret|private_key", re.IGNORECASE)

_PEM_BODY_RE = re.compile(
    r"(-----BEGIN [A-Z0-9 ]+-----)"
    r"([\s\S]*?)"
    r"(-----END [A-Z0-9 ]+-----)",
)

# key=value / key: value pairs inside free text
_INLINE_SECRET_RE = re.compile(
    r"\b(password|passphrase|secret)(\s*[=:]\s*)(\S+)",
    re.IGNORECASE,
)


def sanitize_pem(pem: str) -> str:
    """Replace the base64 body of PEM blocks with ``[REDACTED]``."""

    def _redact(m) -> str:
        return f"{m.group(1)}\n{REDACTED}\n{m.group(3)}"

    return _PEM_BODY_RE.sub(_redact, pem)


def sanitize_text(text: str) -> str:
    """Redact PEM bodies and inline ``password=...`` pairs in *text*."""
    if "-----BEGIN " in text:
        text = sanitize_pem(text)
    return _INLINE_SECRET_RE.sub(lambda m: f"{m.group(1)}{m.group(2)}{REDACTED}", text)


def is_secret_key(key: object) -> bool:
    return isinstance(key, str) and bool(_SECRET_KEY_RE.search(key))


def sanitize_for_logs(data: Any) -> Any:
    """Recursively sanitize sensitive material in *data*.

    Values under password-like mapping keys are replaced outright;
    strings are passed through :func:`sanitize_text`; raw bytes are
    reduced to their length.
    """
    if isinstance(data, dict):
        return {
            k: REDACTED if is_secret_key(k) and v else sanitize_for_logs(v)
            for k, v in data.items()
        }

    if isinstance(data, (list, tuple)):
        return type(data)(sanitize_for_logs(item) for item in data)

    if isinstance(data, str):
        return sanitize_text(data)

    if isinstance(data, (bytes, bytearray)):
        return f"<{len(data)} bytes>"

    return data

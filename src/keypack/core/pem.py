"""PEM codec.

Converts between DER byte buffers and PEM text blocks.  The codec is
label-agnostic; the fixed structural patterns used to recognise the
private key and certificate files we accept live here as well so every
component matches input the same way.
"""

from __future__ import annotations

import base64
import binascii
import re

from keypack.core.errors import MalformedInputError
from keypack.core.types import PEM_LINE_WIDTH, PemLabel

# Marker lines, e.g. "-----BEGIN CERTIFICATE-----".
_MARKER_RE = re.compile(r"-----(?:BEGIN|END) [^\r\n]*?-----")
_WHITESPACE_RE = re.compile(r"\s+")


def _structure(label: str) -> re.Pattern[str]:
    escaped = re.escape(label)
    return re.compile(
        rf"^\s*-----BEGIN {escaped}-----\r?\n"
        r"(?:[A-Za-z0-9+/=]+\r?\n)+"
        rf"-----END {escaped}-----\s*$",
    )


PRIVATE_KEY_PEM_RE = _structure(PemLabel.PRIVATE_KEY)
ENCRYPTED_PRIVATE_KEY_PEM_RE = _structure(PemLabel.ENCRYPTED_PRIVATE_KEY)
CERTIFICATE_PEM_RE = _structure(PemLabel.CERTIFICATE)


def format_pem(text: str) -> str:
    """Hard-wrap *text* at :data:`PEM_LINE_WIDTH` characters.

    Strings no longer than the line width come back unchanged (no
    newline is added).  Longer strings are split into lines joined by
    ``\\n``; every line except the last is exactly the line width.
    """
    if len(text) <= PEM_LINE_WIDTH:
        return text
    return "\n".join(
        text[i : i + PEM_LINE_WIDTH] for i in range(0, len(text), PEM_LINE_WIDTH)
    )


def encode_pem(data: bytes, label: str) -> str:
    """Return *data* as a PEM block with *label*, ending in a newline."""
    body = format_pem(base64.b64encode(data).decode("ascii"))
    return f"-----BEGIN {label}-----\n{body}\n-----END {label}-----\n"


def decode_pem(text: str) -> bytes:
    """Strip PEM markers and whitespace from *text* and base64-decode it.

    Raises
    ------
    MalformedInputError
        If what remains is not valid base64.

    """
    body = _WHITESPACE_RE.sub("", _MARKER_RE.sub("", text))
    try:
        return base64.b64decode(body, validate=True)
    except (binascii.Error, ValueError) as exc:
        msg = "PEM body is not valid base64"
        raise MalformedInputError(msg, cause=str(exc)) from exc

"""Enumerated types and fixed constants shared across keypack.

All enums inherit from :class:`enum.StrEnum` so their ``.value`` is a
plain string usable directly in PEM markers, content-type headers and
log output.
"""

from __future__ import annotations

from enum import StrEnum

# ---------------------------------------------------------------------------
# Fixed constants
# ---------------------------------------------------------------------------

# Iteration count for every PBKDF2 / PKCS#12 KDF derivation we perform.
PBKDF2_ITERATIONS = 600_000

OWNER_ID_MIN_LENGTH = 1
OWNER_ID_MAX_LENGTH = 300

PEM_LINE_WIDTH = 64


# ---------------------------------------------------------------------------
# PEM labels
# ---------------------------------------------------------------------------


class PemLabel(StrEnum):
    PRIVATE_KEY = "PRIVATE KEY"
    ENCRYPTED_PRIVATE_KEY = "ENCRYPTED PRIVATE KEY"
    CERTIFICATE = "CERTIFICATE"
    CERTIFICATE_REQUEST = "CERTIFICATE REQUEST"


# ---------------------------------------------------------------------------
# Download content types
# ---------------------------------------------------------------------------


class ContentType(StrEnum):
    PEM = "application/x-pem-file"
    PKCS12 = "application/pkcs12"


# ---------------------------------------------------------------------------
# Key algorithms
# ---------------------------------------------------------------------------


class KeyAlgorithm(StrEnum):
    RSA = "RSA"
    DSA = "DSA"
    ECDSA = "ECDSA"
    X25519 = "X25519"
    ED25519 = "ED25519"
    ED448 = "ED448"
    UNKNOWN = "unknown"


# ---------------------------------------------------------------------------
# Fingerprint digests
# ---------------------------------------------------------------------------


class FingerprintHash(StrEnum):
    SHA1 = "sha1"
    SHA256 = "sha256"

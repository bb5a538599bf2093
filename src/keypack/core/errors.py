"""Typed error hierarchy for keypack operations.

Every failure of a parsing, decryption, signing or packaging operation
is raised as a subclass of :class:`KeypackError`.  The subclass (and its
:attr:`~KeypackError.kind`) tells the caller *what* went wrong; the
``detail`` is a human-readable summary and ``cause`` carries the message
of the underlying library error, if any, so a caller can render both.

Nothing here retries or substitutes defaults: errors propagate to the
immediate caller.

Usage::

    try:
        key_pair = load_key_pair(pem_text, password)
    except DecryptionFailedError as exc:
        app_error = convert_to_app_error(exc, "loadKey", "Invalid key.")
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

# ---------------------------------------------------------------------------
# Error kinds
# ---------------------------------------------------------------------------


class ErrorKind(StrEnum):
    MALFORMED_INPUT = "malformed_input"
    UNRECOGNIZED_KEY_FORMAT = "unrecognized_key_format"
    DECRYPTION_FAILED = "decryption_failed"
    UNSUPPORTED_KEY_TYPE = "unsupported_key_type"
    INVALID_CERTIFICATE = "invalid_certificate"
    CERTIFICATE_EXPIRED = "certificate_expired"
    OWNER_MISMATCH = "owner_mismatch"
    SIGNING_FAILED = "signing_failed"
    INVALID_ARGUMENT = "invalid_argument"


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class KeypackError(Exception):
    """Base class for all keypack operation failures.

    Parameters
    ----------
    detail:
        Human-readable description of the failure.
    cause:
        Message of the underlying library error, when there is one.

    """

    kind: ErrorKind

    def __init__(self, detail: str, *, cause: str | None = None) -> None:
        self.detail = detail
        self.cause = cause
        super().__init__(detail)

    def __str__(self) -> str:
        if self.cause:
            return f"{self.detail} ({self.cause})"
        return self.detail


class MalformedInputError(KeypackError):
    """PEM structure mismatch or invalid base64 / DER."""

    kind = ErrorKind.MALFORMED_INPUT


class UnrecognizedKeyFormatError(KeypackError):
    """Input is neither a plaintext nor an encrypted PKCS#8 PEM."""

    kind = ErrorKind.UNRECOGNIZED_KEY_FORMAT


class DecryptionFailedError(KeypackError):
    """Password-based decryption or integrity check failed.

    A wrong password and a corrupted container raise the same error;
    the underlying primitives do not tell them apart.
    """

    kind = ErrorKind.DECRYPTION_FAILED


class UnsupportedKeyTypeError(KeypackError):
    """Key is not RSA, or cannot be parsed as an RSA private key."""

    kind = ErrorKind.UNSUPPORTED_KEY_TYPE


class InvalidCertificateError(KeypackError):
    """Certificate PEM is malformed or does not decode as X.509."""

    kind = ErrorKind.INVALID_CERTIFICATE


class CertificateExpiredError(KeypackError):
    """Current time is outside the validity window (either side)."""

    kind = ErrorKind.CERTIFICATE_EXPIRED


class OwnerMismatchError(KeypackError):
    """Certificate subject does not match the expected owner identifier."""

    kind = ErrorKind.OWNER_MISMATCH


class SigningFailedError(KeypackError):
    """The signature primitive rejected the key or algorithm."""

    kind = ErrorKind.SIGNING_FAILED


class InvalidArgumentError(KeypackError):
    """A required input is missing, empty or out of range."""

    kind = ErrorKind.INVALID_ARGUMENT


# ---------------------------------------------------------------------------
# Caller-facing error payload
# ---------------------------------------------------------------------------

# Placeholder status for errors that did not come from an HTTP exchange.
NON_HTTP_STATUS = 418


@dataclass
class AppError:
    """Renderable error payload handed to a user interface.

    Attributes
    ----------
    status:
        HTTP-like status code; :data:`NON_HTTP_STATUS` for local failures.
    message:
        Message to display.
    operation:
        Name of the operation that failed, if known.
    details:
        Original error message when *message* is a standard replacement.

    """

    status: int
    message: str
    operation: str | None = None
    details: str | None = None

    def to_dict(self) -> dict:
        data: dict = {"status": self.status, "message": self.message}
        if self.operation is not None:
            data["operation"] = self.operation
        if self.details is not None:
            data["details"] = self.details
        return data


def convert_to_app_error(
    error: AppError | BaseException | str,
    operation: str | None = None,
    standard_message: str | None = None,
) -> AppError:
    """Convert any error into an :class:`AppError`.

    An existing :class:`AppError` is returned as-is, gaining *operation*
    only when it has none.  Anything else becomes a
    :data:`NON_HTTP_STATUS` error; when *standard_message* is given it
    replaces the message and the original text moves to ``details``.
    """
    if isinstance(error, AppError):
        if not error.operation and operation:
            error.operation = operation
        return error

    original = str(error)
    return AppError(
        status=NON_HTTP_STATUS,
        message=standard_message or original,
        operation=operation,
        details=original if standard_message else None,
    )

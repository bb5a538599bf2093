"""Certificate parsing and validation.

A certificate supplied by the user goes through three independent
checks, always in this order:

1. structure: PEM pattern, base64 and X.509 DER decoding
   (:class:`InvalidCertificateError`);
2. validity window against the current time
   (:class:`CertificateExpiredError`, for expired and not-yet-valid alike);
3. subject common name against the expected owner identifier
   (:class:`OwnerMismatchError`).

A certificate that fails one check never reaches the next.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime

from cryptography import x509
from cryptography.hazmat.primitives import serialization
from cryptography.x509.oid import NameOID

from keypack.core.errors import (
    CertificateExpiredError,
    InvalidArgumentError,
    InvalidCertificateError,
    MalformedInputError,
    OwnerMismatchError,
)
from keypack.core.pem import CERTIFICATE_PEM_RE, decode_pem

_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S UTC"


@dataclass(frozen=True)
class ParsedCertificate:
    """Read-only view over a parsed X.509 certificate.

    Attributes
    ----------
    der:
        DER encoding of the certificate.
    not_before:
        Start of the validity window (UTC).
    not_after:
        End of the validity window (UTC).
    serial_number:
        Serial number as lowercase hex octets joined by ``:``.
    subject:
        Subject common name (empty when the subject has none).
    certificate:
        The underlying :class:`x509.Certificate`.

    """

    der: bytes
    not_before: datetime
    not_after: datetime
    serial_number: str
    subject: str
    certificate: x509.Certificate

    def is_valid_at(self, when: datetime) -> bool:
        return self.not_before <= when <= self.not_after


def format_serial_number(serial: int) -> str:
    """Render *serial* as its DER content octets in colon-separated hex.

    A positive serial whose top bit is set keeps the leading ``00``
    octet that DER requires.
    """
    length = (serial if serial >= 0 else ~serial).bit_length() // 8 + 1
    octets = serial.to_bytes(length, "big", signed=True)
    return ":".join(f"{b:02x}" for b in octets)


def format_timestamp(value: datetime) -> str:
    """Format *value* as ``YYYY-MM-DD HH:MM:SS UTC``."""
    return value.astimezone(UTC).strftime(_TIMESTAMP_FORMAT)


def _subject_common_name(certificate: x509.Certificate) -> str:
    names = certificate.subject.get_attributes_for_oid(NameOID.COMMON_NAME)
    if not names:
        return ""
    value = names[0].value
    return value if isinstance(value, str) else value.decode("utf-8", "replace")


def parse_certificate(pem_text: str) -> ParsedCertificate:
    """Parse PEM certificate text.

    Raises
    ------
    InvalidCertificateError
        If the text is not a single ``CERTIFICATE`` PEM block or its
        content does not decode as an X.509 certificate.

    """
    if not CERTIFICATE_PEM_RE.match(pem_text):
        msg = "no certificate PEM found"
        raise InvalidCertificateError(msg)

    try:
        der = decode_pem(pem_text)
    except MalformedInputError as exc:
        msg = "certificate PEM body is not valid base64"
        raise InvalidCertificateError(msg, cause=exc.cause) from exc

    try:
        certificate = x509.load_der_x509_certificate(der)
        not_before = certificate.not_valid_before_utc
        not_after = certificate.not_valid_after_utc
        serial = certificate.serial_number
    except ValueError as exc:
        msg = "certificate could not be decoded"
        raise InvalidCertificateError(msg, cause=str(exc)) from exc

    return ParsedCertificate(
        der=certificate.public_bytes(serialization.Encoding.DER),
        not_before=not_before,
        not_after=not_after,
        serial_number=format_serial_number(serial),
        subject=_subject_common_name(certificate),
        certificate=certificate,
    )


def check_validity(cert: ParsedCertificate, now: datetime | None = None) -> None:
    """Raise :class:`CertificateExpiredError` if *now* is outside the window.

    *now* defaults to the current time and must be timezone-aware;
    a naive value raises :class:`InvalidArgumentError`.
    """
    if now is None:
        now = datetime.now(UTC)
    elif now.tzinfo is None or now.utcoffset() is None:
        msg = "validity check time must be timezone-aware"
        raise InvalidArgumentError(msg)
    if not cert.is_valid_at(now):
        msg = (
            f"certificate is valid from {format_timestamp(cert.not_before)} "
            f"to {format_timestamp(cert.not_after)}"
        )
        raise CertificateExpiredError(msg)


def check_owner(cert: ParsedCertificate, owner_id: str) -> None:
    """Raise :class:`OwnerMismatchError` unless the subject is *owner_id*."""
    if cert.subject != owner_id:
        msg = f"certificate subject '{cert.subject}' does not match owner '{owner_id}'"
        raise OwnerMismatchError(msg)


def load_certificate(
    pem_text: str,
    owner_id: str,
    now: datetime | None = None,
) -> ParsedCertificate:
    """Parse *pem_text* and run the expiry and owner checks, in that order."""
    cert = parse_certificate(pem_text)
    check_validity(cert, now)
    check_owner(cert, owner_id)
    return cert

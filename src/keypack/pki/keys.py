"""RSA key pair import, generation and PKCS#8 export.

Import walks one uploaded PEM file through::

    Unloaded -> ParsingFormat -> {Encrypted, Plaintext}
             -> Decrypted/Parsed -> KeyPairReady     (or Rejected)

Format detection is strict: the text must match either the encrypted or
the plaintext PKCS#8 PEM structure.  Encrypted containers are opened
with :mod:`keypack.pki.pbes2`; the resulting ``PrivateKeyInfo`` must
declare ``rsaEncryption``.  The public key is rebuilt from the modulus
and public exponent held in the private key, since a PKCS#8 container
does not itself carry an importable public key.

Export produces plain PKCS#8 when no password is given and a PBES2
``EncryptedPrivateKeyInfo`` (PBKDF2-HMAC-SHA-256, 600,000 rounds,
AES-256-CBC) otherwise.  Encrypted export and import take seconds.
"""

from __future__ import annotations

from dataclasses import dataclass

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from pyasn1.error import PyAsn1Error

from keypack.core.errors import (
    DecryptionFailedError,
    InvalidArgumentError,
    UnrecognizedKeyFormatError,
    UnsupportedKeyTypeError,
)
from keypack.core.pem import (
    ENCRYPTED_PRIVATE_KEY_PEM_RE,
    PRIVATE_KEY_PEM_RE,
    decode_pem,
    encode_pem,
)
from keypack.core.types import PBKDF2_ITERATIONS, PemLabel
from keypack.pki import asn1, pbes2

DEFAULT_KEY_SIZE = 2048
DEFAULT_PUBLIC_EXPONENT = 65537

_INVALID_KEY_MESSAGE = "Invalid or unsupported key, or wrong password"


@dataclass(frozen=True)
class KeyPair:
    """An RSA private key and its matching public key."""

    private_key: rsa.RSAPrivateKey
    public_key: rsa.RSAPublicKey

    @property
    def key_size(self) -> int:
        return self.public_key.key_size


@dataclass(frozen=True)
class EncodedPrivateKey:
    """DER-encoded PKCS#8 private key and the PEM label that fits it.

    The label must match the encryption state: ``ENCRYPTED PRIVATE KEY``
    exactly when the DER is a PBES2 ``EncryptedPrivateKeyInfo``.
    """

    der: bytes
    label: PemLabel

    def __post_init__(self) -> None:
        if self.label not in (PemLabel.PRIVATE_KEY, PemLabel.ENCRYPTED_PRIVATE_KEY):
            msg = f"'{self.label}' is not a private key PEM label"
            raise InvalidArgumentError(msg)
        if self.encrypted != _is_encrypted_container(self.der):
            msg = f"label '{self.label}' does not match the key encryption state"
            raise InvalidArgumentError(msg)

    @property
    def encrypted(self) -> bool:
        return self.label == PemLabel.ENCRYPTED_PRIVATE_KEY

    def to_pem(self) -> str:
        return encode_pem(self.der, self.label)


def _is_encrypted_container(der: bytes) -> bool:
    try:
        info = asn1.decode_der(der, asn1.EncryptedPrivateKeyInfo())
    except PyAsn1Error:
        return False
    return info["encryptionAlgorithm"]["algorithm"] == asn1.ID_PBES2


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------


def key_pair_from_private_key(private_key: rsa.RSAPrivateKey) -> KeyPair:
    """Pair *private_key* with a public key rebuilt from its RSA numbers."""
    public_numbers = private_key.private_numbers().public_numbers
    public_key = rsa.RSAPublicNumbers(
        e=public_numbers.e,
        n=public_numbers.n,
    ).public_key()
    return KeyPair(private_key=private_key, public_key=public_key)


def generate_key_pair(
    key_size: int = DEFAULT_KEY_SIZE,
    public_exponent: int = DEFAULT_PUBLIC_EXPONENT,
) -> KeyPair:
    """Generate a fresh RSA key pair for RSASSA-PKCS1-v1_5 signing."""
    try:
        private_key = rsa.generate_private_key(
            public_exponent=public_exponent,
            key_size=key_size,
        )
    except ValueError as exc:
        msg = f"cannot generate RSA-{key_size} key with exponent {public_exponent}"
        raise InvalidArgumentError(msg, cause=str(exc)) from exc
    return key_pair_from_private_key(private_key)


# ---------------------------------------------------------------------------
# Import
# ---------------------------------------------------------------------------


def _decrypt_private_key_info(der: bytes, password: str) -> bytes:
    try:
        info = asn1.decode_der(der, asn1.EncryptedPrivateKeyInfo())
    except PyAsn1Error as exc:
        raise DecryptionFailedError(_INVALID_KEY_MESSAGE, cause=str(exc)) from exc

    plaintext = pbes2.decrypt(
        info["encryptionAlgorithm"],
        info["encryptedData"].asOctets(),
        password,
    )
    # A wrong password occasionally survives the padding check; the
    # garbage it yields will not decode as PrivateKeyInfo.
    try:
        asn1.decode_der(plaintext, asn1.PrivateKeyInfo())
    except PyAsn1Error as exc:
        raise DecryptionFailedError(_INVALID_KEY_MESSAGE, cause=str(exc)) from exc
    return plaintext


def _load_rsa_private_key(der: bytes) -> rsa.RSAPrivateKey:
    try:
        info = asn1.decode_der(der, asn1.PrivateKeyInfo())
    except PyAsn1Error as exc:
        msg = "private key is not a valid PKCS#8 structure"
        raise UnsupportedKeyTypeError(msg, cause=str(exc)) from exc

    algorithm = info["privateKeyAlgorithm"]["algorithm"]
    if algorithm != asn1.RSA_ENCRYPTION:
        msg = f"unsupported private key algorithm {algorithm}; only RSA is supported"
        raise UnsupportedKeyTypeError(msg)

    try:
        private_key = serialization.load_der_private_key(der, password=None)
    except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
        msg = "private key could not be parsed as RSA"
        raise UnsupportedKeyTypeError(msg, cause=str(exc)) from exc
    if not isinstance(private_key, rsa.RSAPrivateKey):
        msg = f"unsupported private key type {type(private_key).__name__}"
        raise UnsupportedKeyTypeError(msg)
    return private_key


def load_key_pair(pem_text: str, password: str | None = None) -> KeyPair:
    """Load an RSA key pair from PKCS#8 PEM text.

    Parameters
    ----------
    pem_text:
        Newline-normalised PEM text, plain (``PRIVATE KEY``) or
        password-encrypted (``ENCRYPTED PRIVATE KEY``).
    password:
        Password for an encrypted key; ignored for plain keys.

    Raises
    ------
    UnrecognizedKeyFormatError
        If the text is neither private key PEM form.
    DecryptionFailedError
        If the encrypted container cannot be opened with *password*.
    UnsupportedKeyTypeError
        If the key is not an RSA key.
    MalformedInputError
        If the PEM body is not valid base64.

    """
    if ENCRYPTED_PRIVATE_KEY_PEM_RE.match(pem_text):
        der = _decrypt_private_key_info(decode_pem(pem_text), password or "")
    elif PRIVATE_KEY_PEM_RE.match(pem_text):
        der = decode_pem(pem_text)
    else:
        msg = "no private key PEM found"
        raise UnrecognizedKeyFormatError(msg)

    return key_pair_from_private_key(_load_rsa_private_key(der))


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------


def export_private_key(
    key_pair: KeyPair,
    password: str | None = None,
    *,
    iterations: int = PBKDF2_ITERATIONS,
) -> EncodedPrivateKey:
    """Encode the private key of *key_pair* as PKCS#8.

    An empty or absent *password* yields an unencrypted ``PRIVATE KEY``;
    otherwise the key is wrapped as an ``ENCRYPTED PRIVATE KEY``.
    """
    der = key_pair.private_key.private_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
    if not password:
        return EncodedPrivateKey(der=der, label=PemLabel.PRIVATE_KEY)

    return EncodedPrivateKey(
        der=encrypt_private_key_info(der, password, iterations=iterations),
        label=PemLabel.ENCRYPTED_PRIVATE_KEY,
    )


def encrypt_private_key_info(
    der: bytes,
    password: str,
    *,
    iterations: int = PBKDF2_ITERATIONS,
) -> bytes:
    """Wrap a DER ``PrivateKeyInfo`` into a PBES2 ``EncryptedPrivateKeyInfo``."""
    algorithm, ciphertext = pbes2.encrypt(der, password, iterations=iterations)
    info = asn1.EncryptedPrivateKeyInfo()
    info["encryptionAlgorithm"] = algorithm
    info["encryptedData"] = ciphertext
    return asn1.encode_der(info)

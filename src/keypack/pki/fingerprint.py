"""Key type labels and public key fingerprints for display.

Fingerprints hash the contents of the ``subjectPublicKey`` BIT STRING
of the key's ``SubjectPublicKeyInfo`` (the value used for RFC 5280
subject key identifiers), not the whole SPKI.
"""

from __future__ import annotations

import hashlib
from typing import TYPE_CHECKING

from cryptography.hazmat.primitives import serialization
from pyasn1_modules import rfc5280

from keypack.core.types import FingerprintHash, KeyAlgorithm
from keypack.pki import asn1
from keypack.pki.keys import KeyPair

if TYPE_CHECKING:
    from cryptography.hazmat.primitives.asymmetric.types import PublicKeyTypes

_KEY_ALGORITHMS: dict[str, KeyAlgorithm] = {
    str(asn1.RSA_ENCRYPTION): KeyAlgorithm.RSA,
    str(asn1.ID_DSA): KeyAlgorithm.DSA,
    str(asn1.ID_EC_PUBLIC_KEY): KeyAlgorithm.ECDSA,
    str(asn1.ID_X25519): KeyAlgorithm.X25519,
    str(asn1.ID_ED25519): KeyAlgorithm.ED25519,
    str(asn1.ID_ED448): KeyAlgorithm.ED448,
}


def key_algorithm_for_oid(oid: str) -> KeyAlgorithm:
    """Map a dotted public key algorithm OID to :class:`KeyAlgorithm`."""
    return _KEY_ALGORITHMS.get(oid, KeyAlgorithm.UNKNOWN)


def _spki(public_key: PublicKeyTypes) -> rfc5280.SubjectPublicKeyInfo:
    der = public_key.public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    return asn1.decode_der(der, rfc5280.SubjectPublicKeyInfo())


def _rsa_bit_length(subject_public_key: bytes) -> int:
    rsa_key = asn1.decode_der(subject_public_key, asn1.RSAPublicKey())
    modulus = int(rsa_key["modulus"])
    # Byte length of the modulus without DER's leading zero octet.
    return (modulus.bit_length() + 7) // 8 * 8


def key_type(key: KeyPair | PublicKeyTypes) -> str:
    """Describe the key: ``RSA-<bits>``, a fixed algorithm label or ``unknown``."""
    public_key = key.public_key if isinstance(key, KeyPair) else key
    spki = _spki(public_key)
    algorithm = key_algorithm_for_oid(str(spki["algorithm"]["algorithm"]))
    if algorithm is KeyAlgorithm.RSA:
        bits = _rsa_bit_length(spki["subjectPublicKey"].asOctets())
        return f"{algorithm.value}-{bits}"
    return algorithm.value


def fingerprint(
    public_key: PublicKeyTypes,
    hash_algorithm: FingerprintHash | str = FingerprintHash.SHA256,
) -> str:
    """Return the colon-separated lowercase hex digest of the public key bits."""
    name = FingerprintHash(hash_algorithm)
    bits = _spki(public_key)["subjectPublicKey"].asOctets()
    digest = hashlib.new(name.value, bits).digest()
    return ":".join(f"{b:02x}" for b in digest)

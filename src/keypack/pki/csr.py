"""PKCS#10 certificate signing request builder.

The request carries a single common-name attribute holding the owner
identifier, the key pair's ``SubjectPublicKeyInfo`` and an empty
attribute set, and is signed by the key pair's own private key with
sha256WithRSAEncryption (RSASSA-PKCS1-v1_5).  PKCS#1 v1.5 signatures are
deterministic, so the same key and owner always give the same request.

The structure is assembled with pyasn1 rather than
:class:`cryptography.x509.CertificateSigningRequestBuilder` because the
owner identifier may be up to 300 characters, beyond the 64-character
common-name bound that builder enforces.
"""

from __future__ import annotations

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from pyasn1.type import char, univ
from pyasn1_modules import rfc5280

from keypack.core.errors import SigningFailedError
from keypack.core.owner import validate_owner_id
from keypack.core.pem import encode_pem
from keypack.core.types import PemLabel
from keypack.pki import asn1
from keypack.pki.keys import KeyPair


def _subject(owner_id: str) -> asn1.Name:
    atv = asn1.AttributeTypeAndValue()
    atv["type"] = asn1.ID_AT_COMMON_NAME
    atv["value"] = asn1.encode_der(char.UTF8String(owner_id))

    rdn = asn1.RelativeDistinguishedName()
    rdn.append(atv)
    subject = asn1.Name()
    subject["rdnSequence"].append(rdn)
    return subject


def _subject_public_key_info(public_key: rsa.RSAPublicKey) -> rfc5280.SubjectPublicKeyInfo:
    der = public_key.public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    return asn1.decode_der(der, rfc5280.SubjectPublicKeyInfo())


def build_csr_der(key_pair: KeyPair, owner_id: str) -> bytes:
    """Build and sign the request, returning its DER encoding.

    Raises
    ------
    InvalidArgumentError
        If *owner_id* is empty or longer than 300 characters.
    SigningFailedError
        If the private key cannot produce an RSASSA-PKCS1-v1_5 signature.

    """
    validate_owner_id(owner_id)

    info = asn1.CertificationRequestInfo()
    info["version"] = 0
    info["subject"] = _subject(owner_id)
    info["subjectPKInfo"] = _subject_public_key_info(key_pair.public_key)
    info["attributes"].clear()
    info_der = asn1.encode_der(info)

    if not isinstance(key_pair.private_key, rsa.RSAPrivateKey):
        msg = f"cannot sign with {type(key_pair.private_key).__name__}; RSA key required"
        raise SigningFailedError(msg)
    try:
        signature = key_pair.private_key.sign(
            info_der,
            padding.PKCS1v15(),
            hashes.SHA256(),
        )
    except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
        msg = "signing the certificate request failed"
        raise SigningFailedError(msg, cause=str(exc)) from exc

    request = asn1.CertificationRequest()
    request["certificationRequestInfo"] = info
    request["signatureAlgorithm"] = asn1.algorithm_identifier(
        asn1.SHA256_WITH_RSA_ENCRYPTION,
        asn1.null_parameters(),
    )
    request["signature"] = univ.BitString(hexValue=signature.hex())
    return asn1.encode_der(request)


def build_csr(key_pair: KeyPair, owner_id: str) -> str:
    """Return the signed request for *key_pair* and *owner_id* as PEM."""
    return encode_pem(build_csr_der(key_pair, owner_id), PemLabel.CERTIFICATE_REQUEST)

"""ASN.1 schemas and object identifiers for the structures keypack builds.

The schemas are the :mod:`pyasn1_modules` renditions of PKCS#5 (RFC 8018),
PKCS#8 (RFC 5958), PKCS#10 (RFC 2986), CMS (RFC 5652) and PKCS#12
(RFC 7292), re-exported here under one namespace so the key exporter,
CSR builder and PKCS#12 packager share a single import.

Open-typed fields (``ANY DEFINED BY``) are never resolved on decode; they
carry the DER of the inner value and callers decode them explicitly.
"""

from __future__ import annotations

from pyasn1.codec.der import decoder, encoder
from pyasn1.error import PyAsn1Error
from pyasn1.type import base, univ
from pyasn1_modules import rfc2986, rfc3565, rfc5280, rfc5652, rfc7292, rfc8017, rfc8018

# ---------------------------------------------------------------------------
# Object identifiers
# ---------------------------------------------------------------------------

# Public key algorithms
RSA_ENCRYPTION = rfc8017.rsaEncryption
ID_DSA = univ.ObjectIdentifier("1.2.840.10040.4.1")
ID_EC_PUBLIC_KEY = univ.ObjectIdentifier("1.2.840.10045.2.1")
ID_X25519 = univ.ObjectIdentifier("1.3.101.110")
ID_ED25519 = univ.ObjectIdentifier("1.3.101.112")
ID_ED448 = univ.ObjectIdentifier("1.3.101.113")

# Signature / digest
SHA256_WITH_RSA_ENCRYPTION = rfc8017.sha256WithRSAEncryption
ID_SHA1 = rfc8017.id_sha1
ID_SHA256 = rfc8017.id_sha256

# PKCS#5
ID_PBES2 = rfc8018.id_PBES2
ID_PBKDF2 = rfc8018.id_PBKDF2
ID_HMAC_WITH_SHA1 = rfc8018.id_hmacWithSHA1
ID_HMAC_WITH_SHA224 = rfc8018.id_hmacWithSHA224
ID_HMAC_WITH_SHA256 = rfc8018.id_hmacWithSHA256
ID_HMAC_WITH_SHA384 = rfc8018.id_hmacWithSHA384
ID_HMAC_WITH_SHA512 = rfc8018.id_hmacWithSHA512
ID_AES128_CBC = rfc3565.id_aes128_CBC
ID_AES192_CBC = rfc3565.id_aes192_CBC
ID_AES256_CBC = rfc3565.id_aes256_CBC

# CMS content types
ID_DATA = rfc5652.id_data
ID_ENCRYPTED_DATA = rfc5652.id_encryptedData

# PKCS#12 bag types
ID_KEY_BAG = rfc7292.id_keyBag
ID_PKCS8_SHROUDED_KEY_BAG = rfc7292.id_pkcs8ShroudedKeyBag
ID_CERT_BAG = rfc7292.id_certBag
ID_X509_CERTIFICATE = univ.ObjectIdentifier("1.2.840.113549.1.9.22.1")

# PKCS#9 attributes
ID_FRIENDLY_NAME = rfc7292.pkcs_9_at_friendlyName
ID_LOCAL_KEY_ID = rfc7292.pkcs_9_at_localKeyId

# X.520
ID_AT_COMMON_NAME = rfc5280.id_at_commonName

# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------

# PKCS#5 v2; the PBKDF2 salt is a CHOICE of which only "specified" is used.
PBKDF2Params = rfc8018.PBKDF2_params
PBES2Params = rfc8018.PBES2_params

# PKCS#8
PrivateKeyInfo = rfc7292.PrivateKeyInfo
EncryptedPrivateKeyInfo = rfc7292.EncryptedPrivateKeyInfo
RSAPublicKey = rfc8017.RSAPublicKey

# PKCS#10; the subject is the X.501 Name CHOICE.
AttributeTypeAndValue = rfc2986.AttributeTypeAndValue
RelativeDistinguishedName = rfc2986.RelativeDistinguishedName
RDNSequence = rfc2986.RDNSequence
Name = rfc2986.Name
CertificationRequestInfo = rfc2986.CertificationRequestInfo
CertificationRequest = rfc2986.CertificationRequest

# CMS
ContentInfo = rfc7292.ContentInfo
EncryptedContentInfo = rfc5652.EncryptedContentInfo
EncryptedData = rfc5652.EncryptedData

# PKCS#12; MacData.iterations defaults to 1 when absent.
PKCS12Attribute = rfc7292.PKCS12Attribute
SafeBag = rfc7292.SafeBag
SafeContents = rfc7292.SafeContents
AuthenticatedSafe = rfc7292.AuthenticatedSafe
CertBag = rfc7292.CertBag
DigestInfo = rfc7292.DigestInfo
MacData = rfc7292.MacData
PFX = rfc7292.PFX

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def algorithm_identifier(
    oid: univ.ObjectIdentifier,
    parameters: base.Asn1Item | None = None,
) -> rfc5280.AlgorithmIdentifier:
    """Build an ``AlgorithmIdentifier`` with optional DER-encoded parameters."""
    alg = rfc5280.AlgorithmIdentifier()
    alg["algorithm"] = oid
    if parameters is not None:
        alg["parameters"] = encoder.encode(parameters)
    return alg


def null_parameters() -> univ.Null:
    return univ.Null("")


def decode_der(data: bytes, spec: base.Asn1Item):
    """Decode *data* strictly against *spec*.

    Raises :class:`PyAsn1Error` on any decoding failure, including
    trailing bytes after the top-level value.
    """
    value, rest = decoder.decode(data, asn1Spec=spec)
    if rest:
        msg = f"{len(rest)} trailing byte(s) after {type(spec).__name__}"
        raise PyAsn1Error(msg)
    return value


def encode_der(value: base.Asn1Item) -> bytes:
    return encoder.encode(value)

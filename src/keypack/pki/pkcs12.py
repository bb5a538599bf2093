"""PKCS#12 (PFX) packaging of a key pair and its certificate.

Layout of the produced file::

    PFX v3
      authSafe: data -> AuthenticatedSafe
        [0] encryptedData (PBES2) -> SafeContents { certBag }
        [1] encryptedData (PBES2) -> SafeContents { pkcs8ShroudedKeyBag }
      macData: HMAC-SHA-256 over the AuthenticatedSafe DER

Both bags carry the same ``localKeyID`` (SHA-1 of the certificate DER)
and a ``friendlyName`` holding the owner identifier, which is how
readers pair the key with its certificate.  Every PBES2 layer uses
PBKDF2-HMAC-SHA-256 with :data:`PBKDF2_ITERATIONS` rounds and
AES-256-CBC; the password is UTF-8 there and a BMPString for the MAC
key derivation (RFC 7292 appendix B).
"""

from __future__ import annotations

import hashlib
import hmac
import secrets
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from cryptography.hazmat.primitives import serialization
from pyasn1.error import PyAsn1Error
from pyasn1.type import char, univ

from keypack.core.errors import (
    DecryptionFailedError,
    InvalidArgumentError,
    MalformedInputError,
)
from keypack.core.owner import validate_owner_id
from keypack.core.types import PBKDF2_ITERATIONS, ContentType
from keypack.pki import asn1, pbes2
from keypack.pki.keys import encrypt_private_key_info

if TYPE_CHECKING:
    from keypack.files.download import FileDownloader
    from keypack.pki.certificate import ParsedCertificate
    from keypack.pki.keys import KeyPair

_PFX_VERSION = 3
_MAC_SALT_LENGTH = 16

# RFC 7292 appendix B.3 diversifier for MAC keys.
_MAC_KEY_ID = 3

_MAC_DIGESTS: dict[str, str] = {
    str(asn1.ID_SHA1): "sha1",
    str(asn1.ID_SHA256): "sha256",
}


@dataclass(frozen=True)
class SafeBagInfo:
    """One bag recovered from a PKCS#12 file.

    ``value`` is the certificate DER for certificate bags and the
    decrypted ``PrivateKeyInfo`` DER for key bags.
    """

    bag_id: str
    value: bytes
    local_key_id: bytes | None = None
    friendly_name: str | None = None
    attributes: dict[str, list[bytes]] = field(default_factory=dict)

    @property
    def is_certificate(self) -> bool:
        return self.bag_id == str(asn1.ID_CERT_BAG)

    @property
    def is_key(self) -> bool:
        return self.bag_id in (str(asn1.ID_PKCS8_SHROUDED_KEY_BAG), str(asn1.ID_KEY_BAG))


# ---------------------------------------------------------------------------
# PKCS#12 key derivation (RFC 7292 appendix B.2)
# ---------------------------------------------------------------------------


def _fill(data: bytes, block: int) -> bytes:
    if not data:
        return b""
    size = block * -(-len(data) // block)
    return (data * (size // len(data) + 1))[:size]


def _bmp_password(password: str) -> bytes:
    return password.encode("utf-16-be") + b"\x00\x00"


def pkcs12_kdf(
    password: str,
    salt: bytes,
    iterations: int,
    key_id: int,
    length: int,
    hash_name: str = "sha256",
) -> bytes:
    """Derive *length* bytes with the PKCS#12 v1.0 key derivation function."""
    v = hashlib.new(hash_name).block_size
    diversifier = bytes([key_id]) * v
    buf = bytearray(_fill(salt, v) + _fill(_bmp_password(password), v))

    out = b""
    while len(out) < length:
        a = hashlib.new(hash_name, diversifier + bytes(buf)).digest()
        for _ in range(iterations - 1):
            a = hashlib.new(hash_name, a).digest()
        out += a
        if len(out) >= length:
            break
        b = int.from_bytes(_fill(a, v), "big")
        for start in range(0, len(buf), v):
            chunk = int.from_bytes(buf[start : start + v], "big") + b + 1
            buf[start : start + v] = (chunk % (1 << (v * 8))).to_bytes(v, "big")
    return out[:length]


def _mac(data: bytes, password: str, salt: bytes, iterations: int, hash_name: str) -> bytes:
    size = hashlib.new(hash_name).digest_size
    key = pkcs12_kdf(password, salt, iterations, _MAC_KEY_ID, size, hash_name)
    return hmac.new(key, data, hash_name).digest()


# ---------------------------------------------------------------------------
# Building
# ---------------------------------------------------------------------------


def _attribute(oid: univ.ObjectIdentifier, value) -> asn1.PKCS12Attribute:
    attr = asn1.PKCS12Attribute()
    attr["attrType"] = oid
    attr["attrValues"].append(asn1.encode_der(value))
    return attr


def _bag_attributes(local_key_id: bytes, owner_id: str) -> list[asn1.PKCS12Attribute]:
    return [
        _attribute(asn1.ID_FRIENDLY_NAME, char.BMPString(owner_id)),
        _attribute(asn1.ID_LOCAL_KEY_ID, univ.OctetString(local_key_id)),
    ]


def _safe_bag(
    bag_id: univ.ObjectIdentifier,
    value_der: bytes,
    attributes: list[asn1.PKCS12Attribute],
) -> asn1.SafeBag:
    bag = asn1.SafeBag()
    bag["bagId"] = bag_id
    bag["bagValue"] = value_der
    bag["bagAttributes"].extend(attributes)
    return bag


def _cert_bag(cert_der: bytes) -> bytes:
    cert_bag = asn1.CertBag()
    cert_bag["certId"] = asn1.ID_X509_CERTIFICATE
    cert_bag["certValue"] = asn1.encode_der(univ.OctetString(cert_der))
    return asn1.encode_der(cert_bag)


def _encrypted_content_info(
    safe_contents: asn1.SafeContents,
    password: str,
    iterations: int,
) -> asn1.ContentInfo:
    algorithm, ciphertext = pbes2.encrypt(
        asn1.encode_der(safe_contents),
        password,
        iterations=iterations,
    )
    eci = asn1.EncryptedContentInfo()
    eci["contentType"] = asn1.ID_DATA
    eci["contentEncryptionAlgorithm"] = algorithm
    eci["encryptedContent"] = ciphertext

    encrypted = asn1.EncryptedData()
    encrypted["version"] = 0
    encrypted["encryptedContentInfo"] = eci

    info = asn1.ContentInfo()
    info["contentType"] = asn1.ID_ENCRYPTED_DATA
    info["content"] = asn1.encode_der(encrypted)
    return info


def build_pkcs12(
    key_pair: KeyPair,
    certificate: ParsedCertificate,
    owner_id: str,
    password: str,
    *,
    iterations: int = PBKDF2_ITERATIONS,
) -> bytes:
    """Build a password-protected PKCS#12 file for *key_pair* and *certificate*.

    Parameters
    ----------
    key_pair:
        The RSA key pair whose private key goes into the shrouded key bag.
    certificate:
        The certificate issued for the key pair.
    owner_id:
        Owner identifier, stored as the ``friendlyName`` of both bags.
    password:
        Non-empty password protecting the key, both SafeContents and the MAC.
    iterations:
        PBKDF2 and MAC iteration count.

    Returns
    -------
    bytes
        DER-encoded ``PFX``.

    """
    validate_owner_id(owner_id)
    if not password:
        msg = "a PKCS#12 file requires a password"
        raise InvalidArgumentError(msg)

    local_key_id = hashlib.sha1(certificate.der).digest()  # noqa: S324
    attributes = _bag_attributes(local_key_id, owner_id)

    cert_contents = asn1.SafeContents()
    cert_contents.append(_safe_bag(asn1.ID_CERT_BAG, _cert_bag(certificate.der), attributes))

    key_der = key_pair.private_key.private_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
    shrouded_key = encrypt_private_key_info(key_der, password, iterations=iterations)
    key_contents = asn1.SafeContents()
    key_contents.append(
        _safe_bag(asn1.ID_PKCS8_SHROUDED_KEY_BAG, shrouded_key, _bag_attributes(local_key_id, owner_id)),
    )

    auth_safe = asn1.AuthenticatedSafe()
    auth_safe.append(_encrypted_content_info(cert_contents, password, iterations))
    auth_safe.append(_encrypted_content_info(key_contents, password, iterations))
    auth_safe_der = asn1.encode_der(auth_safe)

    mac_salt = secrets.token_bytes(_MAC_SALT_LENGTH)
    digest = asn1.DigestInfo()
    digest["digestAlgorithm"] = asn1.algorithm_identifier(asn1.ID_SHA256, asn1.null_parameters())
    digest["digest"] = _mac(auth_safe_der, password, mac_salt, iterations, "sha256")

    mac_data = asn1.MacData()
    mac_data["mac"] = digest
    mac_data["macSalt"] = mac_salt
    mac_data["iterations"] = iterations

    content = asn1.ContentInfo()
    content["contentType"] = asn1.ID_DATA
    content["content"] = asn1.encode_der(univ.OctetString(auth_safe_der))

    pfx = asn1.PFX()
    pfx["version"] = _PFX_VERSION
    pfx["authSafe"] = content
    pfx["macData"] = mac_data
    return asn1.encode_der(pfx)


def package_pkcs12(
    key_pair: KeyPair | None,
    certificate: ParsedCertificate | None,
    owner_id: str,
    password: str,
    filename: str,
    downloader: FileDownloader,
    *,
    iterations: int = PBKDF2_ITERATIONS,
) -> bytes:
    """Build the PKCS#12 file and hand it to *downloader*.

    All inputs are checked before any key derivation runs.

    Raises
    ------
    InvalidArgumentError
        If the key pair, certificate, password or filename is missing,
        or the owner identifier is out of bounds.

    """
    if key_pair is None:
        msg = "a key pair is required"
        raise InvalidArgumentError(msg)
    if certificate is None:
        msg = "a certificate is required"
        raise InvalidArgumentError(msg)
    if not password:
        msg = "a PKCS#12 file requires a password"
        raise InvalidArgumentError(msg)
    if not filename:
        msg = "a filename is required"
        raise InvalidArgumentError(msg)
    validate_owner_id(owner_id)

    data = build_pkcs12(key_pair, certificate, owner_id, password, iterations=iterations)
    downloader.download_file(filename, ContentType.PKCS12, data)
    return data


# ---------------------------------------------------------------------------
# Reading
# ---------------------------------------------------------------------------


def _octets(any_der: bytes) -> bytes:
    return asn1.decode_der(bytes(any_der), univ.OctetString()).asOctets()


def _verify_mac(pfx: asn1.PFX, auth_safe_der: bytes, password: str) -> None:
    if not pfx["macData"].isValue:
        msg = "PKCS#12 file has no MAC"
        raise DecryptionFailedError(msg)

    mac_data = pfx["macData"]
    digest_oid = str(mac_data["mac"]["digestAlgorithm"]["algorithm"])
    if digest_oid not in _MAC_DIGESTS:
        msg = f"unsupported MAC digest algorithm {digest_oid}"
        raise DecryptionFailedError(msg)
    # Absent iterations decode to the default of 1.
    iterations = int(mac_data["iterations"])
    if not 1 <= iterations <= pbes2.MAX_ITERATIONS:
        msg = f"MAC iteration count {iterations} is out of range"
        raise DecryptionFailedError(msg)

    expected = _mac(
        auth_safe_der,
        password,
        mac_data["macSalt"].asOctets(),
        iterations,
        _MAC_DIGESTS[digest_oid],
    )
    if not hmac.compare_digest(expected, mac_data["mac"]["digest"].asOctets()):
        msg = "PKCS#12 MAC verification failed: wrong password or corrupted file"
        raise DecryptionFailedError(msg)


def _safe_contents_der(info: asn1.ContentInfo, password: str) -> bytes:
    content_type = info["contentType"]
    if content_type == asn1.ID_DATA:
        return _octets(info["content"])
    if content_type == asn1.ID_ENCRYPTED_DATA:
        encrypted = asn1.decode_der(bytes(info["content"]), asn1.EncryptedData())
        eci = encrypted["encryptedContentInfo"]
        return pbes2.decrypt(
            eci["contentEncryptionAlgorithm"],
            eci["encryptedContent"].asOctets(),
            password,
        )
    msg = f"unsupported PKCS#12 content type {content_type}"
    raise MalformedInputError(msg)


def _bag_info(bag: asn1.SafeBag, password: str) -> SafeBagInfo:
    attributes: dict[str, list[bytes]] = {}
    local_key_id = None
    friendly_name = None
    if bag["bagAttributes"].isValue:
        for attr in bag["bagAttributes"]:
            oid = attr["attrType"]
            values = [bytes(value) for value in attr["attrValues"]]
            attributes[str(oid)] = values
            if not values:
                continue
            if oid == asn1.ID_LOCAL_KEY_ID:
                local_key_id = _octets(values[0])
            elif oid == asn1.ID_FRIENDLY_NAME:
                friendly_name = str(asn1.decode_der(values[0], char.BMPString()))

    bag_id = bag["bagId"]
    value = bytes(bag["bagValue"])
    if bag_id == asn1.ID_CERT_BAG:
        cert_bag = asn1.decode_der(value, asn1.CertBag())
        value = _octets(cert_bag["certValue"])
    elif bag_id == asn1.ID_PKCS8_SHROUDED_KEY_BAG:
        shrouded = asn1.decode_der(value, asn1.EncryptedPrivateKeyInfo())
        value = pbes2.decrypt(
            shrouded["encryptionAlgorithm"],
            shrouded["encryptedData"].asOctets(),
            password,
        )

    return SafeBagInfo(
        bag_id=str(bag_id),
        value=value,
        local_key_id=local_key_id,
        friendly_name=friendly_name,
        attributes=attributes,
    )


def read_pkcs12(data: bytes, password: str) -> list[SafeBagInfo]:
    """Verify and open a PKCS#12 file, returning its bags in order.

    Raises
    ------
    MalformedInputError
        If the data is not a PKCS#12 structure keypack can read.
    DecryptionFailedError
        If the MAC does not verify or a layer fails to decrypt.

    """
    try:
        pfx = asn1.decode_der(data, asn1.PFX())
        if pfx["authSafe"]["contentType"] != asn1.ID_DATA:
            msg = "PKCS#12 authSafe must be of type data"
            raise MalformedInputError(msg)
        auth_safe_der = _octets(pfx["authSafe"]["content"])
    except PyAsn1Error as exc:
        msg = "data is not a PKCS#12 file"
        raise MalformedInputError(msg, cause=str(exc)) from exc

    _verify_mac(pfx, auth_safe_der, password)

    bags: list[SafeBagInfo] = []
    try:
        auth_safe = asn1.decode_der(auth_safe_der, asn1.AuthenticatedSafe())
        for info in auth_safe:
            contents = asn1.decode_der(_safe_contents_der(info, password), asn1.SafeContents())
            bags.extend(_bag_info(bag, password) for bag in contents)
    except PyAsn1Error as exc:
        msg = "PKCS#12 contents could not be decoded"
        raise MalformedInputError(msg, cause=str(exc)) from exc
    return bags

"""PKCS#5 v2.0 password-based encryption scheme 2 (PBES2).

Encrypts with PBKDF2 (HMAC-SHA-256, :data:`PBKDF2_ITERATIONS` rounds,
random 16-byte salt) and AES-256-CBC with a random IV.  Decryption
honours whatever parameters the container declares, within the set of
PRFs and AES key sizes listed below.

Every decryption failure, whatever its source, is reported as a single
:class:`DecryptionFailedError`; a wrong password and a damaged container
are not distinguishable from the padding check alone.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass

from cryptography.hazmat.primitives import hashes, padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from pyasn1.error import PyAsn1Error
from pyasn1.type import univ
from pyasn1_modules import rfc5280

from keypack.core.errors import DecryptionFailedError
from keypack.core.types import PBKDF2_ITERATIONS
from keypack.pki import asn1

_SALT_LENGTH = 16
_AES_BLOCK_BYTES = 16
_AES256_KEY_BYTES = 32

# Refuse to spin on absurd iteration counts declared by untrusted input.
MAX_ITERATIONS = 10_000_000

_PRF_HASHES: dict[str, type[hashes.HashAlgorithm]] = {
    str(asn1.ID_HMAC_WITH_SHA1): hashes.SHA1,
    str(asn1.ID_HMAC_WITH_SHA224): hashes.SHA224,
    str(asn1.ID_HMAC_WITH_SHA256): hashes.SHA256,
    str(asn1.ID_HMAC_WITH_SHA384): hashes.SHA384,
    str(asn1.ID_HMAC_WITH_SHA512): hashes.SHA512,
}

_AES_CBC_KEY_BYTES: dict[str, int] = {
    str(asn1.ID_AES128_CBC): 16,
    str(asn1.ID_AES192_CBC): 24,
    str(asn1.ID_AES256_CBC): 32,
}


@dataclass(frozen=True)
class PBES2Parameters:
    """Decoded PBES2 parameters of one encrypted container."""

    salt: bytes
    iterations: int
    prf: type[hashes.HashAlgorithm]
    key_length: int
    iv: bytes


def _derive_key(
    password: str,
    salt: bytes,
    iterations: int,
    length: int,
    prf: type[hashes.HashAlgorithm],
) -> bytes:
    kdf = PBKDF2HMAC(
        algorithm=prf(),
        length=length,
        salt=salt,
        iterations=iterations,
    )
    return kdf.derive(password.encode("utf-8"))


def build_algorithm_identifier(
    salt: bytes,
    iterations: int,
    iv: bytes,
) -> rfc5280.AlgorithmIdentifier:
    """Return the PBES2 ``AlgorithmIdentifier`` for AES-256-CBC/HMAC-SHA-256."""
    kdf_params = asn1.PBKDF2Params()
    kdf_params["salt"]["specified"] = salt
    kdf_params["iterationCount"] = iterations
    kdf_params["prf"] = asn1.algorithm_identifier(
        asn1.ID_HMAC_WITH_SHA256,
        asn1.null_parameters(),
    )

    params = asn1.PBES2Params()
    params["keyDerivationFunc"] = asn1.algorithm_identifier(asn1.ID_PBKDF2, kdf_params)
    params["encryptionScheme"] = asn1.algorithm_identifier(
        asn1.ID_AES256_CBC,
        univ.OctetString(iv),
    )
    return asn1.algorithm_identifier(asn1.ID_PBES2, params)


def encrypt(
    data: bytes,
    password: str,
    *,
    iterations: int = PBKDF2_ITERATIONS,
) -> tuple[rfc5280.AlgorithmIdentifier, bytes]:
    """Encrypt *data* under *password*.

    Returns the PBES2 ``AlgorithmIdentifier`` describing the parameters
    used and the ciphertext.  Long-running: the key derivation performs
    *iterations* HMAC rounds.
    """
    salt = secrets.token_bytes(_SALT_LENGTH)
    iv = secrets.token_bytes(_AES_BLOCK_BYTES)
    key = _derive_key(password, salt, iterations, _AES256_KEY_BYTES, hashes.SHA256)

    padder = padding.PKCS7(algorithms.AES.block_size).padder()
    padded = padder.update(data) + padder.finalize()
    encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
    ciphertext = encryptor.update(padded) + encryptor.finalize()

    return build_algorithm_identifier(salt, iterations, iv), ciphertext


def parse_parameters(algorithm: rfc5280.AlgorithmIdentifier) -> PBES2Parameters:  # noqa: C901
    """Decode and check the PBES2 parameters of *algorithm*.

    Raises
    ------
    DecryptionFailedError
        If the scheme, PRF or cipher is unsupported or the parameters
        do not decode.

    """
    if algorithm["algorithm"] != asn1.ID_PBES2:
        msg = f"unsupported encryption scheme {algorithm['algorithm']}"
        raise DecryptionFailedError(msg)
    if not algorithm["parameters"].isValue:
        msg = "PBES2 parameters are missing"
        raise DecryptionFailedError(msg)

    try:
        params = asn1.decode_der(bytes(algorithm["parameters"]), asn1.PBES2Params())
        kdf = params["keyDerivationFunc"]
        if kdf["algorithm"] != asn1.ID_PBKDF2:
            msg = f"unsupported key derivation function {kdf['algorithm']}"
            raise DecryptionFailedError(msg)
        kdf_params = asn1.decode_der(bytes(kdf["parameters"]), asn1.PBKDF2Params())

        scheme = params["encryptionScheme"]
        iv = asn1.decode_der(bytes(scheme["parameters"]), univ.OctetString()).asOctets()
    except PyAsn1Error as exc:
        msg = "PBES2 parameters could not be decoded"
        raise DecryptionFailedError(msg, cause=str(exc)) from exc

    if kdf_params["salt"].getName() != "specified":
        msg = "PBKDF2 salt must be an explicit octet string"
        raise DecryptionFailedError(msg)

    # An absent prf decodes to its default, hmacWithSHA1.
    prf_oid = str(kdf_params["prf"]["algorithm"])
    if prf_oid not in _PRF_HASHES:
        msg = f"unsupported PBKDF2 pseudo-random function {prf_oid}"
        raise DecryptionFailedError(msg)
    prf = _PRF_HASHES[prf_oid]

    cipher_oid = str(scheme["algorithm"])
    if cipher_oid not in _AES_CBC_KEY_BYTES:
        msg = f"unsupported content encryption algorithm {cipher_oid}"
        raise DecryptionFailedError(msg)
    key_length = _AES_CBC_KEY_BYTES[cipher_oid]
    if kdf_params["keyLength"].isValue and int(kdf_params["keyLength"]) != key_length:
        msg = "PBKDF2 key length does not match the cipher"
        raise DecryptionFailedError(msg)

    iterations = int(kdf_params["iterationCount"])
    if not 1 <= iterations <= MAX_ITERATIONS:
        msg = f"PBKDF2 iteration count {iterations} is out of range"
        raise DecryptionFailedError(msg)
    if len(iv) != _AES_BLOCK_BYTES:
        msg = "AES-CBC initialisation vector must be 16 bytes"
        raise DecryptionFailedError(msg)

    return PBES2Parameters(
        salt=kdf_params["salt"]["specified"].asOctets(),
        iterations=iterations,
        prf=prf,
        key_length=key_length,
        iv=iv,
    )


def decrypt(
    algorithm: rfc5280.AlgorithmIdentifier,
    ciphertext: bytes,
    password: str,
) -> bytes:
    """Decrypt *ciphertext* produced under the PBES2 *algorithm*.

    Raises
    ------
    DecryptionFailedError
        On unsupported parameters, a wrong password or corrupted data.

    """
    params = parse_parameters(algorithm)
    key = _derive_key(
        password,
        params.salt,
        params.iterations,
        params.key_length,
        params.prf,
    )
    try:
        decryptor = Cipher(algorithms.AES(key), modes.CBC(params.iv)).decryptor()
        padded = decryptor.update(ciphertext) + decryptor.finalize()
        unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
        return unpadder.update(padded) + unpadder.finalize()
    except ValueError as exc:
        msg = "decryption failed: the data is corrupted or the password is wrong"
        raise DecryptionFailedError(msg, cause=str(exc)) from exc

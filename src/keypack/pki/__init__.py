"""Key material, certificate, CSR and PKCS#12 operations.

Public API::

    from keypack.pki import generate_key_pair, build_csr, package_pkcs12

    pair = generate_key_pair()
    csr_pem = build_csr(pair, "user@example.com")
"""

from keypack.pki.certificate import ParsedCertificate, load_certificate, parse_certificate
from keypack.pki.csr import build_csr, build_csr_der
from keypack.pki.fingerprint import fingerprint, key_algorithm_for_oid, key_type
from keypack.pki.keys import (
    EncodedPrivateKey,
    KeyPair,
    export_private_key,
    generate_key_pair,
    load_key_pair,
)
from keypack.pki.pkcs12 import SafeBagInfo, build_pkcs12, package_pkcs12, read_pkcs12

__all__ = [
    "EncodedPrivateKey",
    "KeyPair",
    "ParsedCertificate",
    "SafeBagInfo",
    "build_csr",
    "build_csr_der",
    "build_pkcs12",
    "export_private_key",
    "fingerprint",
    "generate_key_pair",
    "key_algorithm_for_oid",
    "key_type",
    "load_certificate",
    "load_key_pair",
    "package_pkcs12",
    "parse_certificate",
    "read_pkcs12",
]

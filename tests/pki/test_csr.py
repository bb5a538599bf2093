"""Tests for keypack.pki.csr."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID
from pyasn1.type import char

from keypack.core.errors import InvalidArgumentError, SigningFailedError
from keypack.core.pem import decode_pem
from keypack.core.types import OWNER_ID_MAX_LENGTH
from keypack.pki import asn1
from keypack.pki.csr import build_csr, build_csr_der
from keypack.pki.keys import KeyPair


class TestBuildCsr:
    def test_pem_label(self, key_pair):
        pem = build_csr(key_pair, "test@example.com")
        assert pem.startswith("-----BEGIN CERTIFICATE REQUEST-----\n")
        assert pem.endswith("-----END CERTIFICATE REQUEST-----\n")

    def test_signature_verifies(self, key_pair):
        csr = x509.load_pem_x509_csr(build_csr(key_pair, "test@example.com").encode())
        assert csr.is_signature_valid
        assert isinstance(csr.signature_hash_algorithm, hashes.SHA256)

    def test_subject_is_owner(self, key_pair):
        csr = x509.load_pem_x509_csr(build_csr(key_pair, "test@example.com").encode())
        names = csr.subject.get_attributes_for_oid(NameOID.COMMON_NAME)
        assert [n.value for n in names] == ["test@example.com"]
        assert len(csr.subject.rdns) == 1

    def test_public_key_copied(self, key_pair):
        csr = x509.load_pem_x509_csr(build_csr(key_pair, "test@example.com").encode())
        spki = serialization.PublicFormat.SubjectPublicKeyInfo
        assert csr.public_key().public_bytes(serialization.Encoding.DER, spki) == (
            key_pair.public_key.public_bytes(serialization.Encoding.DER, spki)
        )

    def test_no_attributes(self, key_pair):
        csr = x509.load_pem_x509_csr(build_csr(key_pair, "test@example.com").encode())
        assert len(csr.extensions) == 0
        der = build_csr_der(key_pair, "test@example.com")
        request = asn1.decode_der(der, asn1.CertificationRequest())
        assert len(request["certificationRequestInfo"]["attributes"]) == 0

    def test_deterministic(self, key_pair):
        assert build_csr(key_pair, "test@example.com") == build_csr(key_pair, "test@example.com")

    def test_different_owners_differ(self, key_pair):
        assert build_csr(key_pair, "a@example.com") != build_csr(key_pair, "b@example.com")


class TestOwnerBounds:
    def test_single_character_owner(self, key_pair):
        csr = x509.load_pem_x509_csr(build_csr(key_pair, "a").encode())
        assert csr.is_signature_valid

    def test_max_length_owner(self, key_pair):
        owner = "x" * OWNER_ID_MAX_LENGTH
        der = decode_pem(build_csr(key_pair, owner))
        request = asn1.decode_der(der, asn1.CertificationRequest())
        atv = request["certificationRequestInfo"]["subject"]["rdnSequence"][0][0]
        assert atv["type"] == asn1.ID_AT_COMMON_NAME
        assert str(asn1.decode_der(bytes(atv["value"]), char.UTF8String())) == owner

    def test_max_length_owner_signature(self, key_pair):
        der = build_csr_der(key_pair, "x" * OWNER_ID_MAX_LENGTH)
        request = asn1.decode_der(der, asn1.CertificationRequest())
        info_der = asn1.encode_der(request["certificationRequestInfo"])
        signature = request["signature"].asOctets()
        from cryptography.hazmat.primitives.asymmetric import padding

        key_pair.public_key.verify(signature, info_der, padding.PKCS1v15(), hashes.SHA256())

    @pytest.mark.parametrize("owner", ["", "x" * (OWNER_ID_MAX_LENGTH + 1)])
    def test_out_of_bounds_rejected(self, key_pair, owner):
        with pytest.raises(InvalidArgumentError):
            build_csr(key_pair, owner)


class TestSigningFailures:
    def test_non_rsa_key_rejected(self, key_pair):
        from cryptography.hazmat.primitives.asymmetric import ec

        ec_key = ec.generate_private_key(ec.SECP256R1())
        mixed = KeyPair(private_key=ec_key, public_key=key_pair.public_key)  # type: ignore[arg-type]
        with pytest.raises(SigningFailedError):
            build_csr(mixed, "test@example.com")

    def test_signer_error_wrapped(self, key_pair):
        private_key = MagicMock(spec=rsa.RSAPrivateKey)
        private_key.sign.side_effect = ValueError("digest too big for key")
        broken = KeyPair(private_key=private_key, public_key=key_pair.public_key)
        with pytest.raises(SigningFailedError) as exc_info:
            build_csr(broken, "test@example.com")
        assert exc_info.value.cause == "digest too big for key"

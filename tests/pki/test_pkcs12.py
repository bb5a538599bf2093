"""Tests for keypack.pki.pkcs12."""

from __future__ import annotations

import hashlib
from unittest.mock import MagicMock, patch

import pytest
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.serialization import pkcs12 as crypto_pkcs12
from pyasn1_modules import rfc5652, rfc7292

from keypack.core.errors import DecryptionFailedError, InvalidArgumentError, MalformedInputError
from keypack.core.types import ContentType
from keypack.pki import asn1
from keypack.pki.certificate import parse_certificate
from keypack.pki.keys import key_pair_from_private_key
from keypack.pki.pkcs12 import build_pkcs12, package_pkcs12, pkcs12_kdf, read_pkcs12

_OWNER = "test@example.com"
_PASSWORD = "correct horse"
_ITERATIONS = 1000


@pytest.fixture()
def certificate(key_pair, make_cert_pem):
    return parse_certificate(make_cert_pem(key_pair, _OWNER))


@pytest.fixture()
def pfx(key_pair, certificate):
    return build_pkcs12(key_pair, certificate, _OWNER, _PASSWORD, iterations=_ITERATIONS)


def _private_der(key_pair) -> bytes:
    return key_pair.private_key.private_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )


class TestBuildPkcs12:
    def test_loads_with_cryptography(self, pfx, key_pair, certificate):
        loaded = crypto_pkcs12.load_pkcs12(pfx, _PASSWORD.encode())
        assert loaded.key is not None
        assert _private_der(key_pair) == loaded.key.private_bytes(
            encoding=serialization.Encoding.DER,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )
        assert loaded.cert is not None
        assert loaded.cert.certificate == certificate.certificate
        assert loaded.cert.friendly_name == _OWNER.encode()
        assert loaded.additional_certs == []

    def test_cryptography_rejects_wrong_password(self, pfx):
        with pytest.raises(ValueError):
            crypto_pkcs12.load_pkcs12(pfx, b"wrong")

    def test_bag_order_and_attributes(self, pfx, certificate):
        bags = read_pkcs12(pfx, _PASSWORD)
        assert [b.is_certificate for b in bags] == [True, False]
        assert [b.is_key for b in bags] == [False, True]

        local_key_id = hashlib.sha1(certificate.der).digest()  # noqa: S324
        for bag in bags:
            assert bag.local_key_id == local_key_id
            assert bag.friendly_name == _OWNER

    def test_bag_values(self, pfx, key_pair, certificate):
        cert_bag, key_bag = read_pkcs12(pfx, _PASSWORD)
        assert cert_bag.value == certificate.der
        assert key_bag.value == _private_der(key_pair)
        loaded = serialization.load_der_private_key(key_bag.value, password=None)
        assert key_pair_from_private_key(loaded).public_key.public_numbers() == (
            key_pair.public_key.public_numbers()
        )

    def test_fresh_salts_each_build(self, key_pair, certificate, pfx):
        again = build_pkcs12(key_pair, certificate, _OWNER, _PASSWORD, iterations=_ITERATIONS)
        assert again != pfx

    def test_unicode_password(self, key_pair, certificate):
        data = build_pkcs12(key_pair, certificate, _OWNER, "pässwörd", iterations=_ITERATIONS)
        assert len(read_pkcs12(data, "pässwörd")) == 2

    def test_empty_password_rejected(self, key_pair, certificate):
        with pytest.raises(InvalidArgumentError):
            build_pkcs12(key_pair, certificate, _OWNER, "", iterations=_ITERATIONS)

    @pytest.mark.parametrize("owner", ["", "x" * 301])
    def test_owner_bounds(self, key_pair, certificate, owner):
        with pytest.raises(InvalidArgumentError):
            build_pkcs12(key_pair, certificate, owner, _PASSWORD, iterations=_ITERATIONS)


class TestReadPkcs12:
    def test_wrong_password(self, pfx):
        with pytest.raises(DecryptionFailedError):
            read_pkcs12(pfx, "wrong")

    def test_garbage(self):
        with pytest.raises(MalformedInputError):
            read_pkcs12(b"not a pfx", _PASSWORD)

    def test_tampered_mac(self, pfx):
        tampered = pfx[:-1] + bytes([pfx[-1] ^ 0x01])
        with pytest.raises((DecryptionFailedError, MalformedInputError)):
            read_pkcs12(tampered, _PASSWORD)

    def test_reads_cryptography_output(self, key_pair, certificate):
        encryption = (
            serialization.PrivateFormat.PKCS12.encryption_builder()
            .kdf_rounds(_ITERATIONS)
            .key_cert_algorithm(crypto_pkcs12.PBES.PBESv2SHA256AndAES256CBC)
            .hmac_hash(hashes.SHA256())
            .build(_PASSWORD.encode())
        )
        data = crypto_pkcs12.serialize_key_and_certificates(
            _OWNER.encode(),
            key_pair.private_key,
            certificate.certificate,
            None,
            encryption,
        )
        bags = read_pkcs12(data, _PASSWORD)
        assert any(b.is_certificate and b.value == certificate.der for b in bags)
        assert any(b.is_key and b.value == _private_der(key_pair) for b in bags)

    def test_decodes_against_rfc7292_schema(self, pfx):
        decoded = asn1.decode_der(pfx, rfc7292.PFX())
        assert int(decoded["version"]) == 3
        assert decoded["authSafe"]["contentType"] == rfc5652.id_data
        assert int(decoded["macData"]["iterations"]) == _ITERATIONS

    def test_default_mac_iterations(self, key_pair, certificate):
        data = build_pkcs12(key_pair, certificate, _OWNER, _PASSWORD, iterations=1)
        assert int(asn1.decode_der(data, rfc7292.PFX())["macData"]["iterations"]) == 1
        bags = read_pkcs12(data, _PASSWORD)
        assert [b.is_certificate for b in bags] == [True, False]


class TestPackagePkcs12:
    @pytest.fixture()
    def package_args(self, key_pair, certificate):
        return {
            "key_pair": key_pair,
            "certificate": certificate,
            "owner_id": _OWNER,
            "password": _PASSWORD,
            "filename": "certificate.p12",
            "downloader": MagicMock(),
            "iterations": _ITERATIONS,
        }

    def test_downloads_result(self, package_args):
        data = package_pkcs12(**package_args)
        package_args["downloader"].download_file.assert_called_once_with(
            "certificate.p12",
            ContentType.PKCS12,
            data,
        )
        assert ContentType.PKCS12 == "application/pkcs12"
        assert len(read_pkcs12(data, _PASSWORD)) == 2

    @pytest.mark.parametrize(
        "overrides",
        [
            {"key_pair": None},
            {"certificate": None},
            {"password": ""},
            {"filename": ""},
            {"owner_id": ""},
            {"owner_id": "x" * 301},
        ],
    )
    def test_missing_inputs_checked_first(self, package_args, overrides):
        package_args.update(overrides)
        with patch("keypack.pki.pkcs12.build_pkcs12") as build:
            with pytest.raises(InvalidArgumentError):
                package_pkcs12(**package_args)
        build.assert_not_called()
        package_args["downloader"].download_file.assert_not_called()


class TestPkcs12Kdf:
    def test_length(self):
        assert len(pkcs12_kdf("pw", b"salt1234", 10, 3, 32)) == 32
        assert len(pkcs12_kdf("pw", b"salt1234", 10, 1, 100)) == 100

    def test_prefix_consistent(self):
        long = pkcs12_kdf("pw", b"salt1234", 10, 1, 100)
        assert pkcs12_kdf("pw", b"salt1234", 10, 1, 32) == long[:32]

    def test_diversifier_matters(self):
        assert pkcs12_kdf("pw", b"salt", 5, 1, 20) != pkcs12_kdf("pw", b"salt", 5, 3, 20)

    def test_sha1_output(self):
        assert len(pkcs12_kdf("pw", b"salt", 5, 3, 20, "sha1")) == 20

"""PKCS#12 subcommand.

Usage::

    keypack pkcs12 key.pem certificate.pem --new-password-env P12_PASSWORD
"""

from __future__ import annotations

from keypack.cli.commands.common import emit, load_key, open_workbench, password_from_env
from keypack.files import read_file_as_text


def run_pkcs12(config, args) -> None:
    """Bundle the key and its certificate into a password-protected PKCS#12 file."""
    password = password_from_env(args.new_password_env, required=True)
    cert_text = read_file_as_text(args.certificate)
    with open_workbench(config, args) as bench:
        pair = load_key(bench, args)
        cert = bench.load_certificate(cert_text, args.owner).result()
        data = bench.package_pkcs12(pair, cert, password, args.owner, args.out).result()

    name = args.out or config.settings.output.pkcs12_filename
    emit(f"Wrote PKCS#12 file to {name} ({len(data)} bytes)")

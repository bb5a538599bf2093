"""Certificate subcommand: parse and validate a certificate file.

Usage::

    keypack cert certificate.pem --owner user@example.com
"""

from __future__ import annotations

from keypack.cli.commands.common import emit, open_workbench
from keypack.files import read_file_as_text
from keypack.pki.certificate import format_timestamp


def run_cert(config, args) -> None:
    """Check the certificate's validity window and owner, then print it."""
    pem_text = read_file_as_text(args.certificate)
    with open_workbench(config, args) as bench:
        cert = bench.load_certificate(pem_text, args.owner).result()

    emit(f"Subject:       {cert.subject}")
    emit(f"Serial number: {cert.serial_number}")
    emit(f"Not before:    {format_timestamp(cert.not_before)}")
    emit(f"Not after:     {format_timestamp(cert.not_after)}")

"""CSR subcommand.

Usage::

    keypack csr key.pem --owner user@example.com -o request.csr
"""

from __future__ import annotations

from keypack.cli.commands.common import emit, load_key, open_workbench


def run_csr(config, args) -> None:
    """Build a CSR for the given key and save it."""
    with open_workbench(config, args) as bench:
        pair = load_key(bench, args)
        pem = bench.save_csr(pair, args.owner, args.out).result()

    name = args.out or config.settings.output.csr_filename
    emit(f"Wrote certificate signing request to {name}")
    if args.print:
        emit(pem.rstrip("\n"))

"""keypack command-line entry point.

Usage::

    keypack generate --password-env KEY_PASSWORD
    keypack -c keypack.yaml --validate-only
    keypack describe key.pem
    keypack csr key.pem --owner user@example.com
    keypack cert certificate.pem --owner user@example.com
    keypack pkcs12 key.pem certificate.pem --new-password-env P12_PASSWORD
    python -m keypack.cli.main describe key.pem
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

log = logging.getLogger(__name__)


def _get_version() -> str:
    from keypack import __version__

    return __version__


def _add_key_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("key", metavar="KEY", help="PKCS#8 private key PEM file.")
    parser.add_argument(
        "--password-env",
        metavar="VAR",
        help="Environment variable holding the password of an encrypted key.",
    )


def _add_out_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-o",
        "--out",
        metavar="NAME",
        help="Output file name inside the output directory (default from config).",
    )


def _add_owner_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--owner",
        metavar="ID",
        help="Owner identifier, 1-300 characters (default: owner.id from config).",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="keypack",
        description="keypack: RSA keys, CSRs and PKCS#12 bundles for client certificates",
    )
    parser.add_argument(
        "-c",
        "--config",
        metavar="PATH",
        help="Path to the configuration file (YAML or JSON).",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        default=False,
        help="Enable debug output (full tracebacks, verbose logging).",
    )
    parser.add_argument(
        "--validate-only",
        action="store_true",
        default=False,
        help="Validate the configuration and exit.",
    )
    parser.add_argument(
        "--output-dir",
        metavar="DIR",
        help="Directory for generated files (overrides output.directory).",
    )
    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=f"%(prog)s {_get_version()}",
    )

    subparsers = parser.add_subparsers(dest="command")

    # generate
    generate = subparsers.add_parser("generate", help="Generate an RSA key pair")
    generate.add_argument(
        "--password-env",
        metavar="VAR",
        help="Environment variable holding a password to encrypt the key with.",
    )
    _add_out_argument(generate)

    # export
    export = subparsers.add_parser("export", help="Re-export a private key")
    _add_key_arguments(export)
    export.add_argument(
        "--new-password-env",
        metavar="VAR",
        help="Environment variable holding the new password (omit for no encryption).",
    )
    _add_out_argument(export)

    # describe
    describe = subparsers.add_parser("describe", help="Show key type and fingerprints")
    _add_key_arguments(describe)

    # csr
    csr = subparsers.add_parser("csr", help="Build a certificate signing request")
    _add_key_arguments(csr)
    _add_owner_argument(csr)
    _add_out_argument(csr)
    csr.add_argument(
        "--print",
        action="store_true",
        default=False,
        help="Also print the CSR PEM to stdout.",
    )

    # cert
    cert = subparsers.add_parser("cert", help="Validate a certificate")
    cert.add_argument("certificate", metavar="CERT", help="Certificate PEM file.")
    _add_owner_argument(cert)

    # pkcs12
    pkcs12 = subparsers.add_parser("pkcs12", help="Bundle key and certificate as PKCS#12")
    _add_key_arguments(pkcs12)
    pkcs12.add_argument("certificate", metavar="CERT", help="Certificate PEM file.")
    pkcs12.add_argument(
        "--new-password-env",
        metavar="VAR",
        required=True,
        help="Environment variable holding the PKCS#12 password.",
    )
    _add_owner_argument(pkcs12)
    _add_out_argument(pkcs12)

    return parser


def _print_error(message: str) -> None:
    """Print a user-facing error to stderr."""
    sys.stderr.write(f"Error: {message}\n")


def main(argv: list[str] | None = None) -> None:
    """CLI entry point.  Parses arguments, loads config, runs the command."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    # -- resolve config path ---
    config_path = Path(args.config) if args.config else None
    if config_path is not None and not config_path.is_file():
        _print_error(f"configuration file not found: {config_path}")
        sys.exit(1)

    # -- bootstrap logging early (basic stderr until config is loaded) ---
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )

    # -- load & validate config ---
    try:
        from keypack.config import ConfigValidationError, KeypackConfig

        config = KeypackConfig(config_file=config_path)
    except ConfigValidationError as exc:
        _print_error(str(exc))
        sys.exit(1)
    except Exception as exc:
        if args.debug:
            raise
        _print_error(f"failed to load configuration: {exc}")
        sys.exit(1)

    # -- replace bootstrap logging with structured logging ---
    from keypack.logging import configure_logging

    configure_logging(config.settings.logging)
    if args.debug:
        logging.getLogger("keypack").setLevel(logging.DEBUG)

    if args.validate_only:
        _print_settings_summary(config)
        sys.exit(0)

    if args.command is None:
        parser.print_help(sys.stderr)
        sys.exit(2)

    from keypack.core.errors import KeypackError

    try:
        _dispatch(config, args)
    except KeypackError as exc:
        if args.debug:
            raise
        _print_error(str(exc))
        sys.exit(1)


def _dispatch(config, args) -> None:
    command = args.command

    if command == "generate":
        from keypack.cli.commands.key import run_generate

        run_generate(config, args)
    elif command == "export":
        from keypack.cli.commands.key import run_export

        run_export(config, args)
    elif command == "describe":
        from keypack.cli.commands.key import run_describe

        run_describe(config, args)
    elif command == "csr":
        from keypack.cli.commands.csr import run_csr

        run_csr(config, args)
    elif command == "cert":
        from keypack.cli.commands.cert import run_cert

        run_cert(config, args)
    elif command == "pkcs12":
        from keypack.cli.commands.pkcs12 import run_pkcs12

        run_pkcs12(config, args)


def _print_settings_summary(config) -> None:
    """Print a short summary of the loaded configuration."""
    s = config.settings
    lines = [
        f"Configuration OK ({config!r})",
        f"  keys:    RSA-{s.keys.size}, e={s.keys.public_exponent}",
        f"  workers: {s.workers.max_workers}",
        f"  output:  {s.output.directory}",
        f"  owner:   {s.owner.id or '-'}",
        f"  logging: {s.logging.level} ({s.logging.format})",
    ]
    sys.stdout.write("\n".join(lines) + "\n")


if __name__ == "__main__":
    main()

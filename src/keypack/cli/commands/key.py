"""Key subcommands: generate, export, describe.

Usage::

    keypack generate --password-env KEY_PASSWORD
    keypack export key.pem --password-env OLD --new-password-env NEW -o key-new.pem
    keypack describe key.pem --password-env KEY_PASSWORD
"""

from __future__ import annotations

from keypack.cli.commands.common import emit, load_key, open_workbench, password_from_env


def _print_description(description: dict[str, str]) -> None:
    emit(f"Key type:            {description['key_type']}")
    emit(f"SHA-1 fingerprint:   {description['sha1']}")
    emit(f"SHA-256 fingerprint: {description['sha256']}")


def run_generate(config, args) -> None:
    """Generate a key pair and save its private key."""
    password = password_from_env(args.password_env)
    with open_workbench(config, args) as bench:
        pair = bench.generate_key_pair().result()
        encoded = bench.save_private_key(pair, password, args.out).result()
        description = bench.describe_key(pair).result()

    name = args.out or config.settings.output.key_filename
    emit(f"Wrote {'encrypted ' if encoded.encrypted else ''}private key to {name}")
    _print_description(description)


def run_export(config, args) -> None:
    """Re-export a private key, optionally under a new password."""
    new_password = password_from_env(args.new_password_env)
    with open_workbench(config, args) as bench:
        pair = load_key(bench, args)
        encoded = bench.save_private_key(pair, new_password, args.out).result()

    name = args.out or config.settings.output.key_filename
    emit(f"Wrote {'encrypted ' if encoded.encrypted else ''}private key to {name}")


def run_describe(config, args) -> None:
    """Print key type and fingerprints."""
    with open_workbench(config, args) as bench:
        pair = load_key(bench, args)
        description = bench.describe_key(pair).result()
    _print_description(description)

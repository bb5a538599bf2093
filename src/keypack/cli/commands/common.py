"""Helpers shared by the subcommand handlers."""

from __future__ import annotations

import os
import sys
from typing import TYPE_CHECKING

from keypack.core.errors import InvalidArgumentError
from keypack.files import DirectoryDownloader, read_file_as_text
from keypack.services import KeyWorkbench

if TYPE_CHECKING:
    import argparse

    from keypack.config import KeypackConfig
    from keypack.pki import KeyPair


def emit(line: str = "") -> None:
    """Write one line of command output to stdout."""
    sys.stdout.write(f"{line}\n")


def password_from_env(var_name: str | None, *, required: bool = False) -> str | None:
    """Read a password from the environment variable *var_name*.

    Passwords are never taken from the command line, where they would
    end up in shell history and process listings.
    """
    if not var_name:
        if required:
            msg = "a password is required; name the variable holding it with --new-password-env"
            raise InvalidArgumentError(msg)
        return None
    value = os.environ.get(var_name)
    if value is None:
        msg = f"environment variable '{var_name}' is not set"
        raise InvalidArgumentError(msg)
    return value


def open_workbench(config: KeypackConfig, args: argparse.Namespace) -> KeyWorkbench:
    directory = getattr(args, "output_dir", None) or config.settings.output.directory
    return KeyWorkbench(config.settings, DirectoryDownloader(directory))


def load_key(bench: KeyWorkbench, args: argparse.Namespace) -> KeyPair:
    """Load the key named by ``args.key``, decrypting with ``--password-env``."""
    pem_text = read_file_as_text(args.key)
    password = password_from_env(getattr(args, "password_env", None))
    return bench.load_key_pair(pem_text, password).result()

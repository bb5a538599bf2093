"""Typed, frozen dataclasses for every configuration section.

This module is the **single source of truth** for default values.
JSON Schema defaults exist only for documentation; these builders
are what the application actually reads.

Access pattern::

    from keypack.config import get_config

    keys = get_config().settings.keys
    print(keys.size, keys.public_exponent)
"""

from __future__ import annotations

from dataclasses import dataclass

from keypack.pki.keys import DEFAULT_KEY_SIZE, DEFAULT_PUBLIC_EXPONENT

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LoggingSettings:
    """Log level and output format (``text`` or ``json``)."""

    level: str
    format: str


def _build_logging(data: dict | None) -> LoggingSettings:
    d = data or {}
    return LoggingSettings(
        level=d.get("level", "INFO"),
        format=d.get("format", "text"),
    )


# ---------------------------------------------------------------------------
# Keys
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class KeySettings:
    """Parameters for newly generated RSA key pairs."""

    size: int
    public_exponent: int


def _build_keys(data: dict | None) -> KeySettings:
    d = data or {}
    return KeySettings(
        size=d.get("size", DEFAULT_KEY_SIZE),
        public_exponent=d.get("public_exponent", DEFAULT_PUBLIC_EXPONENT),
    )


# ---------------------------------------------------------------------------
# Workers
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class WorkerSettings:
    """Thread pool used by :class:`keypack.services.KeyWorkbench`."""

    max_workers: int


def _build_workers(data: dict | None) -> WorkerSettings:
    d = data or {}
    return WorkerSettings(
        max_workers=d.get("max_workers", 2),
    )


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class OutputSettings:
    """Where generated files are written and what they are called."""

    directory: str
    key_filename: str
    csr_filename: str
    pkcs12_filename: str


def _build_output(data: dict | None) -> OutputSettings:
    d = data or {}
    return OutputSettings(
        directory=d.get("directory", "."),
        key_filename=d.get("key_filename", "private_key.pem"),
        csr_filename=d.get("csr_filename", "request.csr"),
        pkcs12_filename=d.get("pkcs12_filename", "certificate.p12"),
    )


# ---------------------------------------------------------------------------
# Owner
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class OwnerSettings:
    """Default owner identifier used when a command does not name one."""

    id: str | None


def _build_owner(data: dict | None) -> OwnerSettings:
    d = data or {}
    return OwnerSettings(id=d.get("id"))


# ---------------------------------------------------------------------------
# Top-level
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class KeypackSettings:
    """Root of the typed settings tree."""

    logging: LoggingSettings
    keys: KeySettings
    workers: WorkerSettings
    output: OutputSettings
    owner: OwnerSettings


def build_settings(data: dict | None) -> KeypackSettings:
    """Build the full typed settings tree from raw config data.

    Called once during :class:`KeypackConfig` initialization after
    environment-variable resolution and validation.
    """
    d = data or {}
    return KeypackSettings(
        logging=_build_logging(d.get("logging")),
        keys=_build_keys(d.get("keys")),
        workers=_build_workers(d.get("workers")),
        output=_build_output(d.get("output")),
        owner=_build_owner(d.get("owner")),
    )

"""Asynchronous facade over the key material operations.

Key generation and every PBKDF2-backed operation take from a fraction
of a second to several seconds.  :class:`KeyWorkbench` runs each call
on a :class:`~concurrent.futures.ThreadPoolExecutor` and returns a
:class:`~concurrent.futures.Future`, so a caller can keep a UI or event
loop responsive::

    with KeyWorkbench(settings) as bench:
        pair = bench.generate_key_pair().result()
        csr = await asyncio.wrap_future(bench.build_csr(pair))

Each operation is independent; the only state carried between calls is
the :class:`KeyPair` the caller holds.  Failures surface as the typed
:class:`~keypack.core.errors.KeypackError` raised by ``Future.result()``
and are logged at DEBUG only; reporting them is up to the caller.
Cancelling a running future does not interrupt key derivation; the
result is simply discarded.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from typing import TYPE_CHECKING, Any

from keypack.config.settings import KeypackSettings, build_settings
from keypack.core.errors import InvalidArgumentError, KeypackError
from keypack.core.types import ContentType, FingerprintHash
from keypack.files.download import DirectoryDownloader
from keypack.pki import certificate, csr, keys, pkcs12
from keypack.pki.fingerprint import fingerprint, key_type

if TYPE_CHECKING:
    from collections.abc import Callable

    from keypack.files.download import FileDownloader
    from keypack.pki.certificate import ParsedCertificate
    from keypack.pki.keys import EncodedPrivateKey, KeyPair

log = logging.getLogger(__name__)


class KeyWorkbench:
    """Run key, CSR, certificate and PKCS#12 operations off the caller's thread.

    Parameters
    ----------
    settings:
        Full settings tree; defaults are used when omitted.
    downloader:
        Destination for generated files.  Defaults to a
        :class:`DirectoryDownloader` on ``settings.output.directory``.

    """

    def __init__(
        self,
        settings: KeypackSettings | None = None,
        downloader: FileDownloader | None = None,
    ) -> None:
        self._settings = settings or build_settings({})
        self._downloader = downloader or DirectoryDownloader(self._settings.output.directory)
        self._executor = ThreadPoolExecutor(
            max_workers=self._settings.workers.max_workers,
            thread_name_prefix="keypack-worker",
        )
        self._shutdown_event = threading.Event()
        self._lock = threading.Lock()
        self._completed = 0
        self._failed = 0

    # -- counters -----------------------------------------------------------

    @property
    def completed_count(self) -> int:
        """Operations that finished, successfully or not."""
        with self._lock:
            return self._completed

    @property
    def failed_count(self) -> int:
        with self._lock:
            return self._failed

    @property
    def is_shutdown(self) -> bool:
        return self._shutdown_event.is_set()

    @property
    def downloader(self) -> FileDownloader:
        return self._downloader

    # -- execution ----------------------------------------------------------

    def _submit(self, operation: str, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Future:
        if self._shutdown_event.is_set():
            msg = f"cannot run '{operation}': workbench is shut down"
            raise RuntimeError(msg)
        log.debug("Queued %s", operation)
        return self._executor.submit(self._timed, operation, fn, *args, **kwargs)

    def _timed(self, operation: str, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:  # noqa: ANN401
        start = time.monotonic()
        try:
            result = fn(*args, **kwargs)
        except KeypackError as exc:
            elapsed_ms = (time.monotonic() - start) * 1000
            self._count(failed=True)
            log.debug(
                "%s failed: %s",
                operation,
                exc,
                extra={
                    "operation": operation,
                    "outcome": "error",
                    "error_kind": str(exc.kind),
                    "duration_ms": round(elapsed_ms, 2),
                },
            )
            raise
        except Exception:
            elapsed_ms = (time.monotonic() - start) * 1000
            self._count(failed=True)
            log.exception(
                "%s raised an unexpected error",
                operation,
                extra={"operation": operation, "outcome": "error", "duration_ms": round(elapsed_ms, 2)},
            )
            raise

        elapsed_ms = (time.monotonic() - start) * 1000
        self._count(failed=False)
        log.info(
            "%s completed in %.0f ms",
            operation,
            elapsed_ms,
            extra={"operation": operation, "outcome": "success", "duration_ms": round(elapsed_ms, 2)},
        )
        return result

    def _count(self, *, failed: bool) -> None:
        with self._lock:
            self._completed += 1
            if failed:
                self._failed += 1

    def _owner(self, owner_id: str | None) -> str:
        owner = owner_id if owner_id is not None else self._settings.owner.id
        if owner is None:
            msg = "no owner identifier given and none configured"
            raise InvalidArgumentError(msg)
        return owner

    # -- key material ---------------------------------------------------------

    def generate_key_pair(self) -> Future[KeyPair]:
        """Generate an RSA key pair with the configured size and exponent."""
        return self._submit(
            "generate_key_pair",
            keys.generate_key_pair,
            self._settings.keys.size,
            self._settings.keys.public_exponent,
        )

    def load_key_pair(self, pem_text: str, password: str | None = None) -> Future[KeyPair]:
        return self._submit("load_key_pair", keys.load_key_pair, pem_text, password)

    def export_private_key(
        self,
        key_pair: KeyPair,
        password: str | None = None,
    ) -> Future[EncodedPrivateKey]:
        return self._submit("export_private_key", keys.export_private_key, key_pair, password)

    def save_private_key(
        self,
        key_pair: KeyPair,
        password: str | None = None,
        filename: str | None = None,
    ) -> Future[EncodedPrivateKey]:
        """Export the private key and deliver it as a PEM file."""
        name = filename or self._settings.output.key_filename

        def _save() -> EncodedPrivateKey:
            encoded = keys.export_private_key(key_pair, password)
            self._downloader.download_file(name, ContentType.PEM, encoded.to_pem())
            return encoded

        return self._submit("save_private_key", _save)

    def describe_key(self, key_pair: KeyPair) -> Future[dict[str, str]]:
        """Key type label and SHA-1/SHA-256 fingerprints of *key_pair*."""

        def _describe() -> dict[str, str]:
            return {
                "key_type": key_type(key_pair),
                "sha1": fingerprint(key_pair.public_key, FingerprintHash.SHA1),
                "sha256": fingerprint(key_pair.public_key, FingerprintHash.SHA256),
            }

        return self._submit("describe_key", _describe)

    # -- CSR ----------------------------------------------------------------

    def build_csr(self, key_pair: KeyPair, owner_id: str | None = None) -> Future[str]:
        return self._submit("build_csr", lambda: csr.build_csr(key_pair, self._owner(owner_id)))

    def save_csr(
        self,
        key_pair: KeyPair,
        owner_id: str | None = None,
        filename: str | None = None,
    ) -> Future[str]:
        """Build the CSR and deliver it as a PEM file."""
        name = filename or self._settings.output.csr_filename

        def _save() -> str:
            pem = csr.build_csr(key_pair, self._owner(owner_id))
            self._downloader.download_file(name, ContentType.PEM, pem)
            return pem

        return self._submit("save_csr", _save)

    # -- certificate / PKCS#12 ----------------------------------------------

    def load_certificate(
        self,
        pem_text: str,
        owner_id: str | None = None,
    ) -> Future[ParsedCertificate]:
        return self._submit(
            "load_certificate",
            lambda: certificate.load_certificate(pem_text, self._owner(owner_id)),
        )

    def package_pkcs12(
        self,
        key_pair: KeyPair | None,
        cert: ParsedCertificate | None,
        password: str,
        owner_id: str | None = None,
        filename: str | None = None,
    ) -> Future[bytes]:
        """Build the PKCS#12 file and deliver it through the downloader."""
        name = filename if filename is not None else self._settings.output.pkcs12_filename
        return self._submit(
            "package_pkcs12",
            lambda: pkcs12.package_pkcs12(
                key_pair,
                cert,
                self._owner(owner_id),
                password,
                name,
                self._downloader,
            ),
        )

    # -- lifecycle ----------------------------------------------------------

    def shutdown(self, *, wait: bool = True) -> None:
        """Stop accepting work; pending futures still complete when *wait* is set."""
        if self._shutdown_event.is_set():
            return
        self._shutdown_event.set()
        self._executor.shutdown(wait=wait, cancel_futures=not wait)
        log.debug(
            "Workbench shut down (completed=%d, failed=%d)",
            self.completed_count,
            self.failed_count,
        )

    def __enter__(self) -> KeyWorkbench:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.shutdown()

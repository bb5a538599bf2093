"""Delivery of generated files to the user.

The core never writes files itself; every product (private key, CSR,
PKCS#12) goes through a :class:`FileDownloader`.
"""

from __future__ import annotations

import abc
import logging
import os
from pathlib import Path

from keypack.core.errors import InvalidArgumentError

log = logging.getLogger(__name__)

_FILE_MODE = 0o600
_DIR_MODE = 0o700


class FileDownloader(abc.ABC):
    """Receives a finished file and hands it to the user."""

    @abc.abstractmethod
    def download_file(self, name: str, content_type: str, data: bytes | str) -> None:
        """Deliver *data* under the file name *name*.

        Parameters
        ----------
        name:
            Suggested file name, without directory components.
        content_type:
            MIME type, e.g. ``application/x-pem-file``.
        data:
            File contents; text is written as UTF-8.

        """


class DirectoryDownloader(FileDownloader):
    """Write each file into a local directory, readable by the owner only.

    Existing files are replaced.  The directory is created on first use.
    """

    def __init__(self, directory: str | Path) -> None:
        self._directory = Path(directory)

    @property
    def directory(self) -> Path:
        return self._directory

    def path_for(self, name: str) -> Path:
        if not name or Path(name).name != name or name in (".", ".."):
            msg = f"'{name}' is not a plain file name"
            raise InvalidArgumentError(msg)
        return self._directory / name

    def download_file(self, name: str, content_type: str, data: bytes | str) -> None:
        path = self.path_for(name)
        payload = data.encode("utf-8") if isinstance(data, str) else data

        self._directory.mkdir(mode=_DIR_MODE, parents=True, exist_ok=True)
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, _FILE_MODE)
        with os.fdopen(fd, "wb") as f:
            f.write(payload)
        # O_CREAT leaves the mode of an existing file unchanged.
        path.chmod(_FILE_MODE)

        log.info(
            "Wrote %s (%s, %d bytes)",
            path,
            content_type,
            len(payload),
            extra={"file_name": name, "content_type": str(content_type)},
        )

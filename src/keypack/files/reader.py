"""Read user-supplied key and certificate files as text."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import IO

from keypack.core.errors import MalformedInputError

log = logging.getLogger(__name__)


def normalize_newlines(text: str) -> str:
    """Convert ``\\r\\n`` and lone ``\\r`` line endings to ``\\n``."""
    return text.replace("\r\n", "\n").replace("\r", "\n")


def read_file_as_text(source: str | Path | IO) -> str:
    """Return the contents of *source* as newline-normalised text.

    Parameters
    ----------
    source:
        A filesystem path, or an open file object in text or binary mode.

    Raises
    ------
    MalformedInputError
        If the file cannot be read or is not UTF-8 text.

    """
    try:
        if isinstance(source, (str, Path)):
            raw = Path(source).read_bytes()
            name = str(source)
        else:
            raw = source.read()
            name = getattr(source, "name", "<stream>")
        text = raw.decode("utf-8-sig") if isinstance(raw, bytes) else raw
    except OSError as exc:
        msg = f"cannot read '{source}'"
        raise MalformedInputError(msg, cause=str(exc)) from exc
    except UnicodeDecodeError as exc:
        msg = f"'{source}' is not UTF-8 text"
        raise MalformedInputError(msg, cause=str(exc)) from exc

    log.debug("Read %d characters from %s", len(text), name)
    return normalize_newlines(text)

"""Owner identifier validation.

The owner identifier is the CSR subject common name and the PKCS#12
friendly name.  Every entry point that accepts one calls
:func:`validate_owner_id` first.
"""

from __future__ import annotations

from keypack.core.errors import InvalidArgumentError
from keypack.core.types import OWNER_ID_MAX_LENGTH, OWNER_ID_MIN_LENGTH


def owner_id_problem(owner_id: object) -> str | None:
    """Return a description of what is wrong with *owner_id*, or ``None``."""
    if not isinstance(owner_id, str):
        return f"owner identifier must be a string, not {type(owner_id).__name__}"
    length = len(owner_id)
    if not OWNER_ID_MIN_LENGTH <= length <= OWNER_ID_MAX_LENGTH:
        return (
            f"owner identifier length must be between {OWNER_ID_MIN_LENGTH} "
            f"and {OWNER_ID_MAX_LENGTH} characters (got {length})"
        )
    return None


def validate_owner_id(owner_id: str) -> str:
    """Return *owner_id* unchanged if its length is within bounds.

    Raises
    ------
    InvalidArgumentError
        If the identifier is not a string of 1 to 300 characters.

    """
    problem = owner_id_problem(owner_id)
    if problem is not None:
        raise InvalidArgumentError(problem)
    return owner_id

"""Logging subsystem for keypack.

Public API::

    from keypack.logging import configure_logging

    configure_logging(settings.logging)
"""

from keypack.logging.setup import configure_logging

__all__ = ["configure_logging"]

"""Service layer: the asynchronous operation facade.

Public API::

    from keypack.services import KeyWorkbench
"""

from keypack.services.workbench import KeyWorkbench

__all__ = ["KeyWorkbench"]

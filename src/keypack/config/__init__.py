"""Configuration subsystem for keypack.

Public API::

    from keypack.config import get_config, KeypackConfig

    # At startup (CLI only):
    KeypackConfig(config_file="keypack.yaml")

    # Everywhere else:
    cfg  = get_config()
    size = cfg.settings.keys.size          # typed access
    out  = cfg.get("output.directory")     # dynamic dot-path
"""

from keypack.config.keypack_config import (
    ConfigValidationError,
    KeypackConfig,
    get_config,
)
from keypack.config.settings import (
    KeypackSettings,
    KeySettings,
    LoggingSettings,
    OutputSettings,
    OwnerSettings,
    WorkerSettings,
    build_settings,
)

__all__ = [
    "ConfigValidationError",
    "KeySettings",
    "KeypackConfig",
    "KeypackSettings",
    "LoggingSettings",
    "OutputSettings",
    "OwnerSettings",
    "WorkerSettings",
    "build_settings",
    "get_config",
]

"""keypack configuration loader.

Lifecycle::

    # 1. CLI creates the singleton (once, at startup)
    KeypackConfig(config_file="keypack.yaml")

    # 2. Any module retrieves it afterwards
    from keypack.config import get_config
    cfg = get_config()
    cfg.settings.keys.size  # typed access

    # 3. Dynamic access
    cfg.get("output.directory", default=".")

The file is YAML (``.yaml``/``.yml``) or JSON.  ``${VAR}`` and
``${VAR:-default}`` string values are resolved from the environment
before the bundled JSON schema is applied.
"""

from __future__ import annotations

import json
import logging
import os
import re
from pathlib import Path
from typing import Any

import jsonschema
import yaml

from keypack.config.settings import KeypackSettings, build_settings
from keypack.core.owner import owner_id_problem

_SCHEMA_PATH = Path(__file__).parent / "schema.json"

_ENV_RE = re.compile(
    r"^\$\{([^}:]+?)(?::-(.*))?\}$",
    re.DOTALL,
)

_MIN_RSA_KEY_SIZE = 2048

log = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Module-level singleton reference
# ---------------------------------------------------------------------------
_instance: KeypackConfig | None = None


def get_config() -> KeypackConfig:
    """Return the initialised configuration singleton.

    Raises :class:`RuntimeError` if :class:`KeypackConfig` has not been
    created yet (i.e. the CLI entry point has not run).
    """
    if _instance is None:
        msg = "Configuration not initialised. KeypackConfig must be created before calling get_config()."
        raise RuntimeError(msg)
    return _instance


# ---------------------------------------------------------------------------
# Validation error collector
# ---------------------------------------------------------------------------


class ConfigValidationError(Exception):
    """Raised when loading or validation finds one or more problems."""

    def __init__(self, errors: list[str]) -> None:
        self.errors = errors
        body = "\n".join(f"  - {e}" for e in errors)
        super().__init__(f"Configuration validation failed:\n{body}")


# ---------------------------------------------------------------------------
# Environment variable resolution
# ---------------------------------------------------------------------------


def _resolve_value(value: str, path: str) -> str:
    """Replace ``${VAR}`` or ``${VAR:-default}`` with env var value."""
    match = _ENV_RE.match(value)
    if match is None:
        return value
    var_name = match.group(1)
    fallback = match.group(2)
    resolved = os.environ.get(var_name)
    if resolved is not None:
        return resolved
    if fallback is not None:
        return fallback
    raise ConfigValidationError(
        [
            f"Environment variable '${{{var_name}}}' referenced "
            f"at '{path}' is not set and has no default",
        ],
    )


def _resolve_env_vars(
    data: Any,  # noqa: ANN401
    path: str = "",
) -> None:
    """Walk *data* in-place and resolve ``${VAR}``/``${VAR:-default}`` strings."""
    if isinstance(data, dict):
        for key in data:
            child_path = f"{path}.{key}" if path else key
            if isinstance(data[key], str):
                data[key] = _resolve_value(data[key], child_path)
            elif isinstance(data[key], (dict, list)):
                _resolve_env_vars(data[key], child_path)
    elif isinstance(data, list):
        for idx, item in enumerate(data):
            child_path = f"{path}[{idx}]"
            if isinstance(item, str):
                data[idx] = _resolve_value(item, child_path)
            elif isinstance(item, (dict, list)):
                _resolve_env_vars(item, child_path)


def _read_file(config_file: Path) -> dict:
    try:
        with config_file.open(encoding="utf-8") as f:
            if config_file.suffix in (".yaml", ".yml"):
                data = yaml.safe_load(f)
            else:
                data = json.load(f)
    except FileNotFoundError as exc:
        raise ConfigValidationError([f"config file '{config_file}' not found"]) from exc
    except (yaml.YAMLError, json.JSONDecodeError) as exc:
        raise ConfigValidationError([f"config file '{config_file}' is not valid: {exc}"]) from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        msg = f"config file '{config_file}' must contain a mapping at the top level"
        raise ConfigValidationError([msg])
    return data


def _schema_errors(data: dict) -> list[str]:
    with _SCHEMA_PATH.open(encoding="utf-8") as f:
        schema = json.load(f)
    validator = jsonschema.Draft202012Validator(schema)
    errors = []
    for error in sorted(validator.iter_errors(data), key=lambda e: list(e.absolute_path)):
        where = ".".join(str(p) for p in error.absolute_path) or "<root>"
        errors.append(f"{where}: {error.message}")
    return errors


# ---------------------------------------------------------------------------
# Config class
# ---------------------------------------------------------------------------


class KeypackConfig:
    """Central configuration for keypack.

    Without a ``config_file`` every section takes its defaults.  After
    construction the typed settings tree is available at
    :pyattr:`settings` and the raw dict via :pyattr:`data` /
    :pymeth:`get`.
    """

    def __init__(self, *, config_file: str | Path | None = None) -> None:
        """Load, resolve and validate the configuration.

        Parameters
        ----------
        config_file:
            Path to the YAML/JSON configuration file, or ``None`` for
            defaults only.

        Raises
        ------
        ConfigValidationError
            If the file cannot be read, fails the schema or fails the
            cross-field checks.

        """
        global _instance  # noqa: PLW0603

        self._source = str(config_file) if config_file is not None else None
        self._data: dict = _read_file(Path(config_file)) if config_file is not None else {}
        _resolve_env_vars(self._data)

        errors = _schema_errors(self._data)
        if errors:
            raise ConfigValidationError(errors)
        self.additional_checks()

        self._settings: KeypackSettings = build_settings(self._data)
        _instance = self
        log.debug("Configuration loaded from %s", self._source or "defaults")

    # -- typed access -------------------------------------------------------

    @property
    def settings(self) -> KeypackSettings:
        """Fully-typed, frozen settings tree."""
        return self._settings

    @property
    def data(self) -> dict:
        return self._data

    def get(self, path: str, default: Any = None) -> Any:  # noqa: ANN401
        """Look up a dot-separated *path* in the raw data."""
        node: Any = self._data
        for part in path.split("."):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    # -- cross-field validation ---------------------------------------------

    def additional_checks(self) -> None:
        """Semantic & cross-field validation, run after schema validation."""
        errors: list[str] = []

        keys = self._data.get("keys") or {}
        output = self._data.get("output") or {}
        owner = self._data.get("owner") or {}

        # -- keys --
        size = keys.get("size", _MIN_RSA_KEY_SIZE)
        if size < _MIN_RSA_KEY_SIZE:
            errors.append(f"keys.size must be at least {_MIN_RSA_KEY_SIZE} (got {size})")

        # -- owner --
        owner_id = owner.get("id")
        if owner_id is not None:
            problem = owner_id_problem(owner_id)
            if problem:
                errors.append(f"owner.id: {problem}")

        # -- output --
        names = {}
        for field in ("key_filename", "csr_filename", "pkcs12_filename"):
            name = output.get(field)
            if name is None:
                continue
            if "/" in name or "\\" in name:
                errors.append(f"output.{field} must be a bare file name (got '{name}')")
            if name in names:
                errors.append(f"output.{field} and output.{names[name]} are both '{name}'")
            names[name] = field

        directory = output.get("directory")
        if directory and not Path(directory).is_dir():
            log.warning("output.directory '%s' does not exist yet; it will be created", directory)

        if errors:
            raise ConfigValidationError(errors)

    # -- helpers ------------------------------------------------------------

    @classmethod
    def reset(cls) -> None:
        """Reset the singleton -- testing only."""
        global _instance  # noqa: PLW0603
        _instance = None

    def __repr__(self) -> str:
        return f"<KeypackConfig config_file={self._source or '-'}>"

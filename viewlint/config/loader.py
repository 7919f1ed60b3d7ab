"""Discovery and loading of ``viewlint_config.py`` files."""

from __future__ import annotations

import hashlib
import importlib.util
import logging
from pathlib import Path
from typing import Any, Mapping

from ..errors import ConfigurationError
from .schema import ConfigObject

logger = logging.getLogger(__name__)

CONFIG_FILE_NAMES = ("viewlint_config.py",)


def find_config_file(start: Path | None = None) -> Path | None:
    """Find the nearest config file by walking up from ``start`` (default: cwd)."""
    cur = (start or Path.cwd()).resolve()
    for p in (cur, *cur.parents):
        for name in CONFIG_FILE_NAMES:
            candidate = p / name
            if candidate.is_file():
                return candidate
    return None


def load_config_file(path: Path) -> Any:
    """
    Import a config module and return its ``config`` attribute.

    A module without ``config`` is treated as an empty configuration.

    Raises:
        ConfigurationError: if the module cannot be imported or ``config`` has the wrong shape
    """
    path = path.resolve()
    if not path.is_file():
        raise ConfigurationError(f"Config file '{path}' does not exist.")

    digest = hashlib.sha256(str(path).encode("utf-8")).hexdigest()[:12]
    spec = importlib.util.spec_from_file_location(f"_viewlint_config_{digest}", path)
    if spec is None or spec.loader is None:
        raise ConfigurationError(f"Cannot import config file '{path}'.")

    module = importlib.util.module_from_spec(spec)
    try:
        spec.loader.exec_module(module)
    except Exception as e:
        raise ConfigurationError(f"Failed to import config file '{path}': {e}") from e

    if not hasattr(module, "config"):
        logger.warning(
            "Config file '%s' does not define 'config'; treating it as empty. "
            "Set config = [] if this is intentional.",
            path,
        )
        return []

    config = module.config
    # Nested entries are validated, and cycles detected, when the config is flattened.
    if not isinstance(config, (ConfigObject, Mapping, list, tuple)):
        raise ConfigurationError(
            f"Invalid config file '{path}'. Expected 'config' to be a config mapping or a list of them."
        )
    return config

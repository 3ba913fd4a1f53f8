"""Configuration file loading and validation.

Loads an optional YAML configuration file, expands ``${ENV_VAR}``
placeholders, applies environment overrides and validates the result
against the Pydantic models defined in :mod:`schema`.
"""

import logging
import os
from typing import Any, Dict, List, Mapping, Optional

import yaml
from pydantic import ValidationError

from mcp_conduit.config.env import apply_env_overrides, expand_env_vars
from mcp_conduit.config.schema import ConduitConfig
from mcp_conduit.errors import ConfigurationError

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "CONDUIT_CONFIG"

# Recognised config file extensions.
_YAML_EXTS = frozenset({".yaml", ".yml"})

_DEFAULT_FILENAMES = ("config.yaml", "config.yml")


def find_config_file(directory: Optional[str] = None) -> Optional[str]:
    """Locate the config file: ``$CONDUIT_CONFIG``, else ``config.yaml``/``config.yml``."""
    env_path = os.environ.get(CONFIG_ENV_VAR, "").strip()
    if env_path:
        return env_path
    base = directory or os.getcwd()
    for name in _DEFAULT_FILENAMES:
        candidate = os.path.join(base, name)
        if os.path.isfile(candidate):
            return candidate
    return None


def _read_config_file(cfg_fpath: str) -> Dict[str, Any]:
    """Read and parse a YAML config file from *cfg_fpath*.

    Raises :class:`ConfigurationError` on I/O or parse errors.  An empty file
    yields an empty mapping.
    """
    ext = os.path.splitext(cfg_fpath)[1].lower()
    if ext not in _YAML_EXTS:
        raise ConfigurationError(
            f"Unsupported config file extension '{ext}'. "
            "Only YAML files (.yaml, .yml) are supported."
        )

    try:
        with open(cfg_fpath, "r", encoding="utf-8") as f:
            raw_data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"Error reading configuration file: {cfg_fpath}\n  {exc}") from exc

    if raw_data is None:
        return {}
    if not isinstance(raw_data, dict):
        raise ConfigurationError(
            "Top-level configuration content must be a YAML mapping (dictionary)."
        )
    return raw_data


def _format_validation_errors(exc: ValidationError) -> str:
    """Format Pydantic validation errors into a readable multi-line string."""
    lines: List[str] = []
    for err in exc.errors():
        loc = " → ".join(str(part) for part in err["loc"])
        lines.append(f"  • {loc}: {err['msg']}")
    return "\n".join(lines)


def build_config(
    raw_data: Optional[Dict[str, Any]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> ConduitConfig:
    """Validate *raw_data* (after env expansion and overrides)."""
    data = expand_env_vars(raw_data or {}, environ)
    data = apply_env_overrides(data, environ)
    try:
        return ConduitConfig.model_validate(data)
    except ValidationError as exc:
        error_summary = _format_validation_errors(exc)
        raise ConfigurationError(
            f"Configuration validation failed ({len(exc.errors())} error(s)):\n{error_summary}"
        ) from exc


def load_config(
    cfg_fpath: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> ConduitConfig:
    """Load the configuration from *cfg_fpath* (or the discovered file).

    Without any file the defaults plus environment overrides are used.
    """
    path = cfg_fpath or find_config_file()
    if path is None:
        logger.info("No config file found; using defaults and environment overrides.")
        return build_config({}, environ)

    if not os.path.exists(path):
        raise ConfigurationError(f"Configuration file does not exist: {path}")

    logger.debug("Loading config: %s", path)
    config = build_config(_read_config_file(path), environ)
    logger.info("Configuration loaded from %s (mode=%s).", path, config.server.mode)
    return config

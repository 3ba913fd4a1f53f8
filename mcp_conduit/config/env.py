"""Environment variable handling for configuration values.

Two mechanisms:

* ``${VAR}`` placeholders inside YAML string values are expanded;
* a fixed set of well-known variables override individual settings.
"""

from __future__ import annotations

import os
import re
from typing import Any, Dict, Mapping, Optional, Tuple

# Regex for ${VAR_NAME}, capturing the variable name.
_ENV_VAR_RE = re.compile(r"\$\{(\w+)\}")

# env var -> (section, key)
ENV_OVERRIDES: Dict[str, Tuple[str, str]] = {
    "CONDUIT_MODE": ("server", "mode"),
    "MCP_API_KEY": ("server", "api_key"),
    "PORT": ("server", "port"),
    "FRAPPE_URL": ("backend", "url"),
    "FRAPPE_API_KEY": ("backend", "api_key"),
    "FRAPPE_API_SECRET": ("backend", "api_secret"),
}


def expand_env_vars(value: Any, environ: Optional[Mapping[str, str]] = None) -> Any:
    """Recursively expand ``${VAR}`` references in string values.

    - If the env var is not set, the placeholder is left unchanged.
    - Non-string leaves are returned as-is.
    - Dicts and lists are walked recursively.
    """
    env = os.environ if environ is None else environ
    if isinstance(value, str):
        return _ENV_VAR_RE.sub(lambda m: env.get(m.group(1), m.group(0)), value)
    if isinstance(value, dict):
        return {k: expand_env_vars(v, env) for k, v in value.items()}
    if isinstance(value, list):
        return [expand_env_vars(item, env) for item in value]
    return value


def apply_env_overrides(
    raw_data: Dict[str, Any], environ: Optional[Mapping[str, str]] = None
) -> Dict[str, Any]:
    """Return a copy of *raw_data* with :data:`ENV_OVERRIDES` applied.

    Only non-empty variables override; values stay strings and are coerced
    by pydantic during validation.
    """
    env = os.environ if environ is None else environ
    data = {k: (dict(v) if isinstance(v, dict) else v) for k, v in raw_data.items()}
    for var, (section, key) in ENV_OVERRIDES.items():
        value = env.get(var, "").strip()
        if not value:
            continue
        target = data.get(section)
        if not isinstance(target, dict):
            target = {}
            data[section] = target
        target[key] = value
    return data

"""Template substitution for registry config values.

Two lookups are available inside string values:

- ``{{ env_var('NAME') }}`` reads an environment variable
- ``{{ var('NAME') }}`` reads a ``--vars NAME=value`` CLI variable

Anything else between ``{{`` and ``}}`` is a config error.
"""

import os
import re
from typing import Any, Dict, Mapping

from schemadrift.core.exceptions import ConfigError

_TEMPLATE = re.compile(r"\{\{(.*?)\}\}")
_LOOKUP = re.compile(r"""^\s*(env_var|var)\(\s*(['"])([^'"]+)\2\s*\)\s*$""")


def render_templates(
    config_dict: Dict[str, Any], cli_vars: Dict[str, str] | None = None
) -> Dict[str, Any]:
    """Substitute template lookups in every string of a config dictionary.

    Args:
        config_dict: Parsed YAML config
        cli_vars: Variables passed via CLI (e.g., --vars key=value)

    Returns:
        A new dictionary with all templates substituted

    Raises:
        ConfigError: If a lookup is unknown or its variable is not set
    """
    sources: Dict[str, Mapping[str, str]] = {
        "env_var": os.environ,
        "var": cli_vars or {},
    }
    return _substitute(config_dict, sources)


def _substitute(value: Any, sources: Dict[str, Mapping[str, str]]) -> Any:
    if isinstance(value, dict):
        return {key: _substitute(item, sources) for key, item in value.items()}
    if isinstance(value, list):
        return [_substitute(item, sources) for item in value]
    if isinstance(value, str):
        return _TEMPLATE.sub(lambda m: _lookup(m.group(1), sources), value)
    return value


def _lookup(expression: str, sources: Dict[str, Mapping[str, str]]) -> str:
    match = _LOOKUP.match(expression)
    if match is None:
        raise ConfigError(
            f"Unsupported template expression: {{{{{expression}}}}}",
            context={"supported": "env_var('NAME'), var('NAME')"},
        )

    kind, key = match.group(1), match.group(3)
    values = sources[kind]
    if key not in values:
        if kind == "env_var":
            raise ConfigError(
                f"Environment variable '{key}' not found", context={"key": key}
            )
        raise ConfigError(
            f"CLI variable '{key}' not provided",
            context={"key": key, "available": sorted(values)},
        )
    return values[key]

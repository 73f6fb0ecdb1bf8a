"""Pool configuration loading: YAML with ``${VAR}`` environment references."""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any, cast

import yaml
from pydantic import ValidationError

from droplet_pool.config.models import PoolConfig

# ${VAR} or ${VAR:-default}; defaults cannot contain "}".
_ENV_REF = re.compile(r"\$\{(?P<name>[^}:]+)(?::-(?P<default>[^}]*))?\}")


def _substitute(match: re.Match[str]) -> str:
    name = match["name"]
    if name in os.environ:
        return os.environ[name]
    if match["default"] is None:
        msg = f"Environment variable '{name}' is not set and no default provided"
        raise ValueError(msg)
    return match["default"]


def resolve_env_vars(data: Any) -> Any:
    """Substitute environment references in every string of parsed YAML."""
    if isinstance(data, str):
        return _ENV_REF.sub(_substitute, data)
    if isinstance(data, list):
        return [resolve_env_vars(item) for item in data]
    if isinstance(data, dict):
        return {key: resolve_env_vars(value) for key, value in data.items()}
    return data


def load_yaml(path: str | Path) -> dict[str, Any]:
    """Read a YAML mapping from *path* and resolve its environment references."""
    p = Path(path)
    if not p.is_file():
        msg = f"Config file not found: {p}"
        raise FileNotFoundError(msg)
    try:
        data = yaml.safe_load(p.read_text())
    except yaml.YAMLError as exc:
        mark = getattr(exc, "problem_mark", None)
        where = f" at line {mark.line + 1}, column {mark.column + 1}" if mark else ""
        msg = f"Failed to parse YAML in {p}{where}: {exc}"
        raise ValueError(msg) from exc
    if not isinstance(data, dict):
        msg = f"Expected a YAML mapping at top level in {p}, got {type(data).__name__}"
        raise TypeError(msg)
    return cast(dict[str, Any], resolve_env_vars(data))


def load_pool_config(path: str | Path) -> PoolConfig:
    """Load a worker pool config YAML.

    Templates are validated on load, so their label sets are derived from the
    stored label strings before anything can use them.
    """
    data = load_yaml(path)
    try:
        return PoolConfig.model_validate(data)
    except ValidationError as exc:
        msg = f"Invalid pool config ({path}):\n{exc}"
        raise ValueError(msg) from exc

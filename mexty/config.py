"""Configuration for registry sync runs.

A :class:`SyncConfig` is built once per invocation and passed explicitly
to the fetcher and orchestrator. Values are layered, lowest first:

1. Built-in defaults
2. ``~/.mexty/config.yaml`` (or the file given with ``--config``)
3. ``MEXTY_API_URL`` / ``MEXTY_TOKEN`` environment variables
4. Explicit overrides (CLI flags)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Optional

import yaml

from mexty.errors import ConfigError

DEFAULT_API_URL = "https://api.v2.mext.app"
DEFAULT_PACKAGE_NAME = "@mexty/block"
DEFAULT_PACKAGE_DIR_NAME = "mext-block"

ENV_OVERRIDES = {
    "MEXTY_API_URL": "api_url",
    "MEXTY_TOKEN": "token",
}


def default_config_path() -> Path:
    return Path.home() / ".mexty" / "config.yaml"


@dataclass(frozen=True)
class SyncConfig:
    """Settings for one sync run."""

    api_url: str = DEFAULT_API_URL
    token: Optional[str] = None
    timeout: float = 30.0
    package_name: str = DEFAULT_PACKAGE_NAME
    package_dir_name: str = DEFAULT_PACKAGE_DIR_NAME
    package_dir: Optional[Path] = None  # Skips candidate probing when set
    working_dir: Optional[Path] = None  # Defaults to the process cwd

    @property
    def registry_url(self) -> str:
        return f"{self.api_url.rstrip('/')}/api/blocks/registry"

    def resolve_working_dir(self) -> Path:
        return Path(self.working_dir) if self.working_dir else Path.cwd()


def load_config(path: str | Path | None = None, **overrides: Any) -> SyncConfig:
    """Build a :class:`SyncConfig` from file, environment, and overrides.

    Overrides whose value is ``None`` are ignored so CLI options that were
    not given fall through to lower layers.

    Raises:
        ConfigError: If the file cannot be parsed or has unknown keys.
    """
    explicit = path is not None
    config_path = Path(path) if explicit else default_config_path()

    values: dict[str, Any] = {}
    if config_path.exists():
        values.update(_read_config_file(config_path))
    elif explicit:
        raise ConfigError(f"Config file not found: {config_path}")

    for env_name, key in ENV_OVERRIDES.items():
        env_value = os.environ.get(env_name)
        if env_value:
            values[key] = env_value

    values.update({k: v for k, v in overrides.items() if v is not None})
    _check_keys(values, str(config_path))

    for key in ("package_dir", "working_dir"):
        if values.get(key) is not None:
            values[key] = Path(values[key]).expanduser()
    if "timeout" in values:
        try:
            values["timeout"] = float(values["timeout"])
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid timeout: {values['timeout']!r}") from e

    return replace(SyncConfig(), **values)


def _read_config_file(path: Path) -> dict[str, Any]:
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to read config {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config {path} must contain a mapping")
    return data


def _check_keys(values: dict[str, Any], source: str) -> None:
    known = {f.name for f in fields(SyncConfig)}
    unknown = sorted(set(values) - known)
    if unknown:
        raise ConfigError(f"Unknown config key(s) in {source}: {', '.join(unknown)}")

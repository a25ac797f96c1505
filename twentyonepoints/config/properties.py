"""
Layered YAML configuration.

Resolution order, lowest to highest precedence:

1. ``defaults.yml`` shipped with the package
2. ``application.yml`` in the working directory
3. ``application-{profile}.yml`` in the working directory
4. programmatic overrides passed to ``ConfigurationProperties``

Keys that none of the layers define fall back to environment variables named
``TWENTYONEPOINTS_<KEY>``, with dots replaced by underscores.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

ENV_PREFIX = "TWENTYONEPOINTS_"
PROFILE_ENV_VAR = f"{ENV_PREFIX}PROFILE"

DEFAULTS_PATH = Path(__file__).parent / "defaults.yml"

_MISSING = object()


def _parse_env_value(raw: str) -> Any:
    """YAML typing for environment values; mappings and parse errors stay strings."""
    try:
        value = yaml.safe_load(raw)
    except yaml.YAMLError:
        return raw
    if isinstance(value, dict):
        return raw
    return value


class ConfigurationProperties:
    """Dotted-key access over the merged configuration layers."""

    def __init__(
        self,
        config_dir: Optional[Path] = None,
        profile: Optional[str] = None,
        overrides: Optional[Dict[str, Any]] = None,
    ):
        self.config_dir = Path(config_dir) if config_dir else Path.cwd()
        self._data: Dict[str, Any] = {}
        self._sources: Dict[str, str] = {}

        self._merge(self._load_yaml(DEFAULTS_PATH), "default configuration")
        self._merge(
            self._load_yaml(self.config_dir / "application.yml"), "application.yml"
        )

        configured_profile = self._lookup("profiles.active")
        if configured_profile is _MISSING:
            configured_profile = None
        self.profile = (
            profile or os.environ.get(PROFILE_ENV_VAR) or configured_profile or ""
        )
        if self.profile:
            profile_file = f"application-{self.profile}.yml"
            self._merge(self._load_yaml(self.config_dir / profile_file), profile_file)

        if overrides:
            for key, value in overrides.items():
                self.set(key, value, source="programmatic override")

    @staticmethod
    def _load_yaml(path: Path) -> Dict[str, Any]:
        if not path.exists():
            return {}
        with open(path, "r", encoding="utf-8") as f:
            loaded = yaml.safe_load(f)
        return loaded or {}

    def _merge(self, data: Dict[str, Any], source: str, prefix: str = ""):
        for key, value in data.items():
            dotted = f"{prefix}{key}"
            if isinstance(value, dict) and value:
                self._merge(value, source, prefix=f"{dotted}.")
            else:
                self._assign(dotted, value)
                self._sources[dotted] = source

    def _assign(self, dotted_key: str, value: Any):
        node = self._data
        parts = dotted_key.split(".")
        for part in parts[:-1]:
            child = node.get(part)
            if not isinstance(child, dict):
                child = {}
                node[part] = child
            node = child
        node[parts[-1]] = value

    def _lookup(self, dotted_key: str) -> Any:
        node: Any = self._data
        for part in dotted_key.split("."):
            if not isinstance(node, dict) or part not in node:
                return _MISSING
            node = node[part]
        return node

    def set(self, key: str, value: Any, source: str = "programmatic override"):
        """Set a single key, replacing whatever the file layers provided."""
        self._assign(key, value)
        self._sources[key] = source

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value by dotted key.

        Falls back to the environment, then to ``default``.
        """
        value = self._lookup(key)
        if value is not _MISSING:
            return value

        env_name = ENV_PREFIX + key.upper().replace(".", "_")
        if env_name in os.environ:
            self._sources[key] = f"environment variable ({env_name})"
            return _parse_env_value(os.environ[env_name])

        return default

    def get_bool(self, key: str, default: bool = False) -> bool:
        value = self.get(key, default)
        if isinstance(value, str):
            return value.strip().lower() in ("1", "true", "yes", "on")
        return bool(value)

    def get_int(self, key: str, default: int = 0) -> int:
        value = self.get(key, default)
        if value is None or value == "":
            return default
        return int(value)

    def get_list(self, key: str) -> List[Any]:
        value = self.get(key, [])
        if value is None:
            return []
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return list(value)

    def get_config_sources(self) -> Dict[str, str]:
        """Map of every resolved key to the layer that supplied it."""
        return dict(self._sources)


_config: Optional[ConfigurationProperties] = None


def get_config() -> ConfigurationProperties:
    """Get the process-wide configuration, loading it on first use."""
    global _config
    if _config is None:
        _config = ConfigurationProperties()
    return _config


def set_config(config: Optional[ConfigurationProperties]):
    global _config
    _config = config


def reload_config() -> ConfigurationProperties:
    """Discard the cached configuration and load it again."""
    global _config
    _config = ConfigurationProperties()
    return _config


def log_config_sources(config: ConfigurationProperties, logger: logging.Logger):
    """Log where every non-default value came from."""
    overridden = {
        key: source
        for key, source in sorted(config.get_config_sources().items())
        if source != "default configuration"
    }
    if config.profile:
        logger.info(f"Active profile: {config.profile}")
    if not overridden:
        logger.debug("Using default configuration")
        return
    for key, source in overridden.items():
        logger.debug(f"  {key} <- {source}")

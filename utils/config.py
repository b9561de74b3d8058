import copy
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

_TRUE_VALUES = {"1", "true", "yes", "y", "on"}


def _coerce(raw: str, default: Any) -> Any:
    """Convert an environment string to the type of *default*."""
    raw = raw.strip()
    if isinstance(default, bool):
        return raw.lower() in _TRUE_VALUES
    if isinstance(default, int):
        try:
            return int(raw)
        except ValueError:
            return float(raw)
    if isinstance(default, float):
        return float(raw)
    return raw


class Config:
    """Hierarchical configuration with dot-notation access and env-var overrides."""

    DEFAULTS: Dict[str, Any] = {
        "cache": {"ttl_ms": 300_000, "max_entries": 500},
        "logging": {"debug": False, "file_output": False},
        "metrics": {"enabled": True},
    }

    ENV_MAPPING: Dict[str, str] = {
        "STORY_CACHE_TTL_MS": "cache.ttl_ms",
        "STORY_CACHE_MAX_ENTRIES": "cache.max_entries",
        "STORY_CACHE_DEBUG": "logging.debug",
        "STORY_CACHE_LOG_TO_FILE": "logging.file_output",
        "STORY_CACHE_METRICS": "metrics.enabled",
    }

    def __init__(self, config_path: Optional[Path] = None):
        self._data: Dict[str, Any] = copy.deepcopy(self.DEFAULTS)
        if config_path and Path(config_path).exists():
            try:
                with open(config_path) as fh:
                    loaded = json.load(fh)
            except (json.JSONDecodeError, OSError) as exc:
                logger.warning("Ignoring unreadable config file %s: %s", config_path, exc)
            else:
                if isinstance(loaded, dict):
                    self._merge(self._data, loaded)
                else:
                    logger.warning("Ignoring config file %s: top level must be an object", config_path)

    def _merge(self, base: dict, override: dict) -> None:
        for key, value in override.items():
            if key in base and isinstance(base[key], dict):
                if isinstance(value, dict):
                    self._merge(base[key], value)
                else:
                    logger.warning("Ignoring config value for %r: expected an object, got %r", key, value)
            else:
                base[key] = value

    def get(self, key: str, default: Any = None) -> Any:
        """Retrieve a value using dot notation, e.g. 'cache.ttl_ms'."""
        node: Any = self._data
        for part in key.split("."):
            if isinstance(node, dict) and part in node:
                node = node[part]
            else:
                return default
        return node

    def set(self, key: str, value: Any) -> None:
        parts = key.split(".")
        node = self._data
        for part in parts[:-1]:
            node = node.setdefault(part, {})
        node[parts[-1]] = value

    def get_all(self) -> Dict:
        return copy.deepcopy(self._data)

    @classmethod
    def from_env(cls, config_path: Optional[Path] = None) -> "Config":
        """
        Build a Config whose values can be overridden by environment variables.

        Values are coerced to the type of the built-in default; a value that
        cannot be converted raises ValueError naming the variable.
        """
        instance = cls(config_path)
        for env_var, dot_key in cls.ENV_MAPPING.items():
            val = os.environ.get(env_var)
            if val is None:
                continue
            try:
                instance.set(dot_key, _coerce(val, instance.get(dot_key)))
            except ValueError as exc:
                raise ValueError(f"{env_var}={val!r} is not valid for {dot_key}") from exc
        return instance

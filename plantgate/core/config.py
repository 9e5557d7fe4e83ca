"""
PlantGate Configuration Management
==================================

Centralized configuration with:
- Multiple configuration sources (defaults, files, env, runtime)
- Hierarchical configuration with dot notation
- Type-safe access with defaults

Configuration Loading Priority (highest to lowest):
1. Runtime overrides
2. Environment variables (PLANTGATE_*)
3. .env file
4. config/{env}.py (environment-specific)
5. config/app.py (project configuration)
6. plantgate.settings (package defaults)

Nested keys in environment variables are separated with a double
underscore, so ``PLANTGATE_APP__BASE_PATH=/svc`` sets ``app.base_path``.

Example:
    config = Config.load(Path("config"))

    admin_url = config.get("administration.url")
    timeout = config.get_float("administration.timeout", 10.0)
"""

from __future__ import annotations

import copy
import importlib.util
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, TypeVar, Union

import orjson

from plantgate import settings
from plantgate.utils.env import Env

T = TypeVar("T")

ENV_PREFIX = "PLANTGATE_"
NESTING_SEPARATOR = "__"


@dataclass
class ConfigSource:
    """Represents a configuration source with priority."""
    name: str
    data: Dict[str, Any]
    priority: int = 0


class Config:
    """
    Application configuration container.

    Example:
        config = Config.defaults()
        config.set("app.debug", True)

        config.get("app.platform")  # "admin"
        config.get("app.missing", "default")  # "default"
    """

    def __init__(self) -> None:
        self._sources: List[ConfigSource] = []
        self._cache: Dict[str, Any] = {}
        self._merged: Dict[str, Any] = {}
        self._dirty = True

    @classmethod
    def defaults(cls) -> "Config":
        """Create a configuration holding only the package defaults."""
        instance = cls()
        instance.add_source("defaults", copy.deepcopy(settings.config), priority=0)
        return instance

    @classmethod
    def load(
        cls,
        config_path: Optional[Union[str, Path]] = None,
        env_file: Optional[Union[str, Path]] = None,
    ) -> "Config":
        """
        Build the full configuration stack.

        Args:
            config_path: Directory holding app.py and {env}.py
            env_file: Explicit .env file, searched for when omitted

        Returns:
            Loaded configuration
        """
        instance = cls.defaults()

        if config_path is not None:
            instance.load_from_path(Path(config_path))

        instance.load_env(Env(env_file).load())
        return instance

    def load_from_path(self, config_path: Path) -> None:
        """
        Load configuration from a directory.

        Loads:
        - app.py (project configuration)
        - {PLANTGATE_ENV}.py (environment-specific)
        """
        if not config_path.exists():
            return

        base_config = config_path / "app.py"
        if base_config.exists():
            self.add_source("app", self._load_python_config(base_config), priority=10)

        env = os.getenv("PLANTGATE_ENV", "development")
        env_config = config_path / f"{env}.py"
        if env_config.exists():
            self.add_source(f"env:{env}", self._load_python_config(env_config), priority=20)

    def _load_python_config(self, path: Path) -> Dict[str, Any]:
        spec = importlib.util.spec_from_file_location("plantgate_config", path)
        if spec is None or spec.loader is None:
            return {}

        module = importlib.util.module_from_spec(spec)
        spec.loader.exec_module(module)

        if hasattr(module, "config"):
            return module.config

        return {
            key.lower(): value
            for key, value in vars(module).items()
            if key.isupper()
        }

    def load_env(self, env: Env) -> None:
        """Load overrides from PLANTGATE_* variables (process and .env)."""
        overrides: Dict[str, Any] = {}

        for key, value in env.prefixed(ENV_PREFIX).items():
            # PLANTGATE_APP__BASE_PATH -> app.base_path
            config_key = key.lower().replace(NESTING_SEPARATOR, ".")
            overrides[config_key] = self._parse_env_value(value)

        if overrides:
            self.add_source("env_vars", self._unflatten(overrides), priority=100)

    def _parse_env_value(self, value: str) -> Any:
        """Parse environment variable value to appropriate type."""
        if value.lower() in ("true", "yes"):
            return True
        if value.lower() in ("false", "no"):
            return False

        try:
            return int(value)
        except ValueError:
            pass

        try:
            return float(value)
        except ValueError:
            pass

        if value.startswith(("{", "[")):
            try:
                return orjson.loads(value)
            except orjson.JSONDecodeError:
                pass

        return value

    def _unflatten(self, flat: Dict[str, Any]) -> Dict[str, Any]:
        """Convert flat dot-notation keys to nested dict."""
        result: Dict[str, Any] = {}

        for key, value in flat.items():
            parts = key.split(".")
            current = result

            for part in parts[:-1]:
                current = current.setdefault(part, {})

            current[parts[-1]] = value

        return result

    def add_source(
        self,
        name: str,
        data: Dict[str, Any],
        priority: int = 0,
    ) -> None:
        self._sources.append(ConfigSource(name=name, data=data, priority=priority))
        self._dirty = True

    def _merge(self) -> None:
        if not self._dirty:
            return

        self._merged = {}
        for source in sorted(self._sources, key=lambda s: s.priority):
            self._deep_merge(self._merged, copy.deepcopy(source.data))

        self._dirty = False
        self._cache.clear()

    def _deep_merge(self, base: Dict, override: Dict) -> None:
        for key, value in override.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                self._deep_merge(base[key], value)
            else:
                base[key] = value

    def get(
        self,
        key: str,
        default: T = None,
    ) -> Union[Any, T]:
        """
        Get configuration value using dot notation.

        Args:
            key: Configuration key (e.g., "app.debug")
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        self._merge()

        if key in self._cache:
            return self._cache[key]

        current: Any = self._merged
        for part in key.split("."):
            if not isinstance(current, dict) or part not in current:
                return default
            current = current[part]

        self._cache[key] = current
        return current

    def get_int(self, key: str, default: int = 0) -> int:
        value = self.get(key, default)
        try:
            return int(value)
        except (TypeError, ValueError):
            return default

    def get_float(self, key: str, default: float = 0.0) -> float:
        value = self.get(key, default)
        try:
            return float(value)
        except (TypeError, ValueError):
            return default

    def get_bool(self, key: str, default: bool = False) -> bool:
        value = self.get(key, default)
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            return value.lower() in ("true", "yes", "1", "on")
        return bool(value)

    def get_list(self, key: str, default: Optional[List] = None) -> List:
        value = self.get(key, default)
        if value is None:
            return default or []
        if isinstance(value, list):
            return value
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return [value]

    def set(self, key: str, value: Any) -> None:
        """
        Set a runtime configuration value.

        Runtime values have the highest priority.
        """
        runtime_source = next(
            (source for source in self._sources if source.name == "runtime"),
            None,
        )

        if runtime_source is None:
            runtime_source = ConfigSource(name="runtime", data={}, priority=1000)
            self._sources.append(runtime_source)

        parts = key.split(".")
        current = runtime_source.data

        for part in parts[:-1]:
            current = current.setdefault(part, {})

        current[parts[-1]] = value
        self._dirty = True

    def has(self, key: str) -> bool:
        return self.get(key) is not None

    def all(self) -> Dict[str, Any]:
        self._merge()
        return copy.deepcopy(self._merged)

    def section(self, prefix: str) -> Dict[str, Any]:
        """Get all values under a prefix."""
        value = self.get(prefix)
        if isinstance(value, dict):
            return copy.deepcopy(value)
        return {}

    @property
    def is_production(self) -> bool:
        return str(self.get("app.environment", "production")).lower() == "production"

    def __getitem__(self, key: str) -> Any:
        value = self.get(key)
        if value is None:
            raise KeyError(key)
        return value

    def __setitem__(self, key: str, value: Any) -> None:
        self.set(key, value)

    def __contains__(self, key: str) -> bool:
        return self.has(key)

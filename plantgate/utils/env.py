"""
PlantGate Environment Management
================================

``.env`` loading with typed access.

Values found in the file are kept in a private cache; the process
environment always wins over the file unless ``override`` is set.

Example:
    env = Env(".env").load()

    debug = env.bool("PLANTGATE_APP__DEBUG", default=False)
    timeout = env.float("PLANTGATE_ADMINISTRATION__TIMEOUT", default=10.0)
    overrides = env.prefixed("PLANTGATE_")
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Dict, List, Optional, Union


_VARIABLE = re.compile(r"\$\{([^}]+)\}|\$(\w+)")

_TRUTHY = ("true", "1", "yes", "on", "enabled")
_FALSY = ("false", "0", "no", "off", "disabled", "")


class Env:
    """
    Environment variable manager.

    Example:
        env = Env()
        env.load()

        port = env.int("PORT", default=8000)
        origins = env.list("CORS_ORIGINS", default=["*"])
        key = env.str("PLANTGATE_APP__KEY", required=True)
    """

    def __init__(
        self,
        env_file: Optional[Union[str, Path]] = None,
        override: bool = False,
    ):
        """
        Initialize environment manager.

        Args:
            env_file: Path to .env file
            override: Let file values replace process variables
        """
        self._env_file = Path(env_file) if env_file else None
        self._override = override
        self._cache: Dict[str, str] = {}
        self._loaded = False

    @property
    def loaded(self) -> bool:
        return self._loaded

    def load(
        self,
        env_file: Optional[Union[str, Path]] = None,
        override: Optional[bool] = None,
    ) -> "Env":
        """
        Load variables from file.

        Args:
            env_file: Path to .env file (optional)
            override: Override existing variables

        Returns:
            Self for chaining
        """
        path = Path(env_file) if env_file else self._env_file
        should_override = override if override is not None else self._override

        if not path:
            path = self._find_env_file()

        if path and path.exists():
            self._load_file(path, should_override)

        self._loaded = True
        return self

    def _find_env_file(self) -> Optional[Path]:
        """Find .env in the current directory or up to three parents."""
        cwd = Path.cwd()
        env_name = os.getenv("PLANTGATE_ENV", "development")

        for directory in [cwd] + list(cwd.parents)[:3]:
            env_file = directory / ".env"
            if env_file.exists():
                return env_file

            specific_file = directory / f".env.{env_name}"
            if specific_file.exists():
                return specific_file

        return None

    def _load_file(self, path: Path, override: bool) -> None:
        for line in path.read_text(encoding="utf-8").splitlines():
            line = line.strip()

            if not line or line.startswith("#"):
                continue

            if line.startswith("export "):
                line = line[7:]

            if "=" not in line:
                continue

            key, _, value = line.partition("=")
            key = key.strip()
            value = value.strip()

            if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
                value = value[1:-1]

            self._cache[key] = self._expand_variables(value)

            if override:
                os.environ[key] = self._cache[key]

    def _expand_variables(self, value: str) -> str:
        """Expand ``${VAR}`` and ``$VAR`` references."""
        def replace(match: re.Match) -> str:
            name = match.group(1) or match.group(2)
            return os.getenv(name, self._cache.get(name, ""))

        return _VARIABLE.sub(replace, value)

    def get(
        self,
        key: str,
        default: Optional[str] = None,
        required: bool = False,
    ) -> Optional[str]:
        """
        Get variable.

        Args:
            key: Variable name
            default: Default value
            required: Raise error if not found

        Returns:
            Variable value

        Raises:
            KeyError: If required and not found
        """
        value = os.getenv(key, self._cache.get(key, default))

        if value is None and required:
            raise KeyError(f"Required environment variable '{key}' is not set")

        return value

    def str(
        self,
        key: str,
        default: Optional[str] = None,
        required: bool = False,
    ) -> Optional[str]:
        return self.get(key, default, required)

    def int(
        self,
        key: str,
        default: Optional[int] = None,
        required: bool = False,
    ) -> Optional[int]:
        value = self.get(key, required=required)

        if value is None:
            return default

        try:
            return int(value)
        except ValueError:
            if default is not None:
                return default
            raise ValueError(f"Environment variable '{key}' is not a valid integer")

    def float(
        self,
        key: str,
        default: Optional[float] = None,
        required: bool = False,
    ) -> Optional[float]:
        value = self.get(key, required=required)

        if value is None:
            return default

        try:
            return float(value)
        except ValueError:
            if default is not None:
                return default
            raise ValueError(f"Environment variable '{key}' is not a valid float")

    def bool(
        self,
        key: str,
        default: Optional[bool] = None,
        required: bool = False,
    ) -> Optional[bool]:
        value = self.get(key, required=required)

        if value is None:
            return default

        if value.lower() in _TRUTHY:
            return True

        if value.lower() in _FALSY:
            return False

        if default is not None:
            return default

        raise ValueError(f"Environment variable '{key}' is not a valid boolean")

    def list(
        self,
        key: str,
        default: Optional[List[str]] = None,
        separator: str = ",",
        required: bool = False,
    ) -> Optional[List[str]]:
        """Get list value (comma-separated by default)."""
        value = self.get(key, required=required)

        if value is None:
            return default

        if not value:
            return []

        return [item.strip() for item in value.split(separator)]

    def prefixed(self, prefix: str) -> Dict[str, str]:
        """
        Collect variables starting with a prefix.

        File values are read first so process variables replace them.

        Args:
            prefix: Variable prefix (e.g., "PLANTGATE_")

        Returns:
            Dict of matching variables with the prefix removed
        """
        result: Dict[str, str] = {}

        for source in (self._cache, os.environ):
            for key, value in source.items():
                if key.startswith(prefix):
                    result[key[len(prefix):]] = value

        return result

    def __contains__(self, key: str) -> bool:
        return key in os.environ or key in self._cache

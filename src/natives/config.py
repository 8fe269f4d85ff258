"""
Configuration for natives-loader.

Supports:
- TOML configuration files (``natives.toml`` or ``[tool.natives]`` in pyproject.toml)
- Environment variable overrides
- Keyword overrides from code or the CLI

Precedence, lowest first: defaults, TOML file, environment, keyword overrides.
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Optional

if sys.version_info >= (3, 11):
    import tomllib
else:
    try:
        import tomli as tomllib
    except ImportError:
        tomllib = None

from .errors import ConfigError


__all__ = ['LoaderConfig', 'CONFIG_FILENAME']


CONFIG_FILENAME = "natives.toml"

# Environment variable -> config field
ENV_VARS = {
    "NATIVES_ARCHIVE": "archive",
    "NATIVES_RESOURCE_PACKAGE": "resource_package",
    "NATIVES_LIBRARY_PATH": "library_path",
    "NATIVES_STRICT_CHECKSUM": "strict_checksum",
}

_PATH_FIELDS = {"archive", "library_path"}

# Field -> TOML value type
_FIELD_TYPES = {
    "archive": str,
    "resource_package": str,
    "library_path": str,
    "temp_prefix": str,
    "home_dir_name": str,
    "relative_dir": str,
    "sandbox_env": str,
    "chunk_size": int,
    "strict_checksum": bool,
}

_TRUE = ("1", "true", "yes", "on")
_FALSE = ("0", "false", "no", "off", "")


@dataclass(frozen=True)
class LoaderConfig:
    """Settings shared by every component of the loader."""

    # Zip archive to read natives from instead of the embedded resources
    archive: Optional[Path] = None
    # Importable package whose files form the embedded resource root
    resource_package: Optional[str] = None
    # Directory searched for a pre-installed copy when extraction fails
    library_path: Optional[Path] = None

    temp_prefix: str = "natives-loader"
    home_dir_name: str = ".natives-loader"
    relative_dir: str = ".temp"
    sandbox_env: str = "APP_SANDBOX_CONTAINER_ID"

    chunk_size: int = 4096
    strict_checksum: bool = False

    def __post_init__(self):
        """Normalize path fields and validate."""
        for name in _PATH_FIELDS:
            value = getattr(self, name)
            if isinstance(value, str):
                object.__setattr__(self, name, Path(value) if value else None)
        if not isinstance(self.chunk_size, int) or self.chunk_size <= 0:
            raise ConfigError(f"chunk_size must be a positive int, got {self.chunk_size!r}")

    @classmethod
    def from_file(cls, path: Path) -> "LoaderConfig":
        """Load configuration from a TOML file.

        ``natives.toml`` files use a top-level ``[natives]`` table (or bare
        keys); ``pyproject.toml`` uses ``[tool.natives]``. Relative paths are
        resolved against the file's directory.
        """
        if tomllib is None:
            raise ImportError(
                "tomli is required for Python < 3.11. "
                "Install with: pip install tomli"
            )

        path = Path(path)
        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            raise ConfigError(f"Cannot read config file {path}: {e}") from e

        if path.name == "pyproject.toml":
            data = data.get("tool", {}).get("natives", {})
        else:
            data = data.get("natives", data)

        return cls._from_dict(data, path.parent)

    @classmethod
    def _from_dict(cls, data: dict, base_path: Optional[Path] = None) -> "LoaderConfig":
        """Create config from dictionary, rejecting unknown keys and mistyped values."""
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ConfigError(f"Unknown config keys: {', '.join(sorted(unknown))}")

        values: dict[str, Any] = {}
        for key, value in data.items():
            expected = _FIELD_TYPES[key]
            # bool is an int subclass, so compare exact types
            if type(value) is not expected:
                raise ConfigError(
                    f"{key} must be {expected.__name__}, got {type(value).__name__} {value!r}"
                )
            if key in _PATH_FIELDS and value:
                value = Path(value)
                if base_path is not None and not value.is_absolute():
                    value = base_path / value
            values[key] = value
        return cls(**values)

    @classmethod
    def find_config(cls, start_path: Optional[Path] = None) -> Optional[Path]:
        """Find natives.toml in current or parent directories."""
        if start_path is None:
            start_path = Path.cwd()

        current = start_path.resolve()

        for _ in range(10):  # Max 10 levels up
            config_path = current / CONFIG_FILENAME
            if config_path.exists():
                return config_path

            parent = current.parent
            if parent == current:
                break
            current = parent

        return None

    @classmethod
    def load(
        cls,
        config_path: Optional[Path] = None,
        environ: Optional[dict[str, str]] = None,
        **overrides: Any,
    ) -> "LoaderConfig":
        """Resolve configuration from file, environment and overrides.

        Args:
            config_path: TOML file to read. Auto-discovered when None.
            environ: Environment mapping. Defaults to ``os.environ``.
            **overrides: Field values that win over everything else.
                ``None`` values are ignored.

        Returns:
            The resolved configuration.
        """
        if config_path is None:
            config_path = cls.find_config()

        if config_path is not None and Path(config_path).exists():
            config = cls.from_file(config_path)
        else:
            config = cls()

        config = config.with_env(os.environ if environ is None else environ)

        overrides = {k: v for k, v in overrides.items() if v is not None}
        if overrides:
            config = replace(config, **overrides)
        return config

    def with_env(self, environ: dict[str, str]) -> "LoaderConfig":
        """Return a copy with ``NATIVES_*`` environment variables applied."""
        values: dict[str, Any] = {}
        for var, name in ENV_VARS.items():
            raw = environ.get(var)
            if raw is None:
                continue
            if name == "strict_checksum":
                values[name] = _parse_bool(var, raw)
            else:
                values[name] = raw or None
        return replace(self, **values) if values else self


def _parse_bool(var: str, raw: str) -> bool:
    lowered = raw.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ConfigError(f"{var} must be a boolean, got {raw!r}")

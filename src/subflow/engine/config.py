"""Resolver configuration loaded from YAML.

Configuration file location priority:
1. Explicit path passed to ConfigLoader
2. SUBFLOW_CONFIG environment variable
3. Standard location: ~/.subflow/config.yml
4. Built-in defaults (if no config file found)

The SUBFLOW_MAX_DEPTH environment variable overrides max_depth from any source.

Example config file:
```yaml
max_depth: 200
detect_cycles: true
strict: false
remove_empty: true
ref_prefix: "="
leaf_types:
  - pandas.DataFrame
  - polars.DataFrame
```
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .terms import DEFAULTS_KEY

logger = logging.getLogger(__name__)

# ===========================================================================
# Configuration Model
# ===========================================================================


class ResolverConfig(BaseModel):
    """Behavior switches for SubstitutionResolver."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    max_depth: int = Field(
        default=100,
        ge=1,
        le=10000,
        description="Maximum nesting of reference lookups and rewrite steps at one node",
    )
    detect_cycles: bool = Field(
        default=True,
        description="Raise CyclicDependencyError when a reference re-enters itself",
    )
    strict: bool = Field(
        default=False,
        description="Raise UnresolvedReferenceError if references remain in the output",
    )
    strict_dependencies: bool = Field(
        default=False,
        description="Raise ResolutionError when a DependencyFn dependency is unbound",
    )
    remove_empty: bool = Field(
        default=True,
        description="Drop collections left empty after resolution from their parent",
    )
    ref_prefix: str | None = Field(
        default=None,
        description="Treat plain strings starting with this prefix as references",
    )
    defaults_key: str = Field(
        default=DEFAULTS_KEY,
        min_length=1,
        description="Mapping key that carries a nested defaults scope",
    )
    leaf_types: list[str] = Field(
        default_factory=list,
        description="Dotted paths of types never recursed into (e.g. pandas.DataFrame)",
    )

    @field_validator("ref_prefix")
    @classmethod
    def validate_ref_prefix(cls, v: str | None) -> str | None:
        """Normalize an empty prefix to None."""
        return v or None

    @field_validator("leaf_types")
    @classmethod
    def validate_leaf_types(cls, v: list[str]) -> list[str]:
        """Check that leaf types look like importable dotted paths."""
        for path in v:
            module, _, name = path.rpartition(".")
            if not module or not name:
                raise ValueError(f"Leaf type '{path}' must be a dotted path like 'module.Type'")
        return v

    @property
    def check_dependencies(self) -> bool:
        """Whether unbound DependencyFn dependencies are errors."""
        return self.strict or self.strict_dependencies


# ===========================================================================
# Configuration Loader
# ===========================================================================


class ConfigLoader:
    """Loader for resolver configuration from YAML file.

    Usage:
        ```python
        loader = ConfigLoader()
        resolver = SubstitutionResolver(config=loader.load_config())
        ```

    The loaded config is cached on the loader instance.
    """

    ENV_CONFIG_PATH = "SUBFLOW_CONFIG"
    ENV_MAX_DEPTH = "SUBFLOW_MAX_DEPTH"

    def __init__(self, config_path: str | Path | None = None):
        """Initialize config loader with optional explicit path.

        Args:
            config_path: Explicit path to config file (optional).
                If not provided, uses environment variable or standard location.
        """
        self._config: ResolverConfig | None = None
        self._explicit_path = Path(config_path) if config_path else None

    def get_config_path(self) -> Path | None:
        """Determine config file path using priority order.

        Returns:
            Path to config file, or None if file doesn't exist
        """
        # Priority 1: Explicit path
        if self._explicit_path:
            if self._explicit_path.exists():
                return self._explicit_path
            logger.warning(f"Explicit resolver config path does not exist: {self._explicit_path}")
            return None

        # Priority 2: Environment variable
        env_path_str = os.getenv(self.ENV_CONFIG_PATH)
        if env_path_str:
            env_path = Path(env_path_str).expanduser()
            if env_path.exists():
                return env_path
            logger.warning(f"{self.ENV_CONFIG_PATH} path does not exist: {env_path}")
            return None

        # Priority 3: Standard location
        standard_path = Path.home() / ".subflow" / "config.yml"
        if standard_path.exists():
            return standard_path

        return None

    def load_config(self) -> ResolverConfig:
        """Load and validate resolver configuration.

        Returns:
            Validated ResolverConfig (built-in defaults if no file is found)

        Raises:
            ValueError: If the config file or SUBFLOW_MAX_DEPTH is invalid
        """
        if self._config is not None:
            return self._config

        raw_config: dict[str, Any] = {}
        config_path = self.get_config_path()

        if config_path is None:
            logger.debug("No resolver config file found, using defaults")
        else:
            logger.info(f"Loading resolver config from: {config_path}")
            try:
                with open(config_path, encoding="utf-8") as f:
                    loaded = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ValueError(f"Failed to load resolver config from {config_path}: {e}") from e

            if loaded is None:
                loaded = {}
            if not isinstance(loaded, dict):
                raise ValueError(
                    f"Failed to load resolver config from {config_path}: "
                    "config file must contain a YAML dictionary"
                )
            raw_config.update(loaded)

        max_depth = os.getenv(self.ENV_MAX_DEPTH)
        if max_depth:
            try:
                raw_config["max_depth"] = int(max_depth)
            except ValueError as e:
                raise ValueError(
                    f"{self.ENV_MAX_DEPTH} must be an integer, got {max_depth!r}"
                ) from e

        try:
            config = ResolverConfig(**raw_config)
        except ValueError as e:
            source = config_path or "environment"
            raise ValueError(f"Invalid resolver config ({source}): {e}") from e

        self._config = config
        return config

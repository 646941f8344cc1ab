"""
Configuration for mdflow.

Loads an optional YAML file and provides typed, immutable settings.
Uses Pydantic v2 for validation.

Configuration Hierarchy (highest priority first):
1. CLI arguments (passed to load_config)
2. Environment variables (MDFLOW_*, plus legacy WORKFLOWS_PATH)
3. YAML configuration file
4. Pydantic field defaults
"""

import os
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

CONFIG_FILENAMES = ["mdflow.yaml", ".mdflow.yaml"]
LEGACY_PATH_ENV = "WORKFLOWS_PATH"


class MdflowSettings(BaseModel):
    """Engine, watcher and server settings."""

    model_config = ConfigDict(frozen=True)

    workflows_path: Path = Field(default=Path("workflows"), description="Root directory of workflow files")
    extension: str = Field(default=".md", description="Extension of workflow files")
    preamble_filename: str = Field(
        default=".entrypoint.md",
        description="Reserved control file prefixed to every rendered template",
    )
    ignored_references: List[str] = Field(
        default_factory=lambda: ["step-id"],
        description="Documentation placeholders never treated as step references",
    )
    watch: bool = Field(default=True, description="Watch the workflow root for changes")
    debounce_ms: int = Field(default=200, ge=0, description="Watcher debounce window in milliseconds")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO")
    server_name: str = Field(default="mdflow", description="Name advertised by the MCP server")

    @field_validator("extension")
    @classmethod
    def validate_extension(cls, v: str) -> str:
        if not v.startswith("."):
            v = "." + v
        if len(v) < 2:
            raise ValueError("extension must not be empty")
        return v

    @field_validator("ignored_references", mode="before")
    @classmethod
    def validate_ignored(cls, v: Any) -> Any:
        if isinstance(v, str):
            return [v]
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def validate_log_level(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.upper()
        return v

    @classmethod
    def from_dict(cls, data: Dict[str, Any], base_path: Optional[Path] = None) -> "MdflowSettings":
        """Build settings, resolving a relative workflows_path against base_path."""
        if base_path is not None:
            data = _rebase_workflows_path(data, base_path)
        return cls(**data)


def load_config(
    path: Optional[Path] = None,
    cli_overrides: Optional[Dict[str, Any]] = None,
    use_env: bool = True,
    env_prefix: str = "MDFLOW_",
) -> MdflowSettings:
    """Load settings with hierarchical override support.

    Args:
        path: Explicit YAML file. Falls back to ./mdflow.yaml or ./.mdflow.yaml.
        cli_overrides: Values from command line flags (None values are ignored)
        use_env: Whether to read environment variables
        env_prefix: Prefix for environment variables

    Examples:
        # Environment variable: MDFLOW_DEBOUNCE_MS=500
        settings = load_config()  # debounce_ms will be 500
    """
    yaml_path = _find_config_file(path)

    if yaml_path:
        with open(yaml_path) as f:
            config_dict = yaml.safe_load(f) or {}
        # Only a path read from the file is relative to the file
        config_dict = _rebase_workflows_path(config_dict, yaml_path.parent)
    else:
        config_dict = {}

    if use_env:
        _deep_merge(config_dict, _extract_env_config(env_prefix))

    if cli_overrides:
        _deep_merge(config_dict, {k: v for k, v in cli_overrides.items() if v is not None})

    return MdflowSettings(**config_dict)


def _rebase_workflows_path(data: Dict[str, Any], base_path: Path) -> Dict[str, Any]:
    data = dict(data)
    if "workflows_path" in data:
        path = Path(data["workflows_path"]).expanduser()
        if not path.is_absolute():
            path = base_path / path
        data["workflows_path"] = path
    return data


def _find_config_file(path: Optional[Path] = None) -> Optional[Path]:
    """Find configuration file.

    Searches in this order:
    1. Provided path
    2. ./mdflow.yaml
    3. ./.mdflow.yaml

    Returns:
        Path to config file or None if not found
    """
    if path and Path(path).exists():
        return Path(path)

    for filename in CONFIG_FILENAMES:
        config_path = Path(filename)
        if config_path.exists():
            return config_path

    return None


def _extract_env_config(prefix: str = "MDFLOW_") -> Dict[str, Any]:
    """Extract configuration from environment variables.

    - MDFLOW_WORKFLOWS_PATH=/srv/flows → {"workflows_path": "/srv/flows"}
    - MDFLOW_WATCH=false → {"watch": False}
    - MDFLOW_IGNORED_REFERENCES=step-id,example → {"ignored_references": [...]}

    The legacy WORKFLOWS_PATH variable is honored when the prefixed one is unset.
    """
    config: Dict[str, Any] = {}

    legacy = os.environ.get(LEGACY_PATH_ENV)
    if legacy:
        config["workflows_path"] = legacy

    for key, value in os.environ.items():
        if not key.startswith(prefix):
            continue

        config_key = key[len(prefix):].lower()
        if not config_key:
            continue

        if config_key == "workflows_path":
            # Paths are never type-converted
            config[config_key] = value
        else:
            config[config_key] = _convert_env_value(value)

    return config


def _convert_env_value(value: str) -> Union[str, int, float, bool, List[str]]:
    """Convert environment variable string to appropriate type.

    Type conversion:
    - "true"/"false" (and yes/no, on/off, 1/0) become booleans
    - Comma-separated values become lists
    - Numbers (int/float) are converted automatically
    - Everything else remains a string
    """
    if not value:
        return value

    if value.lower() in ("true", "yes", "1", "on"):
        return True
    if value.lower() in ("false", "no", "0", "off"):
        return False

    if "," in value:
        return [v.strip() for v in value.split(",") if v.strip()]

    try:
        return int(value)
    except ValueError:
        pass

    try:
        return float(value)
    except ValueError:
        pass

    return value


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> None:
    """Deep merge override into base dictionary (mutates base)."""
    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value


__all__ = ["MdflowSettings", "load_config"]

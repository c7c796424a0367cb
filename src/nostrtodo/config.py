"""
Configuration — relays, key material, and commit policy.

Loaded once before any command runs and handed to the engine as a
plain value. Files live in the per-user config directory:

    ~/.config/nostr-todo/
    ├── config.json            # default profile
    └── config-<profile>.json  # named profiles

JSON is read through the YAML loader, so a ``.yaml`` file with the same
stem works too.
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from . import APP_NAME
from .errors import ConfigError

logger = logging.getLogger("nostrtodo.config")

DEFAULT_RELAYS = ["wss://yabu.me"]
DEFAULT_TIMEOUT = 10.0
LIST_PROFILES = "?"


class TodoConfig(BaseModel):
    """Validated configuration for one profile."""

    model_config = ConfigDict(populate_by_name=True)

    relays: list[str] = Field(default_factory=lambda: list(DEFAULT_RELAYS))
    private_key: str = Field(default="", alias="privatekey")
    min_acceptances: int = Field(
        default=0,
        ge=0,
        description="Relays that must accept a commit (0 = best effort)",
    )
    timeout: float = Field(
        default=DEFAULT_TIMEOUT,
        gt=0,
        description="Seconds allowed for each relay network operation",
    )

    @field_validator("relays", mode="before")
    @classmethod
    def relays_default(cls, v: Optional[list[str]]) -> list[str]:
        """Fall back to the default relay when none are configured."""
        if not v:
            return list(DEFAULT_RELAYS)
        return v


def config_dir() -> Path:
    """Resolve the nostr-todo configuration directory.

    ``$NOSTR_TODO_HOME`` wins. macOS uses ``~/.config`` like Linux;
    Windows uses ``%APPDATA%``.
    """
    override = os.environ.get("NOSTR_TODO_HOME")
    if override:
        return Path(override).expanduser()

    if sys.platform == "win32":
        base = Path(os.environ.get("APPDATA") or Path.home() / "AppData" / "Roaming")
    elif sys.platform == "darwin":
        base = Path.home() / ".config"
    else:
        base = Path(os.environ.get("XDG_CONFIG_HOME") or Path.home() / ".config")
    return base / APP_NAME


def config_path(profile: str = "", directory: Optional[Path] = None) -> Path:
    """Path of the config file for ``profile``.

    Prefers ``.json``; returns the ``.yaml`` sibling only when it exists
    and the ``.json`` file does not.
    """
    directory = directory or config_dir()
    stem = "config" if not profile else f"config-{profile}"
    json_path = directory / f"{stem}.json"
    yaml_path = directory / f"{stem}.yaml"
    if not json_path.exists() and yaml_path.exists():
        return yaml_path
    return json_path


def list_profiles(directory: Optional[Path] = None) -> list[str]:
    """Names of the named profiles found in the config directory."""
    directory = directory or config_dir()
    if not directory.is_dir():
        return []
    names: set[str] = set()
    for pattern in ("config-*.json", "config-*.yaml"):
        for path in directory.glob(pattern):
            names.add(path.stem[len("config-"):])
    return sorted(names)


def load_config(profile: str = "", directory: Optional[Path] = None) -> TodoConfig:
    """Load and validate the configuration for ``profile``.

    Args:
        profile: Profile name; empty selects ``config.json``.
        directory: Config directory. Defaults to :func:`config_dir`.

    Returns:
        TodoConfig: Validated configuration.

    Raises:
        ConfigError: If the file is missing, unparsable, or invalid.
    """
    directory = directory or config_dir()
    directory.mkdir(mode=0o700, parents=True, exist_ok=True)

    path = config_path(profile, directory)
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise ConfigError(f"config file not found: {path}") from exc
    except OSError as exc:
        raise ConfigError(f"cannot read {path}: {exc}") from exc

    try:
        data = yaml.safe_load(raw) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"cannot parse {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping")

    try:
        config = TodoConfig(**data)
    except ValidationError as exc:
        raise ConfigError(f"invalid configuration in {path}: {exc}") from exc

    logger.debug("Loaded %s (%d relay(s))", path, len(config.relays))
    return config

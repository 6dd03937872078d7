"""Configuration management for RouteGuard.

The :class:`GuardConfigManager` loads a declarative guard configuration from
YAML (or TOML): the protected resources, what to do for each decision, how
permissions are voted, where identity is stored and the limits of the
navigation loop. The configuration is validated with Pydantic models before a
provider is built from it.
"""
from __future__ import annotations

import asyncio
import os
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Literal, Optional, Union

import yaml
from pydantic import BaseModel, Field, field_validator

from routeguard.access.handler import BehaveConfig
from routeguard.access.resource import AccessResource, PathPattern
from routeguard.utils.errors import ConfigurationError
from routeguard.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_CONFIG_PATH = "config/routeguard.yml"


class PatternSettings(BaseModel):
    """A route pattern with explicit matching options."""

    path: str
    case_sensitive: bool = False
    end: bool = True


class ResourceSettings(BaseModel):
    """One protected resource."""

    patterns: List[Union[str, PatternSettings]]
    permissions: List[str] = Field(default_factory=list)
    labels: List[str] = Field(default_factory=list)
    basename: Optional[str] = None

    @field_validator("patterns")
    @classmethod
    def validate_patterns(cls, value: List[Any]) -> List[Any]:
        if not value:
            raise ValueError("A resource needs at least one pattern")
        return value

    def to_resource(self) -> AccessResource:
        patterns = [
            item if isinstance(item, str) else PathPattern(item.path, item.case_sensitive, item.end)
            for item in self.patterns
        ]
        return AccessResource(patterns, self.permissions, self.labels, self.basename)


def _default_resources() -> List[ResourceSettings]:
    return [
        ResourceSettings(
            patterns=["/login", "/logout", "/denied", "/signature"],
            permissions=[AccessResource.PERMISSION_ANONYMOUS],
        ),
        ResourceSettings(patterns=["/*"], permissions=[AccessResource.PERMISSION_AUTHENTICATED]),
    ]


class BehaveSettings(BaseModel):
    """Redirect targets per decision; unset decisions fall back."""

    not_resource_path: Optional[str] = None
    not_authentication_path: Optional[str] = "/login"
    invalid_authentication_path: Optional[str] = None
    not_authorization_path: Optional[str] = None
    not_signature_path: Optional[str] = "/signature"
    access_denied_path: Optional[str] = "/denied"

    def to_config(self) -> BehaveConfig:
        return BehaveConfig(**self.model_dump())


class VoterSettings(BaseModel):
    hierarchy: Optional[str] = Field(default=None, description="Relation such as 'admin>user;user>guest'")
    all: bool = False


class StorageKeys(BaseModel):
    authentication: str = "__authentication__"
    authorization: str = "__authorization__"
    signature: str = "__signature__"


class StorageSettings(BaseModel):
    """Where identity and signatures are kept."""

    backend: Literal["memory", "file"] = "memory"
    path: Path = Field(default=Path(".routeguard/identity.json"))
    signature_path: Optional[Path] = Field(
        default=None, description="Separate file for signatures; defaults to the identity file"
    )
    keys: StorageKeys = Field(default_factory=StorageKeys)


class SessionSettings(BaseModel):
    signature_retry_limit: int = Field(default=3, ge=1)
    max_chain: int = Field(default=16, ge=1)
    multi_blocker: bool = False


class GuardSettings(BaseModel):
    """Root configuration schema."""

    resources: List[ResourceSettings] = Field(default_factory=_default_resources)
    behave: BehaveSettings = Field(default_factory=BehaveSettings)
    voter: VoterSettings = Field(default_factory=VoterSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    session: SessionSettings = Field(default_factory=SessionSettings)
    basename: Optional[str] = None
    disabled: bool = False

    @field_validator("resources")
    @classmethod
    def validate_resources(cls, value: List[ResourceSettings]) -> List[ResourceSettings]:
        if not value:
            raise ValueError("At least one resource must be configured")
        return value


class GuardConfigManager:
    """Load guard configuration files and notify listeners on reload."""

    def __init__(self, config_path: Optional[Path] = None) -> None:
        self.config_path = config_path or Path(os.environ.get("ROUTEGUARD_CONFIG", DEFAULT_CONFIG_PATH))
        self._settings: Optional[GuardSettings] = None
        self._callbacks: List[Callable[[GuardSettings], Awaitable[None]]] = []
        self._lock = asyncio.Lock()

    async def load(self) -> GuardSettings:
        """Load configuration from disk and validate it."""

        async with self._lock:
            try:
                logger.debug("loading configuration", extra={"path": str(self.config_path)})
                data = self._read_file(self.config_path)
                settings = GuardSettings(**data)
            except ConfigurationError:
                raise
            except Exception as exc:
                raise ConfigurationError(str(exc)) from exc
            self._settings = settings
            return settings

    async def reload(self) -> GuardSettings:
        settings = await self.load()
        await self._notify(settings)
        return settings

    def register_callback(self, callback: Callable[[GuardSettings], Awaitable[None]]) -> None:
        """Register a coroutine callback executed after reloads."""

        self._callbacks.append(callback)

    async def get_settings(self) -> GuardSettings:
        """Return the last loaded settings, loading them if necessary."""

        if self._settings is None:
            return await self.load()
        return self._settings

    async def _notify(self, settings: GuardSettings) -> None:
        for callback in self._callbacks:
            try:
                await callback(settings)
            except Exception as exc:  # pragma: no cover - logging side effects only
                logger.exception("configuration callback failed", exc_info=exc)

    @staticmethod
    def _read_file(path: Path) -> Dict[str, Any]:
        if not path.exists():
            raise ConfigurationError(f"Configuration file {path} does not exist")
        if path.suffix in {".yml", ".yaml"}:
            with path.open("r", encoding="utf-8") as handle:
                return yaml.safe_load(handle) or {}
        if path.suffix == ".toml":
            import tomllib

            with path.open("rb") as handle:
                return tomllib.load(handle)
        raise ConfigurationError(f"Unsupported configuration format: {path.suffix}")


def load_settings(config_path: Optional[Path] = None) -> GuardSettings:
    """Synchronously load settings, falling back to defaults when no file exists."""

    manager = GuardConfigManager(config_path)
    if not manager.config_path.exists():
        logger.debug("no configuration file, using defaults", extra={"path": str(manager.config_path)})
        return GuardSettings()
    return asyncio.run(manager.load())


__all__ = [
    "BehaveSettings",
    "DEFAULT_CONFIG_PATH",
    "GuardConfigManager",
    "GuardSettings",
    "PatternSettings",
    "ResourceSettings",
    "SessionSettings",
    "StorageKeys",
    "StorageSettings",
    "VoterSettings",
    "load_settings",
]

"""Assemble providers and sessions from validated settings."""
from __future__ import annotations

import dataclasses
from typing import TYPE_CHECKING, Any, Iterable, Mapping, Optional, Tuple

from routeguard.access.addon import AccessAddon
from routeguard.access.blocker import build_blocker
from routeguard.access.context import AccessContext
from routeguard.access.guarder import AccessGuarder, AccessProvider
from routeguard.access.handler import BehaveConfig, BehaveHandler
from routeguard.access.manager import AccessManager
from routeguard.access.matcher import AccessMatcher
from routeguard.access.navigator import AccessNavigator
from routeguard.access.recorder import AccessRecorder
from routeguard.access.session import NavigationSession, SessionNavigator
from routeguard.access.storage import FileStorage, MemoryStorage, Storage
from routeguard.access.storer import AccessStorer, AccessValidator, SimpleStorer
from routeguard.access.voter import build_voter
from routeguard.utils.logging import get_logger

if TYPE_CHECKING:
    from routeguard.core.config import GuardSettings, StorageSettings

logger = get_logger(__name__)


def build_storage(settings: "StorageSettings") -> Tuple[Storage, Storage]:
    """Return the identity storage and the signature storage."""

    if settings.backend == "file":
        aaa_storage = FileStorage(settings.path)
        if settings.signature_path is None or settings.signature_path == settings.path:
            return aaa_storage, aaa_storage
        return aaa_storage, FileStorage(settings.signature_path)
    return MemoryStorage(), MemoryStorage()


def build_storer(
    settings: "StorageSettings", *, validator: Optional[AccessValidator] = None
) -> SimpleStorer:
    aaa_storage, sign_storage = build_storage(settings)
    return SimpleStorer(
        aaa_storage,
        sign_storage,
        authentication_key=settings.keys.authentication,
        authorization_key=settings.keys.authorization,
        signature_key=settings.keys.signature,
        authentication_validator=validator,
    )


def build_provider(
    settings: "GuardSettings",
    *,
    navigator: Optional[AccessNavigator] = None,
    storer: Optional[AccessStorer] = None,
    behave: Optional[BehaveConfig] = None,
    behave_overrides: Optional[Mapping[str, Any]] = None,
    addons: Iterable[AccessAddon] = (),
    validator: Optional[AccessValidator] = None,
) -> AccessProvider:
    """Wire a context, a manager and a guarder for one session.

    ``behave`` replaces the configured behaviour entirely while
    ``behave_overrides`` patches individual fields of it, typically to add
    callbacks that cannot be expressed in a settings file. Without a
    ``navigator`` redirects are fed back into the session built on top.
    """

    matcher = AccessMatcher(
        (item.to_resource() for item in settings.resources),
        basename=settings.basename,
    )
    context = AccessContext(
        recorder=AccessRecorder(),
        voter=build_voter(settings.voter.hierarchy, settings.voter.all),
        storer=storer if storer is not None else build_storer(settings.storage, validator=validator),
        matcher=matcher,
        navigator=navigator if navigator is not None else SessionNavigator(),
    )
    config = behave if behave is not None else settings.behave.to_config()
    if behave_overrides:
        config = dataclasses.replace(config, **dict(behave_overrides))
    manager = AccessManager(
        handler=BehaveHandler(config),
        blocker=build_blocker(settings.session.multi_blocker),
        disabled=settings.disabled,
    )
    logger.debug("provider built with %d resources", len(matcher.resources))
    return AccessProvider(context, manager, AccessGuarder(context, manager, addons))


def build_session(settings: "GuardSettings", **kwargs: Any) -> NavigationSession:
    """Build a provider and drive it with a :class:`NavigationSession`."""

    on_commit = kwargs.pop("on_commit", None)
    provider = build_provider(settings, **kwargs)
    return NavigationSession(
        provider,
        signature_retry_limit=settings.session.signature_retry_limit,
        max_chain=settings.session.max_chain,
        on_commit=on_commit,
    )


__all__ = ["build_provider", "build_session", "build_storage", "build_storer"]

"""Identity and signature operations for application code.

These are the calls a login form, a logout button or a signature prompt make
against a live session. Operations that forget identity also apply to the
parent session when the context is linked to one.
"""
from __future__ import annotations

from typing import Any, Iterable, Optional, Union

from routeguard.access.aaa import Authentication, Authorization
from routeguard.access.blocker import AccessBlocker
from routeguard.access.common import AccessPath, PathLike, permission_set
from routeguard.access.context import AccessContext
from routeguard.access.resource import AccessResource
from routeguard.utils.logging import get_logger

logger = get_logger(__name__)


def _navigate_back(context: AccessContext, redirect: PathLike) -> None:
    origin = context.recorder.origin_path
    context.navigator.navigate(origin if origin is not None else redirect)


# -- identity ----------------------------------------------------------------
def obtain_authentication(context: AccessContext) -> Optional[Authentication]:
    recorder = context.recorder
    if recorder.authentication is None:
        authentication = context.storer.load_authentication(recorder)
        if authentication is not None:
            recorder.authentication = authentication
    return recorder.authentication


def obtain_authorization(context: AccessContext) -> Optional[Authorization]:
    recorder = context.recorder
    if recorder.authorization is None:
        authorization = context.storer.load_authorization(recorder, obtain_authentication(context))
        if authorization is not None:
            recorder.authorization = authorization
    return recorder.authorization


def is_logged_in(context: AccessContext) -> bool:
    authentication = obtain_authentication(context)
    return authentication is not None and authentication.is_authenticated()


def have_permission(context: AccessContext, term: Union[str, Iterable[str]]) -> bool:
    """Vote ``term`` against the session's current authorization."""

    authorization = obtain_authorization(context)
    if authorization is None:
        return False
    required = permission_set([term] if isinstance(term, str) else term)
    return context.voter.vote(required, authorization.get_permissions())


def delete_authentication(context: AccessContext) -> None:
    for linked in context.lineage():
        linked.storer.delete_authentication(linked.recorder)
        linked.storer.delete_authorization(linked.recorder)
        linked.recorder.clear_authentication()
        linked.recorder.clear_authorization()


def delete_authorization(context: AccessContext) -> None:
    for linked in context.lineage():
        linked.storer.delete_authorization(linked.recorder)
        linked.recorder.clear_authorization()


def save_authentication(
    context: AccessContext, datasheet: Any, *, navigate: bool = False, redirect: PathLike = "/"
) -> None:
    """Persist an authentication and optionally return to the origin path."""

    context.storer.save_authentication(context.recorder, datasheet)
    context.recorder.clear_authentication()
    context.recorder.clear_authorization()
    if navigate:
        _navigate_back(context, redirect)


def save_authorization(
    context: AccessContext, datasheet: Any, *, navigate: bool = False, redirect: PathLike = "/"
) -> None:
    context.storer.save_authorization(context.recorder, datasheet)
    context.recorder.clear_authorization()
    if navigate:
        _navigate_back(context, redirect)


def login(
    context: AccessContext, datasheet: Any, *, navigate: bool = True, redirect: PathLike = "/"
) -> None:
    """Persist a user datasheet and, by default, resume the interrupted navigation."""

    logger.info("login")
    save_authentication(context, datasheet, navigate=navigate, redirect=redirect)


def logout(context: AccessContext, *, navigate: bool = True, redirect: PathLike = "/") -> None:
    """Forget identity and signatures in this session and every parent session."""

    logger.info("logout")
    for linked in context.lineage():
        linked.storer.delete_authentication(linked.recorder)
        linked.storer.delete_authorization(linked.recorder)
        linked.storer.delete_signature(linked.recorder)
        linked.recorder.clear_authentication()
        linked.recorder.clear_authorization()
        if navigate:
            linked.navigator.navigate(redirect)


# -- signatures --------------------------------------------------------------
def save_signature(
    context: AccessContext,
    path: Optional[PathLike] = None,
    *,
    navigate: bool = True,
    redirect: PathLike = "/",
) -> None:
    """Record a signature for ``path`` (default: the origin path) and go there."""

    target = AccessPath.coerce(path) if path is not None else context.recorder.origin_path
    if target is not None:
        context.storer.save_signature(context.recorder, target)
    if navigate:
        context.navigator.navigate(target if target is not None else redirect)


def remove_signature(context: AccessContext, path: PathLike) -> None:
    context.storer.remove_signature(context.recorder, AccessPath.coerce(path))


def delete_signature(context: AccessContext) -> None:
    context.storer.delete_signature(context.recorder)


def purge_signature(context: AccessContext) -> None:
    """Drop the signature of the current path, e.g. when its page is closed."""

    path = context.recorder.current_path
    if path is not None:
        context.storer.remove_signature(context.recorder, path)


class SecurityBlocker:
    """Confirm-before-leaving helper on top of a blocker.

    While registered every vetoable navigation is held back and remembered in
    :attr:`path`; :meth:`proceed` lets the held navigation through once and
    :meth:`reset` drops it.
    """

    def __init__(self, context: AccessContext, blocker: AccessBlocker, *, recover: bool = True) -> None:
        self.context = context
        self.blocker = blocker
        self.recover = recover
        self.blocked = False
        self.path: Optional[AccessPath] = None
        self._jump = False
        blocker.register(self._handle)

    def _handle(self, context: AccessContext, path: AccessPath, resource: Optional[AccessResource]) -> bool:
        if self._jump:
            self._jump = False
            return False
        self.path = path
        self.blocked = True
        return True

    def proceed(self) -> None:
        if self.path is None:
            return
        target = self.path
        self._jump = True
        if self.recover:
            self.path = None
            self.blocked = False
        self.context.navigator.navigate(target)

    def reset(self) -> None:
        self.path = None
        self._jump = False
        self.blocked = False

    def close(self) -> None:
        self.blocker.unregister(self._handle)


__all__ = [
    "SecurityBlocker",
    "delete_authentication",
    "delete_authorization",
    "delete_signature",
    "have_permission",
    "is_logged_in",
    "login",
    "logout",
    "obtain_authentication",
    "obtain_authorization",
    "purge_signature",
    "remove_signature",
    "save_authentication",
    "save_authorization",
    "save_signature",
]

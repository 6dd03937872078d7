"""Decision engine and guard orchestration.

:meth:`AccessGuarder.guard_decision` walks a fixed ladder of requirements
(resource, authentication, validity, authorization, permissions, signature)
and stops at the first one that fails. Every failing rung records the path as
the session's origin path and every passing rung clears it, so after an
evaluation the origin path is either the evaluated path (something is
missing) or unset (access was granted).

:meth:`AccessGuarder.guard_handle` turns a decision into a behaviour through
the manager's handler, purging stale identity on the way.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Tuple

from routeguard.access.aaa import Authentication, Authorization
from routeguard.access.addon import AccessAddon
from routeguard.access.common import AccessBehave, AccessDecision, AccessPath
from routeguard.access.context import AccessContext
from routeguard.access.manager import AccessManager
from routeguard.access.resource import AccessResource
from routeguard.utils.logging import get_logger

logger = get_logger(__name__)


class AccessGuarder:
    """Evaluates navigations for one session and runs its addons."""

    def __init__(
        self,
        context: AccessContext,
        manager: AccessManager,
        addons: Iterable[AccessAddon] = (),
    ) -> None:
        self.context = context
        self.manager = manager
        self.addons: List[AccessAddon] = list(addons)

    # -- decision ----------------------------------------------------------------
    def guard_decision(self, block_path: AccessPath) -> AccessDecision:
        decision = self._decide(block_path)
        logger.debug(
            "guard decision",
            extra={"path": block_path.pathname, "decision": decision.value},
        )
        return decision

    def _decide(self, block_path: AccessPath) -> AccessDecision:
        recorder = self.context.recorder
        recorder.current_path = block_path

        resource = self.obtain_resource(block_path)
        if resource is None:
            recorder.clear_resource()
            return AccessDecision.NOT_RESOURCE
        recorder.resource = resource

        if resource.anonymous:
            return self._allow(block_path)

        authentication = self.obtain_authentication()
        # loaded even when not required so callers can read it off the recorder
        authorization = self.obtain_authorization(authentication)

        if authentication is None or not authentication.is_authenticated():
            return self._deny(block_path, AccessDecision.NOT_AUTHENTICATION)
        recorder.clear_origin_path()

        if not self.context.storer.verify_authentication(recorder, authentication):
            return self._deny(block_path, AccessDecision.INVALID_AUTHENTICATION)
        recorder.clear_origin_path()

        if resource.authenticated:
            return self._allow(block_path)

        if authorization is None:
            return self._deny(block_path, AccessDecision.NOT_AUTHORIZATION)
        recorder.clear_origin_path()

        if resource.authorized:
            return self._allow(block_path)

        if not self.context.voter.vote(resource.permissions, authorization.get_permissions()):
            return self._deny(block_path, AccessDecision.ACCESS_DENIED)
        recorder.clear_origin_path()

        if resource.signatured and not self.context.storer.load_signature(
            recorder, block_path, authentication, authorization
        ):
            return self._deny(block_path, AccessDecision.NOT_SIGNATURE)
        recorder.clear_origin_path()

        return self._allow(block_path)

    def _allow(self, path: AccessPath) -> AccessDecision:
        self.context.recorder.allow_path = path
        return AccessDecision.ALLOW_ACCESS

    def _deny(self, path: AccessPath, decision: AccessDecision) -> AccessDecision:
        self.context.recorder.origin_path = path
        return decision

    # -- behaviour ---------------------------------------------------------------
    def guard_handle(
        self,
        current_decision: AccessDecision,
        before_decision: Optional[AccessDecision] = None,
    ) -> AccessBehave:
        handler = self.manager.handler
        if (
            before_decision is not None
            and before_decision is not AccessDecision.ALLOW_ACCESS
            and before_decision is current_decision
        ):
            logger.warning(
                "remediation repeated its decision",
                extra={"decision": current_decision.value},
            )
            if current_decision is AccessDecision.INVALID_AUTHENTICATION:
                self.purge_authentication()
            handler.error_decision(self.context, current_decision)
            return AccessBehave.DO_NOTHING

        if current_decision is AccessDecision.NOT_RESOURCE:
            behave = handler.not_resource(self.context)
        elif current_decision is AccessDecision.NOT_AUTHENTICATION:
            self.purge_authentication()
            behave = handler.not_authentication(self.context)
        elif current_decision is AccessDecision.INVALID_AUTHENTICATION:
            behave = handler.invalid_authentication(self.context)
        elif current_decision is AccessDecision.NOT_AUTHORIZATION:
            self.purge_authorization()
            behave = handler.not_authorization(self.context)
        elif current_decision is AccessDecision.NOT_SIGNATURE:
            behave = handler.not_signature(self.context)
        elif current_decision is AccessDecision.ALLOW_ACCESS:
            behave = handler.allow_access(self.context)
        else:
            behave = handler.access_denied(self.context)
        logger.info(
            "guard behaviour",
            extra={"decision": current_decision.value, "behave": behave.value},
        )
        return behave

    def purge_authentication(self) -> None:
        """Forget authentication, authorization and signatures everywhere."""

        recorder = self.context.recorder
        storer = self.context.storer
        recorder.clear_authentication()
        recorder.clear_authorization()
        storer.delete_authentication(recorder)
        storer.delete_authorization(recorder)
        storer.delete_signature(recorder)

    def purge_authorization(self) -> None:
        """Forget authorization and signatures, keeping authentication."""

        recorder = self.context.recorder
        storer = self.context.storer
        recorder.clear_authorization()
        storer.delete_authorization(recorder)
        storer.delete_signature(recorder)

    # -- lifecycle hooks ---------------------------------------------------------
    def guard_block(self, current_path: AccessPath) -> bool:
        resource = self.obtain_resource(current_path)
        return self.manager.blocker.block(self.context, current_path, resource)

    def guard_before(self, current_path: AccessPath) -> None:
        resource = self.obtain_resource(current_path)
        self._for_addons(lambda addon: addon.guard_before(self.context, self.manager, current_path, resource))

    def guard_after(self, current_path: AccessPath, current_decision: AccessDecision) -> None:
        resource = self.obtain_resource(current_path)
        self._for_addons(
            lambda addon: addon.guard_after(
                self.context, self.manager, current_path, resource, current_decision
            )
        )

    def permit_before(self, stay_path: AccessPath, block_path: AccessPath) -> None:
        stay_resource, block_resource = self._resources_of(stay_path, block_path)
        if stay_resource is not None and stay_resource.always_signature:
            self.context.storer.remove_signature(self.context.recorder, stay_path)
        self._for_addons(
            lambda addon: addon.permit_before(
                self.context, self.manager, stay_path, block_path, stay_resource, block_resource
            )
        )

    def permit_after(self, stay_path: AccessPath, block_path: AccessPath) -> None:
        stay_resource, block_resource = self._resources_of(stay_path, block_path)
        self._for_addons(
            lambda addon: addon.permit_after(
                self.context, self.manager, stay_path, block_path, stay_resource, block_resource
            )
        )

    # -- helpers -----------------------------------------------------------------
    def _for_addons(self, fn: Callable[[AccessAddon], None]) -> None:
        for addon in self.addons:
            fn(addon)

    def _resources_of(
        self, stay_path: AccessPath, block_path: AccessPath
    ) -> Tuple[Optional[AccessResource], Optional[AccessResource]]:
        return self.obtain_resource(stay_path), self.obtain_resource(block_path)

    def obtain_resource(self, path: AccessPath) -> Optional[AccessResource]:
        return self.context.matcher.obtain(path)

    def obtain_authentication(self) -> Optional[Authentication]:
        recorder = self.context.recorder
        if recorder.authentication is None:
            authentication = self.context.storer.load_authentication(recorder)
            if authentication is not None:
                recorder.authentication = authentication
        return recorder.authentication

    def obtain_authorization(self, authentication: Optional[Authentication]) -> Optional[Authorization]:
        recorder = self.context.recorder
        if recorder.authorization is None:
            authorization = self.context.storer.load_authorization(recorder, authentication)
            if authorization is not None:
                recorder.authorization = authorization
        return recorder.authorization


@dataclass(frozen=True)
class AccessProvider:
    """A wired session: context, manager and the guarder built on them."""

    context: AccessContext
    manager: AccessManager
    guarder: AccessGuarder


__all__ = ["AccessGuarder", "AccessProvider"]

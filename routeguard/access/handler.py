"""Map decisions to remedial behaviour."""
from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Optional, Protocol, runtime_checkable

from routeguard.access.common import AccessBehave, AccessDecision, PathLike
from routeguard.utils.errors import ConfigurationError, DecisionError
from routeguard.utils.logging import get_logger

if TYPE_CHECKING:
    from routeguard.access.context import AccessContext

logger = get_logger(__name__)

BehaveFunc = Callable[["AccessContext"], AccessBehave]
AllowFunc = Callable[["AccessContext"], None]
ErrorDecisionFunc = Callable[["AccessContext", AccessDecision], None]


@runtime_checkable
class AccessHandler(Protocol):
    def not_resource(self, context: "AccessContext") -> AccessBehave: ...

    def not_authentication(self, context: "AccessContext") -> AccessBehave: ...

    def invalid_authentication(self, context: "AccessContext") -> AccessBehave: ...

    def not_authorization(self, context: "AccessContext") -> AccessBehave: ...

    def not_signature(self, context: "AccessContext") -> AccessBehave: ...

    def access_denied(self, context: "AccessContext") -> AccessBehave: ...

    def allow_access(self, context: "AccessContext") -> AccessBehave: ...

    def error_decision(self, context: "AccessContext", decision: AccessDecision) -> None: ...


@dataclass(frozen=True)
class BehaveConfig:
    """Per-decision behaviour: a redirect target or a callback.

    When both are set for a decision the redirect wins.
    """

    not_resource_path: Optional[PathLike] = None
    not_resource_func: Optional[BehaveFunc] = None
    not_authentication_path: Optional[PathLike] = None
    not_authentication_func: Optional[BehaveFunc] = None
    invalid_authentication_path: Optional[PathLike] = None
    invalid_authentication_func: Optional[BehaveFunc] = None
    not_authorization_path: Optional[PathLike] = None
    not_authorization_func: Optional[BehaveFunc] = None
    not_signature_path: Optional[PathLike] = None
    not_signature_func: Optional[BehaveFunc] = None
    access_denied_path: Optional[PathLike] = None
    access_denied_func: Optional[BehaveFunc] = None
    allow_access_func: Optional[AllowFunc] = None
    error_decision_func: Optional[ErrorDecisionFunc] = None


class BehaveHandler:
    """Resolves each decision through :class:`BehaveConfig`.

    Unconfigured decisions fall back along a fixed chain: a missing resource,
    a missing authorization and a missing signature are treated as access
    denied, and an invalid authentication as a missing one. Access denied and
    missing authentication are the ends of the chain and must be configured.
    """

    def __init__(self, config: BehaveConfig) -> None:
        self.config = config

    def _configured(
        self,
        context: "AccessContext",
        path: Optional[PathLike],
        func: Optional[BehaveFunc],
    ) -> Optional[AccessBehave]:
        if path:
            logger.info("redirecting", extra={"path": str(path)})
            context.navigator.navigate(path)
            return AccessBehave.GO_NAVIGATE
        if func is not None:
            return AccessBehave(func(context))
        return None

    def not_resource(self, context: "AccessContext") -> AccessBehave:
        behave = self._configured(context, self.config.not_resource_path, self.config.not_resource_func)
        return behave if behave is not None else self.access_denied(context)

    def not_authentication(self, context: "AccessContext") -> AccessBehave:
        behave = self._configured(
            context, self.config.not_authentication_path, self.config.not_authentication_func
        )
        if behave is None:
            raise ConfigurationError("A behaviour for notAuthentication must be configured")
        return behave

    def invalid_authentication(self, context: "AccessContext") -> AccessBehave:
        behave = self._configured(
            context, self.config.invalid_authentication_path, self.config.invalid_authentication_func
        )
        return behave if behave is not None else self.not_authentication(context)

    def not_authorization(self, context: "AccessContext") -> AccessBehave:
        behave = self._configured(
            context, self.config.not_authorization_path, self.config.not_authorization_func
        )
        return behave if behave is not None else self.access_denied(context)

    def not_signature(self, context: "AccessContext") -> AccessBehave:
        behave = self._configured(context, self.config.not_signature_path, self.config.not_signature_func)
        return behave if behave is not None else self.access_denied(context)

    def access_denied(self, context: "AccessContext") -> AccessBehave:
        behave = self._configured(context, self.config.access_denied_path, self.config.access_denied_func)
        if behave is None:
            raise ConfigurationError("A behaviour for accessDenied must be configured")
        return behave

    def allow_access(self, context: "AccessContext") -> AccessBehave:
        if self.config.allow_access_func is not None:
            self.config.allow_access_func(context)
        return AccessBehave.DO_NOTHING

    def error_decision(self, context: "AccessContext", decision: AccessDecision) -> None:
        """Handle a decision that remediation failed to change."""

        if self.config.error_decision_func is not None:
            self.config.error_decision_func(context, decision)
            return
        if decision is AccessDecision.NOT_SIGNATURE:
            return
        if decision in (AccessDecision.NOT_RESOURCE, AccessDecision.NOT_AUTHORIZATION):
            self.access_denied(context)
        elif decision is AccessDecision.INVALID_AUTHENTICATION:
            self.not_authentication(context)
        else:
            raise DecisionError(f"Remediation did not resolve decision {decision.value}")


__all__ = [
    "AccessHandler",
    "AllowFunc",
    "BehaveConfig",
    "BehaveFunc",
    "BehaveHandler",
    "ErrorDecisionFunc",
]

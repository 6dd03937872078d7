"""The navigation retry loop.

A :class:`NavigationSession` owns the mutable state of one navigation
lifecycle and exposes a single entry point,
:meth:`NavigationSession.handle_navigation_event`. Each event moves through

    idle -> blocked -> proceeding | remediating -> unblocked -> idle

Redirects issued while an event is being handled (by the behaviour handler or
an addon) are queued and handled afterwards in order, never interleaved, since
the recorder is shared mutable state.
"""
from __future__ import annotations

import uuid
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Deque, List, Optional

from routeguard.access.common import AccessBehave, AccessDecision, AccessPath, PathLike
from routeguard.access.context import AccessContext
from routeguard.access.guarder import AccessGuarder, AccessProvider
from routeguard.access.manager import AccessManager
from routeguard.access.navigator import NavigateOptions
from routeguard.utils.errors import NavigationLoopError
from routeguard.utils.logging import bind_logger

SIGNATURE_RETRY_LIMIT = 3
MAX_CHAIN = 16


class SessionState(str, Enum):
    IDLE = "idle"
    BLOCKED = "blocked"
    PROCEEDING = "proceeding"
    REMEDIATING = "remediating"
    UNBLOCKED = "unblocked"


@dataclass
class NavigationOutcome:
    """What happened to one navigation event.

    ``decisions`` lists every decision evaluated for the event, in order; the
    last one is the decision that was finally handled.
    """

    path: AccessPath
    committed: bool
    decision: Optional[AccessDecision] = None
    behave: Optional[AccessBehave] = None
    vetoed: bool = False
    decisions: List[AccessDecision] = field(default_factory=list)


class SessionNavigator:
    """Navigator that feeds redirects back into a session as new events."""

    def __init__(self) -> None:
        self.session: Optional["NavigationSession"] = None

    def bind(self, session: "NavigationSession") -> None:
        self.session = session

    def navigate(self, to: PathLike, options: Optional[NavigateOptions] = None) -> None:
        if self.session is None:
            raise RuntimeError("SessionNavigator used before being bound to a session")
        self.session.handle_navigation_event(to)


class NavigationSession:
    """Drives guard evaluation for one navigation lifecycle.

    The blocker veto is only consulted for navigations that follow a settled
    ``doNothing`` outcome, so redirects issued by remediation itself are never
    vetoed. While the session is still handling its first remediation, a
    ``notSignature`` decision answered with ``reDecision`` is re-evaluated in
    place up to ``signature_retry_limit`` times in total before being turned
    into ``accessDenied``.
    """

    def __init__(
        self,
        provider: AccessProvider,
        *,
        signature_retry_limit: int = SIGNATURE_RETRY_LIMIT,
        max_chain: int = MAX_CHAIN,
        session_id: Optional[str] = None,
        on_commit: Optional[Callable[[AccessPath], None]] = None,
    ) -> None:
        self.provider = provider
        self.signature_retry_limit = signature_retry_limit
        self.max_chain = max_chain
        self.session_id = session_id or uuid.uuid4().hex[:12]
        self.on_commit = on_commit
        self.logger = bind_logger(__name__, session_id=self.session_id)
        self.state = SessionState.IDLE
        self.location: Optional[AccessPath] = None
        self.outcomes: List[NavigationOutcome] = []
        self._pending: Deque[AccessPath] = deque()
        self._busy = False
        self._first_access = True
        self._first_handle = True
        self._signature_attempts = 1
        self._before_decision: Optional[AccessDecision] = None
        self._execute_block = False
        navigator = provider.context.navigator
        if isinstance(navigator, SessionNavigator) and navigator.session is None:
            navigator.bind(self)

    @property
    def context(self) -> AccessContext:
        return self.provider.context

    @property
    def manager(self) -> AccessManager:
        return self.provider.manager

    @property
    def guarder(self) -> AccessGuarder:
        return self.provider.guarder

    def handle_navigation_event(self, target: PathLike) -> Optional[NavigationOutcome]:
        """Handle a navigation intent towards ``target``.

        Returns the outcome of this event, or ``None`` when the event arrived
        while another one was in progress and has been queued behind it.
        """

        path = AccessPath.coerce(target)
        if self._busy:
            self._pending.append(path)
            self.logger.debug("navigation queued", extra={"path": path.pathname})
            return None

        self._busy = True
        try:
            outcome = self._process(path)
            chained = 0
            while self._pending:
                chained += 1
                if chained > self.max_chain:
                    self._pending.clear()
                    raise NavigationLoopError(
                        f"Navigation to {path} chained more than {self.max_chain} redirects"
                    )
                self._process(self._pending.popleft())
        except BaseException:
            # redirects queued by a failed event must not leak into the next one
            self._pending.clear()
            raise
        finally:
            self._busy = False
            self.state = SessionState.IDLE
        return outcome

    # -- event processing --------------------------------------------------------
    def _process(self, path: AccessPath) -> NavigationOutcome:
        if self.manager.disabled:
            self._commit(path)
            return self._record(NavigationOutcome(path=path, committed=True))

        if self._first_access:
            self._first_access = False
            self.guarder.guard_before(path)
            decision = self.guarder.guard_decision(path)
            committed = decision is AccessDecision.ALLOW_ACCESS
            if committed:
                self._commit(path)
            return self._resolve(path, decision, committed)

        if self.location is not None and self.location.pathname == path.pathname:
            self._commit(path)
            return self._record(NavigationOutcome(path=path, committed=True))

        self.state = SessionState.BLOCKED
        stay_path = self.context.recorder.allow_path
        if self._execute_block and self.guarder.guard_block(path):
            self.logger.info("navigation vetoed", extra={"path": path.pathname})
            return self._record(NavigationOutcome(path=path, committed=False, vetoed=True))

        if self._before_decision is None:
            self.guarder.guard_before(path)
        decision = self.guarder.guard_decision(path)
        committed = False
        if decision is AccessDecision.ALLOW_ACCESS:
            self._proceed(stay_path, path)
            committed = True
        return self._resolve(path, decision, committed)

    def _proceed(self, stay_path: Optional[AccessPath], path: AccessPath) -> None:
        self.state = SessionState.PROCEEDING
        is_diff = stay_path is not None and stay_path.pathname != path.pathname
        if is_diff:
            self.guarder.permit_before(stay_path, path)
        self._commit(path)
        if is_diff:
            self.guarder.permit_after(stay_path, path)

    def _resolve(self, path: AccessPath, decision: AccessDecision, committed: bool) -> NavigationOutcome:
        if decision is not AccessDecision.ALLOW_ACCESS:
            self.state = SessionState.REMEDIATING
        decisions = [decision]
        current = decision
        stay_path = self.location
        while True:
            behave = self.guarder.guard_handle(current, self._before_decision)
            navigate_next = behave is AccessBehave.RE_DECISION
            self._before_decision = current if navigate_next else None
            self._execute_block = behave is AccessBehave.DO_NOTHING

            if (
                self._first_handle
                and current is AccessDecision.NOT_SIGNATURE
                and behave is AccessBehave.RE_DECISION
            ):
                if self._signature_attempts >= self.signature_retry_limit:
                    self.logger.warning(
                        "signature retries exhausted",
                        extra={"path": path.pathname},
                    )
                    self._first_handle = False
                    self._before_decision = AccessDecision.NOT_SIGNATURE
                    current = AccessDecision.ACCESS_DENIED
                else:
                    current = self.guarder.guard_decision(path)
                    self._before_decision = None
                    self._signature_attempts += 1
                decisions.append(current)
                continue

            self._first_handle = False
            self._signature_attempts = 1
            break

        if current is AccessDecision.ALLOW_ACCESS and not committed:
            self._proceed(stay_path, path)
            committed = True

        self.state = SessionState.UNBLOCKED
        outcome = self._record(
            NavigationOutcome(
                path=path,
                committed=committed,
                decision=current,
                behave=behave,
                decisions=decisions,
            )
        )
        if navigate_next:
            self.context.navigator.navigate(path)
        else:
            self.guarder.guard_after(path, current)
        return outcome

    def _commit(self, path: AccessPath) -> None:
        self.location = path
        if self.on_commit is not None:
            self.on_commit(path)

    def _record(self, outcome: NavigationOutcome) -> NavigationOutcome:
        self.outcomes.append(outcome)
        self.logger.debug(
            "navigation handled",
            extra={
                "path": outcome.path.pathname,
                "decision": outcome.decision.value if outcome.decision else "-",
                "behave": outcome.behave.value if outcome.behave else "-",
            },
        )
        return outcome


__all__ = [
    "MAX_CHAIN",
    "NavigationOutcome",
    "NavigationSession",
    "SIGNATURE_RETRY_LIMIT",
    "SessionNavigator",
    "SessionState",
]

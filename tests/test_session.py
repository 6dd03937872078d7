from typing import List, Optional, Tuple

import pytest

from routeguard.access import support
from routeguard.access.aaa import SimpleUser
from routeguard.access.addon import AccessAddon
from routeguard.access.common import AccessBehave, AccessDecision, AccessPath
from routeguard.access.context import AccessContext
from routeguard.access.factory import build_session
from routeguard.access.handler import BehaveConfig
from routeguard.access.resource import AccessResource
from routeguard.access.session import NavigationSession, SessionState
from routeguard.core.config import GuardSettings, ResourceSettings, SessionSettings
from routeguard.utils.errors import ConfigurationError, NavigationLoopError

ANONYMOUS = AccessResource.PERMISSION_ANONYMOUS
AUTHENTICATED = AccessResource.PERMISSION_AUTHENTICATED

PUBLIC = ResourceSettings(patterns=["/login", "/denied", "/signature"], permissions=[ANONYMOUS])


class TraceAddon(AccessAddon):
    def __init__(self) -> None:
        self.before: List[str] = []
        self.after: List[Tuple[str, AccessDecision]] = []
        self.permits: List[Tuple[str, str, str]] = []

    def guard_before(self, context, manager, current_path, current_resource) -> None:
        self.before.append(current_path.pathname)

    def guard_after(self, context, manager, current_path, current_resource, current_decision) -> None:
        self.after.append((current_path.pathname, current_decision))

    def permit_before(self, context, manager, stay_path, block_path, stay_resource, block_resource) -> None:
        self.permits.append(("before", stay_path.pathname, block_path.pathname))

    def permit_after(self, context, manager, stay_path, block_path, stay_resource, block_resource) -> None:
        self.permits.append(("after", stay_path.pathname, block_path.pathname))


def _session(
    resources: Optional[List[ResourceSettings]] = None,
    *,
    behave: Optional[BehaveConfig] = None,
    addon: Optional[TraceAddon] = None,
    **settings,
) -> NavigationSession:
    if resources is not None:
        settings["resources"] = resources
    return build_session(
        GuardSettings(**settings),
        behave=behave,
        addons=[addon] if addon is not None else [],
    )


def _store_user(session: NavigationSession, *permissions: str) -> None:
    context = session.context
    context.storer.save_authentication(context.recorder, SimpleUser.of(permissions))


def test_first_access_redirects_to_login_and_login_resumes() -> None:
    addon = TraceAddon()
    session = _session(addon=addon)

    outcome = session.handle_navigation_event("/dashboard")
    assert outcome is not None
    assert outcome.decision is AccessDecision.NOT_AUTHENTICATION
    assert outcome.behave is AccessBehave.GO_NAVIGATE
    assert not outcome.committed
    assert session.location == AccessPath("/login")
    assert session.context.recorder.is_origin_path("/dashboard")
    assert session.state is SessionState.IDLE

    support.login(session.context, {"authenticated": True, "permissions": []})
    assert session.location == AccessPath("/dashboard")
    assert addon.before == ["/dashboard", "/login", "/dashboard"]
    assert addon.permits == [("before", "/login", "/dashboard"), ("after", "/login", "/dashboard")]


def test_redirect_never_commits_rejected_path() -> None:
    session = _session()
    committed: List[str] = []
    session.on_commit = lambda path: committed.append(path.pathname)

    session.handle_navigation_event("/reports")
    assert committed == ["/login"]
    assert not session.context.recorder.is_allow_path("/reports")


def test_same_pathname_is_committed_without_evaluation() -> None:
    addon = TraceAddon()
    session = _session(addon=addon)
    session.handle_navigation_event("/login")

    outcome = session.handle_navigation_event("/login?next=%2Fhome")
    assert outcome is not None
    assert outcome.committed
    assert outcome.decision is None
    assert session.location is not None
    assert session.location.search == "?next=%2Fhome"
    assert addon.before == ["/login"]


def test_blocker_vetoes_user_navigation() -> None:
    session = _session()
    session.handle_navigation_event("/login")
    blocker = session.manager.blocker
    handler = lambda context, path, resource: True
    blocker.register(handler)

    outcome = session.handle_navigation_event("/denied")
    assert outcome is not None
    assert outcome.vetoed
    assert session.location == AccessPath("/login")
    assert session.context.recorder.is_current_path("/login")

    blocker.unregister(handler)
    session.handle_navigation_event("/denied")
    assert session.location == AccessPath("/denied")


def test_blocker_is_not_consulted_on_first_access() -> None:
    session = _session()
    session.manager.blocker.register(lambda context, path, resource: True)
    outcome = session.handle_navigation_event("/login")
    assert outcome is not None
    assert outcome.committed


def test_security_blocker_holds_then_proceeds() -> None:
    session = _session()
    session.handle_navigation_event("/login")
    guard = support.SecurityBlocker(session.context, session.manager.blocker)

    session.handle_navigation_event("/signature")
    assert guard.blocked
    assert guard.path == AccessPath("/signature")
    assert session.location == AccessPath("/login")

    guard.proceed()
    assert not guard.blocked
    assert session.location == AccessPath("/signature")
    guard.close()


def test_signature_retries_escalate_to_denied() -> None:
    calls: List[AccessContext] = []

    def not_signature(context: AccessContext) -> AccessBehave:
        calls.append(context)
        return AccessBehave.RE_DECISION

    pay = ResourceSettings(patterns=["/pay"], permissions=["finance"], labels=[AccessResource.LABEL_SIGNATURED])
    behave = BehaveConfig(
        not_authentication_path="/login", access_denied_path="/denied", not_signature_func=not_signature
    )
    session = _session([PUBLIC, pay], behave=behave)
    _store_user(session, "finance")

    outcome = session.handle_navigation_event("/pay")
    assert outcome is not None
    assert outcome.decisions == [
        AccessDecision.NOT_SIGNATURE,
        AccessDecision.NOT_SIGNATURE,
        AccessDecision.NOT_SIGNATURE,
        AccessDecision.ACCESS_DENIED,
    ]
    assert outcome.behave is AccessBehave.GO_NAVIGATE
    assert len(calls) == 3
    assert session.location == AccessPath("/denied")


def test_signature_retry_limit_is_tunable() -> None:
    pay = ResourceSettings(patterns=["/pay"], permissions=["finance"], labels=[AccessResource.LABEL_SIGNATURED])
    behave = BehaveConfig(
        not_authentication_path="/login",
        access_denied_path="/denied",
        not_signature_func=lambda context: AccessBehave.RE_DECISION,
    )
    session = _session([PUBLIC, pay], behave=behave, session=SessionSettings(signature_retry_limit=1))
    _store_user(session, "finance")

    outcome = session.handle_navigation_event("/pay")
    assert outcome is not None
    assert outcome.decisions == [AccessDecision.NOT_SIGNATURE, AccessDecision.ACCESS_DENIED]


def test_signature_redirect_then_sign_resumes() -> None:
    pay = ResourceSettings(patterns=["/pay"], permissions=["finance"], labels=[AccessResource.LABEL_SIGNATURED])
    session = _session([PUBLIC, pay])
    _store_user(session, "finance")

    outcome = session.handle_navigation_event("/pay")
    assert outcome is not None
    assert outcome.decisions == [AccessDecision.NOT_SIGNATURE]
    assert outcome.behave is AccessBehave.GO_NAVIGATE
    assert session.location == AccessPath("/signature")

    support.save_signature(session.context)
    assert session.location == AccessPath("/pay")


def test_signature_granted_during_retry_commits() -> None:
    def sign_now(context: AccessContext) -> AccessBehave:
        support.save_signature(context, context.recorder.current_path, navigate=False)
        return AccessBehave.RE_DECISION

    pay = ResourceSettings(patterns=["/pay"], permissions=["finance"], labels=[AccessResource.LABEL_SIGNATURED])
    behave = BehaveConfig(
        not_authentication_path="/login", access_denied_path="/denied", not_signature_func=sign_now
    )
    session = _session([PUBLIC, pay], behave=behave)
    _store_user(session, "finance")

    outcome = session.handle_navigation_event("/pay")
    assert outcome is not None
    assert outcome.decisions == [AccessDecision.NOT_SIGNATURE, AccessDecision.ALLOW_ACCESS]
    assert outcome.committed
    assert session.location == AccessPath("/pay")


def test_leaving_always_signature_page_drops_signature() -> None:
    pay = ResourceSettings(
        patterns=["/pay"], permissions=["finance"], labels=[AccessResource.LABEL_ALWAYS_SIGNATURE]
    )
    home = ResourceSettings(patterns=["/home"], permissions=[AUTHENTICATED])
    session = _session([PUBLIC, pay, home])
    _store_user(session, "finance")
    session.context.storer.save_signature(session.context.recorder, AccessPath("/pay"))

    session.handle_navigation_event("/pay")
    assert session.location == AccessPath("/pay")

    session.handle_navigation_event("/home")
    assert session.location == AccessPath("/home")
    assert not session.context.storer.load_signature(
        session.context.recorder, AccessPath("/pay"), None, None
    )


def test_re_decision_threads_previous_decision() -> None:
    addon = TraceAddon()
    errors: List[AccessDecision] = []
    edit = ResourceSettings(patterns=["/edit"], permissions=["write"])
    home = ResourceSettings(patterns=["/home"], permissions=[AUTHENTICATED])
    behave = BehaveConfig(
        not_authentication_path="/login",
        access_denied_func=lambda context: AccessBehave.RE_DECISION,
        error_decision_func=lambda context, decision: errors.append(decision),
    )
    session = _session([PUBLIC, edit, home], behave=behave, addon=addon)
    _store_user(session, "read")

    session.handle_navigation_event("/home")
    session.handle_navigation_event("/edit")

    assert errors == [AccessDecision.ACCESS_DENIED]
    assert addon.before == ["/home", "/edit"]
    assert addon.after == [
        ("/home", AccessDecision.ALLOW_ACCESS),
        ("/edit", AccessDecision.ACCESS_DENIED),
    ]
    assert session.location == AccessPath("/home")


def test_endless_redirects_are_cut_off() -> None:
    everything = ResourceSettings(patterns=["/*"], permissions=[AUTHENTICATED])
    session = _session([everything], session=SessionSettings(max_chain=4))
    with pytest.raises(NavigationLoopError):
        session.handle_navigation_event("/dashboard")
    assert session.state is SessionState.IDLE


def test_failed_event_drops_its_queued_redirects() -> None:
    def redirect_twice(context: AccessContext) -> AccessBehave:
        context.navigator.navigate("/nowhere")
        context.navigator.navigate("/login")
        return AccessBehave.DO_NOTHING

    about = ResourceSettings(patterns=["/about"], permissions=[ANONYMOUS])
    dashboard = ResourceSettings(patterns=["/dashboard"], permissions=[AUTHENTICATED])
    session = _session(
        [PUBLIC, about, dashboard],
        behave=BehaveConfig(not_authentication_func=redirect_twice),
    )
    session.handle_navigation_event("/about")

    with pytest.raises(ConfigurationError):
        session.handle_navigation_event("/dashboard")
    assert session.state is SessionState.IDLE
    assert session.location == AccessPath("/about")

    session.handle_navigation_event("/signature")
    assert session.location == AccessPath("/signature")


def test_disabled_manager_commits_everything() -> None:
    session = _session(disabled=True)
    outcome = session.handle_navigation_event("/admin")
    assert outcome is not None
    assert outcome.committed
    assert outcome.decision is None
    assert session.location == AccessPath("/admin")


def test_multi_blocker_vetoes_when_any_handler_does() -> None:
    session = _session(session=SessionSettings(multi_blocker=True))
    session.handle_navigation_event("/login")
    blocker = session.manager.blocker
    calls: List[str] = []

    def allow(context, path, resource) -> bool:
        calls.append(path.pathname)
        return False

    blocker.register(allow)
    blocker.register(lambda context, path, resource: path.pathname == "/denied")

    outcome = session.handle_navigation_event("/denied")
    assert outcome is not None and outcome.vetoed
    session.handle_navigation_event("/signature")
    assert session.location == AccessPath("/signature")
    assert calls == ["/denied", "/signature"]

    blocker.clear()
    session.handle_navigation_event("/denied")
    assert session.location == AccessPath("/denied")

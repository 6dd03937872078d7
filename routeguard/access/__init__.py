"""Route access control: resources, decisions and the navigation loop."""
from __future__ import annotations

from .aaa import SimpleAuthentication, SimpleAuthorization, SimpleUser, UserDatasheet
from .addon import AccessAddon
from .common import AccessBehave, AccessDecision, AccessPath
from .context import AccessContext
from .factory import build_provider, build_session
from .guarder import AccessGuarder, AccessProvider
from .handler import BehaveConfig, BehaveHandler
from .linking import ParentLinkAddon
from .manager import AccessManager
from .matcher import AccessMatcher
from .resource import AccessResource, PathPattern
from .session import NavigationOutcome, NavigationSession, SessionNavigator
from .storer import SimpleStorer
from .voter import HierarchyVoter, SimpleVoter

__all__ = [
    "AccessAddon",
    "AccessBehave",
    "AccessContext",
    "AccessDecision",
    "AccessGuarder",
    "AccessManager",
    "AccessMatcher",
    "AccessPath",
    "AccessProvider",
    "AccessResource",
    "BehaveConfig",
    "BehaveHandler",
    "HierarchyVoter",
    "NavigationOutcome",
    "NavigationSession",
    "ParentLinkAddon",
    "PathPattern",
    "SessionNavigator",
    "SimpleAuthentication",
    "SimpleAuthorization",
    "SimpleStorer",
    "SimpleUser",
    "SimpleVoter",
    "UserDatasheet",
    "build_provider",
    "build_session",
]

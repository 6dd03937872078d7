"""Remediation policy of one session: behaviour handler and veto blocker."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from routeguard.access.blocker import AccessBlocker
from routeguard.access.handler import AccessHandler


@dataclass(eq=False)
class AccessManager:
    handler: AccessHandler
    blocker: AccessBlocker
    disabled: bool = False
    parent: Optional["AccessManager"] = None


__all__ = ["AccessManager"]

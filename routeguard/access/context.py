"""The collaborators one guard session evaluates with."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Optional

from routeguard.access.matcher import AccessMatcher
from routeguard.access.navigator import AccessNavigator
from routeguard.access.recorder import AccessRecorder
from routeguard.access.storer import AccessStorer
from routeguard.access.voter import Voter


@dataclass(eq=False)
class AccessContext:
    """Recorder, voter, storer, matcher and navigator of one session.

    ``parent`` links an embedded session to the session hosting it, so that
    logging out of the child also clears the parent's identity.
    """

    recorder: AccessRecorder
    voter: Voter
    storer: AccessStorer
    matcher: AccessMatcher
    navigator: AccessNavigator
    parent: Optional["AccessContext"] = None

    def lineage(self) -> Iterator["AccessContext"]:
        """Yield this context followed by its ancestors."""

        seen = set()
        context: Optional[AccessContext] = self
        while context is not None and id(context) not in seen:
            seen.add(id(context))
            yield context
            context = context.parent


__all__ = ["AccessContext"]

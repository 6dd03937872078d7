"""Typer-based CLI wiring."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import typer

from routeguard.access import support
from routeguard.access.aaa import UserDatasheet
from routeguard.access.common import AccessPath, permission_set
from routeguard.access.factory import build_provider, build_session
from routeguard.access.guarder import AccessProvider
from routeguard.access.voter import build_voter
from routeguard.core.config import GuardSettings, load_settings
from routeguard.core.ui import GuardConsole
from routeguard.utils.errors import RouteGuardError
from routeguard.utils.logging import get_logger

logger = get_logger(__name__)

app = typer.Typer(help="RouteGuard route access control")


@dataclass
class RuntimeContext:
    settings: GuardSettings
    ui: GuardConsole

    def provider(self) -> AccessProvider:
        return build_provider(self.settings)


runtime: Optional[RuntimeContext] = None


def set_runtime(value: RuntimeContext) -> None:
    global runtime
    runtime = value


def _require_runtime() -> RuntimeContext:
    if runtime is None:
        set_runtime(RuntimeContext(settings=load_settings(), ui=GuardConsole()))
    return runtime  # type: ignore[return-value]


@app.callback()
def main_callback(
    config: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Guard configuration file (YAML or TOML)"
    ),
) -> None:
    """Load the guard configuration shared by every command."""

    try:
        settings = load_settings(config)
    except RouteGuardError as exc:
        raise typer.BadParameter(str(exc)) from exc
    set_runtime(RuntimeContext(settings=settings, ui=GuardConsole()))


@app.command()
def resources() -> None:
    """List configured resources in matching order."""

    ctx = _require_runtime()
    provider = ctx.provider()
    rows = []
    for index, resource in enumerate(provider.context.matcher.resources, start=1):
        patterns = [item if isinstance(item, str) else item.path for item in resource.patterns]
        rows.append(
            [
                str(index),
                ", ".join(patterns),
                resource.describe(),
                ", ".join(sorted(resource.labels)) or "-",
            ]
        )
    ctx.ui.console.print(ctx.ui.table("Resources", ["#", "Patterns", "Access", "Labels"], rows))


@app.command()
def decide(path: str = typer.Argument(..., help="Path to evaluate")) -> None:
    """Evaluate one path against the stored identity."""

    ctx = _require_runtime()
    provider = ctx.provider()
    target = AccessPath.parse(path)
    decision = provider.guarder.guard_decision(target)
    recorder = provider.context.recorder
    ctx.ui.console.print(ctx.ui.decision(decision.value))
    resource = recorder.resource
    ctx.ui.info(f"resource: {resource.describe() if resource else '-'}")
    if recorder.origin_path is not None:
        ctx.ui.warn(f"origin: {recorder.origin_path}")


@app.command()
def simulate(paths: List[str] = typer.Argument(..., help="Paths visited in order")) -> None:
    """Run a navigation session over the given paths and show each outcome."""

    ctx = _require_runtime()
    session = build_session(ctx.settings)
    try:
        for path in paths:
            session.handle_navigation_event(path)
    except RouteGuardError as exc:
        ctx.ui.error(str(exc))
        raise typer.Exit(code=1) from exc
    rows = [
        [
            str(outcome.path),
            " > ".join(item.value for item in outcome.decisions) or "-",
            outcome.behave.value if outcome.behave else "-",
            "vetoed" if outcome.vetoed else ("yes" if outcome.committed else "no"),
        ]
        for outcome in session.outcomes
    ]
    ctx.ui.console.print(ctx.ui.table("Navigation", ["Path", "Decisions", "Behave", "Committed"], rows))
    ctx.ui.info(f"location: {session.location if session.location else '-'}")


@app.command()
def vote(
    required: List[str] = typer.Option(..., "--required", "-r", help="Required permission"),
    held: List[str] = typer.Option([], "--held", "-h", help="Held permission"),
    all_of: bool = typer.Option(False, "--all", help="Require every permission"),
    hierarchy: Optional[str] = typer.Option(None, help="Relation such as 'admin>user'"),
) -> None:
    """Vote required permissions against held ones."""

    ctx = _require_runtime()
    relation = hierarchy if hierarchy is not None else ctx.settings.voter.hierarchy
    voter = build_voter(relation, all_of)
    granted = voter.vote(permission_set(required), permission_set(held))
    if granted:
        ctx.ui.info("granted")
    else:
        ctx.ui.error("denied")
        raise typer.Exit(code=1)


@app.command()
def login(
    permission: List[str] = typer.Option([], "--permission", "-p", help="Granted permission"),
    invalid: bool = typer.Option(False, help="Store the identity as invalid"),
) -> None:
    """Store an authenticated user."""

    ctx = _require_runtime()
    provider = ctx.provider()
    datasheet = UserDatasheet(authenticated=True, permissions=sorted(set(permission)), invalid=invalid)
    support.login(provider.context, datasheet, navigate=False)
    ctx.ui.info(f"logged in with {len(datasheet.permissions)} permission(s)")


@app.command()
def logout() -> None:
    """Forget the stored identity and signatures."""

    ctx = _require_runtime()
    provider = ctx.provider()
    support.logout(provider.context, navigate=False)
    ctx.ui.info("logged out")


@app.command()
def sign(path: str = typer.Argument(..., help="Path to sign")) -> None:
    """Record a signature for a path."""

    ctx = _require_runtime()
    provider = ctx.provider()
    support.save_signature(provider.context, AccessPath.parse(path), navigate=False)
    ctx.ui.info(f"signed {AccessPath.parse(path).pathname}")


__all__ = ["RuntimeContext", "app", "set_runtime"]

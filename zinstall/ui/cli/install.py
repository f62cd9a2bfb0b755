"""
CLI commands for installing — install, resolve, stack, exec, backends.

Thin wrappers over ``zinstall.core.services.installer.Installer``.
"""

from __future__ import annotations

import json
import sys

import click

from zinstall.core.services.installer import (
    BACKEND_ORDER,
    BACKENDS,
    CycleDetected,
    UnknownTarget,
)
from zinstall.ui.cli._context import get_installer

_STATUS_ICONS = {
    "installed": "✅",
    "already_installed": "✔️ ",
    "no_method": "⏭️ ",
    "skipped": "⏭️ ",
    "failed": "❌",
}


@click.command()
@click.argument("targets", nargs=-1, required=True)
@click.option("--force-refresh", is_flag=True, help="Refresh repository metadata even if done already.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def install(ctx: click.Context, targets: tuple[str, ...], force_refresh: bool, as_json: bool) -> None:
    """Install TARGETS (recipe ids or command names) with their dependencies."""
    installer = get_installer(ctx)
    report = installer.install(*targets, force_refresh=force_refresh)

    if as_json:
        click.echo(json.dumps(report.to_dict(), indent=2))
        sys.exit(0 if report.ok else 1)

    if report.outcomes:
        click.secho("\n📋 Summary:", fg="cyan", bold=True)
        for o in report.outcomes:
            icon = _STATUS_ICONS.get(o.status, "•")
            via = f" [{o.backend}]" if o.backend else ""
            click.echo(f"   {icon} {o.name:<20}{via} {o.message}")
            for w in o.warnings:
                click.secho(f"      ⚠️  {w}", fg="yellow")

    if not report.ok:
        if report.error is not None and not report.outcomes:
            click.secho(f"❌ {report.error}", fg="red", err=True)
        sys.exit(1)


@click.command()
@click.argument("target")
@click.pass_context
def resolve(ctx: click.Context, target: str) -> None:
    """Print the recipe id that provides TARGET."""
    rid = get_installer(ctx).resolve(target)
    if rid is None:
        click.secho(f"❌ No recipe provides '{target}'", fg="red", err=True)
        sys.exit(1)
    click.echo(rid)


@click.command()
@click.argument("targets", nargs=-1, required=True)
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def stack(ctx: click.Context, targets: tuple[str, ...], as_json: bool) -> None:
    """Print the dependency-ordered install stack for TARGETS."""
    installer = get_installer(ctx)
    try:
        ids = installer.stack(*targets)
    except (UnknownTarget, CycleDetected) as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(1)

    if as_json:
        click.echo(json.dumps(
            [{"recipe_id": rid, "method": installer.method_for(rid)} for rid in ids],
            indent=2,
        ))
        return
    for rid in ids:
        method = installer.method_for(rid) or "—"
        click.echo(f"{rid:<20} {method}")


@click.command(
    "exec",
    context_settings={"ignore_unknown_options": True, "allow_interspersed_args": False},
)
@click.option("--ask", is_flag=True, help="Confirm before installing a missing command.")
@click.argument("command")
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
@click.pass_context
def exec_command(ctx: click.Context, ask: bool, command: str, args: tuple[str, ...]) -> None:
    """Run COMMAND, installing the recipe that provides it first if missing."""
    confirm = _ask_install if ask else None
    sys.exit(get_installer(ctx).ensure_and_exec(command, args, confirm=confirm))


def _ask_install(recipe_id: str) -> bool:
    return click.confirm(f"Install {recipe_id}?", default=True, err=True)


@click.command()
@click.pass_context
def backends(ctx: click.Context) -> None:
    """Show installation backends and which are available here."""
    installer = get_installer(ctx)
    available = installer.available_backends
    click.secho(
        f"🖥️  {installer.profile.family} ({installer.profile.arch})",
        fg="cyan", bold=True,
    )
    for backend in BACKEND_ORDER:
        spec = BACKENDS[backend]
        icon = "✅" if backend in available else "❌"
        batch = "batch" if spec.batchable else "single"
        click.echo(f"   {icon} {spec.precedence:>2}  {backend:<12} {batch:<7} {spec.label}")

"""
CLI commands for browsing recipes — list, show.
"""

from __future__ import annotations

import json
import sys

import click

from zinstall.ui.cli._context import get_installer


@click.group()
def recipes() -> None:
    """Recipes — list and inspect."""


@recipes.command("list")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def list_recipes(ctx: click.Context, as_json: bool) -> None:
    """List known recipes with their install method on this machine."""
    installer = get_installer(ctx)
    rows = [
        {
            "id": r.id,
            "name": r.name,
            "provides": list(r.provides),
            "depends": list(r.depends),
            "method": installer.method_for(r.id),
            "installed": installer.is_installed(r.id),
        }
        for r in installer.index.recipes()
    ]

    if as_json:
        click.echo(json.dumps(rows, indent=2))
        return

    if not rows:
        click.secho("⚠️  No recipes found", fg="yellow")
        return

    for row in rows:
        icon = "✅" if row["installed"] else "  "
        method = row["method"] or "—"
        click.echo(f"   {icon} {row['id']:<20} {method:<12} {' '.join(row['provides'])}")

    skipped = installer.index.skipped
    if skipped:
        click.secho(f"\n⚠️  {len(skipped)} malformed recipe(s) skipped:", fg="yellow")
        for path, reason in skipped.items():
            click.echo(f"   {path}: {reason}")


@recipes.command("show")
@click.argument("recipe")
@click.pass_context
def show(ctx: click.Context, recipe: str) -> None:
    """Show every field of RECIPE (id or provided command)."""
    installer = get_installer(ctx)
    rid = installer.resolve(recipe)
    if rid is None:
        click.secho(f"❌ No recipe provides '{recipe}'", fg="red", err=True)
        sys.exit(1)

    r = installer.recipe(rid)
    click.secho(f"📦 {r.name} ({r.id})", fg="cyan", bold=True)
    click.echo(f"   source: {r.source or '(in code)'}")
    click.echo(f"   method: {installer.method_for(rid) or '—'}")
    for key in sorted(r.fields):
        click.echo(f"   {key}: {r.fields[key]}")

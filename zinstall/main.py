"""
zinstall — CLI entrypoint.

Usage:
    zinstall --help
    zinstall install docker ripgrep
    zinstall exec rg --version
"""

from __future__ import annotations

from pathlib import Path

import click

from zinstall import __version__
from zinstall.core.observability.logging_config import setup_logging_from_env


@click.group()
@click.version_option(version=__version__, prog_name="zinstall")
@click.option("--verbose", "-v", is_flag=True, help="Timestamped output with logger names.")
@click.option("--quiet", "-q", is_flag=True, help="Only show errors.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to zinstall.yml (default: auto-detect).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """zinstall — install tools from recipes, dependencies first."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    setup_logging_from_env(debug=debug, quiet=quiet, verbose=verbose)


# ── Register sub-groups ────────────────────────────────────────

from zinstall.ui.cli.install import backends, exec_command, install, resolve, stack  # noqa: E402
from zinstall.ui.cli.recipes import recipes  # noqa: E402

cli.add_command(install)
cli.add_command(resolve)
cli.add_command(stack)
cli.add_command(exec_command)
cli.add_command(backends)
cli.add_command(recipes)


if __name__ == "__main__":
    cli()

"""
Shared CLI helpers — build the Installer from the click context.
"""

from __future__ import annotations

import sys

import click

from zinstall.core.config.loader import ConfigError, load_settings
from zinstall.core.services.installer import Installer


def get_installer(ctx: click.Context) -> Installer:
    """One Installer per CLI invocation, cached on the context."""
    obj = ctx.ensure_object(dict)
    if "installer" not in obj:
        try:
            settings = load_settings(obj.get("config_path"))
        except ConfigError as e:
            click.secho(f"❌ {e}", fg="red", err=True)
            sys.exit(1)
        obj["installer"] = Installer(settings)
    return obj["installer"]

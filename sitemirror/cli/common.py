"""
CLI helpers shared by all commands.
"""

from __future__ import annotations

import socket
from typing import Optional

import click

from ..config.settings import Settings
from ..errors import ConfigurationError

EXIT_CONFIGURATION_ERROR = 1


def default_hostname() -> str:
    """Short hostname of this machine."""
    return socket.gethostname().split(".")[0]


def load_settings(ctx: click.Context, **overrides) -> Settings:
    """
    Build settings for a command, exiting with 1 on bad configuration.
    """
    config_path: Optional[str] = ctx.obj.get("config_path") if ctx.obj else None
    try:
        return Settings.from_env(config_path=config_path, **overrides)
    except ConfigurationError as e:
        click.secho(f"❌ Configuration error: {e}", fg="red", err=True)
        raise SystemExit(EXIT_CONFIGURATION_ERROR)

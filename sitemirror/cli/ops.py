"""
CLI ops commands — preflight check, log pruning, status classification.

Usage:
    sitemirror check [--hostname H] [--force] [--json]
    sitemirror prune [--hostname H] [--days N]
    sitemirror classify STATUS... [--combine or|max]
"""

from __future__ import annotations

import json

import click

from ..errors import ConfigurationError
from .common import EXIT_CONFIGURATION_ERROR, default_hostname, load_settings


@click.command("check")
@click.option("--hostname", default=None, help="Location server hostname (default: this host)")
@click.option("--force", is_flag=True, help="Skip the concurrent-run check")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def check(ctx: click.Context, hostname: str | None, force: bool, as_json: bool) -> None:
    """Resolve a location and run preflight checks only."""
    from ..engine.preflight import PreflightValidator
    from ..engine.resolver import resolve

    settings = load_settings(ctx)
    hostname = hostname or default_hostname()

    try:
        identity = resolve(hostname, settings)
    except ConfigurationError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        raise SystemExit(EXIT_CONFIGURATION_ERROR)

    validator = PreflightValidator(settings)
    try:
        result = validator.validate(identity, allow_concurrent=force)
    finally:
        validator.guard.release(identity)

    if as_json:
        click.echo(json.dumps({
            "location": identity.code,
            "hostname": identity.hostname,
            "addresses": dict(identity.addresses.items()),
            "passed": result.passed,
            "exit_code": result.exit_code,
            "failures": result.messages(),
            "warnings": result.warnings,
        }, indent=2))
        raise SystemExit(result.exit_code)

    click.echo(f"\n🔎 Preflight for location {identity.code} ({identity.hostname})\n")
    for name, path in identity.addresses.items():
        click.echo(f"  {name:<20} {path}")
    click.echo()

    if result.capacity:
        click.echo(f"  Free space: {result.capacity.free_ratio:.1%} on {result.capacity.path}")
    for warning in result.warnings:
        click.secho(f"  ⚠️  {warning}", fg="yellow")
    for message in result.messages():
        click.secho(f"  ❌ {message}", fg="red")

    if result.passed:
        click.secho("\n✅ Preflight passed", fg="green")
    else:
        click.secho(f"\n❌ Preflight failed (exit {result.exit_code})", fg="red")

    raise SystemExit(result.exit_code)


@click.command("prune")
@click.option("--hostname", default=None, help="Location server hostname (default: this host)")
@click.option("--days", type=int, default=None, help="Retention horizon in days")
@click.pass_context
def prune_cmd(ctx: click.Context, hostname: str | None, days: int | None) -> None:
    """Delete a location's logs older than the retention horizon."""
    from pathlib import Path

    from ..engine.resolver import extract_code
    from ..persistence.retention import LogRetentionManager, RetentionPolicy

    settings = load_settings(ctx, retention_days=days)
    hostname = hostname or default_hostname()

    try:
        code = extract_code(hostname, settings.hostname_pattern)
    except ConfigurationError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        raise SystemExit(EXIT_CONFIGURATION_ERROR)

    manager = LogRetentionManager(
        RetentionPolicy(Path(settings.log_root), settings.retention_days)
    )
    result = manager.prune(code)

    click.echo(f"🧹 Deleted {result.deleted} file(s) from {manager.location_dir(code)}")
    for path in result.deleted_paths:
        click.echo(f"  - {path.name}")
    for error in result.errors:
        click.secho(f"  ❌ {error}", fg="red")


@click.command("classify")
@click.argument("statuses", nargs=-1, type=click.IntRange(min=0), required=True)
@click.option("--combine", type=click.Choice(["or", "max"]), default=None, help="Combination policy")
@click.pass_context
def classify_cmd(ctx: click.Context, statuses: tuple, combine: str | None) -> None:
    """Show the overall code and band for raw job statuses."""
    from ..engine.classifier import classify

    settings = load_settings(ctx, combine=combine)
    code, band = classify(statuses, policy=settings.combine, rules=settings.severity_rules)
    click.echo(f"{code} {band.value}")

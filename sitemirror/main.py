"""
Site Mirror — CLI Entry Point

Usage:
    sitemirror run [--hostname H] [--dry-run] [--force]
    sitemirror check [--hostname H]
    sitemirror prune [--hostname H] [--days N]
    sitemirror classify 1 3
"""

from __future__ import annotations

from pathlib import Path

from dotenv import load_dotenv

import click

from .cli.common import default_hostname, load_settings
from .cli.ops import check, classify_cmd, prune_cmd
from .config.settings import RunOptions
from .engine.orchestrator import MirrorOrchestrator
from .logging_config import setup_logging


@click.group()
@click.option("--config", "config_path", default=None, help="YAML settings file")
@click.option("--env-file", default=".env", help="Environment file to load")
@click.option("--log-level", default=None, help="DEBUG, INFO, WARNING, ERROR")
@click.option("--log-format", type=click.Choice(["text", "json"]), default=None)
@click.pass_context
def cli(
    ctx: click.Context,
    config_path: str | None,
    env_file: str,
    log_level: str | None,
    log_format: str | None,
) -> None:
    """Site Mirror — scheduled mirroring of location servers."""
    env_path = Path(env_file)
    if env_path.exists():
        load_dotenv(env_path)

    setup_logging(level=log_level, format_type=log_format)

    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path


@cli.command()
@click.option("--hostname", default=None, help="Location server hostname (default: this host)")
@click.option("--log-root", default=None, help="Log root directory")
@click.option("--retention-days", type=int, default=None, help="Delete logs older than N days (0 disables)")
@click.option("--force", is_flag=True, help="Skip the concurrent-run check")
@click.option("--dry-run", is_flag=True, help="List changes without mirroring")
@click.option("--parallel/--sequential", default=True, help="Run jobs concurrently")
@click.pass_context
def run(
    ctx: click.Context,
    hostname: str | None,
    log_root: str | None,
    retention_days: int | None,
    force: bool,
    dry_run: bool,
    parallel: bool,
) -> None:
    """Mirror one location and exit with the classified status."""
    settings = load_settings(ctx, log_root=log_root, retention_days=retention_days)

    options = RunOptions(
        hostname=hostname or default_hostname(),
        allow_concurrent=force,
        dry_run=dry_run,
        parallel=parallel,
    )
    report = MirrorOrchestrator(settings).run(options)

    outcome = report.outcome
    if outcome is None:
        click.secho(f"❌ {'; '.join(report.errors)}", fg="red", err=True)
    else:
        color = {"Success": "green", "Warning": "yellow"}.get(outcome.band.value, "red")
        label = " [DRY RUN]" if outcome.dry_run else ""
        click.secho(
            f"{outcome.band.value}{label}: location {outcome.identity.code} "
            f"exit {report.exit_code}",
            fg=color,
        )
        if report.summary_path:
            click.echo(f"Summary: {report.summary_path}")

    raise SystemExit(report.exit_code)


cli.add_command(check)
cli.add_command(prune_cmd)
cli.add_command(classify_cmd)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()

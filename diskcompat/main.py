"""
diskcompat — CLI entrypoint.

Usage:
    diskcompat --help
    diskcompat update admin 192.168.1.20
    diskcompat disks admin nas.local --compare
    diskcompat upload admin nas.local ./synology_geminilake_920+_host_v7.db
    diskcompat check
"""

from __future__ import annotations

import json
import signal
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import click

from diskcompat import __version__
from diskcompat.core.observability.logging_config import level_from_flags, setup_logging_from_env

STAGE_COLORS = {"ok": "green", "warning": "yellow", "skipped": "white", "failed": "red"}


@click.group()
@click.version_option(version=__version__, prog_name="diskcompat")
@click.option("--verbose", "-v", is_flag=True, help="Show remote command details.")
@click.option("--quiet", "-q", is_flag=True, help="Only log warnings and errors.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to diskcompat.yml (default: auto-detect).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """diskcompat — add installed disks to a Synology NAS compatibility database."""
    ctx.ensure_object(dict)
    ctx.obj["quiet"] = quiet
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    setup_logging_from_env(level_from_flags(verbose=debug or verbose, quiet=quiet))


# ── Helpers ─────────────────────────────────────────────────────────


def _target(ctx: click.Context, **values: Any):
    """Build the NasTarget or exit with the config error."""
    from diskcompat.core.config.loader import ConfigError, build_target

    try:
        return build_target(config_path=ctx.obj.get("config_path"), **values)
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(1)


@contextmanager
def _exit_on_signals() -> Iterator[None]:
    """Turn SIGTERM/SIGHUP into SystemExit so cleanup code runs."""

    def _handler(signum: int, _frame: Any) -> None:
        raise SystemExit(128 + signum)

    previous = {}
    for name in ("SIGTERM", "SIGHUP"):
        sig = getattr(signal, name, None)
        if sig is not None:
            previous[sig] = signal.signal(sig, _handler)
    try:
        yield
    except KeyboardInterrupt:
        click.secho("\n❌ Interrupted, temporary files removed.", fg="red", err=True)
        sys.exit(130)
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)


def _print_stages(result) -> None:
    for record in result.stages:
        color = STAGE_COLORS.get(record.status, "white")
        click.secho(f"   {record.status:<8}", fg=color, nl=False)
        message = f"  {record.message}" if record.message else ""
        click.echo(f" {record.stage}{message}")


_elevation_option = click.option(
    "--elevation",
    type=click.Choice(["interactive", "noninteractive"]),
    default=None,
    help="How sudo is obtained on the NAS (default: interactive).",
)
_timeout_option = click.option(
    "--timeout",
    "connect_timeout",
    type=int,
    default=None,
    help="SSH connect timeout in seconds (default: 10).",
)


# ── Commands ────────────────────────────────────────────────────────


@cli.command()
@click.argument("user")
@click.argument("host")
@click.argument("scratch_dir", required=False, type=click.Path(file_okay=False, path_type=Path))
@click.option("--dry-run", is_flag=True, help="Reconcile locally, upload nothing.")
@click.option(
    "--output",
    "-o",
    "output_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Also save the resulting database file here.",
)
@_elevation_option
@_timeout_option
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def update(
    ctx: click.Context,
    user: str,
    host: str,
    scratch_dir: Path | None,
    dry_run: bool,
    output_path: Path | None,
    elevation: str | None,
    connect_timeout: int | None,
    as_json: bool,
) -> None:
    """Add missing installed disks to the NAS's compatibility database.

    USER needs sudo rights on HOST. SCRATCH_DIR is where the temporary
    working directory is created (default: system temp directory).

    Examples:

        diskcompat update admin 192.168.1.20

        diskcompat update admin nas.local --dry-run -o preview.db
    """
    from diskcompat.core.use_cases.update import run_update

    target = _target(
        ctx,
        user=user,
        host=host,
        scratch_dir=scratch_dir,
        elevation=elevation,
        connect_timeout=connect_timeout,
    )

    with _exit_on_signals():
        result = run_update(target, dry_run=dry_run, output_path=output_path)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(result.exit_code)

    if not ctx.obj.get("quiet"):
        mode_label = "[dry-run] " if dry_run else ""
        click.secho(f"\n⚡ {mode_label}update — {target.destination}", fg="cyan", bold=True)
        _print_stages(result)
        click.echo()

    if not result.ok:
        click.secho(f"❌ {result.error}", fg="red", err=True)
        sys.exit(result.exit_code)

    if result.changed:
        verb = "Would add" if dry_run else "Added"
        click.secho(f"✅ {verb} {len(result.added)} disk model(s):", fg="green", bold=True)
        for model in result.added:
            click.echo(f"   • {model}")
    else:
        click.secho("✅ No missing disk models.", fg="green", bold=True)


@cli.command()
@click.argument("user")
@click.argument("host")
@click.option("--compare", is_flag=True, help="Also check each model against the NAS database.")
@_timeout_option
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def disks(
    ctx: click.Context,
    user: str,
    host: str,
    compare: bool,
    connect_timeout: int | None,
    as_json: bool,
) -> None:
    """List the physical disk models installed in the NAS."""
    from diskcompat.core.use_cases.disks import list_disks

    target = _target(ctx, user=user, host=host, connect_timeout=connect_timeout)

    with _exit_on_signals():
        result = list_disks(target, compare=compare)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.ok else 1)

    if not result.ok:
        click.secho(f"❌ {result.error}", fg="red", err=True)
        sys.exit(1)

    click.secho(f"\n💽 {result.model_id} — {len(result.disks)} disk(s)", fg="cyan", bold=True)
    for disk in result.disks:
        device = f"{disk.device:<10}" if disk.device else " " * 10
        marker = ""
        if result.known is not None:
            marker = "  ✓ listed" if result.known.get(disk.model) else "  ✗ missing"
        click.echo(f"   {device} {disk.model}{marker}")
    click.echo()


@cli.command("upload")
@click.argument("user")
@click.argument("host")
@click.argument("local_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--model", "model_id", default=None, help="NAS model identifier (default: ask the NAS).")
@click.option("--dry-run", is_flag=True, help="Validate only, upload nothing.")
@_elevation_option
@_timeout_option
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def upload_cmd(
    ctx: click.Context,
    user: str,
    host: str,
    local_file: Path,
    model_id: str | None,
    dry_run: bool,
    elevation: str | None,
    connect_timeout: int | None,
    as_json: bool,
) -> None:
    """Install a locally edited database file on the NAS."""
    from diskcompat.core.use_cases.upload import upload_database

    target = _target(
        ctx,
        user=user,
        host=host,
        elevation=elevation,
        connect_timeout=connect_timeout,
    )

    with _exit_on_signals():
        result = upload_database(target, local_file, model_id=model_id, dry_run=dry_run)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(result.exit_code)

    if not ctx.obj.get("quiet"):
        click.secho(f"\n⬆️  upload — {target.destination}", fg="cyan", bold=True)
        _print_stages(result)
        click.echo()

    if not result.ok:
        click.secho(f"❌ {result.error}", fg="red", err=True)
        sys.exit(result.exit_code)

    if dry_run:
        click.secho(f"✅ {local_file.name} is valid, would install as {result.remote_path}", fg="green")
    else:
        click.secho(f"✅ Installed as {result.remote_path}", fg="green", bold=True)


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
def check(as_json: bool) -> None:
    """Check that the ssh and scp clients are installed."""
    from diskcompat.core.use_cases.check import check_prerequisites

    result = check_prerequisites()

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.ok else 1)

    for name, info in result.tools.items():
        if info["available"]:
            click.secho(f"   ✓ {name}", fg="green")
        else:
            click.secho(f"   ✗ {name} (not found on PATH)", fg="red")

    if not result.ok:
        click.echo()
        click.secho(f"❌ Missing: {', '.join(result.missing)}", fg="red", err=True)
        sys.exit(1)


if __name__ == "__main__":
    cli()

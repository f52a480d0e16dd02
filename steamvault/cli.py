"""CLI entry point: steamvault.

Subcommands:
    steamvault create-config -o backup.json    # Generate config template
    steamvault run backup.json                 # Back up every eligible app
    steamvault scan backup.json                # Discovery + classification only
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click

from steamvault.core.config import CONFIG_TEMPLATE, BackupSettings, load_settings
from steamvault.core.logging import setup_logging
from steamvault.exceptions import ConfigError, LibraryConfigError, MirrorError
from steamvault.mirror.base import ProgressEvent
from steamvault.progress import AppProgress

_STATUS_ICONS = {
    "completed": "+",
    "planned": "=",
    "failed": "!",
    "running": "~",
    "pending": ".",
}


class _ProgressLine:
    """Single refreshed status line on stdout for the running copy."""

    def __init__(self, width: int = 78) -> None:
        self.width = width
        self.active = False

    def __call__(self, event: ProgressEvent) -> None:
        if event.indeterminate:
            text = "comparing source and destination..."
        else:
            text = f"{event.percentage:5.1f}%  {event.current_file}"
        click.echo("\r" + text[: self.width].ljust(self.width), nl=False)
        self.active = True

    def finish(self) -> None:
        if self.active:
            click.echo()
            self.active = False

    def app_changed(self, p: AppProgress) -> None:
        self.finish()
        if p.status == "running":
            click.echo(f"==> {p.app_id} {p.name}")


def _load(config_file: str | None, **overrides) -> BackupSettings:
    try:
        return load_settings(config_file, **overrides)
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


def _override_options(fn):
    """Options shared by ``run`` and ``scan``."""
    fn = click.option(
        "--exclude-app", "exclude_apps", multiple=True, help="App id to skip (repeatable)"
    )(fn)
    fn = click.option(
        "--exclude-library",
        "exclude_libraries",
        multiple=True,
        help="Library path prefix to skip, case-sensitive (repeatable)",
    )(fn)
    fn = click.option(
        "--steam-root", type=click.Path(file_okay=False), default=None,
        help="Primary Steam root (default: auto-detect)",
    )(fn)
    fn = click.argument("config_file", required=False, type=click.Path(exists=True, dir_okay=False))(fn)
    return fn


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Verbose logging")
def main(verbose: bool) -> None:
    """SteamVault: build-versioned backups of installed Steam apps."""
    setup_logging("DEBUG" if verbose else None)


@main.command("create-config")
@click.option("-o", "--output", default="steamvault.json", help="Output file path")
def create_config(output: str) -> None:
    """Generate a config template JSON file."""
    Path(output).write_text(json.dumps(CONFIG_TEMPLATE, indent=2) + "\n")
    click.echo(f"Config template written to {output}")
    click.echo("Edit the file, then run: steamvault run " + output)


@main.command("run")
@_override_options
@click.option(
    "--backup-root", type=click.Path(file_okay=False), default=None,
    help="Backup destination root",
)
@click.option("--plan-only", is_flag=True, help="Lay out destinations without copying installs")
@click.option(
    "--backend",
    type=click.Choice(["auto", "robocopy", "rsync"]),
    default=None,
    help="Mirror tool (default: auto)",
)
def run(
    config_file: str | None,
    steam_root: str | None,
    exclude_libraries: tuple[str, ...],
    exclude_apps: tuple[str, ...],
    backup_root: str | None,
    plan_only: bool,
    backend: str | None,
) -> None:
    """Back up every fully installed, non-excluded app."""
    from steamvault.orchestrator import BackupOrchestrator

    settings = _load(
        config_file,
        backup_root=backup_root,
        steam_root=steam_root,
        excluded_library_prefixes=list(exclude_libraries) or None,
        excluded_app_ids=list(exclude_apps) or None,
        plan_only=plan_only or None,
        mirror_backend=backend,
    )

    line = _ProgressLine()
    orchestrator = BackupOrchestrator(settings, sink=line)
    orchestrator.progress.callbacks.append(line.app_changed)
    try:
        outcome = orchestrator.run()
    except (ConfigError, LibraryConfigError, MirrorError) as e:
        line.finish()
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    line.finish()

    click.echo(
        f"\nLibraries: {len(outcome.libraries)} scanned, "
        f"{len(outcome.excluded_libraries)} excluded"
    )
    click.echo(f"Apps: {outcome.eligible_count} eligible, {outcome.skipped_count} skipped")

    summary = orchestrator.progress.get_summary()
    click.echo(f"\nBackup summary (total: {summary['total_duration']}s):")
    for p in summary["apps"]:
        status_icon = _STATUS_ICONS.get(p["status"], "?")
        duration = f" ({p['duration']}s)" if p["duration"] else ""
        detail = f" - {p['detail']}" if p["detail"] else ""
        error = f" - {p['error']}" if p["error"] else ""
        click.echo(f"  [{status_icon}] {p['app_id']} {p['name']}{duration}{detail}{error}")

    if outcome.fatal:
        click.echo(f"\nError: {outcome.fatal_error}", err=True)
        sys.exit(1)
    click.echo("\nAll libraries processed.")


@main.command("scan")
@_override_options
def scan(
    config_file: str | None,
    steam_root: str | None,
    exclude_libraries: tuple[str, ...],
    exclude_apps: tuple[str, ...],
) -> None:
    """List libraries and classify every manifest without copying anything."""
    from steamvault.library import discover_libraries, find_steam_root
    from steamvault.manifest import scan_library

    settings = _load(
        config_file,
        steam_root=steam_root,
        excluded_library_prefixes=list(exclude_libraries) or None,
        excluded_app_ids=list(exclude_apps) or None,
    )

    try:
        root = find_steam_root(settings.steam_root)
        discovery = discover_libraries(root, settings.excluded_library_prefixes)
    except LibraryConfigError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(f"Steam root: {root}")
    if discovery.stop_reason:
        click.echo(f"Library list ended: {discovery.stop_reason}")
    for library in discovery.excluded:
        click.echo(f"\n{library}  (excluded)")

    for library in discovery.libraries:
        results = scan_library(library, settings.excluded_app_ids)
        eligible = [r for r in results if r.eligible]
        click.echo(f"\n{library}  eligible={len(eligible)} skipped={len(results) - len(eligible)}")
        for r in results:
            mark = "+" if r.eligible else "-"
            detail = f" ({r.detail})" if r.detail else ""
            click.echo(
                f"  [{mark}] {r.record.id:>10s}  {r.reason.value:16s}  "
                f"{r.record.display_name}{detail}"
            )


if __name__ == "__main__":
    main()

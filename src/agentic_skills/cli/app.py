"""CLI entry point for agentic-skills."""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import typer
from rich.table import Table

from agentic_skills import __version__
from agentic_skills.cli.constants import ExitCodes
from agentic_skills.cli.utils import confirm_with_user, get_console, setup_logging
from agentic_skills.config import (
    ManagerSettings,
    load_config,
    merge_with_env,
    resolve_bundle_dir,
)
from agentic_skills.exceptions import (
    AgenticSkillsError,
    InstallValidationError,
    NotInstalledError,
    UnitNameError,
)
from agentic_skills.installer import DoctorReport, InstallManager, OperationReport
from agentic_skills.manifest import Manifest, Scope, discover_installations
from agentic_skills.targets.schema import LAYOUTS, TargetSchema

app = typer.Typer(help="agentic-skills - deploy skills, agents and hooks to AI coding assistants")

console = get_console()

logger = logging.getLogger(__name__)

# Errors that mean the request itself was invalid
_VALIDATION_ERRORS = (InstallValidationError, UnitNameError)


@contextmanager
def handle_errors() -> Iterator[None]:
    """Map domain errors to exit codes with a readable message."""
    try:
        yield
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")
        raise typer.Exit(ExitCodes.INTERRUPTED)
    except NotInstalledError as e:
        console.print(f"[yellow]Not installed:[/yellow] {e}")
        raise typer.Exit(ExitCodes.NOT_INSTALLED)
    except _VALIDATION_ERRORS as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(ExitCodes.VALIDATION_ERROR)
    except AgenticSkillsError as e:
        logger.error(f"{type(e).__name__}: {e}")
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(ExitCodes.GENERAL_ERROR)


def _load_settings() -> ManagerSettings:
    settings = merge_with_env(load_config())
    setup_logging(settings)
    return settings


def _build_manager(settings: ManagerSettings) -> InstallManager:
    return InstallManager(
        bundle_dir=resolve_bundle_dir(settings),
        hook_python=settings.hook_python,
        confirm=confirm_with_user,
    )


def _default_roots() -> list[Path]:
    return [Path(layout.default_root) for layout in LAYOUTS.values()]


def _resolve_root(path: Path | None) -> Path:
    """Use --path, or the single installation found at the default locations."""
    if path is not None:
        return path

    roots = discover_installations(_default_roots())
    if not roots:
        locations = ", ".join(str(root) for root in _default_roots())
        raise NotInstalledError(f"No installation found at the default locations ({locations})")
    if len(roots) > 1:
        found = ", ".join(str(root) for root in roots)
        raise InstallValidationError(f"Multiple installations found ({found}); pass --path")
    return roots[0]


def _select_target(flags: dict[TargetSchema, bool], default: TargetSchema) -> TargetSchema:
    selected = [schema for schema, enabled in flags.items() if enabled]
    if len(selected) > 1:
        names = ", ".join(f"--{schema.value}" for schema in selected)
        raise InstallValidationError(f"Choose a single target ({names} given)")
    return selected[0] if selected else default


def _print_report(report: OperationReport) -> None:
    for violation in report.violations:
        console.print(f"[yellow]⚠ Skipped {violation.unit}:[/yellow] {violation.constraint}")

    if report.dry_run:
        console.print(f"[bold]Dry run[/bold] for {report.schema.value} at {report.root}")
        for path in report.written:
            console.print(f"  [green]+[/green] {path}")
        for path in report.removed:
            console.print(f"  [red]-[/red] {path}")
        if report.settings_updated:
            console.print("  [cyan]~[/cyan] settings hook registration")
        if not (report.written or report.removed or report.settings_updated):
            console.print("  [dim]nothing to change[/dim]")
        return

    if not report.changed:
        console.print(f"[green]✓[/green] {report.root} is already up to date")
        return

    console.print(
        f"[green]✓[/green] {report.action} complete: {report.schema.value} at {report.root} "
        f"({len(report.written)} written, {len(report.removed)} removed)"
    )
    manifest = report.manifest
    if manifest is not None and report.action != "uninstall":
        console.print(
            f"  skills: {len(manifest.skills)}  agents: {len(manifest.agents)}  "
            f"hooks: {'yes' if manifest.hooks else 'no'}"
        )


def _status_table(entries: list[tuple[Path, Manifest]]) -> Table:
    table = Table(title="agentic-skills installations")
    table.add_column("Root")
    table.add_column("Target")
    table.add_column("Scope")
    table.add_column("Skills", justify="right")
    table.add_column("Agents", justify="right")
    table.add_column("Hooks")
    table.add_column("Version")
    for root, manifest in entries:
        table.add_row(
            str(root),
            manifest.target.value,
            manifest.scope.value,
            str(len(manifest.skills)),
            str(len(manifest.agents)),
            "yes" if manifest.hooks else "no",
            manifest.version or "-",
        )
    return table


def _print_doctor(report: DoctorReport) -> None:
    console.print(f"[bold]Doctor[/bold] {report.root}")
    for result in report.results:
        mark = "[green]✓[/green]" if result.passed else "[red]✗[/red]"
        console.print(f"  {mark} {result.name}: {result.detail}")
    console.print(f"\n{report.passed} passed, {report.failed} failed")


@app.command("install")
def install_command(
    claude: bool = typer.Option(False, "--claude", help="Install into .claude"),
    opencode: bool = typer.Option(False, "--opencode", help="Install into .opencode"),
    codex: bool = typer.Option(False, "--codex", help="Install into .codex"),
    codex_md: bool = typer.Option(False, "--codex-md", help="Render a single codex.md"),
    skills_only: bool = typer.Option(False, "--skills-only", help="Deploy skills only"),
    hooks_only: bool = typer.Option(False, "--hooks-only", help="Deploy the hook bridge only"),
    force: bool = typer.Option(
        False, "--force", help="Overwrite unmanaged files without prompting"
    ),
    path: Path = typer.Option(
        None, "--path", help="Target root (default: the target's default root)"
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show what would change, write nothing"),
) -> None:
    """Install skills, agents and hooks into a target."""
    with handle_errors():
        settings = _load_settings()
        schema = _select_target(
            {
                TargetSchema.CLAUDE: claude,
                TargetSchema.OPENCODE: opencode,
                TargetSchema.CODEX: codex,
                TargetSchema.CODEX_MD: codex_md,
            },
            settings.default_target,
        )
        scope = Scope.from_flags(skills_only, hooks_only)
        manager = _build_manager(settings)
        report = manager.install(schema, root=path, scope=scope, force=force, dry_run=dry_run)
        _print_report(report)


@app.command("update")
def update_command(
    path: Path = typer.Option(None, "--path", help="Installed target root"),
    force: bool = typer.Option(
        False, "--force", help="Overwrite unmanaged files without prompting"
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show what would change, write nothing"),
) -> None:
    """Update an installation from the current bundle."""
    with handle_errors():
        settings = _load_settings()
        manager = _build_manager(settings)
        report = manager.update(_resolve_root(path), force=force, dry_run=dry_run)
        _print_report(report)


@app.command("self-update")
def self_update_command(
    source: str = typer.Option(..., "--source", help="Bundle directory or git URL"),
    ref: str = typer.Option(None, "--ref", help="Branch or tag for git sources (default: main)"),
    path: Path = typer.Option(None, "--path", help="Installed target root"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation prompt"),
    force: bool = typer.Option(
        False, "--force", help="Overwrite unmanaged files without prompting"
    ),
) -> None:
    """Update an installation from another bundle source."""
    with handle_errors():
        settings = _load_settings()
        manager = _build_manager(settings)
        report = manager.self_update(source, _resolve_root(path), ref=ref, yes=yes, force=force)
        _print_report(report)


@app.command("uninstall")
def uninstall_command(
    path: Path = typer.Option(None, "--path", help="Installed target root"),
    force: bool = typer.Option(False, "--force", help="Skip confirmation prompt"),
) -> None:
    """Remove everything an installation deployed."""
    with handle_errors():
        settings = _load_settings()
        manager = _build_manager(settings)
        report = manager.uninstall(_resolve_root(path), force=force)
        _print_report(report)


@app.command("doctor")
def doctor_command(
    path: Path = typer.Option(None, "--path", help="Installed target root"),
) -> None:
    """Verify an installation against its manifest."""
    with handle_errors():
        settings = _load_settings()
        report = _build_manager(settings).doctor(_resolve_root(path))
        _print_doctor(report)

    if not report.ok:
        raise typer.Exit(ExitCodes.GENERAL_ERROR)


@app.command("status")
def status_command(
    path: Path = typer.Option(None, "--path", help="Installed target root (default: all found)"),
) -> None:
    """Show what is installed."""
    with handle_errors():
        settings = _load_settings()
        manager = _build_manager(settings)
        roots = [path] if path is not None else discover_installations(_default_roots())
        if not roots:
            raise NotInstalledError("No installation found at the default locations")
        entries = [(root, manager.status(root)) for root in roots]
        console.print(_status_table(entries))


@app.command("version")
def version_command() -> None:
    """Show the agentic-skills version."""
    console.print(f"agentic-skills version {__version__}")


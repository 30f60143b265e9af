"""Command-line interface for ricething."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from . import __version__
from .config import BuildOptions, ConfigError, HostContext, InstallOptions, Settings, load_settings
from .errors import DesktopMismatchError, RicethingError
from .manager import RiceManager
from .models import CopyAction, CopyResult, InstallAction, InstallResult
from .packages import PackageManager, PacmanPackageManager

app = typer.Typer(help="Bundle your riced desktop and install it somewhere else", no_args_is_help=True)
console = Console()

_ACTION_STYLES = {
    CopyAction.COPIED: "green",
    CopyAction.SKIPPED: "yellow",
    CopyAction.FAILED: "red",
    InstallAction.INSTALLED: "green",
    InstallAction.FAILED: "red",
}


def _create_package_manager(settings: Settings) -> PackageManager:
    return PacmanPackageManager.from_settings(settings)


def _load_manager(config: Path | None) -> RiceManager:
    context = HostContext.from_environ()
    settings = load_settings(config, context=context)
    return RiceManager(context, _create_package_manager(settings), settings)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _handle_error(exc: Exception) -> None:
    if isinstance(exc, PermissionError):
        console.print("[red]Permission denied.[/red] Re-run the command with elevated privileges (e.g. `sudo`).")
        raise typer.Exit(code=1)
    if isinstance(exc, ConfigError):
        message = str(exc)
        console.print(f"[red]{message}[/red]")
        if "Expected to find" in message:
            console.print(
                "[yellow]Make sure you pointed to the directory containing ricething.toml, or to the file itself.[/yellow]"
            )
        raise typer.Exit(code=1)
    if isinstance(exc, RicethingError):
        console.print(f"[red]{exc}[/red]")
        if isinstance(exc, DesktopMismatchError):
            console.print("[yellow]Drop --strict-desktop to install a bundle built for another desktop.[/yellow]")
        raise typer.Exit(code=1)
    raise exc


def _print_warnings(warnings: Iterable[str]) -> None:
    for message in warnings:
        console.print(f"[yellow]Warning:[/yellow] {message}")


def _styled(action: CopyAction | InstallAction) -> str:
    style = _ACTION_STYLES.get(action, "white")
    return f"[{style}]{action.value}[/{style}]"


def _format_copy_results(results: Iterable[CopyResult]) -> None:
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Kind")
    table.add_column("Entry")
    table.add_column("Action")
    table.add_column("Details", overflow="fold")

    for result in results:
        table.add_row(result.kind.value, result.name, _styled(result.action), result.details or "")

    console.print(table)


def _format_install_results(results: Iterable[InstallResult]) -> None:
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Package")
    table.add_column("Action")
    table.add_column("Details", overflow="fold")

    for result in results:
        table.add_row(result.package.name, _styled(result.action), result.details or "")

    console.print(table)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"ricething {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """Bundle your riced desktop and install it somewhere else."""

    _configure_logging(verbose)


@app.command()
def build(
    output: Path = typer.Option(Path("."), "--output", "-o", help="Directory to write the bundle into"),
    no_config: bool = typer.Option(False, "--no-config", help="Do not collect ~/.config folders"),
    no_packages: bool = typer.Option(False, "--no-packages", help="Do not collect the installed package list"),
    dotfiles: str = typer.Option("", "--dotfiles", help="Comma-separated dotfiles to include, e.g. '.vimrc,.tmux.conf'"),
    default_dotfiles: bool = typer.Option(
        False,
        "--default-dotfiles",
        help="Include the default shell and profile dotfiles",
    ),
    config: Path | None = typer.Option(None, "--config", "-c", help="Path to ricething.toml"),
) -> None:
    """Build a rice bundle you can share and install later."""

    try:
        manager = _load_manager(config)
        report = manager.build(
            BuildOptions(
                output_dir=output,
                skip_configs=no_config,
                skip_packages=no_packages,
                dotfiles=dotfiles,
                default_dotfiles=default_dotfiles,
            )
        )
    except Exception as exc:  # noqa: BLE001
        _handle_error(exc)
        return

    _print_warnings(report.warnings)
    if report.copies:
        _format_copy_results(report.copies)
    console.print(
        f"[green]Metadata written to '{report.manifest_path}' "
        f"({len(report.manifest.packages)} packages, {len(report.manifest.config_folders)} config folders).[/green]"
    )
    if report.failures:
        console.print(f"[red]{len(report.failures)} entries could not be copied.[/red]")


@app.command()
def install(
    bundle: Path = typer.Argument(..., help="Directory containing a ricething bundle"),
    no_packages: bool = typer.Option(False, "--no-packages", help="Do not install the bundled packages"),
    no_config: bool = typer.Option(False, "--no-config", help="Do not copy config folders and dotfiles"),
    strict_desktop: bool = typer.Option(
        False,
        "--strict-desktop",
        help="Abort when the bundle was built for a different desktop",
    ),
    config: Path | None = typer.Option(None, "--config", "-c", help="Path to ricething.toml"),
) -> None:
    """Install a rice bundle onto this machine."""

    try:
        manager = _load_manager(config)
        report = manager.install(
            InstallOptions(
                bundle=bundle,
                skip_packages=no_packages,
                skip_configs=no_config,
                strict_desktop=strict_desktop,
            )
        )
    except Exception as exc:  # noqa: BLE001
        _handle_error(exc)
        return

    _print_warnings(report.warnings)
    if report.packages:
        _format_install_results(report.packages)
    if report.copies:
        _format_copy_results(report.copies)

    if report.failures:
        console.print(f"[red]Finished with {len(report.failures)} failures.[/red]")
    else:
        console.print("[green]Rice installed.[/green]")


def run() -> None:
    """Entry point used for console_script bindings."""

    app()

#!/usr/bin/env python3
"""
wingetup CLI - Command-line interface
Click-based CLI for installing winget
"""

import sys
import click
from pathlib import Path
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from wingetup import __version__
from wingetup.config import ConfigManager

# Force UTF-8 encoding for stdout/stderr on Windows
# This fixes UnicodeEncodeError on Windows terminals that default to cp1252
if sys.platform == 'win32':
    import io
    if isinstance(sys.stdout, io.TextIOWrapper):
        sys.stdout.reconfigure(encoding='utf-8', errors='replace')
    if isinstance(sys.stderr, io.TextIOWrapper):
        sys.stderr.reconfigure(encoding='utf-8', errors='replace')

console = Console()


def _load_config(config_path):
    return ConfigManager.load_config(Path(config_path) if config_path else None)


@click.group(invoke_without_command=True)
@click.option('--version', is_flag=True, help='Show version and exit')
@click.pass_context
def main(ctx, version):
    """
    wingetup - install or update winget

    Downloads the latest winget release with its dependencies and
    provisions it system-wide. Falls back to Chocolatey if that fails.

    Examples:
        wingetup install          # Install or update winget
        wingetup status           # Show platform and winget status
        wingetup init             # Write a default .wingetup.yml
    """
    if version:
        click.echo(f"wingetup v{__version__}")
        ctx.exit(0)

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@main.command()
@click.option('--config', 'config_path', type=click.Path(exists=True, dir_okay=False),
              default=None, help='Path to .wingetup.yml (default: search from current dir)')
@click.option('--no-fallback', is_flag=True, help='Do not fall back to Chocolatey')
@click.option('--no-apply-path', is_flag=True, help='Do not apply the refreshed PATH to this process')
@click.option('--debug', is_flag=True, help='Show detailed debug output')
def install(config_path, no_fallback, no_apply_path, debug):
    """
    Install or update winget.

    Exits with code 1 if both the GitHub and the Chocolatey methods fail.
    """
    from wingetup.errors import WingetFailedInstall
    from wingetup.installer import InstallOutcome, WingetSetup
    from wingetup.platform.environment import apply_path

    config = _load_config(config_path)
    if no_fallback:
        config.fallback_enabled = False
    if no_apply_path:
        config.installation_apply_path = False

    setup = WingetSetup(config=config, console=console, debug=debug)
    try:
        report = setup.run()
    except WingetFailedInstall as e:
        console.print(f"\n[bold red]❌ {escape(str(e))}[/bold red]")
        if e.primary_reason:
            console.print(f"[dim]GitHub method: {escape(e.primary_reason)}[/dim]")
        if e.fallback_reason:
            console.print(f"[dim]Chocolatey method: {escape(e.fallback_reason)}[/dim]")
        sys.exit(1)

    if report.path and config.installation_apply_path:
        apply_path(report.path)

    if report.outcome == InstallOutcome.INSTALLED:
        console.print(f"\n[bold green]✅ Winget {report.release_tag or ''} installed[/bold green]")
    elif report.outcome == InstallOutcome.INSTALLED_VIA_FALLBACK:
        console.print("\n[bold green]✅ Winget installed with Chocolatey[/bold green]")

    for failure in report.cleanup_failures:
        console.print(f"[yellow]⚠ Leftover temporary file: {escape(str(failure.path))}[/yellow]")


@main.command()
@click.option('--config', 'config_path', type=click.Path(exists=True, dir_okay=False),
              default=None, help='Path to .wingetup.yml (default: search from current dir)')
@click.option('--debug', is_flag=True, help='Show detailed debug output')
def status(config_path, debug):
    """
    Show platform details and winget status.
    """
    from wingetup.installer import runner_settings
    from wingetup.platform import get_platform_info
    from wingetup.platform.installers import WingetProbe, WingetStatus
    from wingetup.release import ReleaseClient
    from wingetup.errors import WingetupError

    config = _load_config(config_path)
    info = get_platform_info()

    table = Table(title="wingetup Status", show_header=True, header_style="bold cyan")
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("OS", f"{info.os_name} {info.os_version}")
    supported = info.os_build >= config.minimum_build
    table.add_row("Build", f"{info.os_build} ({'supported' if supported else 'unsupported'})")
    table.add_row("Architecture", f"{info.architecture} -> {info.package_architecture}")

    probe = WingetProbe(settings=runner_settings(config), console=console, debug=debug)
    installed = probe.installed_version()
    table.add_row("Installed winget", installed or "not installed")

    if installed is None:
        table.add_row("Status", WingetStatus.NOT_INSTALLED.value)
    else:
        client = ReleaseClient(
            api_url=config.release_api_url,
            manifest_url=config.manifest_url,
            license_suffix=config.license_suffix,
            timeout=config.installation_download_timeout,
        )
        try:
            latest = client.latest_tag()
        except WingetupError as e:
            table.add_row("Latest release", f"[red]unavailable: {escape(str(e))}[/red]")
            table.add_row("Status", "[yellow]unknown[/yellow]")
        else:
            table.add_row("Latest release", latest)
            state = probe.status(latest_version=lambda: latest)
            table.add_row("Status", state.value)

    console.print(table)


@main.command()
@click.option('--force', is_flag=True, help='Overwrite existing configuration')
def init(force):
    """
    Write a default .wingetup.yml in the current directory.
    """
    config_path = Path.cwd() / ConfigManager.DEFAULT_CONFIG_NAME
    if config_path.exists() and not force:
        console.print(f"[yellow]⚠ {config_path} already exists (use --force to overwrite)[/yellow]")
        sys.exit(1)

    ConfigManager.create_default_config(Path.cwd())
    console.print(f"[green]✅ Created {config_path}[/green]")


if __name__ == '__main__':
    main()

#!/usr/bin/env python3
"""
wingetup Installer
Installs or updates winget from the GitHub release, falling back to
Chocolatey when the provisioning path fails.

Flow of one run:
    1. precondition check (OS build, current winget status)
    2. acquisition (dependency archive, license, app bundle)
    3. preparation (extract, filter dependencies by architecture + manifest)
    4. installation (provisioned package, source, providers/modules, PATH)
    5. cleanup of every temporary artifact, on every exit path

Each phase returns a PhaseResult; the run decides whether to fall back.
The refreshed PATH is returned in the InstallReport, never applied here.
"""

import zipfile
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from rich.console import Console
from rich.markup import escape

from wingetup.config import ConfigManager, WingetupConfig
from wingetup.errors import ReleaseMetadataError, WingetFailedInstall, WingetupError
from wingetup.platform.detector import PlatformInfo, get_platform_info
from wingetup.platform.environment import PathReader, compute_refreshed_path, read_registry_path
from wingetup.platform.installers.windows import (
    AppxProvisioner,
    ChocolateyInstaller,
    WingetProbe,
    WingetStatus,
)
from wingetup.release import RemoteRelease, ReleaseClient
from wingetup.workspace import CleanupFailure, TempWorkspace


class InstallState(Enum):
    """States of a single install run"""
    NOT_STARTED = "not-started"
    CHECKED = "checked"
    ACQUIRING = "acquiring"
    INSTALLING = "installing"
    FALLBACK_INSTALLING = "fallback-installing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class InstallOutcome(Enum):
    """How a run that returned normally ended"""
    UNSUPPORTED_PLATFORM = "unsupported-platform"
    ALREADY_CURRENT = "already-current"
    INSTALLED = "installed"
    INSTALLED_VIA_FALLBACK = "installed-via-fallback"


@dataclass
class PhaseResult:
    """Result of one phase: a value on success, a reason on failure"""
    ok: bool
    value: Any = None
    reason: str = ''
    error: Optional[BaseException] = None

    @classmethod
    def success(cls, value: Any = None) -> 'PhaseResult':
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: BaseException) -> 'PhaseResult':
        reason = str(error) or type(error).__name__
        return cls(ok=False, reason=reason, error=error)


@dataclass
class AcquiredArtifacts:
    """Downloaded files for one release"""
    release: RemoteRelease
    dependencies_archive: Path
    license_file: Path
    bundle: Path


@dataclass
class InstallReport:
    """What a run did"""
    states: List[InstallState] = field(default_factory=lambda: [InstallState.NOT_STARTED])
    outcome: Optional[InstallOutcome] = None
    status: Optional[WingetStatus] = None
    status_assumed: bool = False
    release_tag: Optional[str] = None
    dependency_files: List[Path] = field(default_factory=list)
    path: Optional[str] = None
    primary_failure: Optional[str] = None
    fallback_failure: Optional[str] = None
    cleanup_failures: List[CleanupFailure] = field(default_factory=list)

    @property
    def state(self) -> InstallState:
        return self.states[-1]

    @property
    def changed_system(self) -> bool:
        return self.outcome in (InstallOutcome.INSTALLED, InstallOutcome.INSTALLED_VIA_FALLBACK)

    def enter(self, state: InstallState):
        self.states.append(state)


def runner_settings(config: WingetupConfig) -> Dict[str, Any]:
    """Installation settings for the command runners"""
    return {
        'retry_on_failure': config.installation_retry_on_failure,
        'command_timeout': config.installation_command_timeout,
    }


class WingetSetup:
    """
    Installs winget on the current host.

    All OS and network collaborators can be passed in; defaults talk to
    GitHub, PowerShell and the registry.
    """

    def __init__(self, config: Optional[WingetupConfig] = None,
                 platform_info: Optional[PlatformInfo] = None,
                 release_client: Optional[ReleaseClient] = None,
                 probe: Optional[WingetProbe] = None,
                 provisioner: Optional[AppxProvisioner] = None,
                 fallback_installer: Optional[ChocolateyInstaller] = None,
                 path_reader: PathReader = read_registry_path,
                 console: Optional[Console] = None,
                 debug: bool = False):
        self.config = config or ConfigManager.load_config()
        self.console = console or Console(stderr=True)
        self.debug = debug
        self.path_reader = path_reader
        self._platform_info = platform_info

        settings = runner_settings(self.config)
        self.release_client = release_client or ReleaseClient(
            api_url=self.config.release_api_url,
            manifest_url=self.config.manifest_url,
            license_suffix=self.config.license_suffix,
            timeout=self.config.installation_download_timeout,
        )
        self.probe = probe or WingetProbe(settings=settings, console=self.console, debug=debug)
        self.provisioner = provisioner or AppxProvisioner(
            settings=settings, console=self.console, debug=debug
        )
        self.fallback_installer = fallback_installer or ChocolateyInstaller(
            settings=settings, console=self.console, debug=debug, path_reader=path_reader
        )

    @property
    def platform_info(self) -> PlatformInfo:
        if self._platform_info is None:
            self._platform_info = get_platform_info()
        return self._platform_info

    def _debug(self, message: str):
        if self.debug:
            self.console.print(f"[dim]{escape('[DEBUG] ' + message)}[/dim]", highlight=False)

    # ========================================
    # Phase 1: preconditions
    # ========================================

    def check_preconditions(self, report: InstallReport) -> Optional[InstallOutcome]:
        """
        Check OS build and winget status.

        Returns:
            A terminal no-op outcome, or None when installation should proceed
        """
        build = self.platform_info.os_build
        if build < self.config.minimum_build:
            self.console.print(
                f"[red]Winget is not supported on this version of Windows "
                f"(build {build}, requires {self.config.minimum_build} or later)[/red]"
            )
            return InstallOutcome.UNSUPPORTED_PLATFORM

        self.console.print("[cyan]Checking if Winget is installed...[/cyan]")
        status = self._probe_status(report)
        report.status = status

        if status == WingetStatus.INSTALLED:
            if report.status_assumed:
                self.console.print(
                    "[yellow]Winget is installed but could not be verified as current, "
                    "skipping install[/yellow]"
                )
            else:
                self.console.print("[green]Winget is already installed and up to date[/green]")
            return InstallOutcome.ALREADY_CURRENT
        elif status == WingetStatus.OUTDATED:
            self.console.print("[yellow]Winget is out of date. Continuing with install.[/yellow]")
        elif status == WingetStatus.NOT_INSTALLED:
            self.console.print("[yellow]Winget is not installed. Continuing with install.[/yellow]")
        else:
            raise ValueError(f"Unhandled winget status: {status!r}")
        return None

    def _probe_status(self, report: InstallReport) -> WingetStatus:
        try:
            return self.probe.status(latest_version=self.release_client.latest_tag)
        except WingetupError as e:
            # winget is present but the latest release could not be checked
            self.console.print(
                f"[yellow]Could not check for a newer winget release: {escape(str(e))}[/yellow]"
            )
            report.status_assumed = True
            return WingetStatus.INSTALLED

    # ========================================
    # Phase 2: acquisition
    # ========================================

    def acquire(self, workspace: TempWorkspace) -> PhaseResult:
        """Download dependency archive, license and app bundle"""
        try:
            release = self.release_client.latest_release()
            self.console.print(f"[cyan]Latest winget release: {release.tag}[/cyan]")

            self.console.print("[cyan]Downloading winget dependencies...[/cyan]")
            self._debug(f"GET {self.config.dependencies_url}")
            self.release_client.download(self.config.dependencies_url, workspace.dependencies_archive)

            self.console.print("[cyan]Downloading winget license...[/cyan]")
            license_url = release.license_url
            self._debug(f"GET {license_url}")
            self.release_client.download(license_url, workspace.license_file)

            self.console.print("[cyan]Downloading winget bundle...[/cyan]")
            self._debug(f"GET {self.config.bundle_url}")
            self.release_client.download(self.config.bundle_url, workspace.bundle)
        except Exception as e:
            return PhaseResult.failure(e)

        return PhaseResult.success(AcquiredArtifacts(
            release=release,
            dependencies_archive=workspace.dependencies_archive,
            license_file=workspace.license_file,
            bundle=workspace.bundle,
        ))

    # ========================================
    # Phase 3: preparation
    # ========================================

    def prepare(self, workspace: TempWorkspace, artifacts: AcquiredArtifacts) -> PhaseResult:
        """Resolve the dependency packages for this architecture and release"""
        try:
            arch = self.platform_info.package_architecture
            self._debug(f"Package architecture: {arch}")

            manifest = self.release_client.dependency_manifest(artifacts.release.tag)
            self._debug(f"Required dependencies: {', '.join(manifest.names)}")

            self.console.print("[cyan]Extracting dependencies...[/cyan]")
            with zipfile.ZipFile(artifacts.dependencies_archive) as archive:
                archive.extractall(workspace.dependencies_dir)

            files = manifest.select(workspace.dependencies_dir / arch)
            if manifest.names and not files:
                raise ReleaseMetadataError(
                    f"No dependency packages for architecture {arch} in {artifacts.dependencies_archive.name}"
                )
            for path in files:
                self._debug(f"Dependency: {path.name}")
        except Exception as e:
            return PhaseResult.failure(e)

        return PhaseResult.success(files)

    # ========================================
    # Phase 4: installation
    # ========================================

    def provision(self, artifacts: AcquiredArtifacts, dependency_files: List[Path]) -> PhaseResult:
        """Provision winget and its companions; value is the refreshed PATH"""
        force = self.config.installation_force
        try:
            self.console.print("[cyan]Installing winget with prerequisites...[/cyan]")
            self.provisioner.add_provisioned_package(
                artifacts.bundle, dependency_files, artifacts.license_file
            )

            self.console.print("[cyan]Adding winget sources from the winget CDN...[/cyan]")
            self.provisioner.add_package(self.config.source_url)
            self.console.print("[green]Winget installed[/green]")

            for provider in self.config.providers:
                self.console.print(f"[cyan]Installing package provider {provider}...[/cyan]")
                self.provisioner.install_package_provider(provider, force=force)
            for module in self.config.modules:
                self.console.print(f"[cyan]Installing module {module}...[/cyan]")
                self.provisioner.install_module(module, force=force)

            path = self._refresh_path()
        except Exception as e:
            return PhaseResult.failure(e)

        return PhaseResult.success(path)

    def _refresh_path(self) -> str:
        self.console.print("[cyan]Refreshing environment variables...[/cyan]")
        return compute_refreshed_path(self.path_reader)

    def _run_primary(self, workspace: TempWorkspace, report: InstallReport) -> PhaseResult:
        report.enter(InstallState.ACQUIRING)
        acquired = self.acquire(workspace)
        if not acquired.ok:
            return acquired
        report.release_tag = acquired.value.release.tag

        prepared = self.prepare(workspace, acquired.value)
        if not prepared.ok:
            return prepared
        report.dependency_files = list(prepared.value)

        report.enter(InstallState.INSTALLING)
        return self.provision(acquired.value, prepared.value)

    # ========================================
    # Fallback
    # ========================================

    def fallback(self) -> PhaseResult:
        """Install winget through Chocolatey; value is the refreshed PATH"""
        package = self.config.fallback_package
        try:
            self.console.print(f"[cyan]Installing {package} with Chocolatey...[/cyan]")
            self.fallback_installer.install(package)
            self.console.print("[green]Winget installed[/green]")
            path = self._refresh_path()
        except Exception as e:
            return PhaseResult.failure(e)

        return PhaseResult.success(path)

    # ========================================
    # Run
    # ========================================

    def run(self) -> InstallReport:
        """
        Install or update winget.

        Returns:
            InstallReport; report.path holds the refreshed PATH to apply

        Raises:
            WingetFailedInstall: if the primary and fallback installs both
                failed (or the primary failed with fallback disabled)
        """
        report = InstallReport()

        outcome = self.check_preconditions(report)
        if outcome is not None:
            report.outcome = outcome
            report.enter(InstallState.SUCCEEDED)
            return report

        report.enter(InstallState.CHECKED)
        terminal_error: Optional[WingetFailedInstall] = None

        root = Path(self.config.temp_dir) if self.config.temp_dir else None
        workspace = TempWorkspace(root=root, console=self.console)
        with workspace:
            primary = self._run_primary(workspace, report)
            if primary.ok:
                report.outcome = InstallOutcome.INSTALLED
                report.path = primary.value
            else:
                report.primary_failure = primary.reason
                self.console.print(f"[red]Primary install failed: {escape(primary.reason)}[/red]")
                terminal_error = self._handle_primary_failure(report, primary)

        report.cleanup_failures = list(workspace.failures)

        if terminal_error is not None:
            report.enter(InstallState.FAILED)
            raise terminal_error

        report.enter(InstallState.SUCCEEDED)
        return report

    def _handle_primary_failure(self, report: InstallReport,
                                primary: PhaseResult) -> Optional[WingetFailedInstall]:
        if not self.config.fallback_enabled:
            error = WingetFailedInstall(
                f"Failed to install winget: {primary.reason}",
                primary_reason=primary.reason,
            )
            error.__cause__ = primary.error
            return error

        self.console.print(
            "[red]Failure detected while installing via GitHub method. "
            "Continuing with Chocolatey method as fallback.[/red]"
        )
        report.enter(InstallState.FALLBACK_INSTALLING)
        fallback = self.fallback()
        if fallback.ok:
            report.outcome = InstallOutcome.INSTALLED_VIA_FALLBACK
            report.path = fallback.value
            return None

        report.fallback_failure = fallback.reason
        self.console.print(f"[red]Fallback install failed: {escape(fallback.reason)}[/red]")
        error = WingetFailedInstall(
            'Failed to install!',
            primary_reason=primary.reason,
            fallback_reason=fallback.reason,
        )
        error.__cause__ = fallback.error
        return error


def install_winget(config: Optional[WingetupConfig] = None,
                   console: Optional[Console] = None,
                   debug: bool = False,
                   **collaborators) -> InstallReport:
    """
    Install or update winget on this host.

    Keyword collaborators are passed to WingetSetup (platform_info,
    release_client, probe, provisioner, fallback_installer, path_reader).
    """
    return WingetSetup(config=config, console=console, debug=debug, **collaborators).run()

#!/usr/bin/env python3
"""
wingetup Windows Installers
winget status probe, Appx provisioning and the Chocolatey fallback
"""

import os
import re
import shutil
import subprocess
import time
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, List, Optional, Any, Tuple

from rich.console import Console

from wingetup.errors import ChocolateyError, PowerShellError
from wingetup.platform.environment import compute_refreshed_path, PathReader, read_registry_path
from wingetup.platform.installers.base import (
    CommandRunner,
    quote_ps,
    quote_ps_list,
)


class WingetStatus(Enum):
    """Installation status of winget on the host"""
    INSTALLED = "installed"
    OUTDATED = "outdated"
    NOT_INSTALLED = "not-installed"


def parse_version(value: str) -> Tuple[int, ...]:
    """Turn 'v1.7.10861' (or 'v1.7.10861-preview') into (1, 7, 10861)"""
    match = re.search(r'\d+(?:\.\d+)*', value or '')
    if not match:
        return ()
    return tuple(int(part) for part in match.group(0).split('.'))


class WingetProbe(CommandRunner):
    """Reports whether winget is installed and current"""

    def installed_version(self) -> Optional[str]:
        """Return the output of `winget --version`, or None if unavailable"""
        winget = shutil.which('winget')
        if not winget:
            return None

        try:
            result = self.run_command([winget, '--version'], check=False)
        except (subprocess.SubprocessError, OSError):
            return None

        if result.returncode != 0 or not result.stdout.strip():
            return None
        return result.stdout.strip()

    def status(self, latest_version: Callable[[], str]) -> WingetStatus:
        """
        Compare the installed winget with the latest release.

        Args:
            latest_version: Callable returning the latest release tag. Only
                called when winget is present.
        """
        installed = self.installed_version()
        if installed is None:
            return WingetStatus.NOT_INSTALLED

        current = parse_version(installed)
        latest = parse_version(latest_version())
        self._debug(f"winget installed={installed} latest={'.'.join(map(str, latest))}")

        if current and latest and current < latest:
            return WingetStatus.OUTDATED
        return WingetStatus.INSTALLED


class AppxProvisioner(CommandRunner):
    """
    OS package deployment through the Appx and PowerShellGet cmdlets
    """

    def add_provisioned_package(self, package_path: Path, dependency_paths: List[Path],
                                license_path: Path) -> None:
        """Provision an app bundle system-wide with its dependencies and license"""
        script = (
            f"Add-AppxProvisionedPackage -Online -PackagePath {quote_ps(package_path)}"
        )
        if dependency_paths:
            script += f" -DependencyPackagePath {quote_ps_list(dependency_paths)}"
        script += f" -LicensePath {quote_ps(license_path)} | Out-Null"
        self.run_powershell(script)

    def add_package(self, source: str) -> None:
        """Install an Appx/MSIX package from a path or direct URL"""
        self.run_powershell(f"Add-AppxPackage -Path {quote_ps(source)}")

    def install_package_provider(self, name: str, force: bool = True) -> None:
        """Install a PackageManagement provider (e.g. NuGet)"""
        script = f"Install-PackageProvider -Name {quote_ps(name)}"
        if force:
            script += " -Force"
        self.run_powershell(script + " | Out-Null")

    def install_module(self, name: str, force: bool = True) -> None:
        """Install a PowerShell module from the PowerShell Gallery"""
        script = f"Install-Module -Name {quote_ps(name)}"
        if force:
            script += " -Force"
        self.run_powershell(script)


class ChocolateyInstaller(CommandRunner):
    """Windows package installer using Chocolatey"""

    DEFAULT_PATH = r'C:\ProgramData\chocolatey\bin\choco.exe'

    INSTALL_SCRIPT = (
        "Set-ExecutionPolicy Bypass -Scope Process -Force; "
        "[System.Net.ServicePointManager]::SecurityProtocol = "
        "[System.Net.ServicePointManager]::SecurityProtocol -bor 3072; "
        "iex ((New-Object System.Net.WebClient).DownloadString("
        "'https://community.chocolatey.org/install.ps1'))"
    )

    def __init__(self, settings: Optional[Dict[str, Any]] = None,
                 console: Optional[Console] = None, debug: bool = False,
                 path_reader: PathReader = read_registry_path,
                 settle_seconds: float = 3):
        super().__init__(settings=settings, console=console, debug=debug)
        self.pm_path = shutil.which('choco')
        self.path_reader = path_reader
        self.settle_seconds = settle_seconds

    def find_choco(self) -> Optional[str]:
        """Locate choco.exe in PATH, the registry PATH or the default location"""
        if self.pm_path:
            return self.pm_path

        # PATH might not be refreshed in the current session
        refreshed = compute_refreshed_path(self.path_reader)
        if refreshed:
            found = shutil.which('choco', path=refreshed)
            if found:
                return found

        if os.path.exists(self.DEFAULT_PATH):
            return self.DEFAULT_PATH

        return None

    def install_chocolatey(self) -> bool:
        """
        Install Chocolatey package manager
        Runs the official Chocolatey installation script
        Note: Must be run from an admin PowerShell

        Returns:
            True if choco is available afterwards
        """
        self._debug("This will download and run the Chocolatey install script...")
        result = self.run_powershell(self.INSTALL_SCRIPT, check=False)
        self._debug(f"Command exit code: {result.returncode}")

        # Wait a moment for installation to finalize
        if self.settle_seconds:
            time.sleep(self.settle_seconds)

        self.pm_path = shutil.which('choco')
        choco_exe = self.find_choco()
        self._debug(f"Final result: chocolatey {'INSTALLED' if choco_exe else 'NOT INSTALLED'}")
        return choco_exe is not None

    def ensure_installed(self) -> str:
        """
        Make sure Chocolatey is present, bootstrapping it if needed.

        Returns:
            Path to choco.exe

        Raises:
            ChocolateyError: if Chocolatey could not be installed
        """
        choco = self.find_choco()
        if choco:
            return choco

        self.console.print("[cyan]Chocolatey not found, installing it...[/cyan]")
        if not self.install_chocolatey():
            raise ChocolateyError("Chocolatey installation did not produce choco.exe")

        choco = self.find_choco()
        self.console.print("[green]Chocolatey installed[/green]")
        return choco

    def _validate(self, package: str):
        # Chocolatey IDs can contain alphanumeric, dash, underscore, dot
        if not package or not package.replace('-', '').replace('_', '').replace('.', '').isalnum():
            raise ChocolateyError(f"Invalid package name: {package!r}")

    def install(self, package: str) -> None:
        """Install package with choco in an elevated process"""
        self._validate(package)
        choco = self.ensure_installed()

        args = ['install', package, '-y']
        script = (
            f"$p = Start-Process -FilePath {quote_ps(choco)} "
            f"-ArgumentList {quote_ps_list(args)} "
            "-Verb RunAs -Wait -PassThru; exit $p.ExitCode"
        )
        try:
            self.run_powershell(script)
        except PowerShellError as e:
            raise ChocolateyError(
                f"choco install {package} exited with code {e.returncode}"
            ) from e

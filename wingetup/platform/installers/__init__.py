"""
wingetup Platform-Specific Installers
winget probe, Appx provisioning and Chocolatey fallback for Windows
"""

from wingetup.platform.installers.base import CommandRunner
from wingetup.platform.installers.windows import (
    AppxProvisioner,
    ChocolateyInstaller,
    WingetProbe,
    WingetStatus,
)

__all__ = [
    'CommandRunner',
    'AppxProvisioner',
    'ChocolateyInstaller',
    'WingetProbe',
    'WingetStatus',
]

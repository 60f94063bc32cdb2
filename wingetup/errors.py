#!/usr/bin/env python3
"""
wingetup Errors
Exception types raised while installing winget
"""

from typing import Optional


class WingetupError(Exception):
    """Base class for wingetup errors"""
    pass


class DownloadError(WingetupError):
    """A remote resource could not be fetched"""

    def __init__(self, url: str, reason: str):
        super().__init__(f"Failed to download {url}: {reason}")
        self.url = url
        self.reason = reason


class ReleaseMetadataError(WingetupError):
    """Release metadata or dependency manifest is missing expected fields"""
    pass


class PowerShellError(WingetupError):
    """A PowerShell command exited with a non-zero code"""

    def __init__(self, command: str, returncode: int, stderr: str = ''):
        detail = (stderr or '').strip()[:300]
        message = f"PowerShell command failed with exit code {returncode}: {command}"
        if detail:
            message += f"\n{detail}"
        super().__init__(message)
        self.command = command
        self.returncode = returncode
        self.stderr = stderr


class ChocolateyError(WingetupError):
    """Chocolatey could not be bootstrapped or failed to install a package"""
    pass


class WingetFailedInstall(WingetupError):
    """
    Terminal failure: both the primary and the fallback install failed.

    The caller is expected to halt.
    """

    def __init__(self, message: str = 'Failed to install!',
                 primary_reason: Optional[str] = None,
                 fallback_reason: Optional[str] = None):
        super().__init__(message)
        self.primary_reason = primary_reason
        self.fallback_reason = fallback_reason

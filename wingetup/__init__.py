"""
wingetup - winget installer for Windows
Installs or updates the Windows Package Manager from its GitHub release,
with Chocolatey as a fallback.
"""

__version__ = "1.0.0"
__license__ = "AGPL-3.0-or-later"

# Core modules are imported on-demand to avoid circular imports
# from wingetup.installer import install_winget

__all__ = ["__version__"]

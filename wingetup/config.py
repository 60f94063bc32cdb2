#!/usr/bin/env python3
"""
wingetup Configuration Management
Handles .wingetup.yml configuration files
"""

import yaml
from pathlib import Path
from typing import Dict, List, Optional, Any
from dataclasses import dataclass, field
from rich.console import Console

console = Console(stderr=True)


DEFAULT_RELEASE_API_URL = 'https://api.github.com/repos/microsoft/winget-cli/releases/latest'
DEFAULT_DEPENDENCIES_URL = (
    'https://github.com/microsoft/winget-cli/releases/latest/download/'
    'DesktopAppInstaller_Dependencies.zip'
)
DEFAULT_MANIFEST_URL = (
    'https://github.com/microsoft/winget-cli/releases/download/{tag}/'
    'DesktopAppInstaller_Dependencies.json'
)
DEFAULT_BUNDLE_URL = 'https://aka.ms/getwinget'
DEFAULT_SOURCE_URL = 'https://cdn.winget.microsoft.com/cache/source.msix'

# Windows 10 1809
DEFAULT_MINIMUM_BUILD = 17763


@dataclass
class WingetupConfig:
    """wingetup configuration structure"""

    # Version
    version: str = "1.0"

    minimum_build: int = DEFAULT_MINIMUM_BUILD

    # Remote release locations
    release_api_url: str = DEFAULT_RELEASE_API_URL
    dependencies_url: str = DEFAULT_DEPENDENCIES_URL
    manifest_url: str = DEFAULT_MANIFEST_URL
    bundle_url: str = DEFAULT_BUNDLE_URL
    source_url: str = DEFAULT_SOURCE_URL
    license_suffix: str = 'License1.xml'

    # Installed after the provisioned package
    providers: List[str] = field(default_factory=lambda: ['NuGet'])
    modules: List[str] = field(default_factory=lambda: ['Microsoft.WinGet.Client'])

    # Chocolatey fallback
    fallback_enabled: bool = True
    fallback_package: str = 'winget-cli'

    # Installation settings
    installation_force: bool = True
    installation_retry_on_failure: int = 1
    installation_download_timeout: Optional[float] = 300
    installation_command_timeout: Optional[float] = 1800
    installation_apply_path: bool = True

    # None = process temp directory
    temp_dir: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'WingetupConfig':
        """Create config from dictionary"""
        config = cls()

        config.version = str(data.get('version', config.version))
        try:
            config.minimum_build = int(data.get('minimum_build', config.minimum_build))
        except (TypeError, ValueError):
            config.minimum_build = DEFAULT_MINIMUM_BUILD

        release = data.get('release') or {}
        config.release_api_url = release.get('api_url', config.release_api_url)
        config.dependencies_url = release.get('dependencies_url', config.dependencies_url)
        config.manifest_url = release.get('manifest_url', config.manifest_url)
        config.bundle_url = release.get('bundle_url', config.bundle_url)
        config.source_url = release.get('source_url', config.source_url)
        config.license_suffix = release.get('license_suffix', config.license_suffix)

        if 'providers' in data:
            config.providers = list(data.get('providers') or [])
        if 'modules' in data:
            config.modules = list(data.get('modules') or [])

        fallback = data.get('fallback') or {}
        config.fallback_enabled = bool(fallback.get('enabled', config.fallback_enabled))
        config.fallback_package = fallback.get('package', config.fallback_package)

        installation = data.get('installation') or {}
        config.installation_force = bool(installation.get('force', config.installation_force))
        retry_count = installation.get('retry_on_failure', config.installation_retry_on_failure)
        try:
            config.installation_retry_on_failure = max(1, int(retry_count))
        except (TypeError, ValueError):
            config.installation_retry_on_failure = 1
        config.installation_download_timeout = _optional_seconds(
            installation.get('download_timeout', config.installation_download_timeout),
            config.installation_download_timeout,
        )
        config.installation_command_timeout = _optional_seconds(
            installation.get('command_timeout', config.installation_command_timeout),
            config.installation_command_timeout,
        )
        config.installation_apply_path = bool(
            installation.get('apply_path', config.installation_apply_path)
        )

        config.temp_dir = data.get('temp_dir', config.temp_dir)

        return config

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary for YAML export"""
        return {
            'version': self.version,
            'minimum_build': self.minimum_build,
            'release': {
                'api_url': self.release_api_url,
                'dependencies_url': self.dependencies_url,
                'manifest_url': self.manifest_url,
                'bundle_url': self.bundle_url,
                'source_url': self.source_url,
                'license_suffix': self.license_suffix,
            },
            'providers': self.providers,
            'modules': self.modules,
            'fallback': {
                'enabled': self.fallback_enabled,
                'package': self.fallback_package,
            },
            'installation': {
                'force': self.installation_force,
                'retry_on_failure': self.installation_retry_on_failure,
                'download_timeout': self.installation_download_timeout,
                'command_timeout': self.installation_command_timeout,
                'apply_path': self.installation_apply_path,
            },
            'temp_dir': self.temp_dir,
        }


def _optional_seconds(value: Any, default: Optional[float]) -> Optional[float]:
    """Parse a timeout value; None disables the timeout"""
    if value is None:
        return None
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        return default
    return seconds if seconds > 0 else None


class ConfigManager:
    """Manage wingetup configuration files"""

    DEFAULT_CONFIG_NAME = ".wingetup.yml"

    @staticmethod
    def find_config(start_path: Path = None) -> Optional[Path]:
        """
        Find .wingetup.yml by walking up directory tree

        Args:
            start_path: Starting directory (default: current directory)

        Returns:
            Path to .wingetup.yml or None if not found
        """
        current = start_path or Path.cwd()

        # Walk up directory tree
        while current != current.parent:
            config_file = current / ConfigManager.DEFAULT_CONFIG_NAME
            if config_file.exists():
                return config_file
            current = current.parent

        return None

    @staticmethod
    def load_config(config_path: Path = None) -> WingetupConfig:
        """
        Load configuration from .wingetup.yml

        Args:
            config_path: Path to config file (default: search from current dir)

        Returns:
            WingetupConfig object
        """
        if config_path is None:
            config_path = ConfigManager.find_config()

        # Return default config if no file found
        if config_path is None or not config_path.exists():
            return WingetupConfig()

        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f)

            if data is None:
                return WingetupConfig()

            if not isinstance(data, dict):
                raise ValueError("top-level YAML value must be a mapping")

            return WingetupConfig.from_dict(data)

        except (OSError, yaml.YAMLError, ValueError, AttributeError) as e:
            console.print(f"[yellow]Warning: Failed to load config from {config_path}: {e}[/yellow]")
            return WingetupConfig()

    @staticmethod
    def save_config(config: WingetupConfig, config_path: Path) -> bool:
        """
        Save configuration to .wingetup.yml

        Args:
            config: WingetupConfig object
            config_path: Path where to save

        Returns:
            True if successful
        """
        try:
            config_path.parent.mkdir(parents=True, exist_ok=True)

            with open(config_path, 'w', encoding='utf-8') as f:
                yaml.dump(
                    config.to_dict(),
                    f,
                    default_flow_style=False,
                    sort_keys=False,
                    indent=2
                )

            return True

        except OSError as e:
            console.print(f"[red]Error: Failed to save config to {config_path}: {e}[/red]")
            return False

    @staticmethod
    def create_default_config(directory: Path) -> Path:
        """
        Create default .wingetup.yml in a directory

        Args:
            directory: Target directory

        Returns:
            Path to created config file
        """
        config = WingetupConfig()
        config_path = directory / ConfigManager.DEFAULT_CONFIG_NAME

        ConfigManager.save_config(config, config_path)

        return config_path

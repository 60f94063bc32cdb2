#!/usr/bin/env python3
"""
wingetup Release Client
Fetches winget-cli release metadata, the dependency manifest and artifacts
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import requests

from wingetup import __version__
from wingetup.errors import DownloadError, ReleaseMetadataError

USER_AGENT = f"wingetup/{__version__}"
CHUNK_SIZE = 64 * 1024


@dataclass(frozen=True)
class RemoteRelease:
    """A published winget-cli release"""
    tag: str
    assets: Dict[str, str] = field(default_factory=dict)
    license_suffix: str = 'License1.xml'

    @property
    def version(self) -> str:
        return self.tag[1:] if self.tag.lower().startswith('v') else self.tag

    @property
    def license_url(self) -> str:
        for name, url in self.assets.items():
            if name.endswith(self.license_suffix):
                return url
        raise ReleaseMetadataError(
            f"Release {self.tag} has no asset ending in {self.license_suffix}"
        )

    @classmethod
    def from_api(cls, data: Dict[str, Any], license_suffix: str = 'License1.xml') -> 'RemoteRelease':
        """Build from a GitHub REST `releases/latest` payload"""
        tag = data.get('tag_name') if isinstance(data, dict) else None
        if not tag:
            raise ReleaseMetadataError("Release metadata has no tag_name")

        entries = data.get('assets') or []
        if not isinstance(entries, list):
            raise ReleaseMetadataError(f"Release {tag} has a malformed assets list")

        assets = {}
        for asset in entries:
            if not isinstance(asset, dict):
                continue
            name = asset.get('name')
            url = asset.get('browser_download_url')
            if name and url:
                assets[name] = url

        return cls(tag=tag, assets=assets, license_suffix=license_suffix)


@dataclass(frozen=True)
class DependencyManifest:
    """Ordered dependency name prefixes required by a release"""
    names: Tuple[str, ...]

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> 'DependencyManifest':
        """
        Parse DesktopAppInstaller_Dependencies.json:
        {"Dependencies": [{"Name": "...", "Version": "..."}, ...]}
        """
        entries = data.get('Dependencies') if isinstance(data, dict) else None
        if entries is None:
            raise ReleaseMetadataError("Dependency manifest has no Dependencies list")

        names = []
        for entry in entries:
            name = entry.get('Name') if isinstance(entry, dict) else None
            if not name:
                raise ReleaseMetadataError(f"Dependency entry without Name: {entry!r}")
            names.append(name)
        return cls(names=tuple(names))

    def select(self, directory: Path) -> List[Path]:
        """
        Files directly inside `directory` whose names start with a
        dependency prefix, in manifest order.
        """
        if not directory.is_dir():
            raise FileNotFoundError(f"Dependency directory not found: {directory}")

        files = sorted(p for p in directory.iterdir() if p.is_file())
        selected: List[Path] = []
        for prefix in self.names:
            for candidate in files:
                if candidate.name.startswith(prefix) and candidate not in selected:
                    selected.append(candidate)
        return selected


class ReleaseClient:
    """HTTP access to the winget-cli release endpoints"""

    def __init__(self, api_url: str, manifest_url: str, license_suffix: str = 'License1.xml',
                 timeout: Optional[float] = 300, session: Optional[requests.Session] = None):
        self.api_url = api_url
        self.manifest_url = manifest_url
        self.license_suffix = license_suffix
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.setdefault('User-Agent', USER_AGENT)
        self._latest: Optional[RemoteRelease] = None

    def _get_json(self, url: str, headers: Optional[Dict[str, str]] = None) -> Any:
        try:
            response = self.session.get(url, headers=headers, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise DownloadError(url, str(e)) from e

        try:
            return response.json()
        except ValueError as e:
            raise ReleaseMetadataError(f"Invalid JSON from {url}: {e}") from e

    def latest_release(self) -> RemoteRelease:
        """Fetch (once) the latest release metadata"""
        if self._latest is None:
            data = self._get_json(self.api_url, headers={'Accept': 'application/vnd.github+json'})
            self._latest = RemoteRelease.from_api(data, self.license_suffix)
        return self._latest

    def latest_tag(self) -> str:
        return self.latest_release().tag

    def dependency_manifest(self, tag: str) -> DependencyManifest:
        """Fetch the version-pinned dependency manifest"""
        url = self.manifest_url.format(tag=tag)
        return DependencyManifest.from_json(self._get_json(url))

    def download(self, url: str, destination: Path) -> Path:
        """Stream a remote file to `destination`"""
        destination.parent.mkdir(parents=True, exist_ok=True)
        try:
            with self.session.get(url, stream=True, timeout=self.timeout) as response:
                response.raise_for_status()
                with open(destination, 'wb') as f:
                    for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                        if chunk:
                            f.write(chunk)
        except requests.RequestException as e:
            raise DownloadError(url, str(e)) from e
        return destination

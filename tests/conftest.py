"""
Shared fixtures: in-memory fakes for the network and OS collaborators
"""
import io
import zipfile
from pathlib import Path

import pytest
from rich.console import Console

from wingetup.config import WingetupConfig
from wingetup.errors import DownloadError
from wingetup.platform.detector import OSType, PlatformInfo
from wingetup.platform.installers.windows import WingetStatus
from wingetup.release import DependencyManifest, RemoteRelease

RELEASE_TAG = 'v1.7.10861'
LICENSE_URL = 'https://example.invalid/e53e159d00e04f729cc2180cffd1c02e_License1.xml'

DEPENDENCY_FILES = [
    'x64/Microsoft.UI.Xaml.2.8_8.2310.30001.0_x64.appx',
    'x64/Microsoft.VCLibs.140.00.UWPDesktop_14.0.33728.0_x64.appx',
    'x64/Unrelated.Package_1.0.0.0_x64.appx',
    'arm64/Microsoft.UI.Xaml.2.8_8.2310.30001.0_arm64.appx',
    'arm64/Microsoft.VCLibs.140.00.UWPDesktop_14.0.33728.0_arm64.appx',
]


def make_dependencies_zip() -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, 'w') as archive:
        for name in DEPENDENCY_FILES:
            archive.writestr(name, b'appx')
    return buffer.getvalue()


class FakeReleaseClient:
    """Serves a fixed release from memory"""

    def __init__(self, config: WingetupConfig, manifest_error: Exception = None,
                 download_error: Exception = None):
        self.config = config
        self.manifest_error = manifest_error
        self.download_error = download_error
        self.calls = []
        self.release = RemoteRelease(
            tag=RELEASE_TAG,
            assets={
                'DesktopAppInstaller_Dependencies.zip': config.dependencies_url,
                'e53e159d00e04f729cc2180cffd1c02e_License1.xml': LICENSE_URL,
            },
        )

    @property
    def network_calls(self):
        return len(self.calls)

    def latest_release(self):
        self.calls.append(('release', self.config.release_api_url))
        return self.release

    def latest_tag(self):
        return self.latest_release().tag

    def dependency_manifest(self, tag):
        url = self.config.manifest_url.format(tag=tag)
        self.calls.append(('manifest', url))
        if self.manifest_error is not None:
            raise self.manifest_error
        return DependencyManifest(names=(
            'Microsoft.VCLibs.140.00.UWPDesktop',
            'Microsoft.UI.Xaml.2.8',
        ))

    def download(self, url, destination: Path):
        self.calls.append(('download', url))
        if self.download_error is not None:
            raise self.download_error
        if url == self.config.dependencies_url:
            destination.write_bytes(make_dependencies_zip())
        else:
            destination.write_bytes(b'payload')
        return destination


class FakeProbe:
    def __init__(self, status: WingetStatus):
        self._status = status
        self.calls = 0

    def status(self, latest_version):
        self.calls += 1
        return self._status


class FakeProvisioner:
    def __init__(self, error: Exception = None):
        self.error = error
        self.calls = []

    def add_provisioned_package(self, package_path, dependency_paths, license_path):
        self.calls.append(('provision', package_path, list(dependency_paths), license_path))
        if self.error is not None:
            raise self.error

    def add_package(self, source):
        self.calls.append(('package', source))

    def install_package_provider(self, name, force=True):
        self.calls.append(('provider', name, force))

    def install_module(self, name, force=True):
        self.calls.append(('module', name, force))


class FakeFallback:
    def __init__(self, error: Exception = None):
        self.error = error
        self.installed = []

    def install(self, package):
        self.installed.append(package)
        if self.error is not None:
            raise self.error


def fake_registry(machine='C:\\Windows\\system32;C:\\Windows', user='C:\\Users\\me\\AppData\\Local\\Microsoft\\WindowsApps'):
    values = {'Machine': machine, 'User': user}
    return lambda scope: values.get(scope)


@pytest.fixture
def console():
    """Console writing to a buffer; read it with console.file.getvalue()"""
    return Console(file=io.StringIO(), force_terminal=False, width=200)


@pytest.fixture
def config(tmp_path):
    cfg = WingetupConfig()
    cfg.temp_dir = str(tmp_path / 'work')
    return cfg


@pytest.fixture
def make_platform():
    def _make(build=19045, arch='AMD64', package_arch='x64'):
        return PlatformInfo(
            os_type=OSType.WINDOWS,
            os_name='Windows',
            os_version=f'10.0.{build}',
            os_build=build,
            architecture=arch,
            package_architecture=package_arch,
            python_version='3.12.0',
        )
    return _make


@pytest.fixture
def download_error():
    return DownloadError('https://example.invalid/manifest.json', 'connection reset')

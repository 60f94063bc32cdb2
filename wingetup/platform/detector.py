#!/usr/bin/env python3
"""
wingetup Platform Detection
Detects operating system, OS build number and CPU architecture
"""

import os
import platform
import re
import sys
from typing import Optional, Dict
from enum import Enum
from dataclasses import dataclass


class OSType(Enum):
    """Operating system types"""
    LINUX = "linux"
    MACOS = "macos"
    WINDOWS = "windows"
    UNKNOWN = "unknown"


# Host architecture name -> folder name used in the dependency archive
ARCHITECTURE_MAP = {
    'amd64': 'x64',
    'x86_64': 'x64',
    'x64': 'x64',
    'arm64': 'arm64',
    'aarch64': 'arm64',
    'x86': 'x86',
    'i386': 'x86',
    'i686': 'x86',
    'arm': 'arm',
}


def normalize_architecture(machine: str) -> str:
    """
    Map a host architecture string to the package architecture name.

    Unknown values are returned lower-cased so the caller still gets a
    directory name to look for.
    """
    key = (machine or '').strip().lower()
    return ARCHITECTURE_MAP.get(key, key)


def parse_build_number(version: str) -> int:
    """Extract the build number from a version string like '10.0.17763'"""
    numbers = re.findall(r'\d+', version or '')
    if len(numbers) >= 3:
        return int(numbers[2])
    return 0


@dataclass
class PlatformInfo:
    """Platform information relevant to installing winget"""
    os_type: OSType
    os_name: str
    os_version: str
    os_build: int
    architecture: str
    package_architecture: str
    python_version: str

    @property
    def is_windows(self) -> bool:
        return self.os_type == OSType.WINDOWS

    def to_dict(self) -> Dict:
        """Convert to dictionary for display"""
        return {
            'os_type': self.os_type.value,
            'os_name': self.os_name,
            'os_version': self.os_version,
            'os_build': self.os_build,
            'architecture': self.architecture,
            'package_architecture': self.package_architecture,
            'python_version': self.python_version,
        }


class PlatformDetector:
    """
    Detect platform details: OS, build number, architecture
    """

    def __init__(self):
        self.info: Optional[PlatformInfo] = None

    def detect(self) -> PlatformInfo:
        """
        Perform full platform detection

        Returns:
            PlatformInfo with all detected details
        """
        architecture = self._detect_architecture()

        self.info = PlatformInfo(
            os_type=self._detect_os(),
            os_name=platform.system(),
            os_version=platform.version(),
            os_build=self._detect_build(),
            architecture=architecture,
            package_architecture=normalize_architecture(architecture),
            python_version=platform.python_version(),
        )

        return self.info

    def _detect_os(self) -> OSType:
        """Detect operating system type"""
        system = platform.system().lower()

        if system == 'linux':
            return OSType.LINUX
        elif system == 'darwin':
            return OSType.MACOS
        elif system == 'windows':
            return OSType.WINDOWS
        else:
            return OSType.UNKNOWN

    def _detect_build(self) -> int:
        """Detect the Windows build number (0 when unknown)"""
        if sys.platform == 'win32':
            return sys.getwindowsversion().build
        return parse_build_number(platform.version())

    def _detect_architecture(self) -> str:
        """Detect native CPU architecture"""
        # A 32-bit process on 64-bit Windows reports the native value here
        native = os.environ.get('PROCESSOR_ARCHITEW6432')
        if native:
            return native

        reported = os.environ.get('PROCESSOR_ARCHITECTURE')
        if reported:
            return reported

        return platform.machine()


# Global detector instance
_detector: Optional[PlatformDetector] = None


def get_platform_info() -> PlatformInfo:
    """Get cached platform information"""
    global _detector
    if _detector is None or _detector.info is None:
        _detector = PlatformDetector()
        _detector.detect()
    return _detector.info

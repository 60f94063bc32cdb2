"""
wingetup Platform Detection
OS build and architecture detection plus PATH helpers
"""

from wingetup.platform.detector import (
    PlatformDetector,
    PlatformInfo,
    OSType,
    normalize_architecture,
    get_platform_info,
)
from wingetup.platform.environment import apply_path, compute_refreshed_path

__all__ = [
    'PlatformDetector',
    'PlatformInfo',
    'OSType',
    'normalize_architecture',
    'get_platform_info',
    'apply_path',
    'compute_refreshed_path',
]

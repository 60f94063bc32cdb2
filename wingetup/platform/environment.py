#!/usr/bin/env python3
"""
wingetup Environment Helpers
Compute a refreshed PATH from the Windows registry
"""

import os
import sys
from typing import Callable, Optional

MACHINE_SCOPE = 'Machine'
USER_SCOPE = 'User'

_MACHINE_ENVIRONMENT_KEY = r'SYSTEM\CurrentControlSet\Control\Session Manager\Environment'
_USER_ENVIRONMENT_KEY = r'Environment'

# (scope) -> registry Path value or None
PathReader = Callable[[str], Optional[str]]


def read_registry_path(scope: str) -> Optional[str]:
    """
    Read the persisted Path variable for a scope ('Machine' or 'User').

    Returns None off Windows or when the value does not exist.
    """
    if sys.platform != 'win32':
        return None

    import winreg

    if scope == MACHINE_SCOPE:
        hive, subkey = winreg.HKEY_LOCAL_MACHINE, _MACHINE_ENVIRONMENT_KEY
    elif scope == USER_SCOPE:
        hive, subkey = winreg.HKEY_CURRENT_USER, _USER_ENVIRONMENT_KEY
    else:
        raise ValueError(f"Unknown environment scope: {scope}")

    try:
        with winreg.OpenKey(hive, subkey) as key:
            value, value_type = winreg.QueryValueEx(key, 'Path')
    except OSError:
        return None

    if value_type == winreg.REG_EXPAND_SZ:
        value = winreg.ExpandEnvironmentStrings(value)
    return value


def compute_refreshed_path(reader: PathReader = read_registry_path) -> str:
    """
    Build PATH as machine-scope Path followed by user-scope Path.

    Empty scopes are skipped. Nothing is written to the environment;
    pass the result to apply_path() to make it effective.
    """
    parts = []
    for scope in (MACHINE_SCOPE, USER_SCOPE):
        value = reader(scope)
        if value:
            parts.append(value.strip(';'))
    return ';'.join(part for part in parts if part)


def apply_path(path: str) -> None:
    """Apply a computed PATH to the current process"""
    if path:
        os.environ['PATH'] = path

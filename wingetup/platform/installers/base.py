#!/usr/bin/env python3
"""
wingetup Base Installer Classes
Command execution shared by the PowerShell-backed installers
"""

from typing import List, Dict, Optional, Any
import os
import shutil
import subprocess
import time

from rich.console import Console
from rich.markup import escape

from wingetup.errors import PowerShellError

# Create console for debug output
_debug_console = Console(stderr=True)

POWERSHELL_LOCATIONS = [
    r'C:\Windows\System32\WindowsPowerShell\v1.0\powershell.exe',
    r'C:\Windows\SysWOW64\WindowsPowerShell\v1.0\powershell.exe',
]


def quote_ps(value: Any) -> str:
    """Quote a value as a single-quoted PowerShell string literal"""
    return "'" + str(value).replace("'", "''") + "'"


def quote_ps_list(values: List[Any]) -> str:
    """Quote values as a PowerShell array literal"""
    return '@(' + ','.join(quote_ps(v) for v in values) + ')'


def find_powershell() -> str:
    """Locate powershell.exe, checking common locations if not in PATH"""
    powershell_exe = shutil.which('powershell.exe') or shutil.which('powershell')
    if powershell_exe:
        return powershell_exe

    for path in POWERSHELL_LOCATIONS:
        if os.path.exists(path):
            return path

    raise FileNotFoundError("PowerShell executable not found")


class CommandRunner:
    """
    Runs external commands and PowerShell scripts with configured
    retries and timeouts
    """

    DEFAULT_SETTINGS: Dict[str, Any] = {
        'retry_on_failure': 1,
        'command_timeout': 1800,
    }

    def __init__(self, settings: Optional[Dict[str, Any]] = None,
                 console: Optional[Console] = None, debug: bool = False):
        self._install_settings = dict(self.DEFAULT_SETTINGS)
        self._install_settings.update(settings or {})
        self.console = console or _debug_console
        self.debug = debug

    def _debug(self, message: str):
        if self.debug:
            self.console.print(f"[dim]{escape('[DEBUG] ' + message)}[/dim]", highlight=False)

    def get_install_settings(self) -> Dict[str, Any]:
        """
        Installation settings for this runner.

        Returns:
            Dict with keys:
            - retry_on_failure (int, min 1)
            - command_timeout (float or None)
        """
        return self._install_settings

    def run_command(self, cmd: List[str], check: bool = True) -> subprocess.CompletedProcess:
        """
        Run a command and return result

        Args:
            cmd: Command and arguments
            check: Whether to raise on error

        Returns:
            CompletedProcess result
        """
        timeout = self.get_install_settings().get('command_timeout')
        self._debug(f"Running: {' '.join(cmd)}")
        return subprocess.run(cmd, capture_output=True, text=True, check=check,
                              shell=False, timeout=timeout)

    def run_install_with_retries(self, cmd: List[str]) -> subprocess.CompletedProcess:
        """
        Run installer command with configured retry count.

        Args:
            cmd: Command and arguments

        Returns:
            Last subprocess result (or successful one)
        """
        attempts = self.get_install_settings().get('retry_on_failure', 1)
        attempts = max(1, int(attempts))
        last_result: Optional[subprocess.CompletedProcess] = None

        for attempt in range(attempts):
            result = self.run_command(cmd, check=False)
            if result.returncode == 0:
                return result
            last_result = result
            self._debug(f"Attempt {attempt + 1}/{attempts} exited with {result.returncode}")
            if attempt < attempts - 1:
                time.sleep(1)

        if last_result is not None:
            return last_result
        return subprocess.CompletedProcess(cmd, 1, '', 'installer command did not execute')

    def run_powershell(self, script: str, check: bool = True) -> subprocess.CompletedProcess:
        """
        Run a PowerShell script block.

        Args:
            script: PowerShell source passed to -Command
            check: Raise PowerShellError on a non-zero exit code

        Returns:
            CompletedProcess result
        """
        cmd = [
            find_powershell(),
            '-NoProfile',
            '-NonInteractive',
            '-ExecutionPolicy', 'Bypass',
            '-Command',
            script,
        ]
        result = self.run_install_with_retries(cmd)
        if check and result.returncode != 0:
            raise PowerShellError(script, result.returncode, result.stderr)
        return result

#!/usr/bin/env python3
"""
wingetup Temporary Workspace
Owns the temporary artifacts of one install run and removes them on exit
"""

import os
import shutil
import stat
import sys
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple

from rich.console import Console
from rich.markup import escape

DEPENDENCIES_ARCHIVE = 'DesktopAppInstaller_Dependencies.zip'
DEPENDENCIES_DIR = 'winget-dependencies'
LICENSE_FILE = 'License1.xml'
BUNDLE_FILE = 'Microsoft.DesktopAppInstaller_8wekyb3d8bbwe.msixbundle'


def _clear_readonly(func, path, _exc):
    # Read-only files (e.g. extracted packages) block deletion on Windows
    os.chmod(path, stat.S_IWRITE)
    func(path)


def _force_rmtree(path: Path):
    if sys.version_info >= (3, 12):
        shutil.rmtree(path, onexc=_clear_readonly)
    else:
        shutil.rmtree(path, onerror=_clear_readonly)


@dataclass(frozen=True)
class CleanupFailure:
    """An artifact that could not be removed"""
    path: Path
    error: str


class TempWorkspace:
    """
    The four temporary artifacts of an install run.

    Use as a context manager: every artifact that exists when the block
    exits is removed, whether the block succeeded or raised.
    """

    def __init__(self, root: Optional[Path] = None, console: Optional[Console] = None):
        self.root = Path(root) if root else Path(tempfile.gettempdir())
        self.console = console or Console(stderr=True)
        self.failures: List[CleanupFailure] = []

    @property
    def dependencies_archive(self) -> Path:
        return self.root / DEPENDENCIES_ARCHIVE

    @property
    def dependencies_dir(self) -> Path:
        return self.root / DEPENDENCIES_DIR

    @property
    def license_file(self) -> Path:
        return self.root / LICENSE_FILE

    @property
    def bundle(self) -> Path:
        return self.root / BUNDLE_FILE

    @property
    def artifacts(self) -> Tuple[Path, ...]:
        return (self.dependencies_archive, self.dependencies_dir, self.license_file, self.bundle)

    def __enter__(self) -> 'TempWorkspace':
        self.root.mkdir(parents=True, exist_ok=True)
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cleanup()

    def cleanup(self) -> List[CleanupFailure]:
        """
        Remove every artifact that exists.

        Failures are reported and collected; the remaining artifacts are
        still attempted.
        """
        self.console.print("[cyan]Cleaning up temporary files...[/cyan]")
        self.failures = []
        for path in self.artifacts:
            if not path.exists():
                continue
            try:
                if path.is_dir():
                    _force_rmtree(path)
                else:
                    os.chmod(path, stat.S_IWRITE)
                    path.unlink()
            except OSError as e:
                self.failures.append(CleanupFailure(path=path, error=str(e)))
                self.console.print(f"[yellow]Could not remove {escape(str(path))}: {escape(str(e))}[/yellow]")
        return self.failures

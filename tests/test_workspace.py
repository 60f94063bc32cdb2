"""
Tests for the temporary workspace cleanup guarantees
"""
import os
import shutil
import stat
import sys
import tempfile
from pathlib import Path

import pytest

from wingetup.workspace import TempWorkspace


def populate(workspace):
    workspace.dependencies_archive.write_bytes(b'zip')
    (workspace.dependencies_dir / 'x64').mkdir(parents=True)
    (workspace.dependencies_dir / 'x64' / 'dep.appx').write_bytes(b'appx')
    workspace.license_file.write_text('<License/>')
    workspace.bundle.write_bytes(b'bundle')


def test_artifacts_live_under_root(tmp_path, console):
    workspace = TempWorkspace(root=tmp_path, console=console)
    assert len(workspace.artifacts) == 4
    assert all(p.parent == tmp_path for p in workspace.artifacts)


def test_default_root_is_process_temp_dir(console):
    assert TempWorkspace(console=console).root == Path(tempfile.gettempdir())


def test_exit_removes_everything(tmp_path, console):
    with TempWorkspace(root=tmp_path / 'work', console=console) as workspace:
        populate(workspace)

    assert not any(p.exists() for p in workspace.artifacts)
    assert workspace.failures == []


def test_exit_removes_artifacts_when_block_raises(tmp_path, console):
    workspace = TempWorkspace(root=tmp_path, console=console)
    with pytest.raises(RuntimeError):
        with workspace:
            workspace.license_file.write_text('<License/>')
            raise RuntimeError('boom')

    assert not workspace.license_file.exists()


def test_missing_artifacts_are_skipped(tmp_path, console):
    workspace = TempWorkspace(root=tmp_path, console=console)
    workspace.bundle.write_bytes(b'bundle')

    assert workspace.cleanup() == []
    assert not workspace.bundle.exists()


def test_read_only_files_are_removed(tmp_path, console):
    workspace = TempWorkspace(root=tmp_path, console=console)
    workspace.license_file.write_text('<License/>')
    os.chmod(workspace.license_file, stat.S_IREAD)

    workspace.cleanup()

    assert not workspace.license_file.exists()


def test_failure_is_collected_and_others_still_removed(tmp_path, console, monkeypatch):
    workspace = TempWorkspace(root=tmp_path, console=console)
    populate(workspace)

    def locked(path, *args, **kwargs):
        raise PermissionError(13, 'in use', str(path))

    monkeypatch.setattr(shutil, 'rmtree', locked)
    failures = workspace.cleanup()

    assert [f.path for f in failures] == [workspace.dependencies_dir]
    assert 'in use' in failures[0].error
    assert not workspace.dependencies_archive.exists()
    assert not workspace.license_file.exists()
    assert not workspace.bundle.exists()
    assert 'Could not remove' in console.file.getvalue()


def test_directory_removal_uses_current_rmtree_hook(tmp_path, console, monkeypatch):
    workspace = TempWorkspace(root=tmp_path, console=console)
    populate(workspace)
    calls = []
    monkeypatch.setattr(shutil, 'rmtree', lambda path, **kwargs: calls.append(kwargs))

    workspace.cleanup()

    expected = 'onexc' if sys.version_info >= (3, 12) else 'onerror'
    assert [list(kwargs) for kwargs in calls] == [[expected]]

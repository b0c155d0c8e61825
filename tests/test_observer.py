"""Tests for change observation."""

import os
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from syng.git_wrapper import GitRepo
from syng.observer import EPOCH, ChangeObserver, ChangeRecord


@pytest.fixture
def repo(tmp_path: Path) -> GitRepo:
    (tmp_path / ".git").mkdir()
    return GitRepo(tmp_path)


def test_list_changes_reports_mtime_and_deletions(
    repo: GitRepo, mocker: MagicMock
) -> None:
    """Verifies that live files carry their mtime and missing ones are flagged deleted."""
    edited = repo.path / "notes.md"
    edited.write_text("hello")
    os.utime(edited, (1_700_000_000, 1_700_000_000))

    mocker.patch.object(repo, "status_porcelain", return_value=["notes.md", "gone.md"])

    changes = ChangeObserver(repo).list_changes()

    assert changes == [
        ChangeRecord("notes.md", 1_700_000_000.0),
        ChangeRecord("gone.md", EPOCH, deleted=True),
    ]


def test_list_changes_degrades_to_empty_on_git_failure(
    repo: GitRepo, mocker: MagicMock, caplog: pytest.LogCaptureFixture
) -> None:
    """Verifies that a failing status query yields no changes and a log line."""
    mocker.patch.object(
        repo, "status_porcelain", side_effect=RuntimeError("Git error: locked")
    )

    assert ChangeObserver(repo).list_changes() == []
    assert "Could not list changes" in caplog.text


def test_stat_error_is_treated_as_fresh_edit(
    repo: GitRepo, mocker: MagicMock, caplog: pytest.LogCaptureFixture
) -> None:
    """Verifies that an unreadable file is reported as modified 'now' and logged."""
    secret = repo.path / "secret.txt"
    secret.write_text("x")
    mocker.patch.object(repo, "status_porcelain", return_value=["secret.txt"])

    real_lstat = os.lstat

    def fake_lstat(path: os.PathLike, *args: object, **kwargs: object) -> object:
        if Path(path) == secret:
            raise PermissionError("denied")
        return real_lstat(path, *args, **kwargs)

    mocker.patch("syng.observer.os.lstat", side_effect=fake_lstat)

    changes = ChangeObserver(repo, clock=lambda: 42.0).list_changes()

    assert changes == [ChangeRecord("secret.txt", 42.0, deleted=False)]
    assert "Error checking modtime of secret.txt" in caplog.text


def test_path_under_replaced_directory_counts_as_deleted(
    repo: GitRepo, mocker: MagicMock
) -> None:
    """Verifies that a path whose parent became a file is reported deleted."""
    (repo.path / "docs").write_text("now a file")
    mocker.patch.object(repo, "status_porcelain", return_value=["docs/index.md"])

    changes = ChangeObserver(repo).list_changes()

    assert changes == [ChangeRecord("docs/index.md", EPOCH, deleted=True)]

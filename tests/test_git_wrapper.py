import shutil
import subprocess
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from syng.git_wrapper import GitRepo


@pytest.fixture
def repo(tmp_path: Path) -> GitRepo:
    # Create a fake .git directory so GitRepo accepts the path
    (tmp_path / ".git").mkdir()
    return GitRepo(tmp_path)


def test_requires_git_directory(tmp_path: Path) -> None:
    """Verifies that GitRepo refuses a directory without a .git marker."""
    with pytest.raises(ValueError, match="Not a git repository"):
        GitRepo(tmp_path)


def test_run_raises_runtime_error_with_git_stderr(
    repo: GitRepo, mocker: MagicMock
) -> None:
    """Verifies that git failures surface as RuntimeError carrying git's message."""
    mocker.patch(
        "subprocess.run",
        side_effect=subprocess.CalledProcessError(
            128, ["git", "push"], output="", stderr="fatal: no upstream\n"
        ),
    )

    with pytest.raises(RuntimeError, match="Git error: fatal: no upstream"):
        repo.push()


def test_run_detaches_git_from_terminal_signals(
    repo: GitRepo, mocker: MagicMock
) -> None:
    """Verifies that git runs in its own session so Ctrl-C cannot kill a push."""
    mock_run = mocker.patch("subprocess.run")
    mock_run.return_value = MagicMock(stdout="main\n")

    assert repo.current_branch() == "main"

    _, kwargs = mock_run.call_args
    assert kwargs["start_new_session"] is True
    assert kwargs["cwd"] == repo.path


def test_status_porcelain_parses_nul_separated_output(
    repo: GitRepo, mocker: MagicMock
) -> None:
    """Verifies parsing of -z output, including renames and untracked paths."""
    mock_run = mocker.patch.object(repo, "_run")
    mock_run.return_value = (
        " M src/app.py\0"
        "?? new dir/file with spaces.txt\0"
        "R  renamed.txt\0original.txt\0"
        " D gone.txt\0"
    )

    assert repo.status_porcelain() == [
        "src/app.py",
        "new dir/file with spaces.txt",
        "renamed.txt",
        "gone.txt",
    ]
    mock_run.assert_called_once_with(
        ["status", "--porcelain", "-z", "-uall"], strip=False
    )


def test_status_porcelain_skips_worktree_rename_source(
    repo: GitRepo, mocker: MagicMock
) -> None:
    """Verifies that a rename flagged in the worktree column consumes its source."""
    mocker.patch.object(
        repo, "_run", return_value=" R newname.txt\0old.txt\0 M other.txt\0"
    )

    assert repo.status_porcelain() == ["newname.txt", "other.txt"]


@pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed")
def test_status_porcelain_real_worktree_rename(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Verifies that a real intent-to-add rename yields no truncated paths."""
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    work = tmp_path / "work"
    work.mkdir()

    def git(*args: str) -> None:
        subprocess.run(
            [
                "git",
                "-c",
                "user.name=syng",
                "-c",
                "user.email=syng@example.com",
                "-c",
                "commit.gpgsign=false",
                *args,
            ],
            cwd=work,
            check=True,
            capture_output=True,
        )

    git("init", "-q")
    (work / "old.txt").write_text("unchanged contents\n")
    git("add", "old.txt")
    git("commit", "-q", "-m", "initial")
    (work / "old.txt").rename(work / "newname.txt")
    git("add", "-N", "newname.txt")

    paths = GitRepo(work).status_porcelain()

    assert ".txt" not in paths
    assert all((work / p).exists() or p == "old.txt" for p in paths)
    assert "newname.txt" in paths


def test_status_porcelain_clean_tree(repo: GitRepo, mocker: MagicMock) -> None:
    """Verifies that a clean tree yields no paths."""
    mocker.patch.object(repo, "_run", return_value="")
    assert repo.status_porcelain() == []


def test_push_and_pull_target_remote(repo: GitRepo, mocker: MagicMock) -> None:
    """Verifies that a configured remote is passed through, and omitted otherwise."""
    mock_run = mocker.patch.object(repo, "_run")

    repo.push()
    mock_run.assert_called_with(["push"])

    repo.push("backup")
    mock_run.assert_called_with(["push", "backup"])

    repo.pull("origin")
    mock_run.assert_called_with(["pull", "origin"])


def test_has_staged_changes(repo: GitRepo, mocker: MagicMock) -> None:
    """Verifies that staged paths are detected from `diff --cached`."""
    mock_run = mocker.patch.object(repo, "_run")

    mock_run.return_value = "notes.md"
    assert repo.has_staged_changes() is True

    mock_run.return_value = ""
    assert repo.has_staged_changes() is False
    mock_run.assert_called_with(["diff", "--cached", "--name-only"])

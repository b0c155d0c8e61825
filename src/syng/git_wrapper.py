import logging
import subprocess
from pathlib import Path

from .constants import APP_NAME, GIT_DIR

logger = logging.getLogger(APP_NAME)


class GitRepo:
    """A wrapper around the Git command-line interface for a specific repository.

    Every command runs in its own session so that a Ctrl-C delivered to the
    daemon's terminal does not kill a git child halfway through a push.

    Attributes:
        path (Path): The file system path to the repository root.
    """

    def __init__(self, path: Path):
        """Initializes the GitRepo instance.

        Args:
            path (Path): The path to the repository root directory.

        Raises:
            ValueError: If the specified path does not contain a .git directory.
        """
        self.path = path
        if not (self.path / GIT_DIR).exists():
            raise ValueError(f"Not a git repository: {self.path}")

    @property
    def git_dir(self) -> Path:
        """Path: The repository's .git directory."""
        return self.path / GIT_DIR

    def _run(self, args: list[str], capture: bool = True, strip: bool = True) -> str:
        """Executes a Git command within the repository context.

        Args:
            args (list[str]): A list of arguments to pass to the git command.
            capture (bool, optional):   Whether to capture and return stdout.
                                        Defaults to True.
            strip (bool, optional): Whether to strip surrounding whitespace from
                                    the output. Porcelain output must keep its
                                    leading status columns. Defaults to True.

        Returns:
            str:    The stdout of the command if capture is True,
                    otherwise an empty string.

        Raises:
            RuntimeError: If the git command returns a non-zero exit code.
        """
        try:
            res = subprocess.run(
                ["git", *args],
                cwd=self.path,
                capture_output=capture,
                text=True,
                check=True,
                start_new_session=True,
            )
        except subprocess.CalledProcessError as e:
            detail = (e.stderr or e.stdout or "").strip() or str(e)
            raise RuntimeError(f"Git error: {detail}") from e

        if not capture:
            return ""
        return res.stdout.strip() if strip else res.stdout

    def status_porcelain(self) -> list[str]:
        """Lists every pending path in the working tree.

        Runs `git status --porcelain -z -uall`, so untracked directories are
        expanded to their files and paths are never quoted. For renames and
        copies the destination path is reported.

        Returns:
            list[str]: Changed paths relative to the repository root.
        """
        output = self._run(["status", "--porcelain", "-z", "-uall"], strip=False)
        entries = iter(output.split("\0"))
        paths = []
        for entry in entries:
            if len(entry) < 4:
                continue
            status, path = entry[:2], entry[3:]
            if "R" in status or "C" in status:
                # The next NUL-separated field is the rename source, flagged in
                # either the index or the worktree column.
                next(entries, None)
            paths.append(path)
        return paths

    def add_all(self) -> None:
        """
        Stages all changes (modified, deleted, and untracked files)
        in the working directory.
        """
        self._run(["add", "."])

    def has_staged_changes(self) -> bool:
        """Checks whether the index differs from HEAD.

        Returns:
            bool: True if a commit would record anything.
        """
        return bool(self._run(["diff", "--cached", "--name-only"]))

    def commit(self, message: str) -> None:
        """Creates a new commit with the provided message.

        Args:
            message (str): The commit message.
        """
        self._run(["commit", "-m", message])

    def push(self, remote: str | None = None) -> None:
        """Pushes the current branch.

        Args:
            remote (str | None, optional): Remote to push to. Defaults to the
                                           branch's configured upstream.
        """
        self._run(["push", remote] if remote else ["push"])

    def pull(self, remote: str | None = None) -> None:
        """Pulls the current branch from its remote.

        Args:
            remote (str | None, optional): Remote to pull from. Defaults to the
                                           branch's configured upstream.
        """
        self._run(["pull", remote] if remote else ["pull"])

    def current_branch(self) -> str:
        """Retrieves the name of the currently checked-out branch.

        Returns:
            str: The name of the current branch, or an empty string when detached.
        """
        try:
            return self._run(["branch", "--show-current"])
        except RuntimeError as e:
            logger.debug(f"Could not resolve current branch: {e}")
            return ""

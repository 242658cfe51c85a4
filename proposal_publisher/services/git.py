"""Git operations used by the publication workflow."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import subprocess
from typing import Protocol

from proposal_publisher.models.errors import GitCommandError, ToolNotFoundError
from proposal_publisher.models.session import FileChange


class SupportsGit(Protocol):
    """Subset of git capabilities relied upon by the workflow components."""

    @property
    def root(self) -> Path:
        """Return the working tree root."""

    def resolve(self, ref: str) -> str:
        """Return the full commit hash ``ref`` points at."""

    def changed_files(self, commit: str) -> list[FileChange]:
        """Return files changed by ``commit`` relative to its parent, detecting renames."""

    def show_file(self, commit: str, path: str) -> str:
        """Return the content of ``path`` as of ``commit``."""

    def current_branch(self) -> str:
        """Return the checked out branch name (``HEAD`` when detached)."""

    def is_dirty(self) -> bool:
        """Return ``True`` when the working tree has uncommitted changes."""

    def stash_push(self, message: str) -> bool:
        """Stash local changes, untracked files included; return whether an entry was created."""

    def stash_pop(self) -> None: ...

    def checkout(self, ref: str) -> None: ...

    def create_branch(self, name: str, start: str) -> None:
        """Create ``name`` at ``start`` and switch to it."""

    def delete_branch(self, name: str) -> None: ...

    def move(self, source: str, destination: str) -> None: ...

    def add(self, path: str) -> None: ...

    def amend(self) -> str:
        """Amend HEAD without editing the message and return the new hash."""

    def is_ancestor(self, ancestor: str, descendant: str) -> bool: ...

    def commits_between(self, base: str, tip: str) -> list[str]:
        """Return commits on the ancestry path from ``base`` to ``tip``, oldest first."""

    def cherry_pick(self, commit: str) -> None: ...

    def abort_cherry_pick(self) -> None: ...

    def reset_hard(self, commit: str) -> None: ...

    def commit_message(self, ref: str = "HEAD") -> str: ...

    def config_get(self, key: str) -> str | None: ...


@dataclass(slots=True)
class GitRepository:
    """Drive a local repository through the ``git`` command-line tool."""

    repo_path: Path
    git_executable: str = "git"

    @classmethod
    def discover(cls, path: Path, git_executable: str = "git") -> "GitRepository":
        """Return a repository rooted at the top level of the work tree containing ``path``."""

        probe = cls(path, git_executable)
        toplevel = probe._run_git("rev-parse", "--show-toplevel").stdout.strip()
        return cls(Path(toplevel), git_executable)

    @property
    def root(self) -> Path:
        return self.repo_path

    def resolve(self, ref: str) -> str:
        return self._run_git("rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}").stdout.strip()

    def changed_files(self, commit: str) -> list[FileChange]:
        output = self._run_git("diff-tree", "--no-commit-id", "--name-status", "-r", "-M", "--root", commit).stdout
        return parse_name_status(output)

    def show_file(self, commit: str, path: str) -> str:
        return self._run_git("show", f"{commit}:{path}").stdout

    def current_branch(self) -> str:
        return self._run_git("rev-parse", "--abbrev-ref", "HEAD").stdout.strip()

    def is_dirty(self) -> bool:
        return bool(self._run_git("status", "--porcelain").stdout.strip())

    def stash_push(self, message: str) -> bool:
        before = self._stash_ref()
        self._run_git("stash", "push", "--include-untracked", "-m", message)
        return self._stash_ref() != before

    def stash_pop(self) -> None:
        self._run_git("stash", "pop")

    def checkout(self, ref: str) -> None:
        self._run_git("checkout", ref)

    def create_branch(self, name: str, start: str) -> None:
        self._run_git("checkout", "-b", name, start)

    def delete_branch(self, name: str) -> None:
        self._run_git("branch", "-D", name)

    def move(self, source: str, destination: str) -> None:
        self._run_git("mv", source, destination)

    def add(self, path: str) -> None:
        self._run_git("add", path)

    def amend(self) -> str:
        self._run_git("commit", "--amend", "--no-edit")
        return self.resolve("HEAD")

    def is_ancestor(self, ancestor: str, descendant: str) -> bool:
        result = self._run_git("merge-base", "--is-ancestor", ancestor, descendant, check=False)
        if result.returncode not in (0, 1):
            raise GitCommandError(
                ("merge-base", "--is-ancestor", ancestor, descendant), result.returncode, result.stderr
            )
        return result.returncode == 0

    def commits_between(self, base: str, tip: str) -> list[str]:
        output = self._run_git("rev-list", "--reverse", "--ancestry-path", f"{base}..{tip}").stdout
        return output.split()

    def cherry_pick(self, commit: str) -> None:
        self._run_git("cherry-pick", commit)

    def abort_cherry_pick(self) -> None:
        self._run_git("cherry-pick", "--abort")

    def reset_hard(self, commit: str) -> None:
        self._run_git("reset", "--hard", commit)

    def commit_message(self, ref: str = "HEAD") -> str:
        return self._run_git("log", "-1", "--format=%B", ref).stdout

    def config_get(self, key: str) -> str | None:
        result = self._run_git("config", "--get", key, check=False)
        value = result.stdout.strip()
        return value if result.returncode == 0 and value else None

    def _stash_ref(self) -> str | None:
        result = self._run_git("rev-parse", "-q", "--verify", "refs/stash", check=False)
        return result.stdout.strip() or None

    def _run_git(self, *args: str, check: bool = True) -> subprocess.CompletedProcess[str]:
        """Execute a git command within the repository and raise on error."""

        try:
            result = subprocess.run(
                [self.git_executable, *args],
                cwd=self.repo_path,
                text=True,
                check=False,
                capture_output=True,
            )
        except FileNotFoundError as exc:
            raise ToolNotFoundError(self.git_executable) from exc
        if check and result.returncode != 0:
            raise GitCommandError(args, result.returncode, result.stderr)
        return result


def parse_name_status(output: str) -> list[FileChange]:
    """Parse ``--name-status`` lines of the form ``STATUS\\tPATH[\\tNEW_PATH]``."""

    changes: list[FileChange] = []
    for line in output.splitlines():
        parts = line.strip("\n").split("\t")
        if len(parts) < 2 or not parts[0]:
            continue
        status = parts[0]
        if status.startswith(("R", "C")):
            if len(parts) < 3:
                continue
            changes.append(FileChange(status=status, path=parts[2], old_path=parts[1]))
        else:
            changes.append(FileChange(status=status, path=parts[1]))
    return changes

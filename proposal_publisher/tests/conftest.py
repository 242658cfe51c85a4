"""Shared fixtures and helpers for the test suite."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import subprocess

import pytest


DEMO_PROPOSAL = """# Demo Feature

*   **Author(s)**: Jane Doe
*   **Status**: Draft

## Summary

Demo proposals make the publication workflow easy to exercise.

## Details

Nothing else to see here.
"""


@dataclass(slots=True)
class GitRepo:
    """Temporary git repository driven through the real ``git`` executable."""

    path: Path

    def git(self, *args: str) -> str:
        result = subprocess.run(
            ["git", *args],
            cwd=self.path,
            check=True,
            text=True,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
        )
        return result.stdout

    def write(self, relative: str, content: str) -> Path:
        target = self.path / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
        return target

    def commit(self, message: str) -> str:
        self.git("add", "-A")
        self.git("commit", "-m", message)
        return self.head()

    def commit_file(self, relative: str, content: str, message: str | None = None) -> str:
        self.write(relative, content)
        return self.commit(message or f"Add {relative}")

    def head(self) -> str:
        return self.git("rev-parse", "HEAD").strip()

    def subjects(self) -> list[str]:
        """Return commit subjects from oldest to newest."""

        return self.git("log", "--reverse", "--format=%s").splitlines()

    def files_at(self, ref: str = "HEAD") -> list[str]:
        return self.git("ls-tree", "-r", "--name-only", ref).splitlines()

    def branches(self) -> list[str]:
        return [line.strip("* ").strip() for line in self.git("branch", "--list").splitlines()]


def init_repo(path: Path) -> GitRepo:
    path.mkdir(parents=True, exist_ok=True)
    subprocess.run(["git", "init"], cwd=path, check=True, stdout=subprocess.PIPE, stderr=subprocess.PIPE, text=True)
    repo = GitRepo(path)
    repo.git("symbolic-ref", "HEAD", "refs/heads/main")
    repo.git("config", "user.name", "Proposal Bot")
    repo.git("config", "user.email", "bot@example.com")
    repo.git("config", "commit.gpgsign", "false")
    return repo


@pytest.fixture()
def git_repo(tmp_path: Path) -> GitRepo:
    """Return an initialised repository holding a single README commit."""

    repo = init_repo(tmp_path / "repo")
    repo.commit_file("README.md", "# Proposals\n", "Initial commit")
    return repo


@pytest.fixture()
def demo_proposal() -> str:
    """Return a small proposal document with a title, author line and summary."""

    return DEMO_PROPOSAL


@pytest.fixture()
def make_repo(tmp_path: Path):
    """Return a factory creating empty repositories under ``tmp_path``."""

    def _make(name: str) -> GitRepo:
        return init_repo(tmp_path / name)

    return _make

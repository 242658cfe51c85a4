"""Thin wrapper around :mod:`subprocess` for the external tools the workflow drives."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import subprocess
from typing import Protocol, Sequence

from proposal_publisher.models.errors import ToolNotFoundError


@dataclass(slots=True)
class CommandResult:
    """Captured outcome of an external command."""

    args: tuple[str, ...]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def output(self) -> str:
        """Return stdout and stderr combined, stdout first."""

        return "\n".join(part for part in (self.stdout, self.stderr) if part)


class SupportsCommands(Protocol):
    """Run an external command and capture its output."""

    def run(self, args: Sequence[str], *, input: str | None = None) -> CommandResult:
        """Execute ``args`` and return the captured result without raising on failure."""


@dataclass(slots=True)
class CommandRunner:
    """Execute commands in a fixed working directory."""

    cwd: Path

    def run(self, args: Sequence[str], *, input: str | None = None) -> CommandResult:
        command = tuple(args)
        try:
            completed = subprocess.run(
                list(command),
                cwd=self.cwd,
                input=input,
                text=True,
                check=False,
                capture_output=True,
            )
        except FileNotFoundError as exc:
            raise ToolNotFoundError(command[0]) from exc
        return CommandResult(
            args=command,
            returncode=completed.returncode,
            stdout=completed.stdout,
            stderr=completed.stderr,
        )


def looks_like_missing_tool(result: CommandResult) -> bool:
    """Return ``True`` when a shell or git wrapper reported an unknown command."""

    if result.returncode == 127:
        return True
    stderr = result.stderr.lower()
    return "command not found" in stderr or "is not a git command" in stderr

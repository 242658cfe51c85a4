from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

from proposal_publisher.models.errors import ToolNotFoundError
from proposal_publisher.services.commands import CommandResult
from proposal_publisher.services.preflight import PreflightChecker
from proposal_publisher.services.settings import PublishSettings


@dataclass(slots=True)
class ScriptedRunner:
    outcomes: dict[str, CommandResult | None]
    calls: list[tuple[str, ...]] = field(default_factory=list)

    def run(self, args: Sequence[str], *, input: str | None = None) -> CommandResult:
        self.calls.append(tuple(args))
        outcome = self.outcomes[args[0]]
        if outcome is None:
            raise ToolNotFoundError(args[0])
        return outcome


def test_all_checks_pass() -> None:
    runner = ScriptedRunner({"go": CommandResult(args=("go",), returncode=0), "sh": CommandResult(args=("sh",), returncode=0)})

    assert PreflightChecker(runner).run() == []
    assert runner.calls == [("go", "test", "./..."), ("sh", "-c", "cd internal/ci && go generate")]


def test_failures_become_warnings_and_every_check_runs() -> None:
    runner = ScriptedRunner(
        {
            "go": CommandResult(args=("go",), returncode=1, stderr="FAIL example.com/pkg\n"),
            "sh": None,
        }
    )

    warnings = PreflightChecker(runner).run()

    assert warnings == [
        "pre-check 'go test ./...' failed: FAIL example.com/pkg",
        "pre-check 'sh -c cd internal/ci && go generate' could not run: sh: command not found",
    ]
    assert len(runner.calls) == 2


def test_configured_checks_replace_defaults() -> None:
    runner = ScriptedRunner({"make": CommandResult(args=("make",), returncode=0)})
    settings = PublishSettings(precheck_commands=(("make", "check"),))

    assert PreflightChecker(runner, settings).run() == []
    assert runner.calls == [("make", "check")]

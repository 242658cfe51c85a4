"""Run repository checks before the workflow mutates anything."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging

from proposal_publisher.models.errors import ToolNotFoundError
from proposal_publisher.services.commands import SupportsCommands
from proposal_publisher.services.settings import PublishSettings


@dataclass(slots=True)
class PreflightChecker:
    """Execute the configured pre-check commands, reporting failures as warnings."""

    runner: SupportsCommands
    settings: PublishSettings = field(default_factory=PublishSettings)
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger(__name__))

    def run(self) -> list[str]:
        """Return one warning per failing check; an empty list means all passed."""

        warnings: list[str] = []
        self.logger.info("Running pre-checks...")
        for command in self.settings.precheck_commands:
            rendered = " ".join(command)
            try:
                result = self.runner.run(command)
            except ToolNotFoundError as exc:
                warnings.append(f"pre-check {rendered!r} could not run: {exc}")
                continue
            if not result.ok:
                detail = result.stderr.strip() or result.stdout.strip() or f"exit status {result.returncode}"
                warnings.append(f"pre-check {rendered!r} failed: {detail}")

        for warning in warnings:
            self.logger.warning(warning)
        if not warnings:
            self.logger.info("Pre-checks passed")
        else:
            self.logger.warning("Pre-checks failed, continuing anyway")
        return warnings
